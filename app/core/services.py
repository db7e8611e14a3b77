"""
Base service layer patterns for business logic encapsulation.

This module provides foundational patterns for the service layer:
- ServiceResult: Standard result wrapper for consistent success/failure handling
- BaseService: Base class with logging and transaction helpers

Service Layer Philosophy:
    Services encapsulate business logic separate from views and models.
    Views handle HTTP concerns, models handle data, services handle logic.

Pattern Comparison:
    - ServiceResult: Expected failures (invalid transition, expired window)
    - Exceptions: Unexpected failures and invariant violations (negative
      balance, double release) that must abort the transaction

Usage:
    from core.services import BaseService, ServiceResult

    class CancellationService(BaseService):
        @classmethod
        def cancel(cls, order, reason) -> ServiceResult[Order]:
            if order.status not in CANCELLABLE:
                return ServiceResult.failure(
                    "Cannot cancel order after it has been shipped",
                    error_code="INVALID_TRANSITION",
                )

            with cls.atomic(bounded=True):
                ...

            return ServiceResult.success(order)

    # In view
    result = CancellationService.cancel(order, reason)
    if result:
        return Response(result.to_response(), status=200)
    return Response(result.to_response(), status=400)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.conf import settings
from django.db import connection, transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")


@dataclass
class ServiceResult(Generic[T]):
    """
    Standard result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Human-readable reason if failed, usable directly in API responses
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures

    Usage:
        return ServiceResult.success(order)
        return ServiceResult.failure("Return window (24 hours) has expired", "WINDOW_EXPIRED")

        result = OrderStatusService.cancel_order(order, customer, reason)
        if not result:
            print(f"Rejected: {result.error} ({result.error_code})")
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def ok(cls, data: T) -> ServiceResult[T]:
        """Alias for success(); use whichever reads better in context."""
        return cls(success=True, data=data)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code for client handling
            errors: Field-level errors (for validation failures)
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    @classmethod
    def from_exception(cls, exc: Exception, error_code: str | None = None) -> ServiceResult[T]:
        """
        Create a failed result from an exception.

        Application errors keep their own error_code; other exceptions fall
        back to the upper-cased class name.
        """
        code = error_code or getattr(exc, "error_code", None) or exc.__class__.__name__.upper()
        message = getattr(exc, "message", None) or str(exc)
        return cls(
            success=False,
            error=message,
            error_code=code,
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert to API response envelope.

        Returns:
            {"success": True, "data": ...} or
            {"success": False, "error": ..., "error_code": ..., "errors": ...}
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {
            "success": False,
            "error": self.error,
        }
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def map(self, func) -> ServiceResult:
        """
        Transform the data if successful.

        Example:
            result = OrderService.get_order(order_id)
            serialized = result.map(lambda o: OrderSerializer(o).data)
        """
        if self.success and self.data is not None:
            return ServiceResult.success(func(self.data))
        return self  # type: ignore

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management (optionally bounded)
    - Exception-to-result conversion with logging

    Design Notes:
        - Use @staticmethod or @classmethod (no instance state)
        - Use ServiceResult for expected failures
        - Raise exceptions for unexpected failures
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Return a logger named after the service class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls, bounded: bool = False) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        Args:
            bounded: Apply the money-transaction lock wait and statement
                timeouts (MONEY_TRANSACTION_LOCK_TIMEOUT_MS /
                MONEY_TRANSACTION_STATEMENT_TIMEOUT_MS). Use for every
                transaction that touches wallet balances.

        Example:
            with cls.atomic(bounded=True):
                order = Order.objects.select_for_update().get(pk=order_id)
                FundMovementService.release_order(order)

        Note:
            The timeouts are applied with SET LOCAL, so they only last until
            the outermost transaction ends. Backends without SET LOCAL
            (sqlite in local development) skip this step.
        """
        with transaction.atomic():
            if bounded and connection.vendor == "postgresql":
                with connection.cursor() as cursor:
                    # SET does not accept bind parameters; values are ints (ms)
                    cursor.execute(
                        "SET LOCAL lock_timeout = %d"
                        % int(settings.MONEY_TRANSACTION_LOCK_TIMEOUT_MS)
                    )
                    cursor.execute(
                        "SET LOCAL statement_timeout = %d"
                        % int(settings.MONEY_TRANSACTION_STATEMENT_TIMEOUT_MS)
                    )
            yield

    @classmethod
    def handle_exception(
        cls,
        exc: Exception,
        context: str = "",
        log_level: int = logging.ERROR,
    ) -> ServiceResult:
        """
        Log an exception and convert it to a failed ServiceResult.

        Example:
            try:
                PayHereAdapter.request_refund(payment_id, amount, reason)
            except GatewayError as e:
                return cls.handle_exception(e, "gateway refund")
        """
        message = f"{context}: {exc}" if context else str(exc)
        cls.get_logger().log(log_level, message, exc_info=True)
        return ServiceResult.from_exception(exc)
