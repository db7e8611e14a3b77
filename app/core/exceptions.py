"""
Base exception classes for application-wide error handling.

This module provides the exception hierarchy shared by every marketplace app:
- Consistent error responses across the API
- Machine-readable error codes for client handling
- Detailed error information for debugging and alerting

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ConflictError - Request conflicts with current state
    ├── ExternalServiceError - Gateway / carrier / notification failures
    └── InvariantViolationError - Ledger invariant breached (a bug, never handled)

Usage:
    from core.exceptions import InvariantViolationError

    raise InvariantViolationError("Funds already released", error_code="DOUBLE_RELEASE")

    # Convert to dict for API response
    try:
        ...
    except BaseApplicationError as e:
        return Response(e.to_dict(), status=400)

Note:
    Expected business failures (invalid transitions, expired windows) are
    returned as ServiceResult.failure(), not raised. Exceptions are for
    conditions the caller cannot recover from in-line.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (field errors, identifiers, amounts)

    Example:
        raise ExternalServiceError(
            "AfterShip request timed out",
            error_code="TRACKING_SERVICE_ERROR",
            details={"tracking_number": tracking_number},
        )
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for API response.

        Returns:
            Dict with error, error_code, and (when present) details keys
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Duplicate entries (unique constraint violations)
    - Lock contention
    - Requests against a record in a terminal state

    Note:
        HTTP 409 Conflict is the appropriate status for these errors.
    """

    default_error_code: str = "CONFLICT"


class ExternalServiceError(BaseApplicationError):
    """
    Raised when an external service call fails.

    Use for:
    - Payment gateway refund API failures
    - Carrier tracking API failures
    - Network timeouts and unexpected responses

    Note:
        These never roll back a state transition that already committed.
        Callers catch them at the best-effort boundary, log, and record a
        durable flag where money is involved.
    """

    default_error_code: str = "EXTERNAL_SERVICE_ERROR"


class InvariantViolationError(BaseApplicationError):
    """
    Raised when a ledger or state invariant would be broken.

    Examples are a balance going negative or funds being released twice.
    These indicate a bug: they abort the surrounding transaction and must
    never be converted into a soft failure inside business logic.
    """

    default_error_code: str = "INVARIANT_VIOLATION"
