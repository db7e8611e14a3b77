"""
Payment-specific exceptions.

Exception Hierarchy:
    PaymentError (base for the payment domain)
    └── PaymentNotFoundError - No Payment for an order

    GatewayError - PayHere API call failed (inherits ExternalServiceError)
    LockAcquisitionError - Distributed lock timeout (inherits ConflictError)

Usage:
    from payments.exceptions import GatewayError, LockAcquisitionError

    try:
        PayHereAdapter.request_refund(payment.payment_id, amount, reason)
    except GatewayError as e:
        payment.refund_error = e.message

Note:
    Webhook problems (bad signature, unknown order) are not exceptions:
    they are ignorable outcomes reported by the processor.
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError, ConflictError, ExternalServiceError


class PaymentError(BaseApplicationError):
    default_error_code: str = "PAYMENT_ERROR"


class PaymentNotFoundError(PaymentError):
    default_error_code: str = "PAYMENT_NOT_FOUND"


class GatewayError(ExternalServiceError):
    """
    Raised when the payment gateway API fails or rejects a request.

    Attributes:
        details: status_code and the gateway's response body when available
    """

    default_error_code: str = "GATEWAY_ERROR"


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired.

    Another process holds the lock and it was not released within the
    timeout. Inherits ConflictError (HTTP 409) because it is resource
    contention, not a client mistake.
    """

    default_error_code: str = "LOCK_NOT_ACQUIRED"
