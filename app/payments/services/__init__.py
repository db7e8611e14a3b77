"""
Payment services.

- CheckoutService: Gateway form fields for a pending order
- RefundService: Gateway refunds for cancellations and disputes

Usage:
    from payments.services import RefundService

    RefundService.execute_dispute_refund(dispute.id)
"""

from payments.services.checkout_service import CheckoutService
from payments.services.refund_service import (
    REFUND_LOCK_TIMEOUT,
    REFUND_LOCK_TTL,
    DisputeRefundResult,
    RefundService,
)

__all__ = [
    "CheckoutService",
    "DisputeRefundResult",
    "REFUND_LOCK_TIMEOUT",
    "REFUND_LOCK_TTL",
    "RefundService",
]
