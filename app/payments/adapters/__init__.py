"""
Payment gateway adapters.

All external payment API calls go through these adapters so timeouts,
error mapping and logging are handled in one place.

Usage:
    from payments.adapters import PayHereAdapter

    fields = PayHereAdapter.checkout_fields(order, notify_url)
"""

from payments.adapters.payhere import (
    REQUIRED_NOTIFICATION_FIELDS,
    PayHereAdapter,
    RefundResult,
)

__all__ = [
    "REQUIRED_NOTIFICATION_FIELDS",
    "PayHereAdapter",
    "RefundResult",
]
