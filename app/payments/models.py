"""
Payment model.

One Payment per Order, created or updated by the gateway webhook
processor. Payment.status is the gateway's view of the money; Order.status
remains the single source of truth for the order lifecycle.

Terminal statuses (COMPLETED, FAILED, CANCELLED, CHARGEDBACK, REFUNDED)
make later notifications for the same order no-ops.
"""

from __future__ import annotations

from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from core.money import MoneyField


class PaymentStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    COMPLETED = "COMPLETED", "Completed"
    FAILED = "FAILED", "Failed"
    CANCELLED = "CANCELLED", "Cancelled"
    CHARGEDBACK = "CHARGEDBACK", "Charged back"
    REFUNDED = "REFUNDED", "Refunded"
    PARTIALLY_REFUNDED = "PARTIALLY_REFUNDED", "Partially refunded"


TERMINAL_PAYMENT_STATUSES = frozenset(
    [
        PaymentStatus.COMPLETED,
        PaymentStatus.FAILED,
        PaymentStatus.CANCELLED,
        PaymentStatus.CHARGEDBACK,
        PaymentStatus.REFUNDED,
        PaymentStatus.PARTIALLY_REFUNDED,
    ]
)

# Captured funds the card issuer can still claw back
CHARGEBACK_ELIGIBLE_STATUSES = frozenset(
    [
        PaymentStatus.COMPLETED,
        PaymentStatus.PARTIALLY_REFUNDED,
    ]
)


class Payment(UUIDPrimaryKeyMixin, BaseModel):
    """
    Gateway payment record for an order.

    Fields:
        order: The paid order (1:1)
        payment_id: Gateway-assigned payment id
        status: PaymentStatus
        amount / currency: As reported by the gateway
        method: Card / wallet type reported by the gateway
        paid_at: Set when the payment completes
        raw_payload: Full notification body, kept for forensic replay
        signature_hash: md5sig of the notification that set the status
        refunded_amount: Total returned to the customer so far
        refund_error: Last gateway refund failure, for manual follow-up
    """

    order = models.OneToOneField(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="payment",
    )
    payment_id = models.CharField(max_length=64, blank=True, default="", db_index=True)
    status = models.CharField(
        max_length=20,
        choices=PaymentStatus.choices,
        default=PaymentStatus.PENDING,
        db_index=True,
    )
    amount = MoneyField()
    currency = models.CharField(max_length=3, default="LKR")
    method = models.CharField(max_length=30, blank=True, default="")
    status_message = models.CharField(max_length=255, blank=True, default="")
    paid_at = models.DateTimeField(null=True, blank=True)
    raw_payload = models.JSONField(default=dict, blank=True)
    signature_hash = models.CharField(max_length=64, blank=True, default="")

    refunded_amount = MoneyField()
    refunded_at = models.DateTimeField(null=True, blank=True)
    refund_error = models.TextField(blank=True, default="")

    class Meta:
        ordering = ["-created_at"]

    def __str__(self) -> str:
        return f"Payment {self.payment_id or '-'} ({self.status})"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_PAYMENT_STATUSES

    def accepts_status(self, status: str) -> bool:
        """
        Whether a gateway notification may move the payment to status.

        Terminal payments ignore repeats, except that a captured payment
        can still be charged back.
        """
        if not self.is_terminal:
            return True
        return status == PaymentStatus.CHARGEDBACK and self.status in CHARGEBACK_ELIGIBLE_STATUSES
