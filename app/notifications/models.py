"""
Notification model.

- NotificationType: Kinds of marketplace events users are told about
- Notification: One message to one recipient, with a link and metadata

Usage:
    from notifications.services import NotificationService

    NotificationService.notify(
        recipient=order.customer,
        notification_type=NotificationType.PAYMENT_CONFIRMED,
        title="Payment confirmed",
        message=f"Payment for order {order.order_number} was received.",
        link=f"{settings.FRONTEND_URL}/orders/{order.id}",
        metadata={"order_id": str(order.id)},
    )
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.models import BaseModel


class NotificationType(models.TextChoices):
    ORDER_PLACED = "ORDER_PLACED", "Order placed"
    NEW_ORDER = "NEW_ORDER", "New order (vendor)"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED", "Payment confirmed"
    PAYMENT_FAILED = "PAYMENT_FAILED", "Payment failed"
    ORDER_STATUS_CHANGED = "ORDER_STATUS_CHANGED", "Order status changed"
    ORDER_DELIVERED = "ORDER_DELIVERED", "Order delivered"
    ORDER_CANCELLED = "ORDER_CANCELLED", "Order cancelled"
    RETURN_REQUESTED = "RETURN_REQUESTED", "Return requested"
    DISPUTE_OPENED = "DISPUTE_OPENED", "Dispute opened"
    DISPUTE_COMMENT = "DISPUTE_COMMENT", "Dispute comment"
    DISPUTE_RESOLVED = "DISPUTE_RESOLVED", "Dispute resolved"
    REFUND_PROCESSED = "REFUND_PROCESSED", "Refund processed"
    PAYOUT_UPDATE = "PAYOUT_UPDATE", "Payout update"


class Notification(BaseModel):
    """
    A notification delivered to a single user.

    Fields:
        recipient: User receiving the notification
        type: NotificationType value
        title / message: Display text
        link: Absolute frontend URL the notification opens
        metadata: Identifiers of the source objects (order id, dispute id)
        is_read / read_at: Inbox state
    """

    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="notifications",
    )
    type = models.CharField(max_length=30, choices=NotificationType.choices, db_index=True)
    title = models.CharField(max_length=200)
    message = models.TextField(blank=True, default="")
    link = models.CharField(max_length=500, blank=True, default="")
    metadata = models.JSONField(default=dict, blank=True)
    is_read = models.BooleanField(default=False, db_index=True)
    read_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["recipient", "is_read", "-created_at"], name="notification_inbox_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.type} -> {self.recipient_id}: {self.title}"
