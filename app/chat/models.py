"""
Chat models.

Models:
    ChatRoom: Conversation between an order item's customer and its vendor

Rooms are provisioned after payment confirmation, one per order item, and
are never deleted; closing a room only flips is_active.
"""

from __future__ import annotations

from django.conf import settings
from django.db import models

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class ChatRoom(UUIDPrimaryKeyMixin, BaseModel):
    order_item = models.OneToOneField(
        "orders.OrderItem",
        on_delete=models.CASCADE,
        related_name="chat_room",
    )
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_rooms",
    )
    vendor = models.ForeignKey(
        "authentication.Vendor",
        on_delete=models.CASCADE,
        related_name="chat_rooms",
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        db_table = "chat_room"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["customer", "is_active"], name="chat_room_customer_idx"),
            models.Index(fields=["vendor", "is_active"], name="chat_room_vendor_idx"),
        ]

    def __str__(self) -> str:
        return f"Chat for item {self.order_item_id}"
