"""
Chat service layer.

Services:
    ChatRoomService: Room provisioning for paid orders

Usage:
    from chat.services import ChatRoomService

    transaction.on_commit(lambda: ChatRoomService.provision_for_order(order))
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from chat.models import ChatRoom
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from orders.models import Order


class ChatRoomService(BaseService):

    @classmethod
    def provision_for_order(cls, order: Order) -> ServiceResult[list[ChatRoom]]:
        """
        Get-or-create one room per order item (customer <-> item vendor).

        Safe to call repeatedly; existing rooms are returned untouched.
        """
        rooms = []
        created_count = 0
        for item in order.items.select_related("vendor").order_by("created_at", "id"):
            room, created = ChatRoom.objects.get_or_create(
                order_item=item,
                defaults={"customer_id": order.customer_id, "vendor_id": item.vendor_id},
            )
            rooms.append(room)
            created_count += int(created)

        if created_count:
            cls.get_logger().info(
                "Chat rooms provisioned",
                extra={
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "rooms_created": created_count,
                },
            )
        return ServiceResult.success(rooms)

    @classmethod
    def provision_best_effort(cls, order: Order) -> None:
        """provision_for_order() that logs instead of raising."""
        try:
            cls.provision_for_order(order)
        except Exception:
            cls.get_logger().error(
                "Chat room provisioning failed",
                exc_info=True,
                extra={"order_id": str(order.id)},
            )
