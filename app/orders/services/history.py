"""Status history writer shared by every order flow."""

from __future__ import annotations

from typing import TYPE_CHECKING

from orders.models import OrderStatusHistory
from orders.states import ActorRole

if TYPE_CHECKING:
    from authentication.models import User
    from orders.models import Order, OrderItem


def record_history(
    order: Order,
    status: str,
    note: str = "",
    actor_role: str = ActorRole.SYSTEM,
    actor: User | None = None,
    previous_status: str = "",
    order_item: OrderItem | None = None,
    metadata: dict | None = None,
) -> OrderStatusHistory:
    return OrderStatusHistory.objects.create(
        order=order,
        order_item=order_item,
        previous_status=previous_status,
        status=status,
        note=note,
        actor_role=actor_role,
        actor=actor,
        metadata=metadata or {},
    )
