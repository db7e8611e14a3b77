"""
Delivery orchestrator.

DeliveryService.mark_delivered is the only code path that releases escrowed
funds. It is reached from three triggers:

    customer  - OrderStatusService.confirm_delivery on a SHIPPED order
    admin     - admin mark-delivered endpoint and admin override to DELIVERED
    tracking  - orders.tasks.poll_carrier_tracking

Flow (one bounded transaction):
    1. Lock the order row
    2. Already delivered (delivery_confirmed_at set) -> success, no mutation
    3. Status must be exactly SHIPPED
    4. Order and items -> DELIVERED, stamp delivery_confirmed_at
    5. History row naming the trigger
    6. FundMovementService.release_order (pending -> available per vendor)
    7. Customer notification after commit (best-effort)
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.money import ZERO, format_money
from core.services import BaseService, ServiceResult
from notifications.models import NotificationType
from notifications.services import NotificationService
from orders.models import Order
from orders.services.history import record_history
from orders.states import (
    DELIVERED_STATUSES,
    DELIVERY_TRIGGER_ACTORS,
    DELIVERY_TRIGGER_NOTES,
    DeliveryTrigger,
    ItemStatus,
    OrderStatus,
)
from wallets.services import FundMovementService

if TYPE_CHECKING:
    from authentication.models import User
    from wallets.services import FundMovement


@dataclass
class DeliveryOutcome:
    order: Order
    already_delivered: bool = False
    released: list[FundMovement] = field(default_factory=list)
    message: str = ""


class DeliveryService(BaseService):
    """Single choke-point for "mark delivered, then release funds"."""

    @classmethod
    def mark_delivered(
        cls,
        order_id,
        trigger: str,
        actor: User | None = None,
        note: str = "",
    ) -> ServiceResult[DeliveryOutcome]:
        """
        Mark a SHIPPED order delivered and release its escrow.

        Idempotent: a second call (including a concurrent one, which waits
        on the row lock) sees delivery_confirmed_at and returns success with
        already_delivered=True without touching any wallet.

        Args:
            order_id: Order primary key
            trigger: DeliveryTrigger value (customer, admin, tracking)
            actor: Acting user, None for the tracking trigger
            note: Extra text appended to the history note

        Error codes:
            ORDER_NOT_FOUND: No such order
            INVALID_TRIGGER: Unknown trigger value
            INVALID_TRANSITION: Order is not SHIPPED

        Raises:
            DoubleReleaseError / NegativeBalanceError: Ledger invariant
                breached; the whole transaction is rolled back
        """
        logger = cls.get_logger()
        if trigger not in DeliveryTrigger.values:
            return ServiceResult.failure(
                f"Unknown delivery trigger '{trigger}'",
                error_code="INVALID_TRIGGER",
            )

        with cls.atomic(bounded=True):
            order = Order.objects.select_for_update().filter(pk=order_id).first()
            if order is None:
                return ServiceResult.failure("Order not found", error_code="ORDER_NOT_FOUND")

            if order.delivery_confirmed_at is not None or order.status in DELIVERED_STATUSES:
                logger.info(
                    "Order already delivered, skipping release",
                    extra={
                        "order_id": str(order.id),
                        "order_number": order.order_number,
                        "trigger": trigger,
                    },
                )
                return ServiceResult.success(
                    DeliveryOutcome(
                        order=order,
                        already_delivered=True,
                        message="Order already delivered",
                    )
                )

            if order.status != OrderStatus.SHIPPED:
                return ServiceResult.failure(
                    "Order must be in SHIPPED status to mark as delivered "
                    f"(current: {order.status})",
                    error_code="INVALID_TRANSITION",
                )

            now = timezone.now()
            previous_status = order.status
            order.status = OrderStatus.DELIVERED
            order.delivery_confirmed_at = now
            order.save(update_fields=["status", "delivery_confirmed_at", "updated_at"])

            order.items.exclude(status=ItemStatus.CANCELLED).update(
                status=ItemStatus.DELIVERED,
                delivered_at=now,
                updated_at=now,
            )

            history_note = DELIVERY_TRIGGER_NOTES[trigger]
            if note:
                history_note = f"{history_note}: {note}"
            record_history(
                order,
                OrderStatus.DELIVERED,
                note=history_note,
                actor_role=DELIVERY_TRIGGER_ACTORS[trigger],
                actor=actor,
                previous_status=previous_status,
                metadata={"trigger": trigger},
            )

            released = FundMovementService.release_order(order)
            cls._notify_customer_on_commit(order)

        logger.info(
            "Order marked delivered",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "trigger": trigger,
                "released": format_money(sum((m.amount for m in released), ZERO)),
            },
        )
        return ServiceResult.success(
            DeliveryOutcome(order=order, released=released, message="Order marked as delivered")
        )

    @staticmethod
    def _notify_customer_on_commit(order: Order) -> None:
        transaction.on_commit(
            lambda: NotificationService.notify_best_effort(
                recipient=order.customer,
                notification_type=NotificationType.ORDER_DELIVERED,
                title="Order delivered",
                message=f"Your order {order.order_number} has been delivered.",
                link=f"{settings.FRONTEND_URL}/orders/{order.id}",
                metadata={"order_id": str(order.id), "order_number": order.order_number},
            )
        )
