"""
Order status service.

Applies validated status transitions for every actor:

    Customer  cancel, confirm delivery, request return
    Vendor    advance own items (PROCESSING, SHIPPED), then recompute
    Admin     override with an ADMIN audit row
    System    payment confirmation and payment failure (webhook)

Rules live in orders.transitions; this module locks rows, applies the
decision, writes history and moves money through FundMovementService.
Delivery always goes through DeliveryService.mark_delivered.

Lock order (every flow): order row, then item or payment rows, then
wallets inside FundMovementService.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.money import format_money
from core.services import BaseService, ServiceResult
from disputes.models import ACTIVE_DISPUTE_STATUSES
from notifications.models import NotificationType
from notifications.services import NotificationService
from orders.models import Order, OrderItem
from orders.services.delivery import DeliveryService
from orders.services.history import record_history
from orders.states import (
    DERIVABLE_STATUSES,
    FULFILLMENT_SEQUENCE,
    ActorRole,
    DeliveryTrigger,
    ItemStatus,
    OrderStatus,
)
from orders.transitions import available_actions, derive_order_status, validate_status_transition
from payments.models import Payment, PaymentStatus
from wallets.services import FundMovementService

if TYPE_CHECKING:
    from authentication.models import User, Vendor


class OrderStatusService(BaseService):

    # =========================================================================
    # Helpers
    # =========================================================================

    @staticmethod
    def _lock_order(order_id) -> Order | None:
        return Order.objects.select_for_update().filter(pk=order_id).first()

    @staticmethod
    def _not_owner() -> ServiceResult:
        return ServiceResult.failure(
            "You can only manage your own orders",
            error_code="NOT_ORDER_OWNER",
        )

    @staticmethod
    def _notify_customer_on_commit(order: Order, notification_type: str, title: str, message: str) -> None:
        transaction.on_commit(
            lambda: NotificationService.notify_best_effort(
                recipient=order.customer,
                notification_type=notification_type,
                title=title,
                message=message,
                link=f"{settings.FRONTEND_URL}/orders/{order.id}",
                metadata={
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "status": order.status,
                },
            )
        )

    @classmethod
    def _cancel_locked(
        cls,
        order: Order,
        reason: str,
        note: str,
        actor_role: str,
        actor: User | None = None,
    ) -> Order:
        """
        Cancel a locked order and reverse its escrow if it was paid.

        Vendor credits come back out of pending in this transaction and the
        Payment is marked REFUNDED; the gateway request follows the commit.
        """
        now = timezone.now()
        previous_status = order.status

        order.status = OrderStatus.CANCELLED
        order.cancelled_at = now
        order.cancel_reason = reason
        order.save(update_fields=["status", "cancelled_at", "cancel_reason", "updated_at"])
        order.items.update(status=ItemStatus.CANCELLED, updated_at=now)

        record_history(
            order,
            OrderStatus.CANCELLED,
            note=note,
            actor_role=actor_role,
            actor=actor,
            previous_status=previous_status,
        )

        payment = (
            Payment.objects.select_for_update()
            .filter(order=order, status=PaymentStatus.COMPLETED)
            .first()
        )
        if payment is not None:
            FundMovementService.refund_order(order, reason=reason)
            payment.status = PaymentStatus.REFUNDED
            payment.refunded_amount = payment.amount
            payment.refunded_at = now
            payment.save(update_fields=["status", "refunded_amount", "refunded_at", "updated_at"])

            # Imported here: the refund service imports order helpers
            from payments.services.refund_service import RefundService

            payment_pk, amount = payment.pk, payment.amount
            transaction.on_commit(
                lambda: RefundService.refund_cancelled_order(payment_pk, amount, reason)
            )
            cls.get_logger().info(
                "Paid order cancelled, escrow reversed",
                extra={
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "amount": format_money(amount),
                },
            )

        cls._notify_customer_on_commit(
            order,
            NotificationType.ORDER_CANCELLED,
            "Order cancelled",
            f"Your order {order.order_number} has been cancelled.",
        )
        return order

    # =========================================================================
    # Payment outcomes (called by the webhook processor under its lock)
    # =========================================================================

    @classmethod
    def apply_payment_confirmed(cls, order: Order, note: str = "Payment confirmed") -> Order:
        """PENDING_PAYMENT -> PAYMENT_CONFIRMED for the order and its items."""
        previous_status = order.status
        order.status = OrderStatus.PAYMENT_CONFIRMED
        order.save(update_fields=["status", "updated_at"])
        order.items.filter(status=ItemStatus.PENDING_PAYMENT).update(
            status=ItemStatus.PAYMENT_CONFIRMED,
            updated_at=timezone.now(),
        )
        record_history(
            order,
            OrderStatus.PAYMENT_CONFIRMED,
            note=note,
            actor_role=ActorRole.SYSTEM,
            previous_status=previous_status,
        )
        return order

    @classmethod
    def apply_payment_failed(cls, order: Order, note: str) -> Order:
        """Unpaid order -> CANCELLED after a failed or cancelled payment."""
        now = timezone.now()
        previous_status = order.status
        order.status = OrderStatus.CANCELLED
        order.cancelled_at = now
        order.cancel_reason = note
        order.save(update_fields=["status", "cancelled_at", "cancel_reason", "updated_at"])
        order.items.update(status=ItemStatus.CANCELLED, updated_at=now)
        record_history(
            order,
            OrderStatus.CANCELLED,
            note=note,
            actor_role=ActorRole.SYSTEM,
            previous_status=previous_status,
        )
        return order

    # =========================================================================
    # Customer transitions
    # =========================================================================

    @classmethod
    def cancel_order(cls, order_id, customer: User, reason: str) -> ServiceResult[Order]:
        """
        Customer cancellation.

        Error codes:
            ORDER_NOT_FOUND, NOT_ORDER_OWNER
            INVALID_TRANSITION: Order already past PAYMENT_CONFIRMED
            CANCELLATION_WINDOW_EXPIRED: More than 24 h since creation
        """
        with cls.atomic(bounded=True):
            order = cls._lock_order(order_id)
            if order is None:
                return ServiceResult.failure("Order not found", error_code="ORDER_NOT_FOUND")
            if order.customer_id != customer.pk:
                return cls._not_owner()

            decision = validate_status_transition(
                order.status,
                OrderStatus.CANCELLED,
                ActorRole.CUSTOMER,
                order.created_at,
                order.delivery_confirmed_at,
            )
            if not decision:
                return ServiceResult.failure(decision.reason, error_code=decision.error_code)

            cls._cancel_locked(
                order,
                reason=reason,
                note=f"Order cancelled by customer: {reason}",
                actor_role=ActorRole.CUSTOMER,
                actor=customer,
            )

        cls.get_logger().info(
            "Order cancelled by customer",
            extra={"order_id": str(order.id), "order_number": order.order_number},
        )
        return ServiceResult.success(order)

    @classmethod
    def confirm_delivery(cls, order_id, customer: User) -> ServiceResult[Order]:
        """
        Customer delivery confirmation.

        SHIPPED orders are handed to DeliveryService (trigger=customer),
        which releases escrow. DELIVERED orders move to DELIVERY_CONFIRMED;
        the money already moved when they became DELIVERED.
        """
        order = Order.objects.filter(pk=order_id).first()
        if order is None:
            return ServiceResult.failure("Order not found", error_code="ORDER_NOT_FOUND")
        if order.customer_id != customer.pk:
            return cls._not_owner()

        if order.status == OrderStatus.SHIPPED:
            return DeliveryService.mark_delivered(
                order.pk, DeliveryTrigger.CUSTOMER, actor=customer
            ).map(lambda outcome: outcome.order)

        with cls.atomic(bounded=True):
            order = cls._lock_order(order_id)
            decision = validate_status_transition(
                order.status,
                OrderStatus.DELIVERY_CONFIRMED,
                ActorRole.CUSTOMER,
                order.created_at,
                order.delivery_confirmed_at,
            )
            if not decision:
                return ServiceResult.failure(decision.reason, error_code=decision.error_code)

            previous_status = order.status
            order.status = OrderStatus.DELIVERY_CONFIRMED
            if order.delivery_confirmed_at is None:
                order.delivery_confirmed_at = timezone.now()
            order.save(update_fields=["status", "delivery_confirmed_at", "updated_at"])
            record_history(
                order,
                OrderStatus.DELIVERY_CONFIRMED,
                note="Customer confirmed delivery",
                actor_role=ActorRole.CUSTOMER,
                actor=customer,
                previous_status=previous_status,
            )

        return ServiceResult.success(order)

    @classmethod
    def request_return(
        cls,
        order_id,
        customer: User,
        reason: str,
        description: str = "",
    ) -> ServiceResult[Order]:
        """
        Customer return request.

        Error codes:
            ORDER_NOT_FOUND, NOT_ORDER_OWNER, INVALID_TRANSITION
            RETURN_WINDOW_EXPIRED: More than 24 h since delivery confirmation
        """
        with cls.atomic(bounded=True):
            order = cls._lock_order(order_id)
            if order is None:
                return ServiceResult.failure("Order not found", error_code="ORDER_NOT_FOUND")
            if order.customer_id != customer.pk:
                return cls._not_owner()

            decision = validate_status_transition(
                order.status,
                OrderStatus.RETURN_REQUESTED,
                ActorRole.CUSTOMER,
                order.created_at,
                order.delivery_confirmed_at,
            )
            if not decision:
                return ServiceResult.failure(decision.reason, error_code=decision.error_code)

            previous_status = order.status
            order.status = OrderStatus.RETURN_REQUESTED
            order.return_reason = reason
            order.return_description = description
            order.return_requested_at = timezone.now()
            order.save(
                update_fields=[
                    "status",
                    "return_reason",
                    "return_description",
                    "return_requested_at",
                    "updated_at",
                ]
            )
            record_history(
                order,
                OrderStatus.RETURN_REQUESTED,
                note=f"Return requested: {reason}",
                actor_role=ActorRole.CUSTOMER,
                actor=customer,
                previous_status=previous_status,
            )

            vendor_users = {
                item.vendor.user_id: item.vendor.user
                for item in order.items.select_related("vendor__user")
            }

            def notify_vendors():
                for user in vendor_users.values():
                    NotificationService.notify_best_effort(
                        recipient=user,
                        notification_type=NotificationType.RETURN_REQUESTED,
                        title="Return requested",
                        message=f"A return was requested for order {order.order_number}.",
                        metadata={"order_id": str(order.id), "order_number": order.order_number},
                    )

            transaction.on_commit(notify_vendors)

        return ServiceResult.success(order)

    @classmethod
    def transition_order(
        cls,
        order_id,
        customer: User,
        status: str,
        reason: str = "",
        description: str = "",
    ) -> ServiceResult[Order]:
        """Generic customer status endpoint; dispatches to the specific flow."""
        if status == OrderStatus.CANCELLED:
            return cls.cancel_order(order_id, customer, reason)
        if status == OrderStatus.DELIVERY_CONFIRMED:
            return cls.confirm_delivery(order_id, customer)
        if status == OrderStatus.RETURN_REQUESTED:
            return cls.request_return(order_id, customer, reason, description)
        if status == OrderStatus.DISPUTED:
            return ServiceResult.failure(
                "Open a dispute to dispute an order",
                error_code="INVALID_TRANSITION",
            )
        return ServiceResult.failure(
            "Invalid status transition for customer",
            error_code="INVALID_TRANSITION",
        )

    # =========================================================================
    # Vendor transitions
    # =========================================================================

    @classmethod
    def update_item_status(
        cls,
        item_id,
        vendor: Vendor,
        status: str,
        tracking_number: str = "",
        tracking_url: str = "",
        carrier_slug: str = "",
        note: str = "",
    ) -> ServiceResult[OrderItem]:
        """
        Vendor moves one of their items forward, then the order is recomputed.

        Error codes:
            ORDER_ITEM_NOT_FOUND: No such item
            NOT_ITEM_OWNER: Item belongs to another vendor
            INVALID_TRANSITION: Not PAYMENT_CONFIRMED -> PROCESSING or
                PROCESSING -> SHIPPED
            TRACKING_REQUIRED: SHIPPED without a tracking number
        """
        item = OrderItem.objects.filter(pk=item_id).only("id", "order_id").first()
        if item is None:
            return ServiceResult.failure("Order item not found", error_code="ORDER_ITEM_NOT_FOUND")

        with cls.atomic(bounded=True):
            order = cls._lock_order(item.order_id)
            item = OrderItem.objects.select_for_update().get(pk=item.pk)

            if item.vendor_id != vendor.pk:
                return ServiceResult.failure(
                    "You can only update your own order items",
                    error_code="NOT_ITEM_OWNER",
                )

            decision = validate_status_transition(
                item.status,
                status,
                ActorRole.VENDOR,
                order.created_at,
            )
            if not decision:
                return ServiceResult.failure(decision.reason, error_code=decision.error_code)

            if status == ItemStatus.SHIPPED and not tracking_number:
                return ServiceResult.failure(
                    "Tracking number is required when marking as shipped",
                    error_code="TRACKING_REQUIRED",
                )

            previous_status = item.status
            item.status = status
            update_fields = ["status", "updated_at"]
            if status == ItemStatus.SHIPPED:
                item.tracking_number = tracking_number
                item.tracking_url = tracking_url
                item.carrier_slug = carrier_slug
                item.shipped_at = timezone.now()
                update_fields += ["tracking_number", "tracking_url", "carrier_slug", "shipped_at"]
            item.save(update_fields=update_fields)

            record_history(
                order,
                status,
                note=note or f"{item.product_name} marked {status}",
                actor_role=ActorRole.VENDOR,
                actor=vendor.user,
                previous_status=previous_status,
                order_item=item,
            )
            cls.recompute_order_status(order)

        cls.get_logger().info(
            "Order item status updated",
            extra={
                "order_id": str(order.id),
                "item_id": str(item.id),
                "vendor_id": str(vendor.pk),
                "status": status,
            },
        )
        return ServiceResult.success(item)

    @classmethod
    def recompute_order_status(cls, order: Order) -> Order:
        """
        Re-derive the order status from its items (caller holds the lock).

        Idempotent: no write when the derived status equals the current
        one. Never moves the order backwards, out of a non-fulfillment
        status (DISPUTED, CANCELLED, ...) or into DELIVERED, which belongs
        to DeliveryService.
        """
        if order.status not in DERIVABLE_STATUSES:
            return order

        statuses = order.items.exclude(status=ItemStatus.CANCELLED).values_list("status", flat=True)
        derived = derive_order_status(statuses)
        if derived is None or derived == order.status or derived == OrderStatus.DELIVERED:
            return order
        if FULFILLMENT_SEQUENCE.index(derived) < FULFILLMENT_SEQUENCE.index(order.status):
            return order

        previous_status = order.status
        order.status = derived
        order.save(update_fields=["status", "updated_at"])
        record_history(
            order,
            derived,
            note="Order status updated based on item statuses",
            actor_role=ActorRole.SYSTEM,
            previous_status=previous_status,
        )
        cls._notify_customer_on_commit(
            order,
            NotificationType.ORDER_STATUS_CHANGED,
            "Order updated",
            f"Your order {order.order_number} is now {order.get_status_display()}.",
        )
        return order

    # =========================================================================
    # Admin transitions
    # =========================================================================

    @classmethod
    def admin_override(cls, order_id, admin: User, status: str, reason: str) -> ServiceResult[Order]:
        """
        Admin correction of an order status.

        DELIVERED goes through DeliveryService (trigger=admin). CANCELLED
        reverses escrow like a customer cancellation. DELIVERY_CONFIRMED is
        only reachable once the order has been delivered, since release
        happens on delivery.

        Error codes:
            ORDER_NOT_FOUND
            SAME_STATUS: Order is already in the target status
            INVALID_TRANSITION: Delivery steps skipped
        """
        order = Order.objects.filter(pk=order_id).first()
        if order is None:
            return ServiceResult.failure("Order not found", error_code="ORDER_NOT_FOUND")
        if order.status == status:
            return ServiceResult.failure("Order is already in this status", error_code="SAME_STATUS")

        if status == OrderStatus.DELIVERED:
            return DeliveryService.mark_delivered(
                order.pk, DeliveryTrigger.ADMIN, actor=admin, note=reason
            ).map(lambda outcome: outcome.order)

        with cls.atomic(bounded=True):
            order = cls._lock_order(order_id)
            if order.status == status:
                return ServiceResult.failure("Order is already in this status", error_code="SAME_STATUS")

            note = f"Admin override: {reason}"
            if status == OrderStatus.CANCELLED:
                cls._cancel_locked(order, reason=reason, note=note, actor_role=ActorRole.ADMIN, actor=admin)
            else:
                if status == OrderStatus.DELIVERY_CONFIRMED and order.delivery_confirmed_at is None:
                    return ServiceResult.failure(
                        "Order must be delivered before delivery can be confirmed",
                        error_code="INVALID_TRANSITION",
                    )

                previous_status = order.status
                order.status = status
                order.save(update_fields=["status", "updated_at"])
                if status in ItemStatus.values:
                    order.items.exclude(status=ItemStatus.CANCELLED).update(
                        status=status,
                        updated_at=timezone.now(),
                    )
                record_history(
                    order,
                    status,
                    note=note,
                    actor_role=ActorRole.ADMIN,
                    actor=admin,
                    previous_status=previous_status,
                )
                cls._notify_customer_on_commit(
                    order,
                    NotificationType.ORDER_STATUS_CHANGED,
                    "Order updated",
                    f"Your order {order.order_number} is now {order.get_status_display()}.",
                )

        cls.get_logger().warning(
            "Admin status override",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "status": status,
                "admin_id": str(admin.pk),
            },
        )
        return ServiceResult.success(order)

    # =========================================================================
    # Queries
    # =========================================================================

    @classmethod
    def get_available_actions(cls, order_id, customer: User) -> ServiceResult[dict]:
        order = Order.objects.filter(pk=order_id).first()
        if order is None:
            return ServiceResult.failure("Order not found", error_code="ORDER_NOT_FOUND")
        if order.customer_id != customer.pk:
            return cls._not_owner()

        has_open_dispute = order.disputes.filter(status__in=ACTIVE_DISPUTE_STATUSES).exists()
        actions = available_actions(
            order.status,
            order.created_at,
            order.delivery_confirmed_at,
            has_open_dispute=has_open_dispute,
        )
        return ServiceResult.success({"order_id": str(order.id), "status": order.status, **actions})
