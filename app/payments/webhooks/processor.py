"""
PayHere payment notification processor.

Flow:
    1. Required fields present
    2. md5sig verified (constant time); failure logged as possible forgery
    3. merchant_id matches ours
    4. Order found by order_number
    5. Amount and currency match the order
    6. One bounded transaction:
         lock the order, then the Payment; a terminal Payment means a
         redelivery and nothing changes
         upsert the Payment with the mapped status
         COMPLETED         -> order/items PAYMENT_CONFIRMED, credit-to-pending;
                              for an already cancelled order the Payment
                              is marked REFUNDED and the gateway refund
                              is sent after commit
         FAILED/CANCELLED  -> order/items CANCELLED
         CHARGEDBACK       -> status recorded, alert logged
    7. After commit, best-effort: chat rooms and notifications

Every step returns a WebhookOutcome; nothing raises to the view, which
always acknowledges with 200.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from chat.services import ChatRoomService
from core.money import format_money, to_money
from core.services import BaseService
from notifications.models import NotificationType
from notifications.services import NotificationService
from orders.models import Order
from orders.services.status_service import OrderStatusService
from orders.states import OrderStatus
from payments.adapters import REQUIRED_NOTIFICATION_FIELDS, PayHereAdapter
from payments.models import Payment, PaymentStatus
from payments.services.refund_service import RefundService
from wallets.services import FundMovementService

if TYPE_CHECKING:
    from collections.abc import Mapping

logger = logging.getLogger(__name__)


class WebhookResult:
    PROCESSED = "processed"
    MISSING_FIELDS = "missing_fields"
    INVALID_SIGNATURE = "invalid_signature"
    UNKNOWN_MERCHANT = "unknown_merchant"
    UNKNOWN_ORDER = "unknown_order"
    AMOUNT_MISMATCH = "amount_mismatch"
    CURRENCY_MISMATCH = "currency_mismatch"
    DUPLICATE = "duplicate"
    ERROR = "error"


@dataclass(frozen=True)
class WebhookOutcome:
    result: str
    order_id: str = ""
    payment_status: str = ""

    @property
    def processed(self) -> bool:
        return self.result == WebhookResult.PROCESSED


OPTIONAL_FIELDS = ("method", "status_message", "card_holder_name", "card_no", "custom_1", "custom_2")


class PayHereWebhookProcessor(BaseService):

    @classmethod
    def process(cls, payload: Mapping[str, str]) -> WebhookOutcome:
        """Validate and apply one notification. Never raises."""
        payload = {key: str(value) for key, value in payload.items()}

        missing = [name for name in REQUIRED_NOTIFICATION_FIELDS if not payload.get(name)]
        if missing:
            logger.warning("Webhook missing required fields", extra={"missing": missing})
            return WebhookOutcome(WebhookResult.MISSING_FIELDS)

        order_number = payload["order_id"]
        if not PayHereAdapter.verify_notification(payload):
            logger.warning(
                "Invalid webhook signature, possible forgery attempt",
                extra={"order_number": order_number, "payment_id": payload["payment_id"]},
            )
            return WebhookOutcome(WebhookResult.INVALID_SIGNATURE)

        if payload["merchant_id"] != settings.PAYHERE_MERCHANT_ID:
            logger.warning(
                "Webhook for unknown merchant",
                extra={"merchant_id": payload["merchant_id"], "order_number": order_number},
            )
            return WebhookOutcome(WebhookResult.UNKNOWN_MERCHANT)

        order = Order.objects.filter(order_number=order_number).first()
        if order is None:
            logger.warning("Webhook for unknown order", extra={"order_number": order_number})
            return WebhookOutcome(WebhookResult.UNKNOWN_ORDER)

        try:
            amount = to_money(payload["payhere_amount"])
        except ValueError:
            amount = None
        if amount != order.total:
            logger.error(
                "Webhook amount does not match order total",
                extra={
                    "order_number": order_number,
                    "received": payload["payhere_amount"],
                    "expected": format_money(order.total),
                },
            )
            return WebhookOutcome(WebhookResult.AMOUNT_MISMATCH, order_id=str(order.id))

        if payload["payhere_currency"] != settings.PAYHERE_CURRENCY:
            logger.error(
                "Webhook currency does not match",
                extra={"order_number": order_number, "currency": payload["payhere_currency"]},
            )
            return WebhookOutcome(WebhookResult.CURRENCY_MISMATCH, order_id=str(order.id))

        try:
            return cls._apply(order.pk, payload, amount)
        except Exception:
            logger.exception(
                "Webhook processing failed",
                extra={"order_number": order_number, "payment_id": payload["payment_id"]},
            )
            return WebhookOutcome(WebhookResult.ERROR, order_id=str(order.id))

    @classmethod
    def _apply(cls, order_pk, payload: dict[str, str], amount) -> WebhookOutcome:
        status, status_message = PayHereAdapter.map_status(payload["status_code"])

        with cls.atomic(bounded=True):
            order = Order.objects.select_for_update().get(pk=order_pk)
            payment = Payment.objects.select_for_update().filter(order=order).first()

            if payment is not None and not payment.accepts_status(status):
                logger.info(
                    "Payment already in terminal status, duplicate webhook",
                    extra={
                        "order_number": order.order_number,
                        "payment_status": payment.status,
                        "payment_id": payload["payment_id"],
                    },
                )
                return WebhookOutcome(
                    WebhookResult.DUPLICATE,
                    order_id=str(order.id),
                    payment_status=payment.status,
                )

            if payment is None:
                payment = Payment(order=order, amount=amount)

            payment.payment_id = payload["payment_id"]
            payment.status = status
            payment.amount = amount
            payment.currency = payload["payhere_currency"]
            payment.method = payload.get("method", "")
            payment.status_message = payload.get("status_message") or status_message
            payment.signature_hash = payload["md5sig"]
            payment.raw_payload = {
                name: payload[name]
                for name in (*REQUIRED_NOTIFICATION_FIELDS, *OPTIONAL_FIELDS)
                if name in payload and name != "card_no"
            }
            if status == PaymentStatus.COMPLETED:
                payment.paid_at = timezone.now()
            payment.save()

            if status == PaymentStatus.COMPLETED:
                cls._confirm(order, payment)
            elif status in (PaymentStatus.FAILED, PaymentStatus.CANCELLED):
                cls._fail(order, status_message)
            elif status == PaymentStatus.CHARGEDBACK:
                logger.critical(
                    "Chargeback received, manual review required",
                    extra={
                        "order_id": str(order.id),
                        "order_number": order.order_number,
                        "payment_id": payment.payment_id,
                        "amount": format_money(amount),
                    },
                )

        logger.info(
            "Webhook processed",
            extra={
                "order_number": order.order_number,
                "payment_id": payment.payment_id,
                "payment_status": status,
            },
        )
        return WebhookOutcome(WebhookResult.PROCESSED, order_id=str(order.id), payment_status=status)

    @classmethod
    def _confirm(cls, order: Order, payment: Payment) -> None:
        if order.status == OrderStatus.CANCELLED:
            cls._refund_late_capture(order, payment)
            return
        if order.status != OrderStatus.PENDING_PAYMENT:
            logger.error(
                "Payment completed for an order not awaiting payment",
                extra={
                    "order_number": order.order_number,
                    "status": order.status,
                    "payment_id": payment.payment_id,
                },
            )
            return

        OrderStatusService.apply_payment_confirmed(order)
        FundMovementService.credit_order(order)
        transaction.on_commit(lambda: cls._after_confirmation(order))

    @staticmethod
    def _refund_late_capture(order: Order, payment: Payment) -> None:
        """
        Money captured for an order the customer already cancelled.

        No vendor was credited, so only the customer is owed. The Payment is
        marked REFUNDED here and the gateway refund follows the commit; a
        gateway failure lands on Payment.refund_error.
        """
        payment.status = PaymentStatus.REFUNDED
        payment.refunded_amount = payment.amount
        payment.refunded_at = timezone.now()
        payment.save(update_fields=["status", "refunded_amount", "refunded_at", "updated_at"])

        logger.error(
            "Payment captured for a cancelled order, refunding",
            extra={
                "order_id": str(order.id),
                "order_number": order.order_number,
                "payment_id": payment.payment_id,
                "amount": format_money(payment.amount),
            },
        )
        payment_pk, amount = payment.pk, payment.amount
        transaction.on_commit(
            lambda: RefundService.refund_cancelled_order(
                payment_pk, amount, "Payment received after the order was cancelled"
            )
        )

    @classmethod
    def _fail(cls, order: Order, status_message: str) -> None:
        if order.status != OrderStatus.PENDING_PAYMENT:
            return

        OrderStatusService.apply_payment_failed(order, note=status_message)
        transaction.on_commit(
            lambda: NotificationService.notify_best_effort(
                recipient=order.customer,
                notification_type=NotificationType.PAYMENT_FAILED,
                title="Payment failed",
                message=f"Payment for order {order.order_number} did not go through.",
                link=f"{settings.FRONTEND_URL}/orders/{order.id}",
                metadata={"order_id": str(order.id), "order_number": order.order_number},
            )
        )

    @staticmethod
    def _after_confirmation(order: Order) -> None:
        """Post-commit side effects; each one logs its own failure."""
        ChatRoomService.provision_best_effort(order)

        metadata = {"order_id": str(order.id), "order_number": order.order_number}
        NotificationService.notify_best_effort(
            recipient=order.customer,
            notification_type=NotificationType.PAYMENT_CONFIRMED,
            title="Payment confirmed",
            message=f"Payment for order {order.order_number} was received.",
            link=f"{settings.FRONTEND_URL}/orders/{order.id}",
            metadata=metadata,
        )

        vendor_users = {
            item.vendor.user_id: item.vendor.user
            for item in order.items.select_related("vendor__user")
        }
        for user in vendor_users.values():
            NotificationService.notify_best_effort(
                recipient=user,
                notification_type=NotificationType.NEW_ORDER,
                title="New order",
                message=f"You have a new paid order {order.order_number}.",
                metadata=metadata,
            )
