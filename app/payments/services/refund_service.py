"""
Refund service: returning money to customers.

Two entry points, both run after the business transaction has committed
so no database lock is held across the gateway call:

    refund_cancelled_order  customer cancellation of a paid order; the
                            ledger reversal already happened in the
                            cancellation transaction, only the gateway
                            request is left
    execute_dispute_refund  customer-favor dispute resolution; gateway
                            request, then ledger reversal, serialized by a
                            Redis lock per order

Failures never raise to the caller. They are stored where an operator
will see them: Payment.refund_error for cancellations, a dispute comment
plus Dispute.refund_failed for disputes.

Usage:
    transaction.on_commit(
        lambda: RefundService.execute_dispute_refund(dispute.id)
    )
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from django.utils import timezone

from core.exceptions import BaseApplicationError
from core.money import ZERO, format_money, to_money
from core.services import BaseService, ServiceResult
from disputes.models import Dispute, DisputeComment, DisputeStatus
from notifications.models import NotificationType
from notifications.services import NotificationService
from orders.models import Order
from orders.services.history import record_history
from orders.states import ActorRole, OrderStatus
from payments.adapters import PayHereAdapter
from payments.exceptions import GatewayError, PaymentError
from payments.locks import DistributedLock
from payments.models import Payment, PaymentStatus
from wallets.services import FundMovementService

if TYPE_CHECKING:
    from wallets.services import FundMovement


# =============================================================================
# Constants
# =============================================================================

# Distributed lock TTL for refund execution (seconds)
REFUND_LOCK_TTL = 120

# Lock acquisition timeout (seconds)
REFUND_LOCK_TIMEOUT = 10.0


@dataclass
class DisputeRefundResult:
    dispute: Dispute
    amount: Decimal = ZERO
    reversals: list[FundMovement] = field(default_factory=list)


class RefundService(BaseService):

    # =========================================================================
    # Cancellation refunds
    # =========================================================================

    @classmethod
    def refund_cancelled_order(cls, payment_pk, amount: Decimal, reason: str) -> ServiceResult[Payment]:
        """
        Send the gateway refund for a cancelled, paid order.

        Error codes:
            PAYMENT_NOT_FOUND: No such payment
            GATEWAY_ERROR: Gateway rejected or failed; stored on
                Payment.refund_error
        """
        logger = cls.get_logger()
        payment = Payment.objects.filter(pk=payment_pk).first()
        if payment is None:
            return ServiceResult.failure("Payment not found", error_code="PAYMENT_NOT_FOUND")

        try:
            PayHereAdapter.request_refund(payment.payment_id, amount, reason)
        except GatewayError as exc:
            Payment.objects.filter(pk=payment.pk).update(
                refund_error=exc.message,
                updated_at=timezone.now(),
            )
            logger.error(
                "Gateway refund failed for cancelled order",
                exc_info=True,
                extra={"payment_pk": str(payment.pk), "order_id": str(payment.order_id)},
            )
            return ServiceResult.from_exception(exc)

        logger.info(
            "Gateway refund sent for cancelled order",
            extra={
                "payment_pk": str(payment.pk),
                "order_id": str(payment.order_id),
                "amount": format_money(amount),
            },
        )
        return ServiceResult.success(payment)

    # =========================================================================
    # Dispute refunds
    # =========================================================================

    @classmethod
    def execute_dispute_refund(cls, dispute_id) -> ServiceResult[DisputeRefundResult]:
        """
        Refund the customer for a dispute resolved in their favor.

        Steps (under DistributedLock "refund:order:<order id>"):
            1. Skip if the dispute was already refunded
            2. Amount = requested refund capped at the order total
            3. Gateway refund request, committed as gateway_refunded_at on
               its own; skipped when an earlier attempt already got that far
            4. One bounded transaction: reverse vendor credits in
               proportion to their net, update the Payment, order ->
               REFUNDED, history, success comment

        Any failure leaves the dispute resolved and adds a "Refund
        processing failed" comment with refund_failed = True. The comment
        says whether the customer was already refunded at the gateway.
        """
        logger = cls.get_logger()
        dispute = Dispute.objects.select_related("order").filter(pk=dispute_id).first()
        if dispute is None:
            return ServiceResult.failure("Dispute not found", error_code="DISPUTE_NOT_FOUND")

        try:
            with DistributedLock(
                f"refund:order:{dispute.order_id}",
                ttl=REFUND_LOCK_TTL,
                timeout=REFUND_LOCK_TIMEOUT,
            ):
                return cls._execute_dispute_refund_locked(dispute.pk)
        except BaseApplicationError as exc:
            logger.error(
                "Dispute refund failed",
                exc_info=True,
                extra={"dispute_id": str(dispute.pk), "order_id": str(dispute.order_id)},
            )
            cls._record_refund_failure(dispute.pk, exc.message)
            return ServiceResult.from_exception(exc)
        except Exception as exc:
            logger.error(
                "Dispute refund failed unexpectedly",
                exc_info=True,
                extra={"dispute_id": str(dispute.pk), "order_id": str(dispute.order_id)},
            )
            cls._record_refund_failure(dispute.pk, str(exc) or exc.__class__.__name__)
            return ServiceResult.from_exception(exc, error_code="REFUND_FAILED")

    @classmethod
    def _execute_dispute_refund_locked(cls, dispute_pk) -> ServiceResult[DisputeRefundResult]:
        logger = cls.get_logger()
        dispute = Dispute.objects.select_related("order").get(pk=dispute_pk)

        if dispute.status != DisputeStatus.RESOLVED_CUSTOMER_FAVOR:
            return ServiceResult.failure(
                "Only disputes resolved in the customer's favor can be refunded",
                error_code="INVALID_DISPUTE_STATUS",
            )
        if dispute.refunded_at is not None:
            logger.info(
                "Dispute already refunded, skipping",
                extra={"dispute_id": str(dispute.pk)},
            )
            return ServiceResult.success(
                DisputeRefundResult(dispute=dispute, amount=dispute.refunded_amount)
            )

        order = dispute.order
        payment = Payment.objects.filter(order=order).first()
        if payment is None or payment.status not in (
            PaymentStatus.COMPLETED,
            PaymentStatus.PARTIALLY_REFUNDED,
        ):
            raise PaymentError(
                "Order has no completed payment to refund",
                error_code="PAYMENT_NOT_REFUNDABLE",
            )

        requested = dispute.refund_amount if dispute.refund_amount is not None else order.total
        reason = f"Dispute {dispute.pk} resolved in customer's favor"

        if dispute.gateway_refunded_at is None:
            amount = min(to_money(requested), order.total - payment.refunded_amount)
            if amount <= 0:
                raise PaymentError(
                    "Nothing left to refund for this order",
                    error_code="NOTHING_TO_REFUND",
                )
            PayHereAdapter.request_refund(payment.payment_id, amount, reason)
            cls._record_gateway_refund(dispute.pk, amount)
        else:
            # The customer already has the money back; only the ledger is left
            amount = dispute.gateway_refunded_amount
            logger.warning(
                "Gateway refund already sent, retrying ledger reversal only",
                extra={
                    "dispute_id": str(dispute.pk),
                    "amount": format_money(amount),
                    "gateway_refunded_at": dispute.gateway_refunded_at.isoformat(),
                },
            )

        with cls.atomic(bounded=True):
            order = Order.objects.select_for_update().get(pk=order.pk)
            payment = Payment.objects.select_for_update().get(pk=payment.pk)
            dispute = Dispute.objects.select_for_update().get(pk=dispute.pk)

            reversals = FundMovementService.refund_order(order, amount=amount, reason=reason)

            now = timezone.now()
            payment.refunded_amount += amount
            payment.refunded_at = now
            payment.refund_error = ""
            payment.status = (
                PaymentStatus.REFUNDED
                if payment.refunded_amount >= payment.amount
                else PaymentStatus.PARTIALLY_REFUNDED
            )
            payment.save(
                update_fields=["refunded_amount", "refunded_at", "refund_error", "status", "updated_at"]
            )

            previous_status = order.status
            order.status = OrderStatus.REFUNDED
            order.save(update_fields=["status", "updated_at"])
            record_history(
                order,
                OrderStatus.REFUNDED,
                note=f"Refund of {format_money(amount)} processed for dispute",
                actor_role=ActorRole.SYSTEM,
                previous_status=previous_status,
                metadata={"dispute_id": str(dispute.pk), "amount": format_money(amount)},
            )

            dispute.refunded_amount = amount
            dispute.refunded_at = now
            dispute.refund_failed = False
            dispute.refund_error = ""
            dispute.save(
                update_fields=[
                    "refunded_amount",
                    "refunded_at",
                    "refund_failed",
                    "refund_error",
                    "updated_at",
                ]
            )
            DisputeComment.objects.create(
                dispute=dispute,
                body=f"Refund processed successfully. Amount: {format_money(amount)}",
                is_system=True,
            )

            customer = order.customer
            transaction.on_commit(
                lambda: NotificationService.notify_best_effort(
                    recipient=customer,
                    notification_type=NotificationType.REFUND_PROCESSED,
                    title="Refund processed",
                    message=f"{format_money(amount)} has been refunded for order {order.order_number}.",
                    link=f"{settings.FRONTEND_URL}/orders/disputes/{dispute.pk}",
                    metadata={"dispute_id": str(dispute.pk), "amount": format_money(amount)},
                )
            )

        logger.info(
            "Dispute refund processed",
            extra={
                "dispute_id": str(dispute.pk),
                "order_id": str(order.pk),
                "amount": format_money(amount),
                "reversed": format_money(sum((r.amount for r in reversals), ZERO)),
            },
        )
        return ServiceResult.success(
            DisputeRefundResult(dispute=dispute, amount=amount, reversals=reversals)
        )

    @classmethod
    def _record_gateway_refund(cls, dispute_pk, amount: Decimal) -> None:
        """
        Commit the gateway success on its own, before the ledger step.

        A later ledger failure then cannot hide that the customer was paid,
        and a retry skips the gateway.
        """
        now = timezone.now()
        Dispute.objects.filter(pk=dispute_pk).update(
            gateway_refunded_amount=amount,
            gateway_refunded_at=now,
            updated_at=now,
        )
        cls.get_logger().info(
            "Gateway refund sent for dispute",
            extra={"dispute_id": str(dispute_pk), "amount": format_money(amount)},
        )

    @classmethod
    def _record_refund_failure(cls, dispute_pk, error: str) -> None:
        """Flag the dispute and leave a comment for manual follow-up."""
        with transaction.atomic():
            dispute = Dispute.objects.select_for_update().get(pk=dispute_pk)
            if dispute.gateway_refunded_at is not None:
                body = (
                    "Refund processing failed: customer refunded at gateway "
                    f"({format_money(dispute.gateway_refunded_amount)}); ledger reversal failed. "
                    f"Reconcile the vendor wallets manually. Error: {error}"
                )
            else:
                body = f"Refund processing failed. Please process manually. Error: {error}"

            dispute.refund_failed = True
            dispute.refund_error = error
            dispute.save(update_fields=["refund_failed", "refund_error", "updated_at"])
            DisputeComment.objects.create(dispute=dispute, body=body, is_system=True)
