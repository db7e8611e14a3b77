"""
Dispute service layer.

Services:
    DisputeService: Open, comment on and resolve disputes

Resolution runs in one bounded transaction. A customer-favor outcome
leaves the money movement to RefundService.execute_dispute_refund, which
is scheduled with transaction.on_commit so no row lock is held while the
gateway is called.

Usage:
    from disputes.services import DisputeService

    result = DisputeService.resolve(
        dispute_id, admin, ResolutionType.CUSTOMER_FAVOR, notes, refund_amount
    )
"""

from __future__ import annotations

from datetime import timedelta
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from django.db.models import Q
from django.utils import timezone

from core.money import format_money, to_money
from core.services import BaseService, ServiceResult
from disputes.models import (
    ACTIVE_DISPUTE_STATUSES,
    Dispute,
    DisputeComment,
    DisputeStatus,
    ResolutionType,
)
from notifications.models import NotificationType
from notifications.services import NotificationService
from orders.models import Order
from orders.services.history import record_history
from orders.states import ActorRole, OrderStatus
from payments.services import RefundService

if TYPE_CHECKING:
    from django.db.models import QuerySet

    from authentication.models import User


DISPUTABLE_ORDER_STATUSES = (
    OrderStatus.DELIVERED,
    OrderStatus.DELIVERY_CONFIRMED,
    OrderStatus.RETURN_REQUESTED,
)


def validate_evidence(evidence: list[str]) -> str | None:
    """Return an error message for invalid evidence, None when valid."""
    if len(evidence) > settings.DISPUTE_MAX_EVIDENCE:
        return f"At most {settings.DISPUTE_MAX_EVIDENCE} evidence images are allowed"
    for url in evidence:
        if not isinstance(url, str) or not url.startswith("https://"):
            return "Evidence must be HTTPS image URLs"
    return None


class DisputeService(BaseService):

    # =========================================================================
    # Access
    # =========================================================================

    @staticmethod
    def role_for(dispute: Dispute, user: User) -> str | None:
        """The user's role in this dispute, or None when they have no access."""
        if user.is_marketplace_admin:
            return ActorRole.ADMIN
        if dispute.customer_id == user.pk:
            return ActorRole.CUSTOMER
        vendor = getattr(user, "vendor", None)
        if vendor is not None and dispute.order.items.filter(vendor=vendor).exists():
            return ActorRole.VENDOR
        return None

    @staticmethod
    def disputes_for(user: User) -> QuerySet[Dispute]:
        qs = Dispute.objects.select_related("order", "customer", "resolved_by")
        if user.is_marketplace_admin:
            return qs
        vendor = getattr(user, "vendor", None)
        condition = Q(customer=user)
        if vendor is not None:
            condition |= Q(order__items__vendor=vendor)
        return qs.filter(condition).distinct()

    # =========================================================================
    # Open
    # =========================================================================

    @classmethod
    def open_dispute(
        cls,
        order_id,
        customer: User,
        reason: str,
        description: str,
        evidence: list[str] | None = None,
    ) -> ServiceResult[Dispute]:
        """
        Open a dispute against a delivered order and move it to DISPUTED.

        Error codes:
            ORDER_NOT_FOUND, NOT_ORDER_OWNER
            INVALID_ORDER_STATUS: Order not delivered
            DISPUTE_WINDOW_EXPIRED: More than 7 days since delivery
            DUPLICATE_DISPUTE: A non-terminal dispute already exists
            INVALID_EVIDENCE: Too many or non-HTTPS evidence URLs
        """
        evidence = list(evidence or [])
        evidence_error = validate_evidence(evidence)
        if evidence_error:
            return ServiceResult.failure(evidence_error, error_code="INVALID_EVIDENCE")

        with cls.atomic(bounded=True):
            order = Order.objects.select_for_update().filter(pk=order_id).first()
            if order is None:
                return ServiceResult.failure("Order not found", error_code="ORDER_NOT_FOUND")
            if order.customer_id != customer.pk:
                return ServiceResult.failure(
                    "You can only dispute your own orders",
                    error_code="NOT_ORDER_OWNER",
                )
            if order.status not in DISPUTABLE_ORDER_STATUSES or order.delivery_confirmed_at is None:
                return ServiceResult.failure(
                    "Disputes can only be opened for delivered orders",
                    error_code="INVALID_ORDER_STATUS",
                )
            window = timedelta(days=settings.DISPUTE_WINDOW_DAYS)
            if timezone.now() - order.delivery_confirmed_at > window:
                return ServiceResult.failure(
                    f"Disputes must be opened within {settings.DISPUTE_WINDOW_DAYS} days of delivery",
                    error_code="DISPUTE_WINDOW_EXPIRED",
                )
            if order.disputes.filter(status__in=ACTIVE_DISPUTE_STATUSES).exists():
                return ServiceResult.failure(
                    "An active dispute already exists for this order",
                    error_code="DUPLICATE_DISPUTE",
                )

            dispute = Dispute.objects.create(
                order=order,
                customer=customer,
                reason=reason,
                description=description,
                evidence=evidence,
                order_status_at_open=order.status,
            )

            previous_status = order.status
            order.status = OrderStatus.DISPUTED
            order.save(update_fields=["status", "updated_at"])
            record_history(
                order,
                OrderStatus.DISPUTED,
                note=f"Dispute opened: {dispute.get_reason_display()}",
                actor_role=ActorRole.CUSTOMER,
                actor=customer,
                previous_status=previous_status,
                metadata={"dispute_id": str(dispute.pk)},
            )
            cls._notify_vendors_on_commit(dispute)

        cls.get_logger().info(
            "Dispute opened",
            extra={
                "dispute_id": str(dispute.pk),
                "order_id": str(order.id),
                "order_number": order.order_number,
                "reason": reason,
            },
        )
        return ServiceResult.success(dispute)

    # =========================================================================
    # Comments
    # =========================================================================

    @classmethod
    def add_comment(cls, dispute_id, user: User, body: str) -> ServiceResult[DisputeComment]:
        """
        Add a comment to an active dispute.

        The first admin comment moves an OPEN dispute to IN_REVIEW.

        Error codes:
            DISPUTE_NOT_FOUND
            DISPUTE_ACCESS_FORBIDDEN: No access to the dispute at all
            DISPUTE_COMMENT_FORBIDDEN: Involved vendor; vendors can read the
                thread but only the customer and admins write to it
            DISPUTE_CLOSED: Dispute already resolved or closed
            INVALID_COMMENT: Empty or too long
        """
        body = (body or "").strip()
        if not body:
            return ServiceResult.failure("Comment cannot be empty", error_code="INVALID_COMMENT")
        if len(body) > settings.DISPUTE_COMMENT_MAX_LENGTH:
            return ServiceResult.failure(
                f"Comment cannot exceed {settings.DISPUTE_COMMENT_MAX_LENGTH} characters",
                error_code="INVALID_COMMENT",
            )

        with cls.atomic():
            dispute = (
                Dispute.objects.select_for_update()
                .select_related("order")
                .filter(pk=dispute_id)
                .first()
            )
            if dispute is None:
                return ServiceResult.failure("Dispute not found", error_code="DISPUTE_NOT_FOUND")

            role = cls.role_for(dispute, user)
            if role is None:
                return ServiceResult.failure(
                    "You do not have access to this dispute",
                    error_code="DISPUTE_ACCESS_FORBIDDEN",
                )
            if role == ActorRole.VENDOR:
                return ServiceResult.failure(
                    "Only the customer and marketplace admins can comment on a dispute",
                    error_code="DISPUTE_COMMENT_FORBIDDEN",
                )
            if dispute.is_terminal:
                return ServiceResult.failure(
                    "Cannot comment on a resolved dispute",
                    error_code="DISPUTE_CLOSED",
                )

            if role == ActorRole.ADMIN and dispute.status == DisputeStatus.OPEN:
                dispute.start_review()
                dispute.save()

            comment = DisputeComment.objects.create(
                dispute=dispute,
                author=user,
                author_role=role,
                body=body,
            )

            if role != ActorRole.CUSTOMER:
                customer = dispute.customer
                transaction.on_commit(
                    lambda: NotificationService.notify_best_effort(
                        recipient=customer,
                        notification_type=NotificationType.DISPUTE_COMMENT,
                        title="New comment on your dispute",
                        message=body[:200],
                        link=f"{settings.FRONTEND_URL}/orders/disputes/{dispute.pk}",
                        metadata={"dispute_id": str(dispute.pk)},
                    )
                )

        return ServiceResult.success(comment)

    # =========================================================================
    # Resolution
    # =========================================================================

    @classmethod
    def resolve(
        cls,
        dispute_id,
        admin: User,
        resolution_type: str,
        notes: str,
        refund_amount: Decimal | None = None,
    ) -> ServiceResult[Dispute]:
        """
        Resolve a dispute.

        CUSTOMER_FAVOR schedules the refund after commit; the order becomes
        REFUNDED once it succeeds. VENDOR_FAVOR and CLOSED_NO_ACTION close
        the order. An OPEN dispute passes through IN_REVIEW first.

        Error codes:
            DISPUTE_NOT_FOUND
            DISPUTE_ALREADY_RESOLVED: Terminal dispute
            INVALID_RESOLUTION: Unknown resolution type
            INVALID_REFUND_AMOUNT: Not positive, above the order total, or
                given for a non-refund outcome
        """
        logger = cls.get_logger()
        if resolution_type not in ResolutionType.values:
            return ServiceResult.failure(
                f"Unknown resolution type '{resolution_type}'",
                error_code="INVALID_RESOLUTION",
            )

        found = Dispute.objects.filter(pk=dispute_id).only("id", "order_id").first()
        if found is None:
            return ServiceResult.failure("Dispute not found", error_code="DISPUTE_NOT_FOUND")

        with cls.atomic(bounded=True):
            order = Order.objects.select_for_update().get(pk=found.order_id)
            dispute = Dispute.objects.select_for_update().get(pk=found.pk)

            if dispute.is_terminal:
                return ServiceResult.failure(
                    "Dispute has already been resolved",
                    error_code="DISPUTE_ALREADY_RESOLVED",
                )

            if refund_amount is not None:
                if resolution_type != ResolutionType.CUSTOMER_FAVOR:
                    return ServiceResult.failure(
                        "Refund amount only applies to customer-favor resolutions",
                        error_code="INVALID_REFUND_AMOUNT",
                    )
                refund_amount = to_money(refund_amount)
                if refund_amount <= 0:
                    return ServiceResult.failure(
                        "Refund amount must be positive",
                        error_code="INVALID_REFUND_AMOUNT",
                    )
                if refund_amount > order.total:
                    return ServiceResult.failure(
                        f"Refund amount cannot exceed order total ({format_money(order.total)})",
                        error_code="INVALID_REFUND_AMOUNT",
                    )

            if dispute.status == DisputeStatus.OPEN:
                dispute.start_review()

            if resolution_type == ResolutionType.CUSTOMER_FAVOR:
                dispute.resolve_customer_favor(admin, notes, refund_amount)
            elif resolution_type == ResolutionType.VENDOR_FAVOR:
                dispute.resolve_vendor_favor(admin, notes)
            else:
                dispute.close(admin, notes)
            dispute.save()

            DisputeComment.objects.create(
                dispute=dispute,
                author=admin,
                author_role=ActorRole.ADMIN,
                body=f"Dispute resolved: {resolution_type}\n\n{notes}",
                is_system=True,
            )

            if resolution_type == ResolutionType.CUSTOMER_FAVOR:
                transaction.on_commit(lambda: RefundService.execute_dispute_refund(dispute.pk))
            else:
                previous_status = order.status
                order.status = OrderStatus.CLOSED
                order.save(update_fields=["status", "updated_at"])
                record_history(
                    order,
                    OrderStatus.CLOSED,
                    note=f"Dispute resolved: {resolution_type}",
                    actor_role=ActorRole.ADMIN,
                    actor=admin,
                    previous_status=previous_status,
                    metadata={"dispute_id": str(dispute.pk)},
                )

            customer = dispute.customer
            transaction.on_commit(
                lambda: NotificationService.notify_best_effort(
                    recipient=customer,
                    notification_type=NotificationType.DISPUTE_RESOLVED,
                    title="Dispute resolved",
                    message=f"Your dispute for order {order.order_number} was resolved: "
                    f"{dispute.get_resolution_type_display()}.",
                    link=f"{settings.FRONTEND_URL}/orders/disputes/{dispute.pk}",
                    metadata={"dispute_id": str(dispute.pk), "resolution": resolution_type},
                )
            )

        logger.info(
            "Dispute resolved",
            extra={
                "dispute_id": str(dispute.pk),
                "order_id": str(order.id),
                "resolution": resolution_type,
                "admin_id": admin.pk,
            },
        )
        return ServiceResult.success(dispute)

    @staticmethod
    def _notify_vendors_on_commit(dispute: Dispute) -> None:
        order = dispute.order
        vendor_users = {
            item.vendor.user_id: item.vendor.user
            for item in order.items.select_related("vendor__user")
        }

        def notify():
            for user in vendor_users.values():
                NotificationService.notify_best_effort(
                    recipient=user,
                    notification_type=NotificationType.DISPUTE_OPENED,
                    title="Dispute opened",
                    message=f"A dispute was opened for order {order.order_number}.",
                    metadata={"dispute_id": str(dispute.pk), "order_number": order.order_number},
                )

        transaction.on_commit(notify)
