"""
Notification service layer.

Services:
    NotificationService: Create notifications and manage read state

Usage:
    from notifications.services import NotificationService

    # From marketplace code, after the business transaction commits
    transaction.on_commit(
        lambda: NotificationService.notify_best_effort(
            recipient=order.customer,
            notification_type=NotificationType.ORDER_DELIVERED,
            title="Order delivered",
            message=f"Order {order.order_number} has been delivered.",
        )
    )
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.utils import timezone

from core.services import BaseService, ServiceResult
from notifications.models import Notification, NotificationType

if TYPE_CHECKING:
    from typing import Any

    from authentication.models import User


class NotificationService(BaseService):
    """
    Notification creation and inbox management.

    Methods:
        notify: Persist a notification
        notify_best_effort: notify() that logs instead of raising
        mark_as_read: Mark one notification read (owner only)
        mark_all_as_read: Bulk mark the user's notifications read
        unread_count: Number of unread notifications
    """

    @classmethod
    def notify(
        cls,
        recipient: User,
        notification_type: str,
        title: str,
        message: str = "",
        link: str = "",
        metadata: dict[str, Any] | None = None,
    ) -> ServiceResult[Notification]:
        if notification_type not in NotificationType.values:
            return ServiceResult.failure(
                f"Unknown notification type '{notification_type}'",
                error_code="UNKNOWN_NOTIFICATION_TYPE",
            )

        notification = Notification.objects.create(
            recipient=recipient,
            type=notification_type,
            title=title[:200],
            message=message,
            link=link,
            metadata=metadata or {},
        )
        cls.get_logger().debug(
            "Notification created",
            extra={
                "notification_id": notification.pk,
                "recipient_id": recipient.pk,
                "notification_type": notification_type,
            },
        )
        return ServiceResult.success(notification)

    @classmethod
    def notify_best_effort(cls, **kwargs: Any) -> Notification | None:
        """
        Fire-and-forget wrapper around notify().

        Any failure is logged with its traceback and swallowed. Callers run
        this after their transaction commits, so the business outcome is
        already durable.
        """
        try:
            result = cls.notify(**kwargs)
        except Exception:
            cls.get_logger().error(
                "Notification dispatch failed",
                exc_info=True,
                extra={"notification_type": kwargs.get("notification_type")},
            )
            return None

        if not result:
            cls.get_logger().error(
                "Notification rejected: %s",
                result.error,
                extra={"notification_type": kwargs.get("notification_type")},
            )
            return None
        return result.data

    @classmethod
    def mark_as_read(
        cls,
        notification: Notification,
        user: User,
    ) -> ServiceResult[Notification]:
        """
        Mark a single notification as read.

        Idempotent: marking an already-read notification succeeds.

        Error codes:
            NOT_NOTIFICATION_OWNER: User doesn't own the notification
        """
        if notification.recipient_id != user.pk:
            cls.get_logger().warning(
                "User attempted to read a notification they do not own",
                extra={"user_id": user.pk, "notification_id": notification.pk},
            )
            return ServiceResult.failure(
                "Cannot mark notification you don't own",
                error_code="NOT_NOTIFICATION_OWNER",
            )

        if not notification.is_read:
            notification.is_read = True
            notification.read_at = timezone.now()
            notification.save(update_fields=["is_read", "read_at", "updated_at"])

        return ServiceResult.success(notification)

    @classmethod
    def mark_all_as_read(cls, user: User) -> ServiceResult[int]:
        count = Notification.objects.filter(recipient=user, is_read=False).update(
            is_read=True,
            read_at=timezone.now(),
        )
        cls.get_logger().info(
            "Marked notifications as read",
            extra={"user_id": user.pk, "count": count},
        )
        return ServiceResult.success(count)

    @classmethod
    def unread_count(cls, user: User) -> int:
        return Notification.objects.filter(recipient=user, is_read=False).count()
