"""
Celery tasks for orders.

- poll_carrier_tracking: periodic AfterShip check that marks SHIPPED
  orders delivered (trigger=tracking), which releases escrow

Usage:
    from orders.tasks import poll_carrier_tracking

    poll_carrier_tracking.delay()
"""

from __future__ import annotations

import logging
import time

from celery import shared_task

from orders.exceptions import TrackingServiceError
from orders.models import OrderItem
from orders.services.delivery import DeliveryService
from orders.states import DeliveryTrigger, ItemStatus, OrderStatus
from orders.tracking import AfterShipClient

logger = logging.getLogger(__name__)


# Pause between AfterShip requests (seconds)
REQUEST_PAUSE_SECONDS = 0.3


@shared_task(acks_late=True)
def poll_carrier_tracking() -> dict:
    """
    Check every SHIPPED order with a tracked item against AfterShip.

    One tracking number is checked per order. A carrier "Delivered" tag
    hands the order to DeliveryService.mark_delivered, which is
    idempotent, so overlapping runs are harmless.

    Returns:
        Dict with counts: checked, delivered, errors (or skipped)
    """
    if not AfterShipClient.is_enabled():
        logger.info("AFTERSHIP_API_KEY not set, carrier tracking poll skipped")
        return {"skipped": True}

    items = (
        OrderItem.objects.filter(
            status=ItemStatus.SHIPPED,
            order__status=OrderStatus.SHIPPED,
            order__delivery_confirmed_at__isnull=True,
        )
        .exclude(tracking_number="")
        .select_related("order")
        .order_by("order_id", "shipped_at")
    )

    # One item per order
    to_check: dict = {}
    for item in items:
        to_check.setdefault(item.order_id, item)

    checked = delivered = errors = 0
    for order_id, item in to_check.items():
        try:
            tag = AfterShipClient.get_tracking_tag(item.tracking_number, slug=item.carrier_slug)
        except TrackingServiceError:
            errors += 1
            logger.error(
                "Tracking lookup failed",
                exc_info=True,
                extra={"order_id": str(order_id), "tracking_number": item.tracking_number},
            )
            continue
        checked += 1

        if AfterShipClient.is_delivered(tag):
            result = DeliveryService.mark_delivered(order_id, DeliveryTrigger.TRACKING)
            if result.success:
                if not result.data.already_delivered:
                    delivered += 1
                    logger.info(
                        "Order auto-marked delivered from carrier tracking",
                        extra={
                            "order_id": str(order_id),
                            "order_number": item.order.order_number,
                            "tracking_number": item.tracking_number,
                        },
                    )
            else:
                logger.warning(
                    "Could not auto-mark order delivered",
                    extra={"order_id": str(order_id), "error": result.error},
                )

        if len(to_check) > 1:
            time.sleep(REQUEST_PAUSE_SECONDS)

    logger.info(
        "Carrier tracking poll complete",
        extra={"checked": checked, "delivered": delivered, "errors": errors},
    )
    return {"checked": checked, "delivered": delivered, "errors": errors}
