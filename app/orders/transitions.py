"""
Pure status transition rules.

Nothing here touches the database: every decision is a function of the
current status, the requested status, the actor role and the order's
timestamps. Services apply the decision; views surface the reason.

Usage:
    from orders.transitions import validate_status_transition

    decision = validate_status_transition(
        current=order.status,
        requested=OrderStatus.CANCELLED,
        role=ActorRole.CUSTOMER,
        created_at=order.created_at,
        delivery_confirmed_at=order.delivery_confirmed_at,
    )
    if not decision:
        return ServiceResult.failure(decision.reason, decision.error_code)
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import timedelta
from typing import TYPE_CHECKING

from django.conf import settings
from django.utils import timezone

from orders.states import (
    CANCELLABLE_STATUSES,
    DERIVABLE_STATUSES,
    FULFILLMENT_SEQUENCE,
    TERMINAL_STATUSES,
    VENDOR_ITEM_TRANSITIONS,
    ActorRole,
    OrderStatus,
)

if TYPE_CHECKING:
    from collections.abc import Iterable
    from datetime import datetime


@dataclass(frozen=True)
class TransitionDecision:
    """Outcome of a transition check; falsy when rejected."""

    allowed: bool
    reason: str = ""
    error_code: str = ""

    def __bool__(self) -> bool:
        return self.allowed


ALLOWED = TransitionDecision(allowed=True)


def _reject(reason: str, error_code: str = "INVALID_TRANSITION") -> TransitionDecision:
    return TransitionDecision(allowed=False, reason=reason, error_code=error_code)


def cancellation_window() -> timedelta:
    return timedelta(hours=settings.ORDER_CANCELLATION_WINDOW_HOURS)


def return_window() -> timedelta:
    return timedelta(hours=settings.ORDER_RETURN_WINDOW_HOURS)


def _validate_customer(
    current: str,
    requested: str,
    created_at: datetime,
    delivery_confirmed_at: datetime | None,
    now: datetime,
) -> TransitionDecision:
    if requested == OrderStatus.CANCELLED:
        if current not in CANCELLABLE_STATUSES:
            return _reject("Cannot cancel order after it has been shipped")
        if now - created_at > cancellation_window():
            return _reject(
                f"Cancellation window ({settings.ORDER_CANCELLATION_WINDOW_HOURS} hours) has expired",
                "CANCELLATION_WINDOW_EXPIRED",
            )
        return ALLOWED

    if requested == OrderStatus.DELIVERY_CONFIRMED:
        if current != OrderStatus.DELIVERED:
            return _reject("Order must be delivered before you can confirm delivery")
        return ALLOWED

    if requested == OrderStatus.RETURN_REQUESTED:
        if current != OrderStatus.DELIVERY_CONFIRMED:
            return _reject("Can only request return after confirming delivery")
        if delivery_confirmed_at is None:
            return _reject("Delivery confirmation date not found")
        if now - delivery_confirmed_at > return_window():
            return _reject(
                f"Return window ({settings.ORDER_RETURN_WINDOW_HOURS} hours) has expired",
                "RETURN_WINDOW_EXPIRED",
            )
        return ALLOWED

    if requested == OrderStatus.DISPUTED:
        if current in TERMINAL_STATUSES or current == OrderStatus.DISPUTED:
            return _reject(f"Cannot dispute an order in {current} status")
        return ALLOWED

    return _reject("Invalid status transition for customer")


def validate_status_transition(
    current: str,
    requested: str,
    role: str,
    created_at: datetime,
    delivery_confirmed_at: datetime | None = None,
    now: datetime | None = None,
) -> TransitionDecision:
    """
    Decide whether an actor may move a status from current to requested.

    For vendors, current/requested are item statuses; for customers and
    admins they are order statuses.

    Rules:
        CUSTOMER: cancel from PENDING_PAYMENT/PAYMENT_CONFIRMED within the
            cancellation window; confirm delivery from DELIVERED; request a
            return from DELIVERY_CONFIRMED within the return window; open a
            dispute from any non-terminal status.
        VENDOR: PAYMENT_CONFIRMED -> PROCESSING and PROCESSING -> SHIPPED only.
        ADMIN: anything (the caller writes an ADMIN history row).

    Returns:
        TransitionDecision; rejections carry a human-readable reason.
    """
    now = now or timezone.now()

    if role == ActorRole.CUSTOMER:
        return _validate_customer(current, requested, created_at, delivery_confirmed_at, now)

    if role == ActorRole.VENDOR:
        if requested not in VENDOR_ITEM_TRANSITIONS.get(current, set()):
            return _reject(f"Cannot transition from {current} to {requested}")
        return ALLOWED

    if role in (ActorRole.ADMIN, ActorRole.SYSTEM):
        return ALLOWED

    return _reject("Invalid role", "INVALID_ROLE")


def derive_order_status(item_statuses: Iterable[str]) -> str | None:
    """
    Aggregate item statuses into the order status.

    Only fulfillment statuses count. When items agree the order adopts the
    shared status; when they disagree it takes the least advanced one, so
    an order is only as far along as its slowest vendor. Returns None when
    no item is in a derivable status.

    Pure and idempotent: the same items always give the same answer.
    """
    present = {status for status in item_statuses if status in DERIVABLE_STATUSES}
    if not present:
        return None
    return min(present, key=FULFILLMENT_SEQUENCE.index)


def available_actions(
    status: str,
    created_at: datetime,
    delivery_confirmed_at: datetime | None,
    has_open_dispute: bool = False,
    now: datetime | None = None,
) -> dict:
    """
    Customer-facing action flags for an order.

    Mirrors validate_status_transition so the UI never offers an action
    the API would reject.
    """
    now = now or timezone.now()

    def allowed(requested: str) -> TransitionDecision:
        return validate_status_transition(
            status,
            requested,
            ActorRole.CUSTOMER,
            created_at,
            delivery_confirmed_at,
            now=now,
        )

    cancel = allowed(OrderStatus.CANCELLED)
    confirm = (
        ALLOWED
        if status == OrderStatus.SHIPPED
        else allowed(OrderStatus.DELIVERY_CONFIRMED)
    )
    return_request = allowed(OrderStatus.RETURN_REQUESTED)

    dispute_window = timedelta(days=settings.DISPUTE_WINDOW_DAYS)
    can_open_dispute = (
        not has_open_dispute
        and status
        in (
            OrderStatus.DELIVERED,
            OrderStatus.DELIVERY_CONFIRMED,
            OrderStatus.RETURN_REQUESTED,
        )
        and delivery_confirmed_at is not None
        and now - delivery_confirmed_at <= dispute_window
    )

    return {
        "can_cancel": cancel.allowed,
        "cancel_reason": cancel.reason or None,
        "can_confirm_delivery": confirm.allowed,
        "can_request_return": return_request.allowed,
        "return_reason": return_request.reason or None,
        "can_open_dispute": can_open_dispute,
    }
