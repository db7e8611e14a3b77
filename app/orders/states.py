"""
Order and order-item states.

Order flow:
    PENDING_PAYMENT -> PAYMENT_CONFIRMED -> PROCESSING -> SHIPPED
        -> DELIVERED -> DELIVERY_CONFIRMED

Side branches:
    CANCELLED           from PENDING_PAYMENT / PAYMENT_CONFIRMED
    RETURN_REQUESTED    from DELIVERY_CONFIRMED
    DISPUTED            from any non-terminal state
    REFUNDED / CLOSED   dispute outcomes

Items mirror the fulfillment part of the flow and never run ahead of
their order.
"""

from django.db import models


class OrderStatus(models.TextChoices):
    PENDING_PAYMENT = "PENDING_PAYMENT", "Pending payment"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED", "Payment confirmed"
    PROCESSING = "PROCESSING", "Processing"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    DELIVERY_CONFIRMED = "DELIVERY_CONFIRMED", "Delivery confirmed"
    CANCELLED = "CANCELLED", "Cancelled"
    RETURN_REQUESTED = "RETURN_REQUESTED", "Return requested"
    DISPUTED = "DISPUTED", "Disputed"
    REFUNDED = "REFUNDED", "Refunded"
    CLOSED = "CLOSED", "Closed"


class ItemStatus(models.TextChoices):
    PENDING_PAYMENT = "PENDING_PAYMENT", "Pending payment"
    PAYMENT_CONFIRMED = "PAYMENT_CONFIRMED", "Payment confirmed"
    PROCESSING = "PROCESSING", "Processing"
    SHIPPED = "SHIPPED", "Shipped"
    DELIVERED = "DELIVERED", "Delivered"
    CANCELLED = "CANCELLED", "Cancelled"


class ActorRole(models.TextChoices):
    """Who caused a status change; SYSTEM covers webhooks and recomputation."""

    SYSTEM = "SYSTEM", "System"
    CUSTOMER = "CUSTOMER", "Customer"
    VENDOR = "VENDOR", "Vendor"
    ADMIN = "ADMIN", "Admin"


class DeliveryTrigger(models.TextChoices):
    CUSTOMER = "customer", "Customer confirmation"
    ADMIN = "admin", "Admin override"
    TRACKING = "tracking", "Carrier tracking"


# Fulfillment sequence, least advanced first
FULFILLMENT_SEQUENCE = [
    OrderStatus.PENDING_PAYMENT,
    OrderStatus.PAYMENT_CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
]

# Statuses an order adopts from its items
DERIVABLE_STATUSES = {
    OrderStatus.PAYMENT_CONFIRMED,
    OrderStatus.PROCESSING,
    OrderStatus.SHIPPED,
    OrderStatus.DELIVERED,
}

CANCELLABLE_STATUSES = {OrderStatus.PENDING_PAYMENT, OrderStatus.PAYMENT_CONFIRMED}

TERMINAL_STATUSES = {OrderStatus.CANCELLED, OrderStatus.REFUNDED, OrderStatus.CLOSED}

DELIVERED_STATUSES = {OrderStatus.DELIVERED, OrderStatus.DELIVERY_CONFIRMED}

# Vendor item moves
VENDOR_ITEM_TRANSITIONS = {
    ItemStatus.PAYMENT_CONFIRMED: {ItemStatus.PROCESSING},
    ItemStatus.PROCESSING: {ItemStatus.SHIPPED},
}

DELIVERY_TRIGGER_ACTORS = {
    DeliveryTrigger.CUSTOMER: ActorRole.CUSTOMER,
    DeliveryTrigger.ADMIN: ActorRole.ADMIN,
    DeliveryTrigger.TRACKING: ActorRole.SYSTEM,
}

DELIVERY_TRIGGER_NOTES = {
    DeliveryTrigger.CUSTOMER: "Customer confirmed delivery",
    DeliveryTrigger.ADMIN: "Admin confirmed delivery",
    DeliveryTrigger.TRACKING: "Auto-delivered: carrier tracking confirmed",
}
