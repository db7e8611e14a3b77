"""
Order models.

- Order: one per checkout; status is the single source of truth
- OrderItem: one per (order, vendor, product/variant) line with a frozen
  product snapshot
- OrderStatusHistory: append-only audit trail of every status change
- Coupon / CouponUsage: discount definitions and their usage ledger

Invariants:
    total = subtotal - discount + shipping, total >= 0 (check constraints)
    sum(item.line_total) == subtotal (set by OrderCreationService)
    pricing and the address snapshot never change once payment is confirmed
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q

from core.exceptions import InvariantViolationError
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from core.money import MoneyField
from orders.states import ActorRole, ItemStatus, OrderStatus


class Order(UUIDPrimaryKeyMixin, BaseModel):
    """
    A customer's checkout.

    Fields:
        order_number: <PREFIX>-YYYYMMDD-NNN, sequential per day
        customer: Buyer
        status: OrderStatus
        subtotal / discount / shipping / total: Decimal money
        coupon: Coupon applied at checkout, if any
        shipping_address: Copy of the address at creation time
        cancelled_at / cancel_reason: Cancellation metadata
        delivery_confirmed_at: Stamped once by DeliveryService.mark_delivered
        return_*: Return request metadata
    """

    # Fields frozen once the order leaves PENDING_PAYMENT
    FROZEN_FIELDS = ("subtotal", "discount", "shipping", "total", "shipping_address", "coupon_id")

    order_number = models.CharField(max_length=32, unique=True)
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="orders",
    )
    status = models.CharField(
        max_length=20,
        choices=OrderStatus.choices,
        default=OrderStatus.PENDING_PAYMENT,
        db_index=True,
    )

    subtotal = MoneyField()
    discount = MoneyField()
    shipping = MoneyField()
    total = MoneyField()

    coupon = models.ForeignKey(
        "orders.Coupon",
        on_delete=models.PROTECT,
        related_name="orders",
        null=True,
        blank=True,
    )
    shipping_address = models.JSONField(default=dict)
    notes = models.TextField(blank=True, default="")

    cancel_reason = models.TextField(blank=True, default="")
    cancelled_at = models.DateTimeField(null=True, blank=True)
    delivery_confirmed_at = models.DateTimeField(null=True, blank=True)
    return_reason = models.TextField(blank=True, default="")
    return_description = models.TextField(blank=True, default="")
    return_requested_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["customer", "-created_at"], name="order_customer_created_idx"),
            models.Index(fields=["status", "delivery_confirmed_at"], name="order_status_delivered_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=Q(total=F("subtotal") - F("discount") + F("shipping")),
                name="order_total_arithmetic",
            ),
            models.CheckConstraint(check=Q(total__gte=0), name="order_total_non_negative"),
            models.CheckConstraint(check=Q(discount__gte=0), name="order_discount_non_negative"),
            models.CheckConstraint(check=Q(shipping__gte=0), name="order_shipping_non_negative"),
        ]

    def __str__(self) -> str:
        return self.order_number

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._loaded_values = dict(zip(field_names, values))
        return instance

    def save(self, *args, **kwargs):
        loaded = getattr(self, "_loaded_values", None)
        if loaded and loaded.get("status") != OrderStatus.PENDING_PAYMENT:
            changed = [
                name
                for name in self.FROZEN_FIELDS
                if name in loaded and getattr(self, name) != loaded[name]
            ]
            if changed:
                raise InvariantViolationError(
                    f"Order {self.order_number} pricing is frozen after payment",
                    details={"fields": changed},
                )
        super().save(*args, **kwargs)
        self._loaded_values = {
            f.attname: getattr(self, f.attname) for f in self._meta.concrete_fields
        }

    @property
    def is_paid(self) -> bool:
        return self.status not in (OrderStatus.PENDING_PAYMENT, OrderStatus.CANCELLED)


class OrderItem(UUIDPrimaryKeyMixin, BaseModel):
    """
    One purchased line for one vendor.

    product_snapshot holds name, image, sku and unit price as they were at
    purchase time so later catalog edits cannot rewrite the order.
    """

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="items")
    vendor = models.ForeignKey(
        "authentication.Vendor",
        on_delete=models.PROTECT,
        related_name="order_items",
    )
    product_id = models.CharField(max_length=64)
    variant_id = models.CharField(max_length=64, blank=True, default="")
    product_name = models.CharField(max_length=255)
    product_snapshot = models.JSONField(default=dict)
    variant_snapshot = models.JSONField(null=True, blank=True)

    quantity = models.PositiveIntegerField()
    unit_price = MoneyField()
    line_total = MoneyField()

    status = models.CharField(
        max_length=20,
        choices=ItemStatus.choices,
        default=ItemStatus.PENDING_PAYMENT,
        db_index=True,
    )
    tracking_number = models.CharField(max_length=30, blank=True, default="")
    tracking_url = models.URLField(max_length=200, blank=True, default="")
    carrier_slug = models.CharField(max_length=50, blank=True, default="")
    shipped_at = models.DateTimeField(null=True, blank=True)
    delivered_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(fields=["vendor", "status"], name="order_item_vendor_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(check=Q(quantity__gt=0), name="order_item_quantity_positive"),
            models.CheckConstraint(check=Q(unit_price__gte=0), name="order_item_price_non_negative"),
        ]

    def __str__(self) -> str:
        return f"{self.product_name} x{self.quantity} ({self.status})"

    def save(self, *args, **kwargs):
        self.line_total = self.unit_price * self.quantity
        super().save(*args, **kwargs)


class OrderStatusHistory(BaseModel):
    """Audit row for every status change, including admin overrides."""

    order = models.ForeignKey(Order, on_delete=models.CASCADE, related_name="status_history")
    order_item = models.ForeignKey(
        OrderItem,
        on_delete=models.CASCADE,
        related_name="status_history",
        null=True,
        blank=True,
    )
    previous_status = models.CharField(max_length=20, blank=True, default="")
    status = models.CharField(max_length=20)
    note = models.TextField(blank=True, default="")
    actor_role = models.CharField(max_length=10, choices=ActorRole.choices)
    actor = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="+",
        null=True,
        blank=True,
    )
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["created_at", "id"]
        verbose_name_plural = "order status history"

    def __str__(self) -> str:
        return f"{self.order_id}: {self.previous_status or '-'} -> {self.status} ({self.actor_role})"


class CouponType(models.TextChoices):
    FLAT = "FLAT", "Flat amount"
    PERCENTAGE = "PERCENTAGE", "Percentage"


class Coupon(UUIDPrimaryKeyMixin, BaseModel):
    """
    Discount definition.

    PERCENTAGE values are percents (10 = 10%) optionally capped by
    max_discount. A vendor-scoped coupon only discounts that vendor's lines.
    """

    code = models.CharField(max_length=30, unique=True)
    description = models.CharField(max_length=255, blank=True, default="")
    type = models.CharField(max_length=10, choices=CouponType.choices)
    value = MoneyField()
    max_discount = MoneyField(null=True, blank=True, default=None)
    min_order_amount = MoneyField()
    valid_from = models.DateTimeField()
    valid_until = models.DateTimeField()
    usage_limit = models.PositiveIntegerField(null=True, blank=True)
    per_customer_limit = models.PositiveIntegerField(default=1)
    usage_count = models.PositiveIntegerField(default=0)
    vendor = models.ForeignKey(
        "authentication.Vendor",
        on_delete=models.CASCADE,
        related_name="coupons",
        null=True,
        blank=True,
    )
    is_active = models.BooleanField(default=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(check=Q(value__gt=0), name="coupon_value_positive"),
        ]

    def __str__(self) -> str:
        return self.code

    def save(self, *args, **kwargs):
        self.code = self.code.strip().upper()
        super().save(*args, **kwargs)


class CouponUsage(BaseModel):
    coupon = models.ForeignKey(Coupon, on_delete=models.PROTECT, related_name="usages")
    customer = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.PROTECT,
        related_name="coupon_usages",
    )
    order = models.OneToOneField(Order, on_delete=models.CASCADE, related_name="coupon_usage")
    discount_amount = MoneyField()

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["coupon", "customer"], name="coupon_usage_customer_idx"),
        ]

    def __str__(self) -> str:
        return f"{self.coupon_id} used on {self.order_id}"
