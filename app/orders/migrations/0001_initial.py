import uuid
from decimal import Decimal

import django.db.models.deletion
from django.conf import settings
from django.db import migrations, models

ORDER_STATUS_CHOICES = [
    ("PENDING_PAYMENT", "Pending payment"),
    ("PAYMENT_CONFIRMED", "Payment confirmed"),
    ("PROCESSING", "Processing"),
    ("SHIPPED", "Shipped"),
    ("DELIVERED", "Delivered"),
    ("DELIVERY_CONFIRMED", "Delivery confirmed"),
    ("CANCELLED", "Cancelled"),
    ("RETURN_REQUESTED", "Return requested"),
    ("DISPUTED", "Disputed"),
    ("REFUNDED", "Refunded"),
    ("CLOSED", "Closed"),
]

ITEM_STATUS_CHOICES = [
    ("PENDING_PAYMENT", "Pending payment"),
    ("PAYMENT_CONFIRMED", "Payment confirmed"),
    ("PROCESSING", "Processing"),
    ("SHIPPED", "Shipped"),
    ("DELIVERED", "Delivered"),
    ("CANCELLED", "Cancelled"),
]


def uuid_pk():
    return models.UUIDField(
        default=uuid.uuid4,
        editable=False,
        help_text="Unique identifier (UUID v4)",
        primary_key=True,
        serialize=False,
    )


def timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created"),
        ),
        ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
    ]


def money(**kwargs):
    kwargs.setdefault("default", Decimal("0.00"))
    return models.DecimalField(decimal_places=2, max_digits=12, **kwargs)


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("authentication", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Coupon",
            fields=[
                ("id", uuid_pk()),
                *timestamps(),
                ("code", models.CharField(max_length=30, unique=True)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                (
                    "type",
                    models.CharField(
                        choices=[("FLAT", "Flat amount"), ("PERCENTAGE", "Percentage")],
                        max_length=10,
                    ),
                ),
                ("value", money()),
                ("max_discount", money(blank=True, null=True, default=None)),
                ("min_order_amount", money()),
                ("valid_from", models.DateTimeField()),
                ("valid_until", models.DateTimeField()),
                ("usage_limit", models.PositiveIntegerField(blank=True, null=True)),
                ("per_customer_limit", models.PositiveIntegerField(default=1)),
                ("usage_count", models.PositiveIntegerField(default=0)),
                ("is_active", models.BooleanField(default=True)),
                (
                    "vendor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="coupons",
                        to="authentication.vendor",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(check=models.Q(("value__gt", 0)), name="coupon_value_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="Order",
            fields=[
                ("id", uuid_pk()),
                *timestamps(),
                ("order_number", models.CharField(max_length=32, unique=True)),
                (
                    "status",
                    models.CharField(
                        choices=ORDER_STATUS_CHOICES,
                        db_index=True,
                        default="PENDING_PAYMENT",
                        max_length=20,
                    ),
                ),
                ("subtotal", money()),
                ("discount", money()),
                ("shipping", money()),
                ("total", money()),
                ("shipping_address", models.JSONField(default=dict)),
                ("notes", models.TextField(blank=True, default="")),
                ("cancel_reason", models.TextField(blank=True, default="")),
                ("cancelled_at", models.DateTimeField(blank=True, null=True)),
                ("delivery_confirmed_at", models.DateTimeField(blank=True, null=True)),
                ("return_reason", models.TextField(blank=True, default="")),
                ("return_description", models.TextField(blank=True, default="")),
                ("return_requested_at", models.DateTimeField(blank=True, null=True)),
                (
                    "coupon",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to="orders.coupon",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="orders",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["customer", "-created_at"], name="order_customer_created_idx"),
                    models.Index(fields=["status", "delivery_confirmed_at"], name="order_status_delivered_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        check=models.Q(total=models.F("subtotal") - models.F("discount") + models.F("shipping")),
                        name="order_total_arithmetic",
                    ),
                    models.CheckConstraint(check=models.Q(("total__gte", 0)), name="order_total_non_negative"),
                    models.CheckConstraint(check=models.Q(("discount__gte", 0)), name="order_discount_non_negative"),
                    models.CheckConstraint(check=models.Q(("shipping__gte", 0)), name="order_shipping_non_negative"),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderItem",
            fields=[
                ("id", uuid_pk()),
                *timestamps(),
                ("product_id", models.CharField(max_length=64)),
                ("variant_id", models.CharField(blank=True, default="", max_length=64)),
                ("product_name", models.CharField(max_length=255)),
                ("product_snapshot", models.JSONField(default=dict)),
                ("variant_snapshot", models.JSONField(blank=True, null=True)),
                ("quantity", models.PositiveIntegerField()),
                ("unit_price", money()),
                ("line_total", money()),
                (
                    "status",
                    models.CharField(
                        choices=ITEM_STATUS_CHOICES,
                        db_index=True,
                        default="PENDING_PAYMENT",
                        max_length=20,
                    ),
                ),
                ("tracking_number", models.CharField(blank=True, default="", max_length=30)),
                ("tracking_url", models.URLField(blank=True, default="")),
                ("carrier_slug", models.CharField(blank=True, default="", max_length=50)),
                ("shipped_at", models.DateTimeField(blank=True, null=True)),
                ("delivered_at", models.DateTimeField(blank=True, null=True)),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="items",
                        to="orders.order",
                    ),
                ),
                (
                    "vendor",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="order_items",
                        to="authentication.vendor",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at"],
                "indexes": [
                    models.Index(fields=["vendor", "status"], name="order_item_vendor_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(check=models.Q(("quantity__gt", 0)), name="order_item_quantity_positive"),
                    models.CheckConstraint(
                        check=models.Q(("unit_price__gte", 0)), name="order_item_price_non_negative"
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="OrderStatusHistory",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                *timestamps(),
                ("previous_status", models.CharField(blank=True, default="", max_length=20)),
                ("status", models.CharField(max_length=20)),
                ("note", models.TextField(blank=True, default="")),
                (
                    "actor_role",
                    models.CharField(
                        choices=[
                            ("SYSTEM", "System"),
                            ("CUSTOMER", "Customer"),
                            ("VENDOR", "Vendor"),
                            ("ADMIN", "Admin"),
                        ],
                        max_length=10,
                    ),
                ),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "actor",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="+",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_history",
                        to="orders.order",
                    ),
                ),
                (
                    "order_item",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="status_history",
                        to="orders.orderitem",
                    ),
                ),
            ],
            options={
                "verbose_name_plural": "order status history",
                "ordering": ["created_at", "id"],
            },
        ),
        migrations.CreateModel(
            name="CouponUsage",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                *timestamps(),
                ("discount_amount", money()),
                (
                    "coupon",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="usages",
                        to="orders.coupon",
                    ),
                ),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="coupon_usages",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="coupon_usage",
                        to="orders.order",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["coupon", "customer"], name="coupon_usage_customer_idx"),
                ],
            },
        ),
    ]
