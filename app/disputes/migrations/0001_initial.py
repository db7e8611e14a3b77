import uuid
from decimal import Decimal

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


def timestamps():
    return [
        (
            "created_at",
            models.DateTimeField(auto_now_add=True, db_index=True, help_text="Timestamp when this record was created"),
        ),
        ("updated_at", models.DateTimeField(auto_now=True, help_text="Timestamp when this record was last modified")),
    ]


class Migration(migrations.Migration):

    initial = True

    dependencies = [
        ("orders", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Dispute",
            fields=[
                (
                    "id",
                    models.UUIDField(
                        default=uuid.uuid4,
                        editable=False,
                        help_text="Unique identifier (UUID v4)",
                        primary_key=True,
                        serialize=False,
                    ),
                ),
                *timestamps(),
                (
                    "reason",
                    models.CharField(
                        choices=[
                            ("DAMAGED_PRODUCT", "Damaged product"),
                            ("WRONG_ITEM", "Wrong item"),
                            ("NOT_AS_DESCRIBED", "Not as described"),
                            ("NOT_RECEIVED", "Not received"),
                            ("QUALITY_ISSUE", "Quality issue"),
                            ("OTHER", "Other"),
                        ],
                        max_length=20,
                    ),
                ),
                ("description", models.TextField()),
                ("evidence", models.JSONField(blank=True, default=list)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("OPEN", "Open"),
                            ("IN_REVIEW", "In review"),
                            ("RESOLVED_CUSTOMER_FAVOR", "Resolved in customer's favor"),
                            ("RESOLVED_VENDOR_FAVOR", "Resolved in vendor's favor"),
                            ("CLOSED", "Closed"),
                        ],
                        db_index=True,
                        default="OPEN",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("order_status_at_open", models.CharField(blank=True, default="", max_length=20)),
                (
                    "resolution_type",
                    models.CharField(
                        blank=True,
                        choices=[
                            ("CUSTOMER_FAVOR", "Customer favor"),
                            ("VENDOR_FAVOR", "Vendor favor"),
                            ("CLOSED_NO_ACTION", "Closed, no action"),
                        ],
                        default="",
                        max_length=20,
                    ),
                ),
                ("resolution_notes", models.TextField(blank=True, default="")),
                ("resolved_at", models.DateTimeField(blank=True, null=True)),
                (
                    "refund_amount",
                    models.DecimalField(blank=True, decimal_places=2, default=None, max_digits=12, null=True),
                ),
                ("refunded_amount", models.DecimalField(decimal_places=2, default=Decimal("0.00"), max_digits=12)),
                ("refunded_at", models.DateTimeField(blank=True, null=True)),
                ("refund_failed", models.BooleanField(default=False)),
                ("refund_error", models.TextField(blank=True, default="")),
                (
                    "customer",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="disputes",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "order",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="disputes",
                        to="orders.order",
                    ),
                ),
                (
                    "resolved_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="resolved_disputes",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["order", "status"], name="dispute_order_status_idx"),
                    models.Index(fields=["status", "-created_at"], name="dispute_status_created_idx"),
                ],
            },
        ),
        migrations.CreateModel(
            name="DisputeComment",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                *timestamps(),
                ("author_role", models.CharField(blank=True, default="", max_length=10)),
                ("body", models.TextField()),
                ("is_system", models.BooleanField(default=False)),
                (
                    "author",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="dispute_comments",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "dispute",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.CASCADE,
                        related_name="comments",
                        to="disputes.dispute",
                    ),
                ),
            ],
            options={
                "ordering": ["created_at", "id"],
            },
        ),
    ]
