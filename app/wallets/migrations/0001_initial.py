import uuid
from decimal import Decimal

import django.db.models.deletion
import django_fsm
from django.conf import settings
from django.db import migrations, models


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
        ("orders", "0001_initial"),
        migrations.swappable_dependency(settings.AUTH_USER_MODEL),
    ]

    operations = [
        migrations.CreateModel(
            name="Wallet",
            fields=[
                ("id", uuid_pk()),
                *timestamps(),
                ("pending_balance", money()),
                ("available_balance", money()),
                ("total_earnings", money()),
                ("total_withdrawn", money()),
                (
                    "vendor",
                    models.OneToOneField(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="wallet",
                        to="authentication.vendor",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "constraints": [
                    models.CheckConstraint(
                        check=models.Q(("pending_balance__gte", 0)),
                        name="wallet_pending_balance_non_negative",
                    ),
                    models.CheckConstraint(
                        check=models.Q(("available_balance__gte", 0)),
                        name="wallet_available_balance_non_negative",
                    ),
                ],
            },
        ),
        migrations.CreateModel(
            name="Payout",
            fields=[
                ("id", uuid_pk()),
                *timestamps(),
                ("amount", money(default=None)),
                (
                    "status",
                    django_fsm.FSMField(
                        choices=[
                            ("PENDING", "Pending"),
                            ("PROCESSING", "Processing"),
                            ("COMPLETED", "Completed"),
                            ("FAILED", "Failed"),
                        ],
                        db_index=True,
                        default="PENDING",
                        help_text="Current state of the payout (managed by FSM)",
                        max_length=50,
                        protected=True,
                    ),
                ),
                ("bank_name", models.CharField(max_length=100)),
                ("account_number", models.CharField(max_length=20)),
                ("account_holder_name", models.CharField(max_length=100)),
                ("branch_code", models.CharField(blank=True, default="", max_length=3)),
                ("notes", models.TextField(blank=True, default="", max_length=500)),
                ("transaction_reference", models.CharField(blank=True, default="", max_length=100)),
                ("failure_reason", models.TextField(blank=True, default="")),
                ("processed_at", models.DateTimeField(blank=True, null=True)),
                ("completed_at", models.DateTimeField(blank=True, null=True)),
                ("failed_at", models.DateTimeField(blank=True, null=True)),
                (
                    "version",
                    models.PositiveIntegerField(
                        default=1,
                        help_text="Version for optimistic locking - incremented on each save",
                    ),
                ),
                (
                    "processed_by",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.SET_NULL,
                        related_name="processed_payouts",
                        to=settings.AUTH_USER_MODEL,
                    ),
                ),
                (
                    "wallet",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="payouts",
                        to="wallets.wallet",
                    ),
                ),
            ],
            options={
                "ordering": ["-created_at"],
                "indexes": [
                    models.Index(fields=["wallet", "status"], name="payout_wallet_status_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(check=models.Q(("amount__gt", 0)), name="payout_amount_positive"),
                ],
            },
        ),
        migrations.CreateModel(
            name="WalletTransaction",
            fields=[
                ("id", models.BigAutoField(auto_created=True, primary_key=True, serialize=False, verbose_name="ID")),
                *timestamps(),
                (
                    "type",
                    models.CharField(
                        choices=[
                            ("CREDIT_PENDING", "Credit to pending"),
                            ("COMMISSION_DEDUCTION", "Commission deduction"),
                            ("RELEASE_AVAILABLE", "Release to available"),
                            ("REFUND_REVERSAL", "Refund reversal"),
                            ("PAYOUT_DEBIT", "Payout debit"),
                            ("PAYOUT_REVERSAL", "Payout reversal"),
                        ],
                        db_index=True,
                        max_length=30,
                    ),
                ),
                (
                    "balance",
                    models.CharField(choices=[("PENDING", "Pending"), ("AVAILABLE", "Available")], max_length=10),
                ),
                ("amount", money(default=None)),
                ("balance_before", money(default=None)),
                ("balance_after", money(default=None)),
                ("description", models.CharField(blank=True, default="", max_length=255)),
                ("metadata", models.JSONField(blank=True, default=dict)),
                (
                    "order",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="wallet_transactions",
                        to="orders.order",
                    ),
                ),
                (
                    "payout",
                    models.ForeignKey(
                        blank=True,
                        null=True,
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="wallet_transactions",
                        to="wallets.payout",
                    ),
                ),
                (
                    "wallet",
                    models.ForeignKey(
                        on_delete=django.db.models.deletion.PROTECT,
                        related_name="transactions",
                        to="wallets.wallet",
                    ),
                ),
            ],
            options={
                "ordering": ["-id"],
                "indexes": [
                    models.Index(fields=["wallet", "type"], name="wallet_tx_wallet_type_idx"),
                    models.Index(fields=["wallet", "created_at"], name="wallet_tx_wallet_created_idx"),
                ],
                "constraints": [
                    models.CheckConstraint(
                        check=models.Q(balance_after=models.F("balance_before") + models.F("amount")),
                        name="wallet_transaction_balance_arithmetic",
                    ),
                    models.UniqueConstraint(
                        condition=models.Q(
                            ("type__in", ["CREDIT_PENDING", "COMMISSION_DEDUCTION", "RELEASE_AVAILABLE"])
                        ),
                        fields=("wallet", "order", "type", "balance"),
                        name="wallet_transaction_once_per_order",
                    ),
                ],
            },
        ),
    ]
