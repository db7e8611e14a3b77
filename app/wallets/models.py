"""
Wallet ledger models.

- Wallet: one per vendor; pending (escrow) and available (withdrawable)
  balances plus lifetime counters
- WalletTransaction: append-only ledger row with before/after snapshots
  of the balance column it targets
- Payout: vendor withdrawal request, managed by django-fsm

Invariants:
    pending_balance >= 0 and available_balance >= 0 (check constraints)
    balance_after = balance_before + amount on every ledger row
    replaying a wallet's ledger in id order reproduces both balances

Usage:
    from wallets.services import FundMovementService

    FundMovementService.credit_order(order)   # never touch balances directly
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from django_fsm import FSMField, transition

from core.exceptions import InvariantViolationError
from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel
from core.money import MoneyField


class BalanceType(models.TextChoices):
    """The wallet balance column a ledger row targets."""

    PENDING = "PENDING", "Pending"
    AVAILABLE = "AVAILABLE", "Available"


class TransactionType(models.TextChoices):
    CREDIT_PENDING = "CREDIT_PENDING", "Credit to pending"
    COMMISSION_DEDUCTION = "COMMISSION_DEDUCTION", "Commission deduction"
    RELEASE_AVAILABLE = "RELEASE_AVAILABLE", "Release to available"
    REFUND_REVERSAL = "REFUND_REVERSAL", "Refund reversal"
    PAYOUT_DEBIT = "PAYOUT_DEBIT", "Payout debit"
    PAYOUT_REVERSAL = "PAYOUT_REVERSAL", "Payout reversal"


# Written at most once per (wallet, order, balance column)
ONCE_PER_ORDER_TYPES = [
    TransactionType.CREDIT_PENDING,
    TransactionType.COMMISSION_DEDUCTION,
    TransactionType.RELEASE_AVAILABLE,
]


class PayoutStatus(models.TextChoices):
    PENDING = "PENDING", "Pending"
    PROCESSING = "PROCESSING", "Processing"
    COMPLETED = "COMPLETED", "Completed"
    FAILED = "FAILED", "Failed"


class Wallet(UUIDPrimaryKeyMixin, BaseModel):
    """
    Escrow wallet for a single vendor.

    Fields:
        vendor: Owning vendor (created by wallets.signals on onboarding)
        pending_balance: Funds held in escrow until delivery is confirmed
        available_balance: Funds the vendor may withdraw
        total_earnings: Lifetime net credits; never decreases on refund
        total_withdrawn: Lifetime completed payouts

    Note:
        Reading a wallet for display never feeds a mutation. The fund
        movement engine re-reads under select_for_update().
    """

    vendor = models.OneToOneField(
        "authentication.Vendor",
        on_delete=models.PROTECT,
        related_name="wallet",
    )
    pending_balance = MoneyField()
    available_balance = MoneyField()
    total_earnings = MoneyField()
    total_withdrawn = MoneyField()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                check=Q(pending_balance__gte=0),
                name="wallet_pending_balance_non_negative",
            ),
            models.CheckConstraint(
                check=Q(available_balance__gte=0),
                name="wallet_available_balance_non_negative",
            ),
        ]

    def __str__(self) -> str:
        return f"Wallet({self.vendor_id}, pending={self.pending_balance}, available={self.available_balance})"

    def get_balance(self, balance: str):
        if balance == BalanceType.PENDING:
            return self.pending_balance
        return self.available_balance

    def set_balance(self, balance: str, value) -> None:
        if balance == BalanceType.PENDING:
            self.pending_balance = value
        else:
            self.available_balance = value


class WalletTransaction(BaseModel):
    """
    Immutable ledger row.

    Uses an auto-increment primary key so replay order is insertion order.
    Each row targets exactly one balance column; a release therefore writes
    two rows (pending debit, available credit).

    Fields:
        wallet: Wallet whose balance changed
        type: Business reason for the movement
        balance: Balance column targeted (PENDING or AVAILABLE)
        amount: Signed delta applied to that column
        balance_before / balance_after: Column value read and written in
            the same transaction
        order: Source order for order-linked movements
        payout: Source payout for payout movements
        metadata: Order number, commission rate, gross and similar context
    """

    wallet = models.ForeignKey(
        Wallet,
        on_delete=models.PROTECT,
        related_name="transactions",
    )
    type = models.CharField(max_length=30, choices=TransactionType.choices, db_index=True)
    balance = models.CharField(max_length=10, choices=BalanceType.choices)
    amount = MoneyField(default=None)
    balance_before = MoneyField(default=None)
    balance_after = MoneyField(default=None)
    description = models.CharField(max_length=255, blank=True, default="")
    order = models.ForeignKey(
        "orders.Order",
        on_delete=models.PROTECT,
        related_name="wallet_transactions",
        null=True,
        blank=True,
    )
    payout = models.ForeignKey(
        "wallets.Payout",
        on_delete=models.PROTECT,
        related_name="wallet_transactions",
        null=True,
        blank=True,
    )
    metadata = models.JSONField(default=dict, blank=True)

    class Meta:
        ordering = ["-id"]
        indexes = [
            models.Index(fields=["wallet", "type"], name="wallet_tx_wallet_type_idx"),
            models.Index(fields=["wallet", "created_at"], name="wallet_tx_wallet_created_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=Q(balance_after=F("balance_before") + F("amount")),
                name="wallet_transaction_balance_arithmetic",
            ),
            models.UniqueConstraint(
                fields=["wallet", "order", "type", "balance"],
                condition=Q(type__in=ONCE_PER_ORDER_TYPES),
                name="wallet_transaction_once_per_order",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.type} {self.amount} ({self.balance}) on {self.wallet_id}"

    def save(self, *args, **kwargs):
        if not self._state.adding:
            raise InvariantViolationError(
                "Ledger entries are append-only",
                details={"transaction_id": self.pk},
            )
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise InvariantViolationError(
            "Ledger entries are append-only",
            details={"transaction_id": self.pk},
        )


class Payout(UUIDPrimaryKeyMixin, BaseModel):
    """
    Vendor withdrawal from the available balance.

    State Flow:
        PENDING -> PROCESSING -> COMPLETED
                               -> FAILED

    The available balance is debited when an admin starts processing and
    credited back if the payout fails. Completion only bumps the wallet's
    total_withdrawn counter.
    """

    wallet = models.ForeignKey(
        Wallet,
        on_delete=models.PROTECT,
        related_name="payouts",
    )
    amount = MoneyField(default=None)
    status = FSMField(
        default=PayoutStatus.PENDING,
        choices=PayoutStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the payout (managed by FSM)",
    )

    # Bank details
    bank_name = models.CharField(max_length=100)
    account_number = models.CharField(max_length=20)
    account_holder_name = models.CharField(max_length=100)
    branch_code = models.CharField(max_length=3, blank=True, default="")
    notes = models.TextField(blank=True, default="", max_length=500)

    # Processing
    processed_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        related_name="processed_payouts",
        null=True,
        blank=True,
    )
    transaction_reference = models.CharField(max_length=100, blank=True, default="")
    failure_reason = models.TextField(blank=True, default="")
    processed_at = models.DateTimeField(null=True, blank=True)
    completed_at = models.DateTimeField(null=True, blank=True)
    failed_at = models.DateTimeField(null=True, blank=True)

    version = models.PositiveIntegerField(
        default=1,
        help_text="Version for optimistic locking - incremented on each save",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["wallet", "status"], name="payout_wallet_status_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                check=Q(amount__gt=0),
                name="payout_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Payout({self.id}, {self.status}, {self.amount})"

    def save(self, *args, **kwargs):
        is_update = not self._state.adding and not kwargs.get("force_insert", False)
        if is_update:
            self.version = F("version") + 1
        super().save(*args, **kwargs)
        if is_update:
            self.refresh_from_db(fields=["version"])

    @transition(field=status, source=PayoutStatus.PENDING, target=PayoutStatus.PROCESSING)
    def start_processing(self, admin):
        self.processed_by = admin
        self.processed_at = timezone.now()

    @transition(field=status, source=PayoutStatus.PROCESSING, target=PayoutStatus.COMPLETED)
    def complete(self, transaction_reference: str):
        self.transaction_reference = transaction_reference
        self.completed_at = timezone.now()

    @transition(field=status, source=PayoutStatus.PROCESSING, target=PayoutStatus.FAILED)
    def fail(self, reason: str):
        self.failure_reason = reason
        self.failed_at = timezone.now()
