"""
Fund movement engine and payout service.

All balance changes go through FundMovementService. Every mutation:
1. Locks the affected wallets (select_for_update, ordered by id)
2. Re-reads the balance inside the transaction
3. Writes the new balance and exactly one WalletTransaction row

Operations:
    credit_order: payment confirmed -> pending += net (two ledger rows)
    release_order: delivery confirmed -> pending -> available
    refund_order: cancellation / customer-favor dispute -> reverse net
    debit_payout / credit_back_payout: payout processing and failure

Failure semantics:
    A balance that would go negative raises NegativeBalanceError and a
    second release raises DoubleReleaseError. Both propagate out of the
    bounded atomic block so no wallet of the order is updated.

Usage:
    from wallets.services import FundMovementService

    with transaction.atomic():
        FundMovementService.credit_order(order)
"""

from __future__ import annotations

from collections import defaultdict
from dataclasses import dataclass, field
from decimal import Decimal
from typing import TYPE_CHECKING

from django.conf import settings
from django.db import transaction
from django.db.models import Sum
from django_fsm import can_proceed

from core.money import ZERO, format_money, to_money
from core.services import BaseService, ServiceResult
from notifications.models import NotificationType
from notifications.services import NotificationService
from wallets.allocation import AllocationLine, allocate_order, split_refund
from wallets.exceptions import (
    DoubleReleaseError,
    NegativeBalanceError,
    WalletNotFoundError,
)
from wallets.models import (
    BalanceType,
    Payout,
    PayoutStatus,
    TransactionType,
    Wallet,
    WalletTransaction,
)

# Ledger types that make up a vendor's refundable net for an order
NET_CREDIT_TYPES = (
    TransactionType.CREDIT_PENDING,
    TransactionType.COMMISSION_DEDUCTION,
    TransactionType.REFUND_REVERSAL,
)

if TYPE_CHECKING:
    from typing import Any

    from authentication.models import User, Vendor
    from orders.models import Order
    from wallets.allocation import VendorAllocation


@dataclass(frozen=True)
class FundMovement:
    """One vendor's share of an order-level movement."""

    vendor_id: Any
    wallet_id: Any
    amount: Decimal
    balance: str


@dataclass
class WalletReplay:
    """Balances reconstructed from a wallet's ledger."""

    pending_balance: Decimal = ZERO
    available_balance: Decimal = ZERO
    total_earnings: Decimal = ZERO
    entries: int = 0
    # ids of rows whose balance_before did not match the running total
    mismatched_entries: list = field(default_factory=list)

    def matches(self, wallet: Wallet) -> bool:
        return (
            not self.mismatched_entries
            and self.pending_balance == wallet.pending_balance
            and self.available_balance == wallet.available_balance
            and self.total_earnings == wallet.total_earnings
        )


def replay_wallet(wallet: Wallet) -> WalletReplay:
    """
    Rebuild a wallet's balances from zero by replaying its ledger.

    Entries are applied in insertion (id) order. A row whose
    balance_before differs from the running total is reported in
    mismatched_entries, which means a balance was written without a
    matching ledger row.
    """
    replay = WalletReplay()
    for entry in wallet.transactions.order_by("id").iterator():
        running = (
            replay.pending_balance
            if entry.balance == BalanceType.PENDING
            else replay.available_balance
        )
        if entry.balance_before != running:
            replay.mismatched_entries.append(entry.pk)

        if entry.balance == BalanceType.PENDING:
            replay.pending_balance = running + entry.amount
        else:
            replay.available_balance = running + entry.amount

        if entry.type in (
            TransactionType.CREDIT_PENDING,
            TransactionType.COMMISSION_DEDUCTION,
        ):
            replay.total_earnings += entry.amount
        replay.entries += 1
    return replay


class FundMovementService(BaseService):
    """
    Atomic balance mutations with paired ledger rows.

    Every public method opens a bounded atomic block. When called inside
    an outer transaction (webhook processor, delivery orchestrator) it
    becomes a savepoint and the outer block decides the commit.
    """

    # =========================================================================
    # Primitives
    # =========================================================================

    @classmethod
    def _lock_wallets(cls, vendor_ids) -> dict[Any, Wallet]:
        """Lock the wallets of the given vendors in id order."""
        vendor_ids = set(vendor_ids)
        wallets = {
            wallet.vendor_id: wallet
            for wallet in Wallet.objects.select_for_update()
            .filter(vendor_id__in=vendor_ids)
            .order_by("id")
        }
        missing = vendor_ids - set(wallets)
        if missing:
            raise WalletNotFoundError(
                "Vendor wallet not found",
                details={"vendor_ids": sorted(str(v) for v in missing)},
            )
        return wallets

    @classmethod
    def _apply(
        cls,
        wallet: Wallet,
        balance: str,
        amount: Decimal,
        transaction_type: str,
        description: str = "",
        order: Order | None = None,
        payout: Payout | None = None,
        metadata: dict | None = None,
    ) -> WalletTransaction:
        """
        Apply a signed delta to one balance column and append its ledger row.

        The wallet must already be locked by the caller's transaction.

        Raises:
            NegativeBalanceError: If the column would drop below zero
        """
        before = wallet.get_balance(balance)
        after = before + amount
        if after < 0:
            cls.get_logger().critical(
                "Negative balance prevented",
                extra={
                    "wallet_id": str(wallet.id),
                    "balance": balance,
                    "current": str(before),
                    "delta": str(amount),
                    "transaction_type": transaction_type,
                    "order_id": str(order.id) if order else None,
                },
            )
            raise NegativeBalanceError(wallet.id, balance, before, amount)

        wallet.set_balance(balance, after)
        column = "pending_balance" if balance == BalanceType.PENDING else "available_balance"
        wallet.save(update_fields=[column, "updated_at"])

        return WalletTransaction.objects.create(
            wallet=wallet,
            type=transaction_type,
            balance=balance,
            amount=amount,
            balance_before=before,
            balance_after=after,
            description=description,
            order=order,
            payout=payout,
            metadata=metadata or {},
        )

    @staticmethod
    def _order_metadata(order: Order) -> dict:
        return {"order_id": str(order.id), "order_number": order.order_number}

    @staticmethod
    def _order_vendor_ids(order: Order) -> list:
        return list(order.items.order_by().values_list("vendor_id", flat=True).distinct())

    @staticmethod
    def _order_totals(order: Order) -> dict[tuple, Decimal]:
        """Sum the order's ledger amounts by (wallet_id, type, balance)."""
        rows = (
            WalletTransaction.objects.filter(order=order)
            .values("wallet_id", "type", "balance")
            .annotate(total=Sum("amount"))
        )
        return {(r["wallet_id"], r["type"], r["balance"]): r["total"] for r in rows}

    # =========================================================================
    # Order-linked movements
    # =========================================================================

    @classmethod
    def credit_order(cls, order: Order) -> list[VendorAllocation]:
        """
        Credit every vendor of a paid order to its pending balance.

        Writes a CREDIT_PENDING row for the vendor's gross and a
        COMMISSION_DEDUCTION row for the platform take, then adds the net
        to total_earnings. A second call for the same order is a no-op.

        Returns:
            The per-vendor allocations applied (empty on duplicate)
        """
        logger = cls.get_logger()
        with cls.atomic(bounded=True):
            if WalletTransaction.objects.filter(
                order=order, type=TransactionType.CREDIT_PENDING
            ).exists():
                logger.warning(
                    "Order already credited, skipping",
                    extra={"order_id": str(order.id), "order_number": order.order_number},
                )
                return []

            items = list(order.items.select_related("vendor").order_by("created_at", "id"))
            allocations = allocate_order(
                AllocationLine(
                    vendor_id=item.vendor_id,
                    item_id=item.id,
                    line_total=item.line_total,
                    commission_rate=item.vendor.commission_rate,
                )
                for item in items
            )
            wallets = cls._lock_wallets(a.vendor_id for a in allocations)

            for allocation in allocations:
                wallet = wallets[allocation.vendor_id]
                metadata = {
                    **cls._order_metadata(order),
                    "vendor_id": str(allocation.vendor_id),
                    "item_ids": [str(i) for i in allocation.item_ids],
                    "gross": format_money(allocation.gross),
                    "commission": format_money(allocation.commission),
                    "commission_rate": str(allocation.commission_rate),
                    "net": format_money(allocation.net),
                }
                cls._apply(
                    wallet,
                    BalanceType.PENDING,
                    allocation.gross,
                    TransactionType.CREDIT_PENDING,
                    description=f"Payment for order {order.order_number}",
                    order=order,
                    metadata=metadata,
                )
                if allocation.commission:
                    cls._apply(
                        wallet,
                        BalanceType.PENDING,
                        -allocation.commission,
                        TransactionType.COMMISSION_DEDUCTION,
                        description=f"Platform commission for order {order.order_number}",
                        order=order,
                        metadata=metadata,
                    )
                wallet.total_earnings += allocation.net
                wallet.save(update_fields=["total_earnings", "updated_at"])

            logger.info(
                "Order credited to vendor wallets",
                extra={
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "vendors": len(allocations),
                    "net_total": format_money(sum((a.net for a in allocations), ZERO)),
                    "commission_total": format_money(
                        sum((a.commission for a in allocations), ZERO)
                    ),
                },
            )
            return allocations

    @classmethod
    def release_order(cls, order: Order) -> list[FundMovement]:
        """
        Move each vendor's escrowed net for the order from pending to
        available.

        The amount released is the order's remaining pending position per
        wallet (credits, commission and any pre-release refunds).

        Raises:
            DoubleReleaseError: If the order was already released
            NegativeBalanceError: If a pending balance cannot cover it
        """
        logger = cls.get_logger()
        with cls.atomic(bounded=True):
            wallets = cls._lock_wallets(cls._order_vendor_ids(order))

            if WalletTransaction.objects.filter(
                order=order, type=TransactionType.RELEASE_AVAILABLE
            ).exists():
                logger.critical(
                    "Escrow release attempted twice",
                    extra={"order_id": str(order.id), "order_number": order.order_number},
                )
                raise DoubleReleaseError(
                    f"Funds for order {order.order_number} were already released",
                    details={"order_id": str(order.id)},
                )

            pending_position: dict[Any, Decimal] = defaultdict(lambda: ZERO)
            for (wallet_id, _type, balance), total in cls._order_totals(order).items():
                if balance == BalanceType.PENDING:
                    pending_position[wallet_id] += total

            movements = []
            for vendor_id, wallet in wallets.items():
                amount = pending_position[wallet.id]
                if amount <= 0:
                    continue
                metadata = {**cls._order_metadata(order), "vendor_id": str(vendor_id)}
                description = f"Escrow released for order {order.order_number}"
                cls._apply(
                    wallet,
                    BalanceType.PENDING,
                    -amount,
                    TransactionType.RELEASE_AVAILABLE,
                    description=description,
                    order=order,
                    metadata=metadata,
                )
                cls._apply(
                    wallet,
                    BalanceType.AVAILABLE,
                    amount,
                    TransactionType.RELEASE_AVAILABLE,
                    description=description,
                    order=order,
                    metadata=metadata,
                )
                movements.append(
                    FundMovement(vendor_id, wallet.id, amount, BalanceType.AVAILABLE)
                )

            if not movements:
                logger.warning(
                    "No escrowed funds to release",
                    extra={"order_id": str(order.id), "order_number": order.order_number},
                )
            else:
                logger.info(
                    "Escrow released",
                    extra={
                        "order_id": str(order.id),
                        "order_number": order.order_number,
                        "amount": format_money(sum((m.amount for m in movements), ZERO)),
                    },
                )
            return movements

    @classmethod
    def refundable_amount(cls, order: Order) -> Decimal:
        """Net still refundable across all vendors for the order."""
        remaining = ZERO
        for (_wallet_id, tx_type, _balance), total in cls._order_totals(order).items():
            if tx_type in NET_CREDIT_TYPES:
                remaining += total
        return remaining

    @classmethod
    def refund_order(
        cls,
        order: Order,
        amount: Decimal | None = None,
        reason: str = "",
    ) -> list[FundMovement]:
        """
        Reverse vendor credits for an order.

        Args:
            order: Order whose credits are reversed
            amount: Total to reverse across vendors; None reverses each
                vendor's full remaining net. Split in proportion to the
                remaining net and capped by it.
            reason: Stored in the ledger metadata

        Each vendor's share comes out of available if that wallet's escrow
        for the order was released, otherwise out of pending.
        total_earnings is left untouched.

        Raises:
            NegativeBalanceError: If the source balance cannot cover the
                share (e.g. the vendor already withdrew it)
        """
        logger = cls.get_logger()
        with cls.atomic(bounded=True):
            wallets = cls._lock_wallets(cls._order_vendor_ids(order))
            totals = cls._order_totals(order)

            remaining: dict[Any, Decimal] = defaultdict(lambda: ZERO)
            released: set = set()
            for (wallet_id, tx_type, _balance), total in totals.items():
                if tx_type == TransactionType.RELEASE_AVAILABLE:
                    released.add(wallet_id)
                elif tx_type in NET_CREDIT_TYPES:
                    remaining[wallet_id] += total

            by_vendor = {
                vendor_id: remaining[wallet.id] for vendor_id, wallet in wallets.items()
            }
            if amount is None:
                shares = {v: r for v, r in by_vendor.items() if r > 0}
            else:
                shares = split_refund(to_money(amount), by_vendor)

            movements = []
            for vendor_id, share in shares.items():
                wallet = wallets[vendor_id]
                balance = (
                    BalanceType.AVAILABLE if wallet.id in released else BalanceType.PENDING
                )
                cls._apply(
                    wallet,
                    balance,
                    -share,
                    TransactionType.REFUND_REVERSAL,
                    description=f"Refund for order {order.order_number}",
                    order=order,
                    metadata={
                        **cls._order_metadata(order),
                        "vendor_id": str(vendor_id),
                        "reason": reason,
                    },
                )
                movements.append(FundMovement(vendor_id, wallet.id, share, balance))

            logger.info(
                "Order credits reversed",
                extra={
                    "order_id": str(order.id),
                    "order_number": order.order_number,
                    "requested": format_money(amount) if amount is not None else "full",
                    "reversed": format_money(sum((m.amount for m in movements), ZERO)),
                },
            )
            return movements

    # =========================================================================
    # Payout movements
    # =========================================================================

    @classmethod
    def debit_payout(cls, payout: Payout) -> WalletTransaction:
        with cls.atomic(bounded=True):
            wallet = Wallet.objects.select_for_update().get(pk=payout.wallet_id)
            return cls._apply(
                wallet,
                BalanceType.AVAILABLE,
                -payout.amount,
                TransactionType.PAYOUT_DEBIT,
                description="Payout processing",
                payout=payout,
                metadata={"payout_id": str(payout.id)},
            )

    @classmethod
    def credit_back_payout(cls, payout: Payout) -> WalletTransaction:
        """Return a failed payout's amount to the available balance."""
        with cls.atomic(bounded=True):
            wallet = Wallet.objects.select_for_update().get(pk=payout.wallet_id)
            return cls._apply(
                wallet,
                BalanceType.AVAILABLE,
                payout.amount,
                TransactionType.PAYOUT_REVERSAL,
                description="Payout failed, amount returned",
                payout=payout,
                metadata={"payout_id": str(payout.id), "reason": payout.failure_reason},
            )


class PayoutService(BaseService):
    """
    Vendor payout lifecycle.

    request_payout (vendor) -> process_payout (admin, debits available)
    -> complete_payout | fail_payout (admin).
    """

    @classmethod
    def request_payout(
        cls,
        vendor: Vendor,
        amount: Decimal,
        bank_name: str,
        account_number: str,
        account_holder_name: str,
        branch_code: str = "",
        notes: str = "",
    ) -> ServiceResult[Payout]:
        amount = to_money(amount)
        minimum = to_money(settings.PAYOUT_MIN_AMOUNT)
        maximum = to_money(settings.PAYOUT_MAX_AMOUNT)
        if amount < minimum or amount > maximum:
            return ServiceResult.failure(
                f"Payout amount must be between {minimum} and {maximum}",
                error_code="INVALID_PAYOUT_AMOUNT",
            )

        with cls.atomic(bounded=True):
            wallet = Wallet.objects.select_for_update().filter(vendor=vendor).first()
            if wallet is None:
                return ServiceResult.failure("Wallet not found", error_code="WALLET_NOT_FOUND")

            if Payout.objects.filter(wallet=wallet, status=PayoutStatus.PENDING).exists():
                return ServiceResult.failure(
                    "You already have a pending payout request",
                    error_code="PENDING_PAYOUT_EXISTS",
                )

            if amount > wallet.available_balance:
                return ServiceResult.failure(
                    "Insufficient available balance",
                    error_code="INSUFFICIENT_BALANCE",
                )

            payout = Payout.objects.create(
                wallet=wallet,
                amount=amount,
                bank_name=bank_name,
                account_number=account_number,
                account_holder_name=account_holder_name,
                branch_code=branch_code,
                notes=notes,
            )

        cls.get_logger().info(
            "Payout requested",
            extra={
                "payout_id": str(payout.id),
                "wallet_id": str(wallet.id),
                "amount": format_money(amount),
            },
        )
        return ServiceResult.success(payout)

    @classmethod
    def _lock_payout(cls, payout_id) -> Payout | None:
        return Payout.objects.select_for_update().filter(pk=payout_id).first()

    @classmethod
    def process_payout(cls, payout_id, admin: User) -> ServiceResult[Payout]:
        """PENDING -> PROCESSING; debits the vendor's available balance."""
        with cls.atomic(bounded=True):
            payout = cls._lock_payout(payout_id)
            if payout is None:
                return ServiceResult.failure("Payout not found", error_code="PAYOUT_NOT_FOUND")
            if not can_proceed(payout.start_processing):
                return ServiceResult.failure(
                    f"Cannot process a payout in {payout.status} status",
                    error_code="INVALID_PAYOUT_STATUS",
                )

            wallet = Wallet.objects.select_for_update().get(pk=payout.wallet_id)
            if wallet.available_balance < payout.amount:
                return ServiceResult.failure(
                    "Insufficient available balance",
                    error_code="INSUFFICIENT_BALANCE",
                )

            payout.start_processing(admin)
            payout.save()
            FundMovementService.debit_payout(payout)
            cls._notify_vendor_on_commit(payout, "Payout processing", "Your payout is being processed.")

        cls.get_logger().info(
            "Payout processing",
            extra={"payout_id": str(payout.id), "admin_id": admin.pk},
        )
        return ServiceResult.success(payout)

    @classmethod
    def complete_payout(
        cls, payout_id, admin: User, transaction_reference: str
    ) -> ServiceResult[Payout]:
        """PROCESSING -> COMPLETED; adds the amount to total_withdrawn."""
        with cls.atomic(bounded=True):
            payout = cls._lock_payout(payout_id)
            if payout is None:
                return ServiceResult.failure("Payout not found", error_code="PAYOUT_NOT_FOUND")
            if not can_proceed(payout.complete):
                return ServiceResult.failure(
                    f"Cannot complete a payout in {payout.status} status",
                    error_code="INVALID_PAYOUT_STATUS",
                )

            payout.complete(transaction_reference)
            payout.save()

            wallet = Wallet.objects.select_for_update().get(pk=payout.wallet_id)
            wallet.total_withdrawn += payout.amount
            wallet.save(update_fields=["total_withdrawn", "updated_at"])
            cls._notify_vendor_on_commit(
                payout,
                "Payout completed",
                f"Your payout of {format_money(payout.amount)} has been sent.",
            )

        cls.get_logger().info(
            "Payout completed",
            extra={"payout_id": str(payout.id), "admin_id": admin.pk},
        )
        return ServiceResult.success(payout)

    @classmethod
    def fail_payout(cls, payout_id, admin: User, reason: str) -> ServiceResult[Payout]:
        """PROCESSING -> FAILED; credits the amount back to available."""
        with cls.atomic(bounded=True):
            payout = cls._lock_payout(payout_id)
            if payout is None:
                return ServiceResult.failure("Payout not found", error_code="PAYOUT_NOT_FOUND")
            if not can_proceed(payout.fail):
                return ServiceResult.failure(
                    f"Cannot fail a payout in {payout.status} status",
                    error_code="INVALID_PAYOUT_STATUS",
                )

            payout.fail(reason)
            payout.save()
            FundMovementService.credit_back_payout(payout)
            cls._notify_vendor_on_commit(
                payout,
                "Payout failed",
                f"Your payout could not be completed: {reason}",
            )

        cls.get_logger().warning(
            "Payout failed",
            extra={"payout_id": str(payout.id), "admin_id": admin.pk, "reason": reason},
        )
        return ServiceResult.success(payout)

    @staticmethod
    def _notify_vendor_on_commit(payout: Payout, title: str, message: str) -> None:
        recipient = payout.wallet.vendor.user

        transaction.on_commit(
            lambda: NotificationService.notify_best_effort(
                recipient=recipient,
                notification_type=NotificationType.PAYOUT_UPDATE,
                title=title,
                message=message,
                link=f"{settings.FRONTEND_URL}/vendor/wallet",
                metadata={"payout_id": str(payout.id), "status": payout.status},
            )
        )
