"""
Wallet-specific exceptions.

Exception Hierarchy:
    WalletError (base)
    └── WalletNotFoundError - Vendor has no wallet

    NegativeBalanceError - Mutation would drive a balance below zero
    DoubleReleaseError - Order funds released a second time
    (both InvariantViolationError: they abort the transaction)

Usage:
    from wallets.exceptions import NegativeBalanceError

    if after < 0:
        raise NegativeBalanceError(wallet.id, balance, before, amount)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from core.exceptions import BaseApplicationError, InvariantViolationError

if TYPE_CHECKING:
    from decimal import Decimal
    from typing import Any


class WalletError(BaseApplicationError):
    default_error_code: str = "WALLET_ERROR"


class WalletNotFoundError(WalletError):
    default_error_code: str = "WALLET_NOT_FOUND"


class NegativeBalanceError(InvariantViolationError):
    """
    Raised when a fund movement would leave a balance below zero.

    Never caught inside the fund movement engine: the whole transaction,
    including every other vendor wallet touched by the order, rolls back.
    """

    default_error_code: str = "NEGATIVE_BALANCE"

    def __init__(
        self,
        wallet_id: Any,
        balance: str,
        current: Decimal,
        delta: Decimal,
        details: dict[str, Any] | None = None,
    ):
        details = details or {}
        details.update(
            {
                "wallet_id": str(wallet_id),
                "balance": balance,
                "current": str(current),
                "delta": str(delta),
            }
        )
        super().__init__(
            f"{balance} balance of wallet {wallet_id} would become {current + delta}",
            details=details,
        )
        self.wallet_id = wallet_id
        self.balance = balance
        self.current = current
        self.delta = delta


class DoubleReleaseError(InvariantViolationError):
    """Raised when escrow for an order was already released."""

    default_error_code: str = "DOUBLE_RELEASE"
