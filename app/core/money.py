"""
Decimal money helpers.

All monetary values are fixed-point Decimals with two places (the currency's
minor unit). Binary floats are never used for amounts.

Usage:
    from core.money import MoneyField, to_money, ZERO

    class Wallet(BaseModel):
        pending_balance = MoneyField()

    net = to_money(Decimal("600") * (1 - rate))
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import TYPE_CHECKING

from django.db import models

if TYPE_CHECKING:
    from typing import Any

MONEY_PLACES = 2
MONEY_QUANT = Decimal("0.01")
ZERO = Decimal("0.00")


def to_money(value: Any) -> Decimal:
    """
    Quantize a value to the currency minor unit (half-up).

    Accepts Decimals, ints and strings. Floats are rejected because their
    binary representation already lost precision.

    Raises:
        TypeError: If value is a float
        ValueError: If value is not a number
    """
    if isinstance(value, float):
        raise TypeError("Money values must not be floats")
    try:
        return Decimal(value).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)
    except (InvalidOperation, TypeError) as exc:
        raise ValueError(f"Invalid money value: {value!r}") from exc


def format_money(value: Decimal) -> str:
    """Render an amount with exactly two decimal places (e.g. '1000.00')."""
    return f"{to_money(value):.2f}"


def MoneyField(**kwargs: Any) -> models.DecimalField:  # noqa: N802
    """DecimalField preset for amounts (12 digits, 2 places, default 0.00)."""
    kwargs.setdefault("max_digits", 12)
    kwargs.setdefault("decimal_places", MONEY_PLACES)
    kwargs.setdefault("default", ZERO)
    return models.DecimalField(**kwargs)
