"""
Pure earnings and refund split calculations.

No database access: callers pass plain values and apply the results
through FundMovementService.

Rounding policy:
    Commission for each vendor is computed exactly (line totals x rate),
    floored to the minor unit, and the leftover cents are handed out by
    largest remainder so the order's total commission equals the half-up
    rounding of the exact total. Ties go to the vendor seen first.

Usage:
    from wallets.allocation import AllocationLine, allocate_order

    allocations = allocate_order([
        AllocationLine(vendor_id=1, item_id=10, line_total=Decimal("600.00"),
                       commission_rate=Decimal("0.10")),
        AllocationLine(vendor_id=2, item_id=11, line_total=Decimal("400.00"),
                       commission_rate=Decimal("0.10")),
    ])
    # -> commissions 60.00 + 40.00, nets 540.00 + 360.00
"""

from __future__ import annotations

from dataclasses import dataclass, field
from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import TYPE_CHECKING

from core.money import MONEY_QUANT, ZERO, to_money

if TYPE_CHECKING:
    from collections.abc import Iterable, Mapping
    from typing import Any


@dataclass(frozen=True)
class AllocationLine:
    """One order item as seen by the allocator."""

    vendor_id: Any
    item_id: Any
    line_total: Decimal
    commission_rate: Decimal


@dataclass
class VendorAllocation:
    """
    Per-vendor split of an order.

    Attributes:
        vendor_id: Vendor receiving the net amount
        gross: Sum of the vendor's line totals
        commission_rate: Rate applied (one rate per vendor)
        commission: Platform take after cent allocation
        net: gross - commission, credited to the vendor's pending balance
        item_ids: Order items included in this allocation
    """

    vendor_id: Any
    gross: Decimal
    commission_rate: Decimal
    commission: Decimal = ZERO
    net: Decimal = ZERO
    item_ids: list = field(default_factory=list)


def _floor_cents(value: Decimal) -> Decimal:
    return value.quantize(MONEY_QUANT, rounding=ROUND_DOWN)


def _distribute(
    exact_shares: list[Decimal],
    target_total: Decimal,
) -> list[Decimal]:
    """
    Round shares to cents so they sum exactly to target_total.

    Floors every share, then adds one cent to the shares with the largest
    fractional remainder (earliest index wins ties) until the total matches.
    """
    floors = [_floor_cents(share) for share in exact_shares]
    leftover_cents = int((target_total - sum(floors, ZERO)) / MONEY_QUANT)
    ranked = sorted(
        range(len(exact_shares)),
        key=lambda i: (-(exact_shares[i] - floors[i]), i),
    )
    for i in ranked[:leftover_cents]:
        floors[i] += MONEY_QUANT
    return floors


def allocate_order(lines: Iterable[AllocationLine]) -> list[VendorAllocation]:
    """
    Group order lines by vendor and split each vendor's gross into
    platform commission and vendor net.

    Returns:
        One VendorAllocation per vendor, in first-seen order. The sum of
        nets plus the sum of commissions always equals the sum of line
        totals.

    Raises:
        ValueError: If a vendor's lines carry different commission rates
            or a rate is outside [0, 1)
    """
    by_vendor: dict[Any, VendorAllocation] = {}
    for line in lines:
        rate = Decimal(line.commission_rate)
        if rate < 0 or rate >= 1:
            raise ValueError(f"Commission rate must be in [0, 1), got {rate}")

        allocation = by_vendor.get(line.vendor_id)
        if allocation is None:
            allocation = VendorAllocation(
                vendor_id=line.vendor_id,
                gross=ZERO,
                commission_rate=rate,
            )
            by_vendor[line.vendor_id] = allocation
        elif allocation.commission_rate != rate:
            raise ValueError(f"Vendor {line.vendor_id} has mixed commission rates")

        allocation.gross += to_money(line.line_total)
        allocation.item_ids.append(line.item_id)

    allocations = list(by_vendor.values())
    if not allocations:
        return []

    exact = [a.gross * a.commission_rate for a in allocations]
    target = sum(exact, Decimal("0")).quantize(MONEY_QUANT, rounding=ROUND_HALF_UP)
    commissions = _distribute(exact, target)

    for allocation, commission in zip(allocations, commissions):
        allocation.commission = commission
        allocation.net = allocation.gross - commission
    return allocations


def split_refund(
    amount: Decimal,
    remaining_by_vendor: Mapping[Any, Decimal],
) -> dict[Any, Decimal]:
    """
    Split a refund across vendors in proportion to their remaining net.

    The amount is capped at the total remaining. Because each exact share
    is at most the vendor's remaining net, the largest-remainder rounding
    never pushes a vendor past its own remaining.

    Args:
        amount: Requested refund (already validated as positive)
        remaining_by_vendor: Net still refundable per vendor for the order

    Returns:
        Mapping of vendor id to refund share; vendors with no share are
        omitted.
    """
    vendor_ids = [v for v, remaining in remaining_by_vendor.items() if remaining > 0]
    total_remaining = sum((remaining_by_vendor[v] for v in vendor_ids), ZERO)
    if total_remaining <= 0:
        return {}

    capped = min(to_money(amount), total_remaining)
    if capped == total_remaining:
        return {v: remaining_by_vendor[v] for v in vendor_ids}

    exact = [capped * remaining_by_vendor[v] / total_remaining for v in vendor_ids]
    shares = _distribute(exact, capped)
    return {v: share for v, share in zip(vendor_ids, shares) if share > 0}
