"""
Tests for the pure earnings split in wallets.allocation.
"""

from decimal import Decimal

import pytest

from wallets.allocation import AllocationLine, allocate_order, split_refund


def lines(*specs):
    return [
        AllocationLine(vendor_id=vendor, item_id=index, line_total=Decimal(total), commission_rate=Decimal(rate))
        for index, (vendor, total, rate) in enumerate(specs)
    ]


class TestAllocateOrder:

    def test_single_vendor(self):
        [allocation] = allocate_order(lines(("a", "1000.00", "0.10")))

        assert allocation.gross == Decimal("1000.00")
        assert allocation.commission == Decimal("100.00")
        assert allocation.net == Decimal("900.00")

    def test_two_vendors_same_rate(self):
        first, second = allocate_order(lines(("a", "600.00", "0.10"), ("b", "400.00", "0.10")))

        assert (first.vendor_id, first.net, first.commission) == ("a", Decimal("540.00"), Decimal("60.00"))
        assert (second.vendor_id, second.net, second.commission) == ("b", Decimal("360.00"), Decimal("40.00"))

    def test_lines_are_grouped_per_vendor(self):
        [allocation] = allocate_order(
            lines(("a", "250.00", "0.10"), ("a", "750.00", "0.10"))
        )

        assert allocation.gross == Decimal("1000.00")
        assert allocation.item_ids == [0, 1]

    def test_cents_go_to_largest_remainder(self):
        # Exact commissions 3.335 + 3.335 + 3.33 = 10.00; one cent left over
        allocations = allocate_order(
            lines(("a", "33.35", "0.10"), ("b", "33.35", "0.10"), ("c", "33.30", "0.10"))
        )

        commissions = [a.commission for a in allocations]
        assert commissions == [Decimal("3.34"), Decimal("3.33"), Decimal("3.33")]
        assert sum(commissions) == Decimal("10.00")

    @pytest.mark.parametrize(
        "specs",
        [
            [("a", "0.01", "0.10")],
            [("a", "19.99", "0.075"), ("b", "0.03", "0.15"), ("c", "1234.57", "0.125")],
            [("a", "100.00", "0.00")],
        ],
    )
    def test_split_is_conserved(self, specs):
        allocations = allocate_order(lines(*specs))

        gross = sum(Decimal(total) for _, total, _ in specs)
        assert sum(a.net + a.commission for a in allocations) == gross
        assert all(a.net >= 0 and a.commission >= 0 for a in allocations)

    def test_mixed_rates_for_one_vendor(self):
        with pytest.raises(ValueError, match="mixed commission rates"):
            allocate_order(lines(("a", "10.00", "0.10"), ("a", "10.00", "0.20")))

    @pytest.mark.parametrize("rate", ["-0.01", "1.00"])
    def test_rate_out_of_range(self, rate):
        with pytest.raises(ValueError):
            allocate_order(lines(("a", "10.00", rate)))

    def test_empty_order(self):
        assert allocate_order([]) == []


class TestSplitRefund:

    def test_proportional(self):
        shares = split_refund(Decimal("500.00"), {"a": Decimal("540.00"), "b": Decimal("360.00")})

        assert shares == {"a": Decimal("300.00"), "b": Decimal("200.00")}

    def test_capped_at_remaining(self):
        shares = split_refund(Decimal("5000.00"), {"a": Decimal("540.00"), "b": Decimal("360.00")})

        assert shares == {"a": Decimal("540.00"), "b": Decimal("360.00")}

    def test_uneven_cents(self):
        shares = split_refund(
            Decimal("100.00"),
            {"a": Decimal("100.00"), "b": Decimal("100.00"), "c": Decimal("100.00")},
        )

        assert sum(shares.values()) == Decimal("100.00")
        assert shares["a"] == Decimal("33.34")

    def test_nothing_left(self):
        assert split_refund(Decimal("10.00"), {"a": Decimal("0.00")}) == {}
