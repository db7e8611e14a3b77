"""
Tests for the Decimal money helpers.
"""

from decimal import Decimal

import pytest

from core.money import ZERO, format_money, to_money


class TestToMoney:

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            (Decimal("10"), Decimal("10.00")),
            ("99.995", Decimal("100.00")),
            ("0.005", Decimal("0.01")),
            ("-0.005", Decimal("-0.01")),
            (7, Decimal("7.00")),
            ("3.334", Decimal("3.33")),
        ],
    )
    def test_quantizes_half_up(self, value, expected):
        assert to_money(value) == expected

    def test_result_has_two_places(self):
        assert to_money("5").as_tuple().exponent == -2

    def test_rejects_floats(self):
        with pytest.raises(TypeError):
            to_money(0.1)

    @pytest.mark.parametrize("value", ["abc", "", None])
    def test_rejects_non_numbers(self, value):
        with pytest.raises(ValueError, match="Invalid money value"):
            to_money(value)


class TestFormatMoney:

    def test_format(self):
        assert format_money(Decimal("1000")) == "1000.00"
        assert format_money(Decimal("-500.5")) == "-500.50"
        assert format_money(ZERO) == "0.00"
