"""Tests for SPED monetary value parsing."""

from decimal import Decimal

import pytest

from spedtax.core.money import parse_amount, percentage, round_money


class TestParseAmount:
    """Normalization of monetary fields."""

    @pytest.mark.parametrize("raw,expected", [
        ("1234,56", Decimal("1234.56")),
        ("1.234,56", Decimal("1234.56")),
        ("1.234.567,89", Decimal("1234567.89")),
        ("1234.56", Decimal("1234.56")),
        ("1,234.56", Decimal("1234.56")),
        ("1,234,567", Decimal("1234567")),
        ("1.234.567", Decimal("1234567")),
        ("0,00", Decimal("0")),
        ("-150,25", Decimal("-150.25")),
        ("(100,00)", Decimal("-100.00")),
        ("  10000,00  ", Decimal("10000.00")),
    ])
    def test_formats(self, raw, expected):
        assert parse_amount(raw) == expected

    @pytest.mark.parametrize("raw", ["", "   ", None, "abc", "12,34,56x", "NaN", "Infinity"])
    def test_unparsable_is_zero(self, raw):
        assert parse_amount(raw) == Decimal("0")

    def test_numeric_inputs(self):
        assert parse_amount(10) == Decimal("10")
        assert parse_amount(2.5) == Decimal("2.5")
        assert parse_amount(Decimal("7.10")) == Decimal("7.10")
        assert parse_amount(Decimal("NaN")) == Decimal("0")


class TestHelpers:
    """Rounding and percentages."""

    def test_round_money_half_up(self):
        assert round_money(Decimal("10.005")) == Decimal("10.01")
        assert round_money(Decimal("10.004")) == Decimal("10.00")

    def test_percentage(self):
        assert percentage(Decimal("1288"), Decimal("10000")) == Decimal("12.88")

    @pytest.mark.parametrize("whole", [Decimal("0"), Decimal("-5")])
    def test_percentage_of_non_positive_is_zero(self, whole):
        assert percentage(Decimal("10"), whole) == Decimal("0")
