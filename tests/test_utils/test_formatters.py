"""Tests for formatting utilities."""

from shop_ledger.utils.formatters import (
    format_currency,
    format_order_number,
    format_quantity,
)


class TestFormatCurrency:
    """Test USD currency formatting."""

    def test_basic_amount(self):
        assert format_currency(10.00) == "$10.00"

    def test_zero(self):
        assert format_currency(0) == "$0.00"

    def test_large_number_comma_separated(self):
        assert format_currency(1234567.89) == "$1,234,567.89"

    def test_core_refund_is_negative(self):
        assert format_currency(-15.00) == "-$15.00"


class TestFormatQuantity:
    def test_positive(self):
        assert format_quantity(12) == "12"

    def test_negative_is_flagged(self):
        assert format_quantity(-3) == "-3 (NEG)"


class TestFormatOrderNumber:
    def test_padding(self):
        assert format_order_number("SO", 42) == "SO-000042"
        assert format_order_number("WO", 1) == "WO-000001"
