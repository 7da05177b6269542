"""
Unit tests for currency formatting.
"""

from decimal import Decimal

import pytest

from earnings_console.service.currency import format_currency, parse_currency, round_money


@pytest.mark.parametrize(
    "amount, expected",
    [
        (Decimal("0"), "£0.00"),
        (Decimal("85"), "£85.00"),
        (Decimal("1234.5"), "£1,234.50"),
        (Decimal("1234567.89"), "£1,234,567.89"),
        (12450.0, "£12,450.00"),
        (Decimal("-5"), "-£5.00"),
    ],
)
def test_format_gbp(amount, expected):
    assert format_currency(amount, "GBP") == expected


def test_format_uses_half_even_rounding():
    assert format_currency(Decimal("0.125"), "GBP") == "£0.12"
    assert format_currency(Decimal("0.135"), "GBP") == "£0.14"
    assert round_money(Decimal("2.675")) == Decimal("2.68")


def test_float_input_has_no_binary_noise():
    assert format_currency(0.1 + 0.2, "GBP") == "£0.30"


def test_tiny_negative_does_not_render_negative_zero():
    assert format_currency(Decimal("-0.001"), "GBP") == "£0.00"


def test_other_currencies():
    assert format_currency(Decimal("10"), "usd") == "$10.00"
    assert format_currency(Decimal("10"), "EUR") == "€10.00"
    assert format_currency(Decimal("10"), "CHF") == "CHF 10.00"


@pytest.mark.parametrize("amount", ["0.01", "85.00", "1234.56", "987654.32", "-42.10"])
def test_formatted_amount_parses_back(amount):
    assert parse_currency(format_currency(Decimal(amount), "GBP")) == Decimal(amount)


def test_parse_rejects_text_without_amount():
    with pytest.raises(ValueError):
        parse_currency("£")
