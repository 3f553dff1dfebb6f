"""Tests for amount parsing."""

from decimal import Decimal

import pytest

from bankrecon.utils.amount_parser import (
    amounts_match,
    amounts_match_cross_currency,
    format_plain,
    parse_amount,
    to_decimal,
)


@pytest.mark.parametrize(
    "text, expected",
    [
        ("123.45", Decimal("123.45")),
        ("$123.45", Decimal("123.45")),
        ("1,234.56", Decimal("1234.56")),
        ("1.234,56", Decimal("1234.56")),
        ("123,45", Decimal("123.45")),
        ("-50", Decimal("-50")),
        ("(123.45)", Decimal("-123.45")),
        ("$ 1.000.000,00", Decimal("1000000.00")),
    ],
)
def test_parse_amount_formats(text, expected):
    assert parse_amount(text) == expected


def test_parse_amount_rejects_garbage():
    with pytest.raises(ValueError):
        parse_amount("")
    with pytest.raises(ValueError):
        parse_amount("abc")


@pytest.mark.parametrize("text", ["NaN", "nan", "Infinity", "-Infinity", "sNaN"])
def test_parse_amount_rejects_non_finite(text):
    with pytest.raises(ValueError):
        parse_amount(text)


def test_to_decimal_handles_cell_types():
    assert to_decimal(None) is None
    assert to_decimal("") is None
    assert to_decimal("abc") is None
    assert to_decimal(True) is None
    assert to_decimal(10) == Decimal("10")
    assert to_decimal(0.1) == Decimal("0.1")
    assert to_decimal("1.500,25") == Decimal("1500.25")


def test_to_decimal_drops_non_finite_values():
    assert to_decimal("NaN") is None
    assert to_decimal("Infinity") is None
    assert to_decimal(Decimal("NaN")) is None
    assert to_decimal(float("inf")) is None
    assert to_decimal(float("nan")) is None


def test_amounts_match_uses_absolute_values_and_tolerance():
    assert amounts_match(Decimal("1000"), Decimal("1001"))
    assert amounts_match(Decimal("-1000"), Decimal("1000"))
    assert not amounts_match(Decimal("1000"), Decimal("1001.01"))
    assert not amounts_match(None, Decimal("1"))


def test_format_plain():
    assert format_plain(None) == ""
    assert format_plain(Decimal("0.00")) == "0"
    assert format_plain(Decimal("1500.00")) == "1500"
    assert format_plain(Decimal("12.50")) == "12.5"


def test_cross_currency_match_converts_and_applies_percentage():
    rate = Decimal("1000")
    tolerance = Decimal("5")

    assert amounts_match_cross_currency(Decimal("300"), rate, Decimal("300000"), tolerance)
    assert amounts_match_cross_currency(Decimal("300"), rate, Decimal("315000"), tolerance)
    assert amounts_match_cross_currency(Decimal("300"), rate, Decimal("285000"), tolerance)
    assert not amounts_match_cross_currency(Decimal("300"), rate, Decimal("315000.01"), tolerance)
    assert not amounts_match_cross_currency(Decimal("300"), rate, Decimal("300"), tolerance)


def test_cross_currency_match_rounds_converted_amount_to_cents():
    # 10.005 * 1 rounds half up to 10.01
    assert amounts_match_cross_currency(Decimal("10.005"), Decimal("1"), Decimal("10.01"), Decimal("0"))
