"""Tests for amount parsing."""

from decimal import Decimal

import pytest

from tally.utils.amount_parser import parse_amount


@pytest.mark.parametrize(
    "text,expected",
    [
        ("123.45", "123.45"),
        ("-123.45", "-123.45"),
        ("+5", "5"),
        ("1,234.56", "1234.56"),
        ("1 234,56", "1234.56"),
        ("1.234,56", "1234.56"),
        ("-350,00", "-350.00"),
        ("1,234", "1234"),
        ("₴123.45", "123.45"),
        ("123.45 UAH", "123.45"),
        ("99 грн", "99"),
        ("$10", "10"),
        ("(42.10)", "-42.10"),
    ],
)
def test_parse_amount(text, expected):
    assert parse_amount(text) == Decimal(expected)


@pytest.mark.parametrize("text", ["", "   ", "abc", "12..3", "NaN"])
def test_parse_amount_invalid(text):
    with pytest.raises(ValueError):
        parse_amount(text)
