import os
from decimal import Decimal

import pytest

os.environ.setdefault("DATABASE_URL", "sqlite:///./test.db")
os.environ.setdefault("SITE_SECRETS_KEY", "MDEyMzQ1Njc4OWFiY2RlZjAxMjM0NTY3ODlhYmNkZWY=")
os.environ["SKIP_MIGRATIONS"] = "1"

from orderhub.core.money import MoneyParseError, convert, parse_money, percent_of, quantize_money


@pytest.mark.parametrize(
    "value,expected",
    [
        ("19.99", Decimal("19.99")),
        (" 5 ", Decimal("5")),
        (7, Decimal("7")),
        (2.5, Decimal("2.5")),
        (Decimal("0.10"), Decimal("0.10")),
        (None, Decimal("0")),
        ("", Decimal("0")),
    ],
)
def test_parse_money_accepts_numbers_and_numeric_strings(value, expected):
    assert parse_money(value) == expected


@pytest.mark.parametrize("value", ["abc", "NaN", "Infinity", True, [], {"amount": 1}])
def test_parse_money_rejects_non_amounts(value):
    with pytest.raises(MoneyParseError):
        parse_money(value, field="order_total")


def test_parse_money_required_value():
    with pytest.raises(MoneyParseError) as excinfo:
        parse_money(None, field="order_total", default=None)
    assert excinfo.value.field == "order_total"


def test_quantize_rounds_half_up():
    assert quantize_money(Decimal("2.345")) == Decimal("2.35")
    assert quantize_money(Decimal("2.344")) == Decimal("2.34")
    assert quantize_money(Decimal("-2.345")) == Decimal("-2.35")


def test_convert_and_percent_of():
    assert convert(Decimal("50.00"), Decimal("1.37")) == Decimal("68.50")
    assert convert(Decimal("19.99"), Decimal("1.37")) == Decimal("27.39")
    assert percent_of(Decimal("100"), Decimal("2.9")) == Decimal("2.9")
