"""Unit tests for minor-unit money formatting and parsing"""

import pytest
from decimal import Decimal
from kot_ledger.utils.money import (
    clearance_message,
    format_money,
    parse_money_input,
    settlement_message,
)


@pytest.mark.parametrize(
    "amount,expected",
    [
        (125050, "₹1,250.50"),
        (5, "₹0.05"),
        (0, "₹0.00"),
        (-1999, "-₹19.99"),
    ],
)
def test_format_money(amount, expected):
    assert format_money(amount) == expected


def test_format_money_custom_symbol():
    assert format_money(100, symbol="") == "1.00"


@pytest.mark.parametrize(
    "value,expected",
    [
        ("₹1,250.50", 125050),
        ("12", 1200),
        (" 0.5 ", 50),
        (10, 1000),
        (Decimal("10.005"), 1001),
    ],
)
def test_parse_money_input(value, expected):
    assert parse_money_input(value) == expected


@pytest.mark.parametrize("value", ["", "abc", "-5", True, "NaN"])
def test_parse_money_input_invalid(value):
    assert parse_money_input(value) is None


def test_settlement_messages():
    assert settlement_message(0, 50000) == "Added to credit: ₹500.00"
    assert settlement_message(30000, 20000) == "Paid ₹300.00 • Credit ₹200.00 added"
    assert settlement_message(50000, 0) == "Payment successful"


def test_clearance_messages():
    assert clearance_message(30000, 20000) == "Credit cleared: ₹300.00 (Remaining ₹200.00)"
    assert clearance_message(20000, 0) == "Credit cleared: ₹200.00"
