# tests/test_amounts.py
from decimal import Decimal

import pytest

from app.utils.amounts import amount_in_bounds, format_amount, sum_amounts, to_decimal


@pytest.mark.parametrize(
    "value, expected",
    [
        ("100", "100"),
        ("100.00", "100"),
        ("1e3", "1000"),
        ("12.50", "12.5"),
        (Decimal("0.000001"), "0.000001"),
        (7, "7"),
        ("", "0"),
    ],
)
def test_format_amount(value, expected):
    assert format_amount(value) == expected


def test_sum_amounts_is_exact():
    assert sum_amounts(["0.1", "0.2"]) == "0.3"
    assert sum_amounts([]) == "0"
    assert sum_amounts(["1000000000000000000000", "1"]) == "1000000000000000000001"


def test_invalid_amount():
    with pytest.raises(ValueError):
        to_decimal("ten")


@pytest.mark.parametrize(
    "value, fits",
    [
        ("99999999999999.999999", True),
        ("0.5", True),
        ("0", True),
        ("100000000000000", False),
        ("1e20", False),
        ("0.0000001", False),
    ],
)
def test_amount_in_bounds(value, fits):
    assert amount_in_bounds(value) is fits
