# app/utils/amounts.py
"""
Decimal-as-string helpers for money columns.

Costs, collateral, prices and bids are stored as text so no precision is lost
in storage; they are parsed to Decimal only for arithmetic and comparison.
"""
from decimal import ROUND_DOWN, Decimal, InvalidOperation
from typing import Iterable, Union

Amount = Union[str, int, Decimal]

# Largest amount accepted from clients; its text form fits the String(32) columns
AMOUNT_MAX_DIGITS = 20
AMOUNT_DECIMAL_PLACES = 6


def to_decimal(value: Amount) -> Decimal:
    if value is None or value == "":
        return Decimal("0")
    try:
        return Decimal(str(value))
    except InvalidOperation:
        raise ValueError(f"Invalid amount: {value!r}")


def format_amount(value: Amount) -> str:
    """Canonical text form: no exponent, no trailing fractional zeros."""
    d = to_decimal(value)
    if d == d.to_integral_value():
        return str(d.quantize(Decimal("1")))
    return format(d.normalize(), "f")


def sum_amounts(values: Iterable[Amount]) -> str:
    total = sum((to_decimal(v) for v in values), Decimal("0"))
    return format_amount(total)


def amount_in_bounds(value: Amount) -> bool:
    """Same limits the request schemas enforce with max_digits/decimal_places."""
    d = abs(to_decimal(value))
    whole = d.to_integral_value(rounding=ROUND_DOWN)
    whole_digits = len(format(whole, "f")) if whole else 0
    decimals = max(-(d - whole).normalize().as_tuple().exponent, 0) if d != whole else 0
    return (
        whole_digits <= AMOUNT_MAX_DIGITS - AMOUNT_DECIMAL_PLACES
        and decimals <= AMOUNT_DECIMAL_PLACES
    )
