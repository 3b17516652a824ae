"""Fixed-point money helpers (2 decimal places, half-up on the cent)"""

from decimal import Decimal, InvalidOperation, ROUND_HALF_UP, ROUND_DOWN
from typing import Any

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
EPSILON = Decimal("0.000001")


def to_money(value: Any) -> Decimal:
    """
    Coerce a raw value to a 2-decimal Decimal.

    None, blank strings and anything non-numeric or non-finite become 0.00.
    Floats go through str() so 0.1 stays 0.1 instead of its binary expansion.
    """
    if value is None:
        return ZERO
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return ZERO
    if not amount.is_finite():
        return ZERO
    return amount.quantize(CENT, rounding=ROUND_HALF_UP)


def to_decimal(value: Any) -> Decimal:
    """Like to_money but without rounding; used to check input at full precision"""
    if value is None:
        return Decimal(0)
    if isinstance(value, float):
        value = str(value)
    try:
        amount = Decimal(value)
    except (InvalidOperation, TypeError, ValueError):
        return Decimal(0)
    return amount if amount.is_finite() else Decimal(0)


def round2(value: Any) -> Decimal:
    """Round to the cent, half-up"""
    return to_money(value)


def floor2(value: Decimal) -> Decimal:
    """Truncate to the cent"""
    return value.quantize(CENT, rounding=ROUND_DOWN)


def money_equal(a: Decimal, b: Decimal) -> bool:
    return abs(a - b) < EPSILON
