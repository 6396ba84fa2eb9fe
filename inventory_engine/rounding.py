# inventory_engine/rounding.py

"""
Half-up rounding helpers.

Python's round() uses banker's rounding (round(2.5) == 2). Quantities and
money in this package are rounded half-up instead, so 2.5 → 3 and
0.125 → 0.13.
"""

from decimal import Decimal, ROUND_HALF_UP


def to_decimal(value) -> Decimal:
    """Convert a float/int (numpy scalars included) through its shortest str."""
    if isinstance(value, Decimal):
        return value
    return Decimal(str(value))


def round_half_up(value, places: int = 0) -> Decimal:
    exponent = Decimal(1).scaleb(-places)
    return to_decimal(value).quantize(exponent, rounding=ROUND_HALF_UP)


def round_int(value) -> int:
    """Round half-up to the nearest integer."""
    return int(round_half_up(value, 0))


def round_float(value, places: int = 2) -> float:
    return float(round_half_up(value, places))
