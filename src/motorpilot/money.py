"""
Monetary helpers.

All amounts are Decimal, rounded half-up to two places. Floats never enter
the arithmetic: callers convert via ``to_decimal``.
"""
from __future__ import annotations

from decimal import ROUND_DOWN, ROUND_HALF_UP, Decimal
from typing import Iterable, Union

CENT = Decimal("0.01")
ZERO = Decimal("0.00")
HUNDRED = Decimal("100")

Number = Union[Decimal, int, float, str]


def to_decimal(value: Number) -> Decimal:
    """Convert a number to Decimal without binary float artefacts."""
    if isinstance(value, Decimal):
        return value
    if isinstance(value, float):
        return Decimal(repr(value))
    return Decimal(value)


def money(value: Number) -> Decimal:
    """Round to cents, half-up."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_HALF_UP)


def money_floor(value: Number) -> Decimal:
    """Truncate to cents. Used when scaling down so rounding never inflates."""
    return to_decimal(value).quantize(CENT, rounding=ROUND_DOWN)


def total(values: Iterable[Decimal]) -> Decimal:
    """Sum amounts, starting from a cent-quantized zero."""
    return money(sum(values, ZERO))


def apply_percent_reduction(amount: Decimal, percent: Decimal) -> Decimal:
    """``amount * (1 - percent/100)`` rounded to cents."""
    return money(amount * (HUNDRED - percent) / HUNDRED)
