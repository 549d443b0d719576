from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from typing import Any

D = Decimal

ZERO = D("0")
ONE = D("1")

_CENT = D("0.01")
_MILLI = D("0.001")
_BASIS = D("0.0001")


def _d(value: Any) -> D:
    if isinstance(value, Decimal):
        return value
    return D(str(value))


def round2(value: Any) -> D:
    """Currency and weeks."""
    return _d(value).quantize(_CENT, rounding=ROUND_HALF_UP)


def round3(value: Any) -> D:
    """CBM."""
    return _d(value).quantize(_MILLI, rounding=ROUND_HALF_UP)


def round4(value: Any) -> D:
    """Ratios: ROI, monthly ROI, multiplier."""
    return _d(value).quantize(_BASIS, rounding=ROUND_HALF_UP)


def safe_divide(numerator: D, denominator: D) -> D:
    if not denominator:
        return ZERO
    return _d(numerator) / _d(denominator)


def ceil_div(numerator: int, denominator: int) -> int:
    return -(-int(numerator) // int(denominator))
