from __future__ import annotations

import re
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional

D = Decimal

_CURRENCY_CHARS = re.compile(r"[£$€,\s]")
_NON_ALNUM = re.compile(r"[^a-z0-9]")

# whole-value match: "Ukraine" is not the UK
UK_COUNTRY_NAMES = frozenset({"uk", "u.k.", "united kingdom", "gb", "great britain"})


class ParseError(ValueError):
    """Raised when a spreadsheet cell cannot be read as a number."""


def clean_number(value: Any) -> Optional[D]:
    """
    Spreadsheet-tolerant number parsing.
    - None / "" -> None
    - strips currency symbols, thousands separators and whitespace ("£1,200.50")
    - a trailing '%' always means percent ("15%" -> 0.15)
    """
    if value is None:
        return None
    if isinstance(value, bool):
        raise ParseError(f"boolean is not a number: {value!r}")
    if isinstance(value, Decimal):
        return value
    if isinstance(value, int):
        return D(value)
    if isinstance(value, float):
        return D(str(value))

    s = str(value).strip()
    if s == "":
        return None

    is_percent = "%" in s
    s = _CURRENCY_CHARS.sub("", s).replace("%", "")
    try:
        num = D(s)
    except InvalidOperation:
        raise ParseError(f"invalid number: {value!r}")

    if not num.is_finite():
        raise ParseError(f"non-finite number: {value!r}")
    if is_percent:
        return num / D(100)
    return num


def to_decimal(value: Any, default: str = "0") -> D:
    num = clean_number(value)
    return D(default) if num is None else num


def to_positive_int(value: Any, default: int = 1) -> int:
    """Case sizes and seller counts: rounded, never below 1."""
    num = clean_number(value)
    if num is None or num <= 0:
        return default
    return max(1, int(num.quantize(D(1), rounding=ROUND_HALF_UP)))


def normalize_text(value: Any) -> str:
    return str(value or "").strip().lower()


def normalize_supplier_key(value: Any) -> str:
    return _NON_ALNUM.sub("", normalize_text(value))


def is_uk_country(value: Any) -> bool:
    return normalize_text(value) in UK_COUNTRY_NAMES


def to_non_negative_int(value: Any) -> int:
    num = clean_number(value)
    if num is None or num <= 0:
        return 0
    return int(num.quantize(D(1), rounding=ROUND_HALF_UP))
