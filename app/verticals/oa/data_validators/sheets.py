"""Reading raw sheet ranges: header lookups with positional fallbacks."""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence

from app.verticals.wholesale.data_validators.common import ParseError, clean_number, normalize_text

D = Decimal

logger = logging.getLogger(__name__)

# restock time sheet: supplier name in A, lead days in E
RESTOCK_SUPPLIER_COL = 0
RESTOCK_LEAD_DAYS_COL = 4


def sheet_number(value: Any) -> Optional[D]:
    """A sheet cell as a number; text like 'N/A' or '-' counts as blank."""
    try:
        return clean_number(value)
    except ParseError:
        logger.debug("unreadable cell %r treated as blank", value)
        return None


def cell(row: Sequence[Any], idx: int) -> Any:
    return row[idx] if 0 <= idx < len(row) else ""


def cell_text(row: Sequence[Any], idx: int) -> str:
    value = cell(row, idx)
    return "" if value is None else str(value).strip()


def column_map(header: Sequence[Any]) -> Dict[str, int]:
    """Lower-cased header -> column index; the first occurrence wins."""
    out: Dict[str, int] = {}
    for idx, name in enumerate(header):
        key = normalize_text(name)
        if key and key not in out:
            out[key] = idx
    return out


def pick(row: Sequence[Any], columns: Dict[str, int], aliases: Sequence[str], fallback: int) -> Any:
    """First aliased column present in the header, else the column at ``fallback``."""
    for alias in aliases:
        idx = columns.get(alias)
        if idx is not None:
            return cell(row, idx)
    return cell(row, fallback)


def supplier_names(rows: List[List[Any]]) -> List[str]:
    names = [cell_text(row, RESTOCK_SUPPLIER_COL) for row in rows[1:]]
    return [n for n in names if n]


def lead_days_by_supplier(rows: List[List[Any]]) -> Dict[str, D]:
    """Supplier name (lower-cased) -> inbound lead days."""
    out: Dict[str, D] = {}
    for row in rows[1:]:
        name = cell_text(row, RESTOCK_SUPPLIER_COL)
        if not name:
            continue
        lead = sheet_number(cell(row, RESTOCK_LEAD_DAYS_COL))
        out[name.lower()] = lead if lead is not None else D("0")
    return out


def queued_weeks_by_asin(rows: List[List[Any]]) -> Dict[str, D]:
    """
    ASIN -> weeks of stock already queued inbound. Needs an "ASIN" column and
    one whose header mentions both "queued" and "churn"; otherwise empty.
    """
    header = [normalize_text(h) for h in rows[0]]
    asin_col = header.index("asin") if "asin" in header else -1
    queued_col = next((i for i, h in enumerate(header) if "queued" in h and "churn" in h), -1)
    if asin_col < 0 or queued_col < 0:
        logger.info("restock products sheet has no ASIN / queued churn columns")
        return {}

    out: Dict[str, D] = {}
    for row in rows[1:]:
        asin = cell_text(row, asin_col).upper()
        if not asin:
            continue
        weeks = sheet_number(cell(row, queued_col))
        out[asin] = weeks if weeks is not None else D("0")
    return out
