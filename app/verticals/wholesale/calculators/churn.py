from __future__ import annotations

import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Optional, Tuple

from .constants import (
    BUSINESS_PAYOUT_DAYS,
    BUSINESS_WORDS,
    DAYS_PER_MONTH,
    DAYS_PER_WEEK,
    DEFAULT_PAYOUT_DAYS,
    WEEKS_PER_MONTH,
)
from .rounding import ZERO, round2, round4, safe_divide

D = Decimal


def daily_sales(monthly_sales: D, seller_count: int) -> D:
    if monthly_sales <= 0 or seller_count <= 0:
        return ZERO
    return monthly_sales / seller_count / DAYS_PER_MONTH


def days_of_stock(units: int, monthly_sales: D, seller_count: int) -> int:
    """ceil(units / dailySales), computed without the lossy daily rate."""
    if units <= 0 or monthly_sales <= 0 or seller_count <= 0:
        return 0
    return int(math.ceil(D(units) * seller_count * DAYS_PER_MONTH / monthly_sales))


def payout_days(title: str, override: Optional[D] = None) -> D:
    """Marketplace payout delay; business electronics are paid out later."""
    if override is not None:
        return D(override)
    if BUSINESS_WORDS.search(title or ""):
        return D(BUSINESS_PAYOUT_DAYS)
    return D(DEFAULT_PAYOUT_DAYS)


def churn_weeks(
    lead_days: D,
    stock_days: int,
    payout: D,
    queued_weeks: D = ZERO,
    cap_weeks: Optional[D] = None,
) -> D:
    weeks = (D(lead_days) + stock_days + D(payout)) / DAYS_PER_WEEK + queued_weeks
    if cap_weeks is not None and weeks > cap_weeks:
        weeks = D(cap_weeks)
    return round2(weeks)


def monthly_roi(roi: D, weeks: D) -> D:
    if weeks <= 0:
        return D("0.0000")
    return round4(roi / weeks * WEEKS_PER_MONTH)


def weighted_churn_weeks(rows: Iterable[Tuple[D, D]]) -> D:
    """Cost-weighted mean of (churn_weeks, cost) pairs."""
    weighted = ZERO
    total_cost = ZERO
    for weeks, cost in rows:
        weighted += weeks * cost
        total_cost += cost
    return round2(safe_divide(weighted, total_cost))


@dataclass(frozen=True)
class ChurnPolicy:
    """Supplier-level churn terms; payout falls back to the title keyword rule."""

    lead_days: D = ZERO
    payout_override: Optional[D] = None
    cap_weeks: Optional[D] = None

    def weeks_for(self, title: str, monthly: D, sellers: int, units: int, queued_weeks: D = ZERO) -> D:
        stock_days = days_of_stock(units, monthly, sellers)
        return churn_weeks(
            self.lead_days,
            stock_days,
            payout_days(title, self.payout_override),
            queued_weeks,
            self.cap_weeks,
        )
