"""
Online-arbitrage buy plan.

Retail products from the goods sheet are ranked by churn-aware monthly ROI
(one month of stock each) and bought greedily, best first, until the budget
runs out. Churn terms come from the shared wholesale churn model, with the
OA cap on churn weeks.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from decimal import Decimal
from typing import Any, Dict, List, Optional, Sequence, Tuple

from app.verticals.wholesale.calculators.churn import (
    churn_weeks,
    daily_sales,
    days_of_stock,
    monthly_roi,
    payout_days,
    weighted_churn_weeks,
)
from app.verticals.wholesale.calculators.constants import WEEKS_PER_MONTH
from app.verticals.wholesale.calculators.rounding import ZERO, round2, round4, safe_divide
from app.verticals.wholesale.errors import InputError

from ..data_validators.retailers import resolve_retailer
from ..data_validators.sheets import (
    column_map,
    lead_days_by_supplier,
    pick,
    queued_weeks_by_asin,
    sheet_number,
    supplier_names,
)
from ..schemas.oa_plan_input import OaPlanInput
from ..schemas.oa_plan_output import OaPlanOut, OaPlanRowOut, OaPlanSummaryOut

D = Decimal

logger = logging.getLogger(__name__)

# header aliases, with the column used when none of them is present
ASIN_COLUMN = (("asin",), 0)
TITLE_COLUMN = (("item name", "title", "product title", "name"), 2)
LINK_COLUMN = (("retail supplier link", "retailer link", "supplier link", "link", "url"), 3)
SELLERS_COLUMN = (("# of sellers", "sellers"), 4)
SALES_COLUMN = (("monthly sales", "sales"), 5)
AMAZON_PRICE_COLUMN = (("amazon price", "sell price", "amazon sell price"), 6)
COST_COLUMN = (("retail price", "cost", "buy cost"), 7)
PPU_COLUMN = (("profit per unit", "ppu"), 10)
ROI_COLUMN = (("roi %", "roi", "roi%"), 13)


@dataclass(frozen=True)
class OaPlanConfig:
    churn_cap_weeks: Optional[D] = D("15")


@dataclass(frozen=True)
class OaItem:
    asin: str
    title: str
    link: str
    retailer_key: str
    retailer_label: str
    supplier: str
    sellers: int
    monthly_sales: D
    amazon_price: Optional[D]
    unit_cost: Optional[D]
    ppu: Optional[D]
    roi: D
    units_wanted: int
    lead_days: D
    payout: D
    queued_weeks: D
    churn_weeks: D
    monthly_roi: D


def _check_sheet(rows: Sequence[Any], name: str) -> None:
    if not isinstance(rows, list) or len(rows) <= 1:
        raise InputError(f"{name} must be a non-empty 2D array with a header row.")


def _num(row: Sequence[Any], columns: Dict[str, int], column) -> Optional[D]:
    aliases, fallback = column
    return sheet_number(pick(row, columns, aliases, fallback))


def _text(row: Sequence[Any], columns: Dict[str, int], column) -> str:
    aliases, fallback = column
    value = pick(row, columns, aliases, fallback)
    return "" if value is None else str(value).strip()


def _weeks(lead: D, units: int, monthly: D, sellers: int, payout: D, queued: D, config: OaPlanConfig) -> D:
    return churn_weeks(lead, days_of_stock(units, monthly, sellers), payout, queued, config.churn_cap_weeks)


def read_items(payload: OaPlanInput, config: OaPlanConfig) -> Tuple[List[OaItem], int]:
    """(items, skipped rows): goods rows without an ASIN or a retailer link are skipped."""
    names = supplier_names(payload.restock_time_values)
    lead_days = lead_days_by_supplier(payload.restock_time_values)
    queued = queued_weeks_by_asin(payload.restock_products_values)
    columns = column_map(payload.goods_values[0])

    items: List[OaItem] = []
    skipped = 0
    for row in payload.goods_values[1:]:
        asin = _text(row, columns, ASIN_COLUMN).upper()
        link = _text(row, columns, LINK_COLUMN)
        if not asin or not link:
            skipped += 1
            continue

        title = _text(row, columns, TITLE_COLUMN)
        retailer = resolve_retailer(link, names)

        sellers_raw = _num(row, columns, SELLERS_COLUMN)
        sellers = max(1, int(sellers_raw)) if sellers_raw else 1
        sales_raw = _num(row, columns, SALES_COLUMN)
        monthly = max(ZERO, sales_raw) if sales_raw else ZERO

        roi = _num(row, columns, ROI_COLUMN) or ZERO
        if roi > 1:
            # "35" in a ROI % column
            roi = roi / 100
        roi = round4(roi)

        units_wanted = max(1, int(math.ceil(monthly / sellers)))
        payout = payout_days(title)
        lead = lead_days.get(retailer.key, ZERO)
        queued_weeks = queued.get(asin, ZERO)
        weeks = _weeks(lead, units_wanted, monthly, sellers, payout, queued_weeks, config)

        items.append(
            OaItem(
                asin=asin,
                title=title,
                link=link,
                retailer_key=retailer.supplier or retailer.brand or retailer.host,
                retailer_label=retailer.label,
                supplier=retailer.supplier,
                sellers=sellers,
                monthly_sales=monthly,
                amazon_price=_num(row, columns, AMAZON_PRICE_COLUMN),
                unit_cost=_num(row, columns, COST_COLUMN),
                ppu=_num(row, columns, PPU_COLUMN),
                roi=roi,
                units_wanted=units_wanted,
                lead_days=lead,
                payout=payout,
                queued_weeks=queued_weeks,
                churn_weeks=weeks,
                monthly_roi=monthly_roi(roi, weeks),
            )
        )
    return items, skipped


def _buy(item: OaItem, units: int, cost: D, config: OaPlanConfig) -> OaPlanRowOut:
    weeks = _weeks(
        item.lead_days, units, item.monthly_sales, item.sellers, item.payout, item.queued_weeks, config
    )
    return OaPlanRowOut(
        retailer_key=item.retailer_key,
        retailer_label=item.retailer_label,
        supplier=item.supplier,
        asin=item.asin,
        product_title=item.title,
        retailer_link=item.link,
        sellers=item.sellers,
        monthly_sales=item.monthly_sales,
        amazon_price=item.amazon_price,
        unit_cost=item.unit_cost,
        ppu=item.ppu,
        roi=item.roi,
        daily_sales=round4(daily_sales(item.monthly_sales, item.sellers)),
        units=units,
        total_cost=round2(cost * units),
        exp_profit=round2((item.ppu or ZERO) * units),
        days_to_arrival=item.lead_days,
        days_of_stock=days_of_stock(units, item.monthly_sales, item.sellers),
        churn_weeks=weeks,
        monthly_roi=monthly_roi(item.roi, weeks),
    )


def allocate_items(
    items: Sequence[OaItem], budget: D, excluded: Sequence[str], config: OaPlanConfig
) -> List[OaPlanRowOut]:
    """
    Best monthly ROI first: each product gets up to a month of stock, or
    what the remaining budget buys. Rows without a cost are taken whole.
    """
    ranked = sorted(items, key=lambda i: i.monthly_roi, reverse=True)
    skip = set(excluded)

    remaining = budget
    plan: List[OaPlanRowOut] = []
    for item in ranked:
        if item.supplier.lower() in skip:
            continue

        cost = item.unit_cost if item.unit_cost and item.unit_cost > 0 else ZERO
        if cost > 0:
            units = min(item.units_wanted, max(0, int(remaining // cost)))
        else:
            units = item.units_wanted
        if units <= 0:
            continue

        row = _buy(item, units, cost, config)
        plan.append(row)
        remaining -= row.total_cost
        if remaining <= 0:
            break
    return plan


def summarize(plan: Sequence[OaPlanRowOut]) -> OaPlanSummaryOut:
    total_cost = round2(sum((r.total_cost for r in plan), ZERO))
    total_profit = round2(sum((r.exp_profit for r in plan), ZERO))
    roi = safe_divide(total_profit, total_cost)
    weeks = weighted_churn_weeks((r.churn_weeks, r.total_cost) for r in plan)
    monthly = safe_divide(roi, weeks) * WEEKS_PER_MONTH
    return OaPlanSummaryOut(
        total_units=sum(r.units for r in plan),
        number_of_buys=len(plan),
        total_cost=total_cost,
        total_profit=total_profit,
        roi_pct=round2(roi * 100),
        weighted_churn_weeks=weeks,
        monthly_roi_pct=round2(monthly * 100),
    )


def generate_oa_plan(payload: OaPlanInput, config: Optional[OaPlanConfig] = None) -> OaPlanOut:
    config = config or OaPlanConfig()

    _check_sheet(payload.goods_values, "goodsValues")
    _check_sheet(payload.restock_time_values, "restockTimeValues")
    _check_sheet(payload.restock_products_values, "restockProductsValues")
    if payload.budget <= 0:
        raise InputError("Budget is missing or invalid.")

    items, skipped = read_items(payload, config)
    if not items:
        raise InputError("No valid OA rows found. Check ASIN and Retail Supplier link columns.")

    plan = allocate_items(items, payload.budget, payload.excluded_retailers, config)
    summary = summarize(plan)
    logger.info(
        "oa plan: %d/%d products bought, %d rows skipped, cost %s of %s",
        summary.number_of_buys,
        len(items),
        skipped,
        summary.total_cost,
        payload.budget,
    )
    return OaPlanOut(plan=plan, summary=summary, skipped_rows=skipped)
