from __future__ import annotations

import logging
import math
from decimal import Decimal
from typing import List

from ..calculators.churn import ChurnPolicy, monthly_roi
from ..calculators.freight import compute_landed_cost_per_unit
from ..calculators.roi import compute_roi, profit_per_unit
from ..calculators.rounding import round2
from ..domain.models import PurchaseOption, ShipmentLine
from ..schemas.ws_plan_input import ProductIn
from .config import OptionsConfig
from .context import SupplierContext

D = Decimal

logger = logging.getLogger(__name__)


def price_units(product: ProductIn, units: int, multiplier: D, churn: ChurnPolicy) -> PurchaseOption:
    """Price ``units`` of one SKU at a given shipment freight multiplier."""
    landed = compute_landed_cost_per_unit(product.supplier_price, multiplier)
    profit = profit_per_unit(product.amazon_price, product.amazon_fees, product.vat_per_unit, landed)
    roi = compute_roi(profit, landed)
    weeks = churn.weeks_for(
        product.item_name,
        product.monthly_sales,
        product.seller_count,
        units,
        product.queued_weeks,
    )
    return PurchaseOption(
        product=product,
        cases=units // product.case_size,
        units=units,
        cost_bsf=round2(product.supplier_price * units),
        freight_multiplier=multiplier,
        landed_cost_per_unit=landed,
        profit_per_unit=profit,
        roi=roi,
        churn_weeks=weeks,
        monthly_roi=monthly_roi(roi, weeks),
        cost_asf=round2(landed * units),
        total_profit=round2(profit * units),
    )


def reprice_option(option: PurchaseOption, multiplier: D, churn: ChurnPolicy) -> PurchaseOption:
    """Same quantity, new shipment composition."""
    if option.freight_multiplier == multiplier:
        return option
    return price_units(option.product, option.units, multiplier, churn)


def velocity_cases(product: ProductIn, config: OptionsConfig) -> int:
    """Whole cases sellable within the stock horizon, capped at ``max_options``."""
    if product.monthly_sales <= 0:
        return 0
    # monthly / sellers / 30 * 30 * horizon, without the lossy daily rate
    horizon_units = int(math.floor(product.monthly_sales * config.horizon_months / product.seller_count))
    return min(horizon_units // product.case_size, config.max_options)


def max_cases(product: ProductIn, budget: D, config: OptionsConfig) -> int:
    """min(cases affordable, cases sellable within the stock horizon, option cap)."""
    case_cost = product.supplier_price * product.case_size
    if case_cost <= 0 or budget <= 0:
        return 0
    by_budget = int(math.floor(budget / case_cost))
    return max(0, min(by_budget, velocity_cases(product, config)))


def build_options(
    product: ProductIn,
    sctx: SupplierContext,
    budget: D,
    config: OptionsConfig,
) -> List[PurchaseOption]:
    """
    Case-count options 1..max_cases, each priced as a standalone
    single-SKU shipment. Empty when even one case does not fit the budget.
    """
    if not product.is_eligible:
        return []

    n = max_cases(product, budget, config)
    if n == 0:
        logger.debug("no options for %s (budget %s, case %s)", product.asin, budget, product.case_size)
        return []

    out: List[PurchaseOption] = []
    for cases in range(1, n + 1):
        units = cases * product.case_size
        cost = sctx.price([ShipmentLine(product=product, units=units)])
        out.append(price_units(product, units, cost.multiplier, sctx.churn))
    return out


def best_option(options: List[PurchaseOption]) -> PurchaseOption:
    """Highest monthly ROI; the smaller quantity wins a tie."""
    best = options[0]
    for opt in options[1:]:
        if opt.monthly_roi > best.monthly_roi:
            best = opt
    return best
