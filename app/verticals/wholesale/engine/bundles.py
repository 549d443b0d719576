from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional, Sequence

from ..calculators.constants import BUNDLE_ROI_TOLERANCE
from ..calculators.rounding import ZERO, round2, round4, safe_divide
from ..domain.models import Bundle, PurchaseOption, ShipmentLine
from ..schemas.ws_plan_input import ProductIn
from .config import EngineConfig
from .context import SupplierContext
from .options import best_option, build_options, reprice_option

D = Decimal

logger = logging.getLogger(__name__)


def supplier_budget(global_budget: D, config: EngineConfig) -> D:
    cap = config.bundles.supplier_budget_cap
    return global_budget if cap is None else min(global_budget, cap)


def meets_moq(bundle: Bundle) -> bool:
    moq = bundle.supplier.moq_gbp
    return moq <= 0 or bundle.total_cost_asf >= moq


def price_bundle(options: Sequence[PurchaseOption], sctx: SupplierContext) -> Bundle:
    """
    Price the options as ONE shipment and reprice every option under the
    combined multiplier. Monthly ROI is the ASF-cost-weighted mean.
    """
    cost = sctx.price([ShipmentLine(product=o.product, units=o.units) for o in options])
    repriced = tuple(reprice_option(o, cost.multiplier, sctx.churn) for o in options)

    weighted = sum((o.monthly_roi * o.cost_asf for o in repriced), ZERO)
    cost_asf = sum((o.cost_asf for o in repriced), ZERO)

    return Bundle(
        supplier=sctx.supplier,
        options=repriced,
        cost=cost,
        total_cost_asf=round2(cost.total_cost_asf),
        total_profit=round2(sum((o.total_profit for o in repriced), ZERO)),
        monthly_roi=round4(safe_divide(weighted, cost_asf)),
    )


def _try_add(
    current: Bundle,
    candidate: Bundle,
    sctx: SupplierContext,
    budget: D,
) -> Optional[Bundle]:
    estimated = current.total_cost_asf + candidate.total_cost_asf
    if estimated > budget:
        return None

    combined = price_bundle(current.options + candidate.options, sctx)
    if combined.total_cost_asf > budget:
        return None
    if combined.monthly_roi < current.monthly_roi * BUNDLE_ROI_TOLERANCE:
        return None
    # below-MOQ seeds may keep growing towards MOQ; once at MOQ they must stay there
    if meets_moq(current) and not meets_moq(combined):
        return None
    return combined


def build_supplier_bundles(
    products: Sequence[ProductIn],
    sctx: SupplierContext,
    global_budget: D,
    config: EngineConfig,
) -> List[Bundle]:
    budget = supplier_budget(global_budget, config)

    singles: List[Bundle] = []
    for p in products:
        options = build_options(p, sctx, budget, config.options)
        if options:
            singles.append(price_bundle([best_option(options)], sctx))

    singles.sort(key=lambda b: b.monthly_roi, reverse=True)

    multi: List[Bundle] = []
    for i, seed in enumerate(singles[: config.bundles.max_seeds]):
        current = seed
        for j, candidate in enumerate(singles):
            if i == j:
                continue
            combined = _try_add(current, candidate, sctx, budget)
            if combined is not None:
                current = combined
        if len(current.options) > 1 and meets_moq(current):
            multi.append(current)

    viable = [b for b in singles if meets_moq(b)] + multi
    viable = [b for b in viable if b.total_cost_asf > 0]
    viable.sort(key=lambda b: b.monthly_roi, reverse=True)

    out: List[Bundle] = []
    seen = set()
    for b in viable:
        if b.signature in seen:
            continue
        seen.add(b.signature)
        out.append(b)
        if len(out) >= config.bundles.max_bundles_per_supplier:
            break

    logger.debug(
        "supplier %s: %d singles, %d multi, %d bundles kept",
        sctx.key,
        len(singles),
        len(multi),
        len(out),
    )
    return out
