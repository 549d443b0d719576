from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from ..calculators.churn import weighted_churn_weeks
from ..calculators.constants import ENGINE_VERSION
from ..calculators.roi import compute_roi
from ..calculators.rounding import round2
from ..domain.models import AllocationResult, Bundle
from ..errors import InputError
from ..schemas.ws_plan_input import WsPlanInput
from ..schemas.ws_plan_output import (
    AllocationOut,
    AllocationProductOut,
    AllocationSummaryOut,
    RegressionOut,
    SupplierAllocationOut,
    SupplierFreightOut,
    SupplierSummaryOut,
)
from .bundles import build_supplier_bundles
from .config import EngineConfig
from .context import build_plan_context
from .optimizer import optimize_global_budget

D = Decimal

logger = logging.getLogger(__name__)


def collect_bundles(payload: WsPlanInput, config: EngineConfig) -> List[Bundle]:
    ctx = build_plan_context(payload, config)
    bundles: List[Bundle] = []
    for key, products in ctx.products_by_supplier.items():
        bundles.extend(build_supplier_bundles(products, ctx.suppliers[key], ctx.budget, config))
    return bundles


def allocate(payload: WsPlanInput, config: Optional[EngineConfig] = None) -> AllocationOut:
    """
    Monolithic path: options -> supplier bundles -> global budget optimizer.
    """
    config = config or EngineConfig()

    if payload.budget <= 0:
        raise InputError("budget must be a positive number")
    if not payload.products:
        raise InputError("No products provided")

    bundles = collect_bundles(payload, config)
    if not bundles:
        raise InputError("No MOQ-feasible bundles within budget (check prices, sales and MOQs)")

    result = optimize_global_budget(bundles, payload.budget, config.optimizer)
    logger.info(
        "allocation done: %d candidate bundles, %d selected, strategy=%s",
        len(bundles),
        len(result.bundles),
        result.strategy,
    )
    return render_allocation(result, payload.budget, len(bundles))


def _render_bundle(b: Bundle) -> SupplierAllocationOut:
    shipment = b.cost.shipment
    products = [
        AllocationProductOut(
            asin=o.asin,
            item_name=o.product.item_name,
            units_to_order=o.units,
            cases=o.cases,
            supplier_price=o.product.supplier_price,
            amazon_price=o.product.amazon_price,
            landed_cost_per_unit=o.landed_cost_per_unit,
            profit_per_unit=o.profit_per_unit,
            roi=o.roi,
            monthly_roi=o.monthly_roi,
            churn_weeks=o.churn_weeks,
            total_cost=o.cost_asf,
            total_profit=o.total_profit,
            monthly_sales=o.product.monthly_sales,
            sellers=o.product.seller_count,
            code_link=o.product.code_link,
        )
        for o in b.options
    ]
    return SupplierAllocationOut(
        supplier_key=b.supplier_key,
        supplier_name=b.supplier.name or b.supplier_key,
        freight=SupplierFreightOut(
            freight_cost=shipment.freight_cost,
            currency_fee=b.cost.currency_fee,
            shipping_and_fees=round2(b.cost.shipping_and_fees),
            freight_multiplier=b.cost.multiplier,
            method=shipment.method,
            total_weight_kg=shipment.total_weight,
            total_cbm=shipment.total_cbm,
            total_boxes=shipment.box_count,
            pallets=shipment.pallet_count,
            regression=RegressionOut(**shipment.regression.to_dict()),
        ),
        summary=SupplierSummaryOut(
            cost_bsf=b.cost.cost_bsf,
            cost_asf=b.total_cost_asf,
            expected_profit=b.total_profit,
            roi=compute_roi(b.total_profit, b.total_cost_asf),
            churn_weeks=weighted_churn_weeks((o.churn_weeks, o.cost_asf) for o in b.options),
            monthly_roi=b.monthly_roi,
            moq_gbp=b.supplier.moq_gbp,
        ),
        products=products,
    )


def render_allocation(result: AllocationResult, budget: D, candidate_count: int = 0) -> AllocationOut:
    options = [o for b in result.bundles for o in b.options]
    return AllocationOut(
        engine_version=ENGINE_VERSION,
        summary=AllocationSummaryOut(
            budget=round2(budget),
            total_units=sum(o.units for o in options),
            total_cost_asf=result.total_cost_asf,
            expected_profit=result.total_profit,
            remaining_budget=result.remaining_budget,
            roi=compute_roi(result.total_profit, result.total_cost_asf),
            weighted_churn_weeks=weighted_churn_weeks((o.churn_weeks, o.cost_asf) for o in options),
            monthly_roi=result.monthly_roi,
            strategy=result.strategy,
            candidate_bundles=candidate_count,
        ),
        suppliers=[_render_bundle(b) for b in result.bundles],
    )
