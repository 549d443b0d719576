# app/verticals/wholesale/stages/support.py
"""Lookups shared by the wholesale pipeline stages."""
from __future__ import annotations

from decimal import Decimal
from typing import Any, Dict, List, Tuple

from ..calculators.churn import monthly_roi, weighted_churn_weeks
from ..calculators.roi import compute_roi
from ..calculators.rounding import ZERO, round2
from ..data_validators.products import group_by_supplier
from ..domain.models import PurchaseOption, ShipmentCost, ShipmentLine
from ..engine.config import EngineConfig
from ..engine.context import SupplierContext, build_supplier_contexts
from ..engine.options import price_units
from ..errors import InputError, StageDependencyError
from ..schemas.pipeline_state import LoadedData, MoqBlock, PipelineState
from ..schemas.ws_plan_input import ProductIn

D = Decimal

ProductKey = Tuple[str, str]  # (supplier_key, asin)


def engine_config(assets: Dict[str, Any]) -> EngineConfig:
    return assets.get("config") or EngineConfig()


def require(state: PipelineState, needed: int, stage: int) -> Any:
    """Output of stage ``needed``; raises when it has not run (or produced nothing)."""
    out = state.output(needed)
    if out is None:
        slot = PipelineState.slot_name(needed)
        raise StageDependencyError(
            f"Missing state.{slot}. Run stage {needed} first.",
            stage=stage,
            meta={"needs": needed},
        )
    return out


def require_budget(state: PipelineState, stage: int) -> D:
    budget = state.inputs.budget
    if budget <= 0:
        raise InputError("budget must be a positive number", stage=stage)
    return budget


def product_index(data: LoadedData) -> Dict[ProductKey, ProductIn]:
    return {(p.resolved_supplier_key, p.asin): p for p in data.products}


def supplier_contexts(data: LoadedData, config: EngineConfig) -> Dict[str, SupplierContext]:
    return build_supplier_contexts(
        group_by_supplier(list(data.products)),
        data.suppliers,
        data.freight_curves,
        data.freight_config,
        data.churn_settings,
        config,
    )


def block_lines(block: MoqBlock, products: Dict[ProductKey, ProductIn]) -> List[ShipmentLine]:
    return [
        ShipmentLine(product=products[(block.supplier_key, bp.asin)], units=bp.units)
        for bp in block.products
    ]


def price_block(
    block: MoqBlock, sctx: SupplierContext, products: Dict[ProductKey, ProductIn]
) -> Tuple[ShipmentCost, List[PurchaseOption]]:
    """Ship the whole block together and price every line at the shared multiplier."""
    lines = block_lines(block, products)
    cost = sctx.price(lines)
    options = [price_units(ln.product, ln.units, cost.multiplier, sctx.churn) for ln in lines]
    return cost, options


def block_returns(options: List[PurchaseOption], cost_asf: D) -> Tuple[D, D, D, D]:
    """(profit, ROI, cost-weighted churn weeks, monthly ROI) of a priced block."""
    profit = round2(sum((o.total_profit for o in options), ZERO))
    roi = compute_roi(profit, cost_asf)
    weeks = weighted_churn_weeks((o.churn_weeks, o.cost_asf) for o in options)
    return profit, roi, weeks, monthly_roi(roi, weeks)
