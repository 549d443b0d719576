# app/verticals/wholesale/stages/exact_asf.py
from __future__ import annotations

import logging
from typing import List

from buyplan.engine.config import StageConfig
from buyplan.engine.context import StageResult

from ..calculators.rounding import ZERO, round2
from ..errors import StageDependencyError
from ..schemas.pipeline_state import CostTotals, ExactSupplier, FreightDetail, PipelineState, Stage5Output
from ..schemas.ws_plan_output import RegressionOut
from .support import (
    block_returns,
    engine_config,
    price_block,
    product_index,
    require,
    require_budget,
    supplier_contexts,
)

logger = logging.getLogger(__name__)

STAGE = 5


def stage_exact_asf_v1(state: PipelineState, stage: StageConfig, assets: dict) -> StageResult:
    """
    Stage 5: exact after-shipping cost for each selected supplier:
    product spend + freight + currency fee, with landed-cost profit and
    churn-aware monthly ROI.
    """
    data = require(state, 0, STAGE)
    stage4 = require(state, 4, STAGE)
    require_budget(state, STAGE)
    if not stage4.selected_suppliers:
        raise StageDependencyError("state.stage4.selectedSuppliers is empty", stage=STAGE)

    config = engine_config(assets)
    contexts = supplier_contexts(data, config)
    products = product_index(data)

    out: List[ExactSupplier] = []
    for sel in stage4.selected_suppliers:
        sctx = contexts[sel.supplier_key]
        cost, options = price_block(sel.block, sctx, products)
        shipment = cost.shipment
        exact_asf = round2(cost.total_cost_asf)
        profit, roi, weeks, mroi = block_returns(options, exact_asf)

        out.append(
            ExactSupplier(
                supplier_key=sel.supplier_key,
                supplier_name=sel.supplier_name,
                block=sel.block,
                freight=FreightDetail(
                    cost=shipment.freight_cost,
                    method=shipment.method,
                    total_weight=shipment.total_weight,
                    total_cbm=shipment.total_cbm,
                    box_count=shipment.box_count,
                    pallet_count=shipment.pallet_count,
                    regression=RegressionOut(**shipment.regression.to_dict()),
                ),
                currency_fee=cost.currency_fee,
                freight_multiplier=cost.multiplier,
                cost_bsf=cost.cost_bsf,
                exact_asf=exact_asf,
                profit_land=profit,
                exact_roi=roi,
                churn_weeks=weeks,
                exact_monthly_roi=mroi,
            )
        )

    totals = CostTotals(
        total_bsf=round2(sum((s.cost_bsf for s in out), ZERO)),
        total_asf=round2(sum((s.exact_asf for s in out), ZERO)),
        total_freight=round2(sum((s.freight.cost for s in out), ZERO)),
        total_currency_fee=round2(sum((s.currency_fee for s in out), ZERO)),
    )
    logger.info("exact ASF for %d suppliers: totalASF=%s", len(out), totals.total_asf)
    return StageResult(data=Stage5Output(suppliers=out, totals=totals), meta={"suppliers": len(out)})
