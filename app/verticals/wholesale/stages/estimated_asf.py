# app/verticals/wholesale/stages/estimated_asf.py
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List

from buyplan.engine.config import StageConfig
from buyplan.engine.context import StageResult

from ..calculators.rounding import ZERO, round2
from ..errors import StageDependencyError
from ..schemas.pipeline_state import CostTotals, EstimatedBlock, PipelineState, Stage2Output
from .support import (
    block_returns,
    engine_config,
    price_block,
    product_index,
    require,
    require_budget,
    supplier_contexts,
)

D = Decimal

logger = logging.getLogger(__name__)

STAGE = 2


def stage_estimated_asf_v1(state: PipelineState, stage: StageConfig, assets: dict) -> StageResult:
    """
    Stage 2: price each MOQ block's shipment and estimate its after-shipping
    cost as ``totalBSF * freightMultiplier``.
    """
    data = require(state, 0, STAGE)
    stage1 = require(state, 1, STAGE)
    require_budget(state, STAGE)
    if not stage1.moq_blocks:
        raise StageDependencyError("state.stage1.moqBlocks is empty", stage=STAGE)

    config = engine_config(assets)
    contexts = supplier_contexts(data, config)
    products = product_index(data)

    out: List[EstimatedBlock] = []
    for block in stage1.moq_blocks:
        sctx = contexts[block.supplier_key]
        cost, options = price_block(block, sctx, products)
        estimated_asf = round2(block.total_bsf * cost.multiplier)
        profit, roi, weeks, mroi = block_returns(options, estimated_asf)
        profit_bsf = round2(sum((bp.profit_per_unit_bsf * bp.units for bp in block.products), ZERO))

        out.append(
            EstimatedBlock(
                supplier_key=block.supplier_key,
                supplier_name=block.supplier_name,
                block=block,
                estimated_freight=cost.shipment.freight_cost,
                freight_method=cost.shipment.method,
                currency_fee=cost.currency_fee,
                freight_multiplier=cost.multiplier,
                estimated_asf=estimated_asf,
                profit_bsf=profit_bsf,
                estimated_profit=profit,
                estimated_roi=roi,
                churn_weeks=weeks,
                estimated_monthly_roi=mroi,
            )
        )
        logger.debug(
            "block %s: bsf=%s asf=%s method=%s monthlyROI=%s",
            block.supplier_key,
            block.total_bsf,
            estimated_asf,
            cost.shipment.method,
            mroi,
        )

    totals = CostTotals(
        total_bsf=round2(sum((b.block.total_bsf for b in out), ZERO)),
        total_asf=round2(sum((b.estimated_asf for b in out), ZERO)),
        total_freight=round2(sum((b.estimated_freight for b in out), ZERO)),
        total_currency_fee=round2(sum((b.currency_fee for b in out), ZERO)),
    )
    logger.info("estimated ASF for %d blocks: totalASF=%s", len(out), totals.total_asf)
    return StageResult(data=Stage2Output(blocks=out, totals=totals), meta={"blocks": len(out)})
