# app/verticals/wholesale/stages/moq_blocks.py
"""
Stage 1: per-supplier MOQ blocks, priced before shipping (BSF).

Products are ranked by a churn-aware one-case monthly ROI proxy and cases
are added one at a time, best product first, until the block spend reaches
the supplier MOQ. When every product already holds a case and the block is
still short, further rounds add another case per product, each SKU capped
at what it can sell within the stock horizon.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Tuple

from buyplan.engine.config import StageConfig
from buyplan.engine.context import StageResult

from ..calculators.churn import monthly_roi
from ..calculators.roi import compute_roi, profit_per_unit
from ..calculators.rounding import ZERO, round2, round4, safe_divide
from ..data_validators.products import group_by_supplier
from ..engine.config import OptionsConfig
from ..engine.context import SupplierContext
from ..engine.options import velocity_cases
from ..errors import InputError
from ..schemas.pipeline_state import BlockProduct, MoqBlock, PipelineState, Stage1Output, Stage1Totals
from ..schemas.ws_plan_input import ProductIn
from .support import engine_config, require, require_budget, supplier_contexts

D = Decimal

logger = logging.getLogger(__name__)

STAGE = 1


def _proxy(p: ProductIn, sctx: SupplierContext) -> Tuple[D, D, D]:
    """(profit per unit BSF, ROI BSF, monthly ROI BSF for one case)."""
    ppu = profit_per_unit(p.amazon_price, p.amazon_fees, p.vat_per_unit, p.supplier_price)
    roi = compute_roi(ppu, p.supplier_price)
    weeks = sctx.churn.weeks_for(p.item_name, p.monthly_sales, p.seller_count, p.case_size, p.queued_weeks)
    return ppu, roi, monthly_roi(roi, weeks)


def _fill_cases(ranked: List[ProductIn], caps: Dict[str, int], moq: D) -> Dict[str, int]:
    cases = {p.asin: 0 for p in ranked}
    if moq <= 0:
        for p in ranked:
            cases[p.asin] = 1
        return cases

    running = ZERO
    while running < moq:
        added = False
        for p in ranked:
            if running >= moq:
                break
            if cases[p.asin] >= caps[p.asin]:
                continue
            cases[p.asin] += 1
            running += p.supplier_price * p.case_size
            added = True
        if not added:
            break
    return cases


def build_block(products: List[ProductIn], sctx: SupplierContext, options: OptionsConfig) -> MoqBlock:
    scored = [(p, _proxy(p, sctx)) for p in products]
    scored.sort(key=lambda row: row[1][2], reverse=True)
    ranked = [p for p, _ in scored]

    # the top product always gets its first case, even past its horizon
    caps = {p.asin: max(1, velocity_cases(p, options)) for p in ranked}
    cases = _fill_cases(ranked, caps, sctx.moq)

    chosen: List[BlockProduct] = []
    for p, (ppu, roi, mroi) in scored:
        n = cases[p.asin]
        if n <= 0:
            continue
        units = n * p.case_size
        chosen.append(
            BlockProduct(
                asin=p.asin,
                item_name=p.item_name,
                case_size=p.case_size,
                cases=n,
                units=units,
                supplier_price=p.supplier_price,
                cost_bsf=round2(p.supplier_price * units),
                profit_per_unit_bsf=ppu,
                roi_bsf=roi,
                monthly_roi_bsf=mroi,
            )
        )

    total_bsf = round2(sum((bp.cost_bsf for bp in chosen), ZERO))
    avg = round4(safe_divide(sum((bp.monthly_roi_bsf for bp in chosen), ZERO), D(len(chosen) or 1)))
    return MoqBlock(
        supplier_key=sctx.key,
        supplier_name=sctx.supplier.name or sctx.key,
        moq_gbp=sctx.moq,
        total_bsf=total_bsf,
        total_units=sum(bp.units for bp in chosen),
        total_cases=sum(bp.cases for bp in chosen),
        meets_moq=sctx.moq <= 0 or total_bsf >= sctx.moq,
        avg_monthly_roi_bsf=avg,
        products=chosen,
    )


def stage_moq_blocks_v1(state: PipelineState, stage: StageConfig, assets: dict) -> StageResult:
    data = require(state, 0, STAGE)
    require_budget(state, STAGE)
    if not data.products:
        raise InputError("No products available in state.data.products", stage=STAGE)

    config = engine_config(assets)
    groups = group_by_supplier(list(data.products))
    contexts = supplier_contexts(data, config)

    blocks: List[MoqBlock] = []
    for key, rows in groups.items():
        block = build_block(rows, contexts[key], config.options)
        if block.products:
            blocks.append(block)

    blocks.sort(key=lambda b: b.avg_monthly_roi_bsf, reverse=True)

    totals = Stage1Totals(
        supplier_count=len(data.suppliers),
        product_count=len(data.products),
        included_suppliers=len(blocks),
        included_skus=sum(len(b.products) for b in blocks),
        total_bsf=round2(sum((b.total_bsf for b in blocks), ZERO)),
    )
    logger.info(
        "built %d MOQ blocks, includedSkus=%d, totalBSF=%s",
        totals.included_suppliers,
        totals.included_skus,
        totals.total_bsf,
    )
    return StageResult(
        data=Stage1Output(moq_blocks=blocks, totals=totals),
        meta={"blocks": len(blocks), "below_moq": sum(1 for b in blocks if not b.meets_moq)},
    )
