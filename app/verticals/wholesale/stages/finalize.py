# app/verticals/wholesale/stages/finalize.py
from __future__ import annotations

import logging
from collections import OrderedDict
from decimal import Decimal
from typing import Dict, List

from buyplan.engine.config import StageConfig
from buyplan.engine.context import StageResult

from ..calculators.churn import monthly_roi, weighted_churn_weeks
from ..calculators.roi import compute_roi
from ..calculators.rounding import ZERO, round2
from ..errors import StageDependencyError
from ..schemas.pipeline_state import CaseItem, FinalSku, FinalSummary, FinalSupplier, PipelineState, Stage8Output
from .support import engine_config, product_index, require, require_budget, supplier_contexts

D = Decimal

logger = logging.getLogger(__name__)

STAGE = 8


def stage_finalize_v1(state: PipelineState, stage: StageConfig, assets: dict) -> StageResult:
    """Stage 8: roll stage 6's cases up into the per-supplier, per-SKU buy plan."""
    data = require(state, 0, STAGE)
    stage6 = require(state, 6, STAGE)
    if not stage6.cases:
        raise StageDependencyError("No case-level allocation in state.stage6.cases", stage=STAGE)
    budget = require_budget(state, STAGE)

    contexts = supplier_contexts(data, engine_config(assets))
    products = product_index(data)

    grouped: Dict[str, Dict[str, List[CaseItem]]] = OrderedDict()
    for c in stage6.cases:
        grouped.setdefault(c.supplier_key, OrderedDict()).setdefault(c.asin, []).append(c)

    suppliers: List[FinalSupplier] = []
    for key, skus in grouped.items():
        sctx = contexts[key]
        rows: List[FinalSku] = []
        for asin, cases in skus.items():
            p = products[(key, asin)]
            units = sum(c.units for c in cases)
            asf = round2(sum((c.asf_cost for c in cases), ZERO))
            profit = round2(sum((c.profit for c in cases), ZERO))
            roi = compute_roi(profit, asf)
            weeks = sctx.churn.weeks_for(p.item_name, p.monthly_sales, p.seller_count, units, p.queued_weeks)
            rows.append(
                FinalSku(
                    asin=asin,
                    item_name=p.item_name,
                    units=units,
                    cases=len(cases),
                    asf_cost=asf,
                    profit=profit,
                    roi=roi,
                    churn_weeks=weeks,
                    monthly_roi=monthly_roi(roi, weeks),
                )
            )

        total_asf = round2(sum((r.asf_cost for r in rows), ZERO))
        total_bsf = round2(sum((c.cost_bsf for cases in skus.values() for c in cases), ZERO))
        profit = round2(sum((r.profit for r in rows), ZERO))
        roi = compute_roi(profit, total_asf)
        weeks = weighted_churn_weeks((r.churn_weeks, r.asf_cost) for r in rows)
        suppliers.append(
            FinalSupplier(
                supplier_key=key,
                supplier_name=sctx.supplier.name or key,
                total_asf=total_asf,
                total_bsf=total_bsf,
                total_units=sum(r.units for r in rows),
                expected_profit=profit,
                average_roi=roi,
                monthly_roi=monthly_roi(roi, weeks),
                moq_gbp=sctx.moq,
                meets_moq=sctx.moq <= 0 or total_bsf >= sctx.moq,
                skus=rows,
            )
        )

    used = round2(sum((s.total_asf for s in suppliers), ZERO))
    profit = round2(sum((s.expected_profit for s in suppliers), ZERO))
    roi = compute_roi(profit, used)
    weeks = weighted_churn_weeks((r.churn_weeks, r.asf_cost) for s in suppliers for r in s.skus)
    summary = FinalSummary(
        budget=round2(budget),
        budget_used=used,
        budget_remaining=round2(budget - used),
        expected_profit=profit,
        average_roi=roi,
        weighted_churn_weeks=weeks,
        monthly_roi=monthly_roi(roi, weeks),
        supplier_count=len(suppliers),
        total_units=sum(s.total_units for s in suppliers),
    )
    logger.info(
        "final plan: %d suppliers, used=%s remaining=%s profit=%s",
        summary.supplier_count,
        used,
        summary.budget_remaining,
        profit,
    )
    return StageResult(
        data=Stage8Output(summary=summary, suppliers=suppliers),
        meta={"suppliers": summary.supplier_count, "budget_used": str(used)},
    )
