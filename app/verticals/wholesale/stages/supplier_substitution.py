# app/verticals/wholesale/stages/supplier_substitution.py
"""
Stage 7: supplier substitution (advisory).

Tries to swap the worst included case for the best MOQ block of a supplier
that missed the cut line, modelled as one synthetic case. Only reports
before/after metrics; stage 6's allocation is left as is.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import List

from buyplan.engine.config import StageConfig
from buyplan.engine.context import StageResult

from ..calculators.rounding import ZERO, round2, round4
from ..errors import StageDependencyError
from ..schemas.pipeline_state import (
    CaseItem,
    CaseSetMetrics,
    EstimatedBlock,
    PipelineState,
    Stage7Output,
    Substitution,
)
from .reallocate_cases import case_key, rank_key
from .support import require, require_budget

D = Decimal

logger = logging.getLogger(__name__)

STAGE = 7
DEFAULT_MAX_ITERATIONS = 3
BLOCK_ASIN = "BLOCK"


def avg_marginal_roi(cases: List[CaseItem]) -> D:
    if not cases:
        return D("0.0000")
    return round4(sum((c.marginal_roi for c in cases), ZERO) / len(cases))


def metrics(cases: List[CaseItem]) -> CaseSetMetrics:
    return CaseSetMetrics(
        total_asf=round2(sum((c.asf_cost for c in cases), ZERO)),
        avg_marginal_roi=avg_marginal_roi(cases),
        case_count=len(cases),
    )


def block_case(b: EstimatedBlock) -> CaseItem:
    return CaseItem(
        supplier_key=b.supplier_key,
        supplier_name=b.supplier_name,
        asin=BLOCK_ASIN,
        item_name="MOQ Block",
        case_index=1,
        units=b.block.total_units,
        cost_bsf=b.block.total_bsf,
        asf_cost=b.estimated_asf,
        profit=b.estimated_profit,
        marginal_roi=b.estimated_monthly_roi,
    )


def stage_supplier_substitution_v1(state: PipelineState, stage: StageConfig, assets: dict) -> StageResult:
    stage2 = require(state, 2, STAGE)
    stage4 = require(state, 4, STAGE)
    stage6 = require(state, 6, STAGE)
    if not stage6.cases:
        raise StageDependencyError("No case-level allocation in state.stage6.cases", stage=STAGE)
    budget = require_budget(state, STAGE)
    max_iterations = int(stage.with_.get("max_iterations", DEFAULT_MAX_ITERATIONS))

    # only blocks the cut line left out for lack of budget
    priced_out = {r.supplier_key for r in stage4.rejected_suppliers if r.reason == "insufficient_budget"}
    candidates = sorted(
        (b for b in stage2.blocks if b.supplier_key in priced_out),
        key=lambda b: b.estimated_monthly_roi,
        reverse=True,
    )

    before = metrics(stage6.cases)
    best = list(stage6.cases)
    best_avg = before.avg_marginal_roi
    swaps: List[Substitution] = []
    iterations = 0

    while iterations < max_iterations and candidates and best:
        iterations += 1
        worst = max(best, key=rank_key)
        block = candidates.pop(0)

        trial = [c for c in best if case_key(c) != case_key(worst)]
        trial_asf = sum((c.asf_cost for c in trial), ZERO)
        if trial_asf + block.estimated_asf > budget:
            logger.debug("substitution: %s does not fit the budget", block.supplier_key)
            continue

        trial.append(block_case(block))
        trial_avg = avg_marginal_roi(trial)
        if trial_avg > best_avg:
            best, best_avg = trial, trial_avg
            swaps.append(
                Substitution(
                    removed_supplier_key=worst.supplier_key,
                    removed_asin=worst.asin,
                    removed_case_index=worst.case_index,
                    added_supplier_key=block.supplier_key,
                    added_asf=block.estimated_asf,
                    added_marginal_roi=block.estimated_monthly_roi,
                )
            )

    after = metrics(best)
    logger.info(
        "substitution: %d swaps in %d iterations, avg marginal ROI %s -> %s",
        len(swaps),
        iterations,
        before.avg_marginal_roi,
        after.avg_marginal_roi,
    )
    return StageResult(
        data=Stage7Output(
            improved=bool(swaps),
            iterations=iterations,
            before=before,
            after=after,
            substitutions=swaps,
        ),
        meta={"improved": bool(swaps), "iterations": iterations},
    )
