# app/verticals/wholesale/stages/allocate_budget.py
from __future__ import annotations

import logging
from typing import List

from buyplan.engine.config import StageConfig
from buyplan.engine.context import StageResult

from ..calculators.rounding import ZERO, round2
from ..errors import StageDependencyError
from ..schemas.pipeline_state import (
    EstimatedBlock,
    PipelineState,
    RejectedSupplier,
    Stage4Output,
    Stage4Totals,
)
from .support import require, require_budget

logger = logging.getLogger(__name__)

STAGE = 4


def _reject(b: EstimatedBlock, reason: str) -> RejectedSupplier:
    return RejectedSupplier(
        supplier_key=b.supplier_key,
        supplier_name=b.supplier_name,
        estimated_asf=b.estimated_asf,
        estimated_monthly_roi=b.estimated_monthly_roi,
        reason=reason,
    )


def stage_allocate_budget_v1(state: PipelineState, stage: StageConfig, assets: dict) -> StageResult:
    """
    Stage 4: budget cut line. Walk the ranked suppliers and keep every block
    whose estimated ASF still fits in what is left. A block that does not fit
    is skipped, later (cheaper) blocks may still fit. Blocks short of their
    MOQ are still selected and listed in ``below_moq_suppliers``.
    """
    stage3 = require(state, 3, STAGE)
    if not stage3.ranked_suppliers:
        raise StageDependencyError("state.stage3.rankedSuppliers is empty", stage=STAGE)
    budget = require_budget(state, STAGE)

    remaining = budget
    selected: List[EstimatedBlock] = []
    rejected: List[RejectedSupplier] = []

    for b in stage3.ranked_suppliers:
        if b.estimated_asf <= 0:
            rejected.append(_reject(b, "non_positive_asf"))
        elif b.estimated_asf > remaining:
            rejected.append(_reject(b, "insufficient_budget"))
        else:
            selected.append(b)
            remaining -= b.estimated_asf

    # advisory: selected blocks whose spend still sits under the supplier MOQ
    below_moq = [b.supplier_key for b in selected if not b.block.meets_moq]

    spent = round2(sum((b.estimated_asf for b in selected), ZERO))
    totals = Stage4Totals(
        budget=round2(budget),
        spent_asf=spent,
        remaining_asf=round2(budget - spent),
        selected_count=len(selected),
        rejected_count=len(rejected),
    )
    logger.info(
        "cut line: %d selected, %d rejected, spent=%s of %s",
        totals.selected_count,
        totals.rejected_count,
        spent,
        totals.budget,
    )
    if below_moq:
        logger.info("selected below MOQ: %s", below_moq)
    return StageResult(
        data=Stage4Output(
            selected_suppliers=selected,
            rejected_suppliers=rejected,
            below_moq_suppliers=below_moq,
            totals=totals,
        ),
        meta={"selected": totals.selected_count, "remaining": str(totals.remaining_asf)},
    )
