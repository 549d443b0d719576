# app/verticals/wholesale/stages/rank_suppliers.py
from __future__ import annotations

import logging

from buyplan.engine.config import StageConfig
from buyplan.engine.context import StageResult

from ..errors import StageDependencyError
from ..schemas.pipeline_state import PipelineState, Stage3Output
from .support import require, require_budget

logger = logging.getLogger(__name__)

STAGE = 3


def stage_rank_suppliers_v1(state: PipelineState, stage: StageConfig, assets: dict) -> StageResult:
    """Stage 3: estimated monthly ROI, best first. Ties keep stage 2 order."""
    stage2 = require(state, 2, STAGE)
    require_budget(state, STAGE)
    if not stage2.blocks:
        raise StageDependencyError("state.stage2.blocks is empty", stage=STAGE)

    ranked = sorted(stage2.blocks, key=lambda b: b.estimated_monthly_roi, reverse=True)
    logger.info("ranked %d suppliers, top=%s", len(ranked), ranked[0].supplier_key)
    return StageResult(
        data=Stage3Output(ranked_suppliers=ranked),
        meta={"order": [b.supplier_key for b in ranked]},
    )
