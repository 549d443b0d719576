from __future__ import annotations

import logging
from datetime import datetime
from typing import Any, Dict, Optional, Union

from buyplan.engine import runner
from buyplan.engine.context import EngineContext, PipelineMeta, utc_now
from buyplan.engine.registry import StageRegistry

from ..errors import InputError
from ..schemas.pipeline_state import PipelineState
from ..schemas.ws_plan_input import WsPlanInput
from ..stages import register_all
from .config import EngineConfig

logger = logging.getLogger(__name__)

FIRST_STAGE = 1
LAST_STAGE = 8

StateLike = Union[PipelineState, Dict[str, Any]]
InputsLike = Union[WsPlanInput, Dict[str, Any]]


def build_registry() -> StageRegistry:
    registry = StageRegistry()
    register_all(registry)
    return registry


def _check_stage(stage: Any) -> int:
    if isinstance(stage, bool) or not isinstance(stage, int) or not FIRST_STAGE <= stage <= LAST_STAGE:
        raise InputError(f"stage must be an integer between {FIRST_STAGE} and {LAST_STAGE}, got {stage!r}")
    return stage


def _inputs_dict(inputs: InputsLike) -> Dict[str, Any]:
    if isinstance(inputs, WsPlanInput):
        return inputs.model_dump(by_alias=True, exclude_unset=True)
    return dict(inputs)


def _initial_state(
    previous_state: Optional[StateLike],
    inputs: Optional[InputsLike],
    version: str,
    now: datetime,
) -> PipelineState:
    if previous_state is None:
        if inputs is None:
            raise InputError("inputs are required when no previous state is given")
        return PipelineState(
            meta=PipelineMeta(version=version, stage=0, created_at=now, updated_at=now),
            inputs=WsPlanInput.model_validate(_inputs_dict(inputs)),
        )

    state = (
        previous_state
        if isinstance(previous_state, PipelineState)
        else PipelineState.model_validate(previous_state)
    )
    if inputs:
        # later keys win: a caller may resend just the budget
        merged = {**state.inputs.model_dump(by_alias=True), **_inputs_dict(inputs)}
        state = state.model_copy(update={"inputs": WsPlanInput.model_validate(merged)})
    return state


def run_stage(
    stage: int,
    previous_state: Optional[StateLike] = None,
    inputs: Optional[InputsLike] = None,
    config: Optional[EngineConfig] = None,
    now: Optional[datetime] = None,
    trace_id: Optional[str] = None,
) -> PipelineState:
    """
    Run exactly one pipeline stage (1..8) and return the new state.

    Without a previous state (or one that was never loaded) stage 0 runs
    first to parse ``inputs``. Later stages are never run implicitly: a
    missing prerequisite raises StageDependencyError.
    """
    stage = _check_stage(stage)
    config = config or EngineConfig()
    pipeline = config.require_pipeline()
    now = now or utc_now()

    context = EngineContext(vertical_id=pipeline.vertical_id, now=now)
    if trace_id:
        context = EngineContext(vertical_id=pipeline.vertical_id, trace_id=trace_id, now=now)

    registry = build_registry()
    assets: Dict[str, Any] = {"config": config}

    state = _initial_state(previous_state, inputs, pipeline.version, now)
    if state.inputs.budget <= 0:
        raise InputError("budget must be a positive number", stage=stage)
    if state.data is None:
        state = runner.run_stage(context, pipeline, registry, assets, state, 0)

    state = runner.run_stage(context, pipeline, registry, assets, state, stage)

    meta = state.meta.model_copy(update={"stage": stage, "updated_at": now})
    logger.info("pipeline %s stage %d done (trace %s)", pipeline.version, stage, context.trace_id)
    return state.model_copy(update={"meta": meta})
