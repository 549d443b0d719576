# buyplan/engine/runner.py
from __future__ import annotations
import logging
from typing import Any, Dict, TypeVar
from .context import EngineContext, StagedState, StageResult
from .config import PipelineConfig
from .registry import StageRegistry

logger = logging.getLogger(__name__)

S = TypeVar("S", bound=StagedState)


def _log(state: StagedState, context: EngineContext, level: str, msg: str, **fields: Any) -> None:
    state.logs.append(
        {
            "level": level,
            "message": msg,
            "vertical_id": context.vertical_id,
            "trace_id": context.trace_id,
            "at": context.now.isoformat(),
            **fields,
        }
    )


def run_stage(
    context: EngineContext,
    config: PipelineConfig,
    registry: StageRegistry,
    assets: Dict[str, Any],
    state: S,
    stage: int,
) -> S:
    """
    Execute exactly one configured stage against a copy of ``state``.
    The stage output lands in its own slot; nothing else is touched
    except the structured log list. Stage exceptions are logged and re-raised:
    there is no retry or continue-on-failure here, the caller owns re-invocation.
    """
    stage_cfg = config.stage(stage)
    state = state.model_copy(deep=True)

    _log(state, context, "info", "stage_start", stage=stage, stage_id=stage_cfg.id, stage_use=stage_cfg.use)

    try:
        stage_fn = registry.get(stage_cfg.use)
        result: StageResult = stage_fn(state, stage_cfg, assets)
    except Exception as e:
        # keep the failure in the run log before surfacing it
        _log(
            state,
            context,
            "error",
            "stage_exception",
            stage=stage,
            stage_id=stage_cfg.id,
            exc=f"{type(e).__name__}: {e}",
        )
        logger.warning("stage %s (%s) failed: %s", stage, stage_cfg.id, e)
        raise

    _log(
        state,
        context,
        "info" if result.status == "OK" else "warning",
        "stage_end",
        stage=stage,
        stage_id=stage_cfg.id,
        status=result.status,
        error=result.error,
        meta=result.meta,
    )
    logger.info("stage %s (%s) %s %s", stage, stage_cfg.id, result.status, result.meta)

    return state.with_output(stage, result.data)
