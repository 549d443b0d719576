from __future__ import annotations

import time
from functools import lru_cache
from typing import Any, Dict, Optional

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, ValidationError

from app.core.logging_config import logger
from app.core.settings import settings
from app.verticals.wholesale.engine.allocator import allocate
from app.verticals.wholesale.engine.config import EngineConfig
from app.verticals.wholesale.engine.pipeline import run_stage
from app.verticals.wholesale.engine.shipment_plan import plan_shipment
from app.verticals.wholesale.errors import BuyPlanError, InputError, StageDependencyError
from app.verticals.wholesale.schemas.shipment_plan_output import ShipmentPlanOut
from app.verticals.wholesale.schemas.ws_plan_input import ShipmentPlanInput, WsPlanInput
from app.verticals.wholesale.schemas.ws_plan_output import AllocationOut

# ----------------------------
# Router
# ----------------------------
router = APIRouter(prefix="/api/ws-plan", tags=["wholesale", "ws-plan"])


class StagedRequest(BaseModel):
    inputs: Optional[Dict[str, Any]] = None
    state: Optional[Dict[str, Any]] = None


@lru_cache(maxsize=1)
def get_engine_config() -> EngineConfig:
    return EngineConfig.from_yaml_file(settings.BUYPLAN_CONFIG_PATH)


# ----------------------------
# Helpers
# ----------------------------
def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", None) or request.headers.get("X-Request-ID", "unknown")


def _log_obs(
    *,
    request: Request,
    endpoint: str,
    t0: float,
    result: str,
    event: str,
    status_code: int,
    **fields: Any,
) -> None:
    logger.bind(
        request_id=_request_id(request),
        endpoint=endpoint,
        duration_ms=round((time.time() - t0) * 1000, 2),
        result=result,
        status_code=status_code,
        **fields,
    ).info(event)


def _error_response(e: BuyPlanError) -> JSONResponse:
    status_code = 409 if isinstance(e, StageDependencyError) else 400
    return JSONResponse(status_code=status_code, content=e.to_dict())


# ----------------------------
# 1) Monolithic allocation
# ----------------------------
@router.post("/allocate", response_model=AllocationOut)
def allocate_plan(
    payload: WsPlanInput,
    request: Request,
    config: EngineConfig = Depends(get_engine_config),
):
    t0 = time.time()
    endpoint = "/api/ws-plan/allocate"
    try:
        out = allocate(payload, config)
    except BuyPlanError as e:
        resp = _error_response(e)
        _log_obs(
            request=request,
            endpoint=endpoint,
            t0=t0,
            result="error",
            event="ws_plan_allocate",
            status_code=resp.status_code,
            error_code=e.code,
        )
        return resp

    _log_obs(
        request=request,
        endpoint=endpoint,
        t0=t0,
        result="ok",
        event="ws_plan_allocate",
        status_code=200,
        product_count=len(payload.products),
        supplier_count=len(out.suppliers),
        strategy=out.summary.strategy,
    )
    return out


# ----------------------------
# 2) Staged pipeline, one stage per call
# ----------------------------
@router.post("/v3")
def run_plan_stage(
    stage: int,
    body: StagedRequest,
    request: Request,
    config: EngineConfig = Depends(get_engine_config),
):
    t0 = time.time()
    endpoint = "/api/ws-plan/v3"
    try:
        try:
            state = run_stage(
                stage,
                previous_state=body.state,
                inputs=body.inputs,
                config=config,
                trace_id=_request_id(request) if "X-Request-ID" in request.headers else None,
            )
        except ValidationError as e:
            raise InputError(f"invalid inputs or state: {e.error_count()} validation error(s)") from e
        except KeyError as e:
            # state slots that reference suppliers or products missing from state.data
            raise InputError(f"inconsistent state: unknown key {e}", stage=stage) from e
    except BuyPlanError as e:
        resp = _error_response(e)
        _log_obs(
            request=request,
            endpoint=endpoint,
            t0=t0,
            result="error",
            event="ws_plan_stage",
            status_code=resp.status_code,
            stage=stage,
            error_code=e.code,
        )
        return resp

    _log_obs(
        request=request,
        endpoint=endpoint,
        t0=t0,
        result="ok",
        event="ws_plan_stage",
        status_code=200,
        stage=stage,
    )
    return JSONResponse(content=state.model_dump(mode="json", by_alias=True))


# ----------------------------
# 3) Shipment pricing for a chosen basket
# ----------------------------
@router.post("/v1/shipment", response_model=ShipmentPlanOut)
def price_shipment_plan(
    payload: ShipmentPlanInput,
    request: Request,
    config: EngineConfig = Depends(get_engine_config),
):
    t0 = time.time()
    endpoint = "/api/ws-plan/v1/shipment"
    try:
        out = plan_shipment(payload, config)
    except BuyPlanError as e:
        resp = _error_response(e)
        _log_obs(
            request=request,
            endpoint=endpoint,
            t0=t0,
            result="error",
            event="ws_plan_shipment",
            status_code=resp.status_code,
            error_code=e.code,
        )
        return resp

    _log_obs(
        request=request,
        endpoint=endpoint,
        t0=t0,
        result="ok",
        event="ws_plan_shipment",
        status_code=200,
        product_count=len(out.products),
        regression_found=out.regression.found,
    )
    return out
