from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.core.logging_config import logger
from app.core.settings import settings
from app.verticals.oa.engine.planner import OaPlanConfig, generate_oa_plan
from app.verticals.oa.schemas.oa_plan_input import OaPlanInput
from app.verticals.oa.schemas.oa_plan_output import OaPlanOut
from app.verticals.wholesale.errors import BuyPlanError

router = APIRouter(prefix="/api/oa", tags=["oa"])


def get_oa_config() -> OaPlanConfig:
    return OaPlanConfig(churn_cap_weeks=settings.OA_CHURN_CAP_WEEKS)


def _log_obs(*, request: Request, t0: float, result: str, status_code: int, **fields: Any) -> None:
    logger.bind(
        request_id=request.headers.get("X-Request-ID", "unknown"),
        endpoint="/api/oa/plan",
        duration_ms=round((time.time() - t0) * 1000, 2),
        result=result,
        status_code=status_code,
        **fields,
    ).info("oa_plan")


@router.post("/plan", response_model=OaPlanOut)
def create_oa_plan(
    payload: OaPlanInput,
    request: Request,
    config: OaPlanConfig = Depends(get_oa_config),
):
    t0 = time.time()
    try:
        out = generate_oa_plan(payload, config)
    except BuyPlanError as e:
        _log_obs(request=request, t0=t0, result="error", status_code=400, error_code=e.code)
        return JSONResponse(status_code=400, content=e.to_dict())

    _log_obs(
        request=request,
        t0=t0,
        result="ok",
        status_code=200,
        row_count=len(payload.goods_values) - 1,
        buys=out.summary.number_of_buys,
        excluded_retailers=len(payload.excluded_retailers),
    )
    return out
