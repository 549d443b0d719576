# app/verticals/wholesale/stages/load.py
from __future__ import annotations

import logging

from buyplan.engine.config import StageConfig
from buyplan.engine.context import StageResult

from ..data_validators.products import prepare_products
from ..data_validators.suppliers import build_supplier_map
from ..schemas.pipeline_state import LoadedData, LoadSummary, PipelineState

logger = logging.getLogger(__name__)


def stage_load_v1(state: PipelineState, stage: StageConfig, assets: dict) -> StageResult:
    """Stage 0: normalize supplier keys and parse the raw inputs into ``data``."""
    inputs = state.inputs
    suppliers = list(build_supplier_map(inputs.suppliers).values())
    products = prepare_products(inputs)

    summary = LoadSummary(
        suppliers_loaded=len(suppliers),
        products_loaded=len(inputs.products),
        eligible_products=len(products),
        skipped_products=len(inputs.products) - len(products),
        has_freight_config=bool(inputs.model_fields_set & {"freight_config"}),
    )
    logger.info(
        "loaded %d suppliers, %d/%d eligible products",
        summary.suppliers_loaded,
        summary.eligible_products,
        summary.products_loaded,
    )

    data = LoadedData(
        suppliers=suppliers,
        products=products,
        freight_config=inputs.freight_config,
        freight_curves=list(inputs.freight_curves),
        churn_settings=dict(inputs.churn_settings),
        summary=summary,
    )
    return StageResult(status="OK", data=data, meta=summary.model_dump())
