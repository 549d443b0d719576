# app/verticals/wholesale/schemas/pipeline_state.py
"""
Typed stage outputs of the staged buy-plan pipeline.

Every slot is None until its stage has run. The whole state round-trips
through JSON (camelCase aliases, Decimals as strings) so HTTP callers can
send it back for the next stage.
"""
from __future__ import annotations

from decimal import Decimal
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from buyplan.engine.context import StagedState

from .ws_plan_input import ChurnSettingIn, FreightConfigIn, FreightCurveIn, ProductIn, SupplierIn, WsPlanInput
from .ws_plan_output import RegressionOut


class _State(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)


# -----------------------------
# Stage 0: load
# -----------------------------


class LoadSummary(_State):
    suppliers_loaded: int
    products_loaded: int
    eligible_products: int
    skipped_products: int
    has_freight_config: bool


class LoadedData(_State):
    suppliers: List[SupplierIn]
    products: List[ProductIn]
    freight_config: FreightConfigIn
    freight_curves: List[FreightCurveIn] = Field(default_factory=list)
    churn_settings: Dict[str, ChurnSettingIn] = Field(default_factory=dict)
    summary: LoadSummary


# -----------------------------
# Stage 1: MOQ blocks
# -----------------------------


class BlockProduct(_State):
    asin: str
    item_name: str = ""
    case_size: int
    cases: int
    units: int
    supplier_price: Decimal
    cost_bsf: Decimal = Field(alias="costBSF")
    profit_per_unit_bsf: Decimal = Field(alias="profitPerUnitBSF")
    roi_bsf: Decimal = Field(alias="roiBSF")
    monthly_roi_bsf: Decimal = Field(alias="monthlyRoiBSF")


class MoqBlock(_State):
    supplier_key: str
    supplier_name: str
    moq_gbp: Decimal = Field(alias="moqGBP")
    total_bsf: Decimal = Field(alias="totalBSF")
    total_units: int
    total_cases: int
    meets_moq: bool
    avg_monthly_roi_bsf: Decimal = Field(alias="avgMonthlyRoiBSF")
    products: List[BlockProduct]


class Stage1Totals(_State):
    supplier_count: int
    product_count: int
    included_suppliers: int
    included_skus: int
    total_bsf: Decimal = Field(alias="totalBSF")


class Stage1Output(_State):
    moq_blocks: List[MoqBlock]
    totals: Stage1Totals


# -----------------------------
# Stage 2/3/4: estimated ASF, ranking, cut line
# -----------------------------


class EstimatedBlock(_State):
    supplier_key: str
    supplier_name: str
    block: MoqBlock
    estimated_freight: Decimal
    freight_method: str
    currency_fee: Decimal
    freight_multiplier: Decimal
    estimated_asf: Decimal = Field(alias="estimatedASF")
    profit_bsf: Decimal = Field(alias="profitBSF")
    estimated_profit: Decimal
    estimated_roi: Decimal
    churn_weeks: Decimal
    estimated_monthly_roi: Decimal = Field(alias="estimatedMonthlyROI")


class CostTotals(_State):
    total_bsf: Decimal = Field(alias="totalBSF")
    total_asf: Decimal = Field(alias="totalASF")
    total_freight: Decimal
    total_currency_fee: Decimal


class Stage2Output(_State):
    blocks: List[EstimatedBlock]
    totals: CostTotals


class Stage3Output(_State):
    ranked_suppliers: List[EstimatedBlock]


class RejectedSupplier(_State):
    supplier_key: str
    supplier_name: str
    estimated_asf: Decimal = Field(alias="estimatedASF")
    estimated_monthly_roi: Decimal = Field(alias="estimatedMonthlyROI")
    reason: str  # "non_positive_asf" | "insufficient_budget" | "below_moq"


class Stage4Totals(_State):
    budget: Decimal
    spent_asf: Decimal = Field(alias="spentASF")
    remaining_asf: Decimal = Field(alias="remainingASF")
    selected_count: int
    rejected_count: int


class Stage4Output(_State):
    selected_suppliers: List[EstimatedBlock]
    rejected_suppliers: List[RejectedSupplier]
    below_moq_suppliers: List[str] = Field(default_factory=list)
    totals: Stage4Totals


# -----------------------------
# Stage 5: exact ASF
# -----------------------------


class FreightDetail(_State):
    cost: Decimal
    method: str
    total_weight: Decimal
    total_cbm: Decimal = Field(alias="totalCBM")
    box_count: int
    pallet_count: int
    regression: RegressionOut


class ExactSupplier(_State):
    supplier_key: str
    supplier_name: str
    block: MoqBlock
    freight: FreightDetail
    currency_fee: Decimal
    freight_multiplier: Decimal
    cost_bsf: Decimal = Field(alias="costBSF")
    exact_asf: Decimal = Field(alias="exactASF")
    profit_land: Decimal
    exact_roi: Decimal
    churn_weeks: Decimal
    exact_monthly_roi: Decimal = Field(alias="exactMonthlyROI")


class Stage5Output(_State):
    suppliers: List[ExactSupplier]
    totals: CostTotals


# -----------------------------
# Stage 6: case-level reallocation
# -----------------------------


class CaseItem(_State):
    supplier_key: str
    supplier_name: str
    asin: str
    item_name: str = ""
    case_index: int  # k-th case of this SKU (1-based)
    units: int
    cost_bsf: Decimal = Field(alias="costBSF")
    asf_cost: Decimal
    profit: Decimal
    marginal_roi: Decimal


class Stage6Totals(_State):
    budget: Decimal
    total_asf: Decimal = Field(alias="totalASF")
    remaining: Decimal
    total_units: int
    case_count: int
    pool_size: int


class Stage6Output(_State):
    cases: List[CaseItem]
    below_moq_suppliers: List[str] = Field(default_factory=list)
    totals: Stage6Totals


# -----------------------------
# Stage 7: supplier substitution (advisory)
# -----------------------------


class CaseSetMetrics(_State):
    total_asf: Decimal = Field(alias="totalASF")
    avg_marginal_roi: Decimal
    case_count: int


class Substitution(_State):
    removed_supplier_key: str
    removed_asin: str
    removed_case_index: int
    added_supplier_key: str
    added_asf: Decimal = Field(alias="addedASF")
    added_marginal_roi: Decimal


class Stage7Output(_State):
    improved: bool
    iterations: int
    before: CaseSetMetrics
    after: CaseSetMetrics
    substitutions: List[Substitution] = Field(default_factory=list)


# -----------------------------
# Stage 8: finalize
# -----------------------------


class FinalSku(_State):
    asin: str
    item_name: str = ""
    units: int
    cases: int
    asf_cost: Decimal
    profit: Decimal
    roi: Decimal
    churn_weeks: Decimal
    monthly_roi: Decimal = Field(alias="monthlyROI")


class FinalSupplier(_State):
    supplier_key: str
    supplier_name: str
    total_asf: Decimal = Field(alias="totalASF")
    total_bsf: Decimal = Field(alias="totalBSF")
    total_units: int
    expected_profit: Decimal
    average_roi: Decimal = Field(alias="averageROI")
    monthly_roi: Decimal = Field(alias="monthlyROI")
    moq_gbp: Decimal = Field(alias="moqGBP")
    meets_moq: bool
    skus: List[FinalSku]


class FinalSummary(_State):
    budget: Decimal
    budget_used: Decimal
    budget_remaining: Decimal
    expected_profit: Decimal
    average_roi: Decimal = Field(alias="averageROI")
    weighted_churn_weeks: Decimal
    monthly_roi: Decimal = Field(alias="monthlyROI")
    supplier_count: int
    total_units: int


class Stage8Output(_State):
    summary: FinalSummary
    suppliers: List[FinalSupplier]


# -----------------------------
# State
# -----------------------------


class PipelineState(StagedState):
    """
    ``data`` is stage 0's slot (the loaded, normalized inputs);
    ``stage1`` .. ``stage8`` hold the later stages.
    """

    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel)

    inputs: WsPlanInput
    data: Optional[LoadedData] = None
    stage1: Optional[Stage1Output] = None
    stage2: Optional[Stage2Output] = None
    stage3: Optional[Stage3Output] = None
    stage4: Optional[Stage4Output] = None
    stage5: Optional[Stage5Output] = None
    stage6: Optional[Stage6Output] = None
    stage7: Optional[Stage7Output] = None
    stage8: Optional[Stage8Output] = None

    @staticmethod
    def slot_name(stage: int) -> str:
        return "data" if stage == 0 else f"stage{stage}"
