# app/verticals/wholesale/schemas/ws_plan_output.py
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Out(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, frozen=True)


class RegressionOut(_Out):
    found: bool = False
    curve_id: Optional[str] = None
    message: Optional[str] = None


class AllocationProductOut(_Out):
    asin: str
    item_name: str
    units_to_order: int
    cases: int
    supplier_price: Decimal
    amazon_price: Decimal
    landed_cost_per_unit: Decimal
    profit_per_unit: Decimal
    roi: Decimal
    monthly_roi: Decimal = Field(serialization_alias="monthlyROI")
    churn_weeks: Decimal
    total_cost: Decimal
    total_profit: Decimal
    monthly_sales: Decimal
    sellers: int
    code_link: str = ""


class SupplierFreightOut(_Out):
    freight_cost: Decimal
    currency_fee: Decimal
    shipping_and_fees: Decimal
    freight_multiplier: Decimal
    method: str
    total_weight_kg: Decimal = Field(serialization_alias="totalWeightKG")
    total_cbm: Decimal = Field(serialization_alias="totalCBM")
    total_boxes: int
    pallets: int
    regression: RegressionOut


class SupplierSummaryOut(_Out):
    cost_bsf: Decimal = Field(serialization_alias="costBSF")
    cost_asf: Decimal = Field(serialization_alias="costASF")
    expected_profit: Decimal
    roi: Decimal
    churn_weeks: Decimal
    monthly_roi: Decimal = Field(serialization_alias="monthlyROI")
    moq_gbp: Decimal = Field(serialization_alias="moqGBP")


class SupplierAllocationOut(_Out):
    supplier_key: str
    supplier_name: str
    freight: SupplierFreightOut
    summary: SupplierSummaryOut
    products: List[AllocationProductOut]


class AllocationSummaryOut(_Out):
    budget: Decimal
    total_units: int
    total_cost_asf: Decimal = Field(serialization_alias="totalCostASF")
    expected_profit: Decimal
    remaining_budget: Decimal
    roi: Decimal
    weighted_churn_weeks: Decimal
    monthly_roi: Decimal = Field(serialization_alias="monthlyROI")
    strategy: str
    candidate_bundles: int


class AllocationOut(_Out):
    engine_version: str
    summary: AllocationSummaryOut
    suppliers: List[SupplierAllocationOut]
