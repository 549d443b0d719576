# app/verticals/oa/schemas/oa_plan_output.py
from __future__ import annotations

from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class _Out(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, frozen=True)


class OaPlanRowOut(_Out):
    retailer_key: str
    retailer_label: str
    supplier: str
    asin: str
    product_title: str
    retailer_link: str
    sellers: int
    monthly_sales: Decimal
    amazon_price: Optional[Decimal] = None
    unit_cost: Optional[Decimal] = None
    ppu: Optional[Decimal] = None
    roi: Decimal
    daily_sales: Decimal
    units: int
    total_cost: Decimal
    exp_profit: Decimal
    days_to_arrival: Decimal
    days_of_stock: int
    churn_weeks: Decimal
    monthly_roi: Decimal = Field(serialization_alias="monthlyROI")


class OaPlanSummaryOut(_Out):
    total_units: int
    number_of_buys: int
    total_cost: Decimal
    total_profit: Decimal
    roi_pct: Decimal
    weighted_churn_weeks: Decimal
    monthly_roi_pct: Decimal


class OaPlanOut(_Out):
    success: bool = True
    plan: List[OaPlanRowOut]
    summary: OaPlanSummaryOut
    skipped_rows: int = 0
