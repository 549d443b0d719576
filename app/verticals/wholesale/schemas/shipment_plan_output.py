# app/verticals/wholesale/schemas/shipment_plan_output.py
from __future__ import annotations

from decimal import Decimal
from typing import List

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from .ws_plan_output import RegressionOut


class _Out(BaseModel):
    model_config = ConfigDict(populate_by_name=True, alias_generator=to_camel, frozen=True)


class ShipmentPlanProductOut(_Out):
    asin: str
    item_name: str
    units_to_order: int
    supplier_price: Decimal
    freight_multiplier: Decimal
    landed_cost_per_unit: Decimal
    profit_per_unit: Decimal
    roi: Decimal
    monthly_roi: Decimal = Field(serialization_alias="monthlyROI")
    total_cost: Decimal
    expected_profit: Decimal
    daily_sales_avg: Decimal
    days_of_stock: int
    churn_weeks: Decimal


class ShipmentTotalsOut(_Out):
    total_weight_kg: Decimal
    total_cbm: Decimal = Field(serialization_alias="totalCBM")
    box_count: int
    pallet_count: int
    warehouse: str = ""
    country: str = ""
    freight_mode: str = ""
    packaging_type: str = ""


class ShipmentFreightOut(_Out):
    """costBSF here is the freight charge itself (base regression cost), not product spend."""

    cost_bsf: Decimal = Field(serialization_alias="costBSF")
    fuel_surcharge: Decimal
    currency_fee: Decimal
    cost_asf: Decimal = Field(serialization_alias="costASF")


class ShipmentPlanOut(_Out):
    success: bool = True
    products: List[ShipmentPlanProductOut]
    shipment_totals: ShipmentTotalsOut
    freight: ShipmentFreightOut
    product_cost_bsf: Decimal = Field(serialization_alias="productCostBSF")
    freight_multiplier: Decimal
    regression: RegressionOut
