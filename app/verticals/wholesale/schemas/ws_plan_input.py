# app/verticals/wholesale/schemas/ws_plan_input.py
from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Dict, List, Optional

from pydantic import AliasChoices, BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from ..data_validators.common import (
    clean_number,
    is_uk_country,
    normalize_supplier_key,
    to_decimal,
    to_non_negative_int,
    to_positive_int,
)

D = Decimal

# Spreadsheet cells arrive as "£1,200", "15%", "" or plain numbers
Num = Annotated[Decimal, BeforeValidator(lambda v: to_decimal(v))]
OptNum = Annotated[Optional[Decimal], BeforeValidator(clean_number)]
Count = Annotated[int, BeforeValidator(lambda v: to_positive_int(v))]
Units = Annotated[int, BeforeValidator(to_non_negative_int)]
Text = Annotated[str, BeforeValidator(lambda v: "" if v is None else str(v).strip())]


class _Row(BaseModel):
    """Rows copied from sheets carry extra columns; ignore them."""

    model_config = ConfigDict(
        extra="ignore",
        frozen=True,
        populate_by_name=True,
        alias_generator=to_camel,
    )


class ProductIn(_Row):
    asin: Text
    supplier: Text = ""
    supplier_key: Text = ""
    item_name: Text = Field(
        "",
        validation_alias=AliasChoices("itemName", "item_name", "title"),
        serialization_alias="itemName",
    )
    ean: Text = ""
    code_link: Text = ""

    supplier_price: Num = D("0")
    amazon_price: Num = D("0")
    amazon_fees: Num = D("0")
    vat_per_unit: Num = D("0")
    monthly_sales: Num = D("0")
    seller_count: Count = Field(
        1,
        validation_alias=AliasChoices("sellerCount", "sellers", "seller_count"),
        serialization_alias="sellerCount",
    )
    case_size: Count = 1
    queued_weeks: Num = D("0")

    # case-level dimensions (cm / kg)
    length: Num = D("0")
    width: Num = D("0")
    height: Num = D("0")
    weight_kg: Num = D("0")

    @property
    def is_eligible(self) -> bool:
        return self.supplier_price > 0 and self.monthly_sales > 0

    @property
    def resolved_supplier_key(self) -> str:
        return self.supplier_key or normalize_supplier_key(self.supplier)

    @property
    def has_dims(self) -> bool:
        return self.weight_kg > 0 or (self.length > 0 and self.width > 0 and self.height > 0)


class SupplierIn(_Row):
    name: Text = Field(
        "",
        validation_alias=AliasChoices("name", "supplierName", "supplier"),
        serialization_alias="name",
    )
    supplier_key: Text = ""
    warehouse: Text = ""
    country: Text = ""
    region: Text = ""
    freight_mode: Text = ""
    packaging_type: Text = ""
    packaging_weight_percent: Num = D("0")
    moq_gbp: Num = Field(
        D("0"),
        validation_alias=AliasChoices("moqGBP", "moqGbp", "moq_gbp", "moq"),
        serialization_alias="moqGBP",
    )

    @property
    def key(self) -> str:
        return self.supplier_key or normalize_supplier_key(self.name)

    @property
    def is_uk(self) -> bool:
        return is_uk_country(self.country)


class CurvePoint(_Row):
    x: Num
    y: Num


class FreightCurveIn(_Row):
    """Either a bucketed regression row or a piecewise-linear points curve."""

    curve_id: Optional[str] = Field(
        None,
        validation_alias=AliasChoices("curveId", "id", "curve_id"),
        serialization_alias="curveId",
    )
    region: Text = ""
    mode: Text = Field(
        "",
        validation_alias=AliasChoices("mode", "freightMode"),
        serialization_alias="mode",
    )
    packaging_type: Text = Field(
        "",
        validation_alias=AliasChoices("packagingType", "packaging", "packaging_type"),
        serialization_alias="packagingType",
    )
    min_kg: OptNum = Field(
        None,
        validation_alias=AliasChoices("minKg", "min kg", "min_kg"),
        serialization_alias="minKg",
    )
    max_kg: OptNum = Field(
        None,
        validation_alias=AliasChoices("maxKg", "max kg", "max_kg"),
        serialization_alias="maxKg",
    )
    intercept: OptNum = None
    slope: OptNum = None
    base_fuel: Text = Field(
        "",
        validation_alias=AliasChoices("baseFuel", "base fuel", "baseFuelSurcharge", "base_fuel"),
        serialization_alias="baseFuel",
    )
    use_cbm: bool = Field(
        False,
        validation_alias=AliasChoices("useCBM", "useCbm", "use_cbm"),
        serialization_alias="useCBM",
    )
    points: List[CurvePoint] = Field(default_factory=list)

    @property
    def is_points_curve(self) -> bool:
        return len(self.points) > 0


class FreightConfigIn(_Row):
    rate_per_kg: Num = Field(
        D("0"),
        validation_alias=AliasChoices("ratePerKG", "ratePerKg", "rate_per_kg"),
        serialization_alias="ratePerKG",
    )
    rate_per_cbm: Num = Field(
        D("0"),
        validation_alias=AliasChoices("ratePerCBM", "ratePerCbm", "rate_per_cbm"),
        serialization_alias="ratePerCBM",
    )
    min_charge: Num = D("0")
    box_surcharge: Num = D("0")
    pallet_surcharge: Num = D("0")
    handling_fee: Num = D("0")
    domestic_uk_rate_per_box: OptNum = None


class ChurnSettingIn(_Row):
    lead_days: Num = Field(
        D("0"),
        validation_alias=AliasChoices("leadDays", "irstDays", "lead_days"),
        serialization_alias="leadDays",
    )
    payout_days: OptNum = None


class DimsIn(_Row):
    case_size: Count = 1
    length: Num = D("0")
    width: Num = D("0")
    height: Num = D("0")
    weight_kg: Num = D("0")


class DimsLookupIn(_Row):
    by_asin: Dict[str, DimsIn] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("byASIN", "byAsin", "by_asin"),
        serialization_alias="byASIN",
    )
    by_ean: Dict[str, DimsIn] = Field(
        default_factory=dict,
        validation_alias=AliasChoices("byEAN", "byEan", "by_ean"),
        serialization_alias="byEAN",
    )
    by_title: Dict[str, DimsIn] = Field(default_factory=dict)


class WsPlanInput(BaseModel):
    """Engine boundary payload shared by the monolithic and staged paths."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    budget: Num = D("0")
    products: List[ProductIn] = Field(default_factory=list)
    suppliers: List[SupplierIn] = Field(default_factory=list)
    freight_curves: List[FreightCurveIn] = Field(default_factory=list)
    freight_config: FreightConfigIn = Field(default_factory=FreightConfigIn)
    churn_settings: Dict[str, ChurnSettingIn] = Field(default_factory=dict)
    dims: Optional[DimsLookupIn] = None


class ShipmentInfoIn(_Row):
    warehouse: Text = ""
    country: Text = ""
    region: Text = ""
    freight_mode: Text = ""
    packaging_type: Text = "Box"
    packaging_weight_percent: Num = D("0")


class ShipmentProductIn(ProductIn):
    units_to_order: Units = Field(
        0,
        validation_alias=AliasChoices("unitsToOrder", "units", "units_to_order"),
        serialization_alias="unitsToOrder",
    )
    lead_days: Num = D("0")
    payout_days: OptNum = None


class ShipmentPlanInput(BaseModel):
    """Price a caller-chosen basket from one supplier (regression freight only)."""

    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    products: List[ShipmentProductIn] = Field(default_factory=list)
    shipment_info: ShipmentInfoIn = Field(default_factory=ShipmentInfoIn)
    freight_curves: List[FreightCurveIn] = Field(default_factory=list)
