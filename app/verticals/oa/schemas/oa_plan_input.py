# app/verticals/oa/schemas/oa_plan_input.py
from __future__ import annotations

from decimal import Decimal
from typing import Annotated, Any, List

from pydantic import BaseModel, BeforeValidator, ConfigDict, Field
from pydantic.alias_generators import to_camel

from app.verticals.wholesale.data_validators.common import normalize_text, to_decimal

D = Decimal

Sheet = List[List[Any]]


def _retailer_keys(value: Any) -> List[str]:
    if not value:
        return []
    return [key for key in (normalize_text(v) for v in value) if key]


class OaPlanInput(BaseModel):
    """
    Three raw sheet ranges, header row first, as read from the
    "Good products", "Inbound Restock Time" and "Inbound Restock Products" tabs.
    """

    model_config = ConfigDict(extra="forbid", populate_by_name=True, alias_generator=to_camel)

    goods_values: Sheet = Field(default_factory=list)
    restock_time_values: Sheet = Field(default_factory=list)
    restock_products_values: Sheet = Field(default_factory=list)
    budget: Annotated[Decimal, BeforeValidator(lambda v: to_decimal(v))] = D("0")
    excluded_retailers: Annotated[List[str], BeforeValidator(_retailer_keys)] = Field(default_factory=list)
