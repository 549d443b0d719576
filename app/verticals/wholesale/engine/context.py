from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, Iterable, List, Mapping, Sequence, Tuple

from ..calculators.churn import ChurnPolicy
from ..calculators.freight import price_shipment
from ..data_validators.products import group_by_supplier, prepare_products
from ..data_validators.suppliers import build_supplier_map, churn_setting_for, supplier_for
from ..domain.models import ShipmentCost, ShipmentLine
from ..schemas.ws_plan_input import (
    ChurnSettingIn,
    FreightConfigIn,
    FreightCurveIn,
    ProductIn,
    SupplierIn,
    WsPlanInput,
)
from .config import EngineConfig

D = Decimal


@dataclass(frozen=True)
class SupplierContext:
    """Everything needed to price a shipment from one supplier."""

    supplier: SupplierIn
    curves: Tuple[FreightCurveIn, ...]
    freight_config: FreightConfigIn
    churn: ChurnPolicy

    @property
    def key(self) -> str:
        return self.supplier.key

    @property
    def moq(self) -> D:
        return self.supplier.moq_gbp

    def price(self, lines: List[ShipmentLine]) -> ShipmentCost:
        return price_shipment(lines, self.supplier, self.curves, self.freight_config)


@dataclass(frozen=True)
class PlanContext:
    budget: D
    products_by_supplier: Dict[str, List[ProductIn]]
    suppliers: Dict[str, SupplierContext]
    config: EngineConfig


def churn_policy_for(
    supplier_key: str, churn_settings: Mapping[str, ChurnSettingIn], config: EngineConfig
) -> ChurnPolicy:
    setting = churn_setting_for(supplier_key, dict(churn_settings))
    if setting is None:
        return ChurnPolicy(cap_weeks=config.churn.cap_weeks)
    return ChurnPolicy(
        lead_days=setting.lead_days,
        payout_override=setting.payout_days,
        cap_weeks=config.churn.cap_weeks,
    )


def build_supplier_contexts(
    groups: Mapping[str, Sequence[ProductIn]],
    suppliers: Iterable[SupplierIn],
    curves: Sequence[FreightCurveIn],
    freight_config: FreightConfigIn,
    churn_settings: Mapping[str, ChurnSettingIn],
    config: EngineConfig,
) -> Dict[str, SupplierContext]:
    """One pricing context per supplier that has at least one product."""
    supplier_map = build_supplier_map(suppliers)
    curve_rows = tuple(curves)
    out: Dict[str, SupplierContext] = {}
    for key, rows in groups.items():
        out[key] = SupplierContext(
            supplier=supplier_for(rows[0], supplier_map),
            curves=curve_rows,
            freight_config=freight_config,
            churn=churn_policy_for(key, churn_settings, config),
        )
    return out


def build_plan_context(payload: WsPlanInput, config: EngineConfig) -> PlanContext:
    groups = group_by_supplier(prepare_products(payload))
    return PlanContext(
        budget=payload.budget,
        products_by_supplier=groups,
        suppliers=build_supplier_contexts(
            groups,
            payload.suppliers,
            payload.freight_curves,
            payload.freight_config,
            payload.churn_settings,
            config,
        ),
        config=config,
    )
