from __future__ import annotations

from dataclasses import dataclass, field
from decimal import Decimal
from typing import Any, Dict, List, Optional, Tuple

from ..schemas.ws_plan_input import ProductIn, SupplierIn

D = Decimal


# -----------------------------
# Shipment / freight
# -----------------------------


@dataclass(frozen=True)
class ShipmentLine:
    """One SKU inside a shipment; weight and CBM are counted per started case."""

    product: ProductIn
    units: int


@dataclass(frozen=True)
class RegressionInfo:
    found: bool = False
    curve_id: Optional[str] = None
    message: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {"found": self.found, "curveId": self.curve_id, "message": self.message}


@dataclass(frozen=True)
class Shipment:
    freight_cost: D
    method: str  # "regression" | "curve" | "generic" | "domestic_uk" | "none"
    total_weight: D
    total_cbm: D
    box_count: int
    pallet_count: int
    fuel_surcharge: D = D("0.00")
    regression: RegressionInfo = field(default_factory=RegressionInfo)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "freightCost": self.freight_cost,
            "method": self.method,
            "totalWeight": self.total_weight,
            "totalCBM": self.total_cbm,
            "boxCount": self.box_count,
            "palletCount": self.pallet_count,
            "fuelSurcharge": self.fuel_surcharge,
            "regression": self.regression.to_dict(),
        }


@dataclass(frozen=True)
class ShipmentCost:
    """Shipment + the two numbers derived from its BSF spend."""

    shipment: Shipment
    cost_bsf: D
    currency_fee: D
    multiplier: D

    @property
    def shipping_and_fees(self) -> D:
        return self.shipment.freight_cost + self.currency_fee

    @property
    def total_cost_asf(self) -> D:
        return self.cost_bsf + self.shipping_and_fees


# -----------------------------
# Allocation
# -----------------------------


@dataclass(frozen=True)
class PurchaseOption:
    """One SKU at one case count, priced under a given freight multiplier."""

    product: ProductIn
    cases: int
    units: int
    cost_bsf: D
    freight_multiplier: D
    landed_cost_per_unit: D
    profit_per_unit: D
    roi: D
    churn_weeks: D
    monthly_roi: D
    cost_asf: D
    total_profit: D

    @property
    def asin(self) -> str:
        return self.product.asin


@dataclass(frozen=True)
class Bundle:
    """Supplier-scoped options priced as one shipment."""

    supplier: SupplierIn
    options: Tuple[PurchaseOption, ...]
    cost: ShipmentCost
    total_cost_asf: D
    total_profit: D
    monthly_roi: D

    @property
    def supplier_key(self) -> str:
        return self.supplier.key

    @property
    def signature(self) -> Tuple[Tuple[str, int], ...]:
        return tuple(sorted((o.asin, o.units) for o in self.options))

    @property
    def total_units(self) -> int:
        return sum(o.units for o in self.options)


@dataclass(frozen=True)
class AllocationResult:
    bundles: List[Bundle]
    total_cost_asf: D
    total_profit: D
    monthly_roi: D
    remaining_budget: D
    strategy: str  # "exhaustive" | "greedy" | "none"
