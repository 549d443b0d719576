from __future__ import annotations

import logging
import math
import re
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from ..data_validators.common import ParseError, clean_number, normalize_text
from ..domain.models import RegressionInfo, Shipment, ShipmentCost, ShipmentLine
from ..errors import NoMatchError
from ..schemas.ws_plan_input import FreightConfigIn, FreightCurveIn, SupplierIn
from .constants import CBM_PER_PALLET, CM3_PER_M3, CURRENCY_FEE_RATE, KG_PER_BOX
from .rounding import ONE, ZERO, ceil_div, round2, round3, round4, safe_divide

D = Decimal

logger = logging.getLogger(__name__)

_NUMBER = re.compile(r"[^0-9.]")


def _decimal_comma(raw: str) -> str:
    """'1,5' -> '1.5'; '1,200.50' keeps its thousands separator for the caller to drop."""
    if "," in raw and "." not in raw:
        return raw.replace(",", ".")
    return raw


# -----------------------------
# Shipment size
# -----------------------------


def compute_total_weight(lines: Iterable[ShipmentLine], packaging_weight_percent: D = ZERO) -> D:
    total = ZERO
    for line in lines:
        p = line.product
        if line.units > 0 and p.weight_kg > 0:
            total += ceil_div(line.units, p.case_size) * p.weight_kg
    if packaging_weight_percent > 0:
        total *= ONE + packaging_weight_percent
    return round2(total)


def compute_total_cbm(lines: Iterable[ShipmentLine]) -> D:
    total = ZERO
    for line in lines:
        p = line.product
        if line.units > 0 and p.length > 0 and p.width > 0 and p.height > 0:
            case_cbm = (p.length * p.width * p.height) / CM3_PER_M3
            total += ceil_div(line.units, p.case_size) * case_cbm
    return round3(total)


def box_count_for(weight: D) -> int:
    return int(math.ceil(weight / KG_PER_BOX)) if weight > 0 else 0


def pallet_count_for(cbm: D) -> int:
    return int(math.ceil(cbm / CBM_PER_PALLET)) if cbm > 0 else 0


# -----------------------------
# Curves
# -----------------------------


def packaging_bucket(packaging_type: str, mode: str) -> str:
    pack = normalize_text(packaging_type)
    if pack == "pallet":
        return "pallet" if normalize_text(mode) == "sea" else "any"
    if pack == "box":
        return "box"
    return "any"


def find_regression_curve(
    curves: Sequence[FreightCurveIn],
    region: str,
    mode: str,
    packaging_type: str,
    weight: D,
) -> Optional[FreightCurveIn]:
    """
    First bucketed row whose [minKg, maxKg] contains the weight.
    A missing bound is open. When the weight sits below every matching
    bucket, the bucket with the lowest minKg is returned instead of None.
    """
    region_n = normalize_text(region)
    mode_n = normalize_text(mode)
    bucket = packaging_bucket(packaging_type, mode)

    fallback: Optional[FreightCurveIn] = None
    for row in curves:
        if row.is_points_curve:
            continue
        if region_n and normalize_text(row.region) != region_n:
            continue
        if mode_n and normalize_text(row.mode) != mode_n:
            continue
        if normalize_text(row.packaging_type) != bucket:
            continue

        in_min = row.min_kg is None or weight >= row.min_kg
        in_max = row.max_kg is None or weight <= row.max_kg
        if in_min and in_max:
            return row

        if row.min_kg is not None and weight < row.min_kg:
            if fallback is None or row.min_kg < fallback.min_kg:
                fallback = row
    return fallback


def fuel_surcharge(base_fuel: str, base_cost: D, weight: D) -> D:
    """'12%' -> share of base cost; '£0.05/kg' -> rate per kg; anything else -> 0."""
    raw = _decimal_comma((base_fuel or "").strip())
    if not raw:
        return ZERO
    if "%" in raw:
        try:
            pct = clean_number(raw)
        except ParseError:
            logger.warning("unreadable fuel surcharge %r ignored", raw)
            return ZERO
        return base_cost * pct if pct else ZERO
    if "/kg" in raw.lower():
        digits = _NUMBER.sub("", raw.split("/", 1)[0])
        if not digits or digits.count(".") > 1:
            logger.warning("unreadable fuel surcharge %r ignored", raw)
            return ZERO
        rate = D(digits)
        return rate * weight if rate > 0 else ZERO
    return ZERO


def compute_freight_from_regression(row: FreightCurveIn, weight: D) -> Tuple[D, D, D]:
    """(base, fuel, total) for a bucketed regression row."""
    base = (row.intercept or ZERO) + (row.slope or ZERO) * weight
    fuel = fuel_surcharge(row.base_fuel, base, weight)
    return round2(base), round2(fuel), round2(base + fuel)


def _points_curve_for(
    curves: Sequence[FreightCurveIn], region: str, mode: str, packaging_type: str
) -> Optional[FreightCurveIn]:
    mode_n = normalize_text(mode)
    bucket = packaging_bucket(packaging_type, mode)
    for c in curves:
        if not c.is_points_curve:
            continue
        if normalize_text(c.mode) != mode_n:
            continue
        if c.region and region and normalize_text(c.region) != normalize_text(region):
            continue
        if c.packaging_type and normalize_text(c.packaging_type) != bucket:
            continue
        return c
    return None


def interpolate_points(curve: FreightCurveIn, weight: D, cbm: D) -> Optional[D]:
    value = cbm if curve.use_cbm else weight
    if value <= 0:
        return None

    points = sorted(curve.points, key=lambda p: p.x)
    if value <= points[0].x:
        return round2(points[0].y)
    if value >= points[-1].x:
        return round2(points[-1].y)

    for p1, p2 in zip(points, points[1:]):
        if p1.x <= value <= p2.x:
            slope = safe_divide(p2.y - p1.y, p2.x - p1.x)
            return round2(p1.y + slope * (value - p1.x))
    return None


def compute_freight_from_curve(
    curves: Sequence[FreightCurveIn],
    *,
    region: str,
    mode: str,
    packaging_type: str,
    weight: D,
    cbm: D,
) -> Tuple[D, D, Optional[str], str]:
    """
    Strict curve pricing: (freight, fuel, curve_id, method).
    Bucketed regression rows are tried before points curves.
    Raises NoMatchError when nothing applies.
    """
    row = find_regression_curve(curves, region, mode, packaging_type, weight)
    if row is not None and weight > 0:
        _, fuel, total = compute_freight_from_regression(row, weight)
        return total, fuel, row.curve_id, "regression"

    points_curve = _points_curve_for(curves, region, mode, packaging_type)
    if points_curve is not None:
        cost = interpolate_points(points_curve, weight, cbm)
        if cost is not None:
            return cost, ZERO, points_curve.curve_id, "curve"

    raise NoMatchError(
        f'No freight curve found for region="{region}", mode="{mode}", '
        f'packaging="{packaging_type}", weight={weight}kg'
    )


def compute_freight_generic(
    weight: D,
    cbm: D,
    config: FreightConfigIn,
    packaging_type: str,
    box_count: int = 0,
    pallet_count: int = 0,
) -> D:
    cost = max(weight * config.rate_per_kg, cbm * config.rate_per_cbm, config.min_charge)
    pack = normalize_text(packaging_type)
    if pack in ("box", "couriercandidate"):
        cost += box_count * config.box_surcharge
    elif pack == "pallet":
        cost += pallet_count * config.pallet_surcharge
    cost += config.handling_fee
    return round2(cost)


# -----------------------------
# Shipment pricing
# -----------------------------


def compute_shipment(
    lines: Sequence[ShipmentLine],
    supplier: SupplierIn,
    curves: Sequence[FreightCurveIn],
    config: FreightConfigIn,
) -> Shipment:
    lines = [ln for ln in lines if ln.units > 0]
    if not lines:
        return Shipment(
            freight_cost=D("0.00"),
            method="none",
            total_weight=D("0.00"),
            total_cbm=D("0.000"),
            box_count=0,
            pallet_count=0,
            regression=RegressionInfo(message="Empty shipment"),
        )

    weight = compute_total_weight(lines, supplier.packaging_weight_percent)
    cbm = compute_total_cbm(lines)
    boxes = box_count_for(weight)
    pallets = pallet_count_for(cbm)

    freight = ZERO
    fuel = ZERO
    method = "generic"
    regression = RegressionInfo(message="No freight curves provided")

    if supplier.is_uk:
        regression = RegressionInfo(message="UK origin supplier")
    elif curves and supplier.freight_mode:
        try:
            freight, fuel, curve_id, method = compute_freight_from_curve(
                curves,
                region=supplier.region,
                mode=supplier.freight_mode,
                packaging_type=supplier.packaging_type,
                weight=weight,
                cbm=cbm,
            )
            regression = RegressionInfo(found=True, curve_id=curve_id)
        except NoMatchError as e:
            regression = RegressionInfo(found=False, message=e.reason)
            logger.debug("supplier %s: %s", supplier.key, e.reason)
    elif curves:
        regression = RegressionInfo(message="Supplier has no freight mode")

    if method == "generic" or freight == 0:
        method = "generic"
        fuel = ZERO
        freight = compute_freight_generic(
            weight, cbm, config, supplier.packaging_type, boxes, pallets
        )

    if supplier.is_uk and config.domestic_uk_rate_per_box:
        freight = boxes * config.domestic_uk_rate_per_box
        method = "domestic_uk"

    return Shipment(
        freight_cost=round2(freight),
        method=method,
        total_weight=weight,
        total_cbm=cbm,
        box_count=boxes,
        pallet_count=pallets,
        fuel_surcharge=round2(fuel),
        regression=regression,
    )


def compute_currency_fee(cost_bsf: D, is_uk: bool) -> D:
    if is_uk or cost_bsf <= 0:
        return D("0.00")
    return round2(cost_bsf * CURRENCY_FEE_RATE)


def compute_freight_multiplier(cost_bsf: D, freight_cost: D, currency_fee: D) -> D:
    if cost_bsf <= 0:
        return D("1.0000")
    return round4(ONE + (freight_cost + currency_fee) / cost_bsf)


def compute_landed_cost_per_unit(supplier_price: D, multiplier: D) -> D:
    return round2(supplier_price * multiplier)


def price_shipment(
    lines: List[ShipmentLine],
    supplier: SupplierIn,
    curves: Sequence[FreightCurveIn],
    config: FreightConfigIn,
) -> ShipmentCost:
    """Shipment freight plus the currency fee and multiplier for its BSF spend."""
    shipment = compute_shipment(lines, supplier, curves, config)
    cost_bsf = round2(sum((ln.product.supplier_price * ln.units for ln in lines), ZERO))
    fee = compute_currency_fee(cost_bsf, supplier.is_uk)
    multiplier = compute_freight_multiplier(cost_bsf, shipment.freight_cost, fee)
    return ShipmentCost(shipment=shipment, cost_bsf=cost_bsf, currency_fee=fee, multiplier=multiplier)
