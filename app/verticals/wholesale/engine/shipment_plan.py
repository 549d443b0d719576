from __future__ import annotations

import logging
from decimal import Decimal
from typing import List, Optional

from ..calculators.churn import ChurnPolicy, daily_sales, days_of_stock
from ..calculators.freight import (
    box_count_for,
    compute_currency_fee,
    compute_freight_from_regression,
    compute_freight_multiplier,
    compute_total_cbm,
    compute_total_weight,
    find_regression_curve,
    pallet_count_for,
)
from ..calculators.rounding import ZERO, round2
from ..data_validators.common import is_uk_country
from ..domain.models import RegressionInfo, ShipmentLine
from ..errors import InputError
from ..schemas.ws_plan_input import ShipmentPlanInput
from ..schemas.ws_plan_output import RegressionOut
from ..schemas.shipment_plan_output import (
    ShipmentFreightOut,
    ShipmentPlanOut,
    ShipmentPlanProductOut,
    ShipmentTotalsOut,
)
from .config import EngineConfig
from .options import price_units

D = Decimal

logger = logging.getLogger(__name__)


def plan_shipment(payload: ShipmentPlanInput, config: Optional[EngineConfig] = None) -> ShipmentPlanOut:
    """
    Price a caller-chosen basket (units already decided) with bucketed
    regression freight. UK origin ships free; a regression miss leaves
    freight at 0 and explains why in ``regression.message``.
    """
    config = config or EngineConfig()
    basket = [p for p in payload.products if p.is_eligible]
    if not basket:
        raise InputError("No eligible products provided")

    info = payload.shipment_info
    lines = [ShipmentLine(product=p, units=p.units_to_order) for p in basket]
    weight = compute_total_weight(lines, info.packaging_weight_percent)
    cbm = compute_total_cbm(lines)

    uk_origin = is_uk_country(info.country)
    base = ZERO
    fuel = ZERO

    if uk_origin:
        regression = RegressionInfo(message="UK origin supplier - freight is free")
    elif weight <= 0:
        regression = RegressionInfo(message="Invalid shipment weight (0 or negative)")
    elif not payload.freight_curves:
        regression = RegressionInfo(message="No freight curves provided")
    else:
        row = find_regression_curve(
            payload.freight_curves, info.region, info.freight_mode, info.packaging_type, weight
        )
        if row is None:
            regression = RegressionInfo(
                message=(
                    f'No regression curve found for region="{info.region}", mode="{info.freight_mode}", '
                    f'packaging="{info.packaging_type}", weight={weight}kg'
                )
            )
        else:
            base, fuel, _ = compute_freight_from_regression(row, weight)
            regression = RegressionInfo(found=True, curve_id=row.curve_id)

    cost_bsf = round2(sum((p.supplier_price * p.units_to_order for p in basket), ZERO))
    fee = compute_currency_fee(cost_bsf, uk_origin)
    freight_total = round2(base + fuel)
    multiplier = compute_freight_multiplier(cost_bsf, freight_total, fee)

    products: List[ShipmentPlanProductOut] = []
    for p in basket:
        churn = ChurnPolicy(
            lead_days=p.lead_days,
            payout_override=p.payout_days,
            cap_weeks=config.churn.cap_weeks,
        )
        opt = price_units(p, p.units_to_order, multiplier, churn)
        products.append(
            ShipmentPlanProductOut(
                asin=p.asin,
                item_name=p.item_name,
                units_to_order=p.units_to_order,
                supplier_price=p.supplier_price,
                freight_multiplier=multiplier,
                landed_cost_per_unit=opt.landed_cost_per_unit,
                profit_per_unit=opt.profit_per_unit,
                roi=opt.roi,
                monthly_roi=opt.monthly_roi,
                total_cost=opt.cost_asf,
                expected_profit=opt.total_profit,
                daily_sales_avg=round2(daily_sales(p.monthly_sales, p.seller_count)),
                days_of_stock=days_of_stock(p.units_to_order, p.monthly_sales, p.seller_count),
                churn_weeks=opt.churn_weeks,
            )
        )

    logger.info(
        "shipment plan: %d products, weight=%skg, freight=%s, regression_found=%s",
        len(products),
        weight,
        freight_total,
        regression.found,
    )

    return ShipmentPlanOut(
        products=products,
        shipment_totals=ShipmentTotalsOut(
            total_weight_kg=weight,
            total_cbm=cbm,
            box_count=box_count_for(weight),
            pallet_count=pallet_count_for(cbm),
            warehouse=info.warehouse,
            country=info.country,
            freight_mode=info.freight_mode,
            packaging_type=info.packaging_type,
        ),
        freight=ShipmentFreightOut(
            cost_bsf=round2(base),
            fuel_surcharge=round2(fuel),
            currency_fee=fee,
            cost_asf=round2(freight_total + fee),
        ),
        product_cost_bsf=cost_bsf,
        freight_multiplier=multiplier,
        regression=RegressionOut(**regression.to_dict()),
    )
