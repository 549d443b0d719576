from decimal import Decimal

import pytest

from app.verticals.wholesale.engine.shipment_plan import plan_shipment
from app.verticals.wholesale.errors import InputError
from app.verticals.wholesale.schemas.ws_plan_input import ShipmentPlanInput

D = Decimal


def _basket(country="China", region="CN", **product):
    row = {
        "asin": "S1",
        "itemName": "Stool",
        "supplierPrice": "10",
        "amazonPrice": "20",
        "amazonFees": "4",
        "monthlySales": "100",
        "caseSize": 10,
        "weightKg": "5",
        "unitsToOrder": 100,
    }
    row.update(product)
    return ShipmentPlanInput.model_validate(
        {
            "products": [row],
            "shipmentInfo": {"country": country, "region": region, "freightMode": "Sea", "packagingType": "Box"},
            "freightCurves": [
                {
                    "curveId": "cn-sea-box",
                    "region": "CN",
                    "mode": "Sea",
                    "packagingType": "Box",
                    "intercept": "50",
                    "slope": "1",
                    "baseFuel": "10%",
                    "minKg": "0",
                    "maxKg": "1000",
                }
            ],
        }
    )


def test_uk_origin_ships_free():
    out = plan_shipment(_basket(country="UK"))

    assert out.freight.cost_asf == D("0.00")
    assert out.freight_multiplier == D("1.0000")
    assert out.regression.found is False
    assert "UK origin" in out.regression.message


def test_regression_freight_for_overseas_basket():
    out = plan_shipment(_basket())

    # 10 cases of 5kg
    assert out.shipment_totals.total_weight_kg == D("50.00")
    assert out.freight.cost_bsf == D("100.00")
    assert out.freight.fuel_surcharge == D("10.00")
    assert out.freight.currency_fee == D("6.70")
    assert out.freight.cost_asf == D("116.70")
    assert out.product_cost_bsf == D("1000.00")
    assert out.freight_multiplier == D("1.1167")
    assert out.regression.found is True
    assert out.regression.curve_id == "cn-sea-box"

    line = out.products[0]
    assert line.landed_cost_per_unit == D("11.17")
    assert line.freight_multiplier == out.freight_multiplier


def test_missing_curve_explains_itself():
    out = plan_shipment(_basket(region="US"))

    assert out.regression.found is False
    assert "No regression curve found" in out.regression.message
    # only the FX fee is left
    assert out.freight_multiplier == D("1.0067")


def test_empty_basket_is_rejected():
    with pytest.raises(InputError):
        plan_shipment(_basket(monthlySales="0"))
