from decimal import Decimal

import pytest

from app.verticals.wholesale.engine.allocator import allocate
from app.verticals.wholesale.engine.config import EngineConfig, OptionsConfig
from app.verticals.wholesale.errors import InputError
from app.verticals.wholesale.schemas.ws_plan_input import WsPlanInput

D = Decimal


def _single_sku(country="UK", **product):
    row = {
        "asin": "P1",
        "supplier": "Acme",
        "itemName": "Garden hose",
        "supplierPrice": "100",
        "amazonPrice": "150",
        "amazonFees": "20",
        "vatPerUnit": "0",
        "monthlySales": "30",
        "sellerCount": 1,
        "caseSize": 1,
    }
    row.update(product)
    return WsPlanInput.model_validate(
        {
            "budget": "1000",
            "suppliers": [{"name": "Acme", "country": country, "moqGBP": "0"}],
            "products": [row],
        }
    )


def test_one_unit_wins_on_monthly_roi():
    # budget affords 10 units, but each extra day of stock lowers monthly ROI
    config = EngineConfig(options=OptionsConfig(horizon_months=2))
    out = allocate(_single_sku(), config)

    [supplier] = out.suppliers
    [product] = supplier.products
    assert product.units_to_order == 1
    assert product.profit_per_unit == D("30.00")
    assert product.churn_weeks == D("2.14")
    assert product.monthly_roi == D("0.6070")
    assert out.summary.total_cost_asf == D("100.00")
    assert out.summary.remaining_budget == D("900.00")
    assert out.summary.strategy == "exhaustive"


def test_ineligible_products_never_reach_the_plan(plan_input, engine_config):
    out = allocate(plan_input, engine_config)

    asins = {p.asin for s in out.suppliers for p in s.products}
    assert asins
    assert "DEAD" not in asins
    assert asins <= {"A1", "A2", "B1"}
    assert out.summary.total_cost_asf <= plan_input.budget


def test_currency_fee_reaches_the_allocation():
    out = allocate(_single_sku(country="China"), EngineConfig())

    [supplier] = out.suppliers
    assert supplier.freight.currency_fee == D("0.67")
    assert supplier.freight.freight_multiplier == D("1.0067")
    assert supplier.products[0].landed_cost_per_unit == D("100.67")
    assert supplier.summary.cost_asf == D("100.67")


def test_nothing_affordable_is_an_input_error():
    with pytest.raises(InputError) as exc:
        allocate(_single_sku(supplierPrice="2000"), EngineConfig())
    assert "No MOQ-feasible bundles" in exc.value.reason
