from decimal import Decimal

from app.verticals.wholesale.domain.models import Bundle, Shipment, ShipmentCost
from app.verticals.wholesale.engine.config import OptimizerConfig
from app.verticals.wholesale.engine.optimizer import (
    exhaustive_search,
    greedy_search,
    optimize_global_budget,
)
from app.verticals.wholesale.schemas.ws_plan_input import SupplierIn

D = Decimal


def _bundle(supplier: str, cost: str, mroi: str) -> Bundle:
    shipment = Shipment(
        freight_cost=D("0.00"),
        method="none",
        total_weight=D("0.00"),
        total_cbm=D("0.000"),
        box_count=0,
        pallet_count=0,
    )
    return Bundle(
        supplier=SupplierIn(name=supplier),
        options=(),
        cost=ShipmentCost(shipment=shipment, cost_bsf=D(cost), currency_fee=D("0.00"), multiplier=D("1.0000")),
        total_cost_asf=D(cost),
        total_profit=(D(cost) * D(mroi)).quantize(D("0.01")),
        monthly_roi=D(mroi),
    )


def test_two_bundles_summing_to_budget_are_both_selected():
    a = _bundle("A", "500", "0.5000")
    b = _bundle("B", "500", "0.5000")
    result = optimize_global_budget([a, b], D("1000"), OptimizerConfig())

    assert result.strategy == "exhaustive"
    assert {x.supplier_key for x in result.bundles} == {"a", "b"}
    assert result.total_cost_asf == D("1000.00")
    assert result.remaining_budget == D("0.00")


def test_exhaustive_never_exceeds_budget():
    bundles = [
        _bundle("A", "400", "0.9000"),
        _bundle("B", "350", "0.7000"),
        _bundle("C", "300", "0.6000"),
        _bundle("D", "250", "0.4000"),
        _bundle("E", "120", "0.3000"),
    ]
    chosen = exhaustive_search(bundles, D("800"))
    assert sum(b.total_cost_asf for b in chosen) <= D("800")
    assert chosen


def test_one_bundle_per_supplier():
    small = _bundle("A", "300", "0.6000")
    big = _bundle("A", "600", "0.6000")
    other = _bundle("B", "200", "0.2000")
    chosen = exhaustive_search([small, big, other], D("2000"))
    keys = [b.supplier_key for b in chosen]
    assert len(keys) == len(set(keys))


def test_greedy_swaps_in_a_larger_equal_roi_bundle():
    small = _bundle("A", "100", "0.5000")
    big = _bundle("B", "400", "0.5000")
    filler = _bundle("C", "350", "0.4000")
    chosen = greedy_search([small, big, filler], D("500"))

    assert sum(b.total_cost_asf for b in chosen) <= D("500")
    assert {b.supplier_key for b in chosen} == {"a", "b"}


def test_force_greedy_is_reported():
    bundles = [_bundle("A", "100", "0.5000"), _bundle("B", "900", "0.1000")]
    result = optimize_global_budget(bundles, D("500"), OptimizerConfig(force_greedy=True))
    assert result.strategy == "greedy"
    assert result.total_cost_asf <= D("500")


def test_nothing_affordable_returns_empty_result():
    result = optimize_global_budget([_bundle("A", "900", "0.5000")], D("500"), OptimizerConfig())
    assert result.strategy == "none"
    assert result.bundles == []
    assert result.remaining_budget == D("500.00")


def test_more_bundles_than_the_exhaustive_limit_go_greedy():
    bundles = [
        _bundle("A", "300", "0.6000"),
        _bundle("B", "250", "0.5000"),
        _bundle("C", "200", "0.4000"),
        _bundle("D", "150", "0.3000"),
    ]
    config = OptimizerConfig(max_exhaustive=3)
    result = optimize_global_budget(bundles, D("600"), config)

    assert config.force_greedy is False
    assert result.strategy == "greedy"
    assert result.total_cost_asf <= D("600")
    assert [b.supplier_key for b in result.bundles][:2] == ["a", "b"]


def test_exhaustive_limit_is_clamped():
    assert OptimizerConfig(max_exhaustive=30).max_exhaustive == 24
    assert OptimizerConfig(max_exhaustive=-1).max_exhaustive == 0
    assert OptimizerConfig(max_exhaustive=12).max_exhaustive == 12
