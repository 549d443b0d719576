from decimal import Decimal

import pytest

from app.verticals.wholesale.engine.pipeline import run_stage
from app.verticals.wholesale.errors import InputError, StageDependencyError
from app.verticals.wholesale.stages import (
    stage_allocate_budget_v1,
    stage_estimated_asf_v1,
    stage_exact_asf_v1,
    stage_finalize_v1,
    stage_moq_blocks_v1,
    stage_rank_suppliers_v1,
    stage_reallocate_cases_v1,
    stage_supplier_substitution_v1,
)

D = Decimal

STAGE_FUNCTIONS = {
    1: stage_moq_blocks_v1,
    2: stage_estimated_asf_v1,
    3: stage_rank_suppliers_v1,
    4: stage_allocate_budget_v1,
    5: stage_exact_asf_v1,
    6: stage_reallocate_cases_v1,
    7: stage_supplier_substitution_v1,
    8: stage_finalize_v1,
}


def _run_to(stage, payload, config, now, state=None):
    """Call stages 1..stage one by one, threading the state."""
    for n in range(1, stage + 1):
        state = run_stage(n, state, payload if state is None else None, config=config, now=now)
    return state


def test_fresh_run_loads_then_runs_only_the_requested_stage(plan_payload, engine_config, fixed_now):
    state = run_stage(1, None, plan_payload, config=engine_config, now=fixed_now)

    assert state.data is not None
    assert state.stage1 is not None
    assert state.stage2 is None
    assert state.meta.stage == 1
    assert state.meta.version == "v3.3"
    assert state.meta.created_at == fixed_now
    assert [log["message"] for log in state.logs] == ["stage_start", "stage_end", "stage_start", "stage_end"]


def test_load_drops_ineligible_products(plan_payload, engine_config, fixed_now):
    state = run_stage(1, None, plan_payload, config=engine_config, now=fixed_now)

    assert [p.asin for p in state.data.products] == ["A1", "A2", "B1"]
    assert state.data.summary.skipped_products == 1
    # raw inputs keep the row; nothing derived from them does
    assert "DEAD" not in state.data.model_dump_json()
    assert "DEAD" not in state.stage1.model_dump_json()


def test_moq_blocks(plan_payload, engine_config, fixed_now):
    state = run_stage(1, None, plan_payload, config=engine_config, now=fixed_now)
    blocks = {b.supplier_key: b for b in state.stage1.moq_blocks}

    acme = blocks["acme"]
    assert acme.moq_gbp == D("50")
    # one case each, then a second round, until 60 >= 50
    assert {p.asin: p.cases for p in acme.products} == {"A1": 2, "A2": 2}
    assert acme.total_bsf == D("60.00")
    assert acme.total_units == 6
    assert acme.meets_moq

    # no MOQ: one case of every product
    bolt = blocks["bolt"]
    assert [(p.asin, p.cases) for p in bolt.products] == [("B1", 1)]
    assert bolt.total_bsf == D("5.00")

    # best proxy ROI first
    assert [b.supplier_key for b in state.stage1.moq_blocks] == ["bolt", "acme"]
    assert state.stage1.totals.total_bsf == D("65.00")


def test_estimate_rank_and_cut_line(plan_payload, engine_config, fixed_now):
    state = _run_to(4, plan_payload, engine_config, fixed_now)

    estimated = {b.supplier_key: b for b in state.stage2.blocks}
    assert estimated["acme"].freight_multiplier == D("1.0000")
    assert estimated["acme"].estimated_asf == D("60.00")
    assert [b.supplier_key for b in state.stage3.ranked_suppliers] == ["bolt", "acme"]

    assert [s.supplier_key for s in state.stage4.selected_suppliers] == ["bolt", "acme"]
    assert state.stage4.totals.spent_asf == D("65.00")
    assert state.stage4.totals.remaining_asf == D("35.00")


def test_cut_line_rejects_what_does_not_fit(plan_payload, engine_config, fixed_now):
    plan_payload["budget"] = "30"
    state = _run_to(4, plan_payload, engine_config, fixed_now)

    assert [s.supplier_key for s in state.stage4.selected_suppliers] == ["bolt"]
    assert [(r.supplier_key, r.reason) for r in state.stage4.rejected_suppliers] == [
        ("acme", "insufficient_budget")
    ]


def test_exact_asf(plan_payload, engine_config, fixed_now):
    state = _run_to(5, plan_payload, engine_config, fixed_now)
    acme = {s.supplier_key: s for s in state.stage5.suppliers}["acme"]

    assert acme.exact_asf == D("60.00")
    assert acme.currency_fee == D("0.00")
    assert acme.profit_land == D("22.00")
    assert acme.exact_roi == D("0.3667")
    assert state.stage5.totals.total_asf == D("65.00")


def test_reallocation_fills_the_budget(plan_payload, engine_config, fixed_now):
    state = _run_to(6, plan_payload, engine_config, fixed_now)
    out = state.stage6

    assert out.totals.total_asf <= D("100")
    # the cheapest case costs 5: anything left is smaller than that
    assert out.totals.remaining < D("5")
    chosen = {(c.supplier_key, c.asin, c.case_index) for c in out.cases}
    for key in [("acme", "A1", 1), ("acme", "A1", 2), ("acme", "A2", 1), ("acme", "A2", 2), ("bolt", "B1", 1)]:
        assert key in chosen
    assert out.below_moq_suppliers == []


def test_reallocation_drops_worst_cases_when_budget_shrinks(plan_payload, engine_config, fixed_now):
    state = _run_to(5, plan_payload, engine_config, fixed_now)
    state = run_stage(6, state, {"budget": 50}, config=engine_config, now=fixed_now)
    out = state.stage6

    assert out.totals.total_asf == D("50.00")
    chosen = {(c.asin, c.case_index) for c in out.cases}
    assert ("A2", 2) not in chosen
    assert ("B1", 2) in chosen
    # 40 of 50 left at Acme
    assert out.below_moq_suppliers == ["acme"]


def test_substitution_without_candidates(plan_payload, engine_config, fixed_now):
    state = _run_to(7, plan_payload, engine_config, fixed_now)
    out = state.stage7

    assert out.improved is False
    assert out.iterations == 0
    assert out.before == out.after


def test_substitution_is_advisory(plan_payload, engine_config, fixed_now):
    plan_payload["budget"] = "30"
    state = _run_to(6, plan_payload, engine_config, fixed_now)
    cases_before = state.stage6.model_dump()

    state = run_stage(7, state, config=engine_config, now=fixed_now)

    # Acme's 60 block never fits next to 25 of Bolt cases
    assert state.stage7.iterations == 1
    assert state.stage7.improved is False
    assert state.stage6.model_dump() == cases_before


def test_finalize_matches_case_allocation(plan_payload, engine_config, fixed_now):
    state = _run_to(6, plan_payload, engine_config, fixed_now)
    state = run_stage(8, state, config=engine_config, now=fixed_now)
    summary = state.stage8.summary

    assert summary.budget == D("100.00")
    assert summary.budget_used == state.stage6.totals.total_asf
    assert summary.budget_remaining == summary.budget - summary.budget_used
    assert summary.total_units == state.stage6.totals.total_units
    assert {s.supplier_key for s in state.stage8.suppliers} == {"acme", "bolt"}
    assert all(s.meets_moq for s in state.stage8.suppliers)


def test_missing_prerequisite_names_the_stage(plan_payload, engine_config, fixed_now):
    with pytest.raises(StageDependencyError) as exc:
        run_stage(3, None, plan_payload, config=engine_config, now=fixed_now)
    assert exc.value.stage == 3
    assert str(exc.value).startswith("[Stage 3]")


@pytest.mark.parametrize("stage", [0, 9, "2"])
def test_stage_number_is_validated(stage, plan_payload, engine_config):
    with pytest.raises(InputError):
        run_stage(stage, None, plan_payload, config=engine_config)


def test_fresh_run_needs_inputs(engine_config):
    with pytest.raises(InputError):
        run_stage(1, None, None, config=engine_config)


def test_non_positive_budget_is_an_input_error(plan_payload, engine_config, fixed_now):
    state = _run_to(3, plan_payload, engine_config, fixed_now)
    with pytest.raises(InputError) as exc:
        run_stage(4, state, {"budget": "0"}, config=engine_config, now=fixed_now)
    assert exc.value.stage == 4


def test_rerunning_a_stage_is_idempotent(plan_payload, engine_config, fixed_now):
    state = _run_to(2, plan_payload, engine_config, fixed_now)
    first = run_stage(3, state, config=engine_config, now=fixed_now)
    second = run_stage(3, state, config=engine_config, now=fixed_now)

    assert first.stage3 == second.stage3
    assert first.meta == second.meta


def test_state_survives_a_json_round_trip(plan_payload, engine_config, fixed_now):
    state = _run_to(3, plan_payload, engine_config, fixed_now)
    wire = state.model_dump(mode="json", by_alias=True)

    assert "createdAt" in wire["meta"]
    assert "estimatedASF" in wire["stage2"]["blocks"][0]

    later = fixed_now.replace(hour=13)
    resumed = run_stage(4, wire, config=engine_config, now=later)
    assert [s.supplier_key for s in resumed.stage4.selected_suppliers] == ["bolt", "acme"]
    assert resumed.meta.created_at == fixed_now
    assert resumed.meta.updated_at == later


def test_inputs_may_be_a_validated_model(plan_input, engine_config, fixed_now):
    state = run_stage(1, None, plan_input, config=engine_config, now=fixed_now)
    assert state.inputs.budget == D("100")
    assert len(state.stage1.moq_blocks) == 2


def _add_slow_supplier(payload, moq="500"):
    """A UK supplier that can never reach its MOQ: 3 cases sell within the horizon."""
    payload["suppliers"].append({"name": "Cargo", "country": "UK", "moqGBP": moq})
    payload["products"].append(
        {
            "asin": "C1",
            "supplier": "Cargo",
            "itemName": "Cargo strap",
            "supplierPrice": "5",
            "amazonPrice": "12",
            "amazonFees": "2",
            "vatPerUnit": "1",
            "monthlySales": "1",
            "sellerCount": 1,
            "caseSize": 1,
        }
    )
    return payload


def test_cut_line_keeps_blocks_below_moq(plan_payload, engine_config, fixed_now):
    state = _run_to(4, _add_slow_supplier(plan_payload), engine_config, fixed_now)

    cargo = {b.supplier_key: b for b in state.stage1.moq_blocks}["cargo"]
    assert cargo.total_bsf == D("15.00")
    assert not cargo.meets_moq

    assert {s.supplier_key for s in state.stage4.selected_suppliers} == {"bolt", "acme", "cargo"}
    assert state.stage4.rejected_suppliers == []
    assert state.stage4.below_moq_suppliers == ["cargo"]
    assert state.stage4.totals.spent_asf == D("80.00")


def test_blocks_below_moq_are_not_substitution_candidates(plan_payload, engine_config, fixed_now):
    plan_payload["budget"] = "30"
    state = _run_to(7, _add_slow_supplier(plan_payload), engine_config, fixed_now)

    assert {s.supplier_key for s in state.stage4.selected_suppliers} == {"bolt", "cargo"}
    assert [(r.supplier_key, r.reason) for r in state.stage4.rejected_suppliers] == [
        ("acme", "insufficient_budget")
    ]
    # Acme is the only supplier left out for lack of budget
    assert state.stage7.iterations == 1
    assert all(s.added_supplier_key == "acme" for s in state.stage7.substitutions)


def test_substitution_never_rewrites_the_case_allocation(engine_config, fixed_now):
    payload = {
        "budget": "30",
        "suppliers": [
            {"name": "Slow", "country": "UK", "moqGBP": "0"},
            {"name": "Star", "country": "UK", "moqGBP": "100"},
        ],
        "products": [
            {
                "asin": "S1",
                "supplier": "Slow",
                "itemName": "Thin margin",
                "supplierPrice": "10",
                "amazonPrice": "12",
                "amazonFees": "1",
                "monthlySales": "30",
                "caseSize": 1,
            },
            {
                "asin": "T1",
                "supplier": "Star",
                "itemName": "Fat margin",
                "supplierPrice": "10",
                "amazonPrice": "30",
                "amazonFees": "2",
                "monthlySales": "30",
                "caseSize": 1,
            },
        ],
    }
    state = _run_to(6, payload, engine_config, fixed_now)
    assert [r.supplier_key for r in state.stage4.rejected_suppliers] == ["star"]
    cases_before = state.stage6.model_dump()

    # with room for Star's 100 block the swap pays off, but stays a suggestion
    state = run_stage(7, state, {"budget": "1000"}, config=engine_config, now=fixed_now)

    assert state.stage7.improved is True
    assert state.stage7.substitutions[0].added_supplier_key == "star"
    assert state.stage7.after.avg_marginal_roi > state.stage7.before.avg_marginal_roi
    assert state.stage6.model_dump() == cases_before


def test_non_uk_supplier_pays_the_currency_fee(plan_payload, engine_config, fixed_now):
    plan_payload["suppliers"][1]["country"] = "Ukraine"
    state = _run_to(5, plan_payload, engine_config, fixed_now)

    bolt = {s.supplier_key: s for s in state.stage5.suppliers}["bolt"]
    # 5.00 * 0.67%
    assert bolt.currency_fee == D("0.03")
    assert bolt.freight_multiplier == D("1.0060")
    assert bolt.exact_asf == D("5.03")
    assert state.stage5.totals.total_currency_fee == D("0.03")

    acme = {s.supplier_key: s for s in state.stage5.suppliers}["acme"]
    assert acme.currency_fee == D("0.00")


@pytest.mark.parametrize("stage", range(1, 9))
def test_every_stage_rejects_a_non_positive_budget(stage, plan_payload, engine_config, fixed_now):
    state = _run_to(8, plan_payload, engine_config, fixed_now)

    with pytest.raises(InputError) as exc:
        run_stage(stage, state, {"budget": "0"}, config=engine_config, now=fixed_now)
    assert exc.value.stage == stage

    # the stage functions check it too when handed a state directly
    broke = state.model_copy(update={"inputs": state.inputs.model_copy(update={"budget": D("0")})})
    step = engine_config.require_pipeline().stage(stage)
    with pytest.raises(InputError) as exc:
        STAGE_FUNCTIONS[stage](broke, step, {"config": engine_config})
    assert exc.value.stage == stage
