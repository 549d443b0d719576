# app/verticals/wholesale/stages/reallocate_cases.py
"""
Stage 6: case-level reallocation.

Every selected supplier's purchasable cases are flattened into one list.
Cases already in the MOQ block start selected; further cases of the same
SKU, up to what it can sell within the stock horizon, form the candidate
pool. The k-th case of a SKU is scored with the monthly ROI of holding k
cases, so later cases of a slow seller score lower.
"""
from __future__ import annotations

import logging
from decimal import Decimal
from typing import Dict, List, Set, Tuple

from buyplan.engine.config import StageConfig
from buyplan.engine.context import StageResult

from ..calculators.rounding import ZERO, round2
from ..engine.config import OptionsConfig
from ..engine.context import SupplierContext
from ..engine.options import price_units, velocity_cases
from ..errors import StageDependencyError
from ..schemas.pipeline_state import CaseItem, ExactSupplier, PipelineState, Stage6Output, Stage6Totals
from ..schemas.ws_plan_input import ProductIn
from .support import ProductKey, engine_config, product_index, require, require_budget, supplier_contexts

D = Decimal

logger = logging.getLogger(__name__)

STAGE = 6

CaseKey = Tuple[str, str, int]


def case_key(c: CaseItem) -> CaseKey:
    return (c.supplier_key, c.asin, c.case_index)


def rank_key(c: CaseItem):
    """Best marginal ROI first; a SKU's earlier case always precedes its later ones."""
    return (-c.marginal_roi, c.supplier_key, c.asin, c.case_index)


def _sku_cases(
    sup: ExactSupplier, p: ProductIn, count: int, sctx: SupplierContext
) -> List[CaseItem]:
    out: List[CaseItem] = []
    for k in range(1, count + 1):
        opt = price_units(p, k * p.case_size, sup.freight_multiplier, sctx.churn)
        out.append(
            CaseItem(
                supplier_key=sup.supplier_key,
                supplier_name=sup.supplier_name,
                asin=p.asin,
                item_name=p.item_name,
                case_index=k,
                units=p.case_size,
                cost_bsf=round2(p.supplier_price * p.case_size),
                asf_cost=round2(opt.landed_cost_per_unit * p.case_size),
                profit=round2(opt.profit_per_unit * p.case_size),
                marginal_roi=opt.monthly_roi,
            )
        )
    return out


def flatten_cases(
    suppliers: List[ExactSupplier],
    contexts: Dict[str, SupplierContext],
    products: Dict[ProductKey, ProductIn],
    horizon: OptionsConfig,
) -> Tuple[List[CaseItem], Set[CaseKey]]:
    """(all purchasable cases, keys of the cases already in an MOQ block)."""
    cases: List[CaseItem] = []
    initial: Set[CaseKey] = set()
    for sup in suppliers:
        sctx = contexts[sup.supplier_key]
        for bp in sup.block.products:
            p = products[(sup.supplier_key, bp.asin)]
            count = max(bp.cases, velocity_cases(p, horizon))
            for c in _sku_cases(sup, p, count, sctx):
                cases.append(c)
                if c.case_index <= bp.cases:
                    initial.add(case_key(c))
    return cases, initial


def reallocate(cases: List[CaseItem], initial: Set[CaseKey], budget: D) -> List[CaseItem]:
    ranked = sorted(cases, key=rank_key)
    selected = [c for c in ranked if case_key(c) in initial]
    total = sum((c.asf_cost for c in selected), ZERO)

    # drop the worst cases while over budget
    while selected and total > budget:
        worst = selected.pop()
        total -= worst.asf_cost

    # then fill from the pool, best first
    chosen = {case_key(c) for c in selected}
    for c in ranked:
        key = case_key(c)
        if key in chosen:
            continue
        if c.case_index > 1 and (c.supplier_key, c.asin, c.case_index - 1) not in chosen:
            continue
        if total + c.asf_cost > budget:
            continue
        chosen.add(key)
        total += c.asf_cost

    return [c for c in ranked if case_key(c) in chosen]


def below_moq(selected: List[CaseItem], suppliers: List[ExactSupplier]) -> List[str]:
    spend: Dict[str, D] = {}
    for c in selected:
        spend[c.supplier_key] = spend.get(c.supplier_key, ZERO) + c.cost_bsf
    out = []
    for sup in suppliers:
        moq = sup.block.moq_gbp
        if sup.supplier_key in spend and moq > 0 and spend[sup.supplier_key] < moq:
            out.append(sup.supplier_key)
    return out


def stage_reallocate_cases_v1(state: PipelineState, stage: StageConfig, assets: dict) -> StageResult:
    data = require(state, 0, STAGE)
    stage5 = require(state, 5, STAGE)
    if not stage5.suppliers:
        raise StageDependencyError("state.stage5.suppliers is empty", stage=STAGE)
    budget = require_budget(state, STAGE)

    config = engine_config(assets)
    cases, initial = flatten_cases(
        stage5.suppliers,
        supplier_contexts(data, config),
        product_index(data),
        config.options,
    )
    if not cases:
        raise StageDependencyError("selected suppliers have no purchasable cases", stage=STAGE)

    selected = reallocate(cases, initial, budget)
    short = below_moq(selected, stage5.suppliers)
    if short:
        logger.warning("suppliers below MOQ after reallocation: %s", ", ".join(short))

    total_asf = round2(sum((c.asf_cost for c in selected), ZERO))
    totals = Stage6Totals(
        budget=round2(budget),
        total_asf=total_asf,
        remaining=round2(budget - total_asf),
        total_units=sum(c.units for c in selected),
        case_count=len(selected),
        pool_size=len(cases) - len(selected),
    )
    logger.info(
        "reallocated %d cases (%d units), totalASF=%s of %s",
        totals.case_count,
        totals.total_units,
        total_asf,
        totals.budget,
    )
    return StageResult(
        data=Stage6Output(cases=selected, below_moq_suppliers=short, totals=totals),
        meta={"cases": totals.case_count, "below_moq": short},
    )
