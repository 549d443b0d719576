from __future__ import annotations

import logging
from collections import defaultdict
from decimal import Decimal
from typing import Dict, List, Optional, Sequence

from ..calculators.constants import SCORE_ROI_WEIGHT, SCORE_SPEND_WEIGHT
from ..calculators.rounding import ZERO, round2, round4, safe_divide
from ..domain.models import AllocationResult, Bundle
from .config import OptimizerConfig

D = Decimal

logger = logging.getLogger(__name__)


def _empty(budget: D) -> AllocationResult:
    return AllocationResult(
        bundles=[],
        total_cost_asf=D("0.00"),
        total_profit=D("0.00"),
        monthly_roi=D("0.0000"),
        remaining_budget=round2(budget),
        strategy="none",
    )


def summarize(bundles: List[Bundle], budget: D, strategy: str) -> AllocationResult:
    if not bundles:
        return _empty(budget)
    cost = sum((b.total_cost_asf for b in bundles), ZERO)
    profit = sum((b.total_profit for b in bundles), ZERO)
    weighted = sum((b.monthly_roi * b.total_cost_asf for b in bundles), ZERO)
    return AllocationResult(
        bundles=list(bundles),
        total_cost_asf=round2(cost),
        total_profit=round2(profit),
        monthly_roi=round4(safe_divide(weighted, cost)),
        remaining_budget=round2(budget - cost),
        strategy=strategy,
    )


def exhaustive_search(bundles: Sequence[Bundle], budget: D, one_per_supplier: bool = True) -> List[Bundle]:
    """
    Best-scoring subset over all 2^n - 1 non-empty subsets.

    Subsets are walked in Gray-code order so each step flips exactly one
    bundle and the running sums stay O(1) per subset. Equal scores keep the
    subset with the lowest binary mask, i.e. the one found first when
    counting masks upwards.
    """
    n = len(bundles)
    costs = [b.total_cost_asf for b in bundles]
    weighted = [b.monthly_roi * b.total_cost_asf for b in bundles]
    keys = [b.supplier_key for b in bundles]

    cost = ZERO
    wsum = ZERO
    per_supplier: Dict[str, int] = defaultdict(int)
    clashes = 0

    best_score: Optional[D] = None
    best_mask = 0
    mask = 0

    for i in range(1, 1 << n):
        # bit that differs between gray(i - 1) and gray(i)
        bit = (i & -i).bit_length() - 1
        mask ^= 1 << bit
        if mask & (1 << bit):
            cost += costs[bit]
            wsum += weighted[bit]
            if per_supplier[keys[bit]] >= 1:
                clashes += 1
            per_supplier[keys[bit]] += 1
        else:
            cost -= costs[bit]
            wsum -= weighted[bit]
            if per_supplier[keys[bit]] >= 2:
                clashes -= 1
            per_supplier[keys[bit]] -= 1

        if cost > budget or cost <= 0:
            continue
        if one_per_supplier and clashes:
            continue

        score = (wsum / cost) * SCORE_ROI_WEIGHT + (cost / budget) * SCORE_SPEND_WEIGHT
        if best_score is None or score > best_score or (score == best_score and mask < best_mask):
            best_score = score
            best_mask = mask

    return [b for idx, b in enumerate(bundles) if best_mask & (1 << idx)]


def greedy_search(bundles: Sequence[Bundle], budget: D, one_per_supplier: bool = True) -> List[Bundle]:
    """
    Greedy by monthly ROI, then ONE backward swap pass: each selected bundle
    may be replaced by a strictly more expensive, equal-or-better ROI bundle
    that fits in (remaining + its own cost). Heuristic, not an exact knapsack.
    """
    ranked = sorted(bundles, key=lambda b: b.monthly_roi, reverse=True)

    selected: List[Bundle] = []
    taken = set()
    remaining = budget
    for b in ranked:
        if one_per_supplier and b.supplier_key in taken:
            continue
        if b.total_cost_asf <= remaining:
            selected.append(b)
            taken.add(b.supplier_key)
            remaining -= b.total_cost_asf

    if selected and remaining > 0:
        for i in range(len(selected) - 1, -1, -1):
            current = selected[i]
            available = remaining + current.total_cost_asf
            for r in ranked:
                if any(r is s for s in selected):
                    continue
                if one_per_supplier and r.supplier_key != current.supplier_key and r.supplier_key in taken:
                    continue
                if (
                    r.total_cost_asf <= available
                    and r.total_cost_asf > current.total_cost_asf
                    and r.monthly_roi >= current.monthly_roi
                ):
                    selected[i] = r
                    taken.discard(current.supplier_key)
                    taken.add(r.supplier_key)
                    remaining = available - r.total_cost_asf
                    break

    return selected


def optimize_global_budget(bundles: Sequence[Bundle], budget: D, config: OptimizerConfig) -> AllocationResult:
    if budget <= 0 or not bundles:
        return _empty(budget)

    valid = [b for b in bundles if 0 < b.total_cost_asf <= budget]
    if not valid:
        return _empty(budget)

    if len(valid) <= config.max_exhaustive and not config.force_greedy:
        chosen = exhaustive_search(valid, budget, config.one_bundle_per_supplier)
        strategy = "exhaustive"
    else:
        chosen = greedy_search(valid, budget, config.one_bundle_per_supplier)
        strategy = "greedy"

    result = summarize(chosen, budget, strategy)
    logger.info(
        "optimizer %s: %d/%d bundles, cost %s of %s, monthly ROI %s",
        strategy,
        len(result.bundles),
        len(valid),
        result.total_cost_asf,
        budget,
        result.monthly_roi,
    )
    return result
