from __future__ import annotations

from decimal import Decimal

from .rounding import round2, round4

D = Decimal


def profit_per_unit(amazon_price: D, amazon_fees: D, vat_per_unit: D, unit_cost: D) -> D:
    """BSF profit with unit_cost = supplier price, ASF profit with unit_cost = landed cost."""
    return round2(amazon_price - amazon_fees - vat_per_unit - unit_cost)


def compute_roi(profit: D, cost: D) -> D:
    if cost <= 0:
        return D("0.0000")
    return round4(profit / cost)
