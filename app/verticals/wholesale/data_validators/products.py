from __future__ import annotations

import logging
from collections import OrderedDict
from typing import Dict, List

from ..schemas.ws_plan_input import ProductIn, WsPlanInput
from .dims import apply_dims

logger = logging.getLogger(__name__)


def prepare_products(payload: WsPlanInput) -> List[ProductIn]:
    """
    Eligible products with supplier keys resolved and dimensions filled.
    Products with supplierPrice <= 0 or monthlySales <= 0 are dropped here,
    so they can never reach a bundle or a stage output.
    """
    out: List[ProductIn] = []
    skipped = 0
    for p in payload.products:
        if not p.is_eligible:
            skipped += 1
            continue
        p = apply_dims(p, payload.dims)
        if not p.supplier_key:
            p = p.model_copy(update={"supplier_key": p.resolved_supplier_key})
        out.append(p)

    if skipped:
        logger.info("skipped %d ineligible products (price or sales <= 0)", skipped)
    return out


def group_by_supplier(products: List[ProductIn]) -> Dict[str, List[ProductIn]]:
    groups: Dict[str, List[ProductIn]] = OrderedDict()
    for p in products:
        groups.setdefault(p.resolved_supplier_key, []).append(p)
    return groups
