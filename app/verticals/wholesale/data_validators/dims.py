from __future__ import annotations

from typing import Optional

from ..schemas.ws_plan_input import DimsIn, DimsLookupIn, ProductIn
from .common import normalize_supplier_key


def lookup_dims(product: ProductIn, dims: Optional[DimsLookupIn]) -> Optional[DimsIn]:
    """ASIN first, then EAN, then normalized title."""
    if dims is None:
        return None

    asin = product.asin.strip().upper()
    if asin:
        for k, v in dims.by_asin.items():
            if k.strip().upper() == asin:
                return v

    ean = product.ean.strip()
    if ean and ean in dims.by_ean:
        return dims.by_ean[ean]

    title = normalize_supplier_key(product.item_name)
    if title:
        for k, v in dims.by_title.items():
            if normalize_supplier_key(k) == title:
                return v
    return None


def apply_dims(product: ProductIn, dims: Optional[DimsLookupIn]) -> ProductIn:
    """Fill missing case size / dimensions from the lookup; values on the row win."""
    found = lookup_dims(product, dims)
    if found is None:
        return product

    update = {}
    if product.case_size <= 1 and found.case_size > 1:
        update["case_size"] = found.case_size
    if product.weight_kg <= 0:
        update["weight_kg"] = found.weight_kg
    if product.length <= 0 or product.width <= 0 or product.height <= 0:
        update["length"] = found.length
        update["width"] = found.width
        update["height"] = found.height

    return product.model_copy(update=update) if update else product
