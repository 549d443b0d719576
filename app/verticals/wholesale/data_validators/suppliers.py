from __future__ import annotations

import logging
from typing import Dict, Iterable, Optional

from ..schemas.ws_plan_input import ChurnSettingIn, ProductIn, SupplierIn
from .common import normalize_supplier_key

logger = logging.getLogger(__name__)


def build_supplier_map(suppliers: Iterable[SupplierIn]) -> Dict[str, SupplierIn]:
    """
    Index supplier terms by normalized key.
    Later rows win on duplicate keys (sheet order = last edit wins).
    """
    out: Dict[str, SupplierIn] = {}
    for s in suppliers:
        key = s.key
        if not key:
            logger.warning("supplier row without name or key skipped")
            continue
        if key in out:
            logger.info("duplicate supplier key %s, keeping last row", key)
        out[key] = s.model_copy(update={"supplier_key": key})
    return out


def supplier_for(product: ProductIn, supplier_map: Dict[str, SupplierIn]) -> SupplierIn:
    """Terms for a product's supplier; unknown suppliers get neutral terms (no MOQ, generic freight)."""
    key = product.resolved_supplier_key
    found = supplier_map.get(key)
    if found is not None:
        return found
    return SupplierIn(name=product.supplier or key, supplier_key=key)


def churn_setting_for(
    supplier_key: str, churn_settings: Dict[str, ChurnSettingIn]
) -> Optional[ChurnSettingIn]:
    if supplier_key in churn_settings:
        return churn_settings[supplier_key]
    for raw_key, setting in churn_settings.items():
        if normalize_supplier_key(raw_key) == supplier_key:
            return setting
    return None
