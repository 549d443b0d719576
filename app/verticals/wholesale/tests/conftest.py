from __future__ import annotations

from datetime import datetime, timezone
from decimal import Decimal

import pytest

from app.verticals.wholesale.calculators.churn import ChurnPolicy
from app.verticals.wholesale.engine.config import EngineConfig
from app.verticals.wholesale.engine.context import SupplierContext
from app.verticals.wholesale.schemas.ws_plan_input import FreightConfigIn, SupplierIn, WsPlanInput


@pytest.fixture
def fixed_now():
    return datetime(2025, 1, 1, 12, 0, 0, tzinfo=timezone.utc)


@pytest.fixture
def engine_config():
    # the shipped YAML, pipeline included
    return EngineConfig.from_yaml_file()


@pytest.fixture
def plan_payload():
    """
    Two UK suppliers with no freight rates: freight and currency fee are 0,
    so every multiplier is exactly 1.0000 and ASF == BSF.
    """
    return {
        "budget": "100",
        "suppliers": [
            {"name": "Acme", "country": "UK", "moqGBP": "£50"},
            {"name": "Bolt", "country": "United Kingdom", "moqGBP": "0"},
        ],
        "products": [
            {
                "asin": "A1",
                "supplier": "Acme",
                "itemName": "Garden hose",
                "supplierPrice": "10",
                "amazonPrice": "20",
                "amazonFees": "3",
                "vatPerUnit": "2",
                "monthlySales": "30",
                "sellerCount": 1,
                "caseSize": 1,
            },
            {
                "asin": "A2",
                "supplier": "Acme",
                "itemName": "Garden rake",
                "supplierPrice": "10",
                "amazonPrice": "18",
                "amazonFees": "3",
                "vatPerUnit": "2",
                "monthlySales": "60",
                "sellerCount": 1,
                "caseSize": 2,
            },
            {
                "asin": "B1",
                "supplier": "Bolt",
                "itemName": "Bolt set",
                "supplierPrice": "5",
                "amazonPrice": "12",
                "amazonFees": "2",
                "vatPerUnit": "1",
                "monthlySales": "15",
                "sellerCount": 1,
                "caseSize": 1,
            },
            {
                # no sales: must never show up anywhere
                "asin": "DEAD",
                "supplier": "Bolt",
                "supplierPrice": "5",
                "amazonPrice": "12",
                "monthlySales": "0",
            },
        ],
    }


@pytest.fixture
def plan_input(plan_payload):
    return WsPlanInput.model_validate(plan_payload)


@pytest.fixture
def uk_context():
    """Pricing context for a UK supplier: free freight, no FX fee."""

    def make(name: str = "Acme", moq: str = "0") -> SupplierContext:
        return SupplierContext(
            supplier=SupplierIn(name=name, country="UK", moq_gbp=Decimal(moq)),
            curves=(),
            freight_config=FreightConfigIn(),
            churn=ChurnPolicy(),
        )

    return make
