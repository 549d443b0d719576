import pytest
from fastapi.testclient import TestClient

from app.main import app


@pytest.fixture(scope="session")
def client():
    return TestClient(app)


@pytest.fixture
def ws_payload():
    """
    One UK supplier whose MOQ a single case of A1 already covers.
    DEAD has no sales and is never eligible.
    """
    return {
        "budget": "100",
        "suppliers": [{"name": "Acme", "country": "UK", "moqGBP": "10"}],
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
                "caseSize": 2,
            },
            {
                "asin": "DEAD",
                "supplier": "Acme",
                "itemName": "Discontinued hose",
                "supplierPrice": "10",
                "amazonPrice": "20",
                "monthlySales": "0",
            },
        ],
    }
