from decimal import Decimal


def test_health(client):
    r = client.get("/health")
    assert r.status_code == 200
    assert r.json() == {"status": "ok"}


def test_allocate(client, ws_payload):
    r = client.post("/api/ws-plan/allocate", json=ws_payload)
    assert r.status_code == 200, r.text

    body = r.json()
    assert body["engineVersion"] == "3.1.0"
    assert body["summary"]["strategy"] == "exhaustive"
    assert [s["supplierKey"] for s in body["suppliers"]] == ["acme"]

    # one hose beats the rake and the two-SKU bundle on monthly ROI
    products = [p for s in body["suppliers"] for p in s["products"]]
    assert [(p["asin"], p["unitsToOrder"]) for p in products] == [("A1", 1)]
    assert "DEAD" not in r.text
    assert Decimal(body["summary"]["totalCostASF"]) == Decimal("10.00")
    assert Decimal(body["summary"]["totalCostASF"]) <= Decimal(ws_payload["budget"])
    assert Decimal(body["summary"]["remainingBudget"]) == Decimal("90.00")


def test_allocate_rejects_non_positive_budget(client, ws_payload):
    ws_payload["budget"] = "0"
    r = client.post("/api/ws-plan/allocate", json=ws_payload)

    assert r.status_code == 400
    assert r.json()["code"] == "invalid_input"
    assert r.json()["success"] is False


def test_staged_run_returns_the_whole_state(client, ws_payload):
    r = client.post("/api/ws-plan/v3", params={"stage": 1}, json={"inputs": ws_payload})
    assert r.status_code == 200, r.text

    state = r.json()
    assert state["meta"]["stage"] == 1
    assert state["stage1"]["moqBlocks"][0]["supplierKey"] == "acme"
    assert state["stage2"] is None

    # hand the state back for the next stage
    r = client.post("/api/ws-plan/v3", params={"stage": 2}, json={"state": state})
    assert r.status_code == 200, r.text
    assert r.json()["stage2"]["blocks"][0]["estimatedASF"] == "10.00"


def test_skipping_a_stage_is_a_conflict(client, ws_payload):
    r = client.post("/api/ws-plan/v3", params={"stage": 3}, json={"inputs": ws_payload})

    assert r.status_code == 409
    body = r.json()
    assert body["code"] == "stage_dependency"
    assert body["stage"] == 3
    assert "Run stage 2 first" in body["error"]


def test_unknown_stage_number(client, ws_payload):
    r = client.post("/api/ws-plan/v3", params={"stage": 9}, json={"inputs": ws_payload})
    assert r.status_code == 400
    assert r.json()["code"] == "invalid_input"


def test_malformed_state_is_an_input_error(client):
    r = client.post("/api/ws-plan/v3", params={"stage": 2}, json={"state": {"meta": {}}})
    assert r.status_code == 400


def test_state_pointing_at_an_unknown_supplier_is_an_input_error(client, ws_payload):
    r = client.post("/api/ws-plan/v3", params={"stage": 1}, json={"inputs": ws_payload})
    state = r.json()
    state["stage1"]["moqBlocks"][0]["supplierKey"] = "ghost"

    r = client.post("/api/ws-plan/v3", params={"stage": 2}, json={"state": state})

    assert r.status_code == 400
    body = r.json()
    assert body["code"] == "invalid_input"
    assert body["stage"] == 2
    assert "ghost" in body["error"]


def test_shipment_plan_uk(client):
    payload = {
        "products": [
            {
                "asin": "S1",
                "supplierPrice": "10",
                "amazonPrice": "20",
                "amazonFees": "4",
                "monthlySales": "100",
                "caseSize": 10,
                "weightKg": "5",
                "unitsToOrder": 20,
            }
        ],
        "shipmentInfo": {"country": "UK"},
    }
    r = client.post("/api/ws-plan/v1/shipment", json=payload)
    assert r.status_code == 200, r.text

    body = r.json()
    assert body["freightMultiplier"] == "1.0000"
    assert body["productCostBSF"] == "200.00"
    assert body["regression"]["found"] is False
