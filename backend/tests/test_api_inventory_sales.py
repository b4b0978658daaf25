"""HTTP tests for /api/inventory and /api/sales."""

import pytest


@pytest.fixture
def item_id(client):
    type_id = client.post("/api/item-types", json={"name": "Aquarium"}).get_json()["data"]["id"]
    resp = client.post("/api/items", json={"name": "Filter Sponge", "item_type_id": type_id, "selling_price": 200})
    return resp.get_json()["data"]["id"]


def _stock_in(client, item_id, lines):
    return client.post("/api/inventory/stock-in", json={
        "import_date": "2026-10-01",
        "notes": "supplier A",
        "details": [{"item_id": item_id, "quantity": q, "cost_price": c} for q, c in lines],
    })


@pytest.fixture
def stocked_id(client, item_id):
    assert _stock_in(client, item_id, [(10, 100), (5, 130)]).status_code == 201
    return item_id


def test_stock_in_applies_weighted_average(client, stocked_id):
    inv = client.get(f"/api/inventory/item/{stocked_id}").get_json()["data"]
    assert inv["quantity"] == 15
    assert inv["avg_cost"] == 110.0

    history = client.get("/api/inventory/stock-in-history?from_date=2026-10-01&to_date=2026-10-01").get_json()["data"]
    assert history["pagination"]["total"] == 1
    assert history["items"][0]["total_amount"] == 1650.0


def test_stock_in_validation_errors(client, item_id):
    resp = client.post("/api/inventory/stock-in", json={"details": []})
    assert resp.status_code == 400

    resp = _stock_in(client, item_id, [(1, 0)])
    assert resp.status_code == 400
    assert resp.get_json()["error"].startswith("details[0]")

    resp = _stock_in(client, 9999, [(1, 5)])
    assert resp.status_code == 400
    assert resp.get_json()["details"] == {"item_id": 9999}


def test_adjust_and_min_stock(client, stocked_id):
    resp = client.post("/api/inventory/adjust", json={"item_id": stocked_id, "new_quantity": 12, "reason": "count"})
    assert resp.status_code == 200
    assert resp.get_json()["data"]["difference"] == -3

    resp = client.put(f"/api/inventory/min-stock/{stocked_id}", json={"min_stock": 12})
    assert resp.get_json()["data"]["is_low_stock"] is True

    low = client.get("/api/inventory/low-stock").get_json()["data"]
    assert [r["item_id"] for r in low] == [stocked_id]

    listing = client.get("/api/inventory?low_stock=true&sort_by=quantity").get_json()["data"]
    assert listing["pagination"]["total"] == 1


def test_adjust_requires_reason(client, stocked_id):
    resp = client.post("/api/inventory/adjust", json={"item_id": stocked_id, "new_quantity": 1})
    assert resp.status_code == 400


def test_sale_lifecycle(client, stocked_id):
    resp = client.post("/api/sales", json={
        "discount": 50,
        "payment_method": "cash",
        "details": [{"item_id": stocked_id, "quantity": 4, "unit_price": 200}],
    })
    assert resp.status_code == 201
    sale = resp.get_json()["data"]
    assert sale["total_amount"] == 800.0
    assert sale["final_amount"] == 750.0
    assert sale["status"] == "completed"
    assert sale["details"][0]["cost_price"] == 110.0

    assert client.get(f"/api/inventory/item/{stocked_id}").get_json()["data"]["quantity"] == 11

    resp = client.put(f"/api/sales/{sale['id']}/cancel", json={"reason": "customer return"})
    assert resp.status_code == 200
    cancelled = resp.get_json()["data"]
    assert cancelled["status"] == "refunded"
    assert cancelled["final_amount"] == 750.0
    assert cancelled["notes"] == "[REFUNDED] customer return"
    assert client.get(f"/api/inventory/item/{stocked_id}").get_json()["data"]["quantity"] == 15

    resp = client.put(f"/api/sales/{sale['id']}/cancel", json={"reason": "again"})
    assert resp.status_code == 409


def test_sale_insufficient_stock_is_conflict(client, stocked_id):
    resp = client.post("/api/sales", json={"details": [{"item_id": stocked_id, "quantity": 99, "unit_price": 200}]})
    body = resp.get_json()
    assert resp.status_code == 409
    assert body["success"] is False
    assert body["error"] == 'Insufficient stock for item "Filter Sponge". Available: 15, Required: 99'
    assert client.get("/api/sales").get_json()["data"]["pagination"]["total"] == 0


def test_sale_validation(client, stocked_id):
    resp = client.post("/api/sales", json={"details": []})
    assert resp.status_code == 400

    resp = client.post("/api/sales", json={
        "payment_method": "bitcoin",
        "details": [{"item_id": stocked_id, "quantity": 1, "unit_price": 200}],
    })
    assert resp.status_code == 400

    resp = client.post("/api/sales", json={
        "customer_id": 12345,
        "details": [{"item_id": stocked_id, "quantity": 1, "unit_price": 200}],
    })
    assert resp.status_code == 400

    resp = client.put("/api/sales/1/cancel", json={})
    assert resp.status_code == 400

    assert client.get("/api/sales/4040").status_code == 404


def test_sale_listing_and_summary(client, stocked_id):
    for quantity, method in ((1, "cash"), (2, "card")):
        client.post("/api/sales", json={
            "payment_method": method,
            "details": [{"item_id": stocked_id, "quantity": quantity, "unit_price": 200}],
        })

    listing = client.get("/api/sales?payment_method=card").get_json()["data"]
    assert listing["pagination"]["total"] == 1
    assert listing["items"][0]["payment_method"] == "card"

    summary = client.get("/api/sales/summary").get_json()["data"]
    assert summary["total_sales"] == 2
    assert summary["total_revenue"] == 600.0

    resp = client.get("/api/sales?from_date=2026-10-05&to_date=2026-10-01")
    assert resp.status_code == 400


def test_stock_in_receipt_lookup(client, item_id):
    created = _stock_in(client, item_id, [(3, 40)]).get_json()["data"]
    resp = client.get(f"/api/inventory/stock-in/{created['id']}")
    receipt = resp.get_json()["data"]
    assert resp.status_code == 200
    assert receipt["code"].startswith("SI")
    assert [d["quantity"] for d in receipt["details"]] == [3]
    assert client.get("/api/inventory/stock-in/9999").status_code == 404


def test_sub_cent_money_is_rejected(client, stocked_id):
    resp = _stock_in(client, stocked_id, [(3, "0.005")])
    assert resp.status_code == 400
    assert resp.get_json()["error"].startswith("details[0]")

    resp = client.post("/api/sales", json={"details": [{"item_id": stocked_id, "quantity": 1, "unit_price": 0.004}]})
    assert resp.status_code == 400
    assert client.get("/api/sales").get_json()["data"]["pagination"]["total"] == 0

    inv = client.get(f"/api/inventory/item/{stocked_id}").get_json()["data"]
    assert inv["quantity"] == 15
    assert inv["avg_cost"] == 110.0
