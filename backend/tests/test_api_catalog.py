"""HTTP tests for /api/item-types and /api/items."""


def _create_type(client, name="Cat Food"):
    resp = client.post("/api/item-types", json={"name": name, "description": "wet and dry"})
    assert resp.status_code == 201
    return resp.get_json()["data"]


def _create_item(client, type_id, name="Tuna Pouch", price=2.5):
    resp = client.post("/api/items", json={"name": name, "item_type_id": type_id, "selling_price": price})
    assert resp.status_code == 201, resp.get_json()
    return resp.get_json()["data"]


def test_health(client):
    resp = client.get("/api/health")
    body = resp.get_json()
    assert resp.status_code == 200
    assert body["success"] is True
    assert body["data"]["checks"]["database"]["status"] == "healthy"


def test_unknown_route_uses_error_envelope(client):
    resp = client.get("/api/nope")
    assert resp.status_code == 404
    assert resp.get_json()["success"] is False


def test_item_type_crud(client):
    created = _create_type(client)
    assert created["is_active"] is True

    listing = client.get("/api/item-types?search=cat").get_json()["data"]
    assert listing["pagination"]["total"] == 1

    resp = client.put(f"/api/item-types/{created['id']}", json={"is_active": False})
    assert resp.get_json()["data"]["is_active"] is False
    assert client.get("/api/item-types/active").get_json()["data"] == []

    resp = client.delete(f"/api/item-types/{created['id']}")
    assert resp.status_code == 200
    assert client.get(f"/api/item-types/{created['id']}").status_code == 404


def test_duplicate_item_type_name_conflicts(client):
    _create_type(client)
    resp = client.post("/api/item-types", json={"name": "Cat Food"})
    assert resp.status_code == 409
    assert resp.get_json()["error"] == "Item type name already exists"


def test_item_type_in_use_cannot_be_deleted(client):
    item_type = _create_type(client)
    _create_item(client, item_type["id"])
    resp = client.delete(f"/api/item-types/{item_type['id']}")
    assert resp.status_code == 409
    assert resp.get_json()["details"] == {"items": 1}


def test_create_item_creates_inventory(client):
    item_type = _create_type(client)
    item = _create_item(client, item_type["id"])

    assert item["code"].startswith("IT")
    assert item["unit"] == "pcs"
    assert item["selling_price"] == 2.5
    assert item["inventory"]["quantity"] == 0
    assert item["inventory"]["avg_cost"] is None

    inv = client.get(f"/api/inventory/item/{item['id']}").get_json()["data"]
    assert inv["item"]["name"] == "Tuna Pouch"


def test_create_item_validation(client):
    item_type = _create_type(client)

    resp = client.post("/api/items", json={"name": "No price", "item_type_id": item_type["id"]})
    assert resp.status_code == 400
    assert "selling_price" in resp.get_json()["error"]

    resp = client.post("/api/items", json={"name": "Bad type", "item_type_id": 999, "selling_price": 1})
    assert resp.status_code == 400
    assert resp.get_json()["details"] == {"item_type_id": 999}

    resp = client.post("/api/items", json={"name": "Free", "item_type_id": item_type["id"], "selling_price": -1})
    assert resp.status_code == 400


def test_item_names_unique_case_insensitive(client):
    item_type = _create_type(client)
    _create_item(client, item_type["id"], name="Tuna Pouch")
    resp = client.post("/api/items", json={"name": "tuna pouch", "item_type_id": item_type["id"], "selling_price": 3})
    assert resp.status_code == 409


def test_list_search_and_sort_items(client):
    item_type = _create_type(client)
    _create_item(client, item_type["id"], name="Salmon Bites", price=4)
    _create_item(client, item_type["id"], name="Chicken Bites", price=3)

    data = client.get("/api/items?search=bites&sort_by=name&sort_order=asc").get_json()["data"]
    assert [i["name"] for i in data["items"]] == ["Chicken Bites", "Salmon Bites"]

    resp = client.get("/api/items?sort_by=password")
    assert resp.status_code == 400

    found = client.get("/api/items/search?q=salmon").get_json()["data"]
    assert [i["name"] for i in found] == ["Salmon Bites"]


def test_update_and_soft_delete_item(client):
    item_type = _create_type(client)
    item = _create_item(client, item_type["id"])

    resp = client.put(f"/api/items/{item['id']}", json={"selling_price": "3.75", "description": "in jelly"})
    assert resp.get_json()["data"]["selling_price"] == 3.75

    assert client.delete(f"/api/items/{item['id']}").status_code == 200
    assert client.get(f"/api/items/{item['id']}").status_code == 404
    assert client.get(f"/api/inventory/item/{item['id']}").status_code == 404


def test_item_low_stock_listing(client):
    item_type = _create_type(client)
    item = _create_item(client, item_type["id"])
    data = client.get("/api/items/low-stock").get_json()["data"]
    assert [i["id"] for i in data] == [item["id"]]


def test_item_listing_rejects_unreachable_pages(client):
    for page in ("99999999999999999999", "1000000000000"):
        resp = client.get(f"/api/items?page={page}")
        assert resp.status_code == 400
        assert resp.get_json()["success"] is False

    assert client.get("/api/items?page=3").get_json()["data"]["items"] == []
