import uuid

from conftest import register_and_login


def _create(client, headers, **overrides):
    payload = {"name": "Kale seeds", "category": "seeds", "quantity": 10, "unit": "packs"}
    payload.update(overrides)
    resp = client.post("/inventory/items", json=payload, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


def _cold_used(client, headers):
    return client.get("/inventory/storage", headers=headers).json()["cold_used"]


def test_create_item(client, auth_headers):
    item = _create(client, auth_headers, name="  Kale seeds ", subcategory="Vegetable Seeds", reorder_level=2)

    assert item["name"] == "Kale seeds"
    assert item["category"] == "seeds"
    assert item["subcategory"] == "Vegetable Seeds"
    assert item["quantity"] == 10
    assert item["needs_reorder"] is False
    assert item["created_at"]


def test_create_validation(client, auth_headers):
    bad_payloads = [
        {"name": "X", "category": "livestock", "quantity": 1, "unit": "head"},
        {"name": "X", "category": "seeds", "quantity": -1, "unit": "packs"},
        {"name": "   ", "category": "seeds", "quantity": 1, "unit": "packs"},
        {"name": "X", "category": "seeds", "quantity": 1, "unit": "packs", "reorder_level": -5},
    ]
    for payload in bad_payloads:
        assert client.post("/inventory/items", json=payload, headers=auth_headers).status_code == 422

    assert _cold_used(client, auth_headers) == 0.0


def test_list_filters(client, auth_headers):
    _create(client, auth_headers, name="Basil seeds")
    _create(client, auth_headers, name="Blood meal", category="fertilizer")
    _create(client, auth_headers, name="Seed trays", category="tools")

    names = [it["name"] for it in client.get("/inventory/items", headers=auth_headers).json()]
    assert names == ["Basil seeds", "Blood meal", "Seed trays"]

    resp = client.get("/inventory/items", params={"category": "fertilizer"}, headers=auth_headers)
    assert [it["name"] for it in resp.json()] == ["Blood meal"]

    resp = client.get("/inventory/items", params={"q": "SEED"}, headers=auth_headers)
    assert [it["name"] for it in resp.json()] == ["Basil seeds", "Seed trays"]


def test_update_without_quantity_leaves_storage(client, auth_headers):
    item = _create(client, auth_headers)

    resp = client.patch(f"/inventory/items/{item['id']}", json={"notes": "top shelf", "unit": "bags"}, headers=auth_headers)

    assert resp.status_code == 200, resp.text
    assert resp.json()["notes"] == "top shelf"
    assert resp.json()["unit"] == "bags"
    assert _cold_used(client, auth_headers) == 1.0


def test_update_rejects_null_quantity(client, auth_headers):
    item = _create(client, auth_headers)

    resp = client.patch(f"/inventory/items/{item['id']}", json={"quantity": None}, headers=auth_headers)

    assert resp.status_code == 400
    assert _cold_used(client, auth_headers) == 1.0


def test_category_cannot_change(client, auth_headers):
    item = _create(client, auth_headers)

    resp = client.patch(f"/inventory/items/{item['id']}", json={"category": "tools", "quantity": 20}, headers=auth_headers)

    assert resp.status_code == 200, resp.text
    assert resp.json()["category"] == "seeds"
    storage = client.get("/inventory/storage", headers=auth_headers).json()
    assert (storage["cold_used"], storage["dry_used"]) == (2.0, 0.0)


def test_items_are_private(client, auth_headers):
    item = _create(client, auth_headers)
    other = register_and_login(client, "neighbour@example.com")

    assert client.get("/inventory/items", headers=other).json() == []
    assert client.patch(f"/inventory/items/{item['id']}", json={"quantity": 0}, headers=other).status_code == 404
    assert client.delete(f"/inventory/items/{item['id']}", headers=other).status_code == 404
    assert _cold_used(client, auth_headers) == 1.0


def test_missing_item(client, auth_headers):
    missing = uuid.uuid4()

    assert client.patch(f"/inventory/items/{missing}", json={"quantity": 1}, headers=auth_headers).status_code == 404
    assert client.delete(f"/inventory/items/{missing}", headers=auth_headers).status_code == 404


def test_delete_item(client, auth_headers):
    item = _create(client, auth_headers, category="packaging", quantity=30)

    resp = client.delete(f"/inventory/items/{item['id']}", headers=auth_headers)

    assert resp.json() == {"ok": True}
    assert client.get("/inventory/items", headers=auth_headers).json() == []
    assert client.get("/inventory/storage", headers=auth_headers).json()["dry_used"] == 0.0


def test_low_stock(client, auth_headers):
    _create(client, auth_headers, name="Onion sets", category="transplants", quantity=3, reorder_level=5)
    _create(client, auth_headers, name="Peat moss", category="soil_amendments", quantity=5, reorder_level=5)
    _create(client, auth_headers, name="Gloves", category="tools", quantity=8, reorder_level=2)
    _create(client, auth_headers, name="Crates", category="packaging", quantity=0)

    resp = client.get("/inventory/low-stock", headers=auth_headers)

    assert [it["name"] for it in resp.json()] == ["Onion sets", "Peat moss"]


def test_reorder_level_stored_at_two_decimals(client, auth_headers):
    item = _create(client, auth_headers, name="Row cover", category="other", quantity=2.5, reorder_level=2.499)

    assert item["reorder_level"] == 2.5
    assert item["needs_reorder"] is True
    resp = client.get("/inventory/low-stock", headers=auth_headers)
    assert [it["name"] for it in resp.json()] == ["Row cover"]


def test_categories(client):
    categories = client.get("/inventory/categories").json()

    assert set(categories) == {
        "fertilizer",
        "seeds",
        "transplants",
        "value_added_materials",
        "pesticides",
        "tools",
        "packaging",
        "irrigation_supplies",
        "soil_amendments",
        "other",
    }
    assert "Vegetable Seeds" in categories["seeds"]
