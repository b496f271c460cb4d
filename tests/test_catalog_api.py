from uuid import uuid4

from tests.conftest import API


async def _create_zone(client, headers, code, name):
    resp = await client.post(f"{API}/preparation-zones", json={"code": code, "name": name}, headers=headers)
    assert resp.status_code == 201, resp.text
    return resp.json()


async def test_preparation_zone_lifecycle(client, auth_headers):
    zone = await _create_zone(client, auth_headers, "ZP001", "Grill")
    assert zone["kds"]["enabled"] is False
    assert zone["active"] is True

    dup = await client.post(f"{API}/preparation-zones", json={"code": "ZP001", "name": "Bar"}, headers=auth_headers)
    assert dup.status_code == 400
    assert dup.json()["error"]["type"] == "duplicate"

    same_name = await client.post(
        f"{API}/preparation-zones", json={"code": "ZP002", "name": "Grill"}, headers=auth_headers
    )
    assert same_name.status_code == 400

    suggested = await client.get(f"{API}/preparation-zones/suggest-code", params={"prefix": "ZP"}, headers=auth_headers)
    assert suggested.json() == {"code": "ZP002"}

    copy = await client.post(f"{API}/preparation-zones/{zone['id']}/duplicate", headers=auth_headers)
    assert copy.status_code == 201
    assert copy.json()["code"] == "ZP001-COPY"
    assert copy.json()["name"] == "Grill (copy)"

    updated = await client.put(
        f"{API}/preparation-zones/{zone['id']}", json={"avg_preparation_minutes": 20}, headers=auth_headers
    )
    assert updated.status_code == 200
    assert updated.json()["avg_preparation_minutes"] == 20
    assert updated.json()["name"] == "Grill"

    off = await client.patch(
        f"{API}/preparation-zones/{zone['id']}/status", json={"active": False}, headers=auth_headers
    )
    assert off.json()["active"] is False
    active = await client.get(f"{API}/preparation-zones/active", headers=auth_headers)
    assert [z["code"] for z in active.json()] == ["ZP001-COPY"]

    deleted = await client.delete(f"{API}/preparation-zones/{zone['id']}", headers=auth_headers)
    assert deleted.status_code == 204
    missing = await client.get(f"{API}/preparation-zones/{zone['id']}", headers=auth_headers)
    assert missing.status_code == 404
    assert missing.json()["error"]["type"] == "not_found"


async def test_pagination_and_search(client, auth_headers):
    for i in range(1, 6):
        await _create_zone(client, auth_headers, f"ZP{i:03d}", f"Zone {i}")

    page = await client.get(f"{API}/preparation-zones", params={"page": 2, "limit": 2}, headers=auth_headers)
    body = page.json()
    assert body["total"] == 5
    assert body["total_pages"] == 3
    assert body["page"] == 2
    assert len(body["items"]) == 2

    found = await client.get(f"{API}/preparation-zones", params={"search": "zone 3"}, headers=auth_headers)
    assert [z["code"] for z in found.json()["items"]] == ["ZP003"]

    ordered = await client.get(
        f"{API}/preparation-zones", params={"sort_by": "code", "sort_order": "desc", "limit": 1}, headers=auth_headers
    )
    assert ordered.json()["items"][0]["code"] == "ZP005"

    bulk = await client.post(
        f"{API}/preparation-zones/bulk-delete",
        json={"ids": [z["id"] for z in body["items"]]},
        headers=auth_headers,
    )
    assert bulk.json() == {"deleted": 2}


async def test_percent_out_of_range_is_rejected(client, auth_headers):
    resp = await client.post(
        f"{API}/payment-methods",
        json={"code": "CARD", "name": "Card", "commission_percent": 150},
        headers=auth_headers,
    )
    assert resp.status_code == 422
    assert resp.json()["error"]["type"] == "validation_error"


async def test_product_family_tree_and_parent_rules(client, auth_headers):
    root = (await client.post(f"{API}/product-families", json={"code": "FOOD", "name": "Food"}, headers=auth_headers)).json()
    child = await client.post(
        f"{API}/product-families",
        json={"code": "MEAT", "name": "Meat", "parent_id": root["id"]},
        headers=auth_headers,
    )
    assert child.status_code == 201

    orphan = await client.post(
        f"{API}/product-families",
        json={"code": "X", "name": "X", "parent_id": str(uuid4())},
        headers=auth_headers,
    )
    assert orphan.status_code == 404

    cycle = await client.put(
        f"{API}/product-families/{root['id']}", json={"parent_id": child.json()["id"]}, headers=auth_headers
    )
    assert cycle.status_code == 400

    tree = (await client.get(f"{API}/product-families/tree", headers=auth_headers)).json()
    assert len(tree) == 1
    assert tree[0]["code"] == "FOOD"
    assert [c["code"] for c in tree[0]["children"]] == ["MEAT"]

    blocked = await client.delete(f"{API}/product-families/{root['id']}", headers=auth_headers)
    assert blocked.status_code == 400


async def test_shift_presets_and_hours(client, auth_headers):
    presets = await client.post(f"{API}/shifts/presets", headers=auth_headers)
    assert presets.status_code == 201
    assert len(presets.json()) == 4

    again = await client.post(f"{API}/shifts/presets", headers=auth_headers)
    assert again.json() == []

    shift = await client.post(
        f"{API}/shifts",
        json={"code": "EARLY", "name": "Early", "start_time": "06:00", "end_time": "14:00", "break_minutes": 30},
        headers=auth_headers,
    )
    assert shift.status_code == 201
    assert shift.json()["theoretical_hours"] == 7.5


async def test_price_list_lines_and_quote(client, auth_headers):
    product_id = str(uuid4())
    created = await client.post(
        f"{API}/price-lists",
        json={"code": "VIP", "name": "VIP customers", "list_type": "percentage", "general_percent": 10},
        headers=auth_headers,
    )
    assert created.status_code == 201
    list_id = created.json()["id"]

    general = await client.post(
        f"{API}/price-lists/{list_id}/resolve", json={"product_id": product_id, "sale_price": 50}, headers=auth_headers
    )
    assert general.json()["price"] == 45.0
    assert general.json()["source"] == "general"

    line = await client.put(f"{API}/price-lists/{list_id}/lines/{product_id}", json={"price": 40}, headers=auth_headers)
    assert line.status_code == 200
    resolved = await client.post(
        f"{API}/price-lists/{list_id}/resolve", json={"product_id": product_id, "sale_price": 50}, headers=auth_headers
    )
    assert resolved.json()["price"] == 40.0
    assert resolved.json()["source"] == "line"

    removed = await client.delete(f"{API}/price-lists/{list_id}/lines/{product_id}", headers=auth_headers)
    assert removed.status_code == 200
    gone = await client.delete(f"{API}/price-lists/{list_id}/lines/{product_id}", headers=auth_headers)
    assert gone.status_code == 404

    quote = await client.post(
        f"{API}/pricing/quote", json={"purchase_price": 60, "sale_price": 100, "tax_rate": 21}, headers=auth_headers
    )
    assert quote.json()["retail_price"] == 121.0
    assert quote.json()["margin_percent"] == 40.0


async def test_explicit_null_on_required_column_is_a_validation_error(client, auth_headers):
    zone = await _create_zone(client, auth_headers, "ZP001", "Grill")

    nulled = await client.put(f"{API}/preparation-zones/{zone['id']}", json={"name": None}, headers=auth_headers)
    assert nulled.status_code == 422
    body = nulled.json()
    assert body["error"]["type"] == "validation_error"
    assert body["error"]["details"] == [{"field": "name", "message": "cannot be null"}]

    cleared = await client.put(
        f"{API}/preparation-zones/{zone['id']}", json={"description": None}, headers=auth_headers
    )
    assert cleared.status_code == 200
    assert cleared.json()["description"] is None
    assert cleared.json()["name"] == "Grill"


async def test_bulk_delete_family_with_its_subfamilies(client, auth_headers):
    async def family(code, parent=None):
        payload = {"code": code, "name": code.title(), "parent_id": parent}
        resp = await client.post(f"{API}/product-families", json=payload, headers=auth_headers)
        assert resp.status_code == 201, resp.text
        return resp.json()["id"]

    food = await family("FOOD")
    meat = await family("MEAT", food)
    beef = await family("BEEF", meat)
    drinks = await family("DRINKS")
    await family("WINE", drinks)

    partial = await client.post(f"{API}/product-families/bulk-delete", json={"ids": [drinks]}, headers=auth_headers)
    assert partial.status_code == 400
    assert partial.json()["error"]["type"] == "business_rule"

    whole = await client.post(
        f"{API}/product-families/bulk-delete", json={"ids": [food, meat, beef]}, headers=auth_headers
    )
    assert whole.status_code == 200, whole.text
    assert whole.json() == {"deleted": 3}
    remaining = (await client.get(f"{API}/product-families", headers=auth_headers)).json()
    assert {f["code"] for f in remaining["items"]} == {"DRINKS", "WINE"}
