from uuid import uuid4

from tests.conftest import API

PRODUCT = str(uuid4())
WAREHOUSE = str(uuid4())


def _movement(movement_type, quantity, **extra):
    return {
        "product_id": PRODUCT,
        "product_code": "P-001",
        "product_name": "Flour 25kg",
        "warehouse_id": WAREHOUSE,
        "movement_type": movement_type,
        "quantity": quantity,
        **extra,
    }


async def test_register_and_annul_keeps_balance_consistent(client, auth_headers):
    receipt = await client.post(
        f"{API}/stock-movements", json=_movement("purchase_receipt", 10, unit_cost=5, origin="purchase_delivery"), headers=auth_headers
    )
    assert receipt.status_code == 201, receipt.text
    assert receipt.json()["stock_before"] == 0
    assert receipt.json()["stock_after"] == 10
    assert receipt.json()["origin"] == "purchase_delivery"
    assert receipt.json()["movement_value"] == 50

    sale = await client.post(f"{API}/stock-movements", json=_movement("sale_issue", 4), headers=auth_headers)
    assert sale.json()["stock_before"] == 10
    assert sale.json()["stock_after"] == 6

    annul = await client.post(
        f"{API}/stock-movements/{receipt.json()['id']}/annul", json={"reason": "wrong supplier"}, headers=auth_headers
    )
    assert annul.status_code == 200
    body = annul.json()
    assert body["annulled"]["annulled"] is True
    assert body["annulled"]["annul_reason"] == "wrong supplier"
    reversal = body["reversal"]
    assert reversal["movement_type"] == "negative_adjustment"
    assert reversal["reverses_id"] == receipt.json()["id"]
    assert reversal["stock_before"] == 6
    assert reversal["stock_after"] == -4

    again = await client.post(
        f"{API}/stock-movements/{receipt.json()['id']}/annul", json={"reason": "twice"}, headers=auth_headers
    )
    assert again.status_code == 409
    of_reversal = await client.post(
        f"{API}/stock-movements/{reversal['id']}/annul", json={"reason": "undo"}, headers=auth_headers
    )
    assert of_reversal.status_code == 409

    info = await client.get(
        f"{API}/stock-movements/stock", params={"product_id": PRODUCT, "warehouse_id": WAREHOUSE}, headers=auth_headers
    )
    assert info.json()["stock"] == -4

    history = await client.get(
        f"{API}/stock-movements", params={"product_id": PRODUCT, "annulled": "false"}, headers=auth_headers
    )
    assert history.json()["total"] == 2


async def test_negative_stock_can_be_rejected(client, auth_headers):
    resp = await client.post(
        f"{API}/stock-movements", json=_movement("sale_issue", 1, allow_negative=False), headers=auth_headers
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "business_rule"


async def test_regularization_and_valuation(client, auth_headers):
    await client.post(f"{API}/stock-movements", json=_movement("purchase_receipt", 10, unit_cost=5), headers=auth_headers)
    await client.post(f"{API}/stock-movements", json=_movement("purchase_receipt", 10, unit_cost=7), headers=auth_headers)

    info = await client.get(
        f"{API}/stock-movements/stock", params={"product_id": PRODUCT, "warehouse_id": WAREHOUSE}, headers=auth_headers
    )
    assert info.json() == {
        "product_id": PRODUCT,
        "warehouse_id": WAREHOUSE,
        "stock": 20,
        "last_cost": 7,
        "average_cost": 6,
    }

    valuation = await client.get(f"{API}/stock-movements/valuation", headers=auth_headers)
    assert valuation.json()["total_value"] == 120

    reg = await client.post(f"{API}/stock-movements", json=_movement("regularization", 15), headers=auth_headers)
    assert reg.json()["stock_before"] == 20
    assert reg.json()["stock_after"] == 15

    report = await client.get(f"{API}/reports/stock-valuation", params={"format": "csv"}, headers=auth_headers)
    assert report.status_code == 200
    assert report.headers["content-type"].startswith("text/csv")
    lines = report.text.strip().splitlines()
    assert lines[0].startswith("product_code,product_name")
    assert lines[-1].startswith("TOTAL")
