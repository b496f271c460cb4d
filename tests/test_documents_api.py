from tests.conftest import API


async def test_invoice_lifecycle(client, auth_headers):
    created = await client.post(
        f"{API}/invoices",
        json={
            "customer_name": "Bistro Central",
            "issue_date": "2024-03-01",
            "due_date": "2024-03-31",
            "lines": [{"description": "Catering service", "quantity": 2, "unit_price": 50, "tax_rate": 21}],
        },
        headers=auth_headers,
    )
    assert created.status_code == 201, created.text
    invoice = created.json()
    assert invoice["code"] == "FAC2024-00001"
    assert invoice["status"] == "draft"
    assert invoice["total"] == 121.0
    assert invoice["tax_breakdown"] == [{"rate": 21.0, "base": 100.0, "tax": 21.0}]

    updated = await client.put(f"{API}/invoices/{invoice['id']}", json={"discount_percent": 10}, headers=auth_headers)
    assert updated.json()["total"] == 108.9
    assert updated.json()["amount_pending"] == 108.9

    issued = await client.post(f"{API}/invoices/{invoice['id']}/issue", headers=auth_headers)
    assert issued.json()["status"] == "issued"
    assert issued.json()["immutable"] is True

    locked = await client.put(f"{API}/invoices/{invoice['id']}", json={"notes": "late edit"}, headers=auth_headers)
    assert locked.status_code == 409
    assert locked.json()["error"]["type"] == "invalid_state"
    assert (await client.delete(f"{API}/invoices/{invoice['id']}", headers=auth_headers)).status_code == 409

    partial = await client.post(
        f"{API}/invoices/{invoice['id']}/payments", json={"amount": 50, "method": "card"}, headers=auth_headers
    )
    assert partial.json()["status"] == "partially_paid"
    assert partial.json()["amount_pending"] == 58.9

    paid = await client.post(f"{API}/invoices/{invoice['id']}/payments", json={"amount": 58.9}, headers=auth_headers)
    assert paid.json()["status"] == "paid"
    assert paid.json()["amount_pending"] == 0

    corrective = await client.post(
        f"{API}/invoices/{invoice['id']}/corrective", json={"reason": "price agreed lower"}, headers=auth_headers
    )
    assert corrective.status_code == 201
    body = corrective.json()
    assert body["code"].startswith("R")
    assert body["invoice_type"] == "corrective"
    assert body["original_invoice_id"] == invoice["id"]
    assert body["total"] == -108.9

    original = await client.get(f"{API}/invoices/{invoice['id']}", headers=auth_headers)
    assert original.json()["status"] == "corrective"


async def test_invoice_annul_and_issue_rules(client, auth_headers):
    empty = (await client.post(f"{API}/invoices", json={"customer_name": "Walk-in"}, headers=auth_headers)).json()
    no_lines = await client.post(f"{API}/invoices/{empty['id']}/issue", headers=auth_headers)
    assert no_lines.status_code == 400

    annulled = await client.post(f"{API}/invoices/{empty['id']}/annul", json={"reason": "created by mistake"}, headers=auth_headers)
    assert annulled.status_code == 200
    assert annulled.json()["invoice"]["status"] == "annulled"
    assert annulled.json()["corrective"] is None

    twice = await client.post(f"{API}/invoices/{empty['id']}/annul", json={"reason": "again"}, headers=auth_headers)
    assert twice.status_code == 409

    stats = await client.get(f"{API}/invoices/stats", headers=auth_headers)
    assert stats.json()["total"] == 1
    assert stats.json()["by_status"] == {"annulled": 1}


async def test_work_order_costing_status_and_calendar(client, auth_headers):
    created = await client.post(
        f"{API}/work-orders",
        json={
            "title": "Boiler service",
            "date": "2024-05-15",
            "customer_name": "Hotel Mar",
            "staff_lines": [{"employee_name": "Ana", "hours": 2, "cost_rate": 20, "sale_rate": 30}],
        },
        headers=auth_headers,
    )
    assert created.status_code == 201, created.text
    order = created.json()
    assert order["code"] == "PT2024-00001"
    assert order["status"] == "draft"
    assert order["totals"]["staff_cost"] == 40.0
    assert order["total_sale"] == 72.6

    skip = await client.patch(f"{API}/work-orders/{order['id']}/status", json={"status": "completed"}, headers=auth_headers)
    assert skip.status_code == 409
    planned = await client.patch(f"{API}/work-orders/{order['id']}/status", json={"status": "planned"}, headers=auth_headers)
    assert planned.json()["status"] == "planned"

    week = await client.get(f"{API}/planning/calendar", params={"view": "week", "date": "2024-05-15"}, headers=auth_headers)
    body = week.json()
    assert body["start"] == "2024-05-13"
    assert body["end"] == "2024-05-19"
    assert len(body["days"]) == 7
    assert body["total"] == 1
    event = body["days"]["2024-05-15"][0]
    assert event["code"] == "PT2024-00001"
    assert event["employees"] == ["Ana"]

    nobody = await client.get(
        f"{API}/planning/calendar", params={"date": "2024-05-15", "employee": "Bob"}, headers=auth_headers
    )
    assert nobody.json()["total"] == 0
    month = await client.get(f"{API}/planning/calendar", params={"view": "month", "date": "2024-05-15"}, headers=auth_headers)
    assert len(month.json()["days"]) == 31

    for status in ("in_progress", "completed", "invoiced"):
        resp = await client.patch(f"{API}/work-orders/{order['id']}/status", json={"status": status}, headers=auth_headers)
        assert resp.status_code == 200
    locked = await client.put(f"{API}/work-orders/{order['id']}", json={"notes": "extra"}, headers=auth_headers)
    assert locked.status_code == 409
    assert (await client.delete(f"{API}/work-orders/{order['id']}", headers=auth_headers)).status_code == 409

    copy = await client.post(f"{API}/work-orders/{order['id']}/duplicate", headers=auth_headers)
    assert copy.status_code == 201
    assert copy.json()["status"] == "draft"
    assert copy.json()["total_sale"] == 72.6


async def test_bank_movements_annul_reconcile_and_stats(client, auth_headers):
    inflow = await client.post(
        f"{API}/bank-movements",
        json={"direction": "inflow", "method": "card", "amount": 100, "date": "2024-01-10", "concept": "Daily takings"},
        headers=auth_headers,
    )
    assert inflow.status_code == 201, inflow.text
    assert inflow.json()["number"] == "MOV-2024-00001"
    outflow = await client.post(
        f"{API}/bank-movements",
        json={"direction": "outflow", "amount": 40, "date": "2024-01-11", "concept": "Supplier payment"},
        headers=auth_headers,
    )
    assert outflow.json()["number"] == "MOV-2024-00002"

    stats = (await client.get(f"{API}/bank-movements/stats", headers=auth_headers)).json()
    assert stats["total_inflows"] == 100
    assert stats["total_outflows"] == 40
    assert stats["net_balance"] == 60
    assert stats["by_method"]["card"]["inflows"] == 100
    assert len(stats["daily"]) == 30

    annulled = await client.post(
        f"{API}/bank-movements/{outflow.json()['id']}/annul", json={"reason": "duplicated"}, headers=auth_headers
    )
    assert annulled.json()["status"] == "annulled"
    assert (
        await client.post(f"{API}/bank-movements/{outflow.json()['id']}/reconcile", headers=auth_headers)
    ).status_code == 409

    reconciled = await client.post(f"{API}/bank-movements/{inflow.json()['id']}/reconcile", headers=auth_headers)
    assert reconciled.json()["reconciled"] is True
    assert (
        await client.post(f"{API}/bank-movements/{inflow.json()['id']}/annul", json={"reason": "x"}, headers=auth_headers)
    ).status_code == 409
    assert (
        await client.put(f"{API}/bank-movements/{inflow.json()['id']}", json={"amount": 1}, headers=auth_headers)
    ).status_code == 409

    stats = (await client.get(f"{API}/bank-movements/stats", headers=auth_headers)).json()
    assert stats["total_outflows"] == 0
    assert stats["net_balance"] == 100

    export = await client.get(f"{API}/bank-movements/export", params={"format": "csv"}, headers=auth_headers)
    assert export.status_code == 200
    assert export.text.splitlines()[0].startswith("number,date,direction")
    assert "MOV-2024-00001" in export.text


async def test_partners_exports(client, auth_headers):
    supplier = await client.post(
        f"{API}/suppliers",
        json={"code": "SUP001", "name": "Harina SA", "tax_id": "B12345678", "email": "sales@example.com"},
        headers=auth_headers,
    )
    assert supplier.status_code == 201, supplier.text
    same_tax = await client.post(
        f"{API}/suppliers", json={"code": "SUP002", "name": "Other", "tax_id": "B12345678"}, headers=auth_headers
    )
    assert same_tax.status_code == 400

    listed = await client.get(f"{API}/suppliers", params={"supplier_type": "company"}, headers=auth_headers)
    assert listed.json()["total"] == 1

    csv = await client.get(f"{API}/suppliers/export", headers=auth_headers)
    assert csv.headers["content-disposition"] == 'attachment; filename="suppliers.csv"'
    assert "SUP001" in csv.text

    xlsx = await client.get(f"{API}/reports/suppliers", params={"format": "xlsx"}, headers=auth_headers)
    assert xlsx.status_code == 200
    assert xlsx.content[:2] == b"PK"

    pdf = await client.get(f"{API}/reports/suppliers", params={"format": "pdf"}, headers=auth_headers)
    assert pdf.content[:4] == b"%PDF"


async def test_work_order_rejects_null_date(client, auth_headers):
    order = (
        await client.post(f"{API}/work-orders", json={"title": "Oven check", "date": "2024-05-15"}, headers=auth_headers)
    ).json()

    nulled = await client.put(f"{API}/work-orders/{order['id']}", json={"date": None}, headers=auth_headers)
    assert nulled.status_code == 422
    assert nulled.json()["error"]["type"] == "validation_error"
    assert nulled.json()["error"]["details"][0]["field"] == "date"

    unchanged = await client.get(f"{API}/work-orders/{order['id']}", headers=auth_headers)
    assert unchanged.json()["date"] == "2024-05-15"


async def _issued_invoice(client, headers, due_date, paid=0.0):
    invoice = (
        await client.post(
            f"{API}/invoices",
            json={
                "customer_name": "Bistro Central",
                "issue_date": "2024-03-01",
                "due_date": due_date,
                "lines": [{"description": "Menu", "quantity": 1, "unit_price": 100, "tax_rate": 21}],
            },
            headers=headers,
        )
    ).json()
    issued = await client.post(f"{API}/invoices/{invoice['id']}/issue", headers=headers)
    assert issued.status_code == 200, issued.text
    if paid:
        await client.post(f"{API}/invoices/{invoice['id']}/payments", json={"amount": paid}, headers=headers)
    return invoice


async def test_invoice_stats_totals_and_overdue(client, auth_headers):
    await _issued_invoice(client, auth_headers, "2024-03-31", paid=21)
    await _issued_invoice(client, auth_headers, "2024-03-31", paid=121)
    await _issued_invoice(client, auth_headers, "2999-12-31")
    await client.post(
        f"{API}/invoices", json={"customer_name": "Draft only", "due_date": "2024-03-31"}, headers=auth_headers
    )

    stats = (await client.get(f"{API}/invoices/stats", headers=auth_headers)).json()
    assert stats["total"] == 4
    assert stats["by_status"] == {"partially_paid": 1, "paid": 1, "issued": 1, "draft": 1}
    assert stats["total_invoiced"] == 363.0
    assert stats["total_paid"] == 142.0
    assert stats["total_pending"] == 221.0
    # Only the past-due invoice with money still pending counts.
    assert stats["overdue"] == 1


async def test_supplier_stats_and_duplicate(client, auth_headers):
    suppliers = [
        {"code": "SUP001", "name": "Harina SA", "tax_id": "B12345678"},
        {"code": "SUP002", "name": "Pedro Ruiz", "tax_id": "12345678Z", "supplier_type": "self_employed"},
        {"code": "SUP003", "name": "Old Mill", "tax_id": "B87654321", "active": False},
    ]
    created = []
    for payload in suppliers:
        resp = await client.post(f"{API}/suppliers", json=payload, headers=auth_headers)
        assert resp.status_code == 201, resp.text
        created.append(resp.json())

    stats = (await client.get(f"{API}/suppliers/stats", headers=auth_headers)).json()
    assert stats["total"] == 3
    assert stats["active"] == 2
    assert stats["inactive"] == 1
    assert stats["by_type"] == {"company": 2, "self_employed": 1}

    copy = await client.post(f"{API}/suppliers/{created[0]['id']}/duplicate", headers=auth_headers)
    assert copy.status_code == 201, copy.text
    assert copy.json()["code"] == "SUP001-COPY"
    assert copy.json()["name"] == "Harina SA (copy)"
    assert copy.json()["tax_id"] == "B12345678-COPY"

    again = await client.post(f"{API}/suppliers/{created[0]['id']}/duplicate", headers=auth_headers)
    assert again.json()["code"] == "SUP001-COPY2"
    assert again.json()["tax_id"] == "B12345678-COPY2"
