import json
from uuid import uuid4

import pytest
from jose import JWTError
from sqlalchemy.exc import IntegrityError

from erp_api.api import generate_openapi
from erp_api.core.errors import DuplicateError
from erp_api.core.security import ACCESS, REFRESH, issue_token_pair, read_token
from erp_api.db import seed
from erp_api.repositories.base import is_unique_violation
from erp_api.repositories.security import SecurityRepository
from erp_api.services.catalog import PreparationZoneService
from tests.conftest import API, login


def test_standard_role_names_cover_every_area():
    names = seed.standard_role_names()
    assert names[0] == "admin"
    assert len(names) == len(set(names))
    for area in seed.ROLE_AREAS:
        assert f"{area}:view" in names
        assert f"{area}:manage" in names


async def test_seed_all_is_idempotent(monkeypatch, session_maker, client, tenant_headers):
    monkeypatch.setenv("DEFAULT_TENANT_SLUG", "test-company")
    monkeypatch.setenv("SEED_ADMIN_EMAIL", "root@example.com")
    monkeypatch.setenv("SEED_ADMIN_PASSWORD", "seed-pass-123")

    async def _sessions():
        async with session_maker() as session:
            yield session

    monkeypatch.setattr(seed, "get_async_session", _sessions)
    await seed.seed_all()
    await seed.seed_all()

    tokens = await login(client, tenant_headers, "root@example.com", "seed-pass-123")
    headers = {**tenant_headers, "Authorization": f"Bearer {tokens['access_token']}"}

    methods = await client.get(f"{API}/payment-methods", headers=headers)
    assert sorted(m["code"] for m in methods.json()["items"]) == ["CARD", "CASH", "DEBIT", "TRANSFER"]
    shifts = await client.get(f"{API}/shifts/active", headers=headers)
    assert sorted(s["code"] for s in shifts.json()) == ["AFTERNOON", "MORNING", "NIGHT", "SPLIT"]


async def test_ensure_tenant_reuses_existing_slug(session, tenant_id):
    assert await seed.ensure_tenant(session, "Whatever", "test-company") == tenant_id
    other = await seed.ensure_tenant(session, "Second Company", "second")
    assert other != tenant_id


async def test_roles_are_scoped_to_tenant(session):
    repo = SecurityRepository(session)
    role = await repo.ensure_role("catalog:view")
    assert (await repo.ensure_role("catalog:view")).id == role.id
    assert (await repo.get_role_by_name("catalog:view")).tenant_id == session.info["tenant_id"]


async def test_sales_agent_commissions(client, auth_headers):
    created = await client.post(
        f"{API}/sales-agents",
        json={"code": "AG001", "name": "Lucia", "tax_id": "X1234567L", "commission_percent": 5},
        headers=auth_headers,
    )
    assert created.status_code == 201, created.text
    agent_id = created.json()["id"]

    sale = await client.post(f"{API}/sales-agents/{agent_id}/sales", json={"amount": 1000}, headers=auth_headers)
    assert sale.json()["total_sales"] == 1000
    assert sale.json()["accumulated_commission"] == 50
    explicit = await client.post(
        f"{API}/sales-agents/{agent_id}/sales", json={"amount": 200, "commission": 30}, headers=auth_headers
    )
    assert explicit.json()["accumulated_commission"] == 80

    copy = await client.post(f"{API}/sales-agents/{agent_id}/duplicate", headers=auth_headers)
    assert copy.status_code == 201
    assert copy.json()["code"] == "AG001-COPY"
    assert copy.json()["tax_id"] is None
    assert copy.json()["total_sales"] == 0

    stats = (await client.get(f"{API}/sales-agents/stats", headers=auth_headers)).json()
    assert stats["total"] == 2
    assert stats["total_sales"] == 1200
    assert stats["top_agents"][0]["code"] == "AG001"


def test_openapi_document_is_written(tmp_path):
    path = generate_openapi.main(str(tmp_path))
    with open(path) as f:
        doc = json.load(f)
    assert f"{API}/invoices" in doc["paths"]
    assert f"{API}/planning/calendar" in doc["paths"]


def test_token_pair_types_are_not_interchangeable():
    user_id, tenant = uuid4(), uuid4()
    access, refresh = issue_token_pair(user_id, tenant, ["admin"])

    claims = read_token(access, ACCESS)
    assert claims.user_id == user_id
    assert claims.tenant_id == tenant
    assert claims.roles == ["admin"]
    assert read_token(refresh, REFRESH).roles == []

    with pytest.raises(JWTError):
        read_token(access, REFRESH)
    with pytest.raises(JWTError):
        read_token("not-a-token", REFRESH)


class _PgError(Exception):
    def __init__(self, sqlstate):
        super().__init__("constraint failed")
        self.sqlstate = sqlstate


@pytest.mark.parametrize(
    "orig, unique",
    [
        (Exception("UNIQUE constraint failed: preparation_zones.tenant_id, preparation_zones.code"), True),
        (Exception("NOT NULL constraint failed: preparation_zones.name"), False),
        (_PgError("23505"), True),
        (_PgError("23502"), False),
    ],
)
def test_unique_violation_detection(orig, unique):
    assert is_unique_violation(IntegrityError("INSERT ...", {}, orig)) is unique


async def test_only_unique_races_become_duplicates(session):
    service = PreparationZoneService(session)
    await service.create({"code": "ZP001", "name": "Grill"})

    # Skips ensure_unique, as a concurrent writer would.
    with pytest.raises(DuplicateError):
        await service._persist(lambda: service.repo.create(code="ZP001", name="Bar"), {"code": "ZP001"})

    with pytest.raises(IntegrityError):
        await service._persist(lambda: service.repo.create(code="ZP002", name=None), {"code": "ZP002"})
