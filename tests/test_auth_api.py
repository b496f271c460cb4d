from httpx import ASGITransport, AsyncClient

from erp_api.api.main import app
from erp_api.db.session import get_async_session
from tests.conftest import ADMIN_EMAIL, ADMIN_PASSWORD, API, login


async def test_health(client):
    resp = await client.get(f"{API}/health")
    assert resp.status_code == 200
    assert resp.json()["message"] == "Healthy"


async def test_tenant_header_is_required(client):
    resp = await client.get(f"{API}/health/tenant")
    assert resp.status_code == 400
    body = resp.json()
    assert body["status"] == 400
    assert body["error"]["type"] == "http_error"

    resp = await client.get(f"{API}/health/tenant", headers={"X-Tenant-ID": "not-a-uuid"})
    assert resp.status_code == 400


async def test_register_login_me_refresh(client, tenant_headers):
    resp = await client.post(
        f"{API}/auth/register",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
        headers=tenant_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["roles"] == ["admin"]

    tokens = await login(client, tenant_headers, ADMIN_EMAIL, ADMIN_PASSWORD)
    headers = {**tenant_headers, "Authorization": f"Bearer {tokens['access_token']}"}

    me = await client.get(f"{API}/auth/me", headers=headers)
    assert me.status_code == 200
    assert me.json()["email"] == ADMIN_EMAIL
    assert me.json()["last_login_at"] is not None

    refreshed = await client.post(
        f"{API}/auth/refresh", json={"refresh_token": tokens["refresh_token"]}, headers=tenant_headers
    )
    assert refreshed.status_code == 200
    assert refreshed.json()["access_token"]

    # An access token is not accepted as a refresh token.
    wrong = await client.post(
        f"{API}/auth/refresh", json={"refresh_token": tokens["access_token"]}, headers=tenant_headers
    )
    assert wrong.status_code == 401


async def test_duplicate_registration_and_bad_password(client, tenant_headers, auth_headers):
    resp = await client.post(
        f"{API}/auth/register",
        json={"email": ADMIN_EMAIL, "password": "another-pass"},
        headers=tenant_headers,
    )
    assert resp.status_code == 400
    assert resp.json()["error"]["type"] == "duplicate"

    resp = await client.post(
        f"{API}/auth/login", data={"username": ADMIN_EMAIL, "password": "wrong-pass"}, headers=tenant_headers
    )
    assert resp.status_code == 401


async def test_second_user_needs_roles(client, tenant_headers, auth_headers):
    resp = await client.post(
        f"{API}/auth/register",
        json={"email": "clerk@example.com", "password": "clerk-pass"},
        headers=tenant_headers,
    )
    assert resp.status_code == 201
    assert resp.json()["roles"] == []

    tokens = await login(client, tenant_headers, "clerk@example.com", "clerk-pass")
    clerk = {**tenant_headers, "Authorization": f"Bearer {tokens['access_token']}"}
    assert (await client.get(f"{API}/payment-methods", headers=clerk)).status_code == 403

    created = await client.post(
        f"{API}/admin/users",
        json={"email": "viewer@example.com", "password": "viewer-pass", "roles": ["catalog:view"]},
        headers=auth_headers,
    )
    assert created.status_code == 201
    assert created.json()["roles"] == ["catalog:view"]

    tokens = await login(client, tenant_headers, "viewer@example.com", "viewer-pass")
    viewer = {**tenant_headers, "Authorization": f"Bearer {tokens['access_token']}"}
    assert (await client.get(f"{API}/payment-methods", headers=viewer)).status_code == 200
    forbidden = await client.post(
        f"{API}/payment-methods", json={"code": "X", "name": "X"}, headers=viewer
    )
    assert forbidden.status_code == 403


async def test_missing_token(client, tenant_headers):
    resp = await client.get(f"{API}/preparation-zones", headers=tenant_headers)
    assert resp.status_code == 401


async def test_admin_user_and_role_lists_are_paged(client, tenant_headers, auth_headers):
    for email in ("clerk@example.com", "viewer@example.com"):
        created = await client.post(
            f"{API}/admin/users",
            json={"email": email, "password": "some-pass", "roles": ["catalog:view"]},
            headers=auth_headers,
        )
        assert created.status_code == 201

    users = (await client.get(f"{API}/admin/users", params={"limit": 2}, headers=auth_headers)).json()
    assert users["total"] == 3
    assert users["total_pages"] == 2
    assert len(users["items"]) == 2
    last = (await client.get(f"{API}/admin/users", params={"limit": 2, "page": 2}, headers=auth_headers)).json()
    emails = {u["email"] for u in users["items"] + last["items"]}
    assert emails == {ADMIN_EMAIL, "clerk@example.com", "viewer@example.com"}

    roles = (await client.get(f"{API}/admin/roles", headers=auth_headers)).json()
    assert roles["page"] == 1
    assert roles["total"] == len(roles["items"])
    assert {"admin", "catalog:view"} <= {r["name"] for r in roles["items"]}


async def test_unhandled_error_keeps_correlation_id(tenant_headers):
    async def _broken_session():
        raise RuntimeError("database went away")

    app.dependency_overrides[get_async_session] = _broken_session
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    try:
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            resp = await ac.post(
                f"{API}/auth/login",
                data={"username": ADMIN_EMAIL, "password": ADMIN_PASSWORD},
                headers={**tenant_headers, "X-Correlation-ID": "cid-500"},
            )
    finally:
        app.dependency_overrides.clear()

    assert resp.status_code == 500
    assert resp.headers["X-Correlation-ID"] == "cid-500"
    body = resp.json()
    assert body["error"]["type"] == "internal_error"
    assert body["correlation_id"] == "cid-500"
    assert "database went away" not in resp.text
