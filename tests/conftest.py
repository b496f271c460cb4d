import os

os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ["RUN_MIGRATIONS_ON_STARTUP"] = "false"
os.environ["AUTO_SEED"] = "false"

import pytest  # noqa: E402
from httpx import ASGITransport, AsyncClient  # noqa: E402
from sqlalchemy.ext.asyncio import async_sessionmaker, create_async_engine  # noqa: E402
from sqlalchemy.pool import StaticPool  # noqa: E402

from erp_api.api.main import app  # noqa: E402
from erp_api.db.base import Base  # noqa: E402
from erp_api.db.models import Tenant  # noqa: E402
from erp_api.db.session import get_async_session, set_current_tenant  # noqa: E402

API = "/api/v1"
ADMIN_EMAIL = "owner@example.com"
ADMIN_PASSWORD = "s3cret-pass"


@pytest.fixture
async def engine():
    engine = create_async_engine(
        "sqlite+aiosqlite://",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_maker(engine):
    return async_sessionmaker(bind=engine, expire_on_commit=False, autoflush=False)


@pytest.fixture
async def tenant_id(session_maker):
    async with session_maker() as session:
        tenant = Tenant(name="Test Company", slug="test-company")
        session.add(tenant)
        await session.commit()
        return tenant.id


@pytest.fixture
async def session(session_maker, tenant_id):
    """Tenant-bound session for service level tests."""
    async with session_maker() as session:
        await set_current_tenant(session, tenant_id)
        yield session


@pytest.fixture
async def client(session_maker, tenant_id):
    async def _override_session():
        async with session_maker() as session:
            yield session

    app.dependency_overrides[get_async_session] = _override_session
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture
def tenant_headers(tenant_id):
    return {"X-Tenant-ID": str(tenant_id)}


async def login(client, tenant_headers, email, password):
    resp = await client.post(
        f"{API}/auth/login", data={"username": email, "password": password}, headers=tenant_headers
    )
    assert resp.status_code == 200, resp.text
    return resp.json()


@pytest.fixture
async def auth_headers(client, tenant_headers):
    """Headers of the tenant's first registered user, who holds the admin role."""
    resp = await client.post(
        f"{API}/auth/register",
        json={"email": ADMIN_EMAIL, "password": ADMIN_PASSWORD, "full_name": "Owner"},
        headers=tenant_headers,
    )
    assert resp.status_code == 201, resp.text
    tokens = await login(client, tenant_headers, ADMIN_EMAIL, ADMIN_PASSWORD)
    return {**tenant_headers, "Authorization": f"Bearer {tokens['access_token']}"}
