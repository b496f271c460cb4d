"""
Database seeding for a fresh installation.

Seeds, inside the default tenant:
- the standard roles ('admin' plus '<area>:view' / '<area>:manage')
- an admin user holding the 'admin' role
- the predefined shifts
- the base payment methods

Every step is idempotent, so the seeder can run on each startup.

Usage:
  python -m erp_api.db.run_migrations upgrade head
  python -m erp_api.db.seed
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, List
from uuid import UUID

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.core.security import get_password_hash
from erp_api.core.settings import get_app_settings
from erp_api.db.models.tenancy import Tenant
from erp_api.db.session import get_async_session, tenant_context
from erp_api.repositories.security import SecurityRepository
from erp_api.services.catalog import PaymentMethodService
from erp_api.services.shifts import ShiftService

logger = logging.getLogger(__name__)

ROLE_AREAS = (
    "catalog",
    "sales",
    "treasury",
    "inventory",
    "hr",
    "purchasing",
    "operations",
    "billing",
    "reports",
)

BASE_PAYMENT_METHODS: List[Dict[str, Any]] = [
    {"code": "CASH", "name": "Cash", "method_type": "cash", "sort_order": 1},
    {"code": "CARD", "name": "Card", "method_type": "card", "commission_percent": 0.5, "sort_order": 2},
    {"code": "TRANSFER", "name": "Bank transfer", "method_type": "transfer", "requires_bank_details": True, "sort_order": 3},
    {"code": "DEBIT", "name": "Direct debit", "method_type": "direct_debit", "requires_bank_details": True, "sort_order": 4},
]


# PUBLIC_INTERFACE
def standard_role_names() -> List[str]:
    """'admin' followed by a view and a manage role for every business area."""
    names = ["admin", "users:manage", "roles:manage"]
    for area in ROLE_AREAS:
        names += [f"{area}:view", f"{area}:manage"]
    return names


async def ensure_tenant(session: AsyncSession, name: str, slug: str) -> UUID:
    """Return the id of the tenant with `slug`, creating it when missing."""
    tenant = (await session.execute(select(Tenant).where(Tenant.slug == slug))).scalar_one_or_none()
    if tenant is None:
        tenant = Tenant(name=name, slug=slug)
        session.add(tenant)
        await session.commit()
        logger.info("Created tenant '%s' (%s)", slug, tenant.id)
    return tenant.id


async def _seed_security(session: AsyncSession, email: str, password: str) -> None:
    repo = SecurityRepository(session)
    for name in standard_role_names():
        await repo.ensure_role(name)

    if await repo.get_user_by_email(email):
        return
    user = await repo.create_user(
        email=email,
        full_name="Administrator",
        hashed_password=get_password_hash(password),
        is_superadmin=True,
    )
    admin = await repo.ensure_role("admin")
    await repo.assign_role_to_user(user.id, admin.id)
    logger.info("Created admin user %s", email)


async def _seed_payment_methods(session: AsyncSession) -> None:
    service = PaymentMethodService(session)
    for method in BASE_PAYMENT_METHODS:
        if await service.repo.exists("code", method["code"]):
            continue
        await service.create(dict(method))


# PUBLIC_INTERFACE
async def seed_all() -> None:
    """Seed the default tenant with roles, an admin user, preset shifts and payment methods."""
    settings = get_app_settings()
    async for session in get_async_session():
        tenant_id = await ensure_tenant(session, settings.DEFAULT_TENANT_NAME, settings.DEFAULT_TENANT_SLUG)
        async with tenant_context(session, tenant_id):
            await _seed_security(session, settings.SEED_ADMIN_EMAIL, settings.SEED_ADMIN_PASSWORD)
            await ShiftService(session).create_presets()
            await _seed_payment_methods(session)
        await session.commit()


if __name__ == "__main__":
    asyncio.run(seed_all())
