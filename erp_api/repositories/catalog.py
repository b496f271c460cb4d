from __future__ import annotations

from typing import Collection, List
from uuid import UUID

from sqlalchemy import func, select

from erp_api.db.models.catalog import PaymentMethod, PreparationZone, PriceList, ProductFamily
from .base import TenantRepository


class PreparationZoneRepository(TenantRepository[PreparationZone]):
    """Repository for KDS preparation zones."""

    model = PreparationZone
    default_order = ("sort_order", "name")
    sortable = ("code", "name", "sort_order", "created_at")

    async def list_active(self) -> List[PreparationZone]:
        stmt = self.base_query().where(PreparationZone.active.is_(True))
        return await self.list_all(self.apply_order(stmt))


class ProductFamilyRepository(TenantRepository[ProductFamily]):
    """Repository for product families."""

    model = ProductFamily
    search_columns = ("code", "name", "short_description")
    default_order = ("sort_order", "code")
    sortable = ("code", "name", "sort_order", "created_at")

    async def count_children(self, family_id: UUID, excluding: Collection[UUID] = ()) -> int:
        stmt = select(func.count(ProductFamily.id)).where(ProductFamily.parent_id == family_id)
        if excluding:
            stmt = stmt.where(ProductFamily.id.not_in(list(excluding)))
        if self.tenant_id is not None:
            stmt = stmt.where(ProductFamily.tenant_id == self.tenant_id)
        return int((await self.execute(stmt)).scalar_one())


class PaymentMethodRepository(TenantRepository[PaymentMethod]):
    """Repository for payment methods."""

    model = PaymentMethod
    default_order = ("sort_order", "code")
    sortable = ("code", "name", "sort_order", "method_type", "created_at")


class PriceListRepository(TenantRepository[PriceList]):
    """Repository for price lists (tariffs)."""

    model = PriceList
    default_order = ("priority", "code")
    sortable = ("code", "name", "priority", "valid_from", "created_at")
