from __future__ import annotations

from typing import Dict, List, Optional

from sqlalchemy import Select, func, select

from erp_api.db.models.partners import SalesAgent, Supplier
from .base import TenantRepository


class SupplierRepository(TenantRepository[Supplier]):
    """Repository for suppliers."""

    model = Supplier
    search_columns = ("code", "name", "trade_name", "tax_id", "email")
    sortable = ("code", "name", "rating", "created_at")

    def filtered(self, *, search: Optional[str], supplier_type: Optional[str], active: Optional[bool]) -> Select:
        stmt = self.apply_search(self.base_query(), search)
        if supplier_type:
            stmt = stmt.where(Supplier.supplier_type == supplier_type)
        if active is not None:
            stmt = stmt.where(Supplier.active == active)
        return stmt

    async def count_by_type(self) -> Dict[str, int]:
        stmt = select(Supplier.supplier_type, func.count(Supplier.id)).group_by(Supplier.supplier_type)
        if self.tenant_id is not None:
            stmt = stmt.where(Supplier.tenant_id == self.tenant_id)
        return {k: int(v) for k, v in (await self.execute(stmt)).all()}


class SalesAgentRepository(TenantRepository[SalesAgent]):
    """Repository for commercial agents."""

    model = SalesAgent
    search_columns = ("code", "name", "surname", "tax_id", "email")
    sortable = ("code", "name", "total_sales", "commission_percent", "created_at")

    def filtered(
        self,
        *,
        search: Optional[str],
        agent_type: Optional[str],
        status: Optional[str],
        active: Optional[bool],
    ) -> Select:
        stmt = self.apply_search(self.base_query(), search)
        if agent_type:
            stmt = stmt.where(SalesAgent.agent_type == agent_type)
        if status:
            stmt = stmt.where(SalesAgent.status == status)
        if active is not None:
            stmt = stmt.where(SalesAgent.active == active)
        return stmt

    async def top_by_sales(self, limit: int = 5) -> List[SalesAgent]:
        stmt = self.base_query().order_by(SalesAgent.total_sales.desc(), SalesAgent.code).limit(limit)
        return await self.list_all(stmt)
