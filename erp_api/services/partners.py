from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from erp_api.db.models.partners import SalesAgent, Supplier
from erp_api.repositories.partners import SalesAgentRepository, SupplierRepository
from erp_api.services.base import round2
from erp_api.services.catalog import CatalogService

logger = logging.getLogger(__name__)


class SupplierService(CatalogService[Supplier]):
    """Supplier master; code and tax id are unique within the tenant."""

    repository_cls = SupplierRepository
    entity_label = "Supplier"
    unique_fields = ("code", "tax_id")
    copy_suffixed_fields = ("tax_id",)

    def duplicate_message(self, field: str, value: Any) -> str:
        if field == "tax_id":
            return "A supplier with this tax id already exists"
        return super().duplicate_message(field, value)

    # PUBLIC_INTERFACE
    async def list(
        self,
        *,
        page: int,
        limit: int,
        search: Optional[str] = None,
        active: Optional[bool] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "asc",
        supplier_type: Optional[str] = None,
    ) -> Tuple[List[Supplier], int]:
        stmt = self.repo.filtered(search=search, supplier_type=supplier_type, active=active)
        return await self.repo.paginate(self.repo.apply_order(stmt, sort_by, sort_order), page=page, limit=limit)

    # PUBLIC_INTERFACE
    async def stats(self) -> Dict[str, Any]:
        by_type = await self.repo.count_by_type()
        total = sum(by_type.values())
        active = await self.repo.count(self.repo.filtered(search=None, supplier_type=None, active=True))
        return {"total": total, "active": active, "inactive": total - active, "by_type": by_type}


class SalesAgentService(CatalogService[SalesAgent]):
    """Commercial agents and their sales/commission counters."""

    repository_cls = SalesAgentRepository
    entity_label = "Sales agent"
    unique_fields = ("code", "tax_id")
    copy_reset = {"tax_id": None, "total_sales": 0, "accumulated_commission": 0}

    def duplicate_message(self, field: str, value: Any) -> str:
        if field == "tax_id":
            return "An agent with this tax id already exists"
        return super().duplicate_message(field, value)

    # PUBLIC_INTERFACE
    async def list(
        self,
        *,
        page: int,
        limit: int,
        search: Optional[str] = None,
        active: Optional[bool] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "asc",
        agent_type: Optional[str] = None,
        status: Optional[str] = None,
    ) -> Tuple[List[SalesAgent], int]:
        stmt = self.repo.filtered(search=search, agent_type=agent_type, status=status, active=active)
        return await self.repo.paginate(self.repo.apply_order(stmt, sort_by, sort_order), page=page, limit=limit)

    # PUBLIC_INTERFACE
    async def register_sale(self, agent_id: UUID, amount: float, commission: Optional[float] = None) -> SalesAgent:
        """
        Credit a sale to the agent.

        When no explicit commission is given it is amount x commission_percent / 100.
        """
        agent = await self.get(agent_id)
        if commission is None:
            commission = amount * float(agent.commission_percent or 0) / 100
        values = {
            "total_sales": round2(float(agent.total_sales or 0) + amount),
            "accumulated_commission": round2(float(agent.accumulated_commission or 0) + commission),
        }
        agent = await self.repo.update(agent, values)
        logger.info("Sale of %.2f registered for agent %s (commission %.2f)", amount, agent.code, commission)
        return agent

    # PUBLIC_INTERFACE
    async def stats(self) -> Dict[str, Any]:
        agents = await self.repo.list_all(self.repo.base_query())
        by_type: Dict[str, int] = {}
        for a in agents:
            by_type[a.agent_type] = by_type.get(a.agent_type, 0) + 1
        active = sum(1 for a in agents if a.active)
        top = await self.repo.top_by_sales(5)
        return {
            "total": len(agents),
            "active": active,
            "inactive": len(agents) - active,
            "by_type": by_type,
            "total_sales": round2(sum(float(a.total_sales or 0) for a in agents)),
            "total_commission": round2(sum(float(a.accumulated_commission or 0) for a in agents)),
            "top_agents": [
                {
                    "id": a.id,
                    "code": a.code,
                    "name": " ".join(p for p in (a.name, a.surname) if p),
                    "total_sales": float(a.total_sales or 0),
                    "accumulated_commission": float(a.accumulated_commission or 0),
                }
                for a in top
            ],
        }
