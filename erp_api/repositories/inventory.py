from __future__ import annotations

from datetime import datetime
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import Select, func, select

from erp_api.db.models.inventory import StockMovement
from .base import TenantRepository


class StockMovementRepository(TenantRepository[StockMovement]):
    """Repository for the stock ledger."""

    model = StockMovement
    search_columns = ("product_code", "product_name", "sku", "document_number", "lot", "reason")
    default_order = ("date", "created_at")
    sortable = ("date", "quantity", "product_code", "created_at")

    def filtered(
        self,
        *,
        search: Optional[str] = None,
        product_id: Optional[UUID] = None,
        warehouse_id: Optional[UUID] = None,
        movement_type: Optional[str] = None,
        origin: Optional[str] = None,
        date_from: Optional[datetime] = None,
        date_to: Optional[datetime] = None,
        annulled: Optional[bool] = None,
        lot: Optional[str] = None,
    ) -> Select:
        stmt = self.apply_search(self.base_query(), search)
        if product_id:
            stmt = stmt.where(StockMovement.product_id == product_id)
        if warehouse_id:
            stmt = stmt.where(StockMovement.warehouse_id == warehouse_id)
        if movement_type:
            stmt = stmt.where(StockMovement.movement_type == movement_type)
        if origin:
            stmt = stmt.where(StockMovement.origin == origin)
        if date_from:
            stmt = stmt.where(StockMovement.date >= date_from)
        if date_to:
            stmt = stmt.where(StockMovement.date <= date_to)
        if annulled is not None:
            stmt = stmt.where(StockMovement.annulled == annulled)
        if lot:
            stmt = stmt.where(StockMovement.lot == lot)
        return stmt

    def _live(self, product_id: UUID, warehouse_id: Optional[UUID] = None) -> Select:
        stmt = self.base_query().where(
            StockMovement.product_id == product_id,
            StockMovement.annulled.is_(False),
        )
        if warehouse_id is not None:
            stmt = stmt.where(StockMovement.warehouse_id == warehouse_id)
        return stmt

    async def latest(self, product_id: UUID, warehouse_id: UUID) -> Optional[StockMovement]:
        stmt = (
            self._live(product_id, warehouse_id)
            .order_by(StockMovement.date.desc(), StockMovement.created_at.desc())
            .limit(1)
        )
        return await self.scalar_one_or_none(stmt)

    async def latest_cost(self, product_id: UUID, movement_types: Sequence[str]) -> Optional[float]:
        stmt = (
            select(StockMovement.unit_cost)
            .where(
                StockMovement.product_id == product_id,
                StockMovement.annulled.is_(False),
                StockMovement.movement_type.in_(list(movement_types)),
                StockMovement.unit_cost > 0,
            )
            .order_by(StockMovement.date.desc(), StockMovement.created_at.desc())
            .limit(1)
        )
        if self.tenant_id is not None:
            stmt = stmt.where(StockMovement.tenant_id == self.tenant_id)
        return await self.scalar_one_or_none(stmt)

    async def weighted_cost(self, product_id: UUID, movement_types: Sequence[str]) -> tuple[float, float]:
        """Return (sum(quantity * unit_cost), sum(quantity)) over costed inbound movements."""
        stmt = select(
            func.coalesce(func.sum(StockMovement.quantity * StockMovement.unit_cost), 0.0),
            func.coalesce(func.sum(StockMovement.quantity), 0.0),
        ).where(
            StockMovement.product_id == product_id,
            StockMovement.annulled.is_(False),
            StockMovement.movement_type.in_(list(movement_types)),
            StockMovement.unit_cost > 0,
        )
        if self.tenant_id is not None:
            stmt = stmt.where(StockMovement.tenant_id == self.tenant_id)
        value, qty = (await self.execute(stmt)).one()
        return float(value or 0), float(qty or 0)

    async def latest_per_product_warehouse(self, warehouse_id: Optional[UUID] = None) -> List[StockMovement]:
        """Latest live movement for every (product, warehouse) pair."""
        ranked = select(
            StockMovement.id,
            func.row_number()
            .over(
                partition_by=(StockMovement.product_id, StockMovement.warehouse_id),
                order_by=(StockMovement.date.desc(), StockMovement.created_at.desc()),
            )
            .label("rn"),
        ).where(StockMovement.annulled.is_(False))
        if self.tenant_id is not None:
            ranked = ranked.where(StockMovement.tenant_id == self.tenant_id)
        if warehouse_id is not None:
            ranked = ranked.where(StockMovement.warehouse_id == warehouse_id)
        ranked = ranked.subquery()
        stmt = (
            select(StockMovement)
            .join(ranked, ranked.c.id == StockMovement.id)
            .where(ranked.c.rn == 1)
            .order_by(StockMovement.product_code, StockMovement.warehouse_name)
        )
        return list(await self.scalars(stmt))
