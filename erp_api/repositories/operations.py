from __future__ import annotations

from datetime import date
from typing import List, Optional, Sequence
from uuid import UUID

from sqlalchemy import Select

from erp_api.db.models.operations import WorkOrder
from .base import TenantRepository


class WorkOrderRepository(TenantRepository[WorkOrder]):
    """Repository for work orders."""

    model = WorkOrder
    search_columns = ("code", "title", "customer_name", "description")
    default_order = ("date", "code")
    sortable = ("date", "code", "priority", "status", "total_sale", "created_at")

    def filtered(
        self,
        *,
        search: Optional[str] = None,
        status: Optional[str] = None,
        work_order_type: Optional[str] = None,
        priority: Optional[str] = None,
        customer_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
    ) -> Select:
        stmt = self.apply_search(self.base_query(), search)
        if status:
            stmt = stmt.where(WorkOrder.status == status)
        if work_order_type:
            stmt = stmt.where(WorkOrder.work_order_type == work_order_type)
        if priority:
            stmt = stmt.where(WorkOrder.priority == priority)
        if customer_id:
            stmt = stmt.where(WorkOrder.customer_id == customer_id)
        if date_from:
            stmt = stmt.where(WorkOrder.date >= date_from)
        if date_to:
            stmt = stmt.where(WorkOrder.date <= date_to)
        return stmt

    async def in_range(
        self, column: str, start: date, end: date, statuses: Sequence[str]
    ) -> List[WorkOrder]:
        """Work orders whose `column` date falls within [start, end] and status is in `statuses`."""
        col = self._col(column)
        stmt = self.base_query().where(
            col >= start,
            col <= end,
            WorkOrder.status.in_(list(statuses)),
        )
        return await self.list_all(stmt.order_by(col, WorkOrder.start_time, WorkOrder.code))
