from __future__ import annotations

from typing import List

from erp_api.db.models.hr import Shift
from .base import TenantRepository


class ShiftRepository(TenantRepository[Shift]):
    """Repository for shifts."""

    model = Shift
    search_columns = ("code", "name", "description")
    sortable = ("code", "name", "start_time", "theoretical_hours", "created_at")

    async def list_active(self) -> List[Shift]:
        stmt = self.base_query().where(Shift.active.is_(True))
        return await self.list_all(self.apply_order(stmt, "start_time"))
