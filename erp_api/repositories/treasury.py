from __future__ import annotations

from datetime import date
from typing import List, Optional, Tuple
from uuid import UUID

from sqlalchemy import Select, func, or_, select

from erp_api.db.models.treasury import BankMovement
from .base import TenantRepository


class BankMovementRepository(TenantRepository[BankMovement]):
    """Repository for bank movements."""

    model = BankMovement
    search_columns = ("number", "concept", "counterparty_name", "source_document_number", "bank_reference")
    default_order = ("date", "number")
    sortable = ("date", "number", "amount", "created_at")

    def filtered(
        self,
        *,
        search: Optional[str] = None,
        direction: Optional[str] = None,
        origin: Optional[str] = None,
        method: Optional[str] = None,
        status: Optional[str] = None,
        bank_account: Optional[str] = None,
        counterparty_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        min_amount: Optional[float] = None,
        max_amount: Optional[float] = None,
        reconciled: Optional[bool] = None,
    ) -> Select:
        stmt = self.apply_search(self.base_query(), search)
        if direction:
            stmt = stmt.where(BankMovement.direction == direction)
        if origin:
            stmt = stmt.where(BankMovement.origin == origin)
        if method:
            stmt = stmt.where(BankMovement.method == method)
        if status:
            stmt = stmt.where(BankMovement.status == status)
        if bank_account:
            stmt = stmt.where(BankMovement.bank_account == bank_account)
        if counterparty_id:
            stmt = stmt.where(BankMovement.counterparty_id == counterparty_id)
        if date_from:
            stmt = stmt.where(BankMovement.date >= date_from)
        if date_to:
            stmt = stmt.where(BankMovement.date <= date_to)
        if min_amount is not None:
            stmt = stmt.where(BankMovement.amount >= min_amount)
        if max_amount is not None:
            stmt = stmt.where(BankMovement.amount <= max_amount)
        if reconciled is not None:
            stmt = stmt.where(BankMovement.reconciled == reconciled)
        return stmt

    def _effective(self, date_from: Optional[date], date_to: Optional[date]) -> Select:
        stmt = self.filtered(date_from=date_from, date_to=date_to)
        return stmt.where(or_(BankMovement.status != "annulled", BankMovement.status.is_(None)))

    async def totals_by(
        self, column: str, *, date_from: Optional[date] = None, date_to: Optional[date] = None
    ) -> List[Tuple[str, str, float, int]]:
        """Sum and count of non-annulled movements grouped by (column, direction)."""
        sub = self._effective(date_from, date_to).subquery()
        key = sub.c[column]
        stmt = select(
            key, sub.c.direction, func.coalesce(func.sum(sub.c.amount), 0.0), func.count()
        ).group_by(key, sub.c.direction)
        return [(k, d, float(s or 0), int(c)) for k, d, s, c in (await self.execute(stmt)).all()]
