from __future__ import annotations

from datetime import date
from typing import Dict, Optional, Sequence
from uuid import UUID

from sqlalchemy import Select, func, select

from erp_api.db.models.billing import Invoice
from .base import TenantRepository


class InvoiceRepository(TenantRepository[Invoice]):
    """Repository for sales invoices."""

    model = Invoice
    search_columns = ("code", "customer_name", "customer_tax_id", "notes")
    default_order = ("issue_date", "code")
    sortable = ("issue_date", "due_date", "code", "total", "status", "created_at")

    def filtered(
        self,
        *,
        search: Optional[str] = None,
        status: Optional[str] = None,
        invoice_type: Optional[str] = None,
        customer_id: Optional[UUID] = None,
        date_from: Optional[date] = None,
        date_to: Optional[date] = None,
        overdue_on: Optional[date] = None,
    ) -> Select:
        stmt = self.apply_search(self.base_query(), search)
        if status:
            stmt = stmt.where(Invoice.status == status)
        if invoice_type:
            stmt = stmt.where(Invoice.invoice_type == invoice_type)
        if customer_id:
            stmt = stmt.where(Invoice.customer_id == customer_id)
        if date_from:
            stmt = stmt.where(Invoice.issue_date >= date_from)
        if date_to:
            stmt = stmt.where(Invoice.issue_date <= date_to)
        if overdue_on:
            stmt = self.overdue(stmt, overdue_on)
        return stmt

    def overdue(self, stmt: Select, today: date) -> Select:
        return stmt.where(
            Invoice.status.in_(["issued", "sent", "partially_paid", "overdue", "unpaid"]),
            Invoice.due_date.is_not(None),
            Invoice.due_date < today,
            Invoice.amount_pending > 0,
        )

    async def count_by_status(self) -> Dict[str, int]:
        stmt = select(Invoice.status, func.count(Invoice.id)).group_by(Invoice.status)
        if self.tenant_id is not None:
            stmt = stmt.where(Invoice.tenant_id == self.tenant_id)
        return {k: int(v) for k, v in (await self.execute(stmt)).all()}

    async def sums(self, exclude_statuses: Sequence[str]) -> tuple[float, float, float]:
        """Return (sum(total), sum(amount_paid), sum(amount_pending)) for invoices not in `exclude_statuses`."""
        stmt = select(
            func.coalesce(func.sum(Invoice.total), 0.0),
            func.coalesce(func.sum(Invoice.amount_paid), 0.0),
            func.coalesce(func.sum(Invoice.amount_pending), 0.0),
        ).where(Invoice.status.not_in(list(exclude_statuses)))
        if self.tenant_id is not None:
            stmt = stmt.where(Invoice.tenant_id == self.tenant_id)
        total, paid, pending = (await self.execute(stmt)).one()
        return float(total or 0), float(paid or 0), float(pending or 0)

