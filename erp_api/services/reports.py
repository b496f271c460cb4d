from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

import pandas as pd

from erp_api.db.models.billing import Invoice
from erp_api.db.models.partners import SalesAgent, Supplier
from erp_api.db.models.treasury import BankMovement
from erp_api.repositories.billing import InvoiceRepository
from erp_api.repositories.partners import SalesAgentRepository, SupplierRepository
from erp_api.repositories.treasury import BankMovementRepository
from erp_api.services.base import BaseService
from erp_api.services.exports import build_frame
from erp_api.services.stock import StockService


STOCK_VALUATION_COLUMNS = (
    "product_code", "product_name", "product_id", "warehouse_id", "stock", "average_cost", "value",
)
BANK_MOVEMENT_COLUMNS = (
    "number", "date", "direction", "origin", "method", "status", "amount", "concept",
    "counterparty_name", "source_document_number", "bank_account", "reconciled",
)
INVOICE_COLUMNS = (
    "code", "issue_date", "due_date", "status", "invoice_type", "customer_name", "customer_tax_id",
    "taxable_base", "total_tax", "total", "amount_paid", "amount_pending",
)
SALES_AGENT_COLUMNS = (
    "code", "name", "surname", "tax_id", "agent_type", "status", "email", "phone",
    "commission_percent", "total_sales", "accumulated_commission", "zone", "active",
)
SUPPLIER_COLUMNS = (
    "code", "name", "trade_name", "tax_id", "supplier_type", "email", "phone",
    "payment_days", "general_discount", "rating", "active",
)


class ReportService(BaseService):
    """Tabular extracts backing the export endpoints."""

    # PUBLIC_INTERFACE
    async def stock_valuation(self, warehouse_id: Optional[UUID] = None) -> pd.DataFrame:
        valuation = await StockService(self.session).valuation(warehouse_id)
        df = build_frame(valuation["rows"], STOCK_VALUATION_COLUMNS)
        if not df.empty:
            total = {c: None for c in STOCK_VALUATION_COLUMNS}
            total.update(product_code="TOTAL", value=valuation["total_value"])
            df = pd.concat([df, build_frame([total], STOCK_VALUATION_COLUMNS)], ignore_index=True)
        return df

    # PUBLIC_INTERFACE
    async def bank_movements(self, date_from: Optional[date] = None, date_to: Optional[date] = None) -> pd.DataFrame:
        repo = BankMovementRepository(self.session)
        stmt = repo.filtered(date_from=date_from, date_to=date_to).order_by(BankMovement.date, BankMovement.number)
        rows = await repo.list_all(stmt)
        return build_frame(({c: getattr(r, c) for c in BANK_MOVEMENT_COLUMNS} for r in rows), BANK_MOVEMENT_COLUMNS)

    # PUBLIC_INTERFACE
    async def invoices(
        self, status: Optional[str] = None, date_from: Optional[date] = None, date_to: Optional[date] = None
    ) -> pd.DataFrame:
        repo = InvoiceRepository(self.session)
        stmt = repo.filtered(status=status, date_from=date_from, date_to=date_to).order_by(
            Invoice.issue_date, Invoice.code
        )
        records = []
        for inv in await repo.list_all(stmt):
            record = {c: getattr(inv, c, None) for c in INVOICE_COLUMNS}
            totals = inv.totals or {}
            record.update(taxable_base=totals.get("taxable_base", 0.0), total_tax=totals.get("total_tax", 0.0))
            records.append(record)
        return build_frame(records, INVOICE_COLUMNS)

    # PUBLIC_INTERFACE
    async def sales_agents(self, active: Optional[bool] = None) -> pd.DataFrame:
        repo = SalesAgentRepository(self.session)
        stmt = repo.filtered(search=None, agent_type=None, status=None, active=active).order_by(SalesAgent.code)
        rows = await repo.list_all(stmt)
        return build_frame(({c: getattr(r, c) for c in SALES_AGENT_COLUMNS} for r in rows), SALES_AGENT_COLUMNS)

    # PUBLIC_INTERFACE
    async def suppliers(self, active: Optional[bool] = None) -> pd.DataFrame:
        repo = SupplierRepository(self.session)
        stmt = repo.filtered(search=None, supplier_type=None, active=active).order_by(Supplier.code)
        rows = await repo.list_all(stmt)
        return build_frame(({c: getattr(r, c) for c in SUPPLIER_COLUMNS} for r in rows), SUPPLIER_COLUMNS)
