from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.api.routes.crud import view_access
from erp_api.core.deps import get_tenant_session
from erp_api.schemas.billing import InvoiceStatus
from erp_api.schemas.common import ExportFormat
from erp_api.services.exports import export_dataframe
from erp_api.services.reports import ReportService

# PUBLIC_INTERFACE
router = APIRouter(prefix="/reports", tags=["Reports"], dependencies=view_access("reports"))


# PUBLIC_INTERFACE
@router.get(
    "/stock-valuation",
    summary="Stock valuation report",
    description="Stock per product and warehouse at average cost, with a TOTAL row.",
)
async def stock_valuation_report(
    format: ExportFormat = Query(ExportFormat.csv),
    warehouse_id: Optional[UUID] = Query(None),
    session: AsyncSession = Depends(get_tenant_session),
):
    df = await ReportService(session).stock_valuation(warehouse_id)
    return export_dataframe(df, "stock_valuation", format.value)


# PUBLIC_INTERFACE
@router.get("/bank-movements", summary="Bank movements report")
async def bank_movements_report(
    format: ExportFormat = Query(ExportFormat.csv),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    session: AsyncSession = Depends(get_tenant_session),
):
    df = await ReportService(session).bank_movements(date_from, date_to)
    return export_dataframe(df, "bank_movements", format.value)


# PUBLIC_INTERFACE
@router.get("/invoices", summary="Invoices report")
async def invoices_report(
    format: ExportFormat = Query(ExportFormat.csv),
    status: Optional[InvoiceStatus] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    session: AsyncSession = Depends(get_tenant_session),
):
    df = await ReportService(session).invoices(status.value if status else None, date_from, date_to)
    return export_dataframe(df, "invoices", format.value)


# PUBLIC_INTERFACE
@router.get("/sales-agents", summary="Sales agents report")
async def sales_agents_report(
    format: ExportFormat = Query(ExportFormat.csv),
    active: Optional[bool] = Query(None),
    session: AsyncSession = Depends(get_tenant_session),
):
    df = await ReportService(session).sales_agents(active)
    return export_dataframe(df, "sales_agents", format.value)


# PUBLIC_INTERFACE
@router.get("/suppliers", summary="Suppliers report")
async def suppliers_report(
    format: ExportFormat = Query(ExportFormat.csv),
    active: Optional[bool] = Query(None),
    session: AsyncSession = Depends(get_tenant_session),
):
    df = await ReportService(session).suppliers(active)
    return export_dataframe(df, "suppliers", format.value)
