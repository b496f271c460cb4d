from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.api.routes.crud import SORT_ORDER_PATTERN, manage_access, view_access
from erp_api.core.deps import PageParams, get_page_params, get_tenant_session
from erp_api.schemas.billing import (
    CorrectiveRequest,
    InvoiceAnnulRequest,
    InvoiceAnnulResult,
    InvoiceCreate,
    InvoiceRead,
    InvoiceStats,
    InvoiceStatus,
    InvoiceType,
    InvoiceUpdate,
    PaymentCreate,
)
from erp_api.schemas.common import ExportFormat, Page, to_column_values
from erp_api.services.exports import export_dataframe
from erp_api.services.invoicing import InvoiceService
from erp_api.services.reports import ReportService

router = APIRouter(prefix="/invoices", tags=["Invoices"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=Page[InvoiceRead],
    summary="List invoices",
    description="Newest first. `overdue=true` keeps unpaid invoices past their due date.",
    dependencies=view_access("billing"),
)
async def list_invoices(
    params: PageParams = Depends(get_page_params),
    search: Optional[str] = Query(None),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    invoice_type: Optional[InvoiceType] = Query(None),
    customer_id: Optional[UUID] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    overdue: bool = Query(False),
    sort_by: Optional[str] = Query(None),
    sort_order: str = Query("desc", pattern=SORT_ORDER_PATTERN),
    session: AsyncSession = Depends(get_tenant_session),
) -> Page[InvoiceRead]:
    rows, total = await InvoiceService(session).list(
        page=params.page,
        limit=params.limit,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        status=status_filter.value if status_filter else None,
        invoice_type=invoice_type.value if invoice_type else None,
        customer_id=customer_id,
        date_from=date_from,
        date_to=date_to,
        overdue_on=date.today() if overdue else None,
    )
    return Page.build([InvoiceRead.model_validate(r) for r in rows], total, params.page, params.limit)


# PUBLIC_INTERFACE
@router.get("/stats", response_model=InvoiceStats, summary="Invoice statistics", dependencies=view_access("billing"))
async def invoice_stats(session: AsyncSession = Depends(get_tenant_session)) -> InvoiceStats:
    return InvoiceStats(**await InvoiceService(session).stats())


# PUBLIC_INTERFACE
@router.get("/export", summary="Export invoices", dependencies=view_access("billing"))
async def export_invoices(
    format: ExportFormat = Query(ExportFormat.csv),
    status_filter: Optional[InvoiceStatus] = Query(None, alias="status"),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    session: AsyncSession = Depends(get_tenant_session),
):
    df = await ReportService(session).invoices(
        status_filter.value if status_filter else None, date_from, date_to
    )
    return export_dataframe(df, "invoices", format.value)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create draft invoice",
    description="Line and invoice totals are computed; the code is generated from the series when omitted.",
    dependencies=manage_access("billing"),
)
async def create_invoice(payload: InvoiceCreate, session: AsyncSession = Depends(get_tenant_session)) -> InvoiceRead:
    return InvoiceRead.model_validate(await InvoiceService(session).create(to_column_values(payload)))


# PUBLIC_INTERFACE
@router.get("/{invoice_id}", response_model=InvoiceRead, summary="Get invoice", dependencies=view_access("billing"))
async def get_invoice(invoice_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)) -> InvoiceRead:
    return InvoiceRead.model_validate(await InvoiceService(session).get(invoice_id))


# PUBLIC_INTERFACE
@router.put(
    "/{invoice_id}",
    response_model=InvoiceRead,
    summary="Update draft invoice",
    description="409 once the invoice has been issued.",
    dependencies=manage_access("billing"),
)
async def update_invoice(
    payload: InvoiceUpdate,
    invoice_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> InvoiceRead:
    row = await InvoiceService(session).update(invoice_id, to_column_values(payload, exclude_unset=True))
    return InvoiceRead.model_validate(row)


# PUBLIC_INTERFACE
@router.delete(
    "/{invoice_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete draft invoice",
    dependencies=manage_access("billing"),
)
async def delete_invoice(invoice_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)) -> None:
    await InvoiceService(session).delete(invoice_id)


# PUBLIC_INTERFACE
@router.post(
    "/{invoice_id}/issue",
    response_model=InvoiceRead,
    summary="Issue invoice",
    description="Draft invoices with at least one line become issued and immutable.",
    dependencies=manage_access("billing"),
)
async def issue_invoice(invoice_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)) -> InvoiceRead:
    return InvoiceRead.model_validate(await InvoiceService(session).issue(invoice_id))


# PUBLIC_INTERFACE
@router.post(
    "/{invoice_id}/payments",
    response_model=InvoiceRead,
    summary="Register payment",
    description="Adds a payment and moves the invoice to paid or partially_paid.",
    dependencies=manage_access("billing"),
)
async def register_payment(
    payload: PaymentCreate,
    invoice_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> InvoiceRead:
    row = await InvoiceService(session).register_payment(
        invoice_id, payload.amount, payload.method.value, payload.date, payload.reference
    )
    return InvoiceRead.model_validate(row)


# PUBLIC_INTERFACE
@router.post(
    "/{invoice_id}/annul",
    response_model=InvoiceAnnulResult,
    summary="Annul invoice",
    description="Issued invoices may be corrected instead by setting create_corrective.",
    dependencies=manage_access("billing"),
)
async def annul_invoice(
    payload: InvoiceAnnulRequest,
    invoice_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> InvoiceAnnulResult:
    invoice, corrective = await InvoiceService(session).annul(invoice_id, payload.reason, payload.create_corrective)
    return InvoiceAnnulResult(
        invoice=InvoiceRead.model_validate(invoice),
        corrective=InvoiceRead.model_validate(corrective) if corrective is not None else None,
    )


# PUBLIC_INTERFACE
@router.post(
    "/{invoice_id}/corrective",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create corrective invoice",
    description="Drafts a series R invoice negating the original's quantities; the original becomes corrective.",
    dependencies=manage_access("billing"),
)
async def create_corrective(
    payload: CorrectiveRequest,
    invoice_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> InvoiceRead:
    row = await InvoiceService(session).create_corrective(invoice_id, payload.reason, payload.description)
    return InvoiceRead.model_validate(row)


# PUBLIC_INTERFACE
@router.post(
    "/{invoice_id}/duplicate",
    response_model=InvoiceRead,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate invoice",
    dependencies=manage_access("billing"),
)
async def duplicate_invoice(
    invoice_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)
) -> InvoiceRead:
    return InvoiceRead.model_validate(await InvoiceService(session).duplicate(invoice_id))
