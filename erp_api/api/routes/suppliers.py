from __future__ import annotations

from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.api.routes.crud import SORT_ORDER_PATTERN, add_catalog_routes, view_access
from erp_api.core.deps import PageParams, get_page_params, get_tenant_session
from erp_api.schemas.common import ExportFormat, Page
from erp_api.schemas.partners import (
    SupplierCreate,
    SupplierRead,
    SupplierStats,
    SupplierType,
    SupplierUpdate,
)
from erp_api.services.exports import export_dataframe
from erp_api.services.partners import SupplierService
from erp_api.services.reports import ReportService

router = APIRouter(prefix="/suppliers", tags=["Suppliers"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=Page[SupplierRead],
    summary="List suppliers",
    description="Paginated suppliers; `search` matches code, name, trade name, tax id and email.",
    dependencies=view_access("purchasing"),
)
async def list_suppliers(
    params: PageParams = Depends(get_page_params),
    search: Optional[str] = Query(None),
    supplier_type: Optional[SupplierType] = Query(None),
    active: Optional[bool] = Query(None),
    sort_by: Optional[str] = Query(None),
    sort_order: str = Query("asc", pattern=SORT_ORDER_PATTERN),
    session: AsyncSession = Depends(get_tenant_session),
) -> Page[SupplierRead]:
    rows, total = await SupplierService(session).list(
        page=params.page,
        limit=params.limit,
        search=search,
        active=active,
        sort_by=sort_by,
        sort_order=sort_order,
        supplier_type=supplier_type.value if supplier_type else None,
    )
    return Page.build([SupplierRead.model_validate(r) for r in rows], total, params.page, params.limit)


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=SupplierStats,
    summary="Supplier statistics",
    dependencies=view_access("purchasing"),
)
async def supplier_stats(session: AsyncSession = Depends(get_tenant_session)) -> SupplierStats:
    return SupplierStats(**await SupplierService(session).stats())


# PUBLIC_INTERFACE
@router.get(
    "/export",
    summary="Export suppliers",
    description="Download the supplier list as CSV, XLSX or PDF.",
    dependencies=view_access("purchasing"),
)
async def export_suppliers(
    format: ExportFormat = Query(ExportFormat.csv),
    active: Optional[bool] = Query(None),
    session: AsyncSession = Depends(get_tenant_session),
):
    df = await ReportService(session).suppliers(active=active)
    return export_dataframe(df, "suppliers", format.value)


add_catalog_routes(
    router,
    service_cls=SupplierService,
    read_model=SupplierRead,
    create_model=SupplierCreate,
    update_model=SupplierUpdate,
    area="purchasing",
    label="supplier",
    with_list=False,
)
