from __future__ import annotations

from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.api.routes.crud import SORT_ORDER_PATTERN, add_catalog_routes, manage_access, view_access
from erp_api.core.deps import PageParams, get_page_params, get_tenant_session
from erp_api.schemas.common import ExportFormat, Page
from erp_api.schemas.partners import (
    AgentStatus,
    AgentType,
    RegisterSale,
    SalesAgentCreate,
    SalesAgentRead,
    SalesAgentStats,
    SalesAgentUpdate,
)
from erp_api.services.exports import export_dataframe
from erp_api.services.partners import SalesAgentService
from erp_api.services.reports import ReportService

router = APIRouter(prefix="/sales-agents", tags=["Sales Agents"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=Page[SalesAgentRead],
    summary="List sales agents",
    dependencies=view_access("sales"),
)
async def list_agents(
    params: PageParams = Depends(get_page_params),
    search: Optional[str] = Query(None),
    agent_type: Optional[AgentType] = Query(None),
    status: Optional[AgentStatus] = Query(None),
    active: Optional[bool] = Query(None),
    sort_by: Optional[str] = Query(None),
    sort_order: str = Query("asc", pattern=SORT_ORDER_PATTERN),
    session: AsyncSession = Depends(get_tenant_session),
) -> Page[SalesAgentRead]:
    rows, total = await SalesAgentService(session).list(
        page=params.page,
        limit=params.limit,
        search=search,
        active=active,
        sort_by=sort_by,
        sort_order=sort_order,
        agent_type=agent_type.value if agent_type else None,
        status=status.value if status else None,
    )
    return Page.build([SalesAgentRead.model_validate(r) for r in rows], total, params.page, params.limit)


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=SalesAgentStats,
    summary="Sales agent statistics",
    description="Counts by status and type, sales and commission totals and the top 5 agents by sales.",
    dependencies=view_access("sales"),
)
async def agent_stats(session: AsyncSession = Depends(get_tenant_session)) -> SalesAgentStats:
    return SalesAgentStats(**await SalesAgentService(session).stats())


# PUBLIC_INTERFACE
@router.get("/export", summary="Export sales agents", dependencies=view_access("sales"))
async def export_agents(
    format: ExportFormat = Query(ExportFormat.csv),
    active: Optional[bool] = Query(None),
    session: AsyncSession = Depends(get_tenant_session),
):
    df = await ReportService(session).sales_agents(active=active)
    return export_dataframe(df, "sales_agents", format.value)


add_catalog_routes(
    router,
    service_cls=SalesAgentService,
    read_model=SalesAgentRead,
    create_model=SalesAgentCreate,
    update_model=SalesAgentUpdate,
    area="sales",
    label="sales agent",
    with_list=False,
)


# PUBLIC_INTERFACE
@router.post(
    "/{agent_id}/sales",
    response_model=SalesAgentRead,
    summary="Register a sale for an agent",
    description="Adds the amount to total_sales and the commission (explicit or from commission_percent) to the accumulated commission.",
    dependencies=manage_access("sales"),
)
async def register_sale(
    payload: RegisterSale,
    agent_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> SalesAgentRead:
    agent = await SalesAgentService(session).register_sale(agent_id, payload.amount, payload.commission)
    return SalesAgentRead.model_validate(agent)
