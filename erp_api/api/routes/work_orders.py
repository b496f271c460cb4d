from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.api.routes.crud import SORT_ORDER_PATTERN, manage_access, view_access
from erp_api.core.deps import PageParams, get_page_params, get_tenant_session
from erp_api.schemas.common import Page, to_column_values
from erp_api.schemas.operations import (
    Priority,
    WorkOrderCreate,
    WorkOrderRead,
    WorkOrderStatus,
    WorkOrderStatusChange,
    WorkOrderType,
    WorkOrderUpdate,
)
from erp_api.services.work_orders import WorkOrderService

router = APIRouter(prefix="/work-orders", tags=["Work Orders"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=Page[WorkOrderRead],
    summary="List work orders",
    dependencies=view_access("operations"),
)
async def list_work_orders(
    params: PageParams = Depends(get_page_params),
    search: Optional[str] = Query(None),
    status_filter: Optional[WorkOrderStatus] = Query(None, alias="status"),
    work_order_type: Optional[WorkOrderType] = Query(None),
    priority: Optional[Priority] = Query(None),
    customer_id: Optional[UUID] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    sort_by: Optional[str] = Query(None),
    sort_order: str = Query("desc", pattern=SORT_ORDER_PATTERN),
    session: AsyncSession = Depends(get_tenant_session),
) -> Page[WorkOrderRead]:
    rows, total = await WorkOrderService(session).list(
        page=params.page,
        limit=params.limit,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        status=status_filter.value if status_filter else None,
        work_order_type=work_order_type.value if work_order_type else None,
        priority=priority.value if priority else None,
        customer_id=customer_id,
        date_from=date_from,
        date_to=date_to,
    )
    return Page.build([WorkOrderRead.model_validate(r) for r in rows], total, params.page, params.limit)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=WorkOrderRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create work order",
    description="Creates a draft; the code {series}{year}-{seq} and the totals are computed.",
    dependencies=manage_access("operations"),
)
async def create_work_order(
    payload: WorkOrderCreate, session: AsyncSession = Depends(get_tenant_session)
) -> WorkOrderRead:
    return WorkOrderRead.model_validate(await WorkOrderService(session).create(to_column_values(payload)))


# PUBLIC_INTERFACE
@router.get("/{order_id}", response_model=WorkOrderRead, summary="Get work order", dependencies=view_access("operations"))
async def get_work_order(order_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)) -> WorkOrderRead:
    return WorkOrderRead.model_validate(await WorkOrderService(session).get(order_id))


# PUBLIC_INTERFACE
@router.put(
    "/{order_id}",
    response_model=WorkOrderRead,
    summary="Update work order",
    description="Partial update with totals recomputed; 409 once invoiced or annulled.",
    dependencies=manage_access("operations"),
)
async def update_work_order(
    payload: WorkOrderUpdate,
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> WorkOrderRead:
    row = await WorkOrderService(session).update(order_id, to_column_values(payload, exclude_unset=True))
    return WorkOrderRead.model_validate(row)


# PUBLIC_INTERFACE
@router.delete(
    "/{order_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete work order",
    dependencies=manage_access("operations"),
)
async def delete_work_order(order_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)) -> None:
    await WorkOrderService(session).delete(order_id)


# PUBLIC_INTERFACE
@router.patch(
    "/{order_id}/status",
    response_model=WorkOrderRead,
    summary="Change work order status",
    description="draft > planned > in_progress <> paused > completed > invoiced; annulled from any state but invoiced.",
    dependencies=manage_access("operations"),
)
async def change_status(
    payload: WorkOrderStatusChange,
    order_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> WorkOrderRead:
    return WorkOrderRead.model_validate(await WorkOrderService(session).change_status(order_id, payload.status.value))


# PUBLIC_INTERFACE
@router.post(
    "/{order_id}/duplicate",
    response_model=WorkOrderRead,
    status_code=status.HTTP_201_CREATED,
    summary="Duplicate work order",
    dependencies=manage_access("operations"),
)
async def duplicate_work_order(
    order_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)
) -> WorkOrderRead:
    return WorkOrderRead.model_validate(await WorkOrderService(session).duplicate(order_id))
