from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.api.routes.crud import SORT_ORDER_PATTERN, manage_access, view_access
from erp_api.core.deps import get_tenant_session
from erp_api.schemas.common import ExportFormat, Page, to_column_values
from erp_api.schemas.treasury import (
    AnnulRequest,
    BankMovementCreate,
    BankMovementRead,
    BankMovementStats,
    BankMovementStatus,
    BankMovementUpdate,
    Direction,
    MovementMethod,
    MovementOrigin,
)
from erp_api.services.exports import export_dataframe
from erp_api.services.reports import ReportService
from erp_api.services.treasury import BankMovementService

router = APIRouter(prefix="/bank-movements", tags=["Bank Movements"])

MOVEMENTS_PAGE_SIZE = 50


def _value(enum_member) -> Optional[str]:
    return enum_member.value if enum_member is not None else None


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=Page[BankMovementRead],
    summary="List bank movements",
    description="Filtered movements, 50 per page by default, newest first. `search` matches number, concept, counterparty and source document.",
    dependencies=view_access("treasury"),
)
async def list_movements(
    page: int = Query(1, ge=1),
    limit: int = Query(MOVEMENTS_PAGE_SIZE, ge=1, le=200),
    search: Optional[str] = Query(None),
    direction: Optional[Direction] = Query(None),
    origin: Optional[MovementOrigin] = Query(None),
    method: Optional[MovementMethod] = Query(None),
    status_filter: Optional[BankMovementStatus] = Query(None, alias="status"),
    bank_account: Optional[str] = Query(None),
    counterparty_id: Optional[UUID] = Query(None),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    min_amount: Optional[float] = Query(None, ge=0),
    max_amount: Optional[float] = Query(None, ge=0),
    reconciled: Optional[bool] = Query(None),
    sort_by: Optional[str] = Query(None),
    sort_order: str = Query("desc", pattern=SORT_ORDER_PATTERN),
    session: AsyncSession = Depends(get_tenant_session),
) -> Page[BankMovementRead]:
    rows, total = await BankMovementService(session).list(
        page=page,
        limit=limit,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        direction=_value(direction),
        origin=_value(origin),
        method=_value(method),
        status=_value(status_filter),
        bank_account=bank_account,
        counterparty_id=counterparty_id,
        date_from=date_from,
        date_to=date_to,
        min_amount=min_amount,
        max_amount=max_amount,
        reconciled=reconciled,
    )
    return Page.build([BankMovementRead.model_validate(r) for r in rows], total, page, limit)


# PUBLIC_INTERFACE
@router.get(
    "/stats",
    response_model=BankMovementStats,
    summary="Cash flow statistics",
    description="Inflows and outflows by method and origin over non-annulled movements, plus the last 30 days day by day.",
    dependencies=view_access("treasury"),
)
async def movement_stats(
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    session: AsyncSession = Depends(get_tenant_session),
) -> BankMovementStats:
    return BankMovementStats(**await BankMovementService(session).stats(date_from, date_to))


# PUBLIC_INTERFACE
@router.get("/export", summary="Export bank movements", dependencies=view_access("treasury"))
async def export_movements(
    format: ExportFormat = Query(ExportFormat.csv),
    date_from: Optional[date] = Query(None),
    date_to: Optional[date] = Query(None),
    session: AsyncSession = Depends(get_tenant_session),
):
    df = await ReportService(session).bank_movements(date_from, date_to)
    return export_dataframe(df, "bank_movements", format.value)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=BankMovementRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create bank movement",
    description="The number MOV-{year}-{seq} is generated from the movement date.",
    dependencies=manage_access("treasury"),
)
async def create_movement(
    payload: BankMovementCreate, session: AsyncSession = Depends(get_tenant_session)
) -> BankMovementRead:
    return BankMovementRead.model_validate(await BankMovementService(session).create(to_column_values(payload)))


# PUBLIC_INTERFACE
@router.get("/{movement_id}", response_model=BankMovementRead, summary="Get bank movement", dependencies=view_access("treasury"))
async def get_movement(
    movement_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)
) -> BankMovementRead:
    return BankMovementRead.model_validate(await BankMovementService(session).get(movement_id))


# PUBLIC_INTERFACE
@router.put(
    "/{movement_id}",
    response_model=BankMovementRead,
    summary="Update bank movement",
    description="Only confirmed movements that are not reconciled can be edited (409 otherwise).",
    dependencies=manage_access("treasury"),
)
async def update_movement(
    payload: BankMovementUpdate,
    movement_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> BankMovementRead:
    row = await BankMovementService(session).update(movement_id, to_column_values(payload, exclude_unset=True))
    return BankMovementRead.model_validate(row)


# PUBLIC_INTERFACE
@router.delete(
    "/{movement_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    summary="Delete bank movement",
    dependencies=manage_access("treasury"),
)
async def delete_movement(movement_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)) -> None:
    await BankMovementService(session).delete(movement_id)


# PUBLIC_INTERFACE
@router.post(
    "/{movement_id}/annul",
    response_model=BankMovementRead,
    summary="Annul bank movement",
    description="409 when the movement is already annulled or has been reconciled.",
    dependencies=manage_access("treasury"),
)
async def annul_movement(
    payload: AnnulRequest,
    movement_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> BankMovementRead:
    return BankMovementRead.model_validate(await BankMovementService(session).annul(movement_id, payload.reason))


# PUBLIC_INTERFACE
@router.post(
    "/{movement_id}/reconcile",
    response_model=BankMovementRead,
    summary="Reconcile bank movement",
    dependencies=manage_access("treasury"),
)
async def reconcile_movement(
    movement_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)
) -> BankMovementRead:
    return BankMovementRead.model_validate(await BankMovementService(session).reconcile(movement_id))
