from __future__ import annotations

from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.api.routes.crud import SORT_ORDER_PATTERN, manage_access, view_access
from erp_api.core.deps import PageParams, get_current_active_user, get_page_params, get_tenant_session
from erp_api.schemas.common import Page, to_column_values
from erp_api.schemas.inventory import (
    StockAnnulResult,
    StockInfo,
    StockMovementCreate,
    StockMovementRead,
    StockMovementType,
    StockOrigin,
    StockValuation,
)
from erp_api.schemas.treasury import AnnulRequest
from erp_api.services.stock import StockService

router = APIRouter(prefix="/stock-movements", tags=["Stock"])


# PUBLIC_INTERFACE
@router.get(
    "",
    response_model=Page[StockMovementRead],
    summary="Stock movement history",
    description="Ledger entries newest first, filtered by product, warehouse, type, origin, dates, lot and annulment.",
    dependencies=view_access("inventory"),
)
async def movement_history(
    params: PageParams = Depends(get_page_params),
    search: Optional[str] = Query(None),
    product_id: Optional[UUID] = Query(None),
    warehouse_id: Optional[UUID] = Query(None),
    movement_type: Optional[StockMovementType] = Query(None),
    origin: Optional[StockOrigin] = Query(None),
    date_from: Optional[datetime] = Query(None),
    date_to: Optional[datetime] = Query(None),
    annulled: Optional[bool] = Query(None),
    lot: Optional[str] = Query(None),
    sort_by: Optional[str] = Query(None),
    sort_order: str = Query("desc", pattern=SORT_ORDER_PATTERN),
    session: AsyncSession = Depends(get_tenant_session),
) -> Page[StockMovementRead]:
    rows, total = await StockService(session).history(
        page=params.page,
        limit=params.limit,
        sort_by=sort_by,
        sort_order=sort_order,
        search=search,
        product_id=product_id,
        warehouse_id=warehouse_id,
        movement_type=movement_type.value if movement_type else None,
        origin=origin.value if origin else None,
        date_from=date_from,
        date_to=date_to,
        annulled=annulled,
        lot=lot,
    )
    return Page.build([StockMovementRead.model_validate(r) for r in rows], total, params.page, params.limit)


# PUBLIC_INTERFACE
@router.get(
    "/stock",
    response_model=StockInfo,
    summary="Current stock of a product",
    description="Current balance in a warehouse with the last and weighted average purchase costs.",
    dependencies=view_access("inventory"),
)
async def current_stock(
    product_id: UUID = Query(...),
    warehouse_id: UUID = Query(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> StockInfo:
    return StockInfo(**await StockService(session).stock_info(product_id, warehouse_id))


# PUBLIC_INTERFACE
@router.get(
    "/valuation",
    response_model=StockValuation,
    summary="Stock valuation",
    description="Stock per product and warehouse valued at weighted average cost.",
    dependencies=view_access("inventory"),
)
async def stock_valuation(
    warehouse_id: Optional[UUID] = Query(None),
    session: AsyncSession = Depends(get_tenant_session),
) -> StockValuation:
    return StockValuation(**await StockService(session).valuation(warehouse_id))


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=StockMovementRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register stock movement",
    description="Balances are computed from the current stock; set allow_negative=false to reject outbound movements that would leave it negative.",
    dependencies=manage_access("inventory"),
)
async def register_movement(
    payload: StockMovementCreate,
    user=Depends(get_current_active_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> StockMovementRead:
    values = to_column_values(payload, exclude={"allow_negative"})
    movement = await StockService(session).register(values, user_id=user.id, allow_negative=payload.allow_negative)
    return StockMovementRead.model_validate(movement)


# PUBLIC_INTERFACE
@router.get("/{movement_id}", response_model=StockMovementRead, summary="Get stock movement", dependencies=view_access("inventory"))
async def get_movement(
    movement_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)
) -> StockMovementRead:
    return StockMovementRead.model_validate(await StockService(session).get(movement_id))


# PUBLIC_INTERFACE
@router.post(
    "/{movement_id}/annul",
    response_model=StockAnnulResult,
    summary="Annul stock movement",
    description="Marks the movement annulled and books its inverse movement. 409 when already annulled or when it is a reversal.",
    dependencies=manage_access("inventory"),
)
async def annul_movement(
    payload: AnnulRequest,
    movement_id: UUID = Path(...),
    user=Depends(get_current_active_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> StockAnnulResult:
    original, reversal = await StockService(session).annul(movement_id, payload.reason, user_id=user.id)
    return StockAnnulResult(
        annulled=StockMovementRead.model_validate(original),
        reversal=StockMovementRead.model_validate(reversal),
    )
