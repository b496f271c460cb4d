from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.api.routes.crud import add_catalog_routes, manage_access, view_access
from erp_api.core.deps import get_tenant_session
from erp_api.schemas.hr import ShiftCreate, ShiftPreset, ShiftRead, ShiftUpdate
from erp_api.services.shifts import ShiftService, preset_definitions

router = APIRouter(prefix="/shifts", tags=["Shifts"])


# PUBLIC_INTERFACE
@router.get("/active", response_model=List[ShiftRead], summary="List active shifts", dependencies=view_access("hr"))
async def list_active_shifts(session: AsyncSession = Depends(get_tenant_session)) -> List[ShiftRead]:
    return [ShiftRead.model_validate(s) for s in await ShiftService(session).list_active()]


# PUBLIC_INTERFACE
@router.get(
    "/presets",
    response_model=List[ShiftPreset],
    summary="Built-in shift presets",
    description="Morning, afternoon, night and split shifts, Monday to Friday.",
    dependencies=view_access("hr"),
)
async def list_presets() -> List[ShiftPreset]:
    return [ShiftPreset(**p) for p in preset_definitions()]


# PUBLIC_INTERFACE
@router.post(
    "/presets",
    response_model=List[ShiftRead],
    status_code=status.HTTP_201_CREATED,
    summary="Create preset shifts",
    description="Create every preset whose code is not yet used; returns only the shifts created.",
    dependencies=manage_access("hr"),
)
async def create_presets(session: AsyncSession = Depends(get_tenant_session)) -> List[ShiftRead]:
    return [ShiftRead.model_validate(s) for s in await ShiftService(session).create_presets()]


add_catalog_routes(
    router,
    service_cls=ShiftService,
    read_model=ShiftRead,
    create_model=ShiftCreate,
    update_model=ShiftUpdate,
    area="hr",
    label="shift",
)
