from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.api.routes.crud import add_catalog_routes, view_access
from erp_api.core.deps import get_tenant_session
from erp_api.schemas.catalog import PreparationZoneCreate, PreparationZoneRead, PreparationZoneUpdate
from erp_api.services.catalog import PreparationZoneService

router = APIRouter(prefix="/preparation-zones", tags=["Preparation Zones"])


# PUBLIC_INTERFACE
@router.get(
    "/active",
    response_model=List[PreparationZoneRead],
    summary="List active preparation zones",
    description="Active zones ordered by sort_order, as shown on the kitchen display.",
    dependencies=view_access("catalog"),
)
async def list_active_zones(session: AsyncSession = Depends(get_tenant_session)) -> List[PreparationZoneRead]:
    return [PreparationZoneRead.model_validate(z) for z in await PreparationZoneService(session).list_active()]


add_catalog_routes(
    router,
    service_cls=PreparationZoneService,
    read_model=PreparationZoneRead,
    create_model=PreparationZoneCreate,
    update_model=PreparationZoneUpdate,
    area="catalog",
    label="preparation zone",
)
