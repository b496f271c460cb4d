from __future__ import annotations

from typing import List

from fastapi import APIRouter, Depends
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.api.routes.crud import add_catalog_routes, view_access
from erp_api.core.deps import get_tenant_session
from erp_api.schemas.catalog import (
    ProductFamilyCreate,
    ProductFamilyNode,
    ProductFamilyRead,
    ProductFamilyUpdate,
)
from erp_api.services.catalog import ProductFamilyService

router = APIRouter(prefix="/product-families", tags=["Product Families"])


# PUBLIC_INTERFACE
@router.get(
    "/tree",
    response_model=List[ProductFamilyNode],
    summary="Product family hierarchy",
    description="Root families with their subfamilies nested under `children`.",
    dependencies=view_access("catalog"),
)
async def family_tree(session: AsyncSession = Depends(get_tenant_session)) -> List[ProductFamilyNode]:
    return [ProductFamilyNode.model_validate(node) for node in await ProductFamilyService(session).tree()]


add_catalog_routes(
    router,
    service_cls=ProductFamilyService,
    read_model=ProductFamilyRead,
    create_model=ProductFamilyCreate,
    update_model=ProductFamilyUpdate,
    area="catalog",
    label="product family",
)
