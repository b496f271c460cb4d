from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Path
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.api.routes.crud import add_catalog_routes, manage_access, view_access
from erp_api.core.deps import get_tenant_session
from erp_api.schemas.catalog import (
    PriceListCreate,
    PriceListLineUpsert,
    PriceListRead,
    PriceListUpdate,
    PriceResolution,
    PriceResolutionRequest,
    PricingQuote,
    PricingQuoteRequest,
)
from erp_api.services.pricing import PriceListService, quote

router = APIRouter(prefix="/price-lists", tags=["Pricing"])
pricing_router = APIRouter(prefix="/pricing", tags=["Pricing"])

add_catalog_routes(
    router,
    service_cls=PriceListService,
    read_model=PriceListRead,
    create_model=PriceListCreate,
    update_model=PriceListUpdate,
    area="catalog",
    label="price list",
)


# PUBLIC_INTERFACE
@router.put(
    "/{list_id}/lines/{product_id}",
    response_model=PriceListRead,
    summary="Upsert a price list line",
    description="Set the fixed price or discount of one product, replacing any previous line for it.",
    dependencies=manage_access("catalog"),
)
async def upsert_line(
    payload: PriceListLineUpsert,
    list_id: UUID = Path(...),
    product_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> PriceListRead:
    price_list = await PriceListService(session).upsert_line(list_id, product_id, payload.model_dump())
    return PriceListRead.model_validate(price_list)


# PUBLIC_INTERFACE
@router.delete(
    "/{list_id}/lines/{product_id}",
    response_model=PriceListRead,
    summary="Remove a price list line",
    dependencies=manage_access("catalog"),
)
async def remove_line(
    list_id: UUID = Path(...),
    product_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> PriceListRead:
    return PriceListRead.model_validate(await PriceListService(session).remove_line(list_id, product_id))


# PUBLIC_INTERFACE
@router.post(
    "/{list_id}/resolve",
    response_model=PriceResolution,
    summary="Resolve a product price",
    description="Price of a product under this list on a date: a product line wins, then the general percent, then the base price.",
    dependencies=view_access("catalog"),
)
async def resolve(
    payload: PriceResolutionRequest,
    list_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> PriceResolution:
    result = await PriceListService(session).resolve(
        list_id, payload.product_id, payload.sale_price, payload.retail_price, payload.on_date
    )
    return PriceResolution(**result)


# PUBLIC_INTERFACE
@pricing_router.post(
    "/quote",
    response_model=PricingQuote,
    summary="Margin and retail price quote",
    description="Derive margin and tax-inclusive retail price from purchase and sale (or retail) prices.",
    dependencies=view_access("catalog"),
)
async def pricing_quote(payload: PricingQuoteRequest) -> PricingQuote:
    return PricingQuote(
        **quote(payload.purchase_price, payload.tax_rate, payload.sale_price, payload.retail_price)
    )
