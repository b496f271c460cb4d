from __future__ import annotations

from fastapi import APIRouter

from erp_api.api.routes.crud import add_catalog_routes
from erp_api.schemas.catalog import PaymentMethodCreate, PaymentMethodRead, PaymentMethodUpdate
from erp_api.services.catalog import PaymentMethodService

router = APIRouter(prefix="/payment-methods", tags=["Payment Methods"])

add_catalog_routes(
    router,
    service_cls=PaymentMethodService,
    read_model=PaymentMethodRead,
    create_model=PaymentMethodCreate,
    update_model=PaymentMethodUpdate,
    area="catalog",
    label="payment method",
)
