from __future__ import annotations

import asyncio
import logging
from datetime import datetime, timezone
from typing import Any
from uuid import uuid4

from fastapi import APIRouter, Depends, FastAPI, HTTPException, Request
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from erp_api.api.routes.auth import router as auth_router
from erp_api.api.routes.bank_movements import router as bank_movements_router
from erp_api.api.routes.invoices import router as invoices_router
from erp_api.api.routes.payment_methods import router as payment_methods_router
from erp_api.api.routes.planning import router as planning_router
from erp_api.api.routes.preparation_zones import router as preparation_zones_router
from erp_api.api.routes.price_lists import pricing_router
from erp_api.api.routes.price_lists import router as price_lists_router
from erp_api.api.routes.product_families import router as product_families_router
from erp_api.api.routes.reports import router as reports_router
from erp_api.api.routes.roles import router as roles_router
from erp_api.api.routes.sales_agents import router as sales_agents_router
from erp_api.api.routes.shifts import router as shifts_router
from erp_api.api.routes.stock_movements import router as stock_movements_router
from erp_api.api.routes.suppliers import router as suppliers_router
from erp_api.api.routes.users import router as users_router
from erp_api.api.routes.work_orders import router as work_orders_router
from erp_api.core.deps import get_tenant_id
from erp_api.core.errors import DomainError
from erp_api.core.logging import configure_logging, correlation_id_var, tenant_id_var
from erp_api.core.settings import get_app_settings
from erp_api.db.run_migrations import main as run_alembic
from erp_api.db.seed import seed_all
from erp_api.schemas.common import ErrorInfo, ErrorResponse, MessageResponse, TenantEcho

settings = get_app_settings()

# Configure structured logging once at import
configure_logging(settings.LOG_LEVEL)
logger = logging.getLogger(__name__)

openapi_tags = [
    {"name": "Health", "description": "Liveness and tenant header checks."},
    {"name": "Auth", "description": "Registration, login and token refresh."},
    {"name": "Users", "description": "User administration within a tenant."},
    {"name": "Roles", "description": "Role administration within a tenant."},
    {"name": "Preparation Zones", "description": "Kitchen stations shown on the KDS."},
    {"name": "Product Families", "description": "Hierarchical product families."},
    {"name": "Payment Methods", "description": "Payment method catalog."},
    {"name": "Suppliers", "description": "Supplier master data, statistics and exports."},
    {"name": "Sales Agents", "description": "Commercial agents, their sales and commissions."},
    {"name": "Shifts", "description": "Shift templates and presets."},
    {"name": "Pricing", "description": "Price lists, price resolution and margin quotes."},
    {"name": "Bank Movements", "description": "Bank and till movements, reconciliation and cash flow."},
    {"name": "Stock", "description": "Stock ledger, balances and valuation."},
    {"name": "Work Orders", "description": "Work order costing and lifecycle."},
    {"name": "Planning", "description": "Work order planning calendar."},
    {"name": "Invoices", "description": "Sales invoice lifecycle, payments and corrections."},
    {"name": "Reports", "description": "Exportable business reports (CSV/Excel/PDF)."},
]

app = FastAPI(
    title=settings.APP_NAME,
    description=settings.APP_DESCRIPTION,
    version=settings.APP_VERSION,
    openapi_tags=openapi_tags,
)

# CORS - avoid wildcard with credentials
cors_allow_credentials = settings.CORS_ALLOW_CREDENTIALS
if settings.CORS_ORIGINS == ["*"] and cors_allow_credentials:
    logger.warning("CORS_ALLOW_CREDENTIALS=True with '*' origins is not permitted; disabling credentials.")
    cors_allow_credentials = False

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.CORS_ORIGINS,
    allow_credentials=cors_allow_credentials,
    allow_methods=settings.CORS_ALLOW_METHODS,
    allow_headers=settings.CORS_ALLOW_HEADERS,
)


@app.middleware("http")
async def request_context_middleware(request: Request, call_next):
    """
    Bind correlation and tenant ids to the logging context for the request.

    The correlation id is taken from X-Correlation-ID / X-Request-ID or
    generated, and echoed back in the X-Correlation-ID response header.
    """
    corr = request.headers.get("X-Correlation-ID") or request.headers.get("X-Request-ID") or str(uuid4())
    tenant = request.headers.get("X-Tenant-ID")
    token_corr = correlation_id_var.set(corr)
    token_tenant = tenant_id_var.set(tenant)
    request.state.correlation_id = corr
    request.state.tenant_id = tenant

    logger.info("Incoming request %s %s", request.method, request.url.path)
    try:
        response = await call_next(request)
        response.headers["X-Correlation-ID"] = corr
        return response
    finally:
        correlation_id_var.reset(token_corr)
        tenant_id_var.reset(token_tenant)


def _build_error_response(
    request: Request,
    status_code: int,
    error_type: str,
    message: str,
    details: Any | None = None,
) -> JSONResponse:
    """Build a standardized ErrorResponse JSONResponse."""
    err = ErrorResponse(
        status=status_code,
        error=ErrorInfo(type=error_type, message=message, details=details),
        correlation_id=getattr(request.state, "correlation_id", None),
        tenant_id=getattr(request.state, "tenant_id", None),
        path=request.url.path,
        method=request.method,
        timestamp=datetime.now(tz=timezone.utc),
    )
    response = JSONResponse(status_code=status_code, content=err.model_dump(mode="json"))
    # The catch-all handler runs outside the request middleware.
    if err.correlation_id:
        response.headers["X-Correlation-ID"] = err.correlation_id
    return response


@app.exception_handler(DomainError)
async def domain_error_handler(request: Request, exc: DomainError):
    """Map service-layer errors to their status code and error type."""
    if exc.status_code >= 409:
        logger.info("Rejected %s %s: %s", request.method, request.url.path, exc.message)
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type=exc.error_type,
        message=exc.message,
        details=exc.details,
    )


@app.exception_handler(StarletteHTTPException)
async def http_exception_handler(request: Request, exc: HTTPException):
    """Standard error envelope for HTTPException (including routing 404/405)."""
    detail = exc.detail if isinstance(exc.detail, str) else "HTTP Error"
    return _build_error_response(
        request=request,
        status_code=exc.status_code,
        error_type="http_error",
        message=str(detail),
        details=None if isinstance(exc.detail, str) else exc.detail,
    )


@app.exception_handler(RequestValidationError)
async def validation_exception_handler(request: Request, exc: RequestValidationError):
    """Standard error envelope for request validation errors (422)."""
    return _build_error_response(
        request=request,
        status_code=422,
        error_type="validation_error",
        message="Request validation failed",
        details=exc.errors(),
    )


@app.exception_handler(Exception)
async def unhandled_exception_handler(request: Request, exc: Exception):
    """Catch-all handler; the stack trace is logged, never returned."""
    logger.exception("Unhandled error processing request")
    return _build_error_response(
        request=request,
        status_code=500,
        error_type="internal_error",
        message="An unexpected error occurred",
        details=None,
    )


@app.on_event("startup")
async def on_startup() -> None:
    """
    Run migrations and optional seeding on service startup.

    Alembic's env.py drives its own event loop, so the upgrade runs in a
    worker thread.
    """
    if settings.RUN_MIGRATIONS_ON_STARTUP:
        try:
            logger.info("Running Alembic migrations: upgrade head")
            await asyncio.to_thread(run_alembic, ["upgrade", "head"])
            logger.info("Migrations completed.")
        except Exception as exc:
            # Keep serving; health checks surface a broken schema.
            logger.exception("Migration step failed: %s", exc)

    if settings.AUTO_SEED:
        try:
            logger.info("Running database seeding...")
            await seed_all()
            logger.info("Seeding completed.")
        except Exception as exc:
            logger.exception("Seeding step failed: %s", exc)


api_v1 = APIRouter(prefix="/api/v1")


# PUBLIC_INTERFACE
@api_v1.get("/health", response_model=MessageResponse, summary="Health Check", tags=["Health"])
def health_check() -> MessageResponse:
    """Liveness check."""
    return MessageResponse(message="Healthy")


# PUBLIC_INTERFACE
@api_v1.get(
    "/health/tenant",
    response_model=TenantEcho,
    summary="Tenant Health Echo",
    description="Echoes the X-Tenant-ID header; 400 when it is missing or not a UUID.",
    tags=["Health"],
)
async def tenant_health_echo(tenant_id=Depends(get_tenant_id)) -> TenantEcho:
    return TenantEcho(tenant_id=tenant_id)


for router in (
    auth_router,
    users_router,
    roles_router,
    preparation_zones_router,
    product_families_router,
    payment_methods_router,
    suppliers_router,
    sales_agents_router,
    shifts_router,
    price_lists_router,
    pricing_router,
    bank_movements_router,
    stock_movements_router,
    work_orders_router,
    planning_router,
    invoices_router,
    reports_router,
):
    api_v1.include_router(router)

app.include_router(api_v1)
