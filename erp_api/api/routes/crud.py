"""
Shared route set for catalog entities.

Annotations here are evaluated eagerly (no postponed annotations) because the
payload and response models are only known when a router is assembled.
"""

from typing import Optional, Type
from uuid import UUID

from fastapi import APIRouter, Depends, Path, Query, status
from pydantic import BaseModel
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.core.deps import PageParams, get_page_params, get_tenant_session, require_roles
from erp_api.schemas.common import (
    BulkDeleteRequest,
    BulkDeleteResult,
    Page,
    StatusChange,
    SuggestedCode,
    to_column_values,
)
from erp_api.services.catalog import CatalogService

SORT_ORDER_PATTERN = "^(asc|desc)$"


# PUBLIC_INTERFACE
def view_access(area: str):
    """Dependency list granting read access to admins and `<area>:view` holders."""
    return [Depends(require_roles("admin", f"{area}:view", f"{area}:manage"))]


# PUBLIC_INTERFACE
def manage_access(area: str):
    """Dependency list granting write access to admins and `<area>:manage` holders."""
    return [Depends(require_roles("admin", f"{area}:manage"))]


# PUBLIC_INTERFACE
def add_catalog_routes(
    router: APIRouter,
    *,
    service_cls: Type[CatalogService],
    read_model: Type[BaseModel],
    create_model: Type[BaseModel],
    update_model: Type[BaseModel],
    area: str,
    label: str,
    with_list: bool = True,
) -> APIRouter:
    """
    Register list/get/create/update/delete, bulk delete, status, code
    suggestion and duplicate endpoints on `router`.

    Entity-specific static paths (e.g. `/active`, `/stats`) must be added
    to the router before calling this so they are matched ahead of `/{id}`.
    """
    plural = f"{label}s"

    if with_list:

        @router.get(
            "",
            response_model=Page[read_model],
            summary=f"List {plural}",
            description=f"Paginated {plural}; `search` matches code and name case-insensitively.",
            dependencies=view_access(area),
        )
        async def list_records(
            params: PageParams = Depends(get_page_params),
            search: Optional[str] = Query(None, description="Case-insensitive substring"),
            active: Optional[bool] = Query(None),
            sort_by: Optional[str] = Query(None),
            sort_order: str = Query("asc", pattern=SORT_ORDER_PATTERN),
            session: AsyncSession = Depends(get_tenant_session),
        ):
            rows, total = await service_cls(session).list(
                page=params.page, limit=params.limit, search=search, active=active,
                sort_by=sort_by, sort_order=sort_order,
            )
            return Page.build([read_model.model_validate(r) for r in rows], total, params.page, params.limit)

    @router.get(
        "/suggest-code",
        response_model=SuggestedCode,
        summary=f"Suggest next {label} code",
        dependencies=view_access(area),
    )
    async def suggest_code(
        prefix: str = Query(..., min_length=1, description="Code prefix, e.g. 'ZP'"),
        session: AsyncSession = Depends(get_tenant_session),
    ):
        return SuggestedCode(code=await service_cls(session).suggest_code(prefix))

    @router.post(
        "",
        response_model=read_model,
        status_code=status.HTTP_201_CREATED,
        summary=f"Create {label}",
        dependencies=manage_access(area),
    )
    async def create_record(payload: create_model, session: AsyncSession = Depends(get_tenant_session)):
        row = await service_cls(session).create(to_column_values(payload))
        return read_model.model_validate(row)

    @router.post(
        "/bulk-delete",
        response_model=BulkDeleteResult,
        summary=f"Delete several {plural}",
        dependencies=manage_access(area),
    )
    async def bulk_delete(payload: BulkDeleteRequest, session: AsyncSession = Depends(get_tenant_session)):
        return BulkDeleteResult(deleted=await service_cls(session).bulk_delete(payload.ids))

    @router.get("/{entity_id}", response_model=read_model, summary=f"Get {label}", dependencies=view_access(area))
    async def get_record(entity_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)):
        return read_model.model_validate(await service_cls(session).get(entity_id))

    @router.put(
        "/{entity_id}",
        response_model=read_model,
        summary=f"Update {label}",
        description="Partial update; omitted fields are left untouched.",
        dependencies=manage_access(area),
    )
    async def update_record(
        payload: update_model,
        entity_id: UUID = Path(...),
        session: AsyncSession = Depends(get_tenant_session),
    ):
        row = await service_cls(session).update(entity_id, to_column_values(payload, exclude_unset=True))
        return read_model.model_validate(row)

    @router.delete(
        "/{entity_id}",
        status_code=status.HTTP_204_NO_CONTENT,
        summary=f"Delete {label}",
        dependencies=manage_access(area),
    )
    async def delete_record(entity_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)):
        await service_cls(session).delete(entity_id)

    @router.patch(
        "/{entity_id}/status",
        response_model=read_model,
        summary=f"Activate or deactivate {label}",
        dependencies=manage_access(area),
    )
    async def change_status(
        payload: StatusChange,
        entity_id: UUID = Path(...),
        session: AsyncSession = Depends(get_tenant_session),
    ):
        return read_model.model_validate(await service_cls(session).change_status(entity_id, payload.active))

    @router.post(
        "/{entity_id}/duplicate",
        response_model=read_model,
        status_code=status.HTTP_201_CREATED,
        summary=f"Duplicate {label}",
        description="Copy under `<code>-COPY[n]` with ' (copy)' appended to the name.",
        dependencies=manage_access(area),
    )
    async def duplicate_record(entity_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)):
        return read_model.model_validate(await service_cls(session).duplicate(entity_id))

    return router
