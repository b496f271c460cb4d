from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.core.deps import PageParams, get_page_params, get_tenant_session, require_roles
from erp_api.core.errors import DuplicateError, NotFoundError
from erp_api.repositories.security import SecurityRepository
from erp_api.schemas.auth import RoleCreate, RoleRead, RoleUpdate
from erp_api.schemas.common import Page

router = APIRouter(
    prefix="/admin/roles",
    tags=["Roles"],
    dependencies=[Depends(require_roles("admin", "roles:manage"))],
)


# PUBLIC_INTERFACE
@router.get("", response_model=Page[RoleRead], summary="List roles", description="Paginated roles of the current tenant by name.")
async def list_roles(
    params: PageParams = Depends(get_page_params),
    session: AsyncSession = Depends(get_tenant_session),
) -> Page[RoleRead]:
    repo = SecurityRepository(session)
    roles = await repo.list_roles(limit=params.limit, offset=params.offset)
    return Page.build([RoleRead.model_validate(r) for r in roles], await repo.count_roles(), params.page, params.limit)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=RoleRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create role",
    description="Role names follow '<area>:view' / '<area>:manage', or 'admin'.",
)
async def create_role(payload: RoleCreate, session: AsyncSession = Depends(get_tenant_session)) -> RoleRead:
    repo = SecurityRepository(session)
    if await repo.get_role_by_name(payload.name):
        raise DuplicateError(f"Role '{payload.name}' already exists")
    return RoleRead.model_validate(await repo.create_role(payload.name, payload.description))


# PUBLIC_INTERFACE
@router.get("/{role_id}", response_model=RoleRead, summary="Get role")
async def get_role(role_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)) -> RoleRead:
    role = await SecurityRepository(session).get_role_by_id(role_id)
    if not role:
        raise NotFoundError.for_entity("Role", role_id)
    return RoleRead.model_validate(role)


# PUBLIC_INTERFACE
@router.patch("/{role_id}", response_model=RoleRead, summary="Update role")
async def update_role(
    payload: RoleUpdate,
    role_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> RoleRead:
    repo = SecurityRepository(session)
    role = await repo.get_role_by_id(role_id)
    if not role:
        raise NotFoundError.for_entity("Role", role_id)
    if payload.name and payload.name != role.name and await repo.get_role_by_name(payload.name):
        raise DuplicateError(f"Role '{payload.name}' already exists")
    return RoleRead.model_validate(await repo.update_role(role, name=payload.name, description=payload.description))


# PUBLIC_INTERFACE
@router.delete("/{role_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete role")
async def delete_role(role_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)) -> None:
    if not await SecurityRepository(session).delete_role(role_id):
        raise NotFoundError.for_entity("Role", role_id)
