from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, Path, status
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.core.deps import PageParams, get_page_params, get_tenant_session, require_roles
from erp_api.core.errors import DuplicateError, NotFoundError
from erp_api.core.security import get_password_hash
from erp_api.repositories.security import SecurityRepository
from erp_api.schemas.auth import UserCreate, UserRead, UserUpdate
from erp_api.schemas.common import Page

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/admin/users",
    tags=["Users"],
    dependencies=[Depends(require_roles("admin", "users:manage"))],
)


async def _read(repo: SecurityRepository, user) -> UserRead:
    return UserRead.from_user(user, [r.name for r in await repo.list_roles_for_user(user.id)])


async def _get_or_404(repo: SecurityRepository, user_id: UUID):
    user = await repo.get_user_by_id(user_id)
    if not user:
        raise NotFoundError.for_entity("User", user_id)
    return user


# PUBLIC_INTERFACE
@router.get(
    "", response_model=Page[UserRead], summary="List users", description="Paginated users of the current tenant, newest first."
)
async def list_users(
    params: PageParams = Depends(get_page_params),
    session: AsyncSession = Depends(get_tenant_session),
) -> Page[UserRead]:
    repo = SecurityRepository(session)
    users = await repo.list_users(limit=params.limit, offset=params.offset)
    items = [await _read(repo, u) for u in users]
    return Page.build(items, await repo.count_users(), params.page, params.limit)


# PUBLIC_INTERFACE
@router.post(
    "",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Create user",
    description="Create a user and assign the listed roles, creating missing roles on the fly.",
)
async def create_user(payload: UserCreate, session: AsyncSession = Depends(get_tenant_session)) -> UserRead:
    repo = SecurityRepository(session)
    if await repo.get_user_by_email(payload.email):
        raise DuplicateError("A user with this email already exists")
    user = await repo.create_user(
        email=payload.email,
        full_name=payload.full_name,
        hashed_password=get_password_hash(payload.password),
        is_active=payload.is_active,
        is_superadmin=payload.is_superadmin,
    )
    for name in payload.roles:
        role = await repo.ensure_role(name)
        await repo.assign_role_to_user(user.id, role.id)
    logger.info("User %s created with roles %s", user.id, payload.roles)
    return await _read(repo, user)


# PUBLIC_INTERFACE
@router.get("/{user_id}", response_model=UserRead, summary="Get user")
async def get_user(user_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)) -> UserRead:
    repo = SecurityRepository(session)
    return await _read(repo, await _get_or_404(repo, user_id))


# PUBLIC_INTERFACE
@router.patch("/{user_id}", response_model=UserRead, summary="Update user")
async def update_user(
    payload: UserUpdate,
    user_id: UUID = Path(...),
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    if payload.email:
        other = await repo.get_user_by_email(payload.email)
        if other and other.id != user_id:
            raise DuplicateError("A user with this email already exists")
    updated = await repo.update_user(
        user_id,
        email=payload.email,
        full_name=payload.full_name,
        hashed_password=get_password_hash(payload.password) if payload.password else None,
        is_active=payload.is_active,
        is_superadmin=payload.is_superadmin,
    )
    if not updated:
        raise NotFoundError.for_entity("User", user_id)
    return await _read(repo, updated)


# PUBLIC_INTERFACE
@router.delete("/{user_id}", status_code=status.HTTP_204_NO_CONTENT, summary="Delete user")
async def delete_user(user_id: UUID = Path(...), session: AsyncSession = Depends(get_tenant_session)) -> None:
    repo = SecurityRepository(session)
    if not await repo.delete_user(user_id):
        raise NotFoundError.for_entity("User", user_id)


# PUBLIC_INTERFACE
@router.post("/{user_id}/roles/{role_id}", response_model=UserRead, summary="Assign role to user")
async def assign_role(user_id: UUID, role_id: UUID, session: AsyncSession = Depends(get_tenant_session)) -> UserRead:
    repo = SecurityRepository(session)
    user = await _get_or_404(repo, user_id)
    if not await repo.get_role_by_id(role_id):
        raise NotFoundError.for_entity("Role", role_id)
    await repo.assign_role_to_user(user_id, role_id)
    return await _read(repo, user)


# PUBLIC_INTERFACE
@router.delete("/{user_id}/roles/{role_id}", response_model=UserRead, summary="Remove role from user")
async def remove_role(user_id: UUID, role_id: UUID, session: AsyncSession = Depends(get_tenant_session)) -> UserRead:
    repo = SecurityRepository(session)
    user = await _get_or_404(repo, user_id)
    await repo.remove_role_from_user(user_id, role_id)
    return await _read(repo, user)
