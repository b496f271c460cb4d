from __future__ import annotations

import logging
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, status
from fastapi.security import OAuth2PasswordRequestForm
from jose import JWTError
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.core.deps import get_current_active_user, get_tenant_id, get_tenant_session
from erp_api.core.errors import DuplicateError
from erp_api.core.security import REFRESH, get_password_hash, issue_token_pair, read_token, verify_password
from erp_api.repositories.security import SecurityRepository
from erp_api.schemas.auth import RefreshRequest, RegisterRequest, TokenPair, UserRead
from erp_api.schemas.common import MessageResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/auth", tags=["Auth"])


async def _issue_tokens(repo: SecurityRepository, user, tenant_id: UUID) -> TokenPair:
    roles = [r.name for r in await repo.list_roles_for_user(user.id)]
    access, refresh = issue_token_pair(user.id, tenant_id, roles)
    return TokenPair(access_token=access, refresh_token=refresh)


# PUBLIC_INTERFACE
@router.post(
    "/register",
    response_model=UserRead,
    status_code=status.HTTP_201_CREATED,
    summary="Register user",
    description="Create a user in the tenant given by X-Tenant-ID. The tenant's first user receives the 'admin' role.",
)
async def register_user(
    payload: RegisterRequest,
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    if await repo.get_user_by_email(payload.email):
        raise DuplicateError("A user with this email already exists")

    user = await repo.create_user(
        email=payload.email, full_name=payload.full_name, hashed_password=get_password_hash(payload.password)
    )
    if await repo.count_users() == 1:
        admin = await repo.ensure_role("admin", "Administrator")
        await repo.assign_role_to_user(user.id, admin.id)
        logger.info("First user %s of tenant promoted to admin", user.id)

    roles = [r.name for r in await repo.list_roles_for_user(user.id)]
    return UserRead.from_user(user, roles)


# PUBLIC_INTERFACE
@router.post(
    "/login",
    response_model=TokenPair,
    summary="Login",
    description="Authenticate with the OAuth2 password form (username is the email) and receive access/refresh tokens.",
)
async def login_for_tokens(
    form_data: OAuth2PasswordRequestForm = Depends(),
    tenant_id: UUID = Depends(get_tenant_id),
    session: AsyncSession = Depends(get_tenant_session),
) -> TokenPair:
    repo = SecurityRepository(session)
    user = await repo.get_user_by_email(form_data.username)
    if not user or not verify_password(form_data.password, user.hashed_password):
        logger.info("Failed login for %s", form_data.username)
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid credentials")
    if not user.is_active:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="User is inactive")
    await repo.record_login(user)
    logger.info("User %s logged in", user.id)
    return await _issue_tokens(repo, user, tenant_id)


# PUBLIC_INTERFACE
@router.post(
    "/refresh",
    response_model=TokenPair,
    summary="Refresh access token",
    description="Exchange a valid refresh token for a new token pair.",
)
async def refresh_token(
    payload: RefreshRequest,
    tenant_id: UUID = Depends(get_tenant_id),
    session: AsyncSession = Depends(get_tenant_session),
) -> TokenPair:
    try:
        claims = read_token(payload.refresh_token, REFRESH)
    except JWTError:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="Invalid refresh token")
    if claims.tenant_id != tenant_id:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Tenant mismatch")

    repo = SecurityRepository(session)
    user = await repo.get_user_by_id(claims.user_id)
    if not user or not user.is_active:
        raise HTTPException(status_code=status.HTTP_401_UNAUTHORIZED, detail="User not found or inactive")
    return await _issue_tokens(repo, user, tenant_id)


# PUBLIC_INTERFACE
@router.post("/logout", response_model=MessageResponse, summary="Logout")
async def logout() -> MessageResponse:
    """Tokens are stateless; clients drop them."""
    return MessageResponse(message="Logged out")


# PUBLIC_INTERFACE
@router.get(
    "/me",
    response_model=UserRead,
    summary="Read current user",
    description="Return the authenticated user and their role names.",
)
async def read_current_user(
    user=Depends(get_current_active_user),
    session: AsyncSession = Depends(get_tenant_session),
) -> UserRead:
    repo = SecurityRepository(session)
    return UserRead.from_user(user, [r.name for r in await repo.list_roles_for_user(user.id)])
