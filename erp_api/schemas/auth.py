from __future__ import annotations

from datetime import datetime
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class TokenPair(BaseModel):
    """Access and refresh tokens."""
    token_type: str = Field("bearer", description="Token type, typically 'bearer'")
    access_token: str = Field(..., description="JWT access token")
    refresh_token: str = Field(..., description="JWT refresh token")


class RefreshRequest(BaseModel):
    """Request to refresh an access token."""
    refresh_token: str = Field(..., description="Refresh token")


class RegisterRequest(BaseModel):
    """Self-registration within the tenant given by X-Tenant-ID."""
    email: EmailStr = Field(..., description="User email")
    password: str = Field(..., min_length=8, description="User password")
    full_name: Optional[str] = Field(None, description="Full name")


class UserRead(BaseModel):
    """User with resolved role names."""
    id: UUID = Field(..., description="User ID")
    email: EmailStr = Field(..., description="User email")
    full_name: Optional[str] = Field(None)
    is_active: bool = Field(..., description="Active flag")
    is_superadmin: bool = Field(..., description="Superadmin flag")
    last_login_at: Optional[datetime] = Field(None, description="Last successful login")
    roles: List[str] = Field(default_factory=list, description="Role names assigned to the user")
    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: datetime = Field(..., description="Updated timestamp")

    @classmethod
    def from_user(cls, user, roles: List[str]) -> "UserRead":
        return cls(
            id=user.id,
            email=user.email,
            full_name=user.full_name,
            is_active=user.is_active,
            is_superadmin=user.is_superadmin,
            last_login_at=user.last_login_at,
            roles=roles,
            created_at=user.created_at,
            updated_at=user.updated_at,
        )


class UserCreate(BaseModel):
    """Admin create user payload."""
    email: EmailStr = Field(..., description="Email")
    password: str = Field(..., min_length=8, description="Password")
    full_name: Optional[str] = Field(None)
    is_active: bool = Field(default=True)
    is_superadmin: bool = Field(default=False)
    roles: List[str] = Field(default_factory=list, description="Role names to assign (created when missing)")


class UserUpdate(BaseModel):
    """Admin update user payload; omitted fields are left untouched."""
    email: Optional[EmailStr] = Field(None)
    password: Optional[str] = Field(None, min_length=8)
    full_name: Optional[str] = Field(None)
    is_active: Optional[bool] = Field(None)
    is_superadmin: Optional[bool] = Field(None)


class RoleRead(BaseModel):
    """Role read model."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID = Field(..., description="Role ID")
    name: str = Field(..., description="Role name, e.g. 'admin' or 'billing:manage'")
    description: Optional[str] = Field(None)
    created_at: datetime = Field(..., description="Created timestamp")
    updated_at: datetime = Field(..., description="Updated timestamp")


class RoleCreate(BaseModel):
    """Create role payload."""
    name: str = Field(..., min_length=1, description="Role name")
    description: Optional[str] = Field(None, description="Description")


class RoleUpdate(BaseModel):
    """Update role payload."""
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = Field(None)
