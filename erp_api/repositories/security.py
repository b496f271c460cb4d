from __future__ import annotations

from typing import List, Optional
from uuid import UUID

from sqlalchemy import Select, delete, func, select

from erp_api.db.base import utcnow
from erp_api.db.models.security import Role, User, UserRole
from .base import BaseRepository


class SecurityRepository(BaseRepository):
    """Repository for user and role management within a tenant."""

    def _scoped(self, stmt: Select, model) -> Select:
        if self.tenant_id is not None:
            stmt = stmt.where(model.tenant_id == self.tenant_id)
        return stmt

    # Users
    async def get_user_by_email(self, email: str) -> Optional[User]:
        stmt = self._scoped(select(User).where(func.lower(User.email) == email.lower()), User)
        return await self.scalar_one_or_none(stmt)

    async def get_user_by_id(self, user_id: UUID) -> Optional[User]:
        stmt = self._scoped(select(User).where(User.id == user_id), User)
        return await self.scalar_one_or_none(stmt)

    async def count_users(self) -> int:
        stmt = self._scoped(select(func.count(User.id)), User)
        result = await self.execute(stmt)
        return int(result.scalar_one())

    async def list_users(self, limit: int = 100, offset: int = 0) -> List[User]:
        stmt = self._scoped(select(User), User).order_by(User.created_at.desc()).offset(offset).limit(limit)
        result = await self.scalars(stmt)
        return list(result)

    async def create_user(
        self,
        *,
        email: str,
        full_name: Optional[str],
        hashed_password: str,
        is_active: bool = True,
        is_superadmin: bool = False,
    ) -> User:
        user = User(
            tenant_id=self.tenant_id,
            email=email,
            full_name=full_name,
            hashed_password=hashed_password,
            is_active=is_active,
            is_superadmin=is_superadmin,
        )
        await self.add(user)
        await self.commit()
        await self.session.refresh(user)
        return user

    async def update_user(
        self,
        user_id: UUID,
        *,
        email: Optional[str] = None,
        full_name: Optional[str] = None,
        hashed_password: Optional[str] = None,
        is_active: Optional[bool] = None,
        is_superadmin: Optional[bool] = None,
    ) -> Optional[User]:
        user = await self.get_user_by_id(user_id)
        if user is None:
            return None
        values = {
            "email": email,
            "full_name": full_name,
            "hashed_password": hashed_password,
            "is_active": is_active,
            "is_superadmin": is_superadmin,
        }
        changed = False
        for key, value in values.items():
            if value is not None:
                setattr(user, key, value)
                changed = True
        if changed:
            await self.commit()
            await self.session.refresh(user)
        return user

    async def record_login(self, user: User) -> User:
        user.last_login_at = utcnow()
        await self.commit()
        await self.session.refresh(user)
        return user

    async def delete_user(self, user_id: UUID) -> bool:
        stmt = self._scoped(delete(User).where(User.id == user_id), User)
        result = await self.execute(stmt.execution_options(synchronize_session="fetch"))
        await self.commit()
        return bool(result.rowcount)

    async def list_roles_for_user(self, user_id: UUID) -> List[Role]:
        stmt = (
            select(Role)
            .join(UserRole, Role.id == UserRole.role_id)
            .where(UserRole.user_id == user_id)
            .order_by(Role.name)
        )
        result = await self.scalars(stmt)
        return list(result)

    # Roles
    async def count_roles(self) -> int:
        stmt = self._scoped(select(func.count(Role.id)), Role)
        result = await self.execute(stmt)
        return int(result.scalar_one())

    async def list_roles(self, limit: int = 100, offset: int = 0) -> List[Role]:
        stmt = self._scoped(select(Role), Role).order_by(Role.name).offset(offset).limit(limit)
        res = await self.scalars(stmt)
        return list(res)

    async def get_role_by_id(self, role_id: UUID) -> Optional[Role]:
        stmt = self._scoped(select(Role).where(Role.id == role_id), Role)
        return await self.scalar_one_or_none(stmt)

    async def get_role_by_name(self, name: str) -> Optional[Role]:
        stmt = self._scoped(select(Role).where(Role.name == name), Role)
        return await self.scalar_one_or_none(stmt)

    async def create_role(self, name: str, description: Optional[str] = None) -> Role:
        role = Role(tenant_id=self.tenant_id, name=name, description=description)
        await self.add(role)
        await self.commit()
        await self.session.refresh(role)
        return role

    async def update_role(
        self, role: Role, *, name: Optional[str] = None, description: Optional[str] = None
    ) -> Role:
        if name is not None:
            role.name = name
        if description is not None:
            role.description = description
        await self.commit()
        await self.session.refresh(role)
        return role

    async def ensure_role(self, name: str, description: Optional[str] = None) -> Role:
        role = await self.get_role_by_name(name)
        if role:
            return role
        return await self.create_role(name, description)

    async def delete_role(self, role_id: UUID) -> bool:
        stmt = self._scoped(delete(Role).where(Role.id == role_id), Role)
        result = await self.execute(stmt.execution_options(synchronize_session="fetch"))
        await self.commit()
        return bool(result.rowcount)

    # Associations
    async def assign_role_to_user(self, user_id: UUID, role_id: UUID) -> None:
        existing = await self.scalar_one_or_none(
            select(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        )
        if existing:
            return
        await self.add(UserRole(tenant_id=self.tenant_id, user_id=user_id, role_id=role_id))
        await self.commit()

    async def remove_role_from_user(self, user_id: UUID, role_id: UUID) -> None:
        stmt = delete(UserRole).where(UserRole.user_id == user_id, UserRole.role_id == role_id)
        await self.execute(stmt)
        await self.commit()
