from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.db.session import TENANT_INFO_KEY


def round2(value: float) -> float:
    """Round a money or percent figure to 2 decimals."""
    return round(float(value or 0), 2)


class BaseService:
    """
    Base class for services. Holds a tenant-bound session shared by the
    repositories a service orchestrates.

    Services keep business rules and raise erp_api.core.errors exceptions;
    data access is delegated to repositories.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @property
    def tenant_id(self) -> Optional[UUID]:
        return self.session.info.get(TENANT_INFO_KEY)
