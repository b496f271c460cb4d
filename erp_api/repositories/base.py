from __future__ import annotations

import math
import re
from typing import Any, ClassVar, Generic, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar
from uuid import UUID

from sqlalchemy import Executable, Select, delete, func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.core.errors import InvalidFieldError
from erp_api.db.base import Base
from erp_api.db.session import TENANT_INFO_KEY

ModelT = TypeVar("ModelT", bound=Base)


# PUBLIC_INTERFACE
def is_unique_violation(exc: IntegrityError) -> bool:
    """True when an IntegrityError comes from a unique constraint (SQLSTATE 23505 on PostgreSQL)."""
    orig = getattr(exc, "orig", None)
    code = getattr(orig, "sqlstate", None) or getattr(orig, "pgcode", None)
    if code:
        return code == "23505"
    message = str(orig if orig is not None else exc).lower()
    return "unique" in message or "duplicate key" in message


class BaseRepository:
    """
    Base class for repositories providing common helpers.

    Note:
      The tenant bound to the session (see erp_api.db.session.tenant_context)
      is exposed as `tenant_id`; tenant-owned queries must be filtered by it.
    """

    def __init__(self, session: AsyncSession) -> None:
        self.session = session

    @property
    def tenant_id(self) -> Optional[UUID]:
        return self.session.info.get(TENANT_INFO_KEY)

    async def execute(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute a SQLAlchemy statement."""
        return await self.session.execute(statement, params or {})

    async def scalars(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return scalars."""
        result = await self.execute(statement, params)
        return result.scalars()

    async def scalar_one_or_none(self, statement: Executable, params: Optional[dict[str, Any]] = None):
        """Execute and return a single scalar or None."""
        result = await self.execute(statement, params)
        return result.scalar_one_or_none()

    async def commit(self) -> None:
        """Commit current transaction."""
        await self.session.commit()

    async def add_all(self, entities: Iterable[Any]) -> None:
        """Add multiple entities to session."""
        self.session.add_all(list(entities))

    async def add(self, entity: Any) -> None:
        """Add a single entity to session."""
        self.session.add(entity)


class TenantRepository(BaseRepository, Generic[ModelT]):
    """
    Generic CRUD repository for tenant-owned models.

    Subclasses set `model`, the columns used by free-text search and the
    default ordering.
    """

    model: ClassVar[Type[Base]]
    search_columns: ClassVar[Tuple[str, ...]] = ("code", "name")
    default_order: ClassVar[Tuple[str, ...]] = ("code",)
    sortable: ClassVar[Tuple[str, ...]] = ()

    def _col(self, name: str):
        return getattr(self.model, name)

    def check_not_null(self, values: dict[str, Any]) -> None:
        """Reject explicit nulls for NOT NULL columns."""
        columns = self.model.__table__.columns
        nulls = sorted(k for k, v in values.items() if v is None and k in columns and not columns[k].nullable)
        if nulls:
            raise InvalidFieldError(
                f"{', '.join(nulls)} cannot be null",
                details=[{"field": name, "message": "cannot be null"} for name in nulls],
            )

    def base_query(self) -> Select:
        stmt = select(self.model)
        if self.tenant_id is not None:
            stmt = stmt.where(self._col("tenant_id") == self.tenant_id)
        return stmt

    def apply_search(self, stmt: Select, search: Optional[str]) -> Select:
        if not search:
            return stmt
        like = f"%{search}%"
        return stmt.where(or_(*(self._col(c).ilike(like) for c in self.search_columns)))

    def apply_order(self, stmt: Select, sort_by: Optional[str] = None, sort_order: str = "asc") -> Select:
        if sort_by and sort_by in self.sortable:
            col = self._col(sort_by)
            return stmt.order_by(col.desc() if sort_order == "desc" else col.asc())
        return stmt.order_by(*(self._col(c) for c in self.default_order))

    async def count(self, stmt: Select) -> int:
        count_stmt = select(func.count()).select_from(stmt.order_by(None).subquery())
        return int((await self.execute(count_stmt)).scalar_one())

    async def paginate(self, stmt: Select, *, page: int, limit: int) -> Tuple[List[ModelT], int]:
        """Return one page of rows plus the total row count for `stmt`."""
        total = await self.count(stmt)
        rows = await self.scalars(stmt.offset((page - 1) * limit).limit(limit))
        return list(rows), total

    async def list(
        self,
        *,
        page: int,
        limit: int,
        search: Optional[str] = None,
        active: Optional[bool] = None,
        sort_by: Optional[str] = None,
        sort_order: str = "asc",
    ) -> Tuple[List[ModelT], int]:
        stmt = self.apply_search(self.base_query(), search)
        if active is not None and hasattr(self.model, "active"):
            stmt = stmt.where(self._col("active") == active)
        stmt = self.apply_order(stmt, sort_by, sort_order)
        return await self.paginate(stmt, page=page, limit=limit)

    async def list_all(self, stmt: Optional[Select] = None) -> List[ModelT]:
        stmt = stmt if stmt is not None else self.apply_order(self.base_query())
        return list(await self.scalars(stmt))

    async def get(self, entity_id: UUID) -> Optional[ModelT]:
        stmt = self.base_query().where(self._col("id") == entity_id)
        return await self.scalar_one_or_none(stmt)

    async def find_by(self, field: str, value: Any, *, exclude_id: Optional[UUID] = None) -> Optional[ModelT]:
        stmt = self.base_query().where(self._col(field) == value)
        if exclude_id is not None:
            stmt = stmt.where(self._col("id") != exclude_id)
        return await self.scalar_one_or_none(stmt.limit(1))

    async def exists(self, field: str, value: Any, *, exclude_id: Optional[UUID] = None) -> bool:
        return await self.find_by(field, value, exclude_id=exclude_id) is not None

    async def create(self, **values: Any) -> ModelT:
        row = self.model(**values)
        if self.tenant_id is not None:
            row.tenant_id = self.tenant_id
        await self.add(row)
        await self.commit()
        await self.session.refresh(row)
        return row  # type: ignore[return-value]

    async def save(self, row: ModelT) -> ModelT:
        """Persist attribute changes made on a loaded row."""
        await self.add(row)
        await self.commit()
        await self.session.refresh(row)
        return row

    async def update(self, row: ModelT, values: dict[str, Any]) -> ModelT:
        self.check_not_null(values)
        for key, value in values.items():
            setattr(row, key, value)
        return await self.save(row)

    async def delete(self, row: ModelT) -> None:
        await self.session.delete(row)
        await self.commit()

    async def bulk_delete(self, ids: Sequence[UUID]) -> int:
        if not ids:
            return 0
        stmt = delete(self.model).where(self._col("id").in_(list(ids)))
        if self.tenant_id is not None:
            stmt = stmt.where(self._col("tenant_id") == self.tenant_id)
        result = await self.execute(stmt.execution_options(synchronize_session="fetch"))
        await self.commit()
        return int(result.rowcount or 0)

    async def codes_with_prefix(self, prefix: str, field: str = "code") -> List[str]:
        stmt = select(self._col(field)).where(self._col(field).like(f"{prefix}%"))
        if self.tenant_id is not None:
            stmt = stmt.where(self._col("tenant_id") == self.tenant_id)
        return [c for c in (await self.scalars(stmt)) if c]

    async def next_sequence(self, prefix: str, field: str = "code") -> int:
        """Return the next numeric suffix for document numbers shaped `<prefix><digits>`."""
        pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
        numbers = [int(m.group(1)) for m in map(pattern.match, await self.codes_with_prefix(prefix, field)) if m]
        return max(numbers, default=0) + 1


# PUBLIC_INTERFACE
def total_pages(total: int, limit: int) -> int:
    """Number of pages needed to show `total` rows at `limit` per page."""
    return math.ceil(total / limit) if limit > 0 else 0
