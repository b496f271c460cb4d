from __future__ import annotations

import logging
import re
from typing import Any, ClassVar, Collection, Dict, Generic, Iterable, List, Optional, Sequence, Tuple, Type, TypeVar
from uuid import UUID

from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.core.errors import BusinessRuleError, DuplicateError, NotFoundError
from erp_api.db.base import Base
from erp_api.db.models.catalog import PaymentMethod, PreparationZone, ProductFamily
from erp_api.repositories.base import TenantRepository, is_unique_violation
from erp_api.repositories.catalog import (
    PaymentMethodRepository,
    PreparationZoneRepository,
    ProductFamilyRepository,
)
from erp_api.services.base import BaseService

logger = logging.getLogger(__name__)

ModelT = TypeVar("ModelT", bound=Base)

# Columns never copied by duplicate().
_SYSTEM_COLUMNS = frozenset({"id", "tenant_id", "created_at", "updated_at"})


# PUBLIC_INTERFACE
def suggest_code(prefix: str, existing: Iterable[str]) -> str:
    """
    Next free code for `prefix`.

    Codes shaped `<prefix><digits>` are considered; the result is max + 1,
    zero-padded to the widest existing suffix (at least 3 digits).
    """
    pattern = re.compile(rf"^{re.escape(prefix)}(\d+)$")
    suffixes = [m.group(1) for m in map(pattern.match, existing) if m]
    if not suffixes:
        return f"{prefix}001"
    width = max(3, max(len(s) for s in suffixes))
    return f"{prefix}{str(max(int(s) for s in suffixes) + 1).zfill(width)}"


# PUBLIC_INTERFACE
def copy_code(code: str, taken: Collection[str]) -> str:
    """Return `<code>-COPY`, or `<code>-COPY2`, `-COPY3`... when taken."""
    candidate = f"{code}-COPY"
    n = 2
    while candidate in taken:
        candidate = f"{code}-COPY{n}"
        n += 1
    return candidate


class CatalogService(BaseService, Generic[ModelT]):
    """
    CRUD orchestration shared by simple catalog entities.

    Subclasses declare the repository, a human label for messages and the
    fields that must be unique within the tenant. `prepare()` is the hook for
    derived values and cross-field checks; it runs on create and update.
    """

    repository_cls: ClassVar[Type[TenantRepository]]
    entity_label: ClassVar[str] = "Record"
    unique_fields: ClassVar[Tuple[str, ...]] = ("code",)
    # Unique fields other than code that duplicate() must also make unique.
    copy_suffixed_fields: ClassVar[Tuple[str, ...]] = ()
    # Fields reset to their defaults on a copy.
    copy_reset: ClassVar[Dict[str, Any]] = {}

    def __init__(self, session: AsyncSession) -> None:
        super().__init__(session)
        self.repo = self.repository_cls(session)

    def duplicate_message(self, field: str, value: Any) -> str:
        return f"{self.entity_label} with {field.replace('_', ' ')} '{value}' already exists"

    async def prepare(self, values: Dict[str, Any], existing: Optional[ModelT] = None) -> Dict[str, Any]:
        return values

    async def ensure_unique(self, values: Dict[str, Any], exclude_id: Optional[UUID] = None) -> None:
        for field in self.unique_fields:
            value = values.get(field)
            if value is None:
                continue
            if await self.repo.exists(field, value, exclude_id=exclude_id):
                raise DuplicateError(self.duplicate_message(field, value), details={"field": field, "value": value})

    async def _persist(self, write, values: Dict[str, Any]) -> ModelT:
        try:
            return await write()
        except IntegrityError as exc:
            await self.session.rollback()
            if not is_unique_violation(exc):
                raise
            # Concurrent writer won the race on a unique constraint.
            raise DuplicateError(
                f"{self.entity_label} violates a uniqueness constraint",
                details={"fields": [f for f in self.unique_fields if f in values]},
            ) from exc

    # PUBLIC_INTERFACE
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
        """Return one page of records plus the total count."""
        return await self.repo.list(
            page=page, limit=limit, search=search, active=active, sort_by=sort_by, sort_order=sort_order
        )

    # PUBLIC_INTERFACE
    async def get(self, entity_id: UUID) -> ModelT:
        """Return the record or raise NotFoundError."""
        row = await self.repo.get(entity_id)
        if row is None:
            raise NotFoundError.for_entity(self.entity_label, entity_id)
        return row

    # PUBLIC_INTERFACE
    async def create(self, values: Dict[str, Any]) -> ModelT:
        """Create a record after uniqueness checks."""
        values = await self.prepare(dict(values))
        await self.ensure_unique(values)
        row = await self._persist(lambda: self.repo.create(**values), values)
        logger.info("%s %s created", self.entity_label, getattr(row, "code", row.id))
        return row

    # PUBLIC_INTERFACE
    async def update(self, entity_id: UUID, values: Dict[str, Any]) -> ModelT:
        """Apply a partial update; unique fields are re-checked against other records."""
        row = await self.get(entity_id)
        self.repo.check_not_null(values)
        values = await self.prepare(dict(values), row)
        await self.ensure_unique(values, exclude_id=row.id)
        return await self._persist(lambda: self.repo.update(row, values), values)

    async def before_delete(self, row: ModelT, batch: Collection[UUID] = ()) -> None:
        """Veto a delete; `batch` holds the ids removed in the same call."""
        return None

    # PUBLIC_INTERFACE
    async def delete(self, entity_id: UUID) -> None:
        row = await self.get(entity_id)
        await self.before_delete(row)
        await self.repo.delete(row)
        logger.info("%s %s deleted", self.entity_label, entity_id)

    # PUBLIC_INTERFACE
    async def bulk_delete(self, ids: Sequence[UUID]) -> int:
        """Delete every listed record of the tenant; returns the number removed."""
        batch = set(ids)
        for entity_id in batch:
            row = await self.repo.get(entity_id)
            if row is not None:
                await self.before_delete(row, batch)
        deleted = await self.repo.bulk_delete(ids)
        logger.info("%s bulk delete removed %d of %d", self.entity_label, deleted, len(ids))
        return deleted

    # PUBLIC_INTERFACE
    async def change_status(self, entity_id: UUID, active: bool) -> ModelT:
        row = await self.get(entity_id)
        return await self.repo.update(row, {"active": active})

    # PUBLIC_INTERFACE
    async def suggest_code(self, prefix: str) -> str:
        return suggest_code(prefix, await self.repo.codes_with_prefix(prefix))

    def copy_values(self, row: ModelT) -> Dict[str, Any]:
        values = {
            col.key: getattr(row, col.key)
            for col in row.__table__.columns  # type: ignore[attr-defined]
            if col.key not in _SYSTEM_COLUMNS
        }
        values.update(self.copy_reset)
        return values

    # PUBLIC_INTERFACE
    async def duplicate(self, entity_id: UUID) -> ModelT:
        """Copy a record under `<code>-COPY[n]` with ' (copy)' appended to its name."""
        row = await self.get(entity_id)
        values = self.copy_values(row)
        values["code"] = copy_code(row.code, set(await self.repo.codes_with_prefix(f"{row.code}-COPY")))
        if "name" in values and values["name"]:
            values["name"] = f"{values['name']} (copy)"
        for field in self.copy_suffixed_fields:
            if not values.get(field):
                continue
            if field == "name":
                values["name"] = await self._free_name(values["name"])
            else:
                taken = set(await self.repo.codes_with_prefix(f"{values[field]}-COPY", field))
                values[field] = copy_code(values[field], taken)
        return await self.create(values)

    async def _free_name(self, name: str) -> str:
        candidate, n = name, 2
        while await self.repo.exists("name", candidate):
            candidate = f"{name} {n}"
            n += 1
        return candidate


class PreparationZoneService(CatalogService[PreparationZone]):
    """Kitchen preparation zones; code and name are both unique."""

    repository_cls = PreparationZoneRepository
    entity_label = "Preparation zone"
    unique_fields = ("code", "name")
    copy_suffixed_fields = ("name",)

    async def list_active(self) -> List[PreparationZone]:
        return await self.repo.list_active()


class ProductFamilyService(CatalogService[ProductFamily]):
    """Hierarchical product families."""

    repository_cls = ProductFamilyRepository
    entity_label = "Product family"

    async def prepare(self, values, existing=None):
        parent_id = values.get("parent_id")
        if parent_id is None:
            return values
        if existing is not None and parent_id == existing.id:
            raise BusinessRuleError("A family cannot be its own parent", details={"parent_id": str(parent_id)})
        parent = await self.repo.get(parent_id)
        if parent is None:
            raise NotFoundError.for_entity("Parent family", parent_id)
        if existing is not None:
            # Walk up from the new parent; reaching the family itself means a cycle.
            seen = {parent.id}
            cursor = parent
            while cursor.parent_id is not None:
                if cursor.parent_id == existing.id:
                    raise BusinessRuleError("A family cannot be moved under one of its descendants")
                if cursor.parent_id in seen:
                    break
                seen.add(cursor.parent_id)
                cursor = await self.repo.get(cursor.parent_id)
                if cursor is None:
                    break
        return values

    async def before_delete(self, row: ProductFamily, batch: Collection[UUID] = ()) -> None:
        if await self.repo.count_children(row.id, excluding=batch):
            raise BusinessRuleError(
                f"Product family {row.code} has subfamilies and cannot be deleted",
                details={"id": str(row.id)},
            )

    # PUBLIC_INTERFACE
    async def tree(self) -> List[dict]:
        """Families nested under their parents; orphans surface as roots."""
        rows = await self.repo.list_all()
        nodes = {
            r.id: {"id": r.id, "code": r.code, "name": r.name, "active": r.active, "children": []}
            for r in rows
        }
        roots: List[dict] = []
        for r in rows:
            node = nodes[r.id]
            parent = nodes.get(r.parent_id) if r.parent_id else None
            (parent["children"] if parent is not None else roots).append(node)
        return roots


class PaymentMethodService(CatalogService[PaymentMethod]):
    repository_cls = PaymentMethodRepository
    entity_label = "Payment method"
