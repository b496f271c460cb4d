from __future__ import annotations

import logging
from datetime import date, timedelta
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from erp_api.core.errors import DuplicateError, InvalidStateError, NotFoundError
from erp_api.db.base import utcnow
from erp_api.db.models.treasury import BankMovement
from erp_api.repositories.base import is_unique_violation
from erp_api.repositories.treasury import BankMovementRepository
from erp_api.services.base import BaseService, round2

logger = logging.getLogger(__name__)

DAILY_WINDOW_DAYS = 30


def movement_prefix(year: int) -> str:
    return f"MOV-{year}-"


class BankMovementService(BaseService):
    """Bank and till movements with annulment and reconciliation."""

    def __init__(self, session) -> None:
        super().__init__(session)
        self.repo = BankMovementRepository(session)

    async def get(self, movement_id: UUID) -> BankMovement:
        row = await self.repo.get(movement_id)
        if row is None:
            raise NotFoundError.for_entity("Bank movement", movement_id)
        return row

    # PUBLIC_INTERFACE
    async def next_number(self, on: date) -> str:
        """MOV-{year}-{seq:05d}; the sequence restarts every year."""
        prefix = movement_prefix(on.year)
        seq = await self.repo.next_sequence(prefix, "number")
        return f"{prefix}{seq:05d}"

    # PUBLIC_INTERFACE
    async def list(
        self,
        *,
        page: int,
        limit: int,
        sort_by: Optional[str] = None,
        sort_order: str = "desc",
        **filters: Any,
    ) -> Tuple[List[BankMovement], int]:
        stmt = self.repo.filtered(**filters)
        if sort_by in self.repo.sortable:
            stmt = self.repo.apply_order(stmt, sort_by, sort_order)
        else:
            stmt = stmt.order_by(BankMovement.date.desc(), BankMovement.number.desc())
        return await self.repo.paginate(stmt, page=page, limit=limit)

    # PUBLIC_INTERFACE
    async def create(self, values: Dict[str, Any]) -> BankMovement:
        number = await self.next_number(values["date"])
        try:
            row = await self.repo.create(number=number, status="confirmed", reconciled=False, **values)
        except IntegrityError as exc:
            await self.session.rollback()
            if not is_unique_violation(exc):
                raise
            raise DuplicateError(f"Bank movement number {number} is already taken, retry") from exc
        logger.info("Bank movement %s created: %s %.2f", row.number, row.direction, row.amount)
        return row

    # PUBLIC_INTERFACE
    async def update(self, movement_id: UUID, values: Dict[str, Any]) -> BankMovement:
        row = await self.get(movement_id)
        if row.status != "confirmed" or row.reconciled:
            raise InvalidStateError(
                "Only confirmed, unreconciled movements can be edited", details={"status": row.status}
            )
        return await self.repo.update(row, values)

    # PUBLIC_INTERFACE
    async def annul(self, movement_id: UUID, reason: str) -> BankMovement:
        row = await self.get(movement_id)
        if row.status == "annulled":
            raise InvalidStateError("Bank movement is already annulled")
        if row.reconciled or row.status == "reconciled":
            raise InvalidStateError("A reconciled bank movement cannot be annulled")
        row = await self.repo.update(row, {"status": "annulled", "annulled_at": utcnow(), "annul_reason": reason})
        logger.info("Bank movement %s annulled: %s", row.number, reason)
        return row

    # PUBLIC_INTERFACE
    async def reconcile(self, movement_id: UUID) -> BankMovement:
        row = await self.get(movement_id)
        if row.status == "annulled":
            raise InvalidStateError("An annulled bank movement cannot be reconciled")
        row = await self.repo.update(row, {"reconciled": True, "reconciled_at": utcnow(), "status": "reconciled"})
        logger.info("Bank movement %s reconciled", row.number)
        return row

    # PUBLIC_INTERFACE
    async def delete(self, movement_id: UUID) -> None:
        row = await self.get(movement_id)
        if row.reconciled:
            raise InvalidStateError("A reconciled bank movement cannot be deleted")
        await self.repo.delete(row)

    # PUBLIC_INTERFACE
    async def stats(
        self, date_from: Optional[date] = None, date_to: Optional[date] = None, *, today: Optional[date] = None
    ) -> Dict[str, Any]:
        """
        Inflow/outflow aggregates over non-annulled movements.

        `daily` always covers the last 30 days ending today, one bucket per day.
        """
        by_method = _flows(await self.repo.totals_by("method", date_from=date_from, date_to=date_to))
        by_origin = _flows(await self.repo.totals_by("origin", date_from=date_from, date_to=date_to))
        total_in = round2(sum(v["inflows"] for v in by_method.values()))
        total_out = round2(sum(v["outflows"] for v in by_method.values()))

        today = today or date.today()
        start = today - timedelta(days=DAILY_WINDOW_DAYS - 1)
        per_day = _flows(await self.repo.totals_by("date", date_from=start, date_to=today))
        daily = []
        for offset in range(DAILY_WINDOW_DAYS):
            day = start + timedelta(days=offset)
            bucket = per_day.get(day) or per_day.get(day.isoformat()) or {}
            daily.append({"date": day, "inflows": bucket.get("inflows", 0.0), "outflows": bucket.get("outflows", 0.0)})

        return {
            "total_inflows": total_in,
            "total_outflows": total_out,
            "net_balance": round2(total_in - total_out),
            "by_method": {str(k): v for k, v in by_method.items()},
            "by_origin": {str(k): v for k, v in by_origin.items()},
            "daily": daily,
        }


def _flows(rows) -> Dict[Any, Dict[str, Any]]:
    out: Dict[Any, Dict[str, Any]] = {}
    for key, direction, amount, count in rows:
        bucket = out.setdefault(key, {"inflows": 0.0, "outflows": 0.0, "count": 0})
        field = "inflows" if direction == "inflow" else "outflows"
        bucket[field] = round2(bucket[field] + amount)
        bucket["count"] += count
    return out
