from __future__ import annotations

import calendar
import logging
from datetime import date, timedelta
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from erp_api.core.errors import DuplicateError, InvalidStateError, NotFoundError
from erp_api.db.models.operations import WorkOrder
from erp_api.repositories.base import is_unique_violation
from erp_api.repositories.operations import WorkOrderRepository
from erp_api.services.base import BaseService, round2

logger = logging.getLogger(__name__)

DEFAULT_SERIES = "PT"
DEFAULT_TAX_RATE = 21.0

# Allowed status moves; "annulled" is added for every non-invoiced state.
TRANSITIONS: Dict[str, set] = {
    "draft": {"planned"},
    "planned": {"in_progress"},
    "in_progress": {"paused", "completed"},
    "paused": {"in_progress", "completed"},
    "completed": {"invoiced"},
    "invoiced": set(),
    "annulled": set(),
}
LOCKED_STATUSES = ("invoiced", "annulled")
PLANNABLE_STATUSES = ("draft", "planned", "in_progress", "paused")

LINE_FIELDS = ("staff_lines", "material_lines", "machinery_lines", "transport_lines", "expense_lines")


def _f(line: Dict[str, Any], key: str) -> float:
    return float(line.get(key) or 0)


# PUBLIC_INTERFACE
def compute_totals(
    staff_lines: Iterable[Dict[str, Any]] = (),
    material_lines: Iterable[Dict[str, Any]] = (),
    machinery_lines: Iterable[Dict[str, Any]] = (),
    transport_lines: Iterable[Dict[str, Any]] = (),
    expense_lines: Iterable[Dict[str, Any]] = (),
    discount_percent: float = 0,
    discount_amount: float = 0,
) -> Dict[str, float]:
    """
    Cost and sale figures of a work order.

    Every line counts toward cost; only billable lines count toward sales.
    Materials are taxed at their own rate, everything else at 21%, and the
    tax is scaled down by the share of the global discount.
    """
    cost = {"staff": 0.0, "material": 0.0, "machinery": 0.0, "transport": 0.0, "expense": 0.0}
    sale = dict(cost)
    tax_before_discount = 0.0

    def add(kind: str, line: Dict[str, Any], line_cost: float, line_sale: float, rate: float) -> None:
        nonlocal tax_before_discount
        cost[kind] += line_cost
        if line.get("billable", True):
            sale[kind] += line_sale
            tax_before_discount += line_sale * rate / 100

    for ln in staff_lines:
        hours = _f(ln, "hours") + _f(ln, "overtime_hours")
        add("staff", ln, hours * _f(ln, "cost_rate"), hours * _f(ln, "sale_rate"), DEFAULT_TAX_RATE)
    for ln in material_lines:
        qty = _f(ln, "quantity")
        line_sale = qty * _f(ln, "unit_price") * (1 - _f(ln, "discount_percent") / 100)
        rate = float(ln["tax_rate"]) if ln.get("tax_rate") is not None else DEFAULT_TAX_RATE
        add("material", ln, qty * _f(ln, "unit_cost"), line_sale, rate)
    for ln in machinery_lines:
        qty = _f(ln, "quantity")
        add("machinery", ln, qty * _f(ln, "cost_rate"), qty * _f(ln, "sale_rate"), DEFAULT_TAX_RATE)
    for ln in transport_lines:
        line_cost = _f(ln, "km") * _f(ln, "cost_per_km") + _f(ln, "fixed_cost") + _f(ln, "tolls") + _f(ln, "fuel")
        add("transport", ln, line_cost, _f(ln, "sale_price"), DEFAULT_TAX_RATE)
    for ln in expense_lines:
        amount = _f(ln, "amount")
        add("expense", ln, amount, amount * (1 + _f(ln, "margin_percent") / 100), DEFAULT_TAX_RATE)

    subtotal_sale = sum(sale.values())
    global_discount = subtotal_sale * float(discount_percent or 0) / 100 + float(discount_amount or 0)
    taxable_base = subtotal_sale - global_discount
    tax = tax_before_discount * (taxable_base / subtotal_sale) if subtotal_sale else 0.0
    total_cost = sum(cost.values())
    gross_margin = taxable_base - total_cost

    totals = {f"{kind}_cost": round2(value) for kind, value in cost.items()}
    totals.update({f"{kind}_sale": round2(value) for kind, value in sale.items()})
    totals.update(
        subtotal_sale=round2(subtotal_sale),
        global_discount=round2(global_discount),
        taxable_base=round2(taxable_base),
        tax=round2(tax),
        total_sale=round2(taxable_base + tax),
        total_cost=round2(total_cost),
        gross_margin=round2(gross_margin),
        margin_percent=round2(gross_margin / subtotal_sale * 100) if subtotal_sale else 0.0,
    )
    return totals


# PUBLIC_INTERFACE
def can_transition(current: str, target: str) -> bool:
    if target == "annulled":
        return current not in ("invoiced", "annulled")
    return target in TRANSITIONS.get(current, set())


# PUBLIC_INTERFACE
def calendar_range(view: str, anchor: date) -> Tuple[date, date]:
    """Monday..Sunday of the anchor's week, or first..last day of its month."""
    if view == "month":
        last = calendar.monthrange(anchor.year, anchor.month)[1]
        return anchor.replace(day=1), anchor.replace(day=last)
    start = anchor - timedelta(days=anchor.weekday())
    return start, start + timedelta(days=6)


class WorkOrderService(BaseService):
    """Work orders: costing, lifecycle and planning calendar."""

    def __init__(self, session) -> None:
        super().__init__(session)
        self.repo = WorkOrderRepository(session)

    async def get(self, order_id: UUID) -> WorkOrder:
        row = await self.repo.get(order_id)
        if row is None:
            raise NotFoundError.for_entity("Work order", order_id)
        return row

    # PUBLIC_INTERFACE
    async def next_code(self, series: str, on: date) -> str:
        """{series}{year}-{seq:05d}, sequenced per series and year."""
        prefix = f"{series}{on.year}-"
        return f"{prefix}{await self.repo.next_sequence(prefix):05d}"

    def _with_totals(self, values: Dict[str, Any], existing: Optional[WorkOrder] = None) -> Dict[str, Any]:
        source = {
            key: values[key] if key in values else getattr(existing, key, None)
            for key in (*LINE_FIELDS, "discount_percent", "discount_amount")
        }
        totals = compute_totals(**{k: (v or ([] if k in LINE_FIELDS else 0)) for k, v in source.items()})
        values["totals"] = totals
        values["total_sale"] = totals["total_sale"]
        values["total_cost"] = totals["total_cost"]
        return values

    async def _insert(self, values: Dict[str, Any]) -> WorkOrder:
        if await self.repo.exists("code", values["code"]):
            raise DuplicateError(f"Work order with code '{values['code']}' already exists")
        try:
            return await self.repo.create(**values)
        except IntegrityError as exc:
            await self.session.rollback()
            if not is_unique_violation(exc):
                raise
            raise DuplicateError(f"Work order with code '{values['code']}' already exists") from exc

    # PUBLIC_INTERFACE
    async def list(self, *, page: int, limit: int, sort_by: Optional[str] = None, sort_order: str = "desc", **filters):
        stmt = self.repo.filtered(**filters)
        if sort_by in self.repo.sortable:
            stmt = self.repo.apply_order(stmt, sort_by, sort_order)
        else:
            stmt = stmt.order_by(WorkOrder.date.desc(), WorkOrder.code.desc())
        return await self.repo.paginate(stmt, page=page, limit=limit)

    # PUBLIC_INTERFACE
    async def create(self, values: Dict[str, Any]) -> WorkOrder:
        series = values.pop("series", None) or DEFAULT_SERIES
        code = values.pop("code", None) or await self.next_code(series, values["date"])
        values = self._with_totals({**values, "series": series, "code": code, "status": "draft"})
        row = await self._insert(values)
        logger.info("Work order %s created (total %.2f)", row.code, row.total_sale)
        return row

    # PUBLIC_INTERFACE
    async def update(self, order_id: UUID, values: Dict[str, Any]) -> WorkOrder:
        row = await self.get(order_id)
        if row.status in LOCKED_STATUSES:
            raise InvalidStateError(f"Work order in status {row.status} cannot be modified")
        self.repo.check_not_null(values)
        return await self.repo.update(row, self._with_totals(dict(values), row))

    # PUBLIC_INTERFACE
    async def change_status(self, order_id: UUID, status: str) -> WorkOrder:
        row = await self.get(order_id)
        if not can_transition(row.status, status):
            raise InvalidStateError(
                f"Cannot change work order status from {row.status} to {status}",
                details={"from": row.status, "to": status},
            )
        previous = row.status
        row = await self.repo.update(row, {"status": status})
        logger.info("Work order %s moved %s -> %s", row.code, previous, status)
        return row

    # PUBLIC_INTERFACE
    async def duplicate(self, order_id: UUID) -> WorkOrder:
        """Copy an order as a new draft with a fresh code."""
        row = await self.get(order_id)
        values = {
            col.key: getattr(row, col.key)
            for col in WorkOrder.__table__.columns
            if col.key not in ("id", "tenant_id", "created_at", "updated_at", "code", "status")
        }
        values["code"] = await self.next_code(row.series, date.today())
        values["date"] = date.today()
        values["status"] = "draft"
        created = await self._insert(self._with_totals(values))
        logger.info("Work order %s duplicated as %s", row.code, created.code)
        return created

    # PUBLIC_INTERFACE
    async def delete(self, order_id: UUID) -> None:
        row = await self.get(order_id)
        if row.status == "invoiced":
            raise InvalidStateError("An invoiced work order cannot be deleted")
        await self.repo.delete(row)

    # PUBLIC_INTERFACE
    async def calendar(
        self,
        *,
        view: str,
        anchor: date,
        work_order_type: Optional[str] = None,
        employee: Optional[str] = None,
    ) -> Dict[str, Any]:
        """
        Open work orders bucketed by day over a week or month.

        Orders are found by start_date or by date within the range and merged
        by id; each lands on its start_date, falling back to date.
        """
        start, end = calendar_range(view, anchor)
        merged: Dict[UUID, WorkOrder] = {}
        for column in ("start_date", "date"):
            for row in await self.repo.in_range(column, start, end, PLANNABLE_STATUSES):
                merged.setdefault(row.id, row)

        days: Dict[str, List[Dict[str, Any]]] = {}
        cursor = start
        while cursor <= end:
            days[cursor.isoformat()] = []
            cursor += timedelta(days=1)

        total = 0
        for row in merged.values():
            if work_order_type and row.work_order_type != work_order_type:
                continue
            staff = row.staff_lines or []
            if employee and not any(
                employee in (str(s.get("employee_id") or ""), s.get("employee_name") or "") for s in staff
            ):
                continue
            day = row.start_date or row.date
            key = day.isoformat()
            if key not in days:
                continue
            names = list(dict.fromkeys(s["employee_name"] for s in staff if s.get("employee_name")))
            days[key].append(
                {
                    "id": row.id,
                    "code": row.code,
                    "title": row.title or f"Work order {row.code}",
                    "day": day,
                    "start_time": row.start_time,
                    "end_time": row.end_time,
                    "status": row.status,
                    "priority": row.priority,
                    "work_order_type": row.work_order_type,
                    "customer_name": row.customer_name,
                    "employees": names,
                }
            )
            total += 1
        for events in days.values():
            events.sort(key=lambda e: (e["start_time"] or "", e["code"]))
        return {"start": start, "end": end, "view": view, "days": days, "total": total}
