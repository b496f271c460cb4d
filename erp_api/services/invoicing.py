from __future__ import annotations

import logging
from datetime import date
from typing import Any, Dict, Iterable, List, Optional, Tuple
from uuid import UUID

from sqlalchemy.exc import IntegrityError

from erp_api.core.errors import BusinessRuleError, DuplicateError, InvalidStateError, NotFoundError
from erp_api.db.base import utcnow
from erp_api.db.models.billing import Invoice
from erp_api.repositories.base import is_unique_violation
from erp_api.repositories.billing import InvoiceRepository
from erp_api.services.base import BaseService, round2

logger = logging.getLogger(__name__)

DEFAULT_SERIES = "FAC"
CORRECTIVE_SERIES = "R"
ZERO_KINDS = ("text", "subtotal")
HEADER_FIELDS = (
    "customer_id", "customer_name", "customer_tax_id", "customer_address",
    "discount_percent", "withholding_percent", "notes",
)


# PUBLIC_INTERFACE
def compute_line(line: Dict[str, Any]) -> Dict[str, Any]:
    """
    Amounts of a single invoice line.

    Text and subtotal lines carry no amounts. Margin percent is measured on
    the unit cost and is 0 when there is no cost.
    """
    out = dict(line)
    if out.get("kind") in ZERO_KINDS:
        out.update(
            quantity=0, unit_price=0, gross=0, discount_amount=0, subtotal=0,
            tax=0, total=0, cost=0, unit_margin=0, margin_percent=0,
        )
        return out
    qty = float(out.get("quantity") or 0)
    price = float(out.get("unit_price") or 0)
    disc = float(out.get("discount_percent") or 0)
    rate = float(out.get("tax_rate") if out.get("tax_rate") is not None else 21)
    unit_cost = float(out.get("unit_cost") or 0)

    gross = qty * price
    discount_amount = gross * disc / 100
    subtotal = gross - discount_amount
    tax = subtotal * rate / 100
    unit_margin = price * (1 - disc / 100) - unit_cost
    out.update(
        tax_rate=rate,
        gross=round2(gross),
        discount_amount=round2(discount_amount),
        subtotal=round2(subtotal),
        tax=round2(tax),
        total=round2(subtotal + tax),
        cost=round2(qty * unit_cost),
        unit_margin=round2(unit_margin),
        margin_percent=round2(unit_margin / unit_cost * 100) if unit_cost > 0 else 0.0,
    )
    return out


# PUBLIC_INTERFACE
def compute_totals(
    lines: Iterable[Dict[str, Any]], discount_percent: float = 0, withholding_percent: float = 0
) -> Tuple[Dict[str, float], List[Dict[str, float]]]:
    """
    Invoice totals and tax breakdown over the lines included in the total.

    The global discount applies to the net subtotal and scales every tax
    bucket; withholding is taken from the discounted base.
    """
    gross = line_discounts = total_cost = 0.0
    by_rate: Dict[float, Dict[str, float]] = {}
    for ln in lines:
        if not ln.get("included_in_total", True):
            continue
        gross += float(ln.get("gross") or 0)
        line_discounts += float(ln.get("discount_amount") or 0)
        total_cost += float(ln.get("cost") or 0)
        if ln.get("kind") in ZERO_KINDS:
            continue
        bucket = by_rate.setdefault(float(ln.get("tax_rate") or 0), {"base": 0.0, "tax": 0.0})
        bucket["base"] += float(ln.get("subtotal") or 0)
        bucket["tax"] += float(ln.get("tax") or 0)

    net = gross - line_discounts
    global_discount = net * float(discount_percent or 0) / 100
    taxable_base = net - global_discount
    factor = 1 - float(discount_percent or 0) / 100
    breakdown = [
        {"rate": rate, "base": round2(v["base"] * factor), "tax": round2(v["tax"] * factor)}
        for rate, v in sorted(by_rate.items())
    ]
    total_tax = sum(row["tax"] for row in breakdown)
    withholding = taxable_base * float(withholding_percent or 0) / 100
    margin = taxable_base - total_cost
    totals = {
        "gross_subtotal": round2(gross),
        "line_discounts": round2(line_discounts),
        "net_subtotal": round2(net),
        "global_discount": round2(global_discount),
        "taxable_base": round2(taxable_base),
        "total_tax": round2(total_tax),
        "withholding_amount": round2(withholding),
        "total": round2(taxable_base + total_tax - withholding),
        "total_cost": round2(total_cost),
        "margin": round2(margin),
        "margin_percent": round2(margin / total_cost * 100) if total_cost > 0 else 0.0,
    }
    return totals, breakdown


def _history(invoice: Optional[Invoice], action: str, **extra: Any) -> List[Dict[str, Any]]:
    entries = list(invoice.history or []) if invoice is not None else []
    entries.append({"at": utcnow().isoformat(), "action": action, **extra})
    return entries


class InvoiceService(BaseService):
    """
    Sales invoice lifecycle.

    Drafts are freely editable. Issuing makes an invoice immutable; from then
    on it can only collect payments, be annulled or be corrected through a
    corrective invoice.
    """

    def __init__(self, session) -> None:
        super().__init__(session)
        self.repo = InvoiceRepository(session)

    async def get(self, invoice_id: UUID) -> Invoice:
        row = await self.repo.get(invoice_id)
        if row is None:
            raise NotFoundError.for_entity("Invoice", invoice_id)
        return row

    # PUBLIC_INTERFACE
    async def next_code(self, series: str, on: date) -> str:
        """{series}{year}-{seq:05d}, sequenced per series and year."""
        prefix = f"{series}{on.year}-"
        return f"{prefix}{await self.repo.next_sequence(prefix):05d}"

    def _priced(self, values: Dict[str, Any], existing: Optional[Invoice] = None) -> Dict[str, Any]:
        def pick(key: str, default: Any = 0) -> Any:
            if key in values and values[key] is not None:
                return values[key]
            return getattr(existing, key, default) if existing is not None else default

        lines = [compute_line(ln) for ln in pick("lines", [])]
        totals, breakdown = compute_totals(lines, pick("discount_percent"), pick("withholding_percent"))
        paid = float(getattr(existing, "amount_paid", 0) or 0) if existing is not None else 0.0
        values.update(
            lines=lines,
            totals=totals,
            tax_breakdown=breakdown,
            total=totals["total"],
            amount_pending=round2(max(0.0, totals["total"] - paid)),
        )
        return values

    async def _insert(self, values: Dict[str, Any]) -> Invoice:
        if await self.repo.exists("code", values["code"]):
            raise DuplicateError(f"Invoice with code '{values['code']}' already exists")
        try:
            return await self.repo.create(**values)
        except IntegrityError as exc:
            await self.session.rollback()
            if not is_unique_violation(exc):
                raise
            raise DuplicateError(f"Invoice with code '{values['code']}' already exists") from exc

    # PUBLIC_INTERFACE
    async def list(self, *, page: int, limit: int, sort_by: Optional[str] = None, sort_order: str = "desc", **filters):
        stmt = self.repo.filtered(**filters)
        if sort_by in self.repo.sortable:
            stmt = self.repo.apply_order(stmt, sort_by, sort_order)
        else:
            stmt = stmt.order_by(Invoice.issue_date.desc(), Invoice.code.desc())
        return await self.repo.paginate(stmt, page=page, limit=limit)

    # PUBLIC_INTERFACE
    async def create(self, values: Dict[str, Any]) -> Invoice:
        """Create a draft invoice; the code is generated from the series unless given."""
        values = dict(values)
        series = values.pop("series", None) or DEFAULT_SERIES
        issue_date = values.get("issue_date") or date.today()
        code = values.pop("code", None) or await self.next_code(series, issue_date)
        values.update(
            series=series, code=code, issue_date=issue_date, status="draft", immutable=False,
            payments=[], amount_paid=0, history=_history(None, "created"),
        )
        row = await self._insert(self._priced(values))
        logger.info("Invoice %s created for %s (total %.2f)", row.code, row.customer_name, row.total)
        return row

    # PUBLIC_INTERFACE
    async def update(self, invoice_id: UUID, values: Dict[str, Any]) -> Invoice:
        row = await self.get(invoice_id)
        if row.immutable or row.status != "draft":
            raise InvalidStateError("Only draft invoices can be modified", details={"status": row.status})
        self.repo.check_not_null(values)
        values = self._priced(dict(values), row)
        values["history"] = _history(row, "updated")
        return await self.repo.update(row, values)

    # PUBLIC_INTERFACE
    async def issue(self, invoice_id: UUID) -> Invoice:
        row = await self.get(invoice_id)
        if row.status != "draft":
            raise InvalidStateError("Only draft invoices can be issued", details={"status": row.status})
        if not row.lines:
            raise BusinessRuleError("An invoice needs at least one line to be issued")
        row = await self.repo.update(
            row,
            {"status": "issued", "immutable": True, "issued_at": utcnow(), "history": _history(row, "issued")},
        )
        logger.info("Invoice %s issued (total %.2f)", row.code, row.total)
        return row

    # PUBLIC_INTERFACE
    async def register_payment(
        self, invoice_id: UUID, amount: float, method: str, on: Optional[date] = None, reference: Optional[str] = None
    ) -> Invoice:
        row = await self.get(invoice_id)
        if row.status in ("annulled", "draft"):
            raise InvalidStateError(f"Cannot register payments on a {row.status} invoice")
        payment = {"date": (on or date.today()).isoformat(), "amount": round2(amount), "method": method, "reference": reference}
        payments = [*(row.payments or []), payment]
        paid = round2(sum(float(p["amount"]) for p in payments))
        pending = round2(max(0.0, float(row.total) - paid))
        row = await self.repo.update(
            row,
            {
                "payments": payments,
                "amount_paid": paid,
                "amount_pending": pending,
                "status": "paid" if pending <= 0 else "partially_paid",
                "history": _history(row, "payment", amount=round2(amount)),
            },
        )
        logger.info("Invoice %s collected %.2f (pending %.2f)", row.code, amount, pending)
        return row

    # PUBLIC_INTERFACE
    async def annul(
        self, invoice_id: UUID, reason: str, create_corrective: bool = False
    ) -> Tuple[Invoice, Optional[Invoice]]:
        """
        Annul an invoice, or correct it when it is immutable and a corrective
        invoice is requested. Returns (invoice, corrective or None).
        """
        row = await self.get(invoice_id)
        if row.status == "annulled":
            raise InvalidStateError("Invoice is already annulled")
        if row.immutable and create_corrective:
            corrective = await self.create_corrective(invoice_id, reason)
            return await self.get(invoice_id), corrective
        row = await self.repo.update(
            row,
            {"status": "annulled", "active": False, "annul_reason": reason, "history": _history(row, "annulled", reason=reason)},
        )
        logger.info("Invoice %s annulled: %s", row.code, reason)
        return row, None

    # PUBLIC_INTERFACE
    async def create_corrective(self, invoice_id: UUID, reason: str, description: Optional[str] = None) -> Invoice:
        """Draft a corrective invoice (series R) that negates the original's quantities."""
        original = await self.get(invoice_id)
        if not original.immutable:
            raise InvalidStateError("Only issued invoices can be corrected; edit the draft instead")
        lines = [{**ln, "quantity": -float(ln.get("quantity") or 0)} for ln in (original.lines or [])]
        values = {field: getattr(original, field) for field in HEADER_FIELDS}
        values.update(
            series=CORRECTIVE_SERIES,
            invoice_type="corrective",
            lines=lines,
            original_invoice_id=original.id,
            corrective_reason=reason,
            notes=description or original.notes,
        )
        corrective = await self.create(values)
        await self.repo.update(
            original, {"status": "corrective", "history": _history(original, "corrected", corrective=corrective.code)}
        )
        logger.info("Invoice %s corrected by %s: %s", original.code, corrective.code, reason)
        return corrective

    # PUBLIC_INTERFACE
    async def duplicate(self, invoice_id: UUID) -> Invoice:
        """New draft with the same customer and lines; payments and issue data are dropped."""
        source = await self.get(invoice_id)
        values = {field: getattr(source, field) for field in HEADER_FIELDS}
        values.update(
            series=source.series,
            invoice_type="standard" if source.invoice_type == "corrective" else source.invoice_type,
            lines=list(source.lines or []),
        )
        return await self.create(values)

    # PUBLIC_INTERFACE
    async def delete(self, invoice_id: UUID) -> None:
        row = await self.get(invoice_id)
        if row.immutable or row.status != "draft":
            raise InvalidStateError("Only non-issued draft invoices can be deleted")
        await self.repo.delete(row)
        logger.info("Invoice %s deleted", row.code)

    # PUBLIC_INTERFACE
    async def stats(self, today: Optional[date] = None) -> Dict[str, Any]:
        by_status = await self.repo.count_by_status()
        invoiced, paid, pending = await self.repo.sums(exclude_statuses=("annulled", "draft"))
        overdue = await self.repo.count(self.repo.overdue(self.repo.base_query(), today or date.today()))
        return {
            "total": sum(by_status.values()),
            "by_status": by_status,
            "total_invoiced": round2(invoiced),
            "total_paid": round2(paid),
            "total_pending": round2(pending),
            "overdue": overdue,
        }
