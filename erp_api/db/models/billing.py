from __future__ import annotations

import datetime as dt
from typing import Optional
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, Text, UniqueConstraint, Uuid, false, true
from sqlalchemy.orm import Mapped, mapped_column

from erp_api.db.base import Amount, Base, JSONType, TenantMixin, TimestampMixin, UUIDPkMixin


class Invoice(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Sales invoice; computed lines, tax breakdown and payments are JSON lists."""
    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_invoices_tenant_code"),
    )

    code: Mapped[str] = mapped_column(Text, nullable=False)
    series: Mapped[str] = mapped_column(Text, nullable=False, default="FAC")
    invoice_type: Mapped[str] = mapped_column(Text, nullable=False, default="standard")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="draft")

    customer_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    customer_name: Mapped[str] = mapped_column(Text, nullable=False)
    customer_tax_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    customer_address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    issue_date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    due_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    issued_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)

    lines: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    discount_percent: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    withholding_percent: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    tax_breakdown: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    totals: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    total: Mapped[float] = mapped_column(Amount, nullable=False, default=0)

    payments: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    amount_paid: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    amount_pending: Mapped[float] = mapped_column(Amount, nullable=False, default=0)

    original_invoice_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    corrective_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    annul_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    history: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    immutable: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
