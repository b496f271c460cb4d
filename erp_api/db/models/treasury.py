from __future__ import annotations

import datetime as dt
from typing import Optional
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, Text, UniqueConstraint, Uuid, false, true
from sqlalchemy.orm import Mapped, mapped_column

from erp_api.db.base import Amount, Base, TenantMixin, TimestampMixin, UUIDPkMixin


class BankMovement(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Money in or out of a bank account or till."""
    __tablename__ = "bank_movements"
    __table_args__ = (
        UniqueConstraint("tenant_id", "number", name="uq_bank_movements_tenant_number"),
    )

    number: Mapped[str] = mapped_column(Text, nullable=False)
    direction: Mapped[str] = mapped_column(Text, nullable=False)
    origin: Mapped[str] = mapped_column(Text, nullable=False, default="manual")
    method: Mapped[str] = mapped_column(Text, nullable=False, default="transfer")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="confirmed")
    amount: Mapped[float] = mapped_column(Amount, nullable=False)
    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    value_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    concept: Mapped[str] = mapped_column(Text, nullable=False)
    bank_account: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    counterparty_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    counterparty_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    counterparty_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    counterparty_tax_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    source_document_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    source_document_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    source_document_number: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    bank_reference: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    payment_method_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)

    reconciled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    reconciled_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    annulled_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    annul_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
