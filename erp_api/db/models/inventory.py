from __future__ import annotations

import datetime as dt
from typing import Optional
from uuid import UUID

from sqlalchemy import Boolean, Date, DateTime, Index, Text, Uuid, false
from sqlalchemy.orm import Mapped, mapped_column

from erp_api.db.base import Amount, Base, TenantMixin, TimestampMixin, UUIDPkMixin


class StockMovement(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """
    Immutable stock ledger entry for a product in a warehouse.

    stock_before/stock_after snapshot the running balance, so the current stock
    is the stock_after of the latest non-annulled entry.
    """
    __tablename__ = "stock_movements"
    __table_args__ = (
        Index("ix_stock_movements_product_warehouse", "tenant_id", "product_id", "warehouse_id"),
    )

    product_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    product_code: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    product_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sku: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    variant_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    warehouse_id: Mapped[UUID] = mapped_column(Uuid(as_uuid=True), nullable=False)
    warehouse_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    destination_warehouse_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)

    movement_type: Mapped[str] = mapped_column(Text, nullable=False)
    origin: Mapped[str] = mapped_column(Text, nullable=False, default="manual_adjustment")
    document_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    document_number: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    counterparty_type: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    counterparty_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    counterparty_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    quantity: Mapped[float] = mapped_column(Amount, nullable=False)
    stock_before: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    stock_after: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    unit_price: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    unit_cost: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    movement_value: Mapped[float] = mapped_column(Amount, nullable=False, default=0)

    lot: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    serial_number: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    expiry_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    location: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    user_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    date: Mapped[dt.datetime] = mapped_column(DateTime(timezone=True), nullable=False)

    annulled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    annulled_at: Mapped[Optional[dt.datetime]] = mapped_column(DateTime(timezone=True), nullable=True)
    annul_reason: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    reverses_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
