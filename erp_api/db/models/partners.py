from __future__ import annotations

from typing import Optional
from uuid import UUID

from sqlalchemy import Boolean, Integer, Text, UniqueConstraint, Uuid, true
from sqlalchemy.orm import Mapped, mapped_column

from erp_api.db.base import Amount, Base, JSONType, TenantMixin, TimestampMixin, UUIDPkMixin


class Supplier(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Supplier/vendor master."""
    __tablename__ = "suppliers"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_suppliers_tenant_code"),
        UniqueConstraint("tenant_id", "tax_id", name="uq_suppliers_tenant_tax_id"),
    )

    code: Mapped[str] = mapped_column(Text, nullable=False)
    supplier_type: Mapped[str] = mapped_column(Text, nullable=False, default="company")
    name: Mapped[str] = mapped_column(Text, nullable=False)
    trade_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tax_id: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    mobile: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    website: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    payment_method_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    payment_days: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    general_discount: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    rating: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    avg_delivery_days: Mapped[Optional[float]] = mapped_column(Amount, nullable=True)
    reliability: Mapped[Optional[float]] = mapped_column(Amount, nullable=True)
    iban: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tags: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())


class SalesAgent(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Commercial agent earning commission on sales."""
    __tablename__ = "sales_agents"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_sales_agents_tenant_code"),
    )

    code: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    surname: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    tax_id: Mapped[Optional[str]] = mapped_column(Text, nullable=True, index=True)
    agent_type: Mapped[str] = mapped_column(Text, nullable=False, default="internal")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="active")
    email: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    phone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    commission_percent: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    sales_target: Mapped[Optional[float]] = mapped_column(Amount, nullable=True)
    total_sales: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    accumulated_commission: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    zone: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
