from __future__ import annotations

from datetime import date
from typing import Optional
from uuid import UUID

from sqlalchemy import Boolean, Date, ForeignKey, Integer, Text, UniqueConstraint, Uuid, false, true
from sqlalchemy.orm import Mapped, mapped_column

from erp_api.db.base import Amount, Base, JSONType, TenantMixin, TimestampMixin, UUIDPkMixin


class PreparationZone(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Kitchen preparation station routed to a KDS screen."""
    __tablename__ = "preparation_zones"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_preparation_zones_tenant_code"),
        UniqueConstraint("tenant_id", "name", name="uq_preparation_zones_tenant_name"),
    )

    code: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    color: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    avg_preparation_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=15)
    notify_delay: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    alert_after_minutes: Mapped[int] = mapped_column(Integer, nullable=False, default=10)
    printer_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    kds: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())


class ProductFamily(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Hierarchical product family."""
    __tablename__ = "product_families"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_product_families_tenant_code"),
    )

    code: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    short_description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    parent_id: Mapped[Optional[UUID]] = mapped_column(
        Uuid(as_uuid=True), ForeignKey("product_families.id", ondelete="SET NULL"), nullable=True
    )
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    use_in_pos: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
    pos_position: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    color: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())


class PaymentMethod(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Payment method offered to customers (cash, card, transfer, ...)."""
    __tablename__ = "payment_methods"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_payment_methods_tenant_code"),
    )

    code: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    method_type: Mapped[str] = mapped_column(Text, nullable=False, default="cash")
    commission_percent: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    requires_bank_details: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False, server_default=false())
    color: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    icon: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())


class PriceList(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Pricing plan; per-product overrides live in the `lines` JSON list."""
    __tablename__ = "price_lists"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_price_lists_tenant_code"),
    )

    code: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    list_type: Mapped[str] = mapped_column(Text, nullable=False, default="fixed")
    price_base: Mapped[str] = mapped_column(Text, nullable=False, default="sale")
    general_percent: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    valid_from: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    valid_to: Mapped[Optional[date]] = mapped_column(Date, nullable=True)
    priority: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    lines: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
