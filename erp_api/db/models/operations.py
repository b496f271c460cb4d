from __future__ import annotations

import datetime as dt
from typing import Optional
from uuid import UUID

from sqlalchemy import Boolean, Date, Text, UniqueConstraint, Uuid, true
from sqlalchemy.orm import Mapped, mapped_column

from erp_api.db.base import Amount, Base, JSONType, TenantMixin, TimestampMixin, UUIDPkMixin


class WorkOrder(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """
    Field work order (installation, repair, maintenance ...).

    Staff, material, machinery, transport and expense lines are stored as JSON
    lists; the totals columns are recomputed from them on every write.
    """
    __tablename__ = "work_orders"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_work_orders_tenant_code"),
    )

    code: Mapped[str] = mapped_column(Text, nullable=False)
    series: Mapped[str] = mapped_column(Text, nullable=False, default="PT")
    title: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    work_order_type: Mapped[str] = mapped_column(Text, nullable=False, default="service")
    status: Mapped[str] = mapped_column(Text, nullable=False, default="draft")
    priority: Mapped[str] = mapped_column(Text, nullable=False, default="medium")

    customer_id: Mapped[Optional[UUID]] = mapped_column(Uuid(as_uuid=True), nullable=True)
    customer_name: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    address: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    date: Mapped[dt.date] = mapped_column(Date, nullable=False, index=True)
    start_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True, index=True)
    end_date: Mapped[Optional[dt.date]] = mapped_column(Date, nullable=True)
    start_time: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    end_time: Mapped[Optional[str]] = mapped_column(Text, nullable=True)

    staff_lines: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    material_lines: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    machinery_lines: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    transport_lines: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    expense_lines: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)

    discount_percent: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    discount_amount: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    totals: Mapped[dict] = mapped_column(JSONType, nullable=False, default=dict)
    total_sale: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    total_cost: Mapped[float] = mapped_column(Amount, nullable=False, default=0)

    notes: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
