from __future__ import annotations

from typing import Optional

from sqlalchemy import Boolean, Integer, Text, UniqueConstraint, true
from sqlalchemy.orm import Mapped, mapped_column

from erp_api.db.base import Amount, Base, JSONType, TenantMixin, TimestampMixin, UUIDPkMixin


class Shift(UUIDPkMixin, TenantMixin, TimestampMixin, Base):
    """Work shift template with clock times stored as HH:MM strings."""
    __tablename__ = "shifts"
    __table_args__ = (
        UniqueConstraint("tenant_id", "code", name="uq_shifts_tenant_code"),
    )

    code: Mapped[str] = mapped_column(Text, nullable=False)
    name: Mapped[str] = mapped_column(Text, nullable=False)
    description: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    start_time: Mapped[str] = mapped_column(Text, nullable=False)
    end_time: Mapped[str] = mapped_column(Text, nullable=False)
    break_start: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    break_end: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    break_minutes: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)
    theoretical_hours: Mapped[float] = mapped_column(Amount, nullable=False, default=0)
    weekdays: Mapped[list] = mapped_column(JSONType, nullable=False, default=list)
    color: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True, server_default=true())
