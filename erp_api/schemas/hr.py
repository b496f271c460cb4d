from __future__ import annotations

from datetime import datetime
from typing import Annotated, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, computed_field

HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"
Weekday = Annotated[int, Field(ge=0, le=6)]


class ShiftBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=30)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    start_time: str = Field(..., pattern=HHMM, description="Start time HH:MM")
    end_time: str = Field(..., pattern=HHMM, description="End time HH:MM; earlier than start for night shifts")
    break_start: Optional[str] = Field(None, pattern=HHMM)
    break_end: Optional[str] = Field(None, pattern=HHMM)
    break_minutes: Optional[int] = Field(None, ge=0, description="Overrides break_start/break_end when set")
    weekdays: List[Weekday] = Field(default_factory=lambda: [0, 1, 2, 3, 4], description="0 = Monday ... 6 = Sunday")
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    active: bool = True


class ShiftCreate(ShiftBase):
    """Create shift payload; theoretical hours are computed."""


class ShiftUpdate(BaseModel):
    """Partial update of a shift."""
    code: Optional[str] = Field(None, min_length=1, max_length=30)
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    start_time: Optional[str] = Field(None, pattern=HHMM)
    end_time: Optional[str] = Field(None, pattern=HHMM)
    break_start: Optional[str] = Field(None, pattern=HHMM)
    break_end: Optional[str] = Field(None, pattern=HHMM)
    break_minutes: Optional[int] = Field(None, ge=0)
    weekdays: Optional[List[Weekday]] = None
    color: Optional[str] = Field(None, pattern=r"^#[0-9A-Fa-f]{6}$")
    active: Optional[bool] = None


class ShiftRead(ShiftBase):
    """Shift read model."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    theoretical_hours: float
    created_at: datetime
    updated_at: datetime

    @computed_field  # type: ignore[misc]
    @property
    def weekly_hours(self) -> float:
        return round(self.theoretical_hours * len(self.weekdays), 2)


class ShiftPreset(BaseModel):
    """Built-in shift template."""
    code: str
    name: str
    start_time: str
    end_time: str
    break_start: Optional[str] = None
    break_end: Optional[str] = None
    weekdays: List[int]
    color: Optional[str] = None
    theoretical_hours: float
