from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from erp_api.db.models.hr import Shift
from erp_api.repositories.hr import ShiftRepository
from erp_api.services.catalog import CatalogService

logger = logging.getLogger(__name__)

WEEKDAYS = [0, 1, 2, 3, 4]

# Built-in shift templates offered by /shifts/presets.
PRESETS: List[Dict[str, Any]] = [
    {"code": "MORNING", "name": "Morning", "start_time": "08:00", "end_time": "15:00", "color": "#f59e0b"},
    {"code": "AFTERNOON", "name": "Afternoon", "start_time": "15:00", "end_time": "22:00", "color": "#3b82f6"},
    {"code": "NIGHT", "name": "Night", "start_time": "22:00", "end_time": "06:00", "color": "#6366f1"},
    {
        "code": "SPLIT",
        "name": "Split",
        "start_time": "09:00",
        "end_time": "18:00",
        "break_start": "14:00",
        "break_end": "15:00",
        "color": "#10b981",
    },
]


def _minutes(hhmm: str) -> int:
    hours, minutes = hhmm.split(":")
    return int(hours) * 60 + int(minutes)


# PUBLIC_INTERFACE
def theoretical_hours(
    start_time: str,
    end_time: str,
    break_start: Optional[str] = None,
    break_end: Optional[str] = None,
    break_minutes: Optional[int] = None,
) -> float:
    """
    Worked hours of a shift.

    End times at or before the start roll over midnight. The break is
    `break_minutes` when given, else break_end - break_start. Never negative.
    """
    worked = _minutes(end_time) - _minutes(start_time)
    if worked <= 0:
        worked += 24 * 60
    if break_minutes is not None:
        worked -= break_minutes
    elif break_start and break_end:
        pause = _minutes(break_end) - _minutes(break_start)
        if pause < 0:
            pause += 24 * 60
        worked -= pause
    return max(0.0, round(worked / 60, 2))


# PUBLIC_INTERFACE
def preset_definitions() -> List[Dict[str, Any]]:
    """Presets with their weekdays and computed hours."""
    presets = []
    for preset in PRESETS:
        item = {"break_start": None, "break_end": None, "weekdays": list(WEEKDAYS), **preset}
        item["theoretical_hours"] = theoretical_hours(
            item["start_time"], item["end_time"], item["break_start"], item["break_end"]
        )
        presets.append(item)
    return presets


class ShiftService(CatalogService[Shift]):
    """Shift templates; theoretical hours are derived on every write."""

    repository_cls = ShiftRepository
    entity_label = "Shift"

    async def prepare(self, values, existing=None):
        timing = ("start_time", "end_time", "break_start", "break_end", "break_minutes")
        merged = {k: values[k] if k in values else getattr(existing, k, None) for k in timing}
        if merged["start_time"] and merged["end_time"]:
            values["theoretical_hours"] = theoretical_hours(**merged)
        return values

    async def list_active(self) -> List[Shift]:
        return await self.repo.list_active()

    # PUBLIC_INTERFACE
    async def create_presets(self) -> List[Shift]:
        """Create every built-in shift whose code is not taken yet."""
        created = []
        for preset in preset_definitions():
            if await self.repo.exists("code", preset["code"]):
                continue
            created.append(await self.create(preset))
        logger.info("Created %d preset shifts", len(created))
        return created
