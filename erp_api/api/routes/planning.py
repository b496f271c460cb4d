from __future__ import annotations

from datetime import date
from typing import Optional

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from erp_api.api.routes.crud import view_access
from erp_api.core.deps import get_tenant_session
from erp_api.schemas.operations import CalendarView, PlanningCalendar, WorkOrderType
from erp_api.services.work_orders import WorkOrderService

router = APIRouter(prefix="/planning", tags=["Planning"])


# PUBLIC_INTERFACE
@router.get(
    "/calendar",
    response_model=PlanningCalendar,
    summary="Work order planning calendar",
    description=(
        "Open work orders (draft, planned, in progress, paused) bucketed per day over the week "
        "(Monday to Sunday) or month containing `date`."
    ),
    dependencies=view_access("operations"),
)
async def planning_calendar(
    view: CalendarView = Query(CalendarView.week),
    anchor: Optional[date] = Query(None, alias="date", description="Any day inside the range; defaults to today"),
    work_order_type: Optional[WorkOrderType] = Query(None),
    employee: Optional[str] = Query(None, description="Employee id or name"),
    session: AsyncSession = Depends(get_tenant_session),
) -> PlanningCalendar:
    result = await WorkOrderService(session).calendar(
        view=view.value,
        anchor=anchor or date.today(),
        work_order_type=work_order_type.value if work_order_type else None,
        employee=employee,
    )
    return PlanningCalendar.model_validate(result)
