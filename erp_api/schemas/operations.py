from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field

HHMM = r"^([01]\d|2[0-3]):[0-5]\d$"


class WorkOrderStatus(str, Enum):
    draft = "draft"
    planned = "planned"
    in_progress = "in_progress"
    paused = "paused"
    completed = "completed"
    invoiced = "invoiced"
    annulled = "annulled"


class WorkOrderType(str, Enum):
    maintenance = "maintenance"
    installation = "installation"
    repair = "repair"
    service = "service"
    project = "project"
    other = "other"


class Priority(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"
    urgent = "urgent"


class StaffLine(BaseModel):
    employee_id: Optional[UUID] = None
    employee_name: Optional[str] = None
    date: Optional[dt.date] = None
    hours: float = Field(0, ge=0)
    overtime_hours: float = Field(0, ge=0)
    cost_rate: float = Field(0, ge=0, description="Cost per hour")
    sale_rate: float = Field(0, ge=0, description="Price per hour")
    billable: bool = True


class MaterialLine(BaseModel):
    product_id: Optional[UUID] = None
    description: Optional[str] = None
    quantity: float = Field(0, ge=0)
    unit_cost: float = Field(0, ge=0)
    unit_price: float = Field(0, ge=0)
    discount_percent: float = Field(0, ge=0, le=100)
    tax_rate: float = Field(21, ge=0, le=100)
    billable: bool = True


class MachineryLine(BaseModel):
    name: str
    quantity: float = Field(0, ge=0, description="Hours or units of use")
    cost_rate: float = Field(0, ge=0)
    sale_rate: float = Field(0, ge=0)
    billable: bool = True


class TransportLine(BaseModel):
    vehicle: Optional[str] = None
    km: float = Field(0, ge=0)
    cost_per_km: float = Field(0, ge=0)
    fixed_cost: float = Field(0, ge=0)
    tolls: float = Field(0, ge=0)
    fuel: float = Field(0, ge=0)
    sale_price: float = Field(0, ge=0)
    billable: bool = True


class ExpenseLine(BaseModel):
    description: Optional[str] = None
    amount: float = Field(0, ge=0)
    margin_percent: float = Field(0, ge=0, le=100)
    billable: bool = True


class WorkOrderTotals(BaseModel):
    """Computed cost/sale figures of a work order."""
    staff_cost: float = 0
    staff_sale: float = 0
    material_cost: float = 0
    material_sale: float = 0
    machinery_cost: float = 0
    machinery_sale: float = 0
    transport_cost: float = 0
    transport_sale: float = 0
    expense_cost: float = 0
    expense_sale: float = 0
    subtotal_sale: float = 0
    global_discount: float = 0
    taxable_base: float = 0
    tax: float = 0
    total_sale: float = 0
    total_cost: float = 0
    gross_margin: float = 0
    margin_percent: float = 0


class WorkOrderBase(BaseModel):
    title: Optional[str] = None
    description: Optional[str] = None
    work_order_type: WorkOrderType = WorkOrderType.service
    priority: Priority = Priority.medium
    customer_id: Optional[UUID] = None
    customer_name: Optional[str] = None
    address: Optional[str] = None
    date: dt.date
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    start_time: Optional[str] = Field(None, pattern=HHMM)
    end_time: Optional[str] = Field(None, pattern=HHMM)
    staff_lines: List[StaffLine] = Field(default_factory=list)
    material_lines: List[MaterialLine] = Field(default_factory=list)
    machinery_lines: List[MachineryLine] = Field(default_factory=list)
    transport_lines: List[TransportLine] = Field(default_factory=list)
    expense_lines: List[ExpenseLine] = Field(default_factory=list)
    discount_percent: float = Field(0, ge=0, le=100)
    discount_amount: float = Field(0, ge=0)
    notes: Optional[str] = None


class WorkOrderCreate(WorkOrderBase):
    """Create work order payload; code and totals are generated."""
    series: str = Field("PT", min_length=1, max_length=10)
    code: Optional[str] = Field(None, description="Explicit code; generated from series when omitted")


class WorkOrderUpdate(BaseModel):
    """Partial update; totals are recomputed."""
    title: Optional[str] = None
    description: Optional[str] = None
    work_order_type: Optional[WorkOrderType] = None
    priority: Optional[Priority] = None
    customer_id: Optional[UUID] = None
    customer_name: Optional[str] = None
    address: Optional[str] = None
    date: Optional[dt.date] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None
    start_time: Optional[str] = Field(None, pattern=HHMM)
    end_time: Optional[str] = Field(None, pattern=HHMM)
    staff_lines: Optional[List[StaffLine]] = None
    material_lines: Optional[List[MaterialLine]] = None
    machinery_lines: Optional[List[MachineryLine]] = None
    transport_lines: Optional[List[TransportLine]] = None
    expense_lines: Optional[List[ExpenseLine]] = None
    discount_percent: Optional[float] = Field(None, ge=0, le=100)
    discount_amount: Optional[float] = Field(None, ge=0)
    notes: Optional[str] = None


class WorkOrderRead(WorkOrderBase):
    """Work order read model."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    series: str
    status: WorkOrderStatus
    totals: WorkOrderTotals
    total_sale: float
    total_cost: float
    active: bool
    created_at: dt.datetime
    updated_at: dt.datetime


class WorkOrderStatusChange(BaseModel):
    status: WorkOrderStatus


class CalendarView(str, Enum):
    week = "week"
    month = "month"


class CalendarEvent(BaseModel):
    id: UUID
    code: str
    title: str
    day: dt.date
    start_time: Optional[str] = None
    end_time: Optional[str] = None
    status: WorkOrderStatus
    priority: Priority
    work_order_type: WorkOrderType
    customer_name: Optional[str] = None
    employees: List[str] = Field(default_factory=list)


class PlanningCalendar(BaseModel):
    start: dt.date
    end: dt.date
    view: CalendarView
    days: Dict[str, List[CalendarEvent]] = Field(default_factory=dict)
    total: int = 0
