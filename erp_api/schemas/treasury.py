from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class Direction(str, Enum):
    inflow = "inflow"
    outflow = "outflow"


class MovementOrigin(str, Enum):
    pos_ticket = "pos_ticket"
    invoice = "invoice"
    purchase_invoice = "purchase_invoice"
    manual = "manual"
    transfer = "transfer"
    other = "other"


class MovementMethod(str, Enum):
    cash = "cash"
    card = "card"
    transfer = "transfer"
    direct_debit = "direct_debit"
    cheque = "cheque"
    other = "other"


class BankMovementStatus(str, Enum):
    confirmed = "confirmed"
    annulled = "annulled"
    reconciled = "reconciled"


class BankMovementBase(BaseModel):
    direction: Direction
    origin: MovementOrigin = MovementOrigin.manual
    method: MovementMethod = MovementMethod.transfer
    amount: float = Field(..., gt=0, description="Always positive; the sign comes from direction")
    date: dt.date
    value_date: Optional[dt.date] = None
    concept: str = Field(..., min_length=1)
    bank_account: Optional[str] = None
    counterparty_type: Optional[str] = Field(None, description="customer | supplier | employee | other")
    counterparty_id: Optional[UUID] = None
    counterparty_name: Optional[str] = None
    counterparty_tax_id: Optional[str] = None
    source_document_type: Optional[str] = None
    source_document_id: Optional[UUID] = None
    source_document_number: Optional[str] = None
    bank_reference: Optional[str] = None
    payment_method_id: Optional[UUID] = None


class BankMovementCreate(BankMovementBase):
    """Create bank movement payload; the number is generated."""


class BankMovementUpdate(BaseModel):
    """Partial update of a confirmed, unreconciled movement."""
    direction: Optional[Direction] = None
    origin: Optional[MovementOrigin] = None
    method: Optional[MovementMethod] = None
    amount: Optional[float] = Field(None, gt=0)
    date: Optional[dt.date] = None
    value_date: Optional[dt.date] = None
    concept: Optional[str] = Field(None, min_length=1)
    bank_account: Optional[str] = None
    counterparty_type: Optional[str] = None
    counterparty_id: Optional[UUID] = None
    counterparty_name: Optional[str] = None
    counterparty_tax_id: Optional[str] = None
    source_document_type: Optional[str] = None
    source_document_id: Optional[UUID] = None
    source_document_number: Optional[str] = None
    bank_reference: Optional[str] = None
    payment_method_id: Optional[UUID] = None


class BankMovementRead(BankMovementBase):
    """Bank movement read model."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    number: str
    status: BankMovementStatus
    reconciled: bool
    reconciled_at: Optional[dt.datetime] = None
    annulled_at: Optional[dt.datetime] = None
    annul_reason: Optional[str] = None
    active: bool
    created_at: dt.datetime
    updated_at: dt.datetime


class AnnulRequest(BaseModel):
    reason: str = Field(..., min_length=1, description="Why the record is annulled")


class FlowTotals(BaseModel):
    inflows: float = 0
    outflows: float = 0
    count: int = 0


class DailyFlow(BaseModel):
    date: dt.date
    inflows: float = 0
    outflows: float = 0


class BankMovementStats(BaseModel):
    """Aggregates over non-annulled movements."""
    total_inflows: float
    total_outflows: float
    net_balance: float
    by_method: Dict[str, FlowTotals] = Field(default_factory=dict)
    by_origin: Dict[str, FlowTotals] = Field(default_factory=dict)
    daily: List[DailyFlow] = Field(default_factory=list)
