from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class InvoiceStatus(str, Enum):
    draft = "draft"
    issued = "issued"
    sent = "sent"
    partially_paid = "partially_paid"
    paid = "paid"
    overdue = "overdue"
    unpaid = "unpaid"
    corrective = "corrective"
    annulled = "annulled"


class InvoiceType(str, Enum):
    standard = "standard"
    corrective = "corrective"
    simplified = "simplified"
    summary = "summary"
    proforma = "proforma"


class LineKind(str, Enum):
    product = "product"
    service = "service"
    kit = "kit"
    text = "text"
    subtotal = "subtotal"
    discount = "discount"


class InvoicePaymentMethod(str, Enum):
    cash = "cash"
    transfer = "transfer"
    card = "card"
    direct_debit = "direct_debit"
    cheque = "cheque"
    promissory_note = "promissory_note"
    confirming = "confirming"
    offset = "offset"


class InvoiceLineIn(BaseModel):
    """Invoice line as entered; amounts are computed."""
    kind: LineKind = LineKind.product
    product_id: Optional[UUID] = None
    code: Optional[str] = None
    description: str = ""
    quantity: float = 1
    unit_price: float = 0
    discount_percent: float = Field(0, ge=0, le=100)
    tax_rate: float = Field(21, ge=0, le=100)
    unit_cost: float = Field(0, ge=0)
    included_in_total: bool = True


class InvoiceLine(InvoiceLineIn):
    """Invoice line with computed amounts."""
    gross: float = 0
    discount_amount: float = 0
    subtotal: float = 0
    tax: float = 0
    total: float = 0
    cost: float = 0
    unit_margin: float = 0
    margin_percent: float = 0


class TaxBreakdownRow(BaseModel):
    rate: float
    base: float
    tax: float


class InvoiceTotals(BaseModel):
    gross_subtotal: float = 0
    line_discounts: float = 0
    net_subtotal: float = 0
    global_discount: float = 0
    taxable_base: float = 0
    total_tax: float = 0
    withholding_amount: float = 0
    total: float = 0
    total_cost: float = 0
    margin: float = 0
    margin_percent: float = 0


class Payment(BaseModel):
    date: dt.date
    amount: float
    method: InvoicePaymentMethod
    reference: Optional[str] = None


class InvoiceBase(BaseModel):
    customer_id: Optional[UUID] = None
    customer_name: str = Field(..., min_length=1)
    customer_tax_id: Optional[str] = None
    customer_address: Optional[str] = None
    issue_date: Optional[dt.date] = Field(None, description="Defaults to today")
    due_date: Optional[dt.date] = None
    discount_percent: float = Field(0, ge=0, le=100)
    withholding_percent: float = Field(0, ge=0, le=100)
    notes: Optional[str] = None


class InvoiceCreate(InvoiceBase):
    """Create a draft invoice."""
    series: str = Field("FAC", min_length=1, max_length=10)
    code: Optional[str] = Field(None, description="Explicit code; generated from series when omitted")
    invoice_type: InvoiceType = InvoiceType.standard
    lines: List[InvoiceLineIn] = Field(default_factory=list)


class InvoiceUpdate(BaseModel):
    """Partial update of a draft invoice."""
    customer_id: Optional[UUID] = None
    customer_name: Optional[str] = Field(None, min_length=1)
    customer_tax_id: Optional[str] = None
    customer_address: Optional[str] = None
    issue_date: Optional[dt.date] = None
    due_date: Optional[dt.date] = None
    discount_percent: Optional[float] = Field(None, ge=0, le=100)
    withholding_percent: Optional[float] = Field(None, ge=0, le=100)
    notes: Optional[str] = None
    lines: Optional[List[InvoiceLineIn]] = None


class InvoiceRead(InvoiceBase):
    """Invoice read model."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    code: str
    series: str
    invoice_type: InvoiceType
    status: InvoiceStatus
    issue_date: dt.date
    issued_at: Optional[dt.datetime] = None
    lines: List[InvoiceLine] = Field(default_factory=list)
    tax_breakdown: List[TaxBreakdownRow] = Field(default_factory=list)
    totals: InvoiceTotals
    total: float
    payments: List[Payment] = Field(default_factory=list)
    amount_paid: float
    amount_pending: float
    original_invoice_id: Optional[UUID] = None
    corrective_reason: Optional[str] = None
    annul_reason: Optional[str] = None
    immutable: bool
    active: bool
    created_at: dt.datetime
    updated_at: dt.datetime


class PaymentCreate(BaseModel):
    date: Optional[dt.date] = Field(None, description="Defaults to today")
    amount: float = Field(..., gt=0)
    method: InvoicePaymentMethod = InvoicePaymentMethod.transfer
    reference: Optional[str] = None


class InvoiceAnnulRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    create_corrective: bool = Field(False, description="Issue a corrective invoice instead of annulling when immutable")


class CorrectiveRequest(BaseModel):
    reason: str = Field(..., min_length=1)
    description: Optional[str] = None


class InvoiceAnnulResult(BaseModel):
    """Outcome of an annulment; `corrective` is set when one was created instead."""
    invoice: InvoiceRead
    corrective: Optional[InvoiceRead] = None


class InvoiceStats(BaseModel):
    total: int
    by_status: Dict[str, int] = Field(default_factory=dict)
    total_invoiced: float = 0
    total_paid: float = 0
    total_pending: float = 0
    overdue: int = 0
