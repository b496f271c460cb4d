from __future__ import annotations

import datetime as dt
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field


class StockMovementType(str, Enum):
    purchase_receipt = "purchase_receipt"
    customer_return = "customer_return"
    positive_adjustment = "positive_adjustment"
    transfer_in = "transfer_in"
    opening_balance = "opening_balance"
    production_in = "production_in"
    sale_issue = "sale_issue"
    supplier_return = "supplier_return"
    negative_adjustment = "negative_adjustment"
    transfer_out = "transfer_out"
    shrinkage = "shrinkage"
    production_out = "production_out"
    regularization = "regularization"


class StockOrigin(str, Enum):
    sales_delivery = "sales_delivery"
    purchase_delivery = "purchase_delivery"
    sales_order = "sales_order"
    purchase_order = "purchase_order"
    sales_invoice = "sales_invoice"
    purchase_invoice = "purchase_invoice"
    manual_adjustment = "manual_adjustment"
    transfer = "transfer"
    inventory = "inventory"
    return_ = "return"
    production = "production"


class StockMovementCreate(BaseModel):
    """Register a stock movement; before/after balances are computed."""
    product_id: UUID
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    sku: Optional[str] = None
    variant_id: Optional[UUID] = None
    warehouse_id: UUID
    warehouse_name: Optional[str] = None
    destination_warehouse_id: Optional[UUID] = None
    movement_type: StockMovementType
    origin: StockOrigin = StockOrigin.manual_adjustment
    document_id: Optional[UUID] = None
    document_number: Optional[str] = None
    counterparty_type: Optional[str] = None
    counterparty_id: Optional[UUID] = None
    counterparty_name: Optional[str] = None
    quantity: float = Field(..., ge=0, description="Units moved, or the target stock for regularizations")
    unit_price: float = Field(0, ge=0)
    unit_cost: float = Field(0, ge=0)
    lot: Optional[str] = None
    serial_number: Optional[str] = None
    expiry_date: Optional[dt.date] = None
    location: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    date: Optional[dt.datetime] = Field(None, description="Defaults to now")
    allow_negative: bool = Field(True, description="Reject outbound movements that would leave negative stock when false")


class StockMovementRead(BaseModel):
    """Stock ledger entry."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    product_id: UUID
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    sku: Optional[str] = None
    variant_id: Optional[UUID] = None
    warehouse_id: UUID
    warehouse_name: Optional[str] = None
    destination_warehouse_id: Optional[UUID] = None
    movement_type: StockMovementType
    origin: StockOrigin
    document_id: Optional[UUID] = None
    document_number: Optional[str] = None
    counterparty_type: Optional[str] = None
    counterparty_id: Optional[UUID] = None
    counterparty_name: Optional[str] = None
    quantity: float
    stock_before: float
    stock_after: float
    unit_price: float
    unit_cost: float
    movement_value: float
    lot: Optional[str] = None
    serial_number: Optional[str] = None
    expiry_date: Optional[dt.date] = None
    location: Optional[str] = None
    reason: Optional[str] = None
    notes: Optional[str] = None
    user_id: Optional[UUID] = None
    date: dt.datetime
    annulled: bool
    annulled_at: Optional[dt.datetime] = None
    annul_reason: Optional[str] = None
    reverses_id: Optional[UUID] = None
    created_at: dt.datetime
    updated_at: dt.datetime


class StockAnnulResult(BaseModel):
    """Annulled movement and the inverse movement registered for it."""
    annulled: StockMovementRead
    reversal: StockMovementRead


class StockInfo(BaseModel):
    product_id: UUID
    warehouse_id: UUID
    stock: float
    last_cost: float
    average_cost: float


class ValuationRow(BaseModel):
    product_id: UUID
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    warehouse_id: UUID
    stock: float
    average_cost: float
    value: float


class StockValuation(BaseModel):
    rows: List[ValuationRow] = Field(default_factory=list)
    total_value: float = 0
