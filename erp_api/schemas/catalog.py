from __future__ import annotations

from datetime import date, datetime
from enum import Enum
from typing import List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, Field, model_validator

HEX_COLOR = r"^#[0-9A-Fa-f]{6}$"


# ---------------------------------------------------------------- preparation zones


class KdsSettings(BaseModel):
    """Kitchen display options for a preparation zone."""
    enabled: bool = Field(False, description="Route tickets to a KDS screen")
    show_time: bool = Field(True, description="Show elapsed time per ticket")
    show_priority: bool = Field(True, description="Highlight priority tickets")
    new_order_sound: bool = Field(True, description="Play a sound on new tickets")


class PreparationZoneBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=30, description="Unique code within the tenant")
    name: str = Field(..., min_length=1, description="Unique display name")
    description: Optional[str] = Field(None)
    color: Optional[str] = Field("#3b82f6", pattern=HEX_COLOR)
    sort_order: int = Field(0, ge=0)
    avg_preparation_minutes: int = Field(15, ge=0, description="Average preparation time in minutes")
    notify_delay: bool = Field(True, description="Raise an alert when tickets run late")
    alert_after_minutes: int = Field(10, ge=0)
    printer_id: Optional[UUID] = Field(None)
    kds: KdsSettings = Field(default_factory=KdsSettings)
    active: bool = Field(True)


class PreparationZoneCreate(PreparationZoneBase):
    """Create preparation zone payload."""


class PreparationZoneUpdate(BaseModel):
    """Partial update of a preparation zone."""
    code: Optional[str] = Field(None, min_length=1, max_length=30)
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    color: Optional[str] = Field(None, pattern=HEX_COLOR)
    sort_order: Optional[int] = Field(None, ge=0)
    avg_preparation_minutes: Optional[int] = Field(None, ge=0)
    notify_delay: Optional[bool] = None
    alert_after_minutes: Optional[int] = Field(None, ge=0)
    printer_id: Optional[UUID] = None
    kds: Optional[KdsSettings] = None
    active: Optional[bool] = None


class PreparationZoneRead(PreparationZoneBase):
    """Preparation zone read model."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------- product families


class ProductFamilyBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=30)
    name: str = Field(..., min_length=1)
    short_description: Optional[str] = Field(None, max_length=40, description="Label for POS buttons")
    description: Optional[str] = None
    parent_id: Optional[UUID] = Field(None, description="Parent family")
    sort_order: int = Field(0, ge=0)
    use_in_pos: bool = Field(True, description="Show in the point-of-sale grid")
    pos_position: Optional[int] = Field(None, ge=0)
    color: Optional[str] = Field(None, pattern=HEX_COLOR)
    active: bool = True


class ProductFamilyCreate(ProductFamilyBase):
    """Create product family payload."""


class ProductFamilyUpdate(BaseModel):
    """Partial update of a product family."""
    code: Optional[str] = Field(None, min_length=1, max_length=30)
    name: Optional[str] = Field(None, min_length=1)
    short_description: Optional[str] = Field(None, max_length=40)
    description: Optional[str] = None
    parent_id: Optional[UUID] = None
    sort_order: Optional[int] = Field(None, ge=0)
    use_in_pos: Optional[bool] = None
    pos_position: Optional[int] = Field(None, ge=0)
    color: Optional[str] = Field(None, pattern=HEX_COLOR)
    active: Optional[bool] = None


class ProductFamilyRead(ProductFamilyBase):
    """Product family read model."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


class ProductFamilyNode(BaseModel):
    """Product family with nested children."""
    id: UUID
    code: str
    name: str
    active: bool
    children: List["ProductFamilyNode"] = Field(default_factory=list)


# ---------------------------------------------------------------- payment methods


class PaymentMethodType(str, Enum):
    cash = "cash"
    card = "card"
    transfer = "transfer"
    direct_debit = "direct_debit"
    cheque = "cheque"
    promissory_note = "promissory_note"
    other = "other"


class PaymentMethodBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=30)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    method_type: PaymentMethodType = Field(PaymentMethodType.cash)
    commission_percent: float = Field(0, ge=0, le=100, description="Fee charged by the provider (%)")
    requires_bank_details: bool = False
    color: Optional[str] = Field(None, pattern=HEX_COLOR)
    icon: Optional[str] = None
    sort_order: int = Field(0, ge=0)
    active: bool = True


class PaymentMethodCreate(PaymentMethodBase):
    """Create payment method payload."""


class PaymentMethodUpdate(BaseModel):
    """Partial update of a payment method."""
    code: Optional[str] = Field(None, min_length=1, max_length=30)
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    method_type: Optional[PaymentMethodType] = None
    commission_percent: Optional[float] = Field(None, ge=0, le=100)
    requires_bank_details: Optional[bool] = None
    color: Optional[str] = Field(None, pattern=HEX_COLOR)
    icon: Optional[str] = None
    sort_order: Optional[int] = Field(None, ge=0)
    active: Optional[bool] = None


class PaymentMethodRead(PaymentMethodBase):
    """Payment method read model."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


# ---------------------------------------------------------------- price lists


class PriceListType(str, Enum):
    fixed = "fixed"
    percentage = "percentage"


class PriceBase(str, Enum):
    sale = "sale"
    retail = "retail"


class PriceListLine(BaseModel):
    """Per-product override inside a price list; either a fixed price or a discount."""
    product_id: UUID
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    price: Optional[float] = Field(None, ge=0, description="Fixed price")
    discount_percent: Optional[float] = Field(None, ge=0, le=100, description="Discount over the base price")
    active: bool = True

    @model_validator(mode="after")
    def _price_or_discount(self) -> "PriceListLine":
        if self.price is None and self.discount_percent is None:
            raise ValueError("A line needs either price or discount_percent")
        return self


class PriceListLineUpsert(BaseModel):
    """Body for upserting the line of one product."""
    product_code: Optional[str] = None
    product_name: Optional[str] = None
    price: Optional[float] = Field(None, ge=0)
    discount_percent: Optional[float] = Field(None, ge=0, le=100)
    active: bool = True


class PriceListBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=30)
    name: str = Field(..., min_length=1)
    description: Optional[str] = None
    list_type: PriceListType = PriceListType.fixed
    price_base: PriceBase = PriceBase.sale
    general_percent: float = Field(0, ge=-100, le=100, description="Discount (+) or surcharge (-) for percentage lists")
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    priority: int = Field(0, ge=0)
    lines: List[PriceListLine] = Field(default_factory=list)
    active: bool = True

    @model_validator(mode="after")
    def _valid_range(self):
        if self.valid_from and self.valid_to and self.valid_to < self.valid_from:
            raise ValueError("valid_to must not be earlier than valid_from")
        return self


class PriceListCreate(PriceListBase):
    """Create price list payload."""


class PriceListUpdate(BaseModel):
    """Partial update of a price list."""
    code: Optional[str] = Field(None, min_length=1, max_length=30)
    name: Optional[str] = Field(None, min_length=1)
    description: Optional[str] = None
    list_type: Optional[PriceListType] = None
    price_base: Optional[PriceBase] = None
    general_percent: Optional[float] = Field(None, ge=-100, le=100)
    valid_from: Optional[date] = None
    valid_to: Optional[date] = None
    priority: Optional[int] = Field(None, ge=0)
    lines: Optional[List[PriceListLine]] = None
    active: Optional[bool] = None


class PriceListRead(PriceListBase):
    """Price list read model."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


class PriceResolutionRequest(BaseModel):
    """Product prices used to resolve the price under a list."""
    product_id: UUID
    sale_price: float = Field(..., ge=0, description="Product sale price before tax")
    retail_price: Optional[float] = Field(None, ge=0, description="Tax-inclusive retail price")
    on_date: Optional[date] = Field(None, description="Defaults to today")


class PriceResolution(BaseModel):
    """Price applied to a product under a price list."""
    applicable: bool
    price: Optional[float] = None
    base_price: Optional[float] = None
    discount_percent: float = 0
    source: Optional[str] = Field(None, description="line | general | base")


class PricingQuoteRequest(BaseModel):
    """Inputs for margin and retail price arithmetic."""
    purchase_price: float = Field(0, ge=0)
    sale_price: Optional[float] = Field(None, ge=0)
    retail_price: Optional[float] = Field(None, ge=0)
    tax_rate: float = Field(21, ge=0, le=100)

    @model_validator(mode="after")
    def _needs_a_price(self):
        if self.sale_price is None and self.retail_price is None:
            raise ValueError("Provide sale_price or retail_price")
        return self


class PricingQuote(BaseModel):
    """Derived pricing figures."""
    purchase_price: float
    sale_price: float
    retail_price: float
    tax_rate: float
    margin_amount: float
    margin_percent: float
