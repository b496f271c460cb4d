from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, ConfigDict, EmailStr, Field


class SupplierType(str, Enum):
    company = "company"
    self_employed = "self_employed"
    individual = "individual"


class Address(BaseModel):
    """Postal address."""
    street: Optional[str] = None
    city: Optional[str] = None
    postal_code: Optional[str] = None
    province: Optional[str] = None
    country: Optional[str] = None


class SupplierBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=30, description="Unique supplier code")
    supplier_type: SupplierType = Field(SupplierType.company)
    name: str = Field(..., min_length=1, description="Legal name")
    trade_name: Optional[str] = None
    tax_id: str = Field(..., min_length=1, description="Unique tax identifier")
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    website: Optional[str] = None
    address: Address = Field(default_factory=Address)
    payment_method_id: Optional[UUID] = None
    payment_days: Optional[int] = Field(None, ge=0)
    general_discount: float = Field(0, ge=0, le=100)
    rating: Optional[int] = Field(None, ge=1, le=5)
    avg_delivery_days: Optional[float] = Field(None, ge=0)
    reliability: Optional[float] = Field(None, ge=0, le=100)
    iban: Optional[str] = None
    notes: Optional[str] = None
    tags: List[str] = Field(default_factory=list)
    active: bool = True


class SupplierCreate(SupplierBase):
    """Create supplier payload."""


class SupplierUpdate(BaseModel):
    """Partial update of a supplier."""
    code: Optional[str] = Field(None, min_length=1, max_length=30)
    supplier_type: Optional[SupplierType] = None
    name: Optional[str] = Field(None, min_length=1)
    trade_name: Optional[str] = None
    tax_id: Optional[str] = Field(None, min_length=1)
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    mobile: Optional[str] = None
    website: Optional[str] = None
    address: Optional[Address] = None
    payment_method_id: Optional[UUID] = None
    payment_days: Optional[int] = Field(None, ge=0)
    general_discount: Optional[float] = Field(None, ge=0, le=100)
    rating: Optional[int] = Field(None, ge=1, le=5)
    avg_delivery_days: Optional[float] = Field(None, ge=0)
    reliability: Optional[float] = Field(None, ge=0, le=100)
    iban: Optional[str] = None
    notes: Optional[str] = None
    tags: Optional[List[str]] = None
    active: Optional[bool] = None


class SupplierRead(SupplierBase):
    """Supplier read model."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    created_at: datetime
    updated_at: datetime


class SupplierStats(BaseModel):
    total: int
    active: int
    inactive: int
    by_type: Dict[str, int] = Field(default_factory=dict)


# ---------------------------------------------------------------- sales agents


class AgentType(str, Enum):
    internal = "internal"
    external = "external"
    freelance = "freelance"
    distributor = "distributor"


class AgentStatus(str, Enum):
    active = "active"
    inactive = "inactive"
    suspended = "suspended"
    terminated = "terminated"


class SalesAgentBase(BaseModel):
    code: str = Field(..., min_length=1, max_length=30)
    name: str = Field(..., min_length=1)
    surname: Optional[str] = None
    tax_id: Optional[str] = Field(None, description="Unique when present")
    agent_type: AgentType = AgentType.internal
    status: AgentStatus = AgentStatus.active
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    commission_percent: float = Field(0, ge=0, le=100)
    sales_target: Optional[float] = Field(None, ge=0)
    zone: Optional[str] = None
    notes: Optional[str] = None
    active: bool = True


class SalesAgentCreate(SalesAgentBase):
    """Create sales agent payload."""


class SalesAgentUpdate(BaseModel):
    """Partial update of a sales agent. Sales counters are not writable."""
    code: Optional[str] = Field(None, min_length=1, max_length=30)
    name: Optional[str] = Field(None, min_length=1)
    surname: Optional[str] = None
    tax_id: Optional[str] = None
    agent_type: Optional[AgentType] = None
    status: Optional[AgentStatus] = None
    email: Optional[EmailStr] = None
    phone: Optional[str] = None
    commission_percent: Optional[float] = Field(None, ge=0, le=100)
    sales_target: Optional[float] = Field(None, ge=0)
    zone: Optional[str] = None
    notes: Optional[str] = None
    active: Optional[bool] = None


class SalesAgentRead(SalesAgentBase):
    """Sales agent read model with accumulated counters."""
    model_config = ConfigDict(from_attributes=True)

    id: UUID
    total_sales: float = 0
    accumulated_commission: float = 0
    created_at: datetime
    updated_at: datetime


class RegisterSale(BaseModel):
    """A sale credited to an agent."""
    amount: float = Field(..., gt=0, description="Sale amount")
    commission: Optional[float] = Field(
        None, ge=0, description="Explicit commission; defaults to amount x commission_percent / 100"
    )


class TopAgent(BaseModel):
    id: UUID
    code: str
    name: str
    total_sales: float
    accumulated_commission: float


class SalesAgentStats(BaseModel):
    total: int
    active: int
    inactive: int
    by_type: Dict[str, int] = Field(default_factory=dict)
    total_sales: float = 0
    total_commission: float = 0
    top_agents: List[TopAgent] = Field(default_factory=list)
