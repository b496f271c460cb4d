from __future__ import annotations

from datetime import datetime
from enum import Enum
from typing import Any, Generic, List, Optional, TypeVar
from uuid import UUID

from pydantic import BaseModel, Field

from erp_api.repositories.base import total_pages

T = TypeVar("T")


# PUBLIC_INTERFACE
class Page(BaseModel, Generic[T]):
    """One page of a list endpoint; total_pages = ceil(total / limit)."""
    items: List[T] = Field(default_factory=list, description="Records on this page")
    total: int = Field(..., ge=0, description="Total records matching the filters")
    page: int = Field(..., ge=1, description="1-based page number")
    limit: int = Field(..., ge=1, description="Page size")
    total_pages: int = Field(..., ge=0, description="Number of pages")

    @classmethod
    def build(cls, items: List[Any], total: int, page: int, limit: int) -> "Page":
        return cls(items=items, total=total, page=page, limit=limit, total_pages=total_pages(total, limit))


class MessageResponse(BaseModel):
    """Standard message response."""
    message: str = Field(..., description="Human readable message")
    details: Optional[dict] = Field(default=None, description="Optional extra data")


class TenantEcho(BaseModel):
    """Model to echo tenant context."""
    tenant_id: UUID = Field(..., description="Tenant ID extracted from request header")


class BulkDeleteRequest(BaseModel):
    """Ids to delete in one call."""
    ids: List[UUID] = Field(..., min_length=1, description="Record ids")


class BulkDeleteResult(BaseModel):
    """Outcome of a bulk delete."""
    deleted: int = Field(..., ge=0, description="Number of records deleted")


class StatusChange(BaseModel):
    """Activate or deactivate a record."""
    active: bool = Field(..., description="New active flag")


class SuggestedCode(BaseModel):
    """Next free code for a prefix."""
    code: str = Field(..., description="Suggested code")


class ExportFormat(str, Enum):
    """File formats supported by export endpoints."""
    csv = "csv"
    xlsx = "xlsx"
    pdf = "pdf"


class ErrorInfo(BaseModel):
    """Structured error description."""
    type: str = Field(..., description="Machine-readable error type code")
    message: str = Field(..., description="Human-readable error message")
    details: Optional[Any] = Field(default=None, description="Optional error details (e.g., validation issues)")


# PUBLIC_INTERFACE
class ErrorResponse(BaseModel):
    """Standardized API error envelope returned by exception handlers."""
    status: int = Field(..., description="HTTP status code")
    error: ErrorInfo = Field(..., description="Error details")
    correlation_id: Optional[str] = Field(default=None, description="Request correlation ID")
    tenant_id: Optional[str] = Field(default=None, description="Tenant ID (if available)")
    path: Optional[str] = Field(default=None, description="Request path")
    method: Optional[str] = Field(default=None, description="HTTP method")
    timestamp: datetime = Field(..., description="Error timestamp (UTC)")


# PUBLIC_INTERFACE
def to_column_values(payload: BaseModel, *, exclude_unset: bool = False, exclude: Optional[set] = None) -> dict:
    """
    Flatten a request model into column values.

    Enums become their plain values and nested models/lists become JSON-ready
    data for JSON columns; dates and UUIDs are kept as Python objects.
    """
    data = payload.model_dump(exclude_unset=exclude_unset, exclude=exclude)
    json_data = payload.model_dump(mode="json", exclude_unset=exclude_unset, exclude=exclude)
    values = {}
    for key, value in data.items():
        if isinstance(value, (list, dict)):
            values[key] = json_data[key]
        elif isinstance(value, Enum):
            values[key] = value.value
        else:
            values[key] = value
    return values
