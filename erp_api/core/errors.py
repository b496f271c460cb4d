"""
Domain error taxonomy.

Services raise these exceptions; the API layer maps them to the standard
ErrorResponse envelope using the status code and type carried by each class.
"""

from __future__ import annotations

from typing import Any, Optional


class DomainError(Exception):
    """Base class for business errors surfaced to API clients."""

    status_code: int = 400
    error_type: str = "domain_error"

    def __init__(self, message: str, details: Optional[Any] = None) -> None:
        super().__init__(message)
        self.message = message
        self.details = details


class NotFoundError(DomainError):
    """The requested record does not exist within the tenant."""

    status_code = 404
    error_type = "not_found"

    # PUBLIC_INTERFACE
    @classmethod
    def for_entity(cls, entity: str, entity_id: Any = None) -> "NotFoundError":
        """Build a uniform '<Entity> not found' error."""
        details = {"id": str(entity_id)} if entity_id is not None else None
        return cls(f"{entity} not found", details=details)


class DuplicateError(DomainError):
    """A unique field (code, tax id, name) is already taken within the tenant."""

    status_code = 400
    error_type = "duplicate"


class BusinessRuleError(DomainError):
    """The request is well-formed but violates a business rule."""

    status_code = 400
    error_type = "business_rule"


class InvalidStateError(DomainError):
    """The operation is not allowed in the record's current lifecycle state."""

    status_code = 409
    error_type = "invalid_state"


class InvalidFieldError(DomainError):
    """A field value cannot be stored, e.g. an explicit null for a required column."""

    status_code = 422
    error_type = "validation_error"
