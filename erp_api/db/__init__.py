"""
Database package: declarative base, configuration, engine/session management
and tenant binding helpers.
"""

from .base import Base
from .config import get_settings, Settings
from .session import (
    TENANT_INFO_KEY,
    get_engine,
    get_async_session,
    set_current_tenant,
    tenant_context,
)

# Register every mapped class with Base.metadata on package import.
from . import models as models  # noqa: F401

__all__ = [
    "Base",
    "Settings",
    "TENANT_INFO_KEY",
    "get_settings",
    "get_engine",
    "get_async_session",
    "set_current_tenant",
    "tenant_context",
    "models",
]
