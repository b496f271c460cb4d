"""
Core application utilities for settings and FastAPI dependencies.

This package provides:
- Application-level settings (separate from DB settings)
- Logging configuration with correlation/tenant context
- Domain error taxonomy mapped to HTTP responses
- Dependency helpers (tenant extraction, tenant-scoped DB session, auth, pagination)
"""
