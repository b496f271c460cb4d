"""
Pydantic schemas used by routes, services and tests.

Schemas are grouped by domain module (catalog, partners, treasury, ...) next to
common models such as Page and the error envelope.
"""

from .common import MessageResponse, Page  # noqa: F401
