"""
Repository layer for data access.

Repositories encapsulate SQLAlchemy queries for each domain area and scope
every statement to the tenant bound on the session (see
erp_api.core.deps.get_tenant_session).
"""
