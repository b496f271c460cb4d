"""
Service layer holding business rules.

Services wrap repositories, raise errors from erp_api.core.errors and keep the
pure calculations (pricing, costing, invoice totals) as module-level functions.
"""
