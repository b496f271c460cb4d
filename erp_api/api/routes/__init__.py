"""
API route modules, one router per resource.

- auth, users, roles: authentication and administration
- preparation_zones, product_families, payment_methods, shifts, price_lists:
  catalog entities built on crud.add_catalog_routes
- suppliers, sales_agents: partners with statistics and exports
- bank_movements, stock_movements, work_orders, planning, invoices: documents
- reports: downloadable CSV/Excel/PDF reports

Routers are included from erp_api.api.main under the /api/v1 prefix.
"""
