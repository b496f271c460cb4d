"""FastAPI application, routers and OpenAPI export."""
