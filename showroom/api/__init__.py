"""HTTP surface: FastAPI routers and auth dependencies."""
