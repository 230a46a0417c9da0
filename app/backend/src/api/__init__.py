"""Public API routers exposed by the FastAPI application."""

from . import contractors, health, invoices, users

__all__ = ["contractors", "health", "invoices", "users"]
