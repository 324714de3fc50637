"""Shared API routers."""

from .auth import router as auth_router
from .employees import router as employees_router
from .health import router as health_router

__all__ = [
    "auth_router",
    "employees_router",
    "health_router",
]
