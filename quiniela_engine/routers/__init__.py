"""
API routers for the Quiniela Portfolio Engine.

Separates endpoints into logical groups for better organization.
"""

from .quinielas import router as quinielas_router
from .health import router as health_router

__all__ = [
    "quinielas_router",
    "health_router",
]
