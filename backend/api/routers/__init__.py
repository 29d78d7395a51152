"""
API Routers package.

Each module contains a FastAPI router for a specific domain.
"""

from .scanning import router as scanning_router

__all__ = [
    "scanning_router",
]
