"""API Routes for Trove."""

from .collections_router import router as collections_router
from .profile_router import router as profile_router
from .templates_router import router as templates_router

__all__ = [
    "collections_router",
    "profile_router",
    "templates_router",
]
