"""API routes."""

from .auth_routes import router as auth_router
from .admin import router as admin_router
from .drive import router as drive_router
from .documents import router as documents_router

__all__ = [
    "auth_router",
    "admin_router",
    "drive_router",
    "documents_router",
]
