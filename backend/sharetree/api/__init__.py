"""API routes."""

from .folders import router as folders_router
from .files import router as files_router
from .permissions import router as permissions_router
from .users import router as users_router
from .favorites import router as favorites_router
from .repairs import router as repairs_router
from .search import router as search_router

__all__ = [
    "folders_router",
    "files_router",
    "permissions_router",
    "users_router",
    "favorites_router",
    "repairs_router",
    "search_router",
]
