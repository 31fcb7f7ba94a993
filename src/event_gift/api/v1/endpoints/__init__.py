"""API endpoint modules for version 1."""

from .admin import router as admin_router
from .cron import router as cron_router
from .posts import router as posts_router
from .reactions import router as reactions_router
from .site import router as site_router

__all__ = [
    "admin_router",
    "cron_router",
    "posts_router",
    "reactions_router",
    "site_router",
]
