"""Version 1 API endpoints."""

from .endpoints import (
    admin_router,
    cron_router,
    posts_router,
    reactions_router,
    site_router,
)

__all__ = [
    "admin_router",
    "cron_router",
    "posts_router",
    "reactions_router",
    "site_router",
]
