# src/event_gift/models/__init__.py
"""SQLAlchemy models for the event gift service."""

from .admin_user import AdminUser
from .content_rule import ContentRule
from .event_settings import EventSettings
from .gallery import Gallery
from .media_item import MediaItem
from .post import Post
from .reaction import Reaction

__all__ = [
    "AdminUser",
    "ContentRule",
    "EventSettings",
    "Gallery",
    "MediaItem",
    "Post",
    "Reaction",
]
