# src/event_gift/models/admin_user.py
"""Event organizers with access to the admin console."""

from datetime import datetime

from sqlalchemy import JSON, Boolean, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from event_gift.db.session import Base
from event_gift.db.time import UTCDateTime, utcnow

ROLE_MASTER = "master"
ROLE_CLIENT = "client"
ADMIN_ROLES = frozenset({ROLE_MASTER, ROLE_CLIENT})

PERM_POSTS_MANAGE = "posts.manage"
PERM_GALLERIES_READ = "galleries.read"
PERM_GALLERIES_MANAGE = "galleries.manage"
PERM_SITE_MANAGE = "site.manage"
PERM_ADMINS_MANAGE = "admins.manage"
ADMIN_PERMISSIONS = frozenset(
    {
        PERM_POSTS_MANAGE,
        PERM_GALLERIES_READ,
        PERM_GALLERIES_MANAGE,
        PERM_SITE_MANAGE,
        PERM_ADMINS_MANAGE,
    }
)


class AdminUser(Base):
    """Admin identity; ``master`` implies every permission."""

    __tablename__ = "admin_user"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(Text, nullable=False)
    email: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    role: Mapped[str] = mapped_column(Text, nullable=False, default=ROLE_CLIENT)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    permissions: Mapped[dict[str, bool]] = mapped_column(JSON, nullable=False, default=dict)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
