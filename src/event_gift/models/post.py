# src/event_gift/models/post.py
"""SQLAlchemy models for guest posts (blessings and gallery submissions)."""

from datetime import datetime
from typing import Any

from sqlalchemy import JSON, Boolean, ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from event_gift.db.session import Base
from event_gift.db.time import UTCDateTime, utcnow

KIND_BLESSING = "blessing"
KIND_GALLERY = "gallery"
KIND_GALLERY_ADMIN = "gallery_admin"
POST_KINDS = frozenset({KIND_BLESSING, KIND_GALLERY, KIND_GALLERY_ADMIN})

# Kinds submitted by guests; these are rate limited per device.
RATE_LIMITED_KINDS = frozenset({KIND_BLESSING, KIND_GALLERY})

STATUS_PENDING = "pending"
STATUS_APPROVED = "approved"
STATUS_DELETED = "deleted"
POST_STATUSES = frozenset({STATUS_PENDING, STATUS_APPROVED, STATUS_DELETED})

REASON_LINES = "lines"
REASON_BLOCKED_RULE = "blocked_rule"
REASON_MODERATION = "moderation"
REASON_APPROVAL_LOCK = "approval_lock"
REASON_REQUIRE_APPROVAL = "require_approval"
REASON_GALLERY_WINDOW = "gallery_window"


class Post(Base):
    """Guest submission shown on the blessings feed or in a gallery.

    ``status`` is the single authoritative visibility state; ``pending_reason``
    and the moderation columns are diagnostics for the admin console.
    """

    __tablename__ = "post"
    __table_args__ = (
        Index("ix_post_device_kind_created", "device_id", "kind", "created_at"),
        Index("ix_post_event_kind_status", "event_id", "kind", "status"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(Text, nullable=False)
    kind: Mapped[str] = mapped_column(Text, nullable=False)
    gallery_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("gallery.id", ondelete="SET NULL"),
        nullable=True,
    )

    author_name: Mapped[str | None] = mapped_column(Text, nullable=True)
    text: Mapped[str | None] = mapped_column(Text, nullable=True)
    media_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    media_path: Mapped[str | None] = mapped_column(Text, nullable=True)
    video_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    link_url: Mapped[str | None] = mapped_column(Text, nullable=True)

    status: Mapped[str] = mapped_column(Text, nullable=False, default=STATUS_PENDING)
    pending_reason: Mapped[str | None] = mapped_column(Text, nullable=True)

    moderation_flagged: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    moderation_provider: Mapped[str | None] = mapped_column(Text, nullable=True)
    moderation_raw: Mapped[Any | None] = mapped_column(JSON, nullable=True)
    content_rule_hit: Mapped[dict[str, Any] | None] = mapped_column(JSON, nullable=True)

    # Anonymous client token; the only key for self-service edits. Never reassigned.
    device_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )

    @property
    def is_deleted(self) -> bool:
        """Return True once the post reached its terminal state."""
        return self.status == STATUS_DELETED
