# src/event_gift/models/event_settings.py
"""Per-event configuration edited from the admin console."""

from datetime import datetime

from sqlalchemy import Boolean, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from event_gift.db.session import Base
from event_gift.db.time import UTCDateTime, utcnow

DEFAULT_APPROVAL_LOCK_AFTER_DAYS = 7
DEFAULT_MAX_BLESSING_LINES = 50
DEFAULT_ARCHIVE_AFTER_DAYS = 30
DEFAULT_DELETE_AFTER_HOURS = 24


class EventSettings(Base):
    """Single authoritative settings row for an event.

    ``event_id`` is unique, so readers and writers always agree on which row
    is current.
    """

    __tablename__ = "event_settings"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    event_name: Mapped[str] = mapped_column(Text, nullable=False, default="")
    start_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    # Moderation knobs
    require_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    approval_lock_after_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_APPROVAL_LOCK_AFTER_DAYS
    )
    # Stamped when an admin switches require_approval off again.
    approval_opened_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    max_blessing_lines: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_MAX_BLESSING_LINES
    )

    # Media lifecycle knobs
    archive_after_days: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_ARCHIVE_AFTER_DAYS
    )
    delete_after_hours: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_DELETE_AFTER_HOURS
    )
    verify_drive_before_delete: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)

    # Gift links shown on the public site
    gift_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    gift_bit_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    gift_paybox_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    # Hours after start_at when the lifecycle sweep switches gift_enabled off.
    gift_auto_hide_after_hours: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
