# src/event_gift/models/gallery.py
"""Themed photo galleries and their guest upload windows."""

from datetime import datetime

from sqlalchemy import Boolean, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from event_gift.db.session import Base
from event_gift.db.time import UTCDateTime, utcnow

DEFAULT_UPLOAD_HOURS = 8
MAX_UPLOAD_HOURS = 72


class Gallery(Base):
    """A gallery guests upload into.

    Uploads are refused while ``upload_enabled`` is off. Before
    ``auto_approve_until`` they publish immediately; afterwards they wait for
    an organizer when ``require_approval`` is set.
    """

    __tablename__ = "gallery"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(Text, nullable=False, index=True)
    title: Mapped[str] = mapped_column(Text, nullable=False, default="")
    order_index: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    upload_enabled: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    require_approval: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    auto_approve_until: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    upload_default_hours: Mapped[int] = mapped_column(
        Integer, nullable=False, default=DEFAULT_UPLOAD_HOURS
    )

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    updated_at: Mapped[datetime] = mapped_column(
        UTCDateTime,
        nullable=False,
        default=utcnow,
        onupdate=utcnow,
    )
