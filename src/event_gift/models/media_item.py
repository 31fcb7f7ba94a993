# src/event_gift/models/media_item.py
"""Physical uploads and their archive/delete lifecycle."""

from datetime import datetime

from sqlalchemy import ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from event_gift.db.session import Base
from event_gift.db.time import UTCDateTime, utcnow


class MediaItem(Base):
    """An uploaded object in storage, optionally backed up off-site.

    Lifecycle: active (``archived_at`` null), archived (``archived_at`` and
    ``delete_after_at`` set together), deleted (``deleted_at`` set, terminal).
    """

    __tablename__ = "media_item"
    __table_args__ = (
        Index("ix_media_item_event_archive", "event_id", "archived_at", "deleted_at"),
        Index("ix_media_item_event_delete_after", "event_id", "delete_after_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    event_id: Mapped[str] = mapped_column(Text, nullable=False)
    post_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="SET NULL"),
        nullable=True,
    )
    kind: Mapped[str | None] = mapped_column(Text, nullable=True)
    gallery_id: Mapped[int | None] = mapped_column(
        Integer,
        ForeignKey("gallery.id", ondelete="SET NULL"),
        nullable=True,
    )

    storage_path: Mapped[str] = mapped_column(Text, nullable=False, unique=True)
    public_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    mime_type: Mapped[str | None] = mapped_column(Text, nullable=True)
    uploader_device_id: Mapped[str | None] = mapped_column(Text, nullable=True)

    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
    archived_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    delete_after_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    deleted_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)

    # Off-site copy written by the drive sync sweep; read-only for the lifecycle sweeps.
    drive_file_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    drive_preview_url: Mapped[str | None] = mapped_column(Text, nullable=True)
    synced_at: Mapped[datetime | None] = mapped_column(UTCDateTime, nullable=True)
    last_error: Mapped[str | None] = mapped_column(Text, nullable=True)
