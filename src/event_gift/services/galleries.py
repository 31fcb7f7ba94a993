"""Gallery upload windows and their admin controls."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.orm import Session

from event_gift.db.time import ensure_utc, utcnow
from event_gift.models import Gallery
from event_gift.models.gallery import DEFAULT_UPLOAD_HOURS, MAX_UPLOAD_HOURS
from event_gift.services.errors import GalleryClosedError, GalleryNotFoundError, SubmissionError

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "title",
        "order_index",
        "upload_enabled",
        "require_approval",
        "auto_approve_until",
        "upload_default_hours",
    }
)


def in_auto_approve_window(gallery: Gallery, now: datetime) -> bool:
    """Return True while uploads into ``gallery`` publish without review."""
    until = gallery.auto_approve_until
    return until is not None and ensure_utc(now) < ensure_utc(until)


def get_gallery(db: Session, gallery_id: int, event_id: str) -> Gallery:
    gallery = db.get(Gallery, gallery_id)
    if gallery is None or gallery.event_id != event_id:
        raise GalleryNotFoundError(f"Gallery {gallery_id} not found")
    return gallery


def gallery_for_upload(db: Session, gallery_id: int, event_id: str) -> Gallery:
    """Return the gallery a guest uploads into.

    Raises:
        GalleryNotFoundError: If the gallery is not part of this event.
        GalleryClosedError: If uploads into it are switched off.
    """
    gallery = get_gallery(db, gallery_id, event_id)
    if not gallery.upload_enabled:
        raise GalleryClosedError(f"Uploads to gallery {gallery_id} are closed")
    return gallery


def list_galleries(db: Session, event_id: str) -> list[Gallery]:
    stmt = (
        select(Gallery)
        .where(Gallery.event_id == event_id)
        .order_by(Gallery.order_index.asc(), Gallery.id.asc())
    )
    return list(db.scalars(stmt))


def _apply(gallery: Gallery, values: Mapping[str, Any]) -> None:
    unknown = set(values) - EDITABLE_FIELDS
    if unknown:
        raise SubmissionError(f"Unknown gallery fields: {', '.join(sorted(unknown))}")
    for name, value in values.items():
        setattr(gallery, name, value)


def create_gallery(db: Session, event_id: str, values: Mapping[str, Any]) -> Gallery:
    gallery = Gallery(event_id=event_id)
    _apply(gallery, values)
    db.add(gallery)
    db.commit()
    db.refresh(gallery)
    logger.info("Created gallery %s for event %s", gallery.id, event_id)
    return gallery


def update_gallery(
    db: Session,
    gallery_id: int,
    event_id: str,
    patch: Mapping[str, Any],
) -> Gallery:
    """Apply an admin patch; only the fields present in ``patch`` change."""
    gallery = get_gallery(db, gallery_id, event_id)
    _apply(gallery, patch)
    db.commit()
    db.refresh(gallery)
    return gallery


def upload_window_hours(hours: float | None, default: int = DEFAULT_UPLOAD_HOURS) -> float:
    """Clamp a requested window length; missing or non-positive means ``default``."""
    if hours is None or hours <= 0:
        hours = default
    return min(hours, MAX_UPLOAD_HOURS)


def open_upload_window(
    db: Session,
    gallery_id: int,
    event_id: str,
    hours: float | None = None,
    now: datetime | None = None,
) -> Gallery:
    """Enable uploads and auto-approve them for the next ``hours`` hours.

    Without ``hours`` the gallery's ``upload_default_hours`` applies; windows are
    capped at three days.
    """
    gallery = get_gallery(db, gallery_id, event_id)
    now = now or utcnow()
    gallery.upload_enabled = True
    window = upload_window_hours(hours, gallery.upload_default_hours)
    gallery.auto_approve_until = now + timedelta(hours=window)
    db.commit()
    db.refresh(gallery)
    logger.info(
        "Opened gallery %s for uploads until %s", gallery.id, gallery.auto_approve_until
    )
    return gallery
