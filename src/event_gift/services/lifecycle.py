"""Scheduled archive and delete sweeps over uploaded media.

Each invocation re-derives eligibility from persisted timestamps, so runs are
idempotent and a slow run overlapping the next one cannot double-process an
item past its terminal ``deleted_at`` marker. Both sweeps are batch limited;
a backlog drains over several scheduled runs.

With ``verify_drive_before_delete`` on, items lacking a backup are filtered out
in SQL, so they never occupy a batch slot ahead of items that can progress.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime, timedelta

from sqlalchemy import ColumnElement, func, select
from sqlalchemy.orm import Session

from event_gift.core.settings import settings
from event_gift.db.time import utcnow
from event_gift.models import EventSettings, MediaItem
from event_gift.services.errors import NotFoundError, SubmissionError
from event_gift.services.event_settings import get_event_settings, gift_expired
from event_gift.services.storage import ObjectStorage, remove_quietly

logger = logging.getLogger(__name__)


@dataclass
class LifecycleReport:
    """Counts produced by one lifecycle invocation."""

    archived: int = 0
    deleted: int = 0
    skipped_unverified: int = 0
    gift_hidden: bool = False


def archive_conditions(event_settings: EventSettings, now: datetime) -> list[ColumnElement[bool]]:
    cutoff = now - timedelta(days=event_settings.archive_after_days)
    return [
        MediaItem.event_id == event_settings.event_id,
        MediaItem.archived_at.is_(None),
        MediaItem.deleted_at.is_(None),
        MediaItem.created_at <= cutoff,
    ]


def delete_conditions(event_settings: EventSettings, now: datetime) -> list[ColumnElement[bool]]:
    return [
        MediaItem.event_id == event_settings.event_id,
        MediaItem.deleted_at.is_(None),
        MediaItem.delete_after_at.is_not(None),
        MediaItem.delete_after_at <= now,
    ]


def backup_gate(event_settings: EventSettings) -> list[ColumnElement[bool]]:
    """Extra filter admitting only backed-up items when verification is on."""
    if event_settings.verify_drive_before_delete:
        return [MediaItem.drive_file_id.is_not(None)]
    return []


def count_unverified(db: Session, conditions: list[ColumnElement[bool]]) -> int:
    stmt = select(func.count(MediaItem.id)).where(
        *conditions,
        MediaItem.drive_file_id.is_(None),
    )
    return db.scalar(stmt) or 0


def archive_candidates(
    db: Session,
    event_settings: EventSettings,
    now: datetime,
    batch_size: int,
) -> list[MediaItem]:
    stmt = (
        select(MediaItem)
        .where(*archive_conditions(event_settings, now), *backup_gate(event_settings))
        .order_by(MediaItem.created_at.asc(), MediaItem.id.asc())
        .limit(batch_size)
    )
    return list(db.scalars(stmt))


def delete_candidates(
    db: Session,
    event_settings: EventSettings,
    now: datetime,
    batch_size: int,
) -> list[MediaItem]:
    stmt = (
        select(MediaItem)
        .where(*delete_conditions(event_settings, now), *backup_gate(event_settings))
        .order_by(MediaItem.delete_after_at.asc(), MediaItem.id.asc())
        .limit(batch_size)
    )
    return list(db.scalars(stmt))


def run_archive_sweep(
    db: Session,
    event_settings: EventSettings,
    now: datetime,
    batch_size: int | None = None,
    report: LifecycleReport | None = None,
) -> LifecycleReport:
    """Archive media older than ``archive_after_days`` and schedule their deletion.

    Items without a confirmed backup (when verification is on) are counted in
    ``skipped_unverified`` and stay eligible for the next run.
    """
    report = report or LifecycleReport()
    batch_size = batch_size or settings.archive_batch_size
    delete_after = now + timedelta(hours=event_settings.delete_after_hours)

    for item in archive_candidates(db, event_settings, now, batch_size):
        item.archived_at = now
        item.delete_after_at = delete_after
        db.commit()
        report.archived += 1
        logger.debug("Archived media item %s; delete after %s", item.id, delete_after)

    if event_settings.verify_drive_before_delete:
        report.skipped_unverified += count_unverified(
            db, archive_conditions(event_settings, now)
        )
    return report


def run_delete_sweep(
    db: Session,
    event_settings: EventSettings,
    storage: ObjectStorage,
    now: datetime,
    batch_size: int | None = None,
    report: LifecycleReport | None = None,
) -> LifecycleReport:
    """Remove archived media from storage once ``delete_after_at`` has passed.

    Storage failures are logged and ignored; ``deleted_at`` is stamped anyway.
    """
    report = report or LifecycleReport()
    batch_size = batch_size or settings.delete_batch_size

    for item in delete_candidates(db, event_settings, now, batch_size):
        remove_quietly(storage, item.storage_path)
        item.deleted_at = now
        db.commit()
        report.deleted += 1
        logger.debug("Deleted media item %s from storage", item.id)

    if event_settings.verify_drive_before_delete:
        report.skipped_unverified += count_unverified(db, delete_conditions(event_settings, now))
    return report


def hide_gift_if_expired(db: Session, event_settings: EventSettings, now: datetime) -> bool:
    """Switch the gift block off once the event is over.

    Returns True when this call hid the block.
    """
    if not event_settings.gift_enabled or not gift_expired(event_settings, now):
        return False
    event_settings.gift_enabled = False
    db.commit()
    logger.info("Gift block for %s hidden after the event", event_settings.event_id)
    return True


def discard_media(
    db: Session,
    item: MediaItem,
    storage: ObjectStorage,
    now: datetime | None = None,
) -> bool:
    """Remove one item out of band (guest or admin deletion).

    Returns False when the item was already deleted.
    """
    if item.deleted_at is not None:
        return False
    remove_quietly(storage, item.storage_path)
    item.deleted_at = now or utcnow()
    db.commit()
    return True


def run_lifecycle(
    db: Session,
    event_id: str,
    storage: ObjectStorage,
    now: datetime | None = None,
) -> LifecycleReport:
    """Hide an expired gift block, then run the archive sweep and the delete sweep."""
    now = now or utcnow()
    event_settings = get_event_settings(db, event_id)
    report = LifecycleReport()
    report.gift_hidden = hide_gift_if_expired(db, event_settings, now)
    run_archive_sweep(db, event_settings, now, report=report)
    run_delete_sweep(db, event_settings, storage, now, report=report)
    logger.info(
        "Lifecycle sweep for %s: archived=%d deleted=%d skipped_unverified=%d",
        event_id,
        report.archived,
        report.deleted,
        report.skipped_unverified,
    )
    return report


MEDIA_STATES = ("active", "archived", "deleted")


def list_media_items(
    db: Session,
    event_id: str,
    state: str | None = None,
    limit: int = 500,
) -> list[MediaItem]:
    """Return the event's media items, optionally filtered by lifecycle state."""
    stmt = select(MediaItem).where(MediaItem.event_id == event_id)
    if state == "active":
        stmt = stmt.where(MediaItem.archived_at.is_(None), MediaItem.deleted_at.is_(None))
    elif state == "archived":
        stmt = stmt.where(MediaItem.archived_at.is_not(None), MediaItem.deleted_at.is_(None))
    elif state == "deleted":
        stmt = stmt.where(MediaItem.deleted_at.is_not(None))
    elif state is not None:
        raise SubmissionError(f"Unknown media state: {state!r}")
    stmt = stmt.order_by(MediaItem.created_at.desc(), MediaItem.id.desc()).limit(limit)
    return list(db.scalars(stmt))


def discard_media_by_id(
    db: Session,
    item_id: int,
    event_id: str,
    storage: ObjectStorage,
    now: datetime | None = None,
) -> MediaItem:
    """Admin removal of one media item; already-deleted items are left untouched.

    Raises:
        NotFoundError: If the item does not exist in this event.
    """
    item = db.get(MediaItem, item_id)
    if item is None or item.event_id != event_id:
        raise NotFoundError(f"Media item {item_id} not found")
    if discard_media(db, item, storage, now):
        logger.info("Admin discarded media item %s", item.id)
    db.refresh(item)
    return item
