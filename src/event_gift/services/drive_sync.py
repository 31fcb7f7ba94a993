"""Companion sweep that copies uploads to off-site backup storage."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from pathlib import PurePosixPath

from sqlalchemy import select
from sqlalchemy.orm import Session

from event_gift.core.settings import settings
from event_gift.db.time import utcnow
from event_gift.models import MediaItem
from event_gift.services.drive import BackupUploader, BackupUploadError
from event_gift.services.storage import ObjectStorage, StorageError

logger = logging.getLogger(__name__)

DEFAULT_MIME_TYPE = "application/octet-stream"


@dataclass
class DriveSyncReport:
    configured: bool = True
    processed: int = 0
    failed: int = 0


def pending_backups(db: Session, event_id: str, batch_size: int) -> list[MediaItem]:
    """Unsynced items; previously failed ones sort after never-attempted ones."""
    stmt = (
        select(MediaItem)
        .where(
            MediaItem.event_id == event_id,
            MediaItem.drive_file_id.is_(None),
            MediaItem.deleted_at.is_(None),
        )
        .order_by(
            MediaItem.last_error.is_not(None),
            MediaItem.created_at.asc(),
            MediaItem.id.asc(),
        )
        .limit(batch_size)
    )
    return list(db.scalars(stmt))


def backup_filename(item: MediaItem) -> str:
    name = PurePosixPath(item.storage_path or "").name
    return name or f"item_{item.id}"


def run_drive_sync(
    db: Session,
    event_id: str,
    storage: ObjectStorage,
    uploader: BackupUploader | None,
    batch_size: int | None = None,
    now: datetime | None = None,
) -> DriveSyncReport:
    """Upload the oldest unsynced items; each failure is recorded on its item."""
    if uploader is None:
        return DriveSyncReport(configured=False)

    report = DriveSyncReport()
    batch_size = batch_size or settings.drive_sync_batch_size

    for item in pending_backups(db, event_id, batch_size):
        try:
            data = storage.read(item.storage_path)
            uploaded = uploader.upload(
                data,
                backup_filename(item),
                item.mime_type or DEFAULT_MIME_TYPE,
            )
        except (StorageError, BackupUploadError) as exc:
            logger.warning("Drive sync failed for media item %s: %s", item.id, exc)
            item.last_error = str(exc) or "sync error"
            db.commit()
            report.failed += 1
            continue

        item.drive_file_id = uploaded.file_id
        item.drive_preview_url = uploaded.preview_url
        item.synced_at = now or utcnow()
        item.last_error = None
        db.commit()
        report.processed += 1

    logger.info(
        "Drive sync for %s: processed=%d failed=%d", event_id, report.processed, report.failed
    )
    return report
