# src/event_gift/scripts/sweep.py
"""
Run the scheduled media jobs without going through HTTP.

Intended for hosts that schedule with cron instead of calling the
``/api/v1/cron`` endpoints:
1. Copy unsynced uploads to the backup folder
2. Hide an expired gift block, archive old media and delete media past its grace period
"""

import argparse
import logging

from sqlalchemy.orm import Session

from event_gift.core.settings import settings
from event_gift.db.session import SessionLocal
from event_gift.services.drive import get_backup_uploader
from event_gift.services.drive_sync import run_drive_sync
from event_gift.services.lifecycle import run_lifecycle
from event_gift.services.storage import get_storage

logger = logging.getLogger(__name__)


def sync_backups(db: Session, event_id: str) -> None:
    """Upload one batch of unsynced media to the backup folder.

    Args:
        db: Database session
        event_id: Event whose media is synced
    """
    report = run_drive_sync(db, event_id, get_storage(), get_backup_uploader())
    if not report.configured:
        print("Drive backup not configured; skipped sync")
        return
    print(f"Synced {report.processed} media items ({report.failed} failed)")


def sweep_media(db: Session, event_id: str) -> None:
    """Run one archive sweep and one delete sweep.

    Args:
        db: Database session
        event_id: Event whose media is swept
    """
    report = run_lifecycle(db, event_id, get_storage())
    print(
        f"Archived {report.archived}, deleted {report.deleted}, "
        f"skipped {report.skipped_unverified} without backup"
        + ("; gift block hidden" if report.gift_hidden else "")
    )


def main() -> None:
    parser = argparse.ArgumentParser(description="Run scheduled media jobs once")
    parser.add_argument("--event", default=settings.event_id, help="Event id to process")
    parser.add_argument("--skip-sync", action="store_true", help="Do not run the backup sync")
    args = parser.parse_args()

    logging.basicConfig(level=settings.log_level.upper())

    db = SessionLocal()
    try:
        if not args.skip_sync:
            sync_backups(db, args.event)
        sweep_media(db, args.event)
    finally:
        db.close()


if __name__ == "__main__":
    main()
