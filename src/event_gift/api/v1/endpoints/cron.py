"""Scheduled-trigger endpoints for the media lifecycle and backup sync."""

import asyncio

from fastapi import APIRouter, Depends

from event_gift.api.v1.dependencies import (
    BackupUploaderDep,
    EventIdDep,
    SessionDep,
    StorageDep,
    verify_cron_request,
)
from event_gift.schemas.admin import DriveSyncResponse, LifecycleResponse
from event_gift.services.drive_sync import run_drive_sync
from event_gift.services.lifecycle import run_lifecycle

router = APIRouter(
    prefix="/cron",
    tags=["cron"],
    dependencies=[Depends(verify_cron_request)],
)


@router.get("/archive-and-delete", response_model=LifecycleResponse)
async def archive_and_delete(
    db: SessionDep,
    event_id: EventIdDep,
    storage: StorageDep,
) -> LifecycleResponse:
    """Run one archive sweep followed by one delete sweep."""
    # Sweeps issue blocking database and storage calls; keep them off the event loop.
    report = await asyncio.to_thread(run_lifecycle, db, event_id, storage)
    return LifecycleResponse(
        archived=report.archived,
        deleted=report.deleted,
        skipped_unverified=report.skipped_unverified,
        gift_hidden=report.gift_hidden,
    )


@router.get("/drive-sync", response_model=DriveSyncResponse)
async def drive_sync(
    db: SessionDep,
    event_id: EventIdDep,
    storage: StorageDep,
    uploader: BackupUploaderDep,
) -> DriveSyncResponse:
    """Copy a batch of unsynced uploads to the backup folder."""
    report = await asyncio.to_thread(run_drive_sync, db, event_id, storage, uploader)
    return DriveSyncResponse(
        configured=report.configured,
        processed=report.processed,
        failed=report.failed,
    )
