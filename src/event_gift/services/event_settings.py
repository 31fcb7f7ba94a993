"""Access to the single authoritative settings row of an event."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from event_gift.db.time import ensure_utc, utcnow
from event_gift.models import EventSettings

logger = logging.getLogger(__name__)

EDITABLE_FIELDS = frozenset(
    {
        "event_name",
        "start_at",
        "require_approval",
        "approval_lock_after_days",
        "max_blessing_lines",
        "archive_after_days",
        "delete_after_hours",
        "verify_drive_before_delete",
        "gift_enabled",
        "gift_bit_url",
        "gift_paybox_url",
        "gift_auto_hide_after_hours",
    }
)


def get_event_settings(db: Session, event_id: str) -> EventSettings:
    """Return the settings row for ``event_id``, creating it with defaults if absent."""
    row = db.scalar(select(EventSettings).where(EventSettings.event_id == event_id))
    if row is not None:
        return row

    row = EventSettings(event_id=event_id)
    db.add(row)
    try:
        db.commit()
    except IntegrityError:
        # A concurrent request created the row first.
        db.rollback()
        return db.scalars(select(EventSettings).where(EventSettings.event_id == event_id)).one()
    db.refresh(row)
    logger.info("Created default settings for event %s", event_id)
    return row


def update_event_settings(
    db: Session,
    event_id: str,
    patch: Mapping[str, Any],
    now: datetime | None = None,
) -> EventSettings:
    """Apply an admin patch to the event's settings row.

    Switching ``require_approval`` from on to off records ``approval_opened_at``
    so the lock window restarts from the re-opening.

    Raises:
        ValueError: If the patch names a field that is not editable.
    """
    unknown = set(patch) - EDITABLE_FIELDS
    if unknown:
        raise ValueError(f"Unknown settings fields: {', '.join(sorted(unknown))}")

    row = get_event_settings(db, event_id)
    was_requiring = bool(row.require_approval)
    for field_name, value in patch.items():
        setattr(row, field_name, value)

    if was_requiring and "require_approval" in patch and not patch["require_approval"]:
        row.approval_opened_at = now or utcnow()

    db.commit()
    db.refresh(row)
    return row


def gift_expired(row: EventSettings, now: datetime) -> bool:
    """Return True once ``gift_auto_hide_after_hours`` have passed since ``start_at``."""
    hours = row.gift_auto_hide_after_hours
    if row.start_at is None or not hours:
        return False
    return ensure_utc(now) > ensure_utc(row.start_at) + timedelta(hours=hours)


def gift_visible(row: EventSettings, now: datetime) -> bool:
    return bool(row.gift_enabled) and not gift_expired(row, now)
