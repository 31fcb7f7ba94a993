"""Admission decisions for new guest submissions.

Every submission is either published immediately (``approved``) or queued for
an organizer (``pending``). Rate limiting is the only hard rejection; all other
checks soft-pend the post and report a diagnostic ``pending_reason``.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any
from zoneinfo import ZoneInfo

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from event_gift.core.settings import settings
from event_gift.db.time import ensure_utc
from event_gift.models import EventSettings, Gallery, Post
from event_gift.models.post import (
    KIND_BLESSING,
    KIND_GALLERY,
    KIND_GALLERY_ADMIN,
    RATE_LIMITED_KINDS,
    REASON_APPROVAL_LOCK,
    REASON_BLOCKED_RULE,
    REASON_GALLERY_WINDOW,
    REASON_LINES,
    REASON_MODERATION,
    REASON_REQUIRE_APPROVAL,
    STATUS_APPROVED,
    STATUS_PENDING,
)
from event_gift.services.content_rules import NO_MATCH, ContentRuleMatch
from event_gift.services.errors import RateLimitExceeded
from event_gift.services.galleries import in_auto_approve_window
from event_gift.services.moderation import ModerationResult


@dataclass(frozen=True)
class AdmissionRequest:
    """Inputs to the admission decision for a single submission."""

    kind: str
    text: str | None = None
    rule_match: ContentRuleMatch = NO_MATCH
    moderation: ModerationResult | None = None
    gallery: Gallery | None = None


@dataclass(frozen=True)
class AdmissionDecision:
    """Computed visibility of a submission."""

    status: str
    pending_reason: str | None = None
    locked: bool = False
    too_many_lines: bool = False
    blocked_by_rule: bool = False
    flagged: bool = False
    content_rule_hit: dict[str, Any] | None = None

    @property
    def is_pending(self) -> bool:
        return self.status == STATUS_PENDING


def calendar_day_number(instant: datetime, timezone: str | ZoneInfo) -> int:
    """Return the proleptic Gregorian day ordinal of ``instant`` in ``timezone``.

    Naive datetimes are interpreted as UTC.
    """
    zone = timezone if isinstance(timezone, ZoneInfo) else ZoneInfo(timezone)
    return ensure_utc(instant).astimezone(zone).date().toordinal()


def lock_anchor(start_at: datetime | None, approval_opened_at: datetime | None) -> datetime | None:
    """Return the instant the lock window counts from.

    ``start_at`` anchors the first opening; a later re-opening of approvals
    (``approval_opened_at``) restarts the window from that moment. A re-opening
    recorded before the event start does not move the anchor earlier.
    """
    if start_at is None:
        return approval_opened_at
    if approval_opened_at is None:
        return start_at
    if ensure_utc(approval_opened_at) > ensure_utc(start_at):
        return approval_opened_at
    return start_at


def is_approval_locked(
    event_settings: EventSettings,
    now: datetime,
    timezone: str | ZoneInfo | None = None,
) -> bool:
    """Return True once ``now`` reaches local midnight after the grace days.

    Submissions are auto-published on the anchor's calendar day and the next
    ``approval_lock_after_days`` days; the lock starts at 00:00 of the day after.
    """
    lock_days = event_settings.approval_lock_after_days
    anchor = lock_anchor(event_settings.start_at, event_settings.approval_opened_at)
    if anchor is None or lock_days is None or lock_days < 0:
        return False
    zone = timezone or settings.event_timezone
    return calendar_day_number(now, zone) >= calendar_day_number(anchor, zone) + lock_days + 1


def count_lines(text: str | None) -> int:
    """Count lines the way the guest sees them; empty text has zero lines."""
    if not text:
        return 0
    return len(text.replace("\r\n", "\n").split("\n"))


def exceeds_line_limit(text: str | None, max_lines: int | None) -> bool:
    return bool(max_lines) and max_lines > 0 and count_lines(text) > max_lines


def _gallery_reason(gallery: Gallery, now: datetime, event_requires_approval: bool) -> str | None:
    if in_auto_approve_window(gallery, now):
        return None
    if gallery.require_approval:
        return REASON_GALLERY_WINDOW
    return REASON_REQUIRE_APPROVAL if event_requires_approval else None


def admit(
    request: AdmissionRequest,
    event_settings: EventSettings,
    now: datetime,
    timezone: str | ZoneInfo | None = None,
) -> AdmissionDecision:
    """Decide the status and pending reason of a new submission.

    Precedence of reasons: ``lines`` > ``blocked_rule`` > ``moderation`` >
    ``approval_lock`` > the gallery window (gallery uploads) > ``require_approval``.
    An open gallery window publishes uploads even when the event requires approval.
    """
    if request.kind == KIND_GALLERY_ADMIN:
        return AdmissionDecision(status=STATUS_APPROVED)

    locked = is_approval_locked(event_settings, now, timezone)

    is_blessing = request.kind == KIND_BLESSING
    too_many_lines = is_blessing and exceeds_line_limit(
        request.text, event_settings.max_blessing_lines
    )
    blocked_by_rule = is_blessing and request.rule_match.is_block
    # An allow rule is a whitelist hint: it silences the classifier but never a block.
    flagged = (
        is_blessing
        and request.moderation is not None
        and request.moderation.flagged
        and not request.rule_match.is_allow
    )

    reason: str | None = None
    if too_many_lines:
        reason = REASON_LINES
    elif blocked_by_rule:
        reason = REASON_BLOCKED_RULE
    elif flagged:
        reason = REASON_MODERATION
    elif locked:
        reason = REASON_APPROVAL_LOCK
    elif request.kind == KIND_GALLERY and request.gallery is not None:
        reason = _gallery_reason(request.gallery, now, bool(event_settings.require_approval))
    elif event_settings.require_approval:
        reason = REASON_REQUIRE_APPROVAL

    return AdmissionDecision(
        status=STATUS_PENDING if reason else STATUS_APPROVED,
        pending_reason=reason,
        locked=locked,
        too_many_lines=too_many_lines,
        blocked_by_rule=blocked_by_rule,
        flagged=flagged,
        content_rule_hit=request.rule_match.as_hit() if blocked_by_rule else None,
    )


def count_recent_submissions(
    db: Session,
    *,
    device_id: str,
    kind: str,
    since: datetime,
) -> int:
    stmt = select(func.count(Post.id)).where(
        Post.device_id == device_id,
        Post.kind == kind,
        Post.created_at >= since,
    )
    return db.scalar(stmt) or 0


def enforce_rate_limit(
    db: Session,
    *,
    kind: str,
    device_id: str | None,
    now: datetime,
    limit: int | None = None,
    window: timedelta | None = None,
) -> None:
    """Reject the submission if the device already hit its per-kind quota.

    Raises:
        RateLimitExceeded: When the trailing-window count is at or above ``limit``.
    """
    if not device_id or kind not in RATE_LIMITED_KINDS:
        return
    limit = settings.rate_limit_per_hour if limit is None else limit
    window = window or timedelta(minutes=settings.rate_limit_window_minutes)
    recent = count_recent_submissions(db, device_id=device_id, kind=kind, since=now - window)
    if recent >= limit:
        raise RateLimitExceeded(kind, limit)
