"""Device-scoped edit/delete window for guest posts.

The anonymous ``device_id`` is the capability that authorizes a guest to change
their own submission, and only within a fixed window from creation.
"""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from event_gift.core.settings import settings
from event_gift.db.time import ensure_utc
from event_gift.models import Post
from event_gift.models.post import (
    REASON_BLOCKED_RULE,
    REASON_LINES,
    REASON_MODERATION,
    STATUS_PENDING,
)
from event_gift.services.admission import exceeds_line_limit
from event_gift.services.content_rules import ContentRuleMatch
from event_gift.services.moderation import ModerationResult

FORBIDDEN_DELETED = "deleted"
FORBIDDEN_DEVICE_MISMATCH = "device_mismatch"
FORBIDDEN_WINDOW_EXPIRED = "window_expired"


@dataclass(frozen=True)
class EditAuthorization:
    allowed: bool
    reason: str | None = None


ALLOWED = EditAuthorization(allowed=True)


def edit_window() -> timedelta:
    return timedelta(seconds=settings.edit_window_seconds)


def editable_until(post: Post) -> datetime:
    """Return the last instant the originating device may change ``post``."""
    return ensure_utc(post.created_at) + edit_window()


def authorize(post: Post, requesting_device_id: str | None, now: datetime) -> EditAuthorization:
    """Return whether ``requesting_device_id`` may edit or delete ``post`` at ``now``.

    The window is anchored on ``created_at``; edits never extend it.
    """
    if post.is_deleted:
        return EditAuthorization(allowed=False, reason=FORBIDDEN_DELETED)
    if not requesting_device_id or post.device_id != requesting_device_id:
        return EditAuthorization(allowed=False, reason=FORBIDDEN_DEVICE_MISMATCH)
    if ensure_utc(now) - ensure_utc(post.created_at) > edit_window():
        return EditAuthorization(allowed=False, reason=FORBIDDEN_WINDOW_EXPIRED)
    return ALLOWED


@dataclass(frozen=True)
class EditRecheck:
    """Outcome of re-validating an edited blessing."""

    pending_reason: str | None
    flagged: bool
    content_rule_hit: dict[str, Any] | None


def recheck_blessing(
    text: str | None,
    rule_match: ContentRuleMatch,
    moderation: ModerationResult,
    max_lines: int | None,
) -> EditRecheck:
    """Apply the line, content-rule and moderation checks used at submission time."""
    flagged = moderation.flagged and not rule_match.is_allow
    reason: str | None = None
    if exceeds_line_limit(text, max_lines):
        reason = REASON_LINES
    elif rule_match.is_block:
        reason = REASON_BLOCKED_RULE
    elif flagged:
        reason = REASON_MODERATION
    return EditRecheck(
        pending_reason=reason,
        flagged=flagged,
        content_rule_hit=rule_match.as_hit(),
    )


def apply_recheck(post: Post, recheck: EditRecheck, moderation: ModerationResult) -> None:
    """Push ``post`` back to pending on a violation; never approve it.

    Only an admin action moves a pending post to approved.
    """
    if recheck.pending_reason is not None:
        post.status = STATUS_PENDING
        post.pending_reason = recheck.pending_reason
    post.content_rule_hit = recheck.content_rule_hit
    post.moderation_flagged = recheck.flagged
    post.moderation_provider = moderation.provider
    post.moderation_raw = moderation.raw
