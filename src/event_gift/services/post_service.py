"""Service-level helpers for creating, editing and moderating posts."""

from __future__ import annotations

import logging
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime
from typing import Any

from sqlalchemy import select
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from event_gift.db.time import utcnow
from event_gift.models import Gallery, MediaItem, Post
from event_gift.models.post import (
    KIND_BLESSING,
    KIND_GALLERY,
    KIND_GALLERY_ADMIN,
    POST_KINDS,
    POST_STATUSES,
    STATUS_APPROVED,
    STATUS_DELETED,
)
from event_gift.services.admission import (
    AdmissionDecision,
    AdmissionRequest,
    admit,
    enforce_rate_limit,
)
from event_gift.services.content_rules import NO_MATCH, match_submission
from event_gift.services.edit_window import apply_recheck, authorize, recheck_blessing
from event_gift.services.errors import (
    EditForbiddenError,
    PostDeletedError,
    PostNotFoundError,
    SubmissionError,
)
from event_gift.services.event_settings import get_event_settings
from event_gift.services.galleries import gallery_for_upload, get_gallery
from event_gift.services.lifecycle import discard_media
from event_gift.services.moderation import ModerationResult, SoftModerationGate
from event_gift.services.storage import ObjectStorage

logger = logging.getLogger(__name__)

CONTENT_FIELDS: tuple[str, ...] = (
    "author_name",
    "text",
    "link_url",
    "media_url",
    "media_path",
    "video_url",
)

# Fields consulted by content rules; media_path is a storage key, not guest text.
RULE_FIELDS = frozenset({"author_name", "text", "link_url", "media_url", "video_url"})

ADMIN_LIST_LIMIT = 500


@dataclass(frozen=True)
class Submission:
    """A new guest or admin submission as received from the API layer."""

    kind: str
    author_name: str | None = None
    text: str | None = None
    link_url: str | None = None
    media_url: str | None = None
    media_path: str | None = None
    video_url: str | None = None
    gallery_id: int | None = None

    def fields(self) -> dict[str, str | None]:
        return {name: getattr(self, name) for name in CONTENT_FIELDS}


def _clean(value: Any) -> str | None:
    if value is None:
        return None
    text = str(value)
    return text if text.strip() else None


def validate_submission(submission: Submission) -> None:
    """Reject unknown kinds and submissions with nothing to show.

    Raises:
        SubmissionError: On any validation failure.
    """
    if submission.kind not in POST_KINDS:
        raise SubmissionError(f"Unknown kind: {submission.kind!r}")

    has_media = any(
        _clean(value)
        for value in (submission.media_url, submission.media_path, submission.video_url)
    )
    if submission.kind in (KIND_GALLERY, KIND_GALLERY_ADMIN) and not has_media:
        raise SubmissionError("Gallery submissions require media")
    if submission.kind == KIND_BLESSING and not (_clean(submission.text) or has_media):
        raise SubmissionError("Blessings require text or media")


def check_media_ownership(
    db: Session,
    media_path: str | None,
    device_id: str | None,
    post_id: int | None = None,
) -> None:
    """Refuse a storage key that belongs to another post or another device.

    Raises:
        SubmissionError: If the uploaded object is already claimed.
    """
    if not _clean(media_path):
        return
    item = db.scalar(select(MediaItem).where(MediaItem.storage_path == media_path))
    if item is None:
        return
    if item.post_id is not None and item.post_id != post_id:
        raise SubmissionError("media_path is attached to another post")
    if item.uploader_device_id is not None and item.uploader_device_id != device_id:
        raise SubmissionError("media_path was uploaded by another device")


def resolve_gallery(db: Session, submission: Submission, event_id: str) -> Gallery | None:
    """Return the target gallery; guests may only upload into open ones."""
    if submission.gallery_id is None:
        return None
    if submission.kind == KIND_GALLERY:
        return gallery_for_upload(db, submission.gallery_id, event_id)
    if submission.kind == KIND_GALLERY_ADMIN:
        return get_gallery(db, submission.gallery_id, event_id)
    raise SubmissionError("Only gallery submissions can name a gallery")


def attach_media(db: Session, post: Post) -> MediaItem | None:
    """Link the post's uploaded object to its media item, creating the row if needed."""
    if not post.media_path:
        return None
    item = db.scalar(select(MediaItem).where(MediaItem.storage_path == post.media_path))
    if item is None:
        item = MediaItem(
            event_id=post.event_id,
            storage_path=post.media_path,
            public_url=post.media_url,
            uploader_device_id=post.device_id,
        )
        db.add(item)
    elif item.post_id is not None and item.post_id != post.id:
        return item
    item.post_id = post.id
    item.kind = post.kind
    item.gallery_id = post.gallery_id
    return item


async def submit_post(
    db: Session,
    submission: Submission,
    *,
    event_id: str,
    device_id: str | None,
    gate: SoftModerationGate,
    now: datetime | None = None,
) -> tuple[Post, AdmissionDecision]:
    """Admit and persist a new submission.

    Args:
        db: Database session.
        submission: Submitted fields.
        event_id: Event the post belongs to.
        device_id: Anonymous client token, if the client sent one.
        gate: Soft moderation gate for blessing text.
        now: Decision instant; defaults to the current time.

    Returns:
        The persisted post and the admission decision that produced its status.

    Raises:
        SubmissionError: If the submission is invalid.
        RateLimitExceeded: If the device exceeded its per-kind quota.
        GalleryNotFoundError: If ``gallery_id`` names no gallery of this event.
        GalleryClosedError: If a guest uploads into a gallery with uploads off.
    """
    validate_submission(submission)
    now = now or utcnow()
    enforce_rate_limit(db, kind=submission.kind, device_id=device_id, now=now)
    check_media_ownership(db, submission.media_path, device_id)
    gallery = resolve_gallery(db, submission, event_id)

    event_settings = get_event_settings(db, event_id)

    rule_match = NO_MATCH
    moderation: ModerationResult | None = None
    if submission.kind == KIND_BLESSING:
        rule_match = match_submission(db, submission.fields(), event_id)
        moderation = await gate.moderate(submission.text)

    decision = admit(
        AdmissionRequest(
            kind=submission.kind,
            text=submission.text,
            rule_match=rule_match,
            moderation=moderation,
            gallery=gallery,
        ),
        event_settings,
        now,
    )

    post = Post(
        event_id=event_id,
        kind=submission.kind,
        gallery_id=gallery.id if gallery else None,
        **{name: _clean(value) for name, value in submission.fields().items()},
        status=decision.status,
        pending_reason=decision.pending_reason,
        moderation_flagged=decision.flagged,
        moderation_provider=moderation.provider if moderation else None,
        moderation_raw=moderation.raw if moderation else None,
        content_rule_hit=decision.content_rule_hit,
        device_id=device_id,
        created_at=now,
        updated_at=now,
    )
    db.add(post)
    db.flush()
    attach_media(db, post)
    db.commit()
    db.refresh(post)

    logger.info(
        "Admitted %s post %s as %s (reason=%s)",
        post.kind,
        post.id,
        post.status,
        post.pending_reason,
    )
    return post, decision


def get_post_or_raise(db: Session, post_id: int) -> Post:
    post = db.get(Post, post_id)
    if post is None:
        raise PostNotFoundError(f"Post {post_id} not found")
    return post


def _authorize_device(post: Post, device_id: str | None, now: datetime) -> None:
    if not device_id:
        raise SubmissionError("Missing device_id")
    decision = authorize(post, device_id, now)
    if not decision.allowed:
        raise EditForbiddenError(decision.reason or "forbidden")


async def edit_post_by_device(
    db: Session,
    post_id: int,
    device_id: str | None,
    patch: Mapping[str, Any],
    *,
    gate: SoftModerationGate,
    now: datetime | None = None,
) -> Post:
    """Apply a guest's edit within the edit window.

    Edited blessings are re-validated; a violation sends the post back to
    pending, but an edit never approves a pending post.
    """
    now = now or utcnow()
    post = get_post_or_raise(db, post_id)
    _authorize_device(post, device_id, now)

    unknown = set(patch) - set(CONTENT_FIELDS)
    if unknown:
        raise SubmissionError(f"Fields not editable: {', '.join(sorted(unknown))}")
    if "media_path" in patch:
        check_media_ownership(db, patch["media_path"], device_id, post.id)

    for name, value in patch.items():
        setattr(post, name, _clean(value))

    if post.kind == KIND_BLESSING and set(patch) & RULE_FIELDS:
        event_settings = get_event_settings(db, post.event_id)
        fields = {name: getattr(post, name) for name in RULE_FIELDS}
        rule_match = match_submission(db, fields, post.event_id)
        moderation = await gate.moderate(post.text)
        recheck = recheck_blessing(
            post.text,
            rule_match,
            moderation,
            event_settings.max_blessing_lines,
        )
        apply_recheck(post, recheck, moderation)

    if "media_path" in patch:
        attach_media(db, post)

    post.updated_at = now
    db.commit()
    db.refresh(post)
    return post


def delete_post_by_device(
    db: Session,
    post_id: int,
    device_id: str | None,
    storage: ObjectStorage,
    now: datetime | None = None,
) -> Post:
    """Soft-delete a guest's post within the edit window.

    Media cleanup is best-effort; it never blocks the post deletion.
    """
    now = now or utcnow()
    post = get_post_or_raise(db, post_id)
    _authorize_device(post, device_id, now)

    post.status = STATUS_DELETED
    post.updated_at = now
    db.commit()

    if post.media_path:
        try:
            item = db.scalar(
                select(MediaItem).where(
                    MediaItem.storage_path == post.media_path,
                    MediaItem.post_id == post.id,
                )
            )
            if item is not None:
                discard_media(db, item, storage, now)
        except SQLAlchemyError as exc:
            db.rollback()
            logger.warning("Media cleanup failed for deleted post %s: %s", post.id, exc)

    db.refresh(post)
    return post


def list_feed(
    db: Session,
    event_id: str,
    kind: str,
    *,
    limit: int = 50,
    before: int | None = None,
    gallery_id: int | None = None,
) -> list[Post]:
    """Return approved posts of ``kind``, newest first, paginated by id."""
    stmt = select(Post).where(
        Post.event_id == event_id,
        Post.kind == kind,
        Post.status == STATUS_APPROVED,
    )
    if gallery_id is not None:
        stmt = stmt.where(Post.gallery_id == gallery_id)
    if before is not None:
        stmt = stmt.where(Post.id < before)
    stmt = stmt.order_by(Post.id.desc()).limit(limit)
    return list(db.scalars(stmt))


def list_posts_for_admin(
    db: Session,
    event_id: str,
    *,
    kind: str | None = None,
    status: str | None = None,
    limit: int = ADMIN_LIST_LIMIT,
) -> list[Post]:
    stmt = select(Post).where(Post.event_id == event_id)
    if kind:
        stmt = stmt.where(Post.kind == kind)
    if status:
        stmt = stmt.where(Post.status == status)
    stmt = stmt.order_by(Post.created_at.desc(), Post.id.desc()).limit(limit)
    return list(db.scalars(stmt))


def admin_update_post(
    db: Session,
    post_id: int,
    event_id: str,
    *,
    status: str | None = None,
    fields: Mapping[str, Any] | None = None,
    now: datetime | None = None,
) -> Post:
    """Apply an organizer's moderation action; no window or device checks apply.

    Raises:
        PostNotFoundError: If the post does not exist in this event.
        PostDeletedError: If the post is already deleted.
        SubmissionError: If the patch is empty or invalid.
    """
    fields = dict(fields or {})
    if status is None and not fields:
        raise SubmissionError("Nothing to update")
    if status is not None and status not in POST_STATUSES:
        raise SubmissionError(f"Unknown status: {status!r}")
    unknown = set(fields) - set(CONTENT_FIELDS)
    if unknown:
        raise SubmissionError(f"Fields not editable: {', '.join(sorted(unknown))}")

    post = get_post_or_raise(db, post_id)
    if post.event_id != event_id:
        raise PostNotFoundError(f"Post {post_id} not found")
    if post.is_deleted:
        raise PostDeletedError(f"Post {post_id} is deleted")

    for name, value in fields.items():
        setattr(post, name, _clean(value))
    if status is not None:
        post.status = status
    if "media_path" in fields:
        attach_media(db, post)

    post.updated_at = now or utcnow()
    db.commit()
    db.refresh(post)
    logger.info("Admin set post %s status=%s", post.id, post.status)
    return post
