# src/event_gift/api/v1/endpoints/posts.py
"""Guest-facing post endpoints: submit, feed, and device-scoped edit/delete."""

from typing import Annotated

from fastapi import APIRouter, HTTPException, Query, status

from event_gift.api.v1.dependencies import (
    DeviceIdDep,
    EventIdDep,
    ModerationGateDep,
    SessionDep,
    StorageDep,
    to_http_exception,
)
from event_gift.db.time import utcnow
from event_gift.models.post import KIND_BLESSING, KIND_GALLERY_ADMIN
from event_gift.schemas.post import (
    FeedPost,
    PostCreate,
    PostKind,
    PostResponse,
    PostUpdate,
    SubmissionResponse,
)
from event_gift.services.edit_window import authorize, editable_until
from event_gift.services.errors import EventGiftError
from event_gift.services.post_service import (
    Submission,
    delete_post_by_device,
    edit_post_by_device,
    list_feed,
    submit_post,
)
from event_gift.services.reactions import reaction_summary

router = APIRouter(prefix="/posts", tags=["posts"])


@router.post("/", response_model=SubmissionResponse, status_code=status.HTTP_201_CREATED)
async def create_post(
    post_data: PostCreate,
    db: SessionDep,
    event_id: EventIdDep,
    device_id: DeviceIdDep,
    gate: ModerationGateDep,
) -> SubmissionResponse:
    """Admit a guest submission; it lands approved or pending, never rejected for content."""
    if post_data.kind == KIND_GALLERY_ADMIN:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Admin gallery posts are created from the admin console",
        )

    try:
        post, decision = await submit_post(
            db,
            Submission(**post_data.model_dump()),
            event_id=event_id,
            device_id=device_id,
            gate=gate,
        )
    except EventGiftError as exc:
        raise to_http_exception(exc) from exc

    return SubmissionResponse(
        status=post.status,
        pending_reason=post.pending_reason,
        too_many_lines=decision.too_many_lines,
        flagged=decision.flagged,
        editable_until=editable_until(post) if device_id else None,
        post=PostResponse.model_validate(post),
    )


@router.get("/feed", response_model=list[FeedPost])
async def get_feed(
    db: SessionDep,
    event_id: EventIdDep,
    device_id: DeviceIdDep,
    kind: PostKind = KIND_BLESSING,
    limit: Annotated[int, Query(ge=1, le=100)] = 50,
    before: Annotated[int | None, Query(ge=1)] = None,
    gallery_id: Annotated[int | None, Query(ge=1)] = None,
) -> list[FeedPost]:
    """Return approved posts of one kind, newest first, with reaction totals.

    ``gallery_id`` narrows gallery posts to a single gallery.
    """
    posts = list_feed(db, event_id, kind, limit=limit, before=before, gallery_id=gallery_id)
    summary = reaction_summary(db, [post.id for post in posts], device_id)
    now = utcnow()

    return [
        FeedPost(
            id=post.id,
            kind=post.kind,
            gallery_id=post.gallery_id,
            author_name=post.author_name,
            text=post.text,
            link_url=post.link_url,
            media_url=post.media_url,
            video_url=post.video_url,
            created_at=post.created_at,
            reaction_counts=summary[post.id].counts,
            my_reactions=summary[post.id].my_reactions,
            editable=authorize(post, device_id, now).allowed,
        )
        for post in posts
    ]


@router.put("/{post_id}", response_model=PostResponse)
async def update_post(
    post_id: int,
    patch: PostUpdate,
    db: SessionDep,
    device_id: DeviceIdDep,
    gate: ModerationGateDep,
) -> PostResponse:
    """Edit a post from the device that created it, within the edit window."""
    try:
        post = await edit_post_by_device(
            db,
            post_id,
            device_id,
            patch.model_dump(exclude_unset=True),
            gate=gate,
        )
    except EventGiftError as exc:
        raise to_http_exception(exc) from exc
    return PostResponse.model_validate(post)


@router.delete("/{post_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_post(
    post_id: int,
    db: SessionDep,
    device_id: DeviceIdDep,
    storage: StorageDep,
) -> None:
    """Soft-delete a post from the device that created it, within the edit window."""
    try:
        delete_post_by_device(db, post_id, device_id, storage)
    except EventGiftError as exc:
        raise to_http_exception(exc) from exc
