# src/event_gift/schemas/post.py
"""Post-related Pydantic schemas."""

from datetime import datetime
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field

PostKind = Literal["blessing", "gallery", "gallery_admin"]
PostStatus = Literal["pending", "approved", "deleted"]


class PostCreate(BaseModel):
    """Schema for a new guest submission."""

    kind: PostKind
    author_name: str | None = Field(None, max_length=200)
    text: str | None = Field(None, max_length=10_000)
    link_url: str | None = Field(None, max_length=2_000)
    media_url: str | None = Field(None, max_length=2_000)
    media_path: str | None = Field(None, max_length=1_000)
    video_url: str | None = Field(None, max_length=2_000)
    gallery_id: int | None = Field(None, ge=1)


class PostUpdate(BaseModel):
    """Partial update; only fields present in the request body are applied."""

    author_name: str | None = Field(None, max_length=200)
    text: str | None = Field(None, max_length=10_000)
    link_url: str | None = Field(None, max_length=2_000)
    media_url: str | None = Field(None, max_length=2_000)
    media_path: str | None = Field(None, max_length=1_000)
    video_url: str | None = Field(None, max_length=2_000)

    model_config = ConfigDict(extra="forbid")


class AdminGalleryPostCreate(PostUpdate):
    """Organizer gallery post, optionally placed in a gallery."""

    gallery_id: int | None = Field(None, ge=1)


class AdminPostUpdate(PostUpdate):
    """Organizer moderation action on a post."""

    status: PostStatus | None = None


class PostResponse(BaseModel):
    """Post as returned to its author and to admins."""

    id: int
    event_id: str
    kind: str
    gallery_id: int | None
    author_name: str | None
    text: str | None
    link_url: str | None
    media_url: str | None
    media_path: str | None
    video_url: str | None
    status: str
    pending_reason: str | None
    moderation_flagged: bool
    moderation_provider: str | None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SubmissionResponse(BaseModel):
    """Result of a guest submission."""

    ok: bool = True
    status: str
    pending_reason: str | None = None
    too_many_lines: bool = False
    flagged: bool = False
    editable_until: datetime | None = None
    post: PostResponse


class FeedPost(BaseModel):
    """Public view of an approved post; never exposes the device id."""

    id: int
    kind: str
    gallery_id: int | None
    author_name: str | None
    text: str | None
    link_url: str | None
    media_url: str | None
    video_url: str | None
    created_at: datetime
    reaction_counts: dict[str, int]
    my_reactions: list[str]
    editable: bool = False
