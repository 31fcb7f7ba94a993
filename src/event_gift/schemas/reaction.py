# src/event_gift/schemas/reaction.py
"""Reaction-related Pydantic schemas."""

from pydantic import BaseModel, Field


class ReactionToggle(BaseModel):
    """Schema for toggling a reaction."""

    post_id: int
    emoji: str = Field(..., min_length=1, max_length=16)


class ReactionTallyResponse(BaseModel):
    ok: bool = True
    counts: dict[str, int]
    my: list[str]
