# src/event_gift/models/reaction.py
"""Emoji reactions left by devices on approved posts."""

from sqlalchemy import ForeignKey, Index, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from event_gift.db.session import Base

REACTION_EMOJIS: tuple[str, ...] = ("👍", "😍", "🔥", "🙏")


class Reaction(Base):
    """Presence of a row means this device reacted with this emoji to this post.

    The composite primary key prevents duplicate reactions; toggling inserts
    or deletes, never updates.
    """

    __tablename__ = "reaction"
    __table_args__ = (Index("ix_reaction_post_id", "post_id"),)

    post_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("post.id", ondelete="CASCADE"),
        primary_key=True,
    )
    device_id: Mapped[str] = mapped_column(Text, primary_key=True)
    emoji: Mapped[str] = mapped_column(Text, primary_key=True)
