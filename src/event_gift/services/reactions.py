"""Toggle-style emoji reactions on approved posts."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from sqlalchemy import select
from sqlalchemy.orm import Session

from event_gift.models import Post, Reaction
from event_gift.models.post import STATUS_APPROVED
from event_gift.models.reaction import REACTION_EMOJIS
from event_gift.services.errors import PostNotFoundError, SubmissionError


def empty_counts() -> dict[str, int]:
    return {emoji: 0 for emoji in REACTION_EMOJIS}


@dataclass
class ReactionTally:
    counts: dict[str, int] = field(default_factory=empty_counts)
    my_reactions: list[str] = field(default_factory=list)


def tally(db: Session, post_id: int, device_id: str | None) -> ReactionTally:
    """Recount every reaction row of ``post_id``; no stored counters are trusted."""
    result = ReactionTally()
    rows = db.execute(
        select(Reaction.emoji, Reaction.device_id).where(Reaction.post_id == post_id)
    )
    for emoji, reactor in rows:
        result.counts[emoji] = result.counts.get(emoji, 0) + 1
        if device_id and reactor == device_id:
            result.my_reactions.append(emoji)
    result.my_reactions.sort(key=_emoji_order)
    return result


def _emoji_order(emoji: str) -> int:
    return REACTION_EMOJIS.index(emoji) if emoji in REACTION_EMOJIS else len(REACTION_EMOJIS)


def toggle_reaction(db: Session, post_id: int, device_id: str | None, emoji: str) -> ReactionTally:
    """Flip this device's ``emoji`` reaction on ``post_id`` and return fresh totals.

    Raises:
        SubmissionError: If the emoji is not in the fixed set or the device is missing.
        PostNotFoundError: If the post does not exist or is not approved.
    """
    if emoji not in REACTION_EMOJIS:
        raise SubmissionError(f"Unsupported emoji: {emoji!r}")
    if not device_id:
        raise SubmissionError("Missing device_id")

    post = db.get(Post, post_id)
    if post is None or post.status != STATUS_APPROVED:
        raise PostNotFoundError(f"Post {post_id} not found")

    existing = db.get(Reaction, (post_id, device_id, emoji))
    if existing is not None:
        db.delete(existing)
    else:
        db.add(Reaction(post_id=post_id, device_id=device_id, emoji=emoji))
    db.commit()

    return tally(db, post_id, device_id)


def reaction_summary(
    db: Session,
    post_ids: Iterable[int],
    device_id: str | None,
) -> dict[int, ReactionTally]:
    """Return tallies for several posts with one query, for feed rendering."""
    ids = list(post_ids)
    summary = {post_id: ReactionTally() for post_id in ids}
    if not ids:
        return summary
    rows = db.execute(
        select(Reaction.post_id, Reaction.emoji, Reaction.device_id).where(
            Reaction.post_id.in_(ids)
        )
    )
    for post_id, emoji, reactor in rows:
        entry = summary[post_id]
        entry.counts[emoji] = entry.counts.get(emoji, 0) + 1
        if device_id and reactor == device_id:
            entry.my_reactions.append(emoji)
    for entry in summary.values():
        entry.my_reactions.sort(key=_emoji_order)
    return summary
