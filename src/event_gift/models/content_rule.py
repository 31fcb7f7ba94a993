# src/event_gift/models/content_rule.py
"""Organizer-managed block/allow rules for guest text."""

from datetime import datetime

from sqlalchemy import Boolean, CheckConstraint, Integer, Text
from sqlalchemy.orm import Mapped, mapped_column

from event_gift.db.session import Base
from event_gift.db.time import UTCDateTime, utcnow

RULE_BLOCK = "block"
RULE_ALLOW = "allow"
RULE_TYPES = frozenset({RULE_BLOCK, RULE_ALLOW})

SCOPE_EVENT = "event"
SCOPE_GLOBAL = "global"
RULE_SCOPES = frozenset({SCOPE_EVENT, SCOPE_GLOBAL})

MATCH_EXACT = "exact"
MATCH_CONTAINS = "contains"
MATCH_WORD = "word"
MATCH_TYPES = frozenset({MATCH_EXACT, MATCH_CONTAINS, MATCH_WORD})


class ContentRule(Base):
    """A single block or allow expression, scoped globally or to one event."""

    __tablename__ = "content_rule"
    __table_args__ = (
        CheckConstraint("rule_type IN ('block', 'allow')", name="ck_content_rule_type"),
        CheckConstraint("scope IN ('event', 'global')", name="ck_content_rule_scope"),
        CheckConstraint(
            "match_type IN ('exact', 'contains', 'word')",
            name="ck_content_rule_match_type",
        ),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    rule_type: Mapped[str] = mapped_column(Text, nullable=False, default=RULE_BLOCK)
    scope: Mapped[str] = mapped_column(Text, nullable=False, default=SCOPE_GLOBAL)
    # Null for global rules.
    event_id: Mapped[str | None] = mapped_column(Text, nullable=True)
    match_type: Mapped[str] = mapped_column(Text, nullable=False, default=MATCH_CONTAINS)
    expression: Mapped[str] = mapped_column(Text, nullable=False)
    is_active: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(UTCDateTime, nullable=False, default=utcnow)
