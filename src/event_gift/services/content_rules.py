"""Content rule matching for guest-submitted text and links."""

from __future__ import annotations

import logging
import re
from collections.abc import Iterable, Mapping, Sequence
from dataclasses import dataclass
from typing import Any

from sqlalchemy import or_, select
from sqlalchemy.orm import Session

from event_gift.models import ContentRule
from event_gift.models.content_rule import (
    MATCH_CONTAINS,
    MATCH_EXACT,
    MATCH_WORD,
    RULE_ALLOW,
    RULE_BLOCK,
    SCOPE_EVENT,
    SCOPE_GLOBAL,
)
from event_gift.services.errors import NotFoundError

logger = logging.getLogger(__name__)

# Field scan order; the first field that matches is reported.
MATCH_FIELDS: tuple[str, ...] = ("author_name", "text", "link_url", "media_url", "video_url")

# Characters that delimit a whole word besides whitespace (Hebrew geresh/gershayim/maqaf included).
WORD_PUNCTUATION = ".,!?;:\"'()[]{}<>/\\-_*~`״׳־"

_BOUNDARY_CLASS = r"[\s" + re.escape(WORD_PUNCTUATION) + r"]"


@dataclass(frozen=True)
class ContentRuleMatch:
    """Result of scanning a submission against the active rules."""

    matched: bool
    rule: ContentRule | None = None
    matched_on: str | None = None
    matched_value: str | None = None

    @property
    def is_block(self) -> bool:
        return self.matched and self.rule is not None and self.rule.rule_type == RULE_BLOCK

    @property
    def is_allow(self) -> bool:
        return self.matched and self.rule is not None and self.rule.rule_type == RULE_ALLOW

    def as_hit(self) -> dict[str, Any] | None:
        """Return the diagnostic payload stored on a post, or None when nothing blocked."""
        if not self.is_block or self.rule is None:
            return None
        return {
            "id": self.rule.id,
            "match_type": self.rule.match_type,
            "expression": self.rule.expression,
            "matched_on": self.matched_on,
        }


NO_MATCH = ContentRuleMatch(matched=False)


def normalize(value: object) -> str:
    """Trim and lowercase a candidate value; ``None`` becomes an empty string."""
    if value is None:
        return ""
    return str(value).strip().lower()


def word_pattern(expression: str) -> re.Pattern[str]:
    return re.compile(
        rf"(?:^|{_BOUNDARY_CLASS}){re.escape(expression)}(?=$|{_BOUNDARY_CLASS})"
    )


def word_matches(expression: str, value: str) -> bool:
    """Return True if ``expression`` appears in ``value`` as a whole word.

    Both arguments must already be normalized.
    """
    try:
        pattern = word_pattern(expression)
    except re.error as exc:
        logger.warning(
            "Whole-word pattern for %r failed to compile (%s); using whitespace split",
            expression,
            exc,
        )
        return expression in value.split()
    return pattern.search(value) is not None


def rule_matches(rule: ContentRule, value: str) -> bool:
    """Return True if ``rule`` matches the (unnormalized) ``value``."""
    expression = normalize(rule.expression)
    candidate = normalize(value)
    if not expression or not candidate:
        return False
    if rule.match_type == MATCH_EXACT:
        return candidate == expression
    if rule.match_type == MATCH_CONTAINS:
        return expression in candidate
    if rule.match_type == MATCH_WORD:
        return word_matches(expression, candidate)
    return False


def applicable_rules(rules: Iterable[ContentRule], event_id: str | None) -> list[ContentRule]:
    """Return active rules that are global or scoped to ``event_id``."""
    return [
        rule
        for rule in rules
        if rule.is_active
        and (
            rule.scope == SCOPE_GLOBAL
            or (rule.scope == SCOPE_EVENT and event_id is not None and rule.event_id == event_id)
        )
    ]


def _scan(
    rules: Sequence[ContentRule],
    rule_type: str,
    fields: Sequence[tuple[str, str]],
) -> ContentRuleMatch | None:
    for rule in rules:
        if rule.rule_type != rule_type:
            continue
        for name, value in fields:
            if rule_matches(rule, value):
                return ContentRuleMatch(
                    matched=True,
                    rule=rule,
                    matched_on=name,
                    matched_value=value,
                )
    return None


def match_content_rules(
    rules: Iterable[ContentRule],
    fields: Mapping[str, str | None],
    event_id: str | None,
) -> ContentRuleMatch:
    """Match submission fields against block rules first, then allow rules.

    Args:
        rules: Candidate rules, in evaluation order.
        fields: Submission values keyed by ``MATCH_FIELDS`` names; missing keys are empty.
        event_id: Event the submission belongs to, for event-scoped rules.

    Returns:
        The first block match, else the first allow match, else ``NO_MATCH``.
    """
    candidates = [(name, str(fields.get(name) or "")) for name in MATCH_FIELDS]
    active = applicable_rules(rules, event_id)

    blocked = _scan(active, RULE_BLOCK, candidates)
    if blocked is not None:
        return blocked

    allowed = _scan(active, RULE_ALLOW, candidates)
    if allowed is not None:
        return allowed

    return NO_MATCH


def fetch_active_rules(db: Session, event_id: str | None) -> list[ContentRule]:
    """Load active rules relevant to ``event_id`` in insertion order."""
    stmt = (
        select(ContentRule)
        .where(
            ContentRule.is_active.is_(True),
            or_(
                ContentRule.scope == SCOPE_GLOBAL,
                ContentRule.event_id == event_id,
            ),
        )
        .order_by(ContentRule.id.asc())
    )
    return list(db.scalars(stmt))


def match_submission(
    db: Session,
    fields: Mapping[str, str | None],
    event_id: str | None,
) -> ContentRuleMatch:
    """Load the active rules for ``event_id`` and match ``fields`` against them."""
    return match_content_rules(fetch_active_rules(db, event_id), fields, event_id)


def list_rules(db: Session, event_id: str) -> list[ContentRule]:
    """Return global rules and the rules scoped to ``event_id``, active or not."""
    stmt = (
        select(ContentRule)
        .where(or_(ContentRule.scope == SCOPE_GLOBAL, ContentRule.event_id == event_id))
        .order_by(ContentRule.id.asc())
    )
    return list(db.scalars(stmt))


def create_rule(db: Session, event_id: str, values: Mapping[str, Any]) -> ContentRule:
    """Persist a new rule; event-scoped rules are pinned to ``event_id``."""
    rule = ContentRule(**values)
    rule.event_id = event_id if rule.scope == SCOPE_EVENT else None
    db.add(rule)
    db.commit()
    db.refresh(rule)
    logger.info("Created %s rule %s (%s)", rule.rule_type, rule.id, rule.match_type)
    return rule


def get_rule_or_raise(db: Session, rule_id: int, event_id: str) -> ContentRule:
    rule = db.get(ContentRule, rule_id)
    if rule is None or (rule.scope == SCOPE_EVENT and rule.event_id != event_id):
        raise NotFoundError(f"Rule {rule_id} not found")
    return rule


def update_rule(
    db: Session,
    rule_id: int,
    event_id: str,
    patch: Mapping[str, Any],
) -> ContentRule:
    rule = get_rule_or_raise(db, rule_id, event_id)
    for name, value in patch.items():
        setattr(rule, name, value)
    rule.event_id = event_id if rule.scope == SCOPE_EVENT else None
    db.commit()
    db.refresh(rule)
    return rule


def delete_rule(db: Session, rule_id: int, event_id: str) -> None:
    rule = get_rule_or_raise(db, rule_id, event_id)
    db.delete(rule)
    db.commit()
