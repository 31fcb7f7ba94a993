"""Domain exceptions raised by the service layer.

Endpoints translate these into HTTP responses; advisory failures (moderation
provider, storage removal, backup upload) never reach this hierarchy.
"""

from __future__ import annotations


class EventGiftError(RuntimeError):
    """Base exception for event gift service failures."""


class SubmissionError(EventGiftError):
    """Raised when a submission or patch fails validation."""


class RateLimitExceeded(EventGiftError):
    """Raised when a device submitted too many posts of one kind recently."""

    def __init__(self, kind: str, limit: int) -> None:
        super().__init__(f"Too many {kind} submissions; try again later")
        self.kind = kind
        self.limit = limit


class NotFoundError(EventGiftError):
    """Raised when a referenced record does not exist."""


class PostNotFoundError(NotFoundError):
    """Raised when a post does not exist (or is not visible to the caller)."""


class EditForbiddenError(EventGiftError):
    """Raised when a device may not edit or delete a post."""

    def __init__(self, reason: str) -> None:
        super().__init__(f"Edit forbidden: {reason}")
        self.reason = reason


class PostDeletedError(EventGiftError):
    """Raised when any mutation targets a post that is already deleted."""


class AdminPermissionError(EventGiftError):
    """Raised when an admin lacks the permission an action requires."""


class CronAuthError(EventGiftError):
    """Raised when a scheduled-trigger request carries no valid credentials."""


class CronNotConfiguredError(EventGiftError):
    """Raised when no cron secret is configured and no trusted header is present."""


class GalleryNotFoundError(NotFoundError):
    """Raised when a gallery does not exist in the caller's event."""


class GalleryClosedError(EventGiftError):
    """Raised when a guest uploads into a gallery whose uploads are switched off."""
