"""Object storage used for guest uploads."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Protocol

from event_gift.core.settings import settings

logger = logging.getLogger(__name__)


class StorageError(RuntimeError):
    """Raised when an object cannot be read or removed."""


class ObjectStorage(Protocol):
    """Minimal storage surface consumed by the lifecycle and sync sweeps."""

    def read(self, path: str) -> bytes:
        """Return the object's bytes; raise ``StorageError`` when unavailable."""
        ...

    def remove(self, path: str) -> None:
        """Remove the object; a missing object is not an error."""
        ...


class LocalObjectStorage:
    """Filesystem-backed storage rooted at ``MEDIA_ROOT``."""

    def __init__(self, root: str | Path | None = None) -> None:
        self.root = Path(root or settings.media_root).resolve()

    def _resolve(self, path: str) -> Path:
        target = (self.root / path.lstrip("/")).resolve()
        if not target.is_relative_to(self.root):
            raise StorageError(f"Path escapes storage root: {path}")
        return target

    def read(self, path: str) -> bytes:
        try:
            return self._resolve(path).read_bytes()
        except OSError as exc:
            raise StorageError(f"Cannot read {path}: {exc}") from exc

    def remove(self, path: str) -> None:
        try:
            self._resolve(path).unlink(missing_ok=True)
        except OSError as exc:
            raise StorageError(f"Cannot remove {path}: {exc}") from exc


def remove_quietly(storage: ObjectStorage, path: str | None) -> bool:
    """Best-effort removal; returns False (and logs) instead of raising."""
    if not path:
        return False
    try:
        storage.remove(path)
    except StorageError as exc:
        logger.warning("Ignoring storage removal failure for %s: %s", path, exc)
        return False
    return True


_storage: ObjectStorage | None = None


def get_storage() -> ObjectStorage:
    """Return the shared storage backend."""
    global _storage
    if _storage is None:
        _storage = LocalObjectStorage()
    return _storage
