"""TTL-gated payload caches keyed by resource."""

import logging
import os
import tempfile
import time
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

_logger = logging.getLogger(__name__)


class Cache(Protocol):
    """Cache interface for raw response payloads."""

    def load(self, key: str, max_age_seconds: float) -> bytes | None:
        """Return cached bytes if present and younger than ``max_age_seconds``."""

    def save(self, key: str, data: bytes) -> None:
        """Store bytes under ``key``; failures must not propagate."""


def meal_periods_cache_key(location_id: int) -> str:
    """Cache key for a location's meal periods."""
    return f"mealPeriods/loc_{location_id}.json"


def meal_items_cache_key(location_id: int, period_id: int, month_key: str) -> str:
    """Cache key for a month of meal items at a location and period."""
    return f"meals/loc_{location_id}_period_{period_id}_month_{month_key}.json"


@dataclass
class _CacheEntry:
    data: bytes
    written_at: float


class InMemoryCache(Cache):
    """In-memory cache used when no cache directory is configured."""

    def __init__(self) -> None:
        self._entries: dict[str, _CacheEntry] = {}

    def load(self, key: str, max_age_seconds: float) -> bytes | None:
        """Return cached bytes if the entry is fresh enough."""
        entry = self._entries.get(key)
        if entry is None or max_age_seconds <= 0:
            return None
        if time.time() - entry.written_at > max_age_seconds:
            return None
        return entry.data

    def save(self, key: str, data: bytes) -> None:
        """Store bytes with the current timestamp."""
        self._entries[key] = _CacheEntry(data=data, written_at=time.time())


class FileCache(Cache):
    """Filesystem cache; freshness comes from each file's modification time."""

    def __init__(self, root: Path) -> None:
        self.root = Path(root)

    def path_for(self, key: str) -> Path:
        return self.root / key

    def load(self, key: str, max_age_seconds: float) -> bytes | None:
        """Return file contents when the file is younger than the max age."""
        if max_age_seconds <= 0:
            return None
        path = self.path_for(key)
        try:
            modified_at = path.stat().st_mtime
            if time.time() - modified_at > max_age_seconds:
                return None
            return path.read_bytes()
        except OSError:
            return None

    def save(self, key: str, data: bytes) -> None:
        """Write bytes atomically via a temp file and rename."""
        path = self.path_for(key)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=path.parent, prefix=f".{path.name}.", suffix=".tmp"
            )
            try:
                with os.fdopen(fd, "wb") as handle:
                    handle.write(data)
                os.replace(tmp_name, path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            _logger.warning("Cache write failed for %s: %s", key, exc)
