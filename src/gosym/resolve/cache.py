"""Persisted cache of recent cross-file resolutions.

The table is a YAML mapping from the queried identifier's
``path:line:column`` to where it resolved. An entry is only trusted while
both the queried file and the resolved file are byte-identical to what they
were when it was recorded; SHA-1 fingerprints of both are stored with it.
Entries that fail validation are marked bad and dropped by the next sweep,
together with anything older than the retention window.

There is no inter-process locking. Concurrent gosym processes may overwrite
each other's table; the last writer wins.
"""

from __future__ import annotations

import contextlib
import hashlib
import os
import threading
from collections.abc import Callable
from datetime import UTC, datetime, timedelta
from pathlib import Path

import structlog
import yaml
from pydantic import BaseModel, Field, field_validator

from gosym.config.constants import CACHE_RETENTION_HOURS
from gosym.core.errors import CacheError
from gosym.parsing.files import Location

log = structlog.get_logger(__name__)


def fingerprint(data: bytes) -> str:
    return hashlib.sha1(data).hexdigest()


def fingerprint_file(path: str | Path) -> str | None:
    """Fingerprint of a file on disk, or None if it cannot be read."""
    try:
        return fingerprint(Path(path).read_bytes())
    except OSError:
        return None


def _utcnow() -> datetime:
    return datetime.now(UTC)


class CacheEntry(BaseModel):
    """One recorded resolution."""

    origin_fingerprint: str
    location: str
    resolved_fingerprint: str
    created_at: datetime
    bad: bool = Field(default=False, exclude=True)  # in memory only

    @field_validator("created_at")
    @classmethod
    def _assume_utc(cls, value: datetime) -> datetime:
        # Hand-edited tables may drop the offset
        return value if value.tzinfo is not None else value.replace(tzinfo=UTC)


class ResolutionCache:
    """In-memory view of the cache table. Thread-safe."""

    def __init__(
        self,
        path: Path | None,
        retention: timedelta = timedelta(hours=CACHE_RETENTION_HOURS),
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self.path = path
        self.retention = retention
        self._clock = clock
        self._entries: dict[str, CacheEntry] = {}
        self._lock = threading.Lock()

    @classmethod
    def load(
        cls,
        path: Path | None,
        *,
        retention_hours: float = CACHE_RETENTION_HOURS,
        clock: Callable[[], datetime] = _utcnow,
    ) -> ResolutionCache:
        """Load the table at ``path``. A missing or damaged table loads empty."""
        cache = cls(path, timedelta(hours=retention_hours), clock)
        if path is None or not path.exists():
            return cache
        try:
            raw = yaml.safe_load(path.read_text()) or {}
            if not isinstance(raw, dict):
                raise ValueError(f"expected a mapping, got {type(raw).__name__}")
            entries = {str(key): CacheEntry.model_validate(value) for key, value in raw.items()}
        except (OSError, yaml.YAMLError, ValueError) as e:
            err = CacheError.unreadable(str(path), str(e))
            log.warning("cache_unreadable", **err.to_dict())
            return cache
        cache._entries = entries
        log.debug("cache_loaded", path=str(path), entries=len(entries))
        return cache

    def __len__(self) -> int:
        with self._lock:
            return len(self._entries)

    def __contains__(self, key: object) -> bool:
        with self._lock:
            return key in self._entries

    def get(self, key: str) -> CacheEntry | None:
        with self._lock:
            return self._entries.get(key)

    def lookup(self, key: str, origin_fingerprint: str) -> Location | None:
        """Return the cached location for ``key`` if it is still valid.

        Invalid entries are marked bad rather than removed.
        """
        with self._lock:
            entry = self._entries.get(key)
        if entry is None or entry.bad:
            return None

        if entry.origin_fingerprint != origin_fingerprint:
            self._mark_bad(key, "origin_changed")
            return None
        try:
            location = Location.parse(entry.location)
        except ValueError:
            self._mark_bad(key, "malformed_location")
            return None
        if fingerprint_file(location.path) != entry.resolved_fingerprint:
            self._mark_bad(key, "resolved_changed")
            return None

        log.debug("cache_hit", key=key, location=entry.location)
        return location

    def record(self, key: str, origin_fingerprint: str, location: Location) -> bool:
        """Store a resolution, sweep, and persist the table.

        Returns False when the resolved file cannot be fingerprinted.
        """
        resolved = fingerprint_file(location.path)
        if resolved is None:
            log.debug("cache_record_skipped", key=key, path=location.path)
            return False
        entry = CacheEntry(
            origin_fingerprint=origin_fingerprint,
            location=str(location),
            resolved_fingerprint=resolved,
            created_at=self._clock(),
        )
        with self._lock:
            self._entries[key] = entry
        self.sweep()
        try:
            self.save()
        except CacheError as e:
            log.warning("cache_save_failed", **e.to_dict())
        return True

    def sweep(self) -> int:
        """Drop bad and expired entries. Returns how many were dropped."""
        cutoff = self._clock() - self.retention
        with self._lock:
            stale = [k for k, e in self._entries.items() if e.bad or e.created_at < cutoff]
            for key in stale:
                del self._entries[key]
        if stale:
            log.debug("cache_swept", dropped=len(stale))
        return len(stale)

    def save(self) -> None:
        """Write the whole table, replacing the old file atomically.

        Raises:
            CacheError: The table could not be written.
        """
        if self.path is None:
            return
        with self._lock:
            data = {key: entry.model_dump(mode="json") for key, entry in sorted(self._entries.items())}
        tmp = self.path.with_name(f"{self.path.name}.{os.getpid()}.tmp")
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            tmp.write_text(yaml.safe_dump(data, sort_keys=True))
            os.replace(tmp, self.path)
        except OSError as e:
            with contextlib.suppress(OSError):
                tmp.unlink()
            raise CacheError.write_failed(str(self.path), str(e)) from e

    def _mark_bad(self, key: str, reason: str) -> None:
        with self._lock:
            entry = self._entries.get(key)
            if entry is not None:
                self._entries[key] = entry.model_copy(update={"bad": True})
        log.debug("cache_entry_invalidated", key=key, reason=reason)
