"""Tests for the recent-resolution cache.

Covers:
- Loading (missing, damaged and valid tables)
- lookup() validation of origin and resolved fingerprints
- record() persistence and the eviction sweep
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from pathlib import Path

import pytest
import yaml

from gosym.parsing.files import Location
from gosym.resolve.cache import ResolutionCache, fingerprint, fingerprint_file

T0 = datetime(2026, 1, 1, 12, 0, tzinfo=UTC)


class _Clock:
    def __init__(self, now: datetime = T0) -> None:
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **delta: float) -> None:
        self.now += timedelta(**delta)


@pytest.fixture
def resolved(tmp_path: Path) -> Path:
    path = tmp_path / "b.go"
    path.write_text("package b\n\nfunc Foo() {}\n")
    return path


@pytest.fixture
def clock() -> _Clock:
    return _Clock()


def _cache(tmp_path: Path, clock: _Clock) -> ResolutionCache:
    return ResolutionCache.load(tmp_path / "cache.yaml", clock=clock)


class TestFingerprint:
    def test_sha1_hex(self) -> None:
        assert fingerprint(b"") == "da39a3ee5e6b4b0d3255bfef95601890afd80709"

    def test_file(self, resolved: Path) -> None:
        assert fingerprint_file(resolved) == fingerprint(resolved.read_bytes())

    def test_unreadable_file(self, tmp_path: Path) -> None:
        assert fingerprint_file(tmp_path / "missing.go") is None


class TestLoad:
    def test_missing_file_is_empty(self, tmp_path: Path) -> None:
        assert len(ResolutionCache.load(tmp_path / "absent.yaml")) == 0

    def test_disabled_cache(self) -> None:
        cache = ResolutionCache.load(None)
        cache.save()
        assert len(cache) == 0

    @pytest.mark.parametrize("content", ["[unclosed", "- a list\n", "key: {location: 3}\n"])
    def test_damaged_table_is_empty(self, tmp_path: Path, content: str) -> None:
        path = tmp_path / "cache.yaml"
        path.write_text(content)

        assert len(ResolutionCache.load(path)) == 0

    def test_roundtrip_through_disk(self, tmp_path: Path, resolved: Path, clock: _Clock) -> None:
        cache = _cache(tmp_path, clock)
        cache.record("/src/a.go:3:7", "origin", Location(str(resolved), 3, 6))

        reloaded = _cache(tmp_path, clock)

        assert "/src/a.go:3:7" in reloaded
        assert reloaded.lookup("/src/a.go:3:7", "origin") == Location(str(resolved), 3, 6)

    @pytest.mark.parametrize("stamp", ["'2026-01-01T12:00:00'", "2026-01-01 12:00:00"])
    def test_timestamp_without_offset_is_utc(
        self, tmp_path: Path, resolved: Path, clock: _Clock, stamp: str
    ) -> None:
        """Hand-edited entries without an offset can still be swept."""
        path = tmp_path / "cache.yaml"
        path.write_text(
            "k:\n"
            "  origin_fingerprint: origin\n"
            f"  location: '{resolved}:3:6'\n"
            f"  resolved_fingerprint: '{fingerprint_file(resolved)}'\n"
            f"  created_at: {stamp}\n"
        )
        cache = ResolutionCache.load(path, clock=clock)

        entry = cache.get("k")
        assert entry is not None
        assert entry.created_at == T0

        clock.advance(hours=25)
        assert cache.sweep() == 1


class TestLookup:
    def test_miss_for_unknown_key(self, tmp_path: Path, clock: _Clock) -> None:
        assert _cache(tmp_path, clock).lookup("/src/a.go:1:1", "origin") is None

    def test_hit_when_both_files_unchanged(self, tmp_path: Path, resolved: Path, clock: _Clock) -> None:
        cache = _cache(tmp_path, clock)
        location = Location(str(resolved), 3, 6)
        cache.record("k", "origin", location)

        assert cache.lookup("k", "origin") == location

    def test_origin_change_invalidates(self, tmp_path: Path, resolved: Path, clock: _Clock) -> None:
        cache = _cache(tmp_path, clock)
        cache.record("k", "origin-v1", Location(str(resolved), 3, 6))

        assert cache.lookup("k", "origin-v2") is None
        entry = cache.get("k")
        assert entry is not None
        assert entry.bad is True
        # Once bad, even the original fingerprint misses
        assert cache.lookup("k", "origin-v1") is None

    def test_resolved_file_change_invalidates(self, tmp_path: Path, resolved: Path, clock: _Clock) -> None:
        cache = _cache(tmp_path, clock)
        cache.record("k", "origin", Location(str(resolved), 3, 6))
        resolved.write_text("package b\n\n// moved\nfunc Foo() {}\n")

        assert cache.lookup("k", "origin") is None
        assert cache.get("k").bad is True  # type: ignore[union-attr]

    def test_resolved_file_deleted_invalidates(self, tmp_path: Path, resolved: Path, clock: _Clock) -> None:
        cache = _cache(tmp_path, clock)
        cache.record("k", "origin", Location(str(resolved), 3, 6))
        resolved.unlink()

        assert cache.lookup("k", "origin") is None

    def test_bad_mark_is_never_persisted(self, tmp_path: Path, resolved: Path, clock: _Clock) -> None:
        """Soft deletion lives in memory; the table holds no bad flag."""
        cache = _cache(tmp_path, clock)
        cache.record("k", "origin", Location(str(resolved), 3, 6))

        cache.lookup("k", "other")

        on_disk = yaml.safe_load((tmp_path / "cache.yaml").read_text())
        assert "bad" not in on_disk["k"]

        cache.save()

        on_disk = yaml.safe_load((tmp_path / "cache.yaml").read_text())
        assert "bad" not in on_disk["k"]


class TestRecord:
    def test_persisted_table_format(self, tmp_path: Path, resolved: Path, clock: _Clock) -> None:
        cache = _cache(tmp_path, clock)

        assert cache.record("/src/a.go:10:9", "abc", Location(str(resolved), 3, 6)) is True

        on_disk = yaml.safe_load((tmp_path / "cache.yaml").read_text())
        assert on_disk == {
            "/src/a.go:10:9": {
                "origin_fingerprint": "abc",
                "location": f"{resolved}:3:6",
                "resolved_fingerprint": fingerprint_file(resolved),
                "created_at": "2026-01-01T12:00:00Z",
            }
        }

    def test_unreadable_resolved_file_is_skipped(self, tmp_path: Path, clock: _Clock) -> None:
        cache = _cache(tmp_path, clock)

        assert cache.record("k", "origin", Location(str(tmp_path / "gone.go"), 1, 1)) is False
        assert "k" not in cache
        assert not (tmp_path / "cache.yaml").exists()

    def test_overwrites_existing_entry(self, tmp_path: Path, resolved: Path, clock: _Clock) -> None:
        cache = _cache(tmp_path, clock)
        cache.record("k", "origin", Location(str(resolved), 1, 1))
        clock.advance(minutes=5)

        cache.record("k", "origin", Location(str(resolved), 3, 6))

        entry = cache.get("k")
        assert entry is not None
        assert entry.location == f"{resolved}:3:6"
        assert entry.created_at == clock.now

    def test_save_failure_is_not_raised(self, tmp_path: Path, resolved: Path, clock: _Clock) -> None:
        blocker = tmp_path / "not-a-dir"
        blocker.write_text("")
        cache = ResolutionCache.load(blocker / "cache.yaml", clock=clock)

        assert cache.record("k", "origin", Location(str(resolved), 3, 6)) is True


class TestSweep:
    def test_expired_entries_dropped_on_next_record(self, tmp_path: Path, resolved: Path, clock: _Clock) -> None:
        cache = _cache(tmp_path, clock)
        cache.record("old", "origin", Location(str(resolved), 3, 6))
        clock.advance(hours=25)

        cache.record("new", "origin", Location(str(resolved), 3, 6))

        on_disk = yaml.safe_load((tmp_path / "cache.yaml").read_text())
        assert set(on_disk) == {"new"}

    def test_entries_within_retention_survive(self, tmp_path: Path, resolved: Path, clock: _Clock) -> None:
        cache = _cache(tmp_path, clock)
        cache.record("recent", "origin", Location(str(resolved), 3, 6))
        clock.advance(hours=23)

        cache.record("new", "origin", Location(str(resolved), 3, 6))

        assert "recent" in cache

    def test_bad_entries_dropped_on_next_record(self, tmp_path: Path, resolved: Path, clock: _Clock) -> None:
        cache = _cache(tmp_path, clock)
        cache.record("stale", "origin", Location(str(resolved), 3, 6))
        cache.lookup("stale", "changed")

        cache.record("new", "origin", Location(str(resolved), 3, 6))

        on_disk = yaml.safe_load((tmp_path / "cache.yaml").read_text())
        assert set(on_disk) == {"new"}

    def test_custom_retention(self, tmp_path: Path, resolved: Path, clock: _Clock) -> None:
        cache = ResolutionCache.load(tmp_path / "cache.yaml", retention_hours=1, clock=clock)
        cache.record("a", "origin", Location(str(resolved), 3, 6))
        clock.advance(hours=2)

        assert cache.sweep() == 1
        assert len(cache) == 0
