"""Tests for the legacy resolver fallback."""

from __future__ import annotations

import stat
from pathlib import Path

import pytest

from gosym.core.errors import ErrorCode, LegacyResolverError
from gosym.resolve.legacy import LegacyResolver


def _script(tmp_path: Path, body: str) -> Path:
    path = tmp_path / "godef.orig"
    path.write_text(f"#!/bin/sh\n{body}\n")
    path.chmod(path.stat().st_mode | stat.S_IEXEC)
    return path


@pytest.mark.skipif(not Path("/bin/sh").exists(), reason="needs a POSIX shell")
class TestLegacyResolver:
    def test_relays_stdout_verbatim(self, tmp_path: Path) -> None:
        script = _script(tmp_path, 'echo "$@"; cat')

        output = LegacyResolver(str(script)).resolve(["-f", "a.go", "-o", "12"], b"stdin body")

        assert output == b"-f a.go -o 12\nstdin body"

    def test_failure_status_is_none(self, tmp_path: Path) -> None:
        script = _script(tmp_path, "echo 'godef: no identifier found' >&2; exit 2")

        assert LegacyResolver(str(script)).resolve(["-f", "a.go"], None) is None

    def test_missing_body_sends_empty_stdin(self, tmp_path: Path) -> None:
        script = _script(tmp_path, "wc -c")

        output = LegacyResolver(str(script)).resolve([], None)

        assert output is not None
        assert output.strip() == b"0"


class TestUnavailable:
    def test_empty_executable_disables_fallback(self) -> None:
        assert LegacyResolver("").resolve(["-f", "a.go"], b"") is None

    def test_missing_executable(self, tmp_path: Path) -> None:
        assert LegacyResolver(str(tmp_path / "nope")).resolve([], b"") is None


@pytest.mark.skipif(not Path("/bin/sh").exists(), reason="needs a POSIX shell")
class TestRunErrors:
    def test_nonzero_status_raises_legacy_failed(self, tmp_path: Path) -> None:
        script = _script(tmp_path, "echo 'godef: no identifier found' >&2; exit 2")

        with pytest.raises(LegacyResolverError) as exc_info:
            LegacyResolver(str(script)).run(["-f", "a.go"], None)

        assert exc_info.value.code == ErrorCode.LEGACY_FAILED
        assert exc_info.value.details["returncode"] == 2
        assert exc_info.value.details["stderr"] == "godef: no identifier found"

    def test_missing_executable_raises_legacy_failed(self, tmp_path: Path) -> None:
        with pytest.raises(LegacyResolverError) as exc_info:
            LegacyResolver(str(tmp_path / "nope")).run([], b"")

        assert exc_info.value.code == ErrorCode.LEGACY_FAILED
