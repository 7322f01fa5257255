"""Fallback to the legacy godef binary."""

from __future__ import annotations

import subprocess
from collections.abc import Sequence

import structlog

from gosym.core.errors import LegacyResolverError

log = structlog.get_logger(__name__)


class LegacyResolver:
    """Runs the original resolver with the arguments gosym was given.

    Its output is relayed verbatim, so editors see the same answer they
    would have seen without gosym installed.
    """

    def __init__(self, executable: str) -> None:
        self.executable = executable

    def resolve(self, argv: Sequence[str], body: bytes | None) -> bytes | None:
        """Run the resolver, feeding ``body`` on stdin.

        Returns its stdout on exit status 0, otherwise None.
        """
        if not self.executable:
            return None
        try:
            return self.run(argv, body)
        except LegacyResolverError as e:
            log.debug("legacy_resolver_failed", **e.to_dict())
            return None

    def run(self, argv: Sequence[str], body: bytes | None) -> bytes:
        """Run the resolver and return its stdout.

        Raises:
            LegacyResolverError: The executable could not be started or
                exited with a non-zero status.
        """
        try:
            proc = subprocess.run(
                [self.executable, *argv],
                input=body or b"",
                capture_output=True,
                check=False,
            )
        except OSError as e:
            raise LegacyResolverError.unavailable(self.executable, str(e)) from e
        if proc.returncode != 0:
            stderr = proc.stderr.decode("utf-8", errors="replace").strip()
            raise LegacyResolverError.failed(self.executable, proc.returncode, stderr)
        return proc.stdout
