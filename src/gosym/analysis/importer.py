"""Pluggable package importers.

Three modes share one implementation and differ only in how much of an
imported package they analyze:

- ``METADATA``: a position-less interface summary. Cheap, and enough to
  learn which package declares a selected name.
- ``SOURCE``: full analysis of signatures and declarations, with real
  positions.
- ``HYBRID(path)``: source for the designated package, metadata for every
  other one. This is pass 2 of the two-pass strategy.

Every importer instance memoizes what it imported, and imported packages
resolve their own imports through the same instance.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from gosym.analysis.checker import Checker
from gosym.analysis.objects import Package
from gosym.core.errors import GosymError, ImportResolutionError, PackageNotFoundError

if TYPE_CHECKING:
    from gosym.resolve.context import QueryContext

log = structlog.get_logger(__name__)


class ImportMode(str, Enum):
    METADATA = "metadata"
    SOURCE = "source"
    HYBRID = "hybrid"


@dataclass(frozen=True)
class ImporterSpec:
    """Which importer to build. ``designated`` is only set for HYBRID."""

    mode: ImportMode
    designated: str | None = None

    @classmethod
    def metadata(cls) -> ImporterSpec:
        return cls(ImportMode.METADATA)

    @classmethod
    def source(cls) -> ImporterSpec:
        return cls(ImportMode.SOURCE)

    @classmethod
    def hybrid(cls, path: str) -> ImporterSpec:
        return cls(ImportMode.HYBRID, designated=path)


class Importer:
    """Imports packages for one strategy of one query.

    Not thread-safe: each strategy owns its importers. The underlying
    ``FileSet`` and locator are shared and are thread-safe.
    """

    def __init__(self, ctx: QueryContext, spec: ImporterSpec) -> None:
        self._ctx = ctx
        self.spec = spec
        self._packages: dict[tuple[str, bool], Package] = {}
        self._loading: set[tuple[str, bool]] = set()

    def import_package(self, path: str) -> Package:
        """Import ``path`` according to this importer's mode.

        Raises:
            ImportResolutionError: Package missing, unreadable, or part of a cycle.
        """
        try:
            return self._dispatch(path)
        except ImportResolutionError:
            raise
        except GosymError as e:
            raise ImportResolutionError.failed(path, e.message) from e
        except Exception as e:  # analysis bugs must not escape into the strategy
            log.debug("import_crashed", path=path, exc_info=True)
            raise ImportResolutionError.failed(path, str(e)) from e

    def package_name(self, path: str) -> str | None:
        """Declared name of the package at ``path``, if it can be found."""
        try:
            return self._ctx.locator.locate(path).name
        except PackageNotFoundError:
            return None

    def _dispatch(self, path: str) -> Package:
        mode = self.spec.mode
        if mode is ImportMode.SOURCE:
            return self._load(path, positions=True)
        if mode is ImportMode.METADATA:
            return self._load(path, positions=False)
        if path == self.spec.designated:
            return self._load(path, positions=True)
        try:
            return self._load(path, positions=False)
        except ImportResolutionError as e:
            log.debug("metadata_import_failed", path=path, error=e.message)
            return self._load(path, positions=True)

    def _load(self, path: str, *, positions: bool) -> Package:
        key = (path, positions)
        cached = self._packages.get(key)
        if cached is not None:
            return cached
        if key in self._loading:
            raise ImportResolutionError.cycle(path)

        self._loading.add(key)
        try:
            try:
                found = self._ctx.locator.locate(path)
            except PackageNotFoundError as e:
                raise ImportResolutionError.failed(path, e.message) from e
            try:
                files = [self._ctx.files.parse_path(p) for p in found.files]
            except OSError as e:
                raise ImportResolutionError.failed(path, str(e)) from e
            if found.name is not None:
                files = [f for f in files if f.package_name == found.name]
            package, _ = Checker(path, files, self, check_bodies=False, positions=positions).check()
        finally:
            self._loading.discard(key)

        self._packages[key] = package
        log.debug(
            "package_imported",
            path=path,
            mode=self.spec.mode.value,
            positions=positions,
            files=len(files),
        )
        return package
