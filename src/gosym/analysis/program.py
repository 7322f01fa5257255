"""Whole-program analysis.

Loads every package reachable from the target through import sets, with
real positions, and analyzes the target package including function bodies.
Load errors are recorded and tolerated; whatever did load is still usable.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import structlog

from gosym.analysis.checker import Checker
from gosym.analysis.importer import Importer, ImporterSpec
from gosym.analysis.objects import Info, Obj, Package
from gosym.core.errors import ImportResolutionError, PackageNotFoundError

if TYPE_CHECKING:
    from gosym.parsing.files import NodeHandle
    from gosym.resolve.context import QueryContext
    from gosym.resolve.loader import LoadedQuery

log = structlog.get_logger(__name__)


@dataclass
class Program:
    """The analyzed target package plus everything it depends on."""

    target: Package
    info: Info
    packages: dict[str, Package] = field(default_factory=dict)
    errors: dict[str, str] = field(default_factory=dict)

    def lookup(self, handle: NodeHandle) -> Obj | None:
        """Definitions take precedence over uses."""
        obj = self.info.defs.get(handle)
        if obj is None:
            obj = self.info.uses.get(handle)
        return obj


class WholeProgramBuilder:
    def __init__(self, ctx: QueryContext) -> None:
        self._ctx = ctx

    def build(self, query: LoadedQuery) -> Program:
        errors: dict[str, str] = {}
        importer = Importer(self._ctx, ImporterSpec.source())

        packages: dict[str, Package] = {}
        for path in self._reachable(query.imports, errors):
            try:
                packages[path] = importer.import_package(path)
            except ImportResolutionError as e:
                errors[path] = e.message

        target, info = Checker(query.package_path, query.files, importer).check()
        if errors:
            log.debug("program_load_errors", count=len(errors), packages=sorted(errors))
        log.debug("program_built", packages=len(packages), target=query.package_path)
        return Program(target=target, info=info, packages=packages, errors=errors)

    def _reachable(self, roots: list[str], errors: dict[str, str]) -> list[str]:
        """Import paths reachable from ``roots``, dependencies first."""
        order: list[str] = []
        seen: set[str] = set()
        stack = list(reversed(roots))
        while stack:
            path = stack.pop()
            if path in seen:
                continue
            seen.add(path)
            try:
                found = self._ctx.locator.locate(path)
            except PackageNotFoundError as e:
                errors[path] = e.message
                continue
            order.append(path)
            stack.extend(p for p in reversed(found.imports) if p not in seen)
        order.reverse()
        return order
