"""Per-query state.

Everything one query needs is owned by its ``QueryContext``: the loaded
configuration, the package locator, the file set and the correlation id.
Concurrent strategies share the context; nothing outlives the query except
the recent-resolution cache, which is passed around explicitly.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from uuid import uuid4

from gosym.config.models import GosymConfig
from gosym.core.logging import get_query_id
from gosym.parsing.files import FileSet
from gosym.parsing.locator import GoPackageLocator, is_test_file


@dataclass
class QueryContext:
    config: GosymConfig
    locator: GoPackageLocator
    files: FileSet = field(default_factory=FileSet)
    query_id: str = field(default_factory=lambda: uuid4().hex[:12])
    include_tests: bool = False

    @classmethod
    def create(cls, config: GosymConfig, filename: str | Path, query_id: str | None = None) -> QueryContext:
        """Build the context for a query on ``filename``.

        Test files of the package are only analyzed when the queried file is
        itself a test file.
        """
        locator = GoPackageLocator.for_file(filename, gopath=config.go.gopath, goroot=config.go.goroot)
        return cls(
            config=config,
            locator=locator,
            query_id=query_id or get_query_id() or uuid4().hex[:12],
            include_tests=config.resolver.include_tests and is_test_file(filename),
        )
