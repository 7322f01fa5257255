"""Parsed files, positions and node handles for one query.

Analysis passes key their binding tables by ``NodeHandle`` rather than by
tree-sitter node objects: py-tree-sitter hands out a fresh ``Node`` wrapper
on every access, so object identity is meaningless. A handle combines the
span of the node with the ``file_id`` assigned when its file was parsed.
Two parses of the same path get different ids, so a handle found in one
parse never matches a node from another, which is exactly the "same tree
instance" guarantee the strategies rely on.
"""

from __future__ import annotations

import threading
from dataclasses import dataclass, field
from itertools import count
from pathlib import Path

import structlog
import tree_sitter

from gosym.parsing.treesitter import GoParser

log = structlog.get_logger(__name__)


@dataclass(frozen=True, slots=True)
class Location:
    """A file position. Line and column are 1-based; column counts bytes."""

    path: str
    line: int
    column: int

    def __str__(self) -> str:
        return f"{self.path}:{self.line}:{self.column}"

    @classmethod
    def parse(cls, text: str) -> Location:
        """Inverse of ``str()``. Paths may themselves contain colons."""
        path, line, column = text.rsplit(":", 2)
        return cls(path, int(line), int(column))


@dataclass(frozen=True, slots=True)
class NodeHandle:
    """Stable reference to one syntax node within one query."""

    file_id: int
    start: int
    end: int


@dataclass(eq=False)
class SourceFile:
    """One parsed Go file."""

    file_id: int
    path: str
    content: bytes
    tree: tree_sitter.Tree
    error_count: int = 0

    @property
    def root(self) -> tree_sitter.Node:
        return self.tree.root_node

    @property
    def package_name(self) -> str | None:
        for child in self.root.named_children:
            if child.type == "package_clause":
                for sub in child.named_children:
                    return self.text(sub)
        return None

    def handle(self, node: tree_sitter.Node) -> NodeHandle:
        return NodeHandle(self.file_id, node.start_byte, node.end_byte)

    def location(self, node: tree_sitter.Node) -> Location:
        row, column = node.start_point
        return Location(self.path, row + 1, column + 1)

    def text(self, node: tree_sitter.Node) -> str:
        return self.content[node.start_byte : node.end_byte].decode("utf-8", errors="replace")


@dataclass
class FileSet:
    """Per-query registry of parsed files.

    ``add`` always parses and registers a new file. ``parse_path`` memoizes
    by path and is what importers use for foreign packages, so concurrent
    strategies share one parse of every dependency.
    """

    parser: GoParser = field(default_factory=GoParser)
    _ids: count = field(default_factory=lambda: count(1), repr=False)
    _by_path: dict[str, SourceFile] = field(default_factory=dict, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def add(self, path: str | Path, content: bytes | None = None) -> SourceFile:
        """Parse ``content`` (or the file on disk) as a new file.

        Raises:
            OSError: When content is None and the file cannot be read.
        """
        path = str(path)
        if content is None:
            content = Path(path).read_bytes()
        result = self.parser.parse(content)
        if result.error_count:
            log.debug("parse_errors", path=path, errors=result.error_count)
        with self._lock:
            file_id = next(self._ids)
        return SourceFile(
            file_id=file_id,
            path=path,
            content=content,
            tree=result.tree,
            error_count=result.error_count,
        )

    def parse_path(self, path: str | Path) -> SourceFile:
        """Parse a file from disk once per query."""
        path = str(path)
        with self._lock:
            cached = self._by_path.get(path)
        if cached is not None:
            return cached
        parsed = self.add(path)
        with self._lock:
            # Another thread may have won; keep the first parse
            return self._by_path.setdefault(path, parsed)

    @property
    def parsed_count(self) -> int:
        with self._lock:
            return len(self._by_path)
