"""Tree-sitter parsing of Go source files.

The parser is tolerant: malformed input still yields a tree, with ERROR and
MISSING nodes counted so callers can log how damaged a file is. Nothing in
this module raises on bad source.
"""

from __future__ import annotations

import importlib
import threading
from dataclasses import dataclass, field
from typing import Any

import structlog
import tree_sitter

log = structlog.get_logger(__name__)

GRAMMAR_PACKAGE = "tree-sitter-go"
GRAMMAR_MODULE = "tree_sitter_go"


@dataclass
class ParseResult:
    """Result of parsing a file."""

    tree: Any  # Tree-sitter Tree (not serializable)
    error_count: int
    total_nodes: int

    @property
    def root_node(self) -> tree_sitter.Node:
        return self.tree.root_node


@dataclass
class GoParser:
    """
    Tree-sitter parser for Go.

    Usage::

        parser = GoParser()
        result = parser.parse(content)
        if result.error_count:
            ...  # partial tree, still usable
    """

    _parser: Any = field(default=None, repr=False)
    _language: Any = field(default=None, repr=False)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def __post_init__(self) -> None:
        """Initialize the parser."""
        self._language = self._load_language()
        self._parser = tree_sitter.Parser(self._language)

    @staticmethod
    def _load_language() -> tree_sitter.Language:
        try:
            mod = importlib.import_module(GRAMMAR_MODULE)
        except ImportError as err:
            raise ValueError(
                f"Go grammar not available: install {GRAMMAR_PACKAGE}"
            ) from err
        return tree_sitter.Language(mod.language())

    def parse(self, content: bytes) -> ParseResult:
        """
        Parse Go source with Tree-sitter.

        Args:
            content: File content as bytes.

        Returns:
            ParseResult with tree and error counts.
        """
        # tree_sitter.Parser is not safe to share between threads
        with self._lock:
            tree = self._parser.parse(content)

        error_count = 0
        total_nodes = 0
        cursor = tree.walk()
        visited_children = False
        while True:
            if not visited_children:
                total_nodes += 1
                node = cursor.node
                if node.type == "ERROR" or node.is_missing:
                    error_count += 1
                if cursor.goto_first_child():
                    continue
            if cursor.goto_next_sibling():
                visited_children = False
            elif cursor.goto_parent():
                visited_children = True
            else:
                break

        return ParseResult(tree=tree, error_count=error_count, total_nodes=total_nodes)
