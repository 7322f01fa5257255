"""Objects, scopes and binding tables produced by semantic analysis.

An ``Obj`` is one declared entity. Declarations keep the syntax nodes they
came from (declared type, initializer, signature) so that types are inferred
lazily, and only for the expressions a query actually touches.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

import structlog

from gosym.core.errors import GosymError
from gosym.parsing.files import Location, NodeHandle

if TYPE_CHECKING:
    import tree_sitter

log = structlog.get_logger(__name__)


class ObjKind(str, Enum):
    """What kind of declaration an object is."""

    PACKAGE = "package"
    CONST = "const"
    TYPE = "type"
    VAR = "var"
    FUNC = "func"
    FIELD = "field"
    BUILTIN = "builtin"
    LABEL = "label"


_UNRESOLVED = object()


@dataclass(eq=False)
class Obj:
    """A declared entity.

    ``location`` is None for predeclared objects and for declarations read
    through a metadata importer, which carries no positions.
    """

    name: str
    kind: ObjKind
    pkg_path: str | None = None
    location: Location | None = None
    type_node: tree_sitter.Node | None = None  # declared type
    value_node: tree_sitter.Node | None = None  # initializer (expression list)
    value_index: int = 0  # which value of value_node this object takes
    ranged: bool = False  # declared by a range clause over value_node
    decl_node: tree_sitter.Node | None = None  # signature for funcs and methods
    env: Scope | None = None  # scope that type_node/value_node resolve in
    embedded: bool = False
    members: dict[str, Obj] = field(default_factory=dict)
    import_path: str | None = None
    importer: Callable[[str], Package] | None = field(default=None, repr=False)
    _imported: object = field(default=_UNRESOLVED, repr=False)

    def package(self) -> Package | None:
        """The package a package-name object refers to, imported on first use."""
        if self._imported is _UNRESOLVED:
            self._imported = None
            if self.importer is not None and self.import_path is not None:
                try:
                    self._imported = self.importer(self.import_path)
                except GosymError as e:
                    log.debug("import_unresolved", path=self.import_path, error=e.message)
        return self._imported  # type: ignore[return-value]

    def set_package(self, package: Package | None) -> None:
        self._imported = package


class Scope:
    """A lexical scope. Lookups walk outward through parents."""

    __slots__ = ("parent", "names", "kind")

    def __init__(self, parent: Scope | None = None, kind: str = "block") -> None:
        self.parent = parent
        self.names: dict[str, Obj] = {}
        self.kind = kind

    def lookup(self, name: str) -> Obj | None:
        scope: Scope | None = self
        while scope is not None:
            obj = scope.names.get(name)
            if obj is not None:
                return obj
            scope = scope.parent
        return None

    def lookup_local(self, name: str) -> Obj | None:
        return self.names.get(name)

    def insert(self, obj: Obj) -> None:
        if obj.name != "_":
            self.names[obj.name] = obj

    def snapshot(self) -> Scope:
        """A frozen copy of this scope's names, sharing the same parents.

        Initializers are inferred lazily, after later declarations have been
        added; resolving them in a snapshot keeps ``x := x.Next()`` pointing
        at the outer ``x``.
        """
        copy = Scope(self.parent, self.kind)
        copy.names = dict(self.names)
        return copy


@dataclass(eq=False)
class Package:
    """The result of analyzing one package."""

    path: str
    name: str
    scope: Scope
    positions: bool = True

    def lookup(self, name: str) -> Obj | None:
        return self.scope.names.get(name)


@dataclass
class Info:
    """Binding tables for one analysis pass, keyed by node handle."""

    defs: dict[NodeHandle, Obj] = field(default_factory=dict)
    uses: dict[NodeHandle, Obj] = field(default_factory=dict)


@dataclass(frozen=True)
class Binding:
    """The resolved declaration for one identifier occurrence."""

    name: str
    kind: str
    package: str | None
    location: Location | None

    @classmethod
    def from_obj(cls, obj: Obj) -> Binding:
        return cls(name=obj.name, kind=obj.kind.value, package=obj.pkg_path, location=obj.location)


_PREDECLARED_TYPES = (
    "any bool byte comparable complex64 complex128 error float32 float64 int int8 int16 "
    "int32 int64 rune string uint uint8 uint16 uint32 uint64 uintptr"
).split()
_BUILTIN_FUNCS = (
    "append cap clear close complex copy delete imag len make max min new panic print "
    "println real recover"
).split()


def _make_universe() -> Scope:
    universe = Scope(kind="universe")
    for name in _PREDECLARED_TYPES:
        universe.insert(Obj(name, ObjKind.TYPE))
    for name in _BUILTIN_FUNCS:
        universe.insert(Obj(name, ObjKind.BUILTIN))
    for name in ("true", "false", "iota"):
        universe.insert(Obj(name, ObjKind.CONST))
    universe.insert(Obj("nil", ObjKind.VAR))
    error = universe.names["error"]
    error.members["Error"] = Obj("Error", ObjKind.FUNC)
    return universe


UNIVERSE = _make_universe()
"""Predeclared identifiers. Never mutated after import."""
