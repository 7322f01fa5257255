"""Semantic analysis of one Go package.

``Checker`` binds identifiers to declarations. It builds the scope chain
(universe, package, file, function, block), collects every package-level
declaration first so that order in the source does not matter, then walks
signatures and, when asked, function bodies, filling the ``defs`` and
``uses`` tables of an ``Info``.

Imports go through a pluggable importer and are resolved lazily: a package
is only imported when an identifier actually selects from it. Two flags
shape the output:

- ``positions=False`` yields a position-less interface summary. This is
  what the metadata importer hands out.
- ``check_bodies=False`` skips function bodies. Importers never need them.

Unresolvable names are simply left out of the tables. Nothing here raises
on malformed source.
"""

from __future__ import annotations

import re
from collections.abc import Callable, Iterator, Sequence
from typing import TYPE_CHECKING, Protocol

import structlog

from gosym.analysis.objects import UNIVERSE, Info, Obj, ObjKind, Package, Scope
from gosym.analysis.types import TypeOracle, TypeRef, expressions, first_named, node_text
from gosym.core.errors import GosymError
from gosym.parsing.files import Location, SourceFile

if TYPE_CHECKING:
    import tree_sitter

log = structlog.get_logger(__name__)

_VERSION_SUFFIX_RE = re.compile(r"^v\d+$")
_GOPKG_SUFFIX_RE = re.compile(r"\.v\d+$")

_SKIPPED = frozenset(
    {
        "comment",
        "package_clause",
        "import_declaration",
        "interpreted_string_literal",
        "raw_string_literal",
        "rune_literal",
    }
)


class PackageImporter(Protocol):
    """What the checker needs from an importer."""

    def import_package(self, path: str) -> Package: ...

    def package_name(self, path: str) -> str | None: ...


def default_package_name(import_path: str) -> str:
    """Guess a package name from its import path.

    Drops ``/vN`` major-version elements and gopkg.in ``.vN`` suffixes.
    """
    parts = import_path.split("/")
    name = parts[-1]
    if _VERSION_SUFFIX_RE.match(name) and len(parts) > 1:
        name = parts[-2]
    return _GOPKG_SUFFIX_RE.sub("", name)


def _specs(node: tree_sitter.Node, kinds: frozenset[str]) -> Iterator[tree_sitter.Node]:
    """Specs of a declaration, looking through parenthesized spec lists."""
    for child in node.named_children:
        if child.type in kinds:
            yield child
        elif child.type.endswith("_list"):
            yield from _specs(child, kinds)


def _walk_tree(node: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    stack = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(current.named_children))


def _base_type_node(node: tree_sitter.Node | None) -> tree_sitter.Node | None:
    """The type name inside ``*T``, ``pkg.T`` or ``T[X]``."""
    while node is not None:
        kind = node.type
        if kind in ("pointer_type", "parenthesized_type"):
            node = first_named(node)
        elif kind == "generic_type":
            node = node.child_by_field_name("type")
        elif kind == "qualified_type":
            node = node.child_by_field_name("name")
        elif kind in ("type_identifier", "identifier"):
            return node
        else:
            return None
    return None


_TYPE_SPECS = frozenset({"type_spec", "type_alias"})
_PARAMS = frozenset({"parameter_declaration", "variadic_parameter_declaration"})


class Checker:
    """Binds the identifiers of one package.

    Args:
        path: Import path of the package.
        files: Parsed files of the package, all declaring the same name.
        importer: Resolves imported packages on demand.
        check_bodies: Walk function bodies.
        positions: Record locations and the defs/uses tables.
    """

    def __init__(
        self,
        path: str,
        files: Sequence[SourceFile],
        importer: PackageImporter,
        *,
        check_bodies: bool = True,
        positions: bool = True,
    ) -> None:
        self.path = path
        self.files = list(files)
        self.check_bodies = check_bodies
        self.positions = positions
        self.info = Info()
        self.oracle = TypeOracle()
        self._importer = importer
        self._file: SourceFile | None = None
        self._labels: dict[str, Obj] = {}
        self._handlers: dict[str, Callable[[tree_sitter.Node, Scope], None]] = {
            "identifier": self._walk_name,
            "type_identifier": self._walk_name,
            "selector_expression": self._walk_selector,
            "qualified_type": self._walk_qualified,
            "composite_literal": self._walk_composite,
            "func_literal": self._walk_func_literal,
            "block": self._walk_scoped,
            "if_statement": self._walk_scoped,
            "for_statement": self._walk_scoped,
            "expression_switch_statement": self._walk_scoped,
            "select_statement": self._walk_scoped,
            "expression_case": self._walk_scoped,
            "default_case": self._walk_scoped,
            "communication_case": self._walk_scoped,
            "type_switch_statement": self._walk_type_switch,
            "short_var_declaration": self._walk_short_var,
            "range_clause": self._walk_range,
            "receive_statement": self._walk_receive,
            "var_declaration": self._walk_local_values,
            "const_declaration": self._walk_local_values,
            "type_declaration": self._walk_local_types,
            "parameter_declaration": self._walk_typed,
            "variadic_parameter_declaration": self._walk_typed,
            "field_declaration": self._walk_typed,
            "method_elem": self._walk_method_elem,
            "method_spec": self._walk_method_elem,
            "labeled_statement": self._walk_labeled,
            "label_name": self._walk_label,
        }

    def check(self) -> tuple[Package, Info]:
        pkg_scope = Scope(UNIVERSE, kind="package")
        name = next(
            (f.package_name for f in self.files if f.package_name),
            default_package_name(self.path),
        )
        package = Package(self.path, name, pkg_scope, positions=self.positions)

        file_scopes: list[tuple[SourceFile, Scope]] = []
        for source in self.files:
            self._file = source
            file_scope = Scope(pkg_scope, kind="file")
            self._declare_imports(source, file_scope)
            file_scopes.append((source, file_scope))

        for source, file_scope in file_scopes:
            self._file = source
            self._collect(source, file_scope, pkg_scope)
        # Methods last: receivers may be declared in any file
        for source, file_scope in file_scopes:
            self._file = source
            self._collect_methods(source, file_scope, pkg_scope)

        if self.positions:
            for source, file_scope in file_scopes:
                self._file = source
                self._walk_file(source, file_scope)

        self._file = None
        log.debug(
            "package_checked",
            path=self.path,
            files=len(self.files),
            positions=self.positions,
            bodies=self.check_bodies,
            defs=len(self.info.defs),
            uses=len(self.info.uses),
        )
        return package, self.info

    # ------------------------------------------------------------------
    # Bookkeeping
    # ------------------------------------------------------------------

    def _loc(self, node: tree_sitter.Node) -> Location | None:
        if not self.positions or self._file is None:
            return None
        return self._file.location(node)

    def _def(self, node: tree_sitter.Node, obj: Obj) -> None:
        if self.positions and self._file is not None:
            self.info.defs[self._file.handle(node)] = obj

    def _use(self, node: tree_sitter.Node, obj: Obj) -> None:
        if self.positions and self._file is not None:
            self.info.uses[self._file.handle(node)] = obj

    def _new(self, name_node: tree_sitter.Node, kind: ObjKind, **fields: object) -> Obj:
        return Obj(
            node_text(name_node),
            kind,
            pkg_path=self.path,
            location=self._loc(name_node),
            **fields,  # type: ignore[arg-type]
        )

    # ------------------------------------------------------------------
    # Imports
    # ------------------------------------------------------------------

    def _declare_imports(self, source: SourceFile, file_scope: Scope) -> None:
        for decl in source.root.named_children:
            if decl.type != "import_declaration":
                continue
            for spec in _specs(decl, frozenset({"import_spec"})):
                path_node = spec.child_by_field_name("path")
                if path_node is None:
                    continue
                import_path = node_text(path_node).strip("\"`")
                name_node = spec.child_by_field_name("name")
                if name_node is not None and name_node.type == "blank_identifier":
                    continue
                if name_node is not None and node_text(name_node) == ".":
                    self._dot_import(import_path, file_scope)
                    continue

                if name_node is not None:
                    local = node_text(name_node)
                else:
                    local = self._importer.package_name(import_path) or default_package_name(import_path)
                obj = Obj(
                    local,
                    ObjKind.PACKAGE,
                    pkg_path=self.path,
                    location=self._loc(name_node if name_node is not None else path_node),
                    import_path=import_path,
                    importer=self._importer.import_package,
                )
                file_scope.insert(obj)
                if name_node is not None:
                    self._def(name_node, obj)

    def _dot_import(self, import_path: str, file_scope: Scope) -> None:
        try:
            imported = self._importer.import_package(import_path)
        except GosymError as e:
            log.debug("dot_import_failed", path=import_path, error=e.message)
            return
        for name, obj in imported.scope.names.items():
            if name[:1].isupper():
                file_scope.names.setdefault(name, obj)

    # ------------------------------------------------------------------
    # Package-level collection
    # ------------------------------------------------------------------

    def _collect(self, source: SourceFile, file_scope: Scope, pkg_scope: Scope) -> None:
        for decl in source.root.named_children:
            kind = decl.type
            if kind == "function_declaration":
                name_node = decl.child_by_field_name("name")
                if name_node is None:
                    continue
                obj = self._new(name_node, ObjKind.FUNC, decl_node=decl, env=file_scope)
                if obj.name != "init":
                    pkg_scope.insert(obj)
                self._def(name_node, obj)
            elif kind == "type_declaration":
                for spec in _specs(decl, _TYPE_SPECS):
                    self._declare_type(spec, file_scope, pkg_scope)
            elif kind in ("var_declaration", "const_declaration"):
                self._declare_values(decl, file_scope, pkg_scope, local=False)

    def _collect_methods(self, source: SourceFile, file_scope: Scope, pkg_scope: Scope) -> None:
        for decl in source.root.named_children:
            if decl.type != "method_declaration":
                continue
            name_node = decl.child_by_field_name("name")
            if name_node is None:
                continue
            obj = self._new(name_node, ObjKind.FUNC, decl_node=decl, env=file_scope)
            self._def(name_node, obj)
            base = self._receiver_base(decl)
            owner = pkg_scope.lookup_local(node_text(base)) if base is not None else None
            if owner is not None and owner.kind is ObjKind.TYPE:
                owner.members.setdefault(obj.name, obj)

    @staticmethod
    def _receiver_base(decl: tree_sitter.Node) -> tree_sitter.Node | None:
        receiver = decl.child_by_field_name("receiver")
        if receiver is None:
            return None
        for param in receiver.named_children:
            if param.type == "parameter_declaration":
                return _base_type_node(param.child_by_field_name("type"))
        return None

    def _declare_type(self, spec: tree_sitter.Node, env: Scope, target: Scope) -> Obj | None:
        name_node = spec.child_by_field_name("name")
        if name_node is None:
            return None
        type_node = spec.child_by_field_name("type")
        type_env = self._declare_type_params(spec, env)
        obj = self._new(name_node, ObjKind.TYPE, type_node=type_node, env=type_env, decl_node=spec)
        target.insert(obj)
        self._def(name_node, obj)
        if type_node is not None:
            obj.members.update(self._members(type_node, type_env))
        return obj

    def _declare_type_params(self, node: tree_sitter.Node, env: Scope) -> Scope:
        params = node.child_by_field_name("type_parameters")
        if params is None:
            return env
        scope = Scope(env, kind="type")
        for decl in params.named_children:
            if decl.type != "type_parameter_declaration":
                continue
            for name_node in decl.children_by_field_name("name"):
                obj = self._new(name_node, ObjKind.TYPE, env=scope)
                scope.insert(obj)
                self._def(name_node, obj)
        return scope

    def _members(self, type_node: tree_sitter.Node, env: Scope) -> dict[str, Obj]:
        """Fields of a struct type or methods of an interface type."""
        members: dict[str, Obj] = {}
        if type_node.type == "struct_type":
            for field_list in type_node.named_children:
                if field_list.type != "field_declaration_list":
                    continue
                for decl in field_list.named_children:
                    if decl.type != "field_declaration":
                        continue
                    field_type = decl.child_by_field_name("type")
                    names = decl.children_by_field_name("name")
                    for name_node in names:
                        obj = self._new(name_node, ObjKind.FIELD, type_node=field_type, env=env)
                        members[obj.name] = obj
                        self._def(name_node, obj)
                    if not names:
                        base = _base_type_node(field_type)
                        if base is not None:
                            obj = self._new(
                                base, ObjKind.FIELD, type_node=field_type, env=env, embedded=True
                            )
                            members[obj.name] = obj
        elif type_node.type == "interface_type":
            for elem in type_node.named_children:
                if elem.type in ("method_elem", "method_spec"):
                    name_node = elem.child_by_field_name("name")
                    if name_node is None:
                        continue
                    obj = self._new(name_node, ObjKind.FUNC, decl_node=elem, env=env)
                    members[obj.name] = obj
                    self._def(name_node, obj)
                elif elem.type in ("type_elem", "constraint_elem", "interface_type_name"):
                    for embedded in [elem, *elem.named_children]:
                        base = _base_type_node(embedded)
                        if base is None:
                            continue
                        obj = self._new(base, ObjKind.FIELD, type_node=embedded, env=env, embedded=True)
                        members.setdefault(obj.name, obj)
                        break
        return members

    def _declare_values(self, decl: tree_sitter.Node, env: Scope, target: Scope, *, local: bool) -> None:
        """Declare the names of a var or const declaration.

        Constants without a value repeat the previous spec's type and values.
        Locals are declared after their initializers are walked, so
        ``var x = x`` refers to the outer ``x``.
        """
        kind = ObjKind.CONST if decl.type == "const_declaration" else ObjKind.VAR
        spec_kind = frozenset({"const_spec"}) if kind is ObjKind.CONST else frozenset({"var_spec"})
        last_type: tree_sitter.Node | None = None
        last_value: tree_sitter.Node | None = None
        for spec in _specs(decl, spec_kind):
            type_node = spec.child_by_field_name("type")
            value_node = spec.child_by_field_name("value")
            if local:
                self._walk_opt(type_node, env)
                self._walk_opt(value_node, env)
            if kind is ObjKind.CONST:
                if value_node is None:
                    type_node, value_node = last_type, last_value
                else:
                    last_type, last_value = type_node, value_node

            value_env = target.snapshot() if local else env
            for index, name_node in enumerate(spec.children_by_field_name("name")):
                obj = self._new(
                    name_node,
                    kind,
                    type_node=type_node,
                    value_node=value_node,
                    value_index=index,
                    env=value_env,
                    decl_node=spec,
                )
                target.insert(obj)
                self._def(name_node, obj)

    # ------------------------------------------------------------------
    # Walking
    # ------------------------------------------------------------------

    def _walk_file(self, source: SourceFile, file_scope: Scope) -> None:
        for decl in source.root.named_children:
            kind = decl.type
            if kind in ("function_declaration", "method_declaration"):
                self._walk_func(decl, file_scope)
            elif kind == "type_declaration":
                for spec in _specs(decl, _TYPE_SPECS):
                    name_node = spec.child_by_field_name("name")
                    obj = self.info.defs.get(source.handle(name_node)) if name_node is not None else None
                    if obj is not None:
                        self._walk_type_spec(spec, obj)
            elif kind in ("var_declaration", "const_declaration"):
                for spec in _specs(decl, frozenset({"var_spec", "const_spec"})):
                    self._walk_opt(spec.child_by_field_name("type"), file_scope)
                    self._walk_opt(spec.child_by_field_name("value"), file_scope)
            else:
                self._walk(decl, file_scope)

    def _walk(self, node: tree_sitter.Node, scope: Scope) -> None:
        kind = node.type
        if kind in _SKIPPED:
            return
        handler = self._handlers.get(kind)
        if handler is not None:
            handler(node, scope)
        else:
            self._walk_children(node, scope)

    def _walk_children(self, node: tree_sitter.Node, scope: Scope) -> None:
        for child in node.named_children:
            self._walk(child, scope)

    def _walk_opt(self, node: tree_sitter.Node | None, scope: Scope) -> None:
        if node is not None:
            self._walk(node, scope)

    def _walk_name(self, node: tree_sitter.Node, scope: Scope) -> None:
        obj = scope.lookup(node_text(node))
        if obj is not None:
            self._use(node, obj)

    def _walk_scoped(self, node: tree_sitter.Node, scope: Scope) -> None:
        self._walk_children(node, Scope(scope))

    def _walk_typed(self, node: tree_sitter.Node, scope: Scope) -> None:
        # Parameter names of function types and field names are not uses
        self._walk_opt(node.child_by_field_name("type"), scope)

    def _walk_method_elem(self, node: tree_sitter.Node, scope: Scope) -> None:
        self._walk_opt(node.child_by_field_name("parameters"), scope)
        self._walk_opt(node.child_by_field_name("result"), scope)

    def _walk_type_spec(self, spec: tree_sitter.Node, obj: Obj) -> None:
        env = obj.env
        if env is None:
            return
        params = spec.child_by_field_name("type_parameters")
        if params is not None:
            for decl in params.named_children:
                self._walk_opt(decl.child_by_field_name("type"), env)
        self._walk_opt(obj.type_node, env)

    def _walk_selector(self, node: tree_sitter.Node, scope: Scope) -> None:
        operand = node.child_by_field_name("operand")
        field = node.child_by_field_name("field")
        if operand is None or field is None:
            self._walk_children(node, scope)
            return
        pkg = self.oracle.package_of(operand, scope)
        if pkg is not None:
            self._use(operand, pkg)
            imported = pkg.package()
            target = imported.lookup(node_text(field)) if imported is not None else None
        else:
            self._walk(operand, scope)
            target = self.oracle.member(self.oracle.type_of(operand, scope), node_text(field))
        if target is not None:
            self._use(field, target)

    def _walk_qualified(self, node: tree_sitter.Node, scope: Scope) -> None:
        pkg_node = node.child_by_field_name("package")
        name_node = node.child_by_field_name("name")
        if pkg_node is None or name_node is None:
            return
        pkg = self.oracle.package_of(pkg_node, scope)
        if pkg is None:
            return
        self._use(pkg_node, pkg)
        imported = pkg.package()
        target = imported.lookup(node_text(name_node)) if imported is not None else None
        if target is not None:
            self._use(name_node, target)

    def _walk_composite(self, node: tree_sitter.Node, scope: Scope) -> None:
        type_node = node.child_by_field_name("type")
        self._walk_opt(type_node, scope)
        body = node.child_by_field_name("body")
        if body is not None:
            ref = TypeRef(type_node, scope) if type_node is not None else None
            self._walk_literal(body, ref, scope)

    def _walk_literal(self, literal: tree_sitter.Node, ref: TypeRef | None, scope: Scope) -> None:
        """Walk a literal value; nested literals may elide their type."""
        comp = self.oracle.composite(ref)
        is_struct = comp is not None and comp.node is not None and comp.node.type == "struct_type"
        element_ref = None if is_struct else self.oracle.element(ref, 1)

        for element in literal.named_children:
            if element.type == "comment":
                continue
            if element.type != "keyed_element":
                self._walk_element(element, element_ref, scope)
                continue
            parts = [p for p in element.named_children if p.type != "comment"]
            if len(parts) < 2:
                self._walk_children(element, scope)
                continue
            key, value = _unwrap_element(parts[0]), parts[-1]
            value_ref = element_ref
            if is_struct and key.type in ("identifier", "field_identifier"):
                member = self.oracle.member(ref, node_text(key))
                if member is not None:
                    self._use(key, member)
                    value_ref = self.oracle.obj_type(member)
            elif key.type == "literal_value":
                self._walk_literal(key, self.oracle.element(ref, 0), scope)
            else:
                self._walk(key, scope)
            self._walk_element(value, value_ref, scope)

    def _walk_element(self, node: tree_sitter.Node, ref: TypeRef | None, scope: Scope) -> None:
        node = _unwrap_element(node)
        if node.type == "literal_value":
            self._walk_literal(node, ref, scope)
        else:
            self._walk(node, scope)

    # ------------------------------------------------------------------
    # Functions
    # ------------------------------------------------------------------

    def _walk_func(self, decl: tree_sitter.Node, env: Scope) -> None:
        scope = Scope(env, kind="func")
        receiver = decl.child_by_field_name("receiver")
        if receiver is not None:
            self._declare_receiver(receiver, scope)
        self._walk_signature(decl, scope)
        body = decl.child_by_field_name("body")
        if body is not None and self.check_bodies:
            self._walk_body(body, scope)

    def _walk_func_literal(self, node: tree_sitter.Node, scope: Scope) -> None:
        if not self.check_bodies:
            return
        func_scope = Scope(scope, kind="func")
        self._walk_signature(node, func_scope)
        body = node.child_by_field_name("body")
        if body is not None:
            self._walk_body(body, func_scope)

    def _walk_body(self, body: tree_sitter.Node, scope: Scope) -> None:
        """Walk a function body with its own label scope.

        Labels are visible in the whole body, before and after their
        declaration, but not inside nested function literals.
        """
        outer = self._labels
        self._labels = {}
        try:
            for stmt in _labeled_statements(body):
                label = stmt.child_by_field_name("label")
                if label is not None:
                    obj = self._new(label, ObjKind.LABEL)
                    self._labels.setdefault(obj.name, obj)
            self._walk_children(body, scope)
        finally:
            self._labels = outer

    def _walk_labeled(self, node: tree_sitter.Node, scope: Scope) -> None:
        label = node.child_by_field_name("label")
        if label is not None:
            obj = self._labels.get(node_text(label))
            if obj is not None:
                self._def(label, obj)
        for child in node.named_children:
            if child.type != "label_name":
                self._walk(child, scope)

    def _walk_label(self, node: tree_sitter.Node, scope: Scope) -> None:
        # goto, break and continue targets
        obj = self._labels.get(node_text(node))
        if obj is not None:
            self._use(node, obj)

    def _walk_signature(self, node: tree_sitter.Node, scope: Scope) -> None:
        params = node.child_by_field_name("type_parameters")
        if params is not None:
            self._declare_into(params, scope)
        for field_name in ("parameters", "result"):
            part = node.child_by_field_name(field_name)
            if part is None:
                continue
            if part.type == "parameter_list":
                self._declare_params(part, scope)
            else:
                self._walk(part, scope)

    def _declare_into(self, params: tree_sitter.Node, scope: Scope) -> None:
        """Declare type parameters in ``scope``, then walk their constraints."""
        decls = [d for d in params.named_children if d.type == "type_parameter_declaration"]
        for decl in decls:
            for name_node in decl.children_by_field_name("name"):
                obj = self._new(name_node, ObjKind.TYPE, env=scope)
                scope.insert(obj)
                self._def(name_node, obj)
        for decl in decls:
            self._walk_opt(decl.child_by_field_name("type"), scope)

    def _declare_params(self, params: tree_sitter.Node, scope: Scope) -> None:
        for decl in params.named_children:
            if decl.type not in _PARAMS:
                continue
            type_node = decl.child_by_field_name("type")
            self._walk_opt(type_node, scope)
            for name_node in decl.children_by_field_name("name"):
                obj = self._new(name_node, ObjKind.VAR, type_node=type_node, env=scope)
                scope.insert(obj)
                self._def(name_node, obj)

    def _declare_receiver(self, receiver: tree_sitter.Node, scope: Scope) -> None:
        for decl in receiver.named_children:
            if decl.type != "parameter_declaration":
                continue
            type_node = decl.child_by_field_name("type")
            generic = type_node
            while generic is not None and generic.type in ("pointer_type", "parenthesized_type"):
                generic = first_named(generic)
            if generic is not None and generic.type == "generic_type":
                # func (l *List[T]) declares T
                args = generic.child_by_field_name("type_arguments")
                for arg in _walk_tree(args) if args is not None else ():
                    if arg.type in ("type_identifier", "identifier"):
                        obj = self._new(arg, ObjKind.TYPE, env=scope)
                        scope.insert(obj)
                        self._def(arg, obj)
                self._walk_opt(generic.child_by_field_name("type"), scope)
            else:
                self._walk_opt(type_node, scope)
            for name_node in decl.children_by_field_name("name"):
                obj = self._new(name_node, ObjKind.VAR, type_node=type_node, env=scope)
                scope.insert(obj)
                self._def(name_node, obj)

    # ------------------------------------------------------------------
    # Statements that declare
    # ------------------------------------------------------------------

    def _define_each(
        self,
        left: tree_sitter.Node,
        value: tree_sitter.Node | None,
        scope: Scope,
        *,
        ranged: bool = False,
        redeclare: bool = False,
    ) -> None:
        """Define the identifiers of ``left`` as variables taking ``value``."""
        env = scope.snapshot()
        for index, ident in enumerate(expressions(left)):
            if ident.type != "identifier":
                self._walk(ident, scope)
                continue
            existing = scope.lookup_local(node_text(ident)) if redeclare else None
            if existing is not None:
                self._use(ident, existing)
                continue
            obj = self._new(
                ident, ObjKind.VAR, value_node=value, value_index=index, ranged=ranged, env=env
            )
            scope.insert(obj)
            self._def(ident, obj)

    def _walk_short_var(self, node: tree_sitter.Node, scope: Scope) -> None:
        right = node.child_by_field_name("right")
        self._walk_opt(right, scope)
        left = node.child_by_field_name("left")
        if left is not None:
            self._define_each(left, right, scope, redeclare=True)

    def _walk_range(self, node: tree_sitter.Node, scope: Scope) -> None:
        right = node.child_by_field_name("right")
        self._walk_opt(right, scope)
        left = node.child_by_field_name("left")
        if left is None:
            return
        if any(child.type == ":=" for child in node.children):
            self._define_each(left, right, scope, ranged=True)
        else:
            self._walk(left, scope)

    def _walk_receive(self, node: tree_sitter.Node, scope: Scope) -> None:
        right = node.child_by_field_name("right")
        self._walk_opt(right, scope)
        left = node.child_by_field_name("left")
        if left is None:
            return
        if any(child.type == ":=" for child in node.children):
            self._define_each(left, right, scope)
        else:
            self._walk(left, scope)

    def _walk_local_values(self, node: tree_sitter.Node, scope: Scope) -> None:
        self._declare_values(node, scope, scope, local=True)

    def _walk_local_types(self, node: tree_sitter.Node, scope: Scope) -> None:
        for spec in _specs(node, _TYPE_SPECS):
            obj = self._declare_type(spec, scope, scope)
            if obj is not None:
                self._walk_type_spec(spec, obj)

    def _walk_type_switch(self, node: tree_sitter.Node, scope: Scope) -> None:
        """``switch v := x.(type)`` declares a fresh ``v`` in every clause.

        In a single-type clause ``v`` has that type; otherwise it has the
        type of ``x``.
        """
        outer = Scope(scope)
        self._walk_opt(node.child_by_field_name("initializer"), outer)
        value = node.child_by_field_name("value")
        self._walk_opt(value, outer)

        alias_list = node.child_by_field_name("alias")
        alias = expressions(alias_list)[0] if alias_list is not None else None
        alias_obj = None
        if alias is not None and alias.type == "identifier":
            alias_obj = self._new(alias, ObjKind.VAR, value_node=value, env=outer.snapshot())
            self._def(alias, alias_obj)

        for clause in node.named_children:
            if clause.type not in ("type_case", "default_case"):
                continue
            clause_scope = Scope(outer)
            types = clause.children_by_field_name("type")
            for type_node in types:
                self._walk(type_node, outer)
            if alias_obj is not None:
                single = types[0] if len(types) == 1 else None
                clause_scope.insert(
                    Obj(
                        alias_obj.name,
                        ObjKind.VAR,
                        pkg_path=self.path,
                        location=alias_obj.location,
                        type_node=single,
                        value_node=None if single is not None else value,
                        env=outer,
                    )
                )
            spans = {(t.start_byte, t.end_byte) for t in types}
            for child in clause.named_children:
                if (child.start_byte, child.end_byte) not in spans:
                    self._walk(child, clause_scope)


def _labeled_statements(body: tree_sitter.Node) -> Iterator[tree_sitter.Node]:
    stack = list(reversed(body.named_children))
    while stack:
        current = stack.pop()
        if current.type == "func_literal":
            continue
        if current.type == "labeled_statement":
            yield current
        stack.extend(reversed(current.named_children))


def _unwrap_element(node: tree_sitter.Node) -> tree_sitter.Node:
    if node.type == "literal_element":
        inner = first_named(node)
        return inner if inner is not None else node
    return node
