"""Lazy, best-effort type inference over Go syntax.

This is not a type checker. It only answers the question definition lookup
needs: which named type does an expression have, so that a selector such as
``x.Field`` or ``x.Method()`` can be matched to a member declaration.
Anything it cannot follow yields None.
"""

from __future__ import annotations

from dataclasses import dataclass

import tree_sitter

from gosym.analysis.objects import Obj, ObjKind, Scope

_MAX_DEPTH = 16

_NAMED_FORMS = frozenset({"type_identifier", "identifier", "qualified_type", "generic_type"})
_TRANSPARENT = frozenset({"pointer_type", "parenthesized_type"})
_SIGNATURES = frozenset(
    {
        "function_declaration",
        "method_declaration",
        "method_elem",
        "method_spec",
        "function_type",
        "func_literal",
    }
)


def node_text(node: tree_sitter.Node) -> str:
    return node.text.decode("utf-8", errors="replace") if node.text else ""


def first_named(node: tree_sitter.Node) -> tree_sitter.Node | None:
    return node.named_children[0] if node.named_child_count else None


def expressions(node: tree_sitter.Node) -> list[tree_sitter.Node]:
    """The expressions of an expression_list, or the node itself."""
    if node.type == "expression_list":
        return [c for c in node.named_children if c.type != "comment"]
    return [node]


@dataclass(frozen=True, eq=False)
class TypeRef:
    """A type: either a type expression resolved in ``env``, or a named type."""

    node: tree_sitter.Node | None = None
    env: Scope | None = None
    named: Obj | None = None


class TypeOracle:
    """Type inference for one analysis pass."""

    def __init__(self) -> None:
        self._active: set[int] = set()

    # ------------------------------------------------------------------
    # Objects behind expressions
    # ------------------------------------------------------------------

    def expr_obj(self, expr: tree_sitter.Node | None, scope: Scope) -> Obj | None:
        """The object an identifier, selector or qualified type denotes."""
        if expr is None:
            return None
        kind = expr.type
        if kind in ("identifier", "type_identifier"):
            return scope.lookup(node_text(expr))
        if kind == "parenthesized_expression":
            return self.expr_obj(first_named(expr), scope)
        if kind in ("selector_expression", "qualified_type"):
            if kind == "selector_expression":
                operand = expr.child_by_field_name("operand")
                name_node = expr.child_by_field_name("field")
            else:
                operand = expr.child_by_field_name("package")
                name_node = expr.child_by_field_name("name")
            if operand is None or name_node is None:
                return None
            pkg = self.package_of(operand, scope)
            if pkg is not None:
                imported = pkg.package()
                return imported.lookup(node_text(name_node)) if imported else None
            if kind == "qualified_type":
                return None
            return self.member(self.type_of(operand, scope), node_text(name_node))
        return None

    @staticmethod
    def package_of(operand: tree_sitter.Node, scope: Scope) -> Obj | None:
        """The package-name object ``operand`` refers to, if it is one."""
        if operand.type not in ("identifier", "package_identifier"):
            return None
        obj = scope.lookup(node_text(operand))
        return obj if obj is not None and obj.kind is ObjKind.PACKAGE else None

    # ------------------------------------------------------------------
    # Types of objects and expressions
    # ------------------------------------------------------------------

    def obj_type(self, obj: Obj | None) -> TypeRef | None:
        if obj is None:
            return None
        if obj.kind is ObjKind.TYPE:
            return TypeRef(named=obj)
        if obj.kind is ObjKind.FUNC:
            return TypeRef(obj.decl_node, obj.env) if obj.decl_node is not None else None
        if obj.kind not in (ObjKind.VAR, ObjKind.CONST, ObjKind.FIELD):
            return None
        if obj.type_node is not None:
            return TypeRef(obj.type_node, obj.env)
        if obj.value_node is None or obj.env is None:
            return None

        key = id(obj)
        if key in self._active:
            return None
        self._active.add(key)
        try:
            values = expressions(obj.value_node)
            if obj.ranged:
                return self.element(self.type_of(values[0], obj.env), obj.value_index)
            if len(values) == 1 and obj.value_index > 0:
                value = values[0]
                if value.type == "call_expression":
                    return self.call_result(value, obj.env, obj.value_index)
                return None  # comma-ok forms yield untyped bools
            if obj.value_index < len(values):
                return self.type_of(values[obj.value_index], obj.env)
            return None
        finally:
            self._active.discard(key)

    def type_of(self, expr: tree_sitter.Node | None, scope: Scope) -> TypeRef | None:
        if expr is None:
            return None
        kind = expr.type
        if kind == "identifier":
            return self.obj_type(scope.lookup(node_text(expr)))
        if kind == "parenthesized_expression":
            return self.type_of(first_named(expr), scope)
        if kind == "unary_expression":
            inner = self.type_of(expr.child_by_field_name("operand"), scope)
            operator = expr.child_by_field_name("operator")
            if operator is not None and operator.type == "<-":
                return self.element(inner, 0)
            return inner  # & and * are transparent for member lookup
        if kind == "composite_literal":
            return TypeRef(expr.child_by_field_name("type"), scope)
        if kind == "call_expression":
            return self.call_result(expr, scope, 0)
        if kind == "selector_expression":
            return self.obj_type(self.expr_obj(expr, scope))
        if kind == "index_expression":
            return self.element(self.type_of(expr.child_by_field_name("operand"), scope), 1)
        if kind == "slice_expression":
            return self.type_of(expr.child_by_field_name("operand"), scope)
        if kind in ("type_assertion_expression", "type_conversion_expression"):
            return TypeRef(expr.child_by_field_name("type"), scope)
        if kind == "func_literal":
            return TypeRef(expr, scope)
        return None

    def call_result(self, call: tree_sitter.Node, scope: Scope, index: int) -> TypeRef | None:
        """Type of the ``index``-th result of a call expression."""
        callee = call.child_by_field_name("function")
        if callee is None:
            return None
        obj = self.expr_obj(callee, scope)
        if obj is not None and obj.kind is ObjKind.TYPE:
            return TypeRef(named=obj) if index == 0 else None  # conversion
        if obj is not None and obj.kind is ObjKind.BUILTIN:
            if obj.name in ("new", "make") and index == 0:
                args = call.child_by_field_name("arguments")
                first = first_named(args) if args is not None else None
                return TypeRef(first, scope) if first is not None else None
            return None
        signature = self.composite(self.type_of(callee, scope))
        if signature is None or signature.node is None or signature.node.type not in _SIGNATURES:
            return None
        return self._result_at(signature, index)

    @staticmethod
    def _result_at(signature: TypeRef, index: int) -> TypeRef | None:
        assert signature.node is not None
        result = signature.node.child_by_field_name("result")
        if result is None:
            return None
        if result.type != "parameter_list":
            return TypeRef(result, signature.env) if index == 0 else None
        position = 0
        for decl in result.named_children:
            type_node = decl.child_by_field_name("type")
            if type_node is None:
                continue
            width = max(1, len(decl.children_by_field_name("name")))
            if index < position + width:
                return TypeRef(type_node, signature.env)
            position += width
        return None

    # ------------------------------------------------------------------
    # Structure of types
    # ------------------------------------------------------------------

    def named_type(self, ref: TypeRef | None) -> Obj | None:
        """The named type ``ref`` denotes, looking through pointers."""
        depth = 0
        while ref is not None and depth < _MAX_DEPTH:
            depth += 1
            if ref.named is not None:
                return ref.named
            node, env = ref.node, ref.env
            if node is None or env is None:
                return None
            kind = node.type
            if kind in _TRANSPARENT:
                ref = TypeRef(first_named(node), env)
            elif kind == "generic_type":
                ref = TypeRef(node.child_by_field_name("type"), env)
            elif kind in ("type_identifier", "identifier", "qualified_type"):
                obj = self.expr_obj(node, env)
                return obj if obj is not None and obj.kind is ObjKind.TYPE else None
            else:
                return None
        return None

    def composite(self, ref: TypeRef | None) -> TypeRef | None:
        """Follow names and pointers down to a structural type expression."""
        depth = 0
        while ref is not None and depth < _MAX_DEPTH:
            depth += 1
            if ref.named is not None:
                obj = ref.named
                if obj.type_node is None or obj.env is None:
                    return None
                ref = TypeRef(obj.type_node, obj.env)
                continue
            node = ref.node
            if node is None:
                return None
            if node.type in _TRANSPARENT:
                ref = TypeRef(first_named(node), ref.env)
            elif node.type in _NAMED_FORMS:
                obj = self.named_type(ref)
                if obj is None:
                    return None
                ref = TypeRef(named=obj)
            else:
                return ref
        return None

    def element(self, ref: TypeRef | None, index: int = 1) -> TypeRef | None:
        """Element type of a container: index 0 is the key, 1 the value.

        Channels only have index 0, matching ``for v := range ch``.
        """
        comp = self.composite(ref)
        if comp is None or comp.node is None:
            return None
        kind = comp.node.type
        if kind in ("slice_type", "array_type", "implicit_length_array_type"):
            return TypeRef(comp.node.child_by_field_name("element"), comp.env) if index == 1 else None
        if kind == "map_type":
            field_name = "key" if index == 0 else "value"
            return TypeRef(comp.node.child_by_field_name(field_name), comp.env)
        if kind == "channel_type":
            return TypeRef(comp.node.child_by_field_name("value"), comp.env) if index == 0 else None
        return None

    def member(self, ref: TypeRef | None, name: str, depth: int = 0) -> Obj | None:
        """Field or method ``name`` of a type, including promoted members."""
        if ref is None or depth > _MAX_DEPTH:
            return None
        obj = self.named_type(ref)
        if obj is None:
            return None
        found = obj.members.get(name)
        if found is not None:
            return found
        for candidate in list(obj.members.values()):
            if candidate.embedded:
                found = self.member(self.obj_type(candidate), name, depth + 1)
                if found is not None:
                    return found
        if obj.type_node is not None and obj.type_node.type in _NAMED_FORMS | _TRANSPARENT:
            # type A B and type A = B: A sees B's members
            return self.member(TypeRef(obj.type_node, obj.env), name, depth + 1)
        return None
