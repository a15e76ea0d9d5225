"""Reference collection for a declared variable.

A statement may observe a variable directly, or indirectly by calling a
function whose body mentions it. The collector starts from the variable's own
references and widens through every function, nested inside the variable's
scope, that contains one of them: the places naming that function are added,
and widening repeats from those. A function that cannot be named (a callback
handed to another call, a method stored on an object) or whose name is used
as a value rather than called marks the set escaped.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from ..js.ast import (
    ArrayExpression,
    AssignmentExpression,
    BinaryExpression,
    BooleanLiteral,
    CallExpression,
    ConditionalExpression,
    FunctionDeclaration,
    FunctionExpression,
    Identifier,
    LogicalExpression,
    NewExpression,
    Node,
    NullLiteral,
    NumericLiteral,
    ObjectExpression,
    Property,
    SequenceExpression,
    StringLiteral,
    ThisExpression,
    UnaryExpression,
    VariableDeclarator,
    is_function,
    walk,
)
from .scope import Ancestry, ScopeInfo

_LITERALS = (NumericLiteral, StringLiteral, BooleanLiteral, NullLiteral)

# Unary operators that never convert their operand through user code.
_NON_COERCING_UNARY = {"!", "typeof", "void"}


@dataclass
class ReferenceSet:
    """Nodes that may observe a variable.

    While `escaped` is set, code the collector could not follow may observe
    the variable. Calls, property reads and operators applied to objects can
    all reach such code (getters, `valueOf`, `toString`), so only inert
    values are accepted.
    """

    nodes: set[Node] = field(default_factory=set)
    escaped: bool = False

    def __contains__(self, node: Node) -> bool:
        return node in self.nodes

    def permits(self, node: Node) -> bool:
        """True when nothing inside `node` can observe the variable."""
        for n in walk(node):
            if n in self.nodes:
                return False
        return not self.escaped or is_inert(node)


def _is_primitive(node: Node) -> bool:
    """`node` evaluates to a primitive without running user code."""
    if isinstance(node, _LITERALS):
        return True
    if isinstance(node, UnaryExpression):
        return node.operator != "delete" and _is_primitive(node.argument)
    if isinstance(node, BinaryExpression):
        if node.operator in ("in", "instanceof"):
            return False
        return _is_primitive(node.left) and _is_primitive(node.right)
    return False


def is_inert(node: Node) -> bool:
    """Evaluating `node` runs no code besides creating the values it spells.

    Literals, names, function expressions, operators over primitive literals,
    and array or object literals built from those qualify. Spread does not:
    it runs iterators and getters.
    """
    if _is_primitive(node):
        return True
    if isinstance(node, (Identifier, ThisExpression)) or is_function(node):
        return True
    if isinstance(node, ArrayExpression):
        return all(e is None or is_inert(e) for e in node.elements)
    if isinstance(node, ObjectExpression):
        for p in node.properties:
            if not isinstance(p, Property):
                return False
            if p.computed and not isinstance(p.key, _LITERALS):
                return False
            if not is_inert(p.value):
                return False
        return True
    if isinstance(node, UnaryExpression):
        return node.operator in _NON_COERCING_UNARY and is_inert(node.argument)
    if isinstance(node, LogicalExpression):
        return is_inert(node.left) and is_inert(node.right)
    if isinstance(node, ConditionalExpression):
        return (
            is_inert(node.test)
            and is_inert(node.consequent)
            and is_inert(node.alternate)
        )
    if isinstance(node, SequenceExpression):
        return all(is_inert(e) for e in node.expressions)
    return False


def get_id_and_function_references(
    name: str, parent: Node, info: ScopeInfo
) -> ReferenceSet:
    """Collect every reference to `name` as seen from `parent`, widened
    through the functions that mention it.

    Raises ScopeError when `name` has no binding visible from `parent`.
    """
    binding = info.binding_for(name, info.scope_of(parent))
    boundary = binding.scope.node
    result = ReferenceSet()
    seen_functions: set[Node] = set()
    worklist: list[Identifier] = list(binding.references)
    while worklist:
        ref = worklist.pop()
        if ref in result.nodes:
            continue
        result.nodes.add(ref)
        for fn in _enclosing_functions(ref, boundary, info.ancestry):
            if fn in seen_functions:
                continue
            seen_functions.add(fn)
            names = _function_name_references(fn, info)
            if names is None:
                result.escaped = True
                continue
            for n in names:
                if _passed_as_value(n, info.ancestry):
                    result.escaped = True
            worklist.extend(names)
    return result


def _passed_as_value(ref: Identifier, ancestry: Ancestry) -> bool:
    """The function named by `ref` is aliased rather than called or assigned."""
    holder = ancestry.parent_of(ref)
    if isinstance(holder, (CallExpression, NewExpression)):
        return holder.callee is not ref
    if isinstance(holder, AssignmentExpression):
        return holder.left is not ref
    return True


def _enclosing_functions(node: Node, boundary: Node, ancestry: Ancestry) -> Iterator[Node]:
    """Functions around `node`, innermost first, strictly inside `boundary`."""
    for ancestor in ancestry.ancestors(node):
        if ancestor is boundary:
            return
        if is_function(ancestor):
            yield ancestor


def _function_name_references(fn: Node, info: ScopeInfo) -> list[Identifier] | None:
    """Identifiers through which `fn` can be called, or None if it escapes."""
    if isinstance(fn, FunctionDeclaration):
        binding = info.binding_of(fn.id)
        if binding is None:
            return None
        return list(binding.references)
    names: list[Identifier] = []
    if isinstance(fn, FunctionExpression) and fn.id is not None:
        own = info.binding_of(fn.id)
        if own is not None:
            names.extend(own.references)
    holder = info.ancestry.parent_of(fn)
    if isinstance(holder, VariableDeclarator) and holder.init is fn:
        binding = info.binding_of(holder.id)
        if binding is None:
            return None
        names.extend(binding.references)
        return names
    if (
        isinstance(holder, AssignmentExpression)
        and holder.right is fn
        and holder.operator == "="
        and isinstance(holder.left, Identifier)
    ):
        binding = info.binding_of(holder.left)
        if binding is None:
            names.extend(info.globals.get(holder.left.name, []))
        else:
            names.extend(binding.references)
        return names
    return None
