"""Collapse strategies, one per initializer shape.

Each strategy recognizes its initializer, the statements that populate it,
and knows how to fold one such statement's payload into the initializer.
"""

from __future__ import annotations

from collections.abc import Callable

from ..js.ast import (
    ArrayExpression,
    ArrowFunctionExpression,
    AssignmentExpression,
    CallExpression,
    Expression,
    FunctionExpression,
    Identifier,
    MemberExpression,
    NewExpression,
    Node,
    NumericLiteral,
    ObjectExpression,
    Property,
    SpreadElement,
    StringLiteral,
)
from .references import ReferenceSet

CheckExpression = Callable[[Node], bool]


class Collapser:
    """Base class for a collapse strategy."""

    name: str = ""

    def check_init_type(self, init: Expression) -> bool:
        """The declaration's initializer has this strategy's shape."""
        raise NotImplementedError

    def check_expression_type(self, expr: Node) -> bool:
        """`expr` is of the node type this strategy folds."""
        raise NotImplementedError

    def make_check_expression(self, name: str, references: ReferenceSet) -> CheckExpression:
        """Build the predicate accepting expressions safe to fold into `name`."""
        raise NotImplementedError

    def extract_addon(self, expr: Node) -> object:
        raise NotImplementedError

    def add_addon(self, addon: object, init: Expression) -> None:
        raise NotImplementedError


def _is_method_call(expr: CallExpression, name: str, method: str) -> bool:
    """expr is `name.method(...)` with a non-computed member."""
    callee = expr.callee
    return (
        isinstance(callee, MemberExpression)
        and not callee.computed
        and isinstance(callee.object, Identifier)
        and callee.object.name == name
        and isinstance(callee.property, Identifier)
        and callee.property.name == method
    )


# ============================================================
# OBJECT
# ============================================================


def _property_key(member: MemberExpression) -> Expression | None:
    """Object literal key equivalent to the member's property, if any."""
    prop = member.property
    if not member.computed:
        key: Expression = prop
    elif isinstance(prop, (StringLiteral, NumericLiteral)):
        key = prop
    else:
        return None
    # `__proto__: v` in a literal sets the prototype and may not repeat.
    if isinstance(key, Identifier) and key.name == "__proto__":
        return None
    if isinstance(key, StringLiteral) and key.value == "__proto__":
        return None
    return key


def _is_anonymous_function(value: Node) -> bool:
    if isinstance(value, ArrowFunctionExpression):
        return True
    return isinstance(value, FunctionExpression) and value.id is None


class ObjectCollapser(Collapser):
    """var o = {}; o.a = 1; o["b"] = 2;  ->  var o = {a: 1, "b": 2};"""

    name = "object"

    def check_init_type(self, init: Expression) -> bool:
        return isinstance(init, ObjectExpression)

    def check_expression_type(self, expr: Node) -> bool:
        return isinstance(expr, AssignmentExpression)

    def make_check_expression(self, name: str, references: ReferenceSet) -> CheckExpression:
        def check(expr: Node) -> bool:
            if not isinstance(expr, AssignmentExpression) or expr.operator != "=":
                return False
            left = expr.left
            if not isinstance(left, MemberExpression):
                return False
            if not (isinstance(left.object, Identifier) and left.object.name == name):
                return False
            if _property_key(left) is None:
                return False
            # A literal key names an anonymous function; a member assignment does not.
            if _is_anonymous_function(expr.right):
                return False
            return references.permits(expr.right)

        return check

    def extract_addon(self, expr: Node) -> tuple[Expression, Expression]:
        assert isinstance(expr, AssignmentExpression)
        assert isinstance(expr.left, MemberExpression)
        key = _property_key(expr.left)
        assert key is not None
        return key, expr.right

    def add_addon(self, addon: object, init: Expression) -> None:
        assert isinstance(init, ObjectExpression)
        assert isinstance(addon, tuple)
        key, value = addon
        init.properties.append(Property(key.pos, key, value))


# ============================================================
# ARRAY
# ============================================================


class ArrayCollapser(Collapser):
    """var a = []; a.push(1, 2); a.push(3);  ->  var a = [1, 2, 3];"""

    name = "array"

    def check_init_type(self, init: Expression) -> bool:
        return isinstance(init, ArrayExpression)

    def check_expression_type(self, expr: Node) -> bool:
        return isinstance(expr, CallExpression)

    def make_check_expression(self, name: str, references: ReferenceSet) -> CheckExpression:
        def check(expr: Node) -> bool:
            if not isinstance(expr, CallExpression):
                return False
            if not _is_method_call(expr, name, "push"):
                return False
            for arg in expr.arguments:
                if not references.permits(arg):
                    return False
            return True

        return check

    def extract_addon(self, expr: Node) -> list[Expression | SpreadElement]:
        assert isinstance(expr, CallExpression)
        return list(expr.arguments)

    def add_addon(self, addon: object, init: Expression) -> None:
        assert isinstance(init, ArrayExpression)
        assert isinstance(addon, list)
        init.elements.extend(addon)


# ============================================================
# SET
# ============================================================


class SetCollapser(Collapser):
    """var s = new Set(); s.add(1); s.add(2);  ->  var s = new Set([1, 2]);"""

    name = "set"

    def check_init_type(self, init: Expression) -> bool:
        if not isinstance(init, NewExpression):
            return False
        if not (isinstance(init.callee, Identifier) and init.callee.name == "Set"):
            return False
        if len(init.arguments) == 0:
            return True
        return len(init.arguments) == 1 and isinstance(init.arguments[0], ArrayExpression)

    def check_expression_type(self, expr: Node) -> bool:
        return isinstance(expr, CallExpression)

    def make_check_expression(self, name: str, references: ReferenceSet) -> CheckExpression:
        def check(expr: Node) -> bool:
            if not isinstance(expr, CallExpression):
                return False
            if not _is_method_call(expr, name, "add"):
                return False
            if len(expr.arguments) != 1:
                return False
            arg = expr.arguments[0]
            if isinstance(arg, SpreadElement):
                return False
            return references.permits(arg)

        return check

    def extract_addon(self, expr: Node) -> Expression:
        assert isinstance(expr, CallExpression)
        arg = expr.arguments[0]
        assert not isinstance(arg, SpreadElement)
        return arg

    def add_addon(self, addon: object, init: Expression) -> None:
        assert isinstance(init, NewExpression)
        assert isinstance(addon, Expression)
        if not init.arguments:
            init.arguments.append(ArrayExpression(init.pos, []))
        elements = init.arguments[0]
        assert isinstance(elements, ArrayExpression)
        elements.elements.append(addon)


# Fixed application order.
COLLAPSERS: list[Collapser] = [ObjectCollapser(), ArrayCollapser(), SetCollapser()]

COLLAPSERS_BY_NAME: dict[str, Collapser] = {c.name: c for c in COLLAPSERS}


def select_collapsers(names: list[str]) -> list[Collapser]:
    """Strategies named in `names`, in that order. Raises ValueError on unknown names."""
    selected: list[Collapser] = []
    for name in names:
        if name not in COLLAPSERS_BY_NAME:
            raise ValueError(
                "unknown collapser '"
                + name
                + "' (expected one of: "
                + ", ".join(COLLAPSERS_BY_NAME)
                + ")"
            )
        selected.append(COLLAPSERS_BY_NAME[name])
    return selected
