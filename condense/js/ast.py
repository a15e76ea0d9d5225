"""JavaScript AST — ESTree-shaped node definitions.

Nodes are mutable and compare by identity, so passes can rewrite them in
place and keep them in sets. Statement nodes that passes annotate carry an
`annotations` dict, keyed "<pass>.<fact>".
"""

from __future__ import annotations

import dataclasses
from collections.abc import Iterator
from dataclasses import dataclass, field


# ============================================================
# Annotation type alias (not a runtime construct, just for brevity)
# ============================================================

Ann = dict[str, bool | int | str]


# ============================================================
# POSITION
# ============================================================


@dataclass
class Pos:
    """Source position, 1-indexed."""

    line: int
    col: int


# ============================================================
# BASES
# ============================================================


@dataclass(eq=False)
class Node:
    """Base for all nodes."""

    pos: Pos


@dataclass(eq=False)
class Statement(Node):
    """Base for all statements."""


@dataclass(eq=False)
class Expression(Node):
    """Base for all expressions."""


# ============================================================
# PROGRAM
# ============================================================


@dataclass(eq=False)
class Program(Node):
    """Top-level statement list."""

    body: list[Statement]


# ============================================================
# DECLARATIONS
# ============================================================


@dataclass(eq=False)
class VariableDeclarator(Node):
    """id = init, one binding of a declaration."""

    id: Identifier
    init: Expression | None


@dataclass(eq=False)
class VariableDeclaration(Statement):
    """var/let/const declarator, declarator, ..."""

    kind: str
    declarations: list[VariableDeclarator]
    annotations: Ann = field(default_factory=dict)


@dataclass(eq=False)
class FunctionDeclaration(Statement):
    """function id(params) { body }."""

    id: Identifier
    params: list[Identifier]
    body: BlockStatement


# ============================================================
# STATEMENTS
# ============================================================


@dataclass(eq=False)
class BlockStatement(Statement):
    """{ body }."""

    body: list[Statement]


@dataclass(eq=False)
class ExpressionStatement(Statement):
    """Bare expression as statement."""

    expression: Expression


@dataclass(eq=False)
class EmptyStatement(Statement):
    """;."""


@dataclass(eq=False)
class ReturnStatement(Statement):
    """return argument?."""

    argument: Expression | None


@dataclass(eq=False)
class IfStatement(Statement):
    """if (test) consequent else alternate."""

    test: Expression
    consequent: Statement
    alternate: Statement | None


@dataclass(eq=False)
class ForStatement(Statement):
    """for (init; test; update) body."""

    init: VariableDeclaration | Expression | None
    test: Expression | None
    update: Expression | None
    body: Statement


@dataclass(eq=False)
class ForInStatement(Statement):
    """for (left in right) body."""

    left: VariableDeclaration | Expression
    right: Expression
    body: Statement


@dataclass(eq=False)
class ForOfStatement(Statement):
    """for (left of right) body."""

    left: VariableDeclaration | Expression
    right: Expression
    body: Statement


@dataclass(eq=False)
class WhileStatement(Statement):
    """while (test) body."""

    test: Expression
    body: Statement


@dataclass(eq=False)
class DoWhileStatement(Statement):
    """do body while (test)."""

    body: Statement
    test: Expression


@dataclass(eq=False)
class BreakStatement(Statement):
    """break."""


@dataclass(eq=False)
class ContinueStatement(Statement):
    """continue."""


@dataclass(eq=False)
class ThrowStatement(Statement):
    """throw argument."""

    argument: Expression


@dataclass(eq=False)
class CatchClause(Node):
    """catch (param) { body }; param is None for `catch { }`."""

    param: Identifier | None
    body: BlockStatement


@dataclass(eq=False)
class TryStatement(Statement):
    """try { block } catch ... finally { finalizer }."""

    block: BlockStatement
    handler: CatchClause | None
    finalizer: BlockStatement | None


# ============================================================
# FUNCTIONS
# ============================================================


@dataclass(eq=False)
class FunctionExpression(Expression):
    """function id?(params) { body }."""

    id: Identifier | None
    params: list[Identifier]
    body: BlockStatement


@dataclass(eq=False)
class ArrowFunctionExpression(Expression):
    """(params) => body, where body is a block or a single expression."""

    params: list[Identifier]
    body: BlockStatement | Expression


# ============================================================
# EXPRESSIONS
# ============================================================


@dataclass(eq=False)
class Identifier(Expression):
    """Name in any position: reference, binding, or property key."""

    name: str


@dataclass(eq=False)
class NumericLiteral(Expression):
    """Number literal; raw keeps the source spelling."""

    value: float
    raw: str


@dataclass(eq=False)
class StringLiteral(Expression):
    """String literal with escapes resolved."""

    value: str


@dataclass(eq=False)
class BooleanLiteral(Expression):
    """true or false."""

    value: bool


@dataclass(eq=False)
class NullLiteral(Expression):
    """null."""


@dataclass(eq=False)
class ThisExpression(Expression):
    """this."""


@dataclass(eq=False)
class SpreadElement(Node):
    """...argument in array literals and call arguments."""

    argument: Expression


@dataclass(eq=False)
class ArrayExpression(Expression):
    """[elements], with None marking a hole."""

    elements: list[Expression | SpreadElement | None]


@dataclass(eq=False)
class Property(Node):
    """key: value inside an object literal."""

    key: Expression
    value: Expression
    computed: bool = False
    shorthand: bool = False
    method: bool = False


@dataclass(eq=False)
class ObjectExpression(Expression):
    """{ properties }."""

    properties: list[Property | SpreadElement]


@dataclass(eq=False)
class SequenceExpression(Expression):
    """a, b, c (two or more expressions)."""

    expressions: list[Expression]


@dataclass(eq=False)
class AssignmentExpression(Expression):
    """left op= right."""

    operator: str
    left: Expression
    right: Expression


@dataclass(eq=False)
class ConditionalExpression(Expression):
    """test ? consequent : alternate."""

    test: Expression
    consequent: Expression
    alternate: Expression


@dataclass(eq=False)
class LogicalExpression(Expression):
    """left &&/||/?? right."""

    operator: str
    left: Expression
    right: Expression


@dataclass(eq=False)
class BinaryExpression(Expression):
    """left op right."""

    operator: str
    left: Expression
    right: Expression


@dataclass(eq=False)
class UnaryExpression(Expression):
    """op argument."""

    operator: str
    argument: Expression


@dataclass(eq=False)
class UpdateExpression(Expression):
    """++x, x++, --x, x--."""

    operator: str
    prefix: bool
    argument: Expression


@dataclass(eq=False)
class MemberExpression(Expression):
    """object.property or object[property]."""

    object: Expression
    property: Expression
    computed: bool


@dataclass(eq=False)
class CallExpression(Expression):
    """callee(arguments)."""

    callee: Expression
    arguments: list[Expression | SpreadElement]


@dataclass(eq=False)
class NewExpression(Expression):
    """new callee(arguments)."""

    callee: Expression
    arguments: list[Expression | SpreadElement]


# ============================================================
# OPERATORS
# ============================================================

# Binding power of binary and logical operators; higher binds tighter.
BINARY_PRECEDENCE: dict[str, int] = {
    "??": 4,
    "||": 5,
    "&&": 6,
    "|": 7,
    "^": 8,
    "&": 9,
    "==": 10,
    "!=": 10,
    "===": 10,
    "!==": 10,
    "<": 11,
    ">": 11,
    "<=": 11,
    ">=": 11,
    "instanceof": 11,
    "in": 11,
    "<<": 12,
    ">>": 12,
    ">>>": 12,
    "+": 13,
    "-": 13,
    "*": 14,
    "/": 14,
    "%": 14,
    "**": 15,
}

LOGICAL_OPS: set[str] = {"??", "||", "&&"}


# ============================================================
# CLASSIFICATION
# ============================================================

FUNCTION_TYPES = (FunctionDeclaration, FunctionExpression, ArrowFunctionExpression)


def is_function(node: Node) -> bool:
    return isinstance(node, FUNCTION_TYPES)


def is_scope_block(node: Node) -> bool:
    """Node both introduces a scope and holds a statement list in `body`."""
    return isinstance(node, (Program, BlockStatement))


# ============================================================
# TRAVERSAL AND SERIALIZATION
# ============================================================

_SKIPPED_FIELDS = {"pos", "annotations"}


def children(node: Node) -> Iterator[Node]:
    """Yield the direct child nodes of `node` in source order."""
    for f in dataclasses.fields(node):
        if f.name in _SKIPPED_FIELDS:
            continue
        value = getattr(node, f.name)
        if isinstance(value, Node):
            yield value
        elif isinstance(value, list):
            for item in value:
                if isinstance(item, Node):
                    yield item


def walk(node: Node) -> Iterator[Node]:
    """Yield `node` and all of its descendants, pre-order."""
    stack: list[Node] = [node]
    while stack:
        current = stack.pop()
        yield current
        stack.extend(reversed(list(children(current))))


def _value_to_dict(value: object) -> object:
    if isinstance(value, Node):
        return to_dict(value)
    if isinstance(value, list):
        return [_value_to_dict(v) for v in value]
    return value


def to_dict(node: Node) -> dict[str, object]:
    """Convert a node tree to plain dicts, tagging each node with its type."""
    d: dict[str, object] = {"type": type(node).__name__}
    for f in dataclasses.fields(node):
        if f.name == "pos":
            continue
        value = getattr(node, f.name)
        if f.name == "annotations":
            if value:
                d["annotations"] = dict(value)
            continue
        d[f.name] = _value_to_dict(value)
    d["line"] = node.pos.line
    d["col"] = node.pos.col
    return d
