"""Collapse consecutive definitions into their declaration's initializer.

    var o = {}; o.a = 1; o.b = 2;   ->   var o = {a: 1, b: 2};

For each single-binding declaration directly inside a statement list, the pass
scans the statements that follow it. The longest run in which every
expression populates the variable, and reads nothing that may observe it, is
folded into the initializer and removed. Writes annotations on changed
declarations:

    collapse.strategy  name of the strategy that applied
    collapse.consumed  number of statements folded in
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass

from ..js.ast import (
    BlockStatement,
    Expression,
    ExpressionStatement,
    Identifier,
    Node,
    Program,
    SequenceExpression,
    Statement,
    VariableDeclaration,
    children,
    is_scope_block,
)
from .collapsers import COLLAPSERS, CheckExpression, Collapser
from .references import get_id_and_function_references
from .scope import ScopeError, ScopeInfo

LOG = logging.getLogger(__name__)


@dataclass
class Candidate:
    """A declaration eligible for collapsing."""

    name: str
    init: Expression
    index: int


def validate_top_level(decl: VariableDeclaration, parent: Node) -> Candidate | None:
    """Candidate for `var name = init;` sitting directly in a statement list."""
    if len(decl.declarations) != 1:
        return None
    declarator = decl.declarations[0]
    if not isinstance(declarator.id, Identifier) or declarator.init is None:
        return None
    if not is_scope_block(parent):
        return None
    assert isinstance(parent, (Program, BlockStatement))
    for i, stmt in enumerate(parent.body):
        if stmt is decl:
            return Candidate(declarator.id.name, declarator.init, i)
    return None


def collect_expressions(
    node: Node, check_expression_type: Callable[[Node], bool]
) -> list[Node] | None:
    """Flatten a statement into its comma-separated expressions.

    Returns None unless every flattened expression has the accepted type.
    """
    if isinstance(node, ExpressionStatement):
        return collect_expressions(node.expression, check_expression_type)
    if isinstance(node, SequenceExpression):
        exprs: list[Node] = []
        for e in node.expressions:
            sub = collect_expressions(e, check_expression_type)
            if sub is None:
                return None
            exprs.extend(sub)
        return exprs
    if check_expression_type(node):
        return [node]
    return None


def get_contiguous_statements_and_expressions(
    body: list[Statement],
    start: int,
    end: int,
    check_expression_type: Callable[[Node], bool],
    check_expression: CheckExpression,
) -> tuple[list[Statement], list[Node]]:
    """Longest prefix of body[start:end] made only of accepted expressions."""
    statements: list[Statement] = []
    expressions: list[Node] = []
    i = start
    while i < end:
        stmt = body[i]
        exprs = collect_expressions(stmt, check_expression_type)
        if exprs is None:
            break
        if not all(check_expression(e) for e in exprs):
            break
        statements.append(stmt)
        expressions.extend(exprs)
        i += 1
    return statements, expressions


def remove_statements(body: list[Statement], statements: list[Statement]) -> None:
    """Remove `statements` from `body` in place."""
    removed = set(statements)
    body[:] = [s for s in body if s not in removed]


def collapse_declaration(
    decl: VariableDeclaration,
    parent: Node,
    info: ScopeInfo,
    collapsers: list[Collapser],
) -> int:
    """Collapse the run following `decl`. Returns the number of statements removed."""
    candidate = validate_top_level(decl, parent)
    if candidate is None:
        return 0
    assert isinstance(parent, (Program, BlockStatement))
    try:
        references = get_id_and_function_references(candidate.name, parent, info)
    except ScopeError as e:
        LOG.warning(
            "skipping '%s' at line %d col %d: %s",
            candidate.name,
            decl.pos.line,
            decl.pos.col,
            e,
        )
        return 0
    removed = 0
    for collapser in collapsers:
        if not collapser.check_init_type(candidate.init):
            continue
        statements, expressions = get_contiguous_statements_and_expressions(
            parent.body,
            candidate.index + 1,
            len(parent.body),
            collapser.check_expression_type,
            collapser.make_check_expression(candidate.name, references),
        )
        if not statements:
            continue
        for expr in expressions:
            collapser.add_addon(collapser.extract_addon(expr), candidate.init)
        remove_statements(parent.body, statements)
        info.ancestry.adopt(candidate.init, decl.declarations[0])
        consumed = decl.annotations.get("collapse.consumed", 0)
        assert isinstance(consumed, int)
        decl.annotations["collapse.strategy"] = collapser.name
        decl.annotations["collapse.consumed"] = consumed + len(statements)
        LOG.debug(
            "collapsed %d statement(s) into '%s' (%s) at line %d",
            len(statements),
            candidate.name,
            collapser.name,
            decl.pos.line,
        )
        removed += len(statements)
    return removed


def collapse_consecutive_defs(
    program: Program, info: ScopeInfo, collapsers: list[Collapser] | None = None
) -> int:
    """Run the pass over `program`. Returns the number of statements removed."""
    if collapsers is None:
        collapsers = COLLAPSERS
    return _visit(program, None, info, collapsers)


def _visit(
    node: Node, parent: Node | None, info: ScopeInfo, collapsers: list[Collapser]
) -> int:
    removed = 0
    if isinstance(node, VariableDeclaration) and parent is not None:
        removed += collapse_declaration(node, parent, info, collapsers)
    if isinstance(node, (Program, BlockStatement)):
        # Re-read the body on each step: collapsing removes later statements.
        i = 0
        while i < len(node.body):
            removed += _visit(node.body[i], node, info, collapsers)
            i += 1
        return removed
    for child in list(children(node)):
        removed += _visit(child, node, info, collapsers)
    return removed
