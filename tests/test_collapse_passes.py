"""Unit tests for the collapse pass and its helpers."""

import logging

import pytest

from condense.js import emit, parse
from condense.js.ast import (
    ArrayExpression,
    AssignmentExpression,
    CallExpression,
    ExpressionStatement,
    ForStatement,
    Identifier,
    NewExpression,
    ObjectExpression,
    VariableDeclaration,
    walk,
)
from condense.middleend import optimize
from condense.middleend.collapse import (
    collapse_consecutive_defs,
    collect_expressions,
    get_contiguous_statements_and_expressions,
    remove_statements,
    validate_top_level,
)
from condense.middleend.collapsers import (
    COLLAPSERS,
    ArrayCollapser,
    ObjectCollapser,
    SetCollapser,
    select_collapsers,
)
from condense.middleend.references import (
    ReferenceSet,
    get_id_and_function_references,
    is_inert,
)
from condense.middleend.scope import analyze_scope


def _run(source: str):
    program = parse(source)
    return program, analyze_scope(program)


def _is_assignment(node) -> bool:
    return isinstance(node, AssignmentExpression)


# ── Candidates ──


def test_validate_top_level_accepts_single_declarator():
    program, _ = _run("f(); var o = {};")
    decl = program.body[1]
    candidate = validate_top_level(decl, program)
    assert candidate is not None
    assert candidate.name == "o"
    assert candidate.index == 1
    assert isinstance(candidate.init, ObjectExpression)


@pytest.mark.parametrize(
    "source",
    [
        "var o = {}, p = {};",
        "var o;",
    ],
)
def test_validate_top_level_rejects(source):
    program, _ = _run(source)
    assert validate_top_level(program.body[0], program) is None


def test_validate_top_level_rejects_for_head():
    program, _ = _run("for (var a = []; a.length < 1; ) a.push(1);")
    loop = program.body[0]
    assert isinstance(loop, ForStatement)
    assert validate_top_level(loop.init, loop) is None


# ── Expression collection ──


def test_collect_expressions_flattens_sequences():
    program, _ = _run("o.a = 1, (o.b = 2, o.c = 3);")
    exprs = collect_expressions(program.body[0], _is_assignment)
    assert exprs is not None
    assert [e.left.property.name for e in exprs] == ["a", "b", "c"]


def test_collect_expressions_rejects_mixed():
    program, _ = _run("o.a = 1, g();")
    assert collect_expressions(program.body[0], _is_assignment) is None


def test_collect_expressions_rejects_other_statements():
    program, _ = _run("if (x) o.a = 1;")
    assert collect_expressions(program.body[0], _is_assignment) is None


def test_contiguous_prefix_stops_at_first_failure():
    program, _ = _run("o.a = 1; o.b = 2, o.c = 3; p.d = 4; o.e = 5;")

    def only_o(expr):
        return isinstance(expr.left.object, Identifier) and expr.left.object.name == "o"

    statements, expressions = get_contiguous_statements_and_expressions(
        program.body, 0, len(program.body), _is_assignment, only_o
    )
    assert statements == program.body[:2]
    assert len(expressions) == 3


def test_contiguous_respects_end():
    program, _ = _run("o.a = 1; o.b = 2;")
    statements, _ = get_contiguous_statements_and_expressions(
        program.body, 0, 1, _is_assignment, lambda e: True
    )
    assert statements == program.body[:1]


def test_remove_statements_in_place():
    program, _ = _run("a; b; c;")
    body = program.body
    remove_statements(body, [body[0], body[2]])
    assert len(program.body) == 1
    assert program.body[0].expression.name == "b"


# ── Reference sets ──


def test_reference_set_permits():
    program, info = _run("var o = {}; o.a = 1; o.b = o;")
    refs = get_id_and_function_references("o", program, info)
    assert not refs.escaped
    assert len(refs.nodes) == 3
    second = program.body[1].expression
    third = program.body[2].expression
    assert refs.permits(second.right)
    assert not refs.permits(third.right)
    assert third.right in refs


def test_escaped_set_rejects_calls():
    refs = ReferenceSet(escaped=True)
    program, _ = _run("f(1); 2;")
    assert not refs.permits(program.body[0].expression)
    assert refs.permits(program.body[1].expression)


def test_escaped_set_accepts_only_inert_values():
    refs = ReferenceSet(escaped=True)
    program, _ = _run(
        "p.q; p + 0; -1; [1, x]; ({k: x}); ({...x}); typeof x; (function () {}); -p; a || 1;"
    )
    results = [refs.permits(stmt.expression) for stmt in program.body]
    assert results == [False, False, True, True, True, False, True, True, False, True]


@pytest.mark.parametrize(
    "source,inert",
    [
        ("1 + 2", True),
        ('"a" in b', False),
        ("x ? y : 1", True),
        ("x ? y.z : 1", False),
        ("[...x]", False),
        ("({[k]: 1})", False),
        ('({["k"]: 1, m() {}})', True),
        ("delete x", False),
        ("x++", False),
        ("x = 1", False),
    ],
)
def test_is_inert(source, inert):
    program, _ = _run(source + ";")
    assert is_inert(program.body[0].expression) is inert


def test_widening_through_function_declarations():
    program, info = _run(
        "function f() { return o; } function g() { f(); } var o = {}; g();"
    )
    refs = get_id_and_function_references("o", program, info)
    assert not refs.escaped
    names = sorted(n.name for n in refs.nodes)
    assert names == ["f", "g", "o"]


def test_callback_escapes():
    program, info = _run("var o = {}; run(function () { return o; });")
    refs = get_id_and_function_references("o", program, info)
    assert refs.escaped


def test_method_on_object_escapes():
    program, info = _run("var o = {}; var api = {get: function () { return o; }};")
    refs = get_id_and_function_references("o", program, info)
    assert refs.escaped


def test_function_aliased_as_value_escapes():
    program, info = _run("var o = {}; function f() { return o; } var g = f;")
    refs = get_id_and_function_references("o", program, info)
    assert refs.escaped


def test_function_outside_binding_scope_is_not_followed():
    program, info = _run("function make() { var o = {}; return function () { return o; }; }")
    fn = program.body[0]
    refs = get_id_and_function_references("o", fn.body, info)
    # The inner function escapes through `return`.
    assert refs.escaped
    assert len(refs.nodes) == 1


def test_boundary_stops_at_declaring_function():
    program, info = _run("function make() { var o = {}; o.a = 1; return o; } make();")
    fn = program.body[0]
    refs = get_id_and_function_references("o", fn.body, info)
    assert not refs.escaped
    assert all(n.name == "o" for n in refs.nodes)


# ── Strategies ──


def test_object_collapser_checks():
    program, info = _run("var o = {}; o.a = 1; o.b += 1; o[k] = 1; p.a = 1; o.c = o;")
    refs = get_id_and_function_references("o", program, info)
    check = ObjectCollapser().make_check_expression("o", refs)
    results = [check(stmt.expression) for stmt in program.body[1:]]
    assert results == [True, False, False, False, False]


def test_object_collapser_skips_anonymous_functions():
    program, info = _run(
        "var o = {}; o.f = function () {}; o.g = () => 1; o.h = function h() {};"
    )
    refs = get_id_and_function_references("o", program, info)
    check = ObjectCollapser().make_check_expression("o", refs)
    results = [check(stmt.expression) for stmt in program.body[1:]]
    assert results == [False, False, True]


def test_object_collapser_appends_property():
    program, _ = _run("var o = {x: 0}; o['y'] = 1;")
    init = program.body[0].declarations[0].init
    collapser = ObjectCollapser()
    collapser.add_addon(collapser.extract_addon(program.body[1].expression), init)
    assert len(init.properties) == 2
    assert init.properties[1].key.value == "y"
    assert emit(program).startswith('var o = {x: 0, "y": 1};')


def test_array_collapser_checks():
    program, info = _run("var a = []; a.push(1, 2); a.pop(); b.push(1); a.push(a);")
    refs = get_id_and_function_references("a", program, info)
    check = ArrayCollapser().make_check_expression("a", refs)
    results = [check(stmt.expression) for stmt in program.body[1:]]
    assert results == [True, False, False, False]


def test_set_collapser_init_shapes():
    collapser = SetCollapser()
    program, _ = _run("new Set(); new Set([1]); new Set(xs); new Map(); new Set([1], 2);")
    shapes = [collapser.check_init_type(stmt.expression) for stmt in program.body]
    assert shapes == [True, True, False, False, False]


def test_set_collapser_creates_array_argument():
    program, _ = _run("var s = new Set(); s.add(1);")
    init = program.body[0].declarations[0].init
    assert isinstance(init, NewExpression)
    collapser = SetCollapser()
    collapser.add_addon(collapser.extract_addon(program.body[1].expression), init)
    assert len(init.arguments) == 1
    assert isinstance(init.arguments[0], ArrayExpression)
    assert len(init.arguments[0].elements) == 1


def test_select_collapsers_keeps_order():
    selected = select_collapsers(["set", "object"])
    assert [c.name for c in selected] == ["set", "object"]


def test_select_collapsers_unknown():
    with pytest.raises(ValueError, match="unknown collapser 'map'"):
        select_collapsers(["map"])


def test_default_order():
    assert [c.name for c in COLLAPSERS] == ["object", "array", "set"]


# ── The pass ──


def test_collapse_returns_removed_count():
    program, info = _run("var o = {}; o.a = 1, o.b = 2; o.c = 3; var a = []; a.push(1);")
    assert collapse_consecutive_defs(program, info) == 3
    assert len(program.body) == 2


def test_collapse_annotates_declaration():
    program, info = _run("var a = []; a.push(1); a.push(2); var b = [];")
    collapse_consecutive_defs(program, info)
    decl = program.body[0]
    assert decl.annotations == {"collapse.strategy": "array", "collapse.consumed": 2}
    assert program.body[1].annotations == {}


def test_collapse_updates_ancestry():
    program, info = _run("var o = {}; o.a = b;")
    collapse_consecutive_defs(program, info)
    decl = program.body[0]
    b = next(n for n in walk(decl) if isinstance(n, Identifier) and n.name == "b")
    assert decl.declarations[0] in list(info.ancestry.ancestors(b))


def test_collapse_with_no_strategies():
    program, info = _run("var o = {}; o.a = 1;")
    assert collapse_consecutive_defs(program, info, []) == 0
    assert len(program.body) == 2


def test_missing_binding_is_logged_and_skipped(caplog):
    program, info = _run("var o = {}; o.a = 1;")
    del info.program_scope.bindings["o"]
    with caplog.at_level(logging.WARNING, logger="condense.middleend.collapse"):
        assert collapse_consecutive_defs(program, info) == 0
    assert "skipping 'o' at line 1 col 1" in caplog.text
    assert len(program.body) == 2


def test_collapse_logs_at_debug(caplog):
    program, info = _run("var s = new Set(); s.add(1);")
    with caplog.at_level(logging.DEBUG, logger="condense.middleend.collapse"):
        collapse_consecutive_defs(program, info)
    assert "collapsed 1 statement(s) into 's' (set) at line 1" in caplog.text


def test_optimize_rewrites_in_place():
    program = parse("var o = {}; o.a = 1;\nvar a = []; a.push(o);")
    assert optimize(program) == 2
    assert emit(program) == "var o = {a: 1};\nvar a = [o];\n"


def test_optimize_with_selected_strategies():
    program = parse("var o = {}; o.a = 1; var a = []; a.push(1);")
    assert optimize(program, select_collapsers(["object"])) == 1
    assert isinstance(program.body[-1], ExpressionStatement)
    assert isinstance(program.body[-1].expression, CallExpression)
    assert isinstance(program.body[1], VariableDeclaration)
