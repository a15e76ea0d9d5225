"""JavaScript emitter — converts the AST back into JavaScript source.

Total over the node types in `condense/js/ast.py`: a new node type needs a
matching branch here.
"""

from __future__ import annotations

from .ast import (
    BINARY_PRECEDENCE,
    ArrayExpression,
    ArrowFunctionExpression,
    AssignmentExpression,
    BinaryExpression,
    BlockStatement,
    BooleanLiteral,
    BreakStatement,
    CallExpression,
    ConditionalExpression,
    ContinueStatement,
    DoWhileStatement,
    EmptyStatement,
    Expression,
    ExpressionStatement,
    ForInStatement,
    ForOfStatement,
    ForStatement,
    FunctionDeclaration,
    FunctionExpression,
    Identifier,
    IfStatement,
    LogicalExpression,
    MemberExpression,
    NewExpression,
    Node,
    NullLiteral,
    NumericLiteral,
    ObjectExpression,
    Program,
    Property,
    ReturnStatement,
    SequenceExpression,
    SpreadElement,
    Statement,
    StringLiteral,
    ThisExpression,
    ThrowStatement,
    TryStatement,
    UnaryExpression,
    UpdateExpression,
    VariableDeclaration,
    WhileStatement,
)


def to_source(program: Program) -> str:
    """Render a `Program` back into JavaScript source text."""
    return _Emitter().emit_program(program)


def _starts_with_word(text: str, word: str) -> bool:
    if not text.startswith(word):
        return False
    if len(text) == len(word):
        return True
    c = text[len(word)]
    return not (c.isalnum() or c == "_" or c == "$")


class _Emitter:
    _INDENT: str = "  "

    # Expression precedence (higher binds tighter). Binary operators take
    # their levels from BINARY_PRECEDENCE, which sits between CONDITIONAL
    # and UNARY.
    _PREC_SEQUENCE: int = 1
    _PREC_ASSIGN: int = 2
    _PREC_CONDITIONAL: int = 3
    _PREC_NULLISH: int = 4
    _PREC_EXPONENT: int = 15
    _PREC_UNARY: int = 16
    _PREC_UPDATE: int = 17
    _PREC_CALL: int = 18
    _PREC_MEMBER: int = 19
    _PREC_PRIMARY: int = 20

    def __init__(self) -> None:
        self._lines: list[str] = []
        self._indent_level: int = 0
        self._no_in: bool = False

    # ── Public ──────────────────────────────────────────────

    def emit_program(self, program: Program) -> str:
        self._lines = []
        self._indent_level = 0
        for stmt in program.body:
            self._emit_stmt(stmt)
        text = "\n".join(self._lines)
        if text == "":
            return ""
        return text + "\n"

    # ── Lines / Blocks ──────────────────────────────────────

    def _emit_line(self, line: str) -> None:
        self._lines.append(self._INDENT * self._indent_level + line)

    def _emit_nested(self, stmt: Statement) -> None:
        """Emit the contents of a braced body one level deeper."""
        self._indent_level += 1
        if isinstance(stmt, BlockStatement):
            for s in stmt.body:
                self._emit_stmt(s)
        else:
            self._emit_stmt(stmt)
        self._indent_level -= 1

    def _emit_body(self, header: str, body: Statement) -> None:
        """Emit `header` followed by a loop or if body, braced or on its own line."""
        if isinstance(body, BlockStatement):
            if not body.body:
                self._emit_line(header + " {}")
                return
            self._emit_line(header + " {")
            self._emit_nested(body)
            self._emit_line("}")
            return
        self._emit_line(header)
        self._indent_level += 1
        self._emit_stmt(body)
        self._indent_level -= 1

    def _render_block(self, block: BlockStatement) -> str:
        """Render a function body for use inside an expression."""
        if not block.body:
            return "{}"
        saved = self._lines
        saved_no_in = self._no_in
        self._lines = []
        self._no_in = False
        self._emit_nested(block)
        inner = self._lines
        self._lines = saved
        self._no_in = saved_no_in
        return "{\n" + "\n".join(inner) + "\n" + self._INDENT * self._indent_level + "}"

    # ── Stmts ───────────────────────────────────────────────

    def _emit_stmt(self, stmt: Statement) -> None:
        if isinstance(stmt, VariableDeclaration):
            self._emit_line(self._render_var_decl(stmt) + ";")
            return
        if isinstance(stmt, FunctionDeclaration):
            params = self._render_params(stmt.params)
            header = "function " + stmt.id.name + "(" + params + ")"
            self._emit_body(header, stmt.body)
            return
        if isinstance(stmt, ExpressionStatement):
            text = self._render_expr(stmt.expression, self._PREC_SEQUENCE)
            if text.startswith("{") or _starts_with_word(text, "function"):
                text = "(" + text + ")"
            self._emit_line(text + ";")
            return
        if isinstance(stmt, BlockStatement):
            if not stmt.body:
                self._emit_line("{}")
                return
            self._emit_line("{")
            self._emit_nested(stmt)
            self._emit_line("}")
            return
        if isinstance(stmt, EmptyStatement):
            self._emit_line(";")
            return
        if isinstance(stmt, ReturnStatement):
            if stmt.argument is None:
                self._emit_line("return;")
            else:
                arg = self._render_expr(stmt.argument, self._PREC_SEQUENCE)
                self._emit_line("return " + arg + ";")
            return
        if isinstance(stmt, IfStatement):
            self._emit_if_chain(stmt)
            return
        if isinstance(stmt, ForStatement):
            self._emit_for_stmt(stmt)
            return
        if isinstance(stmt, (ForInStatement, ForOfStatement)):
            self._emit_for_each_stmt(stmt)
            return
        if isinstance(stmt, WhileStatement):
            test = self._render_expr(stmt.test, self._PREC_SEQUENCE)
            self._emit_body("while (" + test + ")", stmt.body)
            return
        if isinstance(stmt, DoWhileStatement):
            test = self._render_expr(stmt.test, self._PREC_SEQUENCE)
            self._emit_line("do {")
            self._emit_nested(stmt.body)
            self._emit_line("} while (" + test + ");")
            return
        if isinstance(stmt, BreakStatement):
            self._emit_line("break;")
            return
        if isinstance(stmt, ContinueStatement):
            self._emit_line("continue;")
            return
        if isinstance(stmt, ThrowStatement):
            arg = self._render_expr(stmt.argument, self._PREC_SEQUENCE)
            self._emit_line("throw " + arg + ";")
            return
        if isinstance(stmt, TryStatement):
            self._emit_try_stmt(stmt)
            return
        raise TypeError("unhandled stmt type: " + type(stmt).__name__)

    def _render_var_decl(self, decl: VariableDeclaration) -> str:
        parts: list[str] = []
        for d in decl.declarations:
            if d.init is None:
                parts.append(d.id.name)
            else:
                parts.append(
                    d.id.name + " = " + self._render_expr(d.init, self._PREC_ASSIGN)
                )
        return decl.kind + " " + ", ".join(parts)

    def _emit_if_chain(self, stmt: IfStatement) -> None:
        if stmt.alternate is None:
            test = self._render_expr(stmt.test, self._PREC_SEQUENCE)
            self._emit_body("if (" + test + ")", stmt.consequent)
            return
        # Braces throughout the chain keep each else attached to its own if.
        current = stmt
        prefix = "if"
        while True:
            test = self._render_expr(current.test, self._PREC_SEQUENCE)
            self._emit_line(prefix + " (" + test + ") {")
            self._emit_nested(current.consequent)
            alt = current.alternate
            if isinstance(alt, IfStatement):
                current = alt
                prefix = "} else if"
                continue
            if alt is not None:
                self._emit_line("} else {")
                self._emit_nested(alt)
            self._emit_line("}")
            return

    def _emit_for_stmt(self, stmt: ForStatement) -> None:
        header = "for ("
        if stmt.init is not None:
            self._no_in = True
            if isinstance(stmt.init, VariableDeclaration):
                header += self._render_var_decl(stmt.init)
            else:
                header += self._render_expr(stmt.init, self._PREC_SEQUENCE)
            self._no_in = False
        header += ";"
        if stmt.test is not None:
            header += " " + self._render_expr(stmt.test, self._PREC_SEQUENCE)
        header += ";"
        if stmt.update is not None:
            header += " " + self._render_expr(stmt.update, self._PREC_SEQUENCE)
        self._emit_body(header + ")", stmt.body)

    def _emit_for_each_stmt(self, stmt: ForInStatement | ForOfStatement) -> None:
        if isinstance(stmt.left, VariableDeclaration):
            left = self._render_var_decl(stmt.left)
        else:
            left = self._render_expr(stmt.left, self._PREC_CALL)
        if isinstance(stmt, ForInStatement):
            right = self._render_expr(stmt.right, self._PREC_SEQUENCE)
            header = "for (" + left + " in " + right + ")"
        else:
            right = self._render_expr(stmt.right, self._PREC_ASSIGN)
            header = "for (" + left + " of " + right + ")"
        self._emit_body(header, stmt.body)

    def _emit_try_stmt(self, stmt: TryStatement) -> None:
        self._emit_line("try {")
        self._emit_nested(stmt.block)
        if stmt.handler is not None:
            if stmt.handler.param is None:
                self._emit_line("} catch {")
            else:
                self._emit_line("} catch (" + stmt.handler.param.name + ") {")
            self._emit_nested(stmt.handler.body)
        if stmt.finalizer is not None:
            self._emit_line("} finally {")
            self._emit_nested(stmt.finalizer)
        self._emit_line("}")

    # ── Params ──────────────────────────────────────────────

    def _render_params(self, params: list[Identifier]) -> str:
        return ", ".join(p.name for p in params)

    # ── Exprs ───────────────────────────────────────────────

    def _expr_prec(self, expr: Node) -> int:
        if isinstance(expr, SequenceExpression):
            return self._PREC_SEQUENCE
        if isinstance(expr, (AssignmentExpression, ArrowFunctionExpression)):
            return self._PREC_ASSIGN
        if isinstance(expr, ConditionalExpression):
            return self._PREC_CONDITIONAL
        if isinstance(expr, (BinaryExpression, LogicalExpression)):
            if expr.operator not in BINARY_PRECEDENCE:
                raise ValueError("unknown binary operator: " + expr.operator)
            return BINARY_PRECEDENCE[expr.operator]
        if isinstance(expr, UnaryExpression):
            return self._PREC_UNARY
        if isinstance(expr, UpdateExpression):
            return self._PREC_UPDATE
        if isinstance(expr, (CallExpression, NewExpression)):
            return self._PREC_CALL
        if isinstance(expr, MemberExpression):
            return self._PREC_MEMBER
        return self._PREC_PRIMARY

    def _render_expr(self, expr: Node, min_prec: int, force: bool = False) -> str:
        """Render `expr`, parenthesized when it binds looser than `min_prec`."""
        prec = self._expr_prec(expr)
        text = self._render_expr_inner(expr)
        if force or prec < min_prec:
            return "(" + text + ")"
        if self._no_in and isinstance(expr, BinaryExpression) and expr.operator == "in":
            return "(" + text + ")"
        return text

    def _render_expr_inner(self, expr: Node) -> str:
        if isinstance(expr, Identifier):
            return expr.name
        if isinstance(expr, NumericLiteral):
            return expr.raw
        if isinstance(expr, StringLiteral):
            return self._quote_string(expr.value)
        if isinstance(expr, BooleanLiteral):
            return "true" if expr.value else "false"
        if isinstance(expr, NullLiteral):
            return "null"
        if isinstance(expr, ThisExpression):
            return "this"
        if isinstance(expr, SpreadElement):
            return "..." + self._render_expr(expr.argument, self._PREC_ASSIGN)
        if isinstance(expr, ArrayExpression):
            return self._render_array(expr)
        if isinstance(expr, ObjectExpression):
            if not expr.properties:
                return "{}"
            props: list[str] = []
            for p in expr.properties:
                props.append(self._render_property(p))
            return "{" + ", ".join(props) + "}"
        if isinstance(expr, FunctionExpression):
            name = expr.id.name if expr.id is not None else ""
            params = self._render_params(expr.params)
            body = self._render_block(expr.body)
            if name:
                return "function " + name + "(" + params + ") " + body
            return "function (" + params + ") " + body
        if isinstance(expr, ArrowFunctionExpression):
            params = "(" + self._render_params(expr.params) + ") => "
            if isinstance(expr.body, BlockStatement):
                return params + self._render_block(expr.body)
            body_text = self._render_expr(expr.body, self._PREC_ASSIGN)
            if body_text.startswith("{"):
                body_text = "(" + body_text + ")"
            return params + body_text
        if isinstance(expr, SequenceExpression):
            parts: list[str] = []
            for e in expr.expressions:
                parts.append(self._render_expr(e, self._PREC_ASSIGN))
            return ", ".join(parts)
        if isinstance(expr, AssignmentExpression):
            left = self._render_expr(expr.left, self._PREC_CALL)
            right = self._render_expr(expr.right, self._PREC_ASSIGN)
            return left + " " + expr.operator + " " + right
        if isinstance(expr, ConditionalExpression):
            test = self._render_expr(expr.test, self._PREC_NULLISH)
            cons = self._render_expr(expr.consequent, self._PREC_ASSIGN)
            alt = self._render_expr(expr.alternate, self._PREC_ASSIGN)
            return test + " ? " + cons + " : " + alt
        if isinstance(expr, (BinaryExpression, LogicalExpression)):
            return self._render_binary(expr)
        if isinstance(expr, UnaryExpression):
            arg = self._render_expr(expr.argument, self._PREC_UNARY)
            if expr.operator.isalpha():
                return expr.operator + " " + arg
            if expr.operator in ("+", "-") and arg[:1] == expr.operator:
                return expr.operator + " " + arg
            return expr.operator + arg
        if isinstance(expr, UpdateExpression):
            arg = self._render_expr(expr.argument, self._PREC_CALL)
            if expr.prefix:
                return expr.operator + arg
            return arg + expr.operator
        if isinstance(expr, MemberExpression):
            obj = self._render_expr(
                expr.object,
                self._PREC_CALL,
                force=isinstance(expr.object, NumericLiteral) and not expr.computed,
            )
            if expr.computed:
                return obj + "[" + self._render_expr(expr.property, self._PREC_SEQUENCE) + "]"
            assert isinstance(expr.property, Identifier)
            return obj + "." + expr.property.name
        if isinstance(expr, CallExpression):
            callee = self._render_expr(expr.callee, self._PREC_CALL)
            return callee + "(" + self._render_args(expr.arguments) + ")"
        if isinstance(expr, NewExpression):
            callee = self._render_expr(
                expr.callee, self._PREC_MEMBER, force=self._has_call(expr.callee)
            )
            return "new " + callee + "(" + self._render_args(expr.arguments) + ")"
        raise TypeError("unhandled expr type: " + type(expr).__name__)

    def _render_binary(self, expr: BinaryExpression | LogicalExpression) -> str:
        op = expr.operator
        op_prec = BINARY_PRECEDENCE[op]
        if op == "**":
            left = self._render_expr(expr.left, self._PREC_UPDATE)
            right = self._render_expr(expr.right, self._PREC_EXPONENT)
        else:
            left = self._render_expr(
                expr.left, op_prec, force=self._mixes_nullish(op, expr.left)
            )
            right = self._render_expr(
                expr.right, op_prec + 1, force=self._mixes_nullish(op, expr.right)
            )
        return left + " " + op + " " + right

    def _mixes_nullish(self, op: str, child: Expression) -> bool:
        """`??` cannot share an unparenthesized operand with `||` or `&&`."""
        if not isinstance(child, LogicalExpression):
            return False
        if op == "??":
            return child.operator != "??"
        if op in ("||", "&&"):
            return child.operator == "??"
        return False

    def _has_call(self, callee: Expression) -> bool:
        """A call anywhere in a `new` callee's member chain needs parentheses."""
        current: Expression = callee
        while isinstance(current, MemberExpression):
            current = current.object
        return isinstance(current, CallExpression)

    def _render_args(self, args: list[Expression | SpreadElement]) -> str:
        parts: list[str] = []
        for a in args:
            parts.append(self._render_expr(a, self._PREC_ASSIGN))
        return ", ".join(parts)

    def _render_array(self, expr: ArrayExpression) -> str:
        parts: list[str] = []
        for e in expr.elements:
            if e is None:
                parts.append("")
            else:
                parts.append(self._render_expr(e, self._PREC_ASSIGN))
        text = ", ".join(parts)
        if expr.elements and expr.elements[-1] is None:
            text += ","
        return "[" + text + "]"

    def _render_property(self, prop: Property | SpreadElement) -> str:
        if isinstance(prop, SpreadElement):
            return self._render_expr(prop, self._PREC_ASSIGN)
        if prop.computed:
            key = "[" + self._render_expr(prop.key, self._PREC_ASSIGN) + "]"
        elif isinstance(prop.key, Identifier):
            key = prop.key.name
        else:
            key = self._render_expr(prop.key, self._PREC_PRIMARY)
        if prop.shorthand:
            return key
        if prop.method:
            assert isinstance(prop.value, FunctionExpression)
            params = self._render_params(prop.value.params)
            return key + "(" + params + ") " + self._render_block(prop.value.body)
        return key + ": " + self._render_expr(prop.value, self._PREC_ASSIGN)

    # ── Literals / Escapes ──────────────────────────────────

    def _quote_string(self, s: str) -> str:
        out = '"'
        for ch in s:
            if ch == "\n":
                out += "\\n"
            elif ch == "\r":
                out += "\\r"
            elif ch == "\t":
                out += "\\t"
            elif ch == "\\":
                out += "\\\\"
            elif ch == '"':
                out += '\\"'
            elif ch == "\u2028" or ch == "\u2029":
                out += "\\u" + hex(ord(ch))[2:]
            else:
                code = ord(ch)
                if code < 32 or code == 127:
                    hx = hex(code)[2:]
                    if len(hx) == 1:
                        hx = "0" + hx
                    out += "\\x" + hx
                else:
                    out += ch
        return out + '"'
