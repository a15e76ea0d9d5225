"""JavaScript parser — recursive descent, one method per grammar production."""

from __future__ import annotations

from .ast import (
    BINARY_PRECEDENCE,
    LOGICAL_OPS,
    ArrayExpression,
    ArrowFunctionExpression,
    AssignmentExpression,
    BinaryExpression,
    BlockStatement,
    BooleanLiteral,
    BreakStatement,
    CallExpression,
    CatchClause,
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
    NullLiteral,
    NumericLiteral,
    ObjectExpression,
    Pos,
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
    VariableDeclarator,
    WhileStatement,
)
from .tokens import (
    KEYWORDS,
    TK_EOF,
    TK_IDENT,
    TK_NUMBER,
    TK_OP,
    TK_STRING,
    UNSUPPORTED_KEYWORDS,
    Token,
)

ASSIGN_OPS: set[str] = {
    "=",
    "+=",
    "-=",
    "*=",
    "/=",
    "%=",
    "**=",
    "<<=",
    ">>=",
    ">>>=",
    "&=",
    "|=",
    "^=",
    "&&=",
    "||=",
    "??=",
}

UNARY_OPS: set[str] = {"!", "~", "+", "-"}

UNARY_KEYWORDS: set[str] = {"typeof", "void", "delete"}

DECL_KINDS: set[str] = {"var", "let", "const"}


class ParseError(Exception):
    """Parse error with location info."""

    def __init__(self, msg: str, line: int, col: int):
        self.msg: str = msg
        self.line: int = line
        self.col: int = col
        super().__init__(msg + " at line " + str(line) + " col " + str(col))


def _describe(tok: Token) -> str:
    if tok.type == TK_EOF:
        return "end of input"
    if tok.type == TK_STRING:
        return "string literal"
    return "'" + tok.value + "'"


class Parser:
    """Recursive descent parser for the supported JavaScript subset."""

    def __init__(self, tokens: list[Token]):
        self.tokens: list[Token] = tokens
        self.pos: int = 0

    # ── Helpers ──────────────────────────────────────────────

    def current(self) -> Token:
        return self.tokens[self.pos]

    def peek(self, offset: int) -> Token:
        idx = self.pos + offset
        if idx >= len(self.tokens):
            return self.tokens[len(self.tokens) - 1]
        return self.tokens[idx]

    def advance(self) -> Token:
        tok = self.tokens[self.pos]
        if tok.type != TK_EOF:
            self.pos += 1
        return tok

    def at(self, value: str) -> bool:
        """Current token is the operator or keyword `value`."""
        tok = self.current()
        return tok.value == value and tok.type != TK_STRING and tok.type != TK_IDENT

    def at_type(self, type_: str) -> bool:
        return self.current().type == type_

    def at_word(self, word: str) -> bool:
        """Current token is the contextual identifier `word` (of, get, set...)."""
        tok = self.current()
        return tok.type == TK_IDENT and tok.value == word

    def expect(self, value: str) -> Token:
        if not self.at(value):
            raise self.error(
                "expected '" + value + "', got " + _describe(self.current())
            )
        return self.advance()

    def expect_ident(self) -> Token:
        tok = self.current()
        if tok.type != TK_IDENT:
            raise self.error("expected identifier, got " + _describe(tok))
        if tok.value in UNSUPPORTED_KEYWORDS:
            raise self.error("unsupported syntax: '" + tok.value + "'")
        return self.advance()

    def error(self, msg: str) -> ParseError:
        tok = self.current()
        return ParseError(msg, tok.line, tok.col)

    def _pos(self) -> Pos:
        tok = self.current()
        return Pos(tok.line, tok.col)

    def consume_semicolon(self) -> None:
        """Consume ';' or accept an automatically inserted one."""
        if self.at(";"):
            self.advance()
            return
        tok = self.current()
        if self.at("}") or tok.type == TK_EOF or tok.newline_before:
            return
        raise self.error("expected ';', got " + _describe(tok))

    def _at_statement_end(self) -> bool:
        tok = self.current()
        return (
            self.at(";") or self.at("}") or tok.type == TK_EOF or tok.newline_before
        )

    # ── Top Level ────────────────────────────────────────────

    def parse_program(self) -> Program:
        stmts: list[Statement] = []
        while not self.at_type(TK_EOF):
            stmts.append(self.parse_statement())
        return Program(Pos(1, 1), stmts)

    def parse_block(self) -> BlockStatement:
        pos = self._pos()
        self.expect("{")
        stmts: list[Statement] = []
        while not self.at("}"):
            if self.at_type(TK_EOF):
                raise self.error("expected '}', got end of input")
            stmts.append(self.parse_statement())
        self.expect("}")
        return BlockStatement(pos, stmts)

    def parse_binding_ident(self) -> Identifier:
        if self.at("{") or self.at("["):
            raise self.error("destructuring patterns are not supported")
        tok = self.expect_ident()
        return Identifier(Pos(tok.line, tok.col), tok.value)

    def parse_params(self) -> list[Identifier]:
        """Params = '(' ( Ident ( ',' Ident )* ','? )? ')'"""
        self.expect("(")
        params: list[Identifier] = []
        while not self.at(")"):
            if self.at("..."):
                raise self.error("rest parameters are not supported")
            params.append(self.parse_binding_ident())
            if self.at("="):
                raise self.error("default parameters are not supported")
            if not self.at(")"):
                self.expect(",")
        self.expect(")")
        return params

    def parse_function(self, is_expression: bool) -> Statement | Expression:
        """Function = 'function' Ident? Params Block"""
        pos = self._pos()
        self.expect("function")
        if self.at("*"):
            raise self.error("generators are not supported")
        ident: Identifier | None = None
        if self.at_type(TK_IDENT):
            ident = self.parse_binding_ident()
        elif not is_expression:
            raise self.error("expected function name, got " + _describe(self.current()))
        params = self.parse_params()
        body = self.parse_block()
        if is_expression:
            return FunctionExpression(pos, ident, params, body)
        assert ident is not None
        return FunctionDeclaration(pos, ident, params, body)

    # ── Statements ───────────────────────────────────────────

    def parse_statement(self) -> Statement:
        tok = self.current()
        if self.at("{"):
            return self.parse_block()
        if self.at(";"):
            self.advance()
            return EmptyStatement(Pos(tok.line, tok.col))
        if tok.type in DECL_KINDS:
            decl = self.parse_var_declaration(False)
            self.consume_semicolon()
            return decl
        if self.at("function"):
            fn = self.parse_function(False)
            assert isinstance(fn, FunctionDeclaration)
            return fn
        if self.at("if"):
            return self.parse_if_stmt()
        if self.at("for"):
            return self.parse_for_stmt()
        if self.at("while"):
            return self.parse_while_stmt()
        if self.at("do"):
            return self.parse_do_while_stmt()
        if self.at("return"):
            return self.parse_return_stmt()
        if self.at("break") or self.at("continue"):
            return self.parse_jump_stmt()
        if self.at("throw"):
            return self.parse_throw_stmt()
        if self.at("try"):
            return self.parse_try_stmt()
        if tok.type == TK_IDENT:
            if tok.value in UNSUPPORTED_KEYWORDS:
                raise self.error("unsupported syntax: '" + tok.value + "'")
            if tok.value == "async" and self.peek(1).value == "function":
                raise self.error("async functions are not supported")
            nxt = self.peek(1)
            if nxt.type == TK_OP and nxt.value == ":":
                raise self.error("labeled statements are not supported")
        return self.parse_expr_stmt()

    def parse_var_declaration(self, no_in: bool) -> VariableDeclaration:
        """VarDecl = ( 'var' | 'let' | 'const' ) Declarator ( ',' Declarator )*"""
        pos = self._pos()
        kind = self.advance().value
        declarations: list[VariableDeclarator] = [self.parse_declarator(no_in)]
        while self.at(","):
            self.advance()
            declarations.append(self.parse_declarator(no_in))
        return VariableDeclaration(pos, kind, declarations)

    def parse_declarator(self, no_in: bool) -> VariableDeclarator:
        pos = self._pos()
        ident = self.parse_binding_ident()
        init: Expression | None = None
        if self.at("="):
            self.advance()
            init = self.parse_assign(no_in)
        return VariableDeclarator(pos, ident, init)

    def parse_if_stmt(self) -> IfStatement:
        pos = self._pos()
        self.expect("if")
        self.expect("(")
        test = self.parse_expression()
        self.expect(")")
        consequent = self.parse_statement()
        alternate: Statement | None = None
        if self.at("else"):
            self.advance()
            alternate = self.parse_statement()
        return IfStatement(pos, test, consequent, alternate)

    def parse_for_stmt(self) -> Statement:
        """For = 'for' '(' ( Init? ';' Expr? ';' Expr? | Left ( 'in' | 'of' ) Expr ) ')' Stmt"""
        pos = self._pos()
        self.expect("for")
        if self.at_word("await"):
            raise self.error("for await is not supported")
        self.expect("(")
        init: VariableDeclaration | Expression | None = None
        if not self.at(";"):
            start = self.current()
            if start.type in DECL_KINDS:
                init = self.parse_var_declaration(True)
            else:
                init = self.parse_expression(True)
            if self.at("in") or self.at_word("of"):
                if isinstance(init, VariableDeclaration):
                    if len(init.declarations) != 1 or init.declarations[0].init:
                        raise ParseError(
                            "invalid left side in for loop", start.line, start.col
                        )
                elif not isinstance(init, (Identifier, MemberExpression)):
                    raise ParseError(
                        "invalid left side in for loop", start.line, start.col
                    )
                is_of = self.at_word("of")
                self.advance()
                right = self.parse_assign() if is_of else self.parse_expression()
                self.expect(")")
                body = self.parse_statement()
                if is_of:
                    return ForOfStatement(pos, init, right, body)
                return ForInStatement(pos, init, right, body)
        self.expect(";")
        test: Expression | None = None
        if not self.at(";"):
            test = self.parse_expression()
        self.expect(";")
        update: Expression | None = None
        if not self.at(")"):
            update = self.parse_expression()
        self.expect(")")
        body = self.parse_statement()
        return ForStatement(pos, init, test, update, body)

    def parse_while_stmt(self) -> WhileStatement:
        pos = self._pos()
        self.expect("while")
        self.expect("(")
        test = self.parse_expression()
        self.expect(")")
        body = self.parse_statement()
        return WhileStatement(pos, test, body)

    def parse_do_while_stmt(self) -> DoWhileStatement:
        pos = self._pos()
        self.expect("do")
        body = self.parse_statement()
        self.expect("while")
        self.expect("(")
        test = self.parse_expression()
        self.expect(")")
        # A semicolon is always inserted after do-while.
        if self.at(";"):
            self.advance()
        return DoWhileStatement(pos, body, test)

    def parse_return_stmt(self) -> ReturnStatement:
        pos = self._pos()
        self.expect("return")
        argument: Expression | None = None
        if not self._at_statement_end():
            argument = self.parse_expression()
        self.consume_semicolon()
        return ReturnStatement(pos, argument)

    def parse_jump_stmt(self) -> Statement:
        pos = self._pos()
        is_break = self.advance().value == "break"
        tok = self.current()
        if tok.type == TK_IDENT and not tok.newline_before:
            raise self.error("labels are not supported")
        self.consume_semicolon()
        if is_break:
            return BreakStatement(pos)
        return ContinueStatement(pos)

    def parse_throw_stmt(self) -> ThrowStatement:
        pos = self._pos()
        self.expect("throw")
        if self.current().newline_before:
            raise self.error("illegal newline after throw")
        argument = self.parse_expression()
        self.consume_semicolon()
        return ThrowStatement(pos, argument)

    def parse_try_stmt(self) -> TryStatement:
        pos = self._pos()
        self.expect("try")
        block = self.parse_block()
        handler: CatchClause | None = None
        finalizer: BlockStatement | None = None
        if self.at("catch"):
            catch_pos = self._pos()
            self.advance()
            param: Identifier | None = None
            if self.at("("):
                self.advance()
                param = self.parse_binding_ident()
                self.expect(")")
            handler = CatchClause(catch_pos, param, self.parse_block())
        if self.at("finally"):
            self.advance()
            finalizer = self.parse_block()
        if handler is None and finalizer is None:
            raise self.error("missing catch or finally after try")
        return TryStatement(pos, block, handler, finalizer)

    def parse_expr_stmt(self) -> ExpressionStatement:
        pos = self._pos()
        expr = self.parse_expression()
        self.consume_semicolon()
        return ExpressionStatement(pos, expr)

    # ── Expressions ──────────────────────────────────────────

    def parse_expression(self, no_in: bool = False) -> Expression:
        """Expression = Assign ( ',' Assign )*"""
        first = self.parse_assign(no_in)
        if not self.at(","):
            return first
        exprs: list[Expression] = [first]
        while self.at(","):
            self.advance()
            exprs.append(self.parse_assign(no_in))
        return SequenceExpression(first.pos, exprs)

    def parse_assign(self, no_in: bool = False) -> Expression:
        """Assign = Arrow | Conditional ( AssignOp Assign )?"""
        if self._is_arrow():
            return self.parse_arrow(no_in)
        start = self.current()
        left = self.parse_conditional(no_in)
        tok = self.current()
        if tok.type == TK_OP and tok.value in ASSIGN_OPS:
            if not isinstance(left, (Identifier, MemberExpression)):
                if isinstance(left, (ObjectExpression, ArrayExpression)):
                    raise ParseError(
                        "destructuring assignment is not supported",
                        start.line,
                        start.col,
                    )
                raise ParseError("invalid assignment target", start.line, start.col)
            op = self.advance().value
            right = self.parse_assign(no_in)
            return AssignmentExpression(left.pos, op, left, right)
        return left

    def _is_arrow(self) -> bool:
        """Lookahead scan: IDENT '=>' or a parenthesized list followed by '=>'."""
        tok = self.current()
        if tok.type == TK_IDENT:
            nxt = self.peek(1)
            return nxt.type == TK_OP and nxt.value == "=>"
        if not self.at("("):
            return False
        depth = 1
        i = self.pos + 1
        num_tokens = len(self.tokens)
        while i < num_tokens:
            t = self.tokens[i]
            if t.type == TK_OP:
                if t.value in ("(", "[", "{"):
                    depth += 1
                elif t.value in (")", "]", "}"):
                    depth -= 1
                    if depth == 0:
                        after = self.tokens[i + 1] if i + 1 < num_tokens else t
                        return after.type == TK_OP and after.value == "=>"
            elif t.type == TK_EOF:
                return False
            i += 1
        return False

    def parse_arrow(self, no_in: bool) -> ArrowFunctionExpression:
        """Arrow = ( Ident | Params ) '=>' ( Block | Assign )"""
        pos = self._pos()
        if self.at_type(TK_IDENT):
            params = [self.parse_binding_ident()]
        else:
            params = self.parse_params()
        if self.current().newline_before:
            raise self.error("illegal newline before '=>'")
        self.expect("=>")
        if self.at("{"):
            return ArrowFunctionExpression(pos, params, self.parse_block())
        return ArrowFunctionExpression(pos, params, self.parse_assign(no_in))

    def parse_conditional(self, no_in: bool) -> Expression:
        """Conditional = Binary ( '?' Assign ':' Assign )?"""
        test = self.parse_binary(0, no_in)
        if not self.at("?"):
            return test
        self.advance()
        consequent = self.parse_assign()
        self.expect(":")
        alternate = self.parse_assign(no_in)
        return ConditionalExpression(test.pos, test, consequent, alternate)

    def parse_binary(self, min_prec: int, no_in: bool) -> Expression:
        """Binary = Unary ( BinOp Binary )*, climbing BINARY_PRECEDENCE."""
        left = self.parse_unary()
        while True:
            tok = self.current()
            op = tok.value
            if tok.type == TK_STRING or tok.type == TK_IDENT:
                break
            if op not in BINARY_PRECEDENCE:
                break
            if op == "in" and no_in:
                break
            prec = BINARY_PRECEDENCE[op]
            if prec < min_prec:
                break
            self.advance()
            if op == "**":
                right = self.parse_binary(prec, no_in)
            else:
                right = self.parse_binary(prec + 1, no_in)
            if op in LOGICAL_OPS:
                left = LogicalExpression(left.pos, op, left, right)
            else:
                left = BinaryExpression(left.pos, op, left, right)
        return left

    def parse_unary(self) -> Expression:
        """Unary = ( UnaryOp | '++' | '--' ) Unary | Postfix"""
        tok = self.current()
        if (tok.type == TK_OP and tok.value in UNARY_OPS) or tok.type in UNARY_KEYWORDS:
            pos = self._pos()
            op = self.advance().value
            return UnaryExpression(pos, op, self.parse_unary())
        if tok.type == TK_OP and (tok.value == "++" or tok.value == "--"):
            pos = self._pos()
            op = self.advance().value
            start = self.current()
            argument = self.parse_unary()
            self._check_update_target(argument, start)
            return UpdateExpression(pos, op, True, argument)
        return self.parse_postfix()

    def parse_postfix(self) -> Expression:
        """Postfix = CallMember ( '++' | '--' )?, with no newline before the operator."""
        start = self.current()
        expr = self.parse_call_member()
        tok = self.current()
        if (
            tok.type == TK_OP
            and (tok.value == "++" or tok.value == "--")
            and not tok.newline_before
        ):
            self._check_update_target(expr, start)
            self.advance()
            return UpdateExpression(expr.pos, tok.value, False, expr)
        return expr

    def _check_update_target(self, expr: Expression, start: Token) -> None:
        if not isinstance(expr, (Identifier, MemberExpression)):
            raise ParseError(
                "invalid update expression target", start.line, start.col
            )

    def parse_call_member(self) -> Expression:
        """CallMember = ( New | Primary ) ( '.' Name | '[' Expr ']' | Args )*"""
        if self.at("new"):
            expr = self.parse_new()
        else:
            expr = self.parse_primary()
        return self.parse_suffixes(expr, True)

    def parse_new(self) -> Expression:
        """New = 'new' ( New | Primary ) ( '.' Name | '[' Expr ']' )* Args?"""
        pos = self._pos()
        self.expect("new")
        if self.at("."):
            raise self.error("new.target is not supported")
        if self.at("new"):
            callee = self.parse_new()
        else:
            callee = self.parse_primary()
        callee = self.parse_suffixes(callee, False)
        args: list[Expression | SpreadElement] = []
        if self.at("("):
            args = self.parse_arguments()
        return NewExpression(pos, callee, args)

    def parse_suffixes(self, expr: Expression, allow_call: bool) -> Expression:
        while True:
            if self.at("."):
                self.advance()
                tok = self.current()
                if tok.type != TK_IDENT and tok.type not in KEYWORDS:
                    raise self.error("expected property name after '.'")
                self.advance()
                prop = Identifier(Pos(tok.line, tok.col), tok.value)
                expr = MemberExpression(expr.pos, expr, prop, False)
            elif self.at("["):
                self.advance()
                index = self.parse_expression()
                self.expect("]")
                expr = MemberExpression(expr.pos, expr, index, True)
            elif allow_call and self.at("("):
                args = self.parse_arguments()
                expr = CallExpression(expr.pos, expr, args)
            else:
                break
        return expr

    def parse_arguments(self) -> list[Expression | SpreadElement]:
        """Args = '(' ( Arg ( ',' Arg )* ','? )? ')'"""
        self.expect("(")
        args: list[Expression | SpreadElement] = []
        while not self.at(")"):
            args.append(self.parse_element())
            if not self.at(")"):
                self.expect(",")
        self.expect(")")
        return args

    def parse_element(self) -> Expression | SpreadElement:
        if self.at("..."):
            pos = self._pos()
            self.advance()
            return SpreadElement(pos, self.parse_assign())
        return self.parse_assign()

    def parse_primary(self) -> Expression:
        tok = self.current()
        pos = self._pos()
        if tok.type == TK_NUMBER:
            value = self._number_value(tok)
            self.advance()
            return NumericLiteral(pos, value, tok.value)
        if tok.type == TK_STRING:
            self.advance()
            return StringLiteral(pos, tok.value)
        if tok.type == TK_IDENT:
            if tok.value in UNSUPPORTED_KEYWORDS:
                raise self.error("unsupported syntax: '" + tok.value + "'")
            self.advance()
            return Identifier(pos, tok.value)
        if self.at("true") or self.at("false"):
            self.advance()
            return BooleanLiteral(pos, tok.value == "true")
        if self.at("null"):
            self.advance()
            return NullLiteral(pos)
        if self.at("this"):
            self.advance()
            return ThisExpression(pos)
        if self.at("function"):
            fn = self.parse_function(True)
            assert isinstance(fn, FunctionExpression)
            return fn
        if self.at("("):
            self.advance()
            expr = self.parse_expression()
            self.expect(")")
            return expr
        if self.at("["):
            return self.parse_array()
        if self.at("{"):
            return self.parse_object()
        if self.at("/") or self.at("/="):
            raise self.error("regular expression literals are not supported")
        raise self.error("unexpected " + _describe(tok))

    def _number_value(self, tok: Token) -> float:
        raw = tok.value
        if raw[:2] == "0x" or raw[:2] == "0X":
            return float(int(raw[2:], 16))
        if len(raw) > 1 and raw[0] == "0" and raw[1].isdigit():
            raise self.error("legacy octal literals are not supported")
        return float(raw)

    def parse_array(self) -> ArrayExpression:
        """Array = '[' ( Element | <hole> ) ( ',' ( Element | <hole> ) )* ']'"""
        pos = self._pos()
        self.expect("[")
        elements: list[Expression | SpreadElement | None] = []
        while not self.at("]"):
            if self.at(","):
                self.advance()
                elements.append(None)
                continue
            elements.append(self.parse_element())
            if not self.at("]"):
                self.expect(",")
        self.expect("]")
        return ArrayExpression(pos, elements)

    def parse_object(self) -> ObjectExpression:
        """Object = '{' ( Prop ( ',' Prop )* ','? )? '}'"""
        pos = self._pos()
        self.expect("{")
        properties: list[Property | SpreadElement] = []
        while not self.at("}"):
            properties.append(self.parse_property())
            if not self.at("}"):
                self.expect(",")
        self.expect("}")
        return ObjectExpression(pos, properties)

    def parse_property(self) -> Property | SpreadElement:
        """Prop = '...' Assign | Key ':' Assign | Key Params Block | Ident"""
        pos = self._pos()
        if self.at("..."):
            self.advance()
            return SpreadElement(pos, self.parse_assign())
        tok = self.current()
        if tok.type == TK_IDENT and tok.value in ("get", "set", "async"):
            nxt = self.peek(1)
            if not (nxt.type == TK_OP and nxt.value in (":", ",", "(", "}", "=")):
                if tok.value == "async":
                    raise self.error("async methods are not supported")
                raise self.error("getters and setters are not supported")
        if self.at("*"):
            raise self.error("generator methods are not supported")
        computed = False
        key: Expression
        if self.at("["):
            self.advance()
            key = self.parse_assign()
            self.expect("]")
            computed = True
        elif tok.type == TK_STRING:
            self.advance()
            key = StringLiteral(pos, tok.value)
        elif tok.type == TK_NUMBER:
            key = NumericLiteral(pos, self._number_value(tok), tok.value)
            self.advance()
        elif tok.type == TK_IDENT or tok.type in KEYWORDS:
            self.advance()
            key = Identifier(pos, tok.value)
        else:
            raise self.error("expected property name, got " + _describe(tok))
        if self.at(":"):
            self.advance()
            return Property(pos, key, self.parse_assign(), computed)
        if self.at("("):
            params = self.parse_params()
            body = self.parse_block()
            value = FunctionExpression(pos, None, params, body)
            return Property(pos, key, value, computed, method=True)
        if not computed and tok.type == TK_IDENT:
            if self.at("="):
                raise self.error("destructuring patterns are not supported")
            if tok.value in UNSUPPORTED_KEYWORDS:
                raise ParseError(
                    "unsupported syntax: '" + tok.value + "'", tok.line, tok.col
                )
            value_ident = Identifier(pos, tok.value)
            return Property(pos, key, value_ident, False, shorthand=True)
        raise self.error("expected ':' after property name")
