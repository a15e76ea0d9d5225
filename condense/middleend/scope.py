"""Scope analysis for the JavaScript AST.

Builds the scope tree, the binding table, and the parent map that the
optimization passes query. Declarations are hoisted on scope entry, so every
reference resolves against the complete set of names visible at that point:
`var` and top-level function declarations bind in the nearest function (or
program) scope; `let`, `const` and block-level function declarations bind in
the enclosing block.
"""

from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field

from ..js.ast import (
    ArrowFunctionExpression,
    BlockStatement,
    CatchClause,
    ForInStatement,
    ForOfStatement,
    ForStatement,
    FunctionDeclaration,
    FunctionExpression,
    Identifier,
    MemberExpression,
    Node,
    Program,
    Property,
    Statement,
    VariableDeclaration,
    VariableDeclarator,
    children,
    is_function,
    walk,
)


class ScopeError(Exception):
    """A binding the caller expected to exist is missing."""

    def __init__(self, name: str):
        self.name: str = name
        super().__init__("no binding for '" + name + "'")


# ============================================================
# SCOPES AND BINDINGS
# ============================================================


@dataclass(eq=False)
class Binding:
    """One declared name and every identifier that refers to it."""

    name: str
    kind: str  # var | let | const | function | param | catch | self
    scope: Scope
    node: Identifier
    references: list[Identifier] = field(default_factory=list)


@dataclass(eq=False)
class Scope:
    """A lexical scope owned by a Program, function, block, for-head or catch."""

    kind: str  # program | function | block
    node: Node
    parent: Scope | None
    bindings: dict[str, Binding] = field(default_factory=dict)


class Ancestry:
    """Parent links for every node of a tree."""

    def __init__(self) -> None:
        self._parents: dict[Node, Node] = {}

    def parent_of(self, node: Node) -> Node | None:
        return self._parents.get(node)

    def set_parent(self, node: Node, parent: Node) -> None:
        self._parents[node] = parent

    def ancestors(self, node: Node) -> Iterator[Node]:
        """Yield the parent of `node`, then its parent, up to the root."""
        current = self._parents.get(node)
        while current is not None:
            yield current
            current = self._parents.get(current)

    def adopt(self, node: Node, parent: Node) -> None:
        """Re-link `node` under `parent` and refresh links inside its subtree."""
        self._parents[node] = parent
        for n in walk(node):
            for child in children(n):
                self._parents[child] = n


@dataclass
class ScopeInfo:
    """Result of scope analysis: scopes, bindings, globals and parent links."""

    program_scope: Scope
    scopes: dict[Node, Scope]
    ancestry: Ancestry
    globals: dict[str, list[Identifier]]
    bindings: dict[Identifier, Binding]

    def scope_of(self, node: Node) -> Scope:
        """Scope owned by `node`, or else by its nearest scope-owning ancestor."""
        if node in self.scopes:
            return self.scopes[node]
        for ancestor in self.ancestry.ancestors(node):
            if ancestor in self.scopes:
                return self.scopes[ancestor]
        return self.program_scope

    def binding_for(self, name: str, scope: Scope) -> Binding:
        """Resolve `name` from `scope` outward. Raises ScopeError if unbound."""
        current: Scope | None = scope
        while current is not None:
            if name in current.bindings:
                return current.bindings[name]
            current = current.parent
        raise ScopeError(name)

    def binding_of(self, ident: Identifier) -> Binding | None:
        """Binding a declaring or referencing identifier belongs to, if any."""
        return self.bindings.get(ident)

    def to_dict(self) -> dict[str, object]:
        """Binding table as plain data, one entry per scope in source order."""
        scopes: list[dict[str, object]] = []
        for scope in self.scopes.values():
            bindings: dict[str, object] = {}
            for name, b in scope.bindings.items():
                bindings[name] = {
                    "kind": b.kind,
                    "line": b.node.pos.line,
                    "col": b.node.pos.col,
                    "references": [[r.pos.line, r.pos.col] for r in b.references],
                }
            scopes.append(
                {
                    "kind": scope.kind,
                    "node": type(scope.node).__name__,
                    "line": scope.node.pos.line,
                    "col": scope.node.pos.col,
                    "bindings": bindings,
                }
            )
        globals_: dict[str, object] = {}
        for name, refs in self.globals.items():
            globals_[name] = [[r.pos.line, r.pos.col] for r in refs]
        return {"scopes": scopes, "globals": globals_}


# ============================================================
# ANALYSIS
# ============================================================


def analyze_scope(program: Program) -> ScopeInfo:
    """Resolve every identifier in `program` to its binding."""
    return _ScopeBuilder().run(program)


class _ScopeBuilder:
    def __init__(self) -> None:
        self.scopes: dict[Node, Scope] = {}
        self.ancestry = Ancestry()
        self.globals: dict[str, list[Identifier]] = {}
        self.bindings: dict[Identifier, Binding] = {}

    def run(self, program: Program) -> ScopeInfo:
        scope = self._new_scope("program", program, None)
        self._hoist_vars(program, scope)
        self._declare_lexical(program.body, scope)
        for stmt in program.body:
            self._visit(stmt, program, scope)
        return ScopeInfo(
            program_scope=scope,
            scopes=self.scopes,
            ancestry=self.ancestry,
            globals=self.globals,
            bindings=self.bindings,
        )

    # ── Declarations ────────────────────────────────────────

    def _new_scope(self, kind: str, node: Node, parent: Scope | None) -> Scope:
        scope = Scope(kind, node, parent)
        self.scopes[node] = scope
        return scope

    def _declare(self, scope: Scope, ident: Identifier, kind: str) -> None:
        existing = scope.bindings.get(ident.name)
        if existing is not None and kind in ("var", "function") and existing.kind != "self":
            # var and function redeclarations share one variable.
            if kind == "function":
                existing.kind = "function"
            self.bindings[ident] = existing
            return
        binding = Binding(ident.name, kind, scope, ident)
        scope.bindings[ident.name] = binding
        self.bindings[ident] = binding

    def _hoist_vars(self, node: Node, scope: Scope) -> None:
        """Declare every `var` in `node` that is not inside a nested function."""
        for child in children(node):
            if is_function(child):
                continue
            if isinstance(child, VariableDeclaration) and child.kind == "var":
                for d in child.declarations:
                    self._declare(scope, d.id, "var")
            self._hoist_vars(child, scope)

    def _declare_lexical(self, stmts: list[Statement], scope: Scope) -> None:
        for stmt in stmts:
            if isinstance(stmt, VariableDeclaration) and stmt.kind != "var":
                for d in stmt.declarations:
                    self._declare(scope, d.id, stmt.kind)
            elif isinstance(stmt, FunctionDeclaration):
                self._declare(scope, stmt.id, "function")

    # ── Walk ────────────────────────────────────────────────

    def _visit(self, node: Node, parent: Node, scope: Scope) -> None:
        self.ancestry.set_parent(node, parent)
        if isinstance(node, Identifier):
            self._reference(node, scope)
            return
        if is_function(node):
            self._visit_function(node, scope)
            return
        if isinstance(node, BlockStatement):
            block_scope = self._new_scope("block", node, scope)
            self._declare_lexical(node.body, block_scope)
            for stmt in node.body:
                self._visit(stmt, node, block_scope)
            return
        if isinstance(node, (ForStatement, ForInStatement, ForOfStatement)):
            self._visit_for(node, scope)
            return
        if isinstance(node, CatchClause):
            catch_scope = self._new_scope("block", node, scope)
            if node.param is not None:
                self.ancestry.set_parent(node.param, node)
                self._declare(catch_scope, node.param, "catch")
            self._visit(node.body, node, catch_scope)
            return
        if isinstance(node, VariableDeclarator):
            self.ancestry.set_parent(node.id, node)
            if node.init is not None:
                self._visit(node.init, node, scope)
            return
        if isinstance(node, MemberExpression):
            self._visit(node.object, node, scope)
            if node.computed:
                self._visit(node.property, node, scope)
            else:
                self.ancestry.set_parent(node.property, node)
            return
        if isinstance(node, Property):
            if node.computed:
                self._visit(node.key, node, scope)
            else:
                self.ancestry.set_parent(node.key, node)
            self._visit(node.value, node, scope)
            return
        for child in children(node):
            self._visit(child, node, scope)

    def _visit_function(self, node: Node, scope: Scope) -> None:
        assert isinstance(
            node, (FunctionDeclaration, FunctionExpression, ArrowFunctionExpression)
        )
        fn_scope = self._new_scope("function", node, scope)
        if isinstance(node, (FunctionDeclaration, FunctionExpression)):
            if node.id is not None:
                self.ancestry.set_parent(node.id, node)
                if isinstance(node, FunctionExpression):
                    self._declare(fn_scope, node.id, "self")
        for param in node.params:
            self.ancestry.set_parent(param, node)
            self._declare(fn_scope, param, "param")
        body = node.body
        if isinstance(body, BlockStatement):
            # The function scope owns its body block.
            self.ancestry.set_parent(body, node)
            self._hoist_vars(body, fn_scope)
            self._declare_lexical(body.body, fn_scope)
            for stmt in body.body:
                self._visit(stmt, body, fn_scope)
        else:
            self._visit(body, node, fn_scope)

    def _visit_for(
        self, node: ForStatement | ForInStatement | ForOfStatement, scope: Scope
    ) -> None:
        head = node.init if isinstance(node, ForStatement) else node.left
        inner = scope
        if isinstance(head, VariableDeclaration) and head.kind != "var":
            inner = self._new_scope("block", node, scope)
            for d in head.declarations:
                self._declare(inner, d.id, head.kind)
        for child in children(node):
            self._visit(child, node, inner)

    def _reference(self, ident: Identifier, scope: Scope) -> None:
        current: Scope | None = scope
        while current is not None:
            binding = current.bindings.get(ident.name)
            if binding is not None:
                binding.references.append(ident)
                self.bindings[ident] = binding
                return
            current = current.parent
        self.globals.setdefault(ident.name, []).append(ident)
