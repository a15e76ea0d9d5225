"""JavaScript-subset frontend — public API."""

from __future__ import annotations

from .ast import Program
from .emit import to_source
from .parse import ParseError as ParseError, Parser
from .tokens import TokenizeError as TokenizeError, tokenize


def parse(source: str) -> Program:
    """Parse JavaScript source into a Program AST."""
    tokens = tokenize(source)
    parser = Parser(tokens)
    return parser.parse_program()


def emit(program: Program) -> str:
    """Emit a Program AST back to JavaScript source."""
    return to_source(program)
