"""condense — collapse declare-then-populate JavaScript into literals."""

from __future__ import annotations

from .js import ParseError as ParseError, TokenizeError as TokenizeError
from .js import emit as emit, parse as parse
from .middleend import optimize
from .middleend.collapsers import Collapser, select_collapsers
from .middleend.scope import ScopeError as ScopeError


def optimize_source(source: str, collapsers: list[str] | None = None) -> str:
    """Parse `source`, collapse consecutive definitions, and emit the result.

    `collapsers` names the strategies to run, in order; all of them by default.
    """
    program = parse(source)
    selected: list[Collapser] | None = None
    if collapsers is not None:
        selected = select_collapsers(collapsers)
    optimize(program, selected)
    return emit(program)
