"""Analysis and rewriting passes over the JavaScript AST."""

from ..js.ast import Program

from .collapse import collapse_consecutive_defs
from .collapsers import COLLAPSERS, Collapser
from .scope import analyze_scope


def optimize(program: Program, collapsers: list[Collapser] | None = None) -> int:
    """Run scope analysis and the collapse pass, rewriting `program` in place.

    Returns the number of statements removed.
    """
    info = analyze_scope(program)
    return collapse_consecutive_defs(program, info, collapsers)


__all__ = [
    "COLLAPSERS",
    "Collapser",
    "analyze_scope",
    "collapse_consecutive_defs",
    "optimize",
]
