"""Command-line entry point."""

from __future__ import annotations

import json
import logging
import sys

from .js import ParseError, TokenizeError, emit, parse
from .js.ast import to_dict as program_to_dict
from .middleend.collapse import collapse_consecutive_defs
from .middleend.collapsers import COLLAPSERS, Collapser, select_collapsers
from .middleend.scope import analyze_scope

LOG = logging.getLogger(__name__)

PHASES: list[str] = ["parse", "scope"]

USAGE: str = """\
condense [OPTIONS] [INPUT] [-o OUTPUT]

Collapse declare-then-populate statements into the declaration's initializer.

Options:
  --stop-at PHASE       Stop after phase and print it as JSON: parse, scope
  --collapsers LIST     Comma-separated strategies to run, in order
                        (default: object,array,set)
  -v, --verbose         Log each collapse to stderr
  -o, --output FILE     Write output to FILE instead of stdout
  -h, --help            Show this help message
"""


def _comments(text: str) -> list[str]:
    """Bodies of the // and /* */ comments in `text`, skipping string literals."""
    comments: list[str] = []
    i = 0
    n = len(text)
    while i < n:
        c = text[i]
        if c == '"' or c == "'":
            i += 1
            while i < n and text[i] != c and text[i] != "\n":
                if text[i] == "\\":
                    i += 1
                i += 1
            i += 1
        elif text.startswith("//", i):
            end = text.find("\n", i)
            if end == -1:
                end = n
            comments.append(text[i + 2 : end])
            i = end
        elif text.startswith("/*", i):
            end = text.find("*/", i + 2)
            if end == -1:
                end = n
            comments.append(text[i + 2 : end])
            i = end + 2
        else:
            i += 1
    return comments


def should_skip_file(source: str) -> bool:
    """Check if a comment in the first 5 lines holds the condense: skip directive."""
    head = "\n".join(source.split("\n", 5)[:5])
    for comment in _comments(head):
        if "condense: skip" in comment:
            return True
    return False


def read_source(input_file: str | None) -> tuple[str, int]:
    """Read source from file or stdin. Returns (source, exit_code) where exit_code 0 means OK."""
    if input_file is not None:
        try:
            with open(input_file, "rb") as f:
                raw = f.read()
        except OSError:
            print("error: cannot open '" + input_file + "'", file=sys.stderr)
            return ("", 1)
    else:
        raw = sys.stdin.buffer.read()
    try:
        source = raw.decode("utf-8")
    except ValueError:
        print("error: invalid utf-8 in input", file=sys.stderr)
        return ("", 1)
    return (source, 0)


def write_output(output: str, output_file: str | None) -> int:
    """Write output to file or stdout. Returns 0 on success, 1 on error."""
    if output_file is not None:
        try:
            with open(output_file, "w", encoding="utf-8") as f:
                f.write(output)
        except OSError:
            print("error: cannot write '" + output_file + "'", file=sys.stderr)
            return 1
        return 0
    sys.stdout.write(output)
    return 0


def to_json(obj: object) -> str:
    """Serialize object to pretty-printed JSON."""
    return json.dumps(obj, indent=2, ensure_ascii=False) + "\n"


def run_pipeline(
    source: str, stop_at: str | None, collapsers: list[Collapser]
) -> tuple[int, str]:
    """Run parse, scope analysis and the collapse pass. Returns (exit_code, output)."""
    if stop_at is None and should_skip_file(source):
        LOG.info("skip directive found, passing input through")
        return (0, source)
    try:
        program = parse(source)
    except (TokenizeError, ParseError) as e:
        print(
            "error:" + str(e.line) + ":" + str(e.col) + ": " + e.msg, file=sys.stderr
        )
        return (1, "")
    if stop_at == "parse":
        return (0, to_json(program_to_dict(program)))
    info = analyze_scope(program)
    if stop_at == "scope":
        return (0, to_json(info.to_dict()))
    removed = collapse_consecutive_defs(program, info, collapsers)
    LOG.info("removed %d statement(s)", removed)
    return (0, emit(program))


def parse_args(
    argv: list[str],
) -> tuple[str | None, list[Collapser], bool, str | None, str | None]:
    """Parse command-line arguments. Returns (stop_at, collapsers, verbose, input_file, output_file)."""
    stop_at: str | None = None
    collapsers: list[Collapser] = COLLAPSERS
    verbose = False
    input_file: str | None = None
    output_file: str | None = None
    i = 0
    while i < len(argv):
        arg = argv[i]
        if arg == "--help" or arg == "-h":
            print(USAGE, end="")
            sys.exit(0)
        elif arg == "--stop-at":
            if i + 1 >= len(argv):
                print("error: --stop-at requires an argument", file=sys.stderr)
                sys.exit(2)
            stop_at = argv[i + 1]
            i += 2
        elif arg == "--collapsers":
            if i + 1 >= len(argv):
                print("error: --collapsers requires an argument", file=sys.stderr)
                sys.exit(2)
            try:
                collapsers = select_collapsers(argv[i + 1].split(","))
            except ValueError as e:
                print("error: " + str(e), file=sys.stderr)
                sys.exit(2)
            i += 2
        elif arg == "-o" or arg == "--output":
            if i + 1 >= len(argv):
                print("error: " + arg + " requires an argument", file=sys.stderr)
                sys.exit(2)
            output_file = argv[i + 1]
            i += 2
        elif arg == "-v" or arg == "--verbose":
            verbose = True
            i += 1
        elif arg.startswith("-") and arg != "-":
            print("error: unknown flag '" + arg + "'", file=sys.stderr)
            sys.exit(2)
        else:
            if input_file is not None:
                print("error: unexpected argument '" + arg + "'", file=sys.stderr)
                sys.exit(2)
            input_file = None if arg == "-" else arg
            i += 1
    if stop_at is not None and stop_at not in PHASES:
        print("error: unknown phase '" + stop_at + "'", file=sys.stderr)
        sys.exit(2)
    return (stop_at, collapsers, verbose, input_file, output_file)


def main(argv: list[str] | None = None) -> int:
    """Main entry point."""
    if argv is None:
        argv = sys.argv[1:]
    stop_at, collapsers, verbose, input_file, output_file = parse_args(argv)
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(levelname)s: %(message)s",
    )
    source, err = read_source(input_file)
    if err != 0:
        return err
    if len(source) == 0:
        print("error: no input provided", file=sys.stderr)
        return 2
    exit_code, output = run_pipeline(source, stop_at, collapsers)
    if exit_code != 0:
        return exit_code
    if len(output) > 0:
        return write_output(output, output_file)
    return 0


if __name__ == "__main__":
    sys.exit(main())
