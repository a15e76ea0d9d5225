"""Pytest-based parser and emitter tests.

Test cases live in 02_parse/*.tests files. Format:

    === test name
    source code here
    ---
    expected emitted source, or `error: <message substring>`
    ---
"""

import signal
from pathlib import Path

import pytest

from condense.js import ParseError, TokenizeError, emit, parse

PARSE_TIMEOUT = 5


def _timeout_handler(signum, frame):
    raise TimeoutError("parse() timed out")


signal.signal(signal.SIGALRM, _timeout_handler)

PARSE_DIR = Path(__file__).parent / "02_parse"


def parse_test_file(path: Path) -> list[tuple[str, str, str]]:
    """Parse .tests file into (name, input, expected) tuples."""
    lines = path.read_text().split("\n")
    result: list[tuple[str, str, str]] = []
    i = 0
    while i < len(lines):
        line = lines[i]
        if line.startswith("=== "):
            test_name = line[4:].strip()
            i += 1
            input_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                input_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            expected_lines: list[str] = []
            while i < len(lines) and not lines[i].startswith("---"):
                expected_lines.append(lines[i])
                i += 1
            if i < len(lines) and lines[i] == "---":
                i += 1
            test_input = "\n".join(input_lines)
            expected = "\n".join(expected_lines).strip()
            result.append((test_name, test_input, expected))
        else:
            i += 1
    return result


def discover_parse_tests() -> list[tuple[str, str, str]]:
    """Find all parse tests, returns (test_id, input, expected)."""
    results = []
    for test_file in sorted(PARSE_DIR.glob("*.tests")):
        for name, input_code, expected in parse_test_file(test_file):
            results.append((f"{test_file.stem}/{name}", input_code, expected))
    return results


def pytest_generate_tests(metafunc):
    """Parametrize tests over parse test files."""
    if "parse_input" in metafunc.fixturenames:
        params = [
            pytest.param(input_code, expected, id=test_id)
            for test_id, input_code, expected in discover_parse_tests()
        ]
        metafunc.parametrize("parse_input,parse_expected", params)


def test_parse(parse_input: str, parse_expected: str):
    """Verify the parser round-trips through the emitter or reports the expected error."""
    try:
        signal.alarm(PARSE_TIMEOUT)
        program = parse(parse_input)
        output = emit(program).strip()
        parse_error = None
    except (ParseError, TokenizeError) as e:
        output = None
        parse_error = e
    finally:
        signal.alarm(0)

    if parse_expected.startswith("error:"):
        expected_msg = parse_expected[6:].strip()
        if parse_error is None:
            pytest.fail(f"Expected error containing '{expected_msg}', got:\n{output}")
        assert expected_msg in str(parse_error)
        return
    if parse_error is not None:
        pytest.fail(f"Expected success, got parse error: {parse_error}")
    assert output == parse_expected


def test_emit_is_stable():
    """Emitting, reparsing and emitting again gives the same text."""
    source = """
    var o = {a: 1, "b-c": [1, , 3], [k]: function () { return this; }};
    for (var i = 0, n = xs.length; i < n; i++) if (xs[i]) continue;
    label = a ? b : c, d = (e, f);
    """
    first = emit(parse(source))
    assert emit(parse(first)) == first


def test_positions_recorded():
    program = parse("var a = 1;\n  foo(a);")
    assert (program.body[0].pos.line, program.body[0].pos.col) == (1, 1)
    assert (program.body[1].pos.line, program.body[1].pos.col) == (2, 3)


def test_error_carries_location():
    with pytest.raises(ParseError) as exc_info:
        parse("var a = 1;\nvar = 2;")
    assert exc_info.value.line == 2
    assert exc_info.value.col == 5
    assert str(exc_info.value).endswith("at line 2 col 5")


def test_tokenize_error_carries_location():
    with pytest.raises(TokenizeError) as exc_info:
        parse('var s = "abc')
    assert exc_info.value.line == 1
    assert exc_info.value.col == 9
