"""Data-driven tests for the collapse pass.

Test cases live in 03_collapse/*.tests files. Format:

    === test name
    collapsers: array,set      (optional first line)
    source code here
    ---
    expected optimized source
    ---
"""

from pathlib import Path

import pytest

from condense import optimize_source

COLLAPSE_DIR = Path(__file__).parent / "03_collapse"


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


def discover_collapse_tests() -> list[tuple[str, str, str]]:
    """Find all collapse tests, returns (test_id, input, expected)."""
    results = []
    for test_file in sorted(COLLAPSE_DIR.glob("*.tests")):
        for name, input_code, expected in parse_test_file(test_file):
            results.append((f"{test_file.stem}/{name}", input_code, expected))
    return results


def split_directives(source: str) -> tuple[list[str] | None, str]:
    """Strip an optional `collapsers:` line. Returns (collapser names, source)."""
    lines = source.split("\n")
    if lines and lines[0].startswith("collapsers:"):
        names = [n.strip() for n in lines[0][len("collapsers:") :].split(",")]
        return names, "\n".join(lines[1:])
    return None, source


def pytest_generate_tests(metafunc):
    """Parametrize tests over collapse test files."""
    if "collapse_input" in metafunc.fixturenames:
        params = [
            pytest.param(input_code, expected, id=test_id)
            for test_id, input_code, expected in discover_collapse_tests()
        ]
        metafunc.parametrize("collapse_input,collapse_expected", params)


def test_collapse(collapse_input: str, collapse_expected: str):
    """Verify the optimized output matches the expected source."""
    collapsers, source = split_directives(collapse_input)
    output = optimize_source(source, collapsers)
    assert output.strip() == collapse_expected


def test_collapse_is_idempotent(collapse_input: str, collapse_expected: str):
    """Optimizing already optimized output changes nothing."""
    collapsers, source = split_directives(collapse_input)
    once = optimize_source(source, collapsers)
    assert optimize_source(once, collapsers) == once
