"""CLI tests for the condense entry point.

Test cases live in 01_cli/*.tests files. Format:

    === test name
    args: --stop-at parse
    source code here
    (stdin for the optimizer)
    ---
    exit: 0
    stderr: error: some message
    stdout-contains: "keyword"
    stdout-empty: true
    stderr-empty: true
    ---

Special directives in the input section:
    args:           CLI arguments (first line, required)
    stdin-bytes:    hex-encoded raw bytes instead of text (e.g. "ff fe")

Assertion directives in the expected section:
    exit:             exact exit code
    stderr:           exact stderr content (trailing newline stripped)
    stderr-contains:  stderr must contain substring
    stderr-empty:     stderr must be empty
    stdout:           exact stdout content (trailing newline stripped)
    stdout-contains:  stdout must contain substring
    stdout-empty:     stdout must be empty
"""

import json
import subprocess
import sys
from pathlib import Path

import pytest

from condense.cli import main, should_skip_file

CLI_DIR = Path(__file__).parent / "01_cli"
REPO_DIR = Path(__file__).parent.parent


def parse_cli_test_file(path: Path) -> list[tuple[str, dict]]:
    """Parse a .tests file into (name, spec) tuples.

    Each spec dict has keys: args, stdin, stdin_bytes, assertions.
    """
    lines = path.read_text().split("\n")
    result: list[tuple[str, dict]] = []
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
            result.append((test_name, _parse_spec(input_lines, expected_lines)))
        else:
            i += 1
    return result


def _parse_spec(input_lines: list[str], expected_lines: list[str]) -> dict:
    """Parse input + expected lines into a test spec dict."""
    spec: dict = {
        "args": [],
        "stdin": None,
        "stdin_bytes": None,
        "assertions": [],
    }
    body_start = 0
    if input_lines and input_lines[0].startswith("args:"):
        args_str = input_lines[0][5:].strip()
        spec["args"] = args_str.split() if args_str else []
        body_start = 1

    remaining = input_lines[body_start:]
    if remaining and remaining[0].startswith("stdin-bytes:"):
        hex_str = remaining[0][len("stdin-bytes:") :].strip()
        spec["stdin_bytes"] = bytes.fromhex(hex_str)
    else:
        spec["stdin"] = "\n".join(remaining)

    for line in expected_lines:
        line = line.strip()
        if not line:
            continue
        if line.startswith("exit:"):
            spec["assertions"].append(("exit", int(line[5:].strip())))
        elif line.startswith("stderr:"):
            spec["assertions"].append(("stderr", line[7:].strip()))
        elif line.startswith("stderr-contains:"):
            spec["assertions"].append(("stderr-contains", line[16:].strip()))
        elif line.startswith("stderr-empty:"):
            spec["assertions"].append(("stderr-empty", None))
        elif line.startswith("stdout:"):
            spec["assertions"].append(("stdout", line[7:].strip()))
        elif line.startswith("stdout-contains:"):
            spec["assertions"].append(("stdout-contains", line[16:].strip()))
        elif line.startswith("stdout-empty:"):
            spec["assertions"].append(("stdout-empty", None))
    return spec


def discover_cli_tests() -> list[tuple[str, dict]]:
    """Find all CLI tests across .tests files."""
    results = []
    for test_file in sorted(CLI_DIR.glob("*.tests")):
        for name, spec in parse_cli_test_file(test_file):
            results.append((f"{test_file.stem}/{name}", spec))
    return results


def run_cli(args: list[str], stdin_data: bytes) -> subprocess.CompletedProcess[bytes]:
    """Run the condense CLI as a module."""
    cmd = [sys.executable, "-m", "condense", *args]
    return subprocess.run(cmd, input=stdin_data, capture_output=True, cwd=REPO_DIR)


def check_assertions(
    result: subprocess.CompletedProcess[bytes], assertions: list[tuple]
) -> None:
    """Check all assertions against a CLI result."""
    for kind, value in assertions:
        if kind == "exit":
            assert result.returncode == value, (
                f"expected exit {value}, got {result.returncode}"
                f"\nstderr: {result.stderr.decode(errors='replace')}"
            )
        elif kind == "stderr":
            actual = result.stderr.decode(errors="replace").rstrip("\n")
            assert actual == value, f"expected stderr {value!r}, got {actual!r}"
        elif kind == "stderr-contains":
            actual = result.stderr.decode(errors="replace")
            assert value in actual, (
                f"expected stderr to contain {value!r}, got {actual!r}"
            )
        elif kind == "stderr-empty":
            assert result.stderr == b"", f"expected empty stderr, got {result.stderr!r}"
        elif kind == "stdout":
            actual = result.stdout.decode(errors="replace").rstrip("\n")
            assert actual == value, f"expected stdout {value!r}, got {actual!r}"
        elif kind == "stdout-contains":
            actual = result.stdout.decode(errors="replace")
            assert value in actual, (
                f"expected stdout to contain {value!r}, got {actual!r}"
            )
        elif kind == "stdout-empty":
            assert result.stdout == b"", (
                f"expected empty stdout, got {result.stdout[:200]!r}"
            )


def pytest_generate_tests(metafunc):
    """Parametrize test_cli over all .tests files."""
    if "cli_spec" in metafunc.fixturenames:
        params = [pytest.param(spec, id=test_id) for test_id, spec in discover_cli_tests()]
        metafunc.parametrize("cli_spec", params)


def test_cli(cli_spec: dict) -> None:
    """Run a single CLI test case from .tests file."""
    if cli_spec["stdin_bytes"] is not None:
        stdin_data = cli_spec["stdin_bytes"]
    else:
        stdin_data = (cli_spec["stdin"] or "").encode()
    result = run_cli(cli_spec["args"], stdin_data)
    check_assertions(result, cli_spec["assertions"])


def test_input_and_output_files(tmp_path: Path) -> None:
    src = tmp_path / "in.js"
    out = tmp_path / "out.js"
    src.write_text("var a = []; a.push(1);\n")
    result = run_cli([str(src), "-o", str(out)], b"")
    assert result.returncode == 0, result.stderr
    assert result.stdout == b""
    assert out.read_text() == "var a = [1];\n"


def test_missing_input_file(tmp_path: Path) -> None:
    result = run_cli([str(tmp_path / "nope.js")], b"")
    assert result.returncode == 1
    assert b"cannot open" in result.stderr


def test_stop_at_parse_is_json() -> None:
    result = run_cli(["--stop-at", "parse"], b"var o = {};")
    assert result.returncode == 0
    tree = json.loads(result.stdout)
    assert tree["type"] == "Program"
    decl = tree["body"][0]
    assert decl["type"] == "VariableDeclaration"
    assert decl["declarations"][0]["id"]["name"] == "o"


def test_stop_at_scope_lists_bindings() -> None:
    result = run_cli(["--stop-at", "scope"], b"var o = {}; o.a = f(o);")
    assert result.returncode == 0
    table = json.loads(result.stdout)
    program_scope = table["scopes"][0]
    assert program_scope["kind"] == "program"
    assert program_scope["bindings"]["o"]["kind"] == "var"
    assert len(program_scope["bindings"]["o"]["references"]) == 2
    assert "f" in table["globals"]


def test_main_in_process(tmp_path: Path, capsys) -> None:
    src = tmp_path / "in.js"
    src.write_text("var s = new Set(); s.add(1);")
    assert main([str(src)]) == 0
    assert capsys.readouterr().out == "var s = new Set([1]);\n"


def test_should_skip_file() -> None:
    assert should_skip_file("// condense: skip\nvar o = {};")
    assert should_skip_file("\n\n\n\n/* condense: skip */")
    assert not should_skip_file("\n\n\n\n\n// condense: skip")


def test_skip_directive_only_in_comments() -> None:
    assert not should_skip_file('var s = "condense: skip";')
    assert not should_skip_file("var s = '// condense: skip';")
    assert not should_skip_file('var s = "a\\"/* condense: skip */";')
    assert should_skip_file('var s = "//"; // condense: skip')
    assert should_skip_file("var o = {}; /* condense: skip */ o.a = 1;")
