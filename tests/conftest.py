"""Pytest configuration for the condense test suite."""

import shutil
import sys
from pathlib import Path

import pytest

# Add the repository root to path for condense imports
sys.path.insert(0, str(Path(__file__).parent.parent))


def pytest_addoption(parser):
    """Add --node option."""
    parser.addoption(
        "--node",
        action="store",
        default="node",
        help="Node.js executable used by the semantics tests",
    )


@pytest.fixture(scope="session")
def node_bin(request) -> str:
    """Path to a Node.js executable; skips the test when none is installed."""
    path = shutil.which(request.config.getoption("node"))
    if path is None:
        pytest.skip("node is not installed")
    return path
