from __future__ import annotations

import os
import sys
from pathlib import Path

import pytest


def pytest_configure(config) -> None:
    """Ensure the repository root is on sys.path.

    pytest may pick `pooledbewley/` as its rootdir when invoked from inside
    the package. In that case, importing the top-level package
    `pooledbewley` fails unless the parent directory is on `sys.path`.
    """

    repo_root = Path(__file__).resolve().parents[2]
    repo_root_str = str(repo_root)
    if repo_root_str not in sys.path:
        sys.path.insert(0, repo_root_str)
    config.addinivalue_line("markers", "slow: long-running Monte Carlo checks")


def pytest_collection_modifyitems(config, items) -> None:
    """Skip `slow` tests unless POOLEDBEWLEY_RUNSLOW is set."""
    if os.environ.get("POOLEDBEWLEY_RUNSLOW"):
        return
    skip_slow = pytest.mark.skip(reason="set POOLEDBEWLEY_RUNSLOW=1 to run")
    for item in items:
        if "slow" in item.keywords:
            item.add_marker(skip_slow)
