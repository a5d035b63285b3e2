# tests/conftest.py

"""Shared fixtures for the bolt-search test suite.

Every search test works on a throwaway source tree built under pytest's
tmp_path, so nothing depends on the layout of the machine running the tests.
"""

import pathlib
import textwrap
from typing import Callable, Dict

import pytest

from bolt_search.config import SearchOptions


@pytest.fixture
def make_repo(tmp_path: pathlib.Path) -> Callable[[Dict[str, "str | bytes"]], pathlib.Path]:
    """Builds a source tree from a mapping of relative path to content.

    String contents are dedented and written as UTF-8; bytes are written
    untouched (for binary and undecodable files).

    Returns:
        A factory that writes the files and returns the repository root.
    """

    def _make(files: Dict[str, "str | bytes"]) -> pathlib.Path:
        root = tmp_path / "repo"
        root.mkdir(exist_ok=True)
        for rel_path, content in files.items():
            target = root / rel_path
            target.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                target.write_bytes(content)
            else:
                target.write_text(textwrap.dedent(content), encoding="utf-8")
        return root.resolve()

    return _make


@pytest.fixture
def options() -> SearchOptions:
    """Single-worker options; keeps thread timing out of assertions."""
    return SearchOptions(workers=1)
