"""Shared fixtures for repotopo tests."""

from collections.abc import Callable
from pathlib import Path

import pytest

TreeWriter = Callable[[dict[str, str]], Path]


def write_tree(root: Path, files: dict[str, str]) -> Path:
    """Create files (and parent directories) under root from {path: content}."""
    for relative, content in files.items():
        path = root / relative
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content)
    return root


@pytest.fixture
def project(tmp_path: Path) -> Path:
    """An empty project root directory."""
    root = tmp_path / "project"
    root.mkdir()
    return root


@pytest.fixture
def make_tree(project: Path) -> TreeWriter:
    """Write files into the project root and return the root."""

    def _make(files: dict[str, str]) -> Path:
        return write_tree(project, files)

    return _make
