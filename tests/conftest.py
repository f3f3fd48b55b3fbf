# tests/conftest.py
from pathlib import Path

import pytest


@pytest.fixture
def make_tree(tmp_path):
    """Create files below a directory from a {relative name: content} mapping."""

    def _make_tree(files: dict, root: Path | None = None) -> Path:
        root = root or tmp_path / "tree"
        root.mkdir(parents=True, exist_ok=True)
        for name, content in files.items():
            path = root / name
            path.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, str):
                content = content.encode("utf-8")
            path.write_bytes(content)
        return root

    return _make_tree
