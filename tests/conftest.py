import os
import sys
from pathlib import Path
from typing import Dict, Union

import pytest


def _make_tree(root: Path, files: Dict[str, Union[str, bytes]]) -> Path:
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if isinstance(content, bytes):
            path.write_bytes(content)
        else:
            path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_tree(tmp_path):
    """Build a file tree under tmp_path/"tree" from a {relative path: content} dict."""
    root = tmp_path / "tree"
    root.mkdir()

    def _build(files):
        return _make_tree(root, files)

    return _build


needs_symlinks = pytest.mark.skipif(
    sys.platform == "win32", reason="symlinks need privileges on Windows"
)

needs_unprivileged = pytest.mark.skipif(
    not hasattr(os, "geteuid") or os.geteuid() == 0,
    reason="permission bits are ignored for root",
)
