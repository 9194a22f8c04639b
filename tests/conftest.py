"""Pytest configuration helpers."""

from __future__ import annotations

import os
import sys
import tempfile
from pathlib import Path


def _ensure_repo_on_path() -> None:
    """Allow tests to import from repo modules without setting PYTHONPATH."""
    repo_root = Path(__file__).resolve().parents[1]
    path_str = str(repo_root)
    if path_str not in sys.path:
        sys.path.insert(0, path_str)


def _isolate_data_dir() -> None:
    """Keep the default config away from the real ~/.deafield directory."""
    os.environ.setdefault("DEAFIELD_DATA_DIR", tempfile.mkdtemp(prefix="deafield-tests-"))


_ensure_repo_on_path()
_isolate_data_dir()
