from __future__ import annotations

from pathlib import Path
from typing import Iterable

DEFAULT_IGNORED_DIRS = {
    ".git",
    "node_modules",
    "dist",
    "build",
    "coverage",
    "__tests__",
    "__pycache__",
    ".apisync",
}


def should_ignore_dir(dir_path: Path) -> bool:
    return dir_path.name in DEFAULT_IGNORED_DIRS


def is_excluded_file(rel_path: str, excluded: Iterable[str]) -> bool:
    """Excluded entries match either the relative path or the bare file name."""
    name = rel_path.rsplit("/", 1)[-1]
    return any(e == rel_path or e == name for e in excluded)
