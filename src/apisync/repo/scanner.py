from __future__ import annotations

import fnmatch
import logging
import os
from pathlib import Path
from typing import Optional

from apisync.config.settings import ScannerSettings
from apisync.domain.models import ToolInventoryEntry
from apisync.extractors.tools.chunker import extract_tools_from_file
from apisync.repo.ignore import is_excluded_file, should_ignore_dir

logger = logging.getLogger(__name__)


def scan_tool_files(tools_dir: Path, settings: Optional[ScannerSettings] = None) -> list[str]:
    """
    Return repo-relative (POSIX) paths of tool source files under tools_dir.
    Sorted, so inventories come out in a stable order.
    """
    s = settings or ScannerSettings()
    tools_dir = tools_dir.resolve()
    out: list[str] = []
    for root, dirs, files in os.walk(tools_dir):
        root_p = Path(root)

        # prune ignored dirs
        dirs[:] = [d for d in dirs if not should_ignore_dir(root_p / d)]

        for f in files:
            if not fnmatch.fnmatch(f, s.file_glob):
                continue
            rel = (root_p / f).relative_to(tools_dir).as_posix()
            if is_excluded_file(rel, s.exclude_files):
                continue
            out.append(rel)
    return sorted(out)


def build_inventory(tools_dir: Path, settings: Optional[ScannerSettings] = None) -> list[ToolInventoryEntry]:
    """Extract every tool under tools_dir. Names stay unique: the first definition wins."""
    s = settings or ScannerSettings()
    tools_dir = tools_dir.resolve()
    files = scan_tool_files(tools_dir, s)
    logger.info("scanning %d tool files in %s", len(files), tools_dir)

    inventory: list[ToolInventoryEntry] = []
    seen: dict[str, str] = {}
    for rel in files:
        tools = extract_tools_from_file(tools_dir / rel, file=rel, settings=s)
        logger.info("  %s: %d tools", rel, len(tools))
        for tool in tools:
            if tool.name in seen:
                logger.warning(
                    "duplicate tool name %r in %s (first defined in %s); keeping the first",
                    tool.name,
                    rel,
                    seen[tool.name],
                )
                continue
            seen[tool.name] = rel
            inventory.append(tool)

    logger.info("total: %d tools extracted", len(inventory))
    return inventory
