from __future__ import annotations

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Optional

from pydantic import TypeAdapter

from apisync.diff.versions import find_previous_version, version_sort_key
from apisync.domain.models import DriftReport, Snapshot, SyncState, ToolEndpointMap, ToolInventoryEntry

_INVENTORY = TypeAdapter(list[ToolInventoryEntry])
_TOOL_MAP = TypeAdapter(ToolEndpointMap)


def atomic_write_text(path: Path, text: str) -> None:
    """Write via a temp file in the same directory, then rename over ``path``."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=str(path.parent))
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            f.write(text)
        os.replace(tmp, path)
    except BaseException:
        Path(tmp).unlink(missing_ok=True)
        raise


def _dump(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False) + "\n"


class ArtifactStore:
    """Directory-backed store for pipeline artifacts.

    Layout:
    - snapshots/<version>.json, snapshots/CHANGES.md
    - inventory.json, tool-endpoint-map.json (human-reviewed)
    - reports/drift-<version>.json, reports/latest.json
    - sync-state.json
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    @staticmethod
    def default_root(base: Path) -> Path:
        return base / ".apisync"

    # ----------------------------
    # Paths
    # ----------------------------

    @property
    def snapshots_dir(self) -> Path:
        return self.root / "snapshots"

    @property
    def reports_dir(self) -> Path:
        return self.root / "reports"

    @property
    def changelog_path(self) -> Path:
        return self.snapshots_dir / "CHANGES.md"

    @property
    def inventory_path(self) -> Path:
        return self.root / "inventory.json"

    @property
    def tool_map_path(self) -> Path:
        return self.root / "tool-endpoint-map.json"

    @property
    def sync_state_path(self) -> Path:
        return self.root / "sync-state.json"

    @property
    def latest_report_path(self) -> Path:
        return self.reports_dir / "latest.json"

    def snapshot_path(self, version: str) -> Path:
        return self.snapshots_dir / f"{_safe_version(version)}.json"

    def report_path(self, version: str) -> Path:
        return self.reports_dir / f"drift-{_safe_version(version)}.json"

    # ----------------------------
    # Snapshots
    # ----------------------------

    def save_snapshot(self, snapshot: Snapshot) -> Path:
        path = self.snapshot_path(snapshot.version)
        atomic_write_text(path, _dump(snapshot.model_dump(mode="json", by_alias=True)))
        return path

    def load_snapshot(self, version: str) -> Optional[Snapshot]:
        path = self.snapshot_path(version)
        if not path.exists():
            return None
        return Snapshot.model_validate_json(path.read_text(encoding="utf-8"))

    def list_snapshot_versions(self) -> list[str]:
        if not self.snapshots_dir.exists():
            return []
        versions = [p.stem for p in self.snapshots_dir.glob("*.json") if not p.name.startswith(".")]
        return sorted(versions, key=version_sort_key)

    def previous_snapshot_version(self, current: str) -> Optional[str]:
        return find_previous_version(self.list_snapshot_versions(), current)

    def save_changelog(self, text: str) -> Path:
        atomic_write_text(self.changelog_path, text)
        return self.changelog_path

    def load_changelog(self) -> str:
        if not self.changelog_path.exists():
            return ""
        return self.changelog_path.read_text(encoding="utf-8")

    # ----------------------------
    # Inventory / tool map
    # ----------------------------

    def save_inventory(self, inventory: list[ToolInventoryEntry]) -> Path:
        atomic_write_text(self.inventory_path, _dump(_INVENTORY.dump_python(inventory, mode="json", by_alias=True)))
        return self.inventory_path

    def load_inventory(self) -> Optional[list[ToolInventoryEntry]]:
        if not self.inventory_path.exists():
            return None
        return _INVENTORY.validate_json(self.inventory_path.read_text(encoding="utf-8"))

    def save_tool_map(self, mapping: ToolEndpointMap) -> Path:
        atomic_write_text(self.tool_map_path, _dump(_TOOL_MAP.dump_python(mapping, mode="json", by_alias=True)))
        return self.tool_map_path

    def load_tool_map(self) -> Optional[ToolEndpointMap]:
        if not self.tool_map_path.exists():
            return None
        return _TOOL_MAP.validate_json(self.tool_map_path.read_text(encoding="utf-8"))

    # ----------------------------
    # Reports / sync state
    # ----------------------------

    def save_report(self, report: DriftReport) -> Path:
        text = _dump(report.model_dump(mode="json", by_alias=True))
        path = self.report_path(report.version)
        atomic_write_text(path, text)
        atomic_write_text(self.latest_report_path, text)
        return path

    def load_latest_report(self) -> Optional[DriftReport]:
        if not self.latest_report_path.exists():
            return None
        return DriftReport.model_validate_json(self.latest_report_path.read_text(encoding="utf-8"))

    def load_sync_state(self) -> SyncState:
        if not self.sync_state_path.exists():
            return SyncState()
        return SyncState.model_validate_json(self.sync_state_path.read_text(encoding="utf-8"))

    def save_sync_state(self, state: SyncState) -> Path:
        atomic_write_text(self.sync_state_path, _dump(state.model_dump(mode="json", by_alias=True)))
        return self.sync_state_path


def _safe_version(version: str) -> str:
    if not version or "/" in version or "\\" in version or version in (".", ".."):
        raise ValueError(f"unusable version identifier for a file name: {version!r}")
    return version
