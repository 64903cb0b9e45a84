from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from pathlib import Path
from typing import Optional

from apisync.config.settings import SyncSettings
from apisync.coverage.analyzer import baseline_coverage, compute_coverage
from apisync.diff.versions import diff_snapshots
from apisync.domain.models import DriftReport, Snapshot, SyncState, ToolInventoryEntry, VersionStamp
from apisync.errors import MissingArtifactError
from apisync.matching.bootstrap import BootstrapStats, bootstrap_map
from apisync.normalize.endpoints import normalize_snapshot
from apisync.report.assembler import build_drift_report
from apisync.repo.scanner import build_inventory
from apisync.sources.spec_source import SpecSource
from apisync.store.artifacts import ArtifactStore

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


@dataclass(frozen=True)
class SnapshotRun:
    state: SyncState
    release: str
    previous_release: str
    up_to_date: bool
    snapshot: Optional[Snapshot] = None
    snapshot_path: Optional[str] = None
    changelog_saved: bool = False


@dataclass(frozen=True)
class InventoryRun:
    tools_dir: str
    inventory: list[ToolInventoryEntry]
    inventory_path: str


@dataclass(frozen=True)
class BootstrapRun:
    version: str
    stats: BootstrapStats
    map_path: str


@dataclass(frozen=True)
class SyncRun:
    """Outcome of a full sync; only the snapshot is set when the release was already synced."""

    state: SyncState
    snapshot: SnapshotRun
    inventory: Optional[InventoryRun] = None
    report: Optional[DriftReport] = None
    report_path: Optional[str] = None
    notes: list[str] = field(default_factory=list)

    @property
    def up_to_date(self) -> bool:
        return self.snapshot.up_to_date


def _current_snapshot(store: ArtifactStore, state: SyncState) -> Snapshot:
    version = state.spec.version
    if not version:
        raise MissingArtifactError("sync state spec version", "run `apisync snapshot` first")
    snapshot = store.load_snapshot(version)
    if snapshot is None:
        raise MissingArtifactError(f"snapshots/{version}.json", "run `apisync snapshot --force`")
    return snapshot


def run_snapshot(
    store: ArtifactStore,
    source: SpecSource,
    settings: SyncSettings,
    state: SyncState,
    force: bool = False,
    now: Optional[str] = None,
) -> SnapshotRun:
    """
    Fetch the latest release's tracked domain specs and persist a normalized snapshot.

    The returned state carries the new release and package versions; persisting it
    is left to the caller so a later failing stage can keep the old one.
    """
    release = source.latest_release()
    last = state.spec.version
    logger.info("latest release: %s (last synced: %s)", release.tag, last or "never")

    if not force and last == release.tag:
        logger.info("no new release; use --force to regenerate")
        return SnapshotRun(state=state, release=release.tag, previous_release=last, up_to_date=True)

    stamp_time = now or _now_iso()
    package_versions = {role: source.fetch_package_version(pkg) for role, pkg in sorted(settings.packages.items())}
    for role, version in package_versions.items():
        was = state.packages.get(role)
        logger.info("%s: %s (was %s)", settings.packages[role], version, (was.version if was else "") or "unknown")

    snapshot = normalize_snapshot(
        release.tag,
        list(settings.tracked_domains),
        source,
        fetched_at=stamp_time,
        max_workers=settings.source.max_workers,
    )
    changelog = source.fetch_changelog(release.tag)

    # Everything fetched; only now touch the artifact directory.
    path = store.save_snapshot(snapshot)
    logger.info("snapshot saved: %s", path)
    # an empty file replaces an older release's text so the diff notes it as unavailable
    store.save_changelog(changelog)
    if not changelog:
        logger.warning("changelog unavailable for %s", release.tag)

    new_state = SyncState(
        spec=VersionStamp(version=release.tag, synced_at=stamp_time),
        packages={
            **state.packages,
            **{role: VersionStamp(version=v, synced_at=stamp_time) for role, v in package_versions.items()},
        },
    )
    return SnapshotRun(
        state=new_state,
        release=release.tag,
        previous_release=last,
        up_to_date=False,
        snapshot=snapshot,
        snapshot_path=str(path),
        changelog_saved=bool(changelog),
    )


def run_inventory(store: ArtifactStore, settings: SyncSettings, tools_dir: Path) -> InventoryRun:
    tools_dir = Path(tools_dir)
    if not tools_dir.is_dir():
        raise MissingArtifactError(f"tools directory {tools_dir}", "pass the directory holding the tool sources")

    inventory = build_inventory(tools_dir, settings.scanner)
    path = store.save_inventory(inventory)
    logger.info("inventory: %d tools saved to %s", len(inventory), path)
    return InventoryRun(tools_dir=str(tools_dir), inventory=inventory, inventory_path=str(path))


def run_bootstrap(store: ArtifactStore, settings: SyncSettings, state: SyncState) -> BootstrapRun:
    """Propose a tool -> endpoint map for the current snapshot. Overwrites any existing map."""
    snapshot = _current_snapshot(store, state)
    inventory = store.load_inventory()
    if inventory is None:
        raise MissingArtifactError("inventory.json", "run `apisync inventory TOOLS_DIR` first")

    result = bootstrap_map(snapshot, inventory, settings.matcher)
    path = store.save_tool_map(result.mapping)
    logger.info("tool map saved: %s (review before relying on it)", path)
    return BootstrapRun(version=snapshot.version, stats=result.stats, map_path=str(path))


def run_diff(
    store: ArtifactStore,
    settings: SyncSettings,
    state: SyncState,
    now: Optional[str] = None,
) -> DriftReport:
    """Compare the current snapshot to its predecessor, analyze coverage, persist the report."""
    current = _current_snapshot(store, state)

    previous: Optional[Snapshot] = None
    previous_version = store.previous_snapshot_version(current.version)
    if previous_version is not None:
        previous = store.load_snapshot(previous_version)

    outcome = diff_snapshots(
        current,
        previous,
        changelog_text=store.load_changelog(),
        breaking_marker=settings.changelog.breaking_marker,
    )

    notes: list[str] = []
    tool_map = store.load_tool_map()
    inventory = store.load_inventory()
    if tool_map is None or inventory is None:
        missing = [name for name, value in (("tool-endpoint-map.json", tool_map), ("inventory.json", inventory)) if value is None]
        reason = "coverage not analyzed: missing " + ", ".join(missing)
        coverage = baseline_coverage(current, reason)
        notes.append(reason)
    else:
        coverage = compute_coverage(current, tool_map, inventory, settings.coverage)

    report = build_drift_report(
        current,
        outcome,
        coverage,
        state,
        sdk_pinned=settings.sdk_pinned_range,
        notes=notes,
        generated_at=now or _now_iso(),
    )
    path = store.save_report(report)
    logger.info("report saved: %s", path)
    return report


def run_sync(
    store: ArtifactStore,
    source: SpecSource,
    settings: SyncSettings,
    tools_dir: Path,
    force: bool = False,
    now: Optional[str] = None,
) -> SyncRun:
    """
    snapshot -> inventory -> diff, then commit the sync state.

    When the latest release is the one already synced (and ``force`` is off)
    nothing past the release check runs and no artifact is written. If any
    stage raises, sync-state.json is left untouched.
    """
    state = store.load_sync_state()
    snap = run_snapshot(store, source, settings, state, force=force, now=now)
    if snap.up_to_date:
        return SyncRun(state=snap.state, snapshot=snap)

    inv = run_inventory(store, settings, tools_dir)
    report = run_diff(store, settings, snap.state, now=now)

    notes: list[str] = []
    if store.load_tool_map() is None:
        notes.append("no tool map yet; run `apisync bootstrap-map` and review it")

    store.save_sync_state(snap.state)
    logger.info("sync state updated to %s", snap.release)
    return SyncRun(
        state=snap.state,
        snapshot=snap,
        inventory=inv,
        report=report,
        report_path=str(store.report_path(report.version)),
        notes=notes,
    )
