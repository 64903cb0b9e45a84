from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

from apisync.config.defaults import BREAKING_MARKER
from apisync.domain.models import ChangelogEntry, Endpoint, ParamChange, ParamDef, Snapshot
from apisync.normalize.changelog import breaking_changes, parse_changelog

logger = logging.getLogger(__name__)

NO_PREVIOUS = "none"
BASELINE_NOTE = "baseline, no comparison performed: no previous snapshot exists"

_CHUNKS = re.compile(r"(\d+)")


def version_sort_key(version: str) -> tuple:
    """Natural ordering: digit runs compare numerically (2.10.0 > 2.9.1)."""
    key = []
    for chunk in _CHUNKS.split(version):
        if not chunk:
            continue
        key.append((0, int(chunk), "") if chunk.isdigit() else (1, 0, chunk))
    return tuple(key)


def find_previous_version(versions: Iterable[str], current: str) -> Optional[str]:
    """Closest version strictly before ``current``; ``None`` on a first run."""
    current_key = version_sort_key(current)
    older = [v for v in versions if v != current and version_sort_key(v) < current_key]
    if not older:
        return None
    return max(older, key=version_sort_key)


@dataclass
class VersionDiff:
    new_endpoints: list[Endpoint] = field(default_factory=list)
    removed_endpoints: list[Endpoint] = field(default_factory=list)
    parameter_changes: list[ParamChange] = field(default_factory=list)

    def is_empty(self) -> bool:
        return not (self.new_endpoints or self.removed_endpoints or self.parameter_changes)


@dataclass
class DiffOutcome:
    current_version: str
    previous_version: str
    diff: VersionDiff
    breaking_changes: list[ChangelogEntry] = field(default_factory=list)
    baseline: bool = False
    notes: list[str] = field(default_factory=list)


def _params_by_name(endpoint: Endpoint) -> dict[str, ParamDef]:
    out: dict[str, ParamDef] = {}
    for p in endpoint.query_and_body():
        out.setdefault(p.name, p)
    return out


def param_change(key: str, current: Endpoint, previous: Endpoint) -> Optional[ParamChange]:
    """Added/removed query+body parameters of one endpoint, or ``None`` if unchanged in shape."""
    now = _params_by_name(current)
    before = _params_by_name(previous)
    added = [p for name, p in now.items() if name not in before]
    removed = [p for name, p in before.items() if name not in now]
    if not added and not removed:
        return None
    return ParamChange(
        endpoint_key=key,
        domain=current.domain,
        path=current.path,
        method=current.method,
        added_params=added,
        removed_params=removed,
    )


def compute_version_diff(current: Snapshot, previous: Snapshot) -> VersionDiff:
    cur_keys = set(current.endpoints)
    prev_keys = set(previous.endpoints)

    diff = VersionDiff(
        new_endpoints=[current.endpoints[k] for k in sorted(cur_keys - prev_keys)],
        removed_endpoints=[previous.endpoints[k] for k in sorted(prev_keys - cur_keys)],
    )
    for key in sorted(cur_keys & prev_keys):
        change = param_change(key, current.endpoints[key], previous.endpoints[key])
        if change is not None:
            diff.parameter_changes.append(change)
    return diff


def diff_snapshots(
    current: Snapshot,
    previous: Optional[Snapshot],
    changelog_text: str = "",
    breaking_marker: str = BREAKING_MARKER,
) -> DiffOutcome:
    """Version diff plus breaking-change correlation.

    Without a previous snapshot the outcome is an explicit baseline: empty
    lists and a note, never an error.
    """
    if previous is None:
        logger.info("no previous snapshot before %s; baseline run", current.version)
        return DiffOutcome(
            current_version=current.version,
            previous_version=NO_PREVIOUS,
            diff=VersionDiff(),
            baseline=True,
            notes=[BASELINE_NOTE],
        )

    logger.info("comparing %s -> %s", previous.version, current.version)
    diff = compute_version_diff(current, previous)
    logger.info(
        "new: %d, removed: %d, parameter changes: %d",
        len(diff.new_endpoints),
        len(diff.removed_endpoints),
        len(diff.parameter_changes),
    )

    notes: list[str] = []
    breaking: list[ChangelogEntry] = []
    if changelog_text:
        entries = parse_changelog(changelog_text, previous.version, current.version, breaking_marker)
        breaking = breaking_changes(entries)
        logger.info("breaking changes: %d", len(breaking))
    else:
        notes.append("changelog unavailable; breaking changes not checked")

    return DiffOutcome(
        current_version=current.version,
        previous_version=previous.version,
        diff=diff,
        breaking_changes=breaking,
        notes=notes,
    )
