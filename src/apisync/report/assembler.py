from __future__ import annotations

from datetime import datetime, timezone
from typing import Optional

from apisync.diff.versions import DiffOutcome
from apisync.domain.models import CoverageAnalysis, DriftReport, ReportSummary, Snapshot, SyncState


def build_drift_report(
    current: Snapshot,
    outcome: DiffOutcome,
    coverage: CoverageAnalysis,
    state: SyncState,
    sdk_pinned: str = "",
    notes: Optional[list[str]] = None,
    generated_at: Optional[str] = None,
) -> DriftReport:
    """Aggregate a diff outcome and coverage analysis into one complete report."""
    diff = outcome.diff
    return DriftReport(
        version=current.version,
        previous_version=outcome.previous_version,
        baseline=outcome.baseline,
        notes=[*outcome.notes, *(notes or [])],
        generated_at=generated_at or datetime.now(timezone.utc).isoformat(timespec="seconds"),
        package_versions={role: stamp.version for role, stamp in sorted(state.packages.items())},
        sdk_pinned=sdk_pinned,
        new_endpoints=diff.new_endpoints,
        removed_endpoints=diff.removed_endpoints,
        parameter_changes=diff.parameter_changes,
        breaking_changes=outcome.breaking_changes,
        coverage=coverage,
        summary=ReportSummary(
            total_endpoints=current.endpoint_count,
            new_count=len(diff.new_endpoints),
            removed_count=len(diff.removed_endpoints),
            param_changed_count=len(diff.parameter_changes),
            breaking_count=len(outcome.breaking_changes),
            coverage_percent=coverage.coverage_percent,
        ),
    )
