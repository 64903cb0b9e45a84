from __future__ import annotations

import logging
import re
from typing import Mapping, Optional

from apisync.config.settings import CoverageSettings
from apisync.domain.models import (
    CoverageAnalysis,
    DomainCoverage,
    Endpoint,
    ParamDef,
    Snapshot,
    ToolEndpointMap,
    ToolInventoryEntry,
    ToolMapping,
    ToolParamDrift,
)

logger = logging.getLogger(__name__)


def percent(part: int, total: int) -> float:
    if total <= 0:
        return 0.0
    return round(part / total * 100, 1)


def comparable_params(endpoint: Endpoint, settings: CoverageSettings) -> list[ParamDef]:
    """
    Endpoint parameters a tool is expected to expose one-to-one:
    query + body, minus pagination and minus indexed families (Item1.Field, Item2.Field, ...)
    which tools expose once as an array.
    """
    pagination = {p.lower() for p in settings.pagination_params}
    indexed = re.compile(settings.indexed_param_pattern)
    return [
        p
        for p in endpoint.query_and_body()
        if p.name.lower() not in pagination and not indexed.match(p.name)
    ]


def tool_drift(
    tool: ToolInventoryEntry,
    key: str,
    endpoint: Endpoint,
    settings: CoverageSettings,
) -> Optional[ToolParamDrift]:
    pagination = {p.lower() for p in settings.pagination_params}
    expected = comparable_params(endpoint, settings)
    tool_names = {p.lower() for p in tool.params}
    endpoint_names = {p.name.lower() for p in (*endpoint.parameters, *endpoint.request_body)}

    missing = [p for p in expected if p.name.lower() not in tool_names]
    # informational: may be intentional client-side convenience fields
    extra = [p for p in tool.params if p.lower() not in endpoint_names and p.lower() not in pagination]

    if not missing:
        return None
    return ToolParamDrift(
        tool_name=tool.name,
        tool_file=tool.file,
        endpoint=key,
        missing_in_tool=missing,
        extra_in_tool=extra,
        suggested_action=(
            f"Add {len(missing)} missing param(s) to {tool.name}: "
            + ", ".join(p.name for p in missing)
        ),
    )


def _domain_coverage(snapshot: Snapshot, mapped_keys: set[str]) -> dict[str, DomainCoverage]:
    totals: dict[str, int] = {d: 0 for d in sorted(snapshot.domain_counts)}
    mapped: dict[str, int] = {d: 0 for d in totals}
    for key, ep in snapshot.endpoints.items():
        totals[ep.domain] = totals.get(ep.domain, 0) + 1
        mapped.setdefault(ep.domain, 0)
        if key in mapped_keys:
            mapped[ep.domain] += 1
    return {
        d: DomainCoverage(total=totals[d], mapped=mapped[d], percent=percent(mapped[d], totals[d]))
        for d in sorted(totals)
    }


def compute_coverage(
    snapshot: Snapshot,
    tool_map: Mapping[str, ToolMapping],
    inventory: list[ToolInventoryEntry],
    settings: Optional[CoverageSettings] = None,
) -> CoverageAnalysis:
    """How much of the snapshot the mapped tools reach, and where their params drift."""
    s = settings or CoverageSettings()
    mapping: ToolEndpointMap = dict(tool_map)

    mapped_keys: set[str] = set()
    stale: list[str] = []
    for tool_name, entry in mapping.items():
        for key in entry.endpoints:
            if key in snapshot.endpoints:
                mapped_keys.add(key)
            else:
                stale.append(f"{tool_name} -> {key}")

    inventory_by_name = {t.name: t for t in inventory}
    drift: list[ToolParamDrift] = []
    for tool_name, entry in mapping.items():
        tool = inventory_by_name.get(tool_name)
        if tool is None or not entry.endpoints:
            continue
        for key in entry.endpoints:
            endpoint = snapshot.endpoints.get(key)
            if endpoint is None:
                continue
            item = tool_drift(tool, key, endpoint, s)
            if item is not None:
                drift.append(item)

    total = len(snapshot.endpoints)
    analysis = CoverageAnalysis(
        total_endpoints=total,
        mapped_endpoints=len(mapped_keys),
        mapped_tools=sum(1 for e in mapping.values() if e.endpoints),
        coverage_percent=percent(len(mapped_keys), total),
        domain_coverage=_domain_coverage(snapshot, mapped_keys),
        unmapped_endpoints=[ep for key, ep in sorted(snapshot.endpoints.items()) if key not in mapped_keys],
        tools_with_param_drift=drift,
        stale_mappings=stale,
        analyzed=True,
    )
    logger.info(
        "coverage: %d/%d endpoints (%s%%), %d tools with param drift",
        analysis.mapped_endpoints,
        analysis.total_endpoints,
        analysis.coverage_percent,
        len(drift),
    )
    if stale:
        logger.warning("%d mappings reference endpoints missing from %s", len(stale), snapshot.version)
    return analysis


def baseline_coverage(snapshot: Snapshot, reason: str = "") -> CoverageAnalysis:
    """Coverage when no map or inventory exists yet: nothing mapped, nothing analyzed."""
    if reason:
        logger.info("skipping coverage analysis: %s", reason)
    return CoverageAnalysis(
        total_endpoints=len(snapshot.endpoints),
        domain_coverage=_domain_coverage(snapshot, set()),
        unmapped_endpoints=[ep for _, ep in sorted(snapshot.endpoints.items())],
        analyzed=False,
    )
