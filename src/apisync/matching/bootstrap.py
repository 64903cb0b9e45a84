"""Draft tool -> endpoint mapping by rule-based scoring.

Every (tool, call signature) pair is scored against every endpoint of the
snapshot. The best endpoint per call signature is kept when it clears
``min_score``; the result is a draft for human review, so unmatched tools are
kept with an empty endpoint list rather than dropped.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Mapping, Optional

from apisync.config.settings import MatcherSettings
from apisync.domain.models import Endpoint, Snapshot, ToolEndpointMap, ToolInventoryEntry, ToolMapping
from apisync.matching import heuristics as h

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Match:
    key: str
    score: int
    sdk_path: str


@dataclass(frozen=True)
class LowConfidence:
    tool: str
    score: int
    sdk_path: str


@dataclass
class BootstrapStats:
    total: int = 0
    mapped: int = 0
    unmapped: int = 0
    unmapped_tools: list[str] = field(default_factory=list)
    low_confidence: list[LowConfidence] = field(default_factory=list)


@dataclass
class BootstrapResult:
    mapping: ToolEndpointMap
    stats: BootstrapStats


def allowed_domains(tool_file: str, file_domains: Mapping[str, list[str]]) -> Optional[list[str]]:
    """Domains a tool file may match; ``None`` when the file is unconstrained."""
    if tool_file in file_domains:
        return file_domains[tool_file]
    name = tool_file.rsplit("/", 1)[-1]
    return file_domains.get(name)


def score_match(
    tool: ToolInventoryEntry,
    endpoint: Endpoint,
    sdk_call: str,
    settings: Optional[MatcherSettings] = None,
) -> int:
    s = settings or MatcherSettings()

    # domain gate: nothing overcomes a file constrained to other domains
    allowed = allowed_domains(tool.file, s.file_domains)
    if allowed is not None and endpoint.domain not in allowed:
        return 0

    score = 0
    path_lower = endpoint.path.lower()

    if endpoint.method in (h.sdk_call_to_http(sdk_call), h.tool_name_to_http(tool.name)):
        score += s.method_bonus

    segment = h.tool_path_segment(tool.name, s.noun_segments, trailing=s.match_trailing_nouns)
    if segment and segment in endpoint.path:
        score += s.noun_bonus

    resource = h.sdk_resource(sdk_call)
    if len(resource) >= s.min_resource_length and resource.lower() in path_lower:
        score += s.resource_bonus

    placeholder = h.trailing_placeholder(endpoint.path)
    if h.implies_instance(tool.name, sdk_call) and placeholder is not None:
        score += s.shape_bonus
    if h.implies_collection(tool.name, sdk_call) and (
        placeholder is None or placeholder in s.scoping_placeholders
    ):
        score += s.shape_bonus

    pagination = {p.lower() for p in s.pagination_params}
    endpoint_params = {p.name.lower() for p in endpoint.query_and_body()}
    tool_params = {p.lower() for p in tool.params} - pagination
    score += len(tool_params & endpoint_params) * s.param_bonus

    verb = h.leading_verb(tool.name)
    if verb and endpoint.operation_id.lower().startswith(verb):
        score += s.operation_bonus

    return score


def find_best_matches(
    tool: ToolInventoryEntry,
    endpoints: Mapping[str, Endpoint],
    settings: Optional[MatcherSettings] = None,
) -> list[Match]:
    """Best accepted endpoint per call signature, in call-signature order."""
    s = settings or MatcherSettings()
    matches: list[Match] = []

    for sdk_call in tool.sdk_calls:
        best_key: Optional[str] = None
        best_score = -1
        # strict ">" keeps the first endpoint on ties (endpoints iterate in key order)
        for key, endpoint in endpoints.items():
            score = score_match(tool, endpoint, sdk_call, s)
            if score > best_score:
                best_key, best_score = key, score

        if best_key is not None and best_score >= s.min_score:
            matches.append(Match(key=best_key, score=best_score, sdk_path=sdk_call))

    return matches


def bootstrap_map(
    snapshot: Snapshot,
    inventory: list[ToolInventoryEntry],
    settings: Optional[MatcherSettings] = None,
) -> BootstrapResult:
    s = settings or MatcherSettings()
    endpoints = {k: snapshot.endpoints[k] for k in sorted(snapshot.endpoints)}

    mapping: ToolEndpointMap = {}
    stats = BootstrapStats(total=len(inventory))

    for tool in inventory:
        matches = find_best_matches(tool, endpoints, s)

        if not matches:
            mapping[tool.name] = ToolMapping(endpoints=[], sdk_path=tool.sdk_calls[0] if tool.sdk_calls else "")
            stats.unmapped += 1
            stats.unmapped_tools.append(tool.name)
            continue

        keys: list[str] = []
        for m in matches:
            if m.key not in keys:
                keys.append(m.key)

        best = matches[0]
        for m in matches[1:]:
            if m.score > best.score:
                best = m

        mapping[tool.name] = ToolMapping(endpoints=keys, sdk_path=best.sdk_path)
        stats.mapped += 1
        if best.score < s.low_confidence_score:
            stats.low_confidence.append(LowConfidence(tool=tool.name, score=best.score, sdk_path=best.sdk_path))

    logger.info(
        "mapped %d/%d tools (%d unmapped, %d low confidence)",
        stats.mapped,
        stats.total,
        stats.unmapped,
        len(stats.low_confidence),
    )
    return BootstrapResult(mapping=mapping, stats=stats)
