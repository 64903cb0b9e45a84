from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping, Optional

from apisync.domain.models import HTTP_METHODS, Endpoint, ParamDef, Snapshot
from apisync.sources.spec_source import SpecSource

logger = logging.getLogger(__name__)

FORM_CONTENT = "application/x-www-form-urlencoded"
JSON_CONTENT = "application/json"


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


def _resolve(doc: Mapping[str, Any], node: Any, _depth: int = 0) -> Any:
    """Follow a local ``$ref`` (``#/a/b``) until a concrete node is reached."""
    while isinstance(node, Mapping) and isinstance(node.get("$ref"), str) and _depth < 32:
        ref = node["$ref"]
        if not ref.startswith("#/"):
            return node
        target: Any = doc
        for part in ref[2:].split("/"):
            part = part.replace("~1", "/").replace("~0", "~")
            if not isinstance(target, Mapping) or part not in target:
                logger.debug("unresolvable $ref %s", ref)
                return {}
            target = target[part]
        node = target
        _depth += 1
    return node


def _param_type(schema: Any) -> str:
    if isinstance(schema, Mapping) and isinstance(schema.get("type"), str):
        return schema["type"]
    return "string"


def _extract_params(doc: Mapping[str, Any], raw: Iterable[Any]) -> list[ParamDef]:
    out: list[ParamDef] = []
    for item in raw:
        p = _resolve(doc, item)
        if not isinstance(p, Mapping) or not p.get("name"):
            continue
        location = p.get("in")
        if location not in ("path", "query"):
            # header/cookie parameters are not part of the wrapper surface
            continue
        out.append(
            ParamDef(
                name=str(p["name"]),
                location=location,
                required=bool(p.get("required", False)),
                type=_param_type(_resolve(doc, p.get("schema"))),
                description=str(p.get("description") or ""),
            )
        )
    return out


def merge_parameters(
    doc: Mapping[str, Any],
    path_level: Optional[Iterable[Any]],
    operation_level: Optional[Iterable[Any]],
) -> list[ParamDef]:
    """Union path-level and operation-level parameters.

    Path-level definitions come first. An operation-level parameter with the
    same ``(name, in)`` replaces the path-level one in place.
    """
    merged: dict[tuple[str, str], ParamDef] = {}
    for p in _extract_params(doc, path_level or []):
        merged[(p.name, p.location)] = p
    for p in _extract_params(doc, operation_level or []):
        merged[(p.name, p.location)] = p
    return list(merged.values())


def extract_request_body(doc: Mapping[str, Any], request_body: Any) -> list[ParamDef]:
    body = _resolve(doc, request_body)
    if not isinstance(body, Mapping):
        return []
    content = body.get("content")
    if not isinstance(content, Mapping):
        return []

    # form encoding is the provider's standard; JSON only when no form variant exists
    media = content.get(FORM_CONTENT) or content.get(JSON_CONTENT)
    if not isinstance(media, Mapping):
        return []

    schema = _resolve(doc, media.get("schema"))
    if not isinstance(schema, Mapping):
        return []
    properties = schema.get("properties")
    if not isinstance(properties, Mapping):
        return []

    required = set(schema.get("required") or [])
    out: list[ParamDef] = []
    for name, prop in properties.items():
        prop = _resolve(doc, prop)
        out.append(
            ParamDef(
                name=str(name),
                location="body",
                required=name in required,
                type=_param_type(prop),
                description=str(prop.get("description") or "") if isinstance(prop, Mapping) else "",
            )
        )
    return out


def parse_spec(doc: Mapping[str, Any], domain: str) -> list[Endpoint]:
    """Flatten one OpenAPI document into endpoints, in document path order."""
    paths = doc.get("paths")
    if not isinstance(paths, Mapping):
        return []

    endpoints: list[Endpoint] = []
    for path, path_item in paths.items():
        path_item = _resolve(doc, path_item)
        if not isinstance(path_item, Mapping):
            continue
        # non-method keys (servers, description, parameters, x-*) are skipped
        for method in HTTP_METHODS:
            operation = path_item.get(method)
            if not isinstance(operation, Mapping):
                continue

            endpoints.append(
                Endpoint(
                    domain=domain,
                    path=str(path),
                    method=method,
                    operation_id=str(operation.get("operationId") or ""),
                    summary=str(operation.get("summary") or operation.get("description") or ""),
                    deprecated=bool(operation.get("deprecated", False)),
                    parameters=merge_parameters(
                        doc, path_item.get("parameters"), operation.get("parameters")
                    ),
                    request_body=extract_request_body(doc, operation.get("requestBody")),
                )
            )
    return endpoints


def build_snapshot(
    version: str,
    documents: Mapping[str, Optional[Mapping[str, Any]]],
    fetched_at: Optional[str] = None,
) -> Snapshot:
    """Build a snapshot from per-domain documents (``None`` = not published).

    Determinism guarantees:
    - endpoints keyed by ``domain:method:path``
    - endpoint map sorted by key
    - no timestamps inside endpoint records
    """
    endpoints: dict[str, Endpoint] = {}
    domain_counts: dict[str, int] = {}
    skipped: list[str] = []

    for domain, doc in documents.items():
        if doc is None:
            skipped.append(domain)
            continue
        parsed = parse_spec(doc, domain)
        domain_counts[domain] = len(parsed)
        for ep in parsed:
            # keys are unique by construction within one document
            endpoints[ep.key] = ep

    ordered = {k: endpoints[k] for k in sorted(endpoints)}
    return Snapshot(
        version=version,
        fetched_at=fetched_at or _now_iso(),
        endpoint_count=len(ordered),
        domain_counts=domain_counts,
        skipped_domains=skipped,
        endpoints=ordered,
    )


def fetch_documents(
    source: SpecSource,
    release: str,
    domains: list[str],
    max_workers: int = 1,
) -> dict[str, Optional[dict[str, Any]]]:
    """Fetch every tracked domain's document.

    Transport errors propagate and abort the stage. Results are returned in
    ``domains`` order regardless of completion order.
    """
    if max_workers <= 1 or len(domains) <= 1:
        return {d: source.fetch_spec(release, d) for d in domains}

    with ThreadPoolExecutor(max_workers=max_workers) as pool:
        futures = {d: pool.submit(source.fetch_spec, release, d) for d in domains}
        return {d: futures[d].result() for d in domains}


def normalize_snapshot(
    version: str,
    domains: list[str],
    source: SpecSource,
    fetched_at: Optional[str] = None,
    max_workers: int = 1,
) -> Snapshot:
    documents = fetch_documents(source, version, domains, max_workers=max_workers)
    snapshot = build_snapshot(version, documents, fetched_at=fetched_at)

    for domain in domains:
        if domain in snapshot.domain_counts:
            logger.info("%s: %d endpoints", domain, snapshot.domain_counts[domain])
    if snapshot.skipped_domains:
        logger.info("not published for %s: %s", version, ", ".join(snapshot.skipped_domains))
    logger.info(
        "total: %d endpoints across %d domains",
        snapshot.endpoint_count,
        len(snapshot.domain_counts),
    )
    return snapshot
