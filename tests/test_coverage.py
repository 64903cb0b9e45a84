from apisync.coverage.analyzer import baseline_coverage, compute_coverage
from apisync.domain.models import Endpoint, ParamDef, Snapshot, ToolInventoryEntry, ToolMapping


def snap(*endpoints: Endpoint) -> Snapshot:
    eps = {e.key: e for e in sorted(endpoints, key=lambda e: e.key)}
    domains: dict[str, int] = {}
    for e in eps.values():
        domains[e.domain] = domains.get(e.domain, 0) + 1
    return Snapshot(version="1.0.0", fetched_at="t", endpoint_count=len(eps), domain_counts=domains, endpoints=eps)


def body(*names: str) -> list[ParamDef]:
    return [ParamDef(name=n, location="body") for n in names]


MESSAGES = Endpoint(domain="msg", method="post", path="/Messages", request_body=body("To", "From", "Body", "StatusCallback"))
MESSAGE = Endpoint(domain="msg", method="get", path="/Messages/{Sid}")
ROOMS = Endpoint(
    domain="video",
    method="post",
    path="/Rooms",
    parameters=[ParamDef(name="PageSize", location="query")],
    request_body=body("UniqueName", "Track1.Name", "Track2.Name"),
)

SEND_SMS = ToolInventoryEntry(name="send_sms", file="messaging.ts", sdk_calls=["client.messages.create"], params=["to", "from", "body"])


def test_missing_param_flagged_for_matched_tool():
    cov = compute_coverage(
        snap(MESSAGES, MESSAGE),
        {"send_sms": ToolMapping(endpoints=["msg:post:/Messages"], sdk_path="client.messages.create")},
        [SEND_SMS],
    )

    assert cov.analyzed is True
    assert cov.mapped_endpoints == 1
    assert cov.mapped_tools == 1
    assert cov.coverage_percent == 50.0
    assert [e.key for e in cov.unmapped_endpoints] == ["msg:get:/Messages/{Sid}"]

    assert len(cov.tools_with_param_drift) == 1
    drift = cov.tools_with_param_drift[0]
    assert drift.tool_name == "send_sms"
    assert drift.endpoint == "msg:post:/Messages"
    assert [p.name for p in drift.missing_in_tool] == ["StatusCallback"]
    assert drift.extra_in_tool == []
    assert "StatusCallback" in drift.suggested_action


def test_indexed_families_and_pagination_are_not_drift():
    tool = ToolInventoryEntry(name="create_room", file="video.ts", params=["uniqueName", "tracks", "limit"])
    cov = compute_coverage(
        snap(ROOMS),
        {"create_room": ToolMapping(endpoints=["video:post:/Rooms"])},
        [tool],
    )
    # nothing missing: Track1.Name/Track2.Name and PageSize are excluded
    assert cov.tools_with_param_drift == []

    bare = ToolInventoryEntry(name="create_room", file="video.ts", params=[])
    cov = compute_coverage(snap(ROOMS), {"create_room": ToolMapping(endpoints=["video:post:/Rooms"])}, [bare])
    assert [p.name for p in cov.tools_with_param_drift[0].missing_in_tool] == ["UniqueName"]


def test_extras_ride_along_with_missing():
    tool = ToolInventoryEntry(name="send_sms", file="messaging.ts", params=["to", "mediaUrls"])
    cov = compute_coverage(snap(MESSAGES), {"send_sms": ToolMapping(endpoints=["msg:post:/Messages"])}, [tool])

    drift = cov.tools_with_param_drift[0]
    assert drift.extra_in_tool == ["mediaUrls"]
    assert [p.name for p in drift.missing_in_tool] == ["From", "Body", "StatusCallback"]


def test_coverage_bounds_and_stale_mappings():
    tool_map = {
        "send_sms": ToolMapping(endpoints=["msg:post:/Messages", "msg:post:/Gone"]),
        "get_message": ToolMapping(endpoints=["msg:get:/Messages/{Sid}", "msg:post:/Messages"]),
        "orphan": ToolMapping(endpoints=[]),
    }
    cov = compute_coverage(snap(MESSAGES, MESSAGE), tool_map, [SEND_SMS])

    assert cov.mapped_endpoints == 2
    assert cov.coverage_percent == 100.0
    assert cov.mapped_tools == 2
    assert cov.stale_mappings == ["send_sms -> msg:post:/Gone"]
    assert cov.domain_coverage["msg"].percent == 100.0


def test_coverage_is_monotonic_in_the_map():
    s = snap(MESSAGES, MESSAGE, ROOMS)
    small = {"send_sms": ToolMapping(endpoints=["msg:post:/Messages"])}
    large = {**small, "create_room": ToolMapping(endpoints=["video:post:/Rooms"])}

    a = compute_coverage(s, small, [])
    b = compute_coverage(s, large, [])

    assert a.coverage_percent == 33.3
    assert b.coverage_percent == 66.7
    assert b.mapped_endpoints >= a.mapped_endpoints
    assert b.domain_coverage["video"].mapped == 1
    assert a.domain_coverage["video"].percent == 0.0


def test_empty_snapshot_and_baseline():
    empty = snap()
    cov = compute_coverage(empty, {}, [])
    assert cov.coverage_percent == 0.0
    assert cov.domain_coverage == {}

    base = baseline_coverage(snap(MESSAGES, MESSAGE), "no tool map yet")
    assert base.analyzed is False
    assert base.mapped_endpoints == 0
    assert len(base.unmapped_endpoints) == 2
    assert base.domain_coverage["msg"].total == 2
