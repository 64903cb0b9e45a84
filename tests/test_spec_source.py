import json
from pathlib import Path

import httpx
import pytest

from apisync.config.settings import SourceSettings
from apisync.errors import SpecTransportError
from apisync.sources.spec_source import UNKNOWN_VERSION, DirectorySpecSource, GitHubSpecSource


def make_source(handler, token=None) -> GitHubSpecSource:
    client = httpx.Client(transport=httpx.MockTransport(handler))
    return GitHubSpecSource(SourceSettings(token=token), client=client)


def test_latest_release_sends_token_and_reads_tag():
    seen = {}

    def handler(request: httpx.Request) -> httpx.Response:
        seen["url"] = str(request.url)
        seen["auth"] = request.headers.get("Authorization")
        return httpx.Response(200, json={"tag_name": "2.7.0", "published_at": "2026-03-04T00:00:00Z"})

    with make_source(handler, token="secret") as source:
        release = source.latest_release()

    assert release.tag == "2.7.0"
    assert release.published_at == "2026-03-04T00:00:00Z"
    assert seen["url"] == "https://api.github.com/repos/twilio/twilio-oai/releases/latest"
    assert seen["auth"] == "Bearer secret"


def test_fetch_spec_404_is_skipped_other_errors_raise():
    def handler(request: httpx.Request) -> httpx.Response:
        path = request.url.path
        if path.endswith("/twilio_api_v2010.json"):
            return httpx.Response(200, json={"paths": {}})
        if path.endswith("/twilio_flex_v1.json"):
            return httpx.Response(404)
        return httpx.Response(500)

    source = make_source(handler)

    assert source.fetch_spec("2.7.0", "twilio_api_v2010") == {"paths": {}}
    assert source.fetch_spec("2.7.0", "twilio_flex_v1") is None
    with pytest.raises(SpecTransportError) as exc:
        source.fetch_spec("2.7.0", "twilio_verify_v2")
    assert exc.value.status_code == 500
    assert exc.value.url == "https://raw.githubusercontent.com/twilio/twilio-oai/2.7.0/spec/json/twilio_verify_v2.json"


def test_network_failure_becomes_transport_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("boom", request=request)

    source = make_source(handler)
    with pytest.raises(SpecTransportError):
        source.latest_release()
    # soft failures
    assert source.fetch_changelog("2.7.0") == ""
    assert source.fetch_package_version("twilio") == UNKNOWN_VERSION


def test_changelog_and_package_version():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.host == "registry.npmjs.org":
            return httpx.Response(200, json={"name": "twilio", "version": "5.4.0"})
        if request.url.path.endswith("CHANGES.md"):
            return httpx.Response(200, text="[2026-03-04] Version 2.7.0\n")
        return httpx.Response(404)

    source = make_source(handler)
    assert source.fetch_package_version("twilio") == "5.4.0"
    assert source.fetch_changelog("2.7.0").startswith("[2026-03-04]")


def test_directory_source(tmp_path: Path):
    for release in ("2.9.0", "2.10.0"):
        (tmp_path / release).mkdir()
    (tmp_path / "2.10.0" / "twilio_api_v2010.json").write_text(json.dumps({"paths": {}}), encoding="utf-8")
    (tmp_path / "2.10.0" / "CHANGES.md").write_text("log", encoding="utf-8")
    (tmp_path / "packages.json").write_text(json.dumps({"twilio": "5.4.0"}), encoding="utf-8")

    source = DirectorySpecSource(tmp_path)

    assert source.latest_release().tag == "2.10.0"
    assert source.fetch_spec("2.10.0", "twilio_api_v2010") == {"paths": {}}
    assert source.fetch_spec("2.10.0", "twilio_flex_v1") is None
    assert source.fetch_changelog("2.10.0") == "log"
    assert source.fetch_changelog("2.9.0") == ""
    assert source.fetch_package_version("twilio") == "5.4.0"
    assert source.fetch_package_version("twilio-cli") == UNKNOWN_VERSION
