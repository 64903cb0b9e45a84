"""Collaborators that fetch provider documents.

A spec source answers four questions for a release: which release is latest,
what a domain's OpenAPI document looks like (``None`` when the domain is not
published for that release), what the changelog says (``""`` when it cannot
be fetched) and which version a package is at (``"unknown"`` on failure).
Only ``latest_release`` and ``fetch_spec`` raise, and only with
``SpecTransportError``.
"""

from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Optional, Protocol

import httpx

from apisync.config.settings import SourceSettings
from apisync.diff.versions import version_sort_key
from apisync.errors import SpecTransportError

logger = logging.getLogger(__name__)

UNKNOWN_VERSION = "unknown"


@dataclass(frozen=True)
class Release:
    tag: str
    published_at: str


class SpecSource(Protocol):
    def latest_release(self) -> Release: ...

    def fetch_spec(self, release: str, domain: str) -> Optional[dict[str, Any]]: ...

    def fetch_changelog(self, release: str) -> str: ...

    def fetch_package_version(self, package: str) -> str: ...


def _now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="seconds")


class GitHubSpecSource:
    """Reads specs from a GitHub repo (raw host) and versions from the npm registry."""

    def __init__(self, settings: SourceSettings, client: Optional[httpx.Client] = None):
        self.settings = settings
        self._client = client or httpx.Client(timeout=settings.timeout_seconds, follow_redirects=True)

    def close(self) -> None:
        self._client.close()

    def __enter__(self) -> "GitHubSpecSource":
        return self

    def __exit__(self, *exc: object) -> None:
        self.close()

    def _raw_url(self, release: str, rel_path: str) -> str:
        s = self.settings
        return f"{s.raw_url.rstrip('/')}/{s.owner}/{s.repo}/{release}/{rel_path}"

    def _get(self, url: str, headers: Optional[dict[str, str]] = None) -> httpx.Response:
        try:
            return self._client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise SpecTransportError(url=url, message=str(e)) from e

    def latest_release(self) -> Release:
        s = self.settings
        url = f"{s.api_url.rstrip('/')}/repos/{s.owner}/{s.repo}/releases/latest"
        headers = {"Accept": "application/vnd.github+json"}
        if s.token:
            headers["Authorization"] = f"Bearer {s.token}"

        resp = self._get(url, headers=headers)
        if resp.status_code != 200:
            raise SpecTransportError(url=url, message="could not read latest release", status_code=resp.status_code)
        data = resp.json()
        return Release(tag=data["tag_name"], published_at=data.get("published_at") or _now_iso())

    def fetch_spec(self, release: str, domain: str) -> Optional[dict[str, Any]]:
        url = self._raw_url(release, f"{self.settings.spec_dir.strip('/')}/{domain}.json")
        resp = self._get(url)
        if resp.status_code == 404:
            logger.info("spec not found: %s@%s (skipping)", domain, release)
            return None
        if resp.status_code != 200:
            raise SpecTransportError(url=url, message="spec fetch failed", status_code=resp.status_code)
        try:
            return resp.json()
        except json.JSONDecodeError as e:
            raise SpecTransportError(url=url, message=f"invalid JSON: {e}") from e

    def fetch_changelog(self, release: str) -> str:
        url = self._raw_url(release, "CHANGES.md")
        try:
            resp = self._get(url)
        except SpecTransportError as e:
            logger.warning("could not fetch changelog: %s", e)
            return ""
        if resp.status_code != 200:
            logger.warning("could not fetch changelog (HTTP %s)", resp.status_code)
            return ""
        return resp.text

    def fetch_package_version(self, package: str) -> str:
        url = f"{self.settings.npm_registry_url.rstrip('/')}/{package}/latest"
        try:
            resp = self._get(url)
            if resp.status_code != 200:
                return UNKNOWN_VERSION
            return str(resp.json().get("version") or UNKNOWN_VERSION)
        except (SpecTransportError, json.JSONDecodeError) as e:
            logger.warning("could not read version of %s: %s", package, e)
            return UNKNOWN_VERSION


class DirectorySpecSource:
    """Offline source laid out as ``<root>/<release>/<domain>.json``.

    The latest release is the greatest directory name; package versions come
    from an optional ``<root>/packages.json`` object.
    """

    def __init__(self, root: Path):
        self.root = Path(root)

    def latest_release(self) -> Release:
        releases = sorted((p.name for p in self.root.iterdir() if p.is_dir()), key=version_sort_key)
        if not releases:
            raise SpecTransportError(url=str(self.root), message="no releases found")
        return Release(tag=releases[-1], published_at=_now_iso())

    def fetch_spec(self, release: str, domain: str) -> Optional[dict[str, Any]]:
        path = self.root / release / f"{domain}.json"
        if not path.exists():
            logger.info("spec not found: %s@%s (skipping)", domain, release)
            return None
        try:
            return json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError) as e:
            raise SpecTransportError(url=str(path), message=str(e)) from e

    def fetch_changelog(self, release: str) -> str:
        path = self.root / release / "CHANGES.md"
        try:
            return path.read_text(encoding="utf-8")
        except OSError:
            return ""

    def fetch_package_version(self, package: str) -> str:
        path = self.root / "packages.json"
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except (OSError, json.JSONDecodeError):
            return UNKNOWN_VERSION
        return str(data.get(package) or UNKNOWN_VERSION)
