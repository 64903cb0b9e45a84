"""Exception types raised by the sync pipeline.

Only failures that abort a stage are exceptions. Skippable conditions (an
unpublished domain spec, a missing previous snapshot, an unmatched tool) are
reported in results instead.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional


class SyncError(Exception):
    """Base class for all apisync failures."""


class ConfigError(SyncError):
    """Configuration could not be loaded or failed validation."""


@dataclass
class SpecTransportError(SyncError):
    """A required remote document could not be fetched (anything but a 404)."""

    url: str
    message: str
    status_code: Optional[int] = None

    def __str__(self) -> str:
        status = f"HTTP {self.status_code}" if self.status_code is not None else "transport error"
        return f"{status} fetching {self.url}: {self.message}"


@dataclass
class MissingArtifactError(SyncError):
    """A stage prerequisite has not been produced yet."""

    artifact: str
    hint: str = ""

    def __str__(self) -> str:
        msg = f"missing prerequisite artifact: {self.artifact}"
        return f"{msg} ({self.hint})" if self.hint else msg


__all__ = ["SyncError", "ConfigError", "SpecTransportError", "MissingArtifactError"]
