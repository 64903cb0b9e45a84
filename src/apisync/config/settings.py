"""Validated configuration for the sync pipeline.

Sources are merged in a predictable order, later ones winning:

1. Built-in defaults (``apisync.config.defaults``)
2. A JSON config file, passed explicitly or named by ``APISYNC_CONFIG_FILE``
3. Environment variables: ``APISYNC_*`` (``__`` separates nested sections,
   e.g. ``APISYNC_MATCHER__MIN_SCORE``) and ``GITHUB_TOKEN``
4. In-code overrides passed to :func:`load_settings`

Nested sections merge key by key, so a config file can override a single
threshold without restating the lookup tables.
"""

from __future__ import annotations

import json
import os
from contextvars import ContextVar
from pathlib import Path
from typing import Any, Mapping, Optional

from pydantic import BaseModel, Field, ValidationError, model_validator
from pydantic_settings import (
    BaseSettings,
    JsonConfigSettingsSource,
    PydanticBaseSettingsSource,
    SettingsConfigDict,
    SettingsError,
)

from apisync.config import defaults
from apisync.errors import ConfigError

CONFIG_FILE_ENV = "APISYNC_CONFIG_FILE"

# JSON file picked up by SyncSettings while load_settings() builds it
_config_file: ContextVar[Optional[Path]] = ContextVar("apisync_config_file", default=None)


class SourceSettings(BaseModel):
    owner: str = defaults.OAI_OWNER
    repo: str = defaults.OAI_REPO
    spec_dir: str = defaults.OAI_SPEC_DIR
    api_url: str = defaults.GITHUB_API_URL
    raw_url: str = defaults.GITHUB_RAW_URL
    npm_registry_url: str = defaults.NPM_REGISTRY_URL
    token: Optional[str] = None
    timeout_seconds: float = 30.0
    max_workers: int = Field(default=4, ge=1)


class ScannerSettings(BaseModel):
    definition_call: str = defaults.TOOL_DEFINITION_CALL
    client_name: str = defaults.CLIENT_NAME
    schema_marker: str = defaults.SCHEMA_MARKER
    file_glob: str = defaults.TOOL_FILE_GLOB
    exclude_files: list[str] = Field(default_factory=lambda: list(defaults.EXCLUDED_TOOL_FILES))


class MatcherSettings(BaseModel):
    """Lookup tables and scoring constants for the bootstrap mapper.

    The constants are empirically tuned; keep them configurable rather than
    re-deriving them. ``match_trailing_nouns`` lets a compound noun such as
    ``conference_participant`` fall back to ``participant`` when the full
    compound has no table entry.
    """

    file_domains: dict[str, list[str]] = Field(
        default_factory=lambda: {k: list(v) for k, v in defaults.FILE_TO_DOMAINS.items()}
    )
    noun_segments: dict[str, str] = Field(
        default_factory=lambda: dict(defaults.NOUN_TO_PATH_SEGMENT)
    )
    scoping_placeholders: list[str] = Field(
        default_factory=lambda: list(defaults.SCOPING_PLACEHOLDERS)
    )
    pagination_params: list[str] = Field(default_factory=lambda: list(defaults.PAGINATION_PARAMS))
    match_trailing_nouns: bool = True

    min_score: int = 40
    low_confidence_score: int = 60
    method_bonus: int = 25
    noun_bonus: int = 50
    resource_bonus: int = 30
    shape_bonus: int = 10
    param_bonus: int = 5
    operation_bonus: int = 5
    min_resource_length: int = 4


class ChangelogSettings(BaseModel):
    breaking_marker: str = defaults.BREAKING_MARKER


class CoverageSettings(BaseModel):
    pagination_params: list[str] = Field(default_factory=lambda: list(defaults.PAGINATION_PARAMS))
    indexed_param_pattern: str = defaults.INDEXED_PARAM_PATTERN


class SyncSettings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="APISYNC_",
        env_nested_delimiter="__",
        extra="ignore",
    )

    tracked_domains: list[str] = Field(default_factory=lambda: list(defaults.TRACKED_DOMAINS))
    packages: dict[str, str] = Field(default_factory=lambda: dict(defaults.PACKAGES))
    sdk_pinned_range: str = defaults.SDK_PINNED_RANGE

    source: SourceSettings = Field(default_factory=SourceSettings)
    scanner: ScannerSettings = Field(default_factory=ScannerSettings)
    matcher: MatcherSettings = Field(default_factory=MatcherSettings)
    changelog: ChangelogSettings = Field(default_factory=ChangelogSettings)
    coverage: CoverageSettings = Field(default_factory=CoverageSettings)

    # GitHub's conventional variable; wins over source.token when set
    github_token: Optional[str] = Field(default=None, validation_alias="GITHUB_TOKEN", exclude=True)

    @classmethod
    def settings_customise_sources(
        cls,
        settings_cls: type[BaseSettings],
        init_settings: PydanticBaseSettingsSource,
        env_settings: PydanticBaseSettingsSource,
        dotenv_settings: PydanticBaseSettingsSource,
        file_secret_settings: PydanticBaseSettingsSource,
    ) -> tuple[PydanticBaseSettingsSource, ...]:
        sources: list[PydanticBaseSettingsSource] = [init_settings, env_settings]
        path = _config_file.get()
        if path is not None:
            sources.append(JsonConfigSettingsSource(settings_cls, json_file=path, json_file_encoding="utf-8"))
        return tuple(sources)

    @model_validator(mode="after")
    def _apply_github_token(self) -> "SyncSettings":
        if self.github_token:
            self.source = self.source.model_copy(update={"token": self.github_token})
        return self


def _check_config_file(path: Path) -> None:
    try:
        data = json.loads(path.read_text(encoding="utf-8"))
    except FileNotFoundError as e:
        raise ConfigError(f"config file not found: {path}") from e
    except json.JSONDecodeError as e:
        raise ConfigError(f"config file is not valid JSON: {path}: {e}") from e
    if not isinstance(data, dict):
        raise ConfigError(f"config file must contain a JSON object: {path}")


def load_settings(
    path: Optional[Path] = None,
    overrides: Optional[Mapping[str, Any]] = None,
) -> SyncSettings:
    if path is None and os.getenv(CONFIG_FILE_ENV):
        path = Path(os.environ[CONFIG_FILE_ENV])
    if path is not None:
        path = Path(path).expanduser()
        _check_config_file(path)

    token = _config_file.set(path)
    try:
        return SyncSettings(**dict(overrides or {}))
    except (ValidationError, SettingsError) as e:
        raise ConfigError(f"invalid configuration: {e}") from e
    finally:
        _config_file.reset(token)
