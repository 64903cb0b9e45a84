from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, model_validator

HttpMethod = Literal["get", "post", "put", "patch", "delete"]
ParamLocation = Literal["path", "query", "body"]

HTTP_METHODS: tuple[str, ...] = ("get", "post", "put", "patch", "delete")


def endpoint_key(domain: str, method: str, path: str) -> str:
    return f"{domain}:{method}:{path}"


class _Model(BaseModel):
    # persisted documents use camelCase; python code uses snake_case
    model_config = ConfigDict(populate_by_name=True)


class ParamDef(_Model):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    name: str
    location: ParamLocation = Field(alias="in")
    required: bool = False
    type: str = "string"
    description: str = ""


class Endpoint(_Model):
    model_config = ConfigDict(populate_by_name=True, frozen=True)

    domain: str
    path: str
    method: HttpMethod
    operation_id: str = Field(default="", alias="operationId")
    summary: str = ""
    deprecated: bool = False
    parameters: list[ParamDef] = Field(default_factory=list)
    request_body: list[ParamDef] = Field(default_factory=list, alias="requestBody")

    @property
    def key(self) -> str:
        return endpoint_key(self.domain, self.method, self.path)

    def query_and_body(self) -> list[ParamDef]:
        """Query parameters followed by body fields (path parameters excluded)."""
        return [p for p in self.parameters if p.location != "path"] + list(self.request_body)


class Snapshot(_Model):
    version: str
    fetched_at: str = Field(alias="fetchedAt")
    endpoint_count: int = Field(alias="endpointCount")
    domain_counts: dict[str, int] = Field(default_factory=dict, alias="domainCounts")
    skipped_domains: list[str] = Field(default_factory=list, alias="skippedDomains")
    endpoints: dict[str, Endpoint] = Field(default_factory=dict)

    @model_validator(mode="after")
    def _check_consistency(self) -> "Snapshot":
        if self.endpoint_count != len(self.endpoints):
            raise ValueError(
                f"endpointCount={self.endpoint_count} but {len(self.endpoints)} endpoints present"
            )
        for key, ep in self.endpoints.items():
            if ep.key != key:
                raise ValueError(f"endpoint stored under {key!r} has key {ep.key!r}")
        return self


class ToolInventoryEntry(_Model):
    name: str
    file: str
    sdk_calls: list[str] = Field(default_factory=list, alias="sdkCalls")
    params: list[str] = Field(default_factory=list)


class ToolMapping(_Model):
    endpoints: list[str] = Field(default_factory=list)
    sdk_path: str = Field(default="", alias="sdkPath")


ToolEndpointMap = dict[str, ToolMapping]


class ChangelogEntry(_Model):
    version: str
    date: str
    domain: str
    description: str
    is_breaking: bool = Field(default=False, alias="isBreaking")


class ParamChange(_Model):
    endpoint_key: str = Field(alias="endpointKey")
    domain: str
    path: str
    method: str
    added_params: list[ParamDef] = Field(default_factory=list, alias="addedParams")
    removed_params: list[ParamDef] = Field(default_factory=list, alias="removedParams")


class ToolParamDrift(_Model):
    tool_name: str = Field(alias="toolName")
    tool_file: str = Field(alias="toolFile")
    endpoint: str
    missing_in_tool: list[ParamDef] = Field(default_factory=list, alias="missingInTool")
    extra_in_tool: list[str] = Field(default_factory=list, alias="extraInTool")
    suggested_action: str = Field(default="", alias="suggestedAction")


class DomainCoverage(_Model):
    total: int = 0
    mapped: int = 0
    percent: float = 0.0


class CoverageAnalysis(_Model):
    total_endpoints: int = Field(alias="totalEndpoints")
    mapped_endpoints: int = Field(default=0, alias="mappedEndpoints")
    mapped_tools: int = Field(default=0, alias="mappedTools")
    coverage_percent: float = Field(default=0.0, alias="coveragePercent")
    domain_coverage: dict[str, DomainCoverage] = Field(default_factory=dict, alias="domainCoverage")
    unmapped_endpoints: list[Endpoint] = Field(default_factory=list, alias="unmappedEndpoints")
    tools_with_param_drift: list[ToolParamDrift] = Field(
        default_factory=list, alias="toolsWithParamDrift"
    )
    stale_mappings: list[str] = Field(default_factory=list, alias="staleMappings")
    analyzed: bool = True


class ReportSummary(_Model):
    total_endpoints: int = Field(alias="totalEndpoints")
    new_count: int = Field(alias="newCount")
    removed_count: int = Field(alias="removedCount")
    param_changed_count: int = Field(alias="paramChangedCount")
    breaking_count: int = Field(alias="breakingCount")
    coverage_percent: float = Field(alias="coveragePercent")


class DriftReport(_Model):
    version: str
    previous_version: str = Field(alias="previousVersion")
    baseline: bool = False
    notes: list[str] = Field(default_factory=list)
    generated_at: str = Field(alias="generatedAt")
    package_versions: dict[str, str] = Field(default_factory=dict, alias="packageVersions")
    sdk_pinned: str = Field(default="", alias="sdkPinned")

    new_endpoints: list[Endpoint] = Field(default_factory=list, alias="newEndpoints")
    removed_endpoints: list[Endpoint] = Field(default_factory=list, alias="removedEndpoints")
    parameter_changes: list[ParamChange] = Field(default_factory=list, alias="parameterChanges")
    breaking_changes: list[ChangelogEntry] = Field(default_factory=list, alias="breakingChanges")

    coverage: CoverageAnalysis
    summary: ReportSummary


class VersionStamp(_Model):
    version: str = ""
    synced_at: str = Field(default="", alias="syncedAt")


class SyncState(_Model):
    """Last-synced provider release and package versions.

    Passed into pipeline stages and returned updated; only the caller persists it.
    """

    spec: VersionStamp = Field(default_factory=VersionStamp)
    packages: dict[str, VersionStamp] = Field(default_factory=dict)
