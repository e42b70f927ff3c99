"""Relay request/response schemas.

Wire names are camelCase, matching what browser clients already send
and expect; Python attributes stay snake_case.
"""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class GitHubCommitRequest(BaseModel):
    owner: str = ""
    repo: str = ""


class GitHubCommitResponse(_CamelModel):
    last_commit_date: str | None = Field(default=None, alias="lastCommitDate")
    star_count: int | None = Field(default=None, alias="starCount")
    is_archived: bool = Field(default=False, alias="isArchived")


class AuditRequest(BaseModel):
    packages: dict[str, str]


class AdvisoryItem(BaseModel):
    id: int | str | None = None
    severity: str
    title: str
    description: str | None = None
    url: str | None = None


class PackageAdvisoriesItem(BaseModel):
    count: int
    severity: str
    vulnerabilities: list[dict[str, Any]]


class SeveritySummary(BaseModel):
    critical: int = 0
    high: int = 0
    moderate: int = 0
    low: int = 0
    info: int = 0


class AuditResponse(_CamelModel):
    vulnerabilities: int
    advisories: list[AdvisoryItem]
    advisories_by_package: dict[str, PackageAdvisoriesItem] = Field(
        alias="advisoriesByPackage"
    )
    summary: SeveritySummary
    metadata: dict[str, Any]
