"""Data models for the enrichment engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

AdvisorySeverity = Literal["critical", "high", "moderate", "low", "info"]

SEVERITY_ORDER: dict[str, int] = {
    "critical": 4,
    "high": 3,
    "moderate": 2,
    "low": 1,
    "info": 0,
}


@dataclass(frozen=True)
class RegistryInfo:
    """What one registry lookup tells us about a package version."""

    latest_version: str | None = None
    license: str = "unknown"
    homepage: str | None = None
    repository_url: str | None = None
    size: int | None = None


@dataclass(frozen=True)
class HostActivity:
    """Source-host signals; every field may stay unknown (None)."""

    last_commit_at: datetime | None = None
    star_count: int | None = None
    archived: bool | None = None


@dataclass(frozen=True)
class Advisory:
    id: int | str | None
    severity: str
    title: str
    description: str | None = None
    url: str | None = None


@dataclass(frozen=True)
class PackageAdvisories:
    count: int
    severity: str
    vulnerabilities: list[dict[str, Any]] = field(default_factory=list)


@dataclass
class AuditReport:
    """Summary of a quick-audit response."""

    vulnerabilities: int = 0
    advisories: list[Advisory] = field(default_factory=list)
    by_package: dict[str, PackageAdvisories] = field(default_factory=dict)
    summary: dict[str, int] = field(
        default_factory=lambda: {k: 0 for k in ("critical", "high", "moderate", "low", "info")}
    )
    metadata: dict[str, Any] = field(default_factory=dict)
