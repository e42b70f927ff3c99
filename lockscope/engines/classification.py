"""Classification & ranking — severity, staleness and display order.

Pure functions, no I/O.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Literal

from lockscope.engines.lockfile.models import PackageRecord

OutdatedSeverity = Literal["critical", "high", "moderate", "low"]
Staleness = Literal["high", "medium", "low"]

SEVERITY_RANK: dict[str, int] = {"critical": 3, "high": 2, "moderate": 1, "low": 0}

DAYS_PER_MONTH = 30.44
DAYS_PER_YEAR = 365.25
STALE_HIGH_MONTHS = 18
STALE_MEDIUM_MONTHS = 6


def version_components(version: str) -> list[int]:
    """Dot-separated integer components; non-numeric parts count as 0."""
    parts: list[int] = []
    for part in version.strip().split("."):
        try:
            parts.append(int(part))
        except ValueError:
            parts.append(0)
    return parts


def outdated_severity(current: str | None, latest: str | None) -> OutdatedSeverity:
    """Compare the declared version against the registry's latest.

    A newer major is ``critical``; more than two minors behind is
    ``high``; any minor behind is ``moderate``; everything else,
    including unknown versions, is ``low``.
    """
    if not current or not latest or "unknown" in (current, latest):
        return "low"
    cur = version_components(current) + [0, 0]
    new = version_components(latest) + [0, 0]

    if new[0] - cur[0] > 0:
        return "critical"
    minor_diff = new[1] - cur[1]
    if minor_diff > 2:
        return "high"
    if minor_diff > 0:
        return "moderate"
    return "low"


@dataclass(frozen=True)
class CommitAge:
    days: int
    weeks: int
    months: int
    years: int


def commit_age(last_commit: datetime, now: datetime | None = None) -> CommitAge:
    """Whole days/weeks/months/years since *last_commit* (never negative)."""
    now = now or datetime.now(timezone.utc)
    if last_commit.tzinfo is None:
        last_commit = last_commit.replace(tzinfo=timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)
    elapsed_days = max((now - last_commit).total_seconds() / 86400, 0.0)
    return CommitAge(
        days=math.floor(elapsed_days),
        weeks=math.floor(elapsed_days / 7),
        months=math.floor(elapsed_days / DAYS_PER_MONTH),
        years=math.floor(elapsed_days / DAYS_PER_YEAR),
    )


def staleness(last_commit: datetime | None, now: datetime | None = None) -> Staleness | None:
    """Risk bucket from commit age; None when the date is unknown."""
    if last_commit is None:
        return None
    months = commit_age(last_commit, now).months
    if months > STALE_HIGH_MONTHS:
        return "high"
    if months > STALE_MEDIUM_MONTHS:
        return "medium"
    return "low"


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'' if count == 1 else 's'} ago"


def format_age(age: CommitAge) -> str:
    if age.years >= 1:
        return _plural(age.years, "year")
    if age.months >= 1:
        return _plural(age.months, "month")
    if age.weeks >= 1:
        return _plural(age.weeks, "week")
    if age.days >= 1:
        return _plural(age.days, "day")
    return "today"


def _display_key(record: PackageRecord) -> tuple[int, int, int, float]:
    archived_first = 0 if record.archived and record.state == "resolved" else 1
    rank = SEVERITY_RANK[outdated_severity(record.version, record.latest_version)]
    if record.last_commit_at is None:
        return archived_first, -rank, 1, 0.0
    return archived_first, -rank, 0, record.last_commit_at.timestamp()


def display_order(records: Iterable[PackageRecord]) -> list[PackageRecord]:
    """Archived first, then most outdated, then least recently committed.

    Packages without a known commit date go last within their group. The
    sort is stable, so ties keep canonical order.
    """
    return sorted(records, key=_display_key)
