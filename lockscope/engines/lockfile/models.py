"""Data models for the lockfile engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal

from lockscope.exceptions import StateTransitionError

Origin = Literal["packages", "dependencies"]
EnrichmentState = Literal["pending", "local-only", "resolved", "resolved-with-error"]

PACKAGES: Origin = "packages"
DEPENDENCIES: Origin = "dependencies"

_TERMINAL_STATES: frozenset[str] = frozenset({"local-only", "resolved", "resolved-with-error"})


@dataclass
class PackageRecord:
    """A package attested by one or more lockfile entries.

    ``name`` and ``version`` form the identity and are never reassigned
    once the record exists. Every other field is filled in by merging
    further attestations and, later, by enrichment.
    """

    id: str
    name: str
    version: str | None = None
    origins: set[Origin] = field(default_factory=set)

    # structural fields
    resolved: str | None = None
    integrity: str | None = None
    path: str | None = None
    dev: bool | None = None
    optional: bool | None = None
    peer: bool | None = None
    extraneous: bool | None = None
    dependencies: list[str] = field(default_factory=list)
    requires: list[str] = field(default_factory=list)
    peer_dependencies: list[str] = field(default_factory=list)
    bundled_dependencies: list[str] = field(default_factory=list)
    raw: dict[str, Any] = field(default_factory=dict)

    explicit: bool = False

    # enrichment
    state: EnrichmentState = "pending"
    loading: bool = False
    latest_version: str | None = None
    license: str | None = None
    homepage: str | None = None
    repository_url: str | None = None
    last_commit_at: datetime | None = None
    star_count: int | None = None
    archived: bool | None = None
    size: int | None = None
    vulnerability_count: int | None = None
    vulnerability_severity: str | None = None

    @property
    def key(self) -> tuple[str, str]:
        """Dedup key: ``(name, version or "")``."""
        return self.name, self.version or ""

    @property
    def is_local_only(self) -> bool:
        """True when there is no resolved location to look up."""
        return not self.resolved

    @property
    def is_done(self) -> bool:
        return self.state in _TERMINAL_STATES

    def transition(self, target: EnrichmentState) -> None:
        """Move the enrichment state forward.

        Only ``pending`` may be left, and only towards a terminal state.
        Re-entering the current terminal state is a no-op.
        """
        if self.state == target:
            return
        if self.state != "pending" or target not in _TERMINAL_STATES:
            raise StateTransitionError(self.name, self.state, target)
        self.state = target
        self.loading = False
