"""Process-level settings read from the environment."""

from __future__ import annotations

import os
from dataclasses import dataclass, replace

DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"
DEFAULT_AUDIT_URL = "https://registry.npmjs.org/-/npm/v1/security/audits/quick"
DEFAULT_TIMEOUT = 15.0
USER_AGENT = "lockscope"


def _parse_timeout(value: str | None) -> float:
    if value is None:
        return DEFAULT_TIMEOUT
    try:
        timeout = float(value)
    except ValueError:
        return DEFAULT_TIMEOUT
    return timeout if timeout > 0 else DEFAULT_TIMEOUT


@dataclass(frozen=True)
class Settings:
    registry_url: str = DEFAULT_REGISTRY_URL
    audit_url: str = DEFAULT_AUDIT_URL
    relay_url: str | None = None
    github_token: str | None = None
    timeout: float = DEFAULT_TIMEOUT
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from ``LOCKSCOPE_*`` variables.

        ``GITHUB_API_TOKEN`` is preferred over ``GITHUB_TOKEN``; empty
        values count as unset.
        """
        cors = os.environ.get("LOCKSCOPE_CORS_ORIGINS", "http://localhost:3000")
        return cls(
            registry_url=os.environ.get("LOCKSCOPE_REGISTRY_URL") or DEFAULT_REGISTRY_URL,
            audit_url=os.environ.get("LOCKSCOPE_AUDIT_URL") or DEFAULT_AUDIT_URL,
            relay_url=os.environ.get("LOCKSCOPE_RELAY_URL") or None,
            github_token=(
                os.environ.get("GITHUB_API_TOKEN") or os.environ.get("GITHUB_TOKEN") or None
            ),
            timeout=_parse_timeout(os.environ.get("LOCKSCOPE_HTTP_TIMEOUT")),
            cors_origins=tuple(o.strip() for o in cors.split(",") if o.strip()),
        )

    def with_overrides(self, **changes: object) -> Settings:
        """Return a copy with every non-None keyword applied."""
        return replace(self, **{k: v for k, v in changes.items() if v is not None})
