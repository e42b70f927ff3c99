"""Async npm registry client — package metadata and quick audit."""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from lockscope.core.config import Settings

log = structlog.get_logger("lockscope.engine")


class RegistryClient:
    """Thin async wrapper around the npm registry HTTP API.

    The underlying :class:`httpx.AsyncClient` is owned by the caller.
    """

    def __init__(self, client: httpx.AsyncClient, settings: Settings) -> None:
        self._client = client
        self._registry_url = settings.registry_url.rstrip("/")
        self._audit_url = settings.audit_url

    def package_url(self, name: str) -> str:
        # scoped names keep their "@" but the "/" must be escaped
        return f"{self._registry_url}/{quote(name, safe='@')}"

    async def fetch_package(self, name: str) -> dict[str, Any]:
        """GET the full metadata document (all versions) for *name*.

        Raises :class:`httpx.HTTPStatusError` on a non-success status.
        """
        resp = await self._client.get(
            self.package_url(name), headers={"Accept": "application/json"}
        )
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"unexpected registry payload for {name!r}")
        return data

    async def quick_audit(self, packages: dict[str, str]) -> dict[str, Any]:
        """POST ``{"packages": {name: version}}`` to the quick-audit endpoint.

        Returns the raw response; see
        :func:`lockscope.engines.enrichment.audit.summarize_audit`.
        """
        resp = await self._client.post(
            self._audit_url,
            json={"packages": packages},
            headers={"Content-Type": "application/json"},
        )
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError("unexpected audit payload")
        log.debug("registry.audit_done", packages=len(packages))
        return data
