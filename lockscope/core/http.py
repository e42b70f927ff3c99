"""Shared httpx client factory."""

from __future__ import annotations

import httpx

from lockscope.core.config import USER_AGENT, Settings


def create_http_client(
    settings: Settings, *, transport: httpx.AsyncBaseTransport | None = None
) -> httpx.AsyncClient:
    """One pooled client per orchestrator or relay app.

    Requests are attempted once; there is no retry transport.
    """
    return httpx.AsyncClient(
        headers={"User-Agent": USER_AGENT},
        timeout=settings.timeout,
        follow_redirects=True,
        transport=transport,
    )
