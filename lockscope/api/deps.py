"""Dependency injection — settings and the shared upstream HTTP client."""

from __future__ import annotations

from functools import lru_cache

import httpx
from fastapi import Request

from lockscope.core.config import Settings
from lockscope.core.http import create_http_client


@lru_cache
def get_settings() -> Settings:
    return Settings.from_env()


def get_http_client(request: Request) -> httpx.AsyncClient:
    """The app-wide client, created on first use and closed at shutdown."""
    client: httpx.AsyncClient | None = getattr(request.app.state, "http_client", None)
    if client is None:
        client = create_http_client(request.app.state.settings)
        request.app.state.http_client = client
    return client
