"""lockscope relay API — FastAPI application factory."""

from __future__ import annotations

from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from lockscope.api.deps import get_settings
from lockscope.api.errors import register_error_handlers
from lockscope.api.middleware.relay_context import RelayContextMiddleware
from lockscope.api.routers import relay
from lockscope.core.config import Settings
from lockscope.core.logging import setup_logging


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Shutdown: close the upstream HTTP client if one was opened."""
    yield
    client = getattr(app.state, "http_client", None)
    if client is not None:
        await client.aclose()
        app.state.http_client = None


def create_app(settings: Settings | None = None) -> FastAPI:
    """Build and return the FastAPI application.

    Run with ``uvicorn --factory lockscope.api:create_app``.
    """
    setup_logging()
    settings = settings or get_settings()

    app = FastAPI(title="lockscope relay", lifespan=_lifespan)
    app.state.settings = settings
    app.state.http_client = None
    app.dependency_overrides[get_settings] = lambda: settings

    register_error_handlers(app)

    app.add_middleware(
        CORSMiddleware,
        allow_origins=list(settings.cors_origins),
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
    )
    app.add_middleware(RelayContextMiddleware)

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(relay.router, prefix="/api", tags=["relay"])

    return app
