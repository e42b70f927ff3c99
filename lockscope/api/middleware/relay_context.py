"""Relay request context: X-Request-ID plus one outcome line per relay call."""

from __future__ import annotations

import time
import uuid

import structlog
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.requests import Request
from starlette.responses import Response

log = structlog.get_logger("lockscope.api")

RELAY_PREFIX = "/api/"
REQUEST_ID_HEADER = "X-Request-ID"
RELAY_HEADER = "X-Relay-Endpoint"


def request_id_from(raw: str) -> str:
    """Keep a caller-supplied UUID, otherwise mint a fresh one."""
    try:
        return str(uuid.UUID(raw))
    except ValueError:
        return str(uuid.uuid4())


def relay_endpoint(path: str) -> str | None:
    """``github-commit`` for ``/api/github-commit``; None outside the relay."""
    if not path.startswith(RELAY_PREFIX):
        return None
    return path[len(RELAY_PREFIX) :].strip("/") or None


def _log_outcome(endpoint: str, status_code: int, duration_ms: float) -> None:
    if status_code >= 500:
        log.error(
            "relay.failed", endpoint=endpoint, status_code=status_code, duration_ms=duration_ms
        )
    elif status_code >= 400:
        log.warning(
            "relay.rejected", endpoint=endpoint, status_code=status_code, duration_ms=duration_ms
        )
    else:
        log.info("relay.completed", endpoint=endpoint, duration_ms=duration_ms)


class RelayContextMiddleware(BaseHTTPMiddleware):
    """Bind request_id to structlog contextvars and log relay outcomes.

    Only ``/api/*`` calls produce a log line; ops routes such as
    ``/health`` just get the request id echoed back.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        request_id = request_id_from(request.headers.get(REQUEST_ID_HEADER, ""))
        endpoint = relay_endpoint(request.url.path)

        tokens = structlog.contextvars.bind_contextvars(request_id=request_id)
        start = time.perf_counter()
        try:
            response = await call_next(request)
            if endpoint is not None:
                duration_ms = round((time.perf_counter() - start) * 1000, 1)
                _log_outcome(endpoint, response.status_code, duration_ms)
                response.headers[RELAY_HEADER] = endpoint
            response.headers[REQUEST_ID_HEADER] = request_id
            return response
        except Exception:
            log.exception("relay.crashed", endpoint=endpoint)
            raise
        finally:
            structlog.contextvars.reset_contextvars(**tokens)
