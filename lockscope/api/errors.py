"""Unified error handling — LockscopeError + RequestValidationError → JSON."""

from __future__ import annotations

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from lockscope.exceptions import InvalidRequestError, LockscopeError, UpstreamError

_STATUS_MAP: dict[type[LockscopeError], int] = {
    InvalidRequestError: 400,
}


async def _lockscope_error_handler(_request: Request, exc: LockscopeError) -> JSONResponse:
    if isinstance(exc, UpstreamError):
        status = exc.status_code
    else:
        status = 500
        for cls in type(exc).__mro__:
            if cls in _STATUS_MAP:
                status = _STATUS_MAP[cls]
                break
    return JSONResponse(status_code=status, content={"error": str(exc)})


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    errors = exc.errors()
    messages = []
    for err in errors:
        loc = " → ".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}")
    return JSONResponse(
        status_code=400,
        content={"error": "; ".join(messages)},
    )


def register_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the app."""
    app.add_exception_handler(LockscopeError, _lockscope_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
