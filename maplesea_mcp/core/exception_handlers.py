"""Error bodies and FastAPI exception handlers.

Both surfaces render failures with the same body::

    {"error": {"code": ..., "message": ..., "request_id": ..., "details": {...}}}

The HTTP surface additionally maps each error onto a status code:
- ValidationAppError -> 400, ToolNotFoundError -> 404
- UpstreamError -> 4xx passthrough for fatal client errors, else 502/503/504
- anything unexpected -> 500 with a generic message
"""

from __future__ import annotations

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse

from maplesea_mcp.core.errors import (
    AppError,
    ConfigurationAppError,
    ToolNotFoundError,
    UpstreamError,
    UpstreamErrorKind,
    ValidationAppError,
)
from maplesea_mcp.core.logging import get_request_id

logger = logging.getLogger(__name__)

INTERNAL_ERROR_MESSAGE = "An unexpected error occurred. Please try again later."


def http_status_for(exc: AppError) -> int:
    """Map a domain error onto an HTTP status code."""
    if isinstance(exc, ValidationAppError):
        return 400
    if isinstance(exc, ToolNotFoundError):
        return 404
    if isinstance(exc, ConfigurationAppError):
        return 500
    if isinstance(exc, UpstreamError):
        if exc.kind is UpstreamErrorKind.FATAL_UPSTREAM_FAILURE:
            status = exc.status_code
            if status is not None and 400 <= status < 500:
                return status
            return 502
        if exc.kind is UpstreamErrorKind.TRANSPORT_FAILURE:
            return 504
        return 503
    return 400


def error_payload(exc: AppError) -> dict[str, Any]:
    """Render a domain error; ``details`` only appears when non-empty."""
    body: dict[str, Any] = {
        "code": exc.code,
        "message": exc.message,
        "request_id": get_request_id(),
    }
    if exc.details:
        body["details"] = exc.details
    return {"error": body}


def internal_error_payload() -> dict[str, Any]:
    """Generic body for unexpected failures; never carries exception text."""
    return {
        "error": {
            "code": "internal_server_error",
            "message": INTERNAL_ERROR_MESSAGE,
            "request_id": get_request_id(),
        }
    }


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    status_code = http_status_for(exc)
    logger.warning(
        "app_error_handled",
        extra={
            "error_code": exc.code,
            "error_message": exc.message,
            "status_code": status_code,
            "path": request.url.path,
        },
    )
    return JSONResponse(status_code=status_code, content=error_payload(exc))


async def general_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """Safety net: log the real error, answer with a generic 500."""
    logger.error(
        "unhandled_exception",
        extra={
            "error_type": type(exc).__name__,
            "error_msg": str(exc),
            "path": request.url.path,
            "method": request.method,
        },
    )
    return JSONResponse(status_code=500, content=internal_error_payload())


def setup_exception_handlers(app: FastAPI) -> None:
    app.exception_handler(AppError)(app_error_handler)
    app.exception_handler(Exception)(general_exception_handler)
