"""HTTP middleware for request correlation on the HTTP tool surface.

Every request gets a correlation id (taken from the incoming header or
generated) that is attached to all log lines emitted while the request runs,
including those of the API access layer and the rate limiter. The MCP stdio
surface sets its own id per tool call (see ``maplesea_mcp.api.mcp_server``).

Usage:
    app.middleware("http")(request_id_middleware)
"""

from __future__ import annotations

import logging
import time
import uuid

from fastapi import Request, Response

from maplesea_mcp.core.config import settings
from maplesea_mcp.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)

DURATION_HEADER = "X-Request-Duration-ms"


async def request_id_middleware(request: Request, call_next) -> Response:
    """Propagate a correlation id and log one ``http.request`` line per call.

    The header name is configurable via ``LOG_REQUEST_ID_HEADER``. The id and
    the total duration are echoed back in the response headers.

    Args:
        request: The incoming HTTP request object.
        call_next: The next middleware/route handler in the stack.

    Returns:
        Response: The downstream response with correlation headers added.
    """
    header_name = settings.log.request_id_header
    request_id = request.headers.get(header_name) or str(uuid.uuid4())
    set_request_id(request_id)
    start = time.perf_counter()
    try:
        response: Response = await call_next(request)
        duration_ms = (time.perf_counter() - start) * 1000
        logger.info(
            "http.request",
            extra={
                "method": request.method,
                "path": request.url.path,
                "status_code": response.status_code,
                "duration_ms": round(duration_ms, 2),
            },
        )
    finally:
        clear_request_id()

    response.headers[header_name] = request_id
    response.headers.setdefault(DURATION_HEADER, f"{duration_ms:.2f}")
    return response
