"""NEXON Open API transport adapter."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from email.utils import parsedate_to_datetime
from typing import Any, Mapping

import httpx

from maplesea_mcp.adapters.http.base import AbstractTransport, TransportError

logger = logging.getLogger(__name__)

API_KEY_HEADER = "x-nxopen-api-key"


def parse_retry_after(value: str | None, *, now: datetime | None = None) -> float | None:
    """Parse a ``Retry-After`` header given in seconds or as an HTTP date.

    Args:
        value: Raw header value.
        now: Reference time for HTTP-date values (defaults to current UTC).

    Returns:
        Non-negative delay in seconds, or None when absent/unparseable.
    """
    if not value:
        return None

    value = value.strip()
    try:
        return max(0.0, float(value))
    except ValueError:
        pass

    try:
        when = parsedate_to_datetime(value)
    except (TypeError, ValueError):
        return None
    if when.tzinfo is None:
        when = when.replace(tzinfo=timezone.utc)

    reference = now or datetime.now(timezone.utc)
    return max(0.0, (when - reference).total_seconds())


def _extract_upstream_error(response: httpx.Response) -> tuple[str, str | None]:
    """Pull ``error.name``/``error.message`` out of a NEXON error body."""
    try:
        body = response.json()
    except ValueError:
        return f"http_{response.status_code}", None

    error = body.get("error") if isinstance(body, dict) else None
    if isinstance(error, dict):
        message = error.get("message") or f"http_{response.status_code}"
        return str(message), error.get("name")
    return f"http_{response.status_code}", None


class NexonHttpTransport(AbstractTransport):
    """Transport calling the NEXON MapleStory SEA Open API over HTTP.

    Uses one shared ``httpx.AsyncClient`` for connection pooling. Every
    failure is raised as a ``TransportError`` carrying the status code,
    network/timeout flags and any ``Retry-After`` hint; retry decisions are
    made by the caller.
    """

    def __init__(
        self,
        api_key: str,
        base_url: str = "https://open.api.nexon.com",
        timeout_seconds: float = 10.0,
        user_agent: str = "maplesea-mcp/1.0.0",
        client: httpx.AsyncClient | None = None,
    ) -> None:
        """Initialize the HTTP client.

        Args:
            api_key: NEXON Open API key.
            base_url: API base URL.
            timeout_seconds: Timeout for each request in seconds.
            user_agent: User-Agent header value.
            client: Pre-built client (tests inject one with a MockTransport).
        """
        headers = {
            API_KEY_HEADER: api_key,
            "Accept": "application/json",
            "User-Agent": user_agent,
        }
        if client is None:
            client = httpx.AsyncClient(
                base_url=base_url,
                timeout=timeout_seconds,
                headers=headers,
            )
        else:
            client.headers.update(headers)
        self.client = client

    async def call(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        query = {k: v for k, v in (params or {}).items() if v is not None}
        start = time.perf_counter()

        try:
            response = await self.client.request(method, path, params=query)
        except httpx.TimeoutException as exc:
            logger.warning(
                "upstream.timeout",
                extra={"path": path, "error_type": type(exc).__name__},
            )
            raise TransportError("timeout", network=True, timeout=True) from exc
        except httpx.TransportError as exc:
            logger.warning(
                "upstream.network_error",
                extra={"path": path, "error_type": type(exc).__name__},
            )
            raise TransportError("network_error", network=True) from exc
        except httpx.DecodingError as exc:
            logger.warning(
                "upstream.decoding_error",
                extra={"path": path, "error_type": type(exc).__name__},
            )
            raise TransportError("undecodable_body", malformed=True) from exc
        except httpx.RequestError as exc:
            # TooManyRedirects and anything else httpx adds under RequestError
            logger.warning(
                "upstream.request_error",
                extra={"path": path, "error_type": type(exc).__name__},
            )
            raise TransportError("request_error", network=True) from exc

        duration_ms = round((time.perf_counter() - start) * 1000, 2)
        logger.info(
            "upstream.response",
            extra={
                "method": method,
                "path": path,
                "status_code": response.status_code,
                "duration_ms": duration_ms,
            },
        )

        if response.is_error:
            message, upstream_code = _extract_upstream_error(response)
            raise TransportError(
                message,
                status_code=response.status_code,
                retry_after=parse_retry_after(response.headers.get("Retry-After")),
                upstream_code=upstream_code,
            )

        try:
            payload = response.json()
        except ValueError as exc:
            raise TransportError(
                "invalid_json",
                status_code=response.status_code,
                malformed=True,
            ) from exc

        if not isinstance(payload, dict):
            raise TransportError(
                "unexpected_payload_type",
                status_code=response.status_code,
                malformed=True,
            )
        return payload

    async def aclose(self) -> None:
        await self.client.aclose()
