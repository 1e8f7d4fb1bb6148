from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping


class TransportError(Exception):
    """Classified failure of a single upstream call.

    Attributes:
        message: Upstream error message, or a short reason token.
        status_code: HTTP status when the server answered, else None.
        network: True for connection-level failures (no HTTP response).
        timeout: True when the request timed out.
        retry_after: Server-suggested delay in seconds, if any.
        upstream_code: Upstream error name (e.g. ``OPENAPI00004``), if any.
        malformed: True when a 2xx response body could not be decoded.
    """

    def __init__(
        self,
        message: str,
        *,
        status_code: int | None = None,
        network: bool = False,
        timeout: bool = False,
        retry_after: float | None = None,
        upstream_code: str | None = None,
        malformed: bool = False,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.status_code = status_code
        self.network = network
        self.timeout = timeout
        self.retry_after = retry_after
        self.upstream_code = upstream_code
        self.malformed = malformed

    def __repr__(self) -> str:  # pragma: no cover - representation only
        return (
            f"TransportError(message={self.message!r}, status_code={self.status_code}, "
            f"network={self.network}, timeout={self.timeout}, retry_after={self.retry_after})"
        )


class AbstractTransport(ABC):
    """Interface for clients that perform one raw upstream HTTP call."""

    @abstractmethod
    async def call(
        self,
        method: str,
        path: str,
        params: Mapping[str, Any] | None = None,
    ) -> dict[str, Any]:
        """Perform one request and return the decoded JSON object.

        Args:
            method: HTTP method (the NEXON API only uses GET).
            path: Path relative to the configured base URL.
            params: Query parameters; ``None`` values are omitted.

        Returns:
            dict[str, Any]: Decoded JSON response body.

        Raises:
            TransportError: For every network, HTTP or decoding failure.
        """
        ...

    async def aclose(self) -> None:
        """Release underlying connections."""
        return None
