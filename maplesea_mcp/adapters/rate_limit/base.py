"""Rate limiter interfaces.

The access layer should depend on this abstraction (not the concrete
implementation) so we can swap the admission backend later (e.g., a shared
Redis budget across processes) with minimal changes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator


@dataclass(frozen=True)
class RequestTicket:
    """Permission to perform one outbound call.

    Attributes:
        ticket_id: Monotonic identifier, unique per limiter instance.
        granted_at: Limiter clock reading at the moment of the grant.
    """

    ticket_id: int
    granted_at: float


class AbstractRateLimiter(ABC):
    """Interface for outbound admission controllers."""

    @abstractmethod
    async def acquire(self, timeout: float | None = None) -> RequestTicket:
        """Wait until one more request may be sent and return its ticket.

        Args:
            timeout: Seconds the caller is willing to wait (None waits forever).

        Returns:
            RequestTicket that must be passed to ``release``.

        Raises:
            UpstreamError: With kind ``rate_limit_timeout`` when the wait elapses.
        """
        raise NotImplementedError

    @abstractmethod
    def release(self, ticket: RequestTicket) -> None:
        """Return a ticket once its call has completed or failed."""
        raise NotImplementedError

    @asynccontextmanager
    async def ticket(self, timeout: float | None = None) -> AsyncIterator[RequestTicket]:
        """Hold a ticket for the duration of an ``async with`` block."""
        granted = await self.acquire(timeout=timeout)
        try:
            yield granted
        finally:
            self.release(granted)

    def stats(self) -> dict[str, int | float]:
        """Return lightweight limiter metrics."""
        return {}
