"""In-memory admission controller for outbound upstream requests.

Notes:
- Per-process only: running multiple server processes multiplies the
  effective upstream rate.
- Built on asyncio primitives: all callers must share one event loop.
"""

from __future__ import annotations

import asyncio
import itertools
import logging
import time
from collections import deque
from typing import Awaitable, Callable

from maplesea_mcp.adapters.rate_limit.base import AbstractRateLimiter, RequestTicket
from maplesea_mcp.core.errors import UpstreamError, UpstreamErrorKind

logger = logging.getLogger(__name__)

# Lower bound for a throttling sleep, so float rounding can't spin the loop.
_MIN_SLEEP_SECONDS = 0.001


class InMemoryRateLimiter(AbstractRateLimiter):
    """Rate limiter combining a rolling-window token bucket with a concurrency cap.

    Each grant takes one token out of a bucket holding ``requests_per_second``
    tokens; the token returns exactly ``window_seconds`` after it was taken.
    That keeps grants in any rolling window at or below the cap while still
    allowing a burst of up to the full cap from idle.

    Callers queue on a fair lock, so admission is first-come-first-served:
    only the head of the queue waits for a concurrency slot and then for a
    token. A caller that is cancelled or times out while queued consumes
    neither.
    """

    def __init__(
        self,
        *,
        requests_per_second: int,
        max_concurrency: int,
        window_seconds: float = 1.0,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        """Initialize the in-memory rate limiter.

        Args:
            requests_per_second: Maximum grants per rolling window.
            max_concurrency: Maximum outstanding tickets.
            window_seconds: Length of the rolling window in seconds.
            clock: Monotonic time source in seconds.
            sleep: Coroutine used to wait for a token to return.

        Raises:
            ValueError: If any limit is invalid.
        """
        if requests_per_second < 1:
            raise ValueError("requests_per_second must be >= 1")
        if max_concurrency < 1:
            raise ValueError("max_concurrency must be >= 1")
        if window_seconds <= 0:
            raise ValueError("window_seconds must be > 0")

        self._rate = requests_per_second
        self._max_concurrency = max_concurrency
        self._window = window_seconds
        self._clock = clock
        self._sleep = sleep

        self._queue_lock = asyncio.Lock()
        self._slots = asyncio.Semaphore(max_concurrency)
        self._grants: deque[float] = deque()
        self._outstanding: set[int] = set()
        self._ids = itertools.count(1)
        self._waiting = 0
        self._total_grants = 0
        self._timeouts = 0

    async def acquire(self, timeout: float | None = None) -> RequestTicket:
        """Wait for a concurrency slot and a rate token, in FIFO order.

        Args:
            timeout: Seconds to wait before giving up (None waits forever).

        Returns:
            RequestTicket for one outbound call.

        Raises:
            UpstreamError: kind ``rate_limit_timeout`` when ``timeout`` elapses.
            ValueError: If timeout is negative.
        """
        if timeout is not None and timeout < 0:
            raise ValueError("timeout must be >= 0")

        self._waiting += 1
        started = self._clock()
        try:
            if timeout is None:
                ticket = await self._admit()
            else:
                ticket = await asyncio.wait_for(self._admit(), timeout)
        except asyncio.TimeoutError:
            self._timeouts += 1
            logger.warning(
                "rate_limit.timeout",
                extra={
                    "timeout_s": timeout,
                    "outstanding": len(self._outstanding),
                    "waiting": self._waiting - 1,
                },
            )
            raise UpstreamError(
                UpstreamErrorKind.RATE_LIMIT_TIMEOUT,
                "admission_timeout",
                details={"timeout_s": timeout},
            ) from None
        finally:
            self._waiting -= 1

        logger.debug(
            "rate_limit.granted",
            extra={
                "ticket_id": ticket.ticket_id,
                "outstanding": len(self._outstanding),
                "wait_ms": round((ticket.granted_at - started) * 1000, 2),
            },
        )
        return ticket

    def release(self, ticket: RequestTicket) -> None:
        """Return a ticket's concurrency slot.

        Releasing an unknown or already-released ticket is ignored so a slot
        can never be returned twice.
        """
        if ticket.ticket_id not in self._outstanding:
            logger.debug("rate_limit.release_ignored", extra={"ticket_id": ticket.ticket_id})
            return

        self._outstanding.discard(ticket.ticket_id)
        self._slots.release()

    def stats(self) -> dict[str, int | float]:
        """Return current admission metrics."""
        self._expire_grants(self._clock())
        return {
            "requests_per_second": self._rate,
            "max_concurrency": self._max_concurrency,
            "window_seconds": self._window,
            "outstanding": len(self._outstanding),
            "waiting": self._waiting,
            "window_grants": len(self._grants),
            "total_grants": self._total_grants,
            "timeouts": self._timeouts,
        }

    async def _admit(self) -> RequestTicket:
        async with self._queue_lock:
            await self._slots.acquire()
            try:
                granted_at = await self._take_token()
            except BaseException:
                # Cancelled while waiting for a token: hand the slot back.
                self._slots.release()
                raise

            ticket = RequestTicket(ticket_id=next(self._ids), granted_at=granted_at)
            self._outstanding.add(ticket.ticket_id)
            self._total_grants += 1
            return ticket

    async def _take_token(self) -> float:
        while True:
            now = self._clock()
            self._expire_grants(now)
            if len(self._grants) < self._rate:
                self._grants.append(now)
                return now

            delay = self._grants[0] + self._window - now
            logger.debug(
                "rate_limit.throttled",
                extra={"wait_s": round(delay, 4), "window_grants": len(self._grants)},
            )
            await self._sleep(max(delay, _MIN_SLEEP_SECONDS))

    def _expire_grants(self, now: float) -> None:
        # A token taken at t is usable again from t + window onwards.
        while self._grants and self._grants[0] + self._window <= now:
            self._grants.popleft()
