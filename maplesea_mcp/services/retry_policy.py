"""Retry/backoff policy for upstream calls.

Attempt outcomes are tagged once at the transport boundary
(``classify_transport_error``); the policy only looks at the tag.
"""

from __future__ import annotations

import asyncio
import logging
import random
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Union

from maplesea_mcp.adapters.http.base import TransportError
from maplesea_mcp.core.errors import UpstreamErrorKind

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Success:
    payload: dict[str, Any]


@dataclass(frozen=True)
class RetryableFailure:
    """Transient failure: HTTP 429, 5xx, timeout or connection error."""

    reason: str
    kind: UpstreamErrorKind
    status_code: int | None = None
    suggested_delay: float | None = None
    upstream_code: str | None = None


@dataclass(frozen=True)
class FatalFailure:
    """Terminal failure; ``exhausted`` is set when retries ran out."""

    reason: str
    kind: UpstreamErrorKind
    status_code: int | None = None
    attempts: int = 1
    exhausted: bool = False
    upstream_code: str | None = None


AttemptOutcome = Union[Success, RetryableFailure, FatalFailure]


def classify_transport_error(exc: TransportError) -> RetryableFailure | FatalFailure:
    """Map a transport failure onto a retry decision."""
    if exc.network:
        return RetryableFailure(
            reason=exc.message,
            kind=UpstreamErrorKind.TRANSPORT_FAILURE,
        )

    if exc.malformed:
        return FatalFailure(
            reason=exc.message,
            kind=UpstreamErrorKind.FATAL_UPSTREAM_FAILURE,
            status_code=exc.status_code,
        )

    status = exc.status_code
    if status is not None and (status == 429 or status >= 500):
        return RetryableFailure(
            reason=exc.message,
            kind=UpstreamErrorKind.RETRYABLE_UPSTREAM_FAILURE,
            status_code=status,
            suggested_delay=exc.retry_after,
            upstream_code=exc.upstream_code,
        )

    return FatalFailure(
        reason=exc.message,
        kind=UpstreamErrorKind.FATAL_UPSTREAM_FAILURE,
        status_code=status,
        upstream_code=exc.upstream_code,
    )


class RetryPolicy:
    """Bounded exponential backoff with jitter.

    Attempts of one logical call run strictly one after another. A
    ``Retry-After`` hint from the server replaces the computed delay for that
    attempt; both are capped at ``max_delay_seconds``.
    """

    def __init__(
        self,
        *,
        max_attempts: int = 4,
        base_delay_seconds: float = 1.5,
        max_delay_seconds: float = 45.0,
        jitter_ratio: float = 0.1,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
        rng: Callable[[], float] = random.random,
    ) -> None:
        if max_attempts < 1:
            raise ValueError("max_attempts must be >= 1")
        if base_delay_seconds < 0 or max_delay_seconds < 0:
            raise ValueError("delays must be >= 0")
        if not 0 <= jitter_ratio <= 1:
            raise ValueError("jitter_ratio must be between 0 and 1")

        self.max_attempts = max_attempts
        self.base_delay_seconds = base_delay_seconds
        self.max_delay_seconds = max_delay_seconds
        self.jitter_ratio = jitter_ratio
        self._sleep = sleep
        self._rng = rng

    def compute_delay(self, attempt: int, suggested_delay: float | None = None) -> float:
        """Delay to wait after failed attempt number ``attempt`` (1-based)."""
        if suggested_delay is not None:
            return min(max(suggested_delay, 0.0), self.max_delay_seconds)

        delay = min(self.max_delay_seconds, self.base_delay_seconds * 2 ** (attempt - 1))
        delay += delay * self.jitter_ratio * self._rng()
        return min(delay, self.max_delay_seconds)

    async def execute(
        self,
        attempt_fn: Callable[[int], Awaitable[AttemptOutcome]],
    ) -> Success | FatalFailure:
        """Run ``attempt_fn`` until it succeeds, fails fatally or runs out of attempts.

        Args:
            attempt_fn: Performs one attempt; receives the 1-based attempt number.

        Returns:
            The ``Success``, or a ``FatalFailure`` (``exhausted=True`` when the
            last outcome was still retryable).
        """
        attempt = 0
        while True:
            attempt += 1
            outcome = await attempt_fn(attempt)

            if isinstance(outcome, Success):
                return outcome

            if isinstance(outcome, FatalFailure):
                if outcome.attempts == attempt:
                    return outcome
                return FatalFailure(
                    reason=outcome.reason,
                    kind=outcome.kind,
                    status_code=outcome.status_code,
                    attempts=attempt,
                    exhausted=outcome.exhausted,
                    upstream_code=outcome.upstream_code,
                )

            if attempt >= self.max_attempts:
                logger.warning(
                    "retry.exhausted",
                    extra={
                        "attempts": attempt,
                        "reason": outcome.reason,
                        "status_code": outcome.status_code,
                    },
                )
                return FatalFailure(
                    reason=outcome.reason,
                    kind=outcome.kind,
                    status_code=outcome.status_code,
                    attempts=attempt,
                    exhausted=True,
                    upstream_code=outcome.upstream_code,
                )

            delay = self.compute_delay(attempt, outcome.suggested_delay)
            logger.info(
                "retry.scheduled",
                extra={
                    "attempt": attempt,
                    "delay_s": round(delay, 3),
                    "reason": outcome.reason,
                    "status_code": outcome.status_code,
                },
            )
            await self._sleep(delay)
