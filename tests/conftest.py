"""Pytest configuration and fixtures shared across all test modules.

This file is automatically loaded by pytest before running any tests.
It seeds the environment before settings are imported and provides fakes
for the upstream transport and the time sources.
"""

import asyncio
import os
from typing import Any, Callable

# CRITICAL: Set this before any imports that might load settings
os.environ["APP_ENV"] = "testing"

# Set default env vars that all tests might need
os.environ.setdefault("NEXON_API_KEY", "test-nexon-key")
os.environ.setdefault("LOG_LEVEL", "WARNING")

import pytest

from maplesea_mcp.adapters.http.base import AbstractTransport, TransportError
from maplesea_mcp.adapters.rate_limit import InMemoryRateLimiter
from maplesea_mcp.core.config import CacheSettings
from maplesea_mcp.services.nexon_api_service import NexonApiService
from maplesea_mcp.services.retry_policy import RetryPolicy
from maplesea_mcp.utils.simple_cache import SimpleTTLCache


class FakeTransport(AbstractTransport):
    """Scripted transport: ``routes`` maps a path suffix to a list of outcomes.

    Each outcome is either a payload dict or a TransportError to raise. The
    last outcome of a route repeats once the list is exhausted.
    """

    def __init__(self, routes: dict[str, list[Any]] | None = None) -> None:
        self.routes = routes or {}
        self.calls: list[tuple[str, str, dict[str, Any]]] = []
        self.closed = False

    async def call(self, method, path, params=None):
        self.calls.append((method, path, dict(params or {})))
        for suffix, outcomes in self.routes.items():
            if path.endswith(suffix):
                outcome = outcomes.pop(0) if len(outcomes) > 1 else outcomes[0]
                if callable(outcome):
                    outcome = outcome(dict(params or {}))
                if isinstance(outcome, TransportError):
                    raise outcome
                return outcome
        raise TransportError("Not Found", status_code=404, upstream_code="OPENAPI00003")

    async def aclose(self) -> None:
        self.closed = True

    def paths(self) -> list[str]:
        return [path for _, path, _ in self.calls]


class RecordingSleep:
    """Async sleep replacement that records delays without waiting."""

    def __init__(self) -> None:
        self.delays: list[float] = []

    async def __call__(self, delay: float) -> None:
        self.delays.append(delay)
        await asyncio.sleep(0)


class FakeClock:
    """Manual monotonic clock whose sleep advances time instantly."""

    def __init__(self, start: float = 0.0) -> None:
        self.now = start
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        self.sleeps.append(delay)
        self.now += delay
        await asyncio.sleep(0)


@pytest.fixture
def fake_clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def recording_sleep() -> RecordingSleep:
    return RecordingSleep()


@pytest.fixture
def make_service(
    recording_sleep: RecordingSleep,
) -> Callable[..., NexonApiService]:
    """Build a NexonApiService around a fake transport with instant retries."""

    def _factory(
        transport: AbstractTransport,
        *,
        requests_per_second: int = 100,
        max_concurrency: int = 10,
        max_attempts: int = 4,
        queue_timeout_seconds: float | None = 5.0,
    ) -> NexonApiService:
        return NexonApiService(
            transport=transport,
            limiter=InMemoryRateLimiter(
                requests_per_second=requests_per_second,
                max_concurrency=max_concurrency,
            ),
            cache=SimpleTTLCache(default_ttl_seconds=300, max_entries=None),
            retry_policy=RetryPolicy(
                max_attempts=max_attempts,
                base_delay_seconds=1.5,
                max_delay_seconds=45.0,
                jitter_ratio=0.0,
                sleep=recording_sleep,
            ),
            cache_settings=CacheSettings(),
            queue_timeout_seconds=queue_timeout_seconds,
        )

    return _factory
