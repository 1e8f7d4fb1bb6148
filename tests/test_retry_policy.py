"""Unit tests for retry classification and backoff."""

import pytest

from maplesea_mcp.adapters.http.base import TransportError
from maplesea_mcp.core.errors import UpstreamErrorKind
from maplesea_mcp.services.retry_policy import (
    FatalFailure,
    RetryableFailure,
    RetryPolicy,
    Success,
    classify_transport_error,
)


def _policy(recording_sleep, **overrides) -> RetryPolicy:
    kwargs = {
        "max_attempts": 4,
        "base_delay_seconds": 1.5,
        "max_delay_seconds": 45.0,
        "jitter_ratio": 0.0,
        "sleep": recording_sleep,
    }
    kwargs.update(overrides)
    return RetryPolicy(**kwargs)


def _scripted(outcomes):
    calls: list[int] = []

    async def attempt(attempt_no: int):
        calls.append(attempt_no)
        return outcomes[min(len(calls), len(outcomes)) - 1]

    return attempt, calls


SERVER_ERROR = RetryableFailure(
    reason="http_503",
    kind=UpstreamErrorKind.RETRYABLE_UPSTREAM_FAILURE,
    status_code=503,
)


class TestClassification:
    @pytest.mark.parametrize("status", [429, 500, 502, 503, 504])
    def test_throttling_and_server_errors_are_retryable(self, status: int) -> None:
        outcome = classify_transport_error(TransportError("x", status_code=status, retry_after=2.0))

        assert isinstance(outcome, RetryableFailure)
        assert outcome.kind is UpstreamErrorKind.RETRYABLE_UPSTREAM_FAILURE
        assert outcome.suggested_delay == 2.0

    @pytest.mark.parametrize("status", [400, 403, 404])
    def test_client_errors_are_fatal(self, status: int) -> None:
        outcome = classify_transport_error(
            TransportError("Please input valid parameter", status_code=status, upstream_code="OPENAPI00004")
        )

        assert isinstance(outcome, FatalFailure)
        assert outcome.kind is UpstreamErrorKind.FATAL_UPSTREAM_FAILURE
        assert outcome.status_code == status
        assert outcome.upstream_code == "OPENAPI00004"

    def test_network_failures_are_retryable_transport_failures(self) -> None:
        outcome = classify_transport_error(TransportError("timeout", network=True, timeout=True))

        assert isinstance(outcome, RetryableFailure)
        assert outcome.kind is UpstreamErrorKind.TRANSPORT_FAILURE

    def test_malformed_body_is_fatal(self) -> None:
        outcome = classify_transport_error(TransportError("invalid_json", status_code=200, malformed=True))

        assert isinstance(outcome, FatalFailure)


class TestBackoff:
    def test_delay_doubles_and_is_capped(self, recording_sleep) -> None:
        policy = _policy(recording_sleep, max_delay_seconds=10.0)

        assert policy.compute_delay(1) == 1.5
        assert policy.compute_delay(2) == 3.0
        assert policy.compute_delay(3) == 6.0
        assert policy.compute_delay(4) == 10.0

    def test_jitter_is_bounded_by_ratio(self, recording_sleep) -> None:
        policy = _policy(recording_sleep, jitter_ratio=0.5, rng=lambda: 1.0)

        assert policy.compute_delay(1) == 2.25

    def test_suggested_delay_overrides_backoff_and_is_capped(self, recording_sleep) -> None:
        policy = _policy(recording_sleep)

        assert policy.compute_delay(1, suggested_delay=7.0) == 7.0
        assert policy.compute_delay(1, suggested_delay=120.0) == 45.0


class TestExecute:
    @pytest.mark.asyncio
    @pytest.mark.parametrize("failures", [0, 1, 2, 3])
    async def test_succeeds_when_failures_below_max_attempts(self, recording_sleep, failures: int) -> None:
        policy = _policy(recording_sleep)
        attempt, calls = _scripted([SERVER_ERROR] * failures + [Success({"ok": True})])

        outcome = await policy.execute(attempt)

        assert outcome == Success({"ok": True})
        assert calls == list(range(1, failures + 2))
        assert recording_sleep.delays == [1.5, 3.0, 6.0][:failures]

    @pytest.mark.asyncio
    async def test_exhausts_after_max_attempts(self, recording_sleep) -> None:
        policy = _policy(recording_sleep)
        attempt, calls = _scripted([SERVER_ERROR])

        outcome = await policy.execute(attempt)

        assert isinstance(outcome, FatalFailure)
        assert outcome.exhausted is True
        assert outcome.attempts == 4
        assert outcome.kind is UpstreamErrorKind.RETRYABLE_UPSTREAM_FAILURE
        assert outcome.status_code == 503
        assert calls == [1, 2, 3, 4]
        assert len(recording_sleep.delays) == 3

    @pytest.mark.asyncio
    async def test_exhausted_network_failure_keeps_transport_kind(self, recording_sleep) -> None:
        policy = _policy(recording_sleep, max_attempts=2)
        network = RetryableFailure(reason="network_error", kind=UpstreamErrorKind.TRANSPORT_FAILURE)
        attempt, _ = _scripted([network])

        outcome = await policy.execute(attempt)

        assert isinstance(outcome, FatalFailure)
        assert outcome.kind is UpstreamErrorKind.TRANSPORT_FAILURE

    @pytest.mark.asyncio
    async def test_fatal_failure_returns_without_sleeping(self, recording_sleep) -> None:
        policy = _policy(recording_sleep)
        fatal = FatalFailure(
            reason="Please input valid parameter",
            kind=UpstreamErrorKind.FATAL_UPSTREAM_FAILURE,
            status_code=400,
        )
        attempt, calls = _scripted([fatal])

        outcome = await policy.execute(attempt)

        assert outcome is fatal
        assert calls == [1]
        assert recording_sleep.delays == []

    @pytest.mark.asyncio
    async def test_fatal_after_retry_reports_attempt_count(self, recording_sleep) -> None:
        policy = _policy(recording_sleep)
        fatal = FatalFailure(reason="bad", kind=UpstreamErrorKind.FATAL_UPSTREAM_FAILURE, status_code=400)
        attempt, _ = _scripted([SERVER_ERROR, fatal])

        outcome = await policy.execute(attempt)

        assert isinstance(outcome, FatalFailure)
        assert outcome.attempts == 2
        assert outcome.exhausted is False

    @pytest.mark.asyncio
    async def test_retry_after_takes_precedence(self, recording_sleep) -> None:
        policy = _policy(recording_sleep)
        throttled = RetryableFailure(
            reason="Too Many Requests",
            kind=UpstreamErrorKind.RETRYABLE_UPSTREAM_FAILURE,
            status_code=429,
            suggested_delay=8.0,
        )
        attempt, _ = _scripted([throttled, Success({})])

        await policy.execute(attempt)

        assert recording_sleep.delays == [8.0]


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": 0},
        {"base_delay_seconds": -1},
        {"jitter_ratio": 1.5},
    ],
)
def test_invalid_constructor_args(kwargs: dict) -> None:
    with pytest.raises(ValueError):
        RetryPolicy(**kwargs)
