"""API access layer for the NEXON MapleStory SEA Open API.

Every tool funnels through ``NexonApiService.request``, which:
- Serves fresh cached payloads without touching the limiter or the network
- Runs attempts under the retry policy on a miss
- Acquires a limiter ticket for each attempt (retries never bypass the limiter)
- Checks successful payloads for the endpoint's required fields
- Caches successful payloads with the endpoint's TTL
"""

from __future__ import annotations

import asyncio
import logging
import time
from datetime import datetime, timezone
from typing import Any, Coroutine, Mapping, TypeVar

from maplesea_mcp.adapters.http.base import AbstractTransport, TransportError
from maplesea_mcp.adapters.http.factory import create_transport
from maplesea_mcp.adapters.rate_limit import AbstractRateLimiter, InMemoryRateLimiter
from maplesea_mcp.core.config import CacheSettings, Settings, settings
from maplesea_mcp.core.endpoints import get_endpoint
from maplesea_mcp.core.errors import ErrorDetails, UpstreamError, UpstreamErrorKind
from maplesea_mcp.schemas.health import HealthReport
from maplesea_mcp.services.retry_policy import (
    AttemptOutcome,
    FatalFailure,
    RetryPolicy,
    Success,
    classify_transport_error,
)
from maplesea_mcp.utils.simple_cache import SimpleTTLCache, build_cache_key

logger = logging.getLogger(__name__)

HEALTH_CHECK_ENDPOINT = "ranking.overall"

T = TypeVar("T")

# Detail endpoints fetched concurrently by get_character_full_info.
FULL_INFO_ENDPOINTS: tuple[str, ...] = (
    "character.basic",
    "character.popularity",
    "character.stat",
    "character.hyper_stat",
    "character.propensity",
    "character.ability",
    "character.item_equipment",
    "character.symbol_equipment",
)


async def run_all(*coros: Coroutine[Any, Any, T]) -> list[T]:
    """Await coroutines concurrently in a task group, results in argument order.

    The first failure cancels the siblings still running and is re-raised
    as itself rather than wrapped in an ExceptionGroup.
    """
    try:
        async with asyncio.TaskGroup() as group:
            tasks = [group.create_task(coro) for coro in coros]
    except BaseExceptionGroup as exc_group:
        raise exc_group.exceptions[0]
    return [task.result() for task in tasks]


class NexonApiService:
    """Cached, rate-limited, retrying client for the upstream API.

    The service owns its cache and limiter explicitly; nothing is shared
    through module-level singletons.

    Attributes:
        transport: Performs single raw upstream calls.
        limiter: Admission controller consulted once per attempt.
        cache: Response cache keyed by endpoint id and params.
        retry_policy: Backoff policy for transient failures.
        cache_settings: Source of per-endpoint TTLs.
        queue_timeout_seconds: Default admission timeout per attempt.
    """

    def __init__(
        self,
        transport: AbstractTransport,
        limiter: AbstractRateLimiter,
        cache: SimpleTTLCache,
        retry_policy: RetryPolicy,
        cache_settings: CacheSettings | None = None,
        queue_timeout_seconds: float | None = 30.0,
    ) -> None:
        self.transport = transport
        self.limiter = limiter
        self.cache = cache
        self.retry_policy = retry_policy
        self.cache_settings = cache_settings or CacheSettings()  # type: ignore[call-arg]
        self.queue_timeout_seconds = queue_timeout_seconds

    async def request(
        self,
        endpoint_id: str,
        params: Mapping[str, Any] | None = None,
        *,
        timeout: float | None = None,
        use_cache: bool = True,
    ) -> dict[str, Any]:
        """Fetch one endpoint through cache, limiter and retry policy.

        Args:
            endpoint_id: Catalogue id (e.g. ``character.basic``).
            params: Query parameters; ``None`` values are dropped.
            timeout: Admission timeout per attempt (defaults to the configured
                queue timeout).
            use_cache: Set False to bypass both cache read and write.

        Returns:
            dict[str, Any]: Decoded upstream payload.

        Raises:
            UpstreamError: On any terminal failure.
            KeyError: If ``endpoint_id`` is unknown.
        """
        endpoint = get_endpoint(endpoint_id)
        query = {k: v for k, v in (params or {}).items() if v is not None}
        cache_key = build_cache_key(endpoint_id, query)
        admission_timeout = self.queue_timeout_seconds if timeout is None else timeout

        if use_cache:
            cached = self.cache.get(cache_key)
            if cached is not None:
                return cached

        async def attempt(attempt_no: int) -> AttemptOutcome:
            try:
                async with self.limiter.ticket(admission_timeout):
                    logger.debug(
                        "upstream.request",
                        extra={"endpoint": endpoint_id, "attempt": attempt_no},
                    )
                    payload = await self.transport.call("GET", endpoint.path, query)
            except TransportError as exc:
                return classify_transport_error(exc)

            missing = [name for name in endpoint.required_fields if name not in payload]
            if missing:
                logger.warning(
                    "upstream.schema_violation",
                    extra={"endpoint": endpoint_id, "missing_fields": missing},
                )
                return FatalFailure(
                    reason="missing_required_fields",
                    kind=UpstreamErrorKind.FATAL_UPSTREAM_FAILURE,
                    attempts=attempt_no,
                )
            return Success(payload)

        try:
            outcome = await self.retry_policy.execute(attempt)
        except UpstreamError as exc:
            # Admission timeout raised by the limiter inside an attempt.
            if exc.details is None:
                exc.details = {}
            exc.details.setdefault("endpoint", endpoint_id)
            raise

        if isinstance(outcome, Success):
            if use_cache:
                self.cache.set(
                    cache_key,
                    outcome.payload,
                    ttl_seconds=self.cache_settings.ttl_for(endpoint_id),
                )
            return outcome.payload

        raise self._to_error(endpoint_id, outcome)

    @staticmethod
    def _to_error(endpoint_id: str, failure: FatalFailure) -> UpstreamError:
        details: ErrorDetails = {"endpoint": endpoint_id, "attempts": failure.attempts}
        if failure.status_code is not None:
            details["status_code"] = failure.status_code
        if failure.upstream_code:
            details["upstream_code"] = failure.upstream_code

        logger.warning(
            "upstream.failed",
            extra={
                "endpoint": endpoint_id,
                "kind": failure.kind.value,
                "status_code": failure.status_code,
                "attempts": failure.attempts,
                "exhausted": failure.exhausted,
            },
        )
        return UpstreamError(failure.kind, failure.reason, details)

    # --- Character -------------------------------------------------------

    async def get_character_ocid(self, character_name: str) -> str:
        payload = await self.request("character.ocid", {"character_name": character_name})
        return payload["ocid"]

    async def get_character_basic(self, ocid: str, date: str | None = None) -> dict[str, Any]:
        return await self.request("character.basic", {"ocid": ocid, "date": date})

    async def get_character_popularity(self, ocid: str, date: str | None = None) -> dict[str, Any]:
        return await self.request("character.popularity", {"ocid": ocid, "date": date})

    async def get_character_stat(self, ocid: str, date: str | None = None) -> dict[str, Any]:
        return await self.request("character.stat", {"ocid": ocid, "date": date})

    async def get_character_hyper_stat(self, ocid: str, date: str | None = None) -> dict[str, Any]:
        return await self.request("character.hyper_stat", {"ocid": ocid, "date": date})

    async def get_character_propensity(self, ocid: str, date: str | None = None) -> dict[str, Any]:
        return await self.request("character.propensity", {"ocid": ocid, "date": date})

    async def get_character_ability(self, ocid: str, date: str | None = None) -> dict[str, Any]:
        return await self.request("character.ability", {"ocid": ocid, "date": date})

    async def get_character_item_equipment(
        self, ocid: str, date: str | None = None
    ) -> dict[str, Any]:
        return await self.request("character.item_equipment", {"ocid": ocid, "date": date})

    async def get_character_symbol_equipment(
        self, ocid: str, date: str | None = None
    ) -> dict[str, Any]:
        return await self.request("character.symbol_equipment", {"ocid": ocid, "date": date})

    # --- Union -----------------------------------------------------------

    async def get_union_info(self, ocid: str, date: str | None = None) -> dict[str, Any]:
        return await self.request("union.basic", {"ocid": ocid, "date": date})

    async def get_union_raider(self, ocid: str, date: str | None = None) -> dict[str, Any]:
        return await self.request("union.raider", {"ocid": ocid, "date": date})

    async def get_union_artifact(self, ocid: str, date: str | None = None) -> dict[str, Any]:
        return await self.request("union.artifact", {"ocid": ocid, "date": date})

    # --- Guild -----------------------------------------------------------

    async def get_guild_id(self, guild_name: str, world_name: str) -> str:
        payload = await self.request(
            "guild.id", {"guild_name": guild_name, "world_name": world_name}
        )
        return payload["oguild_id"]

    async def get_guild_basic(self, oguild_id: str, date: str | None = None) -> dict[str, Any]:
        return await self.request("guild.basic", {"oguild_id": oguild_id, "date": date})

    # --- Rankings --------------------------------------------------------

    async def get_overall_ranking(
        self,
        world_name: str | None = None,
        world_type: str | None = None,
        class_name: str | None = None,
        ocid: str | None = None,
        page: int | None = None,
        date: str | None = None,
    ) -> dict[str, Any]:
        return await self.request(
            "ranking.overall",
            {
                "world_name": world_name,
                "world_type": world_type,
                "class": class_name,
                "ocid": ocid,
                "page": page,
                "date": date,
            },
        )

    async def get_union_ranking(
        self,
        world_name: str | None = None,
        ocid: str | None = None,
        page: int | None = None,
        date: str | None = None,
    ) -> dict[str, Any]:
        return await self.request(
            "ranking.union",
            {"world_name": world_name, "ocid": ocid, "page": page, "date": date},
        )

    async def get_guild_ranking(
        self,
        world_name: str,
        ranking_type: int,
        guild_name: str | None = None,
        page: int | None = None,
        date: str | None = None,
    ) -> dict[str, Any]:
        return await self.request(
            "ranking.guild",
            {
                "world_name": world_name,
                "ranking_type": ranking_type,
                "guild_name": guild_name,
                "page": page,
                "date": date,
            },
        )

    # --- Composed lookups ------------------------------------------------

    async def get_character_by_name(
        self,
        character_name: str,
        endpoint_id: str = "character.basic",
        date: str | None = None,
    ) -> dict[str, Any]:
        """Resolve a name to its ocid, then fetch one ocid-keyed endpoint.

        Returns:
            dict with ``ocid`` and ``data`` (the detail payload).
        """
        ocid = await self.get_character_ocid(character_name)
        data = await self.request(endpoint_id, {"ocid": ocid, "date": date})
        return {"ocid": ocid, "data": data}

    async def get_character_full_info(
        self, character_name: str, date: str | None = None
    ) -> dict[str, Any]:
        """Resolve the ocid, then fetch every detail endpoint concurrently.

        Each detail call is cached, limited and retried on its own; the first
        failure cancels the remaining calls and propagates.
        """
        ocid = await self.get_character_ocid(character_name)
        payloads = await run_all(
            *(
                self.request(endpoint_id, {"ocid": ocid, "date": date})
                for endpoint_id in FULL_INFO_ENDPOINTS
            )
        )
        result: dict[str, Any] = {"ocid": ocid}
        for endpoint_id, payload in zip(FULL_INFO_ENDPOINTS, payloads):
            result[endpoint_id.split(".", 1)[1]] = payload
        return result

    async def get_guild_full_info(
        self, guild_name: str, world_name: str, date: str | None = None
    ) -> dict[str, Any]:
        oguild_id = await self.get_guild_id(guild_name, world_name)
        basic = await self.get_guild_basic(oguild_id, date)
        return {"oguild_id": oguild_id, "basic": basic}

    async def get_union_by_name(
        self,
        character_name: str,
        date: str | None = None,
        include_raider: bool = False,
    ) -> dict[str, Any]:
        ocid = await self.get_character_ocid(character_name)
        if not include_raider:
            union = await self.get_union_info(ocid, date)
            return {"ocid": ocid, "union": union}

        union, raider = await run_all(
            self.get_union_info(ocid, date),
            self.get_union_raider(ocid, date),
        )
        return {"ocid": ocid, "union": union, "raider": raider}

    # --- Operations ------------------------------------------------------

    async def health_check(self, timeout: float | None = None) -> HealthReport:
        """Probe the upstream with one overall-ranking call.

        The probe bypasses cache and retries but still takes a limiter ticket.
        Failures are reported in the returned report, never raised.
        """
        endpoint = get_endpoint(HEALTH_CHECK_ENDPOINT)
        admission_timeout = self.queue_timeout_seconds if timeout is None else timeout
        error_kind: str | None = None
        error_message: str | None = None

        start = time.perf_counter()
        try:
            async with self.limiter.ticket(admission_timeout):
                await self.transport.call("GET", endpoint.path, {"page": 1})
        except TransportError as exc:
            failure = classify_transport_error(exc)
            error_kind = failure.kind.value
            error_message = failure.reason
        except UpstreamError as exc:
            error_kind = exc.kind.value
            error_message = exc.message
        latency_ms = round((time.perf_counter() - start) * 1000, 2)

        healthy = error_kind is None
        if not healthy:
            logger.error(
                "health_check.failed",
                extra={"error_kind": error_kind, "latency_ms": latency_ms},
            )

        return HealthReport(
            status="healthy" if healthy else "unhealthy",
            reachable=healthy,
            timestamp=datetime.now(timezone.utc).isoformat(),
            latency_ms=latency_ms,
            endpoint=HEALTH_CHECK_ENDPOINT,
            error_kind=error_kind,
            error_message=error_message,
        )

    def cache_stats(self) -> dict[str, Any]:
        return self.cache.stats()

    def limiter_stats(self) -> dict[str, Any]:
        return self.limiter.stats()

    async def aclose(self) -> None:
        await self.transport.aclose()


def build_service(cfg: Settings | None = None) -> NexonApiService:
    """Wire a service from settings.

    Raises:
        ConfigurationAppError: If the API key is missing.
    """
    cfg = cfg or settings
    transport = create_transport(cfg.nexon)
    limiter = InMemoryRateLimiter(
        requests_per_second=cfg.rate_limit.requests_per_second,
        max_concurrency=cfg.rate_limit.max_concurrency,
        window_seconds=cfg.rate_limit.window_seconds,
    )
    cache = SimpleTTLCache(
        default_ttl_seconds=cfg.cache.default_ttl_seconds,
        max_entries=cfg.cache.max_entries,
    )
    retry_policy = RetryPolicy(
        max_attempts=cfg.retry.max_attempts,
        base_delay_seconds=cfg.retry.base_delay_seconds,
        max_delay_seconds=cfg.retry.max_delay_seconds,
        jitter_ratio=cfg.retry.jitter_ratio,
    )
    return NexonApiService(
        transport=transport,
        limiter=limiter,
        cache=cache,
        retry_policy=retry_policy,
        cache_settings=cfg.cache,
        queue_timeout_seconds=cfg.rate_limit.queue_timeout_seconds,
    )
