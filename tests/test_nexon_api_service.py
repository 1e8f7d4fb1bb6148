"""Tests for the API access layer (cache + limiter + retry orchestration)."""

import asyncio

import pytest

from maplesea_mcp.adapters.http.base import TransportError
from maplesea_mcp.core.errors import UpstreamError, UpstreamErrorKind
from maplesea_mcp.services.nexon_api_service import FULL_INFO_ENDPOINTS
from maplesea_mcp.utils import simple_cache

OCID_PATH = "/id"
BASIC_PATH = "/character/basic"


class FakeTime:
    def __init__(self, start: float = 1_000.0) -> None:
        self.current = start

    def time(self) -> float:
        return self.current


def _basic(name: str = "Mapler") -> dict:
    return {"character_name": name, "world_name": "Aquila", "character_level": 250}


@pytest.mark.asyncio
async def test_cache_hit_skips_limiter_and_transport(fake_transport, make_service) -> None:
    fake_transport.routes = {BASIC_PATH: [_basic()]}
    service = make_service(fake_transport)

    first = await service.request("character.basic", {"ocid": "abc"})
    second = await service.request("character.basic", {"ocid": "abc"})

    assert first == second == _basic()
    assert len(fake_transport.calls) == 1
    assert service.limiter_stats()["total_grants"] == 1
    assert service.cache_stats()["hits"] == 1


@pytest.mark.asyncio
async def test_use_cache_false_always_calls_upstream(fake_transport, make_service) -> None:
    fake_transport.routes = {BASIC_PATH: [_basic()]}
    service = make_service(fake_transport)

    await service.request("character.basic", {"ocid": "abc"}, use_cache=False)
    await service.request("character.basic", {"ocid": "abc"}, use_cache=False)

    assert len(fake_transport.calls) == 2
    assert service.cache_stats()["entries"] == 0


@pytest.mark.asyncio
async def test_endpoint_ttl_is_applied(fake_transport, make_service, monkeypatch) -> None:
    clock = FakeTime()
    monkeypatch.setattr(simple_cache, "time", clock)
    fake_transport.routes = {OCID_PATH: [{"ocid": "abc"}]}
    service = make_service(fake_transport)

    await service.get_character_ocid("Mapler")
    clock.current += 7200
    await service.get_character_ocid("Mapler")
    assert len(fake_transport.calls) == 1

    clock.current += 1
    await service.get_character_ocid("Mapler")
    assert len(fake_transport.calls) == 2


@pytest.mark.asyncio
async def test_retryable_failure_then_success(fake_transport, make_service, recording_sleep) -> None:
    fake_transport.routes = {
        BASIC_PATH: [TransportError("http_503", status_code=503), _basic()],
    }
    service = make_service(fake_transport)

    payload = await service.request("character.basic", {"ocid": "abc"})

    assert payload == _basic()
    assert len(fake_transport.calls) == 2
    assert recording_sleep.delays == [1.5]
    # each attempt took its own ticket and returned it
    stats = service.limiter_stats()
    assert stats["total_grants"] == 2
    assert stats["outstanding"] == 0


@pytest.mark.asyncio
async def test_exhausted_retries_raise_retryable_kind(fake_transport, make_service) -> None:
    fake_transport.routes = {BASIC_PATH: [TransportError("http_500", status_code=500)]}
    service = make_service(fake_transport)

    with pytest.raises(UpstreamError) as exc_info:
        await service.request("character.basic", {"ocid": "abc"})

    exc = exc_info.value
    assert exc.kind is UpstreamErrorKind.RETRYABLE_UPSTREAM_FAILURE
    assert exc.code == "retryable_upstream_failure"
    assert exc.details["attempts"] == 4
    assert exc.details["endpoint"] == "character.basic"
    assert len(fake_transport.calls) == 4
    assert service.limiter_stats()["outstanding"] == 0


@pytest.mark.asyncio
async def test_fatal_failure_is_not_retried_or_cached(fake_transport, make_service, recording_sleep) -> None:
    fake_transport.routes = {
        BASIC_PATH: [
            TransportError(
                "Please input valid parameter",
                status_code=400,
                upstream_code="OPENAPI00004",
            )
        ]
    }
    service = make_service(fake_transport)

    for _ in range(2):
        with pytest.raises(UpstreamError) as exc_info:
            await service.request("character.basic", {"ocid": "bad"})

    exc = exc_info.value
    assert exc.kind is UpstreamErrorKind.FATAL_UPSTREAM_FAILURE
    assert exc.message == "Please input valid parameter"
    assert exc.status_code == 400
    assert exc.details["upstream_code"] == "OPENAPI00004"
    assert len(fake_transport.calls) == 2
    assert recording_sleep.delays == []
    assert service.limiter_stats()["outstanding"] == 0


@pytest.mark.asyncio
async def test_missing_required_field_is_fatal(fake_transport, make_service) -> None:
    fake_transport.routes = {OCID_PATH: [{"unexpected": True}]}
    service = make_service(fake_transport)

    with pytest.raises(UpstreamError) as exc_info:
        await service.get_character_ocid("Mapler")

    assert exc_info.value.kind is UpstreamErrorKind.FATAL_UPSTREAM_FAILURE
    assert exc_info.value.message == "missing_required_fields"
    assert service.cache_stats()["entries"] == 0


@pytest.mark.asyncio
async def test_network_failure_exhausts_as_transport_failure(fake_transport, make_service) -> None:
    fake_transport.routes = {BASIC_PATH: [TransportError("network_error", network=True)]}
    service = make_service(fake_transport, max_attempts=2)

    with pytest.raises(UpstreamError) as exc_info:
        await service.request("character.basic", {"ocid": "abc"})

    assert exc_info.value.kind is UpstreamErrorKind.TRANSPORT_FAILURE


@pytest.mark.asyncio
async def test_admission_timeout_surfaces_with_endpoint(fake_transport, make_service) -> None:
    fake_transport.routes = {BASIC_PATH: [_basic()]}
    service = make_service(fake_transport, max_concurrency=1)
    held = await service.limiter.acquire()

    with pytest.raises(UpstreamError) as exc_info:
        await service.request("character.basic", {"ocid": "abc"}, timeout=0.02)

    assert exc_info.value.kind is UpstreamErrorKind.RATE_LIMIT_TIMEOUT
    assert exc_info.value.details["endpoint"] == "character.basic"
    assert fake_transport.calls == []
    service.limiter.release(held)


@pytest.mark.asyncio
async def test_unknown_endpoint_raises_key_error(fake_transport, make_service) -> None:
    service = make_service(fake_transport)

    with pytest.raises(KeyError):
        await service.request("character.unknown")


@pytest.mark.asyncio
async def test_character_by_name_resolves_ocid_first(fake_transport, make_service) -> None:
    fake_transport.routes = {OCID_PATH: [{"ocid": "abc"}], BASIC_PATH: [_basic()]}
    service = make_service(fake_transport)

    result = await service.get_character_by_name("Mapler", "character.basic", "2024-01-01")

    assert result == {"ocid": "abc", "data": _basic()}
    assert fake_transport.calls[0][2] == {"character_name": "Mapler"}
    assert fake_transport.calls[1][2] == {"ocid": "abc", "date": "2024-01-01"}


@pytest.mark.asyncio
async def test_full_info_fetches_details_concurrently(fake_transport, make_service) -> None:
    in_flight = 0
    peak = 0

    class SlowTransport(type(fake_transport)):
        async def call(self, method, path, params=None):
            nonlocal in_flight, peak
            in_flight += 1
            peak = max(peak, in_flight)
            await asyncio.sleep(0.01)
            in_flight -= 1
            return await super().call(method, path, params)

    transport = SlowTransport(
        {
            OCID_PATH: [{"ocid": "abc"}],
            BASIC_PATH: [_basic()],
            "/character/popularity": [{"popularity": 12}],
            "/character/stat": [{"final_stat": []}],
            "/character/hyper-stat": [{"use_preset_no": "1"}],
            "/character/propensity": [{"charisma_level": 100}],
            "/character/ability": [{"ability_grade": "Legendary"}],
            "/character/item-equipment": [{"item_equipment": []}],
            "/character/symbol-equipment": [{"symbol": []}],
        }
    )
    service = make_service(transport)

    info = await service.get_character_full_info("Mapler")

    assert info["ocid"] == "abc"
    assert info["basic"] == _basic()
    assert info["popularity"] == {"popularity": 12}
    assert info["ability"] == {"ability_grade": "Legendary"}
    assert transport.paths().count("/maplestorysea/v1/id") == 1
    assert peak > 1


@pytest.mark.asyncio
async def test_guild_full_info(fake_transport, make_service) -> None:
    fake_transport.routes = {
        "/guild/id": [{"oguild_id": "g1"}],
        "/guild/basic": [{"guild_name": "Maple", "guild_level": 25}],
    }
    service = make_service(fake_transport)

    info = await service.get_guild_full_info("Maple", "Aquila")

    assert info == {"oguild_id": "g1", "basic": {"guild_name": "Maple", "guild_level": 25}}
    assert fake_transport.calls[0][2] == {"guild_name": "Maple", "world_name": "Aquila"}


@pytest.mark.asyncio
async def test_health_check_reports_healthy(fake_transport, make_service) -> None:
    fake_transport.routes = {"/ranking/overall": [{"ranking": []}]}
    service = make_service(fake_transport)

    report = await service.health_check()

    assert report.status == "healthy"
    assert report.reachable is True
    assert report.endpoint == "ranking.overall"
    assert fake_transport.calls[0][2] == {"page": 1}


@pytest.mark.asyncio
async def test_health_check_single_attempt_never_raises(fake_transport, make_service, recording_sleep) -> None:
    fake_transport.routes = {"/ranking/overall": [TransportError("http_503", status_code=503)]}
    service = make_service(fake_transport)

    report = await service.health_check()
    await service.health_check()

    assert report.status == "unhealthy"
    assert report.error_kind == "retryable_upstream_failure"
    # no retries and no caching
    assert len(fake_transport.calls) == 2
    assert recording_sleep.delays == []


@pytest.mark.asyncio
async def test_health_check_reports_admission_timeout(fake_transport, make_service) -> None:
    service = make_service(fake_transport, max_concurrency=1)
    held = await service.limiter.acquire()

    report = await service.health_check(timeout=0.01)

    assert report.status == "unhealthy"
    assert report.error_kind == "rate_limit_timeout"
    service.limiter.release(held)


@pytest.mark.asyncio
async def test_aclose_closes_transport(fake_transport, make_service) -> None:
    service = make_service(fake_transport)

    await service.aclose()

    assert fake_transport.closed is True


@pytest.mark.asyncio
async def test_full_info_failure_cancels_sibling_calls(fake_transport, make_service) -> None:
    cancelled: list[str] = []

    class StallingTransport(type(fake_transport)):
        async def call(self, method, path, params=None):
            if path.endswith(BASIC_PATH):
                # fail only once every sibling is in flight
                await asyncio.sleep(0.05)
            if path.endswith(OCID_PATH) or path.endswith(BASIC_PATH):
                return await super().call(method, path, params)
            try:
                await asyncio.sleep(10)
            except asyncio.CancelledError:
                cancelled.append(path)
                raise
            return {}

    transport = StallingTransport(
        {
            OCID_PATH: [{"ocid": "abc"}],
            BASIC_PATH: [TransportError("Not Found", status_code=404)],
        }
    )
    service = make_service(transport)

    with pytest.raises(UpstreamError) as exc_info:
        await asyncio.wait_for(service.get_character_full_info("Mapler"), timeout=5)

    assert exc_info.value.kind is UpstreamErrorKind.FATAL_UPSTREAM_FAILURE
    assert exc_info.value.details["endpoint"] == "character.basic"
    assert len(cancelled) == len(FULL_INFO_ENDPOINTS) - 1
    assert service.limiter_stats()["outstanding"] == 0


@pytest.mark.asyncio
async def test_union_with_raider_failure_cancels_sibling(fake_transport, make_service) -> None:
    cancelled: list[str] = []

    class StallingTransport(type(fake_transport)):
        async def call(self, method, path, params=None):
            if path.endswith("/user/union-raider"):
                try:
                    await asyncio.sleep(10)
                except asyncio.CancelledError:
                    cancelled.append(path)
                    raise
            elif path.endswith("/user/union"):
                await asyncio.sleep(0.05)
            return await super().call(method, path, params)

    transport = StallingTransport(
        {
            OCID_PATH: [{"ocid": "abc"}],
            "/user/union": [TransportError("bad", status_code=400)],
        }
    )
    service = make_service(transport)

    with pytest.raises(UpstreamError):
        await asyncio.wait_for(
            service.get_union_by_name("Mapler", include_raider=True), timeout=5
        )

    assert cancelled == ["/maplestorysea/v1/user/union-raider"]
