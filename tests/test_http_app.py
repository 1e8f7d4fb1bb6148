"""Tests for the HTTP surface built around a fake tool context."""

from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi.testclient import TestClient

from maplesea_mcp.api.tools import ToolContext
from maplesea_mcp.core.app_factory import create_app
from maplesea_mcp.core.errors import UpstreamError, UpstreamErrorKind
from maplesea_mcp.schemas.health import HealthReport


@pytest.fixture
def context() -> ToolContext:
    return ToolContext(service=MagicMock(), ranking=MagicMock())


@pytest.fixture
def client(context: ToolContext) -> TestClient:
    return TestClient(create_app(tool_context=context), raise_server_exceptions=False)


def test_liveness_does_not_touch_upstream(client: TestClient, context: ToolContext) -> None:
    context.service.health_check = AsyncMock()

    resp = client.get("/health")

    assert resp.status_code == 200
    assert resp.json() == {"status": "ok"}
    context.service.health_check.assert_not_awaited()


def test_upstream_health_returns_report(client: TestClient, context: ToolContext) -> None:
    context.service.health_check = AsyncMock(
        return_value=HealthReport(
            status="unhealthy",
            reachable=False,
            timestamp="2024-01-01T00:00:00+00:00",
            latency_ms=3.2,
            endpoint="ranking.overall",
            error_kind="transport_failure",
            error_message="timeout",
        )
    )

    resp = client.get("/health/upstream")

    assert resp.status_code == 200
    assert resp.json()["status"] == "unhealthy"
    assert resp.json()["error_kind"] == "transport_failure"


def test_lists_tools_with_schemas(client: TestClient) -> None:
    resp = client.get("/v1/tools")

    assert resp.status_code == 200
    tools = {tool["name"]: tool for tool in resp.json()["tools"]}
    assert len(tools) == 15
    assert "character_name" in tools["get_character_basic_info"]["input_schema"]["properties"]


def test_invokes_tool(client: TestClient, context: ToolContext) -> None:
    context.service.get_union_ranking = AsyncMock(
        return_value={"ranking": [{"ranking": 1, "character_name": "Top", "union_level": 9000}]}
    )

    resp = client.post("/v1/tools/get_union_ranking", json={"page": 2})

    assert resp.status_code == 200
    body = resp.json()
    assert body["tool"] == "get_union_ranking"
    assert body["result"]["page"] == 2
    assert body["result"]["ranking"][0]["union_level"] == 9000


def test_invalid_arguments_return_400(client: TestClient) -> None:
    resp = client.post("/v1/tools/get_overall_ranking", json={"page": 500})

    assert resp.status_code == 400
    assert resp.json()["error"]["code"] == "invalid_arguments"
    assert resp.json()["error"]["details"]["field"] == "page"


def test_tool_without_body_uses_defaults(client: TestClient, context: ToolContext) -> None:
    context.service.get_overall_ranking = AsyncMock(return_value={"ranking": []})

    resp = client.post("/v1/tools/get_overall_ranking")

    assert resp.status_code == 200
    assert resp.json()["result"] == {"page": 1, "count": 0, "ranking": []}


def test_upstream_error_maps_to_status(client: TestClient, context: ToolContext) -> None:
    context.service.get_guild_full_info = AsyncMock(
        side_effect=UpstreamError(
            UpstreamErrorKind.TRANSPORT_FAILURE,
            "timeout",
            {"endpoint": "guild.id", "attempts": 4},
        )
    )

    resp = client.post(
        "/v1/tools/get_guild_info", json={"guild_name": "Maple", "world_name": "Aquila"}
    )

    assert resp.status_code == 504
    assert resp.json()["error"]["code"] == "transport_failure"


def test_unexpected_error_is_generic_500(client: TestClient, context: ToolContext) -> None:
    context.service.health_check = AsyncMock(side_effect=RuntimeError("internal detail"))

    resp = client.post("/v1/tools/health_check", json={})

    assert resp.status_code == 500
    assert resp.json()["error"]["code"] == "internal_server_error"
    assert "internal detail" not in resp.text
