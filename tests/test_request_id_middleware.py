from __future__ import annotations

from unittest.mock import MagicMock

import pytest
from fastapi.testclient import TestClient

from maplesea_mcp.api.tools import ToolContext
from maplesea_mcp.core.app_factory import create_app


@pytest.fixture
def client() -> TestClient:
    context = ToolContext(service=MagicMock(), ranking=MagicMock())
    return TestClient(create_app(tool_context=context))


def test_preserves_incoming_request_id_header(client: TestClient):
    incoming_id = "test-request-id-123"
    resp = client.get("/health", headers={"X-Request-ID": incoming_id})

    assert resp.status_code == 200
    assert resp.headers.get("X-Request-ID") == incoming_id


def test_generates_request_id_when_missing(client: TestClient):
    resp = client.get("/health")

    assert resp.status_code == 200
    generated = resp.headers.get("X-Request-ID")
    assert generated
    assert resp.headers.get("X-Request-Duration-ms") is not None


def test_error_body_carries_request_id(client: TestClient):
    resp = client.post("/v1/tools/unknown_tool", json={}, headers={"X-Request-ID": "req-err"})

    assert resp.status_code == 404
    assert resp.json()["error"]["request_id"] == "req-err"
    assert resp.headers.get("X-Request-ID") == "req-err"
