"""Tests for sensitive data filtering and handler selection in logs."""

from __future__ import annotations

import json
import logging
import logging.handlers
import sys
from io import StringIO

import pytest

from maplesea_mcp.core.config import LogSettings
from maplesea_mcp.core.logging import (
    JsonFormatter,
    SensitiveDataFilter,
    _build_handler,
    clear_request_id,
    set_request_id,
)


@pytest.fixture
def capture():
    """Logger writing JSON through the redaction filter into a buffer."""

    def _make(name: str) -> tuple[logging.Logger, StringIO]:
        logger = logging.getLogger(name)
        logger.setLevel(logging.INFO)
        logger.handlers.clear()
        logger.propagate = False

        stream = StringIO()
        handler = logging.StreamHandler(stream)
        handler.addFilter(SensitiveDataFilter())
        handler.setFormatter(JsonFormatter())
        logger.addHandler(handler)
        return logger, stream

    return _make


def test_sensitive_filter_redacts_api_keys(capture):
    logger, stream = capture("test_redaction")

    logger.info(
        "transport.configured",
        extra={
            "nexon_api_key": "live_0123456789",
            "api_key": "another-secret",
            "safe_field": "visible",
        },
    )

    output = stream.getvalue()
    assert "live_0123456789" not in output
    assert "another-secret" not in output
    assert "[REDACTED]" in output
    assert "visible" in output


def test_sensitive_filter_redacts_upstream_key_header(capture):
    logger, stream = capture("test_headers")

    logger.info(
        "upstream.request",
        extra={
            "headers": {
                "x-nxopen-api-key": "live_secret",
                "User-Agent": "maplesea-mcp/1.0.0",
            },
        },
    )

    output = stream.getvalue()
    assert "live_secret" not in output
    assert "maplesea-mcp/1.0.0" in output


def test_sensitive_filter_allows_access_layer_fields(capture):
    logger, stream = capture("test_safe_fields")

    logger.info(
        "upstream.failed",
        extra={
            "endpoint": "character.basic",
            "kind": "retryable_upstream_failure",
            "status_code": 503,
            "attempts": 4,
        },
    )

    record = json.loads(stream.getvalue())
    assert record["message"] == "upstream.failed"
    assert record["endpoint"] == "character.basic"
    assert record["attempts"] == 4
    assert "[REDACTED]" not in stream.getvalue()


def test_request_id_from_context_is_attached(capture):
    logger, stream = capture("test_request_id")

    set_request_id("req-123")
    try:
        logger.info("tool.completed", extra={"tool": "health_check"})
    finally:
        clear_request_id()

    assert json.loads(stream.getvalue())["request_id"] == "req-123"


def test_default_handler_writes_to_stderr():
    handler = _build_handler(LogSettings(output="stderr"))

    assert isinstance(handler, logging.StreamHandler)
    assert handler.stream is sys.stderr


def test_file_handler_rotates(tmp_path):
    target = tmp_path / "logs" / "server.log"

    handler = _build_handler(LogSettings(output="file", file_path=str(target), max_bytes=1024))
    try:
        assert isinstance(handler, logging.handlers.RotatingFileHandler)
        assert target.parent.is_dir()
    finally:
        handler.close()
