"""Structured logging for the MCP and HTTP surfaces.

Every record is rendered as one JSON object carrying the event name as
``message`` plus whatever was passed via ``extra`` (endpoint id, attempt,
status code, tool name...). A correlation id set per HTTP request or per MCP
tool call is attached from a context variable.

Logs go to stderr by default: on the MCP stdio transport stdout carries
protocol messages and must stay clean. The upstream API key and similar
secrets are redacted wherever they appear in structured fields.
"""

from __future__ import annotations

import json
import logging
import sys
from contextvars import ContextVar
from datetime import datetime, timezone
from logging import LogRecord
from logging.handlers import RotatingFileHandler
from pathlib import Path
from typing import Any, Iterable, Mapping

from maplesea_mcp.core.config import LogSettings, settings

REDACTED = "[REDACTED]"

_request_id_var: ContextVar[str | None] = ContextVar("request_id", default=None)

# Field names whose values never reach a log sink (compared lower-cased)
SENSITIVE_KEYS_DEFAULT: frozenset[str] = frozenset(
    {
        "api_key",
        "nexon_api_key",
        "x-nxopen-api-key",
        "x-api-key",
        "authorization",
        "cookie",
        "set-cookie",
        "token",
        "secret",
        "password",
    }
)

# Built-in LogRecord attributes that are not structured extras
_RECORD_ATTRS = frozenset(
    vars(logging.LogRecord("", logging.INFO, "", 0, "", None, None)).keys()
) | {"message", "asctime", "taskName"}


def set_request_id(request_id: str | None) -> None:
    """Bind a correlation id to the current context (request or tool call)."""
    _request_id_var.set(request_id)


def get_request_id() -> str | None:
    return _request_id_var.get()


def clear_request_id() -> None:
    _request_id_var.set(None)


class Redactor:
    """Replace values of sensitive keys, recursing into mappings and sequences."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        keys = SENSITIVE_KEYS_DEFAULT if sensitive_keys is None else sensitive_keys
        self.sensitive_keys = frozenset(key.lower() for key in keys)

    def is_sensitive(self, key: Any) -> bool:
        return isinstance(key, str) and key.lower() in self.sensitive_keys

    def redact(self, value: Any) -> Any:
        if isinstance(value, Mapping):
            return {
                key: REDACTED if self.is_sensitive(key) else self.redact(item)
                for key, item in value.items()
            }
        if isinstance(value, (list, tuple)):
            return type(value)(self.redact(item) for item in value)
        return value

    def extras(self, record: LogRecord) -> dict[str, Any]:
        """Return the structured extras of a record, redacted."""
        return {
            key: REDACTED if self.is_sensitive(key) else self.redact(value)
            for key, value in record.__dict__.items()
            if key not in _RECORD_ATTRS and not key.startswith("_")
        }


class RequestIdFilter(logging.Filter):
    """Attach the context correlation id when the record has none."""

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        if getattr(record, "request_id", None) is None:
            request_id = get_request_id()
            if request_id:
                record.request_id = request_id
        return True


class SensitiveDataFilter(logging.Filter):
    """Redact sensitive extras in place, for formatters that read them raw."""

    def __init__(self, sensitive_keys: Iterable[str] | None = None) -> None:
        super().__init__()
        self.redactor = Redactor(sensitive_keys)

    def filter(self, record: LogRecord) -> bool:  # noqa: D401
        for key, value in self.redactor.extras(record).items():
            setattr(record, key, value)
        return True


class JsonFormatter(logging.Formatter):
    """One JSON object per record: timestamp, level, logger, event, extras."""

    def __init__(
        self,
        *,
        sensitive_keys: Iterable[str] | None = None,
        ensure_ascii: bool = True,
    ) -> None:
        super().__init__()
        self.redactor = Redactor(sensitive_keys)
        self.ensure_ascii = ensure_ascii

    def format(self, record: LogRecord) -> str:  # noqa: D401
        data: dict[str, Any] = {
            "timestamp": datetime.now(timezone.utc).isoformat(),
            "level": record.levelname.lower(),
            "logger": record.name,
            "message": record.getMessage(),
        }
        request_id = getattr(record, "request_id", None) or get_request_id()
        if request_id:
            data["request_id"] = request_id
        data.update(self.redactor.extras(record))
        if record.exc_info:
            data["exc_type"] = record.exc_info[0].__name__ if record.exc_info[0] else None
        return json.dumps(data, default=str, ensure_ascii=self.ensure_ascii)


def _build_handler(log_settings: LogSettings) -> logging.Handler:
    """Pick the sink: stderr (default), stdout, or a (rotating) file."""
    output = log_settings.output.lower()

    if output == "file":
        file_path = Path(log_settings.file_path or "logs/maplesea-mcp.log")
        file_path.parent.mkdir(parents=True, exist_ok=True)
        if log_settings.max_bytes:
            return RotatingFileHandler(
                file_path,
                maxBytes=log_settings.max_bytes,
                backupCount=log_settings.backup_count,
                encoding="utf-8",
            )
        return logging.FileHandler(file_path, encoding="utf-8")

    if output == "stdout":
        return logging.StreamHandler(sys.stdout)
    return logging.StreamHandler(sys.stderr)


def configure_logging(log_settings: LogSettings | None = None) -> None:
    """Install a single redacting handler on the root logger.

    Safe to call more than once; previous root handlers are replaced.
    """
    cfg = log_settings or settings.log
    level = getattr(logging, cfg.level.upper(), logging.INFO)

    handler = _build_handler(cfg)
    handler.addFilter(RequestIdFilter())
    handler.addFilter(SensitiveDataFilter())
    if cfg.format.lower() == "plain":
        handler.setFormatter(logging.Formatter("%(asctime)s %(levelname)s %(name)s %(message)s"))
    else:
        handler.setFormatter(JsonFormatter())

    root_logger = logging.getLogger()
    root_logger.handlers.clear()
    root_logger.addHandler(handler)
    root_logger.setLevel(level)

    logging.getLogger("uvicorn").propagate = False
    logging.getLogger("uvicorn.access").propagate = False

    # httpx logs every request at INFO with the full URL; upstream.response covers it
    logging.getLogger("httpx").setLevel(max(level, logging.WARNING))
