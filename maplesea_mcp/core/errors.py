"""Application-level exception types.

This module defines domain errors used across services/adapters, enabling
consistent error handling, logging, and tool/HTTP error payloads.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any, NotRequired, TypedDict


class ErrorDetails(TypedDict, total=False):
    """Structured error context for observability and clients.

    Fields are optional to keep backward compatibility while encouraging
    consistent shapes across the codebase.
    """

    code: str
    message: str
    hint: str
    field: str
    min_value: int
    max_value: int
    actual_value: Any
    endpoint: str
    status_code: int
    upstream_code: str
    attempts: int
    retry_after: float
    timeout_s: float
    row: int
    tool: str
    request_id: str
    context: NotRequired[dict[str, Any]]


@dataclass
class AppError(Exception):
    """Base error for application/domain failures.

    Attributes:
        code: Stable, machine-readable error code.
        message: Short error message (upstream's own text or a reason token).
        details: Optional structured details for debugging/observability.
    """

    code: str
    message: str
    details: ErrorDetails | None = None

    def __post_init__(self) -> None:
        # Populate Exception args so str(error) is useful in logs/tracebacks.
        super().__init__(self.message)


class ValidationAppError(AppError):
    """Raised when tool input or domain argument validation fails."""


class ConfigurationAppError(AppError):
    """Raised when required configuration is missing or inconsistent."""


class ToolNotFoundError(AppError):
    """Raised when a caller invokes a tool name that is not registered."""


class UpstreamErrorKind(str, Enum):
    """Terminal failure classes surfaced by the API access layer."""

    RATE_LIMIT_TIMEOUT = "rate_limit_timeout"
    RETRYABLE_UPSTREAM_FAILURE = "retryable_upstream_failure"
    FATAL_UPSTREAM_FAILURE = "fatal_upstream_failure"
    TRANSPORT_FAILURE = "transport_failure"


class UpstreamError(AppError):
    """Single error shape for every terminal upstream failure.

    The ``kind`` is the classification; ``code`` mirrors ``kind.value`` so
    generic AppError handling keeps working.
    """

    def __init__(
        self,
        kind: UpstreamErrorKind,
        message: str,
        details: ErrorDetails | None = None,
    ) -> None:
        self.kind = kind
        super().__init__(code=kind.value, message=message, details=details)

    @property
    def status_code(self) -> int | None:
        """Upstream HTTP status of the last attempt, when there was one."""
        if not self.details:
            return None
        return self.details.get("status_code")
