"""Pydantic schema for the upstream health report."""

from typing import Literal

from pydantic import BaseModel, Field


class HealthReport(BaseModel):
    """Result of one lightweight probe against the upstream API."""

    status: Literal["healthy", "unhealthy"] = Field(
        ...,
        description="Overall verdict for the upstream dependency.",
    )
    reachable: bool = Field(..., description="True when the probe got a usable answer.")
    timestamp: str = Field(..., description="UTC ISO-8601 time the probe finished.")
    latency_ms: float | None = Field(
        default=None,
        description="Round-trip time of the probe, including admission wait.",
    )
    endpoint: str = Field(..., description="Endpoint id that was probed.")
    error_kind: str | None = Field(
        default=None,
        description="Failure classification when unhealthy.",
    )
    error_message: str | None = Field(
        default=None,
        description="Upstream message or reason token when unhealthy.",
    )
