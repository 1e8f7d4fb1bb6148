from __future__ import annotations

from fastapi import APIRouter, Request

from maplesea_mcp.schemas.health import HealthReport

router = APIRouter(tags=["Health"])


@router.get("/health")
def health_check() -> dict:
    """Liveness probe.

    Answers without touching the upstream API, so load balancers can poll it
    freely.

    Returns:
        dict: A dictionary with a single "status" key set to "ok".
    """

    return {"status": "ok"}


@router.get("/health/upstream", response_model=HealthReport)
async def upstream_health(request: Request) -> HealthReport:
    """Probe the NEXON Open API once (bypasses cache and retries)."""

    return await request.app.state.tool_context.service.health_check()
