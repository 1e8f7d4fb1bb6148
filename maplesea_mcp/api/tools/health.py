from __future__ import annotations

from typing import Any

from maplesea_mcp.api.tools.registry import Tool, ToolContext
from maplesea_mcp.schemas.tools import EmptyInput


async def health_check(ctx: ToolContext, params: EmptyInput) -> dict[str, Any]:
    report = await ctx.service.health_check()
    return {
        **report.model_dump(),
        "cache": ctx.service.cache_stats(),
        "rate_limit": ctx.service.limiter_stats(),
    }


TOOLS = [
    Tool(
        name="health_check",
        description="Check that the NEXON Open API is reachable and report cache/limiter state.",
        input_model=EmptyInput,
        handler=health_check,
    ),
]
