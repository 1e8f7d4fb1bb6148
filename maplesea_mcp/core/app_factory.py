"""Application factory for the FastAPI app.

Centralizes app construction (metadata, lifespan, middleware, handlers,
routers) so tests can build an app around a fake tool context.
"""

from __future__ import annotations

from contextlib import asynccontextmanager
from typing import AsyncIterator

from fastapi import FastAPI

from maplesea_mcp.api.routes import health_router, tools_router
from maplesea_mcp.api.tools import ToolContext, ToolRegistry, build_registry, build_tool_context
from maplesea_mcp.core.config import settings
from maplesea_mcp.core.exception_handlers import setup_exception_handlers
from maplesea_mcp.core.logging import configure_logging
from maplesea_mcp.core.middleware import request_id_middleware


def create_app(
    tool_context: ToolContext | None = None,
    registry: ToolRegistry | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application instance.

    Args:
        tool_context: Pre-built dependencies; when omitted they are wired from
            settings at startup and closed at shutdown.
        registry: Tool registry (defaults to every tool).

    Returns:
        Configured FastAPI app with middleware, handlers and routers.
    """
    # Logging first so subsequent init logs are formatted as desired
    configure_logging(settings.log)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        owned = tool_context is None
        app.state.tool_context = tool_context or build_tool_context(settings)
        try:
            yield
        finally:
            if owned:
                await app.state.tool_context.service.aclose()

    app = FastAPI(
        title="MapleStory SEA MCP Server",
        description=(
            "Request/response tools over the NEXON MapleStory SEA Open API: "
            "characters, guilds, unions and leaderboards. Every upstream call "
            "is cached, rate limited and retried."
        ),
        version=settings.app.version,
        lifespan=lifespan,
    )
    app.state.registry = registry or build_registry()
    if tool_context is not None:
        app.state.tool_context = tool_context

    # Middleware
    app.middleware("http")(request_id_middleware)

    # Exception handlers
    setup_exception_handlers(app)

    # Routers
    app.include_router(tools_router, prefix="/v1")
    app.include_router(health_router)

    return app
