"""MCP stdio server exposing the tool registry.

stdout carries JSON-RPC protocol messages; all logging goes to stderr (see
``maplesea_mcp.core.logging``).
"""

from __future__ import annotations

import json
import logging
import uuid
from typing import Any

import mcp.types as types
from mcp.server import Server
from mcp.server.fastmcp.exceptions import ToolError
from mcp.server.stdio import stdio_server

from maplesea_mcp.api.tools import ToolContext, ToolRegistry, build_registry, build_tool_context
from maplesea_mcp.core.config import Settings, settings
from maplesea_mcp.core.errors import AppError
from maplesea_mcp.core.exception_handlers import error_payload, internal_error_payload
from maplesea_mcp.core.logging import clear_request_id, set_request_id

logger = logging.getLogger(__name__)


def to_mcp_tool(tool: Any) -> types.Tool:
    return types.Tool(
        name=tool.name,
        description=tool.description,
        inputSchema=tool.input_schema(),
    )


async def dispatch(
    registry: ToolRegistry,
    context: ToolContext,
    name: str,
    arguments: dict[str, Any] | None,
) -> list[types.TextContent]:
    """Run one tool call and render the result as JSON text content.

    Raises:
        ToolError: With a JSON ``{"error": {...}}`` body for every failure, so
            the SDK marks the result ``isError``.
    """
    set_request_id(str(uuid.uuid4()))
    try:
        result = await registry.invoke(name, arguments, context)
    except AppError as exc:
        raise ToolError(json.dumps(error_payload(exc), default=str)) from exc
    except Exception as exc:
        logger.error(
            "unhandled_exception",
            extra={"tool": name, "error_type": type(exc).__name__, "error_msg": str(exc)},
        )
        raise ToolError(json.dumps(internal_error_payload())) from exc
    finally:
        clear_request_id()

    return [types.TextContent(type="text", text=json.dumps(result, default=str, ensure_ascii=False))]


def create_mcp_server(
    context: ToolContext,
    registry: ToolRegistry | None = None,
    cfg: Settings | None = None,
) -> Server:
    """Build a low-level MCP server whose tools come from the registry."""
    cfg = cfg or settings
    registry = registry or build_registry()
    server: Server = Server(cfg.app.name, version=cfg.app.version)

    @server.list_tools()
    async def list_tools() -> list[types.Tool]:
        return [to_mcp_tool(tool) for tool in registry.list_tools()]

    @server.call_tool()
    async def call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        return await dispatch(registry, context, name, arguments)

    return server


async def run_stdio(cfg: Settings | None = None) -> None:
    """Serve MCP over stdin/stdout until the client disconnects."""
    cfg = cfg or settings
    context = build_tool_context(cfg)
    server = create_mcp_server(context, cfg=cfg)

    logger.info("mcp.starting", extra={"server_name": cfg.app.name, "version": cfg.app.version})
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await context.service.aclose()
        logger.info("mcp.stopped")
