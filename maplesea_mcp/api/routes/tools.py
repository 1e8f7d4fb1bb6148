from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Body, Request

router = APIRouter(tags=["Tools"])


@router.get("/tools")
def list_tools(request: Request) -> dict[str, Any]:
    """List every tool with its description and JSON input schema."""

    registry = request.app.state.registry
    return {"tools": [tool.describe() for tool in registry.list_tools()]}


@router.post("/tools/{name}")
async def call_tool(
    name: str,
    request: Request,
    arguments: dict[str, Any] | None = Body(default=None),
) -> dict[str, Any]:
    """Invoke one tool.

    The body is the tool's argument object. Errors are mapped to HTTP status
    codes by the global exception handlers.
    """

    registry = request.app.state.registry
    result = await registry.invoke(name, arguments, request.app.state.tool_context)
    return {"tool": name, "result": result}
