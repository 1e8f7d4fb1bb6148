"""Tool registry shared by the MCP and HTTP surfaces."""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import Any, Awaitable, Callable, Mapping

from pydantic import BaseModel, ValidationError

from maplesea_mcp.core.errors import ToolNotFoundError, ValidationAppError
from maplesea_mcp.services.nexon_api_service import NexonApiService
from maplesea_mcp.services.ranking_search import RankingSearch

logger = logging.getLogger(__name__)


@dataclass
class ToolContext:
    """Dependencies handed to every tool handler."""

    service: NexonApiService
    ranking: RankingSearch


ToolHandler = Callable[[ToolContext, Any], Awaitable[dict[str, Any]]]


@dataclass(frozen=True)
class Tool:
    name: str
    description: str
    input_model: type[BaseModel]
    handler: ToolHandler

    def input_schema(self) -> dict[str, Any]:
        return self.input_model.model_json_schema()

    def describe(self) -> dict[str, Any]:
        return {
            "name": self.name,
            "description": self.description,
            "input_schema": self.input_schema(),
        }


@dataclass
class ToolRegistry:
    """Name-indexed collection of tools with argument validation."""

    tools: dict[str, Tool] = field(default_factory=dict)

    def register(self, tool: Tool) -> None:
        if tool.name in self.tools:
            raise ValueError(f"Tool already registered: {tool.name}")
        self.tools[tool.name] = tool

    def get(self, name: str) -> Tool:
        """Look up a tool.

        Raises:
            ToolNotFoundError: If no tool has that name.
        """
        try:
            return self.tools[name]
        except KeyError:
            raise ToolNotFoundError(
                code="unknown_tool",
                message=name,
                details={"tool": name},
            ) from None

    def list_tools(self) -> list[Tool]:
        return list(self.tools.values())

    def validate(self, tool: Tool, arguments: Mapping[str, Any] | None) -> BaseModel:
        """Parse raw arguments with the tool's input model.

        Raises:
            ValidationAppError: If arguments do not satisfy the model.
        """
        try:
            return tool.input_model.model_validate(dict(arguments or {}))
        except ValidationError as exc:
            errors = exc.errors(include_url=False, include_context=False, include_input=False)
            first = errors[0] if errors else {}
            location = ".".join(str(part) for part in first.get("loc", ()))
            raise ValidationAppError(
                code="invalid_arguments",
                message=first.get("msg", "invalid arguments"),
                details={
                    "tool": tool.name,
                    "field": location,
                    "context": {"errors": errors},
                },
            ) from None

    async def invoke(
        self,
        name: str,
        arguments: Mapping[str, Any] | None,
        context: ToolContext,
    ) -> dict[str, Any]:
        """Validate arguments and run one tool.

        Raises:
            ToolNotFoundError: Unknown tool name.
            ValidationAppError: Invalid arguments.
            UpstreamError: Terminal upstream failure.
        """
        tool = self.get(name)
        params = self.validate(tool, arguments)

        start = time.perf_counter()
        try:
            result = await tool.handler(context, params)
        except Exception as exc:
            logger.warning(
                "tool.failed",
                extra={
                    "tool": name,
                    "error_type": type(exc).__name__,
                    "duration_ms": round((time.perf_counter() - start) * 1000, 2),
                },
            )
            raise

        logger.info(
            "tool.completed",
            extra={"tool": name, "duration_ms": round((time.perf_counter() - start) * 1000, 2)},
        )
        return result
