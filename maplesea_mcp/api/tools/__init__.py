from __future__ import annotations

from maplesea_mcp.api.tools import character, guild, health, ranking, union
from maplesea_mcp.api.tools.registry import Tool, ToolContext, ToolRegistry
from maplesea_mcp.core.config import Settings, settings
from maplesea_mcp.services.nexon_api_service import build_service
from maplesea_mcp.services.ranking_search import RankingSearch


def build_registry() -> ToolRegistry:
    """Create a registry holding every tool."""
    registry = ToolRegistry()
    for module in (health, character, guild, ranking, union):
        for tool in module.TOOLS:
            registry.register(tool)
    return registry


def build_tool_context(cfg: Settings | None = None) -> ToolContext:
    """Wire the API access layer and ranking search from settings.

    Raises:
        ConfigurationAppError: If the API key is missing.
    """
    cfg = cfg or settings
    service = build_service(cfg)
    return ToolContext(service=service, ranking=RankingSearch(service, cfg.ranking))


__all__ = ["Tool", "ToolContext", "ToolRegistry", "build_registry", "build_tool_context"]
