"""Guild lookup tools."""

from __future__ import annotations

from typing import Any, get_args

from maplesea_mcp.api.tools.character import pick
from maplesea_mcp.api.tools.registry import Tool, ToolContext
from maplesea_mcp.schemas.tools import GuildInput, GuildSearchInput, World
from maplesea_mcp.services.guild_search import search_guilds as run_guild_search


async def get_guild_info(ctx: ToolContext, params: GuildInput) -> dict[str, Any]:
    info = await ctx.service.get_guild_full_info(
        params.guild_name, params.world_name, params.date
    )
    basic = info["basic"]
    members = basic.get("guild_member") or []
    return {
        "oguild_id": info["oguild_id"],
        **pick(
            basic,
            "guild_name",
            "world_name",
            "guild_level",
            "guild_fame",
            "guild_point",
            "guild_master_name",
            "guild_member_count",
            "guild_mark",
            "date",
        ),
        "members": members,
        "skills": [
            pick(skill, "skill_name", "skill_level", "skill_effect")
            for skill in basic.get("guild_skill") or []
        ],
        "noblesse_skills": [
            pick(skill, "skill_name", "skill_level", "skill_effect")
            for skill in basic.get("guild_noblesse_skill") or []
        ],
    }


async def search_guilds(ctx: ToolContext, params: GuildSearchInput) -> dict[str, Any]:
    worlds = [params.world_name] if params.world_name else list(get_args(World))
    matches = await run_guild_search(
        ctx.service,
        params.guild_name,
        worlds,
        max_results=params.max_results,
        include_details=params.include_details,
    )
    return {
        "search_term": params.guild_name,
        "world_name": params.world_name or "all",
        "count": len(matches),
        "results": [match.model_dump(exclude_none=True) for match in matches],
    }


TOOLS = [
    Tool(
        name="get_guild_info",
        description="Guild level, fame, master, members and skills for a guild in one world.",
        input_model=GuildInput,
        handler=get_guild_info,
    ),
    Tool(
        name="search_guilds",
        description="Find guilds whose names resemble a search term, best match first.",
        input_model=GuildSearchInput,
        handler=search_guilds,
    ),
]
