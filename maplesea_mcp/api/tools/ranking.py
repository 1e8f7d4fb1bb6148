"""Leaderboard tools."""

from __future__ import annotations

from typing import Any

from maplesea_mcp.api.tools.registry import Tool, ToolContext
from maplesea_mcp.schemas.ranking import GuildRankingEntry, RankingEntry, RankingSearchResult
from maplesea_mcp.schemas.tools import (
    FindCharacterRankingInput,
    FindGuildRankingInput,
    GuildRankingInput,
    OverallRankingInput,
    UnionRankingInput,
)
from maplesea_mcp.services.ranking_search import iter_entries


def _union_row(row: dict[str, Any]) -> dict[str, Any]:
    return {
        "rank": row.get("ranking"),
        "name": row.get("character_name"),
        "world": row.get("world_name"),
        "class_name": row.get("class_name"),
        "union_level": row.get("union_level"),
        "union_power": row.get("union_power"),
    }


def _search_result(result: RankingSearchResult) -> dict[str, Any]:
    return result.model_dump(mode="json")


async def get_overall_ranking(ctx: ToolContext, params: OverallRankingInput) -> dict[str, Any]:
    payload = await ctx.service.get_overall_ranking(
        world_name=params.world_name,
        class_name=params.class_name,
        page=params.page,
        date=params.date,
    )
    entries = list(iter_entries(payload, RankingEntry.from_upstream, "ranking.overall"))
    return {
        "page": params.page,
        "count": len(entries),
        "ranking": [entry.model_dump() for entry in entries],
    }


async def get_guild_ranking(ctx: ToolContext, params: GuildRankingInput) -> dict[str, Any]:
    payload = await ctx.service.get_guild_ranking(
        world_name=params.world_name,
        ranking_type=params.ranking_type,
        page=params.page,
        date=params.date,
    )
    entries = list(iter_entries(payload, GuildRankingEntry.from_upstream, "ranking.guild"))
    return {
        "page": params.page,
        "ranking_type": params.ranking_type,
        "count": len(entries),
        "ranking": [entry.model_dump() for entry in entries],
    }


async def get_union_ranking(ctx: ToolContext, params: UnionRankingInput) -> dict[str, Any]:
    payload = await ctx.service.get_union_ranking(
        world_name=params.world_name,
        page=params.page,
        date=params.date,
    )
    rows = list(iter_entries(payload, _union_row, "ranking.union"))
    return {"page": params.page, "count": len(rows), "ranking": rows}


async def find_character_ranking(
    ctx: ToolContext, params: FindCharacterRankingInput
) -> dict[str, Any]:
    result = await ctx.ranking.find_position(
        params.character_name,
        world=params.world_name,
        class_filter=params.class_name,
        max_pages=params.max_pages,
        date=params.date,
    )
    return _search_result(result)


async def find_guild_ranking(ctx: ToolContext, params: FindGuildRankingInput) -> dict[str, Any]:
    result = await ctx.ranking.find_guild_position(
        params.guild_name,
        params.world_name,
        ranking_type=params.ranking_type,
        max_pages=params.max_pages,
        date=params.date,
    )
    return _search_result(result)


TOOLS = [
    Tool(
        name="get_overall_ranking",
        description="One page of the overall level leaderboard, optionally per world or class.",
        input_model=OverallRankingInput,
        handler=get_overall_ranking,
    ),
    Tool(
        name="get_guild_ranking",
        description="One page of a world's guild leaderboard (Flag Race or Guild Power).",
        input_model=GuildRankingInput,
        handler=get_guild_ranking,
    ),
    Tool(
        name="get_union_ranking",
        description="One page of the union (legion) leaderboard.",
        input_model=UnionRankingInput,
        handler=get_union_ranking,
    ),
    Tool(
        name="find_character_ranking",
        description="Scan the overall leaderboard page by page for a character's position.",
        input_model=FindCharacterRankingInput,
        handler=find_character_ranking,
    ),
    Tool(
        name="find_guild_ranking",
        description="Scan a world's guild leaderboard page by page for a guild's position.",
        input_model=FindGuildRankingInput,
        handler=find_guild_ranking,
    ),
]
