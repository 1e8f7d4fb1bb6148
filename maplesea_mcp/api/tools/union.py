"""Union (legion) tools."""

from __future__ import annotations

from typing import Any

from maplesea_mcp.api.tools.character import pick
from maplesea_mcp.api.tools.registry import Tool, ToolContext
from maplesea_mcp.schemas.tools import UnionInput, UnionRaiderInput


async def get_union_info(ctx: ToolContext, params: UnionInput) -> dict[str, Any]:
    info = await ctx.service.get_union_by_name(params.character_name, params.date)
    result: dict[str, Any] = {
        "ocid": info["ocid"],
        "character_name": params.character_name,
        **pick(
            info["union"],
            "union_level",
            "union_grade",
            "union_artifact_level",
            "union_artifact_exp",
            "union_artifact_point",
            "date",
        ),
    }
    if params.include_artifact:
        artifact = await ctx.service.get_union_artifact(info["ocid"], params.date)
        result["artifact"] = pick(
            artifact,
            "union_artifact_effect",
            "union_artifact_crystal",
            "union_artifact_remain_ap",
        )
    return result


async def get_union_raider(ctx: ToolContext, params: UnionRaiderInput) -> dict[str, Any]:
    info = await ctx.service.get_union_by_name(
        params.character_name, params.date, include_raider=True
    )
    raider = info["raider"]
    return {
        "ocid": info["ocid"],
        "character_name": params.character_name,
        "union_level": info["union"].get("union_level"),
        "raider_stats": raider.get("union_raider_stat") or [],
        "occupied_stats": raider.get("union_occupied_stat") or [],
        "blocks": [
            pick(block, "block_type", "block_class", "block_level")
            for block in raider.get("union_block") or []
        ],
        "date": raider.get("date"),
    }


TOOLS = [
    Tool(
        name="get_union_info",
        description="Union level, grade and artifact level of the account owning a character.",
        input_model=UnionInput,
        handler=get_union_info,
    ),
    Tool(
        name="get_union_raider",
        description="Union raider board: placed blocks and the stats they grant.",
        input_model=UnionRaiderInput,
        handler=get_union_raider,
    ),
]
