"""Character lookup tools."""

from __future__ import annotations

from typing import Any

from maplesea_mcp.api.tools.registry import Tool, ToolContext
from maplesea_mcp.schemas.tools import CharacterEquipmentInput, CharacterInput
from maplesea_mcp.services.character_analysis import analyze_character
from maplesea_mcp.services.nexon_api_service import run_all


def pick(payload: dict[str, Any] | None, *keys: str) -> dict[str, Any]:
    """Copy the given keys out of an upstream payload, skipping absent ones."""
    if not payload:
        return {}
    return {key: payload[key] for key in keys if key in payload}


def reshape_basic(payload: dict[str, Any]) -> dict[str, Any]:
    return {
        "name": payload.get("character_name"),
        "world": payload.get("world_name"),
        "gender": payload.get("character_gender"),
        "class": payload.get("character_class"),
        "class_level": payload.get("character_class_level"),
        "level": payload.get("character_level"),
        "exp": payload.get("character_exp"),
        "exp_rate": payload.get("character_exp_rate"),
        "guild": payload.get("character_guild_name"),
        "image": payload.get("character_image"),
        "created": payload.get("character_date_create"),
        "date": payload.get("date"),
    }


def reshape_stat(payload: dict[str, Any]) -> dict[str, Any]:
    stats = {
        item.get("stat_name"): item.get("stat_value")
        for item in payload.get("final_stat") or []
        if item.get("stat_name")
    }
    return {
        "class": payload.get("character_class"),
        "remain_ap": payload.get("remain_ap"),
        "stats": stats,
        "date": payload.get("date"),
    }


def reshape_item(item: dict[str, Any]) -> dict[str, Any]:
    return pick(
        item,
        "item_equipment_slot",
        "item_name",
        "item_icon",
        "starforce",
        "potential_option_grade",
        "potential_option_1",
        "potential_option_2",
        "potential_option_3",
        "additional_potential_option_grade",
        "item_total_option",
    )


def reshape_symbol(symbol: dict[str, Any]) -> dict[str, Any]:
    return pick(symbol, "symbol_name", "symbol_level", "symbol_force", "symbol_growth_count")


async def get_character_basic_info(ctx: ToolContext, params: CharacterInput) -> dict[str, Any]:
    result = await ctx.service.get_character_by_name(
        params.character_name, "character.basic", params.date
    )
    return {"ocid": result["ocid"], **reshape_basic(result["data"])}


async def get_character_stats(ctx: ToolContext, params: CharacterInput) -> dict[str, Any]:
    ocid = await ctx.service.get_character_ocid(params.character_name)
    stat, hyper_stat = await run_all(
        ctx.service.get_character_stat(ocid, params.date),
        ctx.service.get_character_hyper_stat(ocid, params.date),
    )
    return {
        "ocid": ocid,
        "character_name": params.character_name,
        **reshape_stat(stat),
        "hyper_stat": pick(
            hyper_stat,
            "use_preset_no",
            "use_available_hyper_stat",
            "hyper_stat_preset_1",
            "hyper_stat_preset_1_remain_point",
        ),
    }


async def get_character_equipment(
    ctx: ToolContext, params: CharacterEquipmentInput
) -> dict[str, Any]:
    ocid = await ctx.service.get_character_ocid(params.character_name)
    equipment = await ctx.service.get_character_item_equipment(ocid, params.date)
    result: dict[str, Any] = {
        "ocid": ocid,
        "character_name": params.character_name,
        "items": [reshape_item(item) for item in equipment.get("item_equipment") or []],
        "date": equipment.get("date"),
    }
    if params.include_symbols:
        symbols = await ctx.service.get_character_symbol_equipment(ocid, params.date)
        result["symbols"] = [reshape_symbol(symbol) for symbol in symbols.get("symbol") or []]
    return result


def reshape_full_info(info: dict[str, Any]) -> dict[str, Any]:
    equipment = info["item_equipment"].get("item_equipment") or []
    symbols = info["symbol_equipment"].get("symbol") or []
    return {
        "ocid": info["ocid"],
        "basic": reshape_basic(info["basic"]),
        "popularity": info["popularity"].get("popularity"),
        "stat": reshape_stat(info["stat"]),
        "hyper_stat": pick(info["hyper_stat"], "use_preset_no", "hyper_stat_preset_1"),
        "propensity": pick(
            info["propensity"],
            "charisma_level",
            "sensibility_level",
            "insight_level",
            "willingness_level",
            "handicraft_level",
            "charm_level",
        ),
        "ability": pick(info["ability"], "ability_grade", "ability_info", "remain_fame"),
        "items": [reshape_item(item) for item in equipment],
        "symbols": [reshape_symbol(symbol) for symbol in symbols],
    }


async def get_character_full_info(ctx: ToolContext, params: CharacterInput) -> dict[str, Any]:
    info = await ctx.service.get_character_full_info(params.character_name, params.date)
    return reshape_full_info(info)


async def get_character_analysis(ctx: ToolContext, params: CharacterInput) -> dict[str, Any]:
    info = await ctx.service.get_character_full_info(params.character_name, params.date)
    analysis = analyze_character(info["basic"], info["stat"], info["item_equipment"])
    return {**reshape_full_info(info), "analysis": analysis.model_dump()}


TOOLS = [
    Tool(
        name="get_character_basic_info",
        description="Basic information about a MapleStory SEA character: level, class, world and guild.",
        input_model=CharacterInput,
        handler=get_character_basic_info,
    ),
    Tool(
        name="get_character_stats",
        description="Final combat stats and hyper stats of a character.",
        input_model=CharacterInput,
        handler=get_character_stats,
    ),
    Tool(
        name="get_character_equipment",
        description="Equipped items (star force, potentials) and optionally symbols of a character.",
        input_model=CharacterEquipmentInput,
        handler=get_character_equipment,
    ),
    Tool(
        name="get_character_full_info",
        description="Everything about a character in one call: basics, stats, traits, ability and gear.",
        input_model=CharacterInput,
        handler=get_character_full_info,
    ),
    Tool(
        name="get_character_analysis",
        description="Gear scoring, set bonuses and improvement tips on top of a character's full info.",
        input_model=CharacterInput,
        handler=get_character_analysis,
    ),
]
