"""Heuristic gear and stat analysis of a character.

The scores are rough indicators for comparing characters and spotting weak
gear, not the game's own formulas.
"""

from __future__ import annotations

import re
from typing import Any

from maplesea_mcp.schemas.analysis import (
    CharacterAnalysis,
    EquipmentAnalysis,
    EquipmentEnhancement,
    ItemScore,
    SetEffect,
)

POTENTIAL_GRADES = ("Rare", "Epic", "Unique", "Legendary")

POTENTIAL_POINTS = {"Legendary": 100, "Unique": 50, "Epic": 25, "Rare": 10}
ADDITIONAL_POTENTIAL_POINTS = {"Legendary": 50, "Unique": 25, "Epic": 15, "Rare": 5}

# Known sets by a keyword of their item names, with the full piece count.
KNOWN_SETS: dict[str, int] = {
    "Pensalir": 7,
    "CRA": 4,
    "Arcane Umbra": 6,
    "AbsoLab": 6,
    "Eternal": 6,
    "Genesis": 6,
}
DEFAULT_SET_SIZE = 8
_SET_KEYWORDS = {
    name: re.compile(rf"\b{re.escape(name)}\b", re.IGNORECASE) for name in KNOWN_SETS
}
_SET_SUFFIX = re.compile(r"(.+)\sSet\b", re.IGNORECASE)

LOW_ENHANCEMENT_SCORE = 50
LOW_LEVEL = 200
LOW_COMBAT_POWER = 100_000


def to_int(value: Any) -> int:
    """Read an upstream number that may be a string with separators."""
    if isinstance(value, bool):
        return 0
    if isinstance(value, (int, float)):
        return int(value)
    if isinstance(value, str):
        try:
            return int(float(value.replace(",", "").strip()))
        except ValueError:
            return 0
    return 0


def potential_grade(raw: Any) -> str:
    if not isinstance(raw, str):
        return "None"
    grade = raw.strip().capitalize()
    return grade if grade in POTENTIAL_GRADES else "None"


def analyze_item(item: dict[str, Any]) -> EquipmentEnhancement:
    upgrades = to_int(item.get("scroll_upgrade"))
    upgradeable = to_int(item.get("scroll_upgradeable_count"))
    return EquipmentEnhancement(
        starforce=max(0, to_int(item.get("starforce"))),
        scroll_upgrades=max(0, min(upgrades, upgradeable)),
        potential_grade=potential_grade(item.get("potential_option_grade")),
        additional_potential_grade=potential_grade(item.get("additional_potential_option_grade")),
    )


def enhancement_score(enhancement: EquipmentEnhancement) -> int:
    return (
        enhancement.starforce * 10
        + enhancement.scroll_upgrades * 5
        + POTENTIAL_POINTS.get(enhancement.potential_grade, 0)
        + ADDITIONAL_POTENTIAL_POINTS.get(enhancement.additional_potential_grade, 0)
    )


def set_name_of(item_name: str) -> str | None:
    for set_name, pattern in _SET_KEYWORDS.items():
        if pattern.search(item_name):
            return set_name
    match = _SET_SUFFIX.match(item_name)
    if match:
        return match.group(1).strip()
    return None


def set_effects(items: list[dict[str, Any]]) -> list[SetEffect]:
    """Sets with at least two equipped pieces, in first-seen order."""
    counts: dict[str, int] = {}
    for item in items:
        name = item.get("item_name")
        if not isinstance(name, str):
            continue
        set_name = set_name_of(name)
        if set_name:
            counts[set_name] = counts.get(set_name, 0) + 1

    return [
        SetEffect(
            set_name=set_name,
            active_count=count,
            total_count=KNOWN_SETS.get(set_name, DEFAULT_SET_SIZE),
            active_tiers=list(range(2, count + 1)),
        )
        for set_name, count in counts.items()
        if count >= 2
    ]


def combat_power(stat_payload: dict[str, Any] | None) -> int:
    """Reported combat power, else an estimate from main stat and attack.

    Stat names are matched lower-cased with spaces as underscores.
    """
    stats: dict[str, int] = {}
    for entry in (stat_payload or {}).get("final_stat") or []:
        name = entry.get("stat_name")
        if isinstance(name, str) and entry.get("stat_value") is not None:
            stats[re.sub(r"\s+", "_", name.strip().lower())] = to_int(entry["stat_value"])

    if stats.get("combat_power"):
        return stats["combat_power"]

    main_stat = max(stats.get(key, 0) for key in ("str", "dex", "int", "luk"))
    attack = max(
        stats.get("attack_power", 0),
        stats.get("magic_attack", 0),
        stats.get("magic_power", 0),
    )
    return int(main_stat * 1.5 + attack * 2)


def character_score(level: int, equipment: EquipmentAnalysis) -> int:
    """Level (<=300) + gear (<=500) + sets (<=200) + combat power (<=1000)."""
    gear = sum(item.score for item in equipment.enhancement_scores)
    score = (
        min(level, 300)
        + min(gear / 10, 500)
        + min(len(equipment.set_effects) * 50, 200)
        + min(equipment.total_combat_power / 1000, 1000)
    )
    return round(score)


def recommendations(level: int, equipment: EquipmentAnalysis) -> list[str]:
    advice: list[str] = []
    if level < LOW_LEVEL:
        advice.append("Level up to unlock stronger equipment.")

    weak = [item for item in equipment.enhancement_scores if item.score < LOW_ENHANCEMENT_SCORE]
    if weak:
        advice.append(
            f"{len(weak)} equipped item(s) are barely enhanced; "
            "consider star force and potential upgrades."
        )
    if not equipment.set_effects:
        advice.append("Equip pieces of the same set to gain set bonuses.")
    if equipment.total_combat_power < LOW_COMBAT_POWER:
        advice.append("Upgrade equipment to raise combat power.")
    return advice


def analyze_character(
    basic: dict[str, Any],
    stat: dict[str, Any],
    item_equipment: dict[str, Any],
) -> CharacterAnalysis:
    """Score a character from its basic, stat and item-equipment payloads."""
    items = [item for item in item_equipment.get("item_equipment") or [] if isinstance(item, dict)]

    scores = []
    for item in items:
        enhancement = analyze_item(item)
        scores.append(
            ItemScore(
                item_name=item.get("item_name"),
                slot=item.get("item_equipment_slot") or item.get("item_equipment_part"),
                enhancement=enhancement,
                score=enhancement_score(enhancement),
            )
        )

    equipment = EquipmentAnalysis(
        set_effects=set_effects(items),
        enhancement_scores=scores,
        total_combat_power=max(0, combat_power(stat)),
    )
    level = to_int(basic.get("character_level")) or 1
    return CharacterAnalysis(
        equipment=equipment,
        character_score=character_score(level, equipment),
        recommendations=recommendations(level, equipment),
    )
