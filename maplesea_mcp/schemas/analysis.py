"""Pydantic schemas for the character gear analysis."""

from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field

PotentialGrade = Literal["None", "Rare", "Epic", "Unique", "Legendary"]


class EquipmentEnhancement(BaseModel):
    starforce: int = Field(default=0, ge=0, description="Star force level.")
    scroll_upgrades: int = Field(default=0, ge=0, description="Successful scroll upgrades.")
    potential_grade: PotentialGrade = "None"
    additional_potential_grade: PotentialGrade = "None"


class ItemScore(BaseModel):
    item_name: str | None = None
    slot: str | None = None
    enhancement: EquipmentEnhancement
    score: int = Field(..., ge=0, description="Enhancement score of the item.")


class SetEffect(BaseModel):
    set_name: str
    active_count: int = Field(..., description="Equipped pieces of the set.")
    total_count: int = Field(..., description="Pieces in the full set.")
    active_tiers: list[int] = Field(
        default_factory=list,
        description="Piece counts whose set bonus is active.",
    )


class EquipmentAnalysis(BaseModel):
    set_effects: list[SetEffect] = Field(default_factory=list)
    enhancement_scores: list[ItemScore] = Field(default_factory=list)
    total_combat_power: int = Field(default=0, ge=0)


class CharacterAnalysis(BaseModel):
    """Scores and advice derived from a character's stats and gear."""

    equipment: EquipmentAnalysis
    character_score: int = Field(..., ge=0, description="Overall score (level, gear, sets, power).")
    recommendations: list[str] = Field(default_factory=list)
