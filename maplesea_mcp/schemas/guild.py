"""Pydantic schemas for guild search results."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, Field


class GuildMatch(BaseModel):
    """One guild found by a fuzzy name search."""

    guild_name: str = Field(..., description="Guild name as reported upstream.")
    oguild_id: str = Field(..., description="Upstream guild identifier.")
    world_name: str = Field(..., description="World the guild was found in.")
    match_score: float = Field(
        ...,
        ge=0.0,
        le=1.0,
        description="Similarity between the search term and the guild name (1 = exact).",
    )
    matched_variation: str = Field(..., description="Name variation that resolved the guild.")
    guild_info: dict[str, Any] | None = Field(
        default=None,
        description="Guild basic information, when details were requested.",
    )
