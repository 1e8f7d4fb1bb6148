"""Pydantic schemas for leaderboard rows and ranking search results."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field


class RankingEntry(BaseModel):
    """One row of the overall or union leaderboard."""

    rank: int | None = Field(default=None, description="Leaderboard position reported upstream.")
    name: str = Field(..., description="Character name.")
    world: str | None = Field(default=None, description="World the character plays on.")
    class_name: str | None = Field(default=None, description="Job/class name.")
    sub_class_name: str | None = Field(default=None, description="Sub-class name, if any.")
    level: int | None = Field(default=None, description="Character level.")
    exp: int | None = Field(default=None, description="Experience within the current level.")
    popularity: int | None = Field(default=None, description="Popularity (fame) value.")
    guild_name: str | None = Field(default=None, description="Guild the character belongs to.")

    @classmethod
    def from_upstream(cls, row: dict[str, Any]) -> "RankingEntry":
        """Build an entry from a raw ``ranking/overall`` row."""
        return cls(
            rank=row.get("ranking"),
            name=row.get("character_name") or "",
            world=row.get("world_name"),
            class_name=row.get("class_name"),
            sub_class_name=row.get("sub_class_name"),
            level=row.get("character_level"),
            exp=row.get("character_exp"),
            popularity=row.get("character_popularity"),
            guild_name=row.get("character_guildname"),
        )


class GuildRankingEntry(BaseModel):
    """One row of the guild leaderboard."""

    rank: int | None = Field(default=None, description="Leaderboard position reported upstream.")
    guild_name: str = Field(..., description="Guild name.")
    world: str | None = Field(default=None, description="World the guild belongs to.")
    guild_level: int | None = Field(default=None, description="Guild level.")
    master_name: str | None = Field(default=None, description="Guild master's character name.")
    guild_point: int | None = Field(default=None, description="Points for the ranking type.")

    @classmethod
    def from_upstream(cls, row: dict[str, Any]) -> "GuildRankingEntry":
        """Build an entry from a raw ``ranking/guild`` row."""
        return cls(
            rank=row.get("ranking"),
            guild_name=row.get("guild_name") or "",
            world=row.get("world_name"),
            guild_level=row.get("guild_level"),
            master_name=row.get("guild_master_name"),
            guild_point=row.get("guild_point"),
        )


class RankingSearchResult(BaseModel):
    """Outcome of a bounded leaderboard scan.

    ``searched_pages`` counts every page actually fetched, including an empty
    page that ended the scan early.
    """

    model_config = ConfigDict(frozen=True)

    found: bool = Field(..., description="Whether a matching row was found.")
    position: int | None = Field(default=None, description="Leaderboard position when found.")
    entry: RankingEntry | GuildRankingEntry | None = Field(
        default=None,
        description="The matching row when found.",
    )
    searched_pages: int = Field(..., ge=0, description="Pages fetched during the scan.")
