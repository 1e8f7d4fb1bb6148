"""Pydantic input models for the tool surface.

Each tool validates its arguments against one of these models before any
upstream call is made. The models also provide the JSON schema announced to
MCP clients and shown by ``GET /v1/tools``.
"""

from __future__ import annotations

import re
from datetime import date as date_type
from datetime import datetime, timezone
from typing import Literal

from pydantic import BaseModel, ConfigDict, Field, field_validator

# MapleStory SEA data starts here; earlier dates are rejected upstream.
EARLIEST_DATE = date_type(2003, 4, 29)

CHARACTER_NAME_PATTERN = re.compile(r"^[A-Za-z0-9]{2,13}$")
GUILD_SEARCH_PATTERN = re.compile(r"^[A-Za-z0-9\s\-_.]{2,20}$")

World = Literal["Aquila", "Bootes", "Cassiopeia", "Delphinus"]


def validate_date(value: str | None) -> str | None:
    """Check a ``YYYY-MM-DD`` date is real, not in the future and not too early."""
    if value is None:
        return None
    try:
        parsed = datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise ValueError("date must be a valid YYYY-MM-DD date") from None

    if parsed > datetime.now(timezone.utc).date():
        raise ValueError("date cannot be in the future")
    if parsed < EARLIEST_DATE:
        raise ValueError(f"date cannot be before {EARLIEST_DATE.isoformat()}")
    return value


def validate_character_name(value: str) -> str:
    value = value.strip()
    if not CHARACTER_NAME_PATTERN.match(value):
        raise ValueError("character_name must be 2-13 letters or digits")
    return value


class ToolInput(BaseModel):
    """Base for tool arguments: unknown keys are rejected."""

    model_config = ConfigDict(extra="forbid")


class DatedInput(ToolInput):
    date: str | None = Field(
        default=None,
        description="Snapshot date (YYYY-MM-DD). Omit for the latest data.",
    )

    @field_validator("date")
    @classmethod
    def check_date(cls, value: str | None) -> str | None:
        return validate_date(value)


class EmptyInput(ToolInput):
    """Tools without arguments."""


class CharacterInput(DatedInput):
    character_name: str = Field(..., description="Character name (2-13 letters or digits).")

    @field_validator("character_name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return validate_character_name(value)


class CharacterEquipmentInput(CharacterInput):
    include_symbols: bool = Field(
        default=True,
        description="Also fetch equipped Arcane/Sacred symbols.",
    )


class GuildInput(DatedInput):
    guild_name: str = Field(..., min_length=1, max_length=32, description="Guild name.")
    world_name: World = Field(..., description="World the guild belongs to.")


class GuildSearchInput(ToolInput):
    guild_name: str = Field(
        ...,
        description="Guild name or part of one (2-20 letters, digits, spaces, - _ .).",
    )
    world_name: World | None = Field(
        default=None,
        description="World to search in. Omit to search every world.",
    )
    max_results: int = Field(default=10, ge=1, le=50, description="Maximum matches (1-50).")
    include_details: bool = Field(
        default=True,
        description="Include guild basic information for each match.",
    )

    @field_validator("guild_name")
    @classmethod
    def check_guild_name(cls, value: str) -> str:
        value = value.strip()
        if not GUILD_SEARCH_PATTERN.match(value):
            raise ValueError("guild_name must be 2-20 letters, digits, spaces or - _ .")
        return value


class OverallRankingInput(DatedInput):
    world_name: World | None = Field(default=None, description="Restrict to one world.")
    class_name: str | None = Field(default=None, description="Restrict to one class.")
    page: int = Field(default=1, ge=1, le=200, description="Leaderboard page (1-200).")


class UnionRankingInput(DatedInput):
    world_name: World | None = Field(default=None, description="Restrict to one world.")
    page: int = Field(default=1, ge=1, le=200, description="Leaderboard page (1-200).")


class GuildRankingInput(DatedInput):
    world_name: World = Field(..., description="World whose guild leaderboard to read.")
    ranking_type: Literal[0, 1] = Field(
        default=1,
        description="0 = Flag Race, 1 = Guild Power.",
    )
    page: int = Field(default=1, ge=1, le=200, description="Leaderboard page (1-200).")


class FindCharacterRankingInput(DatedInput):
    character_name: str = Field(..., description="Character name (2-13 letters or digits).")
    world_name: World | None = Field(default=None, description="Restrict to one world.")
    class_name: str | None = Field(default=None, description="Restrict to one class.")
    max_pages: int = Field(
        default=10,
        ge=1,
        le=20,
        description="Maximum leaderboard pages to scan (1-20).",
    )

    @field_validator("character_name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return validate_character_name(value)


class FindGuildRankingInput(DatedInput):
    guild_name: str = Field(..., min_length=1, max_length=32, description="Guild name.")
    world_name: World = Field(..., description="World whose guild leaderboard to scan.")
    ranking_type: Literal[0, 1] = Field(
        default=1,
        description="0 = Flag Race, 1 = Guild Power.",
    )
    max_pages: int = Field(
        default=10,
        ge=1,
        le=20,
        description="Maximum leaderboard pages to scan (1-20).",
    )


class UnionInput(DatedInput):
    character_name: str = Field(..., description="Any character of the account.")
    include_artifact: bool = Field(
        default=False,
        description="Also fetch the union artifact.",
    )

    @field_validator("character_name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return validate_character_name(value)


class UnionRaiderInput(DatedInput):
    character_name: str = Field(..., description="Any character of the account.")

    @field_validator("character_name")
    @classmethod
    def check_name(cls, value: str) -> str:
        return validate_character_name(value)
