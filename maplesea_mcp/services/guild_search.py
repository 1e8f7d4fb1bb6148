"""Fuzzy guild search.

The upstream API only resolves exact guild names, so a search tries a few
spelling variations of the term in each requested world and ranks whatever
resolves by similarity to the original term.
"""

from __future__ import annotations

import logging
import re
import unicodedata
from typing import Iterable

from maplesea_mcp.core.errors import UpstreamError, UpstreamErrorKind
from maplesea_mcp.schemas.guild import GuildMatch
from maplesea_mcp.services.nexon_api_service import NexonApiService

logger = logging.getLogger(__name__)

MIN_VARIATION_LENGTH = 2

# Applied one at a time to the sanitized term.
_REPLACEMENTS: tuple[tuple[re.Pattern[str], str], ...] = (
    (re.compile(r"\s+"), ""),
    (re.compile(r"[0-9]"), ""),
    (re.compile(r"[_\-.]"), ""),
    (re.compile(r"guild", re.IGNORECASE), ""),
)


def sanitize_guild_name(name: str) -> str:
    return unicodedata.normalize("NFC", name.strip())


def levenshtein(first: str, second: str) -> int:
    """Edit distance counting insertions, deletions and substitutions."""
    if len(first) < len(second):
        first, second = second, first

    previous = list(range(len(second) + 1))
    for i, left in enumerate(first, start=1):
        current = [i]
        for j, right in enumerate(second, start=1):
            current.append(
                min(
                    previous[j] + 1,
                    current[j - 1] + 1,
                    previous[j - 1] + (left != right),
                )
            )
        previous = current
    return previous[-1]


def fuzzy_score(first: str, second: str) -> float:
    """Case-insensitive similarity in ``[0, 1]``.

    Equal names score 1.0, a name containing the other scores 0.8, anything
    else scores by normalized edit distance.
    """
    if not first or not second:
        return 0.0

    a, b = first.lower(), second.lower()
    if a == b:
        return 1.0
    if a in b or b in a:
        return 0.8

    distance = levenshtein(a, b)
    return max(0.0, 1 - distance / max(len(a), len(b)))


def name_variations(term: str) -> list[str]:
    """The sanitized term first, then distinct shortened spellings of it."""
    name = sanitize_guild_name(term)
    variations = [name]
    for pattern, replacement in _REPLACEMENTS:
        variant = pattern.sub(replacement, name).strip()
        if variant not in variations:
            variations.append(variant)
    return [variant for variant in variations if len(variant) >= MIN_VARIATION_LENGTH]


async def search_guilds(
    service: NexonApiService,
    search_term: str,
    worlds: Iterable[str],
    max_results: int = 10,
    include_details: bool = True,
) -> list[GuildMatch]:
    """Resolve name variations of ``search_term`` in every world.

    Variations the upstream does not know are skipped. Results are unique
    per guild id and ordered by descending match score.

    Args:
        service: API access layer; every lookup is cached and rate limited.
        search_term: Guild name or part of one.
        worlds: Worlds to search in.
        max_results: Maximum number of matches returned.
        include_details: Fetch guild basic info for each match (one extra
            call per match) and score against the upstream guild name.

    Raises:
        UpstreamError: For rate-limit, retryable or transport failures.
    """
    term = sanitize_guild_name(search_term)
    variations = name_variations(term)
    matches: dict[str, GuildMatch] = {}

    for world in worlds:
        for variation in variations:
            try:
                oguild_id = await service.get_guild_id(variation, world)
            except UpstreamError as exc:
                if exc.kind is not UpstreamErrorKind.FATAL_UPSTREAM_FAILURE:
                    raise
                logger.debug(
                    "guild_search.variation_not_found",
                    extra={"variation": variation, "world": world, "error_msg": exc.message},
                )
                continue

            if oguild_id in matches:
                continue
            basic = await service.get_guild_basic(oguild_id) if include_details else None
            guild_name = (basic or {}).get("guild_name") or variation
            matches[oguild_id] = GuildMatch(
                guild_name=guild_name,
                oguild_id=oguild_id,
                world_name=world,
                match_score=round(fuzzy_score(term, guild_name), 4),
                matched_variation=variation,
                guild_info=basic,
            )

    ranked = sorted(matches.values(), key=lambda match: match.match_score, reverse=True)
    logger.info(
        "guild_search.completed",
        extra={"search_term": term, "results": len(ranked), "variations": len(variations)},
    )
    return ranked[:max_results]
