"""Bounded leaderboard scans.

Pages are fetched one after another through the API access layer, so each
page is cached, rate limited and retried on its own. A scan stops at the
first match, at the first empty page, or when the page budget runs out.
"""

from __future__ import annotations

import logging
from typing import Any, Awaitable, Callable, Iterator, TypeVar

from pydantic import ValidationError

from maplesea_mcp.core.config import RankingSettings
from maplesea_mcp.core.endpoints import GUILD_RANKING_GUILD_POWER
from maplesea_mcp.core.errors import UpstreamError, UpstreamErrorKind, ValidationAppError
from maplesea_mcp.schemas.ranking import GuildRankingEntry, RankingEntry, RankingSearchResult
from maplesea_mcp.services.nexon_api_service import NexonApiService

logger = logging.getLogger(__name__)

EntryT = TypeVar("EntryT")


def _malformed(endpoint_id: str, index: int | None) -> UpstreamError:
    details: dict[str, Any] = {"endpoint": endpoint_id}
    if index is not None:
        details["row"] = index
    return UpstreamError(
        UpstreamErrorKind.FATAL_UPSTREAM_FAILURE, "malformed_ranking_row", details
    )


def iter_entries(
    payload: dict[str, Any],
    parse: Callable[[dict[str, Any]], EntryT],
    endpoint_id: str,
) -> Iterator[EntryT]:
    """Parse the rows of a leaderboard page lazily, in page order.

    Raises:
        UpstreamError: Fatal ``malformed_ranking_row`` when ``ranking`` is not
            a list, or when a row is not an object or fails validation.
    """
    rows = payload.get("ranking") or []
    if not isinstance(rows, list):
        raise _malformed(endpoint_id, None)

    for index, row in enumerate(rows):
        if not isinstance(row, dict):
            raise _malformed(endpoint_id, index)
        try:
            entry = parse(row)
        except ValidationError as exc:
            raise _malformed(endpoint_id, index) from exc
        yield entry


class RankingSearch:
    """Find a character or guild's position on a leaderboard."""

    def __init__(
        self,
        service: NexonApiService,
        ranking_settings: RankingSettings | None = None,
    ) -> None:
        self.service = service
        self.settings = ranking_settings or RankingSettings()  # type: ignore[call-arg]

    def _resolve_budget(self, max_pages: int | None) -> int:
        if max_pages is None:
            return self.settings.default_max_pages

        limit = self.settings.max_pages_limit
        valid = isinstance(max_pages, int) and not isinstance(max_pages, bool)
        if not valid or not 1 <= max_pages <= limit:
            raise ValidationAppError(
                code="invalid_page_budget",
                message="max_pages out of range",
                details={
                    "field": "max_pages",
                    "min_value": 1,
                    "max_value": limit,
                    "actual_value": max_pages,
                },
            )
        return max_pages

    async def find_position(
        self,
        name: str,
        world: str | None = None,
        class_filter: str | None = None,
        max_pages: int | None = None,
        date: str | None = None,
    ) -> RankingSearchResult:
        """Scan the overall leaderboard for ``name``.

        Args:
            name: Character name (exact, case-sensitive).
            world: Restrict to one world.
            class_filter: Restrict to one class (matches class or sub-class).
            max_pages: Page budget (default from settings, at most the limit).
            date: Leaderboard date (YYYY-MM-DD).

        Raises:
            ValidationAppError: If ``max_pages`` is outside the allowed range.
            UpstreamError: If any page fetch fails or a page is malformed.
        """
        budget = self._resolve_budget(max_pages)

        def matches(entry: RankingEntry) -> bool:
            if entry.name != name:
                return False
            if world is not None and entry.world not in (None, world):
                return False
            classes = (entry.class_name, entry.sub_class_name)
            if class_filter is not None and class_filter not in classes:
                return False
            return True

        async def fetch(page: int) -> dict[str, Any]:
            return await self.service.get_overall_ranking(
                world_name=world,
                class_name=class_filter,
                page=page,
                date=date,
            )

        return await self._scan(
            fetch, RankingEntry.from_upstream, matches, budget, name, "ranking.overall"
        )

    async def find_guild_position(
        self,
        guild_name: str,
        world: str,
        ranking_type: int = GUILD_RANKING_GUILD_POWER,
        max_pages: int | None = None,
        date: str | None = None,
    ) -> RankingSearchResult:
        """Scan the guild leaderboard of ``world`` for ``guild_name``.

        Raises:
            ValidationAppError: If ``max_pages`` is outside the allowed range.
            UpstreamError: If any page fetch fails or a page is malformed.
        """
        budget = self._resolve_budget(max_pages)

        def matches(entry: GuildRankingEntry) -> bool:
            return entry.guild_name == guild_name

        async def fetch(page: int) -> dict[str, Any]:
            return await self.service.get_guild_ranking(
                world_name=world,
                ranking_type=ranking_type,
                page=page,
                date=date,
            )

        return await self._scan(
            fetch, GuildRankingEntry.from_upstream, matches, budget, guild_name, "ranking.guild"
        )

    async def _scan(
        self,
        fetch: Callable[[int], Awaitable[dict[str, Any]]],
        parse: Callable[[dict[str, Any]], Any],
        matches: Callable[[Any], bool],
        budget: int,
        target: str,
        endpoint_id: str,
    ) -> RankingSearchResult:
        searched = 0
        for page in range(1, budget + 1):
            payload = await fetch(page)
            searched += 1

            if not payload.get("ranking"):
                logger.info(
                    "ranking_search.exhausted",
                    extra={"target": target, "searched_pages": searched},
                )
                break

            for index, entry in enumerate(iter_entries(payload, parse, endpoint_id)):
                if not matches(entry):
                    continue

                position = entry.rank
                if position is None:
                    position = (page - 1) * self.settings.page_size + index + 1
                logger.info(
                    "ranking_search.found",
                    extra={"target": target, "position": position, "searched_pages": searched},
                )
                return RankingSearchResult(
                    found=True,
                    position=position,
                    entry=entry,
                    searched_pages=searched,
                )

        return RankingSearchResult(found=False, searched_pages=searched)
