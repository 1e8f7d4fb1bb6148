"""Catalogue of upstream NEXON MapleStory SEA endpoints.

Endpoints are addressed by a stable id (``character.basic``) independent of
their HTTP path, so cache keys and TTL configuration survive path changes.
"""

from __future__ import annotations

from dataclasses import dataclass

API_PREFIX = "/maplestorysea/v1"

# MapleStory SEA worlds
WORLDS: tuple[str, ...] = ("Aquila", "Bootes", "Cassiopeia", "Delphinus")

# Guild leaderboard types accepted by ranking/guild
GUILD_RANKING_FLAG_RACE = 0
GUILD_RANKING_GUILD_POWER = 1
GUILD_RANKING_TYPES: tuple[int, ...] = (GUILD_RANKING_FLAG_RACE, GUILD_RANKING_GUILD_POWER)


@dataclass(frozen=True)
class Endpoint:
    """One logical upstream operation.

    Attributes:
        id: Stable identifier used for cache keys and TTL lookup.
        path: HTTP path relative to the API base URL.
        required_fields: Top-level keys a successful payload must carry.
    """

    id: str
    path: str
    required_fields: tuple[str, ...] = ()


ENDPOINTS: dict[str, Endpoint] = {
    endpoint.id: endpoint
    for endpoint in (
        Endpoint("character.ocid", f"{API_PREFIX}/id", ("ocid",)),
        Endpoint("character.basic", f"{API_PREFIX}/character/basic", ("character_name",)),
        Endpoint("character.popularity", f"{API_PREFIX}/character/popularity"),
        Endpoint("character.stat", f"{API_PREFIX}/character/stat"),
        Endpoint("character.hyper_stat", f"{API_PREFIX}/character/hyper-stat"),
        Endpoint("character.propensity", f"{API_PREFIX}/character/propensity"),
        Endpoint("character.ability", f"{API_PREFIX}/character/ability"),
        Endpoint("character.item_equipment", f"{API_PREFIX}/character/item-equipment"),
        Endpoint("character.symbol_equipment", f"{API_PREFIX}/character/symbol-equipment"),
        Endpoint("union.basic", f"{API_PREFIX}/user/union"),
        Endpoint("union.raider", f"{API_PREFIX}/user/union-raider"),
        Endpoint("union.artifact", f"{API_PREFIX}/user/union-artifact"),
        Endpoint("guild.id", f"{API_PREFIX}/guild/id", ("oguild_id",)),
        Endpoint("guild.basic", f"{API_PREFIX}/guild/basic", ("guild_name",)),
        Endpoint("ranking.overall", f"{API_PREFIX}/ranking/overall", ("ranking",)),
        Endpoint("ranking.union", f"{API_PREFIX}/ranking/union", ("ranking",)),
        Endpoint("ranking.guild", f"{API_PREFIX}/ranking/guild", ("ranking",)),
    )
}


def get_endpoint(endpoint_id: str) -> Endpoint:
    """Look up an endpoint by id.

    Raises:
        KeyError: If the id is not part of the catalogue.
    """
    try:
        return ENDPOINTS[endpoint_id]
    except KeyError:
        raise KeyError(f"Unknown endpoint id: {endpoint_id!r}") from None
