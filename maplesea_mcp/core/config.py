"""Application configuration using Pydantic Settings.

Configuration is environment-aware:
- APP_ENV determines which .env file to load
- Supports: development, testing, staging, production
- Each environment has its own .env.{environment} file
"""

from __future__ import annotations

import os
from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


# Determine which environment to load (default: development)
APP_ENV = os.getenv("APP_ENV", "development")

# Project root (so .env resolution doesn't depend on current working directory)
PROJECT_ROOT = Path(__file__).resolve().parents[2]

# Map environments to their respective .env files (relative to PROJECT_ROOT)
ENV_FILE_MAP = {
    "development": ".env.development",
    "testing": ".env.testing",
    "staging": ".env.staging",
    "production": ".env.production",
}

# Select the .env file for the current environment
_env_filename = ENV_FILE_MAP.get(APP_ENV, ".env.development")
_env_path = PROJECT_ROOT / _env_filename

# Only load from file if it exists (production might inject via env vars only)
_env_file = str(_env_path) if _env_path.is_file() else None


# Load .env file early to populate os.environ before creating nested settings
# This is necessary because Pydantic nested BaseSettings don't inherit env_file
if _env_file:
    from dotenv import load_dotenv
    load_dotenv(_env_file, override=True)


# Per-endpoint cache lifetimes in seconds. Identity lookups live longest,
# equipment shortest since it changes during play.
DEFAULT_ENDPOINT_TTLS: dict[str, int] = {
    "character.ocid": 7200,
    "character.basic": 1800,
    "character.popularity": 1800,
    "character.stat": 900,
    "character.hyper_stat": 1800,
    "character.propensity": 1800,
    "character.ability": 1800,
    "character.item_equipment": 600,
    "character.symbol_equipment": 600,
    "union.basic": 1800,
    "union.raider": 1800,
    "union.artifact": 3600,
    "guild.id": 3600,
    "guild.basic": 3600,
    "ranking.overall": 1800,
    "ranking.union": 1800,
    "ranking.guild": 1800,
}


def _build_nexon_settings() -> "NexonSettings":
    """Build upstream API settings from environment.

    Pydantic Settings (v2) can populate values from environment variables.
    However, static type checkers often treat required fields as required
    constructor arguments, which is not how BaseSettings is intended to be used.
    """

    return NexonSettings()  # type: ignore[call-arg]


def _build_rate_limit_settings() -> "RateLimitSettings":
    return RateLimitSettings()  # type: ignore[call-arg]


def _build_retry_settings() -> "RetrySettings":
    return RetrySettings()  # type: ignore[call-arg]


def _build_cache_settings() -> "CacheSettings":
    return CacheSettings()  # type: ignore[call-arg]


def _build_ranking_settings() -> "RankingSettings":
    return RankingSettings()  # type: ignore[call-arg]


def _build_log_settings() -> "LogSettings":
    return LogSettings()  # type: ignore[call-arg]


def _build_app_settings() -> "AppSettings":
    """Build app settings from environment.

    See _build_nexon_settings() for rationale about the type ignore.
    """

    return AppSettings()  # type: ignore[call-arg]


class NexonSettings(BaseSettings):
    """NEXON Open API connection settings.

    The API key is optional here so the module can be imported without one;
    the transport factory rejects a missing key when the client is built.
    """

    api_key: str | None = Field(
        None,
        description="NEXON Open API key forwarded in the x-nxopen-api-key header",
    )
    base_url: str = Field(
        "https://open.api.nexon.com",
        description="Base URL of the NEXON Open API",
    )
    timeout_seconds: float = Field(
        10.0,
        description="Per-request timeout in seconds",
        gt=0,
    )
    user_agent: str = Field(
        "maplesea-mcp/1.0.0",
        description="User-Agent header sent upstream",
    )

    model_config = SettingsConfigDict(
        env_prefix="NEXON_",
        case_sensitive=False,
    )


class RateLimitSettings(BaseSettings):
    """Outbound admission limits (sustained rate and in-flight concurrency)."""

    requests_per_second: int = Field(
        8,
        description="Maximum upstream requests granted per rolling window",
        ge=1,
    )
    max_concurrency: int = Field(
        12,
        description="Maximum simultaneous in-flight upstream requests",
        ge=1,
    )
    window_seconds: float = Field(
        1.0,
        description="Length of the rolling rate window in seconds",
        gt=0,
    )
    queue_timeout_seconds: float = Field(
        30.0,
        description="Default time a caller may wait for admission before giving up",
        gt=0,
    )

    model_config = SettingsConfigDict(
        env_prefix="RATE_LIMIT_",
        case_sensitive=False,
    )


class RetrySettings(BaseSettings):
    """Retry/backoff policy for transient upstream failures."""

    max_attempts: int = Field(
        4,
        description="Maximum attempts per logical call (first try included)",
        ge=1,
    )
    base_delay_seconds: float = Field(
        1.5,
        description="Delay before the first retry; doubles on each further retry",
        ge=0,
    )
    max_delay_seconds: float = Field(
        45.0,
        description="Upper bound for any single backoff delay",
        ge=0,
    )
    jitter_ratio: float = Field(
        0.1,
        description="Random jitter added to each delay, as a fraction of it",
        ge=0,
        le=1,
    )

    model_config = SettingsConfigDict(
        env_prefix="RETRY_",
        case_sensitive=False,
    )


class CacheSettings(BaseSettings):
    """Response cache configuration."""

    default_ttl_seconds: int = Field(
        300,
        description="TTL used for endpoints without an explicit entry",
        ge=1,
    )
    max_entries: int | None = Field(
        1000,
        description="Maximum cached responses (None for unlimited)",
    )
    endpoint_ttls: dict[str, int] = Field(
        default_factory=lambda: dict(DEFAULT_ENDPOINT_TTLS),
        description="Per-endpoint TTL overrides in seconds, keyed by endpoint id (JSON)",
    )

    model_config = SettingsConfigDict(
        env_prefix="CACHE_",
        case_sensitive=False,
    )

    def ttl_for(self, endpoint_id: str) -> int:
        """Return the TTL configured for an endpoint id."""
        return self.endpoint_ttls.get(endpoint_id, self.default_ttl_seconds)


class RankingSettings(BaseSettings):
    """Leaderboard scan limits."""

    default_max_pages: int = Field(
        10,
        description="Page budget used when the caller does not supply one",
        ge=1,
    )
    max_pages_limit: int = Field(
        20,
        description="Hard maximum page budget accepted for a ranking search",
        ge=1,
        le=20,
    )
    page_size: int = Field(
        200,
        description="Entries per upstream ranking page (used when rows lack a rank)",
        ge=1,
    )

    @model_validator(mode="after")
    def check_default_within_limit(self) -> "RankingSettings":
        if self.default_max_pages > self.max_pages_limit:
            raise ValueError(
                f"default_max_pages ({self.default_max_pages}) must not exceed "
                f"max_pages_limit ({self.max_pages_limit})"
            )
        return self

    model_config = SettingsConfigDict(
        env_prefix="RANKING_",
        case_sensitive=False,
    )


class LogSettings(BaseSettings):
    """Logging configuration.

    Logs default to stderr because stdout carries the MCP stdio protocol.
    """

    level: str = Field("INFO", description="Root log level")
    format: str = Field("json", description="Log format: json or plain")
    output: str = Field("stderr", description="Log destination: stderr, stdout or file")
    file_path: str | None = Field(None, description="Log file path when output=file")
    max_bytes: int | None = Field(
        10_485_760,
        description="Rotate the log file after this many bytes (None disables rotation)",
    )
    backup_count: int = Field(5, description="Rotated log files to keep")
    request_id_header: str = Field(
        "X-Request-ID",
        description="HTTP header carrying the correlation id",
    )

    model_config = SettingsConfigDict(
        env_prefix="LOG_",
        case_sensitive=False,
    )


class AppSettings(BaseSettings):
    """Application-wide configuration."""

    name: str = Field("maplesea-mcp", description="Server name announced to MCP clients")
    version: str = Field("1.0.0", description="Server version announced to MCP clients")
    debug: bool = Field(
        False,
        description="Enable debug mode with verbose logging",
    )

    model_config = SettingsConfigDict(
        env_prefix="APP_",
        case_sensitive=False,
    )


class Settings(BaseSettings):
    """Main application settings container.

    Automatically loads from the appropriate .env.{APP_ENV} file.
    Raises validation errors on startup if settings are malformed.
    """

    app_env: str = APP_ENV
    nexon: NexonSettings = Field(default_factory=_build_nexon_settings)
    rate_limit: RateLimitSettings = Field(default_factory=_build_rate_limit_settings)
    retry: RetrySettings = Field(default_factory=_build_retry_settings)
    cache: CacheSettings = Field(default_factory=_build_cache_settings)
    ranking: RankingSettings = Field(default_factory=_build_ranking_settings)
    log: LogSettings = Field(default_factory=_build_log_settings)
    app: AppSettings = Field(default_factory=_build_app_settings)

    model_config = SettingsConfigDict(
        case_sensitive=False,
    )


# Global settings instance - composed from domain-specific settings
# Nested settings are created via default_factory so env loading works.
settings = Settings()
