"""Factory pattern for creating upstream transport instances."""

from maplesea_mcp.adapters.http.base import AbstractTransport
from maplesea_mcp.adapters.http.nexon_client import NexonHttpTransport
from maplesea_mcp.core.config import NexonSettings, settings
from maplesea_mcp.core.errors import ConfigurationAppError


def create_transport(nexon_settings: NexonSettings | None = None) -> AbstractTransport:
    """Factory function to instantiate the upstream transport.

    Reads configuration from maplesea_mcp.core.config.settings (Pydantic
    Settings) unless explicit settings are passed.

    Returns:
        AbstractTransport: Configured transport instance.

    Raises:
        ConfigurationAppError: If the API key is missing.
    """
    cfg = nexon_settings or settings.nexon

    if not cfg.api_key or not cfg.api_key.strip():
        raise ConfigurationAppError(
            code="nexon_missing_api_key",
            message="NEXON_API_KEY is required",
        )

    return NexonHttpTransport(
        api_key=cfg.api_key.strip(),
        base_url=cfg.base_url,
        timeout_seconds=cfg.timeout_seconds,
        user_agent=cfg.user_agent,
    )
