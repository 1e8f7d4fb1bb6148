"""Upstream transport layer - performs raw calls against the NEXON Open API."""

from maplesea_mcp.adapters.http.base import AbstractTransport, TransportError
from maplesea_mcp.adapters.http.factory import create_transport
from maplesea_mcp.adapters.http.nexon_client import NexonHttpTransport

__all__ = [
    "AbstractTransport",
    "NexonHttpTransport",
    "TransportError",
    "create_transport",
]
