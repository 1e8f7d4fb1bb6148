"""Rate limiting adapters.

This package provides a small abstraction layer so the server can start with
an in-memory admission controller and later migrate to Redis or another
shared store without changing the access layer.
"""

from maplesea_mcp.adapters.rate_limit.base import AbstractRateLimiter, RequestTicket
from maplesea_mcp.adapters.rate_limit.in_memory import InMemoryRateLimiter

__all__ = [
    "AbstractRateLimiter",
    "InMemoryRateLimiter",
    "RequestTicket",
]
