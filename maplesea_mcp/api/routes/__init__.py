from __future__ import annotations

from maplesea_mcp.api.routes.health import router as health_router
from maplesea_mcp.api.routes.tools import router as tools_router

__all__ = ["health_router", "tools_router"]
