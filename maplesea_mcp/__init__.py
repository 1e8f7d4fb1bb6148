"""MapleStory SEA MCP server over the NEXON Open API."""

__version__ = "1.0.0"
