"""Bridge between the dispatch core and the MCP SDK."""

from mcp_explorer.bridge.mcp_transport import McpTransport

__all__ = ["McpTransport"]
