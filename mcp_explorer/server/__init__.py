"""Bundled MCP tool server."""

from mcp_explorer.server.tools import render_prompt, run_server, tool_server

__all__ = ["render_prompt", "run_server", "tool_server"]
