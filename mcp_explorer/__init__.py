"""
MCP Explorer - Tool discovery, selection and dispatch over MCP.

MCP Explorer connects to an MCP tool server, discovers its tools, picks
one for a piece of input text (by keyword heuristic or by asking an LLM)
and calls it, extracting the textual result.
"""

from mcp_explorer.constants import CLIENT_NAME, CLIENT_VERSION

__version__ = CLIENT_VERSION
__app_name__ = CLIENT_NAME

__all__ = [
    "CLIENT_NAME",
    "CLIENT_VERSION",
    "__version__",
    "__app_name__",
]
