"""Transport contract consumed by the dispatch core.

The core never talks to the MCP SDK directly: it is handed an object
implementing :class:`Transport`, opened once by the host and shared by
every component that needs it.  :class:`mcp_explorer.bridge.McpTransport`
is the production implementation.
"""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Protocol


class Transport(Protocol):
    """Connection to a tool server.

    ``discover`` returns ``[{"name": ..., "description": ...}, ...]`` in
    server order.  ``invoke`` returns ``[{"kind": ..., "payload": ...}, ...]``.
    Implementations raise :class:`~mcp_explorer.errors.TransportError` when
    not connected or when the exchange fails, and
    :class:`~mcp_explorer.errors.RemoteToolError` when the server reports
    a tool failure.
    """

    async def discover(self) -> List[Dict[str, Any]]: ...

    async def invoke(self, name: str, arguments: Mapping[str, Any]) -> List[Dict[str, Any]]: ...
