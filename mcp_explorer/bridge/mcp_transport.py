"""MCP tool server connection.

:class:`McpTransport` opens a single long-lived ``ClientSession`` (stdio,
SSE or streamable-http) and implements the dispatch core's transport
contract on top of it.
"""

import asyncio
import logging
import os
from contextlib import AsyncExitStack
from typing import Any, Dict, List, Mapping, Optional

import anyio
import httpx
from mcp import ClientSession, McpError, StdioServerParameters
from mcp import types as mcp_types
from mcp.client.sse import sse_client
from mcp.client.stdio import stdio_client
from mcp.client.streamable_http import streamablehttp_client

from mcp_explorer.constants import CALL_TIMEOUT, DISCOVER_TIMEOUT, MCP_INIT_TIMEOUT
from mcp_explorer.errors import ConfigurationError, RemoteToolError, TransportError

logger = logging.getLogger(__name__)

NET_EXCS: tuple = (
    httpx.ConnectError,
    httpx.TimeoutException,
    httpx.NetworkError,
    ConnectionError,
    BrokenPipeError,
    EOFError,
    anyio.ClosedResourceError,
    anyio.BrokenResourceError,
    anyio.EndOfStream,
)


class McpTransport:
    """Owns the connection to one MCP tool server.

    Open once with :meth:`connect` (or ``async with``) and hand the
    instance to :class:`~mcp_explorer.dispatch.ToolCatalog` and
    :class:`~mcp_explorer.dispatch.ToolInvoker`.  The session is used
    sequentially; callers sharing it across tasks rely on the MCP SDK's
    own request multiplexing.
    """

    def __init__(
        self,
        conn_conf: Dict[str, Any],
        *,
        init_timeout: float = MCP_INIT_TIMEOUT,
        discover_timeout: float = DISCOVER_TIMEOUT,
        call_timeout: float = CALL_TIMEOUT,
    ) -> None:
        self._conf = conn_conf
        self._init_timeout = conn_conf.get("init_timeout", init_timeout)
        self._discover_timeout = conn_conf.get("discover_timeout", discover_timeout)
        self._call_timeout = conn_conf.get("call_timeout", call_timeout)
        self._session: Optional[ClientSession] = None
        self._exit_stack: Optional[AsyncExitStack] = None
        self._devnull_files: list = []

    @classmethod
    def from_session(cls, session: ClientSession, **kwargs: Any) -> "McpTransport":
        """Wrap an already initialized session (owned by the caller)."""
        transport = cls({"type": "session"}, **kwargs)
        transport._session = session
        return transport

    @property
    def connected(self) -> bool:
        return self._session is not None

    # ── Lifecycle ────────────────────────────────────────────────────

    async def __aenter__(self) -> "McpTransport":
        await self.connect()
        return self

    async def __aexit__(self, *exc_info: Any) -> None:
        await self.close()

    async def connect(self) -> None:
        """Open transport streams and initialize the MCP session.

        Raises:
            ConfigurationError: The connection settings are invalid.
            TransportError: The server could not be started or reached,
                or initialization timed out.
        """
        if self._session is not None:
            logger.debug("connect() called on an already connected transport.")
            return

        conn_type = self._conf.get("type")
        logger.info("Connecting to tool server, type: %s...", conn_type)
        stack = AsyncExitStack()
        try:
            session = await self._open_session(stack, conn_type)
            logger.info("Initializing MCP session (timeout: %ss)...", self._init_timeout)
            await asyncio.wait_for(session.initialize(), timeout=self._init_timeout)
        except ConfigurationError:
            await stack.aclose()
            raise
        except asyncio.TimeoutError as exc:
            await stack.aclose()
            logger.error("(%s) MCP initialization timed out.", conn_type)
            raise TransportError(
                f"MCP initialization timed out after {self._init_timeout}s", exc
            ) from exc
        except FileNotFoundError as exc:
            await stack.aclose()
            logger.error("(%s) Command or file not found '%s'.", conn_type, exc.filename)
            raise TransportError(f"Command not found: {exc.filename}", exc) from exc
        except (*NET_EXCS, McpError, OSError) as exc:
            await stack.aclose()
            logger.error(
                "(%s) Network/connection error during connect: %s: %s",
                conn_type,
                type(exc).__name__,
                exc,
            )
            raise TransportError(f"Could not connect to tool server: {exc}", exc) from exc

        self._exit_stack = stack
        self._session = session
        logger.info("MCP connection initialized (%s).", conn_type)

    async def _open_session(self, stack: AsyncExitStack, conn_type: Any) -> ClientSession:
        if conn_type == "stdio":
            params = self._conf.get("params")
            if not isinstance(params, StdioServerParameters):
                raise ConfigurationError("Invalid stdio connection ('params' type mismatch).")
            # Keep the server's stderr off our terminal.
            devnull = open(os.devnull, "w")  # noqa: SIM115
            self._devnull_files.append(devnull)
            streams = await stack.enter_async_context(stdio_client(params, errlog=devnull))
            logger.debug("(stdio) transport streams established.")
        elif conn_type == "sse":
            url = self._require_url("sse")
            streams = await stack.enter_async_context(
                sse_client(url=url, headers=self._conf.get("headers"))
            )
            logger.debug("(sse) transport streams established.")
        elif conn_type == "streamable-http":
            url = self._require_url("streamable-http")
            read_stream, write_stream, _get_session_id = await stack.enter_async_context(
                streamablehttp_client(url=url, headers=self._conf.get("headers"))
            )
            streams = (read_stream, write_stream)
            logger.debug("(streamable-http) transport streams established.")
        else:
            raise ConfigurationError(f"Unsupported connection type '{conn_type}'.")

        return await stack.enter_async_context(ClientSession(*streams))

    def _require_url(self, conn_type: str) -> str:
        url = self._conf.get("url")
        if not isinstance(url, str) or not url:
            raise ConfigurationError(f"Invalid '{conn_type}' connection 'url'.")
        return url

    async def close(self) -> None:
        """Close the session and any subprocess started for it."""
        if self._exit_stack is not None:
            logger.info("Closing tool server connection...")
            try:
                await self._exit_stack.aclose()
            except Exception as e_aclose:
                logger.exception(
                    "Error while closing connection: %s. Some resources may not have been released.",
                    e_aclose,
                )
            self._exit_stack = None
        self._session = None

        for f in self._devnull_files:
            try:
                f.close()
            except OSError:
                pass
        self._devnull_files.clear()

    # ── Transport contract ───────────────────────────────────────────

    def _require_session(self) -> ClientSession:
        if self._session is None:
            raise TransportError("Not connected to a tool server.")
        return self._session

    async def discover(self) -> List[Dict[str, Any]]:
        """``tools/list`` → ``[{"name", "description"}, ...]``."""
        session = self._require_session()
        try:
            list_result = await asyncio.wait_for(
                session.list_tools(), timeout=self._discover_timeout
            )
        except asyncio.TimeoutError as exc:
            raise TransportError(
                f"Tool list timed out after {self._discover_timeout}s", exc
            ) from exc
        except (*NET_EXCS, McpError, OSError) as exc:
            raise TransportError(f"Tool list failed: {exc}", exc) from exc

        tools = getattr(list_result, "tools", None)
        if tools is None:
            logger.info("list_tools() returned no tool list, treating as no tools.")
            return []
        return [_tool_to_dict(tool) for tool in tools]

    async def invoke(self, name: str, arguments: Mapping[str, Any]) -> List[Dict[str, Any]]:
        """``tools/call`` → ``[{"kind", "payload"}, ...]``.

        Raises :class:`RemoteToolError` when the result has ``isError`` set.
        """
        session = self._require_session()
        try:
            result = await asyncio.wait_for(
                session.call_tool(name=name, arguments=dict(arguments)),
                timeout=self._call_timeout,
            )
        except asyncio.TimeoutError as exc:
            logger.error("Timeout calling tool '%s'.", name)
            raise TransportError(
                f"Call to '{name}' timed out after {self._call_timeout}s", exc
            ) from exc
        except McpError as exc:
            logger.error("Protocol error calling tool '%s': %s", name, exc)
            raise TransportError(f"Call to '{name}' failed: {exc}", exc) from exc
        except (*NET_EXCS, OSError) as exc:
            logger.error(
                "Connection lost calling tool '%s': %s", name, type(exc).__name__
            )
            raise TransportError(f"Connection lost calling '{name}'", exc) from exc

        blocks = [_content_to_dict(block) for block in result.content or []]
        if result.isError:
            message = " ".join(
                b["payload"] for b in blocks if b["kind"] == "text" and b["payload"]
            )
            logger.warning("Tool '%s' reported an error: %s", name, message)
            raise RemoteToolError(name, message or "tool reported an error")
        return blocks


# ── Module-level helpers ─────────────────────────────────────────────────


def _tool_to_dict(tool: Any) -> Dict[str, Any]:
    return {
        "name": getattr(tool, "name", None),
        "description": getattr(tool, "description", None) or "",
    }


def _content_to_dict(block: Any) -> Dict[str, Any]:
    if isinstance(block, mcp_types.TextContent):
        return {"kind": "text", "payload": block.text}
    kind = getattr(block, "type", None) or type(block).__name__
    payload = block.model_dump() if hasattr(block, "model_dump") else block
    return {"kind": kind, "payload": payload}
