"""Tests for McpTransport with a mocked ClientSession."""

from __future__ import annotations

import asyncio
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import anyio
import pytest
from mcp import McpError
from mcp import types as mcp_types

from mcp_explorer.bridge import McpTransport
from mcp_explorer.dispatch import ToolCatalog, ToolInvoker
from mcp_explorer.errors import ConfigurationError, RemoteToolError, TransportError


def _session(**overrides) -> MagicMock:
    session = MagicMock()
    session.list_tools = AsyncMock(
        return_value=SimpleNamespace(
            tools=[
                SimpleNamespace(name="OptimizeForEmail", description="Optimizes text for an email."),
                SimpleNamespace(name="OptimizeForTeams", description=None),
            ]
        )
    )
    session.call_tool = AsyncMock(
        return_value=mcp_types.CallToolResult(
            content=[mcp_types.TextContent(type="text", text="PROMPT...")],
            isError=False,
        )
    )
    for key, value in overrides.items():
        setattr(session, key, value)
    return session


class TestMcpTransportContract:
    @pytest.mark.anyio
    async def test_discover(self) -> None:
        transport = McpTransport.from_session(_session())
        assert await transport.discover() == [
            {"name": "OptimizeForEmail", "description": "Optimizes text for an email."},
            {"name": "OptimizeForTeams", "description": ""},
        ]

    @pytest.mark.anyio
    async def test_discover_without_tools_attribute(self) -> None:
        session = _session(list_tools=AsyncMock(return_value=SimpleNamespace(tools=None)))
        assert await McpTransport.from_session(session).discover() == []

    @pytest.mark.anyio
    async def test_invoke_text(self) -> None:
        session = _session()
        transport = McpTransport.from_session(session)
        blocks = await transport.invoke("OptimizeForEmail", {"text": "hi"})
        assert blocks == [{"kind": "text", "payload": "PROMPT..."}]
        session.call_tool.assert_awaited_once_with(
            name="OptimizeForEmail", arguments={"text": "hi"}
        )

    @pytest.mark.anyio
    async def test_invoke_non_text_block(self) -> None:
        image = mcp_types.ImageContent(type="image", data="AAA", mimeType="image/png")
        session = _session(
            call_tool=AsyncMock(return_value=mcp_types.CallToolResult(content=[image]))
        )
        blocks = await McpTransport.from_session(session).invoke("X", {})
        assert blocks[0]["kind"] == "image"
        assert blocks[0]["payload"]["data"] == "AAA"

    @pytest.mark.anyio
    async def test_is_error_raises_remote_tool_error(self) -> None:
        session = _session(
            call_tool=AsyncMock(
                return_value=mcp_types.CallToolResult(
                    content=[mcp_types.TextContent(type="text", text="file not found")],
                    isError=True,
                )
            )
        )
        with pytest.raises(RemoteToolError) as exc_info:
            await McpTransport.from_session(session).invoke("TranscribeAudio", {})
        assert exc_info.value.remote_message == "file not found"
        assert exc_info.value.capability_name == "TranscribeAudio"

    @pytest.mark.anyio
    async def test_mcp_error_becomes_transport_error(self) -> None:
        err = McpError(mcp_types.ErrorData(code=-32601, message="Method not found"))
        session = _session(call_tool=AsyncMock(side_effect=err))
        with pytest.raises(TransportError):
            await McpTransport.from_session(session).invoke("X", {})

    @pytest.mark.anyio
    async def test_connection_lost_becomes_transport_error(self) -> None:
        session = _session(list_tools=AsyncMock(side_effect=BrokenPipeError()))
        with pytest.raises(TransportError):
            await McpTransport.from_session(session).discover()

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        "exc",
        [
            anyio.ClosedResourceError(),
            anyio.BrokenResourceError(),
            anyio.EndOfStream(),
            OSError("stream closed"),
        ],
    )
    async def test_dead_server_on_list_is_transport_error(self, exc) -> None:
        session = _session(list_tools=AsyncMock(side_effect=exc))
        with pytest.raises(TransportError):
            await ToolCatalog(McpTransport.from_session(session)).list()

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        "exc",
        [
            anyio.ClosedResourceError(),
            anyio.BrokenResourceError(),
            anyio.EndOfStream(),
            OSError("stream closed"),
        ],
    )
    async def test_dead_server_on_call_is_transport_error(self, exc) -> None:
        session = _session(call_tool=AsyncMock(side_effect=exc))
        with pytest.raises(TransportError, match="Connection lost"):
            await ToolInvoker(McpTransport.from_session(session)).call("OptimizeForEmail", {})

    @pytest.mark.anyio
    async def test_call_timeout(self) -> None:
        async def _slow(**_kwargs):
            await asyncio.sleep(5)

        session = _session(call_tool=_slow)
        transport = McpTransport.from_session(session, call_timeout=0.01)
        with pytest.raises(TransportError, match="timed out"):
            await transport.invoke("X", {})

    @pytest.mark.anyio
    async def test_not_connected(self) -> None:
        transport = McpTransport({"type": "stdio"})
        assert not transport.connected
        with pytest.raises(TransportError):
            await transport.discover()
        with pytest.raises(TransportError):
            await transport.invoke("X", {})

    @pytest.mark.anyio
    async def test_works_with_dispatch_core(self) -> None:
        transport = McpTransport.from_session(_session())
        catalog = await ToolCatalog(transport).list()
        result = await ToolInvoker(transport).call("OptimizeForEmail", {"text": "hi"}, catalog=catalog)
        assert result.text == "PROMPT..."


class TestMcpTransportConnect:
    @pytest.mark.anyio
    async def test_unsupported_type(self) -> None:
        with pytest.raises(ConfigurationError):
            await McpTransport({"type": "carrier-pigeon"}).connect()

    @pytest.mark.anyio
    async def test_stdio_requires_params(self) -> None:
        transport = McpTransport({"type": "stdio", "params": {"command": "python"}})
        with pytest.raises(ConfigurationError):
            await transport.connect()
        assert not transport.connected

    @pytest.mark.anyio
    async def test_sse_requires_url(self) -> None:
        with pytest.raises(ConfigurationError):
            await McpTransport({"type": "sse"}).connect()

    def test_timeouts_from_conf(self) -> None:
        transport = McpTransport({"type": "sse", "url": "http://x", "call_timeout": 3})
        assert transport._call_timeout == 3

    @pytest.mark.anyio
    async def test_close_is_idempotent(self) -> None:
        transport = McpTransport.from_session(_session())
        await transport.close()
        await transport.close()
        assert not transport.connected
