"""Shared fixtures: an in-memory transport and the demo catalog."""

from __future__ import annotations

from typing import Any, Dict, List, Mapping, Optional

import pytest

from mcp_explorer.dispatch.models import Capability, Catalog
from mcp_explorer.errors import TransportError

DEMO_TOOLS: List[Dict[str, Any]] = [
    {"name": "TranscribeAudio", "description": "Transcribes an audio file to text."},
    {"name": "OptimizeForEmail", "description": "Optimizes text for an email."},
    {"name": "OptimizeForTeams", "description": "Optimizes text for a Teams message."},
]


class FakeTransport:
    """Scriptable stand-in for :class:`McpTransport`."""

    def __init__(
        self,
        tools: Optional[List[Dict[str, Any]]] = None,
        responses: Optional[Dict[str, Any]] = None,
        connected: bool = True,
    ) -> None:
        self.tools = list(DEMO_TOOLS if tools is None else tools)
        self.responses = responses or {}
        self.connected = connected
        self.discover_calls = 0
        self.invocations: List[tuple] = []

    async def discover(self) -> List[Dict[str, Any]]:
        if not self.connected:
            raise TransportError("Not connected to a tool server.")
        self.discover_calls += 1
        return [dict(t) for t in self.tools]

    async def invoke(self, name: str, arguments: Mapping[str, Any]) -> Any:
        if not self.connected:
            raise TransportError("Not connected to a tool server.")
        self.invocations.append((name, dict(arguments)))
        response = self.responses.get(name)
        if isinstance(response, Exception):
            raise response
        if response is None:
            return [{"kind": "text", "payload": f"{name}:{arguments.get('text', '')}"}]
        return response


@pytest.fixture
def anyio_backend() -> str:
    return "asyncio"


@pytest.fixture
def fake_transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture
def demo_catalog() -> Catalog:
    return Catalog([Capability(t["name"], t["description"]) for t in DEMO_TOOLS])


@pytest.fixture
def optimize_catalog() -> Catalog:
    return Catalog(
        [
            Capability("OptimizeForEmail", "Optimizes text for an email."),
            Capability("OptimizeForTeams", "Optimizes text for a Teams message."),
        ]
    )


@pytest.fixture
def transport_factory():
    return FakeTransport
