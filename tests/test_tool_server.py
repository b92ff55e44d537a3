"""Tests for the bundled tool server, directly and over an in-memory session."""

from __future__ import annotations

import pytest
from mcp.shared.memory import create_connected_server_and_client_session

from mcp_explorer.bridge import McpTransport
from mcp_explorer.constants import PROMPTS_DIR_ENV
from mcp_explorer.dispatch import (
    HeuristicSelector,
    OptimizeFlow,
    ToolCatalog,
    ToolInvoker,
)
from mcp_explorer.errors import UnknownCapability
from mcp_explorer.server import render_prompt, tool_server
from mcp_explorer.server.tools import (
    optimize_for_email,
    optimize_for_teams,
    transcribe_audio,
)


class TestToolFunctions:
    def test_transcribe_is_stub(self) -> None:
        assert transcribe_audio("meeting.mp3") == (
            "Transcription of 'meeting.mp3': This is a test transcription."
        )

    def test_render_prompt_substitutes_text(self) -> None:
        rendered = render_prompt("OptimizeForEmail", "see you monday")
        assert "see you monday" in rendered
        assert "{{text}}" not in rendered

    def test_optimize_for_email(self) -> None:
        out = optimize_for_email("hello")
        assert out.startswith("--- PROMPT FOR EMAIL ---\n")
        assert "hello" in out

    def test_optimize_for_teams(self) -> None:
        out = optimize_for_teams("ok thx")
        assert out.startswith("--- PROMPT FOR TEAMS ---\n")
        assert out.rstrip().endswith("ok thx")

    def test_prompts_dir_override(self, tmp_path, monkeypatch) -> None:
        (tmp_path / "OptimizeForTeams.prompty").write_text("Chat: {{text}}", encoding="utf-8")
        monkeypatch.setenv(PROMPTS_DIR_ENV, str(tmp_path))
        assert optimize_for_teams("hi") == "--- PROMPT FOR TEAMS ---\nChat: hi"

    def test_missing_template(self, tmp_path, monkeypatch) -> None:
        monkeypatch.setenv(PROMPTS_DIR_ENV, str(tmp_path))
        with pytest.raises(FileNotFoundError):
            render_prompt("OptimizeForEmail", "hi")


class TestInMemoryServer:
    @pytest.mark.anyio
    async def test_catalog_lists_bundled_tools(self) -> None:
        async with create_connected_server_and_client_session(tool_server._mcp_server) as session:
            transport = McpTransport.from_session(session)
            catalog = await ToolCatalog(transport).list()
        assert set(catalog.names) == {"TranscribeAudio", "OptimizeForEmail", "OptimizeForTeams"}
        assert catalog.get("OptimizeForEmail").description == "Optimizes text for an email."

    @pytest.mark.anyio
    async def test_optimize_flow_end_to_end(self) -> None:
        async with create_connected_server_and_client_session(tool_server._mcp_server) as session:
            transport = McpTransport.from_session(session)
            flow = OptimizeFlow(ToolCatalog(transport), HeuristicSelector(), ToolInvoker(transport))
            outcome = await flow.run("ok thx")
        assert outcome.capability.name == "OptimizeForTeams"
        assert outcome.result.text.startswith("--- PROMPT FOR TEAMS ---")
        assert "ok thx" in outcome.result.text

    @pytest.mark.anyio
    async def test_transcribe_end_to_end(self) -> None:
        async with create_connected_server_and_client_session(tool_server._mcp_server) as session:
            transport = McpTransport.from_session(session)
            result = await ToolInvoker(transport).call(
                "TranscribeAudio", {"mp3FilePath": "a.mp3"}
            )
        assert result.text == "Transcription of 'a.mp3': This is a test transcription."

    @pytest.mark.anyio
    async def test_unknown_tool_rejected_before_sending(self) -> None:
        async with create_connected_server_and_client_session(tool_server._mcp_server) as session:
            transport = McpTransport.from_session(session)
            catalog = await ToolCatalog(transport).list()
            with pytest.raises(UnknownCapability):
                await ToolInvoker(transport).call("DoesNotExist", {}, catalog=catalog)
