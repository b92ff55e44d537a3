"""Bundled MCP tool server.

Exposes the three tools the explorer works with:

* ``TranscribeAudio`` – stub transcription of an audio file.
* ``OptimizeForEmail`` / ``OptimizeForTeams`` – render the matching
  prompt template around the input text.
"""

import logging
import os
from pathlib import Path

from mcp.server.fastmcp import FastMCP

from mcp_explorer.constants import (
    EMAIL_TOOL,
    PROMPT_PLACEHOLDER,
    PROMPTS_DIR_ENV,
    TEAMS_TOOL,
    TOOL_SERVER_NAME,
    TRANSCRIBE_TOOL,
)

logger = logging.getLogger(__name__)

_BUNDLED_PROMPTS_DIR = Path(__file__).resolve().parent.parent / "prompts"

tool_server = FastMCP(TOOL_SERVER_NAME)


def prompts_dir() -> Path:
    """Template directory: ``$MCP_EXPLORER_PROMPTS_DIR`` or the bundled one."""
    override = os.environ.get(PROMPTS_DIR_ENV)
    return Path(override) if override else _BUNDLED_PROMPTS_DIR


def render_prompt(template_name: str, text: str) -> str:
    """Read ``<template_name>.prompty`` and substitute ``{{text}}``."""
    path = prompts_dir() / f"{template_name}.prompty"
    template = path.read_text(encoding="utf-8")
    return template.replace(PROMPT_PLACEHOLDER, text)


@tool_server.tool(name=TRANSCRIBE_TOOL, description="Transcribes an audio file to text.")
def transcribe_audio(mp3FilePath: str) -> str:  # noqa: N803
    # No speech-to-text backend; the transcription is a fixed stub.
    logger.info("Tool '%s' called for file '%s'", TRANSCRIBE_TOOL, mp3FilePath)
    return f"Transcription of '{mp3FilePath}': This is a test transcription."


@tool_server.tool(name=EMAIL_TOOL, description="Optimizes text for an email.")
def optimize_for_email(text: str) -> str:
    logger.info("Tool '%s' called (%d chars)", EMAIL_TOOL, len(text))
    prompt = render_prompt(EMAIL_TOOL, text)
    return f"--- PROMPT FOR EMAIL ---\n{prompt}"


@tool_server.tool(name=TEAMS_TOOL, description="Optimizes text for a Teams message.")
def optimize_for_teams(text: str) -> str:
    logger.info("Tool '%s' called (%d chars)", TEAMS_TOOL, len(text))
    prompt = render_prompt(TEAMS_TOOL, text)
    return f"--- PROMPT FOR TEAMS ---\n{prompt}"


def run_server(transport: str = "stdio", host: str = "127.0.0.1", port: int = 8000) -> None:
    """Serve the tools until the transport closes."""
    if transport != "stdio":
        tool_server.settings.host = host
        tool_server.settings.port = port
    logger.info("Starting %s tool server with %s transport...", TOOL_SERVER_NAME, transport)
    tool_server.run(transport=transport)
    logger.info("%s tool server has shut down.", TOOL_SERVER_NAME)
