"""Pydantic configuration models for MCP Explorer.

Defines the validated config structure::

    connection:
      type: stdio
      command: python
      args: ["-m", "mcp_explorer", "serve"]
    llm:
      provider: OpenAI
      openai: { model: gpt-4o-mini, api_key: "${OPENAI_API_KEY}" }
    heuristic:
      email_keywords: [sincerely, regards, hello, dear]
"""

from __future__ import annotations

from typing import Annotated, Dict, List, Literal, Optional, Union

from pydantic import BaseModel, Field, field_validator

from mcp_explorer.constants import (
    AZURE_API_VERSION,
    CALL_TIMEOUT,
    CHAT_MARKER,
    DISCOVER_TIMEOUT,
    EMAIL_KEYWORDS,
    EMAIL_MARKER,
    LONG_TEXT_THRESHOLD,
    MCP_INIT_TIMEOUT,
    OPENAI_BASE_URL,
    OPTIMIZE_MARKER,
    ORACLE_TIMEOUT,
)

# ── Connection ───────────────────────────────────────────────────────────


class TimeoutConfig(BaseModel):
    """Connection timeouts in seconds."""

    init: float = Field(
        default=MCP_INIT_TIMEOUT,
        gt=0,
        description="MCP session initialization timeout.",
    )
    discover: float = Field(
        default=DISCOVER_TIMEOUT,
        gt=0,
        description="Tool list fetch timeout.",
    )
    call: float = Field(
        default=CALL_TIMEOUT,
        gt=0,
        description="Single tool call timeout.",
    )


def _validate_http_url(v: str) -> str:
    v = v.strip()
    if not v.startswith(("http://", "https://")):
        raise ValueError(f"URL '{v}' must start with http:// or https://")
    return v


class StdioConnectionConfig(BaseModel):
    """Launch the tool server as a subprocess and talk over stdio."""

    type: Literal["stdio"]
    command: str = Field(default="python", min_length=1, description="Executable to run")
    args: List[str] = Field(default_factory=lambda: ["-m", "mcp_explorer", "serve"])
    env: Optional[Dict[str, str]] = None
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)

    @field_validator("command")
    @classmethod
    def _strip_command(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("command must be a non-empty string")
        return v


class SseConnectionConfig(BaseModel):
    """Connect to a running tool server over SSE."""

    type: Literal["sse"]
    url: str = Field(..., min_length=1, description="SSE endpoint URL")
    headers: Optional[Dict[str, str]] = Field(
        default=None,
        description="Extra HTTP headers (e.g. Authorization). Supports ${ENV_VAR}.",
    )
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)

    @field_validator("url")
    @classmethod
    def _validate_url(cls, v: str) -> str:
        return _validate_http_url(v)


class StreamableHttpConnectionConfig(BaseModel):
    """Connect to a running tool server over streamable HTTP."""

    type: Literal["streamable-http"]
    url: str = Field(..., min_length=1, description="Streamable HTTP endpoint URL")
    headers: Optional[Dict[str, str]] = Field(
        default=None,
        description="Extra HTTP headers (e.g. Authorization). Supports ${ENV_VAR}.",
    )
    timeouts: TimeoutConfig = Field(default_factory=TimeoutConfig)

    @field_validator("url")
    @classmethod
    def _validate_url(cls, v: str) -> str:
        return _validate_http_url(v)


# Discriminated union: pick the right model based on "type" field
ConnectionConfig = Annotated[
    Union[StdioConnectionConfig, SseConnectionConfig, StreamableHttpConnectionConfig],
    Field(discriminator="type"),
]


# ── LLM oracle ───────────────────────────────────────────────────────────


class OpenAISettings(BaseModel):
    """OpenAI chat-completions settings."""

    model: Optional[str] = None
    api_key: Optional[str] = Field(default=None, description="Supports ${ENV_VAR}.")
    base_url: str = Field(default=OPENAI_BASE_URL)

    @field_validator("base_url")
    @classmethod
    def _validate_url(cls, v: str) -> str:
        return _validate_http_url(v)


class AzureOpenAISettings(BaseModel):
    """Azure OpenAI chat-completions settings."""

    deployment_name: Optional[str] = None
    endpoint: Optional[str] = None
    api_key: Optional[str] = Field(default=None, description="Supports ${ENV_VAR}.")
    api_version: str = Field(default=AZURE_API_VERSION)


class LlmSettings(BaseModel):
    """Decision-oracle provider selection.

    ``provider`` is kept as a free string so that an unsupported name is
    reported when the oracle is built rather than when the file loads.
    """

    provider: Optional[str] = Field(
        default=None,
        description="Backing provider: 'OpenAI' or 'AzureOpenAI'.",
    )
    openai: OpenAISettings = Field(default_factory=OpenAISettings)
    azure_openai: AzureOpenAISettings = Field(default_factory=AzureOpenAISettings)
    timeout: float = Field(default=ORACLE_TIMEOUT, gt=0)
    temperature: float = Field(default=0.0, ge=0, le=2)


# ── Heuristic selection ──────────────────────────────────────────────────


class HeuristicSettings(BaseModel):
    """Markers and keywords for the heuristic selector."""

    family_marker: str = Field(default=OPTIMIZE_MARKER, min_length=1)
    email_marker: str = Field(default=EMAIL_MARKER, min_length=1)
    chat_marker: str = Field(default=CHAT_MARKER, min_length=1)
    email_keywords: List[str] = Field(default_factory=lambda: list(EMAIL_KEYWORDS))
    length_threshold: int = Field(default=LONG_TEXT_THRESHOLD, ge=0)


# ── Top-level config ────────────────────────────────────────────────────


class ExplorerConfig(BaseModel):
    """Top-level validated configuration for MCP Explorer."""

    version: str = "1"
    connection: ConnectionConfig = Field(
        default_factory=lambda: StdioConnectionConfig(type="stdio")
    )
    llm: LlmSettings = Field(default_factory=LlmSettings)
    heuristic: HeuristicSettings = Field(default_factory=HeuristicSettings)
