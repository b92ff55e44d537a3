"""Decision oracles: LLM providers that pick a tool for a task."""

from mcp_explorer.oracle.providers import (
    AzureOpenAIOracle,
    ChatCompletionOracle,
    OpenAIOracle,
    create_oracle,
)

__all__ = [
    "AzureOpenAIOracle",
    "ChatCompletionOracle",
    "OpenAIOracle",
    "create_oracle",
]
