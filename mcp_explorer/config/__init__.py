"""Configuration loading and validation."""

from mcp_explorer.config.loader import connection_to_dict, expand_env_vars, load_config
from mcp_explorer.config.schema import ExplorerConfig, HeuristicSettings, LlmSettings

__all__ = [
    "ExplorerConfig",
    "HeuristicSettings",
    "LlmSettings",
    "connection_to_dict",
    "expand_env_vars",
    "load_config",
]
