"""Configuration file discovery, loading and validation.

Loads a YAML configuration file, expands ``${ENV_VAR}`` placeholders and
validates against the Pydantic models in :mod:`schema`.  A missing file
is not an error: the defaults launch the bundled tool server over stdio.
"""

import logging
import os
import re
import sys
from typing import Any, Dict, List, Optional

import yaml
from mcp import StdioServerParameters
from pydantic import ValidationError

from mcp_explorer.config.schema import (
    ExplorerConfig,
    SseConnectionConfig,
    StdioConnectionConfig,
    StreamableHttpConnectionConfig,
)
from mcp_explorer.constants import CONFIG_ENV
from mcp_explorer.errors import ConfigurationError

logger = logging.getLogger(__name__)

# Recognised config file extensions.
_YAML_EXTS = frozenset({".yaml", ".yml"})

# Config file search order (first match wins)
_CONFIG_SEARCH_ORDER = ("config.yaml", "config.yml")

# ${VAR} or ${VAR:-fallback}
_ENV_VAR_RE = re.compile(r"\$\{(\w+)(?::-([^}]*))?\}")


def expand_env_vars(value: Any) -> Any:
    """Recursively expand ``${VAR}`` / ``${VAR:-fallback}`` in strings.

    An unset variable without a fallback leaves the placeholder unchanged.
    """
    if isinstance(value, str):

        def _sub(m: "re.Match[str]") -> str:
            env_val = os.environ.get(m.group(1))
            if env_val is not None:
                return env_val
            return m.group(2) if m.group(2) is not None else m.group(0)

        return _ENV_VAR_RE.sub(_sub, value)
    if isinstance(value, dict):
        return {k: expand_env_vars(v) for k, v in value.items()}
    if isinstance(value, list):
        return [expand_env_vars(item) for item in value]
    return value


def find_config_file() -> Optional[str]:
    """Locate a config file: ``$MCP_EXPLORER_CONFIG``, then CWD, then the
    package's parent directory.  Returns ``None`` if nothing is found.
    """
    env_path = os.environ.get(CONFIG_ENV)
    if env_path:
        return env_path
    pkg_parent_dir = os.path.dirname(os.path.dirname(os.path.dirname(os.path.abspath(__file__))))
    for base_dir in (os.getcwd(), pkg_parent_dir):
        for name in _CONFIG_SEARCH_ORDER:
            candidate = os.path.join(base_dir, name)
            if os.path.isfile(candidate):
                return candidate
    return None


def _read_config_file(cfg_fpath: str) -> Dict[str, Any]:
    """Read and parse a YAML config file from *cfg_fpath*."""
    ext = os.path.splitext(cfg_fpath)[1].lower()
    if ext not in _YAML_EXTS:
        raise ConfigurationError(
            f"Unsupported config file extension '{ext}'. "
            "Only YAML files (.yaml, .yml) are supported."
        )

    try:
        with open(cfg_fpath, "r", encoding="utf-8") as f:
            raw_data = yaml.safe_load(f)
    except (OSError, yaml.YAMLError) as exc:
        raise ConfigurationError(f"Error reading configuration file: {cfg_fpath}\n  {exc}") from exc

    if raw_data is None:
        return {}
    if not isinstance(raw_data, dict):
        raise ConfigurationError(
            "Top-level configuration content must be a YAML mapping (dictionary)."
        )
    return raw_data


def _format_validation_errors(exc: ValidationError) -> str:
    """Format Pydantic validation errors into a readable multi-line string."""
    lines: List[str] = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"])
        lines.append(f"  • {loc}: {err['msg']}")
    return "\n".join(lines)


def validate_config(raw_data: Dict[str, Any]) -> ExplorerConfig:
    """Expand env vars in *raw_data* and validate it (all errors at once)."""
    raw_data = expand_env_vars(raw_data)
    try:
        return ExplorerConfig.model_validate(raw_data)
    except ValidationError as exc:
        error_summary = _format_validation_errors(exc)
        raise ConfigurationError(
            f"Configuration validation failed ({len(exc.errors())} error(s)):\n{error_summary}"
        ) from exc


def load_config(cfg_fpath: Optional[str] = None) -> ExplorerConfig:
    """Load the configuration.

    With no explicit path the file is auto-detected; when none exists the
    built-in defaults are returned.  An explicit path that does not exist
    is an error.

    Raises:
        ConfigurationError: On I/O, parse or validation failures.
    """
    explicit = cfg_fpath is not None
    if cfg_fpath is None:
        cfg_fpath = find_config_file()
    if cfg_fpath is None:
        logger.info("No configuration file found, using defaults.")
        return ExplorerConfig()

    if not os.path.exists(cfg_fpath):
        if explicit or os.environ.get(CONFIG_ENV):
            raise ConfigurationError(f"Configuration file does not exist: {cfg_fpath}")
        return ExplorerConfig()

    logger.debug("Loading configuration file: %s", cfg_fpath)
    config = validate_config(_read_config_file(cfg_fpath))
    logger.info(
        "Configuration '%s' loaded (v%s, connection type: %s).",
        cfg_fpath,
        config.version,
        config.connection.type,
    )
    return config


def connection_to_dict(config: ExplorerConfig) -> Dict[str, Any]:
    """Convert the validated connection model to the ``McpTransport`` dict format."""
    conn = config.connection
    if isinstance(conn, StdioConnectionConfig):
        command = conn.command
        if command.lower() == "python":
            command = sys.executable or "python"
        params = StdioServerParameters(command=command, args=conn.args, env=conn.env)
        entry: Dict[str, Any] = {"type": "stdio", "params": params}
    elif isinstance(conn, (SseConnectionConfig, StreamableHttpConnectionConfig)):
        entry = {"type": conn.type, "url": conn.url}
        if conn.headers:
            entry["headers"] = conn.headers
    else:
        raise ConfigurationError(f"Unsupported connection type: {type(conn).__name__}")

    entry["init_timeout"] = conn.timeouts.init
    entry["discover_timeout"] = conn.timeouts.discover
    entry["call_timeout"] = conn.timeouts.call
    return entry
