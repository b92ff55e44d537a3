"""Logging configuration setup."""

import copy
import logging
import logging.config
import os
import re
import sys
from datetime import datetime
from typing import Optional, Set, Tuple  # noqa: UP035

from mcp_explorer.constants import DEFAULT_LOG_LEVEL, LOG_DIR

# ── Secret redaction filter ──────────────────────────────────────────────

_REDACTED = "***REDACTED***"


class SecretRedactionFilter(logging.Filter):
    """Logging filter that replaces registered secret values (API keys,
    bearer tokens) with a placeholder.
    """

    def __init__(self) -> None:
        super().__init__()
        self._secrets: Set[str] = set()
        self._pattern: Optional[re.Pattern[str]] = None

    def register(self, value: Optional[str]) -> None:
        """Register a secret value for redaction."""
        if value and len(value) >= 4:  # skip trivially short values
            self._secrets.add(value)
            # Longest first so overlapping secrets are fully masked
            escaped = sorted((re.escape(s) for s in self._secrets), key=len, reverse=True)
            self._pattern = re.compile("|".join(escaped))

    def redact(self, text: str) -> str:
        if self._pattern is None:
            return text
        return self._pattern.sub(_REDACTED, text)

    def filter(self, record: logging.LogRecord) -> bool:
        if self._pattern is None:
            return True
        if isinstance(record.msg, str):
            record.msg = self.redact(record.msg)
        if isinstance(record.args, dict):
            record.args = {
                k: self.redact(v) if isinstance(v, str) else v for k, v in record.args.items()
            }
        elif isinstance(record.args, tuple):
            record.args = tuple(self.redact(a) if isinstance(a, str) else a for a in record.args)
        return True


# Module-level singleton so oracle providers can register keys at build time.
secret_redaction_filter = SecretRedactionFilter()

_APP_LOGGERS = (
    "mcp_explorer",
    "mcp_explorer.dispatch",
    "mcp_explorer.bridge",
    "mcp_explorer.oracle",
    "mcp_explorer.config",
    "mcp_explorer.server",
    "mcp",
    "httpx",
)

BASE_LOG_CFG = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "simple_file": {
            "format": "%(asctime)s - %(name)25s:%(lineno)-4d - %(levelname)-7s - %(message)s",
            "datefmt": "%Y-%m-%d %H:%M:%S",
        },
    },
    "handlers": {
        "file_handler": {
            "class": "logging.FileHandler",
            "level": "DEBUG",
            "formatter": "simple_file",
            "filename": "temp_log_name.log",
            "encoding": "utf-8",
        },
    },
    "loggers": {
        name: {"handlers": ["file_handler"], "propagate": False, "level": "INFO"}
        for name in _APP_LOGGERS
    },
    "root": {
        "handlers": ["file_handler"],
        "level": "WARNING",
    },
}


def setup_logging(
    log_lvl_str: str = DEFAULT_LOG_LEVEL,
    *,
    log_prefix: str = "explorer",
    quiet: bool = False,
) -> Tuple[str, str]:
    """
    Set up the logging system.

    Logs go to a timestamped file under ``logs/`` so that stdout stays
    free for command output (and for the MCP stdio stream when serving).

    Args:
        log_lvl_str: The desired log level string (e.g., 'debug', 'info').
        log_prefix: File name prefix, e.g. ``explorer`` or ``server``.
        quiet: If *True*, suppress all ``print()`` output.

    Returns:
        A tuple of (log_file_path, validated_log_level).
    """
    log_lvl_valid = log_lvl_str.upper()
    valid_levels = ["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]
    if log_lvl_valid not in valid_levels:
        if not quiet:
            print(f"Warning: invalid log level '{log_lvl_str}'. Using 'INFO'.", file=sys.stderr)
        log_lvl_valid = "INFO"

    ts = datetime.now().strftime("%Y%m%d_%H%M%S")
    os.makedirs(LOG_DIR, exist_ok=True)
    log_fpath = os.path.join(LOG_DIR, f"{log_prefix}_{ts}_{log_lvl_valid}.log")

    log_cfg: dict = copy.deepcopy(BASE_LOG_CFG)
    log_cfg["handlers"]["file_handler"]["filename"] = log_fpath
    for name in _APP_LOGGERS:
        log_cfg["loggers"][name]["level"] = log_lvl_valid
    # httpx logs every request at INFO; only show it when debugging.
    log_cfg["loggers"]["httpx"]["level"] = "DEBUG" if log_lvl_valid == "DEBUG" else "WARNING"
    log_cfg["root"]["level"] = log_lvl_valid if log_lvl_valid == "DEBUG" else "WARNING"

    try:
        logging.config.dictConfig(log_cfg)
        for handler in logging.root.handlers:
            handler.addFilter(secret_redaction_filter)
        for name in _APP_LOGGERS:
            for handler in logging.getLogger(name).handlers:
                handler.addFilter(secret_redaction_filter)
    except (ValueError, TypeError, AttributeError, ImportError, OSError) as e_log_cfg:
        if not quiet:
            print(f"Error applying logging configuration: {e_log_cfg}", file=sys.stderr)

    return log_fpath, log_lvl_valid
