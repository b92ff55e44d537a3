"""Tool discovery: fetch the current capability catalog from the server."""

from __future__ import annotations

import asyncio
import logging
from collections import Counter
from typing import Any, List, Optional

from mcp_explorer.dispatch.cancellation import run_cancellable
from mcp_explorer.dispatch.models import Capability, Catalog
from mcp_explorer.dispatch.transport import Transport
from mcp_explorer.errors import TransportError

logger = logging.getLogger(__name__)


class ToolCatalog:
    """Discovers the tools exposed by the connected server.

    Nothing is cached: every :meth:`list` call is a fresh ``tools/list``
    round trip and returns a new :class:`Catalog` snapshot.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def list(self, cancel: Optional[asyncio.Event] = None) -> Catalog:
        """Fetch the full catalog.

        Raises:
            TransportError: The server is unreachable, the connection is
                not established, or the response is not a tool list.
            OperationCancelled: *cancel* was set.
        """
        logger.debug("Requesting tool list...")
        raw_tools = await run_cancellable(self._transport.discover, cancel, "list")

        if raw_tools is None:
            logger.info("discover() returned None, treating as no tools.")
            raw_tools = []
        if not isinstance(raw_tools, list):
            raise TransportError(
                f"Unexpected discovery response type {type(raw_tools).__name__}"
            )

        capabilities: List[Capability] = []
        for raw in raw_tools:
            cap = _capability_from_raw(raw)
            if cap is None:
                logger.warning("Found unnamed or malformed tool entry, skipped: %r", raw)
                continue
            capabilities.append(cap)

        # Catalog keeps the first instance of each name.
        catalog = Catalog(capabilities)
        if len(catalog) < len(capabilities):
            counts = Counter(cap.name for cap in capabilities)
            logger.warning(
                "Duplicate tool(s) provided multiple times: %s. "
                "Only the first instance is kept.",
                ", ".join(name for name, n in counts.items() if n > 1),
            )
        logger.info("Discovered %d tool(s): %s", len(catalog), ", ".join(catalog.names))
        return catalog


def _capability_from_raw(raw: Any) -> Optional[Capability]:
    if not isinstance(raw, dict):
        return None
    name = raw.get("name")
    if not isinstance(name, str) or not name:
        return None
    description = raw.get("description") or ""
    return Capability(name=name, description=str(description))
