"""Tool invocation and result extraction."""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Dict, Mapping, Optional

from mcp_explorer.dispatch.cancellation import run_cancellable
from mcp_explorer.dispatch.models import (
    Catalog,
    InvocationRequest,
    InvocationResult,
    content_block_from_raw,
)
from mcp_explorer.dispatch.transport import Transport
from mcp_explorer.errors import TransportError, UnknownCapability

logger = logging.getLogger(__name__)


class ToolInvoker:
    """Calls a named tool and normalizes its content-block response.

    Name validation is the caller's contract: pass the catalog the name
    was chosen from as *catalog* to have unknown names rejected locally
    with :class:`UnknownCapability`.  Without it the name goes to the
    server as-is and an unknown tool surfaces as whatever the server
    reports (normally a :class:`RemoteToolError`).
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def call(
        self,
        capability_name: str,
        arguments: Optional[Mapping[str, Any]] = None,
        *,
        catalog: Optional[Catalog] = None,
        cancel: Optional[asyncio.Event] = None,
    ) -> InvocationResult:
        """Invoke *capability_name* with *arguments*.

        Raises:
            UnknownCapability: *catalog* was given and lacks the name.
            TransportError: Connection or protocol failure.
            RemoteToolError: The tool ran and reported an error.
            OperationCancelled: *cancel* was set.
        """
        if catalog is not None and capability_name not in catalog:
            logger.warning(
                "Rejecting call to '%s': not in catalog (%s).",
                capability_name,
                ", ".join(catalog.names),
            )
            raise UnknownCapability(capability_name)

        request = InvocationRequest(
            capability_name=capability_name,
            arguments=dict(arguments or {}),
        )
        logger.info(
            "Calling tool '%s' with argument keys %s",
            request.capability_name,
            sorted(request.arguments),
        )

        raw_blocks = await run_cancellable(
            lambda: self._transport.invoke(request.capability_name, request.arguments),
            cancel,
            "call",
        )
        if not isinstance(raw_blocks, list):
            raise TransportError(
                f"Unexpected response type {type(raw_blocks).__name__} "
                f"from tool '{request.capability_name}'"
            )

        result = InvocationResult.from_blocks(
            [content_block_from_raw(_as_mapping(raw)) for raw in raw_blocks]
        )
        if result.text is None:
            logger.info(
                "Tool '%s' returned %d block(s), none of kind 'text'.",
                request.capability_name,
                len(result.raw_blocks),
            )
        else:
            logger.debug(
                "Tool '%s' returned %d block(s); text length %d.",
                request.capability_name,
                len(result.raw_blocks),
                len(result.text),
            )
        return result


def _as_mapping(raw: Any) -> Dict[str, Any]:
    if isinstance(raw, Mapping):
        return dict(raw)
    raise TransportError(f"Malformed content block: {raw!r}")
