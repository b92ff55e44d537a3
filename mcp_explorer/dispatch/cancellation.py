"""Cooperative cancellation around remote round trips.

Every dispatch operation takes an optional ``asyncio.Event``.  The event
is checked before the round trip starts and raced against it while it is
in flight; whichever finishes first wins.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Optional, TypeVar

from mcp_explorer.errors import OperationCancelled

logger = logging.getLogger(__name__)

T = TypeVar("T")


def check_cancelled(cancel: Optional[asyncio.Event], operation: str) -> None:
    """Raise :class:`OperationCancelled` if *cancel* is already set."""
    if cancel is not None and cancel.is_set():
        logger.info("Operation '%s' cancelled before start.", operation)
        raise OperationCancelled(operation)


async def run_cancellable(
    call: Callable[[], Awaitable[T]],
    cancel: Optional[asyncio.Event],
    operation: str,
) -> T:
    """Await ``call()`` unless *cancel* fires first.

    *call* is a zero-argument factory so nothing is started when the
    signal is already set.
    """
    check_cancelled(cancel, operation)
    if cancel is None:
        return await call()

    work = asyncio.ensure_future(call())
    waiter = asyncio.ensure_future(cancel.wait())
    try:
        done, _ = await asyncio.wait({work, waiter}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        work.cancel()
        await asyncio.gather(work, return_exceptions=True)
        raise
    finally:
        waiter.cancel()

    if work in done:
        return work.result()

    logger.info("Operation '%s' cancelled while in flight.", operation)
    work.cancel()
    await asyncio.gather(work, return_exceptions=True)
    raise OperationCancelled(operation)
