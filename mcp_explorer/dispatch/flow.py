"""End-to-end optimize flow: discover, select, invoke.

Lifecycle::

    IDLE → CATALOG_FETCHED → SELECTING → SELECTED → INVOKING → COMPLETED
      ↘          ↘               ↘                       ↘
                         FAILED

Every failure is terminal for the run and re-raised to the caller; a
finished flow can be :meth:`OptimizeFlow.reset` back to ``IDLE``.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from mcp_explorer.dispatch.catalog import ToolCatalog
from mcp_explorer.dispatch.invoker import ToolInvoker
from mcp_explorer.dispatch.models import Capability, Catalog, InvocationResult
from mcp_explorer.dispatch.selectors import Selector
from mcp_explorer.errors import NoCandidates

logger = logging.getLogger(__name__)

# Argument name shared by the text-rewriting tools.
TEXT_ARGUMENT = "text"


class FlowPhase(str, Enum):
    IDLE = "idle"
    CATALOG_FETCHED = "catalog_fetched"
    SELECTING = "selecting"
    SELECTED = "selected"
    INVOKING = "invoking"
    COMPLETED = "completed"
    FAILED = "failed"


_FLOW_TRANSITIONS: Dict[FlowPhase, frozenset[FlowPhase]] = {
    FlowPhase.IDLE: frozenset({FlowPhase.CATALOG_FETCHED, FlowPhase.FAILED}),
    FlowPhase.CATALOG_FETCHED: frozenset({FlowPhase.SELECTING, FlowPhase.FAILED}),
    FlowPhase.SELECTING: frozenset({FlowPhase.SELECTED, FlowPhase.FAILED}),
    FlowPhase.SELECTED: frozenset({FlowPhase.INVOKING}),
    FlowPhase.INVOKING: frozenset({FlowPhase.COMPLETED, FlowPhase.FAILED}),
    FlowPhase.COMPLETED: frozenset({FlowPhase.IDLE}),
    FlowPhase.FAILED: frozenset({FlowPhase.IDLE}),
}


def is_valid_flow_transition(current: FlowPhase, target: FlowPhase) -> bool:
    """Check whether a flow phase transition is allowed."""
    return target in _FLOW_TRANSITIONS.get(current, frozenset())


class FlowCondition(BaseModel):
    """A timestamped phase entry recorded by a flow."""

    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    phase: FlowPhase
    message: str = ""


@dataclass(frozen=True)
class FlowOutcome:
    capability: Capability
    result: InvocationResult


class OptimizeFlow:
    """Runs one discover → select → invoke pass with a given selector.

    The catalog fetched at the start of a run is the only snapshot used
    for both selection and invocation validation.  Runs on one flow
    object are sequential; concurrent flows need separate objects.
    """

    def __init__(
        self,
        catalog: ToolCatalog,
        selector: Selector,
        invoker: ToolInvoker,
        text_argument: str = TEXT_ARGUMENT,
    ) -> None:
        self._catalog = catalog
        self._selector = selector
        self._invoker = invoker
        self._text_argument = text_argument
        self.phase = FlowPhase.IDLE
        self.conditions: List[FlowCondition] = []
        self.snapshot: Optional[Catalog] = None
        self.selected: Optional[Capability] = None
        self.error: Optional[BaseException] = None

    def transition(self, new_phase: FlowPhase, message: str = "") -> None:
        """Move to *new_phase*; raises :class:`ValueError` if not allowed."""
        if not is_valid_flow_transition(self.phase, new_phase):
            raise ValueError(f"Invalid flow transition: {self.phase.value} → {new_phase.value}")
        logger.debug("Flow %s → %s %s", self.phase.value, new_phase.value, message)
        self.phase = new_phase
        self.conditions.append(FlowCondition(phase=new_phase, message=message))

    def reset(self) -> None:
        """Return a finished flow to ``IDLE`` for a fresh attempt."""
        self.transition(FlowPhase.IDLE, "Reset")
        self.snapshot = None
        self.selected = None
        self.error = None

    async def run(
        self,
        input_text: str,
        cancel: Optional[asyncio.Event] = None,
        extra_arguments: Optional[Dict[str, Any]] = None,
    ) -> FlowOutcome:
        """Execute the flow for *input_text*.

        Raises whatever the failing step raised, after moving to ``FAILED``;
        a cancelled task also ends in ``FAILED`` so the flow can be reset.
        """
        if self.phase is not FlowPhase.IDLE:
            raise ValueError(f"Flow must be idle to run (current phase: {self.phase.value})")

        try:
            snapshot = await self._catalog.list(cancel=cancel)
        except (Exception, asyncio.CancelledError) as exc:
            self._fail(exc)
            raise
        self.snapshot = snapshot
        self.transition(FlowPhase.CATALOG_FETCHED, f"{len(snapshot)} tool(s)")
        if not len(snapshot):
            exc = NoCandidates()
            self._fail(exc)
            raise exc

        self.transition(FlowPhase.SELECTING)
        try:
            selected = await self._selector.select(snapshot, input_text, cancel=cancel)
        except (Exception, asyncio.CancelledError) as exc:
            self._fail(exc)
            raise
        self.selected = selected
        self.transition(FlowPhase.SELECTED, selected.name)

        arguments: Dict[str, Any] = dict(extra_arguments or {})
        arguments[self._text_argument] = input_text
        self.transition(FlowPhase.INVOKING, selected.name)
        try:
            result = await self._invoker.call(
                selected.name, arguments, catalog=snapshot, cancel=cancel
            )
        except (Exception, asyncio.CancelledError) as exc:
            self._fail(exc)
            raise

        self.transition(FlowPhase.COMPLETED)
        return FlowOutcome(capability=selected, result=result)

    def _fail(self, exc: BaseException) -> None:
        self.error = exc
        logger.warning(
            "Flow failed during phase '%s': %s: %s",
            self.phase.value,
            type(exc).__name__,
            exc,
        )
        self.transition(FlowPhase.FAILED, str(exc))
