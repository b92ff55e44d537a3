"""Tool selection strategies.

Two interchangeable selectors pick one capability from a catalog for a
piece of input text:

* **HeuristicSelector** – deterministic keyword / length rule.
* **OracleSelector** – asks an external decision oracle (an LLM) and
  validates its answer against the catalog.
"""

from __future__ import annotations

import asyncio
import json
import logging
from typing import Any, Iterable, List, Optional, Protocol, Sequence

from mcp_explorer.constants import (
    CHAT_MARKER,
    EMAIL_KEYWORDS,
    EMAIL_MARKER,
    LONG_TEXT_THRESHOLD,
    OPTIMIZE_MARKER,
)
from mcp_explorer.dispatch.cancellation import check_cancelled, run_cancellable
from mcp_explorer.dispatch.models import Capability, Catalog, Decision
from mcp_explorer.errors import NoCandidates, OracleDecodeError, OracleUnknownCapability

logger = logging.getLogger(__name__)


# ── Protocols ────────────────────────────────────────────────────────────


class Selector(Protocol):
    """Picks one capability of *catalog* for *input_text*."""

    async def select(
        self,
        catalog: Catalog,
        input_text: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> Capability: ...


class DecisionOracle(Protocol):
    """External decision maker.

    Receives the catalog serialized as a JSON array of
    ``{"name", "description"}`` objects plus the task text, and returns
    raw text expected to contain ``{"tool_name": "..."}``.
    """

    async def decide(self, serialized_catalog: str, task: str) -> str: ...


# ── Heuristic ────────────────────────────────────────────────────────────


class HeuristicSelector:
    """Keyword and length based selection among the optimization tools.

    Long text, or text containing an email keyword (case-insensitive),
    goes to the email tool; everything else goes to the chat tool.  When
    the preferred tool is missing the first candidate wins.
    """

    def __init__(
        self,
        family_marker: str = OPTIMIZE_MARKER,
        email_marker: str = EMAIL_MARKER,
        chat_marker: str = CHAT_MARKER,
        email_keywords: Iterable[str] = EMAIL_KEYWORDS,
        length_threshold: int = LONG_TEXT_THRESHOLD,
    ) -> None:
        self.family_marker = family_marker
        self.email_marker = email_marker
        self.chat_marker = chat_marker
        self.email_keywords = tuple(kw.lower() for kw in email_keywords if kw)
        self.length_threshold = length_threshold

    def is_email_like(self, input_text: str) -> bool:
        if len(input_text) > self.length_threshold:
            return True
        lowered = input_text.lower()
        return any(kw in lowered for kw in self.email_keywords)

    def choose(self, catalog: Catalog, input_text: str) -> Capability:
        """Pure selection; same catalog and text always give the same tool."""
        candidates = catalog.filter(self.family_marker)
        if not candidates:
            raise NoCandidates(self.family_marker)

        marker = self.email_marker if self.is_email_like(input_text) else self.chat_marker
        return _first_matching(candidates, marker) or candidates[0]

    async def select(
        self,
        catalog: Catalog,
        input_text: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> Capability:
        check_cancelled(cancel, "select")
        selected = self.choose(catalog, input_text)
        logger.info(
            "Heuristic selected '%s' (input length %d).",
            selected.name,
            len(input_text),
        )
        return selected


def _first_matching(candidates: Sequence[Capability], marker: str) -> Optional[Capability]:
    for cap in candidates:
        if marker in cap.name:
            return cap
    return None


# ── Oracle ───────────────────────────────────────────────────────────────


class OracleSelector:
    """Delegates the choice to a :class:`DecisionOracle`.

    The oracle's answer is never trusted: a reply that does not decode to
    a non-empty ``tool_name`` raises :class:`OracleDecodeError`, and a
    name missing from *catalog* raises :class:`OracleUnknownCapability`.
    """

    def __init__(self, oracle: DecisionOracle) -> None:
        self._oracle = oracle

    async def select(
        self,
        catalog: Catalog,
        input_text: str,
        cancel: Optional[asyncio.Event] = None,
    ) -> Capability:
        serialized = serialize_catalog(catalog)
        logger.info("Asking oracle to choose among %d tool(s)...", len(catalog))
        reply = await run_cancellable(
            lambda: self._oracle.decide(serialized, input_text),
            cancel,
            "select",
        )
        logger.debug("Oracle reply: %r", reply)

        decision = parse_decision(reply)
        selected = catalog.get(decision.capability_name)
        if selected is None:
            logger.warning(
                "Oracle selected '%s', which is not in the catalog (%s).",
                decision.capability_name,
                ", ".join(catalog.names),
            )
            raise OracleUnknownCapability(decision.capability_name)

        logger.info("Oracle selected '%s'.", selected.name)
        return selected


def serialize_catalog(catalog: Catalog) -> str:
    """JSON array of ``{"name", "description"}`` in catalog order."""
    return json.dumps(catalog.to_list(), ensure_ascii=False)


def parse_decision(reply: Any) -> Decision:
    """Decode an oracle reply into a :class:`Decision`.

    The whole reply is tried as JSON first; failing that, the first JSON
    object embedded in the text (e.g. inside a Markdown fence) is used.
    """
    if not isinstance(reply, str):
        raise OracleDecodeError("Oracle reply is not text", raw_reply=repr(reply))

    obj = _extract_json_object(reply)
    if obj is None:
        raise OracleDecodeError("Oracle reply contains no JSON object", raw_reply=reply)

    tool_name = obj.get("tool_name")
    if not isinstance(tool_name, str) or not tool_name.strip():
        raise OracleDecodeError("Oracle reply has no usable 'tool_name'", raw_reply=reply)
    return Decision(capability_name=tool_name.strip())


def _extract_json_object(text: str) -> Optional[dict]:
    stripped = text.strip()
    try:
        parsed = json.loads(stripped)
    except ValueError:
        parsed = None
    if isinstance(parsed, dict):
        return parsed

    decoder = json.JSONDecoder()
    starts: List[int] = [i for i, ch in enumerate(stripped) if ch == "{"]
    for start in starts:
        try:
            candidate, _ = decoder.raw_decode(stripped, start)
        except ValueError:
            continue
        if isinstance(candidate, dict):
            return candidate
    return None
