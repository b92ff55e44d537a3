"""Data model for tool discovery, selection and invocation.

Capabilities and catalogs are immutable snapshots of what the tool server
reported; a refresh means fetching a new :class:`Catalog`, never mutating
an existing one.  Response content is modelled as an explicit tagged
variant (:class:`TextBlock` / :class:`OtherBlock`).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Mapping, Optional, Sequence, Tuple, Union


@dataclass(frozen=True)
class Capability:
    """A named, remotely invocable tool and its human-readable description."""

    name: str
    description: str = ""

    def to_dict(self) -> Dict[str, str]:
        return {"name": self.name, "description": self.description}


class Catalog:
    """Ordered, read-only set of capabilities in server-reported order.

    Names are unique: when the server reports a name twice only the first
    occurrence is kept.
    """

    __slots__ = ("_items", "_by_name")

    def __init__(self, capabilities: Sequence[Capability] = ()) -> None:
        items: List[Capability] = []
        by_name: Dict[str, Capability] = {}
        for cap in capabilities:
            if cap.name in by_name:
                continue
            by_name[cap.name] = cap
            items.append(cap)
        self._items: Tuple[Capability, ...] = tuple(items)
        self._by_name = by_name

    def __iter__(self) -> Iterator[Capability]:
        return iter(self._items)

    def __len__(self) -> int:
        return len(self._items)

    def __contains__(self, name: object) -> bool:
        if isinstance(name, Capability):
            name = name.name
        return name in self._by_name

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Catalog):
            return NotImplemented
        return self._items == other._items

    def __repr__(self) -> str:
        return f"Catalog({list(self.names)!r})"

    def get(self, name: str) -> Optional[Capability]:
        """Look up a capability by exact name."""
        return self._by_name.get(name)

    @property
    def names(self) -> List[str]:
        return [cap.name for cap in self._items]

    def filter(self, marker: str) -> List[Capability]:
        """Capabilities whose name contains *marker*, in catalog order."""
        return [cap for cap in self._items if marker in cap.name]

    def to_list(self) -> List[Dict[str, str]]:
        return [cap.to_dict() for cap in self._items]


# ── Content blocks ───────────────────────────────────────────────────────


@dataclass(frozen=True)
class TextBlock:
    """A ``text`` content block."""

    text: str
    kind: str = field(default="text", init=False)


@dataclass(frozen=True)
class OtherBlock:
    """Any non-text content block (image, audio, resource, ...)."""

    kind: str
    payload: Any = None


ContentBlock = Union[TextBlock, OtherBlock]


def content_block_from_raw(raw: Mapping[str, Any]) -> ContentBlock:
    """Build a typed content block from a transport ``{kind, payload}`` dict."""
    kind = raw.get("kind")
    payload = raw.get("payload")
    if kind == "text":
        if isinstance(payload, str):
            return TextBlock(text=payload)
        return TextBlock(text="" if payload is None else str(payload))
    return OtherBlock(kind=str(kind or "unknown"), payload=payload)


def first_text(blocks: Sequence[ContentBlock]) -> Optional[str]:
    """Return the text of the first :class:`TextBlock`, or ``None``."""
    for block in blocks:
        if isinstance(block, TextBlock):
            return block.text
        if isinstance(block, OtherBlock):
            continue
        raise TypeError(f"Unsupported content block: {block!r}")
    return None


# ── Requests and results ─────────────────────────────────────────────────


@dataclass(frozen=True)
class InvocationRequest:
    capability_name: str
    arguments: Dict[str, Any] = field(default_factory=dict)


@dataclass(frozen=True)
class InvocationResult:
    """Normalized tool result.

    ``text`` is ``None`` when the response carried no text block, which
    is distinct from a tool that returned an empty string.
    """

    raw_blocks: Tuple[ContentBlock, ...] = ()
    text: Optional[str] = None

    @classmethod
    def from_blocks(cls, blocks: Sequence[ContentBlock]) -> InvocationResult:
        blocks = tuple(blocks)
        return cls(raw_blocks=blocks, text=first_text(blocks))

    @property
    def has_text(self) -> bool:
        return self.text is not None


@dataclass(frozen=True)
class Decision:
    """A tool choice returned by the decision oracle."""

    capability_name: str
