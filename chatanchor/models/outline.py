"""Data models for the transcript outline and the panel state."""

import weakref
from collections.abc import Iterator
from enum import Enum
from typing import Any

from pydantic import BaseModel, Field


class Anchor:
    """Scan-scoped, non-owning handle to a live document node.

    The handle stops resolving once the outline that produced it has been
    discarded, even if the node itself is still part of the document.
    """

    __slots__ = ("_ref", "_valid")

    def __init__(self, node: Any):
        self._ref = weakref.ref(node)
        self._valid = True

    def resolve(self) -> Any | None:
        """Return the node, or None when the handle is stale."""
        if not self._valid:
            return None
        return self._ref()

    def invalidate(self) -> None:
        self._valid = False

    @property
    def valid(self) -> bool:
        return self._valid and self._ref() is not None

    def __repr__(self) -> str:
        return f"Anchor(valid={self.valid})"


class Entry(BaseModel):
    """One outline item, corresponding to one question/answer turn."""

    id: str = Field(..., description="Durable node identifier or a fabricated fallback")
    index: int = Field(..., description="1-based ordinal among question entries")
    summary_text: str = Field(..., description="Short label for the list row")
    preview_text: str = Field(..., description="Longer label for the hover preview")
    anchor: Anchor | None = Field(None, exclude=True, repr=False)

    class Config:
        """Pydantic configuration."""

        arbitrary_types_allowed = True

    def node(self) -> Any | None:
        """Resolve the anchor to its live node, if still valid."""
        return self.anchor.resolve() if self.anchor else None


class Outline:
    """Ordered entries produced by a single scan."""

    def __init__(self, entries: list[Entry] | None = None, generation: int = 0):
        self.entries = list(entries or [])
        self.generation = generation
        self.discarded = False

    def __iter__(self) -> Iterator[Entry]:
        return iter(self.entries)

    def __len__(self) -> int:
        return len(self.entries)

    def find(self, entry_id: str | None) -> Entry | None:
        if entry_id is None:
            return None
        for entry in self.entries:
            if entry.id == entry_id:
                return entry
        return None

    def by_index(self, index: int) -> Entry | None:
        for entry in self.entries:
            if entry.index == index:
                return entry
        return None

    def discard(self) -> None:
        """Invalidate every anchor held by this outline."""
        for entry in self.entries:
            if entry.anchor is not None:
                entry.anchor.invalidate()
        self.discarded = True

    def to_dict(self) -> list[dict]:
        return [entry.model_dump() for entry in self.entries]


class PanelState(BaseModel):
    """Mutable state shared by every panel subsystem."""

    active_entry_id: str | None = None
    search_term: str = ""
    editing_entry_id: str | None = None
    summarizing_entry_id: str | None = None
    is_animating: bool = False
    is_collapsed: bool = False
    jump_target_id: str | None = None
    tooltip_entry_id: str | None = None
    conversation_id: str | None = None

    @property
    def busy(self) -> bool:
        """True while an animation, inline edit or label request is in progress."""
        return bool(
            self.is_animating or self.editing_entry_id or self.summarizing_entry_id
        )


class EventType(str, Enum):
    """User gestures understood by the panel."""

    MOUSEDOWN = "mousedown"
    CLICK = "click"
    KEYDOWN = "keydown"
    INPUT = "input"
    MOUSEENTER = "mouseenter"
    MOUSELEAVE = "mouseleave"


class PanelControl(str, Enum):
    """Panel elements a gesture can land on."""

    ITEM = "item"
    RENAME_BUTTON = "rename"
    SUMMARIZE_BUTTON = "summarize"
    RENAME_INPUT = "rename-input"
    SEARCH_INPUT = "search"
    COLLAPSE_BUTTON = "collapse"


class PanelEvent(BaseModel):
    """A user gesture delivered to the panel controller."""

    type: EventType
    control: PanelControl
    entry_id: str | None = None
    key: str | None = None
    value: str | None = None
