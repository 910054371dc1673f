"""Data models for ChatAnchor."""

from chatanchor.models.outline import (
    Anchor,
    Entry,
    EventType,
    Outline,
    PanelControl,
    PanelEvent,
    PanelState,
)

__all__ = [
    "Anchor",
    "Entry",
    "EventType",
    "Outline",
    "PanelControl",
    "PanelEvent",
    "PanelState",
]
