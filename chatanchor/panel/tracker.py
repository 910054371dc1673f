"""Active entry tracking from the scroll position."""

from collections.abc import Callable
from typing import Any

from chatanchor.models.outline import Outline, PanelState

TopFn = Callable[[Any], float | None]


class ActiveItemTracker:
    """Pick the entry the reader is currently in.

    The active entry is the last one, in document order, whose top edge has
    scrolled to or above the activation threshold below the viewport top.
    """

    def __init__(self, threshold: float = 150.0):
        self.threshold = threshold

    def compute_active(self, outline: Outline, top_of: TopFn) -> str | None:
        """Return the id of the active entry, or None when no entry qualifies.

        Args:
            outline: The current outline.
            top_of: Maps a live node to its viewport-relative top, or None.
        """
        active = None
        for entry in outline:
            node = entry.node()
            if node is None:
                continue
            top = top_of(node)
            if top is None:
                continue
            if top > self.threshold:
                break
            active = entry.id
        return active

    def update(self, state: PanelState, outline: Outline, top_of: TopFn) -> bool:
        """Store the active entry in the panel state.

        Nothing happens while a scroll animation is in flight.

        Returns:
            True when the active entry changed and the panel needs a render.
        """
        if state.is_animating:
            return False

        active = self.compute_active(outline, top_of)
        if active == state.active_entry_id:
            return False
        state.active_entry_id = active
        return True
