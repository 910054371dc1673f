"""Re-targeting scroll animation."""

from collections.abc import Callable
from typing import Any

from chatanchor.document import HostDocument, ScrollContainer
from chatanchor.logging import get_logger
from chatanchor.models.outline import Outline
from chatanchor.scheduling import Handle, Scheduler

logger = get_logger(__name__)

EntryCallback = Callable[[str], Any]


def ease_out_cubic(progress: float) -> float:
    return 1 - (1 - progress) ** 3


class ScrollAnimator:
    """Scroll a container to an entry, re-aiming at the entry on every frame.

    Content above the target may still be laid out while the animation runs,
    so the target offset is recomputed from the anchor's live position on each
    frame instead of being captured once at the start. Only one animation is
    in flight at a time; starting a new one preempts the previous one without
    running its callbacks.
    """

    def __init__(
        self,
        scheduler: Scheduler,
        document: HostDocument,
        duration: float = 500.0,
        lead_in: float = 20.0,
    ):
        """Initialize the animator.

        Args:
            scheduler: Provides the clock and animation frames.
            document: Host document used to measure anchor positions.
            duration: Animation length in ms.
            lead_in: Extra offset added past the entry's top edge, in px.
        """
        self.scheduler = scheduler
        self.document = document
        self.duration = duration
        self.lead_in = lead_in
        self.target_id: str | None = None
        self._frame: Handle | None = None
        self._token = 0

    @property
    def in_flight(self) -> bool:
        return self._frame is not None

    def target_offset(self, node: Any, container: ScrollContainer) -> float | None:
        """Scroll offset that brings the node to the top of the container."""
        top = self.document.bounding_top(node)
        if top is None:
            return None
        offset = (
            container.scroll_top
            + top
            - container.bounding_top()
            - container.scroll_padding_top
            + self.lead_in
        )
        return min(max(0.0, offset), container.max_scroll)

    def cancel(self) -> None:
        """Drop the in-flight animation; its callbacks never run."""
        self._token += 1
        if self._frame is not None:
            self._frame.cancel()
            self._frame = None
        self.target_id = None

    def animate_to(
        self,
        entry_id: str,
        outline: Outline,
        container: ScrollContainer,
        on_complete: EntryCallback | None = None,
        on_abort: EntryCallback | None = None,
    ) -> bool:
        """Start scrolling towards an entry.

        Args:
            entry_id: Target entry.
            outline: Outline the entry belongs to.
            container: The scroll container to drive.
            on_complete: Called with the entry id after the final snap.
            on_abort: Called with the entry id if the target disappears mid-flight.

        Returns:
            False when the entry has no live anchor and nothing was started.
        """
        self.cancel()

        entry = outline.find(entry_id)
        if entry is None or entry.anchor is None or entry.node() is None:
            return False

        anchor = entry.anchor
        token = self._token
        start_offset = container.scroll_top
        start_time = self.scheduler.now()
        self.target_id = entry_id

        def step(timestamp: float) -> None:
            if token != self._token:
                return

            node = anchor.resolve()
            target = self.target_offset(node, container) if node is not None else None
            if target is None:
                logger.warning("Scroll target %s vanished mid-animation", entry_id)
                self._finish()
                if on_abort is not None:
                    on_abort(entry_id)
                return

            progress = min(1.0, max(0.0, (timestamp - start_time) / self.duration))
            if progress < 1.0:
                container.scroll_to(start_offset + (target - start_offset) * ease_out_cubic(progress))
                self._frame = self.scheduler.request_frame(step)
                return

            # Final frame snaps to the exact, freshly measured target
            container.scroll_to(target)
            self._finish()
            if on_complete is not None:
                on_complete(entry_id)

        self._frame = self.scheduler.request_frame(step)
        return True

    def _finish(self) -> None:
        self._frame = None
        self.target_id = None
