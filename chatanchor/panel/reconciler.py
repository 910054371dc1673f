"""Render loop that repaints the panel only when its output changes."""

from chatanchor.document import HostDocument
from chatanchor.html import PanelRenderer
from chatanchor.logging import get_logger
from chatanchor.models.outline import Outline, PanelState
from chatanchor.panel.tracker import ActiveItemTracker
from chatanchor.toc import Scanner

logger = get_logger(__name__)


class Reconciler:
    """Own the outline and the committed panel markup.

    The panel lives inside the observed document, so every write to it comes
    back as a mutation notification and another refresh. Markup identical to
    the last committed markup is never written, which ends that cycle.
    """

    def __init__(
        self,
        document: HostDocument,
        scanner: Scanner,
        renderer: PanelRenderer,
        tracker: ActiveItemTracker,
        state: PanelState,
        panel_id: str = "chatanchor-panel",
    ):
        self.document = document
        self.scanner = scanner
        self.renderer = renderer
        self.tracker = tracker
        self.state = state
        self.panel_id = panel_id
        self.outline = Outline()
        self.labels: dict[str, str] = {}
        self.committed: str | None = None
        self.stale = False
        self.scan_count = 0
        self.write_count = 0

    def refresh(self) -> bool:
        """Re-scan the document and repaint if the output changed.

        Skipped entirely while an animation, inline edit or label request is
        in progress.

        Returns:
            True when the panel markup was written.
        """
        if self.state.busy:
            logger.debug("Refresh skipped while panel is busy")
            self.stale = True
            return False

        outline = self.scanner.scan(self.document)
        self.scan_count += 1
        self.stale = False

        self.outline.discard()
        self.outline = outline

        self.tracker.update(self.state, outline, self.document.bounding_top)
        return self.render()

    def render(self) -> bool:
        """Repaint from the current outline and state without re-scanning.

        Returns:
            True when the panel markup was written.
        """
        markup = self.renderer.render(self.outline, self.state, self.labels)
        if markup == self.committed:
            return False

        # Commit first: the write below notifies observers synchronously
        self.committed = markup
        self.document.write_panel(markup, self.panel_id)
        self.write_count += 1
        return True

    def invalidate(self) -> None:
        """Forget the committed markup so the next render always writes."""
        self.committed = None
