"""Panel synchronization engine."""

from chatanchor.panel.animator import ScrollAnimator
from chatanchor.panel.controller import PanelController, conversation_id_from
from chatanchor.panel.reconciler import Reconciler
from chatanchor.panel.tracker import ActiveItemTracker

__all__ = [
    "ActiveItemTracker",
    "PanelController",
    "Reconciler",
    "ScrollAnimator",
    "conversation_id_from",
]
