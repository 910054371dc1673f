"""Panel rendering module."""

from chatanchor.html.renderer import PanelRenderer, display_name, filter_entries

__all__ = ["PanelRenderer", "display_name", "filter_entries"]
