"""Outline scanning and label persistence module."""

from chatanchor.toc.persistence import LabelStore, PreferenceStore
from chatanchor.toc.scanner import Scanner

__all__ = ["LabelStore", "PreferenceStore", "Scanner"]
