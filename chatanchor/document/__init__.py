"""Host document model."""

from chatanchor.document.dom import HostDocument, MutationRecord, ScrollContainer, Subscription

__all__ = ["HostDocument", "MutationRecord", "ScrollContainer", "Subscription"]
