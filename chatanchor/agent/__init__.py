"""Summarization collaborators: the panel-side bridge and the proxy-side labeler."""

from chatanchor.agent.bridge import (
    AI_SUMMARIZE,
    BackgroundWorker,
    BridgeSummarizer,
    MessageBridge,
    SummaryClient,
    create_bridge,
)
from chatanchor.agent.labeler import LabelAgent

__all__ = [
    "AI_SUMMARIZE",
    "BackgroundWorker",
    "BridgeSummarizer",
    "LabelAgent",
    "MessageBridge",
    "SummaryClient",
    "create_bridge",
]
