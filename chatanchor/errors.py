"""Exception types raised by ChatAnchor collaborators."""


class ChatAnchorError(Exception):
    """Base class for all ChatAnchor errors."""


class SummarizationError(ChatAnchorError):
    """The summarization collaborator is unavailable or returned an error."""


class PersistenceError(ChatAnchorError):
    """Reading or writing persisted labels or preferences failed."""
