"""ChatAnchor - synchronized table of contents for live chat transcripts."""

__version__ = "0.1.0"
