"""Summarization reverse proxy."""

from chatanchor.server.proxy import RateLimiter, create_app

__all__ = ["RateLimiter", "create_app"]
