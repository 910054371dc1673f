"""Reverse proxy that holds the API key and rate-limits summarize requests."""

import time
from collections.abc import Callable
from typing import Protocol

import anthropic
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.concurrency import run_in_threadpool

from chatanchor import __version__
from chatanchor.config import ProxySettings, load_proxy_settings
from chatanchor.logging import configure_logging, get_logger

logger = get_logger(__name__)


class Labeler(Protocol):
    def generate_label(self, text: str) -> str: ...


class RateLimiter:
    """Fixed-window request counter per client key."""

    def __init__(self, limit: int, window: float, clock: Callable[[], float] = time.monotonic):
        self.limit = limit
        self.window = window
        self.clock = clock
        self._windows: dict[str, tuple[float, int]] = {}

    def hit(self, key: str) -> bool:
        """Count one request; False once the client exceeded its window."""
        now = self.clock()
        expired = [k for k, (start, _) in self._windows.items() if now - start >= self.window]
        for k in expired:
            del self._windows[k]

        start, count = self._windows.get(key, (now, 0))
        count += 1
        self._windows[key] = (start, count)
        return count <= self.limit


def create_app(
    settings: ProxySettings | None = None,
    labeler: Labeler | None = None,
    clock: Callable[[], float] = time.monotonic,
) -> FastAPI:
    """Create the proxy app.

    Args:
        settings: Proxy settings; read from the environment when omitted.
        labeler: Label generator; a LabelAgent built from settings when omitted.
        clock: Time source for the rate limiter, in seconds.
    """
    settings = settings or load_proxy_settings()
    configure_logging(settings.log_level)

    if labeler is None:
        from chatanchor.agent import LabelAgent

        labeler = LabelAgent(api_key=settings.anthropic_api_key, model=settings.model)

    app = FastAPI(title="ChatAnchor proxy", version=__version__)
    app.add_middleware(
        CORSMiddleware,
        allow_origin_regex=r"^chrome-extension://.*",
        allow_methods=["*"],
        allow_headers=["*"],
    )
    limiter = RateLimiter(settings.rate_limit, settings.rate_window, clock=clock)

    @app.middleware("http")
    async def rate_limit(request: Request, call_next):
        if request.url.path.startswith("/api/"):
            client = request.client.host if request.client else "unknown"
            if not limiter.hit(client):
                logger.warning("Rate limit exceeded for %s", client)
                return JSONResponse(
                    {"error": "too many requests, please try again later"}, status_code=429
                )
        return await call_next(request)

    @app.get("/health")
    def health() -> dict[str, str]:
        return {"status": "ok"}

    @app.post("/api/summarize")
    async def summarize(request: Request) -> JSONResponse:
        try:
            payload = await request.json()
        except ValueError:
            payload = None
        text = payload.get("text") if isinstance(payload, dict) else None
        if not text or not isinstance(text, str):
            return JSONResponse({"error": "missing text parameter"}, status_code=400)

        try:
            summary = await run_in_threadpool(labeler.generate_label, text)
        except anthropic.APIError as e:
            logger.error("Upstream completion API error: %s", e)
            return JSONResponse({"error": "AI service request failed"}, status_code=502)
        except Exception:
            logger.exception("Proxy request failed")
            return JSONResponse({"error": "internal server error"}, status_code=500)

        return JSONResponse({"summary": summary.strip()})

    return app
