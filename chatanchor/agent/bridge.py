"""Message-passing channel between the panel and the background summarizer.

The panel never talks to the network itself. It posts a message to a
background worker, which owns the HTTP client, forwards the text to the
summarization proxy and answers with either ``{"summary": ...}`` or
``{"error": ...}``.
"""

import asyncio
import contextlib

import httpx

from chatanchor.errors import SummarizationError
from chatanchor.logging import get_logger

logger = get_logger(__name__)

AI_SUMMARIZE = "AI_SUMMARIZE"


class SummaryClient:
    """HTTP client for the proxy's summarize endpoint."""

    def __init__(
        self,
        api_base: str,
        client: httpx.AsyncClient | None = None,
        timeout: float = 30.0,
    ):
        self.api_base = api_base.rstrip("/")
        self.client = client or httpx.AsyncClient(timeout=timeout)

    async def summarize(self, text: str) -> dict:
        """POST the text and return the decoded success body.

        Raises:
            SummarizationError: The proxy answered with a non-2xx status.
        """
        response = await self.client.post(f"{self.api_base}/api/summarize", json={"text": text})
        if response.is_error:
            try:
                error = response.json().get("error")
            except ValueError:
                error = None
            raise SummarizationError(error or f"request failed ({response.status_code})")
        return response.json()

    async def aclose(self) -> None:
        await self.client.aclose()


class BackgroundWorker:
    """Privileged side of the bridge; performs the actual network calls."""

    def __init__(self, client: SummaryClient):
        self.client = client

    async def handle(self, message: dict) -> dict:
        if message.get("type") != AI_SUMMARIZE:
            return {"error": "unknown message type"}

        try:
            return await self.client.summarize(message.get("text", ""))
        except SummarizationError as e:
            return {"error": str(e)}
        except httpx.HTTPError as e:
            return {"error": str(e) or e.__class__.__name__}

    async def serve(self, queue: asyncio.Queue) -> None:
        while True:
            message, reply = await queue.get()
            try:
                response = await self.handle(message)
            except Exception as e:
                logger.exception("Background worker failed on %s", message.get("type"))
                if not reply.done():
                    reply.set_exception(SummarizationError(str(e)))
            else:
                if not reply.done():
                    reply.set_result(response)
            finally:
                queue.task_done()


class MessageBridge:
    """Queue-based request/response channel to a BackgroundWorker task."""

    def __init__(self, worker: BackgroundWorker):
        self.worker = worker
        self._queue: asyncio.Queue | None = None
        self._task: asyncio.Task | None = None

    @property
    def connected(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> "MessageBridge":
        if not self.connected:
            self._queue = asyncio.Queue()
            self._task = asyncio.get_running_loop().create_task(self.worker.serve(self._queue))
        return self

    async def send(self, message: dict) -> dict:
        """Post a message and wait for the worker's answer.

        Raises:
            SummarizationError: The channel is not running.
        """
        if not self.connected:
            raise SummarizationError("background channel unavailable")

        reply = asyncio.get_running_loop().create_future()
        await self._queue.put((message, reply))
        return await reply

    async def close(self) -> None:
        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        await self.worker.client.aclose()

    async def __aenter__(self) -> "MessageBridge":
        return await self.start()

    async def __aexit__(self, *exc_info) -> None:
        await self.close()


class BridgeSummarizer:
    """Panel-side summarization collaborator."""

    def __init__(self, bridge: MessageBridge | None):
        self.bridge = bridge

    async def summarize(self, text: str) -> str:
        """Ask the background worker for a short label.

        Raises:
            SummarizationError: The channel is missing, or the worker returned
                an error or an empty label.
        """
        if self.bridge is None:
            raise SummarizationError("summarization channel unavailable")

        response = await self.bridge.send({"type": AI_SUMMARIZE, "text": text})
        if response.get("error"):
            raise SummarizationError(response["error"])

        summary = (response.get("summary") or "").strip()
        if not summary:
            raise SummarizationError("empty summary")
        return summary


def create_bridge(api_base: str, client: httpx.AsyncClient | None = None) -> MessageBridge:
    """Build an unstarted bridge that talks to the proxy at api_base."""
    return MessageBridge(BackgroundWorker(SummaryClient(api_base, client=client)))
