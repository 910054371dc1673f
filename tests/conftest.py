from __future__ import annotations

import asyncio

import pytest

from chatanchor.document import HostDocument


class ManualHandle:
    def __init__(self, when, callback, args):
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler:
    """Deterministic scheduler: time only moves when a test advances it."""

    def __init__(self, frame_interval: float = 16.0):
        self.time = 0.0
        self.frame_interval = frame_interval
        self.timers: list[ManualHandle] = []
        self.frames: list[ManualHandle] = []
        self.tasks: list = []

    def now(self) -> float:
        return self.time

    def call_later(self, delay, callback, *args) -> ManualHandle:
        handle = ManualHandle(self.time + delay, callback, args)
        self.timers.append(handle)
        return handle

    def request_frame(self, callback) -> ManualHandle:
        handle = ManualHandle(None, callback, ())
        self.frames.append(handle)
        return handle

    def spawn(self, coro):
        self.tasks.append(coro)
        return coro

    def advance(self, ms: float) -> None:
        target = self.time + ms
        while True:
            due = [h for h in self.timers if not h.cancelled and h.when <= target]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self.timers.remove(handle)
            self.time = max(self.time, handle.when)
            handle.callback(*handle.args)
        self.timers = [h for h in self.timers if not h.cancelled]
        self.time = target

    @property
    def pending_frames(self) -> bool:
        return any(not h.cancelled for h in self.frames)

    def run_frame(self) -> None:
        self.advance(self.frame_interval)
        batch, self.frames = self.frames, []
        for handle in batch:
            if not handle.cancelled:
                handle.callback(self.time)

    def run_frames(self, limit: int = 1000) -> int:
        count = 0
        while self.pending_frames and count < limit:
            self.run_frame()
            count += 1
        return count

    def run_tasks(self) -> list:
        results = []
        while self.tasks:
            results.append(asyncio.run(self.tasks.pop(0)))
        return results


def user_turn(n: int, text: str, height: float | None = None, marker: str = "both") -> str:
    height_attr = f' data-height="{height}"' if height is not None else ""
    turn_attr = ' data-turn="user"' if marker in ("both", "attribute") else ""
    body = f'<div class="whitespace-pre-wrap">{text}</div>'
    if marker in ("both", "nested"):
        body = f'<div data-message-author-role="user">{body}</div>'
    return f'<article data-testid="conversation-turn-{n}"{turn_attr}{height_attr}>{body}</article>'


def assistant_turn(n: int, text: str, height: float | None = None) -> str:
    height_attr = f' data-height="{height}"' if height is not None else ""
    return (
        f'<article data-testid="conversation-turn-{n}" data-turn="assistant"{height_attr}>'
        f'<div data-message-author-role="assistant"><div class="markdown">{text}</div></div>'
        f"</article>"
    )


def transcript(*turns: str) -> str:
    return (
        "<html><body><div data-scroll-root>"
        f"<main>{''.join(turns)}</main>"
        "</div></body></html>"
    )


def conversation(questions: list[str], answer: str = "Answer to") -> str:
    turns = []
    for i, question in enumerate(questions):
        turns.append(user_turn(2 * i + 1, question))
        turns.append(assistant_turn(2 * i + 2, f"{answer} {question}"))
    return transcript(*turns)


@pytest.fixture
def scheduler() -> ManualScheduler:
    return ManualScheduler()


@pytest.fixture
def questions() -> list[str]:
    return [f"Question number {i} about topic {i}" for i in range(1, 9)]


@pytest.fixture
def document(questions) -> HostDocument:
    # 16 blocks of 300px in a 400px viewport
    return HostDocument(
        conversation(questions),
        location="https://chat.example.com/c/abc-123",
        viewport_height=400,
        default_block_height=300,
    )
