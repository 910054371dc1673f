"""Timers, animation frames and the debounce/throttle wrappers built on them."""

import asyncio
from collections.abc import Callable, Coroutine
from typing import Any, Protocol


class Handle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Source of time, timers and animation frames. All times are in ms."""

    def now(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> Handle: ...

    def request_frame(self, callback: Callable[[float], Any]) -> Handle: ...

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> Any: ...


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop, with frames at a fixed rate."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None, frame_interval: float = 1000 / 60):
        self._loop = loop
        self.frame_interval = frame_interval
        self._tasks: set[asyncio.Task] = set()

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def now(self) -> float:
        return self.loop.time() * 1000

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> asyncio.TimerHandle:
        return self.loop.call_later(delay / 1000, callback, *args)

    def request_frame(self, callback: Callable[[float], Any]) -> asyncio.TimerHandle:
        return self.loop.call_later(self.frame_interval / 1000, lambda: callback(self.now()))

    def spawn(self, coro: Coroutine[Any, Any, Any]) -> asyncio.Task:
        task = self.loop.create_task(coro)
        # The loop only keeps weak references to tasks
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return task


class Debounced:
    """Coalesces bursts of calls into one trailing call with the latest arguments."""

    def __init__(self, fn: Callable[..., Any], delay: float, scheduler: Scheduler):
        self.fn = fn
        self.delay = delay
        self.scheduler = scheduler
        self._handle: Handle | None = None

    def __call__(self, *args: Any, **kwargs: Any) -> None:
        self.cancel()
        self._handle = self.scheduler.call_later(self.delay, self._fire, args, kwargs)

    def _fire(self, args: tuple, kwargs: dict) -> None:
        self._handle = None
        self.fn(*args, **kwargs)

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


class Throttled:
    """Runs at most once per interval; calls inside the interval are dropped."""

    def __init__(self, fn: Callable[..., Any], delay: float, scheduler: Scheduler):
        self.fn = fn
        self.delay = delay
        self.scheduler = scheduler
        self._last: float | None = None

    def __call__(self, *args: Any, **kwargs: Any) -> bool:
        now = self.scheduler.now()
        if self._last is not None and now - self._last < self.delay:
            return False
        self._last = now
        self.fn(*args, **kwargs)
        return True

    def reset(self) -> None:
        """Forget the last execution so the next call runs immediately."""
        self._last = None


def debounce(fn: Callable[..., Any], delay: float, scheduler: Scheduler) -> Debounced:
    """Wrap fn so that it runs once, delay ms after the last call of a burst."""
    return Debounced(fn, delay, scheduler)


def throttle(fn: Callable[..., Any], delay: float, scheduler: Scheduler) -> Throttled:
    """Wrap fn so that it runs at most once every delay ms, without a trailing call."""
    return Throttled(fn, delay, scheduler)
