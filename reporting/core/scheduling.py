"""Cancellable timers used to debounce filter edits."""
from __future__ import annotations

import asyncio
from typing import Callable, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    """Runs ``fn`` once after ``delay`` seconds unless the handle is cancelled."""

    def schedule(self, fn: Callable[[], None], delay: float) -> TimerHandle: ...


class AsyncioScheduler:
    """Scheduler backed by ``loop.call_later``."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    def schedule(self, fn: Callable[[], None], delay: float) -> TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(delay, 0.0), fn)


class CancellableTimer:
    """Holds at most one pending callback; scheduling again replaces it."""

    def __init__(self, scheduler: Scheduler, delay: float) -> None:
        self._scheduler = scheduler
        self._delay = delay
        self._handle: TimerHandle | None = None

    @property
    def delay(self) -> float:
        return self._delay

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, fn: Callable[[], None], delay: float | None = None) -> None:
        self.cancel()

        def fire() -> None:
            self._handle = None
            fn()

        self._handle = self._scheduler.schedule(fire, self._delay if delay is None else delay)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None


__all__ = ["AsyncioScheduler", "CancellableTimer", "Scheduler", "TimerHandle"]
