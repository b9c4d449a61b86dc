"""Cancellable deferred callbacks for auto-save timers."""

from __future__ import annotations

import asyncio
import heapq
import itertools
from collections.abc import Callable


class AsyncioScheduler:
    """Schedules callbacks on the running asyncio event loop."""

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        loop = asyncio.get_running_loop()
        return loop.call_later(max(delay, 0.0), callback)


class ManualTimer:
    """Timer owned by a `ManualScheduler`."""

    def __init__(self, deadline: float, callback: Callable[[], None]) -> None:
        self.deadline = deadline
        self._callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    def fire(self) -> None:
        self._callback()


class ManualScheduler:
    """Virtual-clock scheduler; time only moves when `advance` is called.

    Callbacks run synchronously inside `advance`, in deadline order, and
    timers scheduled by a callback fire in the same call when they fall
    inside the advanced window.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._queue: list[tuple[float, int, ManualTimer]] = []
        self._sequence = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> ManualTimer:
        timer = ManualTimer(self._now + max(delay, 0.0), callback)
        heapq.heappush(self._queue, (timer.deadline, next(self._sequence), timer))
        return timer

    def pending(self) -> int:
        """Number of scheduled timers that are not cancelled."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled())

    def advance(self, seconds: float) -> int:
        """Move the clock forward and run due callbacks; return how many ran."""
        target = self._now + seconds
        fired = 0
        while self._queue and self._queue[0][0] <= target:
            deadline, _, timer = heapq.heappop(self._queue)
            if timer.cancelled():
                continue
            self._now = deadline
            timer.fire()
            fired += 1
        self._now = target
        return fired
