"""Single-threaded cooperative timers on virtual time.

The round countdown, the opponent's decision tick and the settle delay are
all callbacks on one :class:`Scheduler`. The host drives time forward with
:meth:`Scheduler.advance` (once per frame with the real elapsed time, or in
large jumps for headless runs); callbacks fire in due-time order, one at a
time, so there is never concurrent access to match state.
"""

from __future__ import annotations

import heapq
import itertools
import logging
from dataclasses import dataclass, field
from typing import Callable

logger = logging.getLogger(__name__)


@dataclass(order=True)
class _Timer:
    due: float
    sequence: int
    interval: float | None = field(compare=False)
    callback: Callable[[], None] = field(compare=False)
    handle: TimerHandle = field(compare=False)


class TimerHandle:
    """Returned by the scheduling calls; ``cancel()`` stops further firing."""

    def __init__(self, name: str = ""):
        self.name = name
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True

    def __repr__(self) -> str:
        state = "cancelled" if self.cancelled else "active"
        return f"TimerHandle({self.name!r}, {state})"


class Scheduler:
    def __init__(self, start: float = 0.0):
        self._now = float(start)
        self._queue: list[_Timer] = []
        self._sequence = itertools.count()

    @property
    def now(self) -> float:
        return self._now

    def clock(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None], name: str = "") -> TimerHandle:
        return self._push(self._now + max(0.0, delay), None, callback, name)

    def call_every(self, interval: float, callback: Callable[[], None], name: str = "") -> TimerHandle:
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        return self._push(self._now + interval, interval, callback, name)

    def _push(
        self, due: float, interval: float | None, callback: Callable[[], None], name: str
    ) -> TimerHandle:
        handle = TimerHandle(name)
        heapq.heappush(self._queue, _Timer(due, next(self._sequence), interval, callback, handle))
        return handle

    def pending(self) -> int:
        return sum(1 for timer in self._queue if not timer.handle.cancelled)

    def advance(self, seconds: float) -> None:
        """Move time forward, firing every callback that falls due."""
        self.run_until(self._now + max(0.0, seconds))

    def run_until(self, deadline: float) -> None:
        while self._queue and self._queue[0].due <= deadline:
            timer = heapq.heappop(self._queue)
            if timer.handle.cancelled:
                continue
            self._now = max(self._now, timer.due)
            if timer.interval is not None:
                timer.due += timer.interval
                timer.sequence = next(self._sequence)
                heapq.heappush(self._queue, timer)
            timer.callback()
        self._now = max(self._now, deadline)

    def run(self, until: Callable[[], bool], step: float = 1.0, limit: float = 86400.0) -> None:
        """Advance in ``step`` increments until ``until()`` holds or ``limit`` elapses."""
        deadline = self._now + limit
        while not until() and self._now < deadline:
            if not self.pending():
                logger.debug("scheduler idle at t=%.2f", self._now)
                return
            self.advance(step)
