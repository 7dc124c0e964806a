"""Temporizadores cancelables: debounce de guardado y chequeo periodico de fecha."""

from __future__ import annotations

import heapq
import itertools
from abc import ABC, abstractmethod
from collections.abc import Callable
from typing import Protocol


class Timer(Protocol):
    """Handle for a scheduled callback."""

    def cancel(self) -> None:
        """Stop the callback from running (again)."""


class Scheduler(ABC):
    """Source of one-shot and periodic timers on a single event loop."""

    @abstractmethod
    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Timer:
        """Run ``callback`` once after ``delay_s`` seconds."""

    @abstractmethod
    def call_every(self, interval_s: float, callback: Callable[[], None]) -> Timer:
        """Run ``callback`` every ``interval_s`` seconds until cancelled."""


class _ManualTimer:
    def __init__(self, callback: Callable[[], None], interval_s: float | None) -> None:
        self.callback = callback
        self.interval_s = interval_s
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualScheduler(Scheduler):
    """Virtual-time scheduler: callbacks only run inside :meth:`advance`.

    Used to replay recorded sensor logs deterministically and in tests.
    """

    def __init__(self, start_s: float = 0.0) -> None:
        self.now_s = start_s
        self._queue: list[tuple[float, int, _ManualTimer]] = []
        self._seq = itertools.count()

    def now_ms(self) -> int:
        """Current virtual time in milliseconds."""
        return int(round(self.now_s * 1000))

    def call_later(self, delay_s: float, callback: Callable[[], None]) -> Timer:
        timer = _ManualTimer(callback, None)
        self._push(self.now_s + max(0.0, delay_s), timer)
        return timer

    def call_every(self, interval_s: float, callback: Callable[[], None]) -> Timer:
        if interval_s <= 0:
            raise ValueError("interval_s must be positive")
        timer = _ManualTimer(callback, interval_s)
        self._push(self.now_s + interval_s, timer)
        return timer

    def advance(self, seconds: float) -> None:
        """Move virtual time forward, running every callback that falls due."""
        self.advance_to(self.now_s + seconds)

    def advance_to(self, target_s: float) -> None:
        """Move virtual time to ``target_s`` (never backwards)."""
        while self._queue and self._queue[0][0] <= target_s:
            due, _, timer = heapq.heappop(self._queue)
            if timer.cancelled:
                continue
            self.now_s = max(self.now_s, due)
            timer.callback()
            if timer.interval_s is not None and not timer.cancelled:
                self._push(due + timer.interval_s, timer)
        self.now_s = max(self.now_s, target_s)

    def pending(self) -> int:
        """Number of timers still waiting to fire."""
        return sum(1 for _, _, timer in self._queue if not timer.cancelled)

    def _push(self, due: float, timer: _ManualTimer) -> None:
        heapq.heappush(self._queue, (due, next(self._seq), timer))
