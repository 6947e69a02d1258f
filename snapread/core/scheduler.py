"""Cancellable deferred execution for the autoplay loop.

WHY: The playback loop is a chain of "show this chunk, then come back in
N ms". Correctness depends on one thing: once a step is cancelled it
must never run. Hiding the timer behind a small interface lets the
engine run on an asyncio event loop in the CLI and on a virtual clock in
tests and in the playback planner.

HOW: ``Scheduler.call_later(delay_ms, callback)`` returns a handle with
``cancel()``. ``AsyncioScheduler`` delegates to ``loop.call_later`` and
returns the loop's ``TimerHandle``. ``ManualScheduler`` keeps a heap of
``ScheduledCall`` objects ordered by due time and fires them only when
``advance()`` or ``run_until_idle()`` moves its clock.

RULES:
- Handles are single-shot; cancel() is idempotent
- A cancelled handle never invokes its callback
- ManualScheduler fires in due-time order, ties in scheduling order
- ManualScheduler sets now_ms to a call's due time before invoking it,
  so callbacks that schedule more work see the correct "now"
- Schedulers are single-threaded; no locking
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
from abc import ABC, abstractmethod
from typing import Any, Callable, List, Optional, Tuple


class ScheduledCall:
    """Handle for one deferred callback on a ManualScheduler."""

    def __init__(self, due_ms: float, callback: Callable[[], Any]) -> None:
        self.due_ms = due_ms
        self._callback = callback
        self._cancelled = False
        self._fired = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled

    @property
    def fired(self) -> bool:
        return self._fired

    def _run(self) -> None:
        self._fired = True
        self._callback()


class Scheduler(ABC):
    """Abstract source of cancellable timers.

    To add a new backend (e.g. a GUI toolkit's ``after()``):
    1. Subclass Scheduler
    2. Implement call_later() returning an object with cancel()
    """

    @abstractmethod
    def call_later(self, delay_ms: float, callback: Callable[[], Any]) -> Any:
        """Run ``callback`` once after ``delay_ms`` milliseconds.

        Returns:
            A handle whose ``cancel()`` prevents the callback from running.
        """


class AsyncioScheduler(Scheduler):
    """Scheduler backed by an asyncio event loop.

    When no loop is given, the running loop is looked up on each call,
    so the scheduler can be created before ``asyncio.run()`` starts.
    """

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None) -> None:
        self._loop = loop

    def call_later(self, delay_ms: float, callback: Callable[[], Any]) -> asyncio.TimerHandle:
        loop = self._loop or asyncio.get_running_loop()
        return loop.call_later(max(0.0, delay_ms) / 1000.0, callback)


class ManualScheduler(Scheduler):
    """Virtual-clock scheduler driven explicitly by the caller.

    Nothing runs until ``advance()`` or ``run_until_idle()`` is called,
    which makes timer races reproducible in tests.
    """

    def __init__(self) -> None:
        self.now_ms: float = 0.0
        self._queue: List[Tuple[float, int, ScheduledCall]] = []
        self._counter = itertools.count()

    def call_later(self, delay_ms: float, callback: Callable[[], Any]) -> ScheduledCall:
        call = ScheduledCall(self.now_ms + max(0.0, delay_ms), callback)
        heapq.heappush(self._queue, (call.due_ms, next(self._counter), call))
        return call

    @property
    def pending(self) -> int:
        """Number of scheduled, not yet cancelled, not yet fired calls."""
        return sum(1 for _, _, call in self._queue if not call.cancelled())

    def next_due(self) -> Optional[float]:
        self._discard_cancelled()
        if not self._queue:
            return None
        return self._queue[0][0]

    def advance(self, delay_ms: float) -> int:
        """Move the clock forward by ``delay_ms``, firing every call that falls due.

        Returns:
            The number of callbacks invoked.
        """
        target = self.now_ms + delay_ms
        fired = 0
        while True:
            self._discard_cancelled()
            if not self._queue or self._queue[0][0] > target:
                break
            due_ms, _, call = heapq.heappop(self._queue)
            self.now_ms = due_ms
            call._run()
            fired += 1
        self.now_ms = target
        return fired

    def run_until_idle(self, max_calls: Optional[int] = None) -> int:
        """Fire calls in order until none remain (or ``max_calls`` have run).

        Returns:
            The number of callbacks invoked.
        """
        fired = 0
        while max_calls is None or fired < max_calls:
            self._discard_cancelled()
            if not self._queue:
                break
            due_ms, _, call = heapq.heappop(self._queue)
            self.now_ms = max(self.now_ms, due_ms)
            call._run()
            fired += 1
        return fired

    def _discard_cancelled(self) -> None:
        while self._queue and self._queue[0][2].cancelled():
            heapq.heappop(self._queue)
