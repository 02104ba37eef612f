"""
Cancellable timeouts and context marshalling.

Announcement pacing and delayed host notifications are expressed as
scheduler timeouts instead of sleeps, so tests can drive virtual time with
ManualScheduler and hosts can plug in an asyncio event loop.
"""

import asyncio
import heapq
import itertools
import threading
from concurrent.futures import Future
from typing import Any, Callable, List, Optional, Protocol, Tuple

Callback = Callable[[], None]


class TimerHandle(Protocol):
    def cancel(self) -> None: ...

    def cancelled(self) -> bool: ...


class Scheduler(Protocol):
    """Single execution context owning an equation's state."""

    def call_later(self, delay: float, callback: Callback) -> TimerHandle: ...

    def call_soon_threadsafe(self, callback: Callback) -> None: ...


class ManualTimer:
    """Timer handle for ManualScheduler."""

    def __init__(self, when: float, callback: Callback):
        self.when = when
        self.callback = callback
        self._cancelled = False

    def cancel(self) -> None:
        self._cancelled = True

    def cancelled(self) -> bool:
        return self._cancelled


class ManualScheduler:
    """
    Scheduler driven by virtual time.

    Timers fire only inside advance(); callbacks marshalled from other
    threads run on the next advance() or run_pending() call.

    Example:
        >>> scheduler = ManualScheduler()
        >>> fired = []
        >>> _ = scheduler.call_later(0.5, lambda: fired.append(True))
        >>> scheduler.advance(0.5)
        >>> fired
        [True]
    """

    def __init__(self):
        self.now = 0.0
        self._timers: List[Tuple[float, int, ManualTimer]] = []
        self._sequence = itertools.count()
        self._inbox: List[Callback] = []
        self._inbox_lock = threading.Lock()

    def call_later(self, delay: float, callback: Callback) -> ManualTimer:
        timer = ManualTimer(self.now + max(0.0, delay), callback)
        heapq.heappush(self._timers, (timer.when, next(self._sequence), timer))
        return timer

    def call_soon_threadsafe(self, callback: Callback) -> None:
        with self._inbox_lock:
            self._inbox.append(callback)

    def run_pending(self) -> int:
        """Run callbacks marshalled from other threads. Returns how many ran."""
        with self._inbox_lock:
            inbox, self._inbox = self._inbox, []
        for callback in inbox:
            callback()
        return len(inbox)

    def advance(self, seconds: float = 0.0) -> None:
        """Move virtual time forward, firing every timer that comes due."""
        self.run_pending()
        deadline = self.now + seconds
        while self._timers and self._timers[0][0] <= deadline:
            when, _, timer = heapq.heappop(self._timers)
            if timer.cancelled():
                continue
            self.now = when
            timer.callback()
            self.run_pending()
        self.now = deadline

    @property
    def pending_count(self) -> int:
        """Number of live timers not yet fired."""
        return sum(1 for _, _, timer in self._timers if not timer.cancelled())


class AsyncioScheduler:
    """Scheduler backed by an asyncio event loop."""

    def __init__(self, loop: Optional[asyncio.AbstractEventLoop] = None):
        self.loop = loop if loop is not None else asyncio.get_running_loop()

    def call_later(self, delay: float, callback: Callback) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)

    def call_soon_threadsafe(self, callback: Callback) -> None:
        self.loop.call_soon_threadsafe(callback)


def submit(scheduler: Scheduler, fn: Callable[..., Any], *args) -> Future:
    """
    Run fn(*args) on the scheduler's context from any thread.

    Returns:
        Future resolved with fn's result (or exception) once it has run
    """
    future: Future = Future()

    def run():
        if not future.set_running_or_notify_cancel():
            return
        try:
            future.set_result(fn(*args))
        except Exception as e:
            future.set_exception(e)

    scheduler.call_soon_threadsafe(run)
    return future
