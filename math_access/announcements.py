"""
Announcement Queue

Serialises spoken feedback so rapid gestures never talk over each other.
Only one announcement is in flight at a time; each is given an estimated
reading time before the next may start, and every dispatch waits a short
pre-dispatch delay so it does not race the platform's own focus-change
speech.
"""

import logging
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional, Tuple

from .config import MathAccessOptions
from .scheduling import Scheduler, TimerHandle

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Announcement:
    text: str
    read_duration: float


def read_duration(text: str, options: Optional[MathAccessOptions] = None) -> float:
    """Estimated reading time for text: max(0.4s, 0.04s per character)."""
    options = options or MathAccessOptions()
    return max(options.min_read_duration, options.seconds_per_character * len(text))


class AnnouncementQueue:
    """
    FIFO queue of announcements dispatched one at a time.

    Args:
        speak: Callable delivering text to the speech/announcement channel
        scheduler: Execution context used for all pacing timers
        options: Timing configuration
    """

    def __init__(self, speak: Callable[[str], None], scheduler: Scheduler,
                 options: Optional[MathAccessOptions] = None):
        self._speak = speak
        self._scheduler = scheduler
        self.options = options or MathAccessOptions()
        self._pending: Deque[Announcement] = deque()
        self._in_flight: Optional[Announcement] = None
        self._dispatch_timer: Optional[TimerHandle] = None
        self._finish_timer: Optional[TimerHandle] = None
        self._closed = False
        self.dispatched = 0

    @property
    def in_flight(self) -> Optional[Announcement]:
        return self._in_flight

    @property
    def pending(self) -> Tuple[str, ...]:
        return tuple(item.text for item in self._pending)

    @property
    def is_idle(self) -> bool:
        return self._in_flight is None and not self._pending and self._dispatch_timer is None

    def enqueue(self, text: str) -> None:
        """Queue text for announcement. Empty text is ignored."""
        if self._closed or not text:
            return
        self._pending.append(Announcement(text, read_duration(text, self.options)))
        self._schedule_dispatch()

    def clear(self) -> None:
        """
        Drop every queued announcement that has not been dispatched.

        The announcement already in flight is left to the platform.
        """
        if self._pending:
            logger.debug(f"Clearing {len(self._pending)} pending announcement(s)")
        self._pending.clear()
        if self._dispatch_timer is not None:
            self._dispatch_timer.cancel()
            self._dispatch_timer = None

    def close(self) -> None:
        """Cancel all timers and discard everything. Used on teardown."""
        self.clear()
        if self._finish_timer is not None:
            self._finish_timer.cancel()
            self._finish_timer = None
        self._in_flight = None
        self._closed = True

    def _schedule_dispatch(self) -> None:
        if self._in_flight is not None or self._dispatch_timer is not None or not self._pending:
            return
        self._dispatch_timer = self._scheduler.call_later(
            self.options.pre_dispatch_delay, self._dispatch
        )

    def _dispatch(self) -> None:
        self._dispatch_timer = None
        if self._closed or not self._pending:
            return

        item = self._pending.popleft()
        self._in_flight = item
        self.dispatched += 1
        try:
            self._speak(item.text)
        except Exception as e:
            logger.warning(f"Announcement channel failed: {e}")
        self._finish_timer = self._scheduler.call_later(item.read_duration, self._finish)

    def _finish(self) -> None:
        self._finish_timer = None
        self._in_flight = None
        self._schedule_dispatch()
