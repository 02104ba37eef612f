"""Tests for scheduler implementations and context marshalling."""

import asyncio
import threading

import pytest
from math_access.scheduling import AsyncioScheduler, ManualScheduler, submit


class TestManualScheduler:
    """Tests for ManualScheduler."""

    def setup_method(self):
        self.scheduler = ManualScheduler()
        self.fired = []

    def test_fires_in_deadline_order(self):
        """Test timers fire by deadline regardless of scheduling order."""
        self.scheduler.call_later(0.3, lambda: self.fired.append('late'))
        self.scheduler.call_later(0.1, lambda: self.fired.append('early'))

        self.scheduler.advance(1.0)

        assert self.fired == ['early', 'late']

    def test_equal_deadlines_keep_insertion_order(self):
        self.scheduler.call_later(0.2, lambda: self.fired.append('a'))
        self.scheduler.call_later(0.2, lambda: self.fired.append('b'))

        self.scheduler.advance(0.5)

        assert self.fired == ['a', 'b']

    def test_not_fired_before_deadline(self):
        self.scheduler.call_later(0.5, lambda: self.fired.append('x'))

        self.scheduler.advance(0.25)

        assert self.fired == []
        assert self.scheduler.pending_count == 1

    def test_cancelled_timer_does_not_fire(self):
        timer = self.scheduler.call_later(0.1, lambda: self.fired.append('x'))
        timer.cancel()

        self.scheduler.advance(1.0)

        assert timer.cancelled()
        assert self.fired == []
        assert self.scheduler.pending_count == 0

    def test_timers_scheduled_by_callbacks(self):
        """Test a callback may schedule further timers within the same advance."""
        def first():
            self.fired.append(('first', self.scheduler.now))
            self.scheduler.call_later(0.5, lambda: self.fired.append(('second', self.scheduler.now)))

        self.scheduler.call_later(1.0, first)
        self.scheduler.advance(2.0)

        assert self.fired == [('first', 1.0), ('second', 1.5)]
        assert self.scheduler.now == 2.0

    def test_call_soon_threadsafe_from_thread(self):
        """Test callbacks from other threads run on run_pending."""
        worker = threading.Thread(
            target=self.scheduler.call_soon_threadsafe,
            args=(lambda: self.fired.append('marshalled'),),
        )
        worker.start()
        worker.join()

        assert self.fired == []
        assert self.scheduler.run_pending() == 1
        assert self.fired == ['marshalled']


class TestSubmit:
    """Tests for submit."""

    def setup_method(self):
        self.scheduler = ManualScheduler()

    def test_result_is_delivered(self):
        future = submit(self.scheduler, lambda a, b: a + b, 2, 3)

        assert not future.done()
        self.scheduler.run_pending()
        assert future.result(timeout=1) == 5

    def test_exception_is_delivered(self):
        def fail():
            raise ValueError("boom")

        future = submit(self.scheduler, fail)
        self.scheduler.run_pending()

        with pytest.raises(ValueError):
            future.result(timeout=1)

    def test_cancelled_future_is_skipped(self):
        calls = []
        future = submit(self.scheduler, lambda: calls.append(1))
        future.cancel()

        self.scheduler.run_pending()

        assert calls == []


class TestAsyncioScheduler:
    """Tests for AsyncioScheduler."""

    def setup_method(self):
        self.loop = asyncio.new_event_loop()

    def teardown_method(self):
        self.loop.close()

    def test_call_later_runs_on_loop(self):
        fired = []
        scheduler = AsyncioScheduler(self.loop)
        scheduler.call_later(0.01, lambda: fired.append(True))

        self.loop.run_until_complete(asyncio.sleep(0.05))

        assert fired == [True]

    def test_cancel(self):
        fired = []
        scheduler = AsyncioScheduler(self.loop)
        handle = scheduler.call_later(0.01, lambda: fired.append(True))
        handle.cancel()

        self.loop.run_until_complete(asyncio.sleep(0.05))

        assert fired == []
        assert handle.cancelled()

    def test_uses_running_loop(self):
        async def build():
            return AsyncioScheduler().loop

        assert self.loop.run_until_complete(build()) is self.loop
