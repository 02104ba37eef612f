"""Tests for the announcement queue."""

from unittest.mock import Mock, call

import pytest
from math_access.announcements import AnnouncementQueue, read_duration
from math_access.config import MathAccessOptions
from math_access.scheduling import ManualScheduler


class TestReadDuration:
    """Tests for read_duration."""

    def test_minimum(self):
        assert read_duration('a') == pytest.approx(0.4)
        assert read_duration('') == pytest.approx(0.4)

    def test_per_character(self):
        assert read_duration('x' * 50) == pytest.approx(2.0)

    def test_configurable(self):
        options = MathAccessOptions(min_read_duration=1.0, seconds_per_character=0.1)

        assert read_duration('abc', options) == pytest.approx(1.0)
        assert read_duration('x' * 20, options) == pytest.approx(2.0)


class TestAnnouncementQueue:
    """Tests for AnnouncementQueue."""

    def setup_method(self):
        self.scheduler = ManualScheduler()
        self.speak = Mock()
        self.queue = AnnouncementQueue(self.speak, self.scheduler)

    def test_pre_dispatch_delay(self):
        """Test nothing is spoken before the pre-dispatch delay."""
        self.queue.enqueue('hello')

        self.scheduler.advance(0.1)
        self.speak.assert_not_called()

        self.scheduler.advance(0.05)
        self.speak.assert_called_once_with('hello')
        assert self.queue.in_flight.text == 'hello'

    def test_one_in_flight(self):
        """Test the next item waits for the current one's read duration."""
        self.queue.enqueue('first')
        self.queue.enqueue('second')

        self.scheduler.advance(0.3)
        assert self.speak.call_args_list == [call('first')]
        assert self.queue.pending == ('second',)

        self.scheduler.advance(1.0)
        assert self.speak.call_args_list == [call('first'), call('second')]

    def test_second_dispatch_timing(self):
        """Test the next dispatch waits read duration plus the pre-delay."""
        self.queue.enqueue('a')
        self.queue.enqueue('b')

        # 'a' speaks at 0.12, finishes at 0.52, 'b' speaks at 0.64
        self.scheduler.advance(0.6)
        assert self.speak.call_count == 1

        self.scheduler.advance(0.1)
        assert self.speak.call_count == 2

    def test_fifo_order(self):
        for text in ('one', 'two', 'three', 'four'):
            self.queue.enqueue(text)

        self.scheduler.advance(10)

        assert [c.args[0] for c in self.speak.call_args_list] == ['one', 'two', 'three', 'four']
        assert self.queue.dispatched == 4
        assert self.queue.is_idle

    def test_empty_text_ignored(self):
        self.queue.enqueue('')

        self.scheduler.advance(1)

        self.speak.assert_not_called()
        assert self.queue.is_idle

    def test_clear_drops_pending_only(self):
        """Test clear leaves the in-flight announcement alone."""
        for text in ('a', 'b', 'c'):
            self.queue.enqueue(text)
        self.scheduler.advance(0.2)

        self.queue.clear()
        self.scheduler.advance(5)

        assert self.speak.call_args_list == [call('a')]
        assert self.queue.pending == ()

    def test_clear_before_dispatch(self):
        self.queue.enqueue('a')
        self.queue.clear()

        self.scheduler.advance(1)

        self.speak.assert_not_called()
        assert self.scheduler.pending_count == 0

    def test_enqueue_after_clear(self):
        """Test new items queue behind the in-flight announcement."""
        self.queue.enqueue('a')
        self.queue.enqueue('b')
        self.scheduler.advance(0.2)

        self.queue.clear()
        self.queue.enqueue('x')
        self.scheduler.advance(0.3)
        assert self.speak.call_args_list == [call('a')]

        self.scheduler.advance(1)
        assert self.speak.call_args_list == [call('a'), call('x')]

    def test_close(self):
        """Test close cancels timers and ignores later items."""
        self.queue.enqueue('a')
        self.queue.enqueue('b')
        self.scheduler.advance(0.2)

        self.queue.close()
        self.queue.enqueue('c')
        self.scheduler.advance(5)

        assert self.speak.call_args_list == [call('a')]
        assert self.queue.in_flight is None
        assert self.scheduler.pending_count == 0

    def test_failing_channel_does_not_stall(self):
        """Test a raising speak callable does not block later items."""
        self.speak.side_effect = RuntimeError("speech unavailable")
        self.queue.enqueue('a')
        self.queue.enqueue('b')

        self.scheduler.advance(5)

        assert self.speak.call_count == 2
        assert self.queue.is_idle
