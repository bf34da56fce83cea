"""Unit tests for the event queue."""

import math

import pytest

from discretesim.core.errors import ValidationError
from discretesim.core.events import EventQueue, ScheduledEvent, check_number


def noop():
    pass


class TestScheduledEvent:
    """Tests for ScheduledEvent ordering."""

    def test_orders_by_time_first(self):
        early = ScheduledEvent(1.0, 5, 10, noop)
        late = ScheduledEvent(2.0, 0, 0, noop)
        assert early < late

    def test_priority_breaks_time_ties(self):
        urgent = ScheduledEvent(1.0, -1, 10, noop)
        normal = ScheduledEvent(1.0, 0, 0, noop)
        assert urgent < normal

    def test_sequence_breaks_remaining_ties(self):
        first = ScheduledEvent(1.0, 0, 0, noop)
        second = ScheduledEvent(1.0, 0, 1, noop)
        assert first < second

    def test_cancel(self):
        event = ScheduledEvent(1.0, 0, 0, noop)
        assert not event.cancelled
        event.cancel()
        assert event.cancelled


class TestEventQueue:
    """Tests for EventQueue."""

    def test_empty(self):
        queue = EventQueue()
        assert queue.is_empty()
        assert len(queue) == 0
        assert queue.pop() is None
        assert queue.peek() is None
        assert queue.peek_time() == math.inf

    def test_pop_in_time_order(self):
        queue = EventQueue()
        for t in [5.0, 1.0, 3.0]:
            queue.push(t, noop)
        times = [queue.pop().time for _ in range(3)]
        assert times == [1.0, 3.0, 5.0]

    def test_fifo_for_equal_time_and_priority(self):
        queue = EventQueue()
        events = [queue.push(2.0, noop) for _ in range(5)]
        popped = [queue.pop() for _ in range(5)]
        assert popped == events
        assert [e.sequence for e in popped] == sorted(e.sequence for e in popped)

    def test_priority_within_same_time(self):
        queue = EventQueue()
        low = queue.push(1.0, noop, priority=2)
        high = queue.push(1.0, noop, priority=-3)
        assert queue.pop() is high
        assert queue.pop() is low

    def test_cancelled_events_are_skipped(self):
        queue = EventQueue()
        first = queue.push(1.0, noop)
        second = queue.push(2.0, noop)
        first.cancel()
        assert len(queue) == 1
        assert queue.peek() is second
        assert queue.pop() is second
        assert queue.is_empty()

    def test_iter_yields_live_events_in_order(self):
        queue = EventQueue()
        a = queue.push(3.0, noop)
        b = queue.push(1.0, noop)
        c = queue.push(2.0, noop)
        c.cancel()
        assert list(queue) == [b, a]

    def test_clear(self):
        queue = EventQueue()
        event = queue.push(1.0, noop)
        queue.clear()
        assert queue.is_empty()
        assert event.cancelled


class TestCheckNumber:
    """Tests for numeric argument validation."""

    def test_accepts_int_and_float(self):
        assert check_number(3, "x") == 3.0
        assert check_number(2.5, "x") == 2.5

    @pytest.mark.parametrize("bad", [True, "1", None, float("nan"), math.inf])
    def test_rejects(self, bad):
        with pytest.raises(ValidationError):
            check_number(bad, "x")

    def test_allow_infinite(self):
        assert check_number(math.inf, "x", allow_infinite=True) == math.inf
