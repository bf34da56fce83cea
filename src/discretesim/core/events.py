"""
Scheduled events and the time-ordered event queue.

An event is a callback bound to a simulated time. The queue is the kernel's
only dispatch mechanism: everything that happens in a simulation (process
steps, grants, interrupts, user callbacks) is a popped event.

Ordering key is (time, priority, sequence):
- lower time first
- at equal time, lower priority value first
- at equal time and priority, submission order (FIFO)

The sequence tie-break makes a run deterministic for a fixed input.
"""

from __future__ import annotations
import heapq
import itertools
import math
from dataclasses import dataclass, field
from numbers import Real
from typing import Callable

from discretesim.core.errors import ValidationError


DEFAULT_PRIORITY = 0


@dataclass(order=True)
class ScheduledEvent:
    """A callback queued for execution at a given simulated time."""

    time: float
    priority: int
    sequence: int
    callback: Callable[[], None] = field(compare=False)
    _cancelled: bool = field(default=False, compare=False, repr=False)

    @property
    def cancelled(self) -> bool:
        return self._cancelled

    def cancel(self) -> None:
        """Discard this event. The queue drops it instead of running it."""
        self._cancelled = True


def check_number(value, what: str, *, allow_infinite: bool = False) -> float:
    """Validate a real number argument and return it as a float."""
    if isinstance(value, bool) or not isinstance(value, Real):
        raise ValidationError(f"{what} must be a real number, got {value!r}")
    value = float(value)
    if math.isnan(value) or (math.isinf(value) and not allow_infinite):
        raise ValidationError(f"{what} must be finite, got {value!r}")
    return value


class EventQueue:
    """
    Binary min-heap of ScheduledEvents.

    Cancelled events stay in the heap until they reach the top, where pop()
    and peek() discard them. len() counts only live events.
    """

    def __init__(self):
        self._heap: list[ScheduledEvent] = []
        self._counter = itertools.count()

    def push(
        self,
        time: float,
        callback: Callable[[], None],
        priority: int = DEFAULT_PRIORITY,
    ) -> ScheduledEvent:
        """Queue a callback and return its event handle."""
        event = ScheduledEvent(time, int(priority), next(self._counter), callback)
        heapq.heappush(self._heap, event)
        return event

    def _discard_cancelled(self):
        while self._heap and self._heap[0].cancelled:
            heapq.heappop(self._heap)

    def pop(self) -> ScheduledEvent | None:
        """Remove and return the earliest live event, or None if empty."""
        self._discard_cancelled()
        if not self._heap:
            return None
        return heapq.heappop(self._heap)

    def peek(self) -> ScheduledEvent | None:
        """Return the earliest live event without removing it."""
        self._discard_cancelled()
        return self._heap[0] if self._heap else None

    def peek_time(self) -> float:
        """Time of the earliest live event (inf when the queue is empty)."""
        event = self.peek()
        return event.time if event is not None else math.inf

    def clear(self) -> None:
        for event in self._heap:
            event.cancel()
        self._heap.clear()

    def is_empty(self) -> bool:
        return self.peek() is None

    def __len__(self) -> int:
        return sum(1 for event in self._heap if not event.cancelled)

    def __iter__(self):
        """Iterate over live events in dispatch order."""
        return iter(sorted(e for e in self._heap if not e.cancelled))
