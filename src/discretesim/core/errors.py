"""
Error taxonomy for the simulation kernel.

- ValidationError: bad constructor or call arguments (fail fast, never clamp)
- InvalidTimeError: an event or run bound placed before the current clock
- ConditionTimeoutError: a condition wait ran out of checks
- PreemptionSignal: NOT a user error. Thrown into a resource holder's
  generator when a higher-precedence request evicts it.
"""

from __future__ import annotations
from typing import Any


class SimulationError(Exception):
    """Base class for errors raised by the kernel."""


class ValidationError(SimulationError, ValueError):
    """An argument violates the call's contract."""


class InvalidTimeError(ValidationError):
    """A time lies in the past relative to the simulation clock."""


class ConditionTimeoutError(SimulationError):
    """A condition wait exceeded its iteration budget."""

    def __init__(self, iterations: int, message: str | None = None):
        self.iterations = iterations
        super().__init__(
            message or f"Condition still false after {iterations} checks"
        )


class PreemptionSignal(Exception):
    """
    Interrupt delivered to a displaced resource holder.

    The holder's generator receives this at its pending yield. By the time it
    is caught the slot is already gone: the holder should work out how much of
    its task is left (using usage_since) and request the resource again.
    """

    def __init__(
        self,
        resource: Any,
        preempted_by: Any = None,
        usage_since: float | None = None,
    ):
        self.resource = resource
        self.preempted_by = preempted_by
        self.usage_since = usage_since
        super().__init__(f"Preempted from {getattr(resource, 'name', resource)}")
