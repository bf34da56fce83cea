"""
Condition waits: poll a predicate at a fixed cadence of simulated time.

Built only from Timeout suspensions, so it adds no kernel state. Use it from a
process body with delegation:

    yield from wait_for(lambda: tank.level >= 50, interval=0.5)
"""

from __future__ import annotations
from typing import Callable

from discretesim.core.errors import ConditionTimeoutError, ValidationError
from discretesim.core.events import check_number
from discretesim.core.process import ProcessGenerator, Timeout


def wait_for(
    predicate: Callable[[], bool],
    interval: float = 1.0,
    max_iterations: int | None = None,
) -> ProcessGenerator:
    """
    Suspend until `predicate()` is true.

    The predicate is checked immediately, then again every `interval` time
    units. After `max_iterations` false checks, ConditionTimeoutError is
    raised inside the waiting process.

    Args:
        predicate: Zero-argument callable
        interval: Simulated time between checks (> 0)
        max_iterations: Check budget, or None for unbounded

    Returns:
        Number of checks it took (at least 1)
    """
    if not callable(predicate):
        raise ValidationError(f"predicate must be callable, got {predicate!r}")
    interval = check_number(interval, "interval")
    if interval <= 0:
        raise ValidationError(f"interval must be > 0, got {interval}")
    if max_iterations is not None:
        if isinstance(max_iterations, bool) or not isinstance(max_iterations, int):
            raise ValidationError(
                f"max_iterations must be an int or None, got {max_iterations!r}"
            )
        if max_iterations < 1:
            raise ValidationError(f"max_iterations must be >= 1, got {max_iterations}")
    return _poll(predicate, interval, max_iterations)


def _poll(predicate, interval, max_iterations):
    checks = 0
    while True:
        checks += 1
        if predicate():
            return checks
        if max_iterations is not None and checks >= max_iterations:
            raise ConditionTimeoutError(checks)
        yield Timeout(interval)
