"""
Base classes for contention primitives.

A primitive (Resource, Buffer, Store) owns some shared state and one or more
wait queues. Processes interact with it by yielding WaitRequest tokens:

- the token is submitted to its primitive when the process yields it
- if the primitive can satisfy it on the spot, the process keeps running
- otherwise the token waits in a queue until the primitive grants it and
  queues the process's resumption at the current time

Primitives also report raw observations to the simulation's statistics
collaborator: levels at each state transition, per-request wait times and
named counters. They do not aggregate anything themselves.
"""

from __future__ import annotations
import logging
from abc import ABC, abstractmethod
from typing import TYPE_CHECKING, Any

from discretesim.core.errors import SimulationError, ValidationError
from discretesim.core.process import SuspendKind, Suspension

if TYPE_CHECKING:
    from discretesim.core.process import Process
    from discretesim.core.simulation import Simulation

log = logging.getLogger(__name__)


class Primitive(ABC):
    """
    Base class for primitives bound to one Simulation.

    Subclasses set `kind` (used for default names and statistics keys) and
    implement _reset().
    """

    kind: str = "primitive"

    def __init__(self, sim: "Simulation", name: str | None = None):
        self.sim = sim
        default_name = sim._register_primitive(self, self.kind)
        self.name = name or default_name

    def __repr__(self):
        return f"<{type(self).__name__} {self.name}>"

    @abstractmethod
    def _reset(self) -> None:
        """Drop all holders, items and waiters (called by Simulation.reset)."""
        ...

    def _process_finished(self, proc: "Process") -> None:
        """Forget per-process bookkeeping once `proc` has ended."""

    # Statistics hooks

    def _record(self, metric: str, value: float):
        if self.sim.statistics is not None:
            self.sim.statistics.record(f"{self.name}.{metric}", value)

    def _observe(self, metric: str, value: float):
        if self.sim.statistics is not None:
            self.sim.statistics.observe(f"{self.name}.{metric}", value)

    def _count(self, metric: str, amount: int = 1):
        if self.sim.statistics is not None:
            self.sim.statistics.increment(f"{self.name}.{metric}", amount)


class WaitRequest(Suspension, ABC):
    """
    A yieldable request against a primitive.

    Attributes:
        primitive: The primitive this request targets
        process: The process that yielded it (None until submitted)
        requested_at: Simulated time of submission
        granted_at: Simulated time of fulfilment
        value: What the yielding process receives on resumption
    """

    kind = SuspendKind.WAIT

    def __init__(self, primitive: Primitive):
        self.primitive = primitive
        self.process: Process | None = None
        self.requested_at: float | None = None
        self.granted_at: float | None = None
        self.value: Any = None
        self.triggered = False

    @property
    def waiting(self) -> bool:
        """Submitted and not yet granted."""
        return self.process is not None and not self.triggered

    @property
    def wait_time(self) -> float | None:
        if self.granted_at is None:
            return None
        return self.granted_at - self.requested_at

    def _submit(self, process: "Process") -> bool:
        """Called by the kernel when a process yields this token."""
        if self.process is not None:
            raise SimulationError(f"{self!r} has already been yielded once")
        if process.sim is not self.primitive.sim:
            raise ValidationError(
                f"{self.primitive.name} belongs to a different simulation"
            )
        self.process = process
        self.requested_at = process.sim.now
        self.primitive._count("requests")
        granted = self._arrive()
        if not granted:
            log.debug("t=%g: %s waits on %s", self.requested_at, process.name,
                      self.primitive.name)
        return granted

    def _succeed(self, value: Any = None, *, resume: bool = True):
        """
        Mark this request fulfilled.

        With resume=True (granted from a queue), the process's next step is
        queued at the current time. The zero-wait path passes resume=False
        because the process is still running.
        """
        self.triggered = True
        self.value = value
        self.granted_at = self.primitive.sim.now
        self.primitive._observe("wait_time", self.granted_at - self.requested_at)
        if resume:
            self.process._resume_later(value)

    @abstractmethod
    def _arrive(self) -> bool:
        """Grant now (True) or join the primitive's wait queue (False)."""
        ...

    @abstractmethod
    def _withdraw(self) -> None:
        """Leave the wait queue (the waiting process was cancelled)."""
        ...
