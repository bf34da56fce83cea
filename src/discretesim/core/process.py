"""
Processes: suspendable lifelines of simulated entities.

A process body is a Python generator. Each step runs the generator until it
yields a suspension request, which the kernel classifies into one of three
kinds:

- DELAY: a Timeout, resumed by a queued event at now + duration
- WAIT: a Resource/Buffer/Store request token, resumed by its primitive
- DELEGATE: a nested generator, driven directly by the kernel

Nothing else gives up control. A step never calls into another process's
generator; every resumption goes through the event queue.
"""

from __future__ import annotations
import inspect
import logging
from enum import Enum
from functools import partial
from typing import TYPE_CHECKING, Any, Callable, Generator, Union

from discretesim.core.errors import ValidationError
from discretesim.core.events import ScheduledEvent, check_number

if TYPE_CHECKING:
    from discretesim.core.simulation import Simulation
    from discretesim.resources.base import WaitRequest

log = logging.getLogger(__name__)

ProcessGenerator = Generator[Any, Any, Any]
ProcessFactory = Union[Callable[[], ProcessGenerator], ProcessGenerator]


class SuspendKind(Enum):
    """The variants of a suspension request."""

    DELAY = "delay"
    WAIT = "wait"
    DELEGATE = "delegate"


class ProcessState(Enum):
    SCHEDULED = "scheduled"
    RUNNING = "running"
    SUSPENDED = "suspended"
    COMPLETED = "completed"
    CANCELLED = "cancelled"


class Suspension:
    """Base class for values a process may yield to the kernel."""

    kind: SuspendKind


class Timeout(Suspension):
    """Suspend the yielding process for `duration` units of simulated time."""

    kind = SuspendKind.DELAY

    def __init__(self, duration: float, value: Any = None):
        duration = check_number(duration, "Timeout duration")
        if duration < 0:
            raise ValidationError(f"Timeout duration must be >= 0, got {duration}")
        self.duration = duration
        self.value = value

    def __repr__(self):
        return f"Timeout({self.duration})"


def timeout(duration: float, value: Any = None) -> Timeout:
    """Create a delay request: `yield timeout(5)`."""
    return Timeout(duration, value)


def classify(yielded: Any) -> SuspendKind | None:
    """Map a yielded value onto its suspension kind (None if unsupported)."""
    if isinstance(yielded, Suspension):
        return yielded.kind
    if inspect.isgenerator(yielded):
        return SuspendKind.DELEGATE
    return None


class Process:
    """
    Handle on one running generator.

    Created by Simulation.process(). The first step is queued at the current
    time rather than run synchronously, so processes created at the same
    instant start in creation order.

    Attributes:
        id: Per-simulation sequence number
        name: Label used in logs (defaults to "process-<id>")
        state: Current ProcessState
        value: Return value of the generator once COMPLETED
    """

    def __init__(
        self,
        sim: "Simulation",
        generator: ProcessGenerator,
        name: str | None = None,
    ):
        self.sim = sim
        self.id = sim._next_process_id()
        self.name = name or f"process-{self.id}"
        self.state = ProcessState.SCHEDULED
        self.value: Any = None
        # Delegation stack: outermost generator first
        self._stack: list[ProcessGenerator] = [generator]
        # What will resume us: a queued event, or a request held by a primitive
        self._pending: ScheduledEvent | WaitRequest | None = sim.schedule(
            sim.now, self._step
        )

    def __repr__(self):
        return f"<Process {self.name} {self.state.value}>"

    @property
    def is_alive(self) -> bool:
        return self.state not in (ProcessState.COMPLETED, ProcessState.CANCELLED)

    # ------------------------------------------------------------------
    # Control from outside the generator
    # ------------------------------------------------------------------

    def cancel(self) -> None:
        """
        Stop this process.

        A pending timeout is discarded and a pending resource/buffer/store
        request is withdrawn from its wait queue. Resources the process holds
        are NOT released: that stays the caller's job (a `finally:` block in
        the body runs when the generator is closed here).

        Cancelling the running process takes effect at its next yield.
        """
        if not self.is_alive:
            return
        if self.state is ProcessState.RUNNING:
            self.state = ProcessState.CANCELLED
            return
        self._discard_pending()
        self.state = ProcessState.CANCELLED
        log.debug("t=%g: %s cancelled", self.sim.now, self.name)
        self._close()
        self.sim._forget(self)

    def interrupt(self, exc: BaseException) -> None:
        """
        Throw `exc` into the generator at its pending yield.

        The pending wait is discarded now; the throw happens in a resumption
        event queued at the current time.
        """
        if not self.is_alive:
            return
        self._discard_pending()
        self._resume_later(exc=exc)

    # ------------------------------------------------------------------
    # Kernel side
    # ------------------------------------------------------------------

    def _resume_later(self, value: Any = None, exc: BaseException | None = None):
        """Queue the next step at the current time."""
        self._pending = self.sim.schedule(
            self.sim.now, partial(self._step, value, exc)
        )
        if self.state is not ProcessState.RUNNING:
            self.state = ProcessState.SCHEDULED

    def _discard_pending(self):
        pending, self._pending = self._pending, None
        if isinstance(pending, ScheduledEvent):
            pending.cancel()
        elif pending is not None:
            pending._withdraw()

    def _close(self):
        """Close the delegation stack innermost first, as the active process."""
        previous = self.sim._active_process
        self.sim._active_process = self
        try:
            while self._stack:
                self._stack.pop().close()
        finally:
            self.sim._active_process = previous

    def _step(self, value: Any = None, exc: BaseException | None = None) -> None:
        """Run the generator until it suspends, finishes or fails."""
        if not self.is_alive:
            return
        self._pending = None
        self.state = ProcessState.RUNNING
        self.sim._active_process = self
        try:
            self._drive(value, exc)
        finally:
            self.sim._active_process = None

    def _drive(self, value: Any, exc: BaseException | None):
        while True:
            generator = self._stack[-1]
            try:
                if exc is not None:
                    error, exc = exc, None
                    yielded = generator.throw(error)
                else:
                    yielded = generator.send(value)
            except StopIteration as stop:
                self._stack.pop()
                if not self._stack:
                    self._complete(stop.value)
                    return
                value = stop.value
                continue
            except BaseException as error:
                self._stack.pop()
                if not self._stack:
                    self._fail(error)
                    raise
                # Re-raise at the delegating generator's yield
                exc = error
                continue

            if self.state is ProcessState.CANCELLED:
                # Cancelled from inside its own step
                log.debug("t=%g: %s cancelled", self.sim.now, self.name)
                self._close()
                self.sim._forget(self)
                return

            kind = classify(yielded)
            value = None
            if kind is SuspendKind.DELEGATE:
                self._stack.append(yielded)
            elif kind is SuspendKind.DELAY:
                self._pending = self.sim.schedule(
                    self.sim.now + yielded.duration,
                    partial(self._step, yielded.value),
                )
                self.state = ProcessState.SUSPENDED
                return
            elif kind is SuspendKind.WAIT:
                try:
                    granted = yielded._submit(self)
                except Exception as error:
                    # Raise at the yield that submitted the request
                    exc = error
                    continue
                if granted:
                    # Zero-wait fast path: keep running this step
                    value = yielded.value
                    continue
                self._pending = yielded
                self.state = ProcessState.SUSPENDED
                return
            else:
                exc = ValidationError(
                    f"{self.name} yielded unsupported value {yielded!r}"
                )

    def _complete(self, value: Any):
        self.value = value
        if self.state is ProcessState.CANCELLED:
            # Cancelled itself, then returned before yielding again
            log.debug("t=%g: %s cancelled", self.sim.now, self.name)
        else:
            self.state = ProcessState.COMPLETED
            log.debug("t=%g: %s completed", self.sim.now, self.name)
        self.sim._forget(self)

    def _fail(self, error: BaseException):
        self.state = ProcessState.CANCELLED
        log.debug("t=%g: %s failed with %r", self.sim.now, self.name, error)
        self.sim._forget(self)
