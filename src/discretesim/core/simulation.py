"""
Simulation: owns the clock and the event queue, and drives the run loop.

The run loop repeatedly pops the earliest (time, priority, sequence) event,
advances the clock to its time, and runs its callback. Idle time is never
stepped through: the clock jumps from one event to the next.

Single-threaded and cooperative: exactly one callback runs at a time and
run() may not be re-entered from inside one. Primitive state is therefore only
ever touched from within the loop, without locking.
"""

from __future__ import annotations
import itertools
import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Any, Callable

from discretesim.core.condition import wait_for
from discretesim.core.errors import InvalidTimeError, SimulationError, ValidationError
from discretesim.core.events import DEFAULT_PRIORITY, EventQueue, ScheduledEvent, check_number
from discretesim.core.process import Process, ProcessFactory, Timeout

if TYPE_CHECKING:
    from discretesim.analysis.statistics import Statistics
    from discretesim.resources.base import Primitive

log = logging.getLogger(__name__)


@dataclass
class SimulationConfig:
    """Configuration for a simulation instance."""

    name: str | None = None
    record_statistics: bool = True  # Primitives report observations to sim.statistics
    warmup_time: float = 0.0  # Observations before this time are not recorded


class Simulation:
    """
    One independent simulated timeline.

    Several Simulation instances never share state: primitives and processes
    are bound to the instance they were created with.
    """

    def __init__(self, config: SimulationConfig | None = None):
        self.config = config or SimulationConfig()
        self.name = self.config.name or "simulation"
        warmup = check_number(self.config.warmup_time, "warmup_time")
        if warmup < 0:
            raise ValidationError(f"warmup_time must be >= 0, got {warmup}")

        self._now = 0.0
        self._queue = EventQueue()
        self._processes: list[Process] = []
        self._primitives: list["Primitive"] = []
        self._active_process: Process | None = None
        self._process_ids = itertools.count(1)
        self._primitive_ids: dict[str, itertools.count] = {}
        self._running = False
        self._stop_requested = False
        self.events_processed = 0

        self.statistics: Statistics | None = None
        if self.config.record_statistics:
            from discretesim.analysis.statistics import Statistics
            self.statistics = Statistics(self, warmup_time=warmup)

    def __repr__(self):
        return f"<Simulation {self.name} now={self._now:g} pending={len(self._queue)}>"

    # ------------------------------------------------------------------
    # Clock and scheduling
    # ------------------------------------------------------------------

    @property
    def now(self) -> float:
        """Current simulated time."""
        return self._now

    def schedule(
        self,
        time: float,
        callback: Callable[[], Any],
        priority: int = DEFAULT_PRIORITY,
    ) -> ScheduledEvent:
        """
        Queue `callback` to run at absolute simulated `time`.

        Args:
            time: Absolute time, must be >= now
            callback: Zero-argument callable
            priority: Tie-break among events at the same time (lower runs first)

        Returns:
            The ScheduledEvent; call .cancel() on it to discard it
        """
        time = check_number(time, "Event time")
        if time < self._now:
            msg = f"Cannot schedule at time {time}: clock is already at {self._now}"
            log.error(msg)
            raise InvalidTimeError(msg)
        if not callable(callback):
            raise ValidationError(f"callback must be callable, got {callback!r}")
        if isinstance(priority, bool) or not isinstance(priority, int):
            raise ValidationError(f"priority must be an int, got {priority!r}")
        return self._queue.push(time, callback, priority)

    def cancel(self, event: ScheduledEvent) -> None:
        """Discard a scheduled event before it runs."""
        event.cancel()

    def peek(self) -> float:
        """Time of the next pending event (inf if none)."""
        return self._queue.peek_time()

    @property
    def pending_events(self) -> int:
        return len(self._queue)

    # ------------------------------------------------------------------
    # Processes
    # ------------------------------------------------------------------

    def process(self, factory: ProcessFactory, name: str | None = None) -> Process:
        """
        Start a process.

        Args:
            factory: Zero-argument callable returning a generator, or a
                     generator object
            name: Optional label for logs

        Returns:
            Process handle, first step queued at the current time
        """
        generator = factory() if callable(factory) else factory
        if not hasattr(generator, "send") or not hasattr(generator, "throw"):
            raise ValidationError(
                f"Process factory must produce a generator, got {generator!r}"
            )
        proc = Process(self, generator, name=name)
        self._processes.append(proc)
        log.debug("t=%g: %s created", self._now, proc.name)
        return proc

    @staticmethod
    def timeout(duration: float, value: Any = None) -> Timeout:
        """Delay request for a process body: `yield sim.timeout(5)`."""
        return Timeout(duration, value)

    @staticmethod
    def wait_for(predicate, interval: float = 1.0, max_iterations: int | None = None):
        """Condition wait for a process body: `yield from sim.wait_for(...)`."""
        return wait_for(predicate, interval=interval, max_iterations=max_iterations)

    @property
    def active_process(self) -> Process | None:
        """The process whose step is executing, if any."""
        return self._active_process

    @property
    def processes(self) -> list[Process]:
        """Processes that have not completed or been cancelled."""
        return list(self._processes)

    def _next_process_id(self) -> int:
        return next(self._process_ids)

    def _forget(self, proc: Process):
        if proc in self._processes:
            self._processes.remove(proc)
        for primitive in self._primitives:
            primitive._process_finished(proc)

    def _register_primitive(self, primitive: "Primitive", kind: str) -> str:
        """Track a primitive for reset() and hand back a default name."""
        self._primitives.append(primitive)
        counter = self._primitive_ids.setdefault(kind, itertools.count(1))
        return f"{kind}-{next(counter)}"

    # ------------------------------------------------------------------
    # Run loop
    # ------------------------------------------------------------------

    def run(self, until: float | None = None) -> dict:
        """
        Run the simulation.

        With no bound, events are executed until the queue is empty. With
        `until`, every event at time <= until is executed, then the clock is
        set to `until`; later events stay queued so another run() call with a
        larger bound continues where this one stopped.

        Returns:
            Summary dictionary
        """
        if until is not None:
            until = check_number(until, "until")
            if until < self._now:
                msg = f"run(until={until}) is before the current time {self._now}"
                log.error(msg)
                raise InvalidTimeError(msg)
        self._enter_loop()
        log.info("%s: run from t=%g until %s", self.name, self._now,
                 "queue empty" if until is None else f"t={until:g}")
        try:
            while not self._stop_requested:
                event = self._queue.peek()
                if event is None or (until is not None and event.time > until):
                    break
                self._dispatch(self._queue.pop())
            else:
                log.info("%s: stopped at t=%g", self.name, self._now)
            if until is not None and not self._stop_requested:
                self._now = until
        finally:
            self._running = False
            self._stop_requested = False
        return self.summary()

    def step(self) -> bool:
        """Execute exactly one event. Returns False if the queue was empty."""
        self._enter_loop()
        try:
            event = self._queue.pop()
            if event is None:
                return False
            self._dispatch(event)
            return True
        finally:
            self._running = False

    def stop(self) -> None:
        """Make the current run() return once the executing event finishes."""
        self._stop_requested = True

    def _enter_loop(self):
        if self._running:
            raise SimulationError("run() cannot be called from inside a running simulation")
        self._running = True

    def _dispatch(self, event: ScheduledEvent):
        self._now = event.time
        self.events_processed += 1
        log.debug("t=%g: dispatch event #%d (priority %d)",
                  event.time, event.sequence, event.priority)
        event.callback()

    def summary(self) -> dict:
        return {
            "end_time": self._now,
            "events_processed": self.events_processed,
            "pending_events": len(self._queue),
            "active_processes": len(self._processes),
        }

    def reset(self) -> None:
        """
        Return to time zero with nothing scheduled.

        Every live process is cancelled first (running its cleanup), then all
        primitives created on this simulation are emptied, the queue is
        cleared and statistics are discarded.
        """
        if self._running:
            raise SimulationError("reset() cannot be called while the simulation runs")
        for proc in list(self._processes):
            proc.cancel()
        self._processes.clear()
        self._queue.clear()
        self._now = 0.0
        self.events_processed = 0
        self._active_process = None
        if self.statistics is not None:
            self.statistics.reset()
        # Primitives record their emptied state at t=0
        for primitive in self._primitives:
            primitive._reset()
        log.info("%s: reset", self.name)
