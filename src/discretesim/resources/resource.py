"""
Resource: capacity-counted mutual exclusion with priority and preemption.

A Resource has `capacity` identical slots. A request either:
- is granted at once, when a slot is free
- evicts a holder, when it is preemptive and the lowest-precedence holder has
  a strictly larger priority value than the requester
- waits, ordered by (priority, arrival); lower priority value = served first

An evicted holder loses its slot immediately and receives a PreemptionSignal
at its pending yield. It is expected to catch it, keep track of the work it
still has to do, and request again. A request made at the instant of the
preemption keeps the arrival order of the one it lost, so it goes back to the
front of its priority class. A later request queues as a new arrival.
"""

from __future__ import annotations
import heapq
import itertools
import logging
import math
from numbers import Real
from typing import TYPE_CHECKING

from discretesim.core.errors import PreemptionSignal, SimulationError, ValidationError
from discretesim.resources.base import Primitive, WaitRequest

if TYPE_CHECKING:
    from discretesim.core.process import Process
    from discretesim.core.simulation import Simulation

log = logging.getLogger(__name__)


class ResourceRequest(WaitRequest):
    """
    Token for one slot of a Resource.

    Yielding it suspends the process until the slot is granted; the process
    then receives the request itself. Can be used as a context manager, which
    releases (or withdraws) the request on exit:

        with machine.request(priority=1) as req:
            yield req
            yield timeout(5)
    """

    def __init__(self, resource: "Resource", priority: float = 0, preemptive: bool = False):
        super().__init__(resource)
        self.priority = priority
        self.preemptive = preemptive
        self.sequence: int | None = None  # arrival order, set on submission
        self.preempted = False
        self.released = False

    def __repr__(self):
        return (
            f"<ResourceRequest {self.primitive.name} priority={self.priority}"
            f"{' preemptive' if self.preemptive else ''}>"
        )

    @property
    def resource(self) -> "Resource":
        return self.primitive

    @property
    def held(self) -> bool:
        """Granted and neither released nor preempted."""
        return self.triggered and not self.released and not self.preempted

    def _arrive(self) -> bool:
        return self.primitive._arrive(self)

    def _withdraw(self) -> None:
        self.primitive._withdraw(self)

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        if self.held or self.waiting:
            self.primitive.release(self)
        return False


class Resource(Primitive):
    """
    Discrete-slot resource.

    Args:
        sim: Owning simulation
        capacity: Number of slots (int >= 1)
        name: Label used in logs and statistics keys
    """

    kind = "resource"

    def __init__(self, sim: "Simulation", capacity: int = 1, name: str | None = None):
        if isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1:
            msg = f"Resource capacity must be an int >= 1, got {capacity!r}"
            log.error(msg)
            raise ValidationError(msg)
        super().__init__(sim, name)
        self._capacity = capacity
        self._holders: list[ResourceRequest] = []  # grant order
        self._queue: list[tuple[float, int, ResourceRequest]] = []
        self._arrivals = itertools.count()
        # (arrival number, preemption time) of the slot each victim lost
        self._lost_sequence: dict["Process", tuple[int, float]] = {}
        self._record("in_use", 0)
        self._record("queue_length", 0)

    @property
    def capacity(self) -> int:
        return self._capacity

    @property
    def in_use(self) -> int:
        return len(self._holders)

    @property
    def available(self) -> int:
        return self._capacity - len(self._holders)

    @property
    def holders(self) -> tuple[ResourceRequest, ...]:
        return tuple(self._holders)

    @property
    def queue(self) -> list[ResourceRequest]:
        """Waiting requests in the order they will be granted."""
        return [entry[2] for entry in sorted(self._queue, key=lambda e: e[:2])]

    @property
    def queue_length(self) -> int:
        return len(self._queue)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def request(self, priority: float = 0, preemptive: bool = False) -> ResourceRequest:
        """
        Create a request token to yield.

        Args:
            priority: Lower value = higher precedence; negative values allowed
            preemptive: May evict a strictly lower-precedence holder

        Returns:
            ResourceRequest
        """
        if isinstance(priority, bool) or not isinstance(priority, Real) or math.isnan(priority):
            raise ValidationError(f"priority must be a real number, got {priority!r}")
        return ResourceRequest(self, priority, bool(preemptive))

    def release(self, request: ResourceRequest | None = None) -> None:
        """
        Give a slot back.

        Without an argument, releases the most recently granted slot held by
        the active process. Releasing a preempted request does nothing;
        releasing a request that is still waiting withdraws it.
        """
        if request is None:
            request = self._held_by_active_process()
            if request is None:
                return
        if request.primitive is not self:
            raise ValidationError(f"{request!r} does not belong to {self.name}")
        if request.preempted or request.released:
            return
        if request.waiting:
            self._withdraw(request)
            request.released = True
            return
        if request not in self._holders:
            raise SimulationError(f"{request!r} was never granted")

        self._holders.remove(request)
        request.released = True
        self._count("releases")
        self._record("in_use", len(self._holders))
        log.debug("t=%g: %s released %s", self.sim.now, request.process.name, self.name)
        self._grant_waiting()

    # ------------------------------------------------------------------
    # Arbitration
    # ------------------------------------------------------------------

    def _held_by_active_process(self) -> ResourceRequest | None:
        proc = self.sim.active_process
        for held in reversed(self._holders):
            if proc is not None and held.process is proc:
                return held
        if proc is not None and proc in self._lost_sequence:
            # Lost to preemption: nothing left to give back
            return None
        holder = proc.name if proc is not None else "caller outside any process"
        raise SimulationError(f"{holder} holds no slot of {self.name}")

    def _arrive(self, request: ResourceRequest) -> bool:
        lost = self._lost_sequence.pop(request.process, None)
        if lost is not None and lost[1] == self.sim.now:
            # Re-request in reaction to the preemption: keep the old place
            request.sequence = lost[0]
        else:
            request.sequence = next(self._arrivals)

        if len(self._holders) < self._capacity:
            self._grant(request, resume=False)
            return True

        if request.preemptive:
            victim = self._preemption_victim(request)
            if victim is not None:
                self._evict(victim, request)
                self._grant(request, resume=False)
                return True

        heapq.heappush(self._queue, (request.priority, request.sequence, request))
        self._record("queue_length", len(self._queue))
        return False

    def _preemption_victim(self, request: ResourceRequest) -> ResourceRequest | None:
        """Lowest-precedence holder, if strictly below the requester."""
        candidates = [
            (held.priority, index, held)
            for index, held in enumerate(self._holders)
            if held.process is not request.process
        ]
        if not candidates:
            return None
        # Among equal priorities, the most recently granted loses the least work
        priority, _, victim = max(candidates, key=lambda c: c[:2])
        if priority > request.priority:
            return victim
        return None

    def _evict(self, victim: ResourceRequest, by: ResourceRequest):
        now = self.sim.now
        self._holders.remove(victim)
        victim.preempted = True
        self._lost_sequence = {
            proc: lost for proc, lost in self._lost_sequence.items() if lost[1] == now
        }
        if victim.process.is_alive:
            self._lost_sequence[victim.process] = (victim.sequence, now)
        self._count("preemptions")
        self._record("in_use", len(self._holders))
        log.debug(
            "t=%g: %s (priority %s) preempts %s (priority %s) on %s",
            self.sim.now, by.process.name, by.priority,
            victim.process.name, victim.priority, self.name,
        )
        victim.process.interrupt(
            PreemptionSignal(self, preempted_by=by.process, usage_since=victim.granted_at)
        )

    def _grant(self, request: ResourceRequest, resume: bool):
        self._holders.append(request)
        self._count("grants")
        self._record("in_use", len(self._holders))
        log.debug("t=%g: %s granted %s", self.sim.now, request.process.name, self.name)
        request._succeed(request, resume=resume)

    def _grant_waiting(self):
        while self._queue and len(self._holders) < self._capacity:
            _, _, request = heapq.heappop(self._queue)
            self._record("queue_length", len(self._queue))
            self._grant(request, resume=True)

    def _withdraw(self, request: ResourceRequest):
        for index, entry in enumerate(self._queue):
            if entry[2] is request:
                self._queue.pop(index)
                heapq.heapify(self._queue)
                self._record("queue_length", len(self._queue))
                return

    def _process_finished(self, proc: "Process") -> None:
        self._lost_sequence.pop(proc, None)

    def _reset(self):
        self._holders.clear()
        self._queue.clear()
        self._lost_sequence.clear()
        self._arrivals = itertools.count()
        self._record("in_use", 0)
        self._record("queue_length", 0)
