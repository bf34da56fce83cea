"""
Buffer: a quantity-counted container for producer/consumer models.

The buffer holds a numeric level in [0, capacity]. Producers put amounts in,
consumers get amounts out. Each side has its own FIFO queue:

- a put of `a` needs capacity - level >= a
- a get of `a` needs level >= a
- nothing is ever partially fulfilled
- queues are served strictly in order: the head blocks everyone behind it,
  even if a later, smaller request would fit (no skipping ahead)

Whenever the level changes, both queues are drained in turn until neither
can make progress.
"""

from __future__ import annotations
import logging
from collections import deque
from typing import TYPE_CHECKING

from discretesim.core.errors import ValidationError
from discretesim.core.events import check_number
from discretesim.resources.base import Primitive, WaitRequest

if TYPE_CHECKING:
    from discretesim.core.simulation import Simulation

log = logging.getLogger(__name__)


class BufferPut(WaitRequest):
    """Token adding `amount` to a Buffer. Resumes with the amount stored."""

    def __init__(self, buffer: "Buffer", amount: float):
        super().__init__(buffer)
        self.amount = amount

    def __repr__(self):
        return f"<BufferPut {self.primitive.name} amount={self.amount:g}>"

    def _arrive(self) -> bool:
        return self.primitive._arrive_put(self)

    def _withdraw(self) -> None:
        self.primitive._withdraw(self, self.primitive._put_queue)


class BufferGet(WaitRequest):
    """Token removing `amount` from a Buffer. Resumes with the amount taken."""

    def __init__(self, buffer: "Buffer", amount: float):
        super().__init__(buffer)
        self.amount = amount

    def __repr__(self):
        return f"<BufferGet {self.primitive.name} amount={self.amount:g}>"

    def _arrive(self) -> bool:
        return self.primitive._arrive_get(self)

    def _withdraw(self) -> None:
        self.primitive._withdraw(self, self.primitive._get_queue)


class Buffer(Primitive):
    """
    Continuous-level container.

    Args:
        sim: Owning simulation
        capacity: Maximum level (finite, > 0)
        initial_level: Starting level, within [0, capacity]
        name: Label used in logs and statistics keys
    """

    kind = "buffer"

    def __init__(
        self,
        sim: "Simulation",
        capacity: float,
        initial_level: float = 0.0,
        name: str | None = None,
    ):
        capacity = check_number(capacity, "Buffer capacity")
        if capacity <= 0:
            raise ValidationError(f"Buffer capacity must be > 0, got {capacity}")
        initial_level = check_number(initial_level, "initial_level")
        if not 0 <= initial_level <= capacity:
            raise ValidationError(
                f"initial_level must be within [0, {capacity}], got {initial_level}"
            )
        super().__init__(sim, name)
        self._capacity = capacity
        self._initial_level = initial_level
        self._level = initial_level
        self._put_queue: deque[BufferPut] = deque()
        self._get_queue: deque[BufferGet] = deque()
        self._record("level", self._level)

    @property
    def capacity(self) -> float:
        return self._capacity

    @property
    def level(self) -> float:
        return self._level

    @property
    def available_space(self) -> float:
        return self._capacity - self._level

    @property
    def put_queue_length(self) -> int:
        return len(self._put_queue)

    @property
    def get_queue_length(self) -> int:
        return len(self._get_queue)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def _check_amount(self, amount, operation: str) -> float:
        amount = check_number(amount, f"{operation} amount")
        if amount <= 0:
            msg = f"{self.name}.{operation}({amount}): amount must be > 0"
            log.error(msg)
            raise ValidationError(msg)
        if amount > self._capacity:
            # Could never be satisfied: fail now instead of deadlocking
            msg = (
                f"{self.name}.{operation}({amount}): amount exceeds "
                f"capacity {self._capacity}"
            )
            log.error(msg)
            raise ValidationError(msg)
        return amount

    def put(self, amount: float) -> BufferPut:
        """Request to add `amount` to the level."""
        return BufferPut(self, self._check_amount(amount, "put"))

    def get(self, amount: float) -> BufferGet:
        """Request to remove `amount` from the level."""
        return BufferGet(self, self._check_amount(amount, "get"))

    # ------------------------------------------------------------------
    # Arbitration
    # ------------------------------------------------------------------

    def _arrive_put(self, request: BufferPut) -> bool:
        self._count("puts")
        if not self._put_queue and self._capacity - self._level >= request.amount:
            self._apply(request, request.amount, resume=False)
            self._settle()
            return True
        self._put_queue.append(request)
        return False

    def _arrive_get(self, request: BufferGet) -> bool:
        self._count("gets")
        if not self._get_queue and self._level >= request.amount:
            self._apply(request, -request.amount, resume=False)
            self._settle()
            return True
        self._get_queue.append(request)
        return False

    def _apply(self, request: WaitRequest, delta: float, resume: bool):
        # Clamp float noise so the level never drifts outside [0, capacity]
        self._level = min(self._capacity, max(0.0, self._level + delta))
        self._record("level", self._level)
        log.debug("t=%g: %s level %+g -> %g", self.sim.now, self.name, delta, self._level)
        request._succeed(request.amount, resume=resume)

    def _settle(self):
        """Drain both queues in order until neither can move."""
        progress = True
        while progress:
            progress = False
            while self._get_queue and self._level >= self._get_queue[0].amount:
                request = self._get_queue.popleft()
                self._apply(request, -request.amount, resume=True)
                progress = True
            while self._put_queue and self._capacity - self._level >= self._put_queue[0].amount:
                request = self._put_queue.popleft()
                self._apply(request, request.amount, resume=True)
                progress = True

    def _withdraw(self, request: WaitRequest, queue: deque):
        if request in queue:
            at_head = queue[0] is request
            queue.remove(request)
            if at_head:
                # Requests behind a withdrawn head may fit now
                self._settle()

    def _reset(self):
        self._level = self._initial_level
        self._put_queue.clear()
        self._get_queue.clear()
        self._record("level", self._level)
