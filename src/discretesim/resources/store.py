"""
Store: a container of arbitrary Python objects with filtered retrieval.

Items are kept in insertion order. A get may carry a predicate; without one it
takes the oldest item (FIFO).

Matching rules, applied after every change:
1. waiting gets are visited in arrival order; each takes the first item
   its predicate accepts
2. waiting puts are admitted, in order, while there is room
3. repeat until nothing moves

The first-arrived get whose predicate matches an item wins it, even when a later
get would also accept it. One new item satisfies at most one get.
"""

from __future__ import annotations
import logging
import math
from collections import deque
from typing import TYPE_CHECKING, Any, Callable

from discretesim.core.errors import ValidationError
from discretesim.resources.base import Primitive, WaitRequest

if TYPE_CHECKING:
    from discretesim.core.simulation import Simulation

log = logging.getLogger(__name__)

ItemPredicate = Callable[[Any], bool]


class StorePut(WaitRequest):
    """Token adding `item` to a Store. Resumes with the item."""

    def __init__(self, store: "Store", item: Any):
        super().__init__(store)
        self.item = item

    def __repr__(self):
        return f"<StorePut {self.primitive.name} item={self.item!r}>"

    def _arrive(self) -> bool:
        return self.primitive._arrive_put(self)

    def _withdraw(self) -> None:
        self.primitive._withdraw(self, self.primitive._put_queue)


class StoreGet(WaitRequest):
    """
    Token retrieving one item from a Store.

    `retrieved_item` is only populated once the token has been granted; the
    yielding process also receives the item as the value of its yield.
    """

    def __init__(self, store: "Store", predicate: ItemPredicate | None = None):
        super().__init__(store)
        self.predicate = predicate
        self.retrieved_item: Any = None

    def __repr__(self):
        return f"<StoreGet {self.primitive.name}{' with predicate' if self.predicate else ''}>"

    def accepts(self, item: Any) -> bool:
        return self.predicate is None or bool(self.predicate(item))

    def _arrive(self) -> bool:
        return self.primitive._arrive_get(self)

    def _withdraw(self) -> None:
        self.primitive._withdraw(self, self.primitive._get_queue)


class Store(Primitive):
    """
    Object container.

    Args:
        sim: Owning simulation
        capacity: Maximum number of items (int >= 1, or math.inf)
        name: Label used in logs and statistics keys
    """

    kind = "store"

    def __init__(
        self,
        sim: "Simulation",
        capacity: int | float = math.inf,
        name: str | None = None,
    ):
        if capacity != math.inf and (
            isinstance(capacity, bool) or not isinstance(capacity, int) or capacity < 1
        ):
            msg = f"Store capacity must be an int >= 1 or math.inf, got {capacity!r}"
            log.error(msg)
            raise ValidationError(msg)
        super().__init__(sim, name)
        self._capacity = capacity
        self._items: list[Any] = []
        self._put_queue: deque[StorePut] = deque()
        self._get_queue: deque[StoreGet] = deque()
        self._record("size", 0)

    @property
    def capacity(self) -> int | float:
        return self._capacity

    @property
    def items(self) -> tuple:
        """Snapshot of the stored items, oldest first."""
        return tuple(self._items)

    @property
    def size(self) -> int:
        return len(self._items)

    def __len__(self) -> int:
        return len(self._items)

    @property
    def put_queue_length(self) -> int:
        return len(self._put_queue)

    @property
    def get_queue_length(self) -> int:
        return len(self._get_queue)

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------

    def put(self, item: Any) -> StorePut:
        """Request to add `item` (must not be None)."""
        if item is None:
            msg = f"{self.name}.put(None): items must not be None"
            log.error(msg)
            raise ValidationError(msg)
        return StorePut(self, item)

    def get(self, predicate: ItemPredicate | None = None) -> StoreGet:
        """Request the first item accepted by `predicate` (oldest item if None)."""
        if predicate is not None and not callable(predicate):
            raise ValidationError(f"predicate must be callable, got {predicate!r}")
        return StoreGet(self, predicate)

    # ------------------------------------------------------------------
    # Arbitration
    # ------------------------------------------------------------------

    def _arrive_put(self, request: StorePut) -> bool:
        self._count("puts")
        if self._put_queue or len(self._items) >= self._capacity:
            self._put_queue.append(request)
            return False
        self._admit(request, resume=False)
        self._settle()
        return True

    def _arrive_get(self, request: StoreGet) -> bool:
        self._count("gets")
        # Waiting gets already rejected every stored item, so a newcomer
        # may look at the items directly without overtaking anyone.
        index = self._find(request)
        if index is None:
            self._get_queue.append(request)
            return False
        self._hand_over(request, index, resume=False)
        self._settle()
        return True

    def _find(self, request: StoreGet) -> int | None:
        for index, item in enumerate(self._items):
            if request.accepts(item):
                return index
        return None

    def _admit(self, request: StorePut, resume: bool):
        self._items.append(request.item)
        self._record("size", len(self._items))
        log.debug("t=%g: %s <- %r", self.sim.now, self.name, request.item)
        request._succeed(request.item, resume=resume)

    def _hand_over(self, request: StoreGet, index: int, resume: bool):
        item = self._items.pop(index)
        self._record("size", len(self._items))
        log.debug("t=%g: %s -> %r", self.sim.now, self.name, item)
        request.retrieved_item = item
        request._succeed(item, resume=resume)

    def _settle(self):
        progress = True
        while progress:
            progress = False
            for request in list(self._get_queue):
                try:
                    index = self._find(request)
                except Exception as error:
                    # A failing predicate belongs to the waiting process
                    self._get_queue.remove(request)
                    log.debug("t=%g: %s predicate of %s raised %r", self.sim.now,
                              self.name, request.process.name, error)
                    request.process.interrupt(error)
                    continue
                if index is not None:
                    self._get_queue.remove(request)
                    self._hand_over(request, index, resume=True)
                    progress = True
            while self._put_queue and len(self._items) < self._capacity:
                self._admit(self._put_queue.popleft(), resume=True)
                progress = True

    def _withdraw(self, request: WaitRequest, queue: deque):
        if request in queue:
            queue.remove(request)
            self._settle()

    def _reset(self):
        self._items.clear()
        self._put_queue.clear()
        self._get_queue.clear()
        self._record("size", 0)
