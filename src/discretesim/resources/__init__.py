"""
Contention primitives: shared things that processes wait on.

- Resource: discrete slots, priority queue, optional preemption
- Buffer: numeric level with put/get of amounts
- Store: arbitrary objects with predicate retrieval

Each request is a token the process yields; the primitive decides when it is
granted and queues the process's resumption.
"""

from discretesim.resources.base import Primitive, WaitRequest
from discretesim.resources.resource import Resource, ResourceRequest
from discretesim.resources.buffer import Buffer, BufferGet, BufferPut
from discretesim.resources.store import Store, StoreGet, StorePut

__all__ = [
    "Primitive",
    "WaitRequest",
    "Resource",
    "ResourceRequest",
    "Buffer",
    "BufferGet",
    "BufferPut",
    "Store",
    "StoreGet",
    "StorePut",
]
