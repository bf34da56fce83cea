"""
Simulation kernel.

This layer knows NOTHING about queues of customers, tanks or warehouses.
It only knows:
- A clock that jumps from event to event
- A time-ordered queue of callbacks
- Processes (generators) that suspend on delays, waits and delegation
- Condition waits built from delays

Contention primitives live in discretesim.resources.
"""

from discretesim.core.errors import (
    SimulationError,
    ValidationError,
    InvalidTimeError,
    ConditionTimeoutError,
    PreemptionSignal,
)
from discretesim.core.events import ScheduledEvent, EventQueue
from discretesim.core.process import (
    Process,
    ProcessState,
    SuspendKind,
    Suspension,
    Timeout,
    timeout,
)
from discretesim.core.condition import wait_for
from discretesim.core.simulation import Simulation, SimulationConfig

__all__ = [
    "SimulationError",
    "ValidationError",
    "InvalidTimeError",
    "ConditionTimeoutError",
    "PreemptionSignal",
    "ScheduledEvent",
    "EventQueue",
    "Process",
    "ProcessState",
    "SuspendKind",
    "Suspension",
    "Timeout",
    "timeout",
    "wait_for",
    "Simulation",
    "SimulationConfig",
]
