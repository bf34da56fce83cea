"""
discretesim: a discrete-event simulation kernel

Model systems as processes (Python generators) competing for shared
primitives on a single simulated clock.

Core concepts:
- The clock jumps from event to event; nothing happens in between
- Processes suspend on delays, resource requests and nested generators
- Resources grant slots by priority, optionally preempting holders
- Buffers hold a numeric level, Stores hold arbitrary items
- Statistics are collected as raw observations and aggregated on demand

Entry point: discretesim.core.Simulation.
"""

import logging

__version__ = "0.1.0"

logging.getLogger(__name__).addHandler(logging.NullHandler())
