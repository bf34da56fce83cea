"""
Experiment harness: model inputs and repeated runs.

- RandomStream: seeded variates (exponential, normal, triangular, ...)
- run_replications: run a model on many seeds, get a confidence interval
"""

from discretesim.experiments.sampling import RandomStream
from discretesim.experiments.replication import ReplicationResult, run_replications

__all__ = [
    "RandomStream",
    "ReplicationResult",
    "run_replications",
]
