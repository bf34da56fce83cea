"""
Independent replications of a stochastic model.

Each replication runs the model on its own seed and reports one number
(e.g. the average wait). The spread across replications gives a Student-t
confidence interval for the true mean.
"""

from __future__ import annotations
import logging
import math
from dataclasses import dataclass
from typing import Callable

import numpy as np
from scipy import stats

from discretesim.core.errors import ValidationError

log = logging.getLogger(__name__)


@dataclass
class ReplicationResult:
    """Outcome of run_replications."""

    values: np.ndarray
    mean: float
    std: float
    half_width: float
    confidence: float

    @property
    def n(self) -> int:
        return len(self.values)

    @property
    def interval(self) -> tuple[float, float]:
        return (self.mean - self.half_width, self.mean + self.half_width)

    def contains(self, value: float) -> bool:
        low, high = self.interval
        return low <= value <= high

    def __str__(self) -> str:
        low, high = self.interval
        return (
            f"mean={self.mean:.4f} +/- {self.half_width:.4f} "
            f"({self.confidence:.0%} CI [{low:.4f}, {high:.4f}], n={self.n})"
        )


def run_replications(
    model: Callable[[int], float],
    n: int,
    base_seed: int = 0,
    confidence: float = 0.95,
) -> ReplicationResult:
    """
    Run `model(seed)` for seeds base_seed .. base_seed + n - 1.

    Args:
        model: Builds and runs one simulation, returns the measured value
        n: Number of replications (>= 2 for an interval)
        base_seed: First seed
        confidence: Confidence level of the interval, in (0, 1)

    Returns:
        ReplicationResult
    """
    if isinstance(n, bool) or not isinstance(n, int) or n < 2:
        msg = f"run_replications needs an int n >= 2, got {n!r}"
        log.error(msg)
        raise ValidationError(msg)
    if not 0 < confidence < 1:
        msg = f"confidence must be within (0, 1), got {confidence}"
        log.error(msg)
        raise ValidationError(msg)

    values = np.empty(n, dtype=np.float64)
    for i in range(n):
        values[i] = float(model(base_seed + i))
        log.debug("replication %d/%d (seed %d): %g", i + 1, n, base_seed + i, values[i])

    mean = float(values.mean())
    std = float(values.std(ddof=1))
    t_crit = float(stats.t.ppf(0.5 + confidence / 2, df=n - 1))
    half_width = t_crit * std / math.sqrt(n)
    log.info("%d replications: mean %g, half width %g", n, mean, half_width)
    return ReplicationResult(values, mean, std, half_width, confidence)
