"""
Seeded random variates for model inputs.

The kernel itself never draws random numbers. Models draw inter-arrival and
service times from a RandomStream, so a fixed seed gives a fixed run.
"""

from __future__ import annotations
import logging
import math
from typing import Any, Sequence

import numpy as np

from discretesim.core.errors import ValidationError

log = logging.getLogger(__name__)


def _require(condition: bool, msg: str):
    if not condition:
        log.error(msg)
        raise ValidationError(msg)


class RandomStream:
    """
    One reproducible stream of variates, backed by numpy.random.default_rng.

    Args:
        seed: Integer seed (None draws fresh OS entropy)
    """

    def __init__(self, seed: int | None = None, *, generator: np.random.Generator | None = None):
        self.seed = seed
        self._rng = generator if generator is not None else np.random.default_rng(seed)

    def __repr__(self):
        return f"RandomStream(seed={self.seed})"

    @property
    def generator(self) -> np.random.Generator:
        return self._rng

    def random(self) -> float:
        """Uniform on [0, 1)."""
        return float(self._rng.random())

    def uniform(self, low: float = 0.0, high: float = 1.0) -> float:
        _require(low <= high, f"uniform requires low <= high, got [{low}, {high}]")
        return float(self._rng.uniform(low, high))

    def exponential(self, mean: float) -> float:
        """
        Exponential variate with the given mean (1 / rate).

        Typical use: inter-arrival times of a Poisson process with rate
        lambda are exponential(1 / lambda).
        """
        _require(mean > 0 and math.isfinite(mean), f"exponential mean must be > 0, got {mean}")
        return float(self._rng.exponential(mean))

    def normal(self, mean: float = 0.0, std: float = 1.0) -> float:
        _require(std >= 0, f"normal std must be >= 0, got {std}")
        return float(self._rng.normal(mean, std))

    def triangular(self, low: float, mode: float, high: float) -> float:
        _require(
            low <= mode <= high and low < high,
            f"triangular requires low <= mode <= high and low < high, got ({low}, {mode}, {high})",
        )
        return float(self._rng.triangular(low, mode, high))

    def poisson(self, lam: float) -> int:
        _require(lam >= 0, f"poisson rate must be >= 0, got {lam}")
        return int(self._rng.poisson(lam))

    def randint(self, low: int, high: int) -> int:
        """Integer uniform on [low, high] (both ends included)."""
        _require(low <= high, f"randint requires low <= high, got [{low}, {high}]")
        return int(self._rng.integers(low, high, endpoint=True))

    def choice(self, options: Sequence[Any], p: Sequence[float] | None = None) -> Any:
        """Pick one element of `options`, optionally with probabilities `p`."""
        _require(len(options) > 0, "choice requires a non-empty sequence")
        if p is not None:
            _require(len(p) == len(options), "choice weights must match the options")
            _require(
                all(w >= 0 for w in p) and abs(sum(p) - 1.0) < 1e-9,
                f"choice weights must be >= 0 and sum to 1, got {list(p)}",
            )
        index = int(self._rng.choice(len(options), p=p))
        return options[index]

    def spawn(self, n: int) -> list["RandomStream"]:
        """Independent child streams, e.g. one per model input."""
        _require(isinstance(n, int) and n >= 1, f"spawn count must be an int >= 1, got {n!r}")
        return [RandomStream(self.seed, generator=child) for child in self._rng.spawn(n)]
