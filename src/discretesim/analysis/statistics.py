"""
Statistics: aggregation of raw observations reported by the kernel.

The kernel only supplies raw material:
- (time, value) points of piecewise-constant quantities (occupancy, level)
- individual samples (wait durations)
- named counters

Everything derived (time-weighted averages, percentiles, histograms) is
computed here, on demand, with numpy. Observations made before the warm-up
time are excluded: samples and counters are dropped, and time-weighted
averages only integrate from the warm-up time onwards.
"""

from __future__ import annotations
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

import numpy as np

if TYPE_CHECKING:
    from discretesim.core.simulation import Simulation


@dataclass
class TimeSeries:
    """
    Observations of a piecewise-constant quantity.

    Each value holds from its time until the next observation.
    """

    name: str
    times: list[float] = field(default_factory=list)
    values: list[float] = field(default_factory=list)

    def append(self, time: float, value: float):
        self.times.append(float(time))
        self.values.append(float(value))

    def __len__(self) -> int:
        return len(self.times)

    def as_arrays(self) -> tuple[np.ndarray, np.ndarray]:
        """Return (times, values) as float arrays."""
        return np.asarray(self.times, dtype=np.float64), np.asarray(self.values, dtype=np.float64)

    @property
    def last(self) -> float | None:
        return self.values[-1] if self.values else None

    def time_weighted_average(self, end: float, start: float = 0.0) -> float:
        """
        Average value over [start, end], weighting each value by how long it held.

        Time before the first observation is not counted.

        Returns:
            The average, or nan if there are no observations
        """
        if not self.times:
            return float("nan")
        times, values = self.as_arrays()
        start = max(start, times[0])
        if end <= start:
            # Zero-length window: report the value in force at `end`
            index = np.searchsorted(times, end, side="right") - 1
            return float(values[max(index, 0)])

        edges = np.clip(np.append(times, end), start, end)
        durations = np.diff(edges)
        return float(np.dot(values, durations) / durations.sum())

    def maximum(self) -> float:
        return float(np.max(self.values)) if self.values else float("nan")

    def minimum(self) -> float:
        return float(np.min(self.values)) if self.values else float("nan")


@dataclass
class SampleSet:
    """Independent samples of a quantity (e.g. wait times)."""

    name: str
    values: list[float] = field(default_factory=list)

    def append(self, value: float):
        self.values.append(float(value))

    @property
    def count(self) -> int:
        return len(self.values)

    def mean(self) -> float:
        return float(np.mean(self.values)) if self.values else float("nan")

    def std(self) -> float:
        """Sample standard deviation (0 for fewer than two samples)."""
        if len(self.values) < 2:
            return 0.0
        return float(np.std(self.values, ddof=1))

    def minimum(self) -> float:
        return float(np.min(self.values)) if self.values else float("nan")

    def maximum(self) -> float:
        return float(np.max(self.values)) if self.values else float("nan")

    def percentile(self, q: float) -> float:
        """q-th percentile, q in [0, 100]."""
        if not 0 <= q <= 100:
            raise ValueError(f"Percentile must be within [0, 100], got {q}")
        if not self.values:
            return float("nan")
        return float(np.percentile(self.values, q))

    def histogram(self, bins: int | np.ndarray = 10) -> tuple[np.ndarray, np.ndarray]:
        """Return (counts, bin_edges) as numpy.histogram does."""
        return np.histogram(np.asarray(self.values, dtype=np.float64), bins=bins)


class Statistics:
    """
    Named observations for one simulation.

    Args:
        sim: The simulation whose clock stamps the observations
        warmup_time: Observations before this time are excluded
    """

    def __init__(self, sim: "Simulation", warmup_time: float = 0.0):
        self.sim = sim
        self.warmup_time = warmup_time
        self._series: dict[str, TimeSeries] = {}
        self._samples: dict[str, SampleSet] = {}
        self._counters: dict[str, int] = {}

    @property
    def in_warmup(self) -> bool:
        return self.sim.now < self.warmup_time

    # Recording

    def record(self, name: str, value: float):
        """Record the new value of a piecewise-constant quantity at `now`."""
        series = self._series.get(name)
        if series is None:
            series = self._series[name] = TimeSeries(name)
        series.append(self.sim.now, value)

    def observe(self, name: str, value: float):
        """Add one sample (ignored during warm-up)."""
        if self.in_warmup:
            return
        samples = self._samples.get(name)
        if samples is None:
            samples = self._samples[name] = SampleSet(name)
        samples.append(value)

    def increment(self, name: str, amount: int = 1):
        """Bump a counter (ignored during warm-up)."""
        if self.in_warmup:
            return
        self._counters[name] = self._counters.get(name, 0) + amount

    # Access

    def series(self, name: str) -> TimeSeries:
        try:
            return self._series[name]
        except KeyError:
            raise KeyError(f"No time series named {name!r}") from None

    def samples(self, name: str) -> SampleSet:
        """Samples recorded under `name` (empty if none were recorded)."""
        return self._samples.get(name, SampleSet(name))

    def counter(self, name: str) -> int:
        return self._counters.get(name, 0)

    def time_weighted_average(self, name: str, end: float | None = None) -> float:
        """Time-weighted average of a series from the warm-up time to `end` (default now)."""
        end = self.sim.now if end is None else end
        return self.series(name).time_weighted_average(end, start=self.warmup_time)

    @property
    def names(self) -> dict[str, list[str]]:
        return {
            "series": sorted(self._series),
            "samples": sorted(self._samples),
            "counters": sorted(self._counters),
        }

    def summary(self) -> dict:
        """All statistics as plain Python numbers."""
        return {
            "time": self.sim.now,
            "warmup_time": self.warmup_time,
            "counters": dict(sorted(self._counters.items())),
            "time_weighted": {
                name: self.time_weighted_average(name) for name in sorted(self._series)
            },
            "samples": {
                name: {
                    "count": s.count,
                    "mean": s.mean(),
                    "std": s.std(),
                    "min": s.minimum(),
                    "max": s.maximum(),
                    "p50": s.percentile(50),
                    "p95": s.percentile(95),
                }
                for name, s in sorted(self._samples.items())
            },
        }

    def reset(self):
        self._series.clear()
        self._samples.clear()
        self._counters.clear()
