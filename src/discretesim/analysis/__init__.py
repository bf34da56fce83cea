"""
Analysis layer: aggregation of what the kernel observed.

The kernel only reports raw observations. Everything derived lives here.

- Statistics: per-simulation collector (series, samples, counters, warm-up)
- TimeSeries: piecewise-constant quantity with time-weighted averaging
- SampleSet: independent samples with moments, percentiles and histograms
"""

from discretesim.analysis.statistics import SampleSet, Statistics, TimeSeries

__all__ = [
    "Statistics",
    "TimeSeries",
    "SampleSet",
]
