"""Unit tests for the statistics collaborator."""

import math

import numpy as np
import pytest

from discretesim.analysis import SampleSet, TimeSeries
from discretesim.core import Simulation, SimulationConfig


class TestTimeSeries:
    """Tests for TimeSeries."""

    def test_empty_average_is_nan(self):
        assert math.isnan(TimeSeries("x").time_weighted_average(end=10))

    def test_piecewise_constant_average(self):
        series = TimeSeries("x")
        series.append(0, 2)
        series.append(4, 6)
        # 2 for 4 units, 6 for 6 units
        assert series.time_weighted_average(end=10) == pytest.approx((8 + 36) / 10)

    def test_window_start_clips_earlier_values(self):
        series = TimeSeries("x")
        series.append(0, 100)
        series.append(5, 1)
        assert series.time_weighted_average(end=10, start=5) == pytest.approx(1.0)

    def test_zero_length_window_reports_current_value(self):
        series = TimeSeries("x")
        series.append(0, 3)
        series.append(2, 7)
        assert series.time_weighted_average(end=2, start=2) == 7.0

    def test_extremes(self):
        series = TimeSeries("x")
        for t, v in [(0, 1), (1, 5), (2, -2)]:
            series.append(t, v)
        assert series.maximum() == 5.0
        assert series.minimum() == -2.0
        assert series.last == -2.0
        times, values = series.as_arrays()
        assert np.array_equal(times, [0.0, 1.0, 2.0])


class TestSampleSet:
    """Tests for SampleSet."""

    def test_moments(self):
        samples = SampleSet("w", [1.0, 2.0, 3.0, 4.0])
        assert samples.count == 4
        assert samples.mean() == pytest.approx(2.5)
        assert samples.std() == pytest.approx(np.std([1, 2, 3, 4], ddof=1))
        assert samples.minimum() == 1.0
        assert samples.maximum() == 4.0

    def test_single_sample_std_is_zero(self):
        assert SampleSet("w", [5.0]).std() == 0.0

    def test_empty(self):
        samples = SampleSet("w")
        assert samples.count == 0
        assert math.isnan(samples.mean())
        assert math.isnan(samples.percentile(50))

    def test_percentile(self):
        samples = SampleSet("w", [float(i) for i in range(101)])
        assert samples.percentile(50) == pytest.approx(50.0)
        assert samples.percentile(95) == pytest.approx(95.0)
        with pytest.raises(ValueError):
            samples.percentile(101)

    def test_histogram(self, rng):
        samples = SampleSet("w", list(rng.exponential(2.0, size=500)))
        counts, edges = samples.histogram(bins=8)
        assert counts.sum() == 500
        assert len(edges) == 9


class TestStatistics:
    """Tests for the Statistics collector."""

    def test_record_stamps_current_time(self, sim):
        sim.schedule(3.0, lambda: sim.statistics.record("q", 4))
        sim.run()
        series = sim.statistics.series("q")
        assert series.times == [3.0]
        assert series.values == [4.0]

    def test_unknown_series_raises(self, sim):
        with pytest.raises(KeyError):
            sim.statistics.series("nope")

    def test_unknown_samples_and_counters_are_empty(self, sim):
        assert sim.statistics.samples("nope").count == 0
        assert sim.statistics.counter("nope") == 0

    def test_counters(self, sim):
        sim.statistics.increment("arrivals")
        sim.statistics.increment("arrivals", 4)
        assert sim.statistics.counter("arrivals") == 5

    def test_warmup_drops_samples_and_counters(self):
        sim = Simulation(SimulationConfig(warmup_time=10))
        stats = sim.statistics
        sim.schedule(5, lambda: (stats.observe("w", 1.0), stats.increment("n")))
        sim.schedule(15, lambda: (stats.observe("w", 2.0), stats.increment("n")))
        sim.run()
        assert stats.samples("w").values == [2.0]
        assert stats.counter("n") == 1

    def test_warmup_clips_time_weighted_average(self):
        sim = Simulation(SimulationConfig(warmup_time=10))
        stats = sim.statistics
        stats.record("level", 100)
        sim.schedule(10, lambda: stats.record("level", 2))
        sim.run(until=20)
        assert stats.time_weighted_average("level") == pytest.approx(2.0)

    def test_summary(self, sim):
        stats = sim.statistics
        stats.record("q", 1)
        stats.observe("w", 3.0)
        stats.increment("n")
        sim.run(until=4)
        summary = stats.summary()
        assert summary["time"] == 4.0
        assert summary["counters"] == {"n": 1}
        assert summary["time_weighted"]["q"] == pytest.approx(1.0)
        assert summary["samples"]["w"]["count"] == 1
        assert summary["samples"]["w"]["mean"] == 3.0
        assert stats.names == {"series": ["q"], "samples": ["w"], "counters": ["n"]}

    def test_reset(self, sim):
        sim.statistics.observe("w", 1.0)
        sim.statistics.reset()
        assert sim.statistics.samples("w").count == 0
