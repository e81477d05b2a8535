# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for sample values and the series accumulator.
"""

from fppwatcher.metrics.values import Aggregate, Scalar, SeriesAccumulator, sample_from


class TestSampleFrom:
    """Test interpretation of stored values."""

    def test_number_is_scalar(self):
        assert sample_from(12) == Scalar(12.0)

    def test_mapping_is_aggregate(self):
        value = sample_from({"avg": 10, "min": 5, "max": 20, "samples": 6})
        assert value == Aggregate(avg=10.0, min=5.0, max=20.0, samples=6)

    def test_aggregate_defaults(self):
        """Missing min/max fall back to avg and samples to 1."""
        value = sample_from({"avg": 3.5, "samples": "many"})
        assert value == Aggregate(avg=3.5, min=3.5, max=3.5, samples=1)

    def test_unusable_values(self):
        assert sample_from(None) is None
        assert sample_from("n/a") is None
        assert sample_from({"min": 1}) is None


class TestSeriesAccumulator:
    """Test folding scalars and aggregates."""

    def test_empty_summary_is_none(self):
        acc = SeriesAccumulator()
        assert acc.mean() is None
        assert acc.summary(2) is None

    def test_scalars(self):
        acc = SeriesAccumulator()
        for value in (1.0, 2.0, 4.0):
            acc.add(Scalar(value))
        assert acc.summary(2) == {"avg": 2.33, "min": 1.0, "max": 4.0, "samples": 3}

    def test_unweighted_mean_of_aggregates(self):
        """By default every input counts once regardless of its sample count."""
        acc = SeriesAccumulator()
        acc.add(Aggregate(avg=10, min=5, max=20, samples=1))
        acc.add(Aggregate(avg=20, min=15, max=25, samples=3))
        assert acc.mean() == 15.0
        assert acc.min == 5
        assert acc.max == 25
        assert acc.samples == 4

    def test_weighted_mean_of_aggregates(self):
        """Weighted mode counts each aggregate by its samples."""
        acc = SeriesAccumulator(weighted=True)
        acc.add(Aggregate(avg=10, min=5, max=20, samples=1))
        acc.add(Aggregate(avg=20, min=15, max=25, samples=3))
        assert acc.mean() == 17.5

    def test_integer_summary_keeps_whole_numbers(self):
        """Without a precision the average is an int and whole min/max stay ints."""
        acc = SeriesAccumulator()
        assert acc.add_raw(100)
        assert acc.add_raw(201)
        summary = acc.summary()
        assert summary == {"avg": 151, "min": 100, "max": 201, "samples": 2}
        assert isinstance(summary["min"], int)

    def test_add_raw_rejects_unusable(self):
        acc = SeriesAccumulator()
        assert acc.add_raw("bad") is False
        assert acc.count == 0
