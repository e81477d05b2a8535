# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for the ping collector.
"""

import pytest

from fppwatcher.collectors.ping import PingCollector
from fppwatcher.metrics.rollup import TierStatus


@pytest.fixture
def collector(tmp_path, clock):
    return PingCollector(tmp_path / "ping", clock=clock)


class TestPingAggregation:
    """Test bucket aggregation."""

    def test_raw_entries(self, collector):
        result = collector.aggregate_metrics([
            {"timestamp": 1, "host": "8.8.8.8", "latency": 10, "status": "success"},
            {"timestamp": 2, "host": "8.8.8.8", "latency": 20, "status": "success"},
            {"timestamp": 3, "host": "1.1.1.1", "latency": None, "status": "failure"},
        ])

        assert result == {
            "min_latency": 10.0,
            "max_latency": 20.0,
            "avg_latency": 15.0,
            "sample_count": 3,
            "success_count": 2,
            "failure_count": 1,
            "hosts": {"8.8.8.8": 2, "1.1.1.1": 1},
        }

    def test_failures_derived_when_not_reported(self, collector):
        result = collector.aggregate_metrics([
            {"timestamp": 1, "host": "a", "latency": 12.3456, "status": "success"},
            {"timestamp": 2, "host": "a", "latency": None},
        ])

        assert result["failure_count"] == 1
        assert result["avg_latency"] == 12.346

    def test_empty_bucket(self, collector):
        assert collector.aggregate_metrics([]) is None

    def test_rollup_inputs_unweighted(self, collector):
        rollups = [
            {"timestamp": 0, "sample_count": 4, "success_count": 4, "failure_count": 0,
             "avg_latency": 10.0, "min_latency": 8.0, "max_latency": 12.0, "hosts": {"a": 4}},
            {"timestamp": 60, "sample_count": 3, "success_count": 2, "failure_count": 1,
             "avg_latency": 40.0, "min_latency": 30.0, "max_latency": 50.0, "hosts": {"a": 3}},
        ]

        result = collector.aggregate_metrics(rollups)

        assert result["avg_latency"] == 25.0
        assert result["min_latency"] == 8.0
        assert result["max_latency"] == 50.0
        assert result["sample_count"] == 7
        assert result["success_count"] == 6
        assert result["failure_count"] == 1
        assert result["hosts"] == {"a": 7}

    def test_rollup_inputs_weighted(self, tmp_path, clock):
        collector = PingCollector(tmp_path, weighted_averages=True, clock=clock)
        rollups = [
            {"timestamp": 0, "sample_count": 4, "success_count": 4, "avg_latency": 10.0},
            {"timestamp": 60, "sample_count": 2, "success_count": 2, "avg_latency": 40.0},
        ]

        assert collector.aggregate_metrics(rollups)["avg_latency"] == 20.0


class TestPingRollup:
    """Test the collector end to end."""

    def test_record_and_roll_up(self, collector, clock):
        b = clock.now
        collector.record_ping("8.8.8.8", 10.0, True, timestamp=b + 5)
        collector.record_ping("8.8.8.8", 30.0, True, timestamp=b + 25)
        clock.advance(100)

        results = collector.process_rollup()

        assert results[0].status == TierStatus.FLUSHED
        result = collector.get_metrics(hours_back=1)
        assert result.success
        assert result.tier == "1min"
        assert result.tier_info == {"tier": "1min", "interval": 60, "label": "1-minute averages"}
        assert result.data == [{
            "timestamp": b,
            "period_start": b,
            "period_end": b + 60,
            "min_latency": 10.0,
            "max_latency": 30.0,
            "avg_latency": 20.0,
            "sample_count": 2,
            "success_count": 2,
            "failure_count": 0,
            "hosts": {"8.8.8.8": 2},
        }]

    def test_host_filter(self, collector, clock):
        b = clock.now
        collector.record_ping("8.8.8.8", 10.0, True, timestamp=b + 5)
        clock.advance(100)
        collector.process_rollup()

        assert collector.get_metrics(1, dimension="8.8.8.8").count == 1
        assert collector.get_metrics(1, dimension="1.1.1.1").count == 0

    def test_falls_back_to_populated_tier(self, collector, clock):
        """A 24 hour window prefers 5min but uses 1min until 5min has a file."""
        collector.record_ping("8.8.8.8", 10.0, True, timestamp=clock.now + 5)
        clock.advance(100)
        collector.process_rollup()

        assert collector.select_tier(24) == "1min"
        assert collector.get_metrics(24).tier_info["tier"] == "1min"

    def test_missing_rollup_file(self, collector):
        result = collector.get_metrics(1)
        assert not result.success
        assert result.error == "Rollup file not found"

    def test_state_and_reset(self, collector, clock):
        collector.record_ping("8.8.8.8", 10.0, True, timestamp=clock.now + 5)
        clock.advance(100)
        collector.process_rollup()

        assert collector.get_rollup_state()["1min"]["last_bucket_end"] == clock.now - 40
        assert collector.reset_state()["1min"]["last_bucket_end"] == 0
        assert collector.get_rollup_state()["1min"]["last_rollup"] == 0

    def test_rotate_raw(self, tmp_path, clock):
        collector = PingCollector(tmp_path, raw_retention_hours=1, clock=clock)
        collector.record_ping("a", 1.0, True, timestamp=clock.now - 7200)
        collector.record_ping("a", 2.0, True, timestamp=clock.now - 60)

        result = collector.rotate_raw()

        assert result.purged == 1
        assert [entry["latency"] for entry in collector.read_raw()] == [2.0]


class TestCompressedTiers:
    """Test the gzip-backed 30min and 2hour tiers."""

    def test_rollup_paths(self, collector, tmp_path):
        assert collector.rollup_path("1min") == tmp_path / "ping" / "1min.log"
        assert collector.rollup_path("5min") == tmp_path / "ping" / "5min.log"
        assert collector.rollup_path("30min") == tmp_path / "ping" / "30min.log.gz"
        assert collector.rollup_path("2hour") == tmp_path / "ping" / "2hour.log.gz"

        info = collector.get_tiers_info()
        assert info["5min"]["compressed"] is False
        assert info["30min"]["compressed"] is True

    def test_cascade_into_30min(self, collector, clock):
        b = clock.now
        for minute in range(30):
            collector.record_ping("8.8.8.8", 10.0, True, timestamp=b + 5 + 60 * minute)
        clock.advance(1900)

        results = {result.tier: result for result in collector.process_rollup()}

        assert results["30min"].status == TierStatus.FLUSHED
        assert collector.rollup_path("30min").exists()
        data = collector.read_rollup_data("30min", b, b).data
        assert [entry["sample_count"] for entry in data] == [30]

    def test_plain_file_is_migrated(self, collector, clock, tmp_path):
        """An existing uncompressed 30min file moves into the gzip file."""
        b = clock.now
        plain = tmp_path / "ping" / "30min.log"
        collector.storage.append(plain, [{"timestamp": b - 1800, "sample_count": 4}])

        collector.process_rollup()

        assert not plain.exists()
        assert collector.read_rollup_data("30min", b - 3600, b).data == [
            {"timestamp": b - 1800, "sample_count": 4}
        ]
