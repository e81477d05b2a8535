# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for the voltage collector.
"""

import pytest

from fppwatcher.collectors.voltage import VoltageCollector, normalize_entry, voltage_tier_table


@pytest.fixture
def collector(tmp_path, clock):
    return VoltageCollector(tmp_path / "voltage", clock=clock)


class TestVoltageTiers:
    """Test retention-shaped tier tables."""

    @pytest.mark.parametrize("days,expected", [
        (1, ["1min"]),
        (2, ["1min", "5min"]),
        (3, ["1min", "5min"]),
        (7, ["1min", "5min", "30min"]),
        (30, ["1min", "5min", "30min", "2hour"]),
    ])
    def test_tiers_for_retention(self, days, expected):
        assert list(voltage_tier_table(days)) == expected

    def test_retention_caps(self):
        tiers = voltage_tier_table(30)
        assert tiers["1min"].retention == 6 * 3600
        assert tiers["30min"].retention == 7 * 86400
        assert tiers["2hour"].retention == 30 * 86400

        assert voltage_tier_table(1)["1min"].retention == 6 * 3600


class TestVoltageSamples:
    """Test raw writes, legacy entries and aggregation."""

    def test_normalize_legacy(self):
        assert normalize_entry({"timestamp": 1, "voltage": 5.1}) == {"timestamp": 1, "voltages": {"core": 5.1}}
        entry = {"timestamp": 1, "voltages": {"5v": 5.0}}
        assert normalize_entry(entry) is entry

    def test_empty_sample_rejected(self, collector, clock):
        assert collector.write_sample({}, timestamp=clock.now) is False

    def test_write_voltage(self, collector, clock):
        assert collector.write_voltage(5.02, timestamp=clock.now)
        assert collector.read_raw()[0]["voltages"] == {"core": 5.02}

    def test_legacy_and_current_entries_merge(self, collector, clock):
        b = clock.now
        collector.data_dir.mkdir(parents=True)
        collector.raw_file.write_text(f'{{"timestamp": {b + 5}, "voltage": 5.1}}\n')
        collector.write_sample({"core": 5.0, "3v3": 3.31}, timestamp=b + 10)
        clock.advance(100)

        collector.process_rollup()

        [entry] = collector.get_metrics(hours_back=6).data
        assert entry["interval"] == 60
        assert entry["voltages"]["core"] == {"avg": 5.05, "min": 5.0, "max": 5.1, "samples": 2}
        assert entry["voltages"]["3v3"] == {"avg": 3.31, "min": 3.31, "max": 3.31, "samples": 1}

    def test_short_window_returns_raw(self, collector, clock):
        collector.write_voltage(5.0, timestamp=clock.now - 30)

        result = collector.get_metrics(hours_back=1)

        assert result.success
        assert result.tier == "raw"
        assert result.tier_info == {"tier": "raw", "interval": None, "label": "Raw readings"}
        assert result.data[0]["voltages"] == {"core": 5.0}

    def test_window_capped_at_retention(self, collector, clock):
        collector.write_voltage(5.0, timestamp=clock.now + 5)
        clock.advance(100)
        collector.process_rollup()

        result = collector.get_metrics(hours_back=24 * 30)

        assert result.success
        assert result.start == clock.now - 86400

    def test_missing_rollup_file(self, collector):
        result = collector.get_metrics(hours_back=6)
        assert not result.success
        assert result.error == "Rollup file not found"
