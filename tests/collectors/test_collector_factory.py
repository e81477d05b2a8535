# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for building collectors from configuration.
"""

import pytest
import yaml

from fppwatcher.collectors import (
    EfuseCollector,
    MultiSyncPingCollector,
    NetworkQualityCollector,
    PingCollector,
    VoltageCollector,
    build_collector,
    build_collectors,
)
from fppwatcher.metrics.quality import Thresholds
from fppwatcher.shared.config import Config


def make_config(tmp_path, **overrides):
    """Config rooted in a temp directory with optional YAML overrides."""
    config_dir = tmp_path / "config"
    config_dir.mkdir()
    data = {"paths": {"data_dir": str(tmp_path / "data")}}
    data.update(overrides)
    (config_dir / "config.yaml").write_text(yaml.safe_dump(data))
    return Config(config_dir=config_dir)


class TestBuildCollectors:
    """Test the collector factory."""

    def test_every_collector_enabled_by_default(self, tmp_path, clock):
        collectors = build_collectors(make_config(tmp_path), clock=clock)

        assert list(collectors) == ["ping", "multisync_ping", "network_quality", "efuse", "voltage"]
        assert isinstance(collectors["ping"], PingCollector)
        assert isinstance(collectors["multisync_ping"], MultiSyncPingCollector)
        assert isinstance(collectors["network_quality"], NetworkQualityCollector)
        assert isinstance(collectors["efuse"], EfuseCollector)
        assert isinstance(collectors["voltage"], VoltageCollector)
        assert collectors["multisync_ping"].data_dir == tmp_path / "data" / "multisync-ping"
        assert collectors["ping"].storage is collectors["voltage"].storage

    def test_disabled_collectors_skipped(self, tmp_path):
        config = make_config(tmp_path, collectors={"efuse": {"enabled": False}})

        collectors = build_collectors(config)

        assert "efuse" not in collectors
        assert "voltage" in collectors

    def test_collector_settings(self, tmp_path):
        raw_file = tmp_path / "legacy" / "ping-metrics.log"
        config = make_config(
            tmp_path,
            rollup={"weighted_averages": True},
            collectors={
                "ping": {"raw_file": str(raw_file), "raw_retention_hours": 2},
                "efuse": {"retention_days": 30, "collection_interval": 10},
                "voltage": {"retention_days": 3},
            },
        )

        ping = build_collector("ping", config)
        efuse = build_collector("efuse", config)
        voltage = build_collector("voltage", config)

        assert ping.raw_file == raw_file
        assert ping.raw_retention == 7200
        assert ping.weighted_averages is True
        assert efuse.tiers["2hour"].retention == 30 * 86400
        assert efuse.collection_interval == 10
        assert efuse.raw_retention == 6 * 3600
        assert list(voltage.tiers) == ["1min", "5min"]

    def test_quality_thresholds(self, tmp_path):
        config = make_config(tmp_path, quality={"latency": {"good": 20, "fair": 40, "poor": 80}})

        collector = build_collector("network_quality", config)

        assert collector.latency_thresholds == Thresholds(20, 40, 80)
        assert collector.jitter_thresholds == Thresholds(10, 20, 50)

    def test_unknown_collector(self, tmp_path):
        with pytest.raises(KeyError):
            build_collector("thermal", make_config(tmp_path))
