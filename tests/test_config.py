# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for configuration loading.
"""

import logging
from pathlib import Path

import yaml

from fppwatcher.shared.config import Config


class TestConfigDefaults:
    """Test values available without a config file."""

    def test_defaults(self, tmp_path):
        config = Config(config_dir=tmp_path)

        assert config.get("rollup.interval") == 60
        assert config.get("rollup.rotation_interval") == 1800
        assert config.get("collectors.efuse.retention_days") == 7
        assert config.get("quality.latency.poor") == 250
        assert config.get("display.format") == "table"
        assert config.get("paths.data_dir") == "/home/fpp/media/logs/watcher-data"
        assert config.debug is False

    def test_missing_keys(self, tmp_path):
        config = Config(config_dir=tmp_path)

        assert config.get("rollup.missing") is None
        assert config.get("rollup.interval.deeper", "x") == "x"
        assert config.get("nope", 5) == 5

    def test_config_dir_from_env(self, tmp_path, monkeypatch):
        monkeypatch.setenv("WATCHER_CONFIG_DIR", str(tmp_path))
        assert Config().config_dir == tmp_path

    def test_collector_config(self, tmp_path):
        config = Config(config_dir=tmp_path)

        assert config.get_collector_config("voltage")["retention_days"] == 1
        assert config.get_collector_config("unknown") == {}


class TestConfigFile:
    """Test loading and saving config.yaml."""

    def test_file_merges_with_defaults(self, tmp_path):
        (tmp_path / "config.yaml").write_text(yaml.safe_dump({
            "rollup": {"interval": 30},
            "collectors": {"ping": {"raw_retention_hours": 12}},
        }))

        config = Config(config_dir=tmp_path)

        assert config.get("rollup.interval") == 30
        assert config.get("rollup.rotation_interval") == 1800
        assert config.get("collectors.ping.raw_retention_hours") == 12
        assert config.get("collectors.ping.enabled") is True

    def test_mistyped_section_ignored(self, tmp_path, caplog):
        (tmp_path / "config.yaml").write_text("rollup: 5\n")

        with caplog.at_level(logging.WARNING):
            config = Config(config_dir=tmp_path)

        assert config.get("rollup.interval") == 60
        assert "expected a mapping" in caplog.text

    def test_invalid_yaml_keeps_defaults(self, tmp_path):
        (tmp_path / "config.yaml").write_text("rollup: [unclosed\n")

        config = Config(config_dir=tmp_path)

        assert config.get("rollup.interval") == 60

    def test_save_round_trip(self, tmp_path):
        config = Config(config_dir=tmp_path / "new")
        config.set("paths.data_dir", "~/watcher")
        config.set("collectors.thermal.enabled", False)
        config.save_to_file()

        reloaded = Config(config_dir=tmp_path / "new")

        assert reloaded.get("collectors.thermal.enabled") is False
        assert reloaded.get_path("paths.data_dir") == Path.home() / "watcher"


class TestConfigEnvironment:
    """Test environment overrides."""

    def test_data_dir_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("WATCHER_DATA_DIR", "/tmp/watcher-test")
        config = Config(config_dir=tmp_path)
        assert config.get("paths.data_dir") == "/tmp/watcher-test"

    def test_debug_override(self, tmp_path, monkeypatch):
        monkeypatch.setenv("WATCHER_DEBUG", "1")
        config = Config(config_dir=tmp_path)
        assert config.debug is True
        assert config.get("logging.level") == "DEBUG"


class TestConfigValidation:
    """Test validate()."""

    def test_defaults_are_valid(self, tmp_path):
        assert Config(config_dir=tmp_path).validate()

    def test_invalid_values(self, tmp_path, caplog):
        config = Config(config_dir=tmp_path)
        config.set("rollup.interval", 0)
        config.set("quality.jitter.fair", 5)

        with caplog.at_level(logging.ERROR):
            assert not config.validate()

        assert "rollup.interval must be a positive number" in caplog.text
        assert "quality.jitter thresholds" in caplog.text

    def test_non_numeric_threshold(self, tmp_path):
        config = Config(config_dir=tmp_path)
        config.set("quality.latency.good", "fast")
        assert not config.validate()
