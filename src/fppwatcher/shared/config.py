# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Configuration management for the metrics engine.

Settings live in ``config.yaml`` inside a config directory. Values are read
with dot-notation keys and environment variables override the file.
"""

import copy
import logging
import os
from functools import lru_cache
from pathlib import Path
from typing import Any, Dict, Optional

import yaml

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_DIR = Path.home() / ".fpp-watcher"
CONFIG_FILENAME = "config.yaml"

DEFAULTS: Dict[str, Any] = {
    "paths": {
        "data_dir": "/home/fpp/media/logs/watcher-data",
    },
    "rollup": {
        "interval": 60,
        "rotation_interval": 1800,
        "weighted_averages": False,
    },
    "collectors": {
        "ping": {"enabled": True, "raw_retention_hours": 25},
        "multisync_ping": {"enabled": True, "raw_retention_hours": 25},
        "network_quality": {"enabled": True, "raw_retention_hours": 25},
        "efuse": {"enabled": True, "raw_retention_hours": 6, "retention_days": 7},
        "voltage": {"enabled": True, "raw_retention_hours": 6, "retention_days": 1},
    },
    "quality": {
        "latency": {"good": 50, "fair": 100, "poor": 250},
        "jitter": {"good": 10, "fair": 20, "poor": 50},
        "packet_loss": {"good": 1, "fair": 2, "poor": 5},
    },
    "logging": {
        "level": "INFO",
        "file": None,
    },
    "display": {
        "format": "table",
    },
}


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    """Recursively merge ``override`` into ``base``, ignoring mistyped sections."""
    for key, value in override.items():
        current = base.get(key)
        if isinstance(current, dict):
            if isinstance(value, dict):
                _merge(current, value)
            else:
                logger.warning(f"Ignoring config section '{key}': expected a mapping")
        else:
            base[key] = value
    return base


class Config:
    """
    Metrics engine configuration.

    Args:
        config_dir: Directory holding ``config.yaml``. Defaults to
            ``$WATCHER_CONFIG_DIR`` or ``~/.fpp-watcher``.
    """

    def __init__(self, config_dir: Optional[Path] = None):
        if config_dir is None:
            if env_dir := os.environ.get("WATCHER_CONFIG_DIR"):
                config_dir = Path(env_dir)
            else:
                config_dir = DEFAULT_CONFIG_DIR

        self.config_dir = Path(config_dir).expanduser()
        self.config_path = self.config_dir / CONFIG_FILENAME
        self.data: Dict[str, Any] = copy.deepcopy(DEFAULTS)
        self.debug = False

        if self.config_path.exists():
            self.load_from_file()

        self.load_from_env()

    def load_from_file(self) -> None:
        """Load configuration from the YAML file, keeping defaults on error."""
        try:
            with open(self.config_path) as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as e:
            logger.warning(f"Could not load config file {self.config_path}: {e}")
            return

        if not isinstance(data, dict):
            logger.warning(f"Ignoring config file {self.config_path}: top level is not a mapping")
            return

        _merge(self.data, data)

    def load_from_env(self) -> None:
        """Apply environment variable overrides."""
        if env_data_dir := os.environ.get("WATCHER_DATA_DIR"):
            self.data["paths"]["data_dir"] = env_data_dir

        if os.environ.get("WATCHER_DEBUG"):
            self.debug = True
            self.data["logging"]["level"] = "DEBUG"

    def get(self, key: str, default: Any = None) -> Any:
        """Get configuration value by dot-notation key."""
        value: Any = self.data
        for part in key.split("."):
            if not isinstance(value, dict):
                return default
            value = value.get(part)
            if value is None:
                return default
        return value

    def set(self, key: str, value: Any) -> None:
        """Set configuration value by dot-notation key."""
        parts = key.split(".")
        target = self.data
        for part in parts[:-1]:
            target = target.setdefault(part, {})
        target[parts[-1]] = value

    def get_path(self, key: str, default: Optional[str] = None) -> Optional[Path]:
        """Get a configured path with ``~`` expanded."""
        value = self.get(key, default)
        if value is None:
            return None
        return Path(value).expanduser()

    def get_collector_config(self, name: str) -> Dict[str, Any]:
        """Get the settings block for one collector."""
        section = self.get(f"collectors.{name}", {})
        return section if isinstance(section, dict) else {}

    def save_to_file(self) -> None:
        """Save current configuration to YAML file."""
        self.config_dir.mkdir(parents=True, exist_ok=True)
        with open(self.config_path, "w") as f:
            yaml.dump(self.data, f, default_flow_style=False, sort_keys=False)

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return copy.deepcopy(self.data)

    def validate(self) -> bool:
        """Validate configuration values."""
        errors = []

        for key in ("rollup.interval", "rollup.rotation_interval"):
            value = self.get(key)
            if not isinstance(value, (int, float)) or value <= 0:
                errors.append(f"{key} must be a positive number")

        for name in DEFAULTS["collectors"]:
            retention = self.get(f"collectors.{name}.raw_retention_hours")
            if not isinstance(retention, (int, float)) or retention <= 0:
                errors.append(f"collectors.{name}.raw_retention_hours must be positive")

        for metric in ("latency", "jitter", "packet_loss"):
            good = self.get(f"quality.{metric}.good")
            fair = self.get(f"quality.{metric}.fair")
            poor = self.get(f"quality.{metric}.poor")
            try:
                if not good < fair < poor:
                    errors.append(f"quality.{metric} thresholds must increase good < fair < poor")
            except TypeError:
                errors.append(f"quality.{metric} thresholds must be numbers")

        for error in errors:
            logger.error(f"Configuration error: {error}")

        return not errors


@lru_cache(maxsize=1)
def get_config() -> Config:
    """Get the global configuration instance."""
    return Config()
