# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Metric family collectors.
"""

import logging
from typing import Callable, Dict, Optional, Type

from ..metrics.quality import (
    JITTER_THRESHOLDS,
    LATENCY_THRESHOLDS,
    PACKET_LOSS_THRESHOLDS,
    Thresholds,
)
from ..metrics.storage import MetricsStorage
from ..shared.config import Config
from .base import BaseMetricsCollector
from .efuse import EfuseCollector
from .multisync_ping import MultiSyncPingCollector
from .network_quality import NetworkQualityCollector
from .ping import PingCollector
from .voltage import VoltageCollector

logger = logging.getLogger(__name__)

__all__ = [
    "BaseMetricsCollector",
    "COLLECTOR_TYPES",
    "EfuseCollector",
    "MultiSyncPingCollector",
    "NetworkQualityCollector",
    "PingCollector",
    "VoltageCollector",
    "build_collector",
    "build_collectors",
]

COLLECTOR_TYPES: Dict[str, Type[BaseMetricsCollector]] = {
    "ping": PingCollector,
    "multisync_ping": MultiSyncPingCollector,
    "network_quality": NetworkQualityCollector,
    "efuse": EfuseCollector,
    "voltage": VoltageCollector,
}

# Directory names under paths.data_dir
DATA_DIRS = {
    "ping": "ping",
    "multisync_ping": "multisync-ping",
    "network_quality": "network-quality",
    "efuse": "efuse",
    "voltage": "voltage",
}


def build_collector(
    name: str,
    config: Config,
    storage: Optional[MetricsStorage] = None,
    clock: Optional[Callable[[], float]] = None,
) -> BaseMetricsCollector:
    """
    Construct one collector from configuration.

    Args:
        name: Collector name (see ``COLLECTOR_TYPES``)
        config: Loaded configuration
        storage: Shared storage instance
        clock: Injected clock, for tests

    Returns:
        Configured collector

    Raises:
        KeyError: Unknown collector name
    """
    collector_type = COLLECTOR_TYPES[name]
    settings = config.get_collector_config(name)
    data_dir = config.get_path("paths.data_dir") / DATA_DIRS[name]

    kwargs = {
        "raw_file": settings.get("raw_file"),
        "raw_retention_hours": settings.get("raw_retention_hours"),
        "weighted_averages": bool(config.get("rollup.weighted_averages", False)),
        "storage": storage,
        "clock": clock,
    }

    if collector_type is EfuseCollector:
        kwargs["retention_days"] = settings.get("retention_days")
        kwargs["collection_interval"] = settings.get("collection_interval", 5)
    elif collector_type is VoltageCollector:
        kwargs["retention_days"] = settings.get("retention_days")
    elif collector_type is NetworkQualityCollector:
        kwargs["latency_thresholds"] = Thresholds.from_dict(
            config.get("quality.latency"), LATENCY_THRESHOLDS
        )
        kwargs["jitter_thresholds"] = Thresholds.from_dict(
            config.get("quality.jitter"), JITTER_THRESHOLDS
        )
        kwargs["packet_loss_thresholds"] = Thresholds.from_dict(
            config.get("quality.packet_loss"), PACKET_LOSS_THRESHOLDS
        )

    return collector_type(data_dir, **kwargs)


def build_collectors(
    config: Config,
    clock: Optional[Callable[[], float]] = None,
) -> Dict[str, BaseMetricsCollector]:
    """Construct every enabled collector, sharing one storage instance."""
    storage = MetricsStorage()
    collectors = {}
    for name in COLLECTOR_TYPES:
        if not config.get(f"collectors.{name}.enabled", True):
            logger.info(f"Collector {name} is disabled")
            continue
        collectors[name] = build_collector(name, config, storage=storage, clock=clock)
    return collectors
