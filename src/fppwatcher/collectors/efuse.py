# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
eFuse port current collector.

Raw entries carry a ``ports`` map of port name to milliamps, plus a
``_total`` pseudo-port. Rollups keep avg/min/max/peak/samples per port.
"""

import logging
from typing import Any, Dict, Optional, Union

from ..metrics.tiers import DAY, Tier, capped_tier_table
from ..metrics.values import SeriesAccumulator
from .base import HOUR, BaseMetricsCollector

logger = logging.getLogger(__name__)

TOTAL_PORT = "_total"


class EfuseCollector(BaseMetricsCollector):
    """
    Per-port current draw.

    Args:
        retention_days: Overall rollup retention; caps every tier
        collection_interval: Seconds between raw samples, used to align raw
            history
    """

    name = "efuse"
    default_raw_retention_hours = 6
    default_retention_days = 7

    def __init__(
        self,
        *args,
        retention_days: Optional[float] = None,
        collection_interval: int = 5,
        **kwargs,
    ):
        self.retention_days = retention_days or self.default_retention_days
        self.collection_interval = collection_interval
        super().__init__(*args, **kwargs)

    def default_tiers(self) -> Dict[str, Tier]:
        return capped_tier_table(int(self.retention_days * DAY))

    def write_sample(self, ports: Dict[str, Union[int, float]], timestamp: Optional[int] = None) -> bool:
        """
        Store one reading of every port, adding the ``_total`` sum.

        Args:
            ports: Port name to milliamps (zero-current ports may be omitted)
            timestamp: Reading time (defaults to now)
        """
        if not ports:
            return True

        readings = dict(ports)
        readings[TOTAL_PORT] = sum(readings.values())
        return self.write_raw({
            "timestamp": timestamp if timestamp is not None else self.now(),
            "ports": readings,
        })

    def aggregate_bucket(self, entries, bucket_start, interval):
        if not entries:
            return None

        per_port: Dict[str, SeriesAccumulator] = {}
        for entry in entries:
            for port, value in (entry.get("ports") or {}).items():
                accumulator = per_port.get(port)
                if accumulator is None:
                    accumulator = per_port[port] = SeriesAccumulator(weighted=self.weighted_averages)
                if not accumulator.add_raw(value):
                    logger.debug(f"Skipping unusable eFuse value for {port}: {value!r}")

        ports = {}
        for port, accumulator in per_port.items():
            summary = accumulator.summary()
            if summary is None:
                continue
            ports[port] = {
                "avg": summary["avg"],
                "min": summary["min"],
                "max": summary["max"],
                "peak": summary["max"],
                "samples": summary["samples"],
            }

        if not ports:
            return None

        return {
            **self.bucket_header(bucket_start, interval),
            "interval": interval,
            "ports": ports,
        }

    def matches_dimension(self, entry: Dict[str, Any], dimension: str) -> bool:
        return dimension in (entry.get("ports") or {})

    def get_port_history(self, port: str, hours_back: float = 24) -> Dict[str, Any]:
        """
        Gap-filled history for one port.

        Windows of an hour or less come from raw samples aligned to the
        collection interval; longer windows come from the best rollup tier.
        Slots without data are filled with zeros.

        Args:
            port: Port name
            hours_back: Window size in hours

        Returns:
            Mapping with ``history`` slots plus ``source`` and ``tier_info``
        """
        now = self.now()
        tier_info = None

        if hours_back <= 1:
            since = now - int(hours_back * HOUR)
            data = [
                entry for entry in self.read_raw(since)
                if self.matches_dimension(entry, port)
            ]
            source = "raw"
            interval = self.collection_interval
        else:
            result = self.get_metrics(hours_back, dimension=port)
            data = result.data
            source = "rollup"
            tier_info = result.tier_info
            interval = tier_info["interval"] if tier_info else 60

        by_slot = {}
        for entry in data:
            slot = (entry["timestamp"] // interval) * interval
            by_slot[slot] = (entry.get("ports") or {}).get(port)

        start = ((now - int(hours_back * HOUR)) // interval) * interval
        end = (now // interval) * interval

        history = []
        for slot in range(start, end + 1, interval):
            value = by_slot.get(slot)
            if isinstance(value, dict):
                history.append({
                    "timestamp": slot,
                    "avg": value.get("avg", 0),
                    "min": value.get("min", 0),
                    "max": value.get("max", 0),
                })
            elif value is not None:
                history.append({"timestamp": slot, "value": value})
            elif source == "rollup":
                history.append({"timestamp": slot, "avg": 0, "min": 0, "max": 0})
            else:
                history.append({"timestamp": slot, "value": 0})

        return {
            "success": True,
            "port": port,
            "hours": hours_back,
            "source": source,
            "count": len(history),
            "history": history,
            "tier_info": tier_info,
        }
