# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Voltage rail collector.

Raw entries carry a ``voltages`` map of rail name to volts. Older files may
hold ``{"voltage": x}`` samples, which are read as the ``core`` rail.
"""

import logging
from dataclasses import replace
from typing import Any, Dict, Optional

from ..metrics.rollup import RollupReadResult
from ..metrics.tiers import DAY, HOUR, STANDARD_TIERS, Tier, build_tier_table
from ..metrics.values import SeriesAccumulator
from .base import BaseMetricsCollector

logger = logging.getLogger(__name__)

LEGACY_RAIL = "core"

# (min retention days exclusive, tier name, retention cap in seconds)
_TIER_STEPS = (
    (0, "1min", 6 * HOUR),
    (1, "5min", 48 * HOUR),
    (3, "30min", 7 * DAY),
    (7, "2hour", None),
)


def voltage_tier_table(retention_days: float) -> Dict[str, Tier]:
    """
    Tiers for a voltage retention period.

    One day keeps only ``1min``; longer retention adds ``5min`` (over one
    day), ``30min`` (over three) and ``2hour`` (over seven).
    """
    retention = int(retention_days * DAY)
    standard = {tier.name: tier for tier in STANDARD_TIERS}

    tiers = []
    for min_days, name, cap in _TIER_STEPS:
        if retention_days <= min_days:
            continue
        base = standard[name]
        tiers.append(replace(base, retention=retention if cap is None else min(cap, retention)))
    return build_tier_table(tiers)


def normalize_entry(entry: Dict[str, Any]) -> Dict[str, Any]:
    """Rewrite a legacy ``voltage`` sample as ``voltages: {core: ...}``."""
    if "voltage" in entry and "voltages" not in entry:
        entry = dict(entry)
        entry["voltages"] = {LEGACY_RAIL: entry.pop("voltage")}
    return entry


class VoltageCollector(BaseMetricsCollector):
    """
    Supply rail voltages.

    Args:
        retention_days: Shapes the tier table (see ``voltage_tier_table``)
    """

    name = "voltage"
    default_raw_retention_hours = 6
    default_retention_days = 1

    def __init__(self, *args, retention_days: Optional[float] = None, **kwargs):
        self.retention_days = retention_days or self.default_retention_days
        super().__init__(*args, **kwargs)

    def default_tiers(self) -> Dict[str, Tier]:
        return voltage_tier_table(self.retention_days)

    def write_sample(self, voltages: Dict[str, float], timestamp: Optional[int] = None) -> bool:
        """Store one reading of every rail."""
        if not voltages:
            return False
        return self.write_raw({
            "timestamp": timestamp if timestamp is not None else self.now(),
            "voltages": dict(voltages),
        })

    def write_voltage(self, voltage: float, timestamp: Optional[int] = None) -> bool:
        """Store a single core-rail reading."""
        return self.write_sample({LEGACY_RAIL: voltage}, timestamp)

    def aggregate_bucket(self, entries, bucket_start, interval):
        if not entries:
            return None

        rails: Dict[str, SeriesAccumulator] = {}
        for entry in entries:
            values = normalize_entry(entry).get("voltages")
            if not isinstance(values, dict):
                continue
            for rail, value in values.items():
                accumulator = rails.get(rail)
                if accumulator is None:
                    accumulator = rails[rail] = SeriesAccumulator(weighted=self.weighted_averages)
                accumulator.add_raw(value)

        voltages = {}
        for rail, accumulator in rails.items():
            summary = accumulator.summary(4)
            if summary is not None:
                voltages[rail] = summary

        if not voltages:
            return None

        return {
            **self.bucket_header(bucket_start, interval),
            "interval": interval,
            "voltages": voltages,
        }

    def matches_dimension(self, entry: Dict[str, Any], dimension: str) -> bool:
        return dimension in (normalize_entry(entry).get("voltages") or {})

    def get_metrics(self, hours_back: float = 24, dimension: Optional[str] = None) -> RollupReadResult:
        """
        Voltage history, capped at the configured retention.

        Windows of an hour or less return raw readings when there are any.
        """
        hours_back = min(hours_back, self.retention_days * 24)

        if hours_back <= 1:
            end = self.now()
            start = end - int(hours_back * HOUR)
            data = [
                normalize_entry(entry)
                for entry in self.read_raw(max(start - 1, 0))
                if entry["timestamp"] <= end
                and (dimension is None or self.matches_dimension(entry, dimension))
            ]
            if data:
                return RollupReadResult(
                    success=True,
                    data=data,
                    tier="raw",
                    start=start,
                    end=end,
                    tier_info={"tier": "raw", "interval": None, "label": "Raw readings"},
                )

        return super().get_metrics(hours_back, dimension)
