# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Rollup tier definitions and tier selection.
"""

import logging
from dataclasses import dataclass, replace
from typing import Dict, Iterable, List

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Tier:
    """
    A named bucket width with its retention period.

    Compressed tiers keep their rollup file as a gzip stream.
    """

    name: str
    interval: int
    retention: int
    label: str
    compressed: bool = False

    def to_dict(self) -> Dict[str, object]:
        """Convert to dictionary."""
        return {
            "name": self.name,
            "interval": self.interval,
            "retention": self.retention,
            "label": self.label,
            "compressed": self.compressed,
        }


HOUR = 3600
DAY = 86400

STANDARD_TIERS: List[Tier] = [
    Tier("1min", 60, 6 * HOUR, "1-minute averages"),
    Tier("5min", 300, 48 * HOUR, "5-minute averages"),
    Tier("30min", 1800, 14 * DAY, "30-minute averages", compressed=True),
    Tier("2hour", 7200, 90 * DAY, "2-hour averages", compressed=True),
]


def build_tier_table(tiers: Iterable[Tier]) -> Dict[str, Tier]:
    """
    Order tiers by interval and index them by name.

    Args:
        tiers: Tier definitions in any order

    Returns:
        Mapping of tier name to tier, finest first
    """
    ordered = sorted(tiers, key=lambda tier: tier.interval)
    table: Dict[str, Tier] = {}
    for tier in ordered:
        if tier.name in table:
            logger.warning(f"Duplicate tier name '{tier.name}' ignored")
            continue
        if table and tier.interval == list(table.values())[-1].interval:
            logger.warning(f"Tier '{tier.name}' repeats interval {tier.interval}s")
        table[tier.name] = tier
    return table


def standard_tier_table() -> Dict[str, Tier]:
    """The standard 1min/5min/30min/2hour ladder."""
    return build_tier_table(STANDARD_TIERS)


def capped_tier_table(retention_seconds: int) -> Dict[str, Tier]:
    """
    Standard ladder with every retention capped at ``retention_seconds``.

    The coarsest tier always keeps the full retention.
    """
    tiers = []
    for index, tier in enumerate(STANDARD_TIERS):
        if index == len(STANDARD_TIERS) - 1:
            retention = retention_seconds
        else:
            retention = min(tier.retention, retention_seconds)
        tiers.append(replace(tier, retention=retention))
    return build_tier_table(tiers)


def get_best_tier_for_hours(tiers: Dict[str, Tier], hours_back: float) -> str:
    """
    Pick the finest tier whose retention covers the requested window.

    Falls back to the coarsest tier when none does.

    Args:
        tiers: Tier table as returned by ``build_tier_table``
        hours_back: Requested window in hours

    Returns:
        Tier name
    """
    if not tiers:
        raise ValueError("tier table is empty")

    window = hours_back * HOUR
    for name, tier in tiers.items():
        if tier.retention >= window:
            return name
    return list(tiers)[-1]


def _format_number(value: float) -> str:
    return str(int(value)) if float(value).is_integer() else f"{value:g}"


def _plural(value: float, unit: str) -> str:
    text = _format_number(value)
    return f"{text} {unit}" if text == "1" else f"{text} {unit}s"


def format_interval(seconds: int) -> str:
    """Format a bucket interval, e.g. ``"5 minutes"``."""
    if seconds < 60:
        return _plural(seconds, "second")
    if seconds < HOUR:
        return _plural(seconds / 60, "minute")
    return _plural(seconds / HOUR, "hour")


def format_duration(seconds: int) -> str:
    """Format a retention period, e.g. ``"14 days"``."""
    if seconds < HOUR:
        return _plural(seconds / 60, "minute")
    if seconds < DAY:
        return _plural(seconds / HOUR, "hour")
    return _plural(seconds / DAY, "day")
