# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Base class wiring one metric family to the storage and rollup engine.

A collector owns a data directory holding its raw log, its cursor state and
one rollup file per tier. Subclasses only describe how a bucket of entries
is aggregated and how entries match a dimension (host, port, rail).
"""

import logging
from abc import ABC, abstractmethod
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from ..metrics.rollup import RollupProcessor, RollupReadResult, TierResult, TierStatus
from ..metrics.state import RollupStateStore
from ..metrics.storage import MetricsStorage, RotationResult
from ..metrics.tiers import Tier, standard_tier_table

logger = logging.getLogger(__name__)

HOUR = 3600


class BaseMetricsCollector(ABC):
    """
    Common plumbing for every metric family.

    Args:
        data_dir: Directory holding this family's files
        tiers: Tier table (defaults to the standard ladder)
        raw_file: Raw log path (defaults to ``<data_dir>/raw.log``)
        raw_retention_hours: Raw log retention used by ``rotate_raw``
        weighted_averages: Weight lower-tier averages by their sample counts
        storage: Line storage (shared instances are fine)
        clock: Callable returning unix seconds, for tests
    """

    #: Family name used in config keys and CLI arguments
    name = "base"

    #: Raw retention when none is configured
    default_raw_retention_hours = 25

    #: Sort rollup entries by this field after the timestamp
    dimension_field: Optional[str] = None

    def __init__(
        self,
        data_dir: Union[str, Path],
        tiers: Optional[Dict[str, Tier]] = None,
        raw_file: Optional[Union[str, Path]] = None,
        raw_retention_hours: Optional[float] = None,
        weighted_averages: bool = False,
        storage: Optional[MetricsStorage] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.data_dir = Path(data_dir)
        self.raw_file = Path(raw_file) if raw_file else self.data_dir / "raw.log"
        self.state_file = self.data_dir / "rollup-state.json"
        self.tiers = tiers or self.default_tiers()
        self.weighted_averages = weighted_averages
        if raw_retention_hours is None:
            raw_retention_hours = self.default_raw_retention_hours
        self.raw_retention = int(raw_retention_hours * HOUR)

        self.storage = storage or MetricsStorage()
        self.processor = RollupProcessor(self.tiers, storage=self.storage, clock=clock)
        self.state_store = RollupStateStore(self.state_file, self.tiers.keys())

    def default_tiers(self) -> Dict[str, Tier]:
        """Tier table used when none is passed in."""
        return standard_tier_table()

    def now(self) -> int:
        return self.processor.now()

    # ------------------------------------------------------------------
    # Collector hooks
    # ------------------------------------------------------------------

    @abstractmethod
    def aggregate_bucket(
        self, entries: List[Dict[str, Any]], bucket_start: int, interval: int
    ) -> Union[None, Dict[str, Any], List[Dict[str, Any]]]:
        """
        Aggregate one bucket of raw samples or finer-tier rollups.

        Args:
            entries: Entries whose timestamps fall inside the bucket
            bucket_start: Bucket start (unix seconds)
            interval: Bucket width in seconds

        Returns:
            One rollup entry, a list of entries, or None to record nothing
        """

    @abstractmethod
    def matches_dimension(self, entry: Dict[str, Any], dimension: str) -> bool:
        """Whether an entry carries data for ``dimension``."""

    # ------------------------------------------------------------------
    # Paths
    # ------------------------------------------------------------------

    def rollup_path(self, tier: str) -> Path:
        """Rollup file for a tier, ``<tier>.log.gz`` for compressed tiers."""
        config = self.tiers.get(tier)
        if config is not None and config.compressed:
            return self.data_dir / f"{tier}.log.gz"
        return self.data_dir / f"{tier}.log"

    def migrate_compressed_tiers(self) -> Dict[str, int]:
        """
        Move plain ``<tier>.log`` files of compressed tiers into their gzip files.

        Returns:
            Entries moved per migrated tier
        """
        migrated = {}
        for name, tier in self.tiers.items():
            if not tier.compressed:
                continue
            moved = self.storage.migrate_to_compressed(self.data_dir / f"{name}.log", self.rollup_path(name))
            if moved:
                migrated[name] = moved
        return migrated

    # ------------------------------------------------------------------
    # Raw data
    # ------------------------------------------------------------------

    def write_raw(self, entries: Union[Dict[str, Any], List[Dict[str, Any]]]) -> bool:
        """Append one raw entry or a batch of them."""
        if isinstance(entries, dict):
            entries = [entries]
        ok = self.storage.append(self.raw_file, entries)
        if not ok:
            logger.error(f"Unable to write {len(entries)} {self.name} samples to {self.raw_file}")
        return ok

    def read_raw(self, since: int = 0) -> List[Dict[str, Any]]:
        """Raw entries newer than ``since``."""
        return self.storage.read(self.raw_file, since)

    def rotate_raw(self) -> RotationResult:
        """Drop raw entries older than the raw retention."""
        return self.storage.rotate(self.raw_file, self.raw_retention, now=self.now())

    # ------------------------------------------------------------------
    # Rollups
    # ------------------------------------------------------------------

    def process_rollup(self) -> List[TierResult]:
        """Run one rollup pass over every tier."""
        self.migrate_compressed_tiers()
        results = self.processor.process_all(
            self.state_store,
            self.raw_file,
            self.rollup_path,
            self.aggregate_bucket,
        )

        for result in results:
            if result.status == TierStatus.FAILED:
                logger.warning(f"{self.name} rollup tier {result.tier} failed: {result.error}")
            elif result.status == TierStatus.FLUSHED:
                logger.debug(f"{self.name} rollup tier {result.tier}: {result.buckets} buckets, {result.entries} entries")

        return results

    def select_tier(self, hours_back: float) -> str:
        """
        Best tier for a window, falling back to finer tiers without files yet.

        If no candidate file exists the preferred tier is returned unchanged.
        """
        best = self.processor.get_best_tier_for_hours(hours_back)
        if self.rollup_path(best).exists():
            return best

        names = list(self.tiers)
        for name in reversed(names[: names.index(best)]):
            if self.rollup_path(name).exists():
                logger.debug(f"{self.name}: tier {best} not populated yet, using {name}")
                return name
        return best

    def read_rollup_data(
        self,
        tier: str,
        start: Optional[int] = None,
        end: Optional[int] = None,
        dimension: Optional[str] = None,
    ) -> RollupReadResult:
        """Read one tier, optionally restricted to a single dimension."""
        filter_fn = None
        if dimension is not None:
            def filter_fn(entry: Dict[str, Any]) -> bool:
                return self.matches_dimension(entry, dimension)

        result = self.processor.read_rollup_data(
            self.rollup_path(tier), tier, start, end, filter_fn
        )

        if result.success and self.dimension_field:
            key = self.dimension_field
            result.data.sort(key=lambda entry: (entry["timestamp"], str(entry.get(key, ""))))
        return result

    def get_metrics(self, hours_back: float = 24, dimension: Optional[str] = None) -> RollupReadResult:
        """
        Rollup data covering the last ``hours_back`` hours.

        Args:
            hours_back: Window size in hours
            dimension: Optional host, port or rail to filter on

        Returns:
            Read result with ``tier_info`` describing the tier used
        """
        end = self.now()
        start = end - int(hours_back * HOUR)
        tier = self.select_tier(hours_back)

        result = self.read_rollup_data(tier, start, end, dimension)
        if result.success:
            config = self.tiers[tier]
            result.tier_info = {
                "tier": tier,
                "interval": config.interval,
                "label": config.label,
            }
        return result

    def get_tiers_info(self) -> Dict[str, Dict[str, Any]]:
        """Tier intervals, retentions and file sizes."""
        return self.processor.get_tiers_info(self.rollup_path)

    def get_rollup_state(self) -> Dict[str, Dict[str, int]]:
        """Current cursors for every tier."""
        return {name: cursor.to_dict() for name, cursor in self.state_store.load().items()}

    def reset_state(self) -> Dict[str, Dict[str, int]]:
        """Zero every cursor so the next pass starts over."""
        return {name: cursor.to_dict() for name, cursor in self.state_store.reset().items()}

    @staticmethod
    def bucket_header(bucket_start: int, interval: int) -> Dict[str, int]:
        """Leading fields shared by rollup entries."""
        return {
            "timestamp": bucket_start,
            "period_start": bucket_start,
            "period_end": bucket_start + interval,
        }
