# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tiered rollup processing.

Each tier groups its source entries into fixed-width buckets, hands every
closed bucket to a collector-supplied aggregate function and appends the
results to the tier's own file. The first tier reads the raw log; every
later tier reads the tier before it.

A tier only does work once per interval, only flushes buckets whose end has
passed and never flushes the same bucket twice. Cursors are persisted after
each tier so an interrupted pass resumes from the last committed bucket.
"""

import logging
import os
import time
from collections import defaultdict
from dataclasses import dataclass, field
from enum import Enum
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional, Union

from .state import RollupState, RollupStateStore
from .storage import MetricsStorage, RotationResult, is_compressed
from .tiers import Tier, format_duration, format_interval, get_best_tier_for_hours

logger = logging.getLogger(__name__)

AggregateResult = Union[None, Dict[str, Any], List[Dict[str, Any]]]
AggregateFn = Callable[[List[Dict[str, Any]], int, int], AggregateResult]
RollupPathFn = Callable[[str], Path]
FilterFn = Callable[[Dict[str, Any]], bool]

# Rollup files smaller than this are not worth rewriting
DEFAULT_ROTATE_MIN_BYTES = 1024 * 1024
DEFAULT_GZIP_ROTATE_MIN_BYTES = 100 * 1024


class TierStatus(str, Enum):
    """Outcome of one tier in a rollup pass."""

    THROTTLED = "throttled"
    IDLE = "idle"
    FLUSHED = "flushed"
    FAILED = "failed"


@dataclass
class TierResult:
    """Result of processing a single tier."""

    tier: str
    status: TierStatus
    buckets: int = 0
    entries: int = 0
    error: Optional[str] = None
    rotation: Optional[RotationResult] = None

    @property
    def ok(self) -> bool:
        return self.status != TierStatus.FAILED

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        return {
            "tier": self.tier,
            "status": self.status.value,
            "buckets": self.buckets,
            "entries": self.entries,
            "error": self.error,
            "rotation": self.rotation.to_dict() if self.rotation else None,
        }


@dataclass
class RollupReadResult:
    """Rollup entries returned to a reader."""

    success: bool
    data: List[Dict[str, Any]] = field(default_factory=list)
    error: Optional[str] = None
    tier: Optional[str] = None
    start: Optional[int] = None
    end: Optional[int] = None
    tier_info: Optional[Dict[str, Any]] = None

    @property
    def count(self) -> int:
        return len(self.data)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        result: Dict[str, Any] = {"success": self.success, "data": self.data}
        if self.error is not None:
            result["error"] = self.error
        if self.success:
            result["count"] = self.count
            result["tier"] = self.tier
            result["period"] = {"start": self.start, "end": self.end}
        if self.tier_info is not None:
            result["tier_info"] = self.tier_info
        return result


class RollupProcessor:
    """
    Drive bucketed aggregation across a tier ladder.

    Args:
        tiers: Tier table, finest first (see ``build_tier_table``)
        storage: Line storage used for source reads and rollup writes
        clock: Callable returning the current unix time in seconds
        rotate_min_bytes: Skip rollup rotation for smaller files
        gzip_rotate_min_bytes: Same threshold for gzip rollup files
    """

    def __init__(
        self,
        tiers: Dict[str, Tier],
        storage: Optional[MetricsStorage] = None,
        clock: Optional[Callable[[], float]] = None,
        rotate_min_bytes: int = DEFAULT_ROTATE_MIN_BYTES,
        gzip_rotate_min_bytes: int = DEFAULT_GZIP_ROTATE_MIN_BYTES,
    ):
        self.tiers = tiers
        self.storage = storage or MetricsStorage()
        self.clock = clock or time.time
        self.rotate_min_bytes = rotate_min_bytes
        self.gzip_rotate_min_bytes = gzip_rotate_min_bytes

    def now(self) -> int:
        return int(self.clock())

    def get_best_tier_for_hours(self, hours_back: float) -> str:
        """Finest tier whose retention covers ``hours_back``."""
        return get_best_tier_for_hours(self.tiers, hours_back)

    def process_all(
        self,
        store: RollupStateStore,
        raw_file: Path,
        rollup_path: RollupPathFn,
        aggregate_fn: AggregateFn,
    ) -> List[TierResult]:
        """
        Run every tier once, finest first.

        A failure in one tier is recorded in its result and the remaining
        tiers still run.

        Returns:
            One result per tier
        """
        state = store.load()
        results = []
        previous: Optional[str] = None

        for name in self.tiers:
            source = raw_file if previous is None else rollup_path(previous)
            results.append(
                self.process_tier(
                    name,
                    state,
                    store,
                    source,
                    rollup_path(name),
                    aggregate_fn,
                    source_tier=previous,
                )
            )
            previous = name

        return results

    def process_tier(
        self,
        tier_name: str,
        state: RollupState,
        store: RollupStateStore,
        source_file: Path,
        rollup_file: Path,
        aggregate_fn: AggregateFn,
        source_tier: Optional[str] = None,
    ) -> TierResult:
        """
        Flush every closed, unflushed bucket of one tier.

        Args:
            tier_name: Tier to process
            state: Cursor state for the family (updated in place)
            store: Where the updated state is saved
            source_file: Raw log, or the finer tier's rollup file
            rollup_file: File receiving this tier's entries
            aggregate_fn: ``(entries, bucket_start, interval)`` returning one
                entry, a list of entries, or None to record nothing
            source_tier: Name of the finer tier when cascading; buckets are
                only flushed once that tier has flushed past their end

        Returns:
            Tier result with a status of throttled, idle, flushed or failed
        """
        try:
            return self._process_tier(
                tier_name, state, store, source_file, rollup_file, aggregate_fn, source_tier
            )
        except Exception as e:
            logger.error(f"Rollup of tier {tier_name} failed: {e}", exc_info=True)
            return TierResult(tier_name, TierStatus.FAILED, error=str(e))

    def _process_tier(
        self,
        tier_name: str,
        state: RollupState,
        store: RollupStateStore,
        source_file: Path,
        rollup_file: Path,
        aggregate_fn: AggregateFn,
        source_tier: Optional[str],
    ) -> TierResult:
        tier = self.tiers[tier_name]
        cursor = state[tier_name]
        interval = tier.interval
        now = self.now()

        if now - cursor.last_rollup < interval:
            return TierResult(tier_name, TierStatus.THROTTLED)

        entries = self.storage.read(source_file, cursor.last_processed)
        if not entries:
            cursor.last_rollup = now
            return self._save_idle(tier_name, state, store)

        buckets: Dict[int, List[Dict[str, Any]]] = defaultdict(list)
        for entry in entries:
            buckets[(entry["timestamp"] // interval) * interval].append(entry)

        cutoff = now - 1
        if source_tier is not None:
            cutoff = min(cutoff, state[source_tier].last_bucket_end)

        latest_end = cursor.last_bucket_end
        new_entries: List[Dict[str, Any]] = []
        flushed = 0

        for bucket_start in sorted(buckets):
            bucket_end = bucket_start + interval
            if bucket_end <= cursor.last_bucket_end or bucket_end > cutoff:
                continue

            aggregated = aggregate_fn(buckets[bucket_start], bucket_start, interval)
            if aggregated is None:
                continue

            if isinstance(aggregated, list):
                new_entries.extend(aggregated)
            else:
                new_entries.append(aggregated)
            flushed += 1
            latest_end = max(latest_end, bucket_end)

        if not new_entries:
            cursor.last_rollup = now
            return self._save_idle(tier_name, state, store)

        if not self.storage.append(rollup_file, new_entries):
            return TierResult(
                tier_name,
                TierStatus.FAILED,
                error=f"Unable to append to {rollup_file}",
            )

        cursor.last_processed = latest_end - 1
        cursor.last_bucket_end = latest_end
        cursor.last_rollup = now
        if not store.save(state):
            # Entries are on disk but the cursor is not; the next pass repeats them
            logger.error(f"Tier {tier_name}: flushed {flushed} buckets but could not save {store.path}")
            return TierResult(
                tier_name,
                TierStatus.FAILED,
                buckets=flushed,
                entries=len(new_entries),
                error=f"Unable to save rollup state {store.path}",
            )

        logger.debug(f"Tier {tier_name}: flushed {flushed} buckets ({len(new_entries)} entries) to {rollup_file}")

        rotation = self.rotate_rollup_file(rollup_file, tier.retention)
        return TierResult(
            tier_name,
            TierStatus.FLUSHED,
            buckets=flushed,
            entries=len(new_entries),
            rotation=rotation,
        )

    def _save_idle(self, tier_name: str, state: RollupState, store: RollupStateStore) -> TierResult:
        if not store.save(state):
            return TierResult(tier_name, TierStatus.FAILED, error=f"Unable to save rollup state {store.path}")
        return TierResult(tier_name, TierStatus.IDLE)

    def rotate_rollup_file(self, rollup_file: Path, retention: int) -> Optional[RotationResult]:
        """
        Apply retention to a rollup file once it is large enough to matter.

        Gzip files use the lower ``gzip_rotate_min_bytes`` threshold.
        """
        try:
            size = os.path.getsize(rollup_file)
        except OSError:
            return None
        threshold = self.gzip_rotate_min_bytes if is_compressed(rollup_file) else self.rotate_min_bytes
        if size < threshold:
            return None
        return self.storage.rotate(rollup_file, retention, now=self.now())

    def read_rollup_data(
        self,
        rollup_file: Path,
        tier_name: str,
        start: Optional[int] = None,
        end: Optional[int] = None,
        filter_fn: Optional[FilterFn] = None,
    ) -> RollupReadResult:
        """
        Read a time range from a tier's rollup file.

        Args:
            rollup_file: Tier file
            tier_name: Tier name, used to default ``start`` to its retention
            start: Inclusive lower bound (defaults to ``end - retention``)
            end: Inclusive upper bound (defaults to now)
            filter_fn: Extra predicate, e.g. matching one hostname

        Returns:
            Read result; ``success`` is False only when the file is missing
            or unreadable
        """
        rollup_file = Path(rollup_file)
        if not rollup_file.exists():
            return RollupReadResult(success=False, error="Rollup file not found", tier=tier_name)
        if not os.access(rollup_file, os.R_OK):
            return RollupReadResult(success=False, error="Unable to read rollup file", tier=tier_name)

        if end is None:
            end = self.now()
        if start is None:
            tier = self.tiers.get(tier_name)
            start = end - (tier.retention if tier else 24 * 3600)

        data = [
            entry
            for entry in self.storage.read(rollup_file, max(start - 1, 0))
            if start <= entry["timestamp"] <= end
            and (filter_fn is None or filter_fn(entry))
        ]

        return RollupReadResult(success=True, data=data, tier=tier_name, start=start, end=end)

    def get_tiers_info(self, rollup_path: RollupPathFn) -> Dict[str, Dict[str, Any]]:
        """Describe every tier along with its file's presence and size."""
        info = {}
        for name, tier in self.tiers.items():
            path = Path(rollup_path(name))
            exists = path.exists()
            info[name] = {
                "interval": tier.interval,
                "interval_label": format_interval(tier.interval),
                "retention": tier.retention,
                "retention_label": format_duration(tier.retention),
                "label": tier.label,
                "compressed": tier.compressed,
                "file_exists": exists,
                "file_size": path.stat().st_size if exists else 0,
            }
        return info
