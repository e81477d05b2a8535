# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Metrics storage and rollup engine.
"""

from .quality import (
    JITTER_THRESHOLDS,
    LATENCY_THRESHOLDS,
    PACKET_LOSS_THRESHOLDS,
    JitterTracker,
    Quality,
    Thresholds,
    aggregate_latencies,
    jitter_from_latency_series,
    overall_quality,
    quality_rating,
)
from .rollup import RollupProcessor, RollupReadResult, TierResult, TierStatus
from .state import RollupStateStore, TierCursor
from .storage import MetricsStorage, RotationResult
from .tiers import STANDARD_TIERS, Tier, build_tier_table, get_best_tier_for_hours
from .values import Aggregate, Scalar, SeriesAccumulator, sample_from

__all__ = [
    "Aggregate",
    "JITTER_THRESHOLDS",
    "JitterTracker",
    "LATENCY_THRESHOLDS",
    "MetricsStorage",
    "PACKET_LOSS_THRESHOLDS",
    "Quality",
    "RollupProcessor",
    "RollupReadResult",
    "RollupStateStore",
    "RotationResult",
    "STANDARD_TIERS",
    "Scalar",
    "SeriesAccumulator",
    "Thresholds",
    "Tier",
    "TierCursor",
    "TierResult",
    "TierStatus",
    "aggregate_latencies",
    "build_tier_table",
    "get_best_tier_for_hours",
    "jitter_from_latency_series",
    "overall_quality",
    "quality_rating",
    "sample_from",
]
