# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Quality ratings, RFC 3550 jitter and latency statistics.
"""

import math
from dataclasses import dataclass
from enum import Enum
from typing import Dict, Iterable, List, Optional, Sequence

from .numeric import round_half_up


class Quality(str, Enum):
    """Quality rating, ordered from best to worst."""

    GOOD = "good"
    FAIR = "fair"
    POOR = "poor"
    CRITICAL = "critical"

    @property
    def severity(self) -> int:
        return _SEVERITY[self]


_SEVERITY = {Quality.GOOD: 0, Quality.FAIR: 1, Quality.POOR: 2, Quality.CRITICAL: 3}


@dataclass(frozen=True)
class Thresholds:
    """Upper bounds (exclusive) for the good, fair and poor ratings."""

    good: float
    fair: float
    poor: float

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, float]], fallback: "Thresholds") -> "Thresholds":
        """Build from a config mapping, filling gaps from ``fallback``."""
        if not isinstance(data, dict):
            return fallback
        return cls(
            good=float(data.get("good", fallback.good)),
            fair=float(data.get("fair", fallback.fair)),
            poor=float(data.get("poor", fallback.poor)),
        )


LATENCY_THRESHOLDS = Thresholds(50, 100, 250)
JITTER_THRESHOLDS = Thresholds(10, 20, 50)
PACKET_LOSS_THRESHOLDS = Thresholds(1, 2, 5)


def quality_rating(value: float, thresholds: Thresholds) -> Quality:
    """Rate a value with a strict less-than ladder."""
    if value < thresholds.good:
        return Quality.GOOD
    if value < thresholds.fair:
        return Quality.FAIR
    if value < thresholds.poor:
        return Quality.POOR
    return Quality.CRITICAL


def overall_quality(ratings: Iterable[Optional[Quality]]) -> Optional[Quality]:
    """Worst rating present, ignoring missing ones."""
    present = [Quality(rating) for rating in ratings if rating is not None]
    if not present:
        return None
    return max(present, key=lambda rating: rating.severity)


class JitterTracker:
    """
    Streaming RFC 3550 jitter estimator keyed by host.

    ``J = J + (|D| - J) / 16`` where ``D`` is the change in latency between
    consecutive samples. The first sample for a host seeds the state and
    returns ``None``.
    """

    def __init__(self):
        self._state: Dict[str, Dict[str, float]] = {}

    def update(self, hostname: str, latency: float) -> Optional[float]:
        """
        Feed one latency sample.

        Args:
            hostname: Remote host the sample belongs to
            latency: Round-trip latency in milliseconds

        Returns:
            Jitter rounded to 2 decimals, or None for a host's first sample
        """
        state = self._state.get(hostname)
        if state is None:
            self._state[hostname] = {"prev_latency": latency, "jitter": 0.0}
            return None

        delta = abs(latency - state["prev_latency"])
        jitter = state["jitter"] + (delta - state["jitter"]) / 16.0
        state["prev_latency"] = latency
        state["jitter"] = jitter
        return round_half_up(jitter, 2)

    def reset(self, hostname: Optional[str] = None) -> None:
        """Forget one host, or every host when ``hostname`` is None."""
        if hostname is None:
            self._state.clear()
        else:
            self._state.pop(hostname, None)

    def __contains__(self, hostname: str) -> bool:
        return hostname in self._state

    def __len__(self) -> int:
        return len(self._state)


def jitter_from_latency_series(latencies: Sequence[float]) -> Optional[Dict[str, float]]:
    """
    Apply the RFC 3550 recurrence to an ordered latency series.

    Returns:
        ``{"avg", "max"}`` rounded to 2 decimals, or None with fewer than
        two samples
    """
    if len(latencies) < 2:
        return None

    jitter = 0.0
    max_jitter = 0.0
    history: List[float] = []
    for previous, current in zip(latencies, latencies[1:]):
        jitter = jitter + (abs(current - previous) - jitter) / 16.0
        history.append(jitter)
        max_jitter = max(max_jitter, jitter)

    return {
        "avg": round_half_up(sum(history) / len(history), 2),
        "max": round_half_up(max_jitter, 2),
    }


def aggregate_latencies(
    latencies: Sequence[float],
    precision: int = 1,
    include_p95: bool = True,
) -> Dict[str, Optional[float]]:
    """
    Summarize latency values.

    P95 is the sorted value at index ``ceil(n * 0.95) - 1``.

    Args:
        latencies: Latency values in milliseconds
        precision: Decimal places for the results
        include_p95: Add ``latency_p95`` to the result

    Returns:
        Mapping with ``latency_min``, ``latency_max``, ``latency_avg`` and
        optionally ``latency_p95``; values are None for an empty input
    """
    if not latencies:
        result: Dict[str, Optional[float]] = {
            "latency_min": None,
            "latency_max": None,
            "latency_avg": None,
        }
        if include_p95:
            result["latency_p95"] = None
        return result

    ordered = sorted(latencies)
    result = {
        "latency_min": round_half_up(ordered[0], precision),
        "latency_max": round_half_up(ordered[-1], precision),
        "latency_avg": round_half_up(sum(ordered) / len(ordered), precision),
    }
    if include_p95:
        index = max(0, math.ceil(len(ordered) * 0.95) - 1)
        result["latency_p95"] = round_half_up(ordered[index], precision)
    return result
