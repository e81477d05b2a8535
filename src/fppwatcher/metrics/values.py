# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Sample values flowing through the rollup tiers.

A bucket may mix two kinds of input: raw readings straight from a producer
and aggregates written by a finer tier. Both are folded through
``SeriesAccumulator`` so every collector treats them the same way.
"""

from dataclasses import dataclass
from typing import Any, Dict, Optional, Union

from .numeric import round_half_up, round_to_int, safe_float


@dataclass(frozen=True)
class Scalar:
    """A single raw reading."""

    value: float


@dataclass(frozen=True)
class Aggregate:
    """A summary produced by a finer rollup tier."""

    avg: float
    min: float
    max: float
    samples: int


SampleValue = Union[Scalar, Aggregate]


def _compact(value: float) -> Union[int, float]:
    """Store whole numbers as ints so raw integer readings keep their type."""
    return int(value) if float(value).is_integer() else value


def sample_from(value: Any) -> Optional[SampleValue]:
    """
    Interpret a stored value as a ``SampleValue``.

    Mappings carrying an ``avg`` key are treated as aggregates from a lower
    tier; ``min``/``max`` default to the average and ``samples`` to 1.
    Plain numbers become scalars. Anything else yields ``None``.

    Args:
        value: Raw JSON value read from a log line

    Returns:
        Parsed sample value, or None if the value is unusable
    """
    if isinstance(value, dict):
        avg = safe_float(value.get("avg"))
        if avg is None:
            return None
        low = safe_float(value.get("min"), avg)
        high = safe_float(value.get("max"), avg)
        samples = value.get("samples", 1)
        if not isinstance(samples, int) or isinstance(samples, bool) or samples < 1:
            samples = 1
        return Aggregate(avg=avg, min=low, max=high, samples=samples)

    number = safe_float(value)
    if number is None:
        return None
    return Scalar(number)


class SeriesAccumulator:
    """
    Fold scalars and aggregates into a single summary.

    ``min`` and ``max`` propagate from the inputs and ``samples`` accumulates
    the underlying reading count. The average is the plain mean of the input
    values unless ``weighted`` is set, in which case each aggregate counts
    ``samples`` times.

    Args:
        weighted: Use the sample-weighted mean for aggregate inputs
    """

    def __init__(self, weighted: bool = False):
        self.weighted = weighted
        self.count = 0
        self.samples = 0
        self.min: Optional[float] = None
        self.max: Optional[float] = None
        self._sum = 0.0
        self._weighted_sum = 0.0

    def add(self, value: SampleValue) -> None:
        """Add one sample value."""
        if isinstance(value, Aggregate):
            center, low, high, samples = value.avg, value.min, value.max, value.samples
        else:
            center = low = high = value.value
            samples = 1

        self.count += 1
        self.samples += samples
        self._sum += center
        self._weighted_sum += center * samples
        self.min = low if self.min is None else min(self.min, low)
        self.max = high if self.max is None else max(self.max, high)

    def add_raw(self, value: Any) -> bool:
        """Parse and add a stored value. Returns False if it was unusable."""
        sample = sample_from(value)
        if sample is None:
            return False
        self.add(sample)
        return True

    def mean(self) -> Optional[float]:
        """Mean of the added values, or None if nothing was added."""
        if self.count == 0:
            return None
        if self.weighted and self.samples > 0:
            return self._weighted_sum / self.samples
        return self._sum / self.count

    def summary(self, precision: Optional[int] = None) -> Optional[Dict[str, Any]]:
        """
        Build the ``{avg, min, max, samples}`` mapping stored in rollups.

        Args:
            precision: Decimal places for avg/min/max. ``None`` rounds the
                average to an integer and leaves min/max untouched.

        Returns:
            Summary mapping, or None if nothing was added
        """
        avg = self.mean()
        if avg is None:
            return None

        if precision is None:
            return {
                "avg": round_to_int(avg),
                "min": _compact(self.min),
                "max": _compact(self.max),
                "samples": self.samples,
            }

        return {
            "avg": round_half_up(avg, precision),
            "min": round_half_up(self.min, precision),
            "max": round_half_up(self.max, precision),
            "samples": self.samples,
        }
