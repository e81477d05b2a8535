# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Numeric helpers used when writing aggregate values.

Stored rollups have always been rounded half away from zero, so
``round_half_up(0.625, 2)`` is ``0.63`` where Python's ``round`` gives ``0.62``.
"""

import math
from decimal import ROUND_HALF_UP, Decimal, InvalidOperation
from typing import Any, Optional


def safe_float(value: Any, default: Optional[float] = None) -> Optional[float]:
    """
    Convert a value to a finite float.

    Booleans are rejected even though they are ``int`` subclasses.

    Args:
        value: Value to convert (int, float, numeric string, ...)
        default: Returned when the value is missing, non-numeric or not finite

    Returns:
        Float value or ``default``
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if not math.isfinite(result):
        return default
    return result


def round_half_up(value: float, precision: int = 0) -> float:
    """Round half away from zero using the shortest decimal repr of ``value``."""
    if not math.isfinite(value):
        return value
    try:
        quantum = Decimal(1).scaleb(-precision)
        rounded = Decimal(repr(value)).quantize(quantum, rounding=ROUND_HALF_UP)
    except InvalidOperation:
        return value
    return float(rounded)


def round_to_int(value: float) -> int:
    """Round half away from zero and return an ``int``."""
    return int(round_half_up(value, 0))
