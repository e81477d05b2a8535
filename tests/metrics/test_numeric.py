# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for numeric helpers.
"""

import math

from fppwatcher.metrics.numeric import round_half_up, round_to_int, safe_float


class TestRoundHalfUp:
    """Test half-away-from-zero rounding."""

    def test_rounds_half_up_where_builtin_rounds_to_even(self):
        """0.625 rounds to 0.63, not 0.62."""
        assert round_half_up(0.625, 2) == 0.63
        assert round_half_up(2.5) == 3.0
        assert round_half_up(0.125, 2) == 0.13

    def test_negative_values_round_away_from_zero(self):
        """Negative halves move away from zero."""
        assert round_half_up(-2.5) == -3.0
        assert round_half_up(-0.625, 2) == -0.63

    def test_plain_values(self):
        """Values that are not halves round normally."""
        assert round_half_up(12.3456, 3) == 12.346
        assert round_half_up(5.05, 4) == 5.05
        assert round_half_up(7, 1) == 7.0

    def test_non_finite_passthrough(self):
        """NaN and infinity are returned unchanged."""
        assert math.isnan(round_half_up(float("nan"), 2))
        assert round_half_up(float("inf"), 2) == float("inf")

    def test_round_to_int(self):
        """Integer rounding returns an int."""
        assert round_to_int(150.5) == 151
        assert isinstance(round_to_int(99.4), int)


class TestSafeFloat:
    """Test float coercion."""

    def test_numeric_values(self):
        assert safe_float(3) == 3.0
        assert safe_float("4.5") == 4.5

    def test_invalid_values_return_default(self):
        """None, text, booleans and non-finite values are rejected."""
        assert safe_float(None) is None
        assert safe_float("abc") is None
        assert safe_float(True) is None
        assert safe_float(float("nan"), 0.0) == 0.0
        assert safe_float(float("inf"), -1.0) == -1.0
        assert safe_float({"avg": 1}) is None
