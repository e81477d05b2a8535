# Copyright © 2025 Sierra Labs LLC
# SPDX-License-Identifier: AGPL-3.0-only
# License-Filename: LICENSE

"""
Tests for tier tables and tier selection.
"""

import pytest

from fppwatcher.metrics.tiers import (
    Tier,
    build_tier_table,
    capped_tier_table,
    format_duration,
    format_interval,
    get_best_tier_for_hours,
    standard_tier_table,
)


class TestTierSelection:
    """Test choosing a tier for a time window."""

    @pytest.mark.parametrize("hours,expected", [
        (1, "1min"),
        (6, "1min"),
        (7, "5min"),
        (48, "5min"),
        (49, "30min"),
        (336, "30min"),
        (337, "2hour"),
        (5000, "2hour"),
    ])
    def test_standard_ladder(self, hours, expected):
        """The standard table yields the 6h / 48h / 336h ladder."""
        assert get_best_tier_for_hours(standard_tier_table(), hours) == expected

    def test_derived_from_custom_table(self):
        """Selection follows the retentions of a custom table."""
        tiers = build_tier_table([
            Tier("fine", 10, 600, "fine"),
            Tier("coarse", 100, 7200, "coarse"),
        ])
        assert get_best_tier_for_hours(tiers, 0.1) == "fine"
        assert get_best_tier_for_hours(tiers, 1) == "coarse"
        assert get_best_tier_for_hours(tiers, 10) == "coarse"

    def test_empty_table(self):
        with pytest.raises(ValueError):
            get_best_tier_for_hours({}, 1)


class TestTierTables:
    """Test tier table construction."""

    def test_sorted_by_interval(self):
        tiers = build_tier_table([
            Tier("b", 300, 1000, "b"),
            Tier("a", 60, 1000, "a"),
        ])
        assert list(tiers) == ["a", "b"]

    def test_capped_table(self):
        """Every tier is capped and the coarsest keeps the full retention."""
        tiers = capped_tier_table(7 * 86400)
        assert tiers["1min"].retention == 21600
        assert tiers["5min"].retention == 172800
        assert tiers["30min"].retention == 604800
        assert tiers["2hour"].retention == 604800

        tiers = capped_tier_table(30 * 86400)
        assert tiers["30min"].retention == 1209600
        assert tiers["2hour"].retention == 2592000


class TestLabels:
    """Test human-readable labels."""

    def test_format_interval(self):
        assert format_interval(30) == "30 seconds"
        assert format_interval(300) == "5 minutes"
        assert format_interval(7200) == "2 hours"
        assert format_interval(5400) == "1.5 hours"

    def test_format_duration(self):
        assert format_duration(1800) == "30 minutes"
        assert format_duration(21600) == "6 hours"
        assert format_duration(1209600) == "14 days"
