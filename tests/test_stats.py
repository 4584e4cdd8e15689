"""
tests/test_stats.py — XP & Affinity Calculator
===============================================
"""

from __future__ import annotations

import pytest

from momentum.constants import STAT_WEIGHTS, StatWeight, normalize_stat_name
from momentum.engine.stats import calculate_stats


class TestCalculateStats:
    def test_empty_map_is_zero(self):
        result = calculate_stats({})
        assert result.base_xp == 0
        assert result.warrior_delta == 0
        assert result.mage_delta == 0

    def test_zero_counts_are_zero(self):
        result = calculate_stats({"Approaches": 0, "SBMM Meditation": 0})
        assert (result.base_xp, result.warrior_delta, result.mage_delta) == (0, 0, 0)

    def test_sums_weights_times_counts(self):
        result = calculate_stats({"Approaches": 2, "SBMM Meditation": 1})
        assert result.base_xp == 2 * 100 + 100
        assert result.warrior_delta == 6
        assert result.mage_delta == 9
        assert result.per_stat_xp == {"Approaches": 200, "SBMM Meditation": 100}

    def test_unknown_names_ignored(self):
        result = calculate_stats({"Juggling": 10, "Numbers": 1})
        assert result.base_xp == STAT_WEIGHTS["Numbers"].xp
        assert "Juggling" not in result.per_stat_xp

    def test_negative_count_rejected(self):
        with pytest.raises(ValueError, match="Negative"):
            calculate_stats({"Approaches": -1})

    def test_custom_weights(self):
        weights = {"Approaches": StatWeight(xp=10, warrior=1)}
        result = calculate_stats({"Approaches": 5}, weights)
        assert result.base_xp == 50
        assert result.warrior_delta == 5

    def test_fractional_affinity(self):
        result = calculate_stats({"Chat Engagement": 3})
        assert result.base_xp == 15
        assert result.mage_delta == pytest.approx(1.5)


class TestNormalizeStatName:
    @pytest.mark.parametrize(
        "raw, expected",
        [
            ("Approaches", "Approaches"),
            ("approach", "Approaches"),
            ("sbmm", "SBMM Meditation"),
            ("Same Night", "Same Night Pull"),
            ("same night pull", "Same Night Pull"),
            ("  numbers  ", "Numbers"),
            ("state", "Overall State Today (1-10)"),
        ],
    )
    def test_known_names(self, raw, expected):
        assert normalize_stat_name(raw) == expected

    @pytest.mark.parametrize("raw", ["", "juggling", "approaches!!"])
    def test_unknown_names(self, raw):
        assert normalize_stat_name(raw) is None
