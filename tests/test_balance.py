"""
tests/test_balance.py — Duel balance constraint & outcome rules
================================================================
"""

from __future__ import annotations

import pytest

from momentum.engine.balance import (
    is_balanced,
    is_perfect_balance,
    resolve_duel_outcome,
    warrior_share,
)


class TestBalance:
    def test_zero_total_is_balanced_but_not_perfect(self):
        assert warrior_share(0, 0) is None
        assert is_balanced(0, 0)
        assert not is_perfect_balance(0, 0)

    @pytest.mark.parametrize("warrior, mage, balanced", [
        (40, 60, True), (60, 40, True), (50, 50, True),
        (39, 61, False), (61, 39, False), (100, 0, False),
    ])
    def test_balanced_band(self, warrior, mage, balanced):
        assert is_balanced(warrior, mage) is balanced

    @pytest.mark.parametrize("warrior, mage, perfect", [
        (45, 55, True), (55, 45, True), (50, 50, True),
        (44, 56, False), (58, 42, False),
    ])
    def test_perfect_band(self, warrior, mage, perfect):
        assert is_perfect_balance(warrior, mage) is perfect


def _outcome(cg=0, og=0, cp=False, op=False):
    return resolve_duel_outcome(
        challenger_id=1, opponent_id=2,
        challenger_gain=cg, opponent_gain=og,
        challenger_penalty=cp, opponent_penalty=op,
    )


class TestOutcome:
    def test_more_xp_wins(self):
        assert _outcome(cg=500, og=100).winner_id == 1
        assert _outcome(cg=100, og=500).winner_id == 2

    def test_tie_goes_to_opponent(self):
        outcome = _outcome(cg=300, og=300)
        assert outcome.winner_id == 2
        assert outcome.reason == "tie"
        assert not outcome.is_draw

    def test_penalty_forfeits_regardless_of_xp(self):
        assert _outcome(cg=9_000, og=10, cp=True).winner_id == 2
        assert _outcome(cg=10, og=9_000, op=True).winner_id == 1

    def test_both_penalised_is_draw(self):
        outcome = _outcome(cg=9_000, og=10, cp=True, op=True)
        assert outcome.is_draw
        assert outcome.winner_id is None
