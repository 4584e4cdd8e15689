"""
momentum.engine.balance — Duel Balance Rules
=============================================

Balance is the warrior share of raw affinity ``w / (w + m)``.

* balanced: share in [0.40, 0.60]; zero total counts as balanced
* perfect:  share in [0.45, 0.55]; zero total is *not* perfect
"""

from __future__ import annotations

from dataclasses import dataclass

BALANCE_LOW = 0.40
BALANCE_HIGH = 0.60
PERFECT_LOW = 0.45
PERFECT_HIGH = 0.55


def warrior_share(warrior: float, mage: float) -> float | None:
    """Return the warrior share, or None when total affinity is zero."""
    total = (warrior or 0.0) + (mage or 0.0)
    if total <= 0:
        return None
    return warrior / total


def is_balanced(warrior: float, mage: float) -> bool:
    share = warrior_share(warrior, mage)
    if share is None:
        return True
    return BALANCE_LOW <= share <= BALANCE_HIGH


def is_perfect_balance(warrior: float, mage: float) -> bool:
    share = warrior_share(warrior, mage)
    if share is None:
        return False
    return PERFECT_LOW <= share <= PERFECT_HIGH


@dataclass(frozen=True, slots=True)
class DuelOutcome:
    winner_id: int | None
    is_draw: bool
    reason: str


def resolve_duel_outcome(
    *,
    challenger_id: int,
    opponent_id: int,
    challenger_gain: int,
    opponent_gain: int,
    challenger_penalty: bool,
    opponent_penalty: bool,
) -> DuelOutcome:
    """Apply the completion rules.

    Both penalised is a draw; one penalised forfeits to the other
    regardless of XP.  Otherwise the strictly greater gain wins and an
    exact tie goes to the opponent.
    """
    if challenger_penalty and opponent_penalty:
        return DuelOutcome(None, True, "both_unbalanced")
    if challenger_penalty:
        return DuelOutcome(opponent_id, False, "challenger_unbalanced")
    if opponent_penalty:
        return DuelOutcome(challenger_id, False, "opponent_unbalanced")
    if challenger_gain > opponent_gain:
        return DuelOutcome(challenger_id, False, "more_xp")
    return DuelOutcome(opponent_id, False, "more_xp" if opponent_gain > challenger_gain else "tie")
