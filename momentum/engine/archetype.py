"""
momentum.engine.archetype — Dampening & Classification
=======================================================

Two separate representations of the warrior/mage axis live on a user:

* raw ``warrior_affinity`` / ``mage_affinity`` — duel balance;
* dampened ``archetype_*`` scores — the displayed archetype label.

Dampening shrinks archetype deltas as XP grows so veterans need
sustained behaviour to change label:

    factor = 1.0                      XP ≤ 1,000
    factor = 0.3                      XP ≥ 50,000
    linear in between                 (25,500 → 0.65)
"""

from __future__ import annotations

from dataclasses import dataclass

from momentum.database.models import Archetype

DAMPEN_MIN_XP = 1_000
DAMPEN_MAX_XP = 50_000
DAMPEN_MAX_FACTOR = 1.0
DAMPEN_MIN_FACTOR = 0.3

TEMPLAR_LOW = 0.40
TEMPLAR_HIGH = 0.60


@dataclass(frozen=True, slots=True)
class ArchetypeDeltas:
    warrior: float = 0.0
    mage: float = 0.0
    templar: float = 0.0


def dampening_factor(total_xp: int) -> float:
    if total_xp <= DAMPEN_MIN_XP:
        return DAMPEN_MAX_FACTOR
    if total_xp >= DAMPEN_MAX_XP:
        return DAMPEN_MIN_FACTOR
    ratio = (total_xp - DAMPEN_MIN_XP) / (DAMPEN_MAX_XP - DAMPEN_MIN_XP)
    return DAMPEN_MAX_FACTOR - ratio * (DAMPEN_MAX_FACTOR - DAMPEN_MIN_FACTOR)


def dampen(deltas: ArchetypeDeltas, total_xp: int) -> ArchetypeDeltas:
    factor = dampening_factor(total_xp)
    return ArchetypeDeltas(
        warrior=deltas.warrior * factor,
        mage=deltas.mage * factor,
        templar=deltas.templar * factor,
    )


def classify_archetype(warrior: float, mage: float) -> Archetype:
    """Label a warrior/mage pair by the mage share of the total.

    40–60 % is templar; a zero total is :attr:`Archetype.NONE`.
    """
    total = (warrior or 0.0) + (mage or 0.0)
    if total <= 0:
        return Archetype.NONE
    mage_share = mage / total
    if mage_share < TEMPLAR_LOW:
        return Archetype.WARRIOR
    if mage_share > TEMPLAR_HIGH:
        return Archetype.MAGE
    return Archetype.TEMPLAR


def day_deltas(warrior_delta: float, mage_delta: float) -> ArchetypeDeltas:
    """Archetype point deltas for one submission.

    A templar-classified day also earns templar points equal to the
    smaller of its two sides.
    """
    templar = 0.0
    if classify_archetype(warrior_delta, mage_delta) is Archetype.TEMPLAR:
        templar = min(warrior_delta, mage_delta)
    return ArchetypeDeltas(warrior=warrior_delta, mage=mage_delta, templar=templar)


def volatility_description(factor: float) -> str:
    """Human label for how quickly the archetype can still shift."""
    if factor > 0.8:
        return "Very High - Archetype shifts quickly"
    if factor > 0.6:
        return "High - Archetype is fluid"
    if factor > 0.4:
        return "Moderate - Becoming stable"
    return "Low - Very stable"
