"""
momentum.engine.stats — XP & Affinity Calculator
=================================================

Pure function from one day's stat counts to base XP plus raw
warrior/mage affinity deltas.  No DB I/O.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from momentum.constants import STAT_WEIGHTS, StatWeight


@dataclass(frozen=True, slots=True)
class StatBreakdown:
    """Result of :func:`calculate_stats`."""

    base_xp: int = 0
    warrior_delta: float = 0.0
    mage_delta: float = 0.0
    per_stat_xp: dict[str, int] | None = None


def calculate_stats(
    stats: Mapping[str, int],
    weights: Mapping[str, StatWeight] = STAT_WEIGHTS,
) -> StatBreakdown:
    """Sum XP and affinity deltas over *stats*.

    Unknown names and zero counts contribute nothing.  Negative counts
    raise :class:`ValueError`.
    """
    base_xp = 0
    warrior = 0.0
    mage = 0.0
    per_stat: dict[str, int] = {}

    for name, count in stats.items():
        if count is None:
            continue
        count = int(count)
        if count < 0:
            raise ValueError(f"Negative count for {name!r}: {count}")
        weight = weights.get(name)
        if weight is None or count == 0:
            continue
        xp = weight.xp * count
        base_xp += xp
        warrior += weight.warrior * count
        mage += weight.mage * count
        per_stat[name] = xp

    return StatBreakdown(
        base_xp=base_xp,
        warrior_delta=warrior,
        mage_delta=mage,
        per_stat_xp=per_stat,
    )
