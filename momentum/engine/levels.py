"""
momentum.engine.levels — Level & Class Resolver
================================================

Cumulative XP → (level, class) through :data:`LEVEL_THRESHOLDS`.
The table is validated at import; a malformed table fails fast.
"""

from __future__ import annotations

from bisect import bisect_right
from collections.abc import Sequence
from dataclasses import dataclass

from momentum.constants import LEVEL_THRESHOLDS, LevelThreshold


@dataclass(frozen=True, slots=True)
class LevelInfo:
    level: int
    class_name: str
    current_xp: int
    xp_for_next: int  # 0 at max level
    progress: float
    is_max: bool = False


@dataclass(frozen=True, slots=True)
class LevelUp:
    old_level: int
    new_level: int
    old_class: str
    new_class: str

    @property
    def class_changed(self) -> bool:
        return self.old_class != self.new_class


def validate_thresholds(table: Sequence[LevelThreshold]) -> None:
    """Raise :class:`ValueError` unless *table* is non-empty, starts at
    XP 0 and has strictly increasing levels and cutoffs."""
    if not table:
        raise ValueError("Level threshold table is empty")
    if table[0].xp != 0:
        raise ValueError("First level cutoff must be 0")
    for prev, cur in zip(table, table[1:]):
        if cur.xp <= prev.xp:
            raise ValueError(
                f"Cutoff for level {cur.level} ({cur.xp}) is not above "
                f"level {prev.level} ({prev.xp})"
            )
        if cur.level <= prev.level:
            raise ValueError(f"Levels out of order at {cur.level}")


validate_thresholds(LEVEL_THRESHOLDS)

_CUTOFFS = [row.xp for row in LEVEL_THRESHOLDS]


def _index_for(xp: int, table: Sequence[LevelThreshold]) -> int:
    cutoffs = _CUTOFFS if table is LEVEL_THRESHOLDS else [row.xp for row in table]
    return max(0, bisect_right(cutoffs, max(0, xp)) - 1)


def compute_level(xp: int, table: Sequence[LevelThreshold] = LEVEL_THRESHOLDS) -> LevelInfo:
    """Resolve *xp* to the highest level whose cutoff is ≤ *xp*.

    Negative XP resolves to level 1 with zero progress.
    """
    xp = max(0, int(xp))
    idx = _index_for(xp, table)
    row = table[idx]
    current = xp - row.xp

    if idx + 1 >= len(table):
        return LevelInfo(
            level=row.level,
            class_name=row.class_name,
            current_xp=current,
            xp_for_next=0,
            progress=1.0,
            is_max=True,
        )

    span = table[idx + 1].xp - row.xp
    progress = min(1.0, max(0.0, current / span)) if span > 0 else 1.0
    return LevelInfo(
        level=row.level,
        class_name=row.class_name,
        current_xp=current,
        xp_for_next=span,
        progress=progress,
    )


def check_level_up(
    old_xp: int, new_xp: int, table: Sequence[LevelThreshold] = LEVEL_THRESHOLDS
) -> LevelUp | None:
    """Return a :class:`LevelUp` when *new_xp* resolves to a higher level."""
    before = compute_level(old_xp, table)
    after = compute_level(new_xp, table)
    if after.level <= before.level:
        return None
    return LevelUp(
        old_level=before.level,
        new_level=after.level,
        old_class=before.class_name,
        new_class=after.class_name,
    )


def xp_for_level(level: int, table: Sequence[LevelThreshold] = LEVEL_THRESHOLDS) -> int:
    """Cumulative XP needed to reach *level*; clamps to the table bounds."""
    if level <= table[0].level:
        return table[0].xp
    for row in table:
        if row.level == level:
            return row.xp
    return table[-1].xp


def max_level(table: Sequence[LevelThreshold] = LEVEL_THRESHOLDS) -> int:
    return table[-1].level
