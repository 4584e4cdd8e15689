"""
momentum.engine.multiplier — Composite Multiplier
==================================================

Pure calculation; the database lookups (streak, global events) live in
:mod:`momentum.services.multiplier_service`.

    additive = 1.0 + streak + state + templar + catch_up
    final    = min(cap, additive × Π(global factors))
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass, field

MAX_STREAK_SCAN = 365
STREAK_BLOCK_DAYS = 7
GOOD_STATE_THRESHOLD = 8
MIN_GLOBAL_FACTOR = 1.0
MAX_GLOBAL_FACTOR = 10.0


@dataclass(frozen=True, slots=True)
class MultiplierSettings:
    """Tuning knobs; defaults apply when the settings table is silent."""

    max_streak_bonus: float = 0.25
    streak_step: float = 0.05
    state_good_bonus: float = 0.05
    templar_day_bonus: float = 0.30
    max_total_multiplier: float = 5.0

    @classmethod
    def from_cache(cls, cache) -> MultiplierSettings:
        if cache is None:
            return cls()
        defaults = cls()
        return cls(
            max_streak_bonus=cache.get_float(
                "multipliers.max_streak_bonus", defaults.max_streak_bonus),
            streak_step=cache.get_float(
                "multipliers.streak_step", defaults.streak_step),
            state_good_bonus=cache.get_float(
                "multipliers.state_good_bonus", defaults.state_good_bonus),
            templar_day_bonus=cache.get_float(
                "multipliers.templar_day_bonus", defaults.templar_day_bonus),
            max_total_multiplier=cache.get_float(
                "multipliers.max_total_multiplier", defaults.max_total_multiplier),
        )


@dataclass
class MultiplierResult:
    multiplier: float
    components: dict[str, float] = field(default_factory=dict)


def catch_up_bonus(user_id: int | None = None, streak_days: int = 0) -> float:
    """Catch-up bonus for members far behind the pack.  Not enabled yet."""
    return 0.0


def streak_bonus(effective_streak: int, settings: MultiplierSettings) -> float:
    blocks = max(0, effective_streak) // STREAK_BLOCK_DAYS
    return min(settings.max_streak_bonus, blocks * settings.streak_step)


def clamp_global_factor(factor: float | None) -> float | None:
    """Return the usable factor, or None when it should be ignored."""
    if factor is None or math.isnan(factor) or factor <= MIN_GLOBAL_FACTOR:
        return None
    return min(MAX_GLOBAL_FACTOR, factor)


def compute_multiplier(
    *,
    base_streak: int = 0,
    active: bool = False,
    state: int | None = None,
    dominant_archetype: str | None = None,
    global_factors: Iterable[float] = (),
    settings: MultiplierSettings | None = None,
    user_id: int | None = None,
) -> MultiplierResult:
    """Combine the additive bonuses and the global factors, then cap.

    *base_streak* is the number of consecutive prior active days; today
    counts on top of it when *active* is set.
    """
    settings = settings or MultiplierSettings()

    base_streak = min(max(0, base_streak), MAX_STREAK_SCAN)
    effective = base_streak + (1 if active else 0)

    streak = streak_bonus(effective, settings)
    state_bonus = (
        settings.state_good_bonus
        if state is not None and state >= GOOD_STATE_THRESHOLD
        else 0.0
    )
    templar = settings.templar_day_bonus if dominant_archetype == "templar" else 0.0
    catch_up = catch_up_bonus(user_id, effective)

    additive = 1.0 + streak + state_bonus + templar + catch_up

    global_product = 1.0
    for raw in global_factors:
        factor = clamp_global_factor(raw)
        if factor is not None:
            global_product *= factor

    cap = settings.max_total_multiplier if settings.max_total_multiplier > 0 else 5.0
    final = min(cap, additive * global_product)

    return MultiplierResult(
        multiplier=final,
        components={
            "base_streak": float(base_streak),
            "effective_streak": float(effective),
            "streak_bonus": streak,
            "state_bonus": state_bonus,
            "templar_bonus": templar,
            "catch_up_bonus": catch_up,
            "additive": additive,
            "global_factor": global_product,
            "cap": cap,
            "capped": 1.0 if additive * global_product > cap else 0.0,
        },
    )


def apply_multiplier(xp: int | float, multiplier: float) -> int:
    """Floor-apply *multiplier* to *xp* (primary stat XP)."""
    return int(math.floor(xp * multiplier))


def round_half_up(value: float) -> int:
    """Secondary-economy rounding: .5 goes up."""
    return int(math.floor(value + 0.5))
