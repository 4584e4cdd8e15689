"""
momentum.engine.results — Typed Outcomes & Progression Events
==============================================================

Expected outcomes (cooldown, cap, already claimed, bad duel request)
are returned as values carrying a :class:`FailureReason`; callers
branch on ``reason`` to pick a user-facing message.  Infrastructure
errors are raised, never folded into these.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime


class FailureReason(enum.StrEnum):
    INVALID_ACTION = "invalid_action"
    ALREADY_CLAIMED = "already_claimed"
    ON_COOLDOWN = "on_cooldown"
    DAILY_LIMIT_REACHED = "daily_limit_reached"
    PLAYER_NOT_FOUND = "player_not_found"
    SELF_DUEL = "self_duel"
    DUEL_EXISTS = "duel_exists"
    NOT_FOUND = "not_found"
    NOT_PENDING = "not_pending"
    NOT_ACTIVE = "not_active"
    CHALLENGE_EXPIRED = "challenge_expired"

    @property
    def message(self) -> str:
        return _MESSAGES[self]


_MESSAGES: dict[FailureReason, str] = {
    FailureReason.INVALID_ACTION: "That action isn't available.",
    FailureReason.ALREADY_CLAIMED: "You've already claimed this bonus.",
    FailureReason.ON_COOLDOWN: "That action is on cooldown.",
    FailureReason.DAILY_LIMIT_REACHED: "Daily limit reached for that action.",
    FailureReason.PLAYER_NOT_FOUND: "Both players need a profile before dueling.",
    FailureReason.SELF_DUEL: "You can't duel yourself.",
    FailureReason.DUEL_EXISTS: "One of you already has an open duel.",
    FailureReason.NOT_FOUND: "Duel not found.",
    FailureReason.NOT_PENDING: "That duel is no longer pending.",
    FailureReason.NOT_ACTIVE: "That duel isn't active.",
    FailureReason.CHALLENGE_EXPIRED: "That challenge has expired.",
}


# ---------------------------------------------------------------------------
# Progression events (emitted to the notification sink)
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LevelUpEvent:
    user_id: int
    old_level: int
    new_level: int
    old_class: str
    new_class: str


@dataclass(frozen=True, slots=True)
class ArchetypeEvolutionEvent:
    user_id: int
    old_archetype: str
    new_archetype: str
    dampening: float


# ---------------------------------------------------------------------------
# Results
# ---------------------------------------------------------------------------
@dataclass
class UnlockedBoost:
    name: str
    multiplier: float
    applies_to: list[str]
    expires_at: datetime
    description: str


@dataclass
class AwardResult:
    """Outcome of a secondary XP trigger."""

    success: bool
    xp: int = 0
    description: str = ""
    unlocked: UnlockedBoost | None = None
    multiplier: float = 1.0
    error: FailureReason | None = None
    remaining_seconds: int | None = None
    level_up: LevelUpEvent | None = None

    @classmethod
    def fail(cls, reason: FailureReason, *, remaining_seconds: int | None = None) -> AwardResult:
        return cls(success=False, error=reason, remaining_seconds=remaining_seconds)


@dataclass
class SubmissionResult:
    """Outcome of a daily stat submission."""

    base_xp: int
    final_xp: int
    multiplier: float
    components: dict[str, float] = field(default_factory=dict)
    warrior_delta: float = 0.0
    mage_delta: float = 0.0
    dominant_archetype: str = "none"
    level_up: LevelUpEvent | None = None
    archetype_evolution: ArchetypeEvolutionEvent | None = None
    skipped_stats: list[str] = field(default_factory=list)


@dataclass
class DuelResult:
    """Outcome of a duel lifecycle call."""

    success: bool
    duel_id: int | None = None
    status: str | None = None
    error: FailureReason | None = None
    winner_id: int | None = None
    is_draw: bool = False
    challenger_id: int | None = None
    opponent_id: int | None = None
    challenger_gain: int = 0
    opponent_gain: int = 0
    challenger_penalty: bool = False
    opponent_penalty: bool = False
    perfect_balance_bonus: bool = False
    bonus_xp: int = 0
    level_ups: list[LevelUpEvent] = field(default_factory=list)

    @classmethod
    def fail(cls, reason: FailureReason, duel_id: int | None = None) -> DuelResult:
        return cls(success=False, error=reason, duel_id=duel_id)
