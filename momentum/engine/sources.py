"""
momentum.engine.sources — Secondary XP Source Catalogue
========================================================

Static catalogue of non-stat activities that can earn XP, keyed by
``category`` → ``action``.  Gating rules (cooldown, daily cap, one-time)
are enforced against the award ledger by
:mod:`momentum.services.economy_service`.
"""

from __future__ import annotations

from dataclasses import dataclass, field

HOUR = 3600
DAY = 86400


@dataclass(frozen=True, slots=True)
class Unlock:
    """Performance tier that grants a temporary per-stat multiplier."""

    name: str
    min_score: float
    multiplier: float
    duration_seconds: int
    applies_to: tuple[str, ...]
    description: str


@dataclass(frozen=True, slots=True)
class ActionConfig:
    xp: int
    description: str
    cooldown_seconds: int | None = None
    max_per_day: int | None = None
    one_time: bool = False
    unlocks: tuple[Unlock, ...] = ()


@dataclass(frozen=True, slots=True)
class SourceCategory:
    actions: dict[str, ActionConfig] = field(default_factory=dict)
    enabled: bool = True


SECONDARY_XP_SOURCES: dict[str, SourceCategory] = {
    "barbie": SourceCategory(actions={
        "addContact": ActionConfig(
            50, "Add a contact after an approach", cooldown_seconds=300, max_per_day=20),
        "logFollowup": ActionConfig(
            30, "Log a follow-up text or call", cooldown_seconds=HOUR, max_per_day=10),
        "updateWithDate": ActionConfig(
            100, "Update a contact with a date result", max_per_day=5),
        "perfectVibe": ActionConfig(25, "Rate a contact 9-10 vibe"),
    }),
    "textingPractice": SourceCategory(actions={
        "completeScenario": ActionConfig(
            0,
            "Complete a texting scenario",
            # Stricter tier first
            unlocks=(
                Unlock(
                    "perfect_score", 95, 1.25, DAY,
                    ("Approaches", "Numbers", "Dates Had"),
                    "+25% XP on social stats for 24 hours",
                ),
                Unlock(
                    "score_80_plus", 80, 1.1, DAY,
                    ("Approaches", "Numbers"),
                    "+10% XP on approach and number stats for 24 hours",
                ),
            ),
        ),
        "firstCompletionBonus": ActionConfig(
            200, "First completed scenario", one_time=True),
        "masterDifficulty": ActionConfig(
            500, "Advanced scenario with a 90+ score", cooldown_seconds=DAY),
    }),
    "journal": SourceCategory(actions={
        "submitEntry": ActionConfig(
            75, "Journal entry with image", cooldown_seconds=HOUR, max_per_day=3),
        "breakthrough": ActionConfig(200, "Entry selected as a breakthrough"),
    }),
    "chatEngagement": SourceCategory(actions={
        "textMessage": ActionConfig(
            10, "Text message of 50+ characters in general", cooldown_seconds=300),
        "voiceMessage": ActionConfig(
            15, "Voice note in general", cooldown_seconds=300),
    }),
    "wins": SourceCategory(actions={
        "shareWin": ActionConfig(
            50, "Share a win", cooldown_seconds=HOUR, max_per_day=5),
    }),
    "duels": SourceCategory(actions={
        "winDuel": ActionConfig(500, "Win a balanced duel"),
        "perfectBalance": ActionConfig(
            250, "Perfect templar balance at the end of a duel"),
    }),
    "course": SourceCategory(actions={
        "completeModule": ActionConfig(500, "Complete a course module"),
        "watchFirstVideo": ActionConfig(
            100, "Watch your first course video", one_time=True),
        "completeAllModules": ActionConfig(
            2000, "Complete every course module", one_time=True),
    }),
    "groupCall": SourceCategory(actions={
        "attendCall": ActionConfig(
            200, "Attend a group call", cooldown_seconds=2 * HOUR, max_per_day=1),
    }),
}


def get_source(
    category: str,
    action: str,
    catalogue: dict[str, SourceCategory] | None = None,
) -> ActionConfig | None:
    """Return the action config, or None if unknown or the category is disabled."""
    catalogue = SECONDARY_XP_SOURCES if catalogue is None else catalogue
    cat = catalogue.get(category)
    if cat is None or not cat.enabled:
        return None
    return cat.actions.get(action)


def match_unlock(config: ActionConfig, metadata: dict | None) -> Unlock | None:
    """First tier whose threshold the ``score`` in *metadata* meets."""
    if not config.unlocks or not metadata:
        return None
    score = metadata.get("score")
    if score is None:
        return None
    try:
        score = float(score)
    except (TypeError, ValueError):
        return None
    for unlock in config.unlocks:
        if score >= unlock.min_score:
            return unlock
    return None
