"""
momentum.constants — Game Constants
====================================

Single source of truth for the stat weight table, stat aliases, the
level threshold table and archetype presentation.  Import from here
instead of duplicating in services and embeds.
"""

from __future__ import annotations

from dataclasses import dataclass


# ---------------------------------------------------------------------------
# Stat weight table — XP per unit plus warrior/mage affinity per unit
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class StatWeight:
    """Per-unit weights for one tracked activity."""

    xp: int
    warrior: float = 0.0
    mage: float = 0.0


STAT_WEIGHTS: dict[str, StatWeight] = {
    # Core social
    "Approaches": StatWeight(xp=100, warrior=3, mage=0),
    "Numbers": StatWeight(xp=100, warrior=1, mage=0),
    "New Contact Response": StatWeight(xp=100, warrior=1, mage=0),
    "Hellos To Strangers": StatWeight(xp=10, warrior=1, mage=0),
    "In Action Release": StatWeight(xp=50, warrior=0, mage=3),
    # Dating & results
    "Dates Booked": StatWeight(xp=100, warrior=2, mage=0),
    "Dates Had": StatWeight(xp=250, warrior=3, mage=0),
    "Instant Date": StatWeight(xp=500, warrior=4, mage=0),
    "Got Laid": StatWeight(xp=250, warrior=1, mage=1),
    "Same Night Pull": StatWeight(xp=2000, warrior=8, mage=0),
    # Inner work
    "Courage Welcoming": StatWeight(xp=50, warrior=2, mage=1),
    "SBMM Meditation": StatWeight(xp=100, warrior=0, mage=9),
    "Grounding": StatWeight(xp=50, warrior=0, mage=4),
    "Releasing Sesh": StatWeight(xp=25, warrior=0, mage=6),
    # Learning
    "Course Module": StatWeight(xp=250, warrior=2, mage=9),
    "Course Experiment": StatWeight(xp=100, warrior=2, mage=4),
    # Daily state
    "Attended Group Call": StatWeight(xp=200, warrior=1, mage=3),
    "Overall State Today (1-10)": StatWeight(xp=50, warrior=0, mage=2),
    "Retention Streak": StatWeight(xp=100, warrior=0, mage=4),
    # Other
    "Confidence Tension Journal Entry": StatWeight(xp=100, warrior=0, mage=3),
    "Tensey Exercise": StatWeight(xp=100, warrior=3, mage=1),
    "Chat Engagement": StatWeight(xp=5, warrior=0, mage=0.5),
    "Wins Sharing": StatWeight(xp=25, warrior=1, mage=1),
}

STATE_STAT = "Overall State Today (1-10)"

# Lower-case / snake_case aliases → canonical STAT_WEIGHTS key
STAT_ALIASES: dict[str, str] = {
    "approach": "Approaches",
    "approaches": "Approaches",
    "approach_count": "Approaches",
    "number": "Numbers",
    "numbers": "Numbers",
    "new_contact_response": "New Contact Response",
    "contact_response": "New Contact Response",
    "contact": "New Contact Response",
    "hellos_to_strangers": "Hellos To Strangers",
    "hello_to_strangers": "Hellos To Strangers",
    "hello": "Hellos To Strangers",
    "hellos": "Hellos To Strangers",
    "ctj": "Confidence Tension Journal Entry",
    "confidence_tension_journal": "Confidence Tension Journal Entry",
    "confidence_tension_journal_entry": "Confidence Tension Journal Entry",
    "journal": "Confidence Tension Journal Entry",
    "journal_entry": "Confidence Tension Journal Entry",
    "date_booked": "Dates Booked",
    "dates_booked": "Dates Booked",
    "date_had": "Dates Had",
    "dates_had": "Dates Had",
    "date": "Dates Had",
    "instant_date": "Instant Date",
    "got_laid": "Got Laid",
    "laid": "Got Laid",
    "same_night_pull": "Same Night Pull",
    "same_night": "Same Night Pull",
    "snp": "Same Night Pull",
    "courage_welcoming": "Courage Welcoming",
    "courage": "Courage Welcoming",
    "welcoming": "Courage Welcoming",
    "sbmm_meditation": "SBMM Meditation",
    "sbmm": "SBMM Meditation",
    "meditation": "SBMM Meditation",
    "grounding": "Grounding",
    "releasing_sesh": "Releasing Sesh",
    "releasing_session": "Releasing Sesh",
    "releasing": "Releasing Sesh",
    "in_action_release": "In Action Release",
    "in_action": "In Action Release",
    "course_module": "Course Module",
    "module": "Course Module",
    "course_experiment": "Course Experiment",
    "experiment": "Course Experiment",
    "attended_group_call": "Attended Group Call",
    "group_call": "Attended Group Call",
    "call": "Attended Group Call",
    "overall_state_today": "Overall State Today (1-10)",
    "overall_state_today_1_10": "Overall State Today (1-10)",
    "state": "Overall State Today (1-10)",
    "state_1_10": "Overall State Today (1-10)",
    "retention_streak": "Retention Streak",
    "retention": "Retention Streak",
    "streak": "Retention Streak",
    "tensey_exercise": "Tensey Exercise",
    "tensey": "Tensey Exercise",
    "tenseys": "Tensey Exercise",
    "chat_engagement": "Chat Engagement",
    "chat": "Chat Engagement",
    "engagement": "Chat Engagement",
    "wins_sharing": "Wins Sharing",
    "wins": "Wins Sharing",
    "sharing": "Wins Sharing",
}


def normalize_stat_name(raw_name: str) -> str | None:
    """Map a user-supplied stat name onto its canonical key.

    Tries an exact key, then the alias table, then a case-insensitive
    match against the weight table.  Returns None for unknown names.
    """
    if not raw_name:
        return None
    key = str(raw_name).strip()
    if key in STAT_WEIGHTS:
        return key
    lower = key.lower()
    alias = STAT_ALIASES.get(lower) or STAT_ALIASES.get(lower.replace(" ", "_"))
    if alias is not None:
        return alias
    for canonical in STAT_WEIGHTS:
        if canonical.lower() == lower:
            return canonical
    return None


# ---------------------------------------------------------------------------
# Level thresholds — (level, cumulative XP cutoff, class name)
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class LevelThreshold:
    level: int
    xp: int
    class_name: str


def _tier(levels: range, cutoffs: list[int], class_name: str) -> list[LevelThreshold]:
    return [LevelThreshold(lvl, xp, class_name) for lvl, xp in zip(levels, cutoffs)]


LEVEL_THRESHOLDS: tuple[LevelThreshold, ...] = tuple(
    _tier(range(1, 5), [0, 500, 1200, 2000], "Awkward Initiate")
    + _tier(range(5, 10), [3000, 4200, 5600, 7200, 9000], "Social Squire")
    + _tier(range(10, 15), [11000, 13200, 15600, 18200, 21000], "Bold Explorer")
    + _tier(range(15, 20), [24000, 27200, 30600, 34200, 38000], "Magnetic Challenger")
    + _tier(range(20, 25), [42000, 46200, 50600, 55200, 60000], "Audacious Knight")
    + _tier(range(25, 30), [65000, 70200, 75600, 81200, 87000], "Charisma Vanguard")
    + _tier(range(30, 35), [93000, 99200, 105600, 112200, 119000], "Seduction Sage")
    + _tier(range(35, 40), [126000, 133200, 140600, 148200, 156000], "Embodiment Warlord")
    + _tier(range(40, 45), [164000, 172200, 180600, 189200, 198000], "Flirtation Overlord")
    + _tier(range(45, 50), [207000, 216200, 225600, 235200, 245000], "Reality Architect")
    + _tier(range(50, 51), [255000], "Galactic Sexy Bastard God-King")
)


# ---------------------------------------------------------------------------
# Archetype presentation (used by embeds)
# ---------------------------------------------------------------------------
ARCHETYPE_ICONS: dict[str, str] = {
    "warrior": "\u2694\ufe0f",  # ⚔️
    "mage": "\U0001f52e",       # 🔮
    "templar": "\u2696\ufe0f",  # ⚖️
    "none": "\u2696\ufe0f",
}

ARCHETYPE_LABELS: dict[str, str] = {
    "warrior": "Warrior",
    "mage": "Mage",
    "templar": "Templar",
    "none": "New Initiate",
}

FACTION_NAMES: list[str] = ["Luminarchs", "Noctivores"]
