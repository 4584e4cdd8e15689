"""
momentum.database.seed — Default Settings Seeder
=================================================

Idempotent: only inserts keys that don't already exist, so admin edits
are never overwritten.
"""

from __future__ import annotations

import json
import logging

from sqlalchemy import Engine

from momentum.database.engine import get_session
from momentum.database.models import Setting

logger = logging.getLogger(__name__)


DEFAULT_SETTINGS: dict[str, tuple[object, str, str]] = {
    "multipliers.max_streak_bonus": (
        0.25, "multipliers", "Ceiling for the weekly streak bonus",
    ),
    "multipliers.streak_step": (
        0.05, "multipliers", "Bonus added per full 7-day streak block",
    ),
    "multipliers.state_good_bonus": (
        0.05, "multipliers", "Bonus when the day's state is 8 or higher",
    ),
    "multipliers.templar_day_bonus": (
        0.30, "multipliers", "Bonus when the day's dominant archetype is templar",
    ),
    "multipliers.max_total_multiplier": (
        5.0, "multipliers", "Hard cap on the composite multiplier",
    ),
    "events.default_double_xp_factor": (
        2.0, "events", "Factor used when a double-XP window is created without one",
    ),
    "duels.duration_hours": (24, "duels", "Length of an accepted duel"),
    "duels.accept_window_minutes": (
        60, "duels", "How long a challenge may stay pending before it lapses",
    ),
    "announcements.enabled": (
        True, "announcements", "Post level-ups, evolutions and duel results",
    ),
}
"""Each entry maps ``key`` → ``(default_value, category, description)``."""


def seed_default_settings(engine: Engine) -> None:
    """Insert default settings that don't yet exist."""
    inserted = 0
    with get_session(engine) as session:
        for key, (value, category, desc) in DEFAULT_SETTINGS.items():
            if session.get(Setting, key) is None:
                session.add(Setting(
                    key=key,
                    value_json=json.dumps(value),
                    category=category,
                    description=desc,
                ))
                inserted += 1

    if inserted:
        logger.info("Seeded %d default settings.", inserted)
