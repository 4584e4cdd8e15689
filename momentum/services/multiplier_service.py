"""
momentum.services.multiplier_service — Multiplier Lookups
==========================================================

Database side of the multiplier: the prior-day streak, live global
modifiers (double-XP windows, faction buffs) and per-stat boosts.  The
arithmetic itself is :func:`momentum.engine.multiplier.compute_multiplier`.

Every lookup is a fresh query; nothing here is memoised.
"""

from __future__ import annotations

import logging
from datetime import UTC, date, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import select
from sqlalchemy.orm import Session

from momentum.database.models import (
    DailyActivityRecord,
    GlobalEventKind,
    GlobalEventStatus,
    GlobalXPEvent,
    MultiplierBoost,
    UserProgression,
)
from momentum.engine.multiplier import (
    MAX_STREAK_SCAN,
    MultiplierResult,
    MultiplierSettings,
    compute_multiplier,
)

if TYPE_CHECKING:
    from momentum.engine.cache import ConfigCache

logger = logging.getLogger(__name__)

# Events that have not been canceled or closed out by the bookkeeping sweep
_LIVE_STATUSES = (GlobalEventStatus.SCHEDULED.value, GlobalEventStatus.ACTIVE.value)


def utcnow() -> datetime:
    return datetime.now(UTC)


def as_utc(value: datetime) -> datetime:
    """Attach UTC to naive datetimes read back from the database."""
    if value.tzinfo is None:
        return value.replace(tzinfo=UTC)
    return value


# ---------------------------------------------------------------------------
# Streak
# ---------------------------------------------------------------------------
def get_base_streak(session: Session, user_id: int, day: date) -> int:
    """Consecutive active days immediately before *day*, capped at 365."""
    earliest = day - timedelta(days=MAX_STREAK_SCAN)
    active_days = set(session.scalars(
        select(DailyActivityRecord.day).where(
            DailyActivityRecord.user_id == user_id,
            DailyActivityRecord.active.is_(True),
            DailyActivityRecord.day < day,
            DailyActivityRecord.day >= earliest,
        )
    ).all())

    streak = 0
    cursor = day - timedelta(days=1)
    while cursor in active_days and streak < MAX_STREAK_SCAN:
        streak += 1
        cursor -= timedelta(days=1)
    return streak


# ---------------------------------------------------------------------------
# Global modifiers
# ---------------------------------------------------------------------------
def _live_window(now: datetime):
    return (
        GlobalXPEvent.status.in_(_LIVE_STATUSES),
        GlobalXPEvent.start_time <= now,
        GlobalXPEvent.end_time > now,
    )


def get_active_double_xp(session: Session, now: datetime) -> GlobalXPEvent | None:
    """The most recently started double-XP window covering *now*."""
    return session.scalar(
        select(GlobalXPEvent)
        .where(GlobalXPEvent.kind == GlobalEventKind.DOUBLE_XP.value, *_live_window(now))
        .order_by(GlobalXPEvent.start_time.desc(), GlobalXPEvent.id.desc())
        .limit(1)
    )


def get_active_faction_buffs(
    session: Session, now: datetime, faction: str | None
) -> list[GlobalXPEvent]:
    if not faction:
        return []
    return list(session.scalars(
        select(GlobalXPEvent).where(
            GlobalXPEvent.kind == GlobalEventKind.FACTION_BUFF.value,
            GlobalXPEvent.faction == faction,
            *_live_window(now),
        )
    ).all())


def get_global_factors(
    session: Session, now: datetime, faction: str | None = None
) -> list[float]:
    """Raw factors of every live global modifier that applies.

    Clamping and ignoring of factors ≤ 1 happens in the pure engine.
    """
    factors: list[float] = []
    event = get_active_double_xp(session, now)
    if event is not None:
        factors.append(event.multiplier_factor)
    factors.extend(buff.multiplier_factor for buff in get_active_faction_buffs(session, now, faction))
    return factors


# ---------------------------------------------------------------------------
# Per-stat boosts
# ---------------------------------------------------------------------------
def get_active_boosts(
    session: Session, user_id: int, now: datetime | None = None
) -> list[MultiplierBoost]:
    """Unexpired boosts for *user_id*, strongest first."""
    now = now or utcnow()
    return list(session.scalars(
        select(MultiplierBoost)
        .where(MultiplierBoost.user_id == user_id, MultiplierBoost.expires_at > now)
        .order_by(MultiplierBoost.multiplier.desc())
    ).all())


def resolve_stat_boosts(boosts: list[MultiplierBoost]) -> dict[str, float]:
    """Map each stat to the single highest boost covering it.  No stacking."""
    resolved: dict[str, float] = {}
    for boost in boosts:
        for stat in boost.applies_to or []:
            if boost.multiplier > resolved.get(stat, 1.0):
                resolved[stat] = boost.multiplier
    return resolved


# ---------------------------------------------------------------------------
# Composite
# ---------------------------------------------------------------------------
def calculate_multiplier(
    session: Session,
    user_id: int,
    day: date,
    *,
    state: int | None = None,
    dominant_archetype: str | None = None,
    active: bool = False,
    faction: str | None = None,
    now: datetime | None = None,
    cache: ConfigCache | None = None,
) -> MultiplierResult:
    """Full multiplier for *user_id* on *day*.

    When *faction* is omitted the user's stored faction is used for
    matching faction buffs.
    """
    now = now or utcnow()
    if faction is None:
        progression = session.get(UserProgression, user_id)
        faction = progression.faction if progression is not None else None

    base_streak = get_base_streak(session, user_id, day)
    result = compute_multiplier(
        base_streak=base_streak,
        active=active,
        state=state,
        dominant_archetype=dominant_archetype,
        global_factors=get_global_factors(session, now, faction),
        settings=MultiplierSettings.from_cache(cache),
        user_id=user_id,
    )
    logger.debug(
        "Multiplier user=%d day=%s → %.3f %s",
        user_id, day, result.multiplier, result.components,
    )
    return result
