"""
momentum.services.economy_service — Secondary XP Economy
=========================================================

Non-stat XP sources gated by the award ledger:

1. unknown action / disabled category   → ``invalid_action``
2. one-time action already in ledger    → ``already_claimed``
3. cooldown since last ledger entry     → ``on_cooldown`` (+ remaining s)
4. entries today ≥ ``max_per_day``      → ``daily_limit_reached``
5. XP × full multiplier (rounded half-up)
6. ledger row, always (zero-XP actions are completion markers)
7. XP applied to progression
8. performance unlock → :class:`MultiplierBoost`

The ledger insert carries a ``claim_key`` covered by a unique
constraint, so two concurrent awards that both pass steps 2–4 cannot
both land.  The loser is rolled back to its SAVEPOINT and reported with
the same reason the sequential check would have given.
"""

from __future__ import annotations

import logging
import math
from datetime import date, datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from momentum.database.engine import get_session
from momentum.database.models import AwardLedgerEntry, MultiplierBoost
from momentum.engine.multiplier import round_half_up
from momentum.engine.results import AwardResult, FailureReason, UnlockedBoost
from momentum.engine.sources import ActionConfig, get_source, match_unlock
from momentum.services.multiplier_service import (
    as_utc,
    calculate_multiplier,
    get_active_boosts,
    utcnow,
)
from momentum.services.progression_service import apply_xp, get_or_create_progression

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from momentum.engine.cache import ConfigCache

logger = logging.getLogger(__name__)

ONE_TIME_CLAIM = "once"

__all__ = [
    "award_in_session",
    "award_secondary_xp",
    "count_for_day",
    "get_active_boosts",
    "has_claimed",
    "last_used_at",
    "purge_expired_boosts",
]


# ---------------------------------------------------------------------------
# Ledger queries
# ---------------------------------------------------------------------------
def _action_filter(user_id: int, category: str, action: str):
    return (
        AwardLedgerEntry.user_id == user_id,
        AwardLedgerEntry.category == category,
        AwardLedgerEntry.action == action,
    )


def has_claimed(session: Session, user_id: int, category: str, action: str) -> bool:
    return session.scalar(
        select(AwardLedgerEntry.id).where(*_action_filter(user_id, category, action)).limit(1)
    ) is not None


def last_used_at(
    session: Session, user_id: int, category: str, action: str
) -> datetime | None:
    last = session.scalar(
        select(func.max(AwardLedgerEntry.timestamp)).where(
            *_action_filter(user_id, category, action)
        )
    )
    return as_utc(last) if last is not None else None


def count_for_day(
    session: Session, user_id: int, category: str, action: str, day: date
) -> int:
    return session.scalar(
        select(func.count(AwardLedgerEntry.id)).where(
            *_action_filter(user_id, category, action),
            AwardLedgerEntry.day == day,
        )
    ) or 0


def _claim_key(config: ActionConfig, day: date, used_today: int) -> str | None:
    if config.one_time:
        return ONE_TIME_CLAIM
    if config.max_per_day:
        return f"{day.isoformat()}#{used_today + 1}"
    return None


# ---------------------------------------------------------------------------
# Award
# ---------------------------------------------------------------------------
def award_in_session(
    session: Session,
    user_id: int,
    category: str,
    action: str,
    metadata: dict | None = None,
    *,
    now: datetime | None = None,
    day: date | None = None,
    cache: ConfigCache | None = None,
) -> AwardResult:
    """Gate and apply one secondary award inside *session*.

    *day* is the caller's calendar-day key; it defaults to the UTC date
    of *now*.
    """
    now = now or utcnow()
    day = day or now.date()

    config = get_source(category, action)
    if config is None:
        return AwardResult.fail(FailureReason.INVALID_ACTION)

    if config.one_time and has_claimed(session, user_id, category, action):
        return AwardResult.fail(FailureReason.ALREADY_CLAIMED)

    if config.cooldown_seconds:
        last = last_used_at(session, user_id, category, action)
        if last is not None:
            elapsed = (now - last).total_seconds()
            if elapsed < config.cooldown_seconds:
                return AwardResult.fail(
                    FailureReason.ON_COOLDOWN,
                    remaining_seconds=math.ceil(config.cooldown_seconds - elapsed),
                )

    used_today = 0
    if config.max_per_day:
        used_today = count_for_day(session, user_id, category, action, day)
        if used_today >= config.max_per_day:
            return AwardResult.fail(FailureReason.DAILY_LIMIT_REACHED)

    progression = get_or_create_progression(session, user_id)

    xp = 0
    multiplier = 1.0
    if config.xp:
        mult = calculate_multiplier(session, user_id, day, now=now, cache=cache)
        multiplier = mult.multiplier
        xp = round_half_up(config.xp * multiplier)

    entry = AwardLedgerEntry(
        user_id=user_id,
        category=category,
        action=action,
        xp_earned=xp,
        day=day,
        claim_key=_claim_key(config, day, used_today),
        metadata_=metadata,
        timestamp=now,
    )
    try:
        with session.begin_nested():   # SAVEPOINT
            session.add(entry)
            session.flush()
    except IntegrityError:
        logger.info(
            "Concurrent %s.%s claim for user %d lost the race", category, action, user_id,
        )
        reason = (
            FailureReason.ALREADY_CLAIMED if config.one_time
            else FailureReason.DAILY_LIMIT_REACHED
        )
        return AwardResult.fail(reason)

    level_up = apply_xp(progression, xp) if xp > 0 else None

    unlocked = None
    unlock = match_unlock(config, metadata)
    if unlock is not None:
        expires_at = now + timedelta(seconds=unlock.duration_seconds)
        session.add(MultiplierBoost(
            user_id=user_id,
            multiplier=unlock.multiplier,
            applies_to=list(unlock.applies_to),
            expires_at=expires_at,
            source=f"{category}.{action}:{unlock.name}",
        ))
        unlocked = UnlockedBoost(
            name=unlock.name,
            multiplier=unlock.multiplier,
            applies_to=list(unlock.applies_to),
            expires_at=expires_at,
            description=unlock.description,
        )

    session.flush()
    logger.info(
        "Secondary XP %s.%s user=%d xp=%d x%.3f%s",
        category, action, user_id, xp, multiplier,
        f" unlocked={unlocked.name}" if unlocked else "",
    )
    return AwardResult(
        success=True,
        xp=xp,
        description=config.description,
        unlocked=unlocked,
        multiplier=multiplier,
        level_up=level_up,
    )


def award_secondary_xp(
    engine: Engine,
    user_id: int,
    category: str,
    action: str,
    metadata: dict | None = None,
    **kwargs,
) -> AwardResult:
    """Award a secondary XP source and commit.

    Expected refusals come back as ``AwardResult(success=False, error=...)``;
    database errors propagate.
    """
    with get_session(engine) as session:
        result = award_in_session(session, user_id, category, action, metadata, **kwargs)
    return result


# ---------------------------------------------------------------------------
# Hygiene
# ---------------------------------------------------------------------------
def purge_expired_boosts(engine: Engine, now: datetime | None = None) -> int:
    """Delete boosts whose expiry is at or before *now*.  Returns the row count."""
    now = now or utcnow()
    with get_session(engine) as session:
        result = session.execute(
            delete(MultiplierBoost).where(MultiplierBoost.expires_at <= now)
        )
        deleted = result.rowcount or 0
    if deleted:
        logger.info("Purged %d expired multiplier boosts", deleted)
    return deleted
