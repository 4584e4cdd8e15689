"""
momentum.services.progression_service — Stat Submission & XP Application
=========================================================================

Sync service functions (call through ``run_db`` from async code).

Submission pipeline for one user and one calendar day::

    normalise names → calculate base XP / affinity deltas
        → upsert daily record → multiplier (streak, state, archetype, events)
        → per-stat boosts × multiplier → apply XP (level-up?)
        → raw affinity + dampened archetype points (evolution?)
        → stat totals, audit ledger row, duel tracking

Everything for one submission commits in a single transaction.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import delete
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from momentum.constants import (
    ARCHETYPE_LABELS,
    STAT_WEIGHTS,
    STATE_STAT,
    StatWeight,
    normalize_stat_name,
)
from momentum.database.engine import get_session
from momentum.database.models import (
    AwardLedgerEntry,
    DailyActivityRecord,
    StatTotal,
    UserProgression,
)
from momentum.engine.archetype import (
    classify_archetype,
    dampen,
    dampening_factor,
    day_deltas,
    volatility_description,
)
from momentum.engine.levels import LevelInfo, check_level_up, compute_level
from momentum.engine.results import (
    ArchetypeEvolutionEvent,
    LevelUpEvent,
    SubmissionResult,
)
from momentum.engine.stats import calculate_stats
from momentum.services.multiplier_service import (
    calculate_multiplier,
    get_active_boosts,
    resolve_stat_boosts,
    utcnow,
)

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from momentum.engine.cache import ConfigCache

logger = logging.getLogger(__name__)

STATS_CATEGORY = "stats"
SUBMIT_ACTION = "submit"


# ---------------------------------------------------------------------------
# Rows
# ---------------------------------------------------------------------------
def get_or_create_progression(
    session: Session, user_id: int, display_name: str | None = None
) -> UserProgression:
    """Fetch or insert a zeroed :class:`UserProgression`."""
    progression = session.get(UserProgression, user_id)
    if progression is None:
        progression = UserProgression(
            user_id=user_id,
            display_name=display_name,
            cumulative_xp=0,
            warrior_affinity=0.0,
            mage_affinity=0.0,
            archetype_warrior=0.0,
            archetype_mage=0.0,
            archetype_templar=0.0,
        )
        session.add(progression)
        session.flush()
    elif display_name:
        progression.display_name = display_name
    return progression


def _merge_daily(
    record: DailyActivityRecord,
    *,
    active: bool | None,
    state: int | None,
    dominant_archetype: str | None,
    chat_engaged: bool | None,
) -> None:
    # Flags only ever turn on; absent values keep what is stored.
    if active:
        record.active = True
    if chat_engaged:
        record.chat_engaged = True
    if state is not None:
        record.state = state
    if dominant_archetype is not None:
        record.dominant_archetype = dominant_archetype


def upsert_daily_record(
    session: Session,
    user_id: int,
    day: date,
    *,
    active: bool | None = None,
    state: int | None = None,
    dominant_archetype: str | None = None,
    chat_engaged: bool | None = None,
) -> DailyActivityRecord:
    """Monotone upsert of the (user, day) record.

    A concurrent insert of the same key is caught in a SAVEPOINT and the
    values are merged into the winner's row instead.
    """
    fields = dict(
        active=active, state=state,
        dominant_archetype=dominant_archetype, chat_engaged=chat_engaged,
    )
    record = session.get(DailyActivityRecord, (user_id, day))
    if record is not None:
        _merge_daily(record, **fields)
        return record

    record = DailyActivityRecord(
        user_id=user_id, day=day, active=False, chat_engaged=False, xp_earned=0,
    )
    _merge_daily(record, **fields)
    try:
        with session.begin_nested():   # SAVEPOINT
            session.add(record)
            session.flush()
    except IntegrityError:
        logger.info("Daily record for user=%d day=%s raced; merging", user_id, day)
        record = session.get(DailyActivityRecord, (user_id, day), populate_existing=True)
        _merge_daily(record, **fields)
    return record


# ---------------------------------------------------------------------------
# XP and affinity writers
# ---------------------------------------------------------------------------
def apply_xp(progression: UserProgression, xp: int) -> LevelUpEvent | None:
    """Add *xp* and report a level-up if the level changed."""
    if xp <= 0:
        return None
    old_xp = progression.cumulative_xp or 0
    progression.cumulative_xp = old_xp + xp
    level_up = check_level_up(old_xp, progression.cumulative_xp)
    if level_up is None:
        return None
    logger.info(
        "User %d levelled up %d → %d (%s)",
        progression.user_id, level_up.old_level, level_up.new_level, level_up.new_class,
    )
    return LevelUpEvent(
        user_id=progression.user_id,
        old_level=level_up.old_level,
        new_level=level_up.new_level,
        old_class=level_up.old_class,
        new_class=level_up.new_class,
    )


def apply_raw_affinity(progression: UserProgression, warrior: float, mage: float) -> None:
    """Raw affinity writer (duel balance)."""
    progression.warrior_affinity = (progression.warrior_affinity or 0.0) + warrior
    progression.mage_affinity = (progression.mage_affinity or 0.0) + mage


def apply_archetype_points(
    progression: UserProgression,
    warrior: float,
    mage: float,
    *,
    total_xp: int | None = None,
) -> ArchetypeEvolutionEvent | None:
    """Dampened archetype writer (label).

    *total_xp* selects the dampening factor; defaults to the user's
    current XP.  Returns an evolution event when the label moves between
    two real archetypes.
    """
    total_xp = progression.cumulative_xp if total_xp is None else total_xp
    factor = dampening_factor(total_xp)
    before = classify_archetype(progression.archetype_warrior, progression.archetype_mage)

    points = dampen(day_deltas(warrior, mage), total_xp)
    progression.archetype_warrior = (progression.archetype_warrior or 0.0) + points.warrior
    progression.archetype_mage = (progression.archetype_mage or 0.0) + points.mage
    progression.archetype_templar = (progression.archetype_templar or 0.0) + points.templar

    after = classify_archetype(progression.archetype_warrior, progression.archetype_mage)
    if before == after or "none" in (before, after):
        return None
    logger.info(
        "User %d archetype %s → %s (dampening %.3f)",
        progression.user_id, before, after, factor,
    )
    return ArchetypeEvolutionEvent(
        user_id=progression.user_id,
        old_archetype=before.value,
        new_archetype=after.value,
        dampening=factor,
    )


def _bump_stat_totals(session: Session, user_id: int, counts: Mapping[str, int]) -> None:
    for stat, count in counts.items():
        if count <= 0:
            continue
        row = session.get(StatTotal, (user_id, stat))
        if row is None:
            session.add(StatTotal(user_id=user_id, stat=stat, total=count))
        else:
            row.total += count


# ---------------------------------------------------------------------------
# Submission
# ---------------------------------------------------------------------------
def _normalise(stats: Mapping[str, int]) -> tuple[dict[str, int], list[str]]:
    counts: dict[str, int] = {}
    skipped: list[str] = []
    for raw_name, value in stats.items():
        count = int(value or 0)
        # Checked per entry so an alias can't net out a negative
        if count < 0:
            raise ValueError(f"Negative count for stat {raw_name!r}: {count}")
        name = normalize_stat_name(raw_name)
        if name is None:
            skipped.append(raw_name)
            continue
        counts[name] = counts.get(name, 0) + count
    if skipped:
        logger.warning("Ignoring unknown stats: %s", ", ".join(skipped))
    return counts, skipped


def submit_stats_in_session(
    session: Session,
    user_id: int,
    day: date,
    stats: Mapping[str, int],
    *,
    state: int | None = None,
    display_name: str | None = None,
    faction: str | None = None,
    now: datetime | None = None,
    cache: ConfigCache | None = None,
    weights: Mapping[str, StatWeight] = STAT_WEIGHTS,
) -> SubmissionResult:
    """Run the submission pipeline inside an existing session."""
    now = now or utcnow()
    counts, skipped = _normalise(stats)
    if state is None and counts.get(STATE_STAT):
        state = counts[STATE_STAT]
    if state is not None:
        state = max(1, min(10, int(state)))

    breakdown = calculate_stats(counts, weights)
    dominant = classify_archetype(breakdown.warrior_delta, breakdown.mage_delta).value
    active = breakdown.base_xp > 0

    progression = get_or_create_progression(session, user_id, display_name)
    if faction is not None:
        progression.faction = faction

    record = upsert_daily_record(
        session, user_id, day,
        active=active,
        state=state,
        dominant_archetype=dominant if active else None,
    )

    mult = calculate_multiplier(
        session, user_id, day,
        state=record.state,
        dominant_archetype=record.dominant_archetype,
        active=record.active,
        faction=faction,
        now=now,
        cache=cache,
    )

    boosts = resolve_stat_boosts(get_active_boosts(session, user_id, now))
    boosted_xp = sum(
        xp * boosts.get(stat, 1.0) for stat, xp in (breakdown.per_stat_xp or {}).items()
    )
    final_xp = int(math.floor(boosted_xp * mult.multiplier))

    xp_before = progression.cumulative_xp or 0
    level_up = apply_xp(progression, final_xp)
    apply_raw_affinity(progression, breakdown.warrior_delta, breakdown.mage_delta)
    evolution = apply_archetype_points(
        progression, breakdown.warrior_delta, breakdown.mage_delta, total_xp=xp_before,
    )

    record.xp_earned = (record.xp_earned or 0) + final_xp
    _bump_stat_totals(session, user_id, counts)

    session.add(AwardLedgerEntry(
        user_id=user_id,
        category=STATS_CATEGORY,
        action=SUBMIT_ACTION,
        xp_earned=final_xp,
        day=day,
        claim_key=None,
        metadata_={
            "stats": counts,
            "base_xp": breakdown.base_xp,
            "multiplier": mult.multiplier,
            "boosts": boosts,
        },
        timestamp=now,
    ))
    session.flush()

    if final_xp > 0:
        from momentum.services.duel_service import track_submission  # avoid circular

        track_submission(
            session, user_id, counts, breakdown, final_xp, weights=weights, now=now,
        )

    logger.info(
        "Stats user=%d day=%s base=%d final=%d x%.3f",
        user_id, day, breakdown.base_xp, final_xp, mult.multiplier,
    )
    return SubmissionResult(
        base_xp=breakdown.base_xp,
        final_xp=final_xp,
        multiplier=mult.multiplier,
        components=mult.components,
        warrior_delta=breakdown.warrior_delta,
        mage_delta=breakdown.mage_delta,
        dominant_archetype=dominant,
        level_up=level_up,
        archetype_evolution=evolution,
        skipped_stats=skipped,
    )


def submit_stats(
    engine: Engine,
    user_id: int,
    day: date,
    stats: Mapping[str, int],
    **kwargs,
) -> SubmissionResult:
    """Submit one day's stats for *user_id* and commit.

    Keyword arguments are forwarded to :func:`submit_stats_in_session`.
    Negative counts raise :class:`ValueError` before anything is written.
    """
    with get_session(engine) as session:
        result = submit_stats_in_session(session, user_id, day, stats, **kwargs)
    return result


def record_chat_engagement(engine: Engine, user_id: int, day: date) -> None:
    """Flag *day* as chat-engaged for *user_id*."""
    with get_session(engine) as session:
        get_or_create_progression(session, user_id)
        upsert_daily_record(session, user_id, day, chat_engaged=True)


# ---------------------------------------------------------------------------
# Read side
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class ProgressionSnapshot:
    user_id: int
    display_name: str | None
    cumulative_xp: int
    level: LevelInfo
    warrior_affinity: float
    mage_affinity: float
    archetype: str
    archetype_label: str
    dampening: float
    volatility: str


def get_progression_snapshot(engine: Engine, user_id: int) -> ProgressionSnapshot | None:
    with Session(engine) as session:
        progression = session.get(UserProgression, user_id)
        if progression is None:
            return None
        archetype = classify_archetype(progression.archetype_warrior, progression.archetype_mage)
        factor = dampening_factor(progression.cumulative_xp)
        return ProgressionSnapshot(
            user_id=progression.user_id,
            display_name=progression.display_name,
            cumulative_xp=progression.cumulative_xp,
            level=compute_level(progression.cumulative_xp),
            warrior_affinity=progression.warrior_affinity,
            mage_affinity=progression.mage_affinity,
            archetype=archetype.value,
            archetype_label=ARCHETYPE_LABELS[archetype.value],
            dampening=factor,
            volatility=volatility_description(factor),
        )


# ---------------------------------------------------------------------------
# Admin
# ---------------------------------------------------------------------------
def reset_progression(engine: Engine, user_id: int) -> bool:
    """Zero a user's XP and affinities and drop their daily records and
    stat totals.  The award ledger is left intact.

    Returns False when the user has no progression row.
    """
    with get_session(engine) as session:
        progression = session.get(UserProgression, user_id)
        if progression is None:
            return False
        progression.cumulative_xp = 0
        progression.warrior_affinity = 0.0
        progression.mage_affinity = 0.0
        progression.archetype_warrior = 0.0
        progression.archetype_mage = 0.0
        progression.archetype_templar = 0.0
        session.execute(delete(DailyActivityRecord).where(DailyActivityRecord.user_id == user_id))
        session.execute(delete(StatTotal).where(StatTotal.user_id == user_id))
    logger.info("Progression reset for user %d", user_id)
    return True
