"""
momentum.services.duel_service — Balanced XP Duels
===================================================

Lifecycle::

    create (pending) ──accept──▶ active ──expiry sweep──▶ completed
           │                                   ▲
           └──decline / 1h lapse──▶ declined   └── complete_duel()

Both participants' XP and raw affinities are snapshotted at creation.
While a duel is active every XP-earning submission is logged as a
:class:`DuelStat` and re-checks the submitter's balance; a breach sets a
penalty flag that is never cleared.  See :mod:`momentum.engine.balance`
for the completion rules.
"""

from __future__ import annotations

import logging
import math
from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import TYPE_CHECKING

from sqlalchemy import case, func, or_, select
from sqlalchemy.orm import Session

from momentum.constants import STAT_WEIGHTS, StatWeight
from momentum.database.engine import get_session
from momentum.database.models import Duel, DuelStat, DuelStatus, UserProgression
from momentum.engine.balance import is_balanced, is_perfect_balance, resolve_duel_outcome
from momentum.engine.results import DuelResult, FailureReason, LevelUpEvent
from momentum.services.economy_service import award_in_session
from momentum.services.multiplier_service import as_utc, utcnow

if TYPE_CHECKING:
    from sqlalchemy import Engine

    from momentum.engine.cache import ConfigCache
    from momentum.engine.stats import StatBreakdown

logger = logging.getLogger(__name__)

DUEL_DURATION = timedelta(hours=24)
ACCEPT_WINDOW = timedelta(hours=1)

DUEL_CATEGORY = "duels"
WIN_ACTION = "winDuel"
PERFECT_ACTION = "perfectBalance"

_OPEN_STATUSES = (DuelStatus.PENDING.value, DuelStatus.ACTIVE.value)


def _involving(*user_ids: int):
    clauses = []
    for uid in user_ids:
        clauses.extend((Duel.challenger_id == uid, Duel.opponent_id == uid))
    return or_(*clauses)


def _durations(cache: ConfigCache | None) -> tuple[timedelta, timedelta]:
    if cache is None:
        return DUEL_DURATION, ACCEPT_WINDOW
    return (
        timedelta(hours=cache.get_int("duels.duration_hours", 24)),
        timedelta(minutes=cache.get_int("duels.accept_window_minutes", 60)),
    )


# ---------------------------------------------------------------------------
# Queries
# ---------------------------------------------------------------------------
def get_open_duel(
    session: Session,
    *user_ids: int,
    now: datetime | None = None,
    accept_window: timedelta = ACCEPT_WINDOW,
) -> Duel | None:
    """A live pending or active duel involving any of *user_ids*.

    Lapsed challenges and overdue active duels don't count.
    """
    now = now or utcnow()
    return session.scalar(
        select(Duel).where(
            _involving(*user_ids),
            or_(
                (Duel.status == DuelStatus.PENDING.value)
                & (Duel.created_at > now - accept_window),
                (Duel.status == DuelStatus.ACTIVE.value) & (Duel.end_time > now),
            ),
        ).limit(1)
    )


def get_active_duel_for_user(
    session: Session, user_id: int, now: datetime | None = None
) -> Duel | None:
    now = now or utcnow()
    return session.scalar(
        select(Duel).where(
            _involving(user_id),
            Duel.status == DuelStatus.ACTIVE.value,
            Duel.end_time > now,
        ).limit(1)
    )


# ---------------------------------------------------------------------------
# Lifecycle
# ---------------------------------------------------------------------------
def create_duel(
    engine: Engine,
    challenger_id: int,
    opponent_id: int,
    *,
    now: datetime | None = None,
    cache: ConfigCache | None = None,
) -> DuelResult:
    """Challenge *opponent_id*.  Both users must already have progression."""
    now = now or utcnow()
    duration, accept_window = _durations(cache)

    if challenger_id == opponent_id:
        return DuelResult.fail(FailureReason.SELF_DUEL)

    with get_session(engine) as session:
        challenger = session.get(UserProgression, challenger_id)
        opponent = session.get(UserProgression, opponent_id)
        if challenger is None or opponent is None:
            return DuelResult.fail(FailureReason.PLAYER_NOT_FOUND)

        if get_open_duel(
            session, challenger_id, opponent_id, now=now, accept_window=accept_window
        ) is not None:
            return DuelResult.fail(FailureReason.DUEL_EXISTS)

        duel = Duel(
            challenger_id=challenger_id,
            opponent_id=opponent_id,
            status=DuelStatus.PENDING.value,
            created_at=now,
            start_time=now,
            end_time=now + duration,
            challenger_start_xp=challenger.cumulative_xp,
            challenger_start_warrior=challenger.warrior_affinity,
            challenger_start_mage=challenger.mage_affinity,
            opponent_start_xp=opponent.cumulative_xp,
            opponent_start_warrior=opponent.warrior_affinity,
            opponent_start_mage=opponent.mage_affinity,
            challenger_balance_penalty=False,
            opponent_balance_penalty=False,
        )
        session.add(duel)
        session.flush()
        duel_id = duel.id

    logger.info("Duel %d created: %d vs %d", duel_id, challenger_id, opponent_id)
    return DuelResult(
        success=True,
        duel_id=duel_id,
        status=DuelStatus.PENDING.value,
        challenger_id=challenger_id,
        opponent_id=opponent_id,
    )


def _answer_challenge(
    engine: Engine,
    duel_id: int,
    user_id: int,
    *,
    accept: bool,
    now: datetime | None,
    cache: ConfigCache | None,
) -> DuelResult:
    now = now or utcnow()
    _, accept_window = _durations(cache)

    with get_session(engine) as session:
        duel = session.get(Duel, duel_id)
        if duel is None or duel.opponent_id != user_id:
            return DuelResult.fail(FailureReason.NOT_FOUND, duel_id)
        if duel.status != DuelStatus.PENDING.value:
            return DuelResult.fail(FailureReason.NOT_PENDING, duel_id)

        if not accept:
            duel.status = DuelStatus.DECLINED.value
            logger.info("Duel %d declined by %d", duel_id, user_id)
            return DuelResult(success=True, duel_id=duel_id, status=DuelStatus.DECLINED.value)

        if now - as_utc(duel.created_at) > accept_window:
            duel.status = DuelStatus.DECLINED.value
            logger.info("Duel %d challenge lapsed before acceptance", duel_id)
            return DuelResult.fail(FailureReason.CHALLENGE_EXPIRED, duel_id)

        duel.status = DuelStatus.ACTIVE.value

    logger.info("Duel %d accepted by %d", duel_id, user_id)
    return DuelResult(success=True, duel_id=duel_id, status=DuelStatus.ACTIVE.value)


def accept_duel(
    engine: Engine,
    duel_id: int,
    user_id: int,
    *,
    now: datetime | None = None,
    cache: ConfigCache | None = None,
) -> DuelResult:
    """Only the opponent may accept, and only within the accept window."""
    return _answer_challenge(engine, duel_id, user_id, accept=True, now=now, cache=cache)


def decline_duel(
    engine: Engine,
    duel_id: int,
    user_id: int,
    *,
    now: datetime | None = None,
    cache: ConfigCache | None = None,
) -> DuelResult:
    return _answer_challenge(engine, duel_id, user_id, accept=False, now=now, cache=cache)


# ---------------------------------------------------------------------------
# Tracking
# ---------------------------------------------------------------------------
def _flag_if_unbalanced(duel: Duel, user_id: int, warrior: float, mage: float) -> bool:
    if is_balanced(warrior, mage):
        return False
    if user_id == duel.challenger_id:
        duel.challenger_balance_penalty = True
    else:
        duel.opponent_balance_penalty = True
    return True


def track_duel_stat(
    session: Session,
    user_id: int,
    stat_name: str,
    stat_value: int,
    xp_earned: int,
    warrior_change: float,
    mage_change: float,
    *,
    now: datetime | None = None,
) -> Duel | None:
    """Log one stat against the user's active duel and re-check balance.

    Returns the duel, or None when the user isn't dueling.
    """
    duel = get_active_duel_for_user(session, user_id, now)
    if duel is None:
        return None

    session.add(DuelStat(
        duel_id=duel.id,
        user_id=user_id,
        stat_name=stat_name,
        stat_value=stat_value,
        xp_earned=xp_earned,
        warrior_change=warrior_change or 0.0,
        mage_change=mage_change or 0.0,
    ))

    progression = session.get(UserProgression, user_id)
    if progression is not None and _flag_if_unbalanced(
        duel, user_id, progression.warrior_affinity, progression.mage_affinity
    ):
        logger.warning("Duel %d balance violation by %d", duel.id, user_id)
    session.flush()
    return duel


def track_submission(
    session: Session,
    user_id: int,
    counts: Mapping[str, int],
    breakdown: StatBreakdown,
    final_xp: int,
    *,
    weights: Mapping[str, StatWeight] = STAT_WEIGHTS,
    now: datetime | None = None,
) -> Duel | None:
    """Fan a whole submission out into per-stat duel rows.

    Final XP is split across stats in proportion to their base XP.
    """
    if get_active_duel_for_user(session, user_id, now) is None:
        return None

    per_stat = breakdown.per_stat_xp or {}
    scale = final_xp / breakdown.base_xp if breakdown.base_xp else 0.0
    duel = None
    for stat, xp in per_stat.items():
        weight = weights[stat]
        count = counts[stat]
        duel = track_duel_stat(
            session, user_id, stat, count,
            int(math.floor(xp * scale)),
            weight.warrior * count,
            weight.mage * count,
            now=now,
        )
    return duel


# ---------------------------------------------------------------------------
# Completion
# ---------------------------------------------------------------------------
def complete_duel_in_session(
    session: Session,
    duel_id: int,
    *,
    now: datetime | None = None,
    cache: ConfigCache | None = None,
) -> DuelResult:
    now = now or utcnow()
    duel = session.get(Duel, duel_id)
    if duel is None:
        return DuelResult.fail(FailureReason.NOT_FOUND, duel_id)
    if duel.status != DuelStatus.ACTIVE.value:
        return DuelResult.fail(FailureReason.NOT_ACTIVE, duel_id)

    challenger = session.get(UserProgression, duel.challenger_id)
    opponent = session.get(UserProgression, duel.opponent_id)

    def _final(p: UserProgression | None) -> tuple[int, float, float]:
        if p is None:
            return 0, 0.0, 0.0
        return p.cumulative_xp, p.warrior_affinity, p.mage_affinity

    c_xp, c_w, c_m = _final(challenger)
    o_xp, o_w, o_m = _final(opponent)

    # Final balance check; flags stay sticky
    _flag_if_unbalanced(duel, duel.challenger_id, c_w, c_m)
    _flag_if_unbalanced(duel, duel.opponent_id, o_w, o_m)

    challenger_gain = c_xp - (duel.challenger_start_xp or 0)
    opponent_gain = o_xp - (duel.opponent_start_xp or 0)
    outcome = resolve_duel_outcome(
        challenger_id=duel.challenger_id,
        opponent_id=duel.opponent_id,
        challenger_gain=challenger_gain,
        opponent_gain=opponent_gain,
        challenger_penalty=duel.challenger_balance_penalty,
        opponent_penalty=duel.opponent_balance_penalty,
    )
    # Either participant's perfect balance earns the winner the bonus.
    perfect = is_perfect_balance(c_w, c_m) or is_perfect_balance(o_w, o_m)

    duel.status = DuelStatus.COMPLETED.value
    duel.winner_id = outcome.winner_id
    duel.completed_at = now
    duel.challenger_final_xp = c_xp
    duel.challenger_final_warrior = c_w
    duel.challenger_final_mage = c_m
    duel.opponent_final_xp = o_xp
    duel.opponent_final_warrior = o_w
    duel.opponent_final_mage = o_m
    session.flush()

    bonus_xp = 0
    level_ups: list[LevelUpEvent | None] = []
    if outcome.winner_id is not None:
        win = award_in_session(
            session, outcome.winner_id, DUEL_CATEGORY, WIN_ACTION,
            {"duel_id": duel.id}, now=now, cache=cache,
        )
        bonus_xp += win.xp
        level_ups.append(win.level_up)
        if perfect:
            extra = award_in_session(
                session, outcome.winner_id, DUEL_CATEGORY, PERFECT_ACTION,
                {"duel_id": duel.id}, now=now, cache=cache,
            )
            bonus_xp += extra.xp
            level_ups.append(extra.level_up)

    logger.info(
        "Duel %d completed: winner=%s (%s) gains %d/%d",
        duel.id, outcome.winner_id, outcome.reason, challenger_gain, opponent_gain,
    )
    return DuelResult(
        success=True,
        duel_id=duel.id,
        status=duel.status,
        winner_id=outcome.winner_id,
        is_draw=outcome.is_draw,
        challenger_id=duel.challenger_id,
        opponent_id=duel.opponent_id,
        challenger_gain=challenger_gain,
        opponent_gain=opponent_gain,
        challenger_penalty=duel.challenger_balance_penalty,
        opponent_penalty=duel.opponent_balance_penalty,
        perfect_balance_bonus=perfect and outcome.winner_id is not None,
        bonus_xp=bonus_xp,
        level_ups=[event for event in level_ups if event is not None],
    )


def complete_duel(
    engine: Engine,
    duel_id: int,
    *,
    now: datetime | None = None,
    cache: ConfigCache | None = None,
) -> DuelResult:
    """Resolve an active duel and pay the winner."""
    with get_session(engine) as session:
        result = complete_duel_in_session(session, duel_id, now=now, cache=cache)
    return result


def check_expired_duels(
    engine: Engine,
    *,
    now: datetime | None = None,
    cache: ConfigCache | None = None,
) -> list[DuelResult]:
    """Complete overdue active duels and close lapsed challenges.

    Returns the completion results for announcement.
    """
    now = now or utcnow()
    _, accept_window = _durations(cache)
    results: list[DuelResult] = []

    with get_session(engine) as session:
        lapsed = session.scalars(
            select(Duel).where(
                Duel.status == DuelStatus.PENDING.value,
                Duel.created_at <= now - accept_window,
            )
        ).all()
        for duel in lapsed:
            duel.status = DuelStatus.DECLINED.value
        if lapsed:
            logger.info("Closed %d lapsed duel challenges", len(lapsed))

        expired_ids = session.scalars(
            select(Duel.id).where(
                Duel.status == DuelStatus.ACTIVE.value,
                Duel.end_time <= now,
            ).order_by(Duel.end_time)
        ).all()

    for duel_id in expired_ids:
        results.append(complete_duel(engine, duel_id, now=now, cache=cache))
    return results


# ---------------------------------------------------------------------------
# History
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class DuelRecord:
    wins: int = 0
    losses: int = 0
    draws: int = 0


def get_duel_history(engine: Engine, user_id: int, limit: int = 10) -> list[Duel]:
    """Most recent completed duels for *user_id*, newest first (detached)."""
    with Session(engine) as session:
        duels = session.scalars(
            select(Duel)
            .where(_involving(user_id), Duel.status == DuelStatus.COMPLETED.value)
            .order_by(Duel.completed_at.desc())
            .limit(limit)
        ).all()
        for duel in duels:
            session.expunge(duel)
    return list(duels)


def get_duel_record(engine: Engine, user_id: int) -> DuelRecord:
    with Session(engine) as session:
        row = session.execute(
            select(
                func.sum(case((Duel.winner_id == user_id, 1), else_=0)),
                func.sum(case(
                    ((Duel.winner_id.is_not(None)) & (Duel.winner_id != user_id), 1),
                    else_=0,
                )),
                func.sum(case((Duel.winner_id.is_(None), 1), else_=0)),
            ).where(_involving(user_id), Duel.status == DuelStatus.COMPLETED.value)
        ).one()
    wins, losses, draws = (int(v or 0) for v in row)
    return DuelRecord(wins=wins, losses=losses, draws=draws)
