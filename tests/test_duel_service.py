"""
tests/test_duel_service.py — Balanced Duel Lifecycle
=====================================================
"""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import NOW, TODAY, load_user, make_user
from momentum.database.models import Duel, DuelStat, DuelStatus
from momentum.engine.results import FailureReason
from momentum.services.duel_service import (
    accept_duel,
    check_expired_duels,
    complete_duel,
    create_duel,
    decline_duel,
    get_duel_history,
    get_duel_record,
)
from momentum.services.progression_service import submit_stats

LATER = NOW + timedelta(minutes=10)
OVER = NOW + timedelta(hours=25)


def _get_duel(engine, duel_id: int) -> Duel:
    with Session(engine) as session:
        duel = session.get(Duel, duel_id)
        session.expunge(duel)
        return duel


def _active_duel(engine, *, c=(58, 42), o=(58, 42), c_xp=1_000, o_xp=1_000) -> int:
    make_user(engine, 1, xp=c_xp, warrior=c[0], mage=c[1])
    make_user(engine, 2, xp=o_xp, warrior=o[0], mage=o[1])
    created = create_duel(engine, 1, 2, now=NOW)
    assert created.success
    assert accept_duel(engine, created.duel_id, 2, now=LATER).success
    return created.duel_id


class TestCreate:
    def test_self_duel(self, db_engine):
        make_user(db_engine, 1)
        assert create_duel(db_engine, 1, 1, now=NOW).error is FailureReason.SELF_DUEL

    def test_missing_player(self, db_engine):
        make_user(db_engine, 1)
        assert create_duel(db_engine, 1, 99, now=NOW).error is FailureReason.PLAYER_NOT_FOUND

    def test_snapshots_taken_at_creation(self, db_engine):
        make_user(db_engine, 1, xp=1_500, warrior=10, mage=12)
        make_user(db_engine, 2, xp=300, warrior=4, mage=4)
        result = create_duel(db_engine, 1, 2, now=NOW)
        duel = _get_duel(db_engine, result.duel_id)
        assert duel.status == DuelStatus.PENDING
        assert (duel.challenger_start_xp, duel.challenger_start_mage) == (1_500, 12)
        assert duel.opponent_start_warrior == 4

    def test_open_duel_blocks_either_player(self, db_engine):
        for uid in (1, 2, 3):
            make_user(db_engine, uid)
        assert create_duel(db_engine, 1, 2, now=NOW).success
        assert create_duel(db_engine, 3, 2, now=NOW).error is FailureReason.DUEL_EXISTS
        assert create_duel(db_engine, 1, 3, now=NOW).error is FailureReason.DUEL_EXISTS

    def test_lapsed_challenge_does_not_block(self, db_engine):
        for uid in (1, 2, 3):
            make_user(db_engine, uid)
        assert create_duel(db_engine, 1, 2, now=NOW).success
        assert create_duel(db_engine, 1, 3, now=NOW + timedelta(hours=2)).success


class TestAcceptDecline:
    def _pending(self, engine) -> int:
        make_user(engine, 1)
        make_user(engine, 2)
        return create_duel(engine, 1, 2, now=NOW).duel_id

    def test_only_opponent_may_accept(self, db_engine):
        duel_id = self._pending(db_engine)
        assert accept_duel(db_engine, duel_id, 1, now=LATER).error is FailureReason.NOT_FOUND

    def test_unknown_duel(self, db_engine):
        assert accept_duel(db_engine, 12345, 2, now=LATER).error is FailureReason.NOT_FOUND

    def test_accept(self, db_engine):
        duel_id = self._pending(db_engine)
        result = accept_duel(db_engine, duel_id, 2, now=LATER)
        assert result.success
        assert _get_duel(db_engine, duel_id).status == DuelStatus.ACTIVE

    def test_accept_after_window_expires_challenge(self, db_engine):
        duel_id = self._pending(db_engine)
        result = accept_duel(db_engine, duel_id, 2, now=NOW + timedelta(minutes=61))
        assert result.error is FailureReason.CHALLENGE_EXPIRED
        assert _get_duel(db_engine, duel_id).status == DuelStatus.DECLINED
        again = accept_duel(db_engine, duel_id, 2, now=NOW + timedelta(minutes=62))
        assert again.error is FailureReason.NOT_PENDING

    def test_decline(self, db_engine):
        duel_id = self._pending(db_engine)
        assert decline_duel(db_engine, duel_id, 2, now=LATER).success
        assert _get_duel(db_engine, duel_id).status == DuelStatus.DECLINED


class TestTracking:
    def test_submission_logged_and_penalty_is_sticky(self, db_engine):
        duel_id = _active_duel(db_engine, c=(50, 50))
        # +60 warrior tips the challenger out of balance
        submit_stats(db_engine, 1, TODAY, {"Approaches": 20}, now=NOW + timedelta(hours=1))
        assert _get_duel(db_engine, duel_id).challenger_balance_penalty is True

        # Rebalancing afterwards does not clear it
        submit_stats(db_engine, 1, TODAY, {"SBMM Meditation": 7}, now=NOW + timedelta(hours=2))
        assert _get_duel(db_engine, duel_id).challenger_balance_penalty is True

        with Session(db_engine) as session:
            stats = session.scalars(
                select(DuelStat).where(DuelStat.duel_id == duel_id).order_by(DuelStat.id)
            ).all()
            assert [s.stat_name for s in stats] == ["Approaches", "SBMM Meditation"]
            assert stats[0].xp_earned == 2_000
            assert stats[0].warrior_change == 60

    def test_no_tracking_without_active_duel(self, db_engine):
        make_user(db_engine, 1)
        submit_stats(db_engine, 1, TODAY, {"Approaches": 1}, now=NOW)
        with Session(db_engine) as session:
            assert session.scalars(select(DuelStat)).all() == []


class TestCompletion:
    def test_more_xp_wins(self, db_engine):
        duel_id = _active_duel(db_engine)
        # 59 / 46 stays balanced without being perfect
        submit_stats(db_engine, 1, TODAY, {"Numbers": 1, "Grounding": 1}, now=NOW + timedelta(hours=1))
        result = complete_duel(db_engine, duel_id, now=OVER)
        assert result.winner_id == 1
        assert result.challenger_gain == 150
        assert not result.perfect_balance_bonus
        assert result.bonus_xp == 500
        assert load_user(db_engine, 1).cumulative_xp == 1_000 + 150 + 500

    def test_tie_goes_to_opponent_with_perfect_bonus(self, db_engine):
        duel_id = _active_duel(db_engine, c=(50, 50))
        result = complete_duel(db_engine, duel_id, now=OVER)
        assert result.winner_id == 2
        assert result.perfect_balance_bonus
        assert result.bonus_xp == 750
        assert load_user(db_engine, 2).cumulative_xp == 1_750

    def test_payout_level_up_is_reported(self, db_engine):
        duel_id = _active_duel(db_engine, c=(50, 50), o=(50, 50), c_xp=400, o_xp=400)
        result = check_expired_duels(db_engine, now=OVER)[0]
        assert result.duel_id == duel_id
        assert result.winner_id == 2
        assert result.bonus_xp == 750
        # 400 → 900 → 1150: one crossing, at 500
        assert [(e.user_id, e.old_level, e.new_level) for e in result.level_ups] == [(2, 1, 2)]
        assert load_user(db_engine, 2).cumulative_xp == 1_150

    def test_no_level_up_without_crossing(self, db_engine):
        duel_id = _active_duel(db_engine, c=(50, 50))
        assert complete_duel(db_engine, duel_id, now=OVER).level_ups == []

    def test_penalty_forfeits(self, db_engine):
        duel_id = _active_duel(db_engine, c=(50, 50))
        submit_stats(db_engine, 1, TODAY, {"Approaches": 20}, now=NOW + timedelta(hours=1))
        result = complete_duel(db_engine, duel_id, now=OVER)
        assert result.challenger_gain == 2_000
        assert result.challenger_penalty
        assert result.winner_id == 2

    def test_both_unbalanced_is_draw(self, db_engine):
        duel_id = _active_duel(db_engine, c=(100, 0), o=(0, 100))
        result = complete_duel(db_engine, duel_id, now=OVER)
        assert result.is_draw
        assert result.winner_id is None
        assert result.bonus_xp == 0
        duel = _get_duel(db_engine, duel_id)
        assert duel.status == DuelStatus.COMPLETED
        assert duel.challenger_final_warrior == 100

    def test_complete_requires_active(self, db_engine):
        make_user(db_engine, 1)
        make_user(db_engine, 2)
        duel_id = create_duel(db_engine, 1, 2, now=NOW).duel_id
        assert complete_duel(db_engine, duel_id, now=OVER).error is FailureReason.NOT_ACTIVE
        assert complete_duel(db_engine, 999, now=OVER).error is FailureReason.NOT_FOUND


class TestExpirySweep:
    def test_sweep(self, db_engine):
        active_id = _active_duel(db_engine)
        make_user(db_engine, 3)
        make_user(db_engine, 4)
        pending_id = create_duel(db_engine, 3, 4, now=NOW).duel_id

        assert check_expired_duels(db_engine, now=NOW + timedelta(hours=2)) == []
        assert _get_duel(db_engine, pending_id).status == DuelStatus.DECLINED

        results = check_expired_duels(db_engine, now=OVER)
        assert [r.duel_id for r in results] == [active_id]
        assert _get_duel(db_engine, active_id).status == DuelStatus.COMPLETED

        assert check_expired_duels(db_engine, now=OVER + timedelta(hours=1)) == []


class TestHistory:
    def test_record_and_history(self, db_engine):
        duel_id = _active_duel(db_engine)
        complete_duel(db_engine, duel_id, now=OVER)
        assert get_duel_record(db_engine, 2).wins == 1
        assert get_duel_record(db_engine, 1).losses == 1
        assert [d.id for d in get_duel_history(db_engine, 1)] == [duel_id]
        assert get_duel_history(db_engine, 3) == []
