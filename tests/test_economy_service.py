"""
tests/test_economy_service.py — Ledger-Gated Secondary XP
==========================================================

Covers validation, one-time / cooldown / daily-cap gating, the
claim-key race guard, multiplier application and performance unlocks.
"""

from __future__ import annotations

from datetime import timedelta

from sqlalchemy import select
from sqlalchemy.orm import Session

from conftest import NOW, TODAY, load_user, make_user
from momentum.database.models import AwardLedgerEntry, DailyActivityRecord, MultiplierBoost
from momentum.engine.results import FailureReason
from momentum.services import economy_service
from momentum.services.economy_service import (
    award_secondary_xp,
    count_for_day,
    has_claimed,
    last_used_at,
    purge_expired_boosts,
)


def _award(engine, action_path: str, *, at=NOW, user_id: int = 1, metadata=None):
    category, action = action_path.split(".")
    return award_secondary_xp(engine, user_id, category, action, metadata, now=at)


class TestValidation:
    def test_unknown_category(self, db_engine):
        result = _award(db_engine, "bogus.submitEntry")
        assert not result.success
        assert result.error is FailureReason.INVALID_ACTION

    def test_unknown_action(self, db_engine):
        result = _award(db_engine, "journal.bogus")
        assert result.error is FailureReason.INVALID_ACTION

    def test_failure_message(self):
        assert FailureReason.ON_COOLDOWN.message == "That action is on cooldown."


class TestGating:
    def test_one_time(self, db_engine):
        assert _award(db_engine, "course.watchFirstVideo").success
        again = _award(db_engine, "course.watchFirstVideo", at=NOW + timedelta(days=30))
        assert again.error is FailureReason.ALREADY_CLAIMED

    def test_cooldown_reports_remaining(self, db_engine):
        assert _award(db_engine, "chatEngagement.textMessage").success
        result = _award(db_engine, "chatEngagement.textMessage", at=NOW + timedelta(seconds=60))
        assert result.error is FailureReason.ON_COOLDOWN
        assert result.remaining_seconds == 240

    def test_cooldown_elapses(self, db_engine):
        assert _award(db_engine, "chatEngagement.textMessage").success
        assert _award(db_engine, "chatEngagement.textMessage", at=NOW + timedelta(seconds=300)).success

    def test_daily_cap(self, db_engine):
        for hours in (0, 2, 4):
            assert _award(db_engine, "journal.submitEntry", at=NOW + timedelta(hours=hours)).success
        capped = _award(db_engine, "journal.submitEntry", at=NOW + timedelta(hours=6))
        assert capped.error is FailureReason.DAILY_LIMIT_REACHED
        assert _award(db_engine, "journal.submitEntry", at=NOW + timedelta(days=1)).success

    def test_zero_xp_action_still_recorded(self, db_engine):
        result = _award(db_engine, "textingPractice.completeScenario")
        assert result.success
        assert result.xp == 0
        with Session(db_engine) as session:
            assert has_claimed(session, 1, "textingPractice", "completeScenario")

    def test_ledger_queries(self, db_engine):
        _award(db_engine, "barbie.updateWithDate")
        _award(db_engine, "barbie.updateWithDate", at=NOW + timedelta(hours=1))
        with Session(db_engine) as session:
            assert count_for_day(session, 1, "barbie", "updateWithDate", TODAY) == 2
            assert count_for_day(session, 1, "barbie", "updateWithDate", TODAY + timedelta(days=1)) == 0
            assert last_used_at(session, 1, "barbie", "updateWithDate") == NOW + timedelta(hours=1)
            assert last_used_at(session, 2, "barbie", "updateWithDate") is None


class TestConcurrentClaims:
    def test_daily_slot_collision(self, db_engine, monkeypatch):
        assert _award(db_engine, "barbie.updateWithDate").success
        # Simulate a second request that read the count before the first committed
        monkeypatch.setattr(economy_service, "count_for_day", lambda *args, **kwargs: 0)
        result = _award(db_engine, "barbie.updateWithDate", at=NOW + timedelta(minutes=1))
        assert result.error is FailureReason.DAILY_LIMIT_REACHED
        assert load_user(db_engine, 1).cumulative_xp == 100

    def test_one_time_collision(self, db_engine, monkeypatch):
        assert _award(db_engine, "course.completeAllModules").success
        monkeypatch.setattr(economy_service, "has_claimed", lambda *args, **kwargs: False)
        result = _award(db_engine, "course.completeAllModules")
        assert result.error is FailureReason.ALREADY_CLAIMED
        with Session(db_engine) as session:
            rows = session.scalars(
                select(AwardLedgerEntry).where(AwardLedgerEntry.action == "completeAllModules")
            ).all()
            assert len(rows) == 1


class TestXpApplication:
    def test_multiplier_applies_half_up(self, db_engine):
        make_user(db_engine, 1)
        with Session(db_engine) as session:
            for offset in range(1, 8):
                session.add(DailyActivityRecord(
                    user_id=1, day=TODAY - timedelta(days=offset),
                    active=True, chat_engaged=False, xp_earned=0,
                ))
            session.commit()
        result = _award(db_engine, "wins.shareWin")
        # 7-day streak → x1.05; 52.5 rounds up
        assert result.xp == 53
        assert load_user(db_engine, 1).cumulative_xp == 53

    def test_level_up(self, db_engine):
        result = _award(db_engine, "course.completeAllModules")
        assert result.xp == 2000
        assert result.level_up is not None
        assert result.level_up.new_level == 4


class TestUnlocks:
    def test_perfect_score_tier(self, db_engine):
        result = _award(db_engine, "textingPractice.completeScenario", metadata={"score": 97})
        assert result.unlocked.name == "perfect_score"
        assert result.unlocked.multiplier == 1.25
        assert result.unlocked.expires_at == NOW + timedelta(days=1)
        with Session(db_engine) as session:
            boost = session.scalar(select(MultiplierBoost).where(MultiplierBoost.user_id == 1))
            assert boost.applies_to == ["Approaches", "Numbers", "Dates Had"]

    def test_lower_tier(self, db_engine):
        result = _award(db_engine, "textingPractice.completeScenario", metadata={"score": 85})
        assert result.unlocked.name == "score_80_plus"

    def test_below_threshold(self, db_engine):
        result = _award(db_engine, "textingPractice.completeScenario", metadata={"score": 50})
        assert result.success
        assert result.unlocked is None

    def test_purge_expired_boosts(self, db_engine):
        _award(db_engine, "textingPractice.completeScenario", metadata={"score": 97})
        assert purge_expired_boosts(db_engine, NOW + timedelta(hours=1)) == 0
        assert purge_expired_boosts(db_engine, NOW + timedelta(days=2)) == 1
