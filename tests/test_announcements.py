"""
tests/test_announcements.py — Notification Sink & Embeds
=========================================================

Best-effort publishing (failures swallowed), channel routing for the
Discord sink, embed builders, and the bot-side wrappers and sweeps that
feed them.
"""

from __future__ import annotations

import json
from dataclasses import replace
from datetime import UTC, datetime, timedelta
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock

import discord
from sqlalchemy.orm import Session

from conftest import NOW, TODAY, make_user, run_async
from momentum.bot.cogs.tasks import PeriodicTasks
from momentum.bot.core import MomentumBot
from momentum.config import MomentumConfig
from momentum.database.models import Setting
from momentum.engine.cache import ConfigCache
from momentum.engine.results import (
    ArchetypeEvolutionEvent,
    AwardResult,
    DuelResult,
    FailureReason,
    LevelUpEvent,
)
from momentum.services.announcement_service import (
    DiscordNotificationSink,
    announce_award,
    announce_duel_results,
    publish,
)
from momentum.services.duel_service import accept_duel, create_duel
from momentum.services.embeds import (
    build_archetype_embed,
    build_duel_result_embed,
    build_event_embed,
    build_level_up_embed,
)
from momentum.services.event_service import EventTransition, create_event

LEVEL_UP = LevelUpEvent(user_id=1, old_level=4, new_level=5,
                        old_class="Awkward Initiate", new_class="Social Squire")
DUEL_WIN = DuelResult(success=True, duel_id=3, status="completed", winner_id=1,
                      challenger_id=1, opponent_id=2, challenger_gain=400,
                      opponent_gain=150, bonus_xp=750, perfect_balance_bonus=True)


class RecordingSink:
    def __init__(self, fail_on: type | None = None) -> None:
        self.events: list = []
        self.fail_on = fail_on

    async def notify(self, event) -> None:
        if self.fail_on is not None and isinstance(event, self.fail_on):
            raise RuntimeError("channel gone")
        self.events.append(event)


def _make_messageable(channel_id: int) -> MagicMock:
    ch = MagicMock(spec=discord.TextChannel)
    ch.id = channel_id
    ch.send = AsyncMock()
    return ch


def _make_bot(*, announce: int | None = None, duel: int | None = None,
              channels: dict | None = None) -> MagicMock:
    bot = MagicMock()
    bot.cfg = SimpleNamespace(announce_channel_id=announce, duel_channel_id=duel)
    bot.get_channel = lambda ch_id: (channels or {}).get(ch_id)
    return bot


# ---------------------------------------------------------------------------
# publish()
# ---------------------------------------------------------------------------
class TestPublish:
    def test_skips_none_and_counts(self):
        sink = RecordingSink()
        assert run_async(publish(sink, [None, LEVEL_UP, None])) == 1
        assert sink.events == [LEVEL_UP]

    def test_failure_is_swallowed_and_rest_delivered(self, caplog):
        sink = RecordingSink(fail_on=LevelUpEvent)
        delivered = run_async(publish(sink, [LEVEL_UP, DUEL_WIN]))
        assert delivered == 1
        assert sink.events == [DUEL_WIN]
        assert "Failed to deliver LevelUpEvent" in caplog.text

    def test_no_sink(self):
        assert run_async(publish(None, [LEVEL_UP])) == 0

    def test_failed_results_not_announced(self):
        sink = RecordingSink()
        failed = DuelResult.fail(FailureReason.NOT_ACTIVE, 9)
        assert run_async(announce_duel_results(sink, [failed, DUEL_WIN])) == 1
        assert run_async(announce_award(sink, AwardResult(success=True, xp=10))) == 0

    def test_duel_level_ups_follow_their_result(self):
        sink = RecordingSink()
        level_up = LevelUpEvent(user_id=1, old_level=1, new_level=2,
                                old_class="Awkward Initiate", new_class="Awkward Initiate")
        result = replace(DUEL_WIN, level_ups=[level_up])
        assert run_async(announce_duel_results(sink, [result])) == 2
        assert sink.events == [result, level_up]


# ---------------------------------------------------------------------------
# DiscordNotificationSink
# ---------------------------------------------------------------------------
class TestDiscordSink:
    def test_level_up_goes_to_announce_channel(self):
        announce = _make_messageable(100)
        sink = DiscordNotificationSink(_make_bot(announce=100, channels={100: announce}))
        run_async(sink.notify(LEVEL_UP))
        announce.send.assert_awaited_once()
        embed = announce.send.call_args.kwargs["embed"]
        assert "Level 5" in embed.description

    def test_duel_prefers_duel_channel(self):
        announce, duels = _make_messageable(100), _make_messageable(200)
        sink = DiscordNotificationSink(
            _make_bot(announce=100, duel=200, channels={100: announce, 200: duels}))
        run_async(sink.notify(DUEL_WIN))
        duels.send.assert_awaited_once()
        announce.send.assert_not_awaited()

    def test_duel_falls_back_to_announce(self):
        announce = _make_messageable(100)
        sink = DiscordNotificationSink(
            _make_bot(announce=100, duel=200, channels={100: announce}))
        run_async(sink.notify(DUEL_WIN))
        announce.send.assert_awaited_once()

    def test_no_channel_configured(self):
        sink = DiscordNotificationSink(_make_bot())
        run_async(sink.notify(LEVEL_UP))  # dropped quietly


# ---------------------------------------------------------------------------
# Embeds
# ---------------------------------------------------------------------------
class TestEmbeds:
    def test_level_up_class_change(self):
        embed = build_level_up_embed(LEVEL_UP)
        assert "<@1>" in embed.description
        assert "New class unlocked: **Social Squire**" in embed.description

    def test_archetype(self):
        embed = build_archetype_embed(ArchetypeEvolutionEvent(1, "warrior", "mage", 0.65))
        assert "**Warrior** to **Mage**" in embed.description
        assert embed.footer.text == "Movement speed: 65%"

    def test_duel_win(self):
        embed = build_duel_result_embed(DUEL_WIN)
        assert embed.title == "DUEL COMPLETE"
        assert "<@1>: 400 XP" in embed.description
        assert "<@2>: 150 XP" in embed.description
        assert "+750 XP victory bonus (perfect balance included)" in embed.description

    def test_duel_draw(self):
        draw = DuelResult(success=True, challenger_id=1, opponent_id=2, is_draw=True,
                          challenger_penalty=True, opponent_penalty=True)
        embed = build_duel_result_embed(draw)
        assert "**DRAW!**" in embed.description
        assert "<@1> became unbalanced (forfeit)" in embed.description

    def test_event_start_and_end(self):
        start = EventTransition(1, "double_xp", "start", 2.0, NOW + timedelta(hours=2))
        assert "2x XP IS LIVE" in build_event_embed(start).title
        buff = EventTransition(2, "faction_buff", "end", 1.5, NOW, faction="Noctivores")
        assert build_event_embed(buff).title.endswith("Noctivores 1.5x XP ENDED")


# ---------------------------------------------------------------------------
# Bot wrappers and periodic sweeps
# ---------------------------------------------------------------------------
def _config() -> MomentumConfig:
    return MomentumConfig(community_name="Test", bot_prefix="!", guild_id=1)


class TestBotWrappers:
    def test_submit_announces_level_up(self, db_engine):
        sink = RecordingSink()
        bot = MomentumBot(_config(), db_engine, ConfigCache(db_engine), sink=sink)
        result = run_async(bot.submit_stats(1, TODAY, {"Same Night Pull": 1}, now=NOW))
        assert result.level_up is not None
        assert sink.events == [result.level_up]

    def test_announcements_can_be_disabled(self, db_engine):
        with Session(db_engine) as session:
            session.add(Setting(key="announcements.enabled", value_json=json.dumps(False),
                                category="announcements"))
            session.commit()
        cache = ConfigCache(db_engine)
        cache.load_all()
        sink = RecordingSink()
        bot = MomentumBot(_config(), db_engine, cache, sink=sink)
        run_async(bot.award(1, "course", "completeAllModules", now=NOW))
        assert sink.events == []


class TestPeriodicTasks:
    def _bot(self, engine, sink) -> MagicMock:
        bot = MagicMock()
        bot.engine = engine
        bot.cache = None
        bot.sink = sink
        bot.announcements_enabled = True
        return bot

    def test_event_loop_announces_transitions(self, db_engine):
        now = datetime.now(UTC)
        create_event(db_engine, now - timedelta(minutes=1), now + timedelta(hours=1))
        sink = RecordingSink()
        cog = PeriodicTasks(self._bot(db_engine, sink))
        run_async(PeriodicTasks.event_bookkeeping_loop.coro(cog))
        assert [t.transition for t in sink.events] == ["start"]

    def test_duel_loop_announces_results(self, db_engine):
        started = datetime.now(UTC) - timedelta(hours=30)
        make_user(db_engine, 1, warrior=5, mage=5)
        make_user(db_engine, 2, warrior=5, mage=5)
        duel_id = create_duel(db_engine, 1, 2, now=started).duel_id
        accept_duel(db_engine, duel_id, 2, now=started + timedelta(minutes=5))

        sink = RecordingSink()
        cog = PeriodicTasks(self._bot(db_engine, sink))
        run_async(PeriodicTasks.duel_expiry_loop.coro(cog))
        # 0 → 750 bonus XP also crosses the level 2 threshold
        assert [type(e) for e in sink.events] == [DuelResult, LevelUpEvent]
        assert sink.events[0].duel_id == duel_id
        assert sink.events[1] == sink.events[0].level_ups[0]

    def test_loop_failure_is_logged(self, caplog):
        bot = self._bot(MagicMock(), RecordingSink())
        cog = PeriodicTasks(bot)
        bot.cache = MagicMock()
        bot.cache.load_all.side_effect = RuntimeError("db down")
        run_async(PeriodicTasks.settings_refresh_loop.coro(cog))
        assert "Settings refresh failed" in caplog.text
