"""
momentum.bot.cogs.tasks — Periodic Background Tasks
====================================================

- **Duel expiry** — every 10 minutes, completes overdue duels and
  closes lapsed challenges, then announces results.
- **Global event bookkeeping** — every 5 minutes, starts/ends
  double-XP windows and faction buffs, then announces transitions.
- **Boost purge** — daily, deletes expired multiplier boosts.
- **Settings refresh** — every 5 minutes, reloads the settings cache.

Each loop runs its DB work through ``run_db``; a failing iteration is
logged and the loop carries on.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord.ext import commands, tasks

from momentum.database.engine import run_db
from momentum.services.announcement_service import (
    announce_duel_results,
    announce_event_transitions,
)
from momentum.services.duel_service import check_expired_duels
from momentum.services.economy_service import purge_expired_boosts
from momentum.services.event_service import process_event_updates

if TYPE_CHECKING:
    from momentum.bot.core import MomentumBot

logger = logging.getLogger(__name__)


class PeriodicTasks(commands.Cog):
    """Cog for the engine's periodic sweeps."""

    def __init__(self, bot: MomentumBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        self.duel_expiry_loop.start()
        self.event_bookkeeping_loop.start()
        self.boost_purge_loop.start()
        self.settings_refresh_loop.start()

    async def cog_unload(self) -> None:
        self.duel_expiry_loop.cancel()
        self.event_bookkeeping_loop.cancel()
        self.boost_purge_loop.cancel()
        self.settings_refresh_loop.cancel()

    # -------------------------------------------------------------------
    # Duel expiry — every 10 minutes
    # -------------------------------------------------------------------
    @tasks.loop(minutes=10)
    async def duel_expiry_loop(self):
        try:
            results = await run_db(check_expired_duels, self.bot.engine, cache=self.bot.cache)
        except Exception:
            logger.exception("Duel expiry sweep failed", extra={"task": "duel_expiry"})
            return
        if results:
            logger.info("Duel expiry sweep completed %d duels", len(results))
            if self.bot.announcements_enabled:
                await announce_duel_results(self.bot.sink, results)

    @duel_expiry_loop.before_loop
    async def _wait_duels(self):
        await self.bot.wait_until_ready()

    # -------------------------------------------------------------------
    # Global event bookkeeping — every 5 minutes
    # -------------------------------------------------------------------
    @tasks.loop(minutes=5)
    async def event_bookkeeping_loop(self):
        try:
            transitions = await run_db(process_event_updates, self.bot.engine)
        except Exception:
            logger.exception("Event bookkeeping failed", extra={"task": "events"})
            return
        if transitions and self.bot.announcements_enabled:
            await announce_event_transitions(self.bot.sink, transitions)

    @event_bookkeeping_loop.before_loop
    async def _wait_events(self):
        await self.bot.wait_until_ready()

    # -------------------------------------------------------------------
    # Boost purge — daily
    # -------------------------------------------------------------------
    @tasks.loop(hours=24)
    async def boost_purge_loop(self):
        try:
            deleted = await run_db(purge_expired_boosts, self.bot.engine)
            logger.info("Boost purge complete: %d rows deleted", deleted)
        except Exception:
            logger.exception("Boost purge failed", extra={"task": "boost_purge"})

    @boost_purge_loop.before_loop
    async def _wait_purge(self):
        await self.bot.wait_until_ready()

    # -------------------------------------------------------------------
    # Settings refresh — every 5 minutes
    # -------------------------------------------------------------------
    @tasks.loop(minutes=5)
    async def settings_refresh_loop(self):
        try:
            await run_db(self.bot.cache.load_all)
        except Exception:
            logger.exception("Settings refresh failed", extra={"task": "settings"})

    @settings_refresh_loop.before_loop
    async def _wait_settings(self):
        await self.bot.wait_until_ready()


async def setup(bot: MomentumBot) -> None:
    await bot.add_cog(PeriodicTasks(bot))
