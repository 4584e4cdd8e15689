"""
momentum.bot.core — Bot Instance & Cog Loader
==============================================

:class:`MomentumBot` carries the shared config, DB engine, settings
cache and notification sink so cogs reach them via ``self.bot.*``.
It also exposes async wrappers around the sync services that run them
off-loop and announce whatever they produced.  Command handling is left
to whichever cogs a deployment adds.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from datetime import date

import discord
from discord.ext import commands
from sqlalchemy import Engine

from momentum.config import MomentumConfig
from momentum.database.engine import run_db
from momentum.engine.cache import ConfigCache
from momentum.engine.results import AwardResult, SubmissionResult
from momentum.services.announcement_service import (
    DiscordNotificationSink,
    NotificationSink,
    announce_award,
    announce_submission,
)
from momentum.services.economy_service import award_secondary_xp
from momentum.services.progression_service import submit_stats

logger = logging.getLogger(__name__)

EXTENSIONS: list[str] = [
    "momentum.bot.cogs.tasks",
]


class MomentumBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state."""

    def __init__(
        self,
        cfg: MomentumConfig,
        engine: Engine,
        cache: ConfigCache,
        sink: NotificationSink | None = None,
    ) -> None:
        intents = discord.Intents.default()
        intents.members = True

        super().__init__(
            command_prefix=cfg.bot_prefix,
            intents=intents,
            description=f"{cfg.community_name} progression",
        )

        self.cfg = cfg
        self.engine = engine
        self.cache = cache
        self.sink: NotificationSink = sink or DiscordNotificationSink(self)

    @property
    def announcements_enabled(self) -> bool:
        return self.cache.get_bool("announcements.enabled", True)

    # -----------------------------------------------------------------------
    # Service wrappers
    # -----------------------------------------------------------------------
    async def submit_stats(
        self,
        user_id: int,
        day: date,
        stats: Mapping[str, int],
        **kwargs,
    ) -> SubmissionResult:
        result = await run_db(
            submit_stats, self.engine, user_id, day, stats, cache=self.cache, **kwargs,
        )
        if self.announcements_enabled:
            await announce_submission(self.sink, result)
        return result

    async def award(
        self,
        user_id: int,
        category: str,
        action: str,
        metadata: dict | None = None,
        **kwargs,
    ) -> AwardResult:
        result = await run_db(
            award_secondary_xp, self.engine, user_id, category, action, metadata,
            cache=self.cache, **kwargs,
        )
        if result.success and self.announcements_enabled:
            await announce_award(self.sink, result)
        return result

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load extensions; a broken cog is logged, not fatal."""
        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    async def on_ready(self) -> None:
        assert self.user is not None
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)
        if self.get_guild(self.cfg.guild_id) is None:
            logger.warning("Primary guild %d not found", self.cfg.guild_id)
