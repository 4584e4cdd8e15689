"""
momentum.services.announcement_service — Best-Effort Notifications
===================================================================

Progression events (level-ups, archetype evolutions, duel results,
double-XP start/end) are handed to a :class:`NotificationSink`.  State
has already been committed by the time anything is published, so a
failing sink is logged and swallowed; it never rolls anything back.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Iterator
from typing import TYPE_CHECKING, Protocol

from discord.abc import Messageable

from momentum.engine.results import (
    ArchetypeEvolutionEvent,
    AwardResult,
    DuelResult,
    LevelUpEvent,
    SubmissionResult,
)
from momentum.services.embeds import (
    build_archetype_embed,
    build_duel_result_embed,
    build_event_embed,
    build_level_up_embed,
)
from momentum.services.event_service import EventTransition

if TYPE_CHECKING:
    import discord

    from momentum.bot.core import MomentumBot

logger = logging.getLogger(__name__)

Notification = LevelUpEvent | ArchetypeEvolutionEvent | DuelResult | EventTransition


class NotificationSink(Protocol):
    async def notify(self, event: Notification) -> None: ...


class DiscordNotificationSink:
    """Renders notifications as embeds in the configured channels.

    Duel results go to the duel channel when one is configured.
    """

    def __init__(self, bot: MomentumBot) -> None:
        self.bot = bot

    def _channel(self, *, duel: bool = False) -> Messageable | None:
        cfg = self.bot.cfg
        for channel_id in ((cfg.duel_channel_id,) if duel else ()) + (cfg.announce_channel_id,):
            if not channel_id:
                continue
            ch = self.bot.get_channel(channel_id)
            if ch and isinstance(ch, Messageable):
                return ch
        return None

    async def notify(self, event: Notification) -> None:
        embed: discord.Embed
        if isinstance(event, LevelUpEvent):
            embed = build_level_up_embed(event)
        elif isinstance(event, ArchetypeEvolutionEvent):
            embed = build_archetype_embed(event)
        elif isinstance(event, DuelResult):
            embed = build_duel_result_embed(event)
        else:
            embed = build_event_embed(event)

        channel = self._channel(duel=isinstance(event, DuelResult))
        if channel is None:
            logger.debug("No announce channel configured; dropping %s", type(event).__name__)
            return
        await channel.send(embed=embed)


# ---------------------------------------------------------------------------
# Publishing
# ---------------------------------------------------------------------------
async def publish(sink: NotificationSink | None, events: Iterable[Notification | None]) -> int:
    """Send each non-None event; returns how many were delivered."""
    if sink is None:
        return 0
    delivered = 0
    for event in events:
        if event is None:
            continue
        try:
            await sink.notify(event)
            delivered += 1
        except Exception:
            logger.exception("Failed to deliver %s notification", type(event).__name__)
    return delivered


async def announce_submission(sink: NotificationSink | None, result: SubmissionResult) -> int:
    return await publish(sink, (result.level_up, result.archetype_evolution))


async def announce_award(sink: NotificationSink | None, result: AwardResult) -> int:
    return await publish(sink, (result.level_up,))


def _duel_events(results: Iterable[DuelResult]) -> Iterator[Notification]:
    for result in results:
        if not result.success:
            continue
        yield result
        yield from result.level_ups


async def announce_duel_results(
    sink: NotificationSink | None, results: Iterable[DuelResult]
) -> int:
    """Publish each completed duel followed by any level-ups its payout caused."""
    return await publish(sink, _duel_events(results))


async def announce_event_transitions(
    sink: NotificationSink | None, transitions: Iterable[EventTransition]
) -> int:
    return await publish(sink, transitions)
