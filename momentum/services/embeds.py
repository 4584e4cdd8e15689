"""
momentum.services.embeds — Discord embed builders
==================================================

All embed construction lives here so the announcement service and the
cogs only supply data.
"""

from __future__ import annotations

import discord

from momentum.constants import ARCHETYPE_ICONS, ARCHETYPE_LABELS
from momentum.engine.results import ArchetypeEvolutionEvent, DuelResult, LevelUpEvent
from momentum.services.event_service import EventTransition


def build_level_up_embed(event: LevelUpEvent) -> discord.Embed:
    """Level-up celebration with @mention; calls out a class change."""
    lines = [f"<@{event.user_id}> reached **Level {event.new_level}**!"]
    if event.new_class != event.old_class:
        lines.append(f"New class unlocked: **{event.new_class}**")
    else:
        lines.append(f"Class: {event.new_class}")
    return discord.Embed(
        title="\u26a1 Level Up!",
        description="\n".join(lines),
        color=discord.Color.gold(),
    )


def build_archetype_embed(event: ArchetypeEvolutionEvent) -> discord.Embed:
    old_label = ARCHETYPE_LABELS.get(event.old_archetype, event.old_archetype)
    new_label = ARCHETYPE_LABELS.get(event.new_archetype, event.new_archetype)
    icon = ARCHETYPE_ICONS.get(event.new_archetype, "")
    embed = discord.Embed(
        title=f"{icon} Archetype Evolution",
        description=f"<@{event.user_id}> evolved from **{old_label}** to **{new_label}**!",
        color=discord.Color.purple(),
    )
    embed.set_footer(text=f"Movement speed: {round(event.dampening * 100)}%")
    return embed


def build_duel_result_embed(result: DuelResult) -> discord.Embed:
    c, o = result.challenger_id, result.opponent_id
    if result.winner_id is None:
        description = (
            "**DRAW!**\n\nBoth players became unbalanced during the duel.\n\n"
            "No winner declared."
        )
        color = discord.Color.red()
    else:
        loser = o if result.winner_id == c else c
        gains = {c: result.challenger_gain, o: result.opponent_gain}
        description = (
            f"**<@{result.winner_id}> WINS!**\n\n**XP Gained:**\n"
            f"<@{result.winner_id}>: {gains[result.winner_id]} XP\n"
            f"<@{loser}>: {gains[loser]} XP"
        )
        color = discord.Color.green()

    if result.challenger_penalty:
        description += f"\n\n<@{c}> became unbalanced (forfeit)"
    if result.opponent_penalty:
        description += f"\n\n<@{o}> became unbalanced (forfeit)"
    if result.bonus_xp:
        description += f"\n\n+{result.bonus_xp} XP victory bonus"
        if result.perfect_balance_bonus:
            description += " (perfect balance included)"

    embed = discord.Embed(title="DUEL COMPLETE", description=description, color=color)
    embed.set_footer(text="24-hour balanced XP challenge")
    return embed


def build_event_embed(transition: EventTransition) -> discord.Embed:
    ends = int(transition.end_time.timestamp())
    target = f"{transition.faction} " if transition.faction else ""
    if transition.transition == "start":
        embed = discord.Embed(
            title=f"\u26a1 {target}{transition.multiplier_factor:g}x XP IS LIVE! \u26a1",
            description=(
                f"**{transition.multiplier_factor:g}x XP is now active!**\n\n"
                f"Ends: <t:{ends}:F>\n\u23f3 <t:{ends}:R>"
            ),
            color=discord.Color.gold(),
        )
    else:
        embed = discord.Embed(
            title=f"\U0001f3c1 {target}{transition.multiplier_factor:g}x XP ENDED",
            description="XP rates are back to normal.",
            color=discord.Color.red(),
        )
    return embed
