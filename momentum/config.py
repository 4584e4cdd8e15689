"""
momentum.config — YAML Configuration Loader
============================================

Reads ``config.yaml`` for infrastructure settings only (community
identity, Discord guild and channel ids).  Gameplay tuning (multiplier
bonuses, cap, duel rewards) lives in the ``settings`` table and is read
through :class:`~momentum.engine.cache.ConfigCache`.

Usage::

    from momentum.config import load_config

    cfg = load_config()
    print(cfg.community_name)
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml


@dataclass(frozen=True, slots=True)
class MomentumConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    community_name: str
    bot_prefix: str
    guild_id: int

    announce_channel_id: int | None = None  # level-ups, evolutions, double XP
    duel_channel_id: int | None = None      # duel results; falls back to announce


def _optional_id(raw: dict, key: str) -> int | None:
    value = raw.get(key)
    return int(value) if value else None


def load_config(path: str | Path = "config.yaml") -> MomentumConfig:
    """Read *path* and return a :class:`MomentumConfig`.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    KeyError
        If a required key is missing.
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    return MomentumConfig(
        community_name=raw["community_name"],
        bot_prefix=raw.get("bot_prefix", "!"),
        guild_id=int(raw["guild_id"]),
        announce_channel_id=_optional_id(raw, "announce_channel_id"),
        duel_channel_id=_optional_id(raw, "duel_channel_id"),
    )
