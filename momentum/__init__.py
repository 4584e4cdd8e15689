"""
Momentum — Progression & Economy Engine for Community Platforms
================================================================
Turns submitted activity into XP, levels and classes, tracks the
warrior/mage affinity axis that drives archetype labels, gates a
secondary XP economy off an append-only ledger, and referees balanced
duels.  Chat-platform plumbing only sits at the edges.

Package layout::

    momentum/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Stat weights, aliases, level thresholds
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   ├── models.py      # All ORM models
    │   └── seed.py        # Default tuning settings
    ├── engine/
    │   ├── stats.py       # XP & affinity calculator
    │   ├── multiplier.py  # Composite multiplier (pure)
    │   ├── levels.py      # Level & class resolver
    │   ├── archetype.py   # Dampening + archetype classification
    │   ├── balance.py     # Duel balance checks + outcome rules
    │   ├── sources.py     # Secondary XP source catalogue
    │   ├── results.py     # Typed outcomes + progression events
    │   └── cache.py       # In-memory settings cache
    ├── services/
    │   ├── progression_service.py  # Stat submission + XP application
    │   ├── multiplier_service.py   # Streak / global event / boost lookups
    │   ├── economy_service.py      # Ledger-gated secondary XP
    │   ├── duel_service.py         # Duel lifecycle
    │   ├── event_service.py        # Double-XP / faction buff windows
    │   ├── announcement_service.py # Best-effort notification sink
    │   └── embeds.py               # Discord embed builders
    └── bot/
        ├── core.py        # Bot subclass, cog loader
        └── cogs/
            └── tasks.py   # Duel expiry, event bookkeeping, boost purge
"""

__version__ = "0.1.0"
