"""
momentum.database.models — SQLAlchemy 2.0 Data Models
======================================================

Tables:
- user_progression   — Cumulative XP, raw affinities, dampened archetype points
- daily_activity     — One row per user per calendar day (streak source)
- stat_totals        — Lifetime per-stat counters
- award_ledger       — Append-only award history; rate-limit source of truth
- multiplier_boosts  — Short-lived per-stat multipliers from unlocks
- global_xp_events   — Double-XP windows and faction buffs
- duels              — 24h balanced XP challenges with start/final snapshots
- duel_stats         — Per-submission audit rows for active duels
- settings           — Gameplay tuning (key → JSON value)
"""

from __future__ import annotations

import enum
from datetime import date, datetime

from sqlalchemy import (
    BigInteger,
    Boolean,
    Date,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    func,
)
from sqlalchemy.dialects.postgresql import JSONB
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column, relationship


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Momentum ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class Archetype(enum.StrEnum):
    """Play-style label on the warrior/mage axis."""
    WARRIOR = "warrior"
    MAGE = "mage"
    TEMPLAR = "templar"
    NONE = "none"


class DuelStatus(enum.StrEnum):
    PENDING = "pending"
    ACTIVE = "active"
    COMPLETED = "completed"
    DECLINED = "declined"


class GlobalEventKind(enum.StrEnum):
    DOUBLE_XP = "double_xp"
    FACTION_BUFF = "faction_buff"


class GlobalEventStatus(enum.StrEnum):
    SCHEDULED = "scheduled"
    ACTIVE = "active"
    COMPLETED = "completed"
    CANCELED = "canceled"


# ---------------------------------------------------------------------------
# UserProgression — one row per member
# ---------------------------------------------------------------------------
class UserProgression(Base):
    """Per-user progression state.

    ``warrior_affinity`` / ``mage_affinity`` are the raw running totals used
    for duel balance.  ``archetype_*`` are the XP-dampened scores used for
    the archetype label.  They have separate writers and are never synced.
    """
    __tablename__ = "user_progression"

    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    display_name: Mapped[str | None] = mapped_column(String(100), default=None)
    faction: Mapped[str | None] = mapped_column(String(50), default=None)
    cumulative_xp: Mapped[int] = mapped_column(Integer, default=0)
    warrior_affinity: Mapped[float] = mapped_column(Float, default=0.0)
    mage_affinity: Mapped[float] = mapped_column(Float, default=0.0)
    archetype_warrior: Mapped[float] = mapped_column(Float, default=0.0)
    archetype_mage: Mapped[float] = mapped_column(Float, default=0.0)
    archetype_templar: Mapped[float] = mapped_column(Float, default=0.0)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    daily_records: Mapped[list[DailyActivityRecord]] = relationship(
        back_populates="user", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_user_progression_xp_desc", "cumulative_xp"),
    )

    def __repr__(self) -> str:
        return f"<UserProgression id={self.user_id} xp={self.cumulative_xp}>"


# ---------------------------------------------------------------------------
# DailyActivityRecord — per user, per calendar day
# ---------------------------------------------------------------------------
class DailyActivityRecord(Base):
    __tablename__ = "daily_activity"

    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("user_progression.user_id", ondelete="CASCADE"),
        primary_key=True,
    )
    day: Mapped[date] = mapped_column(Date, primary_key=True)
    active: Mapped[bool] = mapped_column(Boolean, default=False)
    state: Mapped[int | None] = mapped_column(Integer, default=None)
    dominant_archetype: Mapped[str | None] = mapped_column(String(20), default=None)
    chat_engaged: Mapped[bool] = mapped_column(Boolean, default=False)
    xp_earned: Mapped[int] = mapped_column(Integer, default=0)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    user: Mapped[UserProgression] = relationship(back_populates="daily_records")

    def __repr__(self) -> str:
        return f"<DailyActivityRecord user={self.user_id} day={self.day} active={self.active}>"


# ---------------------------------------------------------------------------
# StatTotal — lifetime per-stat counters
# ---------------------------------------------------------------------------
class StatTotal(Base):
    __tablename__ = "stat_totals"

    user_id: Mapped[int] = mapped_column(
        BigInteger,
        ForeignKey("user_progression.user_id", ondelete="CASCADE"),
        primary_key=True,
    )
    stat: Mapped[str] = mapped_column(String(100), primary_key=True)
    total: Mapped[int] = mapped_column(Integer, default=0)

    def __repr__(self) -> str:
        return f"<StatTotal user={self.user_id} stat={self.stat!r} total={self.total}>"


# ---------------------------------------------------------------------------
# AwardLedgerEntry — append-only award history
# ---------------------------------------------------------------------------
class AwardLedgerEntry(Base):
    """One row per award attempt that passed its gates.

    ``claim_key`` closes check-then-act races: ``"once"`` for one-time
    actions, ``"<day>#<slot>"`` for daily-capped ones, NULL otherwise.
    NULLs never collide under the unique constraint.
    """
    __tablename__ = "award_ledger"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False)
    action: Mapped[str] = mapped_column(String(50), nullable=False)
    xp_earned: Mapped[int] = mapped_column(Integer, default=0)
    day: Mapped[date] = mapped_column(Date, nullable=False)
    claim_key: Mapped[str | None] = mapped_column(String(40), nullable=True)
    metadata_: Mapped[dict | None] = mapped_column(
        "metadata", JSONB, nullable=True
    )
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        UniqueConstraint(
            "user_id", "category", "action", "claim_key",
            name="uq_award_ledger_claim",
        ),
        Index("ix_award_ledger_user_action_time", "user_id", "category", "action", "timestamp"),
        Index("ix_award_ledger_user_action_day", "user_id", "category", "action", "day"),
    )

    def __repr__(self) -> str:
        return (
            f"<AwardLedgerEntry id={self.id} user={self.user_id} "
            f"{self.category}.{self.action} xp={self.xp_earned}>"
        )


# ---------------------------------------------------------------------------
# MultiplierBoost — unlock rewards
# ---------------------------------------------------------------------------
class MultiplierBoost(Base):
    __tablename__ = "multiplier_boosts"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    multiplier: Mapped[float] = mapped_column(Float, nullable=False)
    applies_to: Mapped[list[str]] = mapped_column(
        JSONB, default=list
    )
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    source: Mapped[str] = mapped_column(String(50), nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_multiplier_boosts_user_expiry", "user_id", "expires_at"),
    )

    def __repr__(self) -> str:
        return f"<MultiplierBoost user={self.user_id} x{self.multiplier} until={self.expires_at}>"


# ---------------------------------------------------------------------------
# GlobalXPEvent — double-XP windows and faction buffs
# ---------------------------------------------------------------------------
class GlobalXPEvent(Base):
    __tablename__ = "global_xp_events"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    kind: Mapped[str] = mapped_column(
        String(20), nullable=False, default=GlobalEventKind.DOUBLE_XP.value
    )
    faction: Mapped[str | None] = mapped_column(String(50), default=None)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    multiplier_factor: Mapped[float] = mapped_column(Float, default=2.0)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=GlobalEventStatus.SCHEDULED.value
    )
    created_by: Mapped[int | None] = mapped_column(BigInteger, default=None)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    __table_args__ = (
        Index("ix_global_xp_events_window", "start_time", "end_time"),
    )

    def __repr__(self) -> str:
        return (
            f"<GlobalXPEvent id={self.id} kind={self.kind} "
            f"x{self.multiplier_factor} status={self.status}>"
        )


# ---------------------------------------------------------------------------
# Duel — balanced XP challenge between two members
# ---------------------------------------------------------------------------
class Duel(Base):
    __tablename__ = "duels"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    challenger_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    opponent_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    status: Mapped[str] = mapped_column(
        String(20), nullable=False, default=DuelStatus.PENDING.value
    )
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    start_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    end_time: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    completed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), default=None)

    # Start snapshots
    challenger_start_xp: Mapped[int] = mapped_column(Integer, default=0)
    challenger_start_warrior: Mapped[float] = mapped_column(Float, default=0.0)
    challenger_start_mage: Mapped[float] = mapped_column(Float, default=0.0)
    opponent_start_xp: Mapped[int] = mapped_column(Integer, default=0)
    opponent_start_warrior: Mapped[float] = mapped_column(Float, default=0.0)
    opponent_start_mage: Mapped[float] = mapped_column(Float, default=0.0)

    # Final snapshots
    challenger_final_xp: Mapped[int | None] = mapped_column(Integer, default=None)
    challenger_final_warrior: Mapped[float | None] = mapped_column(Float, default=None)
    challenger_final_mage: Mapped[float | None] = mapped_column(Float, default=None)
    opponent_final_xp: Mapped[int | None] = mapped_column(Integer, default=None)
    opponent_final_warrior: Mapped[float | None] = mapped_column(Float, default=None)
    opponent_final_mage: Mapped[float | None] = mapped_column(Float, default=None)

    # Sticky balance penalties: only ever set to True
    challenger_balance_penalty: Mapped[bool] = mapped_column(Boolean, default=False)
    opponent_balance_penalty: Mapped[bool] = mapped_column(Boolean, default=False)

    winner_id: Mapped[int | None] = mapped_column(BigInteger, default=None)

    stats: Mapped[list[DuelStat]] = relationship(
        back_populates="duel", cascade="all, delete-orphan"
    )

    __table_args__ = (
        Index("ix_duels_challenger_status", "challenger_id", "status"),
        Index("ix_duels_opponent_status", "opponent_id", "status"),
        Index("ix_duels_status_end", "status", "end_time"),
    )

    def __repr__(self) -> str:
        return (
            f"<Duel id={self.id} {self.challenger_id} vs {self.opponent_id} "
            f"status={self.status}>"
        )


class DuelStat(Base):
    __tablename__ = "duel_stats"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    duel_id: Mapped[int] = mapped_column(
        Integer, ForeignKey("duels.id", ondelete="CASCADE"), nullable=False
    )
    user_id: Mapped[int] = mapped_column(BigInteger, nullable=False)
    stat_name: Mapped[str] = mapped_column(String(100), nullable=False)
    stat_value: Mapped[int] = mapped_column(Integer, default=0)
    xp_earned: Mapped[int] = mapped_column(Integer, default=0)
    warrior_change: Mapped[float] = mapped_column(Float, default=0.0)
    mage_change: Mapped[float] = mapped_column(Float, default=0.0)
    recorded_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now()
    )

    duel: Mapped[Duel] = relationship(back_populates="stats")


# ---------------------------------------------------------------------------
# Setting — gameplay tuning values
# ---------------------------------------------------------------------------
class Setting(Base):
    __tablename__ = "settings"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value_json: Mapped[str] = mapped_column(Text, nullable=False)
    category: Mapped[str] = mapped_column(String(50), nullable=False, default="general")
    description: Mapped[str | None] = mapped_column(Text, default=None)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )

    __table_args__ = (
        Index("ix_settings_category", "category"),
    )

    def __repr__(self) -> str:
        return f"<Setting key={self.key!r}>"
