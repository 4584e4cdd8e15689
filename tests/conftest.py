"""
tests/conftest.py — Shared Test Fixtures
=========================================
"""

from __future__ import annotations

import asyncio
from datetime import UTC, datetime

import pytest
from sqlalchemy import Engine, create_engine

# ---------------------------------------------------------------------------
# Make JSONB columns work in SQLite for testing.
# SQLite renders JSONB as TEXT; SQLAlchemy's JSON processors still apply.
# ---------------------------------------------------------------------------
from sqlalchemy.dialects.postgresql import JSONB as PG_JSONB
from sqlalchemy.orm import Session

from momentum.database.models import Base, UserProgression

_jsonb_sqlite_registered = False


def _register_jsonb_sqlite_compat():
    """Register SQLite compilation for PG JSONB (idempotent).

    Also maps BigInteger → INTEGER so SQLite treats ids as plain integers.
    """
    global _jsonb_sqlite_registered
    if _jsonb_sqlite_registered:
        return
    from sqlalchemy import BigInteger
    from sqlalchemy.ext.compiler import compiles

    @compiles(PG_JSONB, "sqlite")
    def _compile_jsonb_as_text(type_, compiler, **kw):
        return "TEXT"

    @compiles(BigInteger, "sqlite")
    def _compile_bigint_as_integer(type_, compiler, **kw):
        return "INTEGER"

    _jsonb_sqlite_registered = True


_register_jsonb_sqlite_compat()

# A Friday, noon UTC
NOW = datetime(2026, 3, 6, 12, 0, tzinfo=UTC)
TODAY = NOW.date()


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all Momentum tables.

    StaticPool keeps one shared connection so every Session sees the
    same in-memory database.
    """
    from sqlalchemy.pool import StaticPool

    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine


def make_user(
    engine: Engine,
    user_id: int,
    *,
    xp: int = 0,
    warrior: float = 0.0,
    mage: float = 0.0,
    faction: str | None = None,
) -> None:
    """Insert a UserProgression row with the given raw state."""
    with Session(engine) as session:
        session.add(UserProgression(
            user_id=user_id,
            display_name=f"user-{user_id}",
            faction=faction,
            cumulative_xp=xp,
            warrior_affinity=warrior,
            mage_affinity=mage,
            archetype_warrior=0.0,
            archetype_mage=0.0,
            archetype_templar=0.0,
        ))
        session.commit()


def load_user(engine: Engine, user_id: int) -> UserProgression | None:
    with Session(engine) as session:
        user = session.get(UserProgression, user_id)
        if user is not None:
            session.expunge(user)
        return user


def run_async(coro):
    """Run a coroutine to completion without pytest-asyncio."""
    loop = asyncio.new_event_loop()
    try:
        return loop.run_until_complete(coro)
    finally:
        loop.close()
