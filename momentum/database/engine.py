"""
momentum.database.engine — Database Connection & Async Helper
==============================================================

SQLAlchemy + psycopg2 is synchronous while the bot runs on an asyncio
event loop.  Every service function here is plain sync code that takes
an ``Engine``; async callers ship it to a worker thread with
:func:`run_db` so the loop is never blocked.

Usage::

    from momentum.database.engine import create_db_engine, init_db, run_db

    engine = create_db_engine()          # reads DATABASE_URL
    init_db(engine)

    result = await run_db(submit_stats, engine, user_id, today, stats)
"""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Callable, Iterator
from contextlib import contextmanager
from typing import ParamSpec, TypeVar

from sqlalchemy import Engine, create_engine
from sqlalchemy.orm import Session

from momentum.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


def create_db_engine(url: str | None = None) -> Engine:
    """Build an :class:`Engine` from *url* or the ``DATABASE_URL`` env var.

    Raises
    ------
    RuntimeError
        If no URL is given and ``DATABASE_URL`` is not set.
    """
    url = url or os.getenv("DATABASE_URL")
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env and set a valid PostgreSQL URL."
        )

    engine = create_engine(
        url,
        echo=False,
        pool_size=5,
        max_overflow=10,
        pool_pre_ping=True,
        pool_timeout=10,
        pool_recycle=3600,
    )
    logger.info("Database engine created → %s", engine.url.host)
    return engine


def init_db(engine: Engine) -> None:
    """Create missing tables and seed default tuning settings.

    Production schemas are managed by Alembic; ``create_all`` stays as
    the dev/test path.
    """
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")

    from momentum.database.seed import seed_default_settings

    seed_default_settings(engine)


@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Yield a :class:`Session` that commits on success and rolls back
    on exception."""
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a synchronous database function on the default thread pool."""
    return await asyncio.to_thread(func, *args, **kwargs)
