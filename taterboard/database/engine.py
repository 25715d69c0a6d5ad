"""
taterboard.database.engine — Database Connection & Async Helper
===============================================================

Discord bots run on an ``asyncio`` event loop, while SQLAlchemy is
synchronous.  Calling the DB directly from a listener would freeze the
whole bot until the query returns, so every DB call is shipped to a
worker thread through :func:`run_db`::

    engine = create_db_engine()          # DATABASE_URL or config fallback
    init_db(engine)                      # CREATE TABLE IF NOT EXISTS …

    # Inside an async method:
    state = await run_db(gateway.load, guild_id)
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

from taterboard.database.models import Base

logger = logging.getLogger(__name__)

P = ParamSpec("P")
T = TypeVar("T")


# ---------------------------------------------------------------------------
# Engine creation
# ---------------------------------------------------------------------------
def create_db_engine(fallback_url: str | None = None) -> Engine:
    """Build a SQLAlchemy :class:`Engine`.

    ``DATABASE_URL`` from the environment wins; *fallback_url* (usually
    ``database_url`` from ``config.yaml``) is used otherwise.

    SQLite URLs get ``check_same_thread=False`` because :func:`run_db`
    hops between worker threads.  Server databases get a small pool
    sized for a single bot process.

    Raises
    ------
    RuntimeError
        If neither URL is set.
    """
    url = os.getenv("DATABASE_URL") or fallback_url
    if not url:
        raise RuntimeError(
            "DATABASE_URL is not set.  "
            "Copy .env.example → .env or set database_url in config.yaml."
        )

    if url.startswith("sqlite"):
        engine = create_engine(
            url,
            echo=False,
            connect_args={"check_same_thread": False},
        )
    else:
        engine = create_engine(
            url,
            echo=False,
            pool_size=5,
            max_overflow=5,
            pool_pre_ping=True,   # Reconnect stale connections automatically
            pool_timeout=10,
            pool_recycle=3600,
        )
    logger.info("Database engine created → %s", engine.url.render_as_string(hide_password=True))
    return engine


# ---------------------------------------------------------------------------
# Schema initialization
# ---------------------------------------------------------------------------
def init_db(engine: Engine) -> None:
    """Create all tables.  Safe to call on every startup."""
    Base.metadata.create_all(engine)
    logger.info("Database tables verified / created.")


# ---------------------------------------------------------------------------
# Session helper
# ---------------------------------------------------------------------------
@contextmanager
def get_session(engine: Engine) -> Iterator[Session]:
    """Yield a :class:`Session` that commits on success and rolls back
    on exception.
    """
    session = Session(engine)
    try:
        yield session
        session.commit()
    except Exception:
        session.rollback()
        raise
    finally:
        session.close()


# ---------------------------------------------------------------------------
# Async bridge
# ---------------------------------------------------------------------------
async def run_db(func: Callable[P, T], *args: P.args, **kwargs: P.kwargs) -> T:
    """Run a **synchronous** database function on a background thread.

    Every DB call made from the event loop goes through this wrapper::

        await run_db(gateway.save_config, guild_id, config)
    """
    return await asyncio.to_thread(func, *args, **kwargs)
