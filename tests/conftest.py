"""
tests/conftest.py — Shared Test Fixtures
========================================
"""

from __future__ import annotations

import asyncio

import pytest
from sqlalchemy import Engine, create_engine
from sqlalchemy.pool import StaticPool

from taterboard.database.models import Base
from taterboard.engine.commands import CommandRequest
from taterboard.engine.errors import LookupFailed

GUILD_ID = 111222333
ADMIN_ID = 4242
MEMBER_ID = 1001
BOT_ID = 9999


# Helper to run async tests without pytest-asyncio
def run_async(coro):
    """Run an async coroutine in a new event loop."""
    return asyncio.run(coro)


def make_request(
    content: str,
    *,
    author_id: int = MEMBER_ID,
    guild_id: int | None = GUILD_ID,
    has_admin_role: bool = False,
    bot_user_id: int | None = BOT_ID,
) -> CommandRequest:
    return CommandRequest(
        guild_id=guild_id,
        author_id=author_id,
        content=content,
        has_admin_role=has_admin_role,
        bot_user_id=bot_user_id,
    )


class FakeDirectory:
    """In-memory user directory; unknown ids raise :class:`LookupFailed`."""

    def __init__(self, tags: dict[int, str] | None = None) -> None:
        self.tags = tags or {}
        self.calls: list[int] = []

    async def lookup_display(self, user_id: int) -> str:
        self.calls.append(user_id)
        if user_id not in self.tags:
            raise LookupFailed(f"Unknown user {user_id}")
        return self.tags[user_id]


@pytest.fixture
def db_engine() -> Engine:
    """In-memory SQLite engine with all Taterboard tables.

    Uses StaticPool so all threads share the same in-memory database
    (required by ``asyncio.to_thread`` used in ``run_db``).
    """
    engine = create_engine(
        "sqlite://",
        echo=False,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(engine)
    return engine
