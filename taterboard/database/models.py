"""
taterboard.database.models — SQLAlchemy 2.0 Data Models
=======================================================

Tables:
- guild_configs — one row per guild: trigger word, threshold, emoji,
  pin channel, admins and blacklisted channels
- tater_counts  — one row per (guild, kind, user) with the count and the
  row's position in its table, so leaderboard tie order survives reloads
"""

from __future__ import annotations

import enum
from datetime import datetime

from sqlalchemy import (
    JSON,
    BigInteger,
    DateTime,
    Enum,
    Index,
    Integer,
    String,
    func,
)
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column


# ---------------------------------------------------------------------------
# Base
# ---------------------------------------------------------------------------
class Base(DeclarativeBase):
    """Shared base for all Taterboard ORM models."""


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class CountKind(enum.StrEnum):
    """Which of a guild's two count tables a row belongs to."""
    RECEIVED = "received"
    GIVEN = "given"


# ---------------------------------------------------------------------------
# Guild configuration
# ---------------------------------------------------------------------------
class GuildConfigRow(Base):
    __tablename__ = "guild_configs"

    guild_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    trigger_word: Mapped[str] = mapped_column(String(100), nullable=False)
    threshold: Mapped[int] = mapped_column(BigInteger, nullable=False)
    tater_emoji: Mapped[str] = mapped_column(String(100), nullable=False)
    pin_channel_id: Mapped[int | None] = mapped_column(BigInteger, default=None)
    # Sorted lists of snowflakes
    admin_ids: Mapped[list[int]] = mapped_column(JSON, default=list)
    blacklisted_channel_ids: Mapped[list[int]] = mapped_column(JSON, default=list)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), server_default=func.now(), onupdate=func.now()
    )


# ---------------------------------------------------------------------------
# Tater counts
# ---------------------------------------------------------------------------
class TaterCount(Base):
    __tablename__ = "tater_counts"
    __table_args__ = (
        Index("ix_tater_counts_guild_kind_position", "guild_id", "kind", "position"),
    )

    guild_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    kind: Mapped[CountKind] = mapped_column(
        Enum(CountKind, name="count_kind", native_enum=False), primary_key=True
    )
    user_id: Mapped[int] = mapped_column(BigInteger, primary_key=True)
    count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    position: Mapped[int] = mapped_column(Integer, nullable=False)
