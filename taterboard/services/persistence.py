"""
taterboard.services.persistence — Durable Storage for Guild State
=================================================================

:class:`PersistenceGateway` is the interface the command service saves
through; :class:`SqlPersistenceGateway` implements it on SQLAlchemy.

All methods are **synchronous**; callers on the event loop wrap them in
:func:`~taterboard.database.engine.run_db`.  Database failures surface
as :class:`~taterboard.engine.errors.PersistenceError`, including
values the driver cannot bind.

Count rows carry a ``position`` (their index in the in-memory dict), and
loading orders by it, so a reloaded table iterates in the same order it
was saved in.  That order is the leaderboard tie-break.
"""

from __future__ import annotations

import logging
from collections.abc import Mapping
from typing import TYPE_CHECKING, Protocol

from sqlalchemy import Engine, delete, select
from sqlalchemy.exc import SQLAlchemyError

from taterboard.database.engine import get_session
from taterboard.database.models import CountKind, GuildConfigRow, TaterCount
from taterboard.engine.errors import PersistenceError
from taterboard.engine.state import (
    CountTable,
    GuildConfig,
    GuildState,
    default_guild_config,
)

if TYPE_CHECKING:
    from taterboard.config import TaterboardConfig

logger = logging.getLogger(__name__)

# Drivers raise OverflowError for ints outside the column type before
# SQLAlchemy gets a chance to wrap them
_DB_ERRORS = (SQLAlchemyError, OverflowError)


class PersistenceGateway(Protocol):
    def save_config(self, guild_id: int, config: GuildConfig) -> None: ...

    def save_counts(
        self, guild_id: int, received: Mapping[int, int], given: Mapping[int, int],
    ) -> None: ...

    def load(self, guild_id: int) -> GuildState | None: ...

    def load_all(self) -> dict[int, GuildState]: ...


class SqlPersistenceGateway:
    """SQLAlchemy-backed :class:`PersistenceGateway`."""

    def __init__(self, engine: Engine, cfg: TaterboardConfig | None = None) -> None:
        self.engine = engine
        self.cfg = cfg  # defaults for guilds that have counts but no config row

    # -------------------------------------------------------------------
    # Writes
    # -------------------------------------------------------------------
    def save_config(self, guild_id: int, config: GuildConfig) -> None:
        """Insert or update the config row of *guild_id*."""
        try:
            with get_session(self.engine) as session:
                row = session.get(GuildConfigRow, guild_id)
                if row is None:
                    row = GuildConfigRow(guild_id=guild_id)
                    session.add(row)
                row.trigger_word = config.trigger_word
                row.threshold = config.threshold
                row.tater_emoji = config.tater_emoji
                row.pin_channel_id = config.pin_channel
                row.admin_ids = sorted(config.admins)
                row.blacklisted_channel_ids = sorted(config.blacklisted_channels)
        except _DB_ERRORS as exc:
            logger.exception("Failed to save config for guild %s", guild_id)
            raise PersistenceError(f"could not save config: {exc}") from exc
        logger.info("Saved config for guild %s", guild_id)

    def save_counts(
        self, guild_id: int, received: Mapping[int, int], given: Mapping[int, int],
    ) -> None:
        """Replace every count row of *guild_id* in one transaction."""
        try:
            with get_session(self.engine) as session:
                session.execute(delete(TaterCount).where(TaterCount.guild_id == guild_id))
                for kind, table in ((CountKind.RECEIVED, received), (CountKind.GIVEN, given)):
                    session.add_all(
                        TaterCount(
                            guild_id=guild_id,
                            kind=kind,
                            user_id=user_id,
                            count=count,
                            position=position,
                        )
                        for position, (user_id, count) in enumerate(table.items())
                    )
        except _DB_ERRORS as exc:
            logger.exception("Failed to save taters for guild %s", guild_id)
            raise PersistenceError(f"could not save taters: {exc}") from exc
        logger.info(
            "Saved taters for guild %s (%d receivers, %d givers)",
            guild_id, len(received), len(given),
        )

    # -------------------------------------------------------------------
    # Reads
    # -------------------------------------------------------------------
    def load(self, guild_id: int) -> GuildState | None:
        """Load one guild, or ``None`` if nothing was ever saved for it."""
        return self._load(guild_id).get(guild_id)

    def load_all(self) -> dict[int, GuildState]:
        """Load every guild that has a config or count rows."""
        return self._load(None)

    def _load(self, guild_id: int | None) -> dict[int, GuildState]:
        config_stmt = select(GuildConfigRow)
        count_stmt = select(TaterCount).order_by(
            TaterCount.guild_id, TaterCount.kind, TaterCount.position,
        )
        if guild_id is not None:
            config_stmt = config_stmt.where(GuildConfigRow.guild_id == guild_id)
            count_stmt = count_stmt.where(TaterCount.guild_id == guild_id)

        states: dict[int, GuildState] = {}
        try:
            with get_session(self.engine) as session:
                for row in session.scalars(config_stmt):
                    states[row.guild_id] = GuildState(config=_config_from_row(row))
                for count in session.scalars(count_stmt):
                    state = states.get(count.guild_id)
                    if state is None:
                        state = GuildState(config=default_guild_config(self.cfg))
                        states[count.guild_id] = state
                    table: CountTable = (
                        state.received if count.kind == CountKind.RECEIVED else state.given
                    )
                    table[count.user_id] = count.count
        except _DB_ERRORS as exc:
            logger.exception("Failed to load guild state")
            raise PersistenceError(f"could not load guild state: {exc}") from exc
        return states


def _config_from_row(row: GuildConfigRow) -> GuildConfig:
    return GuildConfig(
        trigger_word=row.trigger_word,
        threshold=row.threshold,
        tater_emoji=row.tater_emoji,
        admins=set(row.admin_ids or ()),
        blacklisted_channels=set(row.blacklisted_channel_ids or ()),
        pin_channel=row.pin_channel_id,
    )
