"""
taterboard.engine.state — Per-Guild State & the Store That Owns It
==================================================================

``GuildState`` is the whole mutable world of one guild: its
configuration plus two count tables (taters received, taters given).

``GuildStateStore`` owns every ``GuildState`` in the process.  Access
goes through :meth:`GuildStateStore.resolve`, an async context manager
that holds **one store-wide lock** for as long as the caller keeps the
handle.  Commands for any guild therefore run one at a time.  That is
the concurrency ceiling of this design: fine for the guild counts and
command rates a reaction bot sees, and the first thing to revisit
(per-guild locks) if that ever stops being true.

Count tables are plain ``dict``s.  Their insertion order is the
leaderboard tie-break, so it is kept intact everywhere, including
through persistence.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from taterboard.constants import (
    DEFAULT_TATER_EMOJI,
    DEFAULT_THRESHOLD,
    DEFAULT_TRIGGER_WORD,
)

if TYPE_CHECKING:
    from taterboard.config import TaterboardConfig

logger = logging.getLogger(__name__)

CountTable = dict[int, int]


# ---------------------------------------------------------------------------
# GuildConfig — the admin-editable settings of one guild
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class GuildConfig:
    trigger_word: str = DEFAULT_TRIGGER_WORD
    threshold: int = DEFAULT_THRESHOLD
    tater_emoji: str = DEFAULT_TATER_EMOJI
    admins: set[int] = field(default_factory=set)
    blacklisted_channels: set[int] = field(default_factory=set)
    pin_channel: int | None = None

    def __post_init__(self) -> None:
        if self.threshold < 0:
            raise ValueError(f"threshold must be >= 0, got {self.threshold}")

    def copy(self) -> GuildConfig:
        """Detached copy, safe to hand to a worker thread."""
        return GuildConfig(
            trigger_word=self.trigger_word,
            threshold=self.threshold,
            tater_emoji=self.tater_emoji,
            admins=set(self.admins),
            blacklisted_channels=set(self.blacklisted_channels),
            pin_channel=self.pin_channel,
        )

    # -------------------------------------------------------------------
    # Mutations — each returns whether anything actually changed
    # -------------------------------------------------------------------
    def set_pin_channel(self, channel_id: int) -> bool:
        """Point pins at *channel_id* and blacklist it.

        Returns True if the channel was newly added to the blacklist.
        """
        self.pin_channel = channel_id
        return self.blacklist(channel_id)

    def set_threshold(self, threshold: int) -> None:
        if threshold < 0:
            raise ValueError(f"threshold must be >= 0, got {threshold}")
        self.threshold = threshold

    def blacklist(self, channel_id: int) -> bool:
        if channel_id in self.blacklisted_channels:
            return False
        self.blacklisted_channels.add(channel_id)
        return True

    def unblacklist(self, channel_id: int) -> bool:
        if channel_id not in self.blacklisted_channels:
            return False
        self.blacklisted_channels.discard(channel_id)
        return True

    def add_admin(self, user_id: int) -> bool:
        if user_id in self.admins:
            return False
        self.admins.add(user_id)
        return True

    def remove_admin(self, user_id: int) -> bool:
        if user_id not in self.admins:
            return False
        self.admins.discard(user_id)
        return True


# ---------------------------------------------------------------------------
# GuildState — config + count tables
# ---------------------------------------------------------------------------
@dataclass(slots=True)
class GuildState:
    config: GuildConfig = field(default_factory=GuildConfig)
    received: CountTable = field(default_factory=dict)
    given: CountTable = field(default_factory=dict)
    # Message ids already reposted to the pin channel.  Memory only.
    pinned: set[int] = field(default_factory=set, compare=False, repr=False)

    def __post_init__(self) -> None:
        for table in (self.received, self.given):
            for user_id, count in table.items():
                if count < 0:
                    raise ValueError(f"negative count {count} for user {user_id}")

    def record_reaction(self, giver_id: int, receiver_id: int) -> None:
        """Credit one tater to *giver_id* (given) and *receiver_id* (received)."""
        self.given[giver_id] = self.given.get(giver_id, 0) + 1
        self.received[receiver_id] = self.received.get(receiver_id, 0) + 1

    def retract_reaction(self, giver_id: int, receiver_id: int) -> None:
        """Undo :meth:`record_reaction`.  Counts never drop below zero."""
        _decrement(self.given, giver_id)
        _decrement(self.received, receiver_id)

    def should_pin(self, channel_id: int, message_id: int, tater_count: int) -> bool:
        cfg = self.config
        return (
            cfg.pin_channel is not None
            and channel_id not in cfg.blacklisted_channels
            and message_id not in self.pinned
            and tater_count >= cfg.threshold
        )

    def counts_snapshot(self) -> tuple[CountTable, CountTable]:
        # dict() keeps insertion order
        return dict(self.received), dict(self.given)


def default_guild_config(cfg: TaterboardConfig | None = None) -> GuildConfig:
    """Config a guild starts with before any admin has touched it."""
    if cfg is None:
        return GuildConfig()
    return GuildConfig(
        trigger_word=cfg.default_trigger_word,
        threshold=cfg.default_threshold,
        tater_emoji=cfg.default_tater_emoji,
    )


def _decrement(table: CountTable, user_id: int) -> None:
    count = table.get(user_id, 0)
    if count <= 1:
        table.pop(user_id, None)
    else:
        table[user_id] = count - 1


# ---------------------------------------------------------------------------
# GuildStateStore — the single-lock registry
# ---------------------------------------------------------------------------
class GuildStateStore:
    """Registry of every guild's :class:`GuildState`.

    Exactly one state exists per guild id.  States are created lazily
    with the defaults from *cfg* the first time a guild is resolved.

    Usage::

        store = GuildStateStore(cfg)
        async with store.resolve(guild_id) as state:
            state.config.blacklist(channel_id)
    """

    def __init__(self, cfg: TaterboardConfig | None = None) -> None:
        self._cfg = cfg
        self._lock = asyncio.Lock()
        self._states: dict[int, GuildState] = {}

    def _new_state(self) -> GuildState:
        return GuildState(config=default_guild_config(self._cfg))

    @asynccontextmanager
    async def resolve(self, guild_id: int) -> AsyncIterator[GuildState]:
        """Yield the exclusive, mutable state for *guild_id*.

        Blocks every other ``resolve`` (for any guild) until the block exits.
        """
        async with self._lock:
            state = self._states.get(guild_id)
            if state is None:
                state = self._new_state()
                self._states[guild_id] = state
                logger.debug("Created default state for guild %s", guild_id)
            yield state

    async def install(self, guild_id: int, state: GuildState) -> None:
        """Replace (or seed) the state of *guild_id*, e.g. after loading."""
        async with self._lock:
            self._states[guild_id] = state

    async def evict(self, guild_id: int) -> bool:
        async with self._lock:
            return self._states.pop(guild_id, None) is not None

    def guild_ids(self) -> list[int]:
        return list(self._states)

    def __contains__(self, guild_id: object) -> bool:
        return guild_id in self._states

    def __len__(self) -> int:
        return len(self._states)
