"""
taterboard.services.command_service — One Command, One Critical Section
=======================================================================

Glues the store, the dispatcher and the persistence gateway together:

    1. Resolve the guild's state (takes the store-wide lock).
    2. Dispatch the command against it.
    3. Fulfil the returned :class:`Persist` obligation through the gateway.
    4. Release the lock and hand the replies back to the transport.

Saving inside the same ``async with`` block means no other command can
mutate the state between the change and its write.  The gateway is
synchronous and runs on a worker thread via ``run_db`` with a detached
copy of the data.
"""

from __future__ import annotations

import logging

from taterboard.constants import NO_GUILD_SAVE_MESSAGE
from taterboard.database.engine import run_db
from taterboard.engine.commands import (
    CommandDispatcher,
    CommandRequest,
    Persist,
    Reply,
    error_reply,
)
from taterboard.engine.errors import NoGuildContext, PersistenceError
from taterboard.engine.state import GuildState, GuildStateStore
from taterboard.services.persistence import PersistenceGateway

logger = logging.getLogger(__name__)

SAVED_TATERS_MESSAGE = "Saved this server's taters!"


class CommandService:
    """Runs commands end to end for the transport layer."""

    def __init__(
        self,
        store: GuildStateStore,
        dispatcher: CommandDispatcher,
        gateway: PersistenceGateway,
    ) -> None:
        self.store = store
        self.dispatcher = dispatcher
        self.gateway = gateway

    async def handle(self, request: CommandRequest) -> list[Reply]:
        """Process one message and return the replies to send (maybe none)."""
        # Commands only exist inside guilds
        if request.guild_id is None:
            return []

        async with self.store.resolve(request.guild_id) as state:
            result = await self.dispatcher.dispatch(state, request)
            if result is None:
                return []
            replies = list(result.replies)
            replies.extend(await self.fulfil(request.guild_id, state, result.persist))
        return replies

    async def save_all_counts(self) -> int:
        """Write every known guild's count tables.  Returns how many saved.

        Each guild is saved under the lock, like a ``save`` command, so a
        flush can never overwrite a newer write with an older snapshot.
        """
        saved = 0
        for guild_id in self.store.guild_ids():
            async with self.store.resolve(guild_id) as state:
                received, given = state.counts_snapshot()
                try:
                    await run_db(self.gateway.save_counts, guild_id, received, given)
                except PersistenceError:
                    logger.warning("Skipping guild %s in tater flush", guild_id)
                    continue
            saved += 1
        return saved

    async def fulfil(
        self, guild_id: int | None, state: GuildState, persist: Persist,
    ) -> list[Reply]:
        """Write whatever *persist* asks for.  Must be called under the lock.

        Failures never propagate; they come back as replies so the
        requester learns the write did not happen.  In-memory state is
        left as is either way.
        """
        replies: list[Reply] = []

        if Persist.COUNTS in persist:
            try:
                if guild_id is None:
                    raise NoGuildContext("There was no guild ID (are you in a PM?)")
                received, given = state.counts_snapshot()
                await run_db(self.gateway.save_counts, guild_id, received, given)
                replies.append(Reply(content=SAVED_TATERS_MESSAGE))
            except (NoGuildContext, PersistenceError) as exc:
                logger.warning("Tater save failed for guild %s: %s", guild_id, exc)
                replies.append(error_reply(exc))

        if Persist.CONFIG in persist:
            if guild_id is None:
                replies.append(Reply(content=NO_GUILD_SAVE_MESSAGE))
            else:
                try:
                    await run_db(self.gateway.save_config, guild_id, state.config.copy())
                except PersistenceError as exc:
                    logger.warning("Config save failed for guild %s: %s", guild_id, exc)
                    replies.append(error_reply(exc))

        return replies
