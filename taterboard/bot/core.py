"""
taterboard.bot.core — Bot Instance & Cog Loader
===============================================

Defines :class:`TaterboardBot`, a ``commands.Bot`` subclass that:

1. Owns the shared pieces every cog needs: config (``bot.cfg``), the
   guild state store (``bot.store``) and the command service
   (``bot.command_service``).
2. Loads every saved guild into the store before connecting.
3. Loads the cogs in ``taterboard/bot/cogs/``.
4. Flushes every guild's counts to the database on shutdown.

Commands are plain text (``<trigger> <command>``) with a per-guild
trigger word, so the ``commands.Bot`` prefix machinery is unused and
parsing happens in :mod:`taterboard.engine.commands`.
"""

from __future__ import annotations

import logging

import discord
from discord.ext import commands
from sqlalchemy import Engine

from taterboard.config import TaterboardConfig
from taterboard.database.engine import run_db
from taterboard.engine.commands import CommandDispatcher
from taterboard.engine.errors import LookupFailed
from taterboard.engine.state import GuildStateStore
from taterboard.services.command_service import CommandService
from taterboard.services.persistence import SqlPersistenceGateway

logger = logging.getLogger(__name__)

EXTENSIONS: list[str] = [
    "taterboard.bot.cogs.commands",
    "taterboard.bot.cogs.reactions",
    "taterboard.bot.cogs.tasks",
]


class DiscordUserDirectory:
    """Resolves user ids to tags through the bot's cache, then the API."""

    def __init__(self, bot: commands.Bot) -> None:
        self.bot = bot

    async def lookup_display(self, user_id: int) -> str:
        user = self.bot.get_user(user_id)
        if user is None:
            try:
                user = await self.bot.fetch_user(user_id)
            except discord.NotFound as exc:
                raise LookupFailed(f"Unknown user {user_id}") from exc
            except discord.HTTPException as exc:
                raise LookupFailed(str(exc)) from exc
        return str(user)


class TaterboardBot(commands.Bot):
    """Custom Bot subclass that carries project-wide state.

    Parameters
    ----------
    cfg:
        The parsed :class:`TaterboardConfig` from ``config.yaml``.
    engine:
        A SQLAlchemy :class:`Engine` with the Taterboard tables.
    """

    def __init__(self, cfg: TaterboardConfig, engine: Engine) -> None:
        intents = discord.Intents.default()
        intents.message_content = True    # Privileged: text commands
        intents.presences = False

        super().__init__(
            command_prefix=commands.when_mentioned,
            intents=intents,
            help_command=None,
            description="Counts potatoes.",
        )

        self.cfg = cfg
        self.engine = engine
        self.store = GuildStateStore(cfg)
        self.gateway = SqlPersistenceGateway(engine, cfg)
        self.command_service = CommandService(
            self.store,
            CommandDispatcher(DiscordUserDirectory(self), cfg.leaderboard_page_size),
            self.gateway,
        )

    # -----------------------------------------------------------------------
    # Lifecycle hooks
    # -----------------------------------------------------------------------
    async def setup_hook(self) -> None:
        """Load saved guilds, then every cog extension."""
        states = await run_db(self.gateway.load_all)
        for guild_id, state in states.items():
            await self.store.install(guild_id, state)
        logger.info("Loaded %d guild(s) from the database", len(states))

        for ext in EXTENSIONS:
            try:
                await self.load_extension(ext)
                logger.info("Loaded extension: %s", ext)
            except Exception as exc:
                logger.error("Failed to load extension %s: %s", ext, exc)

    async def on_ready(self) -> None:
        assert self.user is not None  # guaranteed after on_ready
        logger.info("Logged in as %s (ID: %s)", self.user.name, self.user.id)

    async def close(self) -> None:
        """Flush taters before disconnecting."""
        logger.info("Bot shutting down…")
        saved = await self.command_service.save_all_counts()
        logger.info("Flushed taters for %d guild(s)", saved)
        await super().close()
