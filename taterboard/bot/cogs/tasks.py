"""
taterboard.bot.cogs.tasks — Periodic Background Tasks
=====================================================

- **Autosave** — every ``autosave_minutes`` (default 5), writes every
  guild's tater counts.  Reactions only change memory, so this loop is
  what makes them durable between explicit ``save`` commands.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

from discord.ext import commands, tasks

if TYPE_CHECKING:
    from taterboard.bot.core import TaterboardBot

logger = logging.getLogger(__name__)


class PeriodicTasks(commands.Cog):
    """Cog for scheduled background maintenance tasks."""

    def __init__(self, bot: TaterboardBot) -> None:
        self.bot = bot

    async def cog_load(self) -> None:
        self.autosave_loop.change_interval(minutes=self.bot.cfg.autosave_minutes)
        self.autosave_loop.start()

    async def cog_unload(self) -> None:
        self.autosave_loop.cancel()

    @tasks.loop(minutes=5)
    async def autosave_loop(self):
        try:
            saved = await self.bot.command_service.save_all_counts()
            logger.info("Autosave complete: %d guild(s)", saved)
        except Exception:
            logger.exception("Autosave failed", extra={"task": "autosave"})

    @autosave_loop.before_loop
    async def _wait_autosave(self):
        await self.bot.wait_until_ready()


async def setup(bot: TaterboardBot) -> None:
    await bot.add_cog(PeriodicTasks(bot))
