"""
taterboard.bot.cogs.commands — Text Command Listener
====================================================

Feeds every message to the command service and sends back whatever it
replies.  Parsing, admin checks and saving all happen in the service;
this cog only translates between discord.py objects and engine types.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from taterboard.engine.commands import CommandRequest
from taterboard.services.embeds import send_reply

if TYPE_CHECKING:
    from taterboard.bot.core import TaterboardBot

logger = logging.getLogger(__name__)


def build_request(message: discord.Message, bot_user_id: int | None) -> CommandRequest:
    """Normalize a discord.py message into a :class:`CommandRequest`."""
    author = message.author
    has_admin_role = (
        isinstance(author, discord.Member) and author.guild_permissions.administrator
    )
    return CommandRequest(
        guild_id=message.guild.id if message.guild else None,
        author_id=author.id,
        content=message.content,
        has_admin_role=has_admin_role,
        bot_user_id=bot_user_id,
    )


class TaterCommands(commands.Cog, name="Commands"):
    """Trigger-word commands: leaderboards and admin configuration."""

    def __init__(self, bot: TaterboardBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_message(self, message: discord.Message) -> None:
        try:
            await self._handle(message)
        except Exception:
            logger.exception(
                "Error handling message %s from user %s",
                message.id, message.author.id,
            )

    async def _handle(self, message: discord.Message) -> None:
        bot_user_id = self.bot.user.id if self.bot.user else None
        request = build_request(message, bot_user_id)
        replies = await self.bot.command_service.handle(request)
        for reply in replies:
            await send_reply(message.channel, reply)


async def setup(bot: TaterboardBot) -> None:
    await bot.add_cog(TaterCommands(bot))
