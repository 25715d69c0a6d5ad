"""
taterboard.bot.cogs.reactions — Tater Counting & Pinning
========================================================

Listens for raw reaction events so old, uncached messages count too.

On every tater reaction (the guild's configured emoji):
- the reactor gets +1 given, the message author +1 received;
- once the message has at least ``threshold`` taters, it is reposted to
  the pin channel, unless its channel is blacklisted or it was already
  pinned.

Self-reactions and reactions from or to bots are ignored.  Counts are
kept in memory and written by the autosave task or ``save``.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import discord
from discord.ext import commands

from taterboard.services.embeds import build_pin_embed

if TYPE_CHECKING:
    from taterboard.bot.core import TaterboardBot

logger = logging.getLogger(__name__)

_FETCH_ERRORS = (discord.NotFound, discord.Forbidden, discord.HTTPException)


def tater_count(message: discord.Message, tater_emoji: str) -> int:
    """How many tater reactions *message* carries."""
    for reaction in message.reactions:
        if str(reaction.emoji) == tater_emoji:
            return reaction.count
    return 0


class Reactions(commands.Cog, name="Reactions"):
    """Counts taters given and received, and pins popular messages."""

    def __init__(self, bot: TaterboardBot) -> None:
        self.bot = bot

    @commands.Cog.listener()
    async def on_raw_reaction_add(self, payload: discord.RawReactionActionEvent) -> None:
        try:
            await self._handle_add(payload)
        except Exception:
            logger.exception(
                "Error processing reaction on message %s from user %s",
                payload.message_id, payload.user_id,
            )

    @commands.Cog.listener()
    async def on_raw_reaction_remove(self, payload: discord.RawReactionActionEvent) -> None:
        try:
            await self._handle_remove(payload)
        except Exception:
            logger.exception(
                "Error processing reaction removal on message %s from user %s",
                payload.message_id, payload.user_id,
            )

    # -------------------------------------------------------------------
    # Helpers
    # -------------------------------------------------------------------
    async def _is_tater(self, payload: discord.RawReactionActionEvent) -> bool:
        async with self.bot.store.resolve(payload.guild_id) as state:
            return str(payload.emoji) == state.config.tater_emoji

    async def _fetch_message(
        self, payload: discord.RawReactionActionEvent,
    ) -> discord.Message | None:
        channel = self.bot.get_channel(payload.channel_id)
        try:
            if channel is None:
                channel = await self.bot.fetch_channel(payload.channel_id)
            if not isinstance(channel, (discord.TextChannel, discord.Thread)):
                return None
            return await channel.fetch_message(payload.message_id)
        except _FETCH_ERRORS:
            return None

    async def _is_bot_user(self, user_id: int) -> bool:
        user = self.bot.get_user(user_id)
        if user is None:
            try:
                user = await self.bot.fetch_user(user_id)
            except _FETCH_ERRORS:
                logger.warning("Could not resolve reactor %s; treating as a member", user_id)
                return False
        return user.bot

    async def _resolve_channel(self, channel_id: int) -> discord.abc.Messageable | None:
        channel = self.bot.get_channel(channel_id)
        if channel is None:
            try:
                channel = await self.bot.fetch_channel(channel_id)
            except _FETCH_ERRORS:
                return None
        return channel if isinstance(channel, discord.abc.Messageable) else None

    # -------------------------------------------------------------------
    # Handlers
    # -------------------------------------------------------------------
    async def _handle_add(self, payload: discord.RawReactionActionEvent) -> None:
        if payload.guild_id is None or payload.member is None or payload.member.bot:
            return
        if not await self._is_tater(payload):
            return

        message = await self._fetch_message(payload)
        if message is None or message.author.bot or message.author.id == payload.user_id:
            return

        async with self.bot.store.resolve(payload.guild_id) as state:
            emoji = state.config.tater_emoji
            # The emoji may have been changed while the message was fetched
            if str(payload.emoji) != emoji:
                return
            state.record_reaction(payload.user_id, message.author.id)
            count = tater_count(message, emoji)
            if not state.should_pin(payload.channel_id, message.id, count):
                return
            state.pinned.add(message.id)
            pin_channel_id = state.config.pin_channel

        pin_channel = await self._resolve_channel(pin_channel_id)
        if pin_channel is None:
            logger.warning(
                "Guild %s: pin channel %s is unreachable", payload.guild_id, pin_channel_id,
            )
            return
        await pin_channel.send(embed=build_pin_embed(message, count, emoji))
        logger.info("Guild %s: pinned message %s with %d taters",
                    payload.guild_id, message.id, count)

    async def _handle_remove(self, payload: discord.RawReactionActionEvent) -> None:
        if payload.guild_id is None:
            return
        if not await self._is_tater(payload):
            return
        # Remove events carry no member, and adds from bots were never counted
        if await self._is_bot_user(payload.user_id):
            return

        message = await self._fetch_message(payload)
        if message is None or message.author.bot or message.author.id == payload.user_id:
            return

        async with self.bot.store.resolve(payload.guild_id) as state:
            if str(payload.emoji) != state.config.tater_emoji:
                return
            state.retract_reaction(payload.user_id, message.author.id)


async def setup(bot: TaterboardBot) -> None:
    await bot.add_cog(Reactions(bot))
