"""
taterboard.services.embeds — Discord embed builders
===================================================

All ``discord.Embed`` construction lives here so the engine and the
cogs only deal in plain data.
"""

from __future__ import annotations

import discord
from discord.abc import Messageable

from taterboard.engine.commands import EmbedContent, Reply


def build_embed(content: EmbedContent) -> discord.Embed:
    """Render an engine :class:`EmbedContent` (leaderboards)."""
    embed = discord.Embed(
        title=content.title,
        description=content.description,
        color=discord.Color.gold(),
    )
    if content.footer:
        embed.set_footer(text=content.footer)
    return embed


def build_pin_embed(message: discord.Message, tater_count: int, tater_emoji: str) -> discord.Embed:
    """Repost of a message that collected enough taters."""
    embed = discord.Embed(
        description=message.content or None,
        color=discord.Color.from_rgb(196, 148, 84),
        timestamp=message.created_at,
    )
    embed.set_author(
        name=message.author.display_name,
        icon_url=message.author.display_avatar.url,
    )
    embed.add_field(
        name="Source",
        value=f"[Jump to message]({message.jump_url}) in <#{message.channel.id}>",
        inline=False,
    )
    image = next(
        (
            a for a in message.attachments
            if a.content_type and a.content_type.startswith("image/")
        ),
        None,
    )
    if image is not None:
        embed.set_image(url=image.url)
    embed.set_footer(text=f"{tater_count}x {tater_emoji}")
    return embed


async def send_reply(channel: Messageable, reply: Reply) -> None:
    """Deliver one engine :class:`Reply` to *channel*."""
    kwargs: dict = {}
    if reply.embed is not None:
        kwargs["embed"] = build_embed(reply.embed)
    if reply.suppress_mentions:
        kwargs["allowed_mentions"] = discord.AllowedMentions.none()
    await channel.send(reply.content, **kwargs)
