"""
tests/test_bot.py — discord.py Adapter Tests
============================================

Exercises the thin layer between discord.py and the engine with mocks:
request building, reply/embed rendering, user lookups, and the reaction
cog's counting and pinning.  No Discord connection required.
"""

from __future__ import annotations

from datetime import UTC, datetime
from types import SimpleNamespace
from unittest.mock import AsyncMock, MagicMock, patch

import discord
import pytest

from taterboard.bot.cogs.commands import build_request
from taterboard.bot.cogs.reactions import Reactions, tater_count
from taterboard.bot.core import DiscordUserDirectory
from taterboard.engine.commands import EmbedContent, Reply
from taterboard.engine.errors import LookupFailed
from taterboard.engine.state import GuildConfig, GuildState, GuildStateStore
from taterboard.services.embeds import build_embed, build_pin_embed, send_reply

from conftest import GUILD_ID, run_async

TATER = "\U0001f954"
CHANNEL_ID = 40
PIN_CHANNEL_ID = 50
MESSAGE_ID = 60
AUTHOR_ID = 70
REACTOR_ID = 80


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------
def _http_response(status: int) -> MagicMock:
    return MagicMock(status=status, reason="error")


def _make_message(*, author_id: int = AUTHOR_ID, author_bot: bool = False, taters: int = 1):
    return SimpleNamespace(
        id=MESSAGE_ID,
        content="look at this potato",
        created_at=datetime(2026, 1, 15, 12, 0, tzinfo=UTC),
        jump_url=f"https://discord.com/channels/{GUILD_ID}/{CHANNEL_ID}/{MESSAGE_ID}",
        channel=SimpleNamespace(id=CHANNEL_ID),
        attachments=[],
        author=SimpleNamespace(
            id=author_id,
            bot=author_bot,
            display_name="Spud Fan",
            display_avatar=SimpleNamespace(url="https://cdn.example/avatar.png"),
        ),
        reactions=[
            SimpleNamespace(emoji="\U0001f44d", count=9),
            SimpleNamespace(emoji=TATER, count=taters),
        ],
    )


def _make_payload(*, user_id: int = REACTOR_ID, emoji: str = TATER, bot: bool = False):
    return SimpleNamespace(
        guild_id=GUILD_ID,
        channel_id=CHANNEL_ID,
        message_id=MESSAGE_ID,
        user_id=user_id,
        emoji=emoji,
        member=SimpleNamespace(bot=bot),
    )


def _make_bot(state: GuildState, message) -> tuple[SimpleNamespace, MagicMock]:
    store = GuildStateStore()
    run_async(store.install(GUILD_ID, state))

    source = MagicMock(spec=discord.TextChannel)
    source.fetch_message = AsyncMock(return_value=message)
    pins = MagicMock(spec=discord.TextChannel)
    pins.send = AsyncMock()
    channels = {CHANNEL_ID: source, PIN_CHANNEL_ID: pins}

    bot = SimpleNamespace(
        store=store,
        get_channel=lambda ch_id: channels.get(ch_id),
        fetch_channel=AsyncMock(side_effect=discord.NotFound(_http_response(404), "gone")),
        get_user=lambda user_id: None,
        fetch_user=AsyncMock(return_value=SimpleNamespace(bot=False)),
    )
    return bot, pins


def _pinning_state(threshold: int = 2) -> GuildState:
    cfg = GuildConfig(threshold=threshold)
    cfg.set_pin_channel(PIN_CHANNEL_ID)
    return GuildState(config=cfg)


# ---------------------------------------------------------------------------
# Commands cog
# ---------------------------------------------------------------------------
class TestBuildRequest:
    def test_member_with_administrator(self):
        author = MagicMock(spec=discord.Member)
        author.id = 5
        author.guild_permissions = discord.Permissions(administrator=True)
        message = SimpleNamespace(author=author, guild=SimpleNamespace(id=GUILD_ID), content="!! help")

        request = build_request(message, bot_user_id=99)

        assert request.guild_id == GUILD_ID
        assert request.author_id == 5
        assert request.has_admin_role is True
        assert request.bot_user_id == 99

    def test_member_without_administrator(self):
        author = MagicMock(spec=discord.Member)
        author.id = 5
        author.guild_permissions = discord.Permissions(manage_messages=True)
        message = SimpleNamespace(author=author, guild=SimpleNamespace(id=GUILD_ID), content="x")
        assert build_request(message, None).has_admin_role is False

    def test_direct_message(self):
        message = SimpleNamespace(author=SimpleNamespace(id=5), guild=None, content="!! help")
        request = build_request(message, None)
        assert request.guild_id is None
        assert request.has_admin_role is False


# ---------------------------------------------------------------------------
# Embeds & replies
# ---------------------------------------------------------------------------
class TestRendering:
    def test_build_embed(self):
        embed = build_embed(EmbedContent(title="T", description="D", footer="F"))
        assert embed.title == "T"
        assert embed.description == "D"
        assert embed.footer.text == "F"

    def test_send_plain_reply(self):
        channel = MagicMock()
        channel.send = AsyncMock()
        run_async(send_reply(channel, Reply(content="hi")))
        channel.send.assert_awaited_once_with("hi")

    def test_send_reply_suppresses_mentions(self):
        channel = MagicMock()
        channel.send = AsyncMock()
        run_async(send_reply(channel, Reply(content="Unknown command: <@1>", suppress_mentions=True)))
        kwargs = channel.send.call_args.kwargs
        assert kwargs["allowed_mentions"].users is False
        assert kwargs["allowed_mentions"].everyone is False

    def test_send_embed_reply(self):
        channel = MagicMock()
        channel.send = AsyncMock()
        run_async(send_reply(channel, Reply(embed=EmbedContent(title="Board", description=""))))
        args, kwargs = channel.send.call_args
        assert args == (None,)
        assert kwargs["embed"].title == "Board"

    def test_pin_embed(self):
        embed = build_pin_embed(_make_message(), 5, TATER)
        assert embed.description == "look at this potato"
        assert embed.author.name == "Spud Fan"
        assert embed.footer.text == f"5x {TATER}"
        assert "Jump to message" in embed.fields[0].value


# ---------------------------------------------------------------------------
# User directory
# ---------------------------------------------------------------------------
class TestDiscordUserDirectory:
    def test_cached_user(self):
        bot = MagicMock()
        bot.get_user.return_value = "cached#0001"
        assert run_async(DiscordUserDirectory(bot).lookup_display(1)) == "cached#0001"
        bot.fetch_user.assert_not_called()

    def test_fetches_uncached_user(self):
        bot = MagicMock()
        bot.get_user.return_value = None
        bot.fetch_user = AsyncMock(return_value="fetched#0002")
        assert run_async(DiscordUserDirectory(bot).lookup_display(2)) == "fetched#0002"

    @pytest.mark.parametrize(
        "error",
        [
            discord.NotFound(_http_response(404), "Unknown User"),
            discord.HTTPException(_http_response(500), "server error"),
        ],
    )
    def test_failures_become_lookup_failed(self, error):
        bot = MagicMock()
        bot.get_user.return_value = None
        bot.fetch_user = AsyncMock(side_effect=error)
        with pytest.raises(LookupFailed):
            run_async(DiscordUserDirectory(bot).lookup_display(3))


# ---------------------------------------------------------------------------
# Reactions cog
# ---------------------------------------------------------------------------
class TestTaterCount:
    def test_counts_matching_emoji(self):
        assert tater_count(_make_message(taters=4), TATER) == 4

    def test_missing_emoji(self):
        assert tater_count(_make_message(), "\U0001f35f") == 0


class TestReactionAdd:
    def test_counts_giver_and_receiver(self):
        state = GuildState()
        bot, _ = _make_bot(state, _make_message())
        run_async(Reactions(bot)._handle_add(_make_payload()))
        assert state.given == {REACTOR_ID: 1}
        assert state.received == {AUTHOR_ID: 1}

    def test_ignores_other_emoji(self):
        state = GuildState()
        bot, _ = _make_bot(state, _make_message())
        run_async(Reactions(bot)._handle_add(_make_payload(emoji="\U0001f44d")))
        assert state.given == {} and state.received == {}

    def test_ignores_self_reaction(self):
        state = GuildState()
        bot, _ = _make_bot(state, _make_message(author_id=REACTOR_ID))
        run_async(Reactions(bot)._handle_add(_make_payload()))
        assert state.given == {} and state.received == {}

    def test_ignores_bots(self):
        state = GuildState()
        bot, _ = _make_bot(state, _make_message(author_bot=True))
        run_async(Reactions(bot)._handle_add(_make_payload()))
        run_async(Reactions(bot)._handle_add(_make_payload(bot=True)))
        assert state.given == {} and state.received == {}

    def test_pins_once_threshold_reached(self):
        state = _pinning_state(threshold=2)
        bot, pins = _make_bot(state, _make_message(taters=2))
        with patch("taterboard.bot.cogs.reactions.build_pin_embed") as build:
            run_async(Reactions(bot)._handle_add(_make_payload()))
            run_async(Reactions(bot)._handle_add(_make_payload(user_id=REACTOR_ID + 1)))
        pins.send.assert_awaited_once()
        build.assert_called_once()
        assert state.pinned == {MESSAGE_ID}

    def test_below_threshold_does_not_pin(self):
        state = _pinning_state(threshold=3)
        bot, pins = _make_bot(state, _make_message(taters=2))
        run_async(Reactions(bot)._handle_add(_make_payload()))
        pins.send.assert_not_awaited()
        assert state.received == {AUTHOR_ID: 1}

    def test_blacklisted_channel_does_not_pin(self):
        state = _pinning_state(threshold=1)
        state.config.blacklist(CHANNEL_ID)
        bot, pins = _make_bot(state, _make_message(taters=5))
        run_async(Reactions(bot)._handle_add(_make_payload()))
        pins.send.assert_not_awaited()

    def test_emoji_changed_during_fetch_is_not_counted(self):
        state = GuildState()
        message = _make_message()
        bot, _ = _make_bot(state, message)

        async def fetch_after_set_potato(message_id):
            state.config.tater_emoji = "\U0001f35f"
            return message

        bot.get_channel(CHANNEL_ID).fetch_message = AsyncMock(side_effect=fetch_after_set_potato)
        run_async(Reactions(bot)._handle_add(_make_payload()))
        assert state.given == {} and state.received == {}

    def test_unfetchable_message_is_skipped(self):
        state = GuildState()
        bot, _ = _make_bot(state, _make_message())
        bot.get_channel = lambda ch_id: None
        run_async(Reactions(bot)._handle_add(_make_payload()))
        assert state.given == {}


class TestReactionRemove:
    def test_retracts_counts(self):
        state = GuildState(received={AUTHOR_ID: 2}, given={REACTOR_ID: 1})
        bot, _ = _make_bot(state, _make_message())
        run_async(Reactions(bot)._handle_remove(_make_payload()))
        assert state.received == {AUTHOR_ID: 1}
        assert state.given == {}

    def test_uncached_bot_reactor_is_ignored(self):
        state = GuildState(received={AUTHOR_ID: 2})
        bot, _ = _make_bot(state, _make_message())
        bot.fetch_user = AsyncMock(return_value=SimpleNamespace(bot=True))
        cog = Reactions(bot)

        run_async(cog._handle_add(_make_payload(user_id=555, bot=True)))
        run_async(cog._handle_remove(_make_payload(user_id=555)))

        bot.fetch_user.assert_awaited_once_with(555)
        assert state.received == {AUTHOR_ID: 2}

    def test_unresolvable_reactor_still_retracts(self):
        state = GuildState(received={AUTHOR_ID: 2}, given={REACTOR_ID: 2})
        bot, _ = _make_bot(state, _make_message())
        bot.fetch_user = AsyncMock(side_effect=discord.NotFound(_http_response(404), "gone"))
        run_async(Reactions(bot)._handle_remove(_make_payload()))
        assert state.received == {AUTHOR_ID: 1}
        assert state.given == {REACTOR_ID: 1}

    def test_listener_swallows_errors(self):
        state = GuildState()
        bot, _ = _make_bot(state, _make_message())
        cog = Reactions(bot)
        with patch.object(cog, "_handle_remove", AsyncMock(side_effect=RuntimeError("boom"))):
            run_async(cog.on_raw_reaction_remove(_make_payload()))
