"""
taterboard.engine.commands — Command Decoding & Dispatch
========================================================

Turns one message into at most one command against one guild's state.

Pipeline for a single message::

    trigger check → tokenize → is_admin → decode CommandKind
        → run handler → replies + Persist obligation

The dispatcher never touches storage or the network except through the
:class:`UserDirectory` it is given (for ``list_admins``).  What must be
written afterwards is returned as a :class:`Persist` flag; the command
service fulfils it while still holding the guild's state.

Two rules are applied after the handler, not inside it:

* a failed argument parse applies nothing and asks for no save;
* any command run by an admin asks for a config save, even read-only
  ones like ``show_blacklist``.
"""

from __future__ import annotations

import enum
import logging
import re
from collections.abc import Awaitable, Callable
from dataclasses import dataclass, field
from typing import Protocol

import discord

from taterboard.constants import (
    ADMIN_HELP_TEXT,
    DEFAULT_PAGE_SIZE,
    ERROR_PREFIX,
    HELP_TEXT,
)
from taterboard.engine.auth import is_admin
from taterboard.engine.errors import (
    AuthorizationError,
    LookupFailed,
    ParseError,
)
from taterboard.engine.leaderboard import format_footer, format_line, format_title, rank
from taterboard.engine.state import GuildState

logger = logging.getLogger(__name__)

_UINT_RE = re.compile(r"\+?[0-9]+")
_U64_MAX = 2**64 - 1
# Largest value a signed BIGINT column holds; every snowflake fits
_I64_MAX = 2**63 - 1
_KEYCAP_RE = re.compile(r"[0-9#*]\ufe0f?\u20e3")


# ---------------------------------------------------------------------------
# Enums
# ---------------------------------------------------------------------------
class Persist(enum.Flag):
    """Which durable state must be written after a command."""
    NONE = 0
    CONFIG = enum.auto()
    COUNTS = enum.auto()


class CommandKind(enum.Enum):
    """Every command the bot understands, with its admin requirement."""

    HELP = ("help", False)
    RECEIVERS = ("receivers", False)
    GIVERS = ("givers", False)
    SET_PIN_CHANNEL = ("set_pin_channel", True)
    SET_THRESHOLD = ("set_threshold", True)
    BLACKLIST = ("blacklist", True)
    UNBLACKLIST = ("unblacklist", True)
    SHOW_BLACKLIST = ("show_blacklist", True)
    SET_POTATO = ("set_potato", True)
    ADMIN = ("admin", True)
    UNADMIN = ("unadmin", True)
    LIST_ADMINS = ("list_admins", True)
    SAVE = ("save", True)

    def __init__(self, command: str, admin_only: bool) -> None:
        self.command = command
        self.admin_only = admin_only

    @classmethod
    def from_name(cls, name: str) -> CommandKind | None:
        """Case-sensitive lookup; ``None`` for unknown names."""
        return _BY_NAME.get(name)


_BY_NAME: dict[str, CommandKind] = {kind.command: kind for kind in CommandKind}


# ---------------------------------------------------------------------------
# Request / response envelopes
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class CommandRequest:
    """One inbound message, normalized by the transport."""

    guild_id: int | None
    author_id: int
    content: str
    has_admin_role: bool = False
    bot_user_id: int | None = None


@dataclass(frozen=True, slots=True)
class EmbedContent:
    title: str
    description: str
    footer: str | None = None


@dataclass(frozen=True, slots=True)
class Reply:
    content: str | None = None
    embed: EmbedContent | None = None
    suppress_mentions: bool = False


@dataclass(slots=True)
class DispatchResult:
    replies: list[Reply] = field(default_factory=list)
    persist: Persist = Persist.NONE
    command: CommandKind | None = None


class UserDirectory(Protocol):
    """Resolves user ids to display tags.  May raise :class:`LookupFailed`."""

    async def lookup_display(self, user_id: int) -> str: ...


@dataclass(frozen=True, slots=True)
class _Invocation:
    kind: CommandKind
    state: GuildState
    request: CommandRequest
    args: list[str]
    admin: bool


# ---------------------------------------------------------------------------
# Parsing helpers
# ---------------------------------------------------------------------------
def parse_command_line(content: str, trigger_word: str) -> tuple[str, list[str]] | None:
    """Split ``<trigger> <command> [args...]`` into (command, args).

    The first whitespace-separated word is the one carrying the trigger
    and the command is always the second word, so ``!!help`` alone is
    not a command.  Returns ``None`` when *content* does not start with
    the trigger or has fewer than two words.
    """
    if not content.startswith(trigger_word):
        return None
    words = content.split()
    if len(words) < 2:
        return None
    return words[1], words[2:]


def parse_uint(token: str, limit: int = _U64_MAX) -> int:
    """Parse a non-negative decimal integer no larger than *limit* (pages)."""
    if not _UINT_RE.fullmatch(token):
        raise ParseError(f"expected a non-negative whole number, got `{token}`")
    value = int(token)
    if value > limit:
        raise ParseError(f"`{token}` is too large")
    return value


def parse_id(token: str) -> int:
    """Parse a channel or user id (also thresholds): anything storable."""
    return parse_uint(token, _I64_MAX)


def parse_emoji(token: str) -> str:
    """Validate a reaction emoji token and return its canonical text form.

    Custom emoji (``<:name:id>`` / ``<a:name:id>``) are normalized by
    discord.py.  Keycaps (``1️⃣``, ``#️⃣``) are the only unicode emoji
    that start with an ASCII character; any other token must contain no
    ASCII characters at all.
    """
    emoji = discord.PartialEmoji.from_str(token)
    if emoji.is_custom_emoji():
        return str(emoji)
    if _KEYCAP_RE.fullmatch(token):
        return token
    if not token or any(ch.isascii() for ch in token):
        raise ParseError(f"`{token}` is not a valid emoji")
    return token


def _require_arg(args: list[str]) -> str:
    if not args:
        raise ParseError("Not enough arguments (1 expected)")
    return args[0]


def error_reply(exc: BaseException) -> Reply:
    return Reply(content=f"{ERROR_PREFIX}{exc}")


def unknown_reply(name: str) -> Reply:
    return Reply(content=f"Unknown command: {name}", suppress_mentions=True)


# ---------------------------------------------------------------------------
# Dispatcher
# ---------------------------------------------------------------------------
class CommandDispatcher:
    """Runs one command against a borrowed :class:`GuildState`.

    Parameters
    ----------
    users:
        Display-tag lookups for ``list_admins``.
    page_size:
        Entries per leaderboard page.
    """

    def __init__(self, users: UserDirectory, page_size: int = DEFAULT_PAGE_SIZE) -> None:
        if page_size < 1:
            raise ValueError(f"page_size must be >= 1, got {page_size}")
        self.users = users
        self.page_size = page_size
        self._handlers: dict[CommandKind, Callable[[_Invocation], Awaitable[DispatchResult]]] = {
            CommandKind.HELP: self._help,
            CommandKind.RECEIVERS: self._leaderboard,
            CommandKind.GIVERS: self._leaderboard,
            CommandKind.SET_PIN_CHANNEL: self._set_pin_channel,
            CommandKind.SET_THRESHOLD: self._set_threshold,
            CommandKind.BLACKLIST: self._blacklist,
            CommandKind.UNBLACKLIST: self._unblacklist,
            CommandKind.SHOW_BLACKLIST: self._show_blacklist,
            CommandKind.SET_POTATO: self._set_potato,
            CommandKind.ADMIN: self._admin,
            CommandKind.UNADMIN: self._unadmin,
            CommandKind.LIST_ADMINS: self._list_admins,
            CommandKind.SAVE: self._save,
        }

    async def dispatch(self, state: GuildState, request: CommandRequest) -> DispatchResult | None:
        """Handle *request*; ``None`` means the message was not a command."""
        if request.bot_user_id is not None and request.author_id == request.bot_user_id:
            return None
        parsed = parse_command_line(request.content, state.config.trigger_word)
        if parsed is None:
            return None
        name, args = parsed

        admin = is_admin(state, request.author_id, request.has_admin_role)
        try:
            kind = self.decode(name, admin)
        except AuthorizationError as exc:
            logger.info(
                "Guild %s: denied %s to non-admin %s",
                request.guild_id, exc.command, request.author_id,
            )
            return DispatchResult(replies=[unknown_reply(name)])
        if kind is None:
            return DispatchResult(replies=[unknown_reply(name)])

        inv = _Invocation(kind=kind, state=state, request=request, args=args, admin=admin)
        try:
            result = await self._handlers[kind](inv)
        except ParseError as exc:
            return DispatchResult(replies=[error_reply(exc)], command=kind)
        except LookupFailed as exc:
            result = DispatchResult(replies=[error_reply(exc)])
        result.command = kind

        if admin:
            result.persist |= Persist.CONFIG
        return result

    @staticmethod
    def decode(name: str, admin: bool) -> CommandKind | None:
        """Map a command name to its kind, enforcing the admin gate.

        Raises
        ------
        AuthorizationError
            If *name* is an admin-only command and *admin* is False.
        """
        kind = CommandKind.from_name(name)
        if kind is not None and kind.admin_only and not admin:
            raise AuthorizationError(kind.command)
        return kind

    # -------------------------------------------------------------------
    # Everyone
    # -------------------------------------------------------------------
    async def _help(self, inv: _Invocation) -> DispatchResult:
        replies = [Reply(content=HELP_TEXT)]
        if inv.admin:
            replies.append(Reply(content=ADMIN_HELP_TEXT))
        return DispatchResult(replies=replies)

    async def _leaderboard(self, inv: _Invocation) -> DispatchResult:
        # An unparsable page number falls back to the first page
        try:
            page_index = parse_uint(inv.args[0]) if inv.args else 0
        except ParseError:
            page_index = 0

        if inv.kind is CommandKind.RECEIVERS:
            table, verb = inv.state.received, "received"
        else:
            table, verb = inv.state.given, "given"

        view = rank(table, inv.request.author_id, page_index, self.page_size)
        embed = EmbedContent(
            title=format_title(verb),
            description="\n".join(format_line(entry, verb) for entry in view.entries),
            footer=format_footer(view, inv.state.config.tater_emoji),
        )
        return DispatchResult(replies=[Reply(embed=embed)])

    # -------------------------------------------------------------------
    # Admin only
    # -------------------------------------------------------------------
    async def _set_pin_channel(self, inv: _Invocation) -> DispatchResult:
        channel_id = parse_id(_require_arg(inv.args))
        added = inv.state.config.set_pin_channel(channel_id)
        logger.info("Guild %s: pin channel set to %s", inv.request.guild_id, channel_id)
        if added:
            text = f"Set pins channel to `<#{channel_id}>` and added it to the blacklist"
        else:
            text = f"Set pins channel to `<#{channel_id}>`, and it was already blacklisted"
        return _saved_config(text)

    async def _set_threshold(self, inv: _Invocation) -> DispatchResult:
        threshold = parse_id(_require_arg(inv.args))
        inv.state.config.set_threshold(threshold)
        logger.info("Guild %s: threshold set to %d", inv.request.guild_id, threshold)
        return _saved_config(f"Threshold changed to {threshold}")

    async def _blacklist(self, inv: _Invocation) -> DispatchResult:
        channel_id = parse_id(_require_arg(inv.args))
        if inv.state.config.blacklist(channel_id):
            return _saved_config(f"Blacklisted `<#{channel_id}>`")
        return _saved_config(f"`<#{channel_id}>` was already blacklisted")

    async def _unblacklist(self, inv: _Invocation) -> DispatchResult:
        channel_id = parse_id(_require_arg(inv.args))
        if inv.state.config.unblacklist(channel_id):
            return _saved_config(f"Unblacklisted `<#{channel_id}>`")
        return _saved_config(f"`<#{channel_id}>` was not blacklisted")

    async def _show_blacklist(self, inv: _Invocation) -> DispatchResult:
        channels = sorted(inv.state.config.blacklisted_channels)
        if not channels:
            return DispatchResult(replies=[Reply(content="No channels are blacklisted.")])
        text = "\n".join(f"- <#{channel_id}>" for channel_id in channels)
        return DispatchResult(replies=[Reply(content=text)])

    async def _set_potato(self, inv: _Invocation) -> DispatchResult:
        token = _require_arg(inv.args)
        emoji = parse_emoji(token)
        old = inv.state.config.tater_emoji
        inv.state.config.tater_emoji = emoji
        logger.info("Guild %s: tater emoji %s -> %s", inv.request.guild_id, old, emoji)
        return _saved_config(f"Set potato emoji to {emoji} (from {old})")

    async def _admin(self, inv: _Invocation) -> DispatchResult:
        user_id = parse_id(_require_arg(inv.args))
        if inv.state.config.add_admin(user_id):
            logger.info("Guild %s: %s is now an admin", inv.request.guild_id, user_id)
            return _saved_config(f"Added `{user_id}` as a new admin")
        return _saved_config(f"`{user_id}` was already an admin")

    async def _unadmin(self, inv: _Invocation) -> DispatchResult:
        user_id = parse_id(_require_arg(inv.args))
        if inv.state.config.remove_admin(user_id):
            logger.info("Guild %s: %s is no longer an admin", inv.request.guild_id, user_id)
            return _saved_config(f"Removed `{user_id}` from being an admin")
        return _saved_config(f"`{user_id}` was not an admin")

    async def _list_admins(self, inv: _Invocation) -> DispatchResult:
        lines = ["Admins:"]
        for user_id in sorted(inv.state.config.admins):
            lines.append(f"- {await self.users.lookup_display(user_id)}")
        return DispatchResult(replies=[Reply(content="\n".join(lines))])

    async def _save(self, inv: _Invocation) -> DispatchResult:
        # The confirmation is added once the save has actually happened
        return DispatchResult(persist=Persist.COUNTS)


def _saved_config(text: str) -> DispatchResult:
    return DispatchResult(replies=[Reply(content=text)], persist=Persist.CONFIG)
