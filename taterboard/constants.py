"""
taterboard.constants — Shared Constants
=======================================

Defaults for new guilds, leaderboard presentation and the help text.
Import from here instead of duplicating in cogs and services.
"""

from __future__ import annotations

# ---------------------------------------------------------------------------
# New-guild defaults (overridable in config.yaml)
# ---------------------------------------------------------------------------
DEFAULT_TRIGGER_WORD = "!!"
DEFAULT_THRESHOLD = 5
DEFAULT_TATER_EMOJI = "\U0001f954"  # 🥔
DEFAULT_PAGE_SIZE = 10

# ---------------------------------------------------------------------------
# Leaderboard presentation
# ---------------------------------------------------------------------------
RANK_BADGES: list[str] = ["\U0001f3c5", "\U0001f948", "\U0001f949"]  # 🏅🥈🥉
DEFAULT_BADGE = "\U0001f396\ufe0f"  # 🎖️

# ---------------------------------------------------------------------------
# Replies
# ---------------------------------------------------------------------------
ERROR_PREFIX = "An error occurred: \n"
NO_GUILD_SAVE_MESSAGE = (
    "Unable to save config because there was no guild ID (are you in a PM?)"
)

HELP_TEXT = """ === PotatoBoard Help ===
- `help`: Get this message.
- `receivers <page_number>`: See the most protatolific receivers of potatoes. `page_number` is optional.
- `givers <page_number>`: See the most protatolific givers of potatoes. `page_number` is optional."""

ADMIN_HELP_TEXT = """You're an admin! Here's the admin commands:
- `set_pin_channel <channel_id>`: Set the channel that pinned messages to go, and adds it to the potato blacklist.
- `set_potato <emoji>`: Set the given emoji to be the operative one.
- `set_threshold <number>`: Set how many potatoes have to be on a message before it is pinned.
- `blacklist <channel_id>`: Make the channel no longer eligible for pinning messages, regardless of potato count.
- `unblacklist <channel_id>`: Unblacklist this channel so messages from it can be pinned again.
- `show_blacklist`: Show which channels are ineligible for pinning messages.
- `admin <user_id>`: Let this user access this bot's admin commands on this server.
- `unadmin <user_id>`: Stops this user from being an admin on this server.
- `list_admins`: Print a list of admins.
- `save`: Flush any in-memory state to disk.
People with any role with an Administrator privilege are always admins of this bot."""
