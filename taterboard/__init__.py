"""
Taterboard — Reaction Leaderboards for Discord
===============================================
Counts the potato reactions members hand out and receive, pins messages
that collect enough of them, and answers leaderboard queries through
trigger-prefixed text commands.  Every guild gets its own ledger and
its own configuration.

Package layout::

    taterboard/
    ├── config.py          # YAML → typed Python config
    ├── constants.py       # Defaults, medals, help text
    ├── database/
    │   ├── engine.py      # SQLAlchemy engine + async helper
    │   └── models.py      # guild_configs + tater_counts tables
    ├── engine/
    │   ├── state.py       # GuildConfig, GuildState, GuildStateStore
    │   ├── auth.py        # Admin check
    │   ├── leaderboard.py # Ranking + pagination
    │   ├── commands.py    # Command decoding + dispatch
    │   └── errors.py      # Exception taxonomy
    ├── services/
    │   ├── persistence.py     # SQL-backed persistence gateway
    │   ├── command_service.py # Lock → dispatch → save, one critical section
    │   └── embeds.py          # Discord embed builders
    └── bot/
        ├── core.py        # Bot subclass, cog loader, store warm-up
        └── cogs/
            ├── commands.py  # on_message → command service
            ├── reactions.py # Tater counting + pinning
            └── tasks.py     # Periodic autosave
"""

__version__ = "0.1.0"
