"""
taterboard.config — YAML Configuration Loader
=============================================

Reads ``config.yaml`` for process-wide settings: the defaults a brand-new
guild starts with, leaderboard paging, autosave cadence and an optional
database URL.  Per-guild settings (trigger word, admins, blacklist, pin
channel, threshold, emoji) live in the database and are edited through
bot commands, not here.

Secrets (``DISCORD_TOKEN``, ``DATABASE_URL``) come from ``.env``.

Usage::

    from taterboard.config import load_config

    cfg = load_config()               # reads ./config.yaml by default
    print(cfg.default_trigger_word)   # "!!"
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

import yaml

from taterboard.constants import (
    DEFAULT_PAGE_SIZE,
    DEFAULT_TATER_EMOJI,
    DEFAULT_THRESHOLD,
    DEFAULT_TRIGGER_WORD,
)


# ---------------------------------------------------------------------------
# Typed settings object
# ---------------------------------------------------------------------------
@dataclass(frozen=True, slots=True)
class TaterboardConfig:
    """Immutable configuration loaded from ``config.yaml``."""

    # New-guild defaults
    default_trigger_word: str = DEFAULT_TRIGGER_WORD
    default_threshold: int = DEFAULT_THRESHOLD
    default_tater_emoji: str = DEFAULT_TATER_EMOJI

    # Leaderboards
    leaderboard_page_size: int = DEFAULT_PAGE_SIZE

    # Persistence
    autosave_minutes: float = 5.0
    database_url: str | None = None  # DATABASE_URL env var wins when set


# ---------------------------------------------------------------------------
# Public API
# ---------------------------------------------------------------------------
def load_config(path: str | Path = "config.yaml") -> TaterboardConfig:
    """Read *path* and return a :class:`TaterboardConfig` instance.

    Every key is optional; absent keys keep their defaults.

    Raises
    ------
    FileNotFoundError
        If the YAML file doesn't exist.
    ValueError
        If a value is out of range (negative threshold, page size < 1,
        autosave interval <= 0, empty trigger word).
    """
    config_path = Path(path)
    if not config_path.exists():
        raise FileNotFoundError(
            f"Configuration file not found: {config_path.resolve()}\n"
            "Hint: copy config.yaml.example → config.yaml and edit it."
        )

    with open(config_path, encoding="utf-8") as fh:
        raw: dict = yaml.safe_load(fh) or {}

    cfg = TaterboardConfig(
        default_trigger_word=str(raw.get("default_trigger_word", DEFAULT_TRIGGER_WORD)),
        default_threshold=int(raw.get("default_threshold", DEFAULT_THRESHOLD)),
        default_tater_emoji=str(raw.get("default_tater_emoji", DEFAULT_TATER_EMOJI)),
        leaderboard_page_size=int(raw.get("leaderboard_page_size", DEFAULT_PAGE_SIZE)),
        autosave_minutes=float(raw.get("autosave_minutes", 5.0)),
        database_url=raw.get("database_url") or None,
    )
    _validate(cfg)
    return cfg


def _validate(cfg: TaterboardConfig) -> None:
    if not cfg.default_trigger_word.strip():
        raise ValueError("default_trigger_word must not be empty")
    if cfg.default_threshold < 0:
        raise ValueError(f"default_threshold must be >= 0, got {cfg.default_threshold}")
    if cfg.leaderboard_page_size < 1:
        raise ValueError(
            f"leaderboard_page_size must be >= 1, got {cfg.leaderboard_page_size}"
        )
    if cfg.autosave_minutes <= 0:
        raise ValueError(f"autosave_minutes must be > 0, got {cfg.autosave_minutes}")
