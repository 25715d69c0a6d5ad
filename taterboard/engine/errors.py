"""
taterboard.engine.errors — Exception Taxonomy
=============================================

Every failure a command can hit maps to one of these.  They are all
caught at the command-service boundary and rendered as a single reply,
so none of them ever escapes a command's handling.
"""

from __future__ import annotations


class TaterboardError(Exception):
    """Base class for all Taterboard errors."""


class ParseError(TaterboardError):
    """A command argument was missing or malformed."""


class AuthorizationError(TaterboardError):
    """A non-admin attempted an admin-only command."""

    def __init__(self, command: str) -> None:
        super().__init__(f"{command} requires admin")
        self.command = command


class PersistenceError(TaterboardError):
    """Saving to or loading from durable storage failed."""


class LookupFailed(TaterboardError):
    """An external user lookup failed."""


class NoGuildContext(TaterboardError):
    """A save was requested outside of a guild (e.g. a DM)."""
