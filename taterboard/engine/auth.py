"""
taterboard.engine.auth — Admin Check
====================================

A requester is an admin of a guild when they are listed in the guild's
``admins`` set, or when the transport reports that one of their roles
carries an administrator-equivalent permission.

Never cache the result: ``admin`` / ``unadmin`` can change the answer
between two commands.
"""

from __future__ import annotations

from taterboard.engine.state import GuildState


def is_admin(state: GuildState, requester_id: int, has_admin_role: bool) -> bool:
    if requester_id in state.config.admins:
        return True
    return bool(has_admin_role)
