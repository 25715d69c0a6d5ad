"""
taterboard.engine.leaderboard — Ranking & Pagination
====================================================

Pure functions over a count table (``user_id → count``).  No I/O.

Ordering
--------
Entries are sorted by count, highest first.  Python's sort is stable,
so entries with equal counts keep the table's iteration order, which for
a ``dict`` is insertion order.  That makes the board deterministic for a
given table, and because persistence stores each row's position, it
stays the same across restarts.

Paging
------
Page *n* (0-based) is the slice ``[n * page_size, (n + 1) * page_size)``.
A page past the end is simply empty.  ``total_pages`` is
``total_entries // page_size + 1``; when the entry count is an exact
multiple of the page size this includes one trailing empty page.  The
footer text users see has always counted that page, so it is kept.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass

from taterboard.constants import DEFAULT_BADGE, RANK_BADGES

__all__ = [
    "RankedEntry",
    "LeaderboardView",
    "rank",
    "badge_for",
    "format_line",
    "format_title",
    "format_footer",
]


@dataclass(frozen=True, slots=True)
class RankedEntry:
    rank: int  # 1-based
    user_id: int
    count: int


@dataclass(frozen=True, slots=True)
class LeaderboardView:
    """One page of a leaderboard plus the requester's own standing."""

    page_index: int
    entries: list[RankedEntry]
    requester: RankedEntry | None
    total_entries: int
    total_pages: int


def rank(
    table: Mapping[int, int],
    requester_id: int,
    page_index: int,
    page_size: int,
) -> LeaderboardView:
    """Rank *table* and cut out page *page_index*.

    Raises
    ------
    ValueError
        If *page_index* is negative or *page_size* is less than 1.
    """
    if page_index < 0:
        raise ValueError(f"page_index must be >= 0, got {page_index}")
    if page_size < 1:
        raise ValueError(f"page_size must be >= 1, got {page_size}")

    ordered = sorted(table.items(), key=lambda item: item[1], reverse=True)
    ranked = [
        RankedEntry(rank=position, user_id=user_id, count=count)
        for position, (user_id, count) in enumerate(ordered, 1)
    ]

    skip = page_size * page_index
    page = ranked[skip:skip + page_size]

    requester = next((e for e in ranked if e.user_id == requester_id), None)

    return LeaderboardView(
        page_index=page_index,
        entries=page,
        requester=requester,
        total_entries=len(ranked),
        total_pages=len(ranked) // page_size + 1,
    )


# ---------------------------------------------------------------------------
# Text rendering
# ---------------------------------------------------------------------------
def badge_for(position: int) -> str:
    if 0 < position <= len(RANK_BADGES):
        return RANK_BADGES[position - 1]
    return DEFAULT_BADGE


def format_line(entry: RankedEntry, verb: str) -> str:
    return (
        f"{badge_for(entry.rank)} {entry.rank}: <@{entry.user_id}> "
        f"has {verb} {entry.count}x taters"
    )


def format_title(verb: str) -> str:
    return f"Leaderboard - Taters {verb}"


def format_footer(view: LeaderboardView, tater_emoji: str) -> str:
    """``Your place: #P/T with Sx <emoji> | Page p/P``, with ``?`` when unranked."""
    if view.requester is None:
        place, score = "?", "?"
    else:
        place, score = str(view.requester.rank), str(view.requester.count)
    return (
        f"Your place: #{place}/{view.total_entries} with {score}x {tater_emoji} "
        f"| Page {view.page_index + 1}/{view.total_pages}"
    )
