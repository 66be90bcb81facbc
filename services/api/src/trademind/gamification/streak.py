"""Streak arithmetic and week boundary helpers.

Weeks are ISO weeks in UTC: Monday 00:00 up to (not including) the
following Monday 00:00.
"""

from __future__ import annotations

from datetime import date, datetime, time, timedelta, timezone


def advance_streak(current: int, longest: int, is_winning: bool) -> tuple[int, int]:
    """Apply one evaluation period to a streak. Returns (current, longest)."""
    current = current + 1 if is_winning else 0
    return current, max(longest, current)


def get_week_iso(dt: datetime) -> str:
    """Get ISO week string e.g. '2026-W09'. Uses %G-W%V (ISO year + ISO week)."""
    return dt.strftime("%G-W%V")


def get_monday(dt: datetime | date) -> date:
    """Get the Monday of the ISO week containing dt."""
    d = dt.date() if isinstance(dt, datetime) else dt
    return d - timedelta(days=d.weekday())


def get_current_week_iso(now: datetime | None = None) -> str:
    """Get the ISO week string for the current week."""
    if now is None:
        now = datetime.now(timezone.utc)
    return get_week_iso(now)


def get_last_week_iso(now: datetime | None = None) -> str:
    """Get the ISO week string for the week that just ended."""
    if now is None:
        now = datetime.now(timezone.utc)
    return get_week_iso(now - timedelta(weeks=1))


def get_week_boundaries(dt: datetime | None = None) -> tuple[datetime, datetime]:
    """Get (Monday 00:00 UTC, next Monday 00:00 UTC) for the ISO week containing dt."""
    if dt is None:
        dt = datetime.now(timezone.utc)
    monday = get_monday(dt)
    start = datetime.combine(monday, time.min, tzinfo=timezone.utc)
    return start, start + timedelta(weeks=1)


def is_valid_week_iso(week_iso: str) -> bool:
    """Check a string parses as an ISO week, e.g. '2026-W41'."""
    try:
        datetime.strptime(week_iso + "-1", "%G-W%V-%u")
    except ValueError:
        return False
    return len(week_iso) == 8
