"""Read-only queries over an in-memory schedule.

Everything here is a pure function of a schedule and, where needed, the
current time. Callers recompute ``available_dates`` whenever they swap in a
new schedule.
"""

from __future__ import annotations

from datetime import date, datetime

from ritzschedule.constants import LOCAL_TZ
from ritzschedule.models import Schedule
from ritzschedule.timeparse import local_midnight


__all__ = [
    "available_dates",
    "filtered_by_date",
    "is_stale",
    "last_updated_display",
    "sorted_movies",
]


def _local_day(value: date) -> date:
    if isinstance(value, datetime):
        return value.astimezone(LOCAL_TZ).date()
    return value


def available_dates(schedule: Schedule) -> list[datetime]:
    """Return the distinct days present in ``schedule``.

    Returns:
        Local midnights, ascending, one per calendar day.
    """
    days = {_local_day(showtime) for showtimes in schedule.values() for showtime in showtimes}
    return [local_midnight(day) for day in sorted(days)]


def is_stale(dates: list[datetime], now: datetime) -> bool:
    """Check whether the earliest cached day has already passed.

    Args:
        dates: Output of ``available_dates``.
        now: Current time.

    Returns:
        True if the first day is strictly before today. An empty schedule is
        never stale.
    """
    if not dates:
        return False
    return _local_day(dates[0]) < _local_day(now)


def filtered_by_date(schedule: Schedule, day: date) -> dict[str, list[datetime]]:
    """Showtimes on ``day``, grouped by title.

    Titles without a showing that day are left out. Titles are ordered
    case-insensitively and each title's showtimes ascending.
    """
    target = _local_day(day)
    result: dict[str, list[datetime]] = {}

    for title in sorted(schedule, key=str.lower):
        showtimes = sorted(s for s in schedule[title] if _local_day(s) == target)
        if showtimes:
            result[title] = showtimes

    return result


def sorted_movies(schedule: Schedule) -> list[tuple[str, list[datetime]]]:
    """All titles with all their showtimes, ordered case-insensitively."""
    return [(title, list(schedule[title])) for title in sorted(schedule, key=str.lower)]


def last_updated_display(last_updated: datetime | None, now: datetime) -> str:
    """Describe how long ago the schedule was fetched.

    Example:
        >>> last_updated_display(None, datetime.now(LOCAL_TZ))
        'Never'
    """
    if last_updated is None:
        return "Never"

    minutes = int((now - last_updated).total_seconds() // 60)
    if minutes < 1:
        return "Just now"
    if minutes < 60:
        return f"{minutes} min ago"
    if minutes < 24 * 60:
        return f"{minutes // 60} hr ago"
    return f"{minutes // (24 * 60)} days ago"
