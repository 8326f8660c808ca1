"""Resolution of day-labels and clock strings into absolute showtimes.

The listings site addresses each day by a relative label ("today",
"tomorrow", "friday", ...) and prints times as 12-hour clock strings
("7:30 pm"). These helpers turn both into timezone-aware datetimes in
the cinema's local zone.
"""

from __future__ import annotations

import logging
import re
from datetime import date, datetime, time, timedelta
from typing import Final

from ritzschedule.constants import LOCAL_TZ, TODAY_LABEL, TOMORROW_LABEL


__all__ = [
    "WEEKDAY_NAMES",
    "ClockParseError",
    "absolute_showtime",
    "fallback_day_labels",
    "local_midnight",
    "local_today",
    "parse_clock_offset",
    "resolve_day_label",
]

logger = logging.getLogger(__name__)

# Index matches date.weekday() (Monday == 0)
WEEKDAY_NAMES: Final[tuple[str, ...]] = (
    "monday",
    "tuesday",
    "wednesday",
    "thursday",
    "friday",
    "saturday",
    "sunday",
)

CLOCK_RE = re.compile(r"^(?P<hour>\d{1,2}):(?P<minute>\d{2})\s*(?P<marker>[ap]m)$", re.IGNORECASE)


class ClockParseError(ValueError):
    """Raised when a showtime string is not a 12-hour clock time."""


def local_today(now: datetime | None = None) -> date:
    """Return the current calendar day in the cinema's timezone."""
    current = now or datetime.now(LOCAL_TZ)
    return current.astimezone(LOCAL_TZ).date()


def local_midnight(day: date) -> datetime:
    """Return local midnight at the start of ``day``."""
    return datetime.combine(day, time.min, tzinfo=LOCAL_TZ)


def resolve_day_label(label: str, today: date) -> date:
    """Resolve a day-label relative to ``today``.

    Weekday names map to the next occurrence at or after ``today``, so the
    current weekday resolves to ``today`` itself rather than a week later.

    Args:
        label: "today", "tomorrow" or a weekday name (case-insensitive).
        today: The reference calendar day.

    Returns:
        The calendar day the label refers to. Unknown labels resolve to
        ``today``.

    Example:
        >>> resolve_day_label("friday", date(2025, 1, 1))  # a Wednesday
        datetime.date(2025, 1, 3)
    """
    key = label.strip().lower()

    if key == TODAY_LABEL:
        return today
    if key == TOMORROW_LABEL:
        return today + timedelta(days=1)

    if key not in WEEKDAY_NAMES:
        logger.warning("Unknown day label %r, treating it as today", label)
        return today

    days_until = (WEEKDAY_NAMES.index(key) - today.weekday()) % 7
    return today + timedelta(days=days_until)


def parse_clock_offset(text: str) -> int:
    """Parse a 12-hour clock string into minutes since midnight.

    Args:
        text: Time such as "7:30 pm" or "12:05 AM".

    Returns:
        Minutes elapsed since local midnight (0-1439).

    Raises:
        ClockParseError: If the string is not a valid 12-hour time.
    """
    match = CLOCK_RE.match(text.strip())
    if not match:
        msg = f"Unrecognized showtime format: {text!r}"
        raise ClockParseError(msg)

    hour = int(match.group("hour"))
    minute = int(match.group("minute"))
    if not 1 <= hour <= 12 or minute > 59:
        msg = f"Showtime out of range: {text!r}"
        raise ClockParseError(msg)

    # 12 am is the midnight hour, 12 pm the noon hour
    hour %= 12
    if match.group("marker").lower() == "pm":
        hour += 12

    return hour * 60 + minute


def absolute_showtime(day: date, minutes: int) -> datetime:
    """Combine a calendar day with a minutes-since-midnight offset."""
    return local_midnight(day) + timedelta(minutes=minutes)


def fallback_day_labels(today: date) -> list[str]:
    """Labels for the coming week when the site's day list is unavailable.

    Returns:
        "today", "tomorrow", then the weekday names of the following five
        days in calendar order.
    """
    labels = [TODAY_LABEL, TOMORROW_LABEL]
    for offset in range(2, 7):
        labels.append(WEEKDAY_NAMES[(today + timedelta(days=offset)).weekday()])
    return labels
