"""ritzschedule - Ritz Cinemas showtimes, cached locally.

Scrapes the day-by-day "now showing" pages, resolves relative day labels and
12-hour clock strings into absolute showtimes, and keeps a JSON snapshot in
the per-user cache directory so a client can start without the network.

Architecture:
- timeparse.py: Day-label and clock-string resolution
- sources/ritz.py: Listing parser, day discovery and schedule fetcher
- worker.py: Background tasks reporting over a non-blocking channel
- cache.py: Snapshot persistence
- view.py: Date index, staleness and per-day filtering
- app.py: Foreground state driving refreshes and selection
- omdb.py: Movie detail and poster lookup

Usage:
    # Print today's showtimes, refreshing if needed
    ritzschedule

Example:
    >>> from ritzschedule.sources.ritz import RitzSource
    >>> from ritzschedule.view import available_dates
    >>>
    >>> schedule = RitzSource().fetch_schedule(print)
    >>> available_dates(schedule)
"""

from __future__ import annotations


__version__ = "0.2.0"

__all__ = [  # noqa: RUF022
    # Version info
    "__version__",
    # Entry points
    "main",
    "run",
    "App",
    # Models
    "CacheSnapshot",
    "Schedule",
    # Acquisition
    "RitzSource",
    "parse_showtimes",
    # Persistence
    "CacheStore",
]


# Lazy imports keep `import ritzschedule` free of network/parsing dependencies
def __getattr__(name: str):  # type: ignore[no-untyped-def]
    """Lazy import public API components."""
    if name in ("main", "run"):
        from ritzschedule.main import main, run  # noqa: PLC0415

        return main if name == "main" else run

    if name == "App":
        from ritzschedule.app import App  # noqa: PLC0415

        return App

    if name in ("CacheSnapshot", "Schedule"):
        from ritzschedule import models  # noqa: PLC0415

        return getattr(models, name)

    if name in ("RitzSource", "parse_showtimes"):
        from ritzschedule.sources import ritz  # noqa: PLC0415

        return getattr(ritz, name)

    if name == "CacheStore":
        from ritzschedule.cache import CacheStore  # noqa: PLC0415

        return CacheStore

    msg = f"module {__name__!r} has no attribute {name!r}"
    raise AttributeError(msg)
