"""Listing sources for ritzschedule.

Available sources:
- ritz: Ritz Cinemas Randwick (HTML "now showing" pages, one per day)
"""

from __future__ import annotations

from ritzschedule.sources.ritz import RitzSource, ScheduleFetchError, parse_showtimes


__all__ = ["RitzSource", "ScheduleFetchError", "parse_showtimes"]
