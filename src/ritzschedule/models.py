"""Data models for ritzschedule.

Defines the schedule shape shared by the fetcher, the cache and the view,
the persisted snapshot, and the messages a background task sends to the
foreground.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Generic, TypeVar

__all__ = [
    "CacheSnapshot",
    "Complete",
    "Error",
    "FetchMessage",
    "MovieDetail",
    "Progress",
    "Rating",
    "Schedule",
]

T = TypeVar("T")

# Movie title (verbatim as scraped) -> start times of its screenings
Schedule = dict[str, list[datetime]]


@dataclass(frozen=True, slots=True, kw_only=True)
class CacheSnapshot:
    """A schedule together with the moment it was captured.

    Attributes:
        schedule: Title to showtimes mapping.
        last_updated: Timezone-aware capture timestamp.
    """

    schedule: Schedule
    last_updated: datetime


# =============================================================================
# Background task messages
# =============================================================================


@dataclass(frozen=True, slots=True)
class Progress:
    """Human-readable status line from a running task."""

    text: str


@dataclass(frozen=True, slots=True)
class Complete(Generic[T]):
    """Terminal message carrying the task result."""

    result: T


@dataclass(frozen=True, slots=True)
class Error:
    """Terminal message carrying a human-readable failure reason."""

    reason: str


FetchMessage = Progress | Complete[Schedule] | Error


# =============================================================================
# Movie details
# =============================================================================


@dataclass(frozen=True, slots=True)
class Rating:
    source: str
    value: str


@dataclass(frozen=True, slots=True, kw_only=True)
class MovieDetail:
    """Metadata for one title as returned by OMDb.

    OMDb reports missing values as the literal string "N/A"; fields absent
    from a response default to the same marker.
    """

    title: str
    year: str = "N/A"
    rated: str = "N/A"
    released: str = "N/A"
    runtime: str = "N/A"
    genre: str = "N/A"
    director: str = "N/A"
    writer: str = "N/A"
    actors: str = "N/A"
    plot: str = "N/A"
    language: str = "N/A"
    country: str = "N/A"
    awards: str = "N/A"
    poster: str = "N/A"
    ratings: list[Rating] = field(default_factory=list)
    metascore: str = "N/A"
    imdb_rating: str = "N/A"
    imdb_votes: str = "N/A"
    imdb_id: str = "N/A"
    media_type: str = "N/A"
    box_office: str = "N/A"

    @property
    def has_poster(self) -> bool:
        return bool(self.poster) and self.poster != "N/A"
