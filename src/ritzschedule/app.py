"""Foreground state for an interactive schedule client.

``App`` owns the in-memory schedule and everything a front end needs to
browse it: the list of available dates, the selected date and movie, the
loading gate, and the channels of any running background tasks. A front
end calls ``tick()`` once per frame; nothing here blocks.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime

from ritzschedule import view, worker
from ritzschedule.cache import CacheStore
from ritzschedule.config import Settings
from ritzschedule.constants import LOCAL_TZ
from ritzschedule.models import CacheSnapshot, Complete, Error, MovieDetail, Progress, Schedule
from ritzschedule.sources.ritz import RitzSource


__all__ = ["App"]

logger = logging.getLogger(__name__)


class App:
    """Schedule browser state.

    Args:
        settings: Environment-derived settings.
        cache: Cache store; defaults to one at ``settings.cache_path``.
        source_factory: Builds the source used for each refresh.
        clock: Returns the current time.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        cache: CacheStore | None = None,
        source_factory: Callable[[], RitzSource] = RitzSource,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        self.cache = cache or CacheStore(settings.cache_path)
        self.omdb_api_key = settings.omdb_api_key
        self._source_factory = source_factory
        self._clock = clock or (lambda: datetime.now(LOCAL_TZ))

        self.schedule: Schedule = {}
        self.available_dates: list[datetime] = []
        self.last_updated: datetime | None = None
        self.selected_date_index = 0
        self.selected_movie_index = 0

        self.loading_movies = False
        self.loading_messages: list[str] = []
        self.receiver: worker.Channel | None = None

        self.selected_movie_detail: MovieDetail | None = None
        self.loading_movie_detail = False
        self.movie_detail_error: str | None = None
        self.detail_receiver: worker.Channel | None = None

        self.poster: bytes | None = None
        self.loading_poster = False
        self.poster_receiver: worker.Channel | None = None

        self.load_cache()

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def load_cache(self) -> None:
        snapshot = self.cache.load()
        if snapshot is None:
            return
        self.schedule = snapshot.schedule
        self.last_updated = snapshot.last_updated
        self.update_available_dates()

    def save_cache(self) -> None:
        if self.last_updated is None:
            return
        self.cache.save(CacheSnapshot(schedule=self.schedule, last_updated=self.last_updated))

    # ------------------------------------------------------------------
    # Schedule refresh
    # ------------------------------------------------------------------

    def fetch_movies(self) -> bool:
        """Start a background refresh unless one is already running.

        Returns:
            True if a refresh was started.
        """
        if self.loading_movies:
            logger.debug("Refresh already in progress")
            return False

        self.loading_movies = True
        self.loading_messages.clear()
        self.receiver = worker.start_schedule_acquisition(self._source_factory())
        return True

    def tick(self) -> None:
        """Drain at most one message from each active channel."""
        self.poll_schedule()
        self.poll_detail()
        self.poll_poster()

    def poll_schedule(self) -> None:
        if self.receiver is None:
            return
        message = worker.poll(self.receiver)
        if message is None:
            return

        match message:
            case Progress(text=text):
                self.loading_messages.append(text)
            case Complete(result=schedule):
                self._install_schedule(schedule)
            case Error(reason=reason):
                logger.warning("Refresh failed: %s", reason)
                self.loading_messages.append(f"Error: {reason}")
                self.loading_movies = False
                self.receiver = None

    def _install_schedule(self, schedule: Schedule) -> None:
        self.loading_movies = False
        self.loading_messages.clear()
        self.receiver = None

        self.schedule = schedule
        self.last_updated = self._clock()
        self.update_available_dates()
        self.selected_movie_index = 0
        logger.info("Schedule updated: %d titles, %d days", len(schedule), len(self.available_dates))

        # The gate is already open if saving raises
        self.save_cache()

    # ------------------------------------------------------------------
    # Dates
    # ------------------------------------------------------------------

    def update_available_dates(self) -> None:
        self.available_dates = view.available_dates(self.schedule)
        self.selected_date_index = 0

    def selected_date(self) -> datetime | None:
        if self.selected_date_index < len(self.available_dates):
            return self.available_dates[self.selected_date_index]
        return None

    def next_date(self) -> None:
        if not self.available_dates:
            return
        self.selected_date_index = (self.selected_date_index + 1) % len(self.available_dates)
        self.selected_movie_index = 0

    def previous_date(self) -> None:
        if not self.available_dates:
            return
        self.selected_date_index = (self.selected_date_index - 1) % len(self.available_dates)
        self.selected_movie_index = 0

    def select_date(self, day: datetime) -> bool:
        """Select the available date falling on the same day as ``day``."""
        for index, candidate in enumerate(self.available_dates):
            if candidate.date() == day.date():
                self.selected_date_index = index
                self.selected_movie_index = 0
                return True
        return False

    def is_update_recommended(self) -> bool:
        return view.is_stale(self.available_dates, self._clock())

    def last_updated_display(self) -> str:
        return view.last_updated_display(self.last_updated, self._clock())

    # ------------------------------------------------------------------
    # Movies
    # ------------------------------------------------------------------

    def filtered_movies(self) -> list[tuple[str, list[datetime]]]:
        selected = self.selected_date()
        if selected is None:
            return []
        return list(view.filtered_by_date(self.schedule, selected).items())

    def sorted_movies(self) -> list[tuple[str, list[datetime]]]:
        return view.sorted_movies(self.schedule)

    def next_movie(self) -> None:
        count = len(self.filtered_movies())
        if count == 0:
            return
        self.selected_movie_index = (self.selected_movie_index + 1) % count

    def previous_movie(self) -> None:
        count = len(self.filtered_movies())
        if count == 0:
            return
        self.selected_movie_index = (self.selected_movie_index - 1) % count

    def selected_movie_name(self) -> str | None:
        movies = self.filtered_movies()
        if self.selected_movie_index < len(movies):
            return movies[self.selected_movie_index][0]
        return None

    # ------------------------------------------------------------------
    # Details and posters
    # ------------------------------------------------------------------

    def fetch_movie_detail(self, title: str) -> None:
        if not self.omdb_api_key:
            self.movie_detail_error = "API key not set"
            self.loading_movie_detail = False
            return

        self.loading_movie_detail = True
        self.selected_movie_detail = None
        self.movie_detail_error = None
        self.detail_receiver = worker.start_detail_lookup(title, self.omdb_api_key)

    def poll_detail(self) -> None:
        if self.detail_receiver is None:
            return
        message = worker.poll(self.detail_receiver)
        if message is None:
            return

        self.loading_movie_detail = False
        self.detail_receiver = None
        match message:
            case Complete(result=detail):
                self.selected_movie_detail = detail
                if detail.has_poster:
                    self.fetch_poster(detail.poster)
            case Error(reason=reason):
                self.movie_detail_error = reason

    def fetch_poster(self, url: str) -> None:
        self.loading_poster = True
        self.poster = None
        self.poster_receiver = worker.start_poster_download(url)

    def poll_poster(self) -> None:
        if self.poster_receiver is None:
            return
        message = worker.poll(self.poster_receiver)
        if message is None:
            return

        # Posters are optional; a failed download just leaves none.
        if isinstance(message, Complete):
            self.poster = message.result
        self.loading_poster = False
        self.poster_receiver = None

    def close_detail(self) -> None:
        self.selected_movie_detail = None
        self.movie_detail_error = None
        self.loading_movie_detail = False
        self.detail_receiver = None
        self.poster = None
        self.loading_poster = False
        self.poster_receiver = None
