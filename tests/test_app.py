"""Tests for the foreground App: refresh lifecycle, selection and details."""

from __future__ import annotations

import json
import queue
import time
from datetime import datetime
from pathlib import Path
from unittest.mock import Mock, patch

import httpx
import pytest

from ritzschedule.app import App
from ritzschedule.cache import CacheStore
from ritzschedule.config import Settings
from ritzschedule.constants import LOCAL_TZ
from ritzschedule.models import CacheSnapshot, Complete, Error, MovieDetail, Progress
from ritzschedule.sources.ritz import RitzSource

NOW = datetime(2025, 3, 5, 9, 0, tzinfo=LOCAL_TZ)


def at(day: int, hour: int, minute: int = 0) -> datetime:
    return datetime(2025, 3, day, hour, minute, tzinfo=LOCAL_TZ)


CACHED = {
    "Flow": [at(5, 10, 30), at(6, 21)],
    "Anora": [at(5, 18, 10)],
}
FRESH = {
    "Dune: Part Two": [at(5, 14), at(5, 19, 15)],
    "Nosferatu": [at(7, 20)],
}


class FakeSource:
    def __init__(self, schedule: dict | None = None, failure: Exception | None = None) -> None:
        self.schedule = schedule
        self.failure = failure

    def fetch_schedule(self, on_progress=None):  # type: ignore[no-untyped-def]
        on_progress("Getting movie times for today")
        if self.failure is not None:
            raise self.failure
        return self.schedule


def _settings(tmp_path: Path, api_key: str | None = None) -> Settings:
    return Settings(cache_dir=tmp_path, omdb_api_key=api_key)


def _app(
    tmp_path: Path,
    *,
    cached: bool = True,
    source: FakeSource | RitzSource | None = None,
    api_key: str | None = None,
) -> App:
    store = CacheStore(tmp_path / "movie_cache.json")
    if cached:
        store.save(CacheSnapshot(schedule=CACHED, last_updated=at(4, 20)))
    return App(
        _settings(tmp_path, api_key),
        cache=store,
        source_factory=lambda: source or FakeSource(FRESH),
        clock=lambda: NOW,
    )


def _wait_until_idle(app: App, timeout: float = 5.0) -> None:
    deadline = time.monotonic() + timeout
    while app.loading_movies:
        if time.monotonic() > deadline:
            pytest.fail("refresh did not finish")
        app.tick()
        time.sleep(0.01)


# =============================================================================
# Startup
# =============================================================================


class TestStartup:
    """Tests for warming from cache."""

    def test_loads_cache(self, tmp_path: Path) -> None:
        """The cached schedule and timestamp are installed on start."""
        app = _app(tmp_path)

        assert app.schedule == CACHED
        assert app.last_updated == at(4, 20)
        assert app.available_dates == [at(5, 0), at(6, 0)]
        assert app.last_updated_display() == "13 hr ago"

    def test_no_cache(self, tmp_path: Path) -> None:
        """Without a cache the app starts empty."""
        app = _app(tmp_path, cached=False)

        assert app.schedule == {}
        assert app.last_updated is None
        assert app.selected_date() is None
        assert app.filtered_movies() == []
        assert app.last_updated_display() == "Never"

    def test_corrupt_cache_is_ignored(self, tmp_path: Path) -> None:
        """A broken cache file is not a startup error."""
        (tmp_path / "movie_cache.json").write_text("garbage", encoding="utf-8")

        app = _app(tmp_path, cached=False)

        assert app.schedule == {}

    def test_undecodable_cache_is_ignored(self, tmp_path: Path) -> None:
        """Non-UTF-8 bytes or overflowing timestamps still start empty."""
        cache_file = tmp_path / "movie_cache.json"
        for content in (
            b"\xff\xfe\xfa",
            b'{"schedule": {"Flow": ["0001-01-01T00:00:00+14:00"]}, "lastUpdated": "2025-03-05T09:00:00"}',
        ):
            cache_file.write_bytes(content)

            app = _app(tmp_path, cached=False)

            assert app.schedule == {}
            assert app.last_updated is None

    def test_update_recommended(self, tmp_path: Path) -> None:
        """A cache whose first day has passed recommends an update."""
        app = _app(tmp_path)
        app._clock = lambda: at(6, 9)  # noqa: SLF001

        assert app.is_update_recommended() is True


# =============================================================================
# Refresh lifecycle
# =============================================================================


class TestRefresh:
    """Tests for fetch_movies and channel polling."""

    def test_complete_replaces_schedule_and_persists(self, tmp_path: Path) -> None:
        """Completion swaps the schedule, resets selection and writes the cache."""
        app = _app(tmp_path)
        app.next_date()
        app.next_movie()

        assert app.fetch_movies() is True
        _wait_until_idle(app)

        assert app.schedule == FRESH
        assert app.last_updated == NOW
        assert app.available_dates == [at(5, 0), at(7, 0)]
        assert (app.selected_date_index, app.selected_movie_index) == (0, 0)
        assert app.receiver is None
        assert app.loading_messages == []

        payload = json.loads((tmp_path / "movie_cache.json").read_text(encoding="utf-8"))
        assert payload["lastUpdated"] == NOW.isoformat()
        assert set(payload["schedule"]) == set(FRESH)

    def test_only_one_refresh_at_a_time(self, tmp_path: Path) -> None:
        """A second refresh is refused while the first is in flight."""
        app = _app(tmp_path)

        assert app.fetch_movies() is True
        assert app.fetch_movies() is False
        _wait_until_idle(app)
        assert app.fetch_movies() is True
        _wait_until_idle(app)

    def test_error_keeps_previous_schedule(self, tmp_path: Path) -> None:
        """A failed refresh reports the reason and leaves data untouched."""
        cache_file = tmp_path / "movie_cache.json"
        app = _app(tmp_path, source=FakeSource(failure=RuntimeError("boom")))
        before = cache_file.read_text(encoding="utf-8")

        app.fetch_movies()
        _wait_until_idle(app)

        assert app.schedule == CACHED
        assert app.last_updated == at(4, 20)
        assert app.loading_messages[-1] == "Error: Unexpected error: boom"
        assert app.receiver is None
        assert cache_file.read_text(encoding="utf-8") == before
        assert app.fetch_movies() is True

    @patch("ritzschedule.sources.base.httpx.Client")
    def test_network_failure_mid_run_keeps_previous_schedule(self, mock_client: Mock, tmp_path: Path) -> None:
        """Day two of five failing leaves the in-memory schedule as it was."""
        root = RitzSource.LISTINGS_URL
        links = "".join(
            f'<div class="swiper-slide"><a href="/now-showing/{label}">x</a></div>'
            for label in ("today", "tomorrow", "friday", "saturday", "sunday")
        )

        def get(url: str) -> Mock:
            if url == f"{root}/tomorrow":
                raise httpx.ConnectError("connection refused")
            response = Mock()
            response.text = links if url == root else "<html></html>"
            return response

        mock_client.return_value.__enter__.return_value.get.side_effect = get
        source = RitzSource(clock=lambda: NOW, sleep=lambda seconds: None)
        app = _app(tmp_path, source=source)

        app.fetch_movies()
        _wait_until_idle(app)

        assert app.schedule == CACHED
        assert app.loading_messages == [
            "Getting movie times for today",
            "Getting movie times for tomorrow",
            "Error: Failed to fetch tomorrow: connection refused",
        ]

    def test_empty_poll_is_noop(self, tmp_path: Path) -> None:
        """Ticking with nothing queued changes nothing."""
        app = _app(tmp_path)
        app.loading_movies = True
        app.receiver = queue.SimpleQueue()

        app.tick()

        assert app.loading_movies is True
        assert app.loading_messages == []
        assert app.schedule == CACHED

    def test_one_message_per_tick_in_order(self, tmp_path: Path) -> None:
        """Messages are handled one per tick, in the order sent."""
        app = _app(tmp_path)
        channel: queue.SimpleQueue = queue.SimpleQueue()
        channel.put(Progress("Getting movie times for today"))
        channel.put(Progress("Getting movie times for tomorrow"))
        channel.put(Complete(FRESH))
        app.loading_movies = True
        app.receiver = channel

        app.tick()
        assert app.loading_messages == ["Getting movie times for today"]
        app.tick()
        assert len(app.loading_messages) == 2
        app.tick()
        assert app.schedule == FRESH
        assert app.loading_movies is False

    def test_failing_save_still_clears_gate(self, tmp_path: Path) -> None:
        """An unexpected persistence error cannot block later refreshes."""
        app = _app(tmp_path)
        channel: queue.SimpleQueue = queue.SimpleQueue()
        channel.put(Complete(FRESH))
        app.loading_movies = True
        app.receiver = channel

        with (
            patch.object(app.cache, "save", side_effect=RuntimeError("disk gremlin")),
            pytest.raises(RuntimeError, match="disk gremlin"),
        ):
            app.tick()

        assert app.loading_movies is False
        assert app.receiver is None
        assert app.schedule == FRESH
        assert app.fetch_movies() is True
        _wait_until_idle(app)

    def test_error_message_clears_gate(self, tmp_path: Path) -> None:
        """An Error re-enables fetching."""
        app = _app(tmp_path)
        channel: queue.SimpleQueue = queue.SimpleQueue()
        channel.put(Error("Failed to fetch today: timeout"))
        app.loading_movies = True
        app.receiver = channel

        app.tick()

        assert app.loading_movies is False
        assert app.loading_messages == ["Error: Failed to fetch today: timeout"]


# =============================================================================
# Selection
# =============================================================================


class TestSelection:
    """Tests for date and movie navigation."""

    def test_filtered_movies_for_selected_date(self, tmp_path: Path) -> None:
        """The first date is selected and its titles sorted."""
        app = _app(tmp_path)

        assert app.selected_date() == at(5, 0)
        assert [title for title, _ in app.filtered_movies()] == ["Anora", "Flow"]
        assert app.selected_movie_name() == "Anora"

    def test_date_navigation_wraps_and_resets_movie(self, tmp_path: Path) -> None:
        """Dates wrap both ways; changing date resets the movie index."""
        app = _app(tmp_path)
        app.next_movie()
        assert app.selected_movie_name() == "Flow"

        app.next_date()
        assert app.selected_date() == at(6, 0)
        assert app.selected_movie_index == 0
        app.next_date()
        assert app.selected_date() == at(5, 0)
        app.previous_date()
        assert app.selected_date() == at(6, 0)

    def test_movie_navigation_wraps(self, tmp_path: Path) -> None:
        """Movie selection wraps around the filtered list."""
        app = _app(tmp_path)

        app.previous_movie()
        assert app.selected_movie_name() == "Flow"
        app.next_movie()
        assert app.selected_movie_name() == "Anora"

    def test_navigation_on_empty_schedule(self, tmp_path: Path) -> None:
        """Navigating with no data does nothing."""
        app = _app(tmp_path, cached=False)

        app.next_date()
        app.previous_date()
        app.next_movie()
        app.previous_movie()

        assert (app.selected_date_index, app.selected_movie_index) == (0, 0)
        assert app.selected_movie_name() is None

    def test_select_date(self, tmp_path: Path) -> None:
        """Selecting by day finds the matching available date."""
        app = _app(tmp_path)

        assert app.select_date(at(6, 15)) is True
        assert app.selected_date() == at(6, 0)
        assert app.select_date(at(20, 0)) is False


# =============================================================================
# Details and posters
# =============================================================================


class TestMovieDetail:
    """Tests for detail and poster lookups."""

    def test_missing_api_key(self, tmp_path: Path) -> None:
        """Without a key the lookup fails immediately."""
        app = _app(tmp_path)

        app.fetch_movie_detail("Flow")

        assert app.movie_detail_error == "API key not set"
        assert app.loading_movie_detail is False
        assert app.detail_receiver is None

    @patch("ritzschedule.worker.start_poster_download")
    @patch("ritzschedule.worker.start_detail_lookup")
    def test_detail_then_poster(self, mock_lookup: Mock, mock_poster: Mock, tmp_path: Path) -> None:
        """A detail with a poster URL starts the poster download."""
        detail_channel: queue.SimpleQueue = queue.SimpleQueue()
        poster_channel: queue.SimpleQueue = queue.SimpleQueue()
        mock_lookup.return_value = detail_channel
        mock_poster.return_value = poster_channel
        app = _app(tmp_path, api_key="secret")

        app.fetch_movie_detail("Flow")
        assert app.loading_movie_detail is True
        mock_lookup.assert_called_once_with("Flow", "secret")

        app.tick()
        assert app.loading_movie_detail is True

        detail = MovieDetail(title="Flow", poster="https://example.com/flow.jpg")
        detail_channel.put(Complete(detail))
        app.tick()
        assert app.selected_movie_detail == detail
        assert app.loading_movie_detail is False
        mock_poster.assert_called_once_with("https://example.com/flow.jpg")
        assert app.loading_poster is True

        poster_channel.put(Complete(b"\x89PNG"))
        app.tick()
        assert app.poster == b"\x89PNG"
        assert app.loading_poster is False

    @patch("ritzschedule.worker.start_poster_download")
    @patch("ritzschedule.worker.start_detail_lookup")
    def test_detail_without_poster(self, mock_lookup: Mock, mock_poster: Mock, tmp_path: Path) -> None:
        """An 'N/A' poster is not downloaded."""
        channel: queue.SimpleQueue = queue.SimpleQueue()
        channel.put(Complete(MovieDetail(title="Flow")))
        mock_lookup.return_value = channel
        app = _app(tmp_path, api_key="secret")

        app.fetch_movie_detail("Flow")
        app.tick()

        mock_poster.assert_not_called()

    @patch("ritzschedule.worker.start_detail_lookup")
    def test_detail_error(self, mock_lookup: Mock, tmp_path: Path) -> None:
        """Lookup failures are shown to the user."""
        channel: queue.SimpleQueue = queue.SimpleQueue()
        channel.put(Error("Movie not found: Flow"))
        mock_lookup.return_value = channel
        app = _app(tmp_path, api_key="secret")

        app.fetch_movie_detail("Flow")
        app.tick()

        assert app.movie_detail_error == "Movie not found: Flow"
        assert app.selected_movie_detail is None

    @patch("ritzschedule.worker.start_poster_download")
    def test_poster_error_is_silent(self, mock_poster: Mock, tmp_path: Path) -> None:
        """A failed poster leaves no poster and no error."""
        channel: queue.SimpleQueue = queue.SimpleQueue()
        channel.put(Error("Failed to download poster: status 404"))
        mock_poster.return_value = channel
        app = _app(tmp_path)

        app.fetch_poster("https://example.com/missing.jpg")
        app.tick()

        assert app.poster is None
        assert app.loading_poster is False
        assert app.movie_detail_error is None

    def test_close_detail_resets_state(self, tmp_path: Path) -> None:
        """Leaving the detail view clears detail and poster state."""
        app = _app(tmp_path)
        app.selected_movie_detail = MovieDetail(title="Flow")
        app.poster = b"img"
        app.poster_receiver = queue.SimpleQueue()

        app.close_detail()

        assert app.selected_movie_detail is None
        assert app.poster is None
        assert app.poster_receiver is None
