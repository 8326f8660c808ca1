"""Scraper for the Ritz Cinemas "now showing" listings.

The site publishes one page per day at ``/now-showing/<label>`` where the
label is "today", "tomorrow" or a weekday name. The root page carries a
day picker (``.swiper-slide`` links) listing which labels currently exist.

Each day page lists films as ``li.Stack`` rows::

    <li class="Stack">
      <span class="Title"><a href="/movies/dune">Dune: Part Two</a></span>
      <span class="Time">2:00 pm</span>
      <span class="Time">7:15 pm</span>
    </li>
"""

from __future__ import annotations

import logging
import random
import time
from collections.abc import Callable
from datetime import date, datetime
from typing import ClassVar
from urllib.parse import urlparse

import httpx
from bs4 import BeautifulSoup

from ritzschedule.config import (
    LISTINGS_URL,
    SCRAPE_DELAY_MAX_SECONDS,
    SCRAPE_DELAY_MIN_SECONDS,
)
from ritzschedule.constants import ALL_DAYS_LABEL, LOCAL_TZ
from ritzschedule.models import Schedule
from ritzschedule.sources.base import create_http_client, fetch_html
from ritzschedule.timeparse import (
    ClockParseError,
    absolute_showtime,
    fallback_day_labels,
    local_today,
    parse_clock_offset,
    resolve_day_label,
)

__all__ = ["RitzSource", "ScheduleFetchError", "parse_showtimes"]

logger = logging.getLogger(__name__)


class ScheduleFetchError(Exception):
    """A day page could not be fetched; the whole run is abandoned."""

    def __init__(self, label: str, cause: BaseException) -> None:
        self.label = label
        self.cause = cause
        super().__init__(f"Failed to fetch {label}: {cause}")


def parse_showtimes(html: str) -> list[tuple[str, list[str]]]:
    """Extract ``(title, [time-string])`` pairs from one day page.

    Rows without a title link, or whose title is blank, are dropped. A row
    with a title but no times still yields a pair with an empty list.

    Args:
        html: Markup of a single day's listing page.

    Returns:
        Pairs in page order; a title may appear more than once.
    """
    soup = BeautifulSoup(html, "html.parser")
    showings: list[tuple[str, list[str]]] = []

    for row in soup.select(RitzSource.SELECTOR_ROW):
        title_el = row.select_one(RitzSource.SELECTOR_TITLE)
        if title_el is None:
            continue
        title = title_el.get_text().strip()
        if not title:
            continue

        times = [
            text
            for text in (t.get_text().strip() for t in row.select(RitzSource.SELECTOR_TIME))
            if text
        ]
        showings.append((title, times))

    return showings


class RitzSource:
    """Builds a full schedule from the Ritz Cinemas day pages.

    Args:
        clock: Returns the current time; used to anchor day-labels.
        sleep: Called with the politeness delay between day pages.
        uniform: Draws the delay from ``(low, high)``.
    """

    source_name: ClassVar[str] = "Ritz Cinemas"

    LISTINGS_URL: ClassVar[str] = LISTINGS_URL
    LISTINGS_PATH: ClassVar[str] = "/now-showing/"

    SELECTOR_DAY_LINK: ClassVar[str] = ".swiper-slide a[href*='/now-showing/']"
    SELECTOR_ROW: ClassVar[str] = "li.Stack"
    SELECTOR_TITLE: ClassVar[str] = "span.Title a"
    SELECTOR_TIME: ClassVar[str] = "span.Time"

    def __init__(
        self,
        *,
        clock: Callable[[], datetime] | None = None,
        sleep: Callable[[float], None] = time.sleep,
        uniform: Callable[[float, float], float] = random.uniform,
    ) -> None:
        self._clock = clock or (lambda: datetime.now(LOCAL_TZ))
        self._sleep = sleep
        self._uniform = uniform

    def day_url(self, label: str) -> str:
        return f"{self.LISTINGS_URL}/{label}"

    # ------------------------------------------------------------------
    # Day discovery
    # ------------------------------------------------------------------

    def discover_day_labels(self, client: httpx.Client) -> list[str]:
        """Read the day picker on the root listings page.

        Returns:
            Labels in page order, duplicates preserved, without the
            "all days" entry.

        Raises:
            httpx.HTTPError: If the root page cannot be fetched.
        """
        html = fetch_html(client, self.LISTINGS_URL)
        soup = BeautifulSoup(html, "html.parser")

        labels: list[str] = []
        for link in soup.select(self.SELECTOR_DAY_LINK):
            path = urlparse(str(link.get("href", ""))).path
            _, found, tail = path.partition(self.LISTINGS_PATH)
            if not found:
                continue
            label = tail.strip("/").rsplit("/", 1)[-1]
            if not label or label == ALL_DAYS_LABEL:
                continue
            labels.append(label)

        return labels

    def day_pages(self, client: httpx.Client, today: date) -> list[tuple[date, str]]:
        """Pair every published day-label with the calendar day it denotes.

        Falls back to the fixed seven-day sequence if the day picker cannot
        be read or lists nothing.
        """
        try:
            labels = self.discover_day_labels(client)
        except Exception as exc:
            logger.warning("Day discovery failed (%s), using fallback week", exc)
            labels = []

        if not labels:
            labels = fallback_day_labels(today)
            logger.info("Using fallback day labels: %s", ", ".join(labels))

        return [(resolve_day_label(label, today), label) for label in labels]

    # ------------------------------------------------------------------
    # Schedule acquisition
    # ------------------------------------------------------------------

    def fetch_schedule(self, on_progress: Callable[[str], None] | None = None) -> Schedule:
        """Fetch every published day and merge the results.

        Args:
            on_progress: Receives a status line before each day is fetched.

        Returns:
            Title to showtimes mapping covering all fetched days.

        Raises:
            ScheduleFetchError: If any day page fails to download. No
                partial schedule is returned in that case.
        """
        today = local_today(self._clock())
        schedule: Schedule = {}

        logger.info("Fetching schedule from %s", self.source_name)
        with create_http_client() as client:
            days = self.day_pages(client, today)

            for index, (day, label) in enumerate(days):
                if on_progress is not None:
                    on_progress(f"Getting movie times for {label}")

                if index > 0:
                    delay = self._uniform(SCRAPE_DELAY_MIN_SECONDS, SCRAPE_DELAY_MAX_SECONDS)
                    logger.debug("Rate limiting: waiting %.1fs before %s", delay, label)
                    self._sleep(delay)

                try:
                    html = fetch_html(client, self.day_url(label))
                except httpx.HTTPError as exc:
                    raise ScheduleFetchError(label, exc) from exc

                added = self._merge(schedule, day, parse_showtimes(html))
                logger.debug("%s (%s): %d showtimes", label, day.isoformat(), added)

        logger.info(
            "%s: %d titles across %d days",
            self.source_name,
            len(schedule),
            len(days),
        )
        return schedule

    @staticmethod
    def _merge(
        schedule: Schedule,
        day: date,
        showings: list[tuple[str, list[str]]],
    ) -> int:
        """Add one day's showings to ``schedule``; return how many were added."""
        added = 0
        for title, times in showings:
            for text in times:
                try:
                    offset = parse_clock_offset(text)
                except ClockParseError as exc:
                    logger.warning("Skipping showtime for %s: %s", title, exc)
                    continue
                schedule.setdefault(title, []).append(absolute_showtime(day, offset))
                added += 1
        return added
