"""One-shot background tasks that report to the foreground over a channel.

Each task runs on its own daemon thread and owns a ``queue.SimpleQueue``
that only it writes to. The foreground keeps the queue and calls ``poll``
once per tick; ``poll`` never blocks. A task delivers zero or more
``Progress`` messages followed by exactly one ``Complete`` or ``Error``,
after which it exits. Tasks cannot be cancelled; a process exit simply
abandons them.

Usage:
    channel = start_schedule_acquisition(RitzSource())
    ...
    message = poll(channel)  # None until something arrives
"""

from __future__ import annotations

import logging
import queue
import threading
from collections.abc import Callable
from typing import Any

from ritzschedule.models import Complete, Error, FetchMessage, Progress
from ritzschedule.omdb import MovieLookupError, download_poster, fetch_movie_details
from ritzschedule.sources.ritz import RitzSource, ScheduleFetchError


__all__ = [
    "Channel",
    "acquire_schedule",
    "poll",
    "run_in_background",
    "start_detail_lookup",
    "start_poster_download",
    "start_schedule_acquisition",
]

logger = logging.getLogger(__name__)

Channel = queue.SimpleQueue
Send = Callable[[Any], None]


def run_in_background(work: Callable[[Send], None], *, name: str) -> Channel:
    """Start ``work`` on a daemon thread and return its message channel.

    Args:
        work: Called with the channel's ``put`` method.
        name: Thread name, for logs and debuggers.
    """
    channel: Channel = queue.SimpleQueue()
    thread = threading.Thread(target=work, args=(channel.put,), name=name, daemon=True)
    thread.start()
    logger.debug("Started background task %s", name)
    return channel


def poll(channel: Channel) -> Any | None:
    """Return the next message from ``channel`` or None if there is none yet."""
    try:
        return channel.get_nowait()
    except queue.Empty:
        return None


# =============================================================================
# Schedule acquisition
# =============================================================================


def acquire_schedule(source: RitzSource, send: Callable[[FetchMessage], None]) -> None:
    """Run a full schedule fetch, reporting through ``send``.

    Every outcome ends with exactly one terminal message, including
    unexpected failures inside the fetcher.
    """
    try:
        schedule = source.fetch_schedule(on_progress=lambda text: send(Progress(text)))
    except ScheduleFetchError as exc:
        logger.warning("Schedule fetch aborted: %s", exc)
        send(Error(str(exc)))
    except Exception as exc:
        logger.exception("Schedule fetch failed unexpectedly")
        send(Error(f"Unexpected error: {exc}"))
    else:
        send(Complete(schedule))


def start_schedule_acquisition(source: RitzSource) -> Channel:
    return run_in_background(lambda send: acquire_schedule(source, send), name="schedule-acquisition")


# =============================================================================
# Movie details and posters
# =============================================================================


def _one_shot(call: Callable[[], Any], send: Send, what: str) -> None:
    try:
        result = call()
    except MovieLookupError as exc:
        logger.info("%s failed: %s", what, exc)
        send(Error(str(exc)))
    except Exception as exc:
        logger.exception("%s failed unexpectedly", what)
        send(Error(f"Unexpected error: {exc}"))
    else:
        send(Complete(result))


def start_detail_lookup(title: str, api_key: str) -> Channel:
    return run_in_background(
        lambda send: _one_shot(lambda: fetch_movie_details(title, api_key), send, "Detail lookup"),
        name="detail-lookup",
    )


def start_poster_download(url: str) -> Channel:
    return run_in_background(
        lambda send: _one_shot(lambda: download_poster(url), send, "Poster download"),
        name="poster-download",
    )
