"""Command-line entry point for ritzschedule.

Workflow:
1. Warm the schedule from the local cache
2. Refresh in the background when asked, when there is no cache, or when
   the cache is stale, streaming progress to the log
3. Print the showtimes for the chosen day (or every day)
"""

from __future__ import annotations

import argparse
import logging
import sys
import time
from datetime import date, datetime
from typing import NoReturn

from dotenv import load_dotenv

from ritzschedule.app import App
from ritzschedule.config import TICK_SECONDS, Settings, load_settings
from ritzschedule.timeparse import local_midnight

__all__ = ["format_showtime", "main", "run"]


# =============================================================================
# Logging Configuration
# =============================================================================


def _configure_logging(settings: Settings, *, verbose: bool = False) -> None:
    """Configure console and file logging.

    The log file lives next to the schedule cache.
    """
    log_format = "%(asctime)s - %(name)s - %(levelname)s - %(message)s"
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stderr)]
    file_error: OSError | None = None

    try:
        settings.cache_dir.mkdir(parents=True, exist_ok=True)
        handlers.append(logging.FileHandler(settings.cache_dir / "ritzschedule.log", encoding="utf-8"))
    except OSError as exc:
        file_error = exc

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=log_format,
        handlers=handlers,
    )
    if file_error is not None:
        logging.getLogger(__name__).warning("File logging disabled: %s", file_error)


logger = logging.getLogger(__name__)


# =============================================================================
# Output
# =============================================================================


def format_showtime(showtime: datetime) -> str:
    """Format as the site does, e.g. '7:30 pm'."""
    hour = showtime.hour % 12 or 12
    marker = "am" if showtime.hour < 12 else "pm"
    return f"{hour}:{showtime.minute:02d} {marker}"


def _print_day(app: App) -> None:
    selected = app.selected_date()
    if selected is None:
        print("No showtimes available.")
        return

    print(f"\n{selected.strftime('%A %d %B %Y')}")
    movies = app.filtered_movies()
    if not movies:
        print("  No showtimes.")
    for title, showtimes in movies:
        print(f"  {title}: {', '.join(format_showtime(s) for s in showtimes)}")


# =============================================================================
# Main Workflow
# =============================================================================


def _wait_for_refresh(app: App) -> bool:
    """Tick until the running refresh finishes; return True on success."""
    seen = 0
    while app.loading_movies:
        app.tick()
        for message in app.loading_messages[seen:]:
            logger.info(message)
        seen = len(app.loading_messages)
        if app.loading_movies:
            time.sleep(TICK_SECONDS)

    # Completion clears the messages; a failure leaves its error last.
    return not (app.loading_messages and app.loading_messages[-1].startswith("Error: "))


def run(
    settings: Settings,
    *,
    refresh: bool = False,
    day: date | None = None,
    show_all: bool = False,
) -> bool:
    """Load, optionally refresh, and print the schedule.

    Args:
        settings: Environment-derived settings.
        refresh: Always fetch fresh data, even with a usable cache.
        day: Day to print; defaults to the first available day.
        show_all: Print every available day.

    Returns:
        True if the schedule was shown. A failed refresh still counts as
        success when cached data could be shown instead.
    """
    try:
        app = App(settings)
        logger.info("Last updated: %s", app.last_updated_display())

        if refresh or not app.schedule or app.is_update_recommended():
            if app.is_update_recommended():
                logger.info("Cached schedule is out of date, refreshing")
            app.fetch_movies()
            if not _wait_for_refresh(app) and not app.schedule:
                logger.error("No schedule available")
                return False

        if show_all:
            for index in range(len(app.available_dates)):
                app.selected_date_index = index
                _print_day(app)
            return True

        if day is not None and not app.select_date(local_midnight(day)):
            logger.warning("No showtimes on %s", day.isoformat())
            return True

        _print_day(app)

    except Exception:
        logger.exception("Workflow failed")
        return False
    else:
        return True


# =============================================================================
# CLI Entry Point
# =============================================================================


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description="Ritz Cinemas showtimes in the terminal",
    )
    parser.add_argument(
        "--refresh",
        action="store_true",
        help="Fetch fresh listings even if the cache is current",
    )
    parser.add_argument(
        "--date",
        type=date.fromisoformat,
        default=None,
        help="Show a specific day (YYYY-MM-DD)",
    )
    parser.add_argument(
        "--all",
        action="store_true",
        dest="show_all",
        help="Show every available day",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging",
    )
    return parser.parse_args(argv)


def main(argv: list[str] | None = None) -> NoReturn:
    """Main entry point for the application."""
    args = _parse_args(argv)
    load_dotenv()
    settings = load_settings()
    _configure_logging(settings, verbose=args.verbose)

    success = run(settings, refresh=args.refresh, day=args.date, show_all=args.show_all)
    sys.exit(0 if success else 1)


if __name__ == "__main__":
    main()
