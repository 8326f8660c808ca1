"""Runtime configuration for ritzschedule.

Static tuning values are module constants; anything sourced from the
environment is collected once into a ``Settings`` instance by
``load_settings()`` and passed to the components that need it.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Final

from platformdirs import user_cache_dir


__all__ = [
    "CACHE_APP_NAME",
    "CACHE_FILE_NAME",
    "LISTINGS_URL",
    "REQUEST_TIMEOUT_SECONDS",
    "SCRAPE_DELAY_MAX_SECONDS",
    "SCRAPE_DELAY_MIN_SECONDS",
    "TICK_SECONDS",
    "Settings",
    "load_settings",
]

LISTINGS_URL: Final[str] = "https://www.ritzcinemas.com.au/now-showing"

# Randomized politeness delay between day pages to avoid IP blocks
SCRAPE_DELAY_MIN_SECONDS: Final[float] = 1.0
SCRAPE_DELAY_MAX_SECONDS: Final[float] = 2.0

REQUEST_TIMEOUT_SECONDS: Final[float] = 30.0

# Foreground poll interval
TICK_SECONDS: Final[float] = 0.1

# Shares the directory name with earlier releases so existing caches load.
CACHE_APP_NAME: Final[str] = "cinema_tui"
CACHE_FILE_NAME: Final[str] = "movie_cache.json"


@dataclass(frozen=True, slots=True, kw_only=True)
class Settings:
    """Environment-derived settings.

    Attributes:
        cache_dir: Directory holding the schedule cache and the log file.
        omdb_api_key: Key for the OMDb detail lookup, or None if unset.
    """

    cache_dir: Path
    omdb_api_key: str | None = None

    @property
    def cache_path(self) -> Path:
        return self.cache_dir / CACHE_FILE_NAME


def load_settings() -> Settings:
    """Build settings from environment variables.

    Reads ``RITZ_CACHE_DIR`` (defaults to the per-user cache directory) and
    ``OMDB_API_KEY``. Blank values are treated as unset.

    Returns:
        Populated Settings instance.
    """
    cache_dir = os.getenv("RITZ_CACHE_DIR", "").strip()
    api_key = os.getenv("OMDB_API_KEY", "").strip()

    return Settings(
        cache_dir=Path(cache_dir) if cache_dir else Path(user_cache_dir(CACHE_APP_NAME, appauthor=False)),
        omdb_api_key=api_key or None,
    )
