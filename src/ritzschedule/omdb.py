"""Movie detail lookup via the OMDb API.

One request per title, no politeness delay. The API key is passed in by the
caller; this module never reads the environment.

OMDb text is third-party content that ends up on screen, so every field is
reduced to plain text with nh3 and poster links are limited to http(s).
"""

from __future__ import annotations

import html
import logging
import re
from typing import Any, Final
from urllib.parse import urlparse

import httpx
import nh3

from ritzschedule.models import MovieDetail, Rating
from ritzschedule.sources.base import create_http_client


__all__ = [
    "OMDB_URL",
    "MovieLookupError",
    "clean_text",
    "download_poster",
    "fetch_movie_details",
    "parse_movie_detail",
    "safe_url",
]

logger = logging.getLogger(__name__)

OMDB_URL: Final[str] = "https://www.omdbapi.com/"

MAX_FIELD_LENGTH: Final[int] = 300
MAX_PLOT_LENGTH: Final[int] = 1000
MAX_URL_LENGTH: Final[int] = 500

_WHITESPACE_RE = re.compile(r"\s+")

# OMDb response key -> MovieDetail field
_FIELD_MAP: Final[dict[str, str]] = {
    "Year": "year",
    "Rated": "rated",
    "Released": "released",
    "Runtime": "runtime",
    "Genre": "genre",
    "Director": "director",
    "Writer": "writer",
    "Actors": "actors",
    "Language": "language",
    "Country": "country",
    "Awards": "awards",
    "Metascore": "metascore",
    "imdbRating": "imdb_rating",
    "imdbVotes": "imdb_votes",
    "imdbID": "imdb_id",
    "Type": "media_type",
    "BoxOffice": "box_office",
}


class MovieLookupError(Exception):
    """Detail or poster lookup failed."""


# =============================================================================
# Field cleaning
# =============================================================================


def clean_text(value: Any, limit: int = MAX_FIELD_LENGTH) -> str:
    """Reduce an OMDb field to a single line of plain text.

    Markup is dropped (script and style bodies included), entities are
    decoded, and text longer than ``limit`` ends in "...".

    Example:
        >>> clean_text("A cat <b>finds</b> a boat &amp;\\n drifts")
        'A cat finds a boat & drifts'
    """
    if value is None:
        return ""

    text = html.unescape(nh3.clean(str(value), tags=set()))
    text = _WHITESPACE_RE.sub(" ", text).strip()
    if len(text) > limit:
        return text[: limit - 3] + "..."
    return text


def safe_url(value: Any) -> str | None:
    """Return ``value`` stripped if it is an absolute http(s) URL of sane length."""
    if not isinstance(value, str):
        return None

    url = value.strip()
    if not url or len(url) > MAX_URL_LENGTH:
        return None
    try:
        parsed = urlparse(url)
    except ValueError:
        return None
    if parsed.scheme.lower() not in ("http", "https") or not parsed.netloc:
        return None
    return url


def parse_movie_detail(data: dict[str, Any]) -> MovieDetail:
    """Build a MovieDetail from an OMDb JSON body, cleaning every field."""
    fields: dict[str, Any] = {attr: clean_text(data[key]) for key, attr in _FIELD_MAP.items() if data.get(key)}

    ratings = [
        Rating(source=clean_text(r.get("Source")), value=clean_text(r.get("Value")))
        for r in data.get("Ratings") or []
        if isinstance(r, dict)
    ]

    return MovieDetail(
        title=clean_text(data.get("Title")),
        plot=clean_text(data.get("Plot") or "N/A", limit=MAX_PLOT_LENGTH),
        poster=safe_url(data.get("Poster")) or "N/A",
        ratings=ratings,
        **fields,
    )


def fetch_movie_details(title: str, api_key: str) -> MovieDetail:
    """Look up ``title`` on OMDb.

    Args:
        title: Movie title as listed by the cinema.
        api_key: OMDb API key.

    Returns:
        Parsed movie details.

    Raises:
        MovieLookupError: If the request fails or OMDb has no match.
    """
    logger.info("Looking up details for %r", title)
    try:
        with create_http_client() as client:
            response = client.get(OMDB_URL, params={"apikey": api_key, "t": title})
            response.raise_for_status()
            data = response.json()
    except httpx.HTTPStatusError as exc:
        msg = f"API request failed with status: {exc.response.status_code}"
        raise MovieLookupError(msg) from exc
    except httpx.HTTPError as exc:
        msg = f"API request failed: {exc}"
        raise MovieLookupError(msg) from exc
    except ValueError as exc:
        msg = "API returned invalid JSON"
        raise MovieLookupError(msg) from exc

    if not isinstance(data, dict) or data.get("Response") == "False":
        msg = f"Movie not found: {title}"
        raise MovieLookupError(msg)

    return parse_movie_detail(data)


def download_poster(url: str) -> bytes:
    """Download a poster image.

    Returns:
        Raw image bytes; decoding is left to the caller.

    Raises:
        MovieLookupError: If the URL is unusable or the download fails.
    """
    poster_url = safe_url(url)
    if poster_url is None:
        msg = f"Invalid poster URL: {url[:50]!r}"
        raise MovieLookupError(msg)

    try:
        with create_http_client() as client:
            response = client.get(poster_url)
            response.raise_for_status()
    except httpx.HTTPStatusError as exc:
        msg = f"Failed to download poster: status {exc.response.status_code}"
        raise MovieLookupError(msg) from exc
    except httpx.HTTPError as exc:
        msg = f"Failed to download poster: {exc}"
        raise MovieLookupError(msg) from exc

    return response.content
