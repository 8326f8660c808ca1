"""Shared HTTP helpers for ritzschedule sources."""

from __future__ import annotations

import logging

import httpx

from ritzschedule.config import REQUEST_TIMEOUT_SECONDS


__all__ = ["DEFAULT_HEADERS", "create_http_client", "fetch_html"]

logger = logging.getLogger(__name__)

DEFAULT_HEADERS: dict[str, str] = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-AU,en;q=0.9",
    "User-Agent": "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/123.0.0.0 Safari/537.36",
}


def create_http_client(timeout: float = REQUEST_TIMEOUT_SECONDS) -> httpx.Client:
    """Create an HTTP client with browser-like headers.

    Args:
        timeout: Per-request timeout in seconds.

    Returns:
        Configured client; use it as a context manager.
    """
    return httpx.Client(
        headers=DEFAULT_HEADERS,
        timeout=timeout,
        follow_redirects=True,
    )


def fetch_html(client: httpx.Client, url: str) -> str:
    """GET ``url`` and return the response body as text.

    Raises:
        httpx.HTTPError: On transport failure or a non-success status.
    """
    logger.debug("GET %s", url)
    response = client.get(url)
    response.raise_for_status()
    return response.text
