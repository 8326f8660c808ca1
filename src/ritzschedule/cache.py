"""Local persistence of the last successfully fetched schedule.

The cache is a single JSON document::

    {
      "schedule": {"Dune: Part Two": ["2025-03-07T19:15:00+11:00", ...]},
      "lastUpdated": "2025-03-07T09:12:44+11:00"
    }

Caches written by earlier releases used ``movie_times`` / ``last_updated``
as field names; both spellings are read. Persistence is best-effort: a
missing or unreadable file means "no cache" and a failed write is logged
and ignored.
"""

from __future__ import annotations

import json
import logging
import os
import re
import tempfile
from datetime import datetime
from pathlib import Path
from typing import Any

from ritzschedule.constants import LOCAL_TZ
from ritzschedule.models import CacheSnapshot, Schedule


__all__ = ["CacheStore", "snapshot_from_dict", "snapshot_to_dict"]

logger = logging.getLogger(__name__)


# Older caches carry nanosecond fractions
_EXCESS_FRACTION_RE = re.compile(r"(\.\d{6})\d+")


def _to_local(value: str) -> datetime:
    """Parse an ISO-8601 timestamp into the cinema's timezone."""
    dt = datetime.fromisoformat(_EXCESS_FRACTION_RE.sub(r"\1", value))
    if dt.tzinfo is None or dt.tzinfo.utcoffset(dt) is None:
        return dt.replace(tzinfo=LOCAL_TZ)
    return dt.astimezone(LOCAL_TZ)


def snapshot_to_dict(snapshot: CacheSnapshot) -> dict[str, Any]:
    """Convert a snapshot to a JSON-serializable dictionary."""
    return {
        "schedule": {
            title: [showtime.isoformat() for showtime in showtimes]
            for title, showtimes in snapshot.schedule.items()
        },
        "lastUpdated": snapshot.last_updated.isoformat(),
    }


def snapshot_from_dict(data: dict[str, Any]) -> CacheSnapshot:
    """Rebuild a snapshot from its JSON form.

    Raises:
        KeyError: If a required field is missing.
        TypeError: If a field has the wrong shape.
        ValueError: If a timestamp is malformed.
        OverflowError: If a timestamp cannot be expressed in LOCAL_TZ.
    """
    raw_schedule = data["schedule"] if "schedule" in data else data["movie_times"]
    raw_updated = data["lastUpdated"] if "lastUpdated" in data else data["last_updated"]

    if not isinstance(raw_schedule, dict):
        msg = f"schedule must be an object, got {type(raw_schedule).__name__}"
        raise TypeError(msg)

    schedule: Schedule = {}
    for title, showtimes in raw_schedule.items():
        if not isinstance(showtimes, list):
            msg = f"showtimes for {title!r} must be a list"
            raise TypeError(msg)
        schedule[str(title)] = [_to_local(value) for value in showtimes]

    return CacheSnapshot(schedule=schedule, last_updated=_to_local(raw_updated))


class CacheStore:
    """Reads and writes the schedule cache file.

    Args:
        path: Location of the cache file. Parent directories are created on
            first write.
    """

    def __init__(self, path: str | Path) -> None:
        self.path = Path(path)

    def load(self) -> CacheSnapshot | None:
        """Read the cached snapshot.

        Returns:
            The snapshot, or None if the file is missing or unreadable.
        """
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            logger.debug("No schedule cache at %s", self.path)
            return None
        except OSError as exc:
            logger.warning("Could not read schedule cache %s: %s", self.path, exc)
            return None

        # UnicodeDecodeError is a ValueError; OverflowError comes from
        # timestamps that leave the datetime range once shifted to LOCAL_TZ.
        try:
            snapshot = snapshot_from_dict(json.loads(raw.decode("utf-8")))
        except (KeyError, TypeError, ValueError, OverflowError) as exc:
            logger.warning("Ignoring malformed schedule cache %s: %s", self.path, exc)
            return None

        logger.info(
            "Loaded %d cached titles (updated %s)",
            len(snapshot.schedule),
            snapshot.last_updated.isoformat(),
        )
        return snapshot

    def save(self, snapshot: CacheSnapshot) -> bool:
        """Replace the cache file with ``snapshot``.

        The document is written to a temporary file next to the cache and
        moved into place, so readers never see a half-written file.

        Returns:
            True if the cache was written.
        """
        payload = json.dumps(snapshot_to_dict(snapshot), indent=2, ensure_ascii=False)

        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            fd, tmp_name = tempfile.mkstemp(
                dir=self.path.parent,
                prefix=f".{self.path.name}.",
                suffix=".tmp",
            )
            try:
                with os.fdopen(fd, "w", encoding="utf-8") as handle:
                    handle.write(payload)
                Path(tmp_name).replace(self.path)
            except OSError:
                Path(tmp_name).unlink(missing_ok=True)
                raise
        except OSError as exc:
            logger.warning("Failed to save schedule cache %s: %s", self.path, exc)
            return False

        logger.debug("Schedule cache written to %s", self.path)
        return True
