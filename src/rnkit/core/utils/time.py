"""Timezone-aware time helpers."""
from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_timestamp(dt: datetime | None = None) -> str:
    """Return an ISO 8601 UTC timestamp with millisecond precision and ``Z`` suffix."""
    value = (dt or utc_now()).astimezone(timezone.utc)
    return value.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def compact_timestamp(dt: datetime | None = None) -> str:
    """Return a filesystem-safe, lexically sortable UTC timestamp.

    Example: ``20240105T093012123456Z``.
    """
    value = (dt or utc_now()).astimezone(timezone.utc)
    return value.strftime("%Y%m%dT%H%M%S%fZ")


__all__ = ["utc_now", "utc_timestamp", "compact_timestamp"]
