"""Timestamp formatting shared by the write paths."""

from __future__ import annotations

from datetime import datetime, timezone


def format_timestamp(dt: datetime | None = None) -> str:
    """Format an RFC3339 UTC timestamp with microseconds and trailing 'Z'.

    Microsecond precision keeps lexical order equal to creation order for
    rows written in quick succession.
    """
    base = (dt or datetime.now(timezone.utc)).astimezone(timezone.utc).isoformat(timespec="microseconds")
    return base.replace("+00:00", "Z")


__all__ = ["format_timestamp"]
