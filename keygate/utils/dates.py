"""Timestamp formatting helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def iso_utc(dt: datetime) -> str:
    """``2026-01-01T00:00:00.000Z``, millisecond precision."""
    dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S.") + f"{dt.microsecond // 1000:03d}Z"


def iso_with_timezone(dt: datetime, offset_hours: int) -> str:
    """Render ``dt`` in a fixed UTC offset, e.g. ``2026-01-01T08:00:00.000+08:00``."""
    tz = timezone(timedelta(hours=offset_hours))
    local = dt.astimezone(tz)
    sign = "+" if offset_hours >= 0 else "-"
    hours = abs(offset_hours)
    return (
        local.strftime("%Y-%m-%dT%H:%M:%S.")
        + f"{local.microsecond // 1000:03d}{sign}{hours:02d}:00"
    )
