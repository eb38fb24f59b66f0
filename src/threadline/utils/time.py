# src/threadline/utils/time.py
"""Timestamp labels shown on post cards."""

from __future__ import annotations

from datetime import datetime

from threadline.db.time import as_utc, utcnow

MINUTE = 60
HOUR = MINUTE * 60
DAY = HOUR * 24
WEEK = DAY * 7

# Fixed English abbreviations; strftime("%b") follows the process locale.
_MONTHS = ("Jan", "Feb", "Mar", "Apr", "May", "Jun", "Jul", "Aug", "Sep", "Oct", "Nov", "Dec")


def _short_date(value: datetime) -> str:
    return f"{_MONTHS[value.month - 1]} {value.day}"


def format_relative_time(value: datetime, now: datetime | None = None) -> str:
    """Compact age such as ``"42s"``, ``"5m"``, ``"3h"``, ``"6d"`` or ``"Jan 5"``."""
    value = as_utc(value)
    elapsed = int(((now or utcnow()) - value).total_seconds())
    elapsed = max(elapsed, 0)
    if elapsed < MINUTE:
        return f"{elapsed}s"
    if elapsed < HOUR:
        return f"{elapsed // MINUTE}m"
    if elapsed < DAY:
        return f"{elapsed // HOUR}h"
    if elapsed < WEEK:
        return f"{elapsed // DAY}d"
    return _short_date(value)


def format_absolute_time(value: datetime) -> str:
    """Full timestamp such as ``"3:07 PM · Jan 5, 2026"`` (UTC)."""
    value = as_utc(value)
    hour = value.hour % 12 or 12
    meridiem = "AM" if value.hour < 12 else "PM"
    return f"{hour}:{value.minute:02d} {meridiem} · {_short_date(value)}, {value.year}"
