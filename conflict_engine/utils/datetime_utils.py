"""Utility functions for working with dates and times."""

from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from typing import Any, Optional

__all__ = [
    "get_current_timestamp",
    "parse_date",
    "parse_datetime",
    "days_between_spans",
    "month_name",
    "easter_sunday",
]


def get_current_timestamp() -> datetime:
    """Return the current UTC datetime with micro-second precision.

    This object can be stored directly in MongoDB where it will be written as
    a BSON Date.
    """
    return datetime.now(tz=timezone.utc)


def parse_date(value: Any) -> Optional[date]:
    """Best-effort conversion of provider date values to :class:`date`.

    Accepts ``date``/``datetime`` objects and ISO-8601 strings with or
    without a time part (``2025-11-15``, ``2025-11-15T19:00:00Z``).
    Returns ``None`` for anything unparseable.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value).strip()[:10])
    except ValueError:
        return None


def parse_datetime(value: Any) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    try:
        return datetime.fromisoformat(str(value).strip().replace("Z", "+00:00"))
    except ValueError:
        return None


def days_between_spans(
    start_a: date,
    end_a: Optional[date],
    start_b: date,
    end_b: Optional[date],
) -> int:
    """Return the gap in whole days between two date spans, 0 if they overlap.

    >>> days_between_spans(date(2025, 1, 1), date(2025, 1, 3), date(2025, 1, 5), None)
    2
    >>> days_between_spans(date(2025, 1, 1), date(2025, 1, 3), date(2025, 1, 2), None)
    0
    """
    last_a = end_a or start_a
    last_b = end_b or start_b
    if start_b > last_a:
        return (start_b - last_a).days
    if start_a > last_b:
        return (start_a - last_b).days
    return 0


def month_name(month: int) -> str:
    return calendar.month_name[month]


def easter_sunday(year: int) -> date:
    """Gregorian Easter Sunday (anonymous Gregorian algorithm)."""
    a = year % 19
    b, c = divmod(year, 100)
    d, e = divmod(b, 4)
    f = (b + 8) // 25
    g = (b - f + 1) // 3
    h = (19 * a + b - d - g + 15) % 30
    i, k = divmod(c, 4)
    l = (32 + 2 * e + 2 * i - h - k) % 7  # noqa: E741
    m = (a + 11 * h + 22 * l) // 451
    month, day = divmod(h + l - 7 * m + 114, 31)
    return date(year, month, day + 1)
