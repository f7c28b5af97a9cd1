# backend/app/domain/periods.py
from __future__ import annotations

import calendar
from datetime import date, datetime, timezone
from typing import Any, Optional


def month_bounds(yyyy_mm: str) -> tuple[date, date]:
    y, m = [int(x) for x in yyyy_mm.split("-")[:2]]
    last_day = calendar.monthrange(y, m)[1]
    return date(y, m, 1), date(y, m, last_day)


def days_in_month(yyyy_mm: str) -> int:
    start, end = month_bounds(yyyy_mm)
    return (end - start).days + 1


def parse_day(value: Any) -> Optional[date]:
    """
    Lenient calendar-day parser for upstream values.

    Accepts date/datetime objects, "YYYY-MM-DD", ISO datetimes ("2025-07-10T15:00:00Z"),
    compact "YYYYMMDD" (string or int), and unix seconds (int or digit string,
    interpreted in UTC). Returns None otherwise.
    """
    if value is None:
        return None
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, bool):
        return None
    if isinstance(value, int) and len(str(value)) == 8:
        return _compact(str(value))
    if isinstance(value, (int, float)):
        return _from_epoch(value)

    s = str(value).strip()
    if not s:
        return None
    if s.isdigit():
        # eight digits is a compact calendar date, never 1970-era epoch seconds
        return _compact(s) if len(s) == 8 else _from_epoch(int(s))

    try:
        return date.fromisoformat(s[:10])
    except ValueError:
        return None


def _compact(s: str) -> Optional[date]:
    try:
        return datetime.strptime(s, "%Y%m%d").date()
    except ValueError:
        return None


def _from_epoch(x: float) -> Optional[date]:
    try:
        return datetime.fromtimestamp(float(x), tz=timezone.utc).date()
    except (OverflowError, OSError, ValueError):
        return None


def parse_required_day(value: Any, field: str) -> date:
    d = parse_day(value)
    if d is None:
        raise ValueError(f"{field}: expected YYYY-MM-DD, got {value!r}")
    return d


def utc_today() -> date:
    return datetime.now(timezone.utc).date()
