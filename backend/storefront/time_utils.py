from __future__ import annotations

import calendar
from datetime import datetime, timedelta, timezone
from typing import Optional


# Recent-sales windows. Day/week windows are fixed spans, the rest are calendar months back.
SALES_WINDOWS = {
    "1d": ("days", 1),
    "1w": ("days", 7),
    "1m": ("months", 1),
    "6m": ("months", 6),
    "1y": ("months", 12),
    "5y": ("months", 60),
}
DEFAULT_SALES_WINDOW = "1m"


def utcnow() -> datetime:
    """Server-side 'now' in UTC (naive, canonical)."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


def to_utc_z(dt: Optional[datetime]) -> Optional[str]:
    """
    Serializes datetime to ISO-8601 with trailing 'Z'.
    If dt is naive, it is treated as UTC.
    """
    if dt is None:
        return None
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt_utc = dt.astimezone(timezone.utc).replace(microsecond=0)
    return dt_utc.isoformat().replace("+00:00", "Z")


def _months_back(dt: datetime, months: int) -> datetime:
    total = dt.year * 12 + (dt.month - 1) - months
    year, month = divmod(total, 12)
    month += 1
    # Clamp the day (31 March minus one month -> 28/29 February)
    day = min(dt.day, calendar.monthrange(year, month)[1])
    return dt.replace(year=year, month=month, day=day)


def window_start(key: str, now: Optional[datetime] = None) -> datetime:
    """
    Start of a recent-sales window ("1d", "1w", "1m", "6m", "1y", "5y").

    Raises ValueError for an unknown key.
    """
    if key not in SALES_WINDOWS:
        raise ValueError(f"Unknown window {key!r}; expected one of {', '.join(SALES_WINDOWS)}")
    now = now or utcnow()
    unit, amount = SALES_WINDOWS[key]
    if unit == "days":
        return now - timedelta(days=amount)
    return _months_back(now, amount)
