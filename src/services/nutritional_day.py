"""Nutritional-day arithmetic.

A nutritional day runs from 05:00 to 05:00 instead of midnight to midnight,
so a late-night snack at 01:30 counts toward the previous day. All the
date helpers used by meal tracking, reports and notifications live here.
"""
from __future__ import annotations

import calendar
from datetime import date, datetime, timedelta, timezone
from typing import Optional
from zoneinfo import ZoneInfo

from config.settings import settings

DAY_NAMES = ["Dom", "Seg", "Ter", "Qua", "Qui", "Sex", "Sáb"]  # Sunday first


def local_zone(tz: Optional[str] = None) -> ZoneInfo:
    return ZoneInfo(tz or settings.NUTRITIONAL_DAY_TZ)


def as_utc(ts: datetime) -> datetime:
    """Treat naive datetimes (SQLite round-trips) as UTC."""
    if ts.tzinfo is None:
        return ts.replace(tzinfo=timezone.utc)
    return ts.astimezone(timezone.utc)


def parse_day(day: str | date) -> date:
    """Parse YYYY-MM-DD. Raises ValueError on anything else."""
    if isinstance(day, datetime):
        return day.date()
    if isinstance(day, date):
        return day
    return date.fromisoformat(day)


def nutritional_day(ts: Optional[datetime] = None, tz: Optional[str] = None) -> str:
    """ISO date of the nutritional day ``ts`` belongs to.

    Before the start hour (local time) the timestamp belongs to the
    previous calendar day.
    """
    ts = as_utc(ts or datetime.now(timezone.utc)).astimezone(local_zone(tz))
    day = ts.date()
    if ts.hour < settings.NUTRITIONAL_DAY_START_HOUR:
        day -= timedelta(days=1)
    return day.isoformat()


def nutritional_day_range(day: str | date) -> tuple[datetime, datetime]:
    """``[day 05:00 UTC, day+1 05:00 UTC)`` for a YYYY-MM-DD string."""
    d = parse_day(day)
    start = datetime(d.year, d.month, d.day, settings.NUTRITIONAL_DAY_START_HOUR, tzinfo=timezone.utc)
    return start, start + timedelta(days=1)


def is_new_nutritional_day(last_day: Optional[str], now: Optional[datetime] = None) -> bool:
    """True when ``now`` falls on a different nutritional day than ``last_day``."""
    if not last_day:
        return True
    return nutritional_day(now) != parse_day(last_day).isoformat()


def week_start(day: str | date) -> date:
    """The Sunday on or before ``day``."""
    d = parse_day(day)
    # weekday(): Monday=0 .. Sunday=6
    return d - timedelta(days=(d.weekday() + 1) % 7)


def month_bounds(day: str | date) -> tuple[date, date]:
    d = parse_day(day)
    last = calendar.monthrange(d.year, d.month)[1]
    return d.replace(day=1), d.replace(day=last)


def period_bounds(period: str, day: str | date) -> tuple[date, date]:
    """Inclusive date bounds for day / week / month (and daily/weekly/monthly)."""
    d = parse_day(day)
    if period in ("day", "daily"):
        return d, d
    if period in ("week", "weekly"):
        start = week_start(d)
        return start, start + timedelta(days=6)
    if period in ("month", "monthly"):
        return month_bounds(d)
    raise ValueError(f"Unknown period: {period}")


def day_name(day: date) -> str:
    return DAY_NAMES[(day.weekday() + 1) % 7]
