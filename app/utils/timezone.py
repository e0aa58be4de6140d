"""
app/utils/timezone.py — Calendar-day and clock helpers
"Today" is resolved in the configured timezone (default Asia/Tokyo) so every
user sees the same person of the day; the rate limiter uses epoch milliseconds.
"""
from __future__ import annotations

import time
from datetime import date, datetime, timedelta
from typing import Optional

import pytz

from app.config import get_settings

settings = get_settings()

UTC = pytz.utc


def calendar_tz():
    """Return the pytz timezone the calendar day boundaries are computed in."""
    return pytz.timezone(settings.timezone)


def utc_now() -> datetime:
    """Return current UTC datetime (timezone-aware)."""
    return datetime.now(UTC)


def local_now() -> datetime:
    """Return current datetime in the calendar timezone."""
    return datetime.now(calendar_tz())


def today_local() -> date:
    """Return today's calendar date in the calendar timezone."""
    return local_now().date()


def today_local_str() -> str:
    """Return today's date string as YYYY-MM-DD."""
    return today_local().strftime("%Y-%m-%d")


def now_ms() -> int:
    """Milliseconds since the epoch."""
    return int(time.time() * 1000)


def get_week_start(day: date) -> date:
    """Monday of the week containing `day`."""
    return day - timedelta(days=day.weekday())  # Monday=0


def get_month_start(day: date) -> date:
    return day.replace(day=1)


def shift_days(day: date, offset: int) -> date:
    return day + timedelta(days=offset)


def month_day_key(day: Optional[date] = None) -> str:
    """Return an MM-DD key for a date (today if omitted)."""
    if day is None:
        day = today_local()
    return day.strftime("%m-%d")
