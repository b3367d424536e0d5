# core/datetime_utils.py
"""
Centralized time handling.

Registration windows and confirmation deadlines are stored as epoch
milliseconds; everything that compares against them goes through here.
"""
from datetime import datetime, timezone as dt_timezone
from typing import Optional

from django.utils import timezone
from django.utils.timesince import timeuntil


def now() -> datetime:
    """Single source of truth for "now"."""
    return timezone.now()


def now_ms() -> int:
    return int(now().timestamp() * 1000)


def from_ms(value: Optional[int]) -> Optional[datetime]:
    if value is None:
        return None
    return datetime.fromtimestamp(value / 1000, tz=dt_timezone.utc)


def time_until_ms(value: int) -> str:
    """
    Human readable distance to a future epoch-ms timestamp, e.g. "3 days, 2 hours".
    """
    return timeuntil(from_ms(value), now())
