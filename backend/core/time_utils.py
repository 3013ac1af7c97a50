"""
Time utilities
Duration conversion, clock-time targets and time-string sanitization
"""

import re
import time
from datetime import datetime, timedelta
from typing import Optional

from models.steps import Meridiem, TimeUnit

_UNIT_MS = {
    TimeUnit.SECONDS: 1000,
    TimeUnit.MINUTES: 60 * 1000,
    TimeUnit.HOURS: 60 * 60 * 1000,
    TimeUnit.DAYS: 24 * 60 * 60 * 1000,
}

_TIME_PATTERN = re.compile(r"^(\d{1,2}):(\d{2})$")

DEFAULT_CLOCK_TIME = "7:00"


def now_ms() -> float:
    """Wall-clock time in epoch milliseconds"""
    return time.time() * 1000


def duration_to_ms(amount: Optional[float], unit: TimeUnit | str) -> float:
    """Convert amount + unit to milliseconds; negative or missing amounts are 0"""
    if not amount or amount < 0:
        return 0
    try:
        factor = _UNIT_MS[TimeUnit(unit)]
    except ValueError:
        factor = _UNIT_MS[TimeUnit.SECONDS]
    return amount * factor


def to_24_hour(time_str: str, meridiem: Meridiem | str) -> tuple[int, int]:
    """Convert "H:MM" + AM/PM to (hour, minute) on a 24-hour clock"""
    hour_str, _, minute_str = time_str.partition(":")
    hour = int(hour_str)
    minute = int(minute_str or "0")

    meridiem = Meridiem(meridiem)
    if meridiem is Meridiem.PM and hour != 12:
        hour += 12
    if meridiem is Meridiem.AM and hour == 12:
        hour = 0
    return hour, minute


def ms_until_clock_time(
    time_str: str,
    meridiem: Meridiem | str,
    now: Optional[datetime] = None,
) -> float:
    """Milliseconds until the next occurrence of a 12-hour clock time

    A target at or before the current instant rolls over to the next day,
    so the result is always positive.
    """
    hour, minute = to_24_hour(time_str, meridiem)
    current = now or datetime.now()
    target = current.replace(hour=hour, minute=minute, second=0, microsecond=0)
    if target <= current:
        target += timedelta(days=1)
    return (target - current).total_seconds() * 1000


def sanitize_time_input(value: Optional[str], fallback: str) -> str:
    """Return value normalized to "H:MM" if it is a valid 12-hour time, else fallback"""
    if not isinstance(value, str):
        return fallback
    match = _TIME_PATTERN.match(value.strip())
    if not match:
        return fallback
    hours = int(match.group(1))
    minutes = int(match.group(2))
    if hours < 1 or hours > 12:
        return fallback
    if minutes < 0 or minutes > 59:
        return fallback
    return f"{hours}:{minutes:02d}"


def format_elapsed(ms: float) -> str:
    """Format milliseconds as MM:SS, or HH:MM:SS past the first hour"""
    total_seconds = int(max(0, ms) // 1000)
    hours, rest = divmod(total_seconds, 3600)
    minutes, seconds = divmod(rest, 60)
    if hours > 0:
        return f"{hours:02d}:{minutes:02d}:{seconds:02d}"
    return f"{minutes:02d}:{seconds:02d}"
