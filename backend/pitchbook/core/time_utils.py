# backend/pitchbook/core/time_utils.py
"""
Wall-clock helpers for booking slots.

Booking times are stored as zero-padded ``HH:mm`` strings on a booking date.
All values parsed together are placed on one reference day, so subtracting
them gives elapsed wall-clock time. Overnight spans are not supported.
"""

from datetime import date, datetime, time, timezone
import re
from typing import Optional
from zoneinfo import ZoneInfo

from .exceptions import MalformedTimeError

TIME_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")

# Arbitrary fixed day used for duration arithmetic
REFERENCE_DATE = date(2024, 1, 1)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def parse_time(value: str, field: Optional[str] = None) -> time:
    """Parse an ``HH:mm`` string (hour may be a single digit)."""
    if not isinstance(value, str) or not TIME_PATTERN.fullmatch(value.strip()):
        raise MalformedTimeError(value, field)
    hours, minutes = value.strip().split(":")
    return time(int(hours), int(minutes))


def normalize_time(value: str, field: Optional[str] = None) -> str:
    """Return the zero-padded ``HH:mm`` form (``9:05`` -> ``09:05``)."""
    return parse_time(value, field).strftime("%H:%M")


def on_reference_day(value: str) -> datetime:
    return datetime.combine(REFERENCE_DATE, parse_time(value))


def duration_hours(start_time: str, end_time: str) -> float:
    """Elapsed hours between two wall-clock values; negative if end precedes start."""
    delta = on_reference_day(end_time) - on_reference_day(start_time)
    return delta.total_seconds() / 3600


def combine_date_and_time(booking_date: date, start_time: str, tz_name: str = "UTC") -> datetime:
    """Build the timezone-aware instant a booking starts at."""
    return datetime.combine(booking_date, parse_time(start_time), tzinfo=ZoneInfo(tz_name))


def hours_until(instant: datetime, now: Optional[datetime] = None) -> float:
    """Hours from ``now`` (UTC by default) until ``instant``."""
    current = now or utc_now()
    return (instant - current).total_seconds() / 3600
