# backend/clinic_booking/utils/clock.py
"""
Wall-clock helpers.

All times are local "HH:MM" strings; the clinic runs in a single timezone,
so no conversion happens anywhere in the engine.
"""

from datetime import date, datetime, time
from enum import IntEnum

MINUTES_PER_DAY = 24 * 60


class Weekday(IntEnum):
    """Calendar weekday, numbered 0=Sunday..6=Saturday."""
    SUNDAY = 0
    MONDAY = 1
    TUESDAY = 2
    WEDNESDAY = 3
    THURSDAY = 4
    FRIDAY = 5
    SATURDAY = 6

    @classmethod
    def of(cls, day: date) -> "Weekday":
        # date.weekday() is 0=Monday..6=Sunday
        return cls((day.weekday() + 1) % 7)

    @property
    def key(self) -> str:
        return WEEKDAY_KEYS[self]


# Keys used by service availability and staff working hours JSON
WEEKDAY_KEYS: dict[Weekday, str] = {
    Weekday.SUNDAY: "sunday",
    Weekday.MONDAY: "monday",
    Weekday.TUESDAY: "tuesday",
    Weekday.WEDNESDAY: "wednesday",
    Weekday.THURSDAY: "thursday",
    Weekday.FRIDAY: "friday",
    Weekday.SATURDAY: "saturday",
}


def time_str_to_minutes(value: str) -> int:
    """Convert "HH:MM" to minutes since midnight."""
    if not isinstance(value, str):
        raise ValueError(f"Time must be a 'HH:MM' string, got {value!r}")
    parts = value.strip().split(":")
    if len(parts) != 2 or not parts[0].isdigit() or not parts[1].isdigit():
        raise ValueError(f"Time must be 'HH:MM', got {value!r}")
    hour, minute = int(parts[0]), int(parts[1])
    if not (0 <= hour <= 23 and 0 <= minute <= 59):
        raise ValueError(f"Time out of range: {value!r}")
    return hour * 60 + minute


def minutes_to_time_str(minutes: int) -> str:
    """Convert minutes since midnight to zero-padded "HH:MM"."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range for a single day: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_minutes(start_time: str, duration: int) -> str:
    """
    Add ``duration`` minutes to "HH:MM" with hour carry.

    Raises ValueError if the result would reach midnight: a booking never
    spans two calendar days.
    """
    return minutes_to_time_str(time_str_to_minutes(start_time) + duration)


def duration_between(start_time: str, end_time: str) -> int:
    """Minutes from start_time to end_time; inverse of add_minutes."""
    return time_str_to_minutes(end_time) - time_str_to_minutes(start_time)


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    """Half-open interval overlap: [a_start, a_end) vs [b_start, b_end)."""
    return a_start < b_end and b_start < a_end


def combine(day: date, start_time: str) -> datetime:
    """Naive local instant of ``start_time`` on ``day``."""
    minutes = time_str_to_minutes(start_time)
    return datetime.combine(day, time(minutes // 60, minutes % 60))


def start_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.min)


def end_of_day(moment: datetime) -> datetime:
    return datetime.combine(moment.date(), time.max)
