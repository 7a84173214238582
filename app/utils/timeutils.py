"""Time helpers shared by the schedule, availability, booking and reschedule code.

Clock times travel as ``HH:MM`` 24-hour strings. Schedules written by older
clients may still hold ``h:MM AM/PM`` strings, so everything that compares
times goes through :func:`to_24_hour` first.
"""

import re
from datetime import date, datetime, time, timedelta
from enum import IntEnum
from zoneinfo import ZoneInfo

from app.config import settings

HHMM_PATTERN = re.compile(r"^([0-1]?[0-9]|2[0-3]):[0-5][0-9]$")
TWELVE_HOUR_PATTERN = re.compile(r"^(1[0-2]|0?[1-9]):([0-5][0-9])\s*([AaPp][Mm])$")


class Weekday(IntEnum):
    """Day of week, Monday first (matches ``date.weekday()``)."""
    MONDAY = 0
    TUESDAY = 1
    WEDNESDAY = 2
    THURSDAY = 3
    FRIDAY = 4
    SATURDAY = 5
    SUNDAY = 6

    @property
    def label(self) -> str:
        return self.name.lower()

    @classmethod
    def from_name(cls, name: str) -> "Weekday":
        try:
            return cls[name.strip().upper()]
        except KeyError:
            valid = ", ".join(day.label for day in cls)
            raise ValueError(f"Invalid day. Must be one of: {valid}") from None


def is_valid_hhmm(value: str) -> bool:
    """Check a 24-hour ``HH:MM`` string (single digit hours accepted)."""
    return bool(value) and bool(HHMM_PATTERN.match(value))


def to_24_hour(value: str) -> str:
    """Convert ``"9:30 PM"`` to ``"21:30"``.

    Values already in 24-hour form are returned zero padded. Anything that is
    neither form is returned stripped and unchanged so the caller's own
    validation reports it.
    """
    value = value.strip()
    match = TWELVE_HOUR_PATTERN.match(value)
    if match:
        hours = int(match.group(1))
        minutes = match.group(2)
        meridiem = match.group(3).upper()
        if meridiem == "AM":
            hours = 0 if hours == 12 else hours
        elif hours != 12:
            hours += 12
        return f"{hours:02d}:{minutes}"

    if is_valid_hhmm(value):
        hours, minutes = value.split(":")
        return f"{int(hours):02d}:{minutes}"

    return value


def to_12_hour(value: str) -> str:
    """Convert ``"13:05"`` to ``"1:05 PM"``."""
    hours, minutes = to_24_hour(value).split(":")
    hour = int(hours)
    period = "PM" if hour >= 12 else "AM"
    hour12 = 12 if hour % 12 == 0 else hour % 12
    return f"{hour12}:{minutes} {period}"


def minutes_since_midnight(value: str) -> int:
    hours, minutes = to_24_hour(value).split(":")
    return int(hours) * 60 + int(minutes)


def to_time(value: str) -> time:
    hours, minutes = to_24_hour(value).split(":")
    return time(int(hours), int(minutes))


def format_time_range(start_time: str, end_time: str) -> str:
    return f"{to_12_hour(start_time)} - {to_12_hour(end_time)}"


def parse_time_range(time_range: str) -> tuple[str, str]:
    """Split ``"9:00 AM - 10:00 AM"`` into 24-hour start and end."""
    parts = [part.strip() for part in time_range.split(" - ")]
    if len(parts) != 2:
        raise ValueError(f"Invalid time range '{time_range}'")
    return to_24_hour(parts[0]), to_24_hour(parts[1])


def clinic_now() -> datetime:
    """Current wall-clock time at the clinic, as a naive local datetime."""
    return datetime.now(ZoneInfo(settings.clinic_timezone)).replace(tzinfo=None)


def combine_local(day: date, clock_time: str) -> datetime:
    """Combine a calendar date and ``HH:MM`` in the clinic's local frame."""
    return datetime.combine(day, to_time(clock_time))


def weekday_of(day: date) -> Weekday:
    return Weekday(day.weekday())


def week_bounds(day: date) -> tuple[date, date]:
    """Monday and Sunday of the week containing ``day``."""
    monday = day - timedelta(days=day.weekday())
    return monday, monday + timedelta(days=6)


def format_week_range(week_start: date, week_end: date) -> str:
    return f"{week_start.strftime('%B')} {week_start.day}, {week_start.year} - " \
        f"{week_end.strftime('%B')} {week_end.day}, {week_end.year}"


def format_long_date(day: date) -> str:
    """``Monday, March 2, 2026``"""
    return f"{day.strftime('%A, %B')} {day.day}, {day.year}"
