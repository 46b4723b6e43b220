"""Hour-granular time slots.

A booking is a run of one-hour slots starting at ``start_hour``. Times of day
travel as ``"HH:MM"`` strings; anything that has to be compared across the
midnight boundary is turned into minute offsets from the start of a reference
day first and then tested with :func:`overlaps`.
"""
import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta

from flask import current_app, has_app_context

from reservations.results import invalid_range

MINUTES_PER_HOUR = 60
HOURS_PER_DAY = 24
MINUTES_PER_DAY = HOURS_PER_DAY * MINUTES_PER_HOUR

_TIME_RE = re.compile(r"^(\d{1,2}):(\d{2})(?::\d{2}(?:\.\d+)?)?$")


def normalize_time(value) -> str:
    """``"9:00"``, ``"09:00:00"`` or ``time(9)`` -> ``"09:00"``."""
    if isinstance(value, time):
        return f"{value.hour:02d}:{value.minute:02d}"
    match = _TIME_RE.match(str(value).strip()) if value is not None else None
    if not match:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    hour, minute = int(match.group(1)), int(match.group(2))
    if hour > 23 or minute > 59:
        raise ValueError(f"Invalid time {value!r}, expected HH:MM")
    return f"{hour:02d}:{minute:02d}"


def to_minutes(value) -> int:
    hh, mm = normalize_time(value).split(":")
    return int(hh) * MINUTES_PER_HOUR + int(mm)


def hour_of(value) -> int:
    return to_minutes(value) // MINUTES_PER_HOUR


def format_hour(hour: int) -> str:
    return f"{hour % HOURS_PER_DAY:02d}:00"


def add_hours(value, hours: int) -> str:
    """Time of day ``hours`` after ``value``, wrapping at midnight.

    Only the clock reading is returned; whether it lands on the next calendar
    day is the caller's business (see :func:`is_overnight`).
    """
    total = (to_minutes(value) + hours * MINUTES_PER_HOUR) % MINUTES_PER_DAY
    return f"{total // MINUTES_PER_HOUR:02d}:{total % MINUTES_PER_HOUR:02d}"


def is_overnight(start_hour: int, hours: int) -> bool:
    return start_hour + hours > HOURS_PER_DAY


def overlaps(s1: int, e1: int, s2: int, e2: int) -> bool:
    """Half-open ``[s1, e1)`` and ``[s2, e2)`` intersect."""
    return s1 < e2 and s2 < e1


def is_24_hour(opening_hour: int, closing_hour: int) -> bool:
    return opening_hour == 0 and closing_hour >= 23


def bookable_start_hours(opening_hour: int, closing_hour: int) -> list[int]:
    return list(range(opening_hour, closing_hour + 1))


def span_minutes(start, end) -> int:
    """Length of ``[start, end)`` where an end at or before the start wraps past midnight."""
    length = (to_minutes(end) - to_minutes(start)) % MINUTES_PER_DAY
    return length or MINUTES_PER_DAY


def offsets(row_date: date, start, end, day: date) -> tuple[int, int]:
    """Minute offsets of a stored ``[start, end)`` on ``row_date``, measured from midnight of ``day``."""
    begin = (row_date - day).days * MINUTES_PER_DAY + to_minutes(start)
    return begin, begin + span_minutes(start, end)


def court_hours(court) -> tuple[int, int]:
    """(opening_hour, closing_hour) with the configured defaults for empty columns."""
    default_open, default_close = "06:00", "22:00"
    if has_app_context():
        default_open = current_app.config.get("DEFAULT_OPENING_TIME", default_open)
        default_close = current_app.config.get("DEFAULT_CLOSING_TIME", default_close)
    return hour_of(court.opening_time or default_open), hour_of(court.closing_time or default_close)


@dataclass(frozen=True)
class HourSlot:
    calendar_date: date
    hour: int

    @property
    def start_time(self) -> str:
        return format_hour(self.hour)

    @property
    def end_time(self) -> str:
        return format_hour(self.hour + 1)

    @property
    def weekday(self) -> int:
        """0 = Sunday ... 6 = Saturday."""
        return (self.calendar_date.weekday() + 1) % 7


@dataclass(frozen=True)
class TimeRange:
    booking_date: date
    start_hour: int
    hours: int

    def __post_init__(self):
        if not 0 <= self.start_hour < HOURS_PER_DAY:
            raise ValueError("start_hour must be within 0-23")
        if not 0 < self.hours < HOURS_PER_DAY:
            raise ValueError("hours must be between 1 and 23")

    @property
    def start_time(self) -> str:
        return format_hour(self.start_hour)

    @property
    def end_time(self) -> str:
        return format_hour(self.start_hour + self.hours)

    @property
    def is_overnight(self) -> bool:
        return is_overnight(self.start_hour, self.hours)

    @property
    def end_date(self) -> date:
        return self.booking_date + timedelta(days=1) if self.is_overnight else self.booking_date

    def dates(self) -> list[date]:
        """Calendar dates the range touches, in order."""
        if self.is_overnight:
            return [self.booking_date, self.end_date]
        return [self.booking_date]

    def hour_slots(self) -> list[HourSlot]:
        slots = []
        for i in range(self.hours):
            absolute = self.start_hour + i
            slots.append(HourSlot(
                self.booking_date + timedelta(days=absolute // HOURS_PER_DAY),
                absolute % HOURS_PER_DAY,
            ))
        return slots

    def same_as(self, row_date: date, start, end) -> bool:
        return (
            row_date == self.booking_date
            and normalize_time(start) == self.start_time
            and normalize_time(end) == self.end_time
        )


def range_from_times(booking_date: date, start, end) -> TimeRange:
    """Rebuild a range from stored start/end strings (``end <= start`` wraps)."""
    minutes = span_minutes(start, end)
    if to_minutes(start) % MINUTES_PER_HOUR or minutes % MINUTES_PER_HOUR:
        raise ValueError("Range is not hour aligned")
    return TimeRange(booking_date, hour_of(start), minutes // MINUTES_PER_HOUR)


def validate_range(court, booking_date: date, start_time, hours, min_hours: int = 1, max_hours: int = 8):
    """Check a requested range against the court's operating hours.

    Returns ``(TimeRange, None)`` or ``(None, Failure)`` with kind INVALID_RANGE.
    Nothing here touches the database.
    """
    try:
        start = normalize_time(start_time)
    except ValueError as exc:
        return None, invalid_range(str(exc))
    if not start.endswith(":00"):
        return None, invalid_range("Start time must be on the hour", start_time=start)

    if isinstance(hours, bool) or not isinstance(hours, int):
        return None, invalid_range("Duration must be a whole number of hours")
    if not min_hours <= hours <= max_hours:
        return None, invalid_range(
            f"Duration must be between {min_hours} and {max_hours} hours", hours=hours,
        )

    start_hour = hour_of(start)
    opening, closing = court_hours(court)

    if not is_24_hour(opening, closing):
        if start_hour < opening or start_hour > closing:
            return None, invalid_range(
                "Start time is outside operating hours",
                opening_time=format_hour(opening), closing_time=format_hour(closing),
            )
        # closing is the last start hour, so the latest end is closing + 1
        if start_hour + hours > closing + 1:
            return None, invalid_range(
                "Booking runs past closing time",
                latest_end=format_hour(closing + 1),
            )

    return TimeRange(booking_date, start_hour, hours), None


def hours_between(booking_date: date, start_time, end_time):
    """``(hours, None)`` for an hour-aligned ``[start_time, end_time)``, else ``(None, Failure)``."""
    try:
        return range_from_times(booking_date, start_time, end_time).hours, None
    except ValueError as exc:
        return None, invalid_range(str(exc))


def range_start(time_range: TimeRange) -> datetime:
    return datetime.combine(time_range.booking_date, time(time_range.start_hour))


def range_end(time_range: TimeRange) -> datetime:
    return range_start(time_range) + timedelta(hours=time_range.hours)
