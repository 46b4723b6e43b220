"""Free/busy decisions for a court.

A multi-hour request is all or nothing: every one-hour slot must be inside
the operating window, not in the past, and clear of live bookings, blocked
slots and other users' unexpired locks. Clashes are found with interval
overlap on minute offsets from the request's date, so an overnight booking
made for the previous day still blocks the early hours of this one.
"""
import logging
from dataclasses import dataclass
from datetime import date, datetime

from flask import current_app

from reservations import store
from reservations.clock import get_clock
from reservations.results import Failure, unavailable
from reservations.timeslots import (
    MINUTES_PER_DAY,
    MINUTES_PER_HOUR,
    HourSlot,
    TimeRange,
    bookable_start_hours,
    court_hours,
    format_hour,
    hour_of,
    normalize_time,
    offsets,
    overlaps,
    validate_range,
)

logger = logging.getLogger(__name__)

REASON_MESSAGES = {
    "court_closed": "Court is not accepting bookings",
    "outside_hours": "Outside operating hours",
    "past": "Slot is in the past",
    "booked": "Slot is already booked",
    "blocked": "Slot is blocked by the court owner",
    "locked": "Slot is being booked by someone else",
}


@dataclass(frozen=True)
class SlotStatus:
    start_time: str
    end_time: str
    available: bool
    reason: str | None = None

    def to_dict(self) -> dict:
        return {
            "start_time": self.start_time,
            "end_time": self.end_time,
            "available": self.available,
            "reason": self.reason,
        }


def _intervals(rows, day: date, date_attr: str) -> list:
    return [(offsets(getattr(r, date_attr), r.start_time, r.end_time, day), r) for r in rows]


def _slot_offsets(slot: HourSlot, day: date) -> tuple[int, int]:
    begin = (slot.calendar_date - day).days * MINUTES_PER_DAY + slot.hour * MINUTES_PER_HOUR
    return begin, begin + MINUTES_PER_HOUR


def overlapping_bookings(time_range: TimeRange, occ) -> list:
    """Live bookings in ``occ`` sharing any minute with ``time_range``."""
    day = time_range.booking_date
    s, e = offsets(day, time_range.start_time, time_range.end_time, day)
    live = [b for b in occ.bookings if b.is_active]
    return [b for (bs, be), b in _intervals(live, day, "booking_date") if overlaps(s, e, bs, be)]


def _is_past(slot: HourSlot, now: datetime) -> bool:
    today = now.date()
    if slot.calendar_date != today:
        return slot.calendar_date < today
    # the hour already under way stays bookable
    return slot.hour < now.hour


class _Occupied:
    """Occupancy rows turned into minute intervals relative to one reference day."""

    def __init__(self, occ, day: date):
        self.day = day
        self.bookings = _intervals([b for b in occ.bookings if b.is_active], day, "booking_date")
        self.blocked = _intervals(occ.blocked, day, "date")
        self.locks = _intervals(occ.locks, day, "booking_date")

    def reason(self, slot: HourSlot, user_id, now: datetime) -> str | None:
        """Why ``slot`` cannot be taken by ``user_id``; ``None`` if it is free (own locks count as free)."""
        if _is_past(slot, now):
            return "past"
        s, e = _slot_offsets(slot, self.day)
        if any(overlaps(s, e, bs, be) for (bs, be), _ in self.bookings):
            return "booked"
        if any(overlaps(s, e, bs, be) for (bs, be), _ in self.blocked):
            return "blocked"
        for (ls, le), lock in self.locks:
            if lock.user_id != user_id and lock.is_active(now) and overlaps(s, e, ls, le):
                return "locked"
        return None

    def held_by(self, slot: HourSlot, user_id, now: datetime) -> bool:
        s, e = _slot_offsets(slot, self.day)
        return any(
            lock.user_id == user_id and lock.is_active(now) and overlaps(s, e, ls, le)
            for (ls, le), lock in self.locks
        )


def find_conflict(time_range: TimeRange, occ, user_id, now: datetime) -> Failure | None:
    """First reason any slot of ``time_range`` is taken, as an UNAVAILABLE failure."""
    occupied = _Occupied(occ, time_range.booking_date)
    for slot in time_range.hour_slots():
        reason = occupied.reason(slot, user_id, now)
        if reason is not None:
            return unavailable(
                reason,
                REASON_MESSAGES[reason],
                date=slot.calendar_date.isoformat(),
                start_time=slot.start_time,
            )
    return None


def _bounds() -> tuple[int, int]:
    return (
        current_app.config.get("MIN_BOOKING_HOURS", 1),
        current_app.config.get("MAX_BOOKING_HOURS", 8),
    )


def check_range(court, booking_date: date, start_time, hours, user_id=None, clock=None):
    """Validate and check a request; ``(TimeRange, None)`` when it can be taken, else ``(None, Failure)``."""
    if not court.is_bookable:
        return None, unavailable("court_closed", REASON_MESSAGES["court_closed"])

    min_hours, max_hours = _bounds()
    time_range, failure = validate_range(court, booking_date, start_time, hours, min_hours, max_hours)
    if failure is not None:
        return None, failure

    now = get_clock(clock).now()
    failure = find_conflict(time_range, store.occupancy(court.id, time_range, now), user_id, now)
    if failure is not None:
        logger.debug("Court %s %s %s+%sh unavailable: %s", court.id, booking_date, start_time, hours, failure.reason)
        return None, failure
    return time_range, None


def is_available(court, booking_date: date, start_time, hours, user_id=None, clock=None) -> bool:
    _, failure = check_range(court, booking_date, start_time, hours, user_id=user_id, clock=clock)
    return failure is None


def _status_for(hour: int, booking_date: date, opening: int, closing: int, occupied: _Occupied, user_id, now) -> SlotStatus:
    slot = HourSlot(booking_date, hour)
    if hour not in bookable_start_hours(opening, closing):
        return SlotStatus(slot.start_time, slot.end_time, False, "outside_hours")
    reason = occupied.reason(slot, user_id, now)
    if reason is not None:
        return SlotStatus(slot.start_time, slot.end_time, False, reason)
    if user_id is not None and occupied.held_by(slot, user_id, now):
        return SlotStatus(slot.start_time, slot.end_time, True, "locked_by_you")
    return SlotStatus(slot.start_time, slot.end_time, True)


def slot_status(court, booking_date: date, time, user_id=None, clock=None) -> SlotStatus:
    """Status of the single hour starting at ``time``. ``available`` is the authoritative bit."""
    hour = hour_of(normalize_time(time))
    if not court.is_bookable:
        return SlotStatus(format_hour(hour), format_hour(hour + 1), False, "court_closed")
    now = get_clock(clock).now()
    opening, closing = court_hours(court)
    occupied = _Occupied(store.day_occupancy(court.id, booking_date, now), booking_date)
    return _status_for(hour, booking_date, opening, closing, occupied, user_id, now)


def day_schedule(court, booking_date: date, user_id=None, clock=None) -> list[SlotStatus]:
    """One status per bookable start hour of the day."""
    opening, closing = court_hours(court)
    hours = bookable_start_hours(opening, closing)
    if not court.is_bookable:
        return [SlotStatus(format_hour(h), format_hour(h + 1), False, "court_closed") for h in hours]
    now = get_clock(clock).now()
    occupied = _Occupied(store.day_occupancy(court.id, booking_date, now), booking_date)
    return [_status_for(h, booking_date, opening, closing, occupied, user_id, now) for h in hours]
