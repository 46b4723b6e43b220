"""Persistence service for the reservation core.

Reads are plain queries. The writes that must not race,
:func:`insert_lock_if_free`, :func:`insert_booking_if_free` and
:func:`insert_blocked_if_free`, run as one short transaction: bump the
:class:`SlotGuard` row of every day the range touches, re-run the caller's
conflict check against fresh rows, insert, commit. Competing writers for
the same day wait on the guard row, and the partial unique index on bookings
catches anything that slips through.
"""
import logging
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Callable, Optional

from sqlalchemy.exc import IntegrityError, SQLAlchemyError

from models import db
from models.booking import ACTIVE_BOOKING_STATUSES, Booking
from models.blocked_slot import BlockedSlot
from models.court import Court
from models.holiday import Holiday
from models.pricing_rule import PricingRule
from models.slot_guard import SlotGuard
from models.slot_lock import SlotLock
from reservations.results import Failure, conflict, persistence_error
from reservations.timeslots import TimeRange

logger = logging.getLogger(__name__)

ConflictCheck = Callable[["Occupancy"], Optional[Failure]]


@dataclass
class Occupancy:
    """Everything that can hold a court's time around a requested range."""
    bookings: list = field(default_factory=list)
    blocked: list = field(default_factory=list)
    locks: list = field(default_factory=list)


def find_court(court_id) -> Court | None:
    return db.session.get(Court, court_id)


def _window(time_range: TimeRange) -> list[date]:
    # the day before can hold an overnight booking that spills into ours
    return [time_range.booking_date - timedelta(days=1)] + time_range.dates()


def find_bookings(court_id, dates) -> list[Booking]:
    return (
        Booking.query
        .filter(
            Booking.court_id == court_id,
            Booking.booking_date.in_(list(dates)),
            Booking.status.in_(ACTIVE_BOOKING_STATUSES),
        )
        .order_by(Booking.booking_date.asc(), Booking.start_time.asc())
        .all()
    )


def find_blocked_slots(court_id, dates) -> list[BlockedSlot]:
    return (
        BlockedSlot.query
        .filter(BlockedSlot.court_id == court_id, BlockedSlot.date.in_(list(dates)))
        .order_by(BlockedSlot.date.asc(), BlockedSlot.start_time.asc())
        .all()
    )


def find_active_locks(court_id, dates, now: datetime) -> list[SlotLock]:
    """Locks that have not expired yet; expired rows are ignored whether or not they were swept."""
    return (
        SlotLock.query
        .filter(
            SlotLock.court_id == court_id,
            SlotLock.booking_date.in_(list(dates)),
            SlotLock.expires_at > now,
        )
        .order_by(SlotLock.locked_at.asc())
        .all()
    )


def occupancy(court_id, time_range: TimeRange, now: datetime) -> Occupancy:
    days = _window(time_range)
    return Occupancy(
        bookings=find_bookings(court_id, days),
        blocked=find_blocked_slots(court_id, days),
        locks=find_active_locks(court_id, days, now),
    )


def day_occupancy(court_id, day: date, now: datetime) -> Occupancy:
    days = [day - timedelta(days=1), day, day + timedelta(days=1)]
    return Occupancy(
        bookings=find_bookings(court_id, days),
        blocked=find_blocked_slots(court_id, days),
        locks=find_active_locks(court_id, days, now),
    )


def find_pricing_rules(court_id) -> list[PricingRule]:
    return (
        PricingRule.query
        .filter_by(court_id=court_id, is_active=True)
        .order_by(PricingRule.id.asc())
        .all()
    )


def find_holiday(day: date) -> Holiday | None:
    return Holiday.query.filter_by(date=day, is_active=True).first()


def find_holidays(dates) -> dict:
    rows = Holiday.query.filter(Holiday.date.in_(list(dates)), Holiday.is_active.is_(True)).all()
    return {h.date: h for h in rows}


def find_lock(lock_id) -> SlotLock | None:
    return db.session.get(SlotLock, lock_id)


def find_user_lock(court_id, time_range: TimeRange, user_id, now: datetime) -> SlotLock | None:
    return (
        SlotLock.query
        .filter(
            SlotLock.court_id == court_id,
            SlotLock.user_id == user_id,
            SlotLock.booking_date == time_range.booking_date,
            SlotLock.start_time == time_range.start_time,
            SlotLock.end_time == time_range.end_time,
            SlotLock.expires_at > now,
        )
        .order_by(SlotLock.expires_at.desc())
        .first()
    )


def find_booking(booking_id) -> Booking | None:
    return db.session.get(Booking, booking_id)


def _guard_days(court_id, days) -> None:
    for day in sorted(set(days)):
        bumped = (
            SlotGuard.query
            .filter_by(court_id=court_id, guard_date=day)
            .update({SlotGuard.version: SlotGuard.version + 1}, synchronize_session=False)
        )
        if bumped:
            continue
        try:
            with db.session.begin_nested():
                db.session.add(SlotGuard(court_id=court_id, guard_date=day, version=1))
        except IntegrityError:
            # another writer created it first; queue behind its row lock
            (
                SlotGuard.query
                .filter_by(court_id=court_id, guard_date=day)
                .update({SlotGuard.version: SlotGuard.version + 1}, synchronize_session=False)
            )


def _insert_if_free(court_id, time_range: TimeRange, now: datetime, check: ConflictCheck, build):
    try:
        _guard_days(court_id, time_range.dates())
        failure = check(occupancy(court_id, time_range, now))
        if failure is not None:
            db.session.rollback()
            return None, conflict(reason=failure.reason or "taken", **failure.details)
        row = build()
        db.session.add(row)
        db.session.commit()
        return row, None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Unique guard rejected insert on court %s %s: %s", court_id, time_range.booking_date, exc.orig)
        return None, conflict()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Store failure on court %s %s: %s", court_id, time_range.booking_date, exc)
        return None, persistence_error(exc)


def insert_lock_if_free(court_id, time_range: TimeRange, user_id, now: datetime, ttl_seconds: int, check: ConflictCheck):
    def build():
        return SlotLock(
            court_id=court_id,
            user_id=user_id,
            booking_date=time_range.booking_date,
            start_time=time_range.start_time,
            end_time=time_range.end_time,
            locked_at=now,
            expires_at=now + timedelta(seconds=ttl_seconds),
        )

    return _insert_if_free(court_id, time_range, now, check, build)


def insert_booking_if_free(court_id, time_range: TimeRange, user_id, now: datetime, check: ConflictCheck,
                           release_lock_id=None, **fields):
    """Insert a booking; ``release_lock_id`` (the caller's own lock) is deleted in the same transaction."""
    def build():
        if release_lock_id is not None:
            SlotLock.query.filter_by(id=release_lock_id, user_id=user_id).delete(synchronize_session="fetch")
        return Booking(
            court_id=court_id,
            user_id=user_id,
            booking_date=time_range.booking_date,
            start_time=time_range.start_time,
            end_time=time_range.end_time,
            created_at=now,
            **fields,
        )

    return _insert_if_free(court_id, time_range, now, check, build)


def insert_blocked_if_free(court_id, time_range: TimeRange, now: datetime, check: ConflictCheck, **fields):
    def build():
        return BlockedSlot(
            court_id=court_id,
            date=time_range.booking_date,
            start_time=time_range.start_time,
            end_time=time_range.end_time,
            **fields,
        )

    return _insert_if_free(court_id, time_range, now, check, build)


def delete_lock(lock_id) -> tuple[bool, Failure | None]:
    try:
        deleted = SlotLock.query.filter_by(id=lock_id).delete(synchronize_session="fetch")
        db.session.commit()
        return bool(deleted), None
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Could not delete slot lock %s: %s", lock_id, exc)
        return False, persistence_error(exc)


def delete_expired_locks(now: datetime) -> tuple[int, Failure | None]:
    try:
        deleted = SlotLock.query.filter(SlotLock.expires_at <= now).delete(synchronize_session="fetch")
        db.session.commit()
        return deleted, None
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Could not sweep expired slot locks: %s", exc)
        return 0, persistence_error(exc)


def save(row) -> Failure | None:
    """Commit a change to an already loaded row."""
    try:
        db.session.add(row)
        db.session.commit()
        return None
    except IntegrityError as exc:
        db.session.rollback()
        logger.warning("Unique guard rejected update of %r: %s", row, exc.orig)
        return conflict()
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Could not save %r: %s", row, exc)
        return persistence_error(exc)


def save_all() -> Failure | None:
    """Commit every pending change in the session."""
    try:
        db.session.commit()
        return None
    except SQLAlchemyError as exc:
        db.session.rollback()
        logger.error("Could not save changes: %s", exc)
        return persistence_error(exc)
