"""Short-lived slot locks held while a customer pays.

A lock moves absent -> locked -> released / expired / consumed. Expiry is
lazy: a lock whose ``expires_at`` has passed is ignored by every read, so
the sweep in :func:`cleanup_expired_locks` only keeps the table small.
"""
import logging
from datetime import date

from flask import current_app

from reservations import store
from reservations.availability import check_range, find_conflict
from reservations.clock import get_clock
from reservations.timeslots import hours_between, range_from_times

logger = logging.getLogger(__name__)


def _ttl() -> int:
    return current_app.config.get("SLOT_LOCK_TTL_SECONDS", 300)


def get_user_lock(court, booking_date: date, start_time, end_time, user_id, clock=None):
    """The user's unexpired lock on exactly this range, if any."""
    try:
        time_range = range_from_times(booking_date, start_time, end_time)
    except ValueError:
        return None
    return store.find_user_lock(court.id, time_range, user_id, get_clock(clock).now())


def active_locks(court, booking_date: date, clock=None):
    return store.find_active_locks(court.id, [booking_date], get_clock(clock).now())


def lock_slot(court, booking_date: date, start_time, end_time, user_id, clock=None):
    """Lock ``[start_time, end_time)`` for ``user_id``.

    Returns ``(SlotLock, None)`` or ``(None, Failure)``. Calling again while
    the user's lock on the same range is live returns that same lock.
    """
    clock = get_clock(clock)
    hours, failure = hours_between(booking_date, start_time, end_time)
    if failure is not None:
        return None, failure

    time_range, failure = check_range(court, booking_date, start_time, hours, user_id=user_id, clock=clock)
    if failure is not None:
        return None, failure

    now = clock.now()
    existing = store.find_user_lock(court.id, time_range, user_id, now)
    if existing is not None:
        return existing, None

    def recheck(occ):
        return find_conflict(time_range, occ, user_id, now)

    lock, failure = store.insert_lock_if_free(court.id, time_range, user_id, now, _ttl(), recheck)
    if failure is not None:
        logger.warning(
            "Lock race lost on court %s %s %s-%s by user %s: %s",
            court.id, booking_date, time_range.start_time, time_range.end_time, user_id, failure.kind.value,
        )
        return None, failure

    logger.info(
        "Locked court %s %s %s-%s for user %s until %s",
        court.id, booking_date, lock.start_time, lock.end_time, user_id, lock.expires_at,
    )
    return lock, None


def unlock_slot(lock_id):
    """Release a lock. Unknown or already released ids are fine: returns ``(False, None)``."""
    released, failure = store.delete_lock(lock_id)
    if released:
        logger.info("Released slot lock %s", lock_id)
    return released, failure


def consume_lock(lock_id):
    """Drop the lock a booking was made under when the commit happened outside :func:`commit_booking`."""
    consumed, failure = store.delete_lock(lock_id)
    if consumed:
        logger.info("Consumed slot lock %s", lock_id)
    return consumed, failure


def cleanup_expired_locks(clock=None):
    """Delete expired lock rows. Housekeeping only; reads already ignore them."""
    deleted, failure = store.delete_expired_locks(get_clock(clock).now())
    if deleted:
        logger.info("Swept %s expired slot locks", deleted)
    return deleted, failure
