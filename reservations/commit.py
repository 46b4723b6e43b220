"""Turning a selected (and usually locked) range into a booking.

:func:`commit_booking` re-checks availability, prices the range server side
and inserts through :func:`reservations.store.insert_booking_if_free`. A race
lost at insert time comes back as a CONFLICT so the caller can send the user
back to pick another slot; store failures come back as PERSISTENCE_ERROR and
are never retried here, since a retried insert could book twice.
"""
import logging
from datetime import date, timedelta

from flask import current_app

from models.booking import Booking
from reservations import pricing, store
from reservations.availability import check_range, find_conflict
from reservations.clock import get_clock
from reservations.results import FailureKind, invalid_input, invalid_state
from reservations.timeslots import hours_between, range_end, range_from_times, range_start

logger = logging.getLogger(__name__)


def payment_states(method: str):
    """(status, payment_status) for a payment method tag, or ``None`` if the tag is unknown."""
    if method in current_app.config.get("INSTANT_PAYMENT_METHODS", ()):
        return "confirmed", "succeeded"
    if method in current_app.config.get("MANUAL_PAYMENT_METHODS", ()):
        return "pending", "pending"
    return None


def _lock_to_release(lock_id, time_range, user_id):
    """Id of the caller's own lock on exactly this range, else None."""
    lock = store.find_lock(lock_id)
    if lock is None or lock.user_id != user_id:
        return None
    if not time_range.same_as(lock.booking_date, lock.start_time, lock.end_time):
        return None
    return lock.id


def commit_booking(court, booking_date: date, start_time, end_time, user_id, payment_method,
                   lock_id=None, notes=None, clock=None):
    """Book ``[start_time, end_time)`` for ``user_id``.

    Returns ``(Booking, None)`` or ``(None, Failure)``. On success the user's
    lock on the same range (``lock_id`` or the one found for them) goes away
    with the insert; on failure it is left as it was.
    """
    clock = get_clock(clock)
    method = (payment_method or "").strip().lower()
    states = payment_states(method)
    if states is None:
        return None, invalid_input("Unknown payment method", payment_method=payment_method)
    status, payment_status = states

    hours, failure = hours_between(booking_date, start_time, end_time)
    if failure is not None:
        return None, failure

    time_range, failure = check_range(court, booking_date, start_time, hours, user_id=user_id, clock=clock)
    if failure is not None:
        return None, failure

    quote = pricing.price_range(
        court, time_range,
        store.find_pricing_rules(court.id),
        store.find_holidays(time_range.dates()),
    )

    now = clock.now()
    if lock_id is not None:
        release_id = _lock_to_release(lock_id, time_range, user_id)
    else:
        own = store.find_user_lock(court.id, time_range, user_id, now)
        release_id = own.id if own is not None else None

    def recheck(occ):
        return find_conflict(time_range, occ, user_id, now)

    booking, failure = store.insert_booking_if_free(
        court.id, time_range, user_id, now, recheck,
        release_lock_id=release_id,
        total_price=quote.total_price,
        status=status,
        payment_status=payment_status,
        payment_method=method,
        notes=notes,
    )
    if failure is not None:
        if failure.kind == FailureKind.CONFLICT:
            logger.warning(
                "Booking race lost on court %s %s %s-%s by user %s (%s)",
                court.id, booking_date, time_range.start_time, time_range.end_time, user_id, failure.reason,
            )
        return None, failure

    logger.info(
        "Booked court %s %s %s-%s for user %s: %s %s via %s",
        court.id, booking_date, booking.start_time, booking.end_time, user_id,
        booking.total_price, booking.status, method,
    )
    return booking, None


def _booking_range(booking: Booking):
    return range_from_times(booking.booking_date, booking.start_time, booking.end_time)


def cancel_booking(booking: Booking, reason=None, clock=None, enforce_cutoff=True):
    """Cancel a pending or confirmed booking, freeing its time.

    With ``enforce_cutoff`` (customer cancellations) the booking must start at
    least ``CANCEL_CUTOFF_HOURS`` from now.
    """
    if booking.status not in ("pending", "confirmed"):
        return None, invalid_state("Booking not cancellable", status=booking.status)

    now = get_clock(clock).now()
    if enforce_cutoff:
        cutoff_hours = current_app.config.get("CANCEL_CUTOFF_HOURS", 12)
        if range_start(_booking_range(booking)) - now < timedelta(hours=cutoff_hours):
            return None, invalid_state(f"Cancellation not allowed within {cutoff_hours} hours of start")

    booking.status = "cancelled"
    booking.cancelled_at = now
    booking.cancel_reason = reason
    booking.payment_status = "refunded" if booking.payment_status == "succeeded" else "failed"

    failure = store.save(booking)
    if failure is not None:
        return None, failure
    logger.info("Cancelled booking %s (%s)", booking.id, reason or "no reason")
    return booking, None


def confirm_booking(booking: Booking):
    """Owner verified a manual payment: pending -> confirmed."""
    if booking.status != "pending":
        return None, invalid_state("Only pending bookings can be confirmed", status=booking.status)

    booking.status = "confirmed"
    booking.payment_status = "succeeded"
    failure = store.save(booking)
    if failure is not None:
        return None, failure
    logger.info("Confirmed booking %s", booking.id)
    return booking, None


def complete_past_bookings(clock=None):
    """Mark confirmed bookings whose end has passed as completed. Returns ``(count, failure)``."""
    now = get_clock(clock).now()
    rows = (
        Booking.query
        .filter(Booking.status == "confirmed", Booking.booking_date <= now.date())
        .all()
    )
    done = 0
    for booking in rows:
        if range_end(_booking_range(booking)) <= now:
            booking.status = "completed"
            done += 1
    if not done:
        return 0, None

    failure = store.save_all()
    if failure is not None:
        return 0, failure
    logger.info("Completed %s past bookings", done)
    return done, None
