from flask import Blueprint, request, jsonify, current_app, g

from models.booking import Booking
from reservations import pricing, store
from reservations.availability import day_schedule
from reservations.commit import cancel_booking, commit_booking
from reservations.locks import lock_slot, unlock_slot
from reservations.results import not_found
from reservations.timeslots import add_hours, validate_range
from routes.common import booking_json, failure_response, lock_json, parse_date, parse_int
from utils.audit import log_event
from utils.auth_context import login_required
from utils.notifier import notify_booking_created

booking_bp = Blueprint("booking", __name__)


def _court_or_404(court_id: int):
    court = store.find_court(court_id)
    if court is None:
        return None, failure_response(not_found("Court"))
    return court, None


def _requested_range(source):
    """(date, start_time, end_time) from a payload, or an error response."""
    day = parse_date(source.get("date"))
    if day is None:
        return None, (jsonify(error="Invalid date. Use YYYY-MM-DD"), 400)
    hours = parse_int(source.get("hours"))
    if hours is None or hours < 1:
        return None, (jsonify(error="hours must be a positive whole number"), 400)
    start_time = (source.get("start_time") or "").strip()
    try:
        end_time = add_hours(start_time, hours)
    except ValueError as exc:
        return None, (jsonify(error=str(exc)), 400)
    if hours > current_app.config.get("MAX_BOOKING_HOURS", 8):
        return None, (jsonify(error="Duration exceeds the maximum booking length"), 400)
    return (day, start_time, end_time), None


# ---------- PUBLIC: schedule and prices ----------
@booking_bp.get("/courts/<int:court_id>/availability")
def availability(court_id: int):
    court, error = _court_or_404(court_id)
    if error:
        return error
    day = parse_date(request.args.get("date"))
    if day is None:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400

    user = getattr(g, "user", None)
    slots = day_schedule(court, day, user_id=user.id if user else None)
    return jsonify(
        court_id=court.id,
        date=day.isoformat(),
        slots=[s.to_dict() for s in slots],
    ), 200


@booking_bp.get("/courts/<int:court_id>/price")
def price(court_id: int):
    court, error = _court_or_404(court_id)
    if error:
        return error
    requested, error = _requested_range(request.args)
    if error:
        return error
    day, start_time, _ = requested

    time_range, failure = validate_range(
        court, day, start_time, parse_int(request.args.get("hours")),
        current_app.config.get("MIN_BOOKING_HOURS", 1),
        current_app.config.get("MAX_BOOKING_HOURS", 8),
    )
    if failure is not None:
        return failure_response(failure)

    quote = pricing.calculate_price(court, day, time_range.start_time, time_range.end_time)
    return jsonify(currency=current_app.config.get("CURRENCY", "PKR"), **quote.to_dict()), 200


# ---------- PLAYERS: lock while paying ----------
@booking_bp.post("/courts/<int:court_id>/locks")
@login_required
def create_lock(court_id: int):
    court, error = _court_or_404(court_id)
    if error:
        return error
    requested, error = _requested_range(request.get_json(silent=True) or {})
    if error:
        return error
    day, start_time, end_time = requested

    lock, failure = lock_slot(court, day, start_time, end_time, g.user.id)
    if failure is not None:
        return failure_response(failure)

    log_event("SLOT_LOCK", user_id=g.user.id, entity="slot_lock", entity_id=lock.id, court_id=court.id)
    return jsonify(lock_json(lock)), 201


@booking_bp.delete("/locks/<int:lock_id>")
@login_required
def release_lock(lock_id: int):
    lock = store.find_lock(lock_id)
    if lock is not None and lock.user_id != g.user.id:
        return jsonify(error="Forbidden"), 403
    court_id = lock.court_id if lock is not None else None

    released, failure = unlock_slot(lock_id)
    if failure is not None:
        return failure_response(failure)

    if released:
        log_event("SLOT_UNLOCK", user_id=g.user.id, entity="slot_lock", entity_id=lock_id, court_id=court_id)
    return jsonify(released=released), 200


# ---------- PLAYERS: book (DOUBLE-BOOKING SAFE) ----------
@booking_bp.post("/courts/<int:court_id>/bookings")
@login_required
def create_booking(court_id: int):
    court, error = _court_or_404(court_id)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    requested, error = _requested_range(data)
    if error:
        return error
    day, start_time, end_time = requested

    lock_id = data.get("lock_id")
    if lock_id is not None:
        lock_id = parse_int(lock_id)
        if lock_id is None:
            return jsonify(error="lock_id must be an integer"), 400
    notes = (data.get("notes") or "").strip() or None

    booking, failure = commit_booking(
        court, day, start_time, end_time, g.user.id,
        data.get("payment_method"), lock_id=lock_id, notes=notes,
    )
    if failure is not None:
        if failure.is_contention:
            log_event(
                "BOOKING_CONFLICT", user_id=g.user.id, entity="court", entity_id=court.id, court_id=court.id,
                metadata={"date": day.isoformat(), "start_time": start_time, "end_time": end_time,
                          "reason": failure.reason},
            )
        return failure_response(failure)

    log_event(
        "BOOKING_CREATE", user_id=g.user.id, entity="booking", entity_id=booking.id, court_id=court.id,
        metadata={"total_price": booking.total_price, "payment_method": booking.payment_method},
    )
    notify_booking_created(booking)
    return jsonify(booking_json(booking)), 201


@booking_bp.post("/bookings/<int:booking_id>/cancel")
@login_required
def cancel_my_booking(booking_id: int):
    booking = store.find_booking(booking_id)
    if booking is None or booking.user_id != g.user.id:
        return failure_response(not_found("Booking"))

    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip() or None
    booking, failure = cancel_booking(booking, reason=reason)
    if failure is not None:
        return failure_response(failure)

    log_event("BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id, court_id=booking.court_id)
    return jsonify(booking_json(booking)), 200


@booking_bp.get("/bookings/me")
@login_required
def my_bookings():
    rows = (
        Booking.query
        .filter_by(user_id=g.user.id)
        .order_by(Booking.booking_date.desc(), Booking.start_time.desc())
        .limit(200)
        .all()
    )
    return jsonify([booking_json(b) for b in rows]), 200
