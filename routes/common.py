from datetime import date

from flask import jsonify

from reservations.results import FailureKind

STATUS_BY_KIND = {
    FailureKind.INVALID_RANGE: 400,
    FailureKind.INVALID_INPUT: 400,
    FailureKind.INVALID_STATE: 400,
    FailureKind.NOT_FOUND: 404,
    FailureKind.UNAVAILABLE: 409,
    FailureKind.CONFLICT: 409,
    FailureKind.PERSISTENCE_ERROR: 503,
}

def failure_response(failure):
    if failure.kind == FailureKind.PERSISTENCE_ERROR:
        return jsonify(error="Service temporarily unavailable, please try again later", kind=failure.kind.value), 503
    return jsonify(**failure.to_dict()), STATUS_BY_KIND[failure.kind]

def parse_date(value):
    # Expect "YYYY-MM-DD"
    try:
        return date.fromisoformat((value or "").strip())
    except ValueError:
        return None

def parse_int(value):
    try:
        return int(value)
    except (TypeError, ValueError):
        return None

def money(value) -> str:
    return str(value) if value is not None else None

def booking_json(b):
    return {
        "id": b.id,
        "court_id": b.court_id,
        "user_id": b.user_id,
        "booking_date": b.booking_date.isoformat(),
        "start_time": b.start_time,
        "end_time": b.end_time,
        "total_price": money(b.total_price),
        "status": b.status,
        "payment_status": b.payment_status,
        "payment_method": b.payment_method,
        "notes": b.notes,
        "created_at": b.created_at.isoformat(),
        "cancelled_at": b.cancelled_at.isoformat() if b.cancelled_at else None,
    }

def lock_json(lock):
    return {
        "id": lock.id,
        "court_id": lock.court_id,
        "booking_date": lock.booking_date.isoformat(),
        "start_time": lock.start_time,
        "end_time": lock.end_time,
        "locked_at": lock.locked_at.isoformat(),
        "expires_at": lock.expires_at.isoformat(),
    }
