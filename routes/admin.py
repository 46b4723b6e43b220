from decimal import Decimal, InvalidOperation

from flask import Blueprint, jsonify, g, request

from models import db
from models.court import Court
from models.holiday import Holiday
from reservations import store
from reservations.clock import get_clock
from routes.common import failure_response, money, parse_date
from routes.courts import court_json
from security.rbac import require_roles
from utils.audit import log_event

admin_bp = Blueprint("admin", __name__, url_prefix="/admin")


def holiday_json(h):
    return {
        "id": h.id,
        "date": h.date.isoformat(),
        "name": h.name,
        "price_multiplier": money(h.price_multiplier),
        "is_active": h.is_active,
    }


@admin_bp.get("/courts")
@require_roles("ADMIN")
def list_courts():
    status = (request.args.get("status") or "PENDING").strip().upper()
    rows = (
        Court.query
        .filter_by(status=status)
        .order_by(Court.created_at.asc())
        .limit(200)
        .all()
    )
    return jsonify([court_json(c) for c in rows]), 200


@admin_bp.post("/courts/<int:court_id>/verify")
@require_roles("ADMIN")
def verify_court(court_id: int):
    court = store.find_court(court_id)
    if court is None:
        return jsonify(error="Court not found"), 404

    data = request.get_json(silent=True) or {}
    status = (data.get("status") or "").strip().upper()
    if status not in ("APPROVED", "REJECTED"):
        return jsonify(error="status must be APPROVED or REJECTED"), 400
    reason = (data.get("reason") or "").strip() or None
    if status == "REJECTED" and not reason:
        return jsonify(error="reason is required when rejecting"), 400

    court.status = status
    court.verified_by = g.user.id
    court.verified_at = get_clock().now()
    court.rejected_reason = reason if status == "REJECTED" else None
    failure = store.save(court)
    if failure is not None:
        return failure_response(failure)

    log_event(
        "COURT_VERIFY", user_id=g.user.id, entity="court", entity_id=court.id, court_id=court.id,
        metadata={"status": status, "reason": reason},
    )
    return jsonify(court_json(court)), 200


@admin_bp.get("/holidays")
@require_roles("ADMIN")
def list_holidays():
    q = Holiday.query
    if request.args.get("from"):
        start = parse_date(request.args.get("from"))
        if start is None:
            return jsonify(error="Invalid from date. Use YYYY-MM-DD"), 400
        q = q.filter(Holiday.date >= start)
    rows = q.order_by(Holiday.date.asc()).all()
    return jsonify([holiday_json(h) for h in rows]), 200


@admin_bp.post("/holidays")
@require_roles("ADMIN")
def create_holiday():
    data = request.get_json(silent=True) or {}
    day = parse_date(data.get("date"))
    name = (data.get("name") or "").strip()
    if day is None or not name:
        return jsonify(error="date (YYYY-MM-DD) and name are required"), 400
    if Holiday.query.filter_by(date=day).first():
        return jsonify(error="A holiday already exists for that date"), 409

    try:
        holiday = Holiday(
            date=day,
            name=name,
            price_multiplier=Decimal(str(data.get("price_multiplier", "1.00"))),
        )
    except (ValueError, InvalidOperation) as exc:
        return jsonify(error=str(exc) or "Invalid price_multiplier"), 400

    failure = store.save(holiday)
    if failure is not None:
        return failure_response(failure)

    log_event(
        "HOLIDAY_CREATE", user_id=g.user.id, entity="holiday", entity_id=holiday.id,
        metadata={"date": day.isoformat(), "price_multiplier": holiday.price_multiplier},
    )
    return jsonify(holiday_json(holiday)), 201


@admin_bp.post("/holidays/<int:holiday_id>/deactivate")
@require_roles("ADMIN")
def deactivate_holiday(holiday_id: int):
    holiday = db.session.get(Holiday, holiday_id)
    if holiday is None:
        return jsonify(error="Holiday not found"), 404
    holiday.is_active = False
    failure = store.save(holiday)
    if failure is not None:
        return failure_response(failure)
    log_event("HOLIDAY_DEACTIVATE", user_id=g.user.id, entity="holiday", entity_id=holiday.id)
    return jsonify(holiday_json(holiday)), 200
