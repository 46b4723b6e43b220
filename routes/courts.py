from decimal import Decimal, InvalidOperation

from flask import Blueprint, request, jsonify, g

from models import db
from models.blocked_slot import BlockedSlot
from models.booking import Booking
from models.court import Court
from models.pricing_rule import PricingRule, RULE_TYPES
from reservations import store
from reservations.availability import overlapping_bookings
from reservations.clock import get_clock
from reservations.commit import cancel_booking, confirm_booking
from reservations.results import unavailable
from reservations.timeslots import range_from_times
from routes.common import booking_json, failure_response, money, parse_date
from security.rbac import can_manage_court, require_roles
from utils.audit import log_event

court_bp = Blueprint("court", __name__, url_prefix="/courts")
owner_bp = Blueprint("owner", __name__)


def court_json(c):
    return {
        "id": c.id,
        "name": c.name,
        "location": c.location,
        "description": c.description,
        "base_price": money(c.base_price),
        "opening_time": c.opening_time,
        "closing_time": c.closing_time,
        "status": c.status,
        "is_active": c.is_active,
        "created_at": c.created_at.isoformat(),
        "verified_at": c.verified_at.isoformat() if c.verified_at else None,
        "rejected_reason": c.rejected_reason,
    }


def rule_json(r):
    return {
        "id": r.id,
        "court_id": r.court_id,
        "rule_type": r.rule_type,
        "price_multiplier": money(r.price_multiplier),
        "start_time": r.start_time,
        "end_time": r.end_time,
        "days_of_week": r.days_of_week,
        "specific_date": r.specific_date.isoformat() if r.specific_date else None,
        "label": r.label,
        "is_active": r.is_active,
    }


def blocked_json(b):
    return {
        "id": b.id,
        "court_id": b.court_id,
        "date": b.date.isoformat(),
        "start_time": b.start_time,
        "end_time": b.end_time,
        "reason": b.reason,
        "guest_name": b.guest_name,
        "guest_phone": b.guest_phone,
    }


def _managed_court(court_id: int):
    court = store.find_court(court_id)
    if court is None:
        return None, (jsonify(error="Court not found"), 404)
    if not can_manage_court(court):
        return None, (jsonify(error="Forbidden"), 403)
    return court, None


# ---------- OWNERS: register and list courts ----------
@court_bp.post("")
@require_roles("COURT_OWNER")
def register_court():
    data = request.get_json(silent=True) or {}
    name = (data.get("name") or "").strip()
    location = (data.get("location") or "").strip() or None
    description = (data.get("description") or "").strip() or None
    if not name:
        return jsonify(error="name is required"), 400
    if data.get("base_price") is None:
        return jsonify(error="base_price is required"), 400

    try:
        court = Court(
            name=name,
            location=location,
            description=description,
            base_price=data.get("base_price"),
            opening_time=data.get("opening_time") or None,
            closing_time=data.get("closing_time") or None,
            owner_user_id=g.user.id,
            status="PENDING",
        )
    except (ValueError, InvalidOperation) as exc:
        return jsonify(error=str(exc) or "Invalid court details"), 400

    failure = store.save(court)
    if failure is not None:
        return failure_response(failure)

    log_event("COURT_REGISTER_SUBMIT", user_id=g.user.id, entity="court", entity_id=court.id, court_id=court.id)
    return jsonify(id=court.id, status=court.status), 201


@court_bp.get("/mine")
@require_roles("COURT_OWNER")
def my_courts():
    courts = (
        Court.query
        .filter_by(owner_user_id=g.user.id)
        .order_by(Court.created_at.desc())
        .all()
    )
    return jsonify([court_json(c) for c in courts]), 200


@court_bp.get("")
def list_public_courts():
    location_query = (request.args.get("location") or "").strip()
    q = Court.query.filter(Court.is_active.is_(True), Court.status == "APPROVED")
    if location_query:
        q = q.filter(Court.location.ilike(f"%{location_query}%"))
    rows = q.order_by(Court.name.asc()).limit(200).all()
    return jsonify([court_json(c) for c in rows]), 200


@court_bp.get("/<int:court_id>/bookings")
@require_roles("COURT_OWNER")
def court_bookings(court_id: int):
    court, error = _managed_court(court_id)
    if error:
        return error
    q = Booking.query.filter_by(court_id=court.id)
    if request.args.get("date"):
        day = parse_date(request.args.get("date"))
        if day is None:
            return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400
        q = q.filter(Booking.booking_date == day)
    rows = q.order_by(Booking.booking_date.asc(), Booking.start_time.asc()).limit(500).all()
    return jsonify([booking_json(b) for b in rows]), 200


# ---------- OWNERS: blocked slots ----------
@court_bp.post("/<int:court_id>/blocked-slots")
@require_roles("COURT_OWNER")
def block_slot(court_id: int):
    court, error = _managed_court(court_id)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    day = parse_date(data.get("date"))
    if day is None:
        return jsonify(error="Invalid date. Use YYYY-MM-DD"), 400
    start_time = (data.get("start_time") or "").strip()
    end_time = (data.get("end_time") or "").strip()
    try:
        time_range = range_from_times(day, start_time, end_time)
    except ValueError as exc:
        return jsonify(error=str(exc)), 400

    now = get_clock().now()
    clashes = overlapping_bookings(time_range, store.occupancy(court.id, time_range, now))
    if clashes:
        return jsonify(error="Slot already has a booking", booking_ids=[b.id for b in clashes]), 409

    def recheck(occ):
        taken = overlapping_bookings(time_range, occ)
        if taken:
            return unavailable("booked", "Slot already has a booking", booking_ids=[b.id for b in taken])
        return None

    row, failure = store.insert_blocked_if_free(
        court.id, time_range, now, recheck,
        reason=(data.get("reason") or "").strip() or None,
        guest_name=(data.get("guest_name") or "").strip() or None,
        guest_phone=(data.get("guest_phone") or "").strip() or None,
        created_by=g.user.id,
    )
    if failure is not None:
        return failure_response(failure)

    log_event("SLOT_BLOCK", user_id=g.user.id, entity="blocked_slot", entity_id=row.id, court_id=court.id)
    return jsonify(blocked_json(row)), 201


@owner_bp.delete("/blocked-slots/<int:block_id>")
@require_roles("COURT_OWNER")
def unblock_slot(block_id: int):
    row = db.session.get(BlockedSlot, block_id)
    if row is None:
        return jsonify(error="Blocked slot not found"), 404
    court, error = _managed_court(row.court_id)
    if error:
        return error

    db.session.delete(row)
    db.session.commit()
    log_event("SLOT_UNBLOCK", user_id=g.user.id, entity="blocked_slot", entity_id=block_id, court_id=court.id)
    return jsonify(ok=True), 200


# ---------- OWNERS: pricing rules ----------
@court_bp.get("/<int:court_id>/pricing-rules")
@require_roles("COURT_OWNER")
def list_pricing_rules(court_id: int):
    court, error = _managed_court(court_id)
    if error:
        return error
    rules = PricingRule.query.filter_by(court_id=court.id).order_by(PricingRule.id.asc()).all()
    return jsonify([rule_json(r) for r in rules]), 200


@court_bp.post("/<int:court_id>/pricing-rules")
@require_roles("COURT_OWNER")
def create_pricing_rule(court_id: int):
    court, error = _managed_court(court_id)
    if error:
        return error
    data = request.get_json(silent=True) or {}
    rule_type = (data.get("rule_type") or "").strip()
    if rule_type not in RULE_TYPES:
        return jsonify(error=f"rule_type must be one of {', '.join(RULE_TYPES)}"), 400

    start_time = data.get("start_time") or None
    end_time = data.get("end_time") or None
    if (start_time is None) != (end_time is None):
        return jsonify(error="start_time and end_time go together"), 400
    if rule_type == "peak_hours" and start_time is None:
        return jsonify(error="peak_hours rules need start_time and end_time"), 400

    specific_date = None
    if data.get("specific_date"):
        specific_date = parse_date(data.get("specific_date"))
        if specific_date is None:
            return jsonify(error="Invalid specific_date. Use YYYY-MM-DD"), 400
    days = data.get("days_of_week")
    if days is not None and not isinstance(days, list):
        return jsonify(error="days_of_week must be a list of 0 (Sunday) to 6 (Saturday)"), 400
    if rule_type == "peak_hours" and not days:
        return jsonify(error="peak_hours rules need days_of_week"), 400
    if rule_type in ("custom", "special") and specific_date is None and not days:
        return jsonify(error="custom rules need specific_date or days_of_week"), 400

    try:
        rule = PricingRule(
            court_id=court.id,
            rule_type=rule_type,
            price_multiplier=Decimal(str(data.get("price_multiplier", "1.00"))),
            start_time=start_time,
            end_time=end_time,
            days_of_week=days,
            specific_date=specific_date,
            label=(data.get("label") or "").strip() or None,
        )
    except (ValueError, TypeError, InvalidOperation) as exc:
        return jsonify(error=str(exc) or "Invalid pricing rule"), 400

    failure = store.save(rule)
    if failure is not None:
        return failure_response(failure)

    log_event(
        "PRICING_RULE_CREATE", user_id=g.user.id, entity="pricing_rule", entity_id=rule.id, court_id=court.id,
        metadata={"rule_type": rule.rule_type, "price_multiplier": rule.price_multiplier},
    )
    return jsonify(rule_json(rule)), 201


@owner_bp.delete("/pricing-rules/<int:rule_id>")
@require_roles("COURT_OWNER")
def delete_pricing_rule(rule_id: int):
    rule = db.session.get(PricingRule, rule_id)
    if rule is None:
        return jsonify(error="Pricing rule not found"), 404
    court, error = _managed_court(rule.court_id)
    if error:
        return error

    db.session.delete(rule)
    db.session.commit()
    log_event("PRICING_RULE_DELETE", user_id=g.user.id, entity="pricing_rule", entity_id=rule_id, court_id=court.id)
    return jsonify(ok=True), 200


# ---------- OWNERS: manual payments ----------
@owner_bp.post("/bookings/<int:booking_id>/confirm")
@require_roles("COURT_OWNER")
def confirm(booking_id: int):
    booking = store.find_booking(booking_id)
    if booking is None:
        return jsonify(error="Booking not found"), 404
    _, error = _managed_court(booking.court_id)
    if error:
        return error

    booking, failure = confirm_booking(booking)
    if failure is not None:
        return failure_response(failure)

    log_event("BOOKING_CONFIRM", user_id=g.user.id, entity="booking", entity_id=booking.id, court_id=booking.court_id)
    return jsonify(booking_json(booking)), 200


@owner_bp.post("/bookings/<int:booking_id>/reject")
@require_roles("COURT_OWNER")
def reject(booking_id: int):
    """Owner turns down a booking (e.g. the transfer never arrived); no cancellation cutoff applies."""
    booking = store.find_booking(booking_id)
    if booking is None:
        return jsonify(error="Booking not found"), 404
    _, error = _managed_court(booking.court_id)
    if error:
        return error

    data = request.get_json(silent=True) or {}
    reason = (data.get("reason") or "").strip() or "Rejected by court owner"
    booking, failure = cancel_booking(booking, reason=reason, enforce_cutoff=False)
    if failure is not None:
        return failure_response(failure)

    log_event(
        "BOOKING_CANCEL", user_id=g.user.id, entity="booking", entity_id=booking.id, court_id=booking.court_id,
        metadata={"by": "owner", "reason": reason},
    )
    return jsonify(booking_json(booking)), 200
