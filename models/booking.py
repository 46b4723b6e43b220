from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import validates

from models.db import db
from reservations.timeslots import normalize_time

BOOKING_STATUSES = ("pending", "confirmed", "cancelled", "completed")
PAYMENT_STATUSES = ("pending", "succeeded", "failed", "refunded")

# Statuses that hold a court's time; everything else frees it
ACTIVE_BOOKING_STATUSES = ("pending", "confirmed")

class Booking(db.Model):
    __tablename__ = "bookings"

    id = db.Column(db.Integer, primary_key=True)

    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    booking_date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.String(8), nullable=False)
    end_time = db.Column(db.String(8), nullable=False)  # earlier than start_time when the booking wraps midnight

    total_price = db.Column(db.Numeric(10, 2), nullable=False)

    status = db.Column(db.String(20), nullable=False, default="pending")
    payment_status = db.Column(db.String(20), nullable=False, default="pending")
    payment_method = db.Column(db.String(30), nullable=True)
    notes = db.Column(db.Text, nullable=True)

    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)
    cancelled_at = db.Column(db.DateTime, nullable=True)
    cancel_reason = db.Column(db.String(120), nullable=True)

    __table_args__ = (
        # Backstop against double booking: one live booking per exact range
        db.Index(
            "uq_booking_active_range",
            "court_id", "booking_date", "start_time", "end_time",
            unique=True,
            sqlite_where=db.text("status IN ('pending', 'confirmed')"),
            postgresql_where=db.text("status IN ('pending', 'confirmed')"),
        ),
    )

    @validates("start_time", "end_time")
    def _check_time(self, key, value):
        value = normalize_time(value)
        if not value.endswith(":00"):
            raise ValueError(f"{key} must be on the hour")
        if key == "end_time" and self.start_time == value:
            raise ValueError("end_time must differ from start_time")
        return value

    @validates("total_price")
    def _check_price(self, key, value):
        price = Decimal(str(value))
        if price < 0:
            raise ValueError("total_price must not be negative")
        return price

    @validates("status")
    def _check_status(self, key, value):
        if value not in BOOKING_STATUSES:
            raise ValueError(f"status must be one of {', '.join(BOOKING_STATUSES)}")
        return value

    @validates("payment_status")
    def _check_payment_status(self, key, value):
        if value not in PAYMENT_STATUSES:
            raise ValueError(f"payment_status must be one of {', '.join(PAYMENT_STATUSES)}")
        return value

    @property
    def is_active(self) -> bool:
        return self.status in ACTIVE_BOOKING_STATUSES
