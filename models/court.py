from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import validates

from models.db import db
from reservations.timeslots import normalize_time

COURT_STATUSES = ("PENDING", "APPROVED", "REJECTED")

class Court(db.Model):
    __tablename__ = "courts"

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(120), nullable=False)
    location = db.Column(db.String(160), nullable=True)
    description = db.Column(db.Text, nullable=True)

    base_price = db.Column(db.Numeric(10, 2), nullable=False)  # per hour, major currency unit

    # "HH:MM"; NULL falls back to DEFAULT_OPENING_TIME / DEFAULT_CLOSING_TIME.
    # closing_time is the last bookable start hour (24h courts: 00:00 - 23:59)
    opening_time = db.Column(db.String(8), nullable=True)
    closing_time = db.Column(db.String(8), nullable=True)

    status = db.Column(db.String(20), nullable=False, default="PENDING")
    owner_user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    verified_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    verified_at = db.Column(db.DateTime, nullable=True)
    rejected_reason = db.Column(db.String(255), nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @validates("base_price")
    def _check_price(self, key, value):
        price = Decimal(str(value))
        if price < 0:
            raise ValueError("base_price must not be negative")
        return price

    @validates("opening_time", "closing_time")
    def _check_time(self, key, value):
        return normalize_time(value) if value is not None else None

    @validates("status")
    def _check_status(self, key, value):
        if value not in COURT_STATUSES:
            raise ValueError(f"status must be one of {', '.join(COURT_STATUSES)}")
        return value

    @property
    def is_bookable(self) -> bool:
        return self.is_active and self.status == "APPROVED"
