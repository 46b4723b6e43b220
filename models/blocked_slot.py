from datetime import datetime

from sqlalchemy.orm import validates

from models.db import db
from reservations.timeslots import normalize_time

class BlockedSlot(db.Model):
    """Owner-blocked time (maintenance, walk-in guests). Blocks like a booking, carries no price."""
    __tablename__ = "blocked_slots"

    id = db.Column(db.Integer, primary_key=True)
    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False, index=True)

    date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.String(8), nullable=False)
    end_time = db.Column(db.String(8), nullable=False)

    reason = db.Column(db.String(255), nullable=True)
    guest_name = db.Column(db.String(120), nullable=True)
    guest_phone = db.Column(db.String(30), nullable=True)

    created_by = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=True)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @validates("start_time", "end_time")
    def _check_time(self, key, value):
        value = normalize_time(value)
        if key == "end_time" and self.start_time == value:
            raise ValueError("end_time must differ from start_time")
        return value
