from datetime import datetime

from sqlalchemy.orm import validates

from models.db import db
from reservations.timeslots import normalize_time

class SlotLock(db.Model):
    __tablename__ = "slot_locks"

    id = db.Column(db.Integer, primary_key=True)
    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False, index=True)
    user_id = db.Column(db.Integer, db.ForeignKey("users.id"), nullable=False, index=True)

    booking_date = db.Column(db.Date, nullable=False, index=True)
    start_time = db.Column(db.String(8), nullable=False)
    end_time = db.Column(db.String(8), nullable=False)

    # Venue-local timestamps from the reservation clock
    locked_at = db.Column(db.DateTime, nullable=False)
    expires_at = db.Column(db.DateTime, nullable=False, index=True)

    @validates("start_time", "end_time")
    def _check_time(self, key, value):
        value = normalize_time(value)
        if key == "end_time" and self.start_time == value:
            raise ValueError("end_time must differ from start_time")
        return value

    @validates("expires_at")
    def _check_expiry(self, key, value):
        if self.locked_at is not None and value <= self.locked_at:
            raise ValueError("expires_at must be after locked_at")
        return value

    def is_active(self, now: datetime) -> bool:
        return self.expires_at > now
