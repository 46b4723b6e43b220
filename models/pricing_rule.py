from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import validates

from models.db import db
from reservations.timeslots import normalize_time

RULE_TYPES = ("peak_hours", "weekend", "custom", "special")

MIN_MULTIPLIER = Decimal("0.5")
MAX_MULTIPLIER = Decimal("5.0")

class PricingRule(db.Model):
    __tablename__ = "pricing_rules"

    id = db.Column(db.Integer, primary_key=True)
    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False, index=True)

    rule_type = db.Column(db.String(20), nullable=False)
    price_multiplier = db.Column(db.Numeric(4, 2), nullable=False, default=Decimal("1.00"))

    start_time = db.Column(db.String(8), nullable=True)
    end_time = db.Column(db.String(8), nullable=True)
    days_of_week = db.Column(db.JSON, nullable=True)  # 0 = Sunday ... 6 = Saturday
    specific_date = db.Column(db.Date, nullable=True)
    label = db.Column(db.String(80), nullable=True)

    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @validates("rule_type")
    def _check_type(self, key, value):
        if value not in RULE_TYPES:
            raise ValueError(f"rule_type must be one of {', '.join(RULE_TYPES)}")
        return value

    @validates("price_multiplier")
    def _check_multiplier(self, key, value):
        multiplier = Decimal(str(value))
        if not MIN_MULTIPLIER <= multiplier <= MAX_MULTIPLIER:
            raise ValueError(f"price_multiplier must be between {MIN_MULTIPLIER} and {MAX_MULTIPLIER}")
        return multiplier

    @validates("start_time", "end_time")
    def _check_time(self, key, value):
        return normalize_time(value) if value else None

    @validates("days_of_week")
    def _check_days(self, key, value):
        if value is None:
            return None
        days = sorted({int(d) for d in value})
        if any(d < 0 or d > 6 for d in days):
            raise ValueError("days_of_week values must be 0 (Sunday) to 6 (Saturday)")
        return days
