from datetime import datetime
from decimal import Decimal

from sqlalchemy.orm import validates

from models.db import db
from models.pricing_rule import MIN_MULTIPLIER, MAX_MULTIPLIER

class Holiday(db.Model):
    """Platform-wide price override for a calendar date, layered over court rules."""
    __tablename__ = "holidays"

    id = db.Column(db.Integer, primary_key=True)
    date = db.Column(db.Date, nullable=False, unique=True, index=True)
    name = db.Column(db.String(120), nullable=False)
    price_multiplier = db.Column(db.Numeric(4, 2), nullable=False, default=Decimal("1.00"))
    is_active = db.Column(db.Boolean, default=True, nullable=False)
    created_at = db.Column(db.DateTime, default=datetime.utcnow, nullable=False)

    @validates("price_multiplier")
    def _check_multiplier(self, key, value):
        multiplier = Decimal(str(value))
        if not MIN_MULTIPLIER <= multiplier <= MAX_MULTIPLIER:
            raise ValueError(f"price_multiplier must be between {MIN_MULTIPLIER} and {MAX_MULTIPLIER}")
        return multiplier
