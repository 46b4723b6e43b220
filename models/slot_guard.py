from models.db import db

class SlotGuard(db.Model):
    """One row per court and calendar day.

    Lock and booking inserts bump the rows for every day their range touches
    before re-checking availability, so competing writers for the same day
    queue up behind the row lock instead of interleaving.
    """
    __tablename__ = "slot_guards"

    id = db.Column(db.Integer, primary_key=True)
    court_id = db.Column(db.Integer, db.ForeignKey("courts.id"), nullable=False)
    guard_date = db.Column(db.Date, nullable=False)
    version = db.Column(db.Integer, nullable=False, default=0)

    __table_args__ = (
        db.UniqueConstraint("court_id", "guard_date", name="uq_slot_guard_court_day"),
    )
