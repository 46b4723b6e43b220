"""
Shared test fixtures.

Provides a Flask app wired to:
  • a temporary SQLite database file (one per test)
  • a FixedClock frozen at Monday 2026-03-02 08:00 venue time
  • no SMTP host, so notifications are skipped

Factories create committed rows; the `auth` helper builds the identity
header the upstream gateway would forward.
"""
from datetime import date, datetime
from decimal import Decimal

import pytest

from app import create_app
from models import db
from models.court import Court
from models.holiday import Holiday
from models.pricing_rule import PricingRule
from models.user import Role, User
from reservations.clock import FixedClock
from utils.seed import seed_roles

NOW = datetime(2026, 3, 2, 8, 0)     # Monday
TUESDAY = date(2026, 3, 3)
WEDNESDAY = date(2026, 3, 4)
SATURDAY = date(2026, 3, 7)
EVERY_DAY = [0, 1, 2, 3, 4, 5, 6]  # 0 = Sunday


# ── Fixtures ───────────────────────────────────────────────────────────────


@pytest.fixture()
def clock():
    return FixedClock(NOW)


@pytest.fixture()
def app(clock, tmp_path):
    app = create_app({
        "TESTING": True,
        "SQLALCHEMY_DATABASE_URI": f"sqlite:///{tmp_path / 'test.db'}",
        "RESERVATION_CLOCK": clock,
        "SMTP_HOST": None,
    })
    with app.app_context():
        db.create_all()
        seed_roles()
        yield app
        db.session.remove()
        db.drop_all()


@pytest.fixture()
def client(app):
    return app.test_client()


def auth(user) -> dict:
    return {"X-User-Id": str(user.id)}


# ── Factories ──────────────────────────────────────────────────────────────


@pytest.fixture()
def make_user(app):
    counter = {"n": 0}

    def _make(email=None, roles=("CUSTOMER",)):
        counter["n"] += 1
        user = User(email=email or f"user{counter['n']}@example.com", full_name=f"User {counter['n']}")
        for name in roles:
            user.roles.append(Role.query.filter_by(name=name).one())
        db.session.add(user)
        db.session.commit()
        return user

    return _make


@pytest.fixture()
def owner(make_user):
    return make_user(email="owner@example.com", roles=("COURT_OWNER",))


@pytest.fixture()
def admin(make_user):
    return make_user(email="admin@example.com", roles=("ADMIN",))


@pytest.fixture()
def alice(make_user):
    return make_user(email="alice@example.com")


@pytest.fixture()
def bob(make_user):
    return make_user(email="bob@example.com")


@pytest.fixture()
def make_court(app, owner):
    def _make(base_price="1000.00", opening_time="06:00", closing_time="22:00", status="APPROVED", **kw):
        court = Court(
            name=kw.pop("name", "Court A"),
            location=kw.pop("location", "Lahore"),
            base_price=Decimal(base_price),
            opening_time=opening_time,
            closing_time=closing_time,
            status=status,
            owner_user_id=kw.pop("owner_user_id", owner.id),
            **kw,
        )
        db.session.add(court)
        db.session.commit()
        return court

    return _make


@pytest.fixture()
def court(make_court):
    return make_court()


@pytest.fixture()
def make_rule(app):
    def _make(court, rule_type, multiplier, **kw):
        rule = PricingRule(court_id=court.id, rule_type=rule_type, price_multiplier=Decimal(multiplier), **kw)
        db.session.add(rule)
        db.session.commit()
        return rule

    return _make


@pytest.fixture()
def make_holiday(app):
    def _make(day, name="Holiday", multiplier="2.00"):
        holiday = Holiday(date=day, name=name, price_multiplier=Decimal(multiplier))
        db.session.add(holiday)
        db.session.commit()
        return holiday

    return _make
