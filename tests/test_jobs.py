"""CLI housekeeping commands and booking notifications."""
import smtplib
from datetime import datetime

from models.audit_log import AuditLog
from models.booking import Booking
from models.slot_lock import SlotLock
from models.user import User
from reservations.commit import commit_booking
from reservations.locks import lock_slot
from tests.conftest import TUESDAY
from utils.notifier import notify_booking_created


class TestCli:
    def test_cleanup_locks(self, app, court, alice, clock):
        lock_slot(court, TUESDAY, "10:00", "11:00", alice.id)
        clock.advance(minutes=10)

        result = app.test_cli_runner().invoke(args=["cleanup-locks"])
        assert result.exit_code == 0
        assert "Deleted 1 expired locks" in result.output
        assert SlotLock.query.count() == 0
        assert AuditLog.query.filter_by(action="LOCKS_CLEANUP").one().details == {"deleted": 1}

    def test_complete_bookings(self, app, court, alice, clock):
        commit_booking(court, TUESDAY, "10:00", "11:00", alice.id, "card")
        clock.set(datetime(2026, 3, 3, 12, 0))

        result = app.test_cli_runner().invoke(args=["complete-bookings"])
        assert result.exit_code == 0
        assert Booking.query.one().status == "completed"

    def test_make_admin(self, app, alice):
        result = app.test_cli_runner().invoke(args=["make-admin", "ALICE@example.com"])
        assert "promoted to ADMIN" in result.output
        assert User.query.filter_by(email="alice@example.com").one().has_role("ADMIN")


class _FakeSMTP:
    sent = []

    def __init__(self, host, port, timeout=None):
        self.host = host

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        return False

    def starttls(self):
        pass

    def login(self, username, password):
        pass

    def send_message(self, msg):
        self.sent.append(msg)


class TestNotifier:
    def test_skipped_without_smtp(self, court, alice):
        booking, _ = commit_booking(court, TUESDAY, "10:00", "11:00", alice.id, "card")
        assert notify_booking_created(booking) == (False, "Email not configured")

    def test_customer_and_owner_are_emailed(self, app, court, alice, monkeypatch):
        app.config.update(SMTP_HOST="smtp.example.com", SMTP_FROM_EMAIL="bookings@example.com")
        _FakeSMTP.sent = []
        monkeypatch.setattr(smtplib, "SMTP", _FakeSMTP)

        booking, _ = commit_booking(court, TUESDAY, "10:00", "12:00", alice.id, "bank_transfer")
        assert notify_booking_created(booking) == (True, None)

        assert [m["To"] for m in _FakeSMTP.sent] == ["alice@example.com", "owner@example.com"]
        assert _FakeSMTP.sent[0]["Subject"] == "Booking received: Court A"
        assert "PKR 2000.00" in _FakeSMTP.sent[0].get_content()

    def test_smtp_error_is_reported(self, app, court, alice, monkeypatch):
        app.config.update(SMTP_HOST="smtp.example.com", SMTP_FROM_EMAIL="bookings@example.com")

        def refuse(*a, **kw):
            raise smtplib.SMTPConnectError(421, "busy")

        monkeypatch.setattr(smtplib, "SMTP", refuse)
        booking, _ = commit_booking(court, TUESDAY, "10:00", "11:00", alice.id, "card")
        ok, error = notify_booking_created(booking)
        assert not ok
        assert "busy" in error
