import logging
import smtplib
from email.message import EmailMessage

from flask import current_app

from models import db
from models.court import Court
from models.user import User

logger = logging.getLogger(__name__)


def send_email(to_email: str, subject: str, body: str):
    host = current_app.config.get("SMTP_HOST")
    port = current_app.config.get("SMTP_PORT", 587)
    username = current_app.config.get("SMTP_USERNAME")
    password = current_app.config.get("SMTP_PASSWORD")
    from_email = current_app.config.get("SMTP_FROM_EMAIL") or username
    use_tls = current_app.config.get("SMTP_USE_TLS", True)

    if not host or not from_email:
        return False, "Email not configured"

    msg = EmailMessage()
    msg["From"] = from_email
    msg["To"] = to_email
    msg["Subject"] = subject
    msg.set_content(body)

    try:
        with smtplib.SMTP(host, port, timeout=10) as server:
            if use_tls:
                server.starttls()
            if username and password:
                server.login(username, password)
            server.send_message(msg)
        return True, None
    except (smtplib.SMTPException, OSError) as exc:
        return False, str(exc)


def _booking_body(booking, court, user) -> str:
    currency = current_app.config.get("CURRENCY", "PKR")
    lines = [
        f"Hi {user.full_name or user.email},",
        "",
        f"Court: {court.name}",
        f"Date: {booking.booking_date.isoformat()}",
        f"Time: {booking.start_time} - {booking.end_time}",
        f"Total: {currency} {booking.total_price}",
        f"Status: {booking.status}",
    ]
    if booking.status == "pending":
        lines += ["", "The court owner will confirm once your payment has been verified."]
    return "\n".join(lines)


def notify_booking_created(booking):
    """Tell the customer (and the court owner) about a new booking.

    Called by the HTTP layer after a successful commit. Delivery problems are
    logged and reported back, never raised: the booking already stands.
    """
    court = db.session.get(Court, booking.court_id)
    customer = db.session.get(User, booking.user_id)
    if court is None or customer is None:
        return False, "Booking references are missing"

    subject = "Booking confirmed" if booking.status == "confirmed" else "Booking received"
    ok, error = send_email(customer.email, f"{subject}: {court.name}", _booking_body(booking, court, customer))
    if not ok:
        logger.info("Booking %s notification not sent: %s", booking.id, error)
        return ok, error

    owner = db.session.get(User, court.owner_user_id)
    if owner is not None:
        owner_ok, owner_error = send_email(
            owner.email,
            f"New booking on {court.name}",
            _booking_body(booking, court, owner),
        )
        if not owner_ok:
            logger.info("Owner notice for booking %s not sent: %s", booking.id, owner_error)
    return True, None
