import os

BASE_DIR = os.path.abspath(os.path.dirname(__file__))


def _csv(value: str) -> tuple:
    return tuple(v.strip().lower() for v in value.split(",") if v.strip())


class Config:
    # Secrets
    SECRET_KEY = os.getenv("SECRET_KEY", "dev-only-change-me")

    # SQLite database file stored next to the app as courtslot.db
    SQLALCHEMY_DATABASE_URI = os.getenv(
        "DATABASE_URL",
        "sqlite:///" + os.path.join(BASE_DIR, "courtslot.db")
    )
    SQLALCHEMY_TRACK_MODIFICATIONS = False

    # Header set by the upstream gateway once the caller is authenticated
    USER_ID_HEADER = "X-User-Id"

    # Venue-local time zone used for "now" (past-slot checks, lock expiry)
    TIMEZONE = os.getenv("TIMEZONE", "Asia/Karachi")

    # Slot locks: 5 minutes to finish payment
    SLOT_LOCK_TTL_SECONDS = int(os.getenv("SLOT_LOCK_TTL_SECONDS", "300"))

    # Booking length bounds (whole hours)
    MIN_BOOKING_HOURS = 1
    MAX_BOOKING_HOURS = int(os.getenv("MAX_BOOKING_HOURS", "8"))

    # Operating hours used when a court leaves them empty
    DEFAULT_OPENING_TIME = "06:00"
    DEFAULT_CLOSING_TIME = "22:00"

    # Money
    CURRENCY = os.getenv("CURRENCY", "PKR")
    CURRENCY_MINOR_UNIT = "0.01"

    # Payment methods: instant ones confirm immediately, manual ones wait for the owner
    INSTANT_PAYMENT_METHODS = _csv(os.getenv("INSTANT_PAYMENT_METHODS", "card,wallet"))
    MANUAL_PAYMENT_METHODS = _csv(os.getenv("MANUAL_PAYMENT_METHODS", "bank_transfer,cash"))

    # Cancellation policy
    CANCEL_CUTOFF_HOURS = 12

    # Email (SMTP)
    SMTP_HOST = os.getenv("SMTP_HOST")
    SMTP_PORT = int(os.getenv("SMTP_PORT", "587"))
    SMTP_USERNAME = os.getenv("SMTP_USERNAME")
    SMTP_PASSWORD = os.getenv("SMTP_PASSWORD")
    SMTP_FROM_EMAIL = os.getenv("SMTP_FROM_EMAIL")
    SMTP_USE_TLS = os.getenv("SMTP_USE_TLS", "true").lower() == "true"

    LOG_LEVEL = os.getenv("LOG_LEVEL", "INFO")

    # Basic app settings
    DEBUG = False
