from datetime import datetime, timedelta

import pytz
from flask import current_app


class SystemClock:
    """Wall clock in the venue's time zone, returned naive.

    Every timestamp the core stores or compares (lock expiry, past-slot
    checks) comes from the same clock, so naive values never mix frames.
    """

    def __init__(self, timezone: str = "UTC"):
        self.tz = pytz.timezone(timezone)

    def now(self) -> datetime:
        return datetime.now(self.tz).replace(tzinfo=None)


class FixedClock:
    """Clock frozen at a given instant; ``advance`` moves it forward."""

    def __init__(self, now: datetime):
        self._now = now

    def now(self) -> datetime:
        return self._now

    def advance(self, **kwargs) -> datetime:
        self._now = self._now + timedelta(**kwargs)
        return self._now

    def set(self, now: datetime) -> None:
        self._now = now


def get_clock(clock=None):
    if clock is not None:
        return clock
    configured = current_app.config.get("RESERVATION_CLOCK")
    if configured is not None:
        return configured
    return SystemClock(current_app.config.get("TIMEZONE", "UTC"))
