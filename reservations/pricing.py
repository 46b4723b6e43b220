"""Dynamic pricing.

Each hour of a booking is priced on its own: the multiplier starts at 1 and
every matching court rule, plus the holiday of that hour's calendar date, can
only raise it to its own multiplier (highest wins, nothing stacks). The hour
price is rounded to the currency's minor unit before the hours are summed.
"""
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal

from flask import current_app, has_app_context

from reservations import store
from reservations.timeslots import HourSlot, TimeRange, range_from_times, to_minutes

ONE = Decimal("1")
WEEKEND_DAYS = frozenset({0, 6})  # Sunday, Saturday

DEFAULT_LABELS = {
    "peak_hours": "Peak hours",
    "weekend": "Weekend",
    "custom": "Custom pricing",
    "special": "Special pricing",
}


@dataclass(frozen=True)
class HourPrice:
    date: date
    start_time: str
    end_time: str
    multiplier: Decimal
    price: Decimal
    labels: tuple = ()

    @property
    def is_premium(self) -> bool:
        return self.multiplier != ONE

    def to_dict(self) -> dict:
        return {
            "date": self.date.isoformat(),
            "start_time": self.start_time,
            "end_time": self.end_time,
            "multiplier": str(self.multiplier),
            "price": str(self.price),
            "rules": list(self.labels),
        }


@dataclass(frozen=True)
class PriceSummary:
    normal_hours: int
    normal_subtotal: Decimal
    premium_hours: int
    premium_subtotal: Decimal

    def to_dict(self) -> dict:
        return {
            "normal_hours": self.normal_hours,
            "normal_subtotal": str(self.normal_subtotal),
            "premium_hours": self.premium_hours,
            "premium_subtotal": str(self.premium_subtotal),
        }


@dataclass(frozen=True)
class PriceQuote:
    base_price: Decimal
    hours: int
    total_price: Decimal
    hourly_breakdown: tuple
    applied_rules: tuple
    summary: PriceSummary

    def to_dict(self) -> dict:
        return {
            "base_price": str(self.base_price),
            "hours": self.hours,
            "total_price": str(self.total_price),
            "hourly_breakdown": [h.to_dict() for h in self.hourly_breakdown],
            "applied_rules": list(self.applied_rules),
            "summary": self.summary.to_dict(),
        }


def _minor_unit() -> Decimal:
    if has_app_context():
        return Decimal(current_app.config.get("CURRENCY_MINOR_UNIT", "0.01"))
    return Decimal("0.01")


def _format_multiplier(value: Decimal) -> str:
    text = format(Decimal(value).normalize(), "f")
    return f"{text}x"


def rule_label(rule) -> str:
    name = rule.label or DEFAULT_LABELS.get(rule.rule_type, rule.rule_type)
    return f"{name} ({_format_multiplier(rule.price_multiplier)})"


def holiday_label(holiday) -> str:
    return f"Holiday: {holiday.name} ({_format_multiplier(holiday.price_multiplier)})"


def _in_window(slot: HourSlot, start, end) -> bool:
    minute = slot.hour * 60
    lo, hi = to_minutes(start), to_minutes(end)
    if lo == hi:
        return True
    if lo < hi:
        return lo <= minute < hi
    # window wraps midnight, e.g. 22:00-02:00
    return minute >= lo or minute < hi


def _window_ok(rule, slot: HourSlot) -> bool:
    if rule.start_time and rule.end_time:
        return _in_window(slot, rule.start_time, rule.end_time)
    return True


def rule_matches(rule, slot: HourSlot) -> bool:
    if not rule.is_active:
        return False

    if rule.rule_type == "peak_hours":
        if not (rule.start_time and rule.end_time):
            return False
        days = rule.days_of_week or []
        return slot.weekday in days and _in_window(slot, rule.start_time, rule.end_time)

    if rule.rule_type == "weekend":
        return slot.weekday in WEEKEND_DAYS and _window_ok(rule, slot)

    if rule.rule_type in ("custom", "special"):
        if rule.specific_date is not None:
            day_ok = rule.specific_date == slot.calendar_date
        elif rule.days_of_week:
            day_ok = slot.weekday in rule.days_of_week
        else:
            day_ok = False
        return day_ok and _window_ok(rule, slot)

    return False


def hour_multiplier(slot: HourSlot, rules, holiday=None) -> tuple[Decimal, tuple]:
    multiplier = ONE
    labels = []
    for rule in rules:
        if rule_matches(rule, slot):
            multiplier = max(multiplier, Decimal(str(rule.price_multiplier)))
            labels.append(rule_label(rule))
    if holiday is not None and holiday.is_active:
        multiplier = max(multiplier, Decimal(str(holiday.price_multiplier)))
        labels.append(holiday_label(holiday))
    return multiplier, tuple(labels)


def price_range(court, time_range: TimeRange, rules, holidays: dict) -> PriceQuote:
    """Price ``time_range`` with already loaded ``rules`` and ``holidays`` (date -> Holiday)."""
    base = Decimal(str(court.base_price))
    minor = _minor_unit()

    breakdown = []
    applied = []
    for slot in time_range.hour_slots():
        multiplier, labels = hour_multiplier(slot, rules, holidays.get(slot.calendar_date))
        price = (base * multiplier).quantize(minor, rounding=ROUND_HALF_UP)
        breakdown.append(HourPrice(
            date=slot.calendar_date,
            start_time=slot.start_time,
            end_time=slot.end_time,
            multiplier=multiplier,
            price=price,
            labels=labels,
        ))
        for label in labels:
            if label not in applied:
                applied.append(label)

    normal = [h for h in breakdown if not h.is_premium]
    premium = [h for h in breakdown if h.is_premium]
    zero = Decimal("0").quantize(minor)
    summary = PriceSummary(
        normal_hours=len(normal),
        normal_subtotal=sum((h.price for h in normal), zero),
        premium_hours=len(premium),
        premium_subtotal=sum((h.price for h in premium), zero),
    )
    return PriceQuote(
        base_price=base.quantize(minor),
        hours=time_range.hours,
        total_price=sum((h.price for h in breakdown), zero),
        hourly_breakdown=tuple(breakdown),
        applied_rules=tuple(applied),
        summary=summary,
    )


def calculate_price(court, booking_date: date, start_time, end_time, rules=None, holidays=None) -> PriceQuote:
    """Quote ``[start_time, end_time)`` on ``booking_date``; an end at or before the start wraps midnight.

    Rules and holidays are loaded from the store unless given.
    """
    time_range = range_from_times(booking_date, start_time, end_time)
    if rules is None:
        rules = store.find_pricing_rules(court.id)
    if holidays is None:
        holidays = store.find_holidays(time_range.dates())
    return price_range(court, time_range, rules, holidays)
