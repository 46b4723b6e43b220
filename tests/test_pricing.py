"""Per-hour dynamic pricing."""
from datetime import date
from decimal import Decimal
from types import SimpleNamespace

from models import db
from models.holiday import Holiday
from models.pricing_rule import PricingRule
from reservations import store
from reservations.pricing import calculate_price, hour_multiplier, price_range, rule_label
from reservations.timeslots import HourSlot, TimeRange
from tests.conftest import EVERY_DAY, SATURDAY, TUESDAY, WEDNESDAY


def _rule(rule_type, multiplier, **kw):
    kw.setdefault("is_active", True)
    return PricingRule(rule_type=rule_type, price_multiplier=Decimal(multiplier), **kw)


def _holiday(day, multiplier, name="Holiday"):
    return Holiday(date=day, name=name, price_multiplier=Decimal(multiplier), is_active=True)


COURT = SimpleNamespace(id=1, base_price=Decimal("1000.00"))


class TestHourMultiplier:
    def test_no_rules_is_base(self):
        assert hour_multiplier(HourSlot(TUESDAY, 10), []) == (Decimal("1"), ())

    def test_peak_window_is_half_open(self):
        peak = _rule("peak_hours", "1.5", start_time="18:00", end_time="22:00", days_of_week=EVERY_DAY)
        assert hour_multiplier(HourSlot(TUESDAY, 18), [peak])[0] == Decimal("1.5")
        assert hour_multiplier(HourSlot(TUESDAY, 21), [peak])[0] == Decimal("1.5")
        assert hour_multiplier(HourSlot(TUESDAY, 22), [peak])[0] == Decimal("1")
        assert hour_multiplier(HourSlot(TUESDAY, 17), [peak])[0] == Decimal("1")

    def test_peak_restricted_to_days(self):
        peak = _rule("peak_hours", "1.5", start_time="18:00", end_time="22:00", days_of_week=[5, 6])
        assert hour_multiplier(HourSlot(TUESDAY, 19), [peak])[0] == Decimal("1")
        assert hour_multiplier(HourSlot(SATURDAY, 19), [peak])[0] == Decimal("1.5")

    def test_peak_without_window_never_applies(self):
        peak = _rule("peak_hours", "1.5", days_of_week=EVERY_DAY)
        assert hour_multiplier(HourSlot(TUESDAY, 19), [peak])[0] == Decimal("1")

    def test_peak_without_days_never_applies(self):
        for days in (None, []):
            peak = _rule("peak_hours", "1.5", start_time="18:00", end_time="21:00", days_of_week=days)
            assert hour_multiplier(HourSlot(SATURDAY, 18), [peak]) == (Decimal("1"), ())

    def test_highest_multiplier_wins(self):
        peak = _rule("peak_hours", "1.5", start_time="18:00", end_time="22:00", days_of_week=EVERY_DAY)
        weekend = _rule("weekend", "1.3")
        multiplier, labels = hour_multiplier(HourSlot(SATURDAY, 18), [peak, weekend])
        assert multiplier == Decimal("1.5")
        assert labels == ("Peak hours (1.5x)", "Weekend (1.3x)")

    def test_discount_rule_does_not_lower_price(self):
        cheap = _rule("custom", "0.5", days_of_week=[2])
        assert hour_multiplier(HourSlot(TUESDAY, 10), [cheap])[0] == Decimal("1")

    def test_custom_rule_on_specific_date(self):
        special = _rule("special", "1.8", specific_date=WEDNESDAY, label="Final")
        assert hour_multiplier(HourSlot(TUESDAY, 10), [special])[0] == Decimal("1")
        multiplier, labels = hour_multiplier(HourSlot(WEDNESDAY, 10), [special])
        assert multiplier == Decimal("1.8")
        assert labels == ("Final (1.8x)",)

    def test_custom_rule_without_dates_never_applies(self):
        assert hour_multiplier(HourSlot(TUESDAY, 10), [_rule("custom", "2")])[0] == Decimal("1")

    def test_inactive_rule_ignored(self):
        weekend = _rule("weekend", "1.3", is_active=False)
        assert hour_multiplier(HourSlot(SATURDAY, 10), [weekend])[0] == Decimal("1")

    def test_holiday_competes_with_rules(self):
        weekend = _rule("weekend", "1.3")
        multiplier, labels = hour_multiplier(HourSlot(SATURDAY, 10), [weekend], _holiday(SATURDAY, "2", "Eid"))
        assert multiplier == Decimal("2")
        assert "Holiday: Eid (2x)" in labels

    def test_rule_label_uses_default_names(self):
        assert rule_label(_rule("weekend", "1.25")) == "Weekend (1.25x)"


class TestPriceRange:
    def test_simple_booking(self):
        quote = price_range(COURT, TimeRange(TUESDAY, 10, 2), [], {})
        assert quote.total_price == Decimal("2000.00")
        assert [h.price for h in quote.hourly_breakdown] == [Decimal("1000.00"), Decimal("1000.00")]
        assert quote.applied_rules == ()
        assert quote.summary.normal_hours == 2
        assert quote.summary.premium_hours == 0

    def test_peak_override(self):
        peak = _rule("peak_hours", "1.5", start_time="18:00", end_time="22:00", days_of_week=EVERY_DAY)
        quote = price_range(COURT, TimeRange(TUESDAY, 18, 2), [peak], {})
        assert [h.price for h in quote.hourly_breakdown] == [Decimal("1500.00"), Decimal("1500.00")]
        assert quote.total_price == Decimal("3000.00")
        assert quote.applied_rules == ("Peak hours (1.5x)",)

    def test_partial_peak_splits_summary(self):
        peak = _rule("peak_hours", "1.5", start_time="18:00", end_time="22:00", days_of_week=EVERY_DAY)
        quote = price_range(COURT, TimeRange(TUESDAY, 16, 3), [peak], {})
        assert quote.total_price == Decimal("3500.00")
        assert quote.summary.normal_hours == 2
        assert quote.summary.normal_subtotal == Decimal("2000.00")
        assert quote.summary.premium_hours == 1
        assert quote.summary.premium_subtotal == Decimal("1500.00")

    def test_max_combine_not_product(self):
        peak = _rule("peak_hours", "1.5", start_time="18:00", end_time="22:00", days_of_week=EVERY_DAY)
        weekend = _rule("weekend", "1.3")
        quote = price_range(COURT, TimeRange(SATURDAY, 18, 1), [peak, weekend], {})
        assert quote.total_price == Decimal("1500.00")

    def test_each_hour_rounded_before_summing(self):
        court = SimpleNamespace(id=1, base_price=Decimal("333.33"))
        rule = _rule("custom", "1.15", days_of_week=[2])
        quote = price_range(court, TimeRange(TUESDAY, 10, 3), [rule], {})
        # 333.33 * 1.15 = 383.3295 -> 383.33 per hour
        assert quote.total_price == Decimal("1149.99")

    def test_overnight_uses_each_hours_own_date(self):
        holiday = _holiday(WEDNESDAY, "2", "Founders Day")
        quote = price_range(COURT, TimeRange(TUESDAY, 22, 4), [], {WEDNESDAY: holiday})
        assert [h.price for h in quote.hourly_breakdown] == [
            Decimal("1000.00"), Decimal("1000.00"), Decimal("2000.00"), Decimal("2000.00"),
        ]
        assert [h.date for h in quote.hourly_breakdown] == [TUESDAY, TUESDAY, WEDNESDAY, WEDNESDAY]
        assert quote.total_price == Decimal("6000.00")

    def test_pricing_is_repeatable(self):
        peak = _rule("peak_hours", "1.5", start_time="18:00", end_time="22:00", days_of_week=EVERY_DAY)
        first = price_range(COURT, TimeRange(TUESDAY, 17, 3), [peak], {})
        second = price_range(COURT, TimeRange(TUESDAY, 17, 3), [peak], {})
        assert first == second

    def test_to_dict_uses_strings_for_money(self):
        data = price_range(COURT, TimeRange(TUESDAY, 10, 1), [], {}).to_dict()
        assert data["total_price"] == "1000.00"
        assert data["hourly_breakdown"][0]["price"] == "1000.00"


class TestCalculatePrice:
    def test_loads_rules_and_holidays(self, court, make_rule, make_holiday):
        make_rule(court, "peak_hours", "1.5", start_time="18:00", end_time="22:00", days_of_week=EVERY_DAY)
        make_holiday(WEDNESDAY, "Eid", "2.00")

        assert calculate_price(court, TUESDAY, "18:00", "20:00").total_price == Decimal("3000.00")
        assert calculate_price(court, WEDNESDAY, "10:00", "11:00").total_price == Decimal("2000.00")

    def test_inactive_holiday_is_ignored(self, court, make_holiday):
        holiday = make_holiday(WEDNESDAY, "Cancelled", "3.00")
        holiday.is_active = False
        db.session.commit()
        assert store.find_holiday(WEDNESDAY) is None
        assert calculate_price(court, WEDNESDAY, "10:00", "11:00").total_price == Decimal("1000.00")

    def test_other_courts_rules_do_not_apply(self, make_court, make_rule):
        a = make_court(name="A")
        b = make_court(name="B")
        make_rule(a, "peak_hours", "2.0", start_time="10:00", end_time="12:00", days_of_week=EVERY_DAY)
        assert calculate_price(b, TUESDAY, "10:00", "11:00").total_price == Decimal("1000.00")

    def test_wraps_midnight_on_end_before_start(self, make_court):
        court = make_court(opening_time="00:00", closing_time="23:00")
        quote = calculate_price(court, date(2026, 3, 3), "23:00", "01:00")
        assert quote.hours == 2
        assert quote.total_price == Decimal("2000.00")


class TestScenarios:
    def test_weekday_peak_on_wednesday(self, court, make_rule):
        make_rule(court, "peak_hours", "1.5", start_time="18:00", end_time="21:00", days_of_week=[1, 2, 3, 4, 5])
        quote = calculate_price(court, WEDNESDAY, "18:00", "20:00")
        assert [h.price for h in quote.hourly_breakdown] == [Decimal("1500.00"), Decimal("1500.00")]
        assert quote.total_price == Decimal("3000.00")

    def test_peak_without_days_leaves_saturday_at_base(self, court, make_rule):
        make_rule(court, "peak_hours", "1.5", start_time="18:00", end_time="21:00")
        quote = calculate_price(court, SATURDAY, "18:00", "19:00")
        assert quote.total_price == Decimal("1000.00")
        assert quote.applied_rules == ()

    def test_tuesday_afternoon_has_no_rules(self, court):
        quote = calculate_price(court, TUESDAY, "14:00", "16:00")
        assert quote.total_price == Decimal("2000.00")
        assert quote.applied_rules == ()

    def test_holiday_on_start_date_only(self, make_court, make_holiday):
        court = make_court(opening_time="00:00", closing_time="23:00")
        make_holiday(TUESDAY, "Eve", "2.00")
        quote = calculate_price(court, TUESDAY, "23:00", "02:00")
        assert [h.price for h in quote.hourly_breakdown] == [
            Decimal("2000.00"), Decimal("1000.00"), Decimal("1000.00"),
        ]
