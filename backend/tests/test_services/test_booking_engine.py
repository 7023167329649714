"""Tests for the pure booking rules: validation, pricing, overlap, status and payments."""

import uuid
from datetime import date, timedelta
from decimal import Decimal
from types import SimpleNamespace

import pytest

from app.errors import (
    AmountExceedsTotal,
    GuestLimitExceeded,
    InvalidAmount,
    InvalidDateRange,
    InvalidPropertyType,
    InvalidStateTransition,
    MaxStayViolation,
    MinStayViolation,
    MissingPricing,
    PastDate,
)
from app.services.booking_engine import (
    apply_payment,
    compute_totals,
    derive_payment_status,
    find_overlapping,
    is_terminal,
    next_status,
    ranges_overlap,
    recalculate,
    to_money,
    validate_and_price,
)

TODAY = date(2026, 6, 1)


def _property(**overrides):
    values = {
        "property_type": "short_term",
        "base_price": Decimal("300"),
        "cleaning_fee": Decimal("150"),
        "max_guests": 4,
        "min_stay_days": 2,
        "max_stay_days": 30,
    }
    values.update(overrides)
    return SimpleNamespace(**values)


def _booking(check_in: date, nights: int, status: str = "confirmed", **overrides):
    values = {
        "id": uuid.uuid4(),
        "status": status,
        "check_in_date": check_in,
        "check_out_date": check_in + timedelta(days=nights),
        "total_amount": Decimal("1000.00"),
        "paid_amount": Decimal("0.00"),
        "remaining_amount": Decimal("1000.00"),
        "payment_status": "unpaid",
    }
    values.update(overrides)
    return SimpleNamespace(**values)


class TestValidateAndPrice:
    def test_four_night_stay_is_priced_with_cleaning_fee(self):
        quote = validate_and_price(_property(), date(2026, 7, 1), date(2026, 7, 5), 2, today=TODAY)
        assert quote.nights == 4
        assert quote.total_base_amount == Decimal("1200.00")
        assert quote.total_amount == Decimal("1350.00")

    def test_missing_cleaning_fee_counts_as_zero(self):
        quote = validate_and_price(_property(cleaning_fee=None), date(2026, 7, 1), date(2026, 7, 3), 1, today=TODAY)
        assert quote.cleaning_fee == Decimal("0.00")
        assert quote.total_amount == Decimal("600.00")

    def test_check_in_today_is_allowed(self):
        quote = validate_and_price(_property(), TODAY, TODAY + timedelta(days=2), 1, today=TODAY)
        assert quote.nights == 2

    @pytest.mark.parametrize("property_type", ["long_term", "maintenance"])
    def test_non_short_term_property_rejected(self, property_type):
        with pytest.raises(InvalidPropertyType):
            validate_and_price(_property(property_type=property_type), date(2026, 7, 1), date(2026, 7, 5), 2, today=TODAY)

    def test_same_day_check_out_rejected(self):
        with pytest.raises(InvalidDateRange):
            validate_and_price(_property(), date(2026, 7, 1), date(2026, 7, 1), 2, today=TODAY)

    def test_reversed_dates_rejected(self):
        with pytest.raises(InvalidDateRange):
            validate_and_price(_property(), date(2026, 7, 5), date(2026, 7, 1), 2, today=TODAY)

    def test_past_check_in_rejected(self):
        with pytest.raises(PastDate):
            validate_and_price(_property(), TODAY - timedelta(days=1), TODAY + timedelta(days=3), 2, today=TODAY)

    def test_too_many_guests_rejected(self):
        with pytest.raises(GuestLimitExceeded) as exc_info:
            validate_and_price(_property(), date(2026, 7, 1), date(2026, 7, 5), 5, today=TODAY)
        assert exc_info.value.context["max_guests"] == 4

    def test_min_stay_rejected(self):
        with pytest.raises(MinStayViolation) as exc_info:
            validate_and_price(_property(), date(2026, 7, 1), date(2026, 7, 2), 2, today=TODAY)
        assert "2 nights" in exc_info.value.message

    def test_max_stay_rejected(self):
        with pytest.raises(MaxStayViolation):
            validate_and_price(_property(max_stay_days=7), date(2026, 7, 1), date(2026, 7, 9), 2, today=TODAY)

    def test_missing_base_price_rejected(self):
        with pytest.raises(MissingPricing):
            validate_and_price(_property(base_price=None), date(2026, 7, 1), date(2026, 7, 5), 2, today=TODAY)

    def test_unset_limits_are_not_enforced(self):
        prop = _property(max_guests=None, min_stay_days=None, max_stay_days=None)
        quote = validate_and_price(prop, date(2026, 7, 1), date(2026, 7, 2), 12, today=TODAY)
        assert quote.nights == 1

    def test_property_type_is_checked_before_dates(self):
        with pytest.raises(InvalidPropertyType):
            validate_and_price(_property(property_type="long_term"), date(2026, 7, 5), date(2026, 7, 1), 9, today=TODAY)


class TestComputeTotals:
    def test_extras_and_discount(self):
        base, total = compute_totals(Decimal("300"), 4, Decimal("150"), Decimal("50"), Decimal("100"))
        assert base == Decimal("1200.00")
        assert total == Decimal("1300.00")

    def test_rounds_half_up_to_cents(self):
        assert to_money("10.005") == Decimal("10.01")
        assert to_money(None) == Decimal("0.00")


class TestOverlap:
    def test_back_to_back_stays_do_not_overlap(self):
        assert not ranges_overlap(date(2026, 7, 1), date(2026, 7, 5), date(2026, 7, 5), date(2026, 7, 8))

    def test_overlap_is_symmetric(self):
        a = (date(2026, 7, 1), date(2026, 7, 5))
        b = (date(2026, 7, 4), date(2026, 7, 8))
        assert ranges_overlap(*a, *b)
        assert ranges_overlap(*b, *a)

    def test_contained_range_overlaps(self):
        assert ranges_overlap(date(2026, 7, 1), date(2026, 7, 10), date(2026, 7, 3), date(2026, 7, 4))

    def test_only_blocking_statuses_conflict(self):
        start = date(2026, 7, 1)
        bookings = [
            _booking(start, 4, status="pending"),
            _booking(start, 4, status="cancelled"),
            _booking(start, 4, status="checked_out"),
            _booking(start, 4, status="no_show"),
        ]
        assert find_overlapping(bookings, start, start + timedelta(days=2)) == []

        confirmed = _booking(start, 4, status="confirmed")
        checked_in = _booking(start, 4, status="checked_in")
        conflicts = find_overlapping([*bookings, confirmed, checked_in], start, start + timedelta(days=2))
        assert conflicts == [confirmed, checked_in]

    def test_excluded_booking_is_ignored(self):
        existing = _booking(date(2026, 7, 1), 4)
        assert find_overlapping([existing], date(2026, 7, 2), date(2026, 7, 6), exclude_booking_id=existing.id) == []


class TestStateMachine:
    @pytest.mark.parametrize(
        "current, action, expected",
        [
            ("pending", "confirm", "confirmed"),
            ("confirmed", "check_in", "checked_in"),
            ("checked_in", "check_out", "checked_out"),
            ("pending", "cancel", "cancelled"),
            ("confirmed", "cancel", "cancelled"),
            ("confirmed", "mark_no_show", "no_show"),
        ],
    )
    def test_allowed_transitions(self, current, action, expected):
        assert next_status(current, action) == expected

    @pytest.mark.parametrize(
        "current, action",
        [
            ("pending", "check_in"),
            ("confirmed", "confirm"),
            ("checked_in", "cancel"),
            ("checked_out", "cancel"),
            ("cancelled", "confirm"),
            ("pending", "mark_no_show"),
            ("no_show", "check_in"),
        ],
    )
    def test_rejected_transitions(self, current, action):
        with pytest.raises(InvalidStateTransition):
            next_status(current, action)

    def test_unknown_action_rejected(self):
        with pytest.raises(InvalidStateTransition):
            next_status("pending", "archive")

    def test_terminal_statuses(self):
        assert is_terminal("checked_out")
        assert is_terminal("cancelled")
        assert is_terminal("no_show")
        assert not is_terminal("confirmed")


class TestPayments:
    def test_payment_status_derivation(self):
        assert derive_payment_status(Decimal("1000"), Decimal("0")) == "unpaid"
        assert derive_payment_status(Decimal("1000"), Decimal("400")) == "partial"
        assert derive_payment_status(Decimal("1000"), Decimal("1000")) == "paid"

    def test_two_payments_settle_the_booking(self):
        booking = _booking(date(2026, 7, 1), 4)

        first = apply_payment(booking, Decimal("400"))
        assert first.payment_status == "partial"
        assert booking.remaining_amount == Decimal("600.00")

        second = apply_payment(booking, Decimal("600"))
        assert second.payment_status == "paid"
        assert booking.paid_amount == Decimal("1000.00")
        assert booking.remaining_amount == Decimal("0.00")

    def test_single_payment_matches_two_step_result(self):
        split = _booking(date(2026, 7, 1), 4)
        apply_payment(split, Decimal("400"))
        apply_payment(split, Decimal("600"))

        whole = _booking(date(2026, 7, 1), 4)
        result = apply_payment(whole, Decimal("1000"))

        assert result.payment_status == "paid"
        assert whole.payment_status == split.payment_status == "paid"
        assert whole.paid_amount == split.paid_amount == Decimal("1000.00")
        assert whole.remaining_amount == split.remaining_amount == Decimal("0.00")

    def test_overpayment_rejected_and_booking_unchanged(self):
        booking = _booking(date(2026, 7, 1), 4, paid_amount=Decimal("900.00"), remaining_amount=Decimal("100.00"))
        with pytest.raises(AmountExceedsTotal) as exc_info:
            apply_payment(booking, Decimal("150"))
        assert exc_info.value.context["remaining_amount"] == "100.00"
        assert booking.paid_amount == Decimal("900.00")

    @pytest.mark.parametrize("amount", [Decimal("0"), Decimal("-10")])
    def test_non_positive_amount_rejected(self, amount):
        with pytest.raises(InvalidAmount):
            apply_payment(_booking(date(2026, 7, 1), 4), amount)

    @pytest.mark.parametrize("status", ["cancelled", "no_show"])
    def test_payment_on_dead_booking_rejected(self, status):
        with pytest.raises(InvalidStateTransition):
            apply_payment(_booking(date(2026, 7, 1), 4, status=status), Decimal("100"))

    def test_recalculate_uses_stored_rates(self):
        booking = _booking(
            date(2026, 7, 1),
            5,
            base_price=Decimal("200.00"),
            cleaning_fee=Decimal("100.00"),
            extra_fees=Decimal("0.00"),
            discount=Decimal("50.00"),
            paid_amount=Decimal("1050.00"),
        )
        recalculate(booking)
        assert booking.number_of_nights == 5
        assert booking.total_amount == Decimal("1050.00")
        assert booking.remaining_amount == Decimal("0.00")
        assert booking.payment_status == "paid"
