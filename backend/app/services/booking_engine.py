"""Booking rules: stay validation, pricing, overlap and the status state machine.

Everything here is a pure function of its arguments. Callers fetch the
current property and bookings, run these rules, and only then write, so a
rejected request never leaves a partial update behind.
"""

from __future__ import annotations

import math
import uuid
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

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

CENTS = Decimal("0.01")

# Only these statuses occupy the calendar.
BLOCKING_STATUSES = frozenset({"confirmed", "checked_in"})
TERMINAL_STATUSES = frozenset({"checked_out", "cancelled", "no_show"})

# action -> (statuses it may start from, resulting status)
TRANSITIONS: dict[str, tuple[frozenset[str], str]] = {
    "confirm": (frozenset({"pending"}), "confirmed"),
    "check_in": (frozenset({"confirmed"}), "checked_in"),
    "check_out": (frozenset({"checked_in"}), "checked_out"),
    "cancel": (frozenset({"pending", "confirmed"}), "cancelled"),
    "mark_no_show": (frozenset({"confirmed"}), "no_show"),
}


@dataclass(frozen=True)
class BookingQuote:
    """Result of pricing a stay against a property's rules."""

    nights: int
    base_price: Decimal
    cleaning_fee: Decimal
    total_base_amount: Decimal
    total_amount: Decimal


@dataclass(frozen=True)
class PaymentState:
    """Derived payment fields of a booking."""

    paid_amount: Decimal
    remaining_amount: Decimal
    payment_status: str


def to_money(value: Any) -> Decimal:
    """Coerce a numeric value (or ``None``) to a cent-quantized Decimal."""
    if value is None:
        return Decimal("0.00")
    return Decimal(str(value)).quantize(CENTS, rounding=ROUND_HALF_UP)


def count_nights(check_in: date, check_out: date) -> int:
    return math.ceil((check_out - check_in).days)


# ---------------------------------------------------------------------------
# Validation and pricing
# ---------------------------------------------------------------------------


def validate_and_price(
    prop: Any,
    check_in: date,
    check_out: date,
    number_of_guests: int,
    today: date | None = None,
) -> BookingQuote:
    """Validate a requested stay and compute its price.

    Raises the first violated rule, checked in this order: property type,
    date range, past check-in, guest count, minimum stay, maximum stay,
    missing nightly price.
    """
    if prop.property_type != "short_term":
        raise InvalidPropertyType(property_type=prop.property_type)

    if check_out <= check_in:
        raise InvalidDateRange()

    today = today or date.today()
    if check_in < today:
        raise PastDate()

    nights = count_nights(check_in, check_out)

    if prop.max_guests and number_of_guests > prop.max_guests:
        raise GuestLimitExceeded(
            f"Maximum number of guests for this property is {prop.max_guests}",
            max_guests=prop.max_guests,
        )
    if prop.min_stay_days and nights < prop.min_stay_days:
        raise MinStayViolation(
            f"Minimum stay for this property is {prop.min_stay_days} nights",
            min_stay_days=prop.min_stay_days,
        )
    if prop.max_stay_days and nights > prop.max_stay_days:
        raise MaxStayViolation(
            f"Maximum stay for this property is {prop.max_stay_days} nights",
            max_stay_days=prop.max_stay_days,
        )

    if prop.base_price is None:
        raise MissingPricing()

    base_price = to_money(prop.base_price)
    cleaning_fee = to_money(prop.cleaning_fee)
    total_base_amount, total_amount = compute_totals(base_price, nights, cleaning_fee)
    return BookingQuote(
        nights=nights,
        base_price=base_price,
        cleaning_fee=cleaning_fee,
        total_base_amount=total_base_amount,
        total_amount=total_amount,
    )


def compute_totals(
    base_price: Any,
    nights: int,
    cleaning_fee: Any = None,
    extra_fees: Any = None,
    discount: Any = None,
) -> tuple[Decimal, Decimal]:
    """Return ``(total_base_amount, total_amount)`` for a stay."""
    total_base_amount = to_money(base_price) * nights
    total_amount = total_base_amount + to_money(cleaning_fee) + to_money(extra_fees) - to_money(discount)
    return total_base_amount, total_amount


# ---------------------------------------------------------------------------
# Overlap
# ---------------------------------------------------------------------------


def ranges_overlap(a_in: date, a_out: date, b_in: date, b_out: date) -> bool:
    """Half-open overlap: a check-out on day X never conflicts with a check-in on day X."""
    return a_in < b_out and b_in < a_out


def find_overlapping(
    bookings: Iterable[Any],
    check_in: date,
    check_out: date,
    exclude_booking_id: uuid.UUID | None = None,
) -> list[Any]:
    """Return the blocking bookings whose stay overlaps ``[check_in, check_out)``."""
    return [
        b
        for b in bookings
        if b.status in BLOCKING_STATUSES
        and (exclude_booking_id is None or b.id != exclude_booking_id)
        and ranges_overlap(b.check_in_date, b.check_out_date, check_in, check_out)
    ]


# ---------------------------------------------------------------------------
# Status state machine
# ---------------------------------------------------------------------------


def next_status(current: str, action: str) -> str:
    """Return the status reached by applying ``action`` to ``current``."""
    try:
        allowed_from, target = TRANSITIONS[action]
    except KeyError:
        raise InvalidStateTransition(f"Unknown booking action {action!r}") from None
    if current not in allowed_from:
        raise InvalidStateTransition(
            f"Cannot {action.replace('_', ' ')} a booking that is {current}",
            status=current,
            action=action,
        )
    return target


def is_terminal(status: str) -> bool:
    return status in TERMINAL_STATUSES


# ---------------------------------------------------------------------------
# Derived payment fields
# ---------------------------------------------------------------------------


def derive_payment_status(total_amount: Any, paid_amount: Any) -> str:
    paid = to_money(paid_amount)
    if paid == 0:
        return "unpaid"
    if paid >= to_money(total_amount):
        return "paid"
    return "partial"


def derive_payment_state(total_amount: Any, paid_amount: Any) -> PaymentState:
    paid = to_money(paid_amount)
    return PaymentState(
        paid_amount=paid,
        remaining_amount=to_money(total_amount) - paid,
        payment_status=derive_payment_status(total_amount, paid),
    )


def recalculate(booking: Any) -> Any:
    """Recompute every derived money field of ``booking`` in place.

    Uses the booking's own stored rates, so later changes to the property's
    prices never reprice an existing stay.
    """
    booking.number_of_nights = count_nights(booking.check_in_date, booking.check_out_date)
    booking.total_base_amount, booking.total_amount = compute_totals(
        booking.base_price,
        booking.number_of_nights,
        booking.cleaning_fee,
        booking.extra_fees,
        booking.discount,
    )
    state = derive_payment_state(booking.total_amount, booking.paid_amount)
    booking.paid_amount = state.paid_amount
    booking.remaining_amount = state.remaining_amount
    booking.payment_status = state.payment_status
    return booking


def apply_payment(booking: Any, amount: Any) -> PaymentState:
    """Add ``amount`` to the booking's paid amount and refresh the derived fields."""
    amount = to_money(amount)
    if amount <= 0:
        raise InvalidAmount()
    if booking.status in ("cancelled", "no_show"):
        raise InvalidStateTransition(
            f"Cannot add a payment to a booking that is {booking.status}",
            status=booking.status,
        )
    paid = to_money(booking.paid_amount)
    if paid + amount > to_money(booking.total_amount):
        raise AmountExceedsTotal(remaining_amount=str(to_money(booking.total_amount) - paid))

    state = derive_payment_state(booking.total_amount, paid + amount)
    booking.paid_amount = state.paid_amount
    booking.remaining_amount = state.remaining_amount
    booking.payment_status = state.payment_status
    return state
