"""Booking orchestration: read current state, apply the booking rules, then write.

Each function runs inside the request transaction opened by ``get_db``. Any
``DomainError`` raised here propagates before the session commits, so a
rejected request never leaves a partial write behind.
"""

import logging
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Any

from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.scope import AccessScope
from app.errors import (
    AmountExceedsTotal,
    BookingNotEditable,
    BookingNotFound,
    DatesUnavailable,
    GuestLimitExceeded,
    InvalidAmount,
    PropertyNotFound,
)
from app.models.booking import Booking
from app.models.payment import Payment
from app.models.property import Property
from app.services import booking_engine, persistence

logger = logging.getLogger(__name__)

# Fields a tenant may change on their own booking.
TENANT_EDITABLE_FIELDS = frozenset(
    {"guest_name", "guest_email", "guest_phone", "number_of_guests", "check_in_date", "check_out_date",
     "special_requests", "guest_notes"}
)
MONEY_FIELDS = frozenset({"extra_fees", "discount"})


@dataclass(frozen=True)
class Availability:
    available: bool
    conflicts: list[Booking]


@dataclass(frozen=True)
class BulkCancelResult:
    cancelled: list[uuid.UUID]
    skipped: list[uuid.UUID]


async def _ensure_free(
    db: AsyncSession,
    property_id: uuid.UUID,
    check_in: date,
    check_out: date,
    exclude_booking_id: uuid.UUID | None = None,
) -> None:
    candidates = await persistence.find_bookings_by_property(db, property_id, check_in=check_in, check_out=check_out)
    conflicts = booking_engine.find_overlapping(candidates, check_in, check_out, exclude_booking_id)
    if conflicts:
        logger.warning(
            "Rejected %s..%s on property %s: overlaps %s",
            check_in,
            check_out,
            property_id,
            [str(b.id) for b in conflicts],
        )
        raise DatesUnavailable(conflicting_booking_ids=[str(b.id) for b in conflicts])


async def _bookable_property(
    db: AsyncSession, scope: AccessScope, property_id: uuid.UUID, lock: bool = False
) -> Property:
    """Owners book on their own properties; tenants on any active one."""
    prop = await persistence.get_property(
        db, property_id, scope=None if scope.is_tenant else scope, lock=lock
    )
    if scope.is_tenant and not prop.is_active:
        raise PropertyNotFound(property_id=str(property_id))
    return prop


# ---------------------------------------------------------------------------
# Quotes and availability
# ---------------------------------------------------------------------------


async def check_availability(
    db: AsyncSession,
    scope: AccessScope,
    property_id: uuid.UUID,
    check_in: date,
    check_out: date,
) -> Availability:
    prop = await _bookable_property(db, scope, property_id)
    candidates = await persistence.find_bookings_by_property(db, prop.id, check_in=check_in, check_out=check_out)
    conflicts = booking_engine.find_overlapping(candidates, check_in, check_out)
    return Availability(available=not conflicts, conflicts=conflicts)


async def quote_booking(
    db: AsyncSession,
    scope: AccessScope,
    property_id: uuid.UUID,
    check_in: date,
    check_out: date,
    number_of_guests: int,
) -> tuple[booking_engine.BookingQuote, Availability]:
    """Price a stay without writing anything."""
    prop = await _bookable_property(db, scope, property_id)
    quote = booking_engine.validate_and_price(prop, check_in, check_out, number_of_guests)
    availability = await check_availability(db, scope, property_id, check_in, check_out)
    return quote, availability


# ---------------------------------------------------------------------------
# Create / update
# ---------------------------------------------------------------------------


async def create_booking(db: AsyncSession, scope: AccessScope, data: dict[str, Any]) -> Booking:
    """Validate, price and insert a new ``pending`` booking.

    The property row is locked before the overlap check so concurrent
    requests for the same property run one after the other.
    """
    prop = await _bookable_property(db, scope, data["property_id"], lock=True)
    quote = booking_engine.validate_and_price(
        prop, data["check_in_date"], data["check_out_date"], data["number_of_guests"]
    )
    await _ensure_free(db, prop.id, data["check_in_date"], data["check_out_date"])

    values = dict(data)
    if scope.is_tenant:
        values["tenant_id"] = scope.user_id
    values.update(
        number_of_nights=quote.nights,
        base_price=quote.base_price,
        cleaning_fee=quote.cleaning_fee,
        extra_fees=Decimal("0.00"),
        discount=Decimal("0.00"),
        total_base_amount=quote.total_base_amount,
        total_amount=quote.total_amount,
        paid_amount=Decimal("0.00"),
        remaining_amount=quote.total_amount,
        status="pending",
        payment_status="unpaid",
    )
    booking = await persistence.create_booking(db, values)
    logger.info(
        "Created booking %s on property %s for %s..%s, total %s",
        booking.id,
        prop.id,
        booking.check_in_date,
        booking.check_out_date,
        booking.total_amount,
    )
    return booking


async def update_booking(
    db: AsyncSession,
    scope: AccessScope,
    booking_id: uuid.UUID,
    patch: dict[str, Any],
) -> Booking:
    """Apply a partial update and recompute the derived money fields.

    New dates are validated like a new request and re-priced with the
    booking's own stored rates. A stay that has already started keeps its
    check-in date, so only that case skips the past-date rule.
    """
    if scope.is_tenant:
        patch = {k: v for k, v in patch.items() if k in TENANT_EDITABLE_FIELDS}

    booking = await persistence.get_booking(db, booking_id, scope=scope, lock=True)
    if booking_engine.is_terminal(booking.status):
        raise BookingNotEditable(status=booking.status)

    check_in = patch.get("check_in_date", booking.check_in_date)
    check_out = patch.get("check_out_date", booking.check_out_date)
    guests = patch.get("number_of_guests", booking.number_of_guests)
    dates_changed = check_in != booking.check_in_date or check_out != booking.check_out_date

    if dates_changed:
        prop = await persistence.get_property(db, booking.property_id, lock=True)
        today = date.today()
        if check_in == booking.check_in_date:
            today = min(today, check_in)
        booking_engine.validate_and_price(prop, check_in, check_out, guests, today=today)
        await _ensure_free(db, prop.id, check_in, check_out, exclude_booking_id=booking.id)
    elif guests != booking.number_of_guests:
        max_guests = booking.property.max_guests
        if max_guests and guests > max_guests:
            raise GuestLimitExceeded(
                f"Maximum number of guests for this property is {max_guests}",
                max_guests=max_guests,
            )

    reprice = dates_changed or bool(MONEY_FIELDS & patch.keys())
    if reprice:
        for field in MONEY_FIELDS & patch.keys():
            patch[field] = booking_engine.to_money(patch[field])
        _, total = booking_engine.compute_totals(
            booking.base_price,
            booking_engine.count_nights(check_in, check_out),
            booking.cleaning_fee,
            patch.get("extra_fees", booking.extra_fees),
            patch.get("discount", booking.discount),
        )
        if total < 0:
            raise InvalidAmount("Discount exceeds the booking total")
        if booking_engine.to_money(booking.paid_amount) > total:
            raise AmountExceedsTotal(
                "Booking total would drop below the amount already paid",
                paid_amount=str(booking.paid_amount),
            )

    for field, value in patch.items():
        setattr(booking, field, value)
    if reprice:
        booking_engine.recalculate(booking)

    booking = await persistence.update_booking(db, booking, {})
    logger.info("Updated booking %s: %s", booking.id, sorted(patch))
    return booking


# ---------------------------------------------------------------------------
# Status transitions
# ---------------------------------------------------------------------------


async def transition_booking(
    db: AsyncSession,
    scope: AccessScope,
    booking_id: uuid.UUID,
    action: str,
    reason: str | None = None,
) -> Booking:
    """Move a booking through the status state machine.

    Confirming makes the booking block the calendar, so it re-checks
    overlap under the property lock first.
    """
    booking = await persistence.get_booking(db, booking_id, scope=scope, lock=True)
    previous = booking.status
    target = booking_engine.next_status(previous, action)

    patch: dict[str, Any] = {"status": target}
    if action == "confirm":
        await persistence.get_property(db, booking.property_id, lock=True)
        await _ensure_free(
            db, booking.property_id, booking.check_in_date, booking.check_out_date, exclude_booking_id=booking.id
        )
    elif action == "check_in":
        patch["actual_check_in"] = datetime.now()
    elif action == "check_out":
        patch["actual_check_out"] = datetime.now()
    elif action == "cancel" and reason:
        note = f"Cancelled: {reason}"
        patch["internal_notes"] = f"{booking.internal_notes}\n{note}" if booking.internal_notes else note

    booking = await persistence.update_booking(db, booking, patch)
    logger.info("Booking %s %s -> %s", booking.id, previous, target)
    return booking


async def bulk_cancel(db: AsyncSession, booking_ids: list[uuid.UUID], reason: str | None = None) -> BulkCancelResult:
    """Cancel every listed booking the state machine allows; skip the rest."""
    cancelled: list[uuid.UUID] = []
    skipped: list[uuid.UUID] = []
    admin = AccessScope(role="admin", user_id=uuid.UUID(int=0))
    for booking_id in dict.fromkeys(booking_ids):
        try:
            booking = await persistence.get_booking(db, booking_id, lock=True)
        except BookingNotFound:
            skipped.append(booking_id)
            continue
        if booking.status not in booking_engine.TRANSITIONS["cancel"][0]:
            skipped.append(booking_id)
            continue
        await transition_booking(db, admin, booking_id, "cancel", reason)
        cancelled.append(booking_id)
    logger.info("Bulk cancel: %d cancelled, %d skipped", len(cancelled), len(skipped))
    return BulkCancelResult(cancelled=cancelled, skipped=skipped)


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


async def record_booking_payment(
    db: AsyncSession,
    scope: AccessScope,
    booking_id: uuid.UUID,
    amount: Decimal,
    payment_method: str = "cash",
    payment_date: datetime | None = None,
    description: str | None = None,
    reference_number: str | None = None,
    created_by_id: uuid.UUID | None = None,
) -> tuple[Booking, Payment]:
    """Add a guest payment to a booking and write the matching ledger record.

    The booking row stays locked from read to write, so concurrent payments
    against one booking are applied one after the other.
    """
    booking = await persistence.get_booking(db, booking_id, scope=scope, lock=True)
    owner_id = booking.property.owner_id
    state = booking_engine.apply_payment(booking, amount)
    booking = await persistence.update_booking(db, booking, {})

    payment = await persistence.create_payment(
        db,
        {
            "amount": booking_engine.to_money(amount),
            "payment_date": payment_date,
            "payment_method": payment_method,
            "payment_type": "booking_payment",
            "status": "completed",
            "booking_id": booking.id,
            "property_id": booking.property_id,
            "payer_id": booking.tenant_id,
            "receiver_id": owner_id,
            "created_by_id": created_by_id,
            "description": description or f"Payment for booking {booking.id}",
            "reference_number": reference_number,
        },
    )
    logger.info(
        "Booking %s paid %s of %s (%s)",
        booking.id,
        state.paid_amount,
        booking.total_amount,
        state.payment_status,
    )
    return booking, payment
