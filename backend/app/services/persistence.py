"""Data access for properties, bookings and payments.

Every read goes through an ``AccessScope`` so an out-of-scope row looks
exactly like a missing one. Writers that must not race (booking create,
confirm and date changes; payments against a booking) take a row lock with
``SELECT ... FOR UPDATE`` first. On PostgreSQL the ``ex_bookings_no_overlap``
exclusion constraint is the final guard against double booking.
"""

from __future__ import annotations

import logging
import uuid
from datetime import date, datetime, time, timedelta
from typing import Any

from sqlalchemy import func, or_, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.scope import AccessScope
from app.errors import BookingNotFound, DatesUnavailable, PaymentNotFound, PropertyNotFound
from app.models.booking import Booking
from app.models.payment import Payment
from app.models.property import Property
from app.models.user import User
from app.services.booking_engine import BLOCKING_STATUSES

logger = logging.getLogger(__name__)

OVERLAP_CONSTRAINT = "ex_bookings_no_overlap"


async def _flush(db: AsyncSession, obj: Any) -> None:
    """Flush pending writes, reporting an overlap-constraint hit as ``DatesUnavailable``."""
    try:
        await db.flush()
    except IntegrityError as exc:
        if OVERLAP_CONSTRAINT in str(exc.orig):
            logger.warning("Overlap constraint rejected write for %r", obj)
            raise DatesUnavailable() from exc
        raise
    await db.refresh(obj)


# ---------------------------------------------------------------------------
# Properties
# ---------------------------------------------------------------------------


async def get_property(
    db: AsyncSession,
    property_id: uuid.UUID,
    scope: AccessScope | None = None,
    lock: bool = False,
) -> Property:
    """Fetch one property, optionally locking its row for the rest of the transaction."""
    query = select(Property).where(Property.id == property_id)
    if scope is not None:
        query = scope.properties(query)
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    prop = result.scalar_one_or_none()
    if prop is None:
        raise PropertyNotFound(property_id=str(property_id))
    return prop


async def list_properties(
    db: AsyncSession,
    scope: AccessScope,
    owner_id: uuid.UUID | None = None,
    property_type: str | None = None,
    is_active: bool | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Property], int]:
    query = scope.properties(select(Property))
    if owner_id is not None:
        query = query.where(Property.owner_id == owner_id)
    if property_type is not None:
        query = query.where(Property.property_type == property_type)
    if is_active is not None:
        query = query.where(Property.is_active == is_active)

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(query.order_by(Property.created_at.desc()).offset(skip).limit(limit))
    return list(result.scalars().all()), total


async def find_properties_by_owner(db: AsyncSession, owner_id: uuid.UUID) -> list[Property]:
    result = await db.execute(select(Property).where(Property.owner_id == owner_id).order_by(Property.name))
    return list(result.scalars().all())


# ---------------------------------------------------------------------------
# Bookings
# ---------------------------------------------------------------------------


async def find_bookings_by_property(
    db: AsyncSession,
    property_id: uuid.UUID,
    statuses: frozenset[str] | None = BLOCKING_STATUSES,
    check_in: date | None = None,
    check_out: date | None = None,
) -> list[Booking]:
    """Bookings on a property, narrowed to a status set and a candidate date window.

    The date window is only a prefilter; the exact overlap decision is made by
    ``booking_engine.find_overlapping``.
    """
    query = select(Booking).where(Booking.property_id == property_id)
    if statuses is not None:
        query = query.where(Booking.status.in_(statuses))
    if check_in is not None and check_out is not None:
        query = query.where(Booking.check_in_date < check_out, Booking.check_out_date > check_in)
    result = await db.execute(query.order_by(Booking.check_in_date))
    return list(result.scalars().all())


async def get_booking(
    db: AsyncSession,
    booking_id: uuid.UUID,
    scope: AccessScope | None = None,
    lock: bool = False,
) -> Booking:
    query = select(Booking).where(Booking.id == booking_id)
    if scope is not None:
        query = scope.bookings(query)
    if lock:
        query = query.with_for_update().execution_options(populate_existing=True)
    result = await db.execute(query)
    booking = result.scalar_one_or_none()
    if booking is None:
        raise BookingNotFound(booking_id=str(booking_id))
    return booking


async def list_bookings(
    db: AsyncSession,
    scope: AccessScope,
    property_id: uuid.UUID | None = None,
    status: str | None = None,
    payment_status: str | None = None,
    check_in_from: date | None = None,
    check_in_to: date | None = None,
    search: str | None = None,
    skip: int = 0,
    limit: int = 20,
) -> tuple[list[Booking], int]:
    query = scope.bookings(select(Booking))
    if property_id is not None:
        query = query.where(Booking.property_id == property_id)
    if status is not None:
        query = query.where(Booking.status == status)
    if payment_status is not None:
        query = query.where(Booking.payment_status == payment_status)
    if check_in_from is not None:
        query = query.where(Booking.check_in_date >= check_in_from)
    if check_in_to is not None:
        query = query.where(Booking.check_in_date <= check_in_to)
    if search:
        pattern = f"%{search}%"
        query = query.where(
            or_(
                Booking.guest_name.ilike(pattern),
                Booking.guest_email.ilike(pattern),
                Booking.guest_phone.ilike(pattern),
            )
        )

    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(query.order_by(Booking.check_in_date.desc()).offset(skip).limit(limit))
    return list(result.scalars().all()), total


async def find_bookings(db: AsyncSession, scope: AccessScope | None = None) -> list[Booking]:
    query = select(Booking)
    if scope is not None:
        query = scope.bookings(query)
    result = await db.execute(query)
    return list(result.scalars().all())


async def create_booking(db: AsyncSession, data: dict[str, Any]) -> Booking:
    booking = Booking(**data)
    db.add(booking)
    await _flush(db, booking)
    return booking


async def update_booking(db: AsyncSession, booking: Booking, patch: dict[str, Any]) -> Booking:
    for field, value in patch.items():
        setattr(booking, field, value)
    await _flush(db, booking)
    return booking


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


async def get_payment(db: AsyncSession, payment_id: uuid.UUID, scope: AccessScope | None = None) -> Payment:
    query = select(Payment).where(Payment.id == payment_id)
    if scope is not None:
        query = scope.payments(query)
    payment = (await db.execute(query)).scalar_one_or_none()
    if payment is None:
        raise PaymentNotFound(payment_id=str(payment_id))
    return payment


def _payments_query(
    *,
    scope: AccessScope | None = None,
    owner_id: uuid.UUID | None = None,
    property_id: uuid.UUID | None = None,
    booking_id: uuid.UUID | None = None,
    payment_type: str | None = None,
    status: str | None = None,
    start_date: date | None = None,
    end_date: date | None = None,
):
    query = select(Payment)
    if scope is not None:
        query = scope.payments(query)
    if owner_id is not None:
        owned = select(Property.id).where(Property.owner_id == owner_id)
        query = query.where(
            or_(
                Payment.property_id.in_(owned),
                Payment.payer_id == owner_id,
                Payment.receiver_id == owner_id,
            )
        )
    if property_id is not None:
        query = query.where(Payment.property_id == property_id)
    if booking_id is not None:
        query = query.where(Payment.booking_id == booking_id)
    if payment_type is not None:
        query = query.where(Payment.payment_type == payment_type)
    if status is not None:
        query = query.where(Payment.status == status)
    # Date bounds are inclusive calendar days.
    if start_date is not None:
        query = query.where(Payment.payment_date >= datetime.combine(start_date, time.min))
    if end_date is not None:
        query = query.where(Payment.payment_date < datetime.combine(end_date + timedelta(days=1), time.min))
    return query


async def find_payments(db: AsyncSession, **filters: Any) -> list[Payment]:
    """Payments matching the filters accepted by ``list_payments``, newest first."""
    result = await db.execute(_payments_query(**filters).order_by(Payment.payment_date.desc()))
    return list(result.scalars().all())


async def list_payments(
    db: AsyncSession,
    skip: int = 0,
    limit: int = 20,
    **filters: Any,
) -> tuple[list[Payment], int]:
    query = _payments_query(**filters)
    total = (await db.execute(select(func.count()).select_from(query.subquery()))).scalar_one()
    result = await db.execute(query.order_by(Payment.payment_date.desc()).offset(skip).limit(limit))
    return list(result.scalars().all()), total


async def create_payment(db: AsyncSession, data: dict[str, Any]) -> Payment:
    if data.get("payment_date") is None:
        data["payment_date"] = datetime.now()
    payment = Payment(**data)
    db.add(payment)
    await _flush(db, payment)
    logger.info(
        "Recorded %s payment %s of %s (booking=%s)",
        payment.payment_type,
        payment.id,
        payment.amount,
        payment.booking_id,
    )
    return payment


# ---------------------------------------------------------------------------
# Users
# ---------------------------------------------------------------------------


async def get_user(db: AsyncSession, user_id: uuid.UUID) -> User | None:
    return (await db.execute(select(User).where(User.id == user_id))).scalar_one_or_none()


async def find_users(db: AsyncSession) -> list[User]:
    return list((await db.execute(select(User))).scalars().all())


async def find_properties(db: AsyncSession) -> list[Property]:
    return list((await db.execute(select(Property))).scalars().all())
