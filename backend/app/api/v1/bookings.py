"""Bookings API router.

Visibility follows ``AccessScope``: owners see bookings on their properties,
tenants see their own. Pricing, overlap and status rules live in
``app.services.booking_service``; handlers here only translate HTTP.
"""

from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_scope, require_roles
from app.auth.scope import AccessScope
from app.models.booking import Booking
from app.models.user import User
from app.schemas.booking import (
    BookingCreate,
    BookingListResponse,
    BookingPaymentCreate,
    BookingPaymentResponse,
    BookingResponse,
    BookingStatsResponse,
    BookingUpdate,
    BulkCancelRequest,
    BulkCancelResponse,
    CancelRequest,
)
from app.schemas.payment import PaymentResponse
from app.services import booking_service, persistence, report_service

router = APIRouter(prefix="/api/v1/bookings", tags=["bookings"])

_staff = require_roles("admin", "owner")


@router.post(
    "",
    response_model=BookingResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new booking",
)
async def create_booking(
    body: BookingCreate,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> Booking:
    """Create a ``pending`` booking priced from the property's rates.

    Returns 409 ``DATES_UNAVAILABLE`` when the dates overlap a confirmed or
    checked-in stay, and 400 with a rule code for any other rejection.
    """
    data = body.model_dump()
    if not scope.is_admin:
        data.pop("tenant_id")
    return await booking_service.create_booking(db, scope, data)


@router.get(
    "",
    response_model=BookingListResponse,
    summary="List bookings visible to the current user",
)
async def list_bookings(
    property_id: uuid.UUID | None = Query(None, description="Filter by property"),
    status_filter: str | None = Query(None, alias="status", description="Filter by booking status"),
    payment_status: str | None = Query(None, description="Filter by payment status"),
    check_in_from: date | None = Query(None, description="Bookings with check-in >= this date"),
    check_in_to: date | None = Query(None, description="Bookings with check-in <= this date"),
    search: str | None = Query(None, description="Match guest name, email or phone"),
    skip: int = Query(0, ge=0, description="Pagination offset"),
    limit: int = Query(20, ge=1, le=100, description="Pagination limit"),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> dict:
    items, total = await persistence.list_bookings(
        db,
        scope,
        property_id=property_id,
        status=status_filter,
        payment_status=payment_status,
        check_in_from=check_in_from,
        check_in_to=check_in_to,
        search=search,
        skip=skip,
        limit=limit,
    )
    return {"items": items, "total": total}


@router.get("/stats", response_model=BookingStatsResponse, summary="Booking counts and revenue")
async def booking_stats(
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> BookingStatsResponse:
    return BookingStatsResponse.model_validate(await report_service.booking_stats(db, scope))


@router.post(
    "/bulk/cancel",
    response_model=BulkCancelResponse,
    summary="Cancel several bookings",
    dependencies=[Depends(require_roles("admin"))],
)
async def bulk_cancel(body: BulkCancelRequest, db: AsyncSession = Depends(get_db)) -> BulkCancelResponse:
    """Cancel every listed booking that is still pending or confirmed; report the rest as skipped."""
    result = await booking_service.bulk_cancel(db, body.booking_ids, body.reason)
    return BulkCancelResponse(
        cancelled=result.cancelled,
        skipped=result.skipped,
        cancelled_count=len(result.cancelled),
    )


@router.get("/{booking_id}", response_model=BookingResponse, summary="Get a booking")
async def get_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> Booking:
    return await persistence.get_booking(db, booking_id, scope=scope)


@router.put("/{booking_id}", response_model=BookingResponse, summary="Update a booking")
async def update_booking(
    booking_id: uuid.UUID,
    body: BookingUpdate,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> Booking:
    """Partially update a booking.

    Date changes are re-validated and re-priced with the booking's stored
    rates. Checked-out, cancelled and no-show bookings cannot be edited.
    """
    return await booking_service.update_booking(db, scope, booking_id, body.model_dump(exclude_unset=True))


# ---------------------------------------------------------------------------
# Status actions
# ---------------------------------------------------------------------------


@router.post(
    "/{booking_id}/confirm",
    response_model=BookingResponse,
    summary="Confirm a pending booking",
    dependencies=[Depends(_staff)],
)
async def confirm_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> Booking:
    return await booking_service.transition_booking(db, scope, booking_id, "confirm")


@router.post(
    "/{booking_id}/check-in",
    response_model=BookingResponse,
    summary="Check in a confirmed booking",
    dependencies=[Depends(_staff)],
)
async def check_in_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> Booking:
    return await booking_service.transition_booking(db, scope, booking_id, "check_in")


@router.post(
    "/{booking_id}/check-out",
    response_model=BookingResponse,
    summary="Check out a checked-in booking",
    dependencies=[Depends(_staff)],
)
async def check_out_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> Booking:
    return await booking_service.transition_booking(db, scope, booking_id, "check_out")


@router.post(
    "/{booking_id}/no-show",
    response_model=BookingResponse,
    summary="Mark a confirmed booking as a no-show",
    dependencies=[Depends(_staff)],
)
async def no_show_booking(
    booking_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> Booking:
    return await booking_service.transition_booking(db, scope, booking_id, "mark_no_show")


@router.post("/{booking_id}/cancel", response_model=BookingResponse, summary="Cancel a booking")
async def cancel_booking(
    booking_id: uuid.UUID,
    body: CancelRequest | None = None,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> Booking:
    """Cancel a pending or confirmed booking; the reason is appended to internal notes."""
    reason = body.reason if body is not None else None
    return await booking_service.transition_booking(db, scope, booking_id, "cancel", reason)


# ---------------------------------------------------------------------------
# Payments
# ---------------------------------------------------------------------------


@router.post(
    "/{booking_id}/payments",
    response_model=BookingPaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a guest payment against a booking",
)
async def add_booking_payment(
    booking_id: uuid.UUID,
    body: BookingPaymentCreate,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
    current_user: User = Depends(_staff),
) -> BookingPaymentResponse:
    """Add to the booking's paid amount and write a ``booking_payment`` record.

    Rejects amounts above the remaining balance (``AMOUNT_EXCEEDS_TOTAL``) and
    payments on cancelled or no-show bookings.
    """
    booking, payment = await booking_service.record_booking_payment(
        db,
        scope,
        booking_id,
        body.amount,
        payment_method=body.payment_method,
        payment_date=body.payment_date,
        description=body.description,
        reference_number=body.reference_number,
        created_by_id=current_user.id,
    )
    return BookingPaymentResponse(
        booking=BookingResponse.model_validate(booking),
        payment=PaymentResponse.model_validate(payment),
    )
