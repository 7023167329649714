"""Payments API router: ledger entries, stats and owner balances.

Creating, editing and deleting entries here is an admin bookkeeping action:
it never changes a booking's paid amount. Guest payments that should move a
booking's balance go through ``POST /bookings/{id}/payments``.
"""

import logging
import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_scope, require_roles
from app.auth.scope import AccessScope
from app.models.user import User
from app.schemas.auth import MessageResponse
from app.schemas.payment import (
    OwnerBalanceResponse,
    PaymentCreate,
    PaymentListResponse,
    PaymentResponse,
    PaymentStatsResponse,
    PaymentUpdate,
)
from app.services import persistence, report_service

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/v1/payments", tags=["payments"])


@router.post(
    "",
    response_model=PaymentResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Record a ledger entry",
)
async def create_payment(
    body: PaymentCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles("admin")),
) -> PaymentResponse:
    data = body.model_dump()
    if body.booking_id is not None:
        booking = await persistence.get_booking(db, body.booking_id)
        data["property_id"] = data["property_id"] or booking.property_id
    if data["property_id"] is not None:
        await persistence.get_property(db, data["property_id"])
    data["created_by_id"] = current_user.id

    payment = await persistence.create_payment(db, data)
    return PaymentResponse.model_validate(payment)


@router.get("", response_model=PaymentListResponse, summary="List payments visible to the current user")
async def list_payments(
    payment_type: str | None = Query(None),
    status_filter: str | None = Query(None, alias="status"),
    property_id: uuid.UUID | None = Query(None),
    booking_id: uuid.UUID | None = Query(None),
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> PaymentListResponse:
    items, total = await persistence.list_payments(
        db,
        skip=skip,
        limit=limit,
        scope=scope,
        payment_type=payment_type,
        status=status_filter,
        property_id=property_id,
        booking_id=booking_id,
        start_date=start_date,
        end_date=end_date,
    )
    return PaymentListResponse(items=[PaymentResponse.model_validate(p) for p in items], total=total)


@router.get(
    "/stats",
    response_model=PaymentStatsResponse,
    summary="Totals per payment type",
    dependencies=[Depends(require_roles("admin", "owner"))],
)
async def payment_stats(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    property_id: uuid.UUID | None = Query(None),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> PaymentStatsResponse:
    summary = await report_service.payment_stats(db, scope, start_date, end_date, property_id)
    return PaymentStatsResponse.model_validate(summary)


@router.get(
    "/owner-balance/{owner_id}",
    response_model=OwnerBalanceResponse,
    summary="Net balance between the company and an owner",
    dependencies=[Depends(require_roles("admin", "owner"))],
)
async def owner_balance(
    owner_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> OwnerBalanceResponse:
    """``balance = income + deposits - expenses - commissions``; positive means the company owes the owner."""
    balance = await report_service.owner_balance(db, scope, owner_id)
    return OwnerBalanceResponse(
        owner_id=owner_id,
        income=balance.income,
        deposits=balance.deposits,
        expenses=balance.expenses,
        commissions=balance.commissions,
        balance=balance.balance,
    )


@router.get("/{payment_id}", response_model=PaymentResponse, summary="Get a payment")
async def get_payment(
    payment_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> PaymentResponse:
    return PaymentResponse.model_validate(await persistence.get_payment(db, payment_id, scope=scope))


@router.put(
    "/{payment_id}",
    response_model=PaymentResponse,
    summary="Correct a ledger entry",
    dependencies=[Depends(require_roles("admin"))],
)
async def update_payment(
    payment_id: uuid.UUID,
    body: PaymentUpdate,
    db: AsyncSession = Depends(get_db),
) -> PaymentResponse:
    payment = await persistence.get_payment(db, payment_id)
    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(payment, field, value)
    await db.flush()
    await db.refresh(payment)
    logger.info("Payment %s edited; linked booking %s left unchanged", payment.id, payment.booking_id)
    return PaymentResponse.model_validate(payment)


@router.delete(
    "/{payment_id}",
    response_model=MessageResponse,
    summary="Delete a ledger entry",
    dependencies=[Depends(require_roles("admin"))],
)
async def delete_payment(payment_id: uuid.UUID, db: AsyncSession = Depends(get_db)) -> MessageResponse:
    payment = await persistence.get_payment(db, payment_id)
    booking_id = payment.booking_id
    await db.delete(payment)
    await db.flush()
    logger.info("Payment %s deleted; linked booking %s left unchanged", payment_id, booking_id)
    return MessageResponse(message="Payment deleted")
