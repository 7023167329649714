"""Properties API routes: scoped by role, plus availability and quotes."""

import uuid
from datetime import date

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_scope, require_roles
from app.auth.scope import AccessScope
from app.errors import OwnerNotFound
from app.models.property import Property
from app.models.user import User
from app.schemas.auth import MessageResponse
from app.schemas.property import (
    AvailabilityResponse,
    ConflictingBooking,
    PropertyCreate,
    PropertyListResponse,
    PropertyResponse,
    PropertyUpdate,
    QuoteRequest,
    QuoteResponse,
)
from app.services import booking_service, persistence

router = APIRouter(prefix="/api/v1/properties", tags=["properties"])


@router.post(
    "",
    response_model=PropertyResponse,
    status_code=status.HTTP_201_CREATED,
    summary="Create a new property",
)
async def create_property(
    body: PropertyCreate,
    db: AsyncSession = Depends(get_db),
    current_user: User = Depends(require_roles("admin", "owner")),
) -> PropertyResponse:
    """Create a property. Admins may assign any owner; owners create their own."""
    data = body.model_dump(exclude={"owner_id"})
    owner_id = current_user.id
    if current_user.role == "admin" and body.owner_id is not None:
        owner = await persistence.get_user(db, body.owner_id)
        if owner is None or owner.role not in ("owner", "admin"):
            raise OwnerNotFound(owner_id=str(body.owner_id))
        owner_id = owner.id

    prop = Property(owner_id=owner_id, **data)
    db.add(prop)
    await db.flush()
    await db.refresh(prop)
    return PropertyResponse.model_validate(prop)


@router.get(
    "",
    response_model=PropertyListResponse,
    summary="List properties visible to the current user",
)
async def list_properties(
    owner_id: uuid.UUID | None = Query(None),
    property_type: str | None = Query(None),
    is_active: bool | None = Query(None),
    skip: int = Query(0, ge=0),
    limit: int = Query(20, ge=1, le=100),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> PropertyListResponse:
    items, total = await persistence.list_properties(
        db, scope, owner_id=owner_id, property_type=property_type, is_active=is_active, skip=skip, limit=limit
    )
    return PropertyListResponse(
        items=[PropertyResponse.model_validate(p) for p in items],
        total=total,
    )


@router.get(
    "/{property_id}",
    response_model=PropertyResponse,
    summary="Get a property by ID",
)
async def get_property(
    property_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> PropertyResponse:
    """Retrieve a single property. Returns 404 if not found or out of scope."""
    prop = await persistence.get_property(db, property_id, scope=scope)
    return PropertyResponse.model_validate(prop)


@router.put(
    "/{property_id}",
    response_model=PropertyResponse,
    summary="Update a property",
    dependencies=[Depends(require_roles("admin", "owner"))],
)
async def update_property(
    property_id: uuid.UUID,
    body: PropertyUpdate,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> PropertyResponse:
    """Partially update a property. Existing bookings keep the rates they were priced with."""
    prop = await persistence.get_property(db, property_id, scope=scope)

    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(prop, field, value)

    await db.flush()
    await db.refresh(prop)
    return PropertyResponse.model_validate(prop)


@router.delete(
    "/{property_id}",
    response_model=MessageResponse,
    summary="Delete a property",
    dependencies=[Depends(require_roles("admin", "owner"))],
)
async def delete_property(
    property_id: uuid.UUID,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> MessageResponse:
    """Delete a property and cascade-delete its bookings."""
    prop = await persistence.get_property(db, property_id, scope=scope)
    await db.delete(prop)
    await db.flush()
    return MessageResponse(message="Property deleted")


@router.get(
    "/{property_id}/availability",
    response_model=AvailabilityResponse,
    summary="Check whether a date range is free",
)
async def get_availability(
    property_id: uuid.UUID,
    check_in: date = Query(...),
    check_out: date = Query(...),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> AvailabilityResponse:
    availability = await booking_service.check_availability(db, scope, property_id, check_in, check_out)
    return AvailabilityResponse(
        property_id=property_id,
        check_in_date=check_in,
        check_out_date=check_out,
        available=availability.available,
        conflicts=[ConflictingBooking.model_validate(b) for b in availability.conflicts],
    )


@router.post(
    "/{property_id}/quote",
    response_model=QuoteResponse,
    summary="Price a stay without booking it",
)
async def quote_stay(
    property_id: uuid.UUID,
    body: QuoteRequest,
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> QuoteResponse:
    quote, availability = await booking_service.quote_booking(
        db, scope, property_id, body.check_in_date, body.check_out_date, body.number_of_guests
    )
    return QuoteResponse(
        property_id=property_id,
        check_in_date=body.check_in_date,
        check_out_date=body.check_out_date,
        nights=quote.nights,
        base_price=quote.base_price,
        cleaning_fee=quote.cleaning_fee,
        total_base_amount=quote.total_base_amount,
        total_amount=quote.total_amount,
        available=availability.available,
    )
