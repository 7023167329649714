"""Pydantic v2 request/response schemas for booking endpoints.

Date ordering is deliberately not validated here: the booking engine owns
that rule and reports it with the ``INVALID_DATES`` code.
"""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

from app.schemas.payment import PaymentResponse

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class BookingCreate(BaseModel):
    """Schema for creating a new booking. Prices are computed, never supplied."""

    property_id: uuid.UUID
    tenant_id: uuid.UUID | None = None
    guest_name: str = Field(..., min_length=1, max_length=255)
    guest_phone: str = Field(..., min_length=1, max_length=50)
    guest_email: str | None = Field(None, max_length=255)
    number_of_guests: int = Field(1, ge=1)
    check_in_date: date
    check_out_date: date
    booking_source: str | None = Field("direct", max_length=100)
    external_booking_id: str | None = Field(None, max_length=255)
    special_requests: str | None = None
    guest_notes: str | None = None
    internal_notes: str | None = None


class BookingUpdate(BaseModel):
    """Schema for partially updating a booking. Status changes use the action endpoints."""

    guest_name: str | None = Field(None, min_length=1, max_length=255)
    guest_phone: str | None = Field(None, min_length=1, max_length=50)
    guest_email: str | None = Field(None, max_length=255)
    number_of_guests: int | None = Field(None, ge=1)
    check_in_date: date | None = None
    check_out_date: date | None = None
    extra_fees: Decimal | None = Field(None, ge=0)
    discount: Decimal | None = Field(None, ge=0)
    booking_source: str | None = Field(None, max_length=100)
    external_booking_id: str | None = Field(None, max_length=255)
    special_requests: str | None = None
    guest_notes: str | None = None
    internal_notes: str | None = None

    @model_validator(mode="after")
    def check_required_not_null(self) -> "BookingUpdate":
        required = {"guest_name", "guest_phone", "number_of_guests", "check_in_date", "check_out_date",
                    "extra_fees", "discount"}
        nulls = sorted(f for f in required & self.model_fields_set if getattr(self, f) is None)
        if nulls:
            raise ValueError(f"{', '.join(nulls)} cannot be null")
        return self


class CancelRequest(BaseModel):
    reason: str | None = Field(None, max_length=1000)


class BulkCancelRequest(BaseModel):
    booking_ids: list[uuid.UUID] = Field(..., min_length=1)
    reason: str | None = Field(None, max_length=1000)


class BookingPaymentCreate(BaseModel):
    """A guest payment recorded against a booking."""

    amount: Decimal = Field(..., gt=0, decimal_places=2)
    payment_method: str = Field("cash", pattern="^(cash|bank_transfer|credit_card|check|bit|paypal|other)$")
    payment_date: datetime | None = None
    description: str | None = None
    reference_number: str | None = Field(None, max_length=255)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class BookingResponse(BaseModel):
    """Booking with its derived money fields."""

    id: uuid.UUID
    property_id: uuid.UUID
    tenant_id: uuid.UUID | None = None
    guest_name: str
    guest_email: str | None = None
    guest_phone: str
    number_of_guests: int
    check_in_date: date
    check_out_date: date
    number_of_nights: int
    actual_check_in: datetime | None = None
    actual_check_out: datetime | None = None
    base_price: Decimal
    total_base_amount: Decimal
    cleaning_fee: Decimal
    extra_fees: Decimal
    discount: Decimal
    total_amount: Decimal
    paid_amount: Decimal
    remaining_amount: Decimal
    status: str
    payment_status: str
    booking_source: str | None = None
    external_booking_id: str | None = None
    special_requests: str | None = None
    guest_notes: str | None = None
    internal_notes: str | None = None
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class BookingListResponse(BaseModel):
    """Paginated list of bookings."""

    items: list[BookingResponse]
    total: int


class BookingPaymentResponse(BaseModel):
    booking: BookingResponse
    payment: PaymentResponse


class BulkCancelResponse(BaseModel):
    cancelled: list[uuid.UUID]
    skipped: list[uuid.UUID]
    cancelled_count: int


class MonthlyBookingsResponse(BaseModel):
    month: str
    bookings: int
    revenue: Decimal

    model_config = ConfigDict(from_attributes=True)


class BookingStatsResponse(BaseModel):
    total_bookings: int
    by_status: dict[str, int]
    by_payment_status: dict[str, int]
    upcoming_bookings: int
    total_revenue: Decimal
    collected_revenue: Decimal
    pending_revenue: Decimal
    average_booking_value: Decimal
    monthly: list[MonthlyBookingsResponse]

    model_config = ConfigDict(from_attributes=True)
