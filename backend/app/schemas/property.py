"""Pydantic v2 request/response schemas for property endpoints."""

import uuid
from datetime import date, datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

PROPERTY_TYPE_PATTERN = "^(maintenance|short_term|long_term)$"

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PropertyCreate(BaseModel):
    """Schema for creating a new property.

    ``owner_id`` is honoured for admins only; owners always create their own.
    """

    owner_id: uuid.UUID | None = None
    name: str = Field(..., min_length=1, max_length=255)
    address: str | None = Field(None, max_length=500)
    description: str | None = None
    property_type: str = Field(..., pattern=PROPERTY_TYPE_PATTERN)
    base_price: Decimal | None = Field(None, ge=0)
    cleaning_fee: Decimal | None = Field(None, ge=0)
    security_deposit: Decimal | None = Field(None, ge=0)
    max_guests: int | None = Field(None, ge=1)
    min_stay_days: int | None = Field(None, ge=1)
    max_stay_days: int | None = Field(None, ge=1)
    monthly_rent: Decimal | None = Field(None, ge=0)
    is_active: bool = True

    @model_validator(mode="after")
    def check_stay_limits(self) -> "PropertyCreate":
        if self.min_stay_days and self.max_stay_days and self.min_stay_days > self.max_stay_days:
            raise ValueError("min_stay_days cannot exceed max_stay_days")
        return self


class PropertyUpdate(BaseModel):
    """Schema for partially updating a property. All fields optional."""

    name: str | None = Field(None, min_length=1, max_length=255)
    address: str | None = Field(None, max_length=500)
    description: str | None = None
    property_type: str | None = Field(None, pattern=PROPERTY_TYPE_PATTERN)
    base_price: Decimal | None = Field(None, ge=0)
    cleaning_fee: Decimal | None = Field(None, ge=0)
    security_deposit: Decimal | None = Field(None, ge=0)
    max_guests: int | None = Field(None, ge=1)
    min_stay_days: int | None = Field(None, ge=1)
    max_stay_days: int | None = Field(None, ge=1)
    monthly_rent: Decimal | None = Field(None, ge=0)
    is_active: bool | None = None

    @model_validator(mode="after")
    def check_required_not_null(self) -> "PropertyUpdate":
        required = {"name", "property_type", "is_active"}
        nulls = sorted(f for f in required & self.model_fields_set if getattr(self, f) is None)
        if nulls:
            raise ValueError(f"{', '.join(nulls)} cannot be null")
        return self


class QuoteRequest(BaseModel):
    check_in_date: date
    check_out_date: date
    number_of_guests: int = Field(1, ge=1)


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PropertyResponse(BaseModel):
    """Property information returned from the API."""

    id: uuid.UUID
    owner_id: uuid.UUID
    name: str
    address: str | None = None
    description: str | None = None
    property_type: str
    base_price: Decimal | None = None
    cleaning_fee: Decimal | None = None
    security_deposit: Decimal | None = None
    max_guests: int | None = None
    min_stay_days: int | None = None
    max_stay_days: int | None = None
    monthly_rent: Decimal | None = None
    is_active: bool
    created_at: datetime
    updated_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PropertyListResponse(BaseModel):
    """Paginated list of properties."""

    items: list[PropertyResponse]
    total: int


class ConflictingBooking(BaseModel):
    id: uuid.UUID
    check_in_date: date
    check_out_date: date
    status: str

    model_config = ConfigDict(from_attributes=True)


class AvailabilityResponse(BaseModel):
    property_id: uuid.UUID
    check_in_date: date
    check_out_date: date
    available: bool
    conflicts: list[ConflictingBooking]


class QuoteResponse(BaseModel):
    """Price of a requested stay, plus whether the dates are currently free."""

    property_id: uuid.UUID
    check_in_date: date
    check_out_date: date
    nights: int
    base_price: Decimal
    cleaning_fee: Decimal
    total_base_amount: Decimal
    total_amount: Decimal
    available: bool
