"""Pydantic v2 request/response schemas for payment endpoints."""

import uuid
from datetime import datetime
from decimal import Decimal

from pydantic import BaseModel, ConfigDict, Field, model_validator

PAYMENT_TYPE_PATTERN = "^(booking_payment|owner_deposit|expense_payment|refund|commission|other)$"
PAYMENT_STATUS_PATTERN = "^(pending|completed|failed|cancelled|refunded)$"
PAYMENT_METHOD_PATTERN = "^(cash|bank_transfer|credit_card|check|bit|paypal|other)$"

# ---------------------------------------------------------------------------
# Request schemas
# ---------------------------------------------------------------------------


class PaymentCreate(BaseModel):
    """A ledger entry entered by an admin.

    Guest payments against a booking go through
    ``POST /bookings/{id}/payments`` so the booking's paid amount follows.
    """

    amount: Decimal = Field(..., gt=0, decimal_places=2)
    payment_type: str = Field(..., pattern=PAYMENT_TYPE_PATTERN)
    payment_method: str = Field("cash", pattern=PAYMENT_METHOD_PATTERN)
    status: str = Field("completed", pattern=PAYMENT_STATUS_PATTERN)
    payment_date: datetime | None = None
    booking_id: uuid.UUID | None = None
    property_id: uuid.UUID | None = None
    payer_id: uuid.UUID | None = None
    receiver_id: uuid.UUID | None = None
    description: str | None = None
    reference_number: str | None = Field(None, max_length=255)
    category: str | None = Field(None, max_length=100)
    is_for_renovation: bool = False
    is_commission: bool = False
    commission_rate: Decimal | None = Field(None, ge=0, le=100)
    vat_amount: Decimal | None = Field(None, ge=0)
    internal_notes: str | None = None


class PaymentUpdate(BaseModel):
    """Raw admin correction; never touches the linked booking."""

    amount: Decimal | None = Field(None, gt=0, decimal_places=2)
    payment_type: str | None = Field(None, pattern=PAYMENT_TYPE_PATTERN)
    payment_method: str | None = Field(None, pattern=PAYMENT_METHOD_PATTERN)
    status: str | None = Field(None, pattern=PAYMENT_STATUS_PATTERN)
    payment_date: datetime | None = None
    description: str | None = None
    reference_number: str | None = Field(None, max_length=255)
    category: str | None = Field(None, max_length=100)
    is_for_renovation: bool | None = None
    is_commission: bool | None = None
    commission_rate: Decimal | None = Field(None, ge=0, le=100)
    vat_amount: Decimal | None = Field(None, ge=0)
    internal_notes: str | None = None

    @model_validator(mode="after")
    def check_required_not_null(self) -> "PaymentUpdate":
        required = {"amount", "payment_type", "payment_method", "status", "payment_date",
                    "is_for_renovation", "is_commission"}
        nulls = sorted(f for f in required & self.model_fields_set if getattr(self, f) is None)
        if nulls:
            raise ValueError(f"{', '.join(nulls)} cannot be null")
        return self


# ---------------------------------------------------------------------------
# Response schemas
# ---------------------------------------------------------------------------


class PaymentResponse(BaseModel):
    id: uuid.UUID
    amount: Decimal
    net_amount: Decimal
    commission_amount: Decimal
    payment_date: datetime
    payment_method: str
    payment_type: str
    status: str
    booking_id: uuid.UUID | None = None
    property_id: uuid.UUID | None = None
    payer_id: uuid.UUID | None = None
    receiver_id: uuid.UUID | None = None
    created_by_id: uuid.UUID | None = None
    description: str | None = None
    reference_number: str | None = None
    category: str | None = None
    is_for_renovation: bool
    is_commission: bool
    commission_rate: Decimal | None = None
    vat_amount: Decimal | None = None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class PaymentListResponse(BaseModel):
    items: list[PaymentResponse]
    total: int


class TypeTotalResponse(BaseModel):
    payment_type: str
    count: int
    total: Decimal

    model_config = ConfigDict(from_attributes=True)


class PaymentStatsResponse(BaseModel):
    total_payments: int
    total_amount: Decimal
    total_income: Decimal
    total_deposits: Decimal
    total_expenses: Decimal
    total_commissions: Decimal
    total_refunds: Decimal
    renovation_funds: Decimal
    by_type: list[TypeTotalResponse]

    model_config = ConfigDict(from_attributes=True)


class OwnerBalanceResponse(BaseModel):
    """Positive ``balance``: the company owes the owner. Negative: the owner owes the company."""

    owner_id: uuid.UUID
    income: Decimal
    deposits: Decimal
    expenses: Decimal
    commissions: Decimal
    balance: Decimal
