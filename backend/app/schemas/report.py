"""Pydantic v2 response schemas for report endpoints.

They read straight from the frozen results in ``app.services.ledger``.
"""

import uuid
from datetime import date
from decimal import Decimal

from pydantic import BaseModel, ConfigDict

from app.schemas.payment import PaymentResponse, TypeTotalResponse


class _FromLedger(BaseModel):
    model_config = ConfigDict(from_attributes=True)


class PropertyRefResponse(_FromLedger):
    id: uuid.UUID
    name: str
    property_type: str


class PropertyTotalResponse(_FromLedger):
    property_id: uuid.UUID | None = None
    property_name: str | None = None
    income: Decimal
    expenses: Decimal
    net: Decimal


class OwnerFinancialSummaryResponse(_FromLedger):
    total_income: Decimal
    total_deposits: Decimal
    total_expenses: Decimal
    total_commissions: Decimal
    renovation_funds: Decimal
    net_income: Decimal


class OwnerFinancialReportResponse(_FromLedger):
    owner_id: uuid.UUID
    owner_name: str | None = None
    start_date: date | None = None
    end_date: date | None = None
    property_id: uuid.UUID | None = None
    properties: list[PropertyRefResponse]
    summary: OwnerFinancialSummaryResponse
    current_balance: Decimal
    payments_by_type: list[TypeTotalResponse]
    payments_by_property: list[PropertyTotalResponse]
    payments: list[PaymentResponse]


class MonthlyPerformanceResponse(_FromLedger):
    month: str
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    bookings: int
    nights: int


class PropertyPerformanceResponse(_FromLedger):
    property_id: uuid.UUID
    property_name: str
    start_date: date | None = None
    end_date: date | None = None
    total_revenue: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    total_bookings: int
    total_nights: int
    average_nightly_rate: Decimal
    average_booking_value: Decimal
    occupancy_rate: Decimal | None = None  # percentage; null without both dates
    monthly_breakdown: list[MonthlyPerformanceResponse]


class OwnerRevenueResponse(_FromLedger):
    owner_id: uuid.UUID
    owner_name: str | None = None
    owner_email: str | None = None
    total_revenue: Decimal


class SystemSummaryResponse(_FromLedger):
    start_date: date | None = None
    end_date: date | None = None
    total_users: int
    total_properties: int
    total_bookings: int
    total_payments: int
    total_revenue: Decimal
    total_commissions: Decimal
    net_revenue: Decimal
    users_by_role: dict[str, int]
    properties_by_type: dict[str, int]
    payments_by_type: list[TypeTotalResponse]
    top_owners: list[OwnerRevenueResponse]
