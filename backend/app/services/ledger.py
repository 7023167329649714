"""Financial aggregation over payment and booking records.

Every function takes already-fetched rows and returns a frozen result. Nothing
here touches the database or mutates a payment, so the same input always
yields the same report.

Sign convention for owner balances: positive means the company owes the
owner, negative means the owner owes the company.
"""

from __future__ import annotations

import uuid
from collections import Counter
from collections.abc import Iterable
from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from decimal import ROUND_HALF_UP, Decimal
from typing import Any

from app.errors import InvalidAmount, PropertyNotFound
from app.services.booking_engine import to_money

ZERO = Decimal("0.00")
HUNDRED = Decimal("100")


@dataclass(frozen=True)
class OwnerBalance:
    income: Decimal
    deposits: Decimal
    expenses: Decimal
    commissions: Decimal
    balance: Decimal


@dataclass(frozen=True)
class TypeTotal:
    payment_type: str
    count: int
    total: Decimal


@dataclass(frozen=True)
class PropertyTotal:
    property_id: uuid.UUID | None
    property_name: str | None
    income: Decimal
    expenses: Decimal
    net: Decimal


@dataclass(frozen=True)
class PropertyRef:
    id: uuid.UUID
    name: str
    property_type: str


@dataclass(frozen=True)
class OwnerFinancialSummary:
    total_income: Decimal = ZERO
    total_deposits: Decimal = ZERO
    total_expenses: Decimal = ZERO
    total_commissions: Decimal = ZERO
    renovation_funds: Decimal = ZERO
    net_income: Decimal = ZERO


@dataclass(frozen=True)
class OwnerFinancialReport:
    owner_id: uuid.UUID
    owner_name: str | None
    start_date: date | None
    end_date: date | None
    property_id: uuid.UUID | None
    properties: list[PropertyRef]
    summary: OwnerFinancialSummary
    current_balance: Decimal
    payments_by_type: list[TypeTotal]
    payments_by_property: list[PropertyTotal]
    payments: list[Any]


@dataclass(frozen=True)
class MonthlyPerformance:
    month: str  # YYYY-MM
    revenue: Decimal
    expenses: Decimal
    profit: Decimal
    bookings: int
    nights: int


@dataclass(frozen=True)
class PropertyPerformanceReport:
    property_id: uuid.UUID
    property_name: str
    start_date: date | None
    end_date: date | None
    total_revenue: Decimal
    total_expenses: Decimal
    net_profit: Decimal
    total_bookings: int
    total_nights: int
    average_nightly_rate: Decimal
    average_booking_value: Decimal
    occupancy_rate: Decimal | None
    monthly_breakdown: list[MonthlyPerformance] = field(default_factory=list)


@dataclass(frozen=True)
class PaymentSummary:
    total_payments: int
    total_amount: Decimal
    total_income: Decimal
    total_deposits: Decimal
    total_expenses: Decimal
    total_commissions: Decimal
    total_refunds: Decimal
    renovation_funds: Decimal
    by_type: list[TypeTotal]


@dataclass(frozen=True)
class MonthlyBookings:
    month: str
    bookings: int
    revenue: Decimal


@dataclass(frozen=True)
class BookingSummary:
    total_bookings: int
    by_status: dict[str, int]
    by_payment_status: dict[str, int]
    upcoming_bookings: int
    total_revenue: Decimal
    collected_revenue: Decimal
    pending_revenue: Decimal
    average_booking_value: Decimal
    monthly: list[MonthlyBookings]


@dataclass(frozen=True)
class OwnerRevenue:
    owner_id: uuid.UUID
    owner_name: str | None
    owner_email: str | None
    total_revenue: Decimal


@dataclass(frozen=True)
class SystemSummary:
    start_date: date | None
    end_date: date | None
    total_users: int
    total_properties: int
    total_bookings: int
    total_payments: int
    total_revenue: Decimal
    total_commissions: Decimal
    net_revenue: Decimal
    users_by_role: dict[str, int]
    properties_by_type: dict[str, int]
    payments_by_type: list[TypeTotal]
    top_owners: list[OwnerRevenue]


# ---------------------------------------------------------------------------
# Helpers
# ---------------------------------------------------------------------------


def _day(value: date | datetime) -> date:
    return value.date() if isinstance(value, datetime) else value


def _in_range(day: date | datetime, start: date | None, end: date | None) -> bool:
    """Inclusive bounds; a missing bound is open."""
    day = _day(day)
    if start is not None and day < start:
        return False
    if end is not None and day > end:
        return False
    return True


def _rate(numerator: Any, denominator: Any) -> Decimal:
    """``numerator / denominator`` to cents, or 0 when the denominator is 0."""
    if not denominator:
        return ZERO
    return (Decimal(numerator) / Decimal(denominator)).quantize(Decimal("0.01"), rounding=ROUND_HALF_UP)


def _checked(payments: Iterable[Any]) -> list[Any]:
    """Completed payments, rejecting any non-positive amount before it is summed."""
    completed = []
    for p in payments:
        if p.status != "completed":
            continue
        if to_money(p.amount) <= 0:
            raise InvalidAmount(f"Payment {p.id} has a non-positive amount", payment_id=str(p.id))
        completed.append(p)
    return completed


def _sum(payments: Iterable[Any]) -> Decimal:
    return sum((to_money(p.amount) for p in payments), ZERO)


def _by_type(payments: list[Any]) -> list[TypeTotal]:
    totals: dict[str, list[Any]] = {}
    for p in payments:
        totals.setdefault(p.payment_type, []).append(p)
    return [TypeTotal(payment_type=t, count=len(ps), total=_sum(ps)) for t, ps in sorted(totals.items())]


def _month_key(day: date | datetime) -> str:
    return _day(day).strftime("%Y-%m")


def months_between(start: date, end: date) -> list[date]:
    """First day of every calendar month touched by ``[start, end]``."""
    months = []
    current = start.replace(day=1)
    while current <= end:
        months.append(current)
        current = (current + timedelta(days=32)).replace(day=1)
    return months


# ---------------------------------------------------------------------------
# Owner balance and report
# ---------------------------------------------------------------------------


def calculate_owner_balance(owner_id: uuid.UUID, payments: Iterable[Any]) -> OwnerBalance:
    """Net position between the company and one owner.

    ``income`` is guest money received for the owner, ``deposits`` money the
    owner paid in, ``expenses`` costs settled to the owner and ``commissions``
    fees the owner paid.
    """
    payments = _checked(payments)
    income = _sum(p for p in payments if p.payment_type == "booking_payment" and p.receiver_id == owner_id)
    deposits = _sum(p for p in payments if p.payment_type == "owner_deposit" and p.payer_id == owner_id)
    expenses = _sum(p for p in payments if p.payment_type == "expense_payment" and p.receiver_id == owner_id)
    commissions = _sum(p for p in payments if p.payment_type == "commission" and p.payer_id == owner_id)
    return OwnerBalance(
        income=income,
        deposits=deposits,
        expenses=expenses,
        commissions=commissions,
        balance=income + deposits - expenses - commissions,
    )


def build_owner_financial_report(
    owner: Any,
    properties: Iterable[Any],
    payments: Iterable[Any],
    start_date: date | None = None,
    end_date: date | None = None,
    property_id: uuid.UUID | None = None,
    recent_limit: int = 50,
) -> OwnerFinancialReport:
    """Income, expenses and per-property net for one owner over a date range.

    A payment belongs to the owner when its property is one of theirs or the
    owner is its payer or receiver. With ``property_id`` only that property's
    payments are counted; it must be one of the owner's properties.
    """
    properties = list(properties)
    refs = [PropertyRef(id=p.id, name=p.name, property_type=p.property_type) for p in properties]

    if property_id is not None and property_id not in {p.id for p in properties}:
        raise PropertyNotFound(property_id=str(property_id))

    if not properties:
        return OwnerFinancialReport(
            owner_id=owner.id,
            owner_name=owner.name,
            start_date=start_date,
            end_date=end_date,
            property_id=None,
            properties=[],
            summary=OwnerFinancialSummary(),
            current_balance=ZERO,
            payments_by_type=[],
            payments_by_property=[],
            payments=[],
        )

    owned = {p.id for p in properties}
    names = {p.id: p.name for p in properties}

    def belongs(p: Any) -> bool:
        if property_id is not None:
            return p.property_id == property_id
        return p.property_id in owned or owner.id in (p.payer_id, p.receiver_id)

    matched = [
        p
        for p in _checked(payments)
        if belongs(p) and _in_range(p.payment_date, start_date, end_date)
    ]

    def is_income(p: Any) -> bool:
        return p.payment_type == "booking_payment" and (p.receiver_id == owner.id or p.property_id in owned)

    def is_expense(p: Any) -> bool:
        return p.payment_type == "expense_payment" and (p.property_id in owned or p.receiver_id == owner.id)

    total_income = _sum(p for p in matched if is_income(p))
    total_deposits = _sum(p for p in matched if p.payment_type == "owner_deposit" and p.payer_id == owner.id)
    total_expenses = _sum(p for p in matched if is_expense(p))
    total_commissions = _sum(p for p in matched if p.payment_type == "commission" and p.payer_id == owner.id)
    renovation_funds = _sum(p for p in matched if p.is_for_renovation)
    net_income = total_income + total_deposits - total_expenses - total_commissions

    by_property: dict[uuid.UUID | None, list[Any]] = {}
    for p in matched:
        by_property.setdefault(p.property_id, []).append(p)
    property_totals = []
    for pid, group in by_property.items():
        income = _sum(p for p in group if is_income(p))
        expenses = _sum(p for p in group if is_expense(p))
        property_totals.append(
            PropertyTotal(
                property_id=pid,
                property_name=names.get(pid),
                income=income,
                expenses=expenses,
                net=income - expenses,
            )
        )
    property_totals.sort(key=lambda t: t.property_name or "")

    recent = sorted(matched, key=lambda p: p.payment_date, reverse=True)[:recent_limit]

    return OwnerFinancialReport(
        owner_id=owner.id,
        owner_name=owner.name,
        start_date=start_date,
        end_date=end_date,
        property_id=property_id,
        properties=refs,
        summary=OwnerFinancialSummary(
            total_income=total_income,
            total_deposits=total_deposits,
            total_expenses=total_expenses,
            total_commissions=total_commissions,
            renovation_funds=renovation_funds,
            net_income=net_income,
        ),
        current_balance=net_income,
        payments_by_type=_by_type(matched),
        payments_by_property=property_totals,
        payments=recent,
    )


# ---------------------------------------------------------------------------
# Property performance
# ---------------------------------------------------------------------------


def build_property_performance_report(
    prop: Any,
    payments: Iterable[Any],
    bookings: Iterable[Any],
    start_date: date | None = None,
    end_date: date | None = None,
) -> PropertyPerformanceReport:
    """Revenue, occupancy and nightly-rate figures for one property.

    Bookings count when their check-in falls in the range, whatever their
    status. Occupancy and the monthly breakdown need both bounds.
    """
    matched = [
        p
        for p in _checked(payments)
        if p.property_id == prop.id and _in_range(p.payment_date, start_date, end_date)
    ]
    stays = [
        b
        for b in bookings
        if b.property_id == prop.id and _in_range(b.check_in_date, start_date, end_date)
    ]

    revenue = _sum(p for p in matched if p.payment_type == "booking_payment")
    expenses = _sum(p for p in matched if p.payment_type == "expense_payment")
    nights = sum(b.number_of_nights or 0 for b in stays)
    booking_value = sum((to_money(b.total_amount) for b in stays), ZERO)

    occupancy_rate = None
    monthly: list[MonthlyPerformance] = []
    if start_date is not None and end_date is not None:
        occupancy_rate = _rate(nights * HUNDRED, (end_date - start_date).days)
        for month in months_between(start_date, end_date):
            key = month.strftime("%Y-%m")
            month_payments = [p for p in matched if _month_key(p.payment_date) == key]
            month_stays = [b for b in stays if _month_key(b.check_in_date) == key]
            month_revenue = _sum(p for p in month_payments if p.payment_type == "booking_payment")
            month_expenses = _sum(p for p in month_payments if p.payment_type == "expense_payment")
            monthly.append(
                MonthlyPerformance(
                    month=key,
                    revenue=month_revenue,
                    expenses=month_expenses,
                    profit=month_revenue - month_expenses,
                    bookings=len(month_stays),
                    nights=sum(b.number_of_nights or 0 for b in month_stays),
                )
            )

    return PropertyPerformanceReport(
        property_id=prop.id,
        property_name=prop.name,
        start_date=start_date,
        end_date=end_date,
        total_revenue=revenue,
        total_expenses=expenses,
        net_profit=revenue - expenses,
        total_bookings=len(stays),
        total_nights=nights,
        average_nightly_rate=_rate(revenue, nights),
        average_booking_value=_rate(booking_value, len(stays)),
        occupancy_rate=occupancy_rate,
        monthly_breakdown=monthly,
    )


# ---------------------------------------------------------------------------
# Summaries
# ---------------------------------------------------------------------------


def summarize_payments(payments: Iterable[Any]) -> PaymentSummary:
    """Totals per payment type over completed payments."""
    completed = _checked(payments)

    def total(payment_type: str) -> Decimal:
        return _sum(p for p in completed if p.payment_type == payment_type)

    return PaymentSummary(
        total_payments=len(completed),
        total_amount=_sum(completed),
        total_income=total("booking_payment"),
        total_deposits=total("owner_deposit"),
        total_expenses=total("expense_payment"),
        total_commissions=total("commission"),
        total_refunds=total("refund"),
        renovation_funds=_sum(p for p in completed if p.is_for_renovation),
        by_type=_by_type(completed),
    )


def summarize_bookings(bookings: Iterable[Any], today: date | None = None) -> BookingSummary:
    """Counts, revenue and a six-month trend for a set of bookings.

    Revenue figures leave out cancelled bookings. ``upcoming_bookings`` counts
    pending or confirmed stays checking in within the next 30 days.
    """
    bookings = list(bookings)
    today = today or date.today()
    live = [b for b in bookings if b.status != "cancelled"]

    horizon = today + timedelta(days=30)
    upcoming = sum(
        1 for b in bookings if b.status in ("pending", "confirmed") and today <= b.check_in_date <= horizon
    )

    total_revenue = sum((to_money(b.total_amount) for b in live), ZERO)
    collected = sum((to_money(b.paid_amount) for b in live), ZERO)

    first_month = today.replace(day=1)
    for _ in range(5):
        first_month = (first_month - timedelta(days=1)).replace(day=1)
    monthly = []
    for month in months_between(first_month, today):
        key = month.strftime("%Y-%m")
        in_month = [b for b in live if _month_key(b.check_in_date) == key]
        monthly.append(
            MonthlyBookings(
                month=key,
                bookings=len(in_month),
                revenue=sum((to_money(b.total_amount) for b in in_month), ZERO),
            )
        )

    return BookingSummary(
        total_bookings=len(bookings),
        by_status=dict(Counter(b.status for b in bookings)),
        by_payment_status=dict(Counter(b.payment_status for b in bookings)),
        upcoming_bookings=upcoming,
        total_revenue=total_revenue,
        collected_revenue=collected,
        pending_revenue=total_revenue - collected,
        average_booking_value=_rate(total_revenue, len(live)),
        monthly=monthly,
    )


def build_system_summary(
    users: Iterable[Any],
    properties: Iterable[Any],
    bookings: Iterable[Any],
    payments: Iterable[Any],
    start_date: date | None = None,
    end_date: date | None = None,
    top_limit: int = 10,
) -> SystemSummary:
    """Company-wide counts and revenue; the date range applies to payments only."""
    users = list(users)
    properties = list(properties)
    bookings = list(bookings)
    matched = [p for p in _checked(payments) if _in_range(p.payment_date, start_date, end_date)]

    revenue = _sum(p for p in matched if p.payment_type == "booking_payment")
    commissions = _sum(p for p in matched if p.payment_type == "commission")

    owner_of = {p.id: p.owner_id for p in properties}
    users_by_id = {u.id: u for u in users}
    per_owner: dict[uuid.UUID, Decimal] = {}
    for p in matched:
        owner_id = owner_of.get(p.property_id)
        if p.payment_type != "booking_payment" or owner_id is None:
            continue
        per_owner[owner_id] = per_owner.get(owner_id, ZERO) + to_money(p.amount)
    top = sorted(per_owner.items(), key=lambda item: item[1], reverse=True)[:top_limit]

    return SystemSummary(
        start_date=start_date,
        end_date=end_date,
        total_users=len(users),
        total_properties=len(properties),
        total_bookings=len(bookings),
        total_payments=len(matched),
        total_revenue=revenue,
        total_commissions=commissions,
        net_revenue=revenue - commissions,
        users_by_role=dict(Counter(u.role for u in users)),
        properties_by_type=dict(Counter(p.property_type for p in properties)),
        payments_by_type=_by_type(matched),
        top_owners=[
            OwnerRevenue(
                owner_id=owner_id,
                owner_name=getattr(users_by_id.get(owner_id), "name", None),
                owner_email=getattr(users_by_id.get(owner_id), "email", None),
                total_revenue=total,
            )
            for owner_id, total in top
        ],
    )
