"""Report queries: fetch the rows a report needs, then hand them to ``ledger``."""

import logging
import uuid
from datetime import date

from sqlalchemy.ext.asyncio import AsyncSession

from app.auth.scope import AccessScope
from app.config import settings
from app.errors import OwnerNotFound
from app.models.user import User
from app.services import ledger, persistence

logger = logging.getLogger(__name__)


async def _get_owner(db: AsyncSession, scope: AccessScope, owner_id: uuid.UUID) -> User:
    if not scope.can_view_owner(owner_id):
        raise OwnerNotFound(owner_id=str(owner_id))
    owner = await persistence.get_user(db, owner_id)
    if owner is None or owner.role not in ("owner", "admin"):
        raise OwnerNotFound(owner_id=str(owner_id))
    return owner


async def owner_balance(db: AsyncSession, scope: AccessScope, owner_id: uuid.UUID) -> ledger.OwnerBalance:
    owner = await _get_owner(db, scope, owner_id)
    payments = await persistence.find_payments(db, owner_id=owner.id, status="completed")
    return ledger.calculate_owner_balance(owner.id, payments)


async def owner_financial_report(
    db: AsyncSession,
    scope: AccessScope,
    owner_id: uuid.UUID,
    start_date: date | None = None,
    end_date: date | None = None,
    property_id: uuid.UUID | None = None,
) -> ledger.OwnerFinancialReport:
    owner = await _get_owner(db, scope, owner_id)
    properties = await persistence.find_properties_by_owner(db, owner.id)
    payments = await persistence.find_payments(
        db, owner_id=owner.id, status="completed", start_date=start_date, end_date=end_date
    )
    report = ledger.build_owner_financial_report(
        owner,
        properties,
        payments,
        start_date=start_date,
        end_date=end_date,
        property_id=property_id,
        recent_limit=settings.report_recent_payments_limit,
    )
    logger.info(
        "Owner report for %s (%s..%s): %d payments, net %s",
        owner.id,
        start_date,
        end_date,
        len(report.payments),
        report.summary.net_income,
    )
    return report


async def property_performance_report(
    db: AsyncSession,
    scope: AccessScope,
    property_id: uuid.UUID,
    start_date: date | None = None,
    end_date: date | None = None,
) -> ledger.PropertyPerformanceReport:
    prop = await persistence.get_property(db, property_id, scope=scope)
    payments = await persistence.find_payments(
        db, property_id=prop.id, status="completed", start_date=start_date, end_date=end_date
    )
    bookings = await persistence.find_bookings_by_property(db, prop.id, statuses=None)
    return ledger.build_property_performance_report(prop, payments, bookings, start_date, end_date)


async def system_summary(
    db: AsyncSession,
    start_date: date | None = None,
    end_date: date | None = None,
) -> ledger.SystemSummary:
    users = await persistence.find_users(db)
    properties = await persistence.find_properties(db)
    bookings = await persistence.find_bookings(db)
    payments = await persistence.find_payments(db, status="completed", start_date=start_date, end_date=end_date)
    return ledger.build_system_summary(users, properties, bookings, payments, start_date, end_date)


async def payment_stats(
    db: AsyncSession,
    scope: AccessScope,
    start_date: date | None = None,
    end_date: date | None = None,
    property_id: uuid.UUID | None = None,
) -> ledger.PaymentSummary:
    payments = await persistence.find_payments(
        db,
        scope=scope,
        property_id=property_id,
        status="completed",
        start_date=start_date,
        end_date=end_date,
    )
    return ledger.summarize_payments(payments)


async def booking_stats(db: AsyncSession, scope: AccessScope) -> ledger.BookingSummary:
    bookings = await persistence.find_bookings(db, scope=scope)
    return ledger.summarize_bookings(bookings)
