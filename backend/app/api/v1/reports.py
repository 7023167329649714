"""Reports API router: owner financials, property performance, system summary."""

from __future__ import annotations

import uuid
from datetime import date

from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy.ext.asyncio import AsyncSession

from app.api.deps import get_db, get_scope, require_roles
from app.auth.scope import AccessScope
from app.schemas.report import (
    OwnerFinancialReportResponse,
    PropertyPerformanceResponse,
    SystemSummaryResponse,
)
from app.services import report_service

router = APIRouter(prefix="/api/v1/reports", tags=["reports"])

_staff = require_roles("admin", "owner")


def _check_range(start_date: date | None, end_date: date | None) -> None:
    if start_date is not None and end_date is not None and end_date < start_date:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="end_date must not be before start_date",
        )


@router.get(
    "/owner/{owner_id}/financial",
    response_model=OwnerFinancialReportResponse,
    dependencies=[Depends(_staff)],
)
async def owner_financial_report(
    owner_id: uuid.UUID,
    start_date: date | None = Query(None, description="Inclusive lower bound on payment date"),
    end_date: date | None = Query(None, description="Inclusive upper bound on payment date"),
    property_id: uuid.UUID | None = Query(None, description="Restrict to one of the owner's properties"),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> OwnerFinancialReportResponse:
    """Income, deposits, expenses and commissions for one owner.

    Admins can view any owner; owners only themselves. An owner without
    properties gets a zero-filled report.
    """
    _check_range(start_date, end_date)
    report = await report_service.owner_financial_report(db, scope, owner_id, start_date, end_date, property_id)
    return OwnerFinancialReportResponse.model_validate(report)


@router.get(
    "/property/{property_id}/performance",
    response_model=PropertyPerformanceResponse,
    dependencies=[Depends(_staff)],
)
async def property_performance_report(
    property_id: uuid.UUID,
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: AsyncSession = Depends(get_db),
    scope: AccessScope = Depends(get_scope),
) -> PropertyPerformanceResponse:
    """Revenue, nights and occupancy for one property.

    Occupancy and the monthly breakdown are only computed when both dates
    are given.
    """
    _check_range(start_date, end_date)
    report = await report_service.property_performance_report(db, scope, property_id, start_date, end_date)
    return PropertyPerformanceResponse.model_validate(report)


@router.get(
    "/system/summary",
    response_model=SystemSummaryResponse,
    dependencies=[Depends(require_roles("admin"))],
)
async def system_summary(
    start_date: date | None = Query(None),
    end_date: date | None = Query(None),
    db: AsyncSession = Depends(get_db),
) -> SystemSummaryResponse:
    _check_range(start_date, end_date)
    return SystemSummaryResponse.model_validate(await report_service.system_summary(db, start_date, end_date))
