"""Reporting endpoints for period summaries and profit series."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session

from washledger.core.auth import RequestUserContext, get_current_user_context
from washledger.db.dependencies import get_db_session
from washledger.engine import ReportPeriod
from washledger.services.finance_reporting_service import FinanceReportingService

router = APIRouter(prefix="/reports", tags=["reports"])


def _service(db: Session) -> FinanceReportingService:
    return FinanceReportingService(db)


@router.get("/summary")
def get_financial_report(
    period: ReportPeriod = Query(default=ReportPeriod.THIS_MONTH),
    owner_id: UUID | None = Query(default=None),
    as_of: datetime | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.financial_report(context=context, period=period, owner_id=owner_id, as_of=as_of)


@router.get("/profit-series")
def get_profit_series(
    period: ReportPeriod = Query(default=ReportPeriod.THIS_MONTH),
    owner_id: UUID | None = Query(default=None),
    as_of: datetime | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.profit_series(context=context, period=period, owner_id=owner_id, as_of=as_of)


@router.get("/comparison")
def get_store_comparison(
    period: ReportPeriod = Query(default=ReportPeriod.THIS_MONTH),
    owner_id: list[UUID] | None = Query(default=None),
    as_of: datetime | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> dict[str, object]:
    service = _service(db)
    return service.store_comparison(
        context=context,
        period=period,
        owner_ids=owner_id or [],
        as_of=as_of,
    )
