"""Export endpoint for the profit series table."""

from __future__ import annotations

from datetime import datetime
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from fastapi.responses import Response
from sqlalchemy.orm import Session

from washledger.core.auth import RequestUserContext, get_current_user_context
from washledger.db.dependencies import get_db_session
from washledger.engine import ReportPeriod
from washledger.services.finance_reporting_service import FinanceReportingService

router = APIRouter(prefix="/exports", tags=["exports"])


def _service(db: Session) -> FinanceReportingService:
    return FinanceReportingService(db)


@router.get("/profit-series")
def export_profit_series(
    format: str = Query(default="csv"),
    period: ReportPeriod = Query(default=ReportPeriod.THIS_MONTH),
    owner_id: UUID | None = Query(default=None),
    as_of: datetime | None = Query(default=None),
    context: RequestUserContext = Depends(get_current_user_context),
    db: Session = Depends(get_db_session),
) -> Response:
    service = _service(db)
    exported = service.export_profit_series(
        context=context,
        period=period,
        format_name=format,
        owner_id=owner_id,
        as_of=as_of,
    )
    return Response(
        content=exported.content,
        media_type=exported.media_type,
        headers={"Content-Disposition": f'attachment; filename="{exported.filename}"'},
    )
