"""Financial report, store comparison, and export service layer."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from io import BytesIO
from uuid import UUID

from fastapi import HTTPException, status
from sqlalchemy.orm import Session

from washledger.core.auth import RequestUserContext, has_store_access, load_users_by_id, staff_roster
from washledger.core.config import get_settings
from washledger.engine import (
    AggregateResult,
    ProfitChartDataPoint,
    ReportPeriod,
    StoreComparison,
    build_report,
    compare,
    profit_series as engine_profit_series,
    resolve_period,
)
from washledger.engine.periods import TimeRange
from washledger.engine.records import q2
from washledger.repositories.record_store import RecordStore

logger = logging.getLogger(__name__)

EXPORT_COLUMNS = ("Period", "Revenue", "TotalCosts", "Profit", "VariableCosts", "FixedCosts")


@dataclass(slots=True)
class ExportFilePayload:
    media_type: str
    filename: str
    content: bytes


class FinanceReportingService:
    """Service wiring the record store and scope rules into the aggregation engine."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.store = RecordStore(db)
        self.settings = get_settings()

    # ---------- Reference time / scope ----------
    def reference_now(self, as_of: datetime | None = None) -> datetime:
        tz = self.settings.report_tz
        if as_of is None:
            return datetime.now(tz)
        if as_of.tzinfo is None:
            return as_of.replace(tzinfo=tz)
        return as_of.astimezone(tz)

    def _resolve_scope(self, context: RequestUserContext, owner_id: UUID | None) -> tuple[UUID, ...]:
        if owner_id is None:
            return context.viewable_owner_ids
        if not has_store_access(context, owner_id=owner_id):
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Insufficient store scope permissions for this operation.",
            )
        return (owner_id,)

    # ---------- Serialization ----------
    @staticmethod
    def serialize_aggregate(result: AggregateResult) -> dict[str, object]:
        return {
            "total_revenue": str(result.total_revenue),
            "order_count": result.order_count,
            "average_order_value": str(result.average_order_value),
            "total_variable_costs": str(result.total_variable_costs),
            "prorated_fixed_costs": str(result.prorated_fixed_costs),
            "total_costs": str(result.total_costs),
            "profit": str(result.profit),
            "revenue_by_service": [
                {"name": row.name, "revenue": str(row.revenue), "count": row.count}
                for row in result.revenue_by_service
            ],
        }

    @staticmethod
    def serialize_point(point: ProfitChartDataPoint) -> dict[str, str]:
        return {
            "label": point.label,
            "revenue": str(q2(point.revenue)),
            "total_costs": str(q2(point.total_costs)),
            "profit": str(q2(point.profit)),
            "variable_costs": str(q2(point.variable_costs)),
            "fixed_costs": str(q2(point.fixed_costs)),
        }

    @staticmethod
    def _serialize_window(period: ReportPeriod, now: datetime) -> dict[str, str | None]:
        resolved = resolve_period(period, now)
        if not isinstance(resolved, TimeRange):
            return {"start": None, "end": None}
        return {"start": resolved.start.isoformat(), "end": resolved.end.isoformat()}

    def serialize_comparison(self, row: StoreComparison, store_names: dict[UUID, str]) -> dict[str, object]:
        return {
            "owner_id": str(row.owner_id),
            "store_name": store_names.get(row.owner_id, str(row.owner_id)),
            **self.serialize_aggregate(row.result),
            "top_services": [
                {"name": service.name, "revenue": str(service.revenue)} for service in row.top_services
            ],
            "staff": {
                "avg_on_time_rate": str(row.staff.avg_on_time_rate),
                "avg_rating": str(row.staff.avg_rating),
                "total_orders_processed": row.staff.total_orders_processed,
                "kpi_record_count": row.staff.record_count,
            },
        }

    # ---------- Reports ----------
    def financial_report(
        self,
        *,
        context: RequestUserContext,
        period: ReportPeriod,
        owner_id: UUID | None = None,
        as_of: datetime | None = None,
    ) -> dict[str, object]:
        now = self.reference_now(as_of)
        scope = self._resolve_scope(context, owner_id)
        dataset = self.store.load(scope)
        report = build_report(dataset, scope, period, now)
        logger.info(
            "Financial report for %s (%s, %d stores): revenue=%s profit=%s",
            context.username,
            period.value,
            len(scope),
            report.summary.total_revenue,
            report.summary.profit,
        )
        return {
            "period": period.value,
            "as_of": now.isoformat(),
            "window": self._serialize_window(period, now),
            "owner_ids": [str(value) for value in scope],
            "summary": self.serialize_aggregate(report.summary),
            "series": [self.serialize_point(point) for point in report.series],
        }

    def _series_points(
        self,
        *,
        context: RequestUserContext,
        period: ReportPeriod,
        owner_id: UUID | None,
        now: datetime,
    ) -> list[ProfitChartDataPoint]:
        scope = self._resolve_scope(context, owner_id)
        return engine_profit_series(self.store.load(scope), scope, period, now)

    def profit_series(
        self,
        *,
        context: RequestUserContext,
        period: ReportPeriod,
        owner_id: UUID | None = None,
        as_of: datetime | None = None,
    ) -> dict[str, object]:
        now = self.reference_now(as_of)
        points = self._series_points(context=context, period=period, owner_id=owner_id, now=now)
        return {
            "period": period.value,
            "as_of": now.isoformat(),
            "points": [self.serialize_point(point) for point in points],
        }

    # ---------- Comparison ----------
    def store_comparison(
        self,
        *,
        context: RequestUserContext,
        period: ReportPeriod,
        owner_ids: list[UUID],
        as_of: datetime | None = None,
    ) -> dict[str, object]:
        if not context.is_chairman:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="Store comparison is available to the chairman only.",
            )

        selected = list(dict.fromkeys(owner_ids))
        if len(selected) > self.settings.comparison_max_stores:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail=f"At most {self.settings.comparison_max_stores} stores can be compared at once.",
            )
        for owner_id in selected:
            self._resolve_scope(context, owner_id)

        now = self.reference_now(as_of)
        if not selected:
            return {"period": period.value, "as_of": now.isoformat(), "stores": []}

        roster = staff_roster(load_users_by_id(self.db), tuple(selected))
        staff_ids = {user_id for members in roster.values() for user_id in members}
        dataset = self.store.load(selected, staff_ids=staff_ids)
        rows = compare(
            dataset,
            selected,
            period,
            now,
            roster,
            max_workers=self.settings.comparison_max_workers,
        )
        store_names = self.store.store_names(selected)
        logger.info("Store comparison for %s over %s: %d stores", context.username, period.value, len(rows))
        return {
            "period": period.value,
            "as_of": now.isoformat(),
            "stores": [self.serialize_comparison(row, store_names) for row in rows],
        }

    # ---------- Exports ----------
    @staticmethod
    def _export_rows(points: list[ProfitChartDataPoint]) -> list[list[str]]:
        return [
            [
                point.label,
                str(q2(point.revenue)),
                str(q2(point.total_costs)),
                str(q2(point.profit)),
                str(q2(point.variable_costs)),
                str(q2(point.fixed_costs)),
            ]
            for point in points
        ]

    def export_profit_series(
        self,
        *,
        context: RequestUserContext,
        period: ReportPeriod,
        format_name: str,
        owner_id: UUID | None = None,
        as_of: datetime | None = None,
    ) -> ExportFilePayload:
        normalized_format = format_name.strip().lower()
        if normalized_format not in {"csv", "xlsx"}:
            raise HTTPException(
                status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
                detail="format must be one of: csv, xlsx.",
            )

        now = self.reference_now(as_of)
        points = self._series_points(context=context, period=period, owner_id=owner_id, now=now)
        rows = self._export_rows(points)
        base_filename = f"profit-{period.value}-{now.date().isoformat()}"
        logger.info("Exporting %d %s rows for %s", len(rows), normalized_format, context.username)

        if normalized_format == "csv":
            import csv
            import io

            sio = io.StringIO()
            writer = csv.writer(sio)
            writer.writerow(EXPORT_COLUMNS)
            writer.writerows(rows)
            return ExportFilePayload(
                media_type="text/csv; charset=utf-8",
                filename=f"{base_filename}.csv",
                content=sio.getvalue().encode("utf-8"),
            )

        # XLSX
        from openpyxl import Workbook

        workbook = Workbook()
        sheet = workbook.active
        sheet.title = "profit"
        sheet.append(list(EXPORT_COLUMNS))
        for row in rows:
            sheet.append(row)

        output = BytesIO()
        workbook.save(output)
        return ExportFilePayload(
            media_type="application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",
            filename=f"{base_filename}.xlsx",
            content=output.getvalue(),
        )
