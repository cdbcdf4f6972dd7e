"""Side-by-side store comparison built on the shared aggregation."""

from __future__ import annotations

from collections.abc import Hashable, Mapping, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from washledger.engine.aggregation import aggregate
from washledger.engine.filtering import filter_by_period
from washledger.engine.periods import ReportPeriod
from washledger.engine.records import ZERO, AggregateResult, RecordSet, ServiceRevenue, StaffKpi, TenantId, safe_div

TOP_SERVICES_LIMIT = 3


@dataclass(frozen=True, slots=True)
class StaffKpiSummary:
    avg_on_time_rate: Decimal
    avg_rating: Decimal
    total_orders_processed: int
    record_count: int


@dataclass(frozen=True, slots=True)
class StoreComparison:
    owner_id: TenantId
    result: AggregateResult
    staff: StaffKpiSummary

    @property
    def top_services(self) -> tuple[ServiceRevenue, ...]:
        return self.result.revenue_by_service[:TOP_SERVICES_LIMIT]


def summarize_kpis(kpis: Sequence[StaffKpi]) -> StaffKpiSummary:
    count = Decimal(len(kpis))
    return StaffKpiSummary(
        avg_on_time_rate=safe_div(sum((Decimal(k.on_time_rate) for k in kpis), ZERO), count),
        avg_rating=safe_div(sum((Decimal(k.avg_rating) for k in kpis), ZERO), count),
        total_orders_processed=sum(k.orders_processed for k in kpis),
        record_count=len(kpis),
    )


def store_kpis(
    kpis: Sequence[StaffKpi],
    staff_ids: frozenset,
    period: ReportPeriod,
    now: datetime,
) -> list[StaffKpi]:
    return filter_by_period([kpi for kpi in kpis if kpi.user_id in staff_ids], period, now, "start_date")


def compare_store(
    dataset: RecordSet,
    owner_id: TenantId,
    period: ReportPeriod,
    now: datetime,
    staff_ids: frozenset,
) -> StoreComparison:
    return StoreComparison(
        owner_id=owner_id,
        result=aggregate(dataset, owner_id, period, now),
        staff=summarize_kpis(store_kpis(dataset.kpis, staff_ids, period, now)),
    )


def compare(
    dataset: RecordSet,
    scopes: Sequence[TenantId],
    period: ReportPeriod,
    now: datetime,
    roster: Mapping[TenantId, frozenset[Hashable]] | None = None,
    *,
    max_workers: int = 1,
) -> list[StoreComparison]:
    """Aggregate each store in ``scopes`` independently, preserving input order.

    ``roster`` maps a store to the user ids of its staff; KPI records are
    attributed to a store through it. Stores missing from the roster fall back
    to KPI records tagged with the store's own ``owner_id``.
    """

    if not scopes:
        return []

    def staff_for(owner_id: TenantId) -> frozenset:
        if roster is not None and owner_id in roster:
            return frozenset(roster[owner_id])
        return frozenset(kpi.user_id for kpi in dataset.kpis if kpi.owner_id == owner_id)

    def run(owner_id: TenantId) -> StoreComparison:
        return compare_store(dataset, owner_id, period, now, staff_for(owner_id))

    if max_workers > 1 and len(scopes) > 1:
        with ThreadPoolExecutor(max_workers=min(max_workers, len(scopes))) as executor:
            return list(executor.map(run, scopes))
    return [run(owner_id) for owner_id in scopes]
