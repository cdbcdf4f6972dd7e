"""Top-line financial aggregation for one tenant scope and report period.

Both the single-store report and the multi-store comparison go through
``aggregate`` so the two views always agree on the figures they show.
"""

from __future__ import annotations

from collections.abc import Iterable, Sequence
from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal
from typing import TypeVar

from washledger.engine.filtering import earliest_instant, filter_by_period
from washledger.engine.periods import ReportPeriod
from washledger.engine.proration import ProrationContext, prorate_fixed_costs
from washledger.engine.records import (
    ZERO,
    AggregateResult,
    Order,
    ProfitChartDataPoint,
    RecordSet,
    ServiceRevenue,
    TenantId,
    VariableCost,
    q2,
)
from washledger.engine.series import build_profit_series

T = TypeVar("T")


@dataclass(frozen=True, slots=True)
class ScopedRecords:
    """Records of a dataset restricted to one tenant scope, not yet period filtered."""

    orders: list[Order]
    variable_costs: list[VariableCost]
    monthly_fixed_total: Decimal
    earliest_order_at: datetime | None


@dataclass(frozen=True, slots=True)
class FinancialReport:
    summary: AggregateResult
    series: list[ProfitChartDataPoint]


def normalize_scope(scope: TenantId | Iterable[TenantId]) -> frozenset:
    if isinstance(scope, (str, bytes)) or not isinstance(scope, Iterable):
        return frozenset({scope})
    return frozenset(scope)


def _owned_by(records: Iterable[T], owner_ids: frozenset) -> list[T]:
    return [record for record in records if record.owner_id in owner_ids]


def scope_records(dataset: RecordSet, scope: TenantId | Iterable[TenantId], now: datetime) -> ScopedRecords:
    owner_ids = normalize_scope(scope)
    orders = _owned_by(dataset.orders, owner_ids)
    return ScopedRecords(
        orders=orders,
        variable_costs=_owned_by(dataset.variable_costs, owner_ids),
        monthly_fixed_total=sum((item.amount for item in _owned_by(dataset.fixed_costs, owner_ids)), ZERO),
        earliest_order_at=earliest_instant(orders, "created_at", now.tzinfo),
    )


def revenue_by_service(orders: Sequence[Order]) -> tuple[ServiceRevenue, ...]:
    revenue: dict[str, Decimal] = {}
    counts: dict[str, int] = {}
    for order in orders:
        for line in order.items:
            revenue[line.service_name] = revenue.get(line.service_name, ZERO) + line.billed_amount
            counts[line.service_name] = counts.get(line.service_name, 0) + line.quantity

    rows = [ServiceRevenue(name=name, revenue=q2(amount), count=counts[name]) for name, amount in revenue.items()]
    # sorted() is stable, so equal revenues keep first-seen order.
    return tuple(sorted(rows, key=lambda row: row.revenue, reverse=True))


def aggregate(
    dataset: RecordSet,
    scope: TenantId | Iterable[TenantId],
    period: ReportPeriod,
    now: datetime,
) -> AggregateResult:
    """Revenue, costs, profit and service breakdown for ``scope`` over ``period``."""

    scoped = scope_records(dataset, scope, now)
    orders = filter_by_period(scoped.orders, period, now, "created_at")
    costs = filter_by_period(scoped.variable_costs, period, now, "date")
    fixed = prorate_fixed_costs(
        period,
        scoped.monthly_fixed_total,
        ProrationContext(now=now, earliest_record_at=scoped.earliest_order_at),
    )
    return AggregateResult(
        total_revenue=q2(sum((order.total_amount for order in orders), ZERO)),
        order_count=len(orders),
        total_variable_costs=q2(sum((cost.amount for cost in costs), ZERO)),
        prorated_fixed_costs=q2(fixed),
        revenue_by_service=revenue_by_service(orders),
    )


def profit_series(
    dataset: RecordSet,
    scope: TenantId | Iterable[TenantId],
    period: ReportPeriod,
    now: datetime,
) -> list[ProfitChartDataPoint]:
    scoped = scope_records(dataset, scope, now)
    return build_profit_series(
        period=period,
        now=now,
        orders=scoped.orders,
        variable_costs=scoped.variable_costs,
        monthly_fixed_total=scoped.monthly_fixed_total,
    )


def build_report(
    dataset: RecordSet,
    scope: TenantId | Iterable[TenantId],
    period: ReportPeriod,
    now: datetime,
) -> FinancialReport:
    return FinancialReport(
        summary=aggregate(dataset, scope, period, now),
        series=profit_series(dataset, scope, period, now),
    )
