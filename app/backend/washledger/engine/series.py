"""Time-bucketed revenue / cost / profit series for charts and exports."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from datetime import datetime, timedelta
from decimal import Decimal

from washledger.engine.filtering import filter_by_range, instant_span
from washledger.engine.periods import (
    ReportPeriod,
    TimeRange,
    add_months,
    end_of_day,
    month_end,
    month_start,
    resolve_period,
    start_of_day,
)
from washledger.engine.proration import prorate_for_bucket
from washledger.engine.records import (
    ZERO,
    Bucket,
    Granularity,
    Order,
    ProfitChartDataPoint,
    VariableCost,
    q2,
)

logger = logging.getLogger(__name__)

DAY_GRANULARITY_PERIODS = frozenset({ReportPeriod.TODAY, ReportPeriod.THIS_WEEK, ReportPeriod.THIS_MONTH})


def granularity_for(period: ReportPeriod) -> Granularity:
    if ReportPeriod(period) in DAY_GRANULARITY_PERIODS:
        return Granularity.DAY
    return Granularity.MONTH


def bucket_label(start: datetime, granularity: Granularity) -> str:
    if granularity is Granularity.DAY:
        return f"{start.day}/{start.month}"
    return f"{start.month}/{start.year}"


def series_range(
    period: ReportPeriod,
    now: datetime,
    activity: tuple[datetime, datetime] | None = None,
) -> TimeRange:
    """Window covered by the series.

    ``all_time`` runs from the month of the earliest dated order or variable
    cost to the month of ``now`` or of the latest record, whichever is later.
    Without activity it is the current month.
    """

    resolved = resolve_period(period, now)
    if isinstance(resolved, TimeRange):
        return resolved
    first, last = activity if activity is not None else (now, now)
    return TimeRange(month_start(min(first, now)), month_end(max(last, now)))


def _bucket_starts(time_range: TimeRange, granularity: Granularity) -> list[datetime]:
    if granularity is Granularity.DAY:
        first = start_of_day(time_range.start)
        count = (time_range.end.date() - first.date()).days + 1
        return [first + timedelta(days=offset) for offset in range(count)]

    first = month_start(time_range.start)
    count = (time_range.end.year - first.year) * 12 + (time_range.end.month - first.month) + 1
    return [add_months(first, offset) for offset in range(count)]


def build_buckets(time_range: TimeRange, granularity: Granularity) -> list[Bucket]:
    """Partition ``time_range`` into consecutive day or month buckets.

    Bucket ends are clipped to the range end.
    """

    granularity = Granularity(granularity)
    buckets: list[Bucket] = []
    for start in _bucket_starts(time_range, granularity):
        natural_end = end_of_day(start) if granularity is Granularity.DAY else month_end(start)
        buckets.append(
            Bucket(
                label=bucket_label(start, granularity),
                start=max(start, time_range.start),
                end=min(natural_end, time_range.end),
                granularity=granularity,
            )
        )
    return buckets


def bucket_point(
    bucket: Bucket,
    orders: Sequence[Order],
    variable_costs: Sequence[VariableCost],
    monthly_fixed_total: Decimal,
) -> ProfitChartDataPoint:
    window = TimeRange(bucket.start, bucket.end)
    revenue = sum((order.total_amount for order in filter_by_range(orders, window, "created_at")), ZERO)
    variable = sum((cost.amount for cost in filter_by_range(variable_costs, window, "date")), ZERO)
    return ProfitChartDataPoint(
        label=bucket.label,
        revenue=revenue,
        variable_costs=variable,
        fixed_costs=q2(prorate_for_bucket(bucket, monthly_fixed_total)),
    )


def build_profit_series(
    *,
    period: ReportPeriod,
    now: datetime,
    orders: Sequence[Order],
    variable_costs: Sequence[VariableCost],
    monthly_fixed_total: Decimal,
) -> list[ProfitChartDataPoint]:
    """One data point per bucket, zero-filled; empty buckets are kept."""

    activity = instant_span(((orders, "created_at"), (variable_costs, "date")), now.tzinfo)
    window = series_range(period, now, activity)
    granularity = granularity_for(period)
    buckets = build_buckets(window, granularity)
    logger.debug("Built %d %s buckets for %s", len(buckets), granularity.value, period)
    return [bucket_point(bucket, orders, variable_costs, monthly_fixed_total) for bucket in buckets]
