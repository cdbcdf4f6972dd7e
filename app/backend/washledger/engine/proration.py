"""Conversion of monthly fixed-cost totals to report-window amounts."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from decimal import Decimal

from washledger.engine.periods import ReportPeriod, days_in_month, months_between
from washledger.engine.records import Bucket, Granularity


@dataclass(frozen=True, slots=True)
class ProrationContext:
    now: datetime
    # Earliest order in the reported scope; anchors the all_time window.
    earliest_record_at: datetime | None = None


def _daily(monthly_total: Decimal, reference: datetime) -> Decimal:
    return monthly_total / Decimal(days_in_month(reference.year, reference.month))


def elapsed_months(now: datetime) -> Decimal:
    """Whole months elapsed this year plus the fraction of the current month."""

    month_fraction = Decimal(now.day) / Decimal(days_in_month(now.year, now.month))
    return Decimal(now.month - 1) + month_fraction


def prorate_fixed_costs(period: ReportPeriod, monthly_total: Decimal, context: ProrationContext) -> Decimal:
    """Fixed costs attributable to ``period``.

    Quarter and year figures are linear multiples of one month and ignore the
    day-count differences between months.
    """

    period = ReportPeriod(period)
    now = context.now
    if period is ReportPeriod.TODAY:
        return _daily(monthly_total, now)
    if period is ReportPeriod.THIS_WEEK:
        return _daily(monthly_total, now) * 7
    if period is ReportPeriod.THIS_MONTH:
        return monthly_total
    if period is ReportPeriod.THIS_QUARTER:
        return monthly_total * 3
    if period is ReportPeriod.THIS_YEAR:
        return monthly_total * elapsed_months(now)

    if context.earliest_record_at is None:
        return monthly_total
    span = months_between(context.earliest_record_at, now) + 1
    return monthly_total * max(1, span)


def prorate_for_bucket(bucket: Bucket, monthly_total: Decimal) -> Decimal:
    if bucket.granularity is Granularity.DAY:
        return _daily(monthly_total, bucket.start)
    return monthly_total
