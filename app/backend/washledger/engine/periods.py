"""Report period tokens and their resolution to absolute time ranges."""

from __future__ import annotations

import calendar
import enum
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from typing import Final


class ReportPeriod(str, enum.Enum):
    TODAY = "today"
    THIS_WEEK = "this_week"
    THIS_MONTH = "this_month"
    THIS_QUARTER = "this_quarter"
    THIS_YEAR = "this_year"
    ALL_TIME = "all_time"


@dataclass(frozen=True, slots=True)
class TimeRange:
    """Inclusive ``[start, end]`` interval in the calendar of ``start``."""

    start: datetime
    end: datetime

    def __post_init__(self) -> None:
        if self.end < self.start:
            raise ValueError("TimeRange end must not precede start.")

    def contains(self, instant: datetime) -> bool:
        return self.start <= instant <= self.end


class _Unbounded:
    __slots__ = ()

    def __repr__(self) -> str:
        return "UNBOUNDED"

    def __bool__(self) -> bool:
        return False


UNBOUNDED: Final = _Unbounded()

ResolvedRange = TimeRange | _Unbounded


def days_in_month(year: int, month: int) -> int:
    return calendar.monthrange(year, month)[1]


def start_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.min, tzinfo=value.tzinfo)


def end_of_day(value: datetime) -> datetime:
    return datetime.combine(value.date(), time.max, tzinfo=value.tzinfo)


def month_start(value: datetime) -> datetime:
    return datetime.combine(date(value.year, value.month, 1), time.min, tzinfo=value.tzinfo)


def month_end(value: datetime) -> datetime:
    last_day = days_in_month(value.year, value.month)
    return datetime.combine(date(value.year, value.month, last_day), time.max, tzinfo=value.tzinfo)


def add_months(value: datetime, months: int) -> datetime:
    """Shift to the first day of the month ``months`` away from ``value``."""

    index = value.year * 12 + (value.month - 1) + months
    year, month_zero = divmod(index, 12)
    return value.replace(year=year, month=month_zero + 1, day=1)


def months_between(earlier: datetime, later: datetime) -> int:
    """Calendar month distance, ignoring day-of-month."""

    return (later.year - earlier.year) * 12 + (later.month - earlier.month)


def week_start(now: datetime) -> datetime:
    # Monday-based week; Sunday belongs to the week that started six days earlier.
    offset = 6 if now.isoweekday() == 7 else now.isoweekday() - 1
    return start_of_day(now - timedelta(days=offset))


def resolve_period(period: ReportPeriod, now: datetime) -> ResolvedRange:
    """Map a period token and reference instant to an inclusive range.

    ``all_time`` resolves to ``UNBOUNDED``; callers treat it as "do not filter".
    """

    period = ReportPeriod(period)
    if period is ReportPeriod.TODAY:
        return TimeRange(start_of_day(now), end_of_day(now))
    if period is ReportPeriod.THIS_WEEK:
        start = week_start(now)
        return TimeRange(start, end_of_day(start + timedelta(days=6)))
    if period is ReportPeriod.THIS_MONTH:
        return TimeRange(month_start(now), month_end(now))
    if period is ReportPeriod.THIS_QUARTER:
        quarter = (now.month - 1) // 3
        first = now.replace(month=quarter * 3 + 1, day=1)
        last = now.replace(month=quarter * 3 + 3, day=1)
        return TimeRange(month_start(first), month_end(last))
    if period is ReportPeriod.THIS_YEAR:
        return TimeRange(
            datetime.combine(date(now.year, 1, 1), time.min, tzinfo=now.tzinfo),
            datetime.combine(date(now.year, 12, 31), time.max, tzinfo=now.tzinfo),
        )
    return UNBOUNDED
