"""Period filtering over dated records.

Records whose date field is missing or cannot be parsed are dropped rather
than raising: a single corrupt row must not block a whole financial report.
"""

from __future__ import annotations

import logging
from collections.abc import Iterable, Mapping
from datetime import date, datetime, time, tzinfo
from typing import Any, TypeVar

from washledger.engine.periods import ReportPeriod, ResolvedRange, TimeRange, resolve_period

logger = logging.getLogger(__name__)

T = TypeVar("T")


def _field_value(record: Any, date_field: str) -> Any:
    if isinstance(record, Mapping):
        return record.get(date_field)
    return getattr(record, date_field, None)


def _parse(value: Any) -> datetime | None:
    if isinstance(value, datetime):
        return value
    if isinstance(value, date):
        return datetime.combine(value, time.min)
    if isinstance(value, str):
        text = value.strip()
        if not text:
            return None
        if text.endswith(("Z", "z")):
            text = f"{text[:-1]}+00:00"
        try:
            return datetime.fromisoformat(text)
        except ValueError:
            return None
    return None


def coerce_instant(value: Any, reference_tz: tzinfo | None) -> datetime | None:
    """Parse ``value`` into an instant comparable with the reference calendar.

    Naive values are read in ``reference_tz``; aware values are converted to it.
    With a naive reference, aware values are moved to system local time.
    """

    parsed = _parse(value)
    if parsed is None:
        return None
    if reference_tz is None:
        if parsed.tzinfo is None:
            return parsed
        return parsed.astimezone().replace(tzinfo=None)
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=reference_tz)
    return parsed.astimezone(reference_tz)


def record_instant(record: Any, date_field: str, reference_tz: tzinfo | None) -> datetime | None:
    return coerce_instant(_field_value(record, date_field), reference_tz)


def filter_by_range(records: Iterable[T], time_range: ResolvedRange, date_field: str) -> list[T]:
    """Keep records whose ``date_field`` falls inside ``time_range`` (inclusive)."""

    if not isinstance(time_range, TimeRange):
        return list(records)

    reference_tz = time_range.start.tzinfo
    kept: list[T] = []
    for record in records:
        instant = record_instant(record, date_field, reference_tz)
        if instant is None:
            logger.debug("Skipping record with unusable %s: %r", date_field, record)
            continue
        if time_range.contains(instant):
            kept.append(record)
    return kept


def filter_by_period(records: Iterable[T], period: ReportPeriod, now: datetime, date_field: str) -> list[T]:
    return filter_by_range(records, resolve_period(period, now), date_field)


def _instants(records: Iterable[Any], date_field: str, reference_tz: tzinfo | None) -> list[datetime]:
    return [
        instant
        for instant in (record_instant(record, date_field, reference_tz) for record in records)
        if instant is not None
    ]


def earliest_instant(records: Iterable[Any], date_field: str, reference_tz: tzinfo | None) -> datetime | None:
    instants = _instants(records, date_field, reference_tz)
    return min(instants) if instants else None


def instant_span(
    sources: Iterable[tuple[Iterable[Any], str]],
    reference_tz: tzinfo | None,
) -> tuple[datetime, datetime] | None:
    """Earliest and latest usable instant across ``(records, date_field)`` pairs."""

    instants = [
        instant for records, date_field in sources for instant in _instants(records, date_field, reference_tz)
    ]
    if not instants:
        return None
    return min(instants), max(instants)
