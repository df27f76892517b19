"""Date range, bucketing and rounding helpers shared by the analytics reports."""

from __future__ import annotations

import math
from collections import defaultdict
from collections.abc import Iterable
from dataclasses import dataclass
from datetime import datetime, timedelta
from decimal import ROUND_FLOOR, Decimal
from enum import Enum

from clinic_api.domain.entities import Principal
from clinic_api.utils import ensure_app_naive_datetime, now_in_app_naive_datetime, parse_app_datetime

DEFAULT_RANGE_DAYS = 30


class Granularity(str, Enum):
    DAILY = "daily"
    WEEKLY = "weekly"
    MONTHLY = "monthly"


@dataclass(frozen=True)
class AnalyticsQuery:
    """Filters accepted by every analytics report."""

    date_from: str | None = None
    date_to: str | None = None
    granularity: Granularity | None = None
    branch_id: str | None = None

    @property
    def bucket_granularity(self) -> Granularity:
        """Granularity used to bucket trends; daily when none was requested."""

        return self.granularity or Granularity.DAILY


@dataclass(frozen=True)
class DateRange:
    """Inclusive window expressed as naive app-timezone datetimes."""

    start: datetime
    end: datetime

    @property
    def duration(self) -> timedelta:
        return self.end - self.start


@dataclass
class TrendPoint:
    date: str
    value: float


def resolve_date_range(query: AnalyticsQuery, *, now: datetime | None = None) -> DateRange:
    """Return the requested window, defaulting to the last 30 days."""

    current = now or now_in_app_naive_datetime()
    start = ensure_app_naive_datetime(parse_app_datetime(query.date_from))
    end = ensure_app_naive_datetime(parse_app_datetime(query.date_to, end_of_day=True))
    return DateRange(
        start=start or current - timedelta(days=DEFAULT_RANGE_DAYS),
        end=end or current,
    )


def previous_period(date_range: DateRange) -> DateRange:
    """Return the window of equal length ending one microsecond before ``date_range``."""

    return DateRange(
        start=date_range.start - date_range.duration,
        end=date_range.start - timedelta(microseconds=1),
    )


def days_in_range(date_range: DateRange) -> int:
    return math.ceil(date_range.duration.total_seconds() / 86400)


def bucket_label(moment: datetime, granularity: Granularity) -> str:
    """Map ``moment`` to its trend bucket label.

    Weekly buckets start on Sunday and are labelled with the Sunday-based
    week number of the week start, e.g. ``2024-W01``.
    """

    if granularity is Granularity.WEEKLY:
        week_start = (moment - timedelta(days=(moment.weekday() + 1) % 7)).date()
        return f"{week_start.year}-W{int(week_start.strftime('%U')):02d}"
    if granularity is Granularity.MONTHLY:
        return moment.strftime("%Y-%m")
    return moment.strftime("%Y-%m-%d")


def build_trend(
    samples: Iterable[tuple[datetime, float]], granularity: Granularity
) -> list[TrendPoint]:
    """Sum ``(timestamp, value)`` samples per bucket, sorted by label."""

    buckets: defaultdict[str, float] = defaultdict(float)
    for moment, value in samples:
        buckets[bucket_label(moment, granularity)] += value
    return [
        TrendPoint(date=label, value=_plain_number(buckets[label]))
        for label in sorted(buckets)
    ]


def count_trend(moments: Iterable[datetime], granularity: Granularity) -> list[TrendPoint]:
    return build_trend(((moment, 1) for moment in moments), granularity)


def round_half_up(value: float, digits: int = 0) -> float:
    """Round to ``digits`` places with halves going toward positive infinity."""

    quantum = Decimal(1).scaleb(-digits)
    shifted = Decimal(str(value)) + quantum / 2
    return float(shifted.quantize(quantum, rounding=ROUND_FLOOR))


def percent_change(current: float, previous: float) -> float:
    """Change versus the previous period in percent, 0 when previous is 0."""

    if previous <= 0:
        return 0
    return round_half_up((current - previous) / previous * 100, 2)


def rate(part: float, whole: float) -> int:
    """Whole-number percentage of ``part`` over ``whole`` (0 for an empty whole)."""

    if whole <= 0:
        return 0
    return int(round_half_up(part / whole * 100))


def resolve_branch_scope(principal: Principal, branch_id: str | None) -> list[str] | None:
    """Return the branches a report may read, or ``None`` for the whole tenant.

    Privileged roles may pick any branch. Everyone else is limited to their
    assigned branches: a requested branch outside that set yields no branch
    at all rather than widening access.
    """

    if principal.is_privileged():
        return [branch_id] if branch_id else None

    assigned = list(principal.branch_ids)
    if branch_id:
        return [branch_id] if branch_id in assigned else []
    return assigned


def _plain_number(value: float) -> float:
    if isinstance(value, float) and value.is_integer():
        return int(value)
    return value


__all__ = [
    "AnalyticsQuery",
    "DEFAULT_RANGE_DAYS",
    "DateRange",
    "Granularity",
    "TrendPoint",
    "bucket_label",
    "build_trend",
    "count_trend",
    "days_in_range",
    "percent_change",
    "previous_period",
    "rate",
    "resolve_branch_scope",
    "resolve_date_range",
    "round_half_up",
]
