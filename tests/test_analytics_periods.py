from datetime import datetime, timedelta

import pytest

from clinic_api.application.use_cases.analytics.periods import (
    AnalyticsQuery,
    DateRange,
    Granularity,
    TrendPoint,
    bucket_label,
    build_trend,
    count_trend,
    days_in_range,
    percent_change,
    previous_period,
    rate,
    resolve_branch_scope,
    resolve_date_range,
    round_half_up,
)
from clinic_api.domain.entities import Principal, Role


def test_daily_trend_sums_per_day():
    samples = [
        (datetime(2024, 1, 5, 9, 0), 100.0),
        (datetime(2024, 1, 6, 10, 0), 30.0),
        (datetime(2024, 1, 5, 17, 45), 50.5),
    ]

    assert build_trend(samples, Granularity.DAILY) == [
        TrendPoint(date="2024-01-05", value=150.5),
        TrendPoint(date="2024-01-06", value=30),
    ]


def test_count_trend_counts_moments():
    moments = [datetime(2024, 1, 5, 8), datetime(2024, 1, 5, 12), datetime(2024, 1, 6, 9)]

    assert count_trend(moments, Granularity.DAILY) == [
        TrendPoint(date="2024-01-05", value=2),
        TrendPoint(date="2024-01-06", value=1),
    ]


def test_empty_trend():
    assert build_trend([], Granularity.MONTHLY) == []


@pytest.mark.parametrize(
    ("moment", "expected"),
    [
        (datetime(2024, 1, 7, 0, 0), "2024-W01"),
        (datetime(2024, 1, 13, 23, 59), "2024-W01"),
        (datetime(2024, 1, 14, 8, 0), "2024-W02"),
        (datetime(2024, 1, 3, 12, 0), "2023-W53"),
    ],
)
def test_weekly_labels_start_on_sunday(moment, expected):
    assert bucket_label(moment, Granularity.WEEKLY) == expected


def test_monthly_label():
    assert bucket_label(datetime(2024, 2, 29, 23, 0), Granularity.MONTHLY) == "2024-02"


def test_query_defaults_to_daily_buckets():
    assert AnalyticsQuery().bucket_granularity is Granularity.DAILY
    assert AnalyticsQuery(granularity=Granularity.WEEKLY).bucket_granularity is Granularity.WEEKLY


def test_resolve_date_range_defaults_to_last_thirty_days():
    now = datetime(2024, 3, 31, 12, 0)

    date_range = resolve_date_range(AnalyticsQuery(), now=now)

    assert date_range == DateRange(start=now - timedelta(days=30), end=now)


def test_resolve_date_range_covers_whole_end_day():
    date_range = resolve_date_range(AnalyticsQuery(date_from="2024-03-01", date_to="2024-03-10"))

    assert date_range.start == datetime(2024, 3, 1)
    assert date_range.end == datetime(2024, 3, 10, 23, 59, 59, 999999)
    assert days_in_range(date_range) == 10


def test_previous_period_has_equal_length_and_ends_before_start():
    current = DateRange(start=datetime(2024, 3, 11), end=datetime(2024, 3, 21))

    previous = previous_period(current)

    assert previous.start == datetime(2024, 3, 1)
    assert previous.end == datetime(2024, 3, 10, 23, 59, 59, 999999)


def test_percent_change():
    assert percent_change(150, 100) == 50.0
    assert percent_change(1, 3) == -66.67
    assert percent_change(10, 0) == 0
    assert percent_change(0, 0) == 0


def test_rate_rounds_half_up_to_whole_percent():
    assert rate(3, 4) == 75
    assert rate(1, 3) == 33
    assert rate(2, 3) == 67
    assert rate(1, 8) == 13
    assert rate(5, 0) == 0


def test_round_half_up():
    assert round_half_up(2.5) == 3
    assert round_half_up(0.125, 2) == 0.13
    assert round_half_up(-2.345, 2) == -2.34
    assert round_half_up(-2.5) == -2
    assert round_half_up(-2.346, 2) == -2.35


def _principal(role, branches=()):
    return Principal(user_id="u1", tenant_id="t1", role=role, branch_ids=tuple(branches))


def test_privileged_roles_read_every_branch():
    admin = _principal(Role.ADMIN)

    assert resolve_branch_scope(admin, None) is None
    assert resolve_branch_scope(admin, "B2") == ["B2"]


def test_other_roles_are_limited_to_their_branches():
    reception = _principal(Role.RECEPTION, ["B1", "B3"])

    assert resolve_branch_scope(reception, None) == ["B1", "B3"]
    assert resolve_branch_scope(reception, "B1") == ["B1"]
    assert resolve_branch_scope(reception, "B2") == []
    assert resolve_branch_scope(_principal(Role.ACCOUNTANT), None) == []
