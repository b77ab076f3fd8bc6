from datetime import date, datetime, time

import pytest

from pulse_analytics.core.errors import InvalidCustomRange, InvalidPeriod
from pulse_analytics.reports import periods as P

NOW = datetime(2026, 6, 15, 12, 0, 0)


def test_today_starts_at_midnight_and_groups_by_hour():
    window = P.resolve_period(P.TODAY, now=NOW)
    assert window.start == datetime(2026, 6, 15)
    assert window.end == NOW
    assert window.bucket == "hour"


def test_last_30_days_window():
    window = P.resolve_period(P.LAST_30_DAYS, now=NOW)
    assert window.start == datetime(2026, 5, 16, 12, 0, 0)
    assert window.bucket == "week"
    assert len(window.sub_ranges) == 1


def test_last_3_months_is_split_per_calendar_month():
    window = P.resolve_period(P.LAST_3_MONTHS, now=NOW)
    assert window.start == datetime(2026, 3, 15, 12, 0, 0)
    labels = [s.label for s in window.sub_ranges]
    assert labels == ["2026-03", "2026-04", "2026-05", "2026-06"]
    assert window.sub_ranges[0].start == window.start
    assert window.sub_ranges[-1].end == NOW
    assert window.sub_ranges[1].start == datetime(2026, 4, 1)
    assert window.sub_ranges[1].end == datetime.combine(date(2026, 4, 30), time.max)


def test_last_365_days_is_split_per_calendar_year():
    window = P.resolve_period(P.LAST_365_DAYS, now=NOW)
    assert [s.label for s in window.sub_ranges] == ["2025", "2026"]
    assert window.sub_ranges[0].start == datetime(2025, 6, 15, 12, 0, 0)
    assert window.sub_ranges[1].start == datetime(2026, 1, 1)


def test_all_time_is_unbounded():
    window = P.resolve_period(P.ALL_TIME, now=NOW)
    assert window.start is None
    assert window.end == NOW
    assert window.bucket == "year"


@pytest.mark.parametrize("raw", [
    "2026-03-01 to 2026-03-10",
    "2026-03-01 - 2026-03-10",
    "03/01/2026 - 03/10/2026",
    "March 1, 2026 to March 10, 2026",
])
def test_custom_range_formats(raw):
    window = P.resolve_period(P.CUSTOM, raw, now=NOW)
    assert window.start == datetime(2026, 3, 1)
    assert window.end == datetime.combine(date(2026, 3, 10), time.max)


def test_custom_single_day():
    assert P.parse_custom_range("2026-03-05") == (date(2026, 3, 5), date(2026, 3, 5))


def test_custom_range_ending_before_start_is_rejected():
    with pytest.raises(InvalidCustomRange):
        P.resolve_period(P.CUSTOM, "2026-03-10 to 2026-03-01", now=NOW)


@pytest.mark.parametrize("raw", ["", "   ", "yesterday", "2026-02-30 to 2026-03-01"])
def test_custom_range_garbage_is_rejected(raw):
    with pytest.raises(InvalidCustomRange) as exc:
        P.resolve_period(P.CUSTOM, raw, now=NOW)
    assert exc.value.field == "custom_date"


def test_unknown_token_is_rejected():
    with pytest.raises(InvalidPeriod) as exc:
        P.resolve_period("last-decade", now=NOW)
    assert exc.value.field == "period"


def test_previous_custom_window_has_the_same_length():
    prev = P.previous_period(P.CUSTOM, "2026-03-01 to 2026-03-10", now=NOW)
    assert prev.start == datetime(2026, 2, 19)
    assert prev.end == datetime.combine(date(2026, 2, 28), time.max)


def test_previous_today_is_yesterday():
    prev = P.previous_period(P.TODAY, now=NOW)
    assert prev.start == datetime(2026, 6, 14)
    assert prev.end.date() == date(2026, 6, 14)


def test_previous_last_3_months():
    prev = P.previous_period(P.LAST_3_MONTHS, now=NOW)
    assert prev.start == datetime(2025, 12, 15, 12, 0, 0)
    assert prev.end == datetime(2026, 3, 15, 12, 0, 0)


def test_sub_months_clamps_day():
    assert P.sub_months(datetime(2026, 3, 31), 1) == datetime(2026, 2, 28)
    assert P.sub_months(datetime(2026, 1, 15), 2) == datetime(2025, 11, 15)


def test_long_custom_range():
    assert P.is_long_custom_range("2024-01-01 to 2025-06-01")
    assert not P.is_long_custom_range("2025-01-01 to 2025-12-31")
    assert not P.is_long_custom_range("")


def test_comparison_window_custom_is_used_as_is():
    window = P.comparison_window(P.PeriodSelection(P.CUSTOM, "2025-01-01 to 2025-01-31"), now=NOW)
    assert window.start == datetime(2025, 1, 1)
    assert window.end.date() == date(2025, 1, 31)


def test_comparison_window_token_uses_previous_window():
    window = P.comparison_window(P.PeriodSelection(P.LAST_30_DAYS), now=NOW)
    assert window.end == datetime(2026, 5, 16, 12, 0, 0)
