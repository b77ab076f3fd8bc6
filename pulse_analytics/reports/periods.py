# pulse_analytics/reports/periods.py
"""
Named dashboard periods.

A period token (plus a custom range string for `custom`) resolves to a
concrete window and to the granularity the NPS chart groups it by. Windows
longer than a month are split into calendar sub-ranges so NPS is computed per
calendar unit and never averaged across buckets of different size.

All datetimes are naive UTC, like the `updated_at` column they are compared to.
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import date, datetime, time, timedelta, timezone
from typing import Optional

from dateutil.parser import parse as dateutil_parse
from dateutil.relativedelta import relativedelta

from pulse_analytics.core.errors import InvalidCustomRange, InvalidPeriod

TODAY = "today"
LAST_30_DAYS = "last-30-days"
LAST_3_MONTHS = "last-3-months"
LAST_365_DAYS = "last-365-days"
ALL_TIME = "all-time"
CUSTOM = "custom"

PERIODS = (TODAY, LAST_30_DAYS, LAST_3_MONTHS, LAST_365_DAYS, ALL_TIME, CUSTOM)

BUCKETS = {
    TODAY: "hour",
    LAST_30_DAYS: "week",
    LAST_3_MONTHS: "month",
    LAST_365_DAYS: "year",
    ALL_TIME: "year",
    CUSTOM: "custom",
}

_SEPARATORS = (" to ", " - ")


def utcnow() -> datetime:
    return datetime.now(timezone.utc).replace(tzinfo=None)


@dataclass(frozen=True)
class PeriodSelection:
    token: str
    custom_date: str = ""


@dataclass(frozen=True)
class SubRange:
    label: str
    start: Optional[datetime]
    end: datetime


@dataclass(frozen=True)
class ResolvedPeriod:
    token: str
    start: Optional[datetime]  # None = unbounded
    end: datetime
    bucket: str
    sub_ranges: tuple[SubRange, ...] = ()


# ---------------- helpers ----------------

def _start_of_day(d: date) -> datetime:
    return datetime.combine(d, time.min)


def _end_of_day(d: date) -> datetime:
    return datetime.combine(d, time.max)


def sub_months(moment: datetime, months: int) -> datetime:
    """Calendar month arithmetic, clamping the day to the target month length."""
    return moment - relativedelta(months=months)


def _parse_date(raw: str) -> date:
    try:
        return dateutil_parse(raw.strip()).date()
    except (ValueError, OverflowError):
        raise InvalidCustomRange(f"Unparseable date in custom range: {raw!r}", field="custom_date") from None


def parse_custom_range(custom_date: Optional[str]) -> tuple[date, date]:
    """
    Accepts `<date> to <date>`, `<date> - <date>` or a single date, each side
    in any format dateutil reads (`2026-03-01`, `03/01/2026`, ...).
    """
    if not custom_date or not custom_date.strip():
        raise InvalidCustomRange("A custom period needs a date range", field="custom_date")

    text = custom_date.strip()
    for sep in _SEPARATORS:
        if sep in text:
            first, _, last = text.partition(sep)
            start, end = _parse_date(first), _parse_date(last)
            break
    else:
        start = end = _parse_date(text)

    if end < start:
        raise InvalidCustomRange("The custom range ends before it starts", field="custom_date")
    return start, end


def custom_span_days(custom_date: Optional[str]) -> int:
    """Days between the first and the last day of a custom range."""
    start, end = parse_custom_range(custom_date)
    return (end - start).days


def is_long_custom_range(custom_date: Optional[str]) -> bool:
    """True for custom ranges spanning more than a year (comparison is suppressed)."""
    if not custom_date:
        return False
    return custom_span_days(custom_date) > 365


def _month_ranges(start: datetime, end: datetime) -> tuple[SubRange, ...]:
    out = []
    cursor = start.replace(day=1, hour=0, minute=0, second=0, microsecond=0)
    while cursor <= end:
        next_month = cursor + relativedelta(months=1)
        month_end = next_month - timedelta(microseconds=1)
        out.append(SubRange(f"{cursor:%Y-%m}", max(cursor, start), min(month_end, end)))
        cursor = next_month
    return tuple(out)


def _year_ranges(start: datetime, end: datetime) -> tuple[SubRange, ...]:
    out = []
    for year in range(start.year, end.year + 1):
        year_start = datetime(year, 1, 1)
        year_end = _end_of_day(date(year, 12, 31))
        out.append(SubRange(str(year), max(year_start, start), min(year_end, end)))
    return tuple(out)


def _window(token: str, start: Optional[datetime], end: datetime) -> ResolvedPeriod:
    bucket = BUCKETS[token]
    if token == LAST_3_MONTHS:
        subs = _month_ranges(start, end)
    elif token == LAST_365_DAYS:
        subs = _year_ranges(start, end)
    else:
        subs = (SubRange(token, start, end),)
    return ResolvedPeriod(token=token, start=start, end=end, bucket=bucket, sub_ranges=subs)


def _ensure_token(token: str) -> str:
    if token not in PERIODS:
        raise InvalidPeriod(f"Unknown period: {token!r}", field="period")
    return token


# ---------------- public API ----------------

def resolve_period(token: str, custom_date: Optional[str] = "", now: Optional[datetime] = None) -> ResolvedPeriod:
    _ensure_token(token)
    now = now or utcnow()

    if token == TODAY:
        return _window(token, _start_of_day(now.date()), now)
    if token == LAST_30_DAYS:
        return _window(token, now - timedelta(days=30), now)
    if token == LAST_3_MONTHS:
        return _window(token, sub_months(now, 3), now)
    if token == LAST_365_DAYS:
        return _window(token, now - timedelta(days=365), now)
    if token == ALL_TIME:
        return _window(token, None, now)

    first, last = parse_custom_range(custom_date)
    return _window(token, _start_of_day(first), _end_of_day(last))


def previous_period(token: str, custom_date: Optional[str] = "", now: Optional[datetime] = None) -> ResolvedPeriod:
    """The window immediately before the one `token` resolves to."""
    _ensure_token(token)
    now = now or utcnow()

    if token == TODAY:
        yesterday = now.date() - timedelta(days=1)
        start, end = _start_of_day(yesterday), _end_of_day(yesterday)
    elif token == LAST_30_DAYS:
        start, end = now - timedelta(days=60), now - timedelta(days=30)
    elif token == LAST_3_MONTHS:
        start, end = sub_months(now, 6), sub_months(now, 3)
    elif token == LAST_365_DAYS:
        start, end = now - timedelta(days=730), now - timedelta(days=365)
    elif token == ALL_TIME:
        start, end = None, now
    else:
        first, last = parse_custom_range(custom_date)
        length = (last - first).days + 1
        prev_last = first - timedelta(days=1)
        prev_first = prev_last - timedelta(days=length - 1)
        start, end = _start_of_day(prev_first), _end_of_day(prev_last)

    return ResolvedPeriod(token=token, start=start, end=end, bucket=BUCKETS[token],
                          sub_ranges=(SubRange(token, start, end),))


def comparison_window(comparison: PeriodSelection, now: Optional[datetime] = None) -> ResolvedPeriod:
    """
    Explicit comparison chosen in the dashboard. A custom comparison is used
    as is; any other token compares against its previous window.
    """
    if comparison.token == CUSTOM:
        return resolve_period(CUSTOM, comparison.custom_date, now=now)
    return previous_period(comparison.token, comparison.custom_date, now=now)
