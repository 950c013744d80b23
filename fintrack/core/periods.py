"""
Period token resolution.

Named periods ("this-month", "last-month", "this-year", "last-12-months")
resolve to inclusive [start, end] bounds where the end bound is the last
representable millisecond of the end day (23:59:59.999).
"""
import calendar
from dataclasses import dataclass
from datetime import date, datetime, time
from typing import Optional, Union, List, Tuple

from dateutil.relativedelta import relativedelta

from fintrack.models.enums import PeriodToken

END_OF_DAY = time(23, 59, 59, 999000)


@dataclass(frozen=True)
class DateRange:
    """Inclusive date window."""

    start: datetime
    end: datetime

    @property
    def start_date(self) -> date:
        return self.start.date()

    @property
    def end_date(self) -> date:
        return self.end.date()

    def contains(self, day: date) -> bool:
        return self.start_date <= day <= self.end_date

    @classmethod
    def from_dates(cls, start: date, end: date) -> "DateRange":
        return cls(
            start=datetime.combine(start, time.min),
            end=datetime.combine(end, END_OF_DAY),
        )


def month_start(day: date) -> date:
    return day.replace(day=1)


def month_end(day: date) -> date:
    return day.replace(day=calendar.monthrange(day.year, day.month)[1])


def month_key(day: date) -> str:
    """Return the "YYYY-MM" bucket key for a date."""
    return f"{day.year:04d}-{day.month:02d}"


def month_range(day: date) -> DateRange:
    """Whole calendar month containing ``day``."""
    return DateRange.from_dates(month_start(day), month_end(day))


def parse_month_key(key: str) -> DateRange:
    """Resolve a "YYYY-MM" key to its calendar month."""
    year, month = (int(part) for part in key.split("-"))
    return month_range(date(year, month, 1))


def last_n_month_keys(months: int, today: date) -> List[str]:
    """Month keys of the ``months`` calendar months ending at today's month, oldest first."""
    first = month_start(today)
    return [
        month_key(first - relativedelta(months=offset))
        for offset in range(months - 1, -1, -1)
    ]


def resolve_period(
    period: Union[PeriodToken, str], today: Optional[date] = None
) -> DateRange:
    """Resolve a named period token to concrete inclusive bounds."""
    token = PeriodToken(period)
    today = today or date.today()

    if token == PeriodToken.THIS_MONTH:
        return month_range(today)

    if token == PeriodToken.LAST_MONTH:
        return month_range(month_start(today) - relativedelta(months=1))

    if token == PeriodToken.THIS_YEAR:
        return DateRange.from_dates(date(today.year, 1, 1), date(today.year, 12, 31))

    # last-12-months: from the 1st of the month 11 months ago up to today
    start = month_start(today) - relativedelta(months=11)
    return DateRange.from_dates(start, today)


def previous_window(
    period: Union[PeriodToken, str], today: Optional[date] = None
) -> DateRange:
    """Resolve the window a period is compared against.

    this-month     -> last month
    last-month     -> the month two months ago
    this-year      -> last year
    last-12-months -> the 12-month block preceding it
    """
    token = PeriodToken(period)
    today = today or date.today()
    first = month_start(today)

    if token == PeriodToken.THIS_MONTH:
        return resolve_period(PeriodToken.LAST_MONTH, today)

    if token == PeriodToken.LAST_MONTH:
        return month_range(first - relativedelta(months=2))

    if token == PeriodToken.THIS_YEAR:
        return DateRange.from_dates(
            date(today.year - 1, 1, 1), date(today.year - 1, 12, 31)
        )

    start = first - relativedelta(months=23)
    end = month_end(first - relativedelta(months=12))
    return DateRange.from_dates(start, end)


def _explicit_range(start_date: Optional[date], end_date: Optional[date]) -> Optional[DateRange]:
    """The explicit [start, end] window, or None when neither bound is given."""
    if start_date is None and end_date is None:
        return None
    if start_date is None or end_date is None:
        raise ValueError("start_date and end_date must be given together")
    if start_date > end_date:
        raise ValueError("start_date must not be after end_date")
    return DateRange.from_dates(start_date, end_date)


def resolve_window(
    period: Optional[Union[PeriodToken, str]] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> Optional[DateRange]:
    """Resolve either an explicit [start, end] pair or a period token.

    An explicit pair wins over a token; returns None when neither is given.
    A single bound without the other raises ValueError.
    """
    window = _explicit_range(start_date, end_date)
    if window:
        return window
    if period:
        return resolve_period(period, today)
    return None


def previous_range(window: DateRange) -> DateRange:
    """Window of the same length ending the day before ``window`` starts."""
    days = (window.end_date - window.start_date).days
    end = window.start_date - relativedelta(days=1)
    return DateRange.from_dates(end - relativedelta(days=days), end)


def resolve_comparison(
    period: Optional[Union[PeriodToken, str]] = None,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    today: Optional[date] = None,
) -> Tuple[DateRange, DateRange]:
    """Resolve a (current, previous) pair of windows.

    An explicit [start, end] pair is compared against the same-length window
    right before it. Without any input the current month is used. A single
    bound without the other raises ValueError.
    """
    current = _explicit_range(start_date, end_date)
    if current:
        return current, previous_range(current)
    token = period or PeriodToken.THIS_MONTH
    return resolve_period(token, today), previous_window(token, today)
