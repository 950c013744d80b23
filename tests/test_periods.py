from datetime import date, datetime

import pytest

from fintrack.core.periods import (
    DateRange,
    last_n_month_keys,
    parse_month_key,
    previous_window,
    resolve_comparison,
    resolve_period,
    resolve_window,
)
from fintrack.models.enums import PeriodToken


TODAY = date(2024, 3, 15)


class TestResolvePeriod:
    """Tests for named period resolution."""

    def test_this_month(self):
        window = resolve_period("this-month", TODAY)
        assert window.start == datetime(2024, 3, 1)
        assert window.end == datetime(2024, 3, 31, 23, 59, 59, 999000)

    def test_last_month_in_leap_year(self):
        window = resolve_period(PeriodToken.LAST_MONTH, TODAY)
        assert window.start == datetime(2024, 2, 1)
        assert window.end == datetime(2024, 2, 29, 23, 59, 59, 999000)

    def test_this_year(self):
        window = resolve_period(PeriodToken.THIS_YEAR, TODAY)
        assert window.start_date == date(2024, 1, 1)
        assert window.end_date == date(2024, 12, 31)

    def test_last_12_months_ends_today(self):
        window = resolve_period(PeriodToken.LAST_12_MONTHS, TODAY)
        assert window.start_date == date(2023, 4, 1)
        assert window.end_date == TODAY

    def test_last_month_across_year_boundary(self):
        window = resolve_period(PeriodToken.LAST_MONTH, date(2024, 1, 10))
        assert window.start_date == date(2023, 12, 1)
        assert window.end_date == date(2023, 12, 31)

    def test_unknown_token_raises(self):
        with pytest.raises(ValueError):
            resolve_period("next-week", TODAY)


class TestPreviousWindow:
    """Tests for the comparison window of each period."""

    def test_this_month_compares_to_last_month(self):
        window = previous_window(PeriodToken.THIS_MONTH, TODAY)
        assert (window.start_date, window.end_date) == (date(2024, 2, 1), date(2024, 2, 29))

    def test_last_month_compares_to_two_months_ago(self):
        window = previous_window(PeriodToken.LAST_MONTH, TODAY)
        assert (window.start_date, window.end_date) == (date(2024, 1, 1), date(2024, 1, 31))

    def test_this_year_compares_to_last_year(self):
        window = previous_window(PeriodToken.THIS_YEAR, TODAY)
        assert (window.start_date, window.end_date) == (date(2023, 1, 1), date(2023, 12, 31))

    def test_last_12_months_compares_to_preceding_block(self):
        window = previous_window(PeriodToken.LAST_12_MONTHS, TODAY)
        assert window.start_date == date(2022, 4, 1)
        assert window.end_date == date(2023, 3, 31)


class TestWindows:
    """Tests for explicit ranges and month helpers."""

    def test_explicit_pair_wins_over_token(self):
        window = resolve_window("this-year", date(2024, 2, 1), date(2024, 2, 10), TODAY)
        assert (window.start_date, window.end_date) == (date(2024, 2, 1), date(2024, 2, 10))

    def test_no_input_gives_none(self):
        assert resolve_window(today=TODAY) is None

    def test_single_bound_is_rejected(self):
        with pytest.raises(ValueError):
            resolve_window("this-month", start_date=date(2024, 2, 1), today=TODAY)
        with pytest.raises(ValueError):
            resolve_comparison(end_date=date(2024, 2, 10), today=TODAY)

    def test_reversed_range_is_rejected(self):
        with pytest.raises(ValueError):
            resolve_window(start_date=date(2024, 2, 10), end_date=date(2024, 2, 1))

    def test_comparison_of_explicit_range(self):
        current, previous = resolve_comparison(
            start_date=date(2024, 3, 11), end_date=date(2024, 3, 20)
        )
        assert (current.start_date, current.end_date) == (date(2024, 3, 11), date(2024, 3, 20))
        assert (previous.start_date, previous.end_date) == (date(2024, 3, 1), date(2024, 3, 10))

    def test_comparison_defaults_to_this_month(self):
        current, previous = resolve_comparison(today=TODAY)
        assert current.start_date == date(2024, 3, 1)
        assert previous.start_date == date(2024, 2, 1)

    def test_last_n_month_keys_oldest_first(self):
        assert last_n_month_keys(3, date(2024, 1, 31)) == ["2023-11", "2023-12", "2024-01"]

    def test_parse_month_key(self):
        window = parse_month_key("2023-02")
        assert (window.start_date, window.end_date) == (date(2023, 2, 1), date(2023, 2, 28))

    def test_contains_is_inclusive(self):
        window = DateRange.from_dates(date(2024, 3, 1), date(2024, 3, 31))
        assert window.contains(date(2024, 3, 31))
        assert not window.contains(date(2024, 4, 1))
