"""
Aggregations over dated income/expense records.

All functions here are pure: they take already-fetched records and never
touch the database, so re-running them over the same records gives the same
output.
"""
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Protocol

from fintrack.core.periods import last_n_month_keys, month_key
from fintrack.schemas.analytics import CategorySlice, MonthlyEvolutionPoint, get_chart_color

MAX_BREAKDOWN_CATEGORIES = 10


class AmountRecord(Protocol):
    category: str
    amount: int
    date: date


def sum_amounts(records: Iterable[AmountRecord]) -> int:
    return sum(int(r.amount) for r in records)


def percentage_change(current: float, previous: float) -> float:
    """Percentage change from previous to current, rounded to 2 decimals.

    A zero previous value yields 100 when current is positive, else 0.
    """
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / previous * 100, 2)


def balance_change(current: float, previous: float) -> float:
    """Like percentage_change, but against |previous| so sign follows direction."""
    if previous == 0:
        return 100.0 if current > 0 else 0.0
    return round((current - previous) / abs(previous) * 100, 2)


def totals_by_category(records: Iterable[AmountRecord]) -> Dict[str, int]:
    """Sum amounts per category label, keeping first-seen order."""
    totals: Dict[str, int] = {}
    for record in records:
        totals[record.category] = totals.get(record.category, 0) + int(record.amount)
    return totals


def category_breakdown(
    records: Iterable[AmountRecord],
    icons: Optional[Dict[str, str]] = None,
    limit: int = MAX_BREAKDOWN_CATEGORIES,
) -> List[CategorySlice]:
    """Per-category totals with percentage of the grand total.

    Colors follow first-seen category order; the result is sorted by value
    descending and truncated to ``limit`` categories.
    """
    icons = icons or {}
    totals = totals_by_category(records)
    grand_total = sum(totals.values())

    slices = [
        CategorySlice(
            name=name,
            percentage=round(value / grand_total * 100, 2) if grand_total > 0 else 0.0,
            color=get_chart_color(index),
            icon=icons.get(name),
            value=value,
        )
        for index, (name, value) in enumerate(totals.items())
    ]
    slices.sort(key=lambda s: s.value, reverse=True)
    return slices[:limit]


def monthly_totals(records: Iterable[AmountRecord]) -> Dict[str, int]:
    """Sum amounts per "YYYY-MM" month."""
    totals: Dict[str, int] = defaultdict(int)
    for record in records:
        totals[month_key(record.date)] += int(record.amount)
    return dict(totals)


def monthly_evolution(
    incomes: Iterable[AmountRecord],
    expenses: Iterable[AmountRecord],
    months: int,
    today: date,
) -> List[MonthlyEvolutionPoint]:
    """Income, expense and balance for each of the last ``months`` months.

    Every month in the window gets a bucket (zero-filled), oldest first.
    Records outside the window are ignored.
    """
    keys = last_n_month_keys(months, today)
    income_by_month = monthly_totals(incomes)
    expense_by_month = monthly_totals(expenses)

    points = []
    for key in keys:
        income = income_by_month.get(key, 0)
        expense = expense_by_month.get(key, 0)
        points.append(
            MonthlyEvolutionPoint(
                month=key, income=income, expense=expense, balance=income - expense
            )
        )
    return points
