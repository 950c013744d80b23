"""
Recurring expense detection.

Expenses are grouped by (lowercased name, category). A group is recurring
when it has at least two entries and every amount stays within 10% of the
group mean; the average gap between dates decides the frequency.
"""
from collections import defaultdict
from datetime import date
from typing import Dict, Iterable, List, Optional, Protocol, Tuple

from fintrack.models.enums import RecurringFrequency
from fintrack.schemas.analytics import RecurringExpense

AMOUNT_TOLERANCE = 0.10

# (max average gap in days, frequency)
FREQUENCY_THRESHOLDS: List[Tuple[int, RecurringFrequency]] = [
    (7, RecurringFrequency.WEEKLY),
    (14, RecurringFrequency.BIWEEKLY),
    (35, RecurringFrequency.MONTHLY),
]

# Occurrences per year used to annualize each frequency. The irregular
# multiplier is a fixed heuristic kept for output compatibility.
ANNUAL_MULTIPLIERS: Dict[RecurringFrequency, int] = {
    RecurringFrequency.WEEKLY: 52,
    RecurringFrequency.BIWEEKLY: 26,
    RecurringFrequency.MONTHLY: 12,
    RecurringFrequency.IRREGULAR: 6,
}


class NamedExpense(Protocol):
    name: Optional[str]
    category: str
    amount: int
    date: date


def classify_frequency(average_gap_days: float) -> RecurringFrequency:
    for max_gap, frequency in FREQUENCY_THRESHOLDS:
        if average_gap_days <= max_gap:
            return frequency
    return RecurringFrequency.IRREGULAR


def _is_stable(amounts: List[int], mean: float) -> bool:
    return all(abs(amount - mean) < mean * AMOUNT_TOLERANCE for amount in amounts)


def detect_recurring_expenses(expenses: Iterable[NamedExpense]) -> List[RecurringExpense]:
    """Find expense series that repeat at a near-constant amount and interval.

    Unnamed expenses are ignored. Results are sorted by annual impact, highest
    first.
    """
    groups: Dict[Tuple[str, str], List[NamedExpense]] = defaultdict(list)
    for expense in expenses:
        if not expense.name or not expense.name.strip():
            continue
        groups[(expense.name.strip().lower(), expense.category)].append(expense)

    recurring = []
    for (_, category), entries in groups.items():
        if len(entries) < 2:
            continue

        amounts = [int(e.amount) for e in entries]
        mean = sum(amounts) / len(amounts)
        if mean <= 0 or not _is_stable(amounts, mean):
            continue

        entries = sorted(entries, key=lambda e: e.date)
        gaps = [
            (later.date - earlier.date).days
            for earlier, later in zip(entries, entries[1:])
        ]
        frequency = classify_frequency(sum(gaps) / len(gaps))

        recurring.append(
            RecurringExpense(
                name=entries[-1].name.strip(),
                category=category,
                amount=round(mean, 2),
                frequency=frequency,
                annual_impact=round(mean * ANNUAL_MULTIPLIERS[frequency], 2),
                occurrences=len(entries),
                last_date=entries[-1].date,
            )
        )

    recurring.sort(key=lambda r: r.annual_impact, reverse=True)
    return recurring
