"""
Composite analytics over a user's incomes and expenses.

Every method takes an optional ``today`` so results can be pinned to a date;
it defaults to the current date. All money values are in cents.
"""
import logging
from collections import defaultdict
from datetime import date
from typing import Dict, List, Optional, Tuple

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.periods import (
    DateRange,
    last_n_month_keys,
    month_end,
    month_key,
    month_start,
    resolve_period,
)
from fintrack.db.repositories.category_repo import CategoryRepository
from fintrack.db.repositories.expense_repo import ExpenseRepository
from fintrack.db.repositories.income_repo import IncomeRepository
from fintrack.models.enums import PeriodToken, TransactionKind
from fintrack.models.expense import Expense
from fintrack.models.income import Income
from fintrack.schemas.analytics import (
    DEFAULT_CATEGORY_ICON,
    BudgetSuggestionCategory,
    BudgetSuggestionResponse,
    CategoryAnalysis,
    CategoryIncrease,
    ConsumptionPatternResponse,
    DayOfMonthSpending,
    DayOfWeekSpending,
    FinancialHealthDetails,
    FinancialHealthResponse,
    IncomeSource,
    IncomeSourcesResponse,
    LatestTransaction,
    MonthlyEvolutionPoint,
    MonthValue,
    PeriodChanges,
    PeriodComparisonResponse,
    PeriodTotals,
    RecurringExpense,
    SingleExpense,
    TopVillainsResponse,
    get_chart_color,
)
from fintrack.services.period_aggregator import (
    balance_change,
    monthly_evolution,
    percentage_change,
    sum_amounts,
    totals_by_category,
)
from fintrack.services.recurring_detector import detect_recurring_expenses

logger = logging.getLogger(__name__)

HEALTH_MONTHS = 6
BUDGET_HISTORY_MONTHS = 3
BUDGET_FACTOR = 0.9

WEEKDAY_NAMES = [
    "Monday",
    "Tuesday",
    "Wednesday",
    "Thursday",
    "Friday",
    "Saturday",
    "Sunday",
]


def _trailing_window(months: int, today: date) -> DateRange:
    """The ``months`` calendar months ending with today's month."""
    start = month_start(today) - relativedelta(months=months - 1)
    return DateRange.from_dates(start, month_end(today))


def _complete_months_window(months: int, today: date) -> DateRange:
    """The ``months`` complete calendar months before today's month."""
    first = month_start(today)
    return DateRange.from_dates(first - relativedelta(months=months), first - relativedelta(days=1))


def _score_health(
    evolution: List[MonthlyEvolutionPoint], recurring: List[RecurringExpense]
) -> Tuple[int, FinancialHealthDetails, List[str]]:
    total_income = sum(p.income for p in evolution)
    total_expense = sum(p.expense for p in evolution)

    if total_income > 0:
        expense_ratio = total_expense / total_income
    else:
        expense_ratio = 1.0 if total_expense > 0 else 0.0

    active_months = [p for p in evolution if p.income or p.expense]
    positive_months = sum(1 for p in active_months if p.balance > 0)
    positive_fraction = positive_months / len(active_months) if active_months else 0.0

    average_income = total_income / len(evolution) if evolution else 0.0
    monthly_recurring = sum(r.annual_impact for r in recurring) / 12
    recurring_ratio = monthly_recurring / average_income if average_income > 0 else 0.0

    score = 100
    insights = []

    if expense_ratio > 1.0:
        score -= 40
        insights.append("You are spending more than you earn.")
    elif expense_ratio > 0.9:
        score -= 25
        insights.append("Your expenses take more than 90% of your income.")
    elif expense_ratio > 0.7:
        score -= 10
        insights.append("Your expenses take more than 70% of your income.")

    if positive_fraction < 0.5:
        score -= 30
        insights.append("Fewer than half of your recent months ended with a positive balance.")
    elif positive_fraction < 0.8:
        score -= 15
        insights.append("Some of your recent months ended with a negative balance.")

    if recurring_ratio > 0.5:
        score -= 20
        insights.append("Recurring expenses commit more than half of your monthly income.")
    elif recurring_ratio > 0.3:
        score -= 10
        insights.append("Recurring expenses commit more than 30% of your monthly income.")

    if not insights:
        insights.append("Your finances look healthy. Keep it up!")

    details = FinancialHealthDetails(
        expense_ratio=round(expense_ratio * 100, 2),
        positive_months=positive_months,
        positive_months_percentage=round(positive_fraction * 100, 2),
        recurring_expense_ratio=round(recurring_ratio * 100, 2),
    )
    return max(0, min(100, score)), details, insights


class AnalyticsService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.income_repo = IncomeRepository(db)
        self.expense_repo = ExpenseRepository(db)
        self.category_repo = CategoryRepository(db)

    async def _incomes(self, user_id: str, window: DateRange) -> List[Income]:
        return await self.income_repo.get_by_date_range(
            user_id, window.start_date, window.end_date
        )

    async def _expenses(self, user_id: str, window: DateRange) -> List[Expense]:
        return await self.expense_repo.get_by_date_range(
            user_id, window.start_date, window.end_date
        )

    async def get_monthly_evolution(
        self, user_id: str, months: int = 12, today: Optional[date] = None
    ) -> List[MonthlyEvolutionPoint]:
        """Income/expense/balance per month for the last ``months`` months, oldest first."""
        today = today or date.today()
        window = _trailing_window(months, today)
        return monthly_evolution(
            await self._incomes(user_id, window),
            await self._expenses(user_id, window),
            months,
            today,
        )

    async def get_recurring_expenses(
        self, user_id: str, months: int = HEALTH_MONTHS, today: Optional[date] = None
    ) -> List[RecurringExpense]:
        """Recurring expense series seen in the last ``months`` months."""
        today = today or date.today()
        expenses = await self._expenses(user_id, _trailing_window(months, today))
        return detect_recurring_expenses(expenses)

    async def get_financial_health(
        self, user_id: str, today: Optional[date] = None
    ) -> FinancialHealthResponse:
        """Score 0-100 from the last six months of income and expenses.

        Penalties: expense ratio above 70/90/100% of income, too few
        positive-balance months, and recurring expenses committing more than
        30/50% of the average monthly income.
        """
        today = today or date.today()
        window = _trailing_window(HEALTH_MONTHS, today)
        incomes = await self._incomes(user_id, window)
        expenses = await self._expenses(user_id, window)

        evolution = monthly_evolution(incomes, expenses, HEALTH_MONTHS, today)
        recurring = detect_recurring_expenses(expenses)
        score, details, insights = _score_health(evolution, recurring)

        logger.debug(f"Financial health for user {user_id}: score={score}")
        return FinancialHealthResponse(score=score, details=details, insights=insights)

    async def _period_totals(self, user_id: str, window: DateRange) -> PeriodTotals:
        income = sum_amounts(await self._incomes(user_id, window))
        expense = sum_amounts(await self._expenses(user_id, window))
        return PeriodTotals(income=income, expense=expense, balance=income - expense)

    async def get_period_comparison(
        self, user_id: str, today: Optional[date] = None
    ) -> PeriodComparisonResponse:
        """This month against last month."""
        today = today or date.today()
        current = await self._period_totals(
            user_id, resolve_period(PeriodToken.THIS_MONTH, today)
        )
        previous = await self._period_totals(
            user_id, resolve_period(PeriodToken.LAST_MONTH, today)
        )
        return PeriodComparisonResponse(
            current=current,
            previous=previous,
            changes=PeriodChanges(
                income_change=percentage_change(current.income, previous.income),
                expense_change=percentage_change(current.expense, previous.expense),
                balance_change=balance_change(current.balance, previous.balance),
            ),
        )

    async def get_budget_suggestion(
        self, user_id: str, today: Optional[date] = None
    ) -> BudgetSuggestionResponse:
        """Suggest a monthly budget per category at 90% of the recent average.

        The average covers the three complete months before the current one;
        current spend is this month's.
        """
        today = today or date.today()
        history = totals_by_category(
            await self._expenses(user_id, _complete_months_window(BUDGET_HISTORY_MONTHS, today))
        )
        current = totals_by_category(
            await self._expenses(user_id, resolve_period(PeriodToken.THIS_MONTH, today))
        )

        categories = []
        for category in list(history) + [c for c in current if c not in history]:
            average = history.get(category, 0) / BUDGET_HISTORY_MONTHS
            suggested = round(average * BUDGET_FACTOR)
            spent = current.get(category, 0)
            categories.append(
                BudgetSuggestionCategory(
                    category=category,
                    suggested_budget=suggested,
                    current_spent=spent,
                    difference=suggested - spent,
                    percentage=round(spent / suggested * 100, 2) if suggested > 0 else 0.0,
                )
            )
        categories.sort(key=lambda c: c.suggested_budget, reverse=True)

        total_suggested = sum(c.suggested_budget for c in categories)
        total_spent = sum(c.current_spent for c in categories)
        return BudgetSuggestionResponse(
            categories=categories,
            total_suggested=total_suggested,
            total_spent=total_spent,
            total_difference=total_suggested - total_spent,
        )

    async def get_top_villains(
        self, user_id: str, today: Optional[date] = None
    ) -> TopVillainsResponse:
        """Biggest category increase, heaviest recurring expense and biggest expense."""
        today = today or date.today()
        this_month = await self._expenses(user_id, resolve_period(PeriodToken.THIS_MONTH, today))
        last_month = await self._expenses(user_id, resolve_period(PeriodToken.LAST_MONTH, today))

        current_totals = totals_by_category(this_month)
        previous_totals = totals_by_category(last_month)

        biggest_increase = None
        for category, value in current_totals.items():
            previous = previous_totals.get(category, 0)
            increase = value - previous
            if increase > 0 and (biggest_increase is None or increase > biggest_increase.increase):
                biggest_increase = CategoryIncrease(
                    category=category, current=value, previous=previous, increase=increase
                )

        recurring = await self.get_recurring_expenses(user_id, today=today)

        biggest_expense = None
        if this_month:
            top = max(this_month, key=lambda e: e.amount)
            biggest_expense = SingleExpense(
                name=top.name, category=top.category, amount=top.amount, date=top.date
            )

        return TopVillainsResponse(
            biggest_category_increase=biggest_increase,
            heaviest_recurring_expense=recurring[0] if recurring else None,
            biggest_single_expense=biggest_expense,
        )

    async def get_category_expense_analysis(
        self, user_id: str, months: int = 6, today: Optional[date] = None
    ) -> List[CategoryAnalysis]:
        """Per-category spend statistics over the last ``months`` complete months."""
        today = today or date.today()
        window = _complete_months_window(months, today)
        expenses = await self._expenses(user_id, window)
        icons = await self.category_repo.get_icon_map()
        keys = last_n_month_keys(months, window.end_date)

        by_category: Dict[str, Dict[str, int]] = {}
        # Oldest first so colors follow first-seen order
        for expense in sorted(expenses, key=lambda e: e.date):
            monthly = by_category.setdefault(expense.category, defaultdict(int))
            monthly[month_key(expense.date)] += int(expense.amount)

        analyses = []
        for index, (category, monthly) in enumerate(by_category.items()):
            values = [monthly.get(key, 0) for key in keys]
            average = sum(values) / months
            last_value = values[-1]
            top_index = values.index(max(values))
            analyses.append(
                CategoryAnalysis(
                    category=category,
                    average_monthly=round(average, 2),
                    last_month=last_value,
                    variation=percentage_change(last_value, average),
                    most_expensive_month=MonthValue(month=keys[top_index], value=values[top_index]),
                    icon=icons.get(category),
                    color=get_chart_color(index),
                )
            )

        analyses.sort(key=lambda a: a.average_monthly, reverse=True)
        return analyses

    async def get_income_sources(
        self, user_id: str, today: Optional[date] = None
    ) -> IncomeSourcesResponse:
        """Income over the last 12 months grouped by (category, name)."""
        today = today or date.today()
        incomes = await self._incomes(user_id, resolve_period(PeriodToken.LAST_12_MONTHS, today))

        groups: Dict[Tuple[str, Optional[str]], List[Income]] = defaultdict(list)
        for income in incomes:
            groups[(income.category, income.name or None)].append(income)

        total_income = sum_amounts(incomes)
        sources = []
        for (category, name), items in groups.items():
            total = sum_amounts(items)
            sources.append(
                IncomeSource(
                    category=category,
                    name=name,
                    source_label=name or category,
                    total=total,
                    percentage=round(total / total_income * 100, 2) if total_income > 0 else 0.0,
                    count=len(items),
                )
            )
        sources.sort(key=lambda s: s.total, reverse=True)

        return IncomeSourcesResponse(
            sources=sources,
            total_income=total_income,
            main_source_percentage=sources[0].percentage if sources else 0.0,
            source_count=len(sources),
        )

    async def get_consumption_pattern(
        self, user_id: str, months: int = 3, today: Optional[date] = None
    ) -> ConsumptionPatternResponse:
        """Spend totals and counts by weekday and by day of month."""
        today = today or date.today()
        expenses = await self._expenses(user_id, _trailing_window(months, today))

        weekday_totals = [[0, 0] for _ in range(7)]
        day_totals = [[0, 0] for _ in range(31)]
        for expense in expenses:
            for bucket in (
                weekday_totals[expense.date.weekday()],
                day_totals[expense.date.day - 1],
            ):
                bucket[0] += int(expense.amount)
                bucket[1] += 1

        return ConsumptionPatternResponse(
            by_day_of_week=[
                DayOfWeekSpending(day=WEEKDAY_NAMES[i], total=total, count=count)
                for i, (total, count) in enumerate(weekday_totals)
            ],
            by_day_of_month=[
                DayOfMonthSpending(day=i + 1, total=total, count=count)
                for i, (total, count) in enumerate(day_totals)
            ],
        )

    async def get_latest_transactions(
        self, user_id: str, limit: int = 10
    ) -> List[LatestTransaction]:
        """Most recently created incomes and expenses, newest first."""
        icons = await self.category_repo.get_icon_map()
        incomes = await self.income_repo.get_latest(user_id, limit)
        expenses = await self.expense_repo.get_latest(user_id, limit)

        entries = [(i, TransactionKind.INCOME) for i in incomes]
        entries += [(e, TransactionKind.EXPENSE) for e in expenses]
        entries.sort(key=lambda entry: entry[0].created_at, reverse=True)

        return [
            LatestTransaction(
                id=record.id,
                description=record.name or record.category,
                category_icon=icons.get(record.category, DEFAULT_CATEGORY_ICON),
                category=record.category,
                date=record.date,
                amount=record.amount,
                type=kind,
            )
            for record, kind in entries[:limit]
        ]
