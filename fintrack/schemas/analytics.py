from datetime import date as date_type
from typing import List, Optional

from pydantic import BaseModel

from fintrack.models.enums import RecurringFrequency, TransactionKind


# Fixed chart palette, assigned by first-seen category order
CHART_COLORS: List[str] = [
    "#9333ea",
    "#ef4444",
    "#60a5fa",
    "#4ade80",
    "#f97316",
    "#f59e0b",
    "#ec4899",
    "#8b5cf6",
    "#06b6d4",
    "#84cc16",
]

DEFAULT_CATEGORY_ICON = "💰"


def get_chart_color(index: int) -> str:
    """Get the palette color for the n-th distinct category."""
    return CHART_COLORS[index % len(CHART_COLORS)]


class CategorySlice(BaseModel):
    """One category in a category breakdown (amounts in cents)."""
    name: str
    percentage: float
    color: str
    icon: Optional[str] = None
    value: int


class MonthlyEvolutionPoint(BaseModel):
    month: str  # "YYYY-MM"
    income: int
    expense: int
    balance: int


class StatsResponse(BaseModel):
    balance: int
    balance_change: float
    income: int
    income_change: float
    expense: int
    expense_change: float


class RecurringExpense(BaseModel):
    name: str
    category: str
    amount: float  # mean amount in cents
    frequency: RecurringFrequency
    annual_impact: float
    occurrences: int
    last_date: date_type


class FinancialHealthDetails(BaseModel):
    expense_ratio: float  # percentage of income spent
    positive_months: int
    positive_months_percentage: float
    recurring_expense_ratio: float  # percentage of income committed to recurring expenses


class FinancialHealthResponse(BaseModel):
    score: int
    details: FinancialHealthDetails
    insights: List[str]


class PeriodTotals(BaseModel):
    income: int
    expense: int
    balance: int


class PeriodChanges(BaseModel):
    income_change: float
    expense_change: float
    balance_change: float


class PeriodComparisonResponse(BaseModel):
    current: PeriodTotals
    previous: PeriodTotals
    changes: PeriodChanges


class BudgetSuggestionCategory(BaseModel):
    category: str
    suggested_budget: int
    current_spent: int
    difference: int
    percentage: float


class BudgetSuggestionResponse(BaseModel):
    categories: List[BudgetSuggestionCategory]
    total_suggested: int
    total_spent: int
    total_difference: int


class CategoryIncrease(BaseModel):
    category: str
    current: int
    previous: int
    increase: int


class SingleExpense(BaseModel):
    name: Optional[str] = None
    category: str
    amount: int
    date: date_type


class TopVillainsResponse(BaseModel):
    biggest_category_increase: Optional[CategoryIncrease] = None
    heaviest_recurring_expense: Optional[RecurringExpense] = None
    biggest_single_expense: Optional[SingleExpense] = None


class MonthValue(BaseModel):
    month: str
    value: int


class CategoryAnalysis(BaseModel):
    category: str
    average_monthly: float
    last_month: int
    variation: float
    most_expensive_month: MonthValue
    icon: Optional[str] = None
    color: str


class IncomeSource(BaseModel):
    category: str
    name: Optional[str] = None
    source_label: str
    total: int
    percentage: float
    count: int


class IncomeSourcesResponse(BaseModel):
    sources: List[IncomeSource]
    total_income: int
    main_source_percentage: float
    source_count: int


class DayOfWeekSpending(BaseModel):
    day: str
    total: int
    count: int


class DayOfMonthSpending(BaseModel):
    day: int
    total: int
    count: int


class ConsumptionPatternResponse(BaseModel):
    by_day_of_week: List[DayOfWeekSpending]
    by_day_of_month: List[DayOfMonthSpending]


class LatestTransaction(BaseModel):
    id: str
    description: str
    category_icon: str
    category: str
    date: date_type
    amount: int
    type: TransactionKind
