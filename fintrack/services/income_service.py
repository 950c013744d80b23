import logging
import uuid
from datetime import date
from typing import List, Optional

from dateutil.relativedelta import relativedelta
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.exceptions import ResourceNotFoundError, PermissionDeniedError
from fintrack.core.periods import resolve_comparison, resolve_period
from fintrack.db.repositories.expense_repo import ExpenseRepository
from fintrack.db.repositories.income_repo import IncomeRepository
from fintrack.models.enums import PeriodToken
from fintrack.models.income import Income
from fintrack.schemas.analytics import StatsResponse
from fintrack.schemas.income import IncomeCreate, IncomeUpdate, IncomeResponse
from fintrack.services.period_aggregator import sum_amounts, percentage_change, balance_change

logger = logging.getLogger(__name__)

RECURRING_MONTHS = 12


class IncomeService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.income_repo = IncomeRepository(db)
        self.expense_repo = ExpenseRepository(db)

    async def create(self, user_id: str, data: IncomeCreate) -> List[IncomeResponse]:
        """Create an income.

        A recurring income is stored as 12 monthly siblings starting at
        ``data.date`` and sharing a recurring group id. Days past the end of a
        month are clamped to its last day (Jan 31 -> Feb 29 -> Mar 31).
        """
        base = {
            "user_id": user_id,
            "name": data.name,
            "category": data.category,
            "amount": data.amount,
        }

        if not data.is_recurring:
            rows = [{**base, "date": data.date, "is_recurring": False}]
        else:
            group_id = str(uuid.uuid4())
            rows = [
                {
                    **base,
                    "date": data.date + relativedelta(months=offset),
                    "is_recurring": True,
                    "recurring_group_id": group_id,
                }
                for offset in range(RECURRING_MONTHS)
            ]

        incomes = await self.income_repo.create_many(rows)
        logger.info(
            f"Created {len(incomes)} income(s) for user {user_id} "
            f"(recurring={data.is_recurring})"
        )
        return [IncomeResponse.model_validate(i) for i in incomes]

    async def _get_owned(self, user_id: str, income_id: str) -> Income:
        income = await self.income_repo.get_by_id(income_id)
        if not income:
            raise ResourceNotFoundError(f"Income {income_id} not found")
        if income.user_id != user_id:
            raise PermissionDeniedError(
                "You don't have permission to access this income",
                details={"income_id": income_id},
            )
        return income

    async def get(self, user_id: str, income_id: str) -> IncomeResponse:
        return IncomeResponse.model_validate(await self._get_owned(user_id, income_id))

    async def list(
        self,
        user_id: str,
        period: Optional[PeriodToken] = None,
        today: Optional[date] = None,
    ) -> List[IncomeResponse]:
        """List a user's incomes, newest first, optionally within a named period."""
        if period:
            return await self.by_period(user_id, period, today)
        incomes = await self.income_repo.get_by_user(user_id)
        return [IncomeResponse.model_validate(i) for i in incomes]

    async def update(
        self, user_id: str, income_id: str, data: IncomeUpdate
    ) -> IncomeResponse:
        """Update a single income. Recurring siblings are left untouched."""
        income = await self._get_owned(user_id, income_id)
        fields = data.model_dump(exclude_unset=True, exclude_none=True)
        income = await self.income_repo.update(income, fields)
        return IncomeResponse.model_validate(income)

    async def remove(self, user_id: str, income_id: str) -> None:
        income = await self._get_owned(user_id, income_id)
        await self.income_repo.delete(income)
        logger.info(f"Removed income {income_id} for user {user_id}")

    async def remove_recurring_group(self, user_id: str, group_id: str) -> int:
        """Remove every income of a recurring group. Returns the number removed."""
        deleted = await self.income_repo.delete_by_recurring_group(user_id, group_id)
        if not deleted:
            raise ResourceNotFoundError(f"Recurring income group {group_id} not found")
        logger.info(f"Removed {deleted} incomes of group {group_id} for user {user_id}")
        return deleted

    async def by_category(self, user_id: str, category: str) -> List[IncomeResponse]:
        incomes = await self.income_repo.get_by_category(user_id, category)
        return [IncomeResponse.model_validate(i) for i in incomes]

    async def by_date_range(
        self, user_id: str, start_date: date, end_date: date
    ) -> List[IncomeResponse]:
        incomes = await self.income_repo.get_by_date_range(user_id, start_date, end_date)
        return [IncomeResponse.model_validate(i) for i in incomes]

    async def by_period(
        self, user_id: str, period: PeriodToken, today: Optional[date] = None
    ) -> List[IncomeResponse]:
        window = resolve_period(period, today)
        return await self.by_date_range(user_id, window.start_date, window.end_date)

    async def get_stats(
        self,
        user_id: str,
        period: Optional[PeriodToken] = None,
        start_date: Optional[date] = None,
        end_date: Optional[date] = None,
        today: Optional[date] = None,
    ) -> StatsResponse:
        """Income, expense and balance for a window and their change vs the previous one.

        With an explicit date pair the previous window is the same-length span
        right before it; with a period token it follows the token's previous
        window. Defaults to the current month.
        """
        current, previous = resolve_comparison(period, start_date, end_date, today)

        current_income = sum_amounts(
            await self.income_repo.get_by_date_range(user_id, current.start_date, current.end_date)
        )
        current_expense = sum_amounts(
            await self.expense_repo.get_by_date_range(user_id, current.start_date, current.end_date)
        )
        previous_income = sum_amounts(
            await self.income_repo.get_by_date_range(user_id, previous.start_date, previous.end_date)
        )
        previous_expense = sum_amounts(
            await self.expense_repo.get_by_date_range(user_id, previous.start_date, previous.end_date)
        )

        current_balance = current_income - current_expense
        previous_balance = previous_income - previous_expense

        return StatsResponse(
            balance=current_balance,
            balance_change=balance_change(current_balance, previous_balance),
            income=current_income,
            income_change=percentage_change(current_income, previous_income),
            expense=current_expense,
            expense_change=percentage_change(current_expense, previous_expense),
        )
