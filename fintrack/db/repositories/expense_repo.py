from datetime import date
from typing import Optional, List, Dict, Any

from sqlalchemy import select, and_, func
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.models.expense import Expense


class ExpenseRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, expense_id: str) -> Optional[Expense]:
        """Get expense by ID."""
        result = await self.db.execute(select(Expense).where(Expense.id == expense_id))
        return result.scalar_one_or_none()

    async def get_by_user(self, user_id: str) -> List[Expense]:
        """Get all expenses for a user, newest first."""
        result = await self.db.execute(
            select(Expense)
            .where(Expense.user_id == user_id)
            .order_by(Expense.date.desc())
        )
        return list(result.scalars().all())

    async def get_by_date_range(
        self, user_id: str, start_date: date, end_date: date
    ) -> List[Expense]:
        """Get expenses for a user with start_date <= date <= end_date."""
        result = await self.db.execute(
            select(Expense)
            .where(
                and_(
                    Expense.user_id == user_id,
                    Expense.date >= start_date,
                    Expense.date <= end_date,
                )
            )
            .order_by(Expense.date.desc())
        )
        return list(result.scalars().all())

    async def get_by_category(self, user_id: str, category: str) -> List[Expense]:
        result = await self.db.execute(
            select(Expense)
            .where(Expense.user_id == user_id, Expense.category == category)
            .order_by(Expense.date.desc())
        )
        return list(result.scalars().all())

    async def get_by_group(self, user_id: str, group_id: str) -> List[Expense]:
        """Get installment siblings, first installment first."""
        result = await self.db.execute(
            select(Expense)
            .where(Expense.user_id == user_id, Expense.group_id == group_id)
            .order_by(Expense.installment_number.asc())
        )
        return list(result.scalars().all())

    async def get_latest(self, user_id: str, limit: int) -> List[Expense]:
        """Get the most recently created expenses."""
        result = await self.db.execute(
            select(Expense)
            .where(Expense.user_id == user_id)
            .order_by(Expense.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def sum_by_card(self, user_id: str, card_id: str) -> int:
        """Sum of all expense amounts linked to a card."""
        result = await self.db.execute(
            select(func.coalesce(func.sum(Expense.amount), 0)).where(
                Expense.user_id == user_id,
                Expense.card_id == card_id,
            )
        )
        return int(result.scalar() or 0)

    async def create_many(self, rows: List[Dict[str, Any]]) -> List[Expense]:
        """Create several expenses in one flush."""
        expenses = [Expense(**row) for row in rows]
        self.db.add_all(expenses)
        await self.db.flush()
        for expense in expenses:
            await self.db.refresh(expense)
        return expenses

    async def update(self, expense: Expense, fields: Dict[str, Any]) -> Expense:
        """Apply the given field values to an expense."""
        for key, value in fields.items():
            setattr(expense, key, value)
        await self.db.flush()
        await self.db.refresh(expense)
        return expense

    async def delete_many(self, expenses: List[Expense]) -> None:
        for expense in expenses:
            await self.db.delete(expense)
        await self.db.flush()
