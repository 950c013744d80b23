from datetime import date
from typing import Optional, List, Dict, Any

from sqlalchemy import select, and_, delete
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.models.income import Income


class IncomeRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, income_id: str) -> Optional[Income]:
        """Get income by ID."""
        result = await self.db.execute(select(Income).where(Income.id == income_id))
        return result.scalar_one_or_none()

    async def get_by_user(self, user_id: str) -> List[Income]:
        """Get all incomes for a user, newest first."""
        result = await self.db.execute(
            select(Income)
            .where(Income.user_id == user_id)
            .order_by(Income.date.desc())
        )
        return list(result.scalars().all())

    async def get_by_date_range(
        self, user_id: str, start_date: date, end_date: date
    ) -> List[Income]:
        """Get incomes for a user with start_date <= date <= end_date."""
        result = await self.db.execute(
            select(Income)
            .where(
                and_(
                    Income.user_id == user_id,
                    Income.date >= start_date,
                    Income.date <= end_date,
                )
            )
            .order_by(Income.date.desc())
        )
        return list(result.scalars().all())

    async def get_by_category(self, user_id: str, category: str) -> List[Income]:
        result = await self.db.execute(
            select(Income)
            .where(Income.user_id == user_id, Income.category == category)
            .order_by(Income.date.desc())
        )
        return list(result.scalars().all())

    async def get_latest(self, user_id: str, limit: int) -> List[Income]:
        """Get the most recently created incomes."""
        result = await self.db.execute(
            select(Income)
            .where(Income.user_id == user_id)
            .order_by(Income.created_at.desc())
            .limit(limit)
        )
        return list(result.scalars().all())

    async def create_many(self, rows: List[Dict[str, Any]]) -> List[Income]:
        """Create several incomes in one flush."""
        incomes = [Income(**row) for row in rows]
        self.db.add_all(incomes)
        await self.db.flush()
        for income in incomes:
            await self.db.refresh(income)
        return incomes

    async def update(self, income: Income, fields: Dict[str, Any]) -> Income:
        """Apply the given field values to an income."""
        for key, value in fields.items():
            setattr(income, key, value)
        await self.db.flush()
        await self.db.refresh(income)
        return income

    async def delete(self, income: Income) -> None:
        await self.db.delete(income)
        await self.db.flush()

    async def delete_by_recurring_group(self, user_id: str, group_id: str) -> int:
        """Delete every income of a recurring group. Returns the number deleted."""
        result = await self.db.execute(
            delete(Income).where(
                Income.user_id == user_id,
                Income.recurring_group_id == group_id,
            )
        )
        await self.db.flush()
        return result.rowcount or 0
