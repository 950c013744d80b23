from datetime import date
from typing import Optional, List, Dict, Any

from sqlalchemy import select, and_
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.models.investment_operation import InvestmentOperation


class InvestmentOperationRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, operation_id: str) -> Optional[InvestmentOperation]:
        result = await self.db.execute(
            select(InvestmentOperation).where(InvestmentOperation.id == operation_id)
        )
        return result.scalar_one_or_none()

    async def get_by_user(self, user_id: str) -> List[InvestmentOperation]:
        """Get a user's full operation ledger, newest first."""
        result = await self.db.execute(
            select(InvestmentOperation)
            .where(InvestmentOperation.user_id == user_id)
            .order_by(
                InvestmentOperation.date.desc(),
                InvestmentOperation.created_at.desc(),
            )
        )
        return list(result.scalars().all())

    async def get_by_asset(self, user_id: str, asset: str) -> List[InvestmentOperation]:
        """Get operations on one asset, oldest first."""
        result = await self.db.execute(
            select(InvestmentOperation)
            .where(
                InvestmentOperation.user_id == user_id,
                InvestmentOperation.asset == asset,
            )
            .order_by(
                InvestmentOperation.date.asc(),
                InvestmentOperation.created_at.asc(),
            )
        )
        return list(result.scalars().all())

    async def get_by_date_range(
        self, user_id: str, start_date: date, end_date: date
    ) -> List[InvestmentOperation]:
        """Get operations in an inclusive date range, oldest first."""
        result = await self.db.execute(
            select(InvestmentOperation)
            .where(
                and_(
                    InvestmentOperation.user_id == user_id,
                    InvestmentOperation.date >= start_date,
                    InvestmentOperation.date <= end_date,
                )
            )
            .order_by(
                InvestmentOperation.date.asc(),
                InvestmentOperation.created_at.asc(),
            )
        )
        return list(result.scalars().all())

    async def create(self, user_id: str, **fields: Any) -> InvestmentOperation:
        operation = InvestmentOperation(user_id=user_id, **fields)
        self.db.add(operation)
        await self.db.flush()
        await self.db.refresh(operation)
        return operation

    async def update(
        self, operation: InvestmentOperation, fields: Dict[str, Any]
    ) -> InvestmentOperation:
        for key, value in fields.items():
            setattr(operation, key, value)
        await self.db.flush()
        await self.db.refresh(operation)
        return operation

    async def delete(self, operation: InvestmentOperation) -> None:
        await self.db.delete(operation)
        await self.db.flush()
