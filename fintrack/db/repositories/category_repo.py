from typing import Optional, List, Dict

from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.models.category import Category


class CategoryRepository:
    def __init__(self, db: AsyncSession):
        self.db = db

    async def get_by_id(self, category_id: str) -> Optional[Category]:
        result = await self.db.execute(select(Category).where(Category.id == category_id))
        return result.scalar_one_or_none()

    async def get_all(self, category_type: Optional[str] = None) -> List[Category]:
        """Get categories ordered by type then name, optionally filtered by type."""
        query = select(Category).order_by(Category.type, Category.name)
        if category_type:
            query = query.where(Category.type == category_type)
        result = await self.db.execute(query)
        return list(result.scalars().all())

    async def get_icon_map(self, category_type: Optional[str] = None) -> Dict[str, str]:
        """Map category name -> icon for categories that have an icon."""
        categories = await self.get_all(category_type)
        return {c.name: c.icon for c in categories if c.icon is not None}

    async def create_many(self, rows: List[dict]) -> List[Category]:
        categories = [Category(**row) for row in rows]
        self.db.add_all(categories)
        await self.db.flush()
        for category in categories:
            await self.db.refresh(category)
        return categories
