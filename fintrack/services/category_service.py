from typing import List, Optional

from sqlalchemy.ext.asyncio import AsyncSession

from fintrack.core.exceptions import ResourceNotFoundError
from fintrack.db.repositories.category_repo import CategoryRepository
from fintrack.models.enums import CategoryType
from fintrack.schemas.category import CategoryCreate, CategoryResponse

# Preferred display order of income categories; unknown names go last
INCOME_ORDER = [
    "Salário",
    "Freelance",
    "Comissão",
    "Vendas",
    "Cashback",
    "Rendimentos",
    "Aluguel recebido",
    "Reembolso",
    "Presentes",
    "Outros",
]


def _income_sort_key(name: str):
    try:
        return (0, INCOME_ORDER.index(name), "")
    except ValueError:
        return (1, 0, name)


class CategoryService:
    def __init__(self, db: AsyncSession):
        self.db = db
        self.category_repo = CategoryRepository(db)

    async def list(self, category_type: Optional[CategoryType] = None) -> List[CategoryResponse]:
        """List categories.

        Income categories follow INCOME_ORDER, expense categories are
        alphabetical, and the unfiltered list is ordered by type then name.
        """
        categories = await self.category_repo.get_all(
            category_type.value if category_type else None
        )
        if category_type == CategoryType.INCOME:
            categories.sort(key=lambda c: _income_sort_key(c.name))
        return [CategoryResponse.model_validate(c) for c in categories]

    async def get(self, category_id: str) -> CategoryResponse:
        category = await self.category_repo.get_by_id(category_id)
        if not category:
            raise ResourceNotFoundError(f"Category {category_id} not found")
        return CategoryResponse.model_validate(category)

    async def create(self, data: CategoryCreate) -> CategoryResponse:
        created = await self.create_many([data])
        return created[0]

    async def create_many(self, items: List[CategoryCreate]) -> List[CategoryResponse]:
        rows = [
            {"name": item.name, "type": item.type.value, "icon": item.icon}
            for item in items
        ]
        categories = await self.category_repo.create_many(rows)
        return [CategoryResponse.model_validate(c) for c in categories]
